"""Kopf handler to react to changes to BindableResourcesRequests.

The handler only observes: it updates the running session's view of the
request and resolves its ClusterBinding namespace once it has succeeded.
"""

__all__ = ("describe_link", "handle_request_change")

from typing import Any

import kopf

from .. import state
from ..k8s import BINDING_REQUEST_PLURAL, KUBE_BIND_GROUP, KUBE_BIND_VERSION
from ..models import BindingRequest
from ..session import BindingSession


@kopf.on.event(KUBE_BIND_GROUP, KUBE_BIND_VERSION, BINDING_REQUEST_PLURAL)  # type: ignore[arg-type]
async def handle_request_change(
    *,
    event: dict[str, Any],
    body: dict[str, Any],
    logger: Any,
    **kwargs: Any,
) -> None:
    """Handle a change to a BindableResourcesRequest.

    Parameters
    ----------
    event : `dict`
        The watch event; ``type`` is "ADDED", "MODIFIED", "DELETED", or
        `None` for the initial listing.
    body : `dict`
        The body of the BindableResourcesRequest.
    logger : `Any`
        The kopf logger.
    kwargs : `Any`
        Additional keyword arguments provided by kopf.
    """
    session = state.session
    if session is None:
        # Startup has not finished; its initial load covers this request.
        return

    request = BindingRequest.from_dict(body)
    if event["type"] == "DELETED":
        session.remove_request(request)
        logger.info(f"Binding request {request.key} deleted")
        return

    session.upsert_request(request)
    await session.resolver.resolve([request])
    logger.info(describe_link(session, request))


def describe_link(session: BindingSession, request: BindingRequest) -> str:
    """Summarize the phase and ClusterBinding link of a request."""
    phase = request.phase.value if request.phase else "Unknown"
    record = session.linked_record(request)
    if record is None:
        return f"Binding request {request.key} ({phase}): not yet linked"
    health = session.linked_health(request)
    return (
        f"Binding request {request.key} ({phase}): linked to cluster "
        f"binding {record.key} ({health.label})"
    )
