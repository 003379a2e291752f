"""Kopf handler to react to changes to ClusterBindings."""

__all__ = ("handle_record_change",)

from typing import Any

import kopf

from .. import state
from ..health import project_record_health
from ..k8s import CLUSTER_BINDING_PLURAL, KUBE_BIND_GROUP, KUBE_BIND_VERSION
from ..models import BindingRecord


@kopf.on.event(KUBE_BIND_GROUP, KUBE_BIND_VERSION, CLUSTER_BINDING_PLURAL)  # type: ignore[arg-type]
async def handle_record_change(
    *,
    event: dict[str, Any],
    body: dict[str, Any],
    logger: Any,
    **kwargs: Any,
) -> None:
    """Handle a change to a ClusterBinding by updating the running session
    and logging its health.

    Parameters
    ----------
    event : `dict`
        The watch event.
    body : `dict`
        The body of the ClusterBinding.
    logger : `Any`
        The kopf logger.
    kwargs : `Any`
        Additional keyword arguments provided by kopf.
    """
    session = state.session
    if session is None:
        return

    record = BindingRecord.from_dict(body)
    if event["type"] == "DELETED":
        session.remove_record(record)
        logger.info(f"Cluster binding {record.key} deleted")
        return

    session.upsert_record(record)
    health = project_record_health(record)
    logger.info(f"Cluster binding {record.key}: {health.label}")
