"""Code intended to run on start-up, before running any handlers."""

__all__ = ("start_tracker",)

from typing import Any

import kopf
import structlog

from bindingtracker import state
from bindingtracker.k8s import create_k8sclient
from bindingtracker.notifications import LogNotifier
from bindingtracker.session import BindingSession
from bindingtracker.source import KubeBindSource


@kopf.on.startup()
async def start_tracker(logger: Any = None, **kwargs: Any) -> None:
    """Start up the tracker, priming a new session with the current binding
    requests, ClusterBindings and namespaces.
    """
    if logger is None:
        logger = structlog.getLogger(__name__)

    try:
        k8s_client = create_k8sclient()
    except Exception as e:
        raise kopf.TemporaryError(
            f"Could not configure a Kubernetes client: {e}", delay=30
        ) from e

    notifier = LogNotifier()
    source = KubeBindSource(k8s_client, notifier=notifier)
    session = BindingSession(source, notifier=notifier)
    await session.refresh()
    state.session = session

    logger.info(
        f"Tracking {len(session.requests)} binding requests, "
        f"{len(session.records)} cluster bindings, "
        f"{len(session.api_bindings)} API bindings and "
        f"{len(session.export_requests)} export requests"
    )
