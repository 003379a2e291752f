"""Derive display health from status conditions of ClusterBindings,
APIBindings and export requests.

Every view that shows health goes through `project_health`, so the
precedence (``Ready``, then ``Healthy``, then heartbeat liveness) is defined
in one place.
"""

from __future__ import annotations

__all__ = (
    "HealthProjection",
    "UNKNOWN",
    "describe_bound_resources",
    "export_request_message",
    "is_ready",
    "project_api_binding_health",
    "project_export_request",
    "project_health",
    "project_phase",
    "project_record_health",
)

from collections.abc import Iterable
from typing import NamedTuple

from bindingtracker.models import (
    APIBinding,
    APIServiceExportRequest,
    BindingRecord,
    Condition,
    Phase,
)


class HealthProjection(NamedTuple):
    label: str
    css_class: str
    icon: str


READY = HealthProjection("Ready", "success", "connected")
NOT_READY = HealthProjection("Not Ready", "error", "disconnected")
HEALTHY = HealthProjection("Healthy", "success", "connected")
UNHEALTHY = HealthProjection("Unhealthy", "error", "disconnected")
CONNECTED = HealthProjection("Connected", "success", "connected")
UNKNOWN = HealthProjection("Unknown", "pending", "hint")


def _find_condition(
    conditions: Iterable[Condition], condition_type: str
) -> Condition | None:
    for condition in conditions:
        if condition.type == condition_type:
            return condition
    return None


def project_health(
    conditions: Iterable[Condition],
    last_heartbeat_time: str | None = None,
) -> HealthProjection:
    """Project a list of status conditions onto a health projection.

    Parameters
    ----------
    conditions : iterable of `Condition`
        Status conditions, in any order.
    last_heartbeat_time : `str`, optional
        The record's last heartbeat timestamp, used when neither a ``Ready``
        nor a ``Healthy`` condition is present.

    Returns
    -------
    projection : `HealthProjection`
        The label, CSS class and icon to display. Never fails; missing data
        yields the ``Unknown`` projection.
    """
    conditions = list(conditions)

    ready = _find_condition(conditions, "Ready")
    if ready is not None:
        return READY if ready.status == "True" else NOT_READY

    healthy = _find_condition(conditions, "Healthy")
    if healthy is not None:
        return HEALTHY if healthy.status == "True" else UNHEALTHY

    return CONNECTED if last_heartbeat_time else UNKNOWN


def project_record_health(record: BindingRecord | None) -> HealthProjection:
    if record is None:
        return UNKNOWN
    return project_health(record.conditions, record.last_heartbeat_time)


def is_ready(conditions: Iterable[Condition]) -> bool:
    ready = _find_condition(conditions, "Ready")
    return ready is not None and ready.status == "True"


def project_phase(phase: Phase | str | None) -> tuple[str, str]:
    """Map a request phase to a ``(css_class, icon)`` pair."""
    if not phase:
        return ("pending", "hint")
    value = phase.value if isinstance(phase, Phase) else phase
    lower = value.lower()
    if lower == "succeeded":
        return ("success", "connected")
    if lower == "failed":
        return ("error", "disconnected")
    return ("pending", "hint")


def project_api_binding_health(binding: APIBinding) -> HealthProjection:
    """APIBindings carry no heartbeat, so only their conditions count."""
    return project_health(binding.conditions)


def describe_bound_resources(binding: APIBinding) -> str:
    if not binding.bound_resources:
        return "None"
    return ", ".join(str(r) for r in binding.bound_resources)


def project_export_request(
    request: APIServiceExportRequest,
) -> HealthProjection:
    """Project an export request's status.

    A ``Ready`` condition decides the outcome. Without one the request is
    shown as pending, labelled with its phase.
    """
    if _find_condition(request.conditions, "Ready") is not None:
        return project_health(request.conditions)
    return HealthProjection(request.phase or "Pending", "pending", "hint")


def export_request_message(request: APIServiceExportRequest) -> str | None:
    """Explain why an export request is not ready, if its ``Ready``
    condition says.
    """
    ready = _find_condition(request.conditions, "Ready")
    if ready is None or ready.status == "True":
        return None
    if ready.message:
        if ready.reason:
            return f"{ready.reason}: {ready.message}"
        return ready.message
    return ready.reason or None
