"""Kopf handlers for the kube-bind-tracker."""

__all__ = (
    "handle_record_change",
    "handle_request_change",
    "start_tracker",
)

from bindingtracker.handlers.recordwatcher import handle_record_change
from bindingtracker.handlers.requestwatcher import handle_request_change
from bindingtracker.startup import start_tracker
