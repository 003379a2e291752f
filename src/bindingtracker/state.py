"""Constructed (cached) state as module-level attributes."""

from __future__ import annotations

import os
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from bindingtracker.session import BindingSession

namespace = os.environ.get("BINDING_TRACKER_NAMESPACE", "")
"""The Kubernetes namespace watched by the tracker. Empty means all
namespaces.
"""

default_author = os.environ.get("BINDING_TRACKER_DEFAULT_AUTHOR", "portal-ui")
"""Author recorded on new binding requests that do not name one."""

default_ttl = os.environ.get("BINDING_TRACKER_DEFAULT_TTL", "1h")
"""``ttlAfterFinished`` applied to new binding requests that do not set one.
"""


def _int_from_env(name: str, default: int) -> int:
    """Read an integer environment variable, using ``default`` when it is
    unset or not a base-10 integer.
    """
    try:
        return int(os.environ.get(name, default))
    except ValueError:
        return default


api_timeout = _int_from_env("BINDING_TRACKER_API_TIMEOUT", 60)
"""Timeout, in seconds, for Kubernetes list calls."""

session: BindingSession | None = None
"""The running session, created by the startup handler.

The session owns the request and record collections and the correlation
cache; it is replaced wholesale when the tracker restarts.
"""
