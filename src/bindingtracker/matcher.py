"""Link a binding request to the ClusterBinding it produced."""

from __future__ import annotations

__all__ = ("match_binding_record",)

from collections.abc import Iterable

from bindingtracker.cache import CorrelationCache
from bindingtracker.models import BindingRecord, BindingRequest


def _first_in_namespace(
    records: Iterable[BindingRecord], namespace: str
) -> BindingRecord | None:
    for record in records:
        if record.namespace == namespace:
            return record
    return None


def match_binding_record(
    request: BindingRequest,
    cache: CorrelationCache,
    records: Iterable[BindingRecord],
) -> BindingRecord | None:
    """Return the ClusterBinding linked to ``request``, if any.

    If the request's target namespace has been resolved, the first record in
    that namespace is returned. Otherwise the first record in the request's
    own namespace is returned. When several records share the namespace the
    first one encountered wins.

    A resolved namespace with no matching record returns `None` rather than
    falling back, since the resolved namespace is authoritative.
    """
    records = list(records)
    target_namespace = cache.get(request.key)
    if target_namespace is not None:
        return _first_in_namespace(records, target_namespace)
    return _first_in_namespace(records, request.namespace)
