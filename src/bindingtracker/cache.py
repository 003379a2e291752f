"""Session-scoped cache of resolved request-to-namespace correlations."""

from __future__ import annotations

__all__ = ("CorrelationCache",)

from collections.abc import Iterator


class CorrelationCache:
    """Write-once mapping from a request's ``namespace/name`` key to the
    namespace of the ClusterBinding it produced.

    Entries are never overwritten or evicted; a failed resolution is simply
    not recorded. The cache lives as long as its owning session.
    """

    def __init__(self) -> None:
        self._entries: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._entries.get(key)

    def has(self, key: str) -> bool:
        return key in self._entries

    def put(self, key: str, namespace: str) -> bool:
        """Record ``namespace`` for ``key`` unless ``key`` is already present.

        Returns `True` if the entry was written.
        """
        if key in self._entries:
            return False
        self._entries[key] = namespace
        return True

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[str]:
        return iter(self._entries)

    def as_dict(self) -> dict[str, str]:
        return dict(self._entries)
