"""Resolve the ClusterBinding namespace of succeeded binding requests."""

from __future__ import annotations

__all__ = ("CorrelationResolver", "resolution_candidates")

import asyncio
from collections.abc import Awaitable, Callable, Collection, Iterable
from typing import Any

import structlog

from bindingtracker.artifact import decode_artifact
from bindingtracker.cache import CorrelationCache
from bindingtracker.models import Artifact, BindingRequest, Phase

ArtifactFetcher = Callable[[str, str], Awaitable[Artifact | None]]
"""Async callable taking ``(name, namespace)`` and returning the Secret."""

DEFAULT_RESPONSE_KEY = "binding-response"


def resolution_candidates(
    requests: Iterable[BindingRequest],
    cache: CorrelationCache,
    in_flight: Collection[str] = (),
) -> list[BindingRequest]:
    """Select the requests whose artifacts still need to be resolved.

    A request is a candidate if it has succeeded, references an artifact,
    and its key is neither cached nor currently being resolved. Requests
    sharing a key are only selected once.
    """
    candidates: list[BindingRequest] = []
    seen: set[str] = set()
    for request in requests:
        if request.phase is not Phase.SUCCEEDED:
            continue
        if request.kubeconfig_secret_ref is None:
            continue
        key = request.key
        if key in seen or cache.has(key) or key in in_flight:
            continue
        seen.add(key)
        candidates.append(request)
    return candidates


class CorrelationResolver:
    """Populate a `CorrelationCache` by fetching and decoding the artifacts
    of succeeded requests.

    Parameters
    ----------
    cache : `CorrelationCache`
        The cache to populate. Owned by the caller.
    fetch_artifact : callable
        Async ``(name, namespace) -> Artifact | None``.
    default_key : `str`
        Secret key to decode when the request's reference names none.
    logger : optional
        Logger; defaults to a structlog logger.
    """

    def __init__(
        self,
        cache: CorrelationCache,
        fetch_artifact: ArtifactFetcher,
        *,
        default_key: str = DEFAULT_RESPONSE_KEY,
        logger: Any | None = None,
    ) -> None:
        self.cache = cache
        self._fetch_artifact = fetch_artifact
        self.default_key = default_key
        self._in_flight: set[str] = set()
        if logger is None:
            logger = structlog.getLogger(__name__)
        self._logger = logger

    @property
    def in_flight(self) -> frozenset[str]:
        return frozenset(self._in_flight)

    async def resolve(self, requests: Iterable[BindingRequest]) -> list[str]:
        """Resolve every candidate among ``requests`` concurrently.

        Re-invoking with the same requests is the retry mechanism: keys that
        are cached or still in flight are skipped.

        Returns
        -------
        keys : `list` of `str`
            Keys newly written to the cache by this call.
        """
        candidates = resolution_candidates(
            requests, self.cache, self._in_flight
        )
        if not candidates:
            return []

        self._in_flight.update(request.key for request in candidates)
        results = await asyncio.gather(
            *(self._resolve_one(request) for request in candidates),
            return_exceptions=True,
        )
        resolved = []
        for request, result in zip(candidates, results):
            if isinstance(result, BaseException):
                self._logger.warning(
                    f"Failed to resolve {request.key}: {result!r}"
                )
            elif result is not None:
                resolved.append(result)
        return resolved

    async def _resolve_one(self, request: BindingRequest) -> str | None:
        key = request.key
        ref = request.kubeconfig_secret_ref
        if ref is None:
            return None
        try:
            try:
                artifact = await self._fetch_artifact(
                    ref.name, request.namespace
                )
            except Exception:
                self._logger.warning(
                    f"Failed to fetch binding response secret {ref.name} "
                    f"for {key}",
                    exc_info=True,
                )
                return None

            if artifact is None:
                self._logger.info(
                    f"Binding response secret {ref.name} for {key} "
                    "is not available yet"
                )
                return None

            try:
                result = decode_artifact(
                    artifact, ref.key or self.default_key
                )
            except Exception:
                self._logger.warning(
                    f"Failed to decode binding response secret {ref.name} "
                    f"for {key}",
                    exc_info=True,
                )
                return None
            if result.namespace is None:
                self._logger.info(
                    f"No namespace found in binding response for {key} "
                    f"(error: {result.error.value if result.error else None})"
                )
                return None

            if self.cache.put(key, result.namespace):
                self._logger.debug(
                    f"Resolved {key} to namespace {result.namespace}"
                )
                return key
            return None
        finally:
            self._in_flight.discard(key)
