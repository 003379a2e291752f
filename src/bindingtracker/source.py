"""Asynchronous access to binding requests, ClusterBindings, their
Secrets, and the APIBindings and export requests of service mappings.

`KubeBindSource` wraps the blocking helpers in `bindingtracker.k8s`, running
each call in a worker thread so that many fetches can be in flight at once.
Transport failures never propagate: they are logged, reported to the
notifier, and replaced with an empty result.
"""

from __future__ import annotations

__all__ = ("BindingSource", "KubeBindSource")

import asyncio
from collections.abc import Callable
from typing import Any, Protocol, TypeVar

import structlog
from kubernetes.client.exceptions import ApiException

from bindingtracker import k8s, state
from bindingtracker.models import (
    APIBinding,
    APIServiceExportRequest,
    Artifact,
    BindingRecord,
    BindingRequest,
    ExportResource,
    GroupResource,
)
from bindingtracker.notifications import Level, LogNotifier, Notifier

T = TypeVar("T")


class BindingSource(Protocol):
    """Operations the session needs from the backing store."""

    async def list_requests(self) -> list[BindingRequest]: ...

    async def list_records(self) -> list[BindingRecord]: ...

    async def list_namespaces(self) -> list[str]: ...

    async def fetch_artifact(
        self, name: str, namespace: str
    ) -> Artifact | None: ...

    async def create_request(
        self,
        name: str,
        namespace: str,
        identity: str,
        author: str | None = None,
        ttl: str | None = None,
    ) -> bool: ...

    async def delete_request(self, name: str, namespace: str) -> bool: ...

    async def delete_record(self, name: str, namespace: str) -> bool: ...

    async def list_api_bindings(self) -> list[APIBinding]: ...

    async def list_export_requests(
        self, namespace: str
    ) -> list[APIServiceExportRequest]: ...

    async def create_export_request(
        self,
        name: str,
        namespace: str,
        resources: list[ExportResource],
        permission_claims: list[GroupResource] | None = None,
    ) -> bool: ...

    async def delete_export_request(
        self, name: str, namespace: str
    ) -> bool: ...


def _parse_items(
    items: list[dict[str, Any]],
    factory: Callable[[dict[str, Any]], T],
    logger: Any,
) -> list[T]:
    parsed = []
    for item in items:
        try:
            parsed.append(factory(item))
        except (KeyError, TypeError, AttributeError):
            logger.warning(f"Skipping malformed resource: {item!r}")
    return parsed


class KubeBindSource:
    """`BindingSource` backed by the Kubernetes API.

    Parameters
    ----------
    k8s_client
        A Kubernetes client (see `bindingtracker.k8s.create_k8sclient`).
    namespace : `str`, optional
        Restrict listing to this namespace. Defaults to
        `bindingtracker.state.namespace`; empty means all namespaces.
    timeout_seconds : `int`, optional
        Timeout for list calls. Defaults to `bindingtracker.state.api_timeout`.
    notifier : `Notifier`, optional
        Where transport errors are reported.
    logger : optional
        Logger; defaults to a structlog logger.
    """

    def __init__(
        self,
        k8s_client: Any,
        *,
        namespace: str | None = None,
        timeout_seconds: int | None = None,
        notifier: Notifier | None = None,
        logger: Any | None = None,
    ) -> None:
        if logger is None:
            logger = structlog.getLogger(__name__)
        self._logger = logger
        self._k8s_client = k8s_client
        self.namespace = state.namespace if namespace is None else namespace
        self.timeout_seconds = (
            state.api_timeout if timeout_seconds is None else timeout_seconds
        )
        self._notifier = notifier or LogNotifier(logger)

    def _report(self, text: str) -> None:
        self._logger.exception(text)
        self._notifier.notify(Level.ERROR, text)

    async def list_requests(self) -> list[BindingRequest]:
        try:
            items = await asyncio.to_thread(
                k8s.list_binding_requests,
                k8s_client=self._k8s_client,
                namespace=self.namespace,
                timeout_seconds=self.timeout_seconds,
            )
        except Exception:
            self._report("Failed to load binding requests")
            return []
        return _parse_items(items, BindingRequest.from_dict, self._logger)

    async def list_records(self) -> list[BindingRecord]:
        try:
            items = await asyncio.to_thread(
                k8s.list_cluster_bindings,
                k8s_client=self._k8s_client,
                namespace=self.namespace,
                timeout_seconds=self.timeout_seconds,
            )
        except Exception:
            self._report("Failed to load cluster bindings")
            return []
        return _parse_items(items, BindingRecord.from_dict, self._logger)

    async def list_namespaces(self) -> list[str]:
        try:
            return await asyncio.to_thread(
                k8s.list_namespaces,
                k8s_client=self._k8s_client,
                timeout_seconds=self.timeout_seconds,
            )
        except Exception:
            self._report("Failed to load namespaces")
            return []

    async def fetch_artifact(
        self, name: str, namespace: str
    ) -> Artifact | None:
        """Fetch a Secret, returning `None` if it does not exist (yet) or
        cannot be read.
        """
        try:
            secret = await asyncio.to_thread(
                k8s.get_secret,
                name=name,
                namespace=namespace,
                k8s_client=self._k8s_client,
            )
        except ApiException as e:
            if e.status == 404:
                self._logger.info(
                    f"Secret {namespace}/{name} does not exist yet"
                )
            else:
                self._report(f"Error fetching secret {namespace}/{name}")
            return None
        except Exception:
            self._report(f"Error fetching secret {namespace}/{name}")
            return None
        return Artifact.from_dict(secret)

    async def create_request(
        self,
        name: str,
        namespace: str,
        identity: str,
        author: str | None = None,
        ttl: str | None = None,
    ) -> bool:
        try:
            await asyncio.to_thread(
                k8s.create_binding_request,
                name=name,
                namespace=namespace,
                cluster_identity=identity,
                author=author or state.default_author,
                ttl_after_finished=ttl or state.default_ttl,
                k8s_client=self._k8s_client,
            )
        except Exception:
            self._report(f"Error creating binding request {namespace}/{name}")
            return False
        return True

    async def delete_request(self, name: str, namespace: str) -> bool:
        try:
            await asyncio.to_thread(
                k8s.delete_binding_request,
                name=name,
                namespace=namespace,
                k8s_client=self._k8s_client,
            )
        except Exception:
            self._report(f"Error deleting binding request {namespace}/{name}")
            return False
        return True

    async def delete_record(self, name: str, namespace: str) -> bool:
        try:
            await asyncio.to_thread(
                k8s.delete_cluster_binding,
                name=name,
                namespace=namespace,
                k8s_client=self._k8s_client,
            )
        except Exception:
            self._report(f"Error deleting cluster binding {namespace}/{name}")
            return False
        return True

    async def list_api_bindings(self) -> list[APIBinding]:
        try:
            items = await asyncio.to_thread(
                k8s.list_api_bindings,
                k8s_client=self._k8s_client,
                timeout_seconds=self.timeout_seconds,
            )
        except Exception:
            self._report("Failed to load API bindings")
            return []
        return _parse_items(items, APIBinding.from_dict, self._logger)

    async def list_export_requests(
        self, namespace: str
    ) -> list[APIServiceExportRequest]:
        """List export requests in one namespace.

        Failures are logged but not reported: export requests are loaded for
        many namespaces at once and one unreadable namespace should not
        raise an alert.
        """
        try:
            items = await asyncio.to_thread(
                k8s.list_export_requests,
                k8s_client=self._k8s_client,
                namespace=namespace,
                timeout_seconds=self.timeout_seconds,
            )
        except Exception:
            self._logger.warning(
                f"Failed to load export requests in namespace {namespace}",
                exc_info=True,
            )
            return []
        return _parse_items(
            items, APIServiceExportRequest.from_dict, self._logger
        )

    async def create_export_request(
        self,
        name: str,
        namespace: str,
        resources: list[ExportResource],
        permission_claims: list[GroupResource] | None = None,
    ) -> bool:
        try:
            await asyncio.to_thread(
                k8s.create_export_request,
                name=name,
                namespace=namespace,
                resources=[r.to_dict() for r in resources],
                permission_claims=[
                    {"group": c.group, "resource": c.resource}
                    for c in permission_claims or []
                ],
                k8s_client=self._k8s_client,
            )
        except Exception:
            self._report("Failed to create export request")
            return False
        return True

    async def delete_export_request(self, name: str, namespace: str) -> bool:
        try:
            await asyncio.to_thread(
                k8s.delete_export_request,
                name=name,
                namespace=namespace,
                k8s_client=self._k8s_client,
            )
        except Exception:
            self._report("Failed to delete export request")
            return False
        return True
