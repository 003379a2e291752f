"""The session that owns binding collections and their correlation cache."""

from __future__ import annotations

__all__ = ("BindingSession", "default_export_name")

import asyncio
from typing import Any

import structlog

from bindingtracker import state
from bindingtracker.artifact import DecodedArtifact, decode_artifact
from bindingtracker.cache import CorrelationCache
from bindingtracker.health import (
    UNKNOWN,
    HealthProjection,
    is_ready,
    project_record_health,
)
from bindingtracker.matcher import match_binding_record
from bindingtracker.models import (
    APIBinding,
    APIServiceExportRequest,
    BindingRecord,
    BindingRequest,
    ExportResource,
    GroupResource,
)
from bindingtracker.notifications import Level, LogNotifier, Notifier
from bindingtracker.resolver import CorrelationResolver
from bindingtracker.source import BindingSource

DETAILS_RESPONSE_KEY = "response"
"""Secret key read when showing a request's binding response."""

EXCLUDED_API_BINDING_PREFIXES = (
    "core.platform-mesh.io",
    "kube-bind.io",
    "tenancy.kcp.io",
    "topology.kcp.io",
)
"""APIBindings of the platform itself, hidden from the service mappings."""

DEFAULT_EXPORT_VERSION = "v1alpha1"
"""Version requested for each resource of a new export request."""


class BindingSession:
    """Binding requests, ClusterBindings and namespaces loaded from a
    `BindingSource`, together with the correlation cache that links them.
    The session also holds the APIBindings and export requests shown as
    service mappings.

    The cache is created with the session and only discarded by `reset`.
    Each load replaces the corresponding collection; loading requests also
    resolves the target namespaces of newly succeeded requests.

    Parameters
    ----------
    source : `BindingSource`
        Backing store for the collections.
    notifier : `Notifier`, optional
        Sink for user notifications.
    logger : optional
        Logger; defaults to a structlog logger.
    """

    def __init__(
        self,
        source: BindingSource,
        *,
        notifier: Notifier | None = None,
        logger: Any | None = None,
    ) -> None:
        if logger is None:
            logger = structlog.getLogger(__name__)
        self._logger = logger
        self.source = source
        self._notifier = notifier or LogNotifier(logger)
        self.requests: list[BindingRequest] = []
        self.records: list[BindingRecord] = []
        self.namespaces: list[str] = []
        self.api_bindings: list[APIBinding] = []
        self.export_requests: list[APIServiceExportRequest] = []
        self.reset()

    def reset(self) -> None:
        """Discard the correlation cache, as on a full reload."""
        self.cache = CorrelationCache()
        self.resolver = CorrelationResolver(
            self.cache, self.source.fetch_artifact, logger=self._logger
        )

    async def load_namespaces(self) -> list[str]:
        self.namespaces = await self.source.list_namespaces()
        return self.namespaces

    async def load_requests(self) -> list[BindingRequest]:
        """Reload binding requests, then resolve any new target namespaces."""
        self.requests = await self.source.list_requests()
        await self.resolver.resolve(self.requests)
        return self.requests

    async def load_records(self) -> list[BindingRecord]:
        self.records = await self.source.list_records()
        return self.records

    async def load_api_bindings(self) -> list[APIBinding]:
        """Reload APIBindings, leaving out the platform's own."""
        bindings = await self.source.list_api_bindings()
        self.api_bindings = [
            b
            for b in bindings
            if not b.name.startswith(EXCLUDED_API_BINDING_PREFIXES)
        ]
        return self.api_bindings

    async def load_export_requests(self) -> list[APIServiceExportRequest]:
        """Reload export requests from every namespace that holds a
        ClusterBinding.
        """
        results = await asyncio.gather(
            *(
                self.source.list_export_requests(namespace)
                for namespace in self.record_namespaces()
            )
        )
        self.export_requests = [r for batch in results for r in batch]
        return self.export_requests

    async def _load_records_and_exports(self) -> None:
        await self.load_records()
        await self.load_export_requests()

    async def refresh(self) -> None:
        """Reload every collection concurrently.

        Export requests are loaded once the records they are scoped to are
        known.
        """
        await asyncio.gather(
            self.load_namespaces(),
            self.load_requests(),
            self._load_records_and_exports(),
            self.load_api_bindings(),
        )

    def linked_record(self, request: BindingRequest) -> BindingRecord | None:
        return match_binding_record(request, self.cache, self.records)

    def has_linked_record(self, request: BindingRequest) -> bool:
        return self.linked_record(request) is not None

    def linked_namespace(self, request: BindingRequest) -> str:
        """Namespace where the request's ClusterBinding lives (or is
        expected), falling back to the request's own namespace.
        """
        return self.cache.get(request.key) or request.namespace

    def linked_health(self, request: BindingRequest) -> HealthProjection:
        record = self.linked_record(request)
        if record is None:
            return UNKNOWN
        return project_record_health(record)

    def is_linked_record_ready(self, request: BindingRequest) -> bool:
        record = self.linked_record(request)
        return record is not None and is_ready(record.conditions)

    def records_in_namespace(self, namespace: str) -> list[BindingRecord]:
        if not namespace:
            return list(self.records)
        return [r for r in self.records if r.namespace == namespace]

    def record_namespaces(self) -> list[str]:
        """Distinct ClusterBinding namespaces, in collection order."""
        return list(dict.fromkeys(r.namespace for r in self.records))

    async def binding_response(
        self, request: BindingRequest
    ) -> DecodedArtifact | None:
        """Fetch and decode the binding response of ``request``.

        Returns `None` if the request has no binding response yet or the
        Secret could not be fetched.
        """
        ref = request.kubeconfig_secret_ref
        if ref is None:
            self._notifier.notify(
                Level.WARNING, "Binding response not yet available"
            )
            return None

        artifact = await self.source.fetch_artifact(ref.name, request.namespace)
        if artifact is None:
            return None
        return decode_artifact(artifact, ref.key or DETAILS_RESPONSE_KEY)

    async def create_request(
        self,
        name: str,
        namespace: str,
        identity: str,
        author: str | None = None,
        ttl: str | None = None,
    ) -> bool:
        """Create a binding request and reload requests on success."""
        name = name.strip()
        namespace = namespace.strip()
        identity = identity.strip()
        if not name:
            self._notifier.notify(
                Level.WARNING, "Please enter a cluster name"
            )
            return False
        if not namespace:
            self._notifier.notify(Level.WARNING, "Please select a namespace")
            return False
        if not identity:
            self._notifier.notify(
                Level.WARNING, "Please enter the cluster identity"
            )
            return False

        created = await self.source.create_request(
            name,
            namespace,
            identity,
            author=(author or "").strip() or state.default_author,
            ttl=ttl or state.default_ttl,
        )
        if not created:
            return False

        self._logger.info(f"Created binding request {namespace}/{name}")
        self._notifier.notify(
            Level.SUCCESS, f"Binding request {name} created"
        )
        await self.load_requests()
        return True

    async def delete_request(self, request: BindingRequest) -> bool:
        deleted = await self.source.delete_request(
            request.name, request.namespace
        )
        if not deleted:
            return False
        self._notifier.notify(
            Level.SUCCESS, f"Binding request {request.name} deleted"
        )
        await self.load_requests()
        return True

    async def delete_record(self, record: BindingRecord) -> bool:
        deleted = await self.source.delete_record(
            record.name, record.namespace
        )
        if not deleted:
            return False
        self._notifier.notify(
            Level.SUCCESS, f"Cluster binding {record.name} deleted"
        )
        await self.load_records()
        return True

    async def create_export_request(
        self,
        binding: APIBinding,
        namespace: str | None = None,
        name: str | None = None,
        permission_claims: list[GroupResource] | None = None,
    ) -> bool:
        """Request that the resources bound by ``binding`` be exported into
        a ClusterBinding's namespace.

        Parameters
        ----------
        binding : `APIBinding`
            The binding whose bound resources are exported.
        namespace : `str`, optional
            Target namespace. Defaults to the first ClusterBinding
            namespace.
        name : `str`, optional
            Name of the export request. Defaults to the first bound
            resource, or the binding's name if it has none.
        permission_claims : `list` of `GroupResource`, optional
            Extra resources the provider may access.
        """
        if namespace is None:
            namespaces = self.record_namespaces()
            namespace = namespaces[0] if namespaces else ""
        namespace = namespace.strip()
        if not namespace:
            self._notifier.notify(
                Level.ERROR, "Please select a target namespace"
            )
            return False

        resources = [
            ExportResource(
                group=r.group,
                resource=r.resource,
                versions=(DEFAULT_EXPORT_VERSION,),
            )
            for r in binding.bound_resources
        ]
        if not resources:
            self._notifier.notify(
                Level.ERROR, "No bound resources found in APIBinding"
            )
            return False

        name = (name or "").strip() or default_export_name(binding)
        created = await self.source.create_export_request(
            name, namespace, resources, permission_claims
        )
        if not created:
            return False

        self._logger.info(f"Created export request {namespace}/{name}")
        self._notifier.notify(
            Level.SUCCESS, "Export request created successfully"
        )
        await self.load_export_requests()
        return True

    async def delete_export_request(
        self, request: APIServiceExportRequest
    ) -> bool:
        deleted = await self.source.delete_export_request(
            request.name, request.namespace
        )
        if not deleted:
            return False
        self._notifier.notify(
            Level.SUCCESS, "Export request deleted successfully"
        )
        await self.load_export_requests()
        return True

    def upsert_request(self, request: BindingRequest) -> None:
        """Insert or replace a single request, keeping collection order."""
        self.requests = _upsert(self.requests, request)

    def remove_request(self, request: BindingRequest) -> None:
        self.requests = [r for r in self.requests if r.key != request.key]

    def upsert_record(self, record: BindingRecord) -> None:
        self.records = _upsert(self.records, record)

    def remove_record(self, record: BindingRecord) -> None:
        self.records = [r for r in self.records if r.key != record.key]


def default_export_name(binding: APIBinding) -> str:
    if binding.bound_resources and binding.bound_resources[0].resource:
        return binding.bound_resources[0].resource
    return binding.name


def _upsert(items: list[Any], item: Any) -> list[Any]:
    updated = []
    replaced = False
    for existing in items:
        if existing.key == item.key:
            updated.append(item)
            replaced = True
        else:
            updated.append(existing)
    if not replaced:
        updated.append(item)
    return updated
