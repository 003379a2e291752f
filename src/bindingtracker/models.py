"""Typed views of the kube-bind resources observed by the tracker.

kcp APIBindings and kube-bind APIServiceExportRequests, which the service
mapping views list alongside the bindings, are modelled here too.

The Kubernetes API returns loosely-structured JSON manifests. Each model here
is built from such a manifest with ``from_dict`` and states explicitly which
fields are required (only ``metadata.name``) and which may be absent.
"""

from __future__ import annotations

__all__ = (
    "DEFAULT_NAMESPACE",
    "APIBinding",
    "APIServiceExportRequest",
    "Artifact",
    "BindingRecord",
    "BindingRequest",
    "Condition",
    "ExportResource",
    "GroupResource",
    "Phase",
    "SecretKeyRef",
)

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

DEFAULT_NAMESPACE = "default"
"""Namespace assumed for resources whose metadata omits one."""


class Phase(str, Enum):
    """Lifecycle phase of a BindableResourcesRequest."""

    PENDING = "Pending"
    SUCCEEDED = "Succeeded"
    FAILED = "Failed"

    @classmethod
    def parse(cls, value: str | None) -> Phase | None:
        if not value:
            return None
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class Condition:
    """A status condition. ``status`` is ``"True"``, ``"False"`` or
    ``"Unknown"``.
    """

    type: str
    status: str
    reason: str | None = None
    message: str | None = None
    last_transition_time: str | None = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Condition:
        return cls(
            type=data.get("type") or "",
            status=data.get("status") or "Unknown",
            reason=data.get("reason"),
            message=data.get("message"),
            last_transition_time=data.get("lastTransitionTime"),
        )


def _parse_conditions(status: dict[str, Any]) -> tuple[Condition, ...]:
    return tuple(
        Condition.from_dict(c) for c in (status.get("conditions") or [])
    )


@dataclass(frozen=True)
class SecretKeyRef:
    """Reference to a key within a Secret in the owner's namespace."""

    name: str
    key: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> SecretKeyRef | None:
        if not data or not data.get("name"):
            return None
        return cls(name=data["name"], key=data.get("key") or "")


@dataclass(frozen=True)
class BindingRequest:
    """A BindableResourcesRequest: a user's request to onboard an external
    cluster.
    """

    name: str
    namespace: str = DEFAULT_NAMESPACE
    creation_timestamp: str | None = None
    cluster_identity: str = ""
    author: str | None = None
    template_ref: str | None = None
    ttl_after_finished: str | None = None
    phase: Phase | None = None
    kubeconfig_secret_ref: SecretKeyRef | None = None
    completion_time: str | None = None
    conditions: tuple[Condition, ...] = ()

    @property
    def key(self) -> str:
        """Composite ``namespace/name`` identity."""
        return f"{self.namespace}/{self.name}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BindingRequest:
        """Build a request from a raw BindableResourcesRequest manifest."""
        metadata = data.get("metadata") or {}
        spec = data.get("spec") or {}
        status = data.get("status") or {}
        return cls(
            name=metadata["name"],
            namespace=metadata.get("namespace") or DEFAULT_NAMESPACE,
            creation_timestamp=metadata.get("creationTimestamp"),
            cluster_identity=(spec.get("clusterIdentity") or {}).get(
                "identity"
            )
            or "",
            author=spec.get("author"),
            template_ref=(spec.get("templateRef") or {}).get("name"),
            ttl_after_finished=spec.get("ttlAfterFinished"),
            phase=Phase.parse(status.get("phase")),
            kubeconfig_secret_ref=SecretKeyRef.from_dict(
                status.get("kubeconfigSecretRef")
            ),
            completion_time=status.get("completionTime"),
            conditions=_parse_conditions(status),
        )


@dataclass(frozen=True)
class BindingRecord:
    """A ClusterBinding: the active binding created by the kube-bind backend
    once a request succeeds.
    """

    name: str
    namespace: str = DEFAULT_NAMESPACE
    creation_timestamp: str | None = None
    labels: dict[str, str] = field(default_factory=dict)
    provider_pretty_name: str | None = None
    kubeconfig_secret_ref: SecretKeyRef | None = None
    last_heartbeat_time: str | None = None
    heartbeat_interval: str | None = None
    konnector_version: str | None = None
    consumer_secret_name: str | None = None
    consumer_secret_namespace: str | None = None
    conditions: tuple[Condition, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> BindingRecord:
        """Build a record from a raw ClusterBinding manifest."""
        metadata = data.get("metadata") or {}
        spec = data.get("spec") or {}
        status = data.get("status") or {}
        consumer_secret = status.get("consumerSecretRef") or {}
        return cls(
            name=metadata["name"],
            namespace=metadata.get("namespace") or DEFAULT_NAMESPACE,
            creation_timestamp=metadata.get("creationTimestamp"),
            labels=dict(metadata.get("labels") or {}),
            provider_pretty_name=spec.get("providerPrettyName"),
            kubeconfig_secret_ref=SecretKeyRef.from_dict(
                spec.get("kubeconfigSecretRef")
            ),
            last_heartbeat_time=status.get("lastHeartbeatTime"),
            heartbeat_interval=status.get("heartbeatInterval"),
            konnector_version=status.get("konnectorVersion"),
            consumer_secret_name=consumer_secret.get("name"),
            consumer_secret_namespace=consumer_secret.get("namespace"),
            conditions=_parse_conditions(status),
        )


@dataclass(frozen=True)
class Artifact:
    """A credential Secret. Values in ``data`` are base64-encoded."""

    name: str
    namespace: str | None = None
    data: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Artifact:
        metadata = data.get("metadata") or {}
        return cls(
            name=metadata.get("name") or "",
            namespace=metadata.get("namespace"),
            data=dict(data.get("data") or {}),
        )


@dataclass(frozen=True)
class GroupResource:
    """An API group and resource, such as a bound resource or a permission
    claim.
    """

    group: str = ""
    resource: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> GroupResource:
        return cls(
            group=data.get("group") or "", resource=data.get("resource") or ""
        )

    def __str__(self) -> str:
        if not self.group:
            return self.resource
        return f"{self.resource}.{self.group}"


@dataclass(frozen=True)
class ExportResource:
    """A resource exported through an APIServiceExportRequest."""

    group: str
    resource: str
    versions: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExportResource:
        return cls(
            group=data.get("group") or "",
            resource=data.get("resource") or "",
            versions=tuple(data.get("versions") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "group": self.group,
            "resource": self.resource,
            "versions": list(self.versions),
        }


@dataclass(frozen=True)
class APIBinding:
    """A kcp APIBinding. APIBindings are cluster-scoped within a
    workspace, so the name alone identifies one.
    """

    name: str
    creation_timestamp: str | None = None
    labels: dict[str, str] = field(default_factory=dict)
    annotations: dict[str, str] = field(default_factory=dict)
    export_path: str | None = None
    export_name: str | None = None
    phase: str | None = None
    bound_resources: tuple[GroupResource, ...] = ()
    conditions: tuple[Condition, ...] = ()

    @property
    def key(self) -> str:
        return self.name

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> APIBinding:
        """Build a binding from a raw APIBinding manifest."""
        metadata = data.get("metadata") or {}
        spec = data.get("spec") or {}
        status = data.get("status") or {}
        export = (spec.get("reference") or {}).get("export") or {}
        return cls(
            name=metadata["name"],
            creation_timestamp=metadata.get("creationTimestamp"),
            labels=dict(metadata.get("labels") or {}),
            annotations=dict(metadata.get("annotations") or {}),
            export_path=export.get("path"),
            export_name=export.get("name"),
            phase=status.get("phase"),
            bound_resources=tuple(
                GroupResource.from_dict(r)
                for r in (status.get("boundResources") or [])
            ),
            conditions=_parse_conditions(status),
        )


@dataclass(frozen=True)
class APIServiceExportRequest:
    """A kube-bind APIServiceExportRequest asking the provider to export
    resources into a ClusterBinding's namespace.
    """

    name: str
    namespace: str = DEFAULT_NAMESPACE
    creation_timestamp: str | None = None
    labels: dict[str, str] = field(default_factory=dict)
    permission_claims: tuple[GroupResource, ...] = ()
    resources: tuple[ExportResource, ...] = ()
    phase: str | None = None
    conditions: tuple[Condition, ...] = ()

    @property
    def key(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> APIServiceExportRequest:
        metadata = data.get("metadata") or {}
        spec = data.get("spec") or {}
        status = data.get("status") or {}
        return cls(
            name=metadata["name"],
            namespace=metadata.get("namespace") or DEFAULT_NAMESPACE,
            creation_timestamp=metadata.get("creationTimestamp"),
            labels=dict(metadata.get("labels") or {}),
            permission_claims=tuple(
                GroupResource.from_dict(c)
                for c in (spec.get("permissionClaims") or [])
            ),
            resources=tuple(
                ExportResource.from_dict(r)
                for r in (spec.get("resources") or [])
            ),
            phase=status.get("phase"),
            conditions=_parse_conditions(status),
        )
