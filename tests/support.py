"""Test doubles and builders shared by the bindingtracker tests."""

from __future__ import annotations

import asyncio
import base64
from typing import Any

from bindingtracker.models import (
    APIBinding,
    APIServiceExportRequest,
    Artifact,
    BindingRecord,
    BindingRequest,
    ExportResource,
    GroupResource,
    Phase,
    SecretKeyRef,
)
from bindingtracker.notifications import Level


def b64(text: str) -> str:
    return base64.b64encode(text.encode("utf-8")).decode("utf-8")


KUBECONFIG_TEMPLATE = """apiVersion: v1
kind: Config
clusters:
- cluster:
    server: https://provider.example.com
  name: provider
contexts:
- context:
    cluster: provider
    namespace: {namespace}
    user: provider
  name: provider
current-context: provider
"""


class FakeSource:
    """In-memory `BindingSource` that records calls."""

    def __init__(self) -> None:
        self.requests: list[BindingRequest] = []
        self.records: list[BindingRecord] = []
        self.namespaces: list[str] = []
        self.artifacts: dict[tuple[str, str], Artifact] = {}
        self.failing_artifacts: set[tuple[str, str]] = set()
        self.gate: asyncio.Event | None = None
        self.fetch_calls: list[tuple[str, str]] = []
        self.created: list[dict[str, Any]] = []
        self.deleted_requests: list[tuple[str, str]] = []
        self.deleted_records: list[tuple[str, str]] = []
        self.api_bindings: list[APIBinding] = []
        self.export_requests: list[APIServiceExportRequest] = []
        self.created_exports: list[dict[str, Any]] = []
        self.deleted_exports: list[tuple[str, str]] = []
        self.list_calls: list[str] = []
        self.succeed = True

    async def list_requests(self) -> list[BindingRequest]:
        self.list_calls.append("requests")
        return list(self.requests)

    async def list_records(self) -> list[BindingRecord]:
        self.list_calls.append("records")
        return list(self.records)

    async def list_namespaces(self) -> list[str]:
        return list(self.namespaces)

    async def fetch_artifact(
        self, name: str, namespace: str
    ) -> Artifact | None:
        self.fetch_calls.append((name, namespace))
        if self.gate is not None:
            await self.gate.wait()
        else:
            await asyncio.sleep(0)
        if (name, namespace) in self.failing_artifacts:
            raise ConnectionError("transport failure")
        return self.artifacts.get((name, namespace))

    async def create_request(
        self,
        name: str,
        namespace: str,
        identity: str,
        author: str | None = None,
        ttl: str | None = None,
    ) -> bool:
        if not self.succeed:
            return False
        self.created.append(
            {
                "name": name,
                "namespace": namespace,
                "identity": identity,
                "author": author,
                "ttl": ttl,
            }
        )
        self.requests.append(
            BindingRequest(
                name=name,
                namespace=namespace,
                cluster_identity=identity,
                author=author,
                ttl_after_finished=ttl,
                phase=Phase.PENDING,
            )
        )
        return True

    async def delete_request(self, name: str, namespace: str) -> bool:
        if not self.succeed:
            return False
        self.deleted_requests.append((name, namespace))
        self.requests = [
            r
            for r in self.requests
            if (r.name, r.namespace) != (name, namespace)
        ]
        return True

    async def delete_record(self, name: str, namespace: str) -> bool:
        if not self.succeed:
            return False
        self.deleted_records.append((name, namespace))
        self.records = [
            r
            for r in self.records
            if (r.name, r.namespace) != (name, namespace)
        ]
        return True

    async def list_api_bindings(self) -> list[APIBinding]:
        return list(self.api_bindings)

    async def list_export_requests(
        self, namespace: str
    ) -> list[APIServiceExportRequest]:
        self.list_calls.append(f"exports:{namespace}")
        return [r for r in self.export_requests if r.namespace == namespace]

    async def create_export_request(
        self,
        name: str,
        namespace: str,
        resources: list[ExportResource],
        permission_claims: list[GroupResource] | None = None,
    ) -> bool:
        if not self.succeed:
            return False
        self.created_exports.append(
            {
                "name": name,
                "namespace": namespace,
                "resources": list(resources),
                "permission_claims": permission_claims,
            }
        )
        self.export_requests.append(
            APIServiceExportRequest(
                name=name, namespace=namespace, resources=tuple(resources)
            )
        )
        return True

    async def delete_export_request(self, name: str, namespace: str) -> bool:
        if not self.succeed:
            return False
        self.deleted_exports.append((name, namespace))
        self.export_requests = [
            r
            for r in self.export_requests
            if (r.name, r.namespace) != (name, namespace)
        ]
        return True


class RecordingNotifier:
    def __init__(self) -> None:
        self.messages: list[tuple[Level, str]] = []

    def notify(self, level: Level, text: str) -> None:
        self.messages.append((level, text))


def succeeded_request(
    name: str,
    namespace: str = "ns1",
    *,
    secret: str | None = "binding-response",
    key: str = "",
) -> BindingRequest:
    """Build a Succeeded request referencing a binding-response Secret."""
    ref = SecretKeyRef(name=secret, key=key) if secret else None
    return BindingRequest(
        name=name,
        namespace=namespace,
        phase=Phase.SUCCEEDED,
        kubeconfig_secret_ref=ref,
    )
