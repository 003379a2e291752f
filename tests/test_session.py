"""Tests for the bindingtracker.session module."""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from bindingtracker.models import (
    APIBinding,
    APIServiceExportRequest,
    Artifact,
    BindingRecord,
    BindingRequest,
    Condition,
    ExportResource,
    GroupResource,
    Phase,
)
from bindingtracker.notifications import Level
from bindingtracker.session import BindingSession, default_export_name

from .support import FakeSource, RecordingNotifier, succeeded_request


def _session(
    source: FakeSource, notifier: RecordingNotifier
) -> BindingSession:
    return BindingSession(source, notifier=notifier)


def test_refresh_links_requests_to_records(
    source: FakeSource,
    notifier: RecordingNotifier,
    response_artifact: Callable[..., Artifact],
) -> None:
    source.namespaces = ["ns1", "kube-bind-abc"]
    source.requests = [
        succeeded_request("edge"),
        BindingRequest(name="waiting", namespace="ns2", phase=Phase.PENDING),
    ]
    ready = BindingRecord(
        name="cluster",
        namespace="kube-bind-abc",
        conditions=(Condition("Ready", "True"),),
    )
    source.records = [BindingRecord(name="cluster", namespace="ns1"), ready]
    source.artifacts[("binding-response", "ns1")] = response_artifact(
        "kube-bind-abc"
    )
    session = _session(source, notifier)

    asyncio.run(session.refresh())

    edge, waiting = session.requests
    assert session.namespaces == ["ns1", "kube-bind-abc"]
    assert session.linked_record(edge) == ready
    assert session.linked_namespace(edge) == "kube-bind-abc"
    assert session.linked_health(edge).label == "Ready"
    assert session.is_linked_record_ready(edge)

    assert not session.has_linked_record(waiting)
    assert session.linked_namespace(waiting) == "ns2"
    assert session.linked_health(waiting).label == "Unknown"
    assert not session.is_linked_record_ready(waiting)


def test_unresolved_request_uses_own_namespace(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    source.requests = [succeeded_request("edge")]
    source.records = [
        BindingRecord(
            name="cluster",
            namespace="ns1",
            last_heartbeat_time="2025-01-10T12:05:00Z",
        )
    ]
    session = _session(source, notifier)

    async def run() -> None:
        await session.load_requests()
        await session.load_records()

    asyncio.run(run())

    request = session.requests[0]
    assert session.linked_record(request).name == "cluster"
    assert session.linked_health(request).label == "Connected"
    assert not session.is_linked_record_ready(request)


def test_reloading_requests_does_not_refetch(
    source: FakeSource,
    notifier: RecordingNotifier,
    response_artifact: Callable[..., Artifact],
) -> None:
    source.requests = [succeeded_request("edge")]
    source.artifacts[("binding-response", "ns1")] = response_artifact("t")
    session = _session(source, notifier)

    async def run() -> None:
        await session.load_requests()
        await session.load_requests()

    asyncio.run(run())

    assert len(source.fetch_calls) == 1
    assert session.cache.get("ns1/edge") == "t"


def test_reset_discards_cache(
    source: FakeSource,
    notifier: RecordingNotifier,
    response_artifact: Callable[..., Artifact],
) -> None:
    source.requests = [succeeded_request("edge")]
    source.artifacts[("binding-response", "ns1")] = response_artifact("t")
    session = _session(source, notifier)

    asyncio.run(session.load_requests())
    session.reset()

    assert len(session.cache) == 0
    asyncio.run(session.load_requests())
    assert len(source.fetch_calls) == 2


def test_create_request_applies_defaults(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    session = _session(source, notifier)

    created = asyncio.run(
        session.create_request(" edge ", "ns1", "6f1c2a4e", author="  ")
    )

    assert created
    assert source.created == [
        {
            "name": "edge",
            "namespace": "ns1",
            "identity": "6f1c2a4e",
            "author": "portal-ui",
            "ttl": "1h",
        }
    ]
    assert [r.name for r in session.requests] == ["edge"]
    assert notifier.messages == [
        (Level.SUCCESS, "Binding request edge created")
    ]


def test_create_request_validates_input(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    session = _session(source, notifier)

    async def run() -> list[bool]:
        return [
            await session.create_request("", "ns1", "id"),
            await session.create_request("edge", " ", "id"),
            await session.create_request("edge", "ns1", ""),
        ]

    assert asyncio.run(run()) == [False, False, False]
    assert source.created == []
    assert [level for level, _ in notifier.messages] == [Level.WARNING] * 3


def test_create_request_failure(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    source.succeed = False
    session = _session(source, notifier)

    assert not asyncio.run(session.create_request("edge", "ns1", "id"))
    assert notifier.messages == []


def test_delete_request_and_record(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    source.requests = [BindingRequest(name="edge", namespace="ns1")]
    source.records = [BindingRecord(name="cluster", namespace="kb")]
    session = _session(source, notifier)

    async def run() -> tuple[bool, bool]:
        await session.refresh()
        return (
            await session.delete_request(session.requests[0]),
            await session.delete_record(session.records[0]),
        )

    assert asyncio.run(run()) == (True, True)
    assert source.deleted_requests == [("edge", "ns1")]
    assert source.deleted_records == [("cluster", "kb")]
    assert session.requests == []
    assert session.records == []


def test_binding_response(
    source: FakeSource,
    notifier: RecordingNotifier,
    response_artifact: Callable[..., Artifact],
) -> None:
    source.artifacts[("binding-response", "ns1")] = response_artifact(
        "kube-bind-abc", key="response"
    )
    session = _session(source, notifier)

    result = asyncio.run(session.binding_response(succeeded_request("edge")))

    assert result is not None
    assert result.key == "response"
    assert result.namespace == "kube-bind-abc"


def test_binding_response_not_available(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    session = _session(source, notifier)
    request = BindingRequest(name="edge", namespace="ns1", phase=Phase.PENDING)

    assert asyncio.run(session.binding_response(request)) is None
    assert notifier.messages == [
        (Level.WARNING, "Binding response not yet available")
    ]
    assert source.fetch_calls == []


def test_records_in_namespace(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    source.records = [
        BindingRecord(name="a", namespace="x"),
        BindingRecord(name="b", namespace="y"),
    ]
    session = _session(source, notifier)
    asyncio.run(session.load_records())

    assert [r.name for r in session.records_in_namespace("y")] == ["b"]
    assert len(session.records_in_namespace("")) == 2


def test_upsert_and_remove(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    session = _session(source, notifier)
    first = BindingRequest(name="a", namespace="ns1")
    second = BindingRequest(name="b", namespace="ns1")
    session.upsert_request(first)
    session.upsert_request(second)
    updated = BindingRequest(name="a", namespace="ns1", phase=Phase.FAILED)
    session.upsert_request(updated)

    assert session.requests == [updated, second]

    session.remove_request(first)
    assert session.requests == [second]

    record = BindingRecord(name="cluster", namespace="kb")
    session.upsert_record(record)
    session.upsert_record(record)
    assert session.records == [record]
    session.remove_record(record)
    assert session.records == []


COWBOYS = APIBinding(
    name="cowboys.wildwest.dev",
    bound_resources=(
        GroupResource("wildwest.dev", "cowboys"),
        GroupResource("wildwest.dev", "sheriffs"),
    ),
)


def test_platform_api_bindings_are_hidden(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    source.api_bindings = [
        APIBinding(name="tenancy.kcp.io-abc"),
        APIBinding(name="kube-bind.io-xyz"),
        APIBinding(name="core.platform-mesh.io"),
        APIBinding(name="topology.kcp.io-1"),
        COWBOYS,
    ]
    session = _session(source, notifier)

    assert asyncio.run(session.load_api_bindings()) == [COWBOYS]


def test_export_requests_load_from_record_namespaces(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    source.records = [
        BindingRecord(name="a", namespace="kb-1"),
        BindingRecord(name="b", namespace="kb-2"),
        BindingRecord(name="c", namespace="kb-1"),
    ]
    source.export_requests = [
        APIServiceExportRequest(name="x", namespace="kb-1"),
        APIServiceExportRequest(name="y", namespace="kb-2"),
        APIServiceExportRequest(name="z", namespace="elsewhere"),
    ]
    session = _session(source, notifier)

    asyncio.run(session.refresh())

    assert session.record_namespaces() == ["kb-1", "kb-2"]
    assert [r.key for r in session.export_requests] == ["kb-1/x", "kb-2/y"]
    assert source.list_calls.count("exports:kb-1") == 1


def test_create_export_request_defaults(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    source.records = [BindingRecord(name="a", namespace="kb-1")]
    session = _session(source, notifier)

    async def run() -> bool:
        await session.load_records()
        return await session.create_export_request(COWBOYS)

    assert asyncio.run(run())
    created = source.created_exports[0]
    assert created["name"] == "cowboys"
    assert created["namespace"] == "kb-1"
    assert created["resources"] == [
        ExportResource("wildwest.dev", "cowboys", ("v1alpha1",)),
        ExportResource("wildwest.dev", "sheriffs", ("v1alpha1",)),
    ]
    assert notifier.messages == [
        (Level.SUCCESS, "Export request created successfully")
    ]
    assert [r.key for r in session.export_requests] == ["kb-1/cowboys"]


def test_create_export_request_validates_input(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    session = _session(source, notifier)

    async def run() -> list[bool]:
        return [
            await session.create_export_request(COWBOYS),
            await session.create_export_request(COWBOYS, namespace="  "),
            await session.create_export_request(
                APIBinding(name="empty"), namespace="kb-1"
            ),
        ]

    assert asyncio.run(run()) == [False, False, False]
    assert notifier.messages == [
        (Level.ERROR, "Please select a target namespace"),
        (Level.ERROR, "Please select a target namespace"),
        (Level.ERROR, "No bound resources found in APIBinding"),
    ]
    assert source.created_exports == []


def test_create_export_request_failure(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    source.succeed = False
    session = _session(source, notifier)

    assert not asyncio.run(
        session.create_export_request(
            COWBOYS, namespace="kb-1", name="custom"
        )
    )
    assert notifier.messages == []


def test_delete_export_request(
    source: FakeSource, notifier: RecordingNotifier
) -> None:
    source.records = [BindingRecord(name="a", namespace="kb-1")]
    source.export_requests = [
        APIServiceExportRequest(name="x", namespace="kb-1")
    ]
    session = _session(source, notifier)

    async def run() -> bool:
        await session.refresh()
        return await session.delete_export_request(session.export_requests[0])

    assert asyncio.run(run())
    assert source.deleted_exports == [("x", "kb-1")]
    assert session.export_requests == []
    assert notifier.messages == [
        (Level.SUCCESS, "Export request deleted successfully")
    ]


def test_default_export_name() -> None:
    assert default_export_name(COWBOYS) == "cowboys"
    assert default_export_name(APIBinding(name="plain")) == "plain"
