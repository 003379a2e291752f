"""Shared fixtures for the bindingtracker tests."""

from __future__ import annotations

import json
from collections.abc import Callable

import pytest

from bindingtracker.models import Artifact

from .support import (
    KUBECONFIG_TEMPLATE,
    FakeSource,
    RecordingNotifier,
    b64,
)


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def response_artifact() -> Callable[..., Artifact]:
    """Factory for binding-response Secrets naming a target namespace."""

    def factory(
        target_namespace: str,
        *,
        name: str = "binding-response",
        key: str = "binding-response",
    ) -> Artifact:
        kubeconfig = KUBECONFIG_TEMPLATE.format(namespace=target_namespace)
        response = json.dumps(
            {
                "apiVersion": "kube-bind.io/v1alpha2",
                "kind": "BindingResponse",
                "kubeconfig": b64(kubeconfig),
            }
        )
        return Artifact(name=name, data={key: b64(response)})

    return factory

