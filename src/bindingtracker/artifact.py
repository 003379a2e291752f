"""Decode binding-response Secrets to recover the ClusterBinding namespace.

A succeeded BindableResourcesRequest references a Secret whose value (under
``binding-response`` or ``response`` by convention) is a base64-encoded JSON
document. That document's ``kubeconfig`` field is itself base64-encoded, and
the kubeconfig's context names the namespace where the kube-bind backend
creates the ClusterBinding.

Decoding is best-effort: only a Secret with no data at all is a hard
failure. Everything else degrades to a result that carries the best
available text and no namespace.
"""

from __future__ import annotations

__all__ = (
    "DecodeError",
    "DecodedArtifact",
    "decode_artifact",
    "decode_base64_text",
    "extract_namespace",
)

import base64
import binascii
import json
import re
from dataclasses import dataclass
from enum import Enum

from bindingtracker.models import Artifact

_NAMESPACE_PATTERN = re.compile(r"namespace:\s*(\S+)")

_WHITESPACE = re.compile(r"\s+")


class DecodeError(str, Enum):
    """Reasons a decode did not produce a namespace-bearing document."""

    NO_DATA = "NoData"
    KEY_NOT_FOUND = "KeyNotFound"
    NO_EMBEDDED_DOCUMENT = "NoEmbeddedDocument"


@dataclass(frozen=True)
class DecodedArtifact:
    """Layered result of decoding an Artifact.

    ``content`` is always present (empty only for ``NO_DATA`` and
    ``KEY_NOT_FOUND``); ``namespace`` is set only when the embedded
    kubeconfig named one.
    """

    content: str
    namespace: str | None = None
    key: str | None = None
    error: DecodeError | None = None

    @property
    def resolved(self) -> bool:
        return self.namespace is not None

    @property
    def decoded_but_unresolved(self) -> bool:
        return self.namespace is None and self.error not in (
            DecodeError.NO_DATA,
            DecodeError.KEY_NOT_FOUND,
        )


def decode_base64_text(value: str) -> str:
    """Decode a base64 value to text, returning ``value`` unchanged if it is
    not valid base64 or does not decode to UTF-8.
    """
    compact = _WHITESPACE.sub("", value)
    remainder = len(compact) % 4
    if remainder == 1:
        return value
    if remainder:
        compact += "=" * (4 - remainder)
    try:
        return base64.b64decode(compact, validate=True).decode("utf-8")
    except (binascii.Error, ValueError):
        return value


def extract_namespace(text: str) -> str | None:
    """Return the first token following ``namespace:`` in ``text``.

    This is a textual scrape of the kubeconfig, not a structural parse; it
    returns whatever non-whitespace run follows the first ``namespace:``.
    """
    match = _NAMESPACE_PATTERN.search(text)
    if match is None:
        return None
    return match.group(1)


def decode_artifact(artifact: Artifact, requested_key: str) -> DecodedArtifact:
    """Decode ``artifact`` and recover the embedded namespace.

    Parameters
    ----------
    artifact : `Artifact`
        The credential Secret.
    requested_key : `str`
        Key to read. If absent or empty, the first key of the Secret's data
        (in insertion order) is used instead.

    Returns
    -------
    result : `DecodedArtifact`
        Never raises for malformed content. ``KEY_NOT_FOUND`` means the
        selected key holds no value at all.
    """
    if not artifact.data:
        return DecodedArtifact(content="", error=DecodeError.NO_DATA)

    if artifact.data.get(requested_key):
        key = requested_key
    else:
        key = next(iter(artifact.data))
    value = artifact.data[key]
    if not value:
        return DecodedArtifact(
            content="", key=key, error=DecodeError.KEY_NOT_FOUND
        )

    content = decode_base64_text(value)

    try:
        document = json.loads(content)
    except (ValueError, RecursionError):
        # Deeply nested arrays exhaust the parser's recursion limit.
        document = None
    embedded = (
        document.get("kubeconfig") if isinstance(document, dict) else None
    )
    if not isinstance(embedded, str) or not embedded:
        return DecodedArtifact(
            content=content,
            key=key,
            error=DecodeError.NO_EMBEDDED_DOCUMENT,
        )

    kubeconfig = decode_base64_text(embedded)
    return DecodedArtifact(
        content=content, namespace=extract_namespace(kubeconfig), key=key
    )
