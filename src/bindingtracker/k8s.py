"""Helpers for interacting with Kubernetes APIs."""

__all__ = (
    "API_BINDING_PLURAL",
    "BINDING_REQUEST_PLURAL",
    "CLUSTER_BINDING_PLURAL",
    "EXPORT_REQUEST_PLURAL",
    "KCP_APIS_GROUP",
    "KCP_APIS_VERSION",
    "KUBE_BIND_GROUP",
    "KUBE_BIND_VERSION",
    "create_binding_request",
    "create_export_request",
    "create_k8sclient",
    "delete_binding_request",
    "delete_cluster_binding",
    "delete_export_request",
    "get_secret",
    "list_api_bindings",
    "list_binding_requests",
    "list_cluster_bindings",
    "list_export_requests",
    "list_namespaces",
)

import json
from typing import Any

import kubernetes

KUBE_BIND_GROUP = "kube-bind.io"
KUBE_BIND_VERSION = "v1alpha2"
BINDING_REQUEST_PLURAL = "bindableresourcesrequests"
CLUSTER_BINDING_PLURAL = "clusterbindings"
EXPORT_REQUEST_PLURAL = "apiserviceexportrequests"

KCP_APIS_GROUP = "apis.kcp.io"
KCP_APIS_VERSION = "v1alpha1"
API_BINDING_PLURAL = "apibindings"


def create_k8sclient() -> kubernetes.client:
    """Get a Kubernetes client configured with available cluster
    authentication.

    If in-cluster authentication is available, that is used. Otherwise
    this function falls-back to using a kubectl config file, which is
    appropriate for development.
    """
    try:
        kubernetes.config.load_incluster_config()
    except Exception:
        kubernetes.config.load_kube_config()
    kubernetes.client.configuration.assert_hostname = False
    return kubernetes.client


def get_secret(
    *,
    namespace: str,
    name: str,
    k8s_client: Any,
    raw: bool = True,
) -> dict[str, Any] | Any:
    """Get a Secret resource.

    Parameters
    ----------
    namespace : `str`
        The Kubernetes namespace of the binding request that references the
        Secret.
    name : `str`
        The name of the Secret.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).
    raw : `bool`
        If `True`, the raw Kubernetes manifest is returned as a `dict`.
        Otherwise the Python object representation of the resource is returned.

    Returns
    -------
    secret
        The Kubernetes Secret resource either as a `dict` or an object.
    """
    preload_content = not raw

    api = k8s_client.CoreV1Api()
    result = api.read_namespaced_secret(
        name=name, namespace=namespace, _preload_content=preload_content
    )
    if raw:
        return json.loads(result.data)
    else:
        return result


def _list_kube_bind_objects(
    *,
    plural: str,
    k8s_client: Any,
    namespace: str = "",
    timeout_seconds: int = 60,
) -> list[dict[str, Any]]:
    api = k8s_client.CustomObjectsApi()
    if namespace:
        response = api.list_namespaced_custom_object(
            KUBE_BIND_GROUP,
            KUBE_BIND_VERSION,
            namespace,
            plural,
            timeout_seconds=timeout_seconds,
        )
    else:
        response = api.list_cluster_custom_object(
            KUBE_BIND_GROUP,
            KUBE_BIND_VERSION,
            plural,
            timeout_seconds=timeout_seconds,
        )
    return list(response.get("items") or [])


def list_binding_requests(
    *,
    k8s_client: Any,
    namespace: str = "",
    timeout_seconds: int = 60,
) -> list[dict[str, Any]]:
    """List BindableResourcesRequest resources.

    Parameters
    ----------
    k8s_client
        A Kubernetes client (see `create_k8sclient`).
    namespace : `str`
        Namespace to list from. If empty, requests in all namespaces are
        listed.
    timeout_seconds : `int`
        Server-side timeout for the list call.

    Returns
    -------
    items : `list` of `dict`
        The raw BindableResourcesRequest manifests.
    """
    return _list_kube_bind_objects(
        plural=BINDING_REQUEST_PLURAL,
        k8s_client=k8s_client,
        namespace=namespace,
        timeout_seconds=timeout_seconds,
    )


def list_cluster_bindings(
    *,
    k8s_client: Any,
    namespace: str = "",
    timeout_seconds: int = 60,
) -> list[dict[str, Any]]:
    """List ClusterBinding resources (see `list_binding_requests`)."""
    return _list_kube_bind_objects(
        plural=CLUSTER_BINDING_PLURAL,
        k8s_client=k8s_client,
        namespace=namespace,
        timeout_seconds=timeout_seconds,
    )


def list_namespaces(
    *,
    k8s_client: Any,
    timeout_seconds: int = 60,
) -> list[str]:
    """List the names of the Namespaces visible to the client."""
    api = k8s_client.CoreV1Api()
    result = api.list_namespace(
        timeout_seconds=timeout_seconds, _preload_content=False
    )
    items = json.loads(result.data).get("items") or []
    return [item["metadata"]["name"] for item in items]


def create_binding_request(
    *,
    name: str,
    namespace: str,
    cluster_identity: str,
    author: str,
    ttl_after_finished: str,
    k8s_client: Any,
) -> dict[str, Any]:
    """Create a BindableResourcesRequest for onboarding an external cluster.

    Parameters
    ----------
    name : `str`
        Name of the request (the cluster binding's name).
    namespace : `str`
        Namespace to create the request in.
    cluster_identity : `str`
        Identity of the external cluster, as reported by
        ``kubectl bind cluster-identity``.
    author : `str`
        Author recorded on the request.
    ttl_after_finished : `str`
        Duration after which the finished request is garbage collected.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).

    Returns
    -------
    request : `dict`
        The created resource.
    """
    body = {
        "apiVersion": f"{KUBE_BIND_GROUP}/{KUBE_BIND_VERSION}",
        "kind": "BindableResourcesRequest",
        "metadata": {"name": name, "namespace": namespace},
        "spec": {
            "author": author,
            "clusterIdentity": {"identity": cluster_identity},
            "ttlAfterFinished": ttl_after_finished,
        },
    }
    api = k8s_client.CustomObjectsApi()
    return api.create_namespaced_custom_object(
        KUBE_BIND_GROUP,
        KUBE_BIND_VERSION,
        namespace,
        BINDING_REQUEST_PLURAL,
        body,
    )


def delete_binding_request(
    *,
    name: str,
    namespace: str,
    k8s_client: Any,
) -> None:
    """Delete a BindableResourcesRequest."""
    api = k8s_client.CustomObjectsApi()
    api.delete_namespaced_custom_object(
        KUBE_BIND_GROUP,
        KUBE_BIND_VERSION,
        namespace,
        BINDING_REQUEST_PLURAL,
        name,
    )


def delete_cluster_binding(
    *,
    name: str,
    namespace: str,
    k8s_client: Any,
) -> None:
    """Delete a ClusterBinding."""
    api = k8s_client.CustomObjectsApi()
    api.delete_namespaced_custom_object(
        KUBE_BIND_GROUP,
        KUBE_BIND_VERSION,
        namespace,
        CLUSTER_BINDING_PLURAL,
        name,
    )


def list_api_bindings(
    *,
    k8s_client: Any,
    timeout_seconds: int = 60,
) -> list[dict[str, Any]]:
    """List the kcp APIBindings of the current workspace.

    APIBindings are cluster-scoped, so no namespace applies.
    """
    api = k8s_client.CustomObjectsApi()
    response = api.list_cluster_custom_object(
        KCP_APIS_GROUP,
        KCP_APIS_VERSION,
        API_BINDING_PLURAL,
        timeout_seconds=timeout_seconds,
    )
    return list(response.get("items") or [])


def list_export_requests(
    *,
    k8s_client: Any,
    namespace: str,
    timeout_seconds: int = 60,
) -> list[dict[str, Any]]:
    """List APIServiceExportRequests in a ClusterBinding's namespace
    (see `list_binding_requests`).
    """
    return _list_kube_bind_objects(
        plural=EXPORT_REQUEST_PLURAL,
        k8s_client=k8s_client,
        namespace=namespace,
        timeout_seconds=timeout_seconds,
    )


def create_export_request(
    *,
    name: str,
    namespace: str,
    resources: list[dict[str, Any]],
    permission_claims: list[dict[str, str]] | None = None,
    k8s_client: Any,
) -> dict[str, Any]:
    """Create an APIServiceExportRequest.

    Parameters
    ----------
    name : `str`
        Name of the export request.
    namespace : `str`
        Namespace of the ClusterBinding the resources are exported to.
    resources : `list` of `dict`
        Resources to export, each with ``group``, ``resource`` and
        ``versions`` keys.
    permission_claims : `list` of `dict`, optional
        Additional ``group``/``resource`` pairs the provider may access.
    k8s_client
        A Kubernetes client (see `create_k8sclient`).

    Returns
    -------
    request : `dict`
        The created resource.
    """
    spec: dict[str, Any] = {"resources": resources}
    if permission_claims:
        spec["permissionClaims"] = permission_claims
    body = {
        "apiVersion": f"{KUBE_BIND_GROUP}/{KUBE_BIND_VERSION}",
        "kind": "APIServiceExportRequest",
        "metadata": {"name": name, "namespace": namespace},
        "spec": spec,
    }
    api = k8s_client.CustomObjectsApi()
    return api.create_namespaced_custom_object(
        KUBE_BIND_GROUP,
        KUBE_BIND_VERSION,
        namespace,
        EXPORT_REQUEST_PLURAL,
        body,
    )


def delete_export_request(
    *,
    name: str,
    namespace: str,
    k8s_client: Any,
) -> None:
    """Delete an APIServiceExportRequest."""
    api = k8s_client.CustomObjectsApi()
    api.delete_namespaced_custom_object(
        KUBE_BIND_GROUP,
        KUBE_BIND_VERSION,
        namespace,
        EXPORT_REQUEST_PLURAL,
        name,
    )
