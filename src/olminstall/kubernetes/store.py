"""Resource store over the Kubernetes custom objects API.

All OLM resources are custom resources, so one ``CustomObjectsApi`` covers
every read and write the installer makes. Blocking client calls run in a
worker thread so polling loops stay cancellable.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Protocol

from kubernetes import client, config
from kubernetes.client.rest import ApiException

from olminstall.config.settings import KubernetesSettings
from olminstall.observability.logging import get_logger
from olminstall.olm.errors import APIError, NotFoundError, ResourceVersionConflictError
from olminstall.olm.models import ResourceKind


log = get_logger(__name__)

# HTTP Status codes
HTTP_NOT_FOUND = 404
HTTP_CONFLICT = 409

SERVICE_ACCOUNT_NAMESPACE_PATH = Path("/var/run/secrets/kubernetes.io/serviceaccount/namespace")
DEFAULT_NAMESPACE = "default"


class ResourceStore(Protocol):
    """Shared, remotely stored cluster state.

    Writes are serialized by the server through ``metadata.resourceVersion``;
    ``update`` fails with ``ResourceVersionConflictError`` on a stale version.
    """

    async def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any]: ...

    async def list(self, kind: ResourceKind, namespace: str) -> list[dict[str, Any]]: ...

    async def create(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]: ...

    async def update(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]: ...


def translate_api_exception(
    error: ApiException,
    *,
    verb: str,
    kind: ResourceKind,
    namespace: str,
    name: str | None = None,
) -> APIError:
    """Map a Kubernetes ``ApiException`` onto the installer's error taxonomy."""
    target = f"{kind.kind} {namespace}/{name}" if name else f"{kind.kind} in namespace {namespace}"
    message = f"{verb} {target}: {error.reason or 'request failed'}"
    details = {"kind": kind.kind, "namespace": namespace, "verb": verb}
    if name:
        details["name"] = name

    if error.status == HTTP_NOT_FOUND:
        return NotFoundError(message, status=error.status, details=details)
    if error.status == HTTP_CONFLICT and verb == "update":
        return ResourceVersionConflictError(message, status=error.status, details=details)
    return APIError(message, status=error.status, details=details)


def load_api_client(settings: KubernetesSettings) -> client.ApiClient:
    """Load Kubernetes config into a dedicated ApiClient."""
    config_obj = client.Configuration()
    if settings.in_cluster:
        config.load_incluster_config(client_configuration=config_obj)
        log.info("k8s_config_loaded", mode="in_cluster")
    else:
        config.load_kube_config(
            config_file=settings.kubeconfig,
            context=settings.context,
            client_configuration=config_obj,
        )
        log.info("k8s_config_loaded", mode="kubeconfig", context=settings.context)
    return client.ApiClient(config_obj)


def default_namespace(settings: KubernetesSettings) -> str:
    """Namespace to install into when none is configured explicitly.

    Uses the service account namespace in-cluster, otherwise the namespace
    of the selected kubeconfig context.
    """
    if settings.namespace:
        return settings.namespace

    if settings.in_cluster:
        try:
            return SERVICE_ACCOUNT_NAMESPACE_PATH.read_text().strip() or DEFAULT_NAMESPACE
        except OSError:
            return DEFAULT_NAMESPACE

    contexts, active = config.list_kube_config_contexts(config_file=settings.kubeconfig)
    selected = active
    if settings.context:
        selected = next((c for c in contexts if c.get("name") == settings.context), active)
    return ((selected or {}).get("context") or {}).get("namespace") or DEFAULT_NAMESPACE


class KubernetesResourceStore:
    """``ResourceStore`` backed by ``CustomObjectsApi``."""

    def __init__(self, api_client: client.ApiClient | None = None) -> None:
        self._api_client = api_client
        self._custom_api = client.CustomObjectsApi(api_client)

    @classmethod
    def from_settings(cls, settings: KubernetesSettings) -> KubernetesResourceStore:
        """Build a store connected to the cluster described by ``settings``."""
        return cls(load_api_client(settings))

    def close(self) -> None:
        """Release the underlying HTTP connection pool."""
        if self._api_client is not None:
            self._api_client.close()

    async def _call_api(self, func: Any, *args: Any, **kwargs: Any) -> Any:
        """Run blocking Kubernetes client calls in a thread."""
        return await asyncio.to_thread(func, *args, **kwargs)

    async def get(self, kind: ResourceKind, namespace: str, name: str) -> dict[str, Any]:
        try:
            return await self._call_api(
                self._custom_api.get_namespaced_custom_object,
                kind.group,
                kind.version,
                namespace,
                kind.plural,
                name,
            )
        except ApiException as e:
            raise translate_api_exception(
                e, verb="get", kind=kind, namespace=namespace, name=name
            ) from e

    async def list(self, kind: ResourceKind, namespace: str) -> list[dict[str, Any]]:
        try:
            result = await self._call_api(
                self._custom_api.list_namespaced_custom_object,
                kind.group,
                kind.version,
                namespace,
                kind.plural,
            )
        except ApiException as e:
            raise translate_api_exception(e, verb="list", kind=kind, namespace=namespace) from e
        return list(result.get("items") or [])

    async def create(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        metadata = body.get("metadata") or {}
        namespace = metadata.get("namespace", "")
        try:
            return await self._call_api(
                self._custom_api.create_namespaced_custom_object,
                kind.group,
                kind.version,
                namespace,
                kind.plural,
                body,
            )
        except ApiException as e:
            raise translate_api_exception(
                e, verb="create", kind=kind, namespace=namespace, name=metadata.get("name")
            ) from e

    async def update(self, kind: ResourceKind, body: dict[str, Any]) -> dict[str, Any]:
        metadata = body.get("metadata") or {}
        namespace = metadata.get("namespace", "")
        name = metadata.get("name", "")
        try:
            return await self._call_api(
                self._custom_api.replace_namespaced_custom_object,
                kind.group,
                kind.version,
                namespace,
                kind.plural,
                name,
                body,
            )
        except ApiException as e:
            raise translate_api_exception(
                e, verb="update", kind=kind, namespace=namespace, name=name
            ) from e


__all__ = [
    "KubernetesResourceStore",
    "ResourceStore",
    "default_namespace",
    "load_api_client",
    "translate_api_exception",
]
