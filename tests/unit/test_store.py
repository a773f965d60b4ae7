"""Unit tests for the Kubernetes-backed resource store.

Tests the CustomObjectsApi mapping with a mocked client.
"""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from kubernetes.client.rest import ApiException

from olminstall.config.settings import KubernetesSettings
from olminstall.kubernetes.store import (
    KubernetesResourceStore,
    default_namespace,
    translate_api_exception,
)
from olminstall.olm import (
    INSTALL_PLAN,
    OPERATOR_GROUP,
    SUBSCRIPTION,
    APIError,
    NotFoundError,
    ResourceVersionConflictError,
)


@pytest.fixture
def mock_custom() -> MagicMock:
    return MagicMock()


@pytest.fixture
def resource_store(mock_custom: MagicMock) -> KubernetesResourceStore:
    with patch("olminstall.kubernetes.store.client") as mock_client:
        mock_client.CustomObjectsApi.return_value = mock_custom
        return KubernetesResourceStore(api_client=MagicMock())


class TestTranslateApiException:
    """Tests for mapping API exceptions onto install errors."""

    def test_not_found(self) -> None:
        """404 maps to NotFoundError."""
        error = translate_api_exception(
            ApiException(status=404, reason="Not Found"),
            verb="get",
            kind=SUBSCRIPTION,
            namespace="ns",
            name="sub",
        )

        assert isinstance(error, NotFoundError)
        assert str(error) == "get Subscription ns/sub: Not Found"
        assert error.details == {
            "kind": "Subscription",
            "namespace": "ns",
            "verb": "get",
            "name": "sub",
            "status": 404,
        }

    def test_update_conflict(self) -> None:
        """409 on update is a resource version conflict."""
        error = translate_api_exception(
            ApiException(status=409, reason="Conflict"),
            verb="update",
            kind=INSTALL_PLAN,
            namespace="ns",
            name="plan",
        )

        assert isinstance(error, ResourceVersionConflictError)

    def test_create_conflict(self) -> None:
        """409 on create means the object already exists."""
        error = translate_api_exception(
            ApiException(status=409, reason="AlreadyExists"),
            verb="create",
            kind=OPERATOR_GROUP,
            namespace="ns",
            name="og",
        )

        assert type(error) is APIError
        assert error.status == 409

    def test_list_without_name(self) -> None:
        """List errors describe the namespace."""
        error = translate_api_exception(
            ApiException(status=403, reason="Forbidden"),
            verb="list",
            kind=OPERATOR_GROUP,
            namespace="ns",
        )

        assert str(error) == "list OperatorGroup in namespace ns: Forbidden"
        assert "name" not in error.details


class TestKubernetesResourceStore:
    """Tests for KubernetesResourceStore."""

    @pytest.mark.asyncio
    async def test_get(self, resource_store: KubernetesResourceStore, mock_custom: MagicMock) -> None:
        """get reads a namespaced custom object."""
        mock_custom.get_namespaced_custom_object.return_value = {"metadata": {"name": "sub"}}

        obj = await resource_store.get(SUBSCRIPTION, "ns", "sub")

        assert obj == {"metadata": {"name": "sub"}}
        mock_custom.get_namespaced_custom_object.assert_called_once_with(
            "operators.coreos.com", "v1alpha1", "ns", "subscriptions", "sub"
        )

    @pytest.mark.asyncio
    async def test_get_not_found(
        self, resource_store: KubernetesResourceStore, mock_custom: MagicMock
    ) -> None:
        """A 404 surfaces as NotFoundError."""
        mock_custom.get_namespaced_custom_object.side_effect = ApiException(status=404, reason="Not Found")

        with pytest.raises(NotFoundError):
            await resource_store.get(SUBSCRIPTION, "ns", "sub")

    @pytest.mark.asyncio
    async def test_list(self, resource_store: KubernetesResourceStore, mock_custom: MagicMock) -> None:
        """list returns the items of the list response."""
        mock_custom.list_namespaced_custom_object.return_value = {
            "items": [{"metadata": {"name": "og"}}]
        }

        items = await resource_store.list(OPERATOR_GROUP, "ns")

        assert items == [{"metadata": {"name": "og"}}]
        mock_custom.list_namespaced_custom_object.assert_called_once_with(
            "operators.coreos.com", "v1", "ns", "operatorgroups"
        )

    @pytest.mark.asyncio
    async def test_create(self, resource_store: KubernetesResourceStore, mock_custom: MagicMock) -> None:
        """create posts the body into its own namespace."""
        body = {"metadata": {"name": "og", "namespace": "ns"}, "spec": {}}
        mock_custom.create_namespaced_custom_object.return_value = body

        await resource_store.create(OPERATOR_GROUP, body)

        mock_custom.create_namespaced_custom_object.assert_called_once_with(
            "operators.coreos.com", "v1", "ns", "operatorgroups", body
        )

    @pytest.mark.asyncio
    async def test_update_conflict(
        self, resource_store: KubernetesResourceStore, mock_custom: MagicMock
    ) -> None:
        """A stale replace surfaces as ResourceVersionConflictError."""
        mock_custom.replace_namespaced_custom_object.side_effect = ApiException(
            status=409, reason="Conflict"
        )
        body = {"metadata": {"name": "plan", "namespace": "ns", "resourceVersion": "1"}}

        with pytest.raises(ResourceVersionConflictError):
            await resource_store.update(INSTALL_PLAN, body)

        mock_custom.replace_namespaced_custom_object.assert_called_once_with(
            "operators.coreos.com", "v1alpha1", "ns", "installplans", "plan", body
        )

    def test_close(self) -> None:
        """close releases the API client."""
        api_client = MagicMock()
        with patch("olminstall.kubernetes.store.client"):
            KubernetesResourceStore(api_client=api_client).close()

        api_client.close.assert_called_once()


class TestDefaultNamespace:
    """Tests for choosing the install namespace."""

    def test_explicit(self) -> None:
        """An explicit namespace wins."""
        assert default_namespace(KubernetesSettings(namespace="ops")) == "ops"

    def test_kubeconfig_context(self) -> None:
        """The active context's namespace is used."""
        contexts = [
            {"name": "dev", "context": {"namespace": "dev-ns"}},
            {"name": "prod", "context": {"namespace": "prod-ns"}},
        ]
        with patch("olminstall.kubernetes.store.config") as mock_config:
            mock_config.list_kube_config_contexts.return_value = (contexts, contexts[0])

            assert default_namespace(KubernetesSettings()) == "dev-ns"
            assert default_namespace(KubernetesSettings(context="prod")) == "prod-ns"

    def test_context_without_namespace(self) -> None:
        """A context without a namespace falls back to default."""
        with patch("olminstall.kubernetes.store.config") as mock_config:
            mock_config.list_kube_config_contexts.return_value = ([], {"name": "x", "context": {}})

            assert default_namespace(KubernetesSettings()) == "default"

    def test_in_cluster(self, tmp_path) -> None:
        """In-cluster the service account namespace is used."""
        namespace_file = tmp_path / "namespace"
        namespace_file.write_text("operators\n")

        with patch("olminstall.kubernetes.store.SERVICE_ACCOUNT_NAMESPACE_PATH", namespace_file):
            assert default_namespace(KubernetesSettings(in_cluster=True)) == "operators"
