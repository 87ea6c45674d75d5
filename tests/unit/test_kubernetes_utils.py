"""Unit tests for Kubernetes utility functions."""

from unittest.mock import MagicMock, patch

import pytest
import urllib3
from kubernetes import client
from kubernetes.client.rest import ApiException
from kubernetes.config import ConfigException

from project_info_propagator.constants import FIELD_MANAGER
from project_info_propagator.errors import KubeconfigError, KubernetesAPIError
from project_info_propagator.utils.kubernetes import (
    NamespacesHandle,
    ProjectsHandle,
    check_api_reachable,
    get_kubernetes_client,
    get_upstream_client,
    upstream_connection_info,
)

UPSTREAM_KUBECONFIG = """
apiVersion: v1
kind: Config
clusters:
- name: upstream
  cluster:
    server: https://rancher.example.com:6443
    insecure-skip-tls-verify: true
users:
- name: propagator
  user:
    token: s3cr3t
contexts:
- name: upstream
  context:
    cluster: upstream
    user: propagator
current-context: upstream
"""


@pytest.fixture
def api_client() -> client.ApiClient:
    return client.ApiClient(client.Configuration())


@pytest.fixture
def kubeconfig(tmp_path):
    path = tmp_path / "kubeconfig"
    path.write_text(UPSTREAM_KUBECONFIG)
    return path


def _namespace(name: str, owner: str | None = None) -> client.V1Namespace:
    annotations = {"field.cattle.io/projectId": owner} if owner else None
    labels = {"field.cattle.io/projectId": owner.split(":")[1]} if owner else None
    return client.V1Namespace(
        metadata=client.V1ObjectMeta(
            name=name, labels=labels, annotations=annotations
        )
    )


class TestNamespacesHandle:
    """Namespace operations on the local cluster."""

    @pytest.mark.asyncio
    async def test_list_owned_by_filters_on_annotation(self, api_client, make_project):
        handle = NamespacesHandle(api_client)
        handle.core_api = MagicMock()
        handle.core_api.list_namespace.return_value = client.V1NamespaceList(
            items=[
                _namespace("ns1", "pns:p1"),
                _namespace("ns2", "other:p1"),
                _namespace("ns3", "pns:p1"),
            ]
        )

        owned = await handle.list_owned_by(make_project(name="p1", namespace="pns"))

        handle.core_api.list_namespace.assert_called_once_with(
            label_selector="field.cattle.io/projectId=p1"
        )
        assert [ns.name for ns in owned] == ["ns1", "ns3"]
        assert owned[0].project_annotation == "pns:p1"

    @pytest.mark.asyncio
    async def test_list_owned_by_wraps_errors(self, api_client, make_project):
        handle = NamespacesHandle(api_client)
        handle.core_api = MagicMock()
        handle.core_api.list_namespace.side_effect = ApiException(
            status=403, reason="Forbidden"
        )

        with pytest.raises(KubernetesAPIError) as exc_info:
            await handle.list_owned_by(make_project())

        assert exc_info.value.status == 403
        assert not exc_info.value.retryable

    @pytest.mark.asyncio
    async def test_apply_labels_uses_server_side_apply(self, api_client):
        handle = NamespacesHandle(api_client)
        handle.core_api = MagicMock()

        await handle.apply_labels("ns1", {"tier": "gold", "owner": "team-a"})

        handle.core_api.patch_namespace.assert_called_once_with(
            "ns1",
            {
                "apiVersion": "v1",
                "kind": "Namespace",
                "metadata": {
                    "name": "ns1",
                    "labels": {"tier": "gold", "owner": "team-a"},
                },
            },
            field_manager=FIELD_MANAGER,
            force=True,
            _content_type="application/apply-patch+yaml",
        )

    def test_field_manager_is_stable(self):
        assert FIELD_MANAGER == "racher-project-info-propagator"

    @pytest.mark.asyncio
    async def test_apply_labels_wraps_transport_errors(self, api_client):
        handle = NamespacesHandle(api_client)
        handle.core_api = MagicMock()
        handle.core_api.patch_namespace.side_effect = urllib3.exceptions.HTTPError(
            "connection reset"
        )

        with pytest.raises(KubernetesAPIError, match="connection reset"):
            await handle.apply_labels("ns1", {"tier": "gold"})


class TestProjectsHandle:
    """Project lookups."""

    @pytest.mark.asyncio
    async def test_get(self, api_client):
        handle = ProjectsHandle(api_client, "c-abc12")
        handle.custom_api = MagicMock()
        handle.custom_api.get_namespaced_custom_object.return_value = {
            "metadata": {
                "name": "p1",
                "namespace": "c-abc12",
                "labels": {"propagate.tier": "gold"},
            },
            "spec": {"displayName": "Payments"},
        }

        project = await handle.get("p1")

        handle.custom_api.get_namespaced_custom_object.assert_called_once_with(
            group="management.cattle.io",
            version="v3",
            namespace="c-abc12",
            plural="projects",
            name="p1",
        )
        assert project.relevant_labels() == {"tier": "gold"}
        assert project.spec.display_name == "Payments"

    @pytest.mark.asyncio
    async def test_get_not_found(self, api_client):
        handle = ProjectsHandle(api_client, "c-abc12")
        handle.custom_api = MagicMock()
        handle.custom_api.get_namespaced_custom_object.side_effect = ApiException(
            status=404, reason="Not Found"
        )

        with pytest.raises(KubernetesAPIError) as exc_info:
            await handle.get("p1")

        assert exc_info.value.status == 404


class TestReachability:
    """Upstream connectivity probe."""

    @pytest.mark.asyncio
    async def test_reachable(self, api_client):
        version_api = MagicMock()
        with patch(
            "project_info_propagator.utils.kubernetes.client.VersionApi",
            return_value=version_api,
        ):
            assert await check_api_reachable(api_client, 2) is True

        version_api.get_code.assert_called_once_with(_request_timeout=2)

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [
            urllib3.exceptions.HTTPError("timed out"),
            ConnectionRefusedError("refused"),
            ApiException(status=503, reason="Service Unavailable"),
        ],
    )
    async def test_unreachable(self, api_client, error):
        version_api = MagicMock()
        version_api.get_code.side_effect = error
        with patch(
            "project_info_propagator.utils.kubernetes.client.VersionApi",
            return_value=version_api,
        ):
            assert await check_api_reachable(api_client, 2) is False


class TestClientConstruction:
    """Loading of kubeconfig files."""

    def test_upstream_client(self, kubeconfig):
        api_client = get_upstream_client(kubeconfig)

        assert api_client.configuration.host == "https://rancher.example.com:6443"

    def test_upstream_client_missing_file(self, tmp_path):
        with pytest.raises(KubeconfigError) as exc_info:
            get_upstream_client(tmp_path / "missing")

        assert exc_info.value.path == str(tmp_path / "missing")

    def test_upstream_connection_info(self, kubeconfig):
        info = upstream_connection_info(kubeconfig)

        assert info.server == "https://rancher.example.com:6443"
        assert info.scheme == "Bearer"
        assert info.token == "s3cr3t"
        assert info.insecure is True

    def test_upstream_connection_info_missing_file(self, tmp_path):
        with pytest.raises(KubeconfigError):
            upstream_connection_info(tmp_path / "missing")

    def test_local_client_without_configuration(self):
        with (
            patch(
                "project_info_propagator.utils.kubernetes.config.load_incluster_config",
                side_effect=ConfigException("not in cluster"),
            ),
            patch(
                "project_info_propagator.utils.kubernetes.config.load_kube_config",
                side_effect=ConfigException("no kubeconfig"),
            ),
        ):
            with pytest.raises(KubeconfigError):
                get_kubernetes_client()
