"""
Kubernetes utilities for the project info propagator.

This module wraps the synchronous kubernetes client behind small async
handles. Every call is executed in a worker thread with
``asyncio.to_thread`` and client failures are converted into
``KubernetesAPIError``.

Key functionality:
- API client construction for the local and the upstream cluster
- Connection info for kopf logins against an explicit kubeconfig
- Namespace listing by owner and server-side apply of labels
- Project lookups scoped to a single namespace
- Lightweight reachability probe
"""

import asyncio
import logging
from pathlib import Path

import kopf
import urllib3
from kubernetes import client, config
from kubernetes.client.rest import ApiException

from ..constants import (
    FIELD_MANAGER,
    PROJECT_GROUP,
    PROJECT_PLURAL,
    PROJECT_VERSION,
)
from ..errors import KubeconfigError, KubernetesAPIError
from ..models import Namespace, Project
from .ownership import filter_owned, ownership_label_selector

logger = logging.getLogger(__name__)

# Errors raised by the client for API answers and for transport failures
CLIENT_ERRORS = (ApiException, urllib3.exceptions.HTTPError, OSError)


def get_kubernetes_client() -> client.ApiClient:
    """
    Get configured Kubernetes API client for the local cluster.

    This function handles both in-cluster and local development configurations.

    Returns:
        Configured Kubernetes API client

    Raises:
        KubeconfigError: If neither configuration can be loaded
    """
    try:
        # Try in-cluster config first (when running in a pod)
        config.load_incluster_config()
        logger.debug("Loaded in-cluster Kubernetes configuration")
    except config.ConfigException:
        try:
            # Fall back to local kubeconfig (for development)
            config.load_kube_config()
            logger.debug("Loaded kubeconfig from local environment")
        except config.ConfigException as e:
            raise KubeconfigError("<default>", e) from e

    return client.ApiClient()


def get_upstream_client(kubeconfig: Path) -> client.ApiClient:
    """
    Build an API client for the upstream cluster.

    The global client configuration is left untouched: it keeps pointing at
    the local cluster.

    Args:
        kubeconfig: Path to the kubeconfig of the upstream cluster

    Raises:
        KubeconfigError: If the file is missing or cannot be parsed
    """
    try:
        return config.new_client_from_config(config_file=str(kubeconfig))
    except Exception as e:
        raise KubeconfigError(str(kubeconfig), e) from e


def upstream_connection_info(kubeconfig: Path) -> kopf.ConnectionInfo:
    """
    Translate an upstream kubeconfig into kopf credentials.

    Mirrors what ``kopf.login_via_client`` does for the default
    configuration, but for an explicit kubeconfig file.

    Raises:
        KubeconfigError: If the file is missing or cannot be parsed
    """
    cfg = client.Configuration()
    try:
        config.load_kube_config(
            config_file=str(kubeconfig), client_configuration=cfg
        )
    except Exception as e:
        raise KubeconfigError(str(kubeconfig), e) from e

    header = cfg.get_api_key_with_prefix("authorization")
    parts = header.split(" ", 1) if header else []
    if len(parts) == 2:
        scheme, token = parts
    elif len(parts) == 1:
        scheme, token = None, parts[0]
    else:
        scheme, token = None, None

    return kopf.ConnectionInfo(
        server=cfg.host,
        ca_path=cfg.ssl_ca_cert,
        insecure=not cfg.verify_ssl,
        username=cfg.username or None,
        password=cfg.password or None,
        scheme=scheme,
        token=token,
        certificate_path=cfg.cert_file,
        private_key_path=cfg.key_file,
    )


async def check_api_reachable(api_client: client.ApiClient, timeout: float) -> bool:
    """
    Probe an API server with an unauthenticated-friendly ``/version`` call.

    Args:
        api_client: Client pointing at the API server to probe
        timeout: Request timeout in seconds

    Returns:
        True if the server answered, False otherwise
    """
    version_api = client.VersionApi(api_client)
    try:
        await asyncio.to_thread(version_api.get_code, _request_timeout=timeout)
    except CLIENT_ERRORS as e:
        logger.debug(f"API server {api_client.configuration.host} unreachable: {e}")
        return False
    return True


class NamespacesHandle:
    """Namespace operations against the cluster running the propagator."""

    def __init__(self, api_client: client.ApiClient):
        self.api_client = api_client
        self.core_api = client.CoreV1Api(api_client)

    async def list_owned_by(self, project: Project) -> list[Namespace]:
        """
        List the Namespaces owned by ``project``.

        The indexed ownership label narrows the query, the annotation is
        then checked to drop Namespaces of same-named projects living in
        other namespaces.

        Raises:
            KubernetesAPIError: If the list call fails
        """
        try:
            response = await asyncio.to_thread(
                self.core_api.list_namespace,
                label_selector=ownership_label_selector(project),
            )
        except CLIENT_ERRORS as e:
            raise KubernetesAPIError.from_exception(
                f"list namespaces of project {project.key}", e
            ) from e

        items = self.api_client.sanitize_for_serialization(response).get("items", [])
        return filter_owned((Namespace.from_body(item) for item in items), project)

    async def apply_labels(self, name: str, labels: dict[str, str]) -> None:
        """
        Force-apply the full label set of a Namespace.

        Uses server-side apply under the propagator's field manager, so a
        conflicting writer loses ownership of the fields we set.

        Raises:
            KubernetesAPIError: If the API server rejects the patch
        """
        body = {
            "apiVersion": "v1",
            "kind": "Namespace",
            "metadata": {"name": name, "labels": labels},
        }
        try:
            await asyncio.to_thread(
                self.core_api.patch_namespace,
                name,
                body,
                field_manager=FIELD_MANAGER,
                force=True,
                _content_type="application/apply-patch+yaml",
            )
        except CLIENT_ERRORS as e:
            raise KubernetesAPIError.from_exception(
                f"apply labels to namespace {name}", e
            ) from e


class ProjectsHandle:
    """Project lookups restricted to the namespace holding this cluster's Projects."""

    def __init__(self, api_client: client.ApiClient, namespace: str):
        self.api_client = api_client
        self.namespace = namespace
        self.custom_api = client.CustomObjectsApi(api_client)

    async def get(self, name: str) -> Project:
        """
        Fetch a Project by name.

        Raises:
            KubernetesAPIError: If the call fails, ``status`` is 404 for unknown projects
        """
        try:
            body = await asyncio.to_thread(
                self.custom_api.get_namespaced_custom_object,
                group=PROJECT_GROUP,
                version=PROJECT_VERSION,
                namespace=self.namespace,
                plural=PROJECT_PLURAL,
                name=name,
            )
        except CLIENT_ERRORS as e:
            raise KubernetesAPIError.from_exception(
                f"get project {self.namespace}/{name}", e
            ) from e

        return Project.from_body(body)
