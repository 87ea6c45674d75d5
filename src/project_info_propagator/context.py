"""
Cluster context shared by both reconcilers.

The propagator runs in one of two fixed modes:

- single cluster: deployed next to Rancher Manager, Projects and Namespaces
  live in the same cluster and there is no cache
- dual cluster: deployed in a downstream cluster, Projects are read from the
  upstream cluster and their labels are cached locally so that Namespaces
  keep receiving the last known labels while upstream is unreachable

Both modes expose the same interface so that reconcilers never branch on
optional fields.
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path

from aiorwlock import RWLock
from kubernetes import client

from .cache import ProjectsCache
from .constants import DEFAULT_UPSTREAM_PROBE_TIMEOUT
from .errors import CacheError
from .models import Project
from .observability.metrics import metrics_collector
from .utils.kubernetes import (
    NamespacesHandle,
    ProjectsHandle,
    check_api_reachable,
    get_upstream_client,
)

logger = logging.getLogger(__name__)


class ClusterContext(ABC):
    """Capabilities available to the reconcilers, independent of the mode."""

    def __init__(self, local_client: client.ApiClient, projects: ProjectsHandle):
        self.local_client = local_client
        self.namespaces = NamespacesHandle(local_client)
        self.projects = projects

    @property
    def cluster_id(self) -> str | None:
        return None

    @abstractmethod
    def is_downstream(self) -> bool:
        """Whether Projects are read from an upstream cluster."""

    @abstractmethod
    async def is_upstream_reachable(self) -> bool:
        """Probe the cluster holding the Projects."""

    @abstractmethod
    async def cache_update(self, project: Project) -> None:
        """Store the relevant labels of ``project``."""

    @abstractmethod
    async def cache_delete(self, project: Project) -> None:
        """Forget ``project``."""

    @abstractmethod
    async def cache_lookup(self, project_name: str) -> dict[str, str] | None:
        """Last known relevant labels of a project, None when unknown."""

    async def close(self) -> None:
        self.local_client.close()


class SingleClusterContext(ClusterContext):
    """Projects and Namespaces live in the cluster running Rancher Manager."""

    def __init__(self, local_client: client.ApiClient, projects_namespace: str):
        super().__init__(
            local_client, ProjectsHandle(local_client, projects_namespace)
        )

    def is_downstream(self) -> bool:
        return False

    async def is_upstream_reachable(self) -> bool:
        logger.error(
            "Upstream reachability probed while running inside the upstream cluster",
            extra={"is_downstream_cluster": False},
        )
        return False

    async def cache_update(self, project: Project) -> None:
        return None

    async def cache_delete(self, project: Project) -> None:
        return None

    async def cache_lookup(self, project_name: str) -> dict[str, str] | None:
        return None


class DualClusterContext(ClusterContext):
    """Namespaces live here, Projects in the upstream cluster.

    The cache is only reachable through this context; every access goes
    through ``lock``, shared with all reconciliations.
    """

    def __init__(
        self,
        local_client: client.ApiClient,
        upstream_client: client.ApiClient,
        cluster_id: str,
        cache: ProjectsCache,
        probe_timeout: float = DEFAULT_UPSTREAM_PROBE_TIMEOUT,
    ):
        super().__init__(local_client, ProjectsHandle(upstream_client, cluster_id))
        self.upstream_client = upstream_client
        self._cluster_id = cluster_id
        self._cache = cache
        self.probe_timeout = probe_timeout
        self.lock = RWLock()

    @property
    def cluster_id(self) -> str:
        return self._cluster_id

    def is_downstream(self) -> bool:
        return True

    async def is_upstream_reachable(self) -> bool:
        reachable = await check_api_reachable(self.upstream_client, self.probe_timeout)
        metrics_collector.set_upstream_reachable(reachable)
        return reachable

    async def cache_update(self, project: Project) -> None:
        async with self.lock.writer_lock:
            await self._tracked(
                "upsert", self._cache.upsert(project.name, project.relevant_labels())
            )

    async def cache_delete(self, project: Project) -> None:
        async with self.lock.writer_lock:
            await self._tracked("delete", self._cache.delete(project.name))

    async def cache_lookup(self, project_name: str) -> dict[str, str] | None:
        async with self.lock.reader_lock:
            return await self._tracked("get", self._cache.get(project_name))

    async def close(self) -> None:
        async with self.lock.writer_lock:
            await self._cache.close()
        self.upstream_client.close()
        await super().close()

    @staticmethod
    async def _tracked(operation: str, coro):
        try:
            result = await coro
        except CacheError:
            metrics_collector.record_cache_operation(operation, success=False)
            raise
        metrics_collector.record_cache_operation(operation, success=True)
        return result


def single_cluster(
    local_client: client.ApiClient, projects_namespace: str
) -> SingleClusterContext:
    """Build the context used when running inside the upstream cluster."""
    logger.info(
        "Monitoring Projects defined inside of local cluster",
        extra={"is_downstream_cluster": False},
    )
    return SingleClusterContext(local_client, projects_namespace)


async def dual_cluster(
    local_client: client.ApiClient,
    upstream_kubeconfig: Path,
    cluster_id: str,
    cache_file: Path,
    probe_timeout: float = DEFAULT_UPSTREAM_PROBE_TIMEOUT,
) -> DualClusterContext:
    """
    Build the context used when running inside a downstream cluster.

    Raises:
        KubeconfigError: If the upstream kubeconfig cannot be loaded
        CacheError: If the cache database cannot be opened
    """
    upstream_client = get_upstream_client(upstream_kubeconfig)
    cache = ProjectsCache(cache_file)
    try:
        await cache.open()
    except CacheError:
        upstream_client.close()
        raise

    logger.info(
        "Monitoring Projects defined inside of upstream cluster",
        extra={"is_downstream_cluster": True, "cluster_id": cluster_id},
    )
    return DualClusterContext(
        local_client, upstream_client, cluster_id, cache, probe_timeout=probe_timeout
    )
