"""
Namespace reconciliation: pull the relevant labels of the owning Project and
apply them to one Namespace.

In dual cluster mode this is also the degraded path: while the upstream
cluster is unreachable the labels are read from the projects cache.
"""

from ..constants import RESOURCE_NAMESPACE
from ..models import Namespace, ObjectKey
from ..observability.metrics import metrics_collector
from ..utils.ownership import project_key_for_namespace
from .base_reconciler import BaseReconciler


class NamespaceReconciler(BaseReconciler):
    """Reconciler for Namespaces owned by Rancher Projects."""

    resource_type = RESOURCE_NAMESPACE

    async def do_reconcile(self, namespace: Namespace) -> None:
        """
        Converge the labels of ``namespace`` with its owning project.

        Namespaces being deleted, Namespaces without a valid ownership
        annotation and Namespaces owned by a project outside of the watched
        project namespace are left alone.

        Raises:
            KubernetesAPIError: If the project cannot be fetched or the
                patch is rejected
            CacheError: If the cache lookup fails in degraded mode
        """
        if namespace.is_being_deleted:
            return

        owner = project_key_for_namespace(namespace)
        if owner is None:
            return

        # A same-named project in the watched namespace is a different project
        if owner.namespace != self.context.projects.namespace:
            self.logger.debug(
                f"Namespace {namespace.name} belongs to project {owner}, "
                f"outside of {self.context.projects.namespace}",
                resource_name=namespace.name,
                project_name=owner.name,
                project_namespace=owner.namespace,
            )
            return

        labels = await self.resolve_labels(owner)
        await self.apply_labels(namespace, labels)

    async def resolve_labels(self, owner: ObjectKey) -> dict[str, str]:
        """
        Relevant labels of the project identified by ``owner``.

        Read live from the cluster holding the Projects, unless that cluster
        is a separate upstream one and it is currently unreachable. Projects
        never seen by the cache resolve to no labels.
        """
        if (
            not self.context.is_downstream()
            or await self.context.is_upstream_reachable()
        ):
            project = await self.context.projects.get(owner.name)
            return project.relevant_labels()

        labels = await self.context.cache_lookup(owner.name)
        metrics_collector.record_degraded_read(hit=labels is not None)
        self.logger.warning(
            f"Upstream cluster unreachable, using cached labels of project {owner}",
            project_name=owner.name,
            cluster_id=self.context.cluster_id,
            is_downstream_cluster=True,
        )
        return labels or {}
