"""
Project reconciliation: push the relevant labels of a Project to every
Namespace it owns, and keep the projects cache in step.
"""

from ..constants import RESOURCE_PROJECT
from ..errors import CacheError, KubernetesAPIError
from ..models import Project
from .base_reconciler import BaseReconciler


class ProjectReconciler(BaseReconciler):
    """Reconciler for Rancher Projects."""

    resource_type = RESOURCE_PROJECT

    async def do_reconcile(self, project: Project) -> None:
        """
        Propagate the labels of ``project``.

        Cache failures are logged and ignored, as are failures to patch a
        single Namespace: the remaining Namespaces are still processed.

        Raises:
            KubernetesAPIError: If the owned Namespaces cannot be listed
        """
        if project.is_being_deleted:
            await self._forget(project)
            return

        self.logger.info(
            f"Reconciling project {project.spec.display_name or project.name}",
            project_name=project.name,
            project_namespace=project.namespace,
            display_name=project.spec.display_name,
        )

        labels = project.relevant_labels()

        try:
            await self.context.cache_update(project)
        except CacheError as e:
            self.logger.warning(
                f"Cannot update cache for project {project.key}: {e}",
                project_name=project.name,
                error_type=type(e).__name__,
            )

        namespaces = await self.context.namespaces.list_owned_by(project)
        for namespace in namespaces:
            try:
                await self.apply_labels(namespace, labels)
            except KubernetesAPIError as e:
                self.logger.error(
                    f"Cannot update labels of namespace {namespace.name}: {e}",
                    resource_name=namespace.name,
                    project_name=project.name,
                    error_type=type(e).__name__,
                )

    async def _forget(self, project: Project) -> None:
        try:
            await self.context.cache_delete(project)
        except CacheError as e:
            self.logger.warning(
                f"Cannot remove project {project.key} from the cache: {e}",
                project_name=project.name,
                error_type=type(e).__name__,
            )
            return

        self.logger.debug(
            f"Project {project.key} is being deleted",
            project_name=project.name,
        )
