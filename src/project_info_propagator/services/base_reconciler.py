"""
Base reconciler class providing common patterns for resource reconciliation.

This module defines the BaseReconciler class that implements the parts
shared by the Project and Namespace reconcilers: metrics and correlation
tracking, the error policy, and the merge-then-apply step on a Namespace.
"""

import time
from abc import ABC, abstractmethod
from typing import Any

from ..constants import DEFAULT_RECONCILIATION_INTERVAL
from ..context import ClusterContext
from ..errors import KubernetesAPIError
from ..models import Namespace
from ..observability.logging import OperatorLogger
from ..observability.metrics import metrics_collector
from ..utils.labels import merge_labels


class BaseReconciler(ABC):
    """
    Base class for the resource reconcilers.

    Subclasses implement ``do_reconcile``; the reconcile loop calls
    ``reconcile`` and, when it raises, ``error_policy``. Both return the
    delay in seconds before the object is checked again.
    """

    resource_type: str = "resource"

    def __init__(
        self,
        context: ClusterContext,
        requeue_after: float = DEFAULT_RECONCILIATION_INTERVAL,
    ):
        """
        Initialize base reconciler.

        Args:
            context: Cluster context shared by every reconciliation
            requeue_after: Fixed delay used both for periodic checks and
                after errors
        """
        self.context = context
        self.requeue_after = requeue_after
        self.logger = OperatorLogger(self.__class__.__name__)

    async def reconcile(self, obj: Any) -> float:
        """
        Main reconciliation entry point with metrics tracking.

        Args:
            obj: Latest known state of the object

        Returns:
            Delay before the next periodic reconciliation
        """
        start_time = time.time()
        self.logger.log_reconciliation_start(
            resource_type=self.resource_type,
            resource_name=obj.name,
            namespace=obj.metadata.namespace,
        )

        async with metrics_collector.track_reconciliation(self.resource_type):
            await self.do_reconcile(obj)

        self.logger.log_reconciliation_success(
            resource_type=self.resource_type,
            resource_name=obj.name,
            namespace=obj.metadata.namespace,
            duration=time.time() - start_time,
        )
        return self.requeue_after

    @abstractmethod
    async def do_reconcile(self, obj: Any) -> None:
        """
        Resource-specific reconciliation logic.

        Args:
            obj: Latest known state of the object
        """
        raise NotImplementedError

    def error_policy(self, obj: Any, error: Exception) -> float:
        """
        Log a failed reconciliation and decide when to retry.

        There is no backoff: every failure is retried after the same
        interval as a successful reconciliation.

        Returns:
            Delay before the object is reconciled again
        """
        self.logger.log_reconciliation_error(
            resource_type=self.resource_type,
            resource_name=obj.name,
            namespace=obj.metadata.namespace,
            error=error,
            is_downstream_cluster=self.context.is_downstream(),
            requeue_after=self.requeue_after,
        )
        return self.requeue_after

    async def apply_labels(
        self, namespace: Namespace, labels: dict[str, str]
    ) -> bool:
        """
        Converge the labels of ``namespace`` with ``labels``.

        Args:
            namespace: Namespace with its current labels
            labels: Relevant labels of the owning project

        Returns:
            True if a patch was sent, False if the labels already matched

        Raises:
            KubernetesAPIError: If the patch is rejected
        """
        merged = merge_labels(labels, namespace.labels)
        if merged is None:
            self.logger.debug(
                f"Labels of namespace {namespace.name} already up to date",
                resource_name=namespace.name,
            )
            return False

        try:
            await self.context.namespaces.apply_labels(namespace.name, merged)
        except KubernetesAPIError:
            metrics_collector.record_label_patch(self.resource_type, success=False)
            raise

        metrics_collector.record_label_patch(self.resource_type, success=True)
        self.logger.info(
            f"Updated labels of namespace {namespace.name}",
            resource_name=namespace.name,
            labels=labels,
        )
        return True
