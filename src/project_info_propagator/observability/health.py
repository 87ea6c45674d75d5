"""
Health check utilities for the project info propagator.

The local Kubernetes API is the only hard dependency: an unreachable
upstream cluster is reported as "degraded" since Namespace reconciliation
keeps serving labels from the projects cache in that case.
"""

import logging
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..errors import OperatorError
from ..utils.kubernetes import check_api_reachable

if TYPE_CHECKING:
    from ..context import ClusterContext

logger = logging.getLogger(__name__)


@dataclass
class HealthCheckResult:
    """Result of a health check operation."""

    name: str
    status: str  # "healthy", "unhealthy", "degraded", "unknown"
    message: str
    details: dict[str, Any] | None = None
    duration: float = 0.0
    timestamp: float = 0.0


class HealthChecker:
    """Performs health checks for the propagator."""

    def __init__(self, context: "ClusterContext", probe_timeout: float = 5):
        """
        Initialize health checker.

        Args:
            context: Cluster context shared with the reconcilers
            probe_timeout: Timeout of the API connectivity probes
        """
        self.context = context
        self.probe_timeout = probe_timeout

    async def check_all(self) -> dict[str, HealthCheckResult]:
        """
        Run all health checks.

        Returns:
            Dictionary of health check results
        """
        checks = {"kubernetes_api": self.check_kubernetes_api()}
        if self.context.is_downstream():
            checks["upstream_api"] = self.check_upstream_api()
            checks["projects_cache"] = self.check_cache()

        results = {}
        for name, check_coro in checks.items():
            try:
                results[name] = await check_coro
            except Exception as e:
                results[name] = HealthCheckResult(
                    name=name,
                    status="unhealthy",
                    message=f"Health check failed: {str(e)}",
                    timestamp=time.time(),
                )

        return results

    async def check_kubernetes_api(self) -> HealthCheckResult:
        """Check connectivity to the cluster holding the Namespaces."""
        start_time = time.time()
        reachable = await check_api_reachable(
            self.context.local_client, self.probe_timeout
        )
        duration = time.time() - start_time

        return HealthCheckResult(
            name="kubernetes_api",
            status="healthy" if reachable else "unhealthy",
            message=(
                "Kubernetes API is accessible"
                if reachable
                else "Kubernetes API is not reachable"
            ),
            details={"response_time_ms": round(duration * 1000, 2)},
            duration=duration,
            timestamp=time.time(),
        )

    async def check_upstream_api(self) -> HealthCheckResult:
        """Check connectivity to the upstream cluster holding the Projects."""
        start_time = time.time()
        reachable = await self.context.is_upstream_reachable()
        duration = time.time() - start_time

        return HealthCheckResult(
            name="upstream_api",
            status="healthy" if reachable else "degraded",
            message=(
                "Upstream cluster is accessible"
                if reachable
                else "Upstream cluster is not reachable, serving cached labels"
            ),
            details={
                "cluster_id": self.context.cluster_id,
                "response_time_ms": round(duration * 1000, 2),
            },
            duration=duration,
            timestamp=time.time(),
        )

    async def check_cache(self) -> HealthCheckResult:
        """Check the projects cache answers queries."""
        start_time = time.time()

        try:
            await self.context.cache_lookup("")
        except OperatorError as e:
            duration = time.time() - start_time
            return HealthCheckResult(
                name="projects_cache",
                status="unhealthy",
                message=f"Projects cache error: {e}",
                duration=duration,
                timestamp=time.time(),
            )

        duration = time.time() - start_time
        return HealthCheckResult(
            name="projects_cache",
            status="healthy",
            message="Projects cache is accessible",
            duration=duration,
            timestamp=time.time(),
        )

    def get_overall_health(self, results: dict[str, HealthCheckResult]) -> str:
        """
        Determine overall health status from individual check results.

        Args:
            results: Dictionary of health check results

        Returns:
            Overall health status
        """
        if not results:
            return "unknown"

        statuses = [result.status for result in results.values()]

        if "unhealthy" in statuses:
            return "unhealthy"
        elif "degraded" in statuses or "unknown" in statuses:
            return "degraded"
        else:
            return "healthy"

    def to_dict(self, results: dict[str, HealthCheckResult]) -> dict[str, Any]:
        """Convert health check results to dictionary format."""
        overall_status = self.get_overall_health(results)

        return {
            "status": overall_status,
            "timestamp": time.time(),
            "checks": {
                name: {
                    "status": result.status,
                    "message": result.message,
                    "details": result.details,
                    "duration": result.duration,
                    "timestamp": result.timestamp,
                }
                for name, result in results.items()
            },
        }
