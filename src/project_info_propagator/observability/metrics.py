"""
Prometheus metrics for the project info propagator.

This module provides metrics collection for monitoring reconciliation
activity, label propagation, the fallback cache and the reachability of
the upstream cluster, plus the HTTP server exposing them.
"""

import logging
import time
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from aiohttp.web import (
    Application,
    AppRunner,
    Request,
    Response,
    TCPSite,
    json_response,
)
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)

if TYPE_CHECKING:
    from .health import HealthChecker

logger = logging.getLogger(__name__)

# Global metrics registry
_metrics_registry: CollectorRegistry | None = None

# Metrics definitions
RECONCILIATION_TOTAL = Counter(
    "project_info_propagator_reconciliation_total",
    "Total number of reconciliation attempts",
    ["resource_type", "result"],
    registry=None,  # Will be set during initialization
)

RECONCILIATION_DURATION = Histogram(
    "project_info_propagator_reconciliation_duration_seconds",
    "Time spent on reconciliation operations",
    ["resource_type"],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0],
    registry=None,
)

RECONCILIATION_ERRORS = Counter(
    "project_info_propagator_reconciliation_errors_total",
    "Total number of reconciliation errors",
    ["resource_type", "error_type", "retryable"],
    registry=None,
)

LABEL_PATCHES_TOTAL = Counter(
    "project_info_propagator_label_patches_total",
    "Server-side applies of Namespace labels",
    ["trigger", "result"],
    registry=None,
)

CACHE_OPERATIONS_TOTAL = Counter(
    "project_info_propagator_cache_operations_total",
    "Operations performed on the projects cache",
    ["operation", "result"],
    registry=None,
)

DEGRADED_READS_TOTAL = Counter(
    "project_info_propagator_degraded_reads_total",
    "Project labels served from the cache because upstream was unreachable",
    ["result"],
    registry=None,
)

UPSTREAM_REACHABLE = Gauge(
    "project_info_propagator_upstream_reachable",
    "Result of the last upstream connectivity probe (1=reachable, 0=unreachable)",
    registry=None,
)

QUEUE_DEPTH = Gauge(
    "project_info_propagator_queue_depth",
    "Number of keys waiting to be reconciled",
    ["resource_type"],
    registry=None,
)


def get_metrics_registry() -> CollectorRegistry:
    """Get or create the global metrics registry."""
    global _metrics_registry

    if _metrics_registry is None:
        _metrics_registry = CollectorRegistry()

        for metric in [
            RECONCILIATION_TOTAL,
            RECONCILIATION_DURATION,
            RECONCILIATION_ERRORS,
            LABEL_PATCHES_TOTAL,
            CACHE_OPERATIONS_TOTAL,
            DEGRADED_READS_TOTAL,
            UPSTREAM_REACHABLE,
            QUEUE_DEPTH,
        ]:
            _metrics_registry.register(metric)

    return _metrics_registry


class MetricsCollector:
    """Collects and manages metrics for the propagator."""

    def __init__(self):
        self.registry = get_metrics_registry()

    @asynccontextmanager
    async def track_reconciliation(self, resource_type: str):
        """
        Context manager to track reconciliation operations.

        Args:
            resource_type: Type of resource being reconciled
        """
        start_time = time.time()
        result = "unknown"

        try:
            yield
            result = "success"
        except Exception as e:
            result = "error"

            error_type = type(e).__name__
            retryable = "true" if getattr(e, "retryable", False) else "false"

            RECONCILIATION_ERRORS.labels(
                resource_type=resource_type,
                error_type=error_type,
                retryable=retryable,
            ).inc()

            raise
        finally:
            duration = time.time() - start_time

            RECONCILIATION_TOTAL.labels(
                resource_type=resource_type, result=result
            ).inc()
            RECONCILIATION_DURATION.labels(resource_type=resource_type).observe(
                duration
            )

    def record_label_patch(self, trigger: str, success: bool) -> None:
        """
        Record a server-side apply of Namespace labels.

        Args:
            trigger: Kind of the reconciled object that caused the patch
            success: Whether the API server accepted the patch
        """
        LABEL_PATCHES_TOTAL.labels(
            trigger=trigger, result="success" if success else "error"
        ).inc()

    def record_cache_operation(self, operation: str, success: bool) -> None:
        CACHE_OPERATIONS_TOTAL.labels(
            operation=operation, result="success" if success else "error"
        ).inc()

    def record_degraded_read(self, hit: bool) -> None:
        """Record a cache lookup done in place of an upstream read."""
        DEGRADED_READS_TOTAL.labels(result="hit" if hit else "miss").inc()

    def set_upstream_reachable(self, reachable: bool) -> None:
        UPSTREAM_REACHABLE.set(1 if reachable else 0)

    def set_queue_depth(self, resource_type: str, depth: int) -> None:
        QUEUE_DEPTH.labels(resource_type=resource_type).set(depth)


class MetricsServer:
    """HTTP server for exposing Prometheus metrics and health probes."""

    def __init__(
        self,
        port: int = 8081,
        host: str = "0.0.0.0",
        health_checker: "HealthChecker | None" = None,
    ):
        """
        Initialize metrics server.

        Args:
            port: Port to serve metrics on
            host: Host interface to bind to
            health_checker: Checker backing /health and /ready; without one
                only /metrics and /healthz are meaningful
        """
        self.port = port
        self.host = host
        self.health_checker = health_checker
        self.app = Application()
        self.runner: AppRunner | None = None
        self.site: TCPSite | None = None
        self._setup_routes()

    def _setup_routes(self) -> None:
        """Set up HTTP routes for the metrics server."""
        self.app.router.add_get("/metrics", self._metrics_handler)
        self.app.router.add_get("/health", self._health_handler)
        self.app.router.add_get("/ready", self._ready_handler)
        self.app.router.add_get("/healthz", self._healthz_handler)  # K8s compatibility

    async def _metrics_handler(self, request: Request) -> Response:
        """Handle /metrics endpoint for Prometheus scraping."""
        try:
            registry = get_metrics_registry()
            metrics_data = generate_latest(registry)
            return Response(body=metrics_data, content_type=CONTENT_TYPE_LATEST)
        except Exception as e:
            logger.error(f"Failed to generate metrics: {e}")
            return Response(
                text=f"Error generating metrics: {type(e).__name__}. Check logs for details.",
                status=500,
            )

    async def _health_handler(self, request: Request) -> Response:
        """Handle /health endpoint for operator health checks."""
        if self.health_checker is None:
            return json_response(
                {"status": "unknown", "timestamp": time.time(), "checks": {}}
            )

        try:
            health_results = await self.health_checker.check_all()
            health_dict = self.health_checker.to_dict(health_results)

            status_code = (
                200 if health_dict["status"] in ["healthy", "degraded"] else 503
            )

            return json_response(health_dict, status=status_code)
        except Exception as e:
            logger.error(f"Health check failed: {e}")
            return json_response(
                {
                    "status": "unhealthy",
                    "error": f"{type(e).__name__}. Check logs for details.",
                    "timestamp": time.time(),
                },
                status=500,
            )

    async def _ready_handler(self, request: Request) -> Response:
        """
        Handle /ready endpoint for readiness probes.

        Only the local Kubernetes API is essential: an unreachable upstream
        is served from the cache and must not take the pod out of service.
        """
        if self.health_checker is None:
            return json_response({"status": "ready", "timestamp": time.time()})

        try:
            result = await self.health_checker.check_kubernetes_api()
            ready = result.status == "healthy"
            return json_response(
                {
                    "status": "ready" if ready else "not_ready",
                    "timestamp": time.time(),
                    "checks": {"kubernetes_api": result.status},
                },
                status=200 if ready else 503,
            )
        except Exception as e:
            logger.error(f"Readiness check failed: {e}")
            return json_response(
                {
                    "status": "not_ready",
                    "error": f"{type(e).__name__}. Check logs for details.",
                    "timestamp": time.time(),
                },
                status=503,
            )

    async def _healthz_handler(self, request: Request) -> Response:
        """Handle /healthz endpoint for Kubernetes compatibility."""
        return Response(text="ok")

    async def start(self) -> None:
        """Start the metrics server."""
        try:
            self.runner = AppRunner(self.app)
            await self.runner.setup()

            self.site = TCPSite(self.runner, self.host, self.port)
            await self.site.start()

            logger.info(f"Metrics server started on {self.host}:{self.port}")
        except Exception as e:
            logger.error(f"Failed to start metrics server: {e}")
            raise

    async def stop(self) -> None:
        """Stop the metrics server."""
        try:
            if self.site:
                await self.site.stop()
                self.site = None

            if self.runner:
                await self.runner.cleanup()
                self.runner = None

            logger.info("Metrics server stopped")
        except Exception as e:
            logger.error(f"Error stopping metrics server: {e}")

    async def __aenter__(self):
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.stop()


# Global metrics collector instance
metrics_collector = MetricsCollector()
