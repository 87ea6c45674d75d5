#!/usr/bin/env python3
"""
Project info propagator - Main entry point.

Keeps the ``propagate.``-prefixed labels of Rancher Projects in sync with the
Namespaces they own. Two kopf operators run side by side in one event loop:
one watches the Projects, on the upstream cluster when deployed in a
downstream cluster, the other watches the local Namespaces. Their handlers
feed two reconcile loops sharing one cluster context.

Usage:
    python -m project_info_propagator.operator
    # Or through the console script:
    project-info-propagator

Environment Variables:
    CLUSTER_ID: ID of the downstream cluster running the propagator
    KUBECONFIG_UPSTREAM: Kubeconfig of the cluster running Rancher Manager
    DATA_PATH: Directory holding the projects cache
    LOG_LEVEL: Logging level (TRACE, DEBUG, INFO, WARN, ERROR)
"""

import asyncio
import logging
import sys

import kopf

from project_info_propagator.context import (
    ClusterContext,
    dual_cluster,
    single_cluster,
)
from project_info_propagator.errors import OperatorError
from project_info_propagator.handlers import namespaces as namespace_handlers
from project_info_propagator.handlers import projects as project_handlers
from project_info_propagator.observability.health import HealthChecker
from project_info_propagator.observability.logging import setup_structured_logging
from project_info_propagator.observability.metrics import MetricsServer
from project_info_propagator.services import (
    NamespaceReconciler,
    ProjectReconciler,
    ReconcileLoop,
)
from project_info_propagator.settings import settings as operator_settings
from project_info_propagator.utils.kubernetes import get_kubernetes_client


def configure_logging() -> None:
    """Configure structured logging for the operator based on operator_settings."""
    setup_structured_logging(
        log_level=operator_settings.python_log_level,
        enable_json_formatting=operator_settings.json_logs,
        correlation_id_enabled=operator_settings.correlation_ids,
    )


def build_kopf_settings() -> kopf.OperatorSettings:
    """
    Settings shared by both kopf operators.

    Only watch-event handlers are registered, so kopf neither adds
    finalizers nor stores progress on the watched objects. Posting of
    k8s events is disabled: Projects belong to Rancher Manager.
    """
    settings = kopf.OperatorSettings()
    settings.posting.enabled = False
    settings.watching.reconnect_backoff = 1.0
    settings.admission.server = None
    settings.admission.managed = None
    return settings


async def create_context() -> ClusterContext:
    """
    Build the cluster context for the configured mode.

    Raises:
        KubeconfigError: If a kubeconfig cannot be loaded
        CacheError: If the projects cache cannot be opened
    """
    local_client = get_kubernetes_client()

    if operator_settings.is_downstream:
        return await dual_cluster(
            local_client,
            operator_settings.kubeconfig_upstream,  # type: ignore[arg-type]
            operator_settings.cluster_id,  # type: ignore[arg-type]
            operator_settings.cache_file,
            probe_timeout=operator_settings.upstream_probe_timeout_seconds,
        )
    return single_cluster(local_client, operator_settings.local_projects_namespace)


async def run(context: ClusterContext) -> None:
    """
    Run both watchers and both reconcile loops until one of them stops.

    A termination signal stops the kopf operators; the shared stop flag then
    drains the reconcile loops and stops the remaining tasks.
    """
    interval = operator_settings.reconcile_interval_seconds
    workers = operator_settings.max_concurrent_reconciles

    project_loop = ReconcileLoop(ProjectReconciler(context, interval), workers=workers)
    namespace_loop = ReconcileLoop(
        NamespaceReconciler(context, interval), workers=workers
    )
    memo = kopf.Memo(project_loop=project_loop, namespace_loop=namespace_loop)
    stop_flag = asyncio.Event()

    metrics_server: MetricsServer | None = None
    if operator_settings.metrics_enabled:
        metrics_server = MetricsServer(
            port=operator_settings.metrics_port,
            host=operator_settings.metrics_host,
            health_checker=HealthChecker(
                context, operator_settings.upstream_probe_timeout_seconds
            ),
        )
        await metrics_server.start()

    tasks = [
        asyncio.create_task(
            kopf.operator(
                registry=project_handlers.registry,
                settings=build_kopf_settings(),
                memo=memo,
                standalone=True,
                namespaces=[context.projects.namespace],
                stop_flag=stop_flag,
            ),
            name="projects-watcher",
        ),
        asyncio.create_task(
            kopf.operator(
                registry=namespace_handlers.registry,
                settings=build_kopf_settings(),
                memo=memo,
                standalone=True,
                clusterwide=True,
                stop_flag=stop_flag,
            ),
            name="namespaces-watcher",
        ),
        asyncio.create_task(project_loop.run(stop_flag), name="projects-loop"),
        asyncio.create_task(namespace_loop.run(stop_flag), name="namespaces-loop"),
    ]

    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        logging.info(
            f"{', '.join(task.get_name() for task in done)} stopped, shutting down"
        )
    finally:
        stop_flag.set()
        results = await asyncio.gather(*tasks, return_exceptions=True)
        if metrics_server is not None:
            await metrics_server.stop()

    for task, result in zip(tasks, results, strict=True):
        if isinstance(result, Exception):
            raise RuntimeError(f"{task.get_name()} failed") from result


async def run_operator() -> None:
    """Create the context, run until shutdown, and release the context."""
    context = await create_context()
    try:
        await run(context)
    finally:
        await context.close()


def main() -> None:
    """
    Main entry point for the operator.

    This function:
    1. Configures logging
    2. Validates the deployment mode
    3. Builds the cluster context, aborting on startup failures
    4. Runs the watchers and reconcile loops until a termination signal
    """
    configure_logging()

    try:
        operator_settings.validate_cluster_mode()
        asyncio.run(run_operator())
    except OperatorError as e:
        logging.error(f"Startup failed: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logging.info("Received shutdown signal")
        sys.exit(0)
    except Exception as e:
        logging.error(f"Operator failed with error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
