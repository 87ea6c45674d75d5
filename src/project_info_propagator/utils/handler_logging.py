"""Shared logging utilities for kopf handlers.

This module provides common logging functions used by the watch handlers of
both resource kinds to ensure consistent logging format and behavior.
"""

import logging
from typing import Any

logger = logging.getLogger(__name__)


def log_handler_entry(
    event_type: str | None,
    resource_type: str,
    name: str,
    namespace: str | None,
    extra: dict[str, Any] | None = None,
) -> None:
    """Log a watch event at DEBUG level.

    Args:
        event_type: Watch event type (None for the initial listing)
        resource_type: Type of resource (project, namespace)
        name: Resource name
        namespace: Resource namespace, None for cluster-scoped resources
        extra: Additional context to include in structured log
    """
    log_extra = {
        "handler_type": event_type or "LISTED",
        "resource_type": resource_type,
        "resource_name": name,
        "namespace": namespace,
        "handler_phase": "invoked",
    }
    if extra:
        log_extra.update(extra)

    location = f" in {namespace}" if namespace else ""
    logger.debug(
        f"Watch event {event_type or 'LISTED'} for {resource_type}/{name}{location}",
        extra=log_extra,
    )
