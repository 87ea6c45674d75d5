"""
Project watch handlers.

Runs against the upstream cluster in dual cluster mode, against the local
cluster otherwise. Every event updates the Project loop and re-enqueues the
Namespaces the Project owns.
"""

from typing import Any

import kopf

from ..constants import (
    PROJECT_GROUP,
    PROJECT_PLURAL,
    PROJECT_VERSION,
    RESOURCE_PROJECT,
)
from ..models import Project
from ..settings import settings
from ..utils.handler_logging import log_handler_entry
from ..utils.kubernetes import upstream_connection_info
from ..utils.ownership import namespace_keys_for_project

registry = kopf.OperatorRegistry()


@kopf.on.login(registry=registry)
def login_projects_cluster(**kwargs: Any) -> kopf.ConnectionInfo | None:
    """Authenticate against the cluster holding the Projects."""
    if settings.is_downstream:
        return upstream_connection_info(settings.kubeconfig_upstream)
    return kopf.login_via_client(**kwargs)


@kopf.on.event(
    PROJECT_PLURAL, group=PROJECT_GROUP, version=PROJECT_VERSION, registry=registry
)
async def on_project_event(
    event: kopf.RawEvent, body: kopf.Body, memo: kopf.Memo, **kwargs: Any
) -> None:
    """
    Record a Project change and enqueue the affected objects.

    A DELETED event leaves a final copy marked as deleted so that the
    reconciler can drop the Project from the cache.
    """
    event_type = event.get("type")
    project = Project.from_body(dict(body), deleted=event_type == "DELETED")

    log_handler_entry(
        event_type, RESOURCE_PROJECT, project.name, project.namespace
    )

    if event_type == "DELETED":
        memo.project_loop.remove(project)
    else:
        memo.project_loop.upsert(project)

    namespace_loop = memo.namespace_loop
    for key in namespace_keys_for_project(project.key, namespace_loop.objects()):
        namespace_loop.enqueue(key)
