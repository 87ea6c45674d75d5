"""
Namespace watch handlers.

Always runs against the cluster hosting the propagator. Every event updates
the Namespace loop and re-enqueues the Project owning the Namespace.
"""

from typing import Any

import kopf

from ..constants import RESOURCE_NAMESPACE
from ..models import Namespace
from ..utils.handler_logging import log_handler_entry
from ..utils.ownership import project_key_for_namespace

registry = kopf.OperatorRegistry()


@kopf.on.login(registry=registry)
def login_local_cluster(**kwargs: Any) -> kopf.ConnectionInfo | None:
    """Authenticate against the cluster running the propagator."""
    return kopf.login_via_client(**kwargs)


@kopf.on.event("v1", "namespaces", registry=registry)
async def on_namespace_event(
    event: kopf.RawEvent, body: kopf.Body, memo: kopf.Memo, **kwargs: Any
) -> None:
    """Record a Namespace change and enqueue it along with its owning Project."""
    event_type = event.get("type")
    namespace = Namespace.from_body(dict(body), deleted=event_type == "DELETED")

    log_handler_entry(event_type, RESOURCE_NAMESPACE, namespace.name, None)

    if event_type == "DELETED":
        memo.namespace_loop.remove(namespace)
    else:
        memo.namespace_loop.upsert(namespace)

    owner = project_key_for_namespace(namespace)
    if owner is not None:
        memo.project_loop.enqueue(owner)
