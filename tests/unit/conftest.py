"""Shared pytest fixtures for the unit tests."""

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from project_info_propagator.constants import NAMESPACE_ANNOTATION
from project_info_propagator.models import Namespace, Project


def project_body(
    name: str = "p1",
    namespace: str = "pns",
    labels: dict[str, str] | None = None,
    display_name: str | None = None,
) -> dict[str, Any]:
    """Raw ``management.cattle.io/v3`` Project body."""
    return {
        "apiVersion": "management.cattle.io/v3",
        "kind": "Project",
        "metadata": {"name": name, "namespace": namespace, "labels": labels or {}},
        "spec": {"displayName": display_name, "clusterName": namespace},
    }


def namespace_body(
    name: str = "ns1",
    labels: dict[str, str] | None = None,
    owner: str | None = None,
) -> dict[str, Any]:
    """Raw Namespace body, ``owner`` is the ownership annotation value."""
    metadata: dict[str, Any] = {"name": name, "labels": dict(labels or {})}
    if owner is not None:
        metadata["annotations"] = {NAMESPACE_ANNOTATION: owner}
        metadata["labels"][NAMESPACE_ANNOTATION] = owner.split(":", 1)[-1]
    return {"apiVersion": "v1", "kind": "Namespace", "metadata": metadata}


@pytest.fixture
def make_project():
    """Factory building Project models."""

    def _make(deleted: bool = False, **kwargs: Any) -> Project:
        return Project.from_body(project_body(**kwargs), deleted=deleted)

    return _make


@pytest.fixture
def make_namespace():
    """Factory building Namespace models."""

    def _make(deleted: bool = False, **kwargs: Any) -> Namespace:
        return Namespace.from_body(namespace_body(**kwargs), deleted=deleted)

    return _make


@pytest.fixture
def cluster_context() -> MagicMock:
    """Single cluster context with mocked Kubernetes handles."""
    context = MagicMock()
    context.is_downstream.return_value = False
    context.cluster_id = None
    context.is_upstream_reachable = AsyncMock(return_value=True)
    context.cache_update = AsyncMock()
    context.cache_delete = AsyncMock()
    context.cache_lookup = AsyncMock(return_value=None)
    context.namespaces.list_owned_by = AsyncMock(return_value=[])
    context.namespaces.apply_labels = AsyncMock()
    context.projects.namespace = "pns"
    context.projects.get = AsyncMock()
    return context


@pytest.fixture
def downstream_context(cluster_context: MagicMock) -> MagicMock:
    """Dual cluster context with mocked Kubernetes handles."""
    cluster_context.is_downstream.return_value = True
    cluster_context.cluster_id = "c-abc12"
    cluster_context.projects.namespace = "c-abc12"
    return cluster_context


@pytest.fixture
def raw_project():
    """Factory building raw Project bodies, as delivered by a watch."""
    return project_body


@pytest.fixture
def raw_namespace():
    """Factory building raw Namespace bodies, as delivered by a watch."""
    return namespace_body
