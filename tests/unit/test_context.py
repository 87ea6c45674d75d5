"""Unit tests for the single and dual cluster contexts."""

import asyncio
import logging
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from project_info_propagator.cache import ProjectsCache
from project_info_propagator.context import (
    DualClusterContext,
    SingleClusterContext,
    dual_cluster,
    single_cluster,
)
from project_info_propagator.errors import CacheError, KubeconfigError


@pytest.fixture
def local_client() -> MagicMock:
    return MagicMock(name="local_client")


@pytest.fixture
def upstream_client() -> MagicMock:
    return MagicMock(name="upstream_client")


@pytest.fixture
async def projects_cache(tmp_path):
    async with ProjectsCache(tmp_path / "cache.sqlite") as cache:
        yield cache


@pytest.fixture
async def dual_context(
    local_client, upstream_client, projects_cache
) -> DualClusterContext:
    return DualClusterContext(
        local_client, upstream_client, "c-abc12", projects_cache, probe_timeout=1
    )


class TestSingleClusterContext:
    """Context used next to Rancher Manager."""

    def test_projects_scoped_to_local_namespace(self, local_client):
        context = single_cluster(local_client, "local")

        assert isinstance(context, SingleClusterContext)
        assert not context.is_downstream()
        assert context.cluster_id is None
        assert context.projects.namespace == "local"
        assert context.projects.api_client is local_client
        assert context.namespaces.api_client is local_client

    @pytest.mark.asyncio
    async def test_upstream_probe_is_an_error(self, local_client, caplog):
        context = single_cluster(local_client, "local")

        with caplog.at_level(logging.ERROR):
            assert await context.is_upstream_reachable() is False

        assert "upstream" in caplog.text.lower()

    @pytest.mark.asyncio
    async def test_cache_operations_are_noops(self, local_client, make_project):
        context = single_cluster(local_client, "local")
        project = make_project(labels={"propagate.tier": "gold"})

        await context.cache_update(project)
        await context.cache_delete(project)

        assert await context.cache_lookup(project.name) is None

    @pytest.mark.asyncio
    async def test_close_releases_client(self, local_client):
        await single_cluster(local_client, "local").close()

        local_client.close.assert_called_once()


class TestDualClusterContext:
    """Context used inside a downstream cluster."""

    def test_projects_scoped_to_cluster_id(
        self, dual_context, local_client, upstream_client
    ):
        assert dual_context.is_downstream()
        assert dual_context.cluster_id == "c-abc12"
        assert dual_context.projects.namespace == "c-abc12"
        assert dual_context.projects.api_client is upstream_client
        assert dual_context.namespaces.api_client is local_client

    @pytest.mark.asyncio
    async def test_cache_pass_through(self, dual_context, make_project):
        project = make_project(
            name="p1", labels={"propagate.tier": "gold", "owner": "team-a"}
        )

        await dual_context.cache_update(project)
        assert await dual_context.cache_lookup("p1") == {"tier": "gold"}

        await dual_context.cache_delete(project)
        assert await dual_context.cache_lookup("p1") is None

    @pytest.mark.asyncio
    async def test_cache_errors_propagate(self, dual_context, projects_cache):
        await projects_cache.close()

        with pytest.raises(CacheError):
            await dual_context.cache_lookup("p1")

    @pytest.mark.asyncio
    async def test_reader_waits_for_writer(self, dual_context):
        async with dual_context.lock.writer_lock:
            lookup = asyncio.create_task(dual_context.cache_lookup("p1"))
            await asyncio.sleep(0.05)
            assert not lookup.done()

        assert await lookup is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reachable", [True, False])
    async def test_upstream_probe(self, dual_context, upstream_client, reachable):
        probe = AsyncMock(return_value=reachable)

        with patch("project_info_propagator.context.check_api_reachable", probe):
            assert await dual_context.is_upstream_reachable() is reachable

        probe.assert_awaited_once_with(upstream_client, 1)

    @pytest.mark.asyncio
    async def test_close_releases_everything(
        self, dual_context, local_client, upstream_client
    ):
        await dual_context.close()

        local_client.close.assert_called_once()
        upstream_client.close.assert_called_once()
        with pytest.raises(CacheError):
            await dual_context.cache_lookup("p1")


class TestDualClusterFactory:
    """Construction of the downstream context at startup."""

    @pytest.mark.asyncio
    async def test_opens_cache(self, tmp_path, local_client, upstream_client):
        with patch(
            "project_info_propagator.context.get_upstream_client",
            return_value=upstream_client,
        ) as get_client:
            context = await dual_cluster(
                local_client,
                tmp_path / "kubeconfig",
                "c-abc12",
                tmp_path / "cache.sqlite",
            )

        try:
            get_client.assert_called_once_with(tmp_path / "kubeconfig")
            assert (tmp_path / "cache.sqlite").exists()
            assert await context.cache_lookup("p1") is None
        finally:
            await context.close()

    @pytest.mark.asyncio
    async def test_invalid_kubeconfig(self, tmp_path, local_client):
        with pytest.raises(KubeconfigError):
            await dual_cluster(
                local_client,
                tmp_path / "missing-kubeconfig",
                "c-abc12",
                tmp_path / "cache.sqlite",
            )

    @pytest.mark.asyncio
    async def test_unusable_cache_closes_upstream_client(
        self, tmp_path, local_client, upstream_client
    ):
        blocker = tmp_path / "file"
        blocker.write_text("not a directory")

        with patch(
            "project_info_propagator.context.get_upstream_client",
            return_value=upstream_client,
        ):
            with pytest.raises(CacheError):
                await dual_cluster(
                    local_client,
                    tmp_path / "kubeconfig",
                    "c-abc12",
                    blocker / "cache.sqlite",
                )

        upstream_client.close.assert_called_once()
