"""
Unit tests for MetricsServer HTTP endpoints.

Uses ``aiohttp.test_utils`` to drive the server's aiohttp application on an
ephemeral local port.
"""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp.test_utils import TestClient, TestServer

from project_info_propagator.observability.health import HealthCheckResult
from project_info_propagator.observability.metrics import MetricsServer


def result(name: str, status: str) -> HealthCheckResult:
    return HealthCheckResult(name=name, status=status, message=status)


@pytest.fixture
def health_checker() -> MagicMock:
    """Health checker double whose checks can be set per test."""
    checker = MagicMock()
    checker.check_all = AsyncMock(
        return_value={"kubernetes_api": result("kubernetes_api", "healthy")}
    )
    checker.check_kubernetes_api = AsyncMock(
        return_value=result("kubernetes_api", "healthy")
    )
    checker.to_dict = MagicMock(return_value={"status": "healthy", "checks": {}})
    return checker


async def make_client(server: MetricsServer) -> TestClient:
    client = TestClient(TestServer(server.app))
    await client.start_server()
    return client


@pytest.fixture
async def client():
    """Client for a server without health checker."""
    cli = await make_client(MetricsServer(port=0))
    yield cli
    await cli.close()


@pytest.fixture
async def checked_client(health_checker):
    """Client for a server backed by ``health_checker``."""
    cli = await make_client(MetricsServer(port=0, health_checker=health_checker))
    yield cli
    await cli.close()


class TestMetricsEndpoint:
    """Tests for ``GET /metrics``."""

    @pytest.mark.asyncio
    async def test_metrics_exposes_operator_metrics(self, client):
        resp = await client.get("/metrics")

        assert resp.status == 200
        body = await resp.text()
        assert "project_info_propagator_upstream_reachable" in body

    @pytest.mark.asyncio
    async def test_metrics_error_returns_500(self, client):
        """When generate_latest raises, the handler returns 500."""
        with patch(
            "project_info_propagator.observability.metrics.generate_latest",
            side_effect=RuntimeError("boom"),
        ):
            resp = await client.get("/metrics")

        assert resp.status == 500
        assert "RuntimeError" in await resp.text()


class TestHealthzEndpoint:
    @pytest.mark.asyncio
    async def test_healthz_returns_ok(self, client):
        resp = await client.get("/healthz")

        assert resp.status == 200
        assert await resp.text() == "ok"


class TestHealthEndpoint:
    """Tests for ``GET /health``."""

    @pytest.mark.asyncio
    async def test_without_checker_reports_unknown(self, client):
        resp = await client.get("/health")

        assert resp.status == 200
        assert (await resp.json())["status"] == "unknown"

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("status", "code"), [("healthy", 200), ("degraded", 200), ("unhealthy", 503)]
    )
    async def test_status_code_follows_overall_health(
        self, checked_client, health_checker, status, code
    ):
        health_checker.to_dict.return_value = {"status": status, "checks": {}}

        resp = await checked_client.get("/health")

        assert resp.status == code
        assert (await resp.json())["status"] == status

    @pytest.mark.asyncio
    async def test_failing_check_returns_500(self, checked_client, health_checker):
        health_checker.check_all.side_effect = RuntimeError("boom")

        resp = await checked_client.get("/health")

        assert resp.status == 500
        body = await resp.json()
        assert body["status"] == "unhealthy"
        assert "RuntimeError" in body["error"]


class TestReadyEndpoint:
    """Tests for ``GET /ready``."""

    @pytest.mark.asyncio
    async def test_without_checker_is_ready(self, client):
        resp = await client.get("/ready")

        assert resp.status == 200
        assert (await resp.json())["status"] == "ready"

    @pytest.mark.asyncio
    async def test_ready_when_local_api_healthy(self, checked_client, health_checker):
        resp = await checked_client.get("/ready")

        assert resp.status == 200
        body = await resp.json()
        assert body["status"] == "ready"
        assert body["checks"] == {"kubernetes_api": "healthy"}
        health_checker.check_all.assert_not_called()

    @pytest.mark.asyncio
    async def test_not_ready_when_local_api_down(self, checked_client, health_checker):
        health_checker.check_kubernetes_api.return_value = result(
            "kubernetes_api", "unhealthy"
        )

        resp = await checked_client.get("/ready")

        assert resp.status == 503
        assert (await resp.json())["status"] == "not_ready"

    @pytest.mark.asyncio
    async def test_failing_probe_is_not_ready(self, checked_client, health_checker):
        health_checker.check_kubernetes_api.side_effect = RuntimeError("boom")

        resp = await checked_client.get("/ready")

        assert resp.status == 503
