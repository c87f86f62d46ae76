"""Tests for health check endpoints."""

from unittest.mock import AsyncMock, patch

from httpx import AsyncClient

from tests.conftest import InMemoryDocumentStore


class TestHealth:
    """Tests for /health, /health/live and /health/ready."""

    async def test_liveness(self, client: AsyncClient) -> None:
        """Liveness always answers alive."""
        response = await client.get("/health/live")

        assert response.status_code == 200
        assert response.json() == {"status": "alive"}

    async def test_readiness(self, client: AsyncClient) -> None:
        """Readiness answers once the store responds."""
        response = await client.get("/health/ready")

        assert response.status_code == 200
        assert response.json() == {"status": "ready"}

    async def test_health_reports_checks(self, client: AsyncClient) -> None:
        """Store and broker checks are reported individually."""
        redis_client = AsyncMock()
        with patch("redis.asyncio.from_url", return_value=redis_client):
            response = await client.get("/health")

        body = response.json()
        assert response.status_code == 200
        assert body["status"] == "healthy"
        assert body["checks"] == {"firestore": "healthy", "redis": "healthy"}

    async def test_health_unhealthy_store(
        self, client: AsyncClient, store: InMemoryDocumentStore
    ) -> None:
        """A failing store marks the service unhealthy."""
        failing = AsyncMock(side_effect=RuntimeError("no credentials"))
        with (
            patch.object(store, "get", failing),
            patch("redis.asyncio.from_url", return_value=AsyncMock()),
        ):
            response = await client.get("/health")

        body = response.json()
        assert body["status"] == "unhealthy"
        assert body["checks"]["firestore"].startswith("unhealthy")

    async def test_root(self, client: AsyncClient) -> None:
        """The root endpoint describes the API."""
        response = await client.get("/")

        assert response.json()["name"] == "Dissonant API"
