"""Tests for application-level routes and middleware."""

import pytest
from httpx import AsyncClient


@pytest.mark.api
class TestApp:
    async def test_health(self, client: AsyncClient):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    async def test_root(self, client: AsyncClient):
        response = await client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "running"

    async def test_request_id_is_echoed(self, client: AsyncClient):
        response = await client.get("/health", headers={"X-Request-Id": "req-123"})

        assert response.headers["X-Request-Id"] == "req-123"

    async def test_request_id_is_generated(self, client: AsyncClient):
        response = await client.get("/health")

        assert len(response.headers["X-Request-Id"]) == 32

    async def test_errors_carry_code(self, client: AsyncClient):
        response = await client.get("/api/v1/auth/me")

        assert response.json() == {
            "detail": "No token provided. Please login.",
            "code": "NOT_AUTHENTICATED",
        }
