"""Tests for /api/v1/users endpoints."""

import pytest
from httpx import AsyncClient

from academy.models.account import Accounts
from tests.conftest import auth_headers


@pytest.mark.api
class TestMyDevices:
    @pytest.mark.usefixtures("enforcement")
    async def test_lists_own_devices(self, client: AsyncClient, login, student: Accounts):
        tokens = (await login(student.email)).json()

        response = await client.get("/api/v1/users/me/devices", headers=auth_headers(tokens))

        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["devices"][0]["device_id"] == tokens["device_id"]
        assert data["devices"][0]["login_count"] == 1

    async def test_no_records_without_enforcement(
        self, client: AsyncClient, login, student: Accounts
    ):
        tokens = (await login(student.email)).json()

        response = await client.get("/api/v1/users/me/devices", headers=auth_headers(tokens))

        assert response.status_code == 200
        assert response.json() == {"total": 0, "devices": []}

    async def test_requires_authentication(self, client: AsyncClient):
        response = await client.get("/api/v1/users/me/devices")

        assert response.status_code == 401
