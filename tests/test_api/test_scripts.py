"""Tests for script endpoints."""

import pytest
import pytest_asyncio
from httpx import AsyncClient

from helpers import userscript

CODE = userscript(
    "@name My Script",
    "@description Does things",
    "@version 1.0",
    "@include https://example.com/*",
)


async def create_script(client: AsyncClient, headers: dict, code: str = CODE):
    return await client.post("/api/v1/scripts/", json={"code": code}, headers=headers)


@pytest_asyncio.fixture
async def other_headers(client, other_user) -> dict:
    response = await client.post(
        "/api/v1/auth/login",
        data={"username": "other@example.com", "password": "otherpassword"},
    )
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.mark.asyncio
class TestScriptEndpoints:
    """Test script endpoints."""

    async def test_create(self, client: AsyncClient, auth_headers):
        """Posting valid code creates a script."""
        response = await create_script(client, auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "My Script"
        assert data["description"] == "Does things"
        assert data["version"] == "1.0"
        assert data["locale"] == "en"
        assert data["deleted"] is False
        assert data["url"].endswith(f"/scripts/{data['id']}-my-script")
        assert data["code_url"].endswith("/code/My Script.user.js")

    async def test_create_invalid(self, client: AsyncClient, auth_headers):
        """Validation errors come back keyed by field."""
        response = await create_script(client, auth_headers, userscript("@name Same", "@description Same"))

        assert response.status_code == 422
        assert response.json()["errors"] == {"@description:en": ["must be different from the name"]}

    async def test_create_missing_everything(self, client: AsyncClient, auth_headers):
        response = await create_script(client, auth_headers, "console.log(1);")

        assert response.status_code == 422
        errors = response.json()["errors"]
        assert errors["default_name"] == ["Script is missing @name"]
        assert errors["description"] == ["Script is missing @description"]

    async def test_get(self, client: AsyncClient, auth_headers):
        script_id = (await create_script(client, auth_headers)).json()["id"]

        response = await client.get(f"/api/v1/scripts/{script_id}")

        assert response.status_code == 200
        assert response.json()["id"] == script_id

    async def test_get_missing(self, client: AsyncClient):
        response = await client.get("/api/v1/scripts/999")

        assert response.status_code == 404

    async def test_list(self, client: AsyncClient, auth_headers):
        await create_script(client, auth_headers)

        response = await client.get("/api/v1/scripts/")

        assert response.status_code == 200
        assert [s["name"] for s in response.json()] == ["My Script"]

        response = await client.get("/api/v1/scripts/", params={"subset": "sleazyfork"})
        assert response.json() == []

    async def test_list_invalid_subset(self, client: AsyncClient):
        response = await client.get("/api/v1/scripts/", params={"subset": "everything"})

        assert response.status_code == 400

    async def test_new_version(self, client: AsyncClient, auth_headers):
        script_id = (await create_script(client, auth_headers)).json()["id"]

        response = await client.post(
            f"/api/v1/scripts/{script_id}/versions",
            json={"code": userscript("@name My Script", "@description Does more", "@version 1.1")},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.json()["version"] == "1.1"
        assert response.json()["description"] == "Does more"

    async def test_new_version_by_non_author(self, client: AsyncClient, auth_headers, other_headers):
        script_id = (await create_script(client, auth_headers)).json()["id"]

        response = await client.post(
            f"/api/v1/scripts/{script_id}/versions",
            json={"code": CODE},
            headers=other_headers,
        )

        assert response.status_code == 403

    async def test_delete(self, client: AsyncClient, auth_headers):
        script_id = (await create_script(client, auth_headers)).json()["id"]

        response = await client.delete(f"/api/v1/scripts/{script_id}", headers=auth_headers)

        assert response.status_code == 204
        assert (await client.get(f"/api/v1/scripts/{script_id}")).json()["deleted"] is True
        assert (await client.get("/api/v1/scripts/")).json() == []

    async def test_delete_by_non_author(self, client: AsyncClient, auth_headers, other_headers):
        script_id = (await create_script(client, auth_headers)).json()["id"]

        response = await client.delete(f"/api/v1/scripts/{script_id}", headers=other_headers)

        assert response.status_code == 403

    async def test_record_install(self, client: AsyncClient, auth_headers):
        script_id = (await create_script(client, auth_headers)).json()["id"]

        first = await client.post(f"/api/v1/scripts/{script_id}/installs")
        second = await client.post(f"/api/v1/scripts/{script_id}/installs")

        assert first.json() == {"counted": True}
        assert second.json() == {"counted": False}
