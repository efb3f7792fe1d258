"""Integration tests for the project-management user endpoints."""

from __future__ import annotations

from typing import Any

import pytest
from httpx import AsyncClient


@pytest.fixture
def user_body() -> dict[str, Any]:
    return {
        "name": "Dana Scully",
        "email": "Dana@Collybrix.io",
        "role": "designer",
        "externalId": "user_dana",
    }


async def test_create_user_normalises_email(
    client: AsyncClient, user_body: dict[str, Any]
) -> None:
    response = await client.post("/api/pm/users", json=user_body)

    assert response.status_code == 201
    user = response.json()["data"]
    assert user["email"] == "dana@collybrix.io"
    assert user["role"] == "designer"
    assert user["isActive"] is True


async def test_create_user_rejects_invalid_email(
    client: AsyncClient, user_body: dict[str, Any]
) -> None:
    user_body["email"] = "not-an-email"

    response = await client.post("/api/pm/users", json=user_body)

    assert response.status_code == 400
    assert response.json()["error"]["details"][0]["field"] == "email"


async def test_duplicate_email(client: AsyncClient, user_body: dict[str, Any]) -> None:
    await client.post("/api/pm/users", json=user_body)
    user_body["externalId"] = "user_other"
    user_body["email"] = "dana@collybrix.io"

    response = await client.post("/api/pm/users", json=user_body)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "DUPLICATE_USER"


async def test_duplicate_external_id(client: AsyncClient, user_body: dict[str, Any]) -> None:
    await client.post("/api/pm/users", json=user_body)
    user_body["email"] = "fox@collybrix.io"

    response = await client.post("/api/pm/users", json=user_body)

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "DUPLICATE_USER"


async def test_get_user_by_id_or_external_id(
    client: AsyncClient, user_body: dict[str, Any]
) -> None:
    created = (await client.post("/api/pm/users", json=user_body)).json()["data"]

    by_id = await client.get(f"/api/pm/users/{created['id']}")
    by_external = await client.get("/api/pm/users/user_dana")
    missing = await client.get("/api/pm/users/user_nobody")

    assert by_id.json()["data"]["id"] == created["id"]
    assert by_external.json()["data"]["id"] == created["id"]
    assert missing.status_code == 404
    assert missing.json()["error"]["message"] == "User not found"


async def test_update_user(client: AsyncClient, user_body: dict[str, Any]) -> None:
    await client.post("/api/pm/users", json=user_body)

    response = await client.put("/api/pm/users/user_dana", json={"role": "project_manager"})

    assert response.status_code == 200
    assert response.json()["data"]["role"] == "project_manager"
    assert response.json()["data"]["name"] == "Dana Scully"


async def test_delete_user_deactivates(client: AsyncClient, user_body: dict[str, Any]) -> None:
    created = (await client.post("/api/pm/users", json=user_body)).json()["data"]
    await client.post(
        "/api/pm/users",
        json={"name": "Fox Mulder", "email": "fox@collybrix.io", "role": "developer"},
    )

    response = await client.delete(f"/api/pm/users/{created['id']}")

    assert response.json()["data"]["isActive"] is False
    active = await client.get("/api/pm/users", params={"isActive": "true"})
    assert [u["name"] for u in active.json()["data"]] == ["Fox Mulder"]
    designers = await client.get("/api/pm/users", params={"role": "designer"})
    assert [u["name"] for u in designers.json()["data"]] == ["Dana Scully"]
