"""Integration tests for the tag endpoints."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from httpx import AsyncClient

MakeFn = Callable[..., Awaitable[dict[str, Any]]]


async def _create_tag(client: AsyncClient, project_id: str, name: str, color: str = "#ff0000"):
    return await client.post(
        "/api/pm/tags",
        json={"projectId": project_id, "name": name, "color": color},
    )


async def test_create_and_list_tags(client: AsyncClient, project: dict[str, Any]) -> None:
    created = await _create_tag(client, project["id"], "frontend")
    await _create_tag(client, project["id"], "backend")

    assert created.status_code == 201
    assert created.json()["data"]["color"] == "#ff0000"
    listed = await client.get("/api/pm/tags", params={"projectId": project["id"]})
    assert [t["name"] for t in listed.json()["data"]] == ["backend", "frontend"]


async def test_duplicate_tag_name_is_case_insensitive(
    client: AsyncClient, project: dict[str, Any]
) -> None:
    await _create_tag(client, project["id"], "Frontend")

    response = await _create_tag(client, project["id"], "frontend")

    assert response.status_code == 409
    assert response.json()["error"]["code"] == "DUPLICATE_TAG"


async def test_same_tag_name_in_other_project(
    client: AsyncClient, project: dict[str, Any]
) -> None:
    other = (await client.post("/api/projects", json={"name": "Other"})).json()["data"]
    await _create_tag(client, project["id"], "frontend")

    response = await _create_tag(client, other["id"], "frontend")

    assert response.status_code == 201


async def test_tag_validation(client: AsyncClient, project: dict[str, Any]) -> None:
    bad_color = await _create_tag(client, project["id"], "design", color="red")
    bad_name = await _create_tag(client, project["id"], "design!")

    assert bad_color.status_code == 400
    assert bad_color.json()["error"]["details"][0]["field"] == "color"
    assert bad_name.status_code == 400
    assert bad_name.json()["error"]["details"][0]["field"] == "name"


async def test_create_tag_unknown_project(client: AsyncClient) -> None:
    response = await _create_tag(client, str(uuid4()), "frontend")

    assert response.status_code == 404
    assert response.json()["error"]["message"] == "Project not found"


async def test_update_tag_rename_conflict(client: AsyncClient, project: dict[str, Any]) -> None:
    await _create_tag(client, project["id"], "frontend")
    backend = (await _create_tag(client, project["id"], "backend")).json()["data"]

    conflict = await client.put(f"/api/pm/tags/{backend['id']}", json={"name": "FRONTEND"})
    recolor = await client.put(f"/api/pm/tags/{backend['id']}", json={"color": "#00ff00"})

    assert conflict.status_code == 409
    assert conflict.json()["error"]["code"] == "DUPLICATE_TAG"
    assert recolor.json()["data"]["color"] == "#00ff00"


async def test_delete_tag_detaches_from_tasks(
    client: AsyncClient, project: dict[str, Any], make_task: MakeFn
) -> None:
    tag = (await _create_tag(client, project["id"], "frontend")).json()["data"]
    task = await make_task(project["id"], tags=[tag["id"]])
    await make_task(project["id"], tags=[tag["id"]])

    response = await client.delete(f"/api/pm/tags/{tag['id']}")

    assert response.json()["data"] == {"id": tag["id"], "deleted": True, "tasksUpdated": 2}
    refreshed = await client.get(f"/api/pm/tasks/{task['id']}")
    assert refreshed.json()["data"]["tags"] == []
    assert (await client.get(f"/api/pm/tags/{tag['id']}")).status_code == 404
