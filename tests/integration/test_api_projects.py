"""Integration tests for the project endpoints.

Runs the FastAPI app against in-memory SQLite and checks the response
envelope, partial creation, reporting endpoints and error codes.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from httpx import AsyncClient


async def test_create_project_fills_defaults(client: AsyncClient) -> None:
    response = await client.post("/api/projects", json={"name": "Mobile App"})

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    project = body["data"]
    assert project["name"] == "Mobile App"
    assert project["company"] == ""
    assert project["status"] == "active"
    assert project["pipelineState"] == "scouting"
    assert project["finalPrice"] == 0
    assert project["milestones"] == []
    assert project["startedDate"] is None


async def test_list_projects_envelope(client: AsyncClient, project: dict[str, Any]) -> None:
    response = await client.get("/api/projects")

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert [p["id"] for p in body["data"]] == [project["id"]]
    assert "meta" not in body


async def test_list_projects_status_filter(client: AsyncClient, project: dict[str, Any]) -> None:
    await client.post("/api/projects", json={"name": "Old", "status": "finished"})

    response = await client.get("/api/projects", params={"status": "finished"})

    names = [p["name"] for p in response.json()["data"]]
    assert names == ["Old"]


async def test_get_project(client: AsyncClient, project: dict[str, Any]) -> None:
    response = await client.get(f"/api/projects/{project['id']}")

    assert response.status_code == 200
    assert response.json()["data"]["company"] == "Acme"


async def test_get_project_not_found(client: AsyncClient) -> None:
    response = await client.get(f"/api/projects/{uuid4()}")

    assert response.status_code == 404
    assert response.json() == {
        "success": False,
        "error": {"code": "NOT_FOUND", "message": "Project not found"},
    }


async def test_get_project_invalid_id(client: AsyncClient) -> None:
    response = await client.get("/api/projects/not-a-uuid")

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "INVALID_ID"
    assert error["message"] == "Invalid project ID format"


async def test_update_invalid_id_checked_before_body(client: AsyncClient) -> None:
    response = await client.put("/api/projects/123", json={"mmr": -5})

    assert response.status_code == 400
    assert response.json()["error"]["code"] == "INVALID_ID"


async def test_update_project_partial(client: AsyncClient, project: dict[str, Any]) -> None:
    response = await client.put(
        f"/api/projects/{project['id']}",
        json={"pipelineState": "negotiation", "mmr": 1500},
    )

    assert response.status_code == 200
    updated = response.json()["data"]
    assert updated["pipelineState"] == "negotiation"
    assert updated["mmr"] == 1500
    assert updated["name"] == "Website Redesign"


async def test_update_project_rejects_negative_price(
    client: AsyncClient, project: dict[str, Any]
) -> None:
    response = await client.put(f"/api/projects/{project['id']}", json={"finalPrice": -1})

    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "VALIDATION_ERROR"
    assert error["details"][0]["field"] == "finalPrice"


async def test_delete_project(client: AsyncClient, project: dict[str, Any]) -> None:
    response = await client.delete(f"/api/projects/{project['id']}")

    assert response.status_code == 200
    assert response.json()["data"] == {"id": project["id"], "deleted": True}

    missing = await client.delete(f"/api/projects/{project['id']}")
    assert missing.status_code == 404


async def test_pipeline_counts_active_projects_in_order(client: AsyncClient) -> None:
    for stage in ("closing", "scouting", "closing"):
        await client.post("/api/projects", json={"name": stage, "pipelineState": stage})
    await client.post(
        "/api/projects",
        json={"name": "lost", "pipelineState": "scouting", "status": "cancelled"},
    )

    response = await client.get("/api/projects/pipeline")

    assert response.status_code == 200
    assert response.json()["data"] == [
        {"stage": "Scouting", "count": 1},
        {"stage": "Closing", "count": 2},
    ]


async def test_revenue_report(client: AsyncClient) -> None:
    await client.post(
        "/api/projects",
        json={"name": "A", "startedDate": "2024-01-10", "mmr": 1000, "finalPrice": 20000},
    )
    await client.post(
        "/api/projects",
        json={"name": "B", "startedDate": "2024-03-02", "mmr": 500, "finalPrice": 5000},
    )
    await client.post(
        "/api/projects",
        json={
            "name": "C",
            "startedDate": "2024-02-01",
            "mmr": 900,
            "finalPrice": 7000,
            "status": "cancelled",
        },
    )

    response = await client.get("/api/projects/revenue")

    data = response.json()["data"]
    assert data["totalRevenue"] == 25000
    series = data["monthlyRevenueData"]
    assert series[0] == {"month": "Jan 2024", "revenue": 1000}
    assert series[1] == {"month": "Mar 2024", "revenue": 1500}
    today = datetime.now(timezone.utc)
    assert series[-1]["month"] == today.strftime("%b %Y")
    assert series[-1]["revenue"] == 1500
