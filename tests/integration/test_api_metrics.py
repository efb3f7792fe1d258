"""Integration tests for the project-management metrics endpoints."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any
from uuid import uuid4

from httpx import AsyncClient

MakeFn = Callable[..., Awaitable[dict[str, Any]]]


async def test_summary_requires_a_parameter(client: AsyncClient) -> None:
    response = await client.get("/api/pm/metrics/summary")

    assert response.status_code == 400
    assert response.json()["error"] == {
        "code": "MISSING_PARAMETER",
        "message": "Either sprintId or projectId query parameter is required",
    }


async def test_burndown_and_velocity_require_parameters(client: AsyncClient) -> None:
    burndown = await client.get("/api/pm/metrics/burndown")
    velocity = await client.get("/api/pm/metrics/velocity")

    assert burndown.json()["error"]["code"] == "MISSING_PARAMETER"
    assert velocity.json()["error"]["code"] == "MISSING_PARAMETER"


async def test_summary_invalid_and_unknown_sprint(client: AsyncClient) -> None:
    invalid = await client.get("/api/pm/metrics/summary", params={"sprintId": "nope"})
    unknown = await client.get("/api/pm/metrics/summary", params={"sprintId": str(uuid4())})

    assert invalid.json()["error"]["code"] == "INVALID_ID"
    assert unknown.status_code == 404


async def test_sprint_summary(
    client: AsyncClient, project: dict[str, Any], sprint: dict[str, Any], make_task: MakeFn
) -> None:
    await client.post(
        "/api/pm/users",
        json={"name": "Ana Lima", "email": "ana@collybrix.io", "externalId": "user_ana"},
    )
    done = await make_task(
        project["id"], sprintId=sprint["id"], storyPoints=8, assigneeId="user_ana"
    )
    await make_task(project["id"], sprintId=sprint["id"], storyPoints=13, type="bug")
    await make_task(project["id"], sprintId=sprint["id"], storyPoints=5, assigneeId="user_ana")
    await client.patch(f"/api/pm/tasks/{done['id']}", json={"status": "in_progress"})
    await client.patch(f"/api/pm/tasks/{done['id']}", json={"status": "done"})

    response = await client.get("/api/pm/metrics/summary", params={"sprintId": sprint["id"]})

    assert response.status_code == 200
    summary = response.json()["data"]
    assert summary["sprintName"] == "Sprint 1"
    assert summary["completedPoints"] == 8
    assert summary["percentageCompleted"] == 31
    assert summary["tasksTotal"] == 3
    assert summary["tasksByStatus"]["done"] == 1
    assert summary["tasksByStatus"]["backlog"] == 2
    assert summary["tasksByType"] == {"story": 2, "bug": 1}
    assert summary["isOverCapacity"] is True
    assert summary["totalDays"] == 14
    # started two days ago, partial days round up
    assert summary["daysElapsed"] in (2, 3)
    assert summary["daysElapsed"] + summary["daysRemaining"] == 14
    workload = {w["userId"]: w for w in summary["teamWorkload"]}
    assert workload["user_ana"]["userName"] == "Ana Lima"
    assert workload["user_ana"]["totalStoryPoints"] == 13


async def test_project_summary(
    client: AsyncClient, project: dict[str, Any], make_task: MakeFn
) -> None:
    tag = (
        await client.post(
            "/api/pm/tags",
            json={"projectId": project["id"], "name": "ui", "color": "#123456"},
        )
    ).json()["data"]
    await make_task(project["id"], type="bug", tags=[tag["id"]])
    await make_task(project["id"], type="story", storyPoints=3, tags=[tag["id"]])
    await make_task(project["id"], type="task", storyPoints=2)
    await make_task(project["id"], type="story", storyPoints=1)

    response = await client.get("/api/pm/metrics/summary", params={"projectId": project["id"]})

    summary = response.json()["data"]
    assert summary["projectName"] == "Website Redesign"
    assert summary["totalTasks"] == 4
    assert summary["totalStoryPoints"] == 11
    assert summary["bugRatio"] == 25
    assert summary["averageVelocity"] == 0
    assert summary["activeSprints"] == 0
    assert summary["topTags"] == [{"tagId": tag["id"], "tagName": "ui", "count": 2}]


async def test_burndown_series(
    client: AsyncClient, project: dict[str, Any], sprint: dict[str, Any], make_task: MakeFn
) -> None:
    task = await make_task(project["id"], sprintId=sprint["id"], storyPoints=5)
    await make_task(project["id"], sprintId=sprint["id"], storyPoints=5)
    await client.post(f"/api/pm/sprints/{sprint['id']}/start")
    await client.patch(f"/api/pm/tasks/{task['id']}", json={"status": "done"})

    response = await client.get("/api/pm/metrics/burndown", params={"sprintId": sprint["id"]})

    series = response.json()["data"]
    assert len(series) == 15
    assert series[0]["ideal"] == 10
    assert series[-1]["ideal"] == 0
    assert series[0]["remaining"] == 10
    assert series[-1]["remaining"] == 5
    assert series[0]["projected"] is False
    assert series[-1]["projected"] is True
    remaining = [point["remaining"] for point in series]
    assert remaining == sorted(remaining, reverse=True)


async def test_velocity_of_completed_sprints(
    client: AsyncClient, project: dict[str, Any], make_sprint: MakeFn, make_task: MakeFn
) -> None:
    for points in (5, 8):
        sprint = await make_sprint(project["id"], name=f"Sprint {points}")
        task = await make_task(project["id"], sprintId=sprint["id"], storyPoints=points)
        await make_task(project["id"], sprintId=sprint["id"], storyPoints=3)
        await client.post(f"/api/pm/sprints/{sprint['id']}/start")
        await client.patch(f"/api/pm/tasks/{task['id']}", json={"status": "done"})
        await client.post(f"/api/pm/sprints/{sprint['id']}/complete")

    response = await client.get("/api/pm/metrics/velocity", params={"projectId": project["id"]})

    report = response.json()["data"]
    assert report["sprintCount"] == 2
    assert report["averageVelocity"] == 7
    entries = {e["sprintName"]: e for e in report["velocityData"]}
    assert entries["Sprint 8"]["committedPoints"] == 11
    assert entries["Sprint 8"]["percentageCompleted"] == 73

    summary = await client.get("/api/pm/metrics/summary", params={"projectId": project["id"]})
    assert summary.json()["data"]["completedSprints"] == 2
    assert summary.json()["data"]["averageVelocity"] == 7
