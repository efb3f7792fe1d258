"""Pytest fixtures for integration tests.

The app runs against an in-memory SQLite database (aiosqlite). A
StaticPool keeps the single connection alive so every session sees the
same tables. Requests go through httpx's ASGITransport.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest
import pytest_asyncio
from fastapi import FastAPI
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from collybrix.config import CollybrixConfig, IdentityConfig
from collybrix.database.models import Base
from collybrix.web.app import create_app

USER_ID = "user_facilitator"
OTHER_USER_ID = "user_other"
IDENTITY_BASE_URL = "https://identity.test/v1"


@pytest_asyncio.fixture
async def engine() -> AsyncGenerator[AsyncEngine, None]:
    test_engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield test_engine

    await test_engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def config() -> CollybrixConfig:
    return CollybrixConfig(
        identity=IdentityConfig(base_url=IDENTITY_BASE_URL, secret_key="sk_test_secret"),
    )


@pytest.fixture
def app(config: CollybrixConfig, session_factory: async_sessionmaker[AsyncSession]) -> FastAPI:
    test_app = create_app(config)
    test_app.state.session_factory = session_factory
    return test_app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncGenerator[AsyncClient, None]:
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def auth() -> dict[str, str]:
    """Headers of the signed-in facilitator."""
    return {"X-User-Id": USER_ID}


@pytest.fixture
def other_auth() -> dict[str, str]:
    return {"X-User-Id": OTHER_USER_ID}


@pytest_asyncio.fixture
async def project(client: AsyncClient) -> dict[str, Any]:
    response = await client.post(
        "/api/projects",
        json={"name": "Website Redesign", "company": "Acme", "status": "active"},
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.fixture
def make_sprint(client: AsyncClient) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory creating a planning sprint that started two days ago."""

    async def _make(project_id: str, **overrides: Any) -> dict[str, Any]:
        start = datetime.now(timezone.utc).replace(microsecond=0) - timedelta(days=2)
        body: dict[str, Any] = {
            "projectId": project_id,
            "name": "Sprint 1",
            "goal": "Ship the landing page",
            "startDate": start.isoformat(),
            "endDate": (start + timedelta(days=14)).isoformat(),
            "capacity": 20,
        }
        body.update(overrides)
        response = await client.post("/api/pm/sprints", json=body)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _make


@pytest.fixture
def make_task(client: AsyncClient) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory creating a task, 5-point high-priority story by default."""

    async def _make(project_id: str, **overrides: Any) -> dict[str, Any]:
        body: dict[str, Any] = {
            "projectId": project_id,
            "title": "Build hero section",
            "type": "story",
            "priority": "high",
            "reporterId": USER_ID,
            "storyPoints": 5,
        }
        body.update(overrides)
        response = await client.post("/api/pm/tasks", json=body)
        assert response.status_code == 201, response.text
        return response.json()["data"]

    return _make


@pytest_asyncio.fixture
async def sprint(
    project: dict[str, Any],
    make_sprint: Callable[..., Awaitable[dict[str, Any]]],
) -> dict[str, Any]:
    return await make_sprint(project["id"])
