"""Liveness and readiness probes.

Both answer plain JSON (no success envelope) so load balancers and
container orchestrators can read them without knowing the API format.
A failed database ping answers 503.
"""

from __future__ import annotations

from typing import Literal

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import BaseModel
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collybrix.logging import get_logger
from collybrix.web.dependencies import get_session_factory

logger = get_logger(__name__)


class Liveness(BaseModel):
    status: Literal["ok"] = "ok"


class Readiness(BaseModel):
    status: Literal["ok", "unhealthy"]
    database: Literal["connected", "disconnected"]


async def ping_database(session_factory: async_sessionmaker[AsyncSession]) -> bool:
    """Run ``SELECT 1``; False when the database cannot be reached."""
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.warning("database_ping_failed", error=str(exc))
        return False
    return True


def create_health_router() -> APIRouter:
    """Create health router.

    Routes:
        GET /health/      - Process is up
        GET /health/ready - Process is up and the database answers
    """
    router = APIRouter(prefix="/health", tags=["health"])

    @router.get("/", response_model=Liveness)
    async def liveness() -> Liveness:
        return Liveness()

    @router.get("/ready", response_model=Readiness)
    async def readiness(
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> Readiness | JSONResponse:
        if await ping_database(session_factory):
            return Readiness(status="ok", database="connected")
        unhealthy = Readiness(status="unhealthy", database="disconnected")
        return JSONResponse(status_code=503, content=unhealthy.model_dump())

    return router
