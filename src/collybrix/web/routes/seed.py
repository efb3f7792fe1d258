"""Demo data endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collybrix.database.seed import seed_projects
from collybrix.web.dependencies import get_session_factory
from collybrix.web.envelope import ok


def create_seed_router() -> APIRouter:
    """Create seed router.

    Routes:
        POST /api/seed - Load demo projects into an empty database
    """
    router = APIRouter(prefix="/api/seed", tags=["seed"])

    @router.post("")
    async def seed(
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            result = await seed_projects(session)
        return ok(result)

    return router
