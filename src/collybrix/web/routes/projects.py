"""Project endpoints for Collybrix.

This module provides REST API endpoints for managing client projects:
- List, create, read, update and delete projects
- Pipeline distribution of active projects
- Cumulative monthly recurring revenue

Example:
    >>> from fastapi import FastAPI
    >>> from collybrix.web.routes.projects import create_projects_router
    >>>
    >>> app = FastAPI()
    >>> app.include_router(create_projects_router())
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collybrix.database.queries import project as project_queries
from collybrix.errors import NotFoundError
from collybrix.logging import get_logger
from collybrix.reporting import pipeline_distribution, revenue_report
from collybrix.schema import CamelModel
from collybrix.web.dependencies import get_session_factory, path_uuid
from collybrix.web.envelope import ok

logger = get_logger(__name__)


class Milestone(CamelModel):
    date: str = ""
    type: str = ""
    name: str = ""
    description: str = ""
    deliverable: str = ""


class ProjectPayload(CamelModel):
    """Request body for creating or updating a project.

    Every field is optional: creation accepts a partial project and fills
    the rest with defaults, updates only touch the fields sent.
    """

    name: str | None = None
    company: str | None = None
    status: str | None = None
    started_date: str | None = None
    pipeline_state: str | None = None
    initial_pricing: float | None = Field(default=None, ge=0)
    final_price: float | None = Field(default=None, ge=0)
    project_type: str | None = None
    mmr: float | None = Field(default=None, ge=0)
    payment_status: str | None = None
    description: str | None = None
    docs_link: str | None = None
    milestones: list[Milestone] | None = None

    def column_values(self) -> dict[str, Any]:
        """Fields sent by the client, ready for the ORM."""
        values = self.model_dump(exclude_unset=True)
        # Nullable only for started_date; other columns keep their current value
        return {k: v for k, v in values.items() if v is not None or k == "started_date"}


class ProjectResponse(CamelModel):
    id: UUID
    name: str
    company: str
    status: str
    started_date: str | None
    pipeline_state: str
    initial_pricing: float
    final_price: float
    project_type: str
    mmr: float
    payment_status: str
    description: str
    docs_link: str
    milestones: list[dict[str, Any]]
    created_at: datetime
    updated_at: datetime


project_id_param = path_uuid("project_id", "project")


def create_projects_router() -> APIRouter:
    """Create project router.

    Routes:
        GET    /api/projects            - List projects
        POST   /api/projects            - Create a project
        GET    /api/projects/pipeline   - Active projects per pipeline stage
        GET    /api/projects/revenue    - Monthly revenue and total revenue
        GET    /api/projects/{id}       - Get a project
        PUT    /api/projects/{id}       - Update a project
        DELETE /api/projects/{id}       - Delete a project
    """
    router = APIRouter(prefix="/api/projects", tags=["projects"])

    @router.get("")
    async def list_projects(
        status: str | None = None,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            projects = await project_queries.list_projects(session, status_filter=status)

        logger.info("projects_listed", count=len(projects), status_filter=status)
        return ok([ProjectResponse.model_validate(p) for p in projects])

    @router.post("", status_code=201)
    async def create_project(
        payload: ProjectPayload,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            project = await project_queries.create_project(session, **payload.column_values())

        return ok(ProjectResponse.model_validate(project), status_code=201)

    @router.get("/pipeline")
    async def pipeline(
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        """Count of active projects per pipeline stage, in pipeline order."""
        async with session_factory() as session:
            projects = await project_queries.list_projects(session)

        return ok(pipeline_distribution(projects))

    @router.get("/revenue")
    async def revenue(
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        """Cumulative monthly recurring revenue and total active revenue."""
        async with session_factory() as session:
            projects = await project_queries.list_projects(session)

        return ok(revenue_report(projects))

    @router.get("/{project_id}")
    async def get_project(
        project_id: UUID = Depends(project_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            project = await project_queries.get_project(session, project_id)

        if project is None:
            raise NotFoundError("Project not found")
        return ok(ProjectResponse.model_validate(project))

    @router.put("/{project_id}")
    async def update_project(
        payload: ProjectPayload,
        project_id: UUID = Depends(project_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            project = await project_queries.update_project(
                session, project_id, **payload.column_values()
            )

        if project is None:
            raise NotFoundError("Project not found")
        return ok(ProjectResponse.model_validate(project))

    @router.delete("/{project_id}")
    async def delete_project(
        project_id: UUID = Depends(project_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            deleted = await project_queries.delete_project(session, project_id)

        if not deleted:
            raise NotFoundError("Project not found")
        return ok({"id": str(project_id), "deleted": True})

    return router
