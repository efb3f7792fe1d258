"""Tag endpoints for the Collybrix project-management module."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collybrix.database.queries import project as project_queries
from collybrix.database.queries import tag as tag_queries
from collybrix.errors import NotFoundError
from collybrix.logging import get_logger
from collybrix.schema import CamelModel
from collybrix.web.dependencies import get_session_factory, parse_optional_uuid, path_uuid
from collybrix.web.envelope import ok

logger = get_logger(__name__)

TAG_NAME_PATTERN = r"^[a-zA-Z0-9\s\-_]+$"
COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


class TagCreate(CamelModel):
    project_id: UUID
    name: str = Field(..., min_length=1, max_length=50, pattern=TAG_NAME_PATTERN)
    color: str = Field(..., pattern=COLOR_PATTERN)


class TagUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=50, pattern=TAG_NAME_PATTERN)
    color: str | None = Field(default=None, pattern=COLOR_PATTERN)


class TagResponse(CamelModel):
    id: UUID
    project_id: UUID
    name: str
    color: str
    created_at: datetime
    updated_at: datetime


tag_id_param = path_uuid("tag_id", "tag")


def create_tags_router() -> APIRouter:
    """Create tag router.

    Routes:
        GET    /api/pm/tags       - List tags (optionally of one project)
        POST   /api/pm/tags       - Create a tag
        GET    /api/pm/tags/{id}  - Get a tag
        PUT    /api/pm/tags/{id}  - Rename or recolour a tag
        DELETE /api/pm/tags/{id}  - Delete a tag and detach it from tasks
    """
    router = APIRouter(prefix="/api/pm/tags", tags=["tags"])

    @router.get("")
    async def list_tags(
        project_id: str | None = Query(None, alias="projectId"),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            tags = await tag_queries.list_tags(
                session, project_id=parse_optional_uuid(project_id, "project")
            )
        return ok([TagResponse.model_validate(t) for t in tags])

    @router.post("", status_code=201)
    async def create_tag(
        payload: TagCreate,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            if not await project_queries.project_exists(session, payload.project_id):
                raise NotFoundError("Project not found")
            tag = await tag_queries.create_tag(
                session, payload.project_id, payload.name.strip(), payload.color
            )
        return ok(TagResponse.model_validate(tag), status_code=201)

    @router.get("/{tag_id}")
    async def get_tag(
        tag_id: UUID = Depends(tag_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            tag = await tag_queries.get_tag(session, tag_id)

        if tag is None:
            raise NotFoundError("Tag not found")
        return ok(TagResponse.model_validate(tag))

    @router.put("/{tag_id}")
    async def update_tag(
        payload: TagUpdate,
        tag_id: UUID = Depends(tag_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            tag = await tag_queries.update_tag(
                session,
                tag_id,
                name=payload.name.strip() if payload.name else None,
                color=payload.color,
            )

        if tag is None:
            raise NotFoundError("Tag not found")
        return ok(TagResponse.model_validate(tag))

    @router.delete("/{tag_id}")
    async def delete_tag(
        tag_id: UUID = Depends(tag_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            detached = await tag_queries.delete_tag(session, tag_id)

        if detached is None:
            raise NotFoundError("Tag not found")
        return ok({"id": str(tag_id), "deleted": True, "tasksUpdated": detached})

    return router
