"""Task endpoints for the Collybrix project-management module.

Provides filtering, sorting and pagination over tasks, partial updates
through both PUT and PATCH, and soft deletion (a deleted task is archived).
Status changes maintain ``startedAt``/``completedAt`` and the completed
points of the affected sprints.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import Field, PositiveFloat, field_validator
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collybrix.database.models.task import TaskPriority, TaskStatus, TaskType
from collybrix.database.queries import project as project_queries
from collybrix.database.queries import task as task_queries
from collybrix.database.queries.task import UNSET_FILTER, TaskFilters
from collybrix.errors import NotFoundError
from collybrix.logging import get_logger
from collybrix.schema import CamelModel
from collybrix.web.dependencies import (
    Pagination,
    get_pagination,
    get_session_factory,
    parse_optional_uuid,
    parse_uuid,
    path_uuid,
)
from collybrix.web.envelope import ok

logger = get_logger(__name__)

StoryPoints = Literal[1, 2, 3, 5, 8, 13, 21]

# Columns that cannot be cleared by sending null
REQUIRED_COLUMNS = frozenset(
    {"title", "description", "type", "priority", "status", "reporter_id"}
)


class AcceptanceCriterion(CamelModel):
    id: UUID
    text: str = Field(..., min_length=1)
    completed: bool = False


class Attachment(CamelModel):
    id: UUID
    url: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    type: Literal["image", "document", "link", "other"] = "other"
    uploaded_at: datetime


class TaskCreate(CamelModel):
    """Request schema for creating a task."""

    project_id: UUID
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    type: TaskType
    priority: TaskPriority
    status: TaskStatus = TaskStatus.backlog
    story_points: StoryPoints | None = None
    assignee_id: str | None = Field(default=None, min_length=1)
    reporter_id: str = Field(..., min_length=1)
    sprint_id: UUID | None = None
    tags: list[UUID] = Field(default_factory=list)
    acceptance_criteria: list[AcceptanceCriterion] = Field(default_factory=list)
    attachments: list[Attachment] = Field(default_factory=list)
    parent_id: UUID | None = None
    dependencies: list[UUID] = Field(default_factory=list)
    estimated_hours: PositiveFloat | None = None
    actual_hours: PositiveFloat | None = None
    due_date: datetime | None = None


class TaskUpdate(CamelModel):
    """Request schema for partial task updates.

    Only fields present in the body are applied. Identifiers and
    timestamps in the body are ignored.
    """

    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    type: TaskType | None = None
    priority: TaskPriority | None = None
    status: TaskStatus | None = None
    story_points: StoryPoints | None = None
    assignee_id: str | None = None
    reporter_id: str | None = Field(default=None, min_length=1)
    sprint_id: UUID | None = None
    tags: list[UUID] | None = None
    acceptance_criteria: list[AcceptanceCriterion] | None = None
    attachments: list[Attachment] | None = None
    parent_id: UUID | None = None
    dependencies: list[UUID] | None = None
    estimated_hours: PositiveFloat | None = None
    actual_hours: PositiveFloat | None = None
    due_date: datetime | None = None

    def changes(self) -> tuple[dict[str, Any], list[UUID] | None]:
        """Split the body into column changes and the replacement tag set."""
        values = _column_values(self, exclude_unset=True)
        values = {k: v for k, v in values.items() if v is not None or k not in REQUIRED_COLUMNS}
        tags = self.tags if "tags" in self.model_fields_set else None
        return values, tags


class TaskResponse(CamelModel):
    id: UUID
    project_id: UUID
    title: str
    description: str
    type: str
    status: str
    priority: str
    story_points: int | None
    assignee_id: str | None
    reporter_id: str
    sprint_id: UUID | None
    parent_id: UUID | None
    tags: list[str]
    dependencies: list[str]
    acceptance_criteria: list[dict[str, Any]]
    attachments: list[dict[str, Any]]
    estimated_hours: float | None
    actual_hours: float | None
    due_date: datetime | None
    started_at: datetime | None
    completed_at: datetime | None
    created_at: datetime
    updated_at: datetime

    @field_validator("tags", mode="before")
    @classmethod
    def _tag_ids(cls, value: Any) -> list[str]:
        return [str(getattr(tag, "id", tag)) for tag in value or []]


def _column_values(payload: TaskCreate | TaskUpdate, exclude_unset: bool = False) -> dict[str, Any]:
    """Dump a task body into the values the ORM columns expect.

    Nested JSON documents keep the camelCase keys clients send and read.
    """
    values = payload.model_dump(
        mode="json", exclude_unset=exclude_unset, exclude={"project_id", "tags"}
    )
    for key in ("acceptance_criteria", "attachments"):
        items = getattr(payload, key)
        if key in values and items is not None:
            values[key] = [item.model_dump(mode="json", by_alias=True) for item in items]
    for key in ("sprint_id", "parent_id"):
        if values.get(key) is not None:
            values[key] = UUID(values[key])
    if values.get("due_date") is not None:
        values["due_date"] = datetime.fromisoformat(values["due_date"])
    return values


task_id_param = path_uuid("task_id", "task")


def create_tasks_router() -> APIRouter:
    """Create task router.

    Routes:
        GET    /api/pm/tasks       - List tasks (filters, sort, pagination)
        POST   /api/pm/tasks       - Create a task
        GET    /api/pm/tasks/{id}  - Get a task
        PUT    /api/pm/tasks/{id}  - Update a task
        PATCH  /api/pm/tasks/{id}  - Update a task
        DELETE /api/pm/tasks/{id}  - Archive a task
    """
    router = APIRouter(prefix="/api/pm/tasks", tags=["tasks"])

    @router.get("")
    async def list_tasks(
        project_id: str | None = Query(None, alias="projectId"),  # noqa: B008
        sprint_id: str | None = Query(None, alias="sprintId"),  # noqa: B008
        status: list[TaskStatus] | None = Query(None),  # noqa: B008
        type: list[TaskType] | None = Query(None),  # noqa: B008
        priority: list[TaskPriority] | None = Query(None),  # noqa: B008
        assignee_id: list[str] | None = Query(None, alias="assigneeId"),  # noqa: B008
        tag: list[str] | None = Query(None),  # noqa: B008
        parent_id: str | None = Query(None, alias="parentId"),  # noqa: B008
        search: str | None = None,
        sort_by: str = Query("createdAt", alias="sortBy"),  # noqa: B008
        sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),  # noqa: B008
        pagination: Pagination = Depends(get_pagination),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        sprint_filter: UUID | str | None = sprint_id
        if sprint_id != UNSET_FILTER:
            sprint_filter = parse_optional_uuid(sprint_id, "sprint")

        filters = TaskFilters(
            project_id=parse_optional_uuid(project_id, "project"),
            sprint_id=sprint_filter,
            statuses=[s.value for s in status or []],
            types=[t.value for t in type or []],
            priorities=[p.value for p in priority or []],
            assignee_ids=list(assignee_id or []),
            tag_ids=[parse_uuid(t, "tag") for t in tag or []],
            parent_id=parse_optional_uuid(parent_id, "parent task"),
            search=search or None,
        )

        async with session_factory() as session:
            tasks, total = await task_queries.list_tasks(
                session,
                filters,
                page=pagination.page,
                page_size=pagination.page_size,
                sort_by=sort_by,
                sort_order=sort_order,
            )

        logger.info("tasks_listed", count=len(tasks), total=total)
        return ok(
            [TaskResponse.model_validate(t) for t in tasks],
            meta=pagination.meta(total),
        )

    @router.post("", status_code=201)
    async def create_task(
        payload: TaskCreate,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        fields = _column_values(payload)
        async with session_factory() as session:
            if not await project_queries.project_exists(session, payload.project_id):
                raise NotFoundError("Project not found")
            task = await task_queries.create_task(
                session,
                project_id=payload.project_id,
                tag_ids=payload.tags,
                **fields,
            )

        return ok(TaskResponse.model_validate(task), status_code=201)

    @router.get("/{task_id}")
    async def get_task(
        task_id: UUID = Depends(task_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            task = await task_queries.get_task(session, task_id)

        if task is None:
            raise NotFoundError("Task not found")
        return ok(TaskResponse.model_validate(task))

    async def _update(
        payload: TaskUpdate,
        task_id: UUID,
        session_factory: async_sessionmaker[AsyncSession],
    ) -> JSONResponse:
        changes, tag_ids = payload.changes()
        async with session_factory() as session:
            task = await task_queries.update_task(session, task_id, changes, tag_ids=tag_ids)

        if task is None:
            raise NotFoundError("Task not found")
        return ok(TaskResponse.model_validate(task))

    @router.put("/{task_id}")
    async def replace_task(
        payload: TaskUpdate,
        task_id: UUID = Depends(task_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        return await _update(payload, task_id, session_factory)

    @router.patch("/{task_id}")
    async def patch_task(
        payload: TaskUpdate,
        task_id: UUID = Depends(task_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        return await _update(payload, task_id, session_factory)

    @router.delete("/{task_id}")
    async def delete_task(
        task_id: UUID = Depends(task_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            task = await task_queries.archive_task(session, task_id)

        if task is None:
            raise NotFoundError("Task not found")
        return ok(TaskResponse.model_validate(task))

    return router
