"""Dashboard routes for HTML views.

Server-rendered pages built with Jinja2: a project overview with the
pipeline and revenue figures, and a kanban board for a project's current
sprint.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collybrix.database.models.sprint import Sprint, SprintStatus
from collybrix.database.models.task import TaskStatus
from collybrix.database.queries import project as project_queries
from collybrix.database.queries import sprint as sprint_queries
from collybrix.database.queries import task as task_queries
from collybrix.errors import NotFoundError
from collybrix.logging import get_logger
from collybrix.pm.metrics import sprint_progress
from collybrix.reporting import pipeline_distribution, revenue_report, stage_label
from collybrix.web.dependencies import get_session_factory, path_uuid

logger = get_logger(__name__)

TEMPLATES_DIR = Path(__file__).parent.parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

# Columns shown on the board, in order
BOARD_COLUMNS: tuple[TaskStatus, ...] = (
    TaskStatus.todo,
    TaskStatus.in_progress,
    TaskStatus.in_review,
    TaskStatus.in_testing,
    TaskStatus.done,
)

PRIORITY_COLORS = {
    "critical": "bg-red-100 text-red-800",
    "high": "bg-orange-100 text-orange-800",
    "medium": "bg-yellow-100 text-yellow-800",
    "low": "bg-gray-100 text-gray-800",
}


def _current_sprint(sprints: list[Sprint]) -> Sprint | None:
    """The active sprint, else the most recent one being planned."""
    for status in (SprintStatus.active, SprintStatus.planning):
        for sprint in sprints:
            if sprint.status == status:
                return sprint
    return None


def _board_columns(tasks: list[Any]) -> list[dict[str, Any]]:
    columns = []
    for status in BOARD_COLUMNS:
        column_tasks = [t for t in tasks if t.status == status.value]
        columns.append(
            {
                "status": status.value,
                "title": stage_label(status.value),
                "tasks": column_tasks,
                "points": sum(t.story_points or 0 for t in column_tasks),
            }
        )
    return columns


project_id_param = path_uuid("project_id", "project")


def create_dashboard_router() -> APIRouter:
    """Create the dashboard router for HTML views.

    Routes:
        GET /dashboard/                   - Project overview
        GET /dashboard/projects/{id}/board - Kanban board of the current sprint
    """
    router = APIRouter(prefix="/dashboard", tags=["dashboard"])

    @router.get("/", response_class=HTMLResponse)
    async def overview(
        request: Request,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> HTMLResponse:
        async with session_factory() as session:
            projects = await project_queries.list_projects(session)

        logger.debug("dashboard_overview_rendered", projects=len(projects))
        return templates.TemplateResponse(
            request,
            "overview.html",
            {
                "projects": projects,
                "pipeline": pipeline_distribution(projects),
                "revenue": revenue_report(projects),
                "stage_label": stage_label,
            },
        )

    @router.get("/projects/{project_id}/board", response_class=HTMLResponse)
    async def board(
        request: Request,
        project_id: UUID = Depends(project_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> HTMLResponse:
        async with session_factory() as session:
            project = await project_queries.get_project(session, project_id)
            if project is None:
                raise NotFoundError("Project not found")
            sprints, _ = await sprint_queries.list_sprints(session, project_id=project_id)
            sprint = _current_sprint(sprints)
            tasks = await task_queries.tasks_in_sprint(session, sprint.id) if sprint else []

        logger.debug(
            "dashboard_board_rendered",
            project_id=str(project_id),
            sprint_id=str(sprint.id) if sprint else None,
            tasks=len(tasks),
        )
        return templates.TemplateResponse(
            request,
            "board.html",
            {
                "project": project,
                "sprint": sprint,
                "progress": sprint_progress(sprint, tasks) if sprint else None,
                "columns": _board_columns(tasks),
                "priority_colors": PRIORITY_COLORS,
            },
        )

    return router
