"""FastAPI route definitions for the Collybrix web interface.

API routers for projects, estimations, tasks, sprints, retrospectives,
metrics, tags, users, the identity directory and demo seeding, plus
health checks and dashboard views.
"""

from __future__ import annotations

from collybrix.web.routes.dashboard import create_dashboard_router
from collybrix.web.routes.directory import create_directory_router
from collybrix.web.routes.estimations import (
    EstimationPayload,
    EstimationResponse,
    create_estimations_router,
)
from collybrix.web.routes.health import (
    Liveness,
    Readiness,
    create_health_router,
)
from collybrix.web.routes.metrics import create_metrics_router
from collybrix.web.routes.pm_users import (
    UserCreate,
    UserResponse,
    UserUpdate,
    create_pm_users_router,
)
from collybrix.web.routes.projects import (
    ProjectPayload,
    ProjectResponse,
    create_projects_router,
)
from collybrix.web.routes.retrospective import create_retrospective_router
from collybrix.web.routes.seed import create_seed_router
from collybrix.web.routes.sprints import (
    SprintCreate,
    SprintResponse,
    SprintUpdate,
    create_sprints_router,
)
from collybrix.web.routes.tags import TagCreate, TagResponse, TagUpdate, create_tags_router
from collybrix.web.routes.tasks import (
    TaskCreate,
    TaskResponse,
    TaskUpdate,
    create_tasks_router,
)

__all__ = [
    # Dashboard
    "create_dashboard_router",
    # Directory
    "create_directory_router",
    # Estimations
    "EstimationPayload",
    "EstimationResponse",
    "create_estimations_router",
    # Health
    "Liveness",
    "Readiness",
    "create_health_router",
    # Metrics
    "create_metrics_router",
    # Users
    "UserCreate",
    "UserResponse",
    "UserUpdate",
    "create_pm_users_router",
    # Projects
    "ProjectPayload",
    "ProjectResponse",
    "create_projects_router",
    # Retrospectives
    "create_retrospective_router",
    # Seed
    "create_seed_router",
    # Sprints
    "SprintCreate",
    "SprintResponse",
    "SprintUpdate",
    "create_sprints_router",
    # Tags
    "TagCreate",
    "TagResponse",
    "TagUpdate",
    "create_tags_router",
    # Tasks
    "TaskCreate",
    "TaskResponse",
    "TaskUpdate",
    "create_tasks_router",
]
