"""Database query functions for Collybrix.

This module provides async query functions for all database entities:
- Project and estimation CRUD
- Task listing, filtering and status bookkeeping
- Sprint lifecycle (start, complete, archive)
- Tags with per-project unique names
- Users of the project-management module
- Retrospective sessions, cards and action items
"""

from collybrix.database.queries.estimation import (
    create_estimation,
    delete_estimation,
    get_estimation,
    list_estimations,
    update_estimation,
)
from collybrix.database.queries.project import (
    count_projects,
    create_project,
    delete_project,
    get_project,
    list_projects,
    project_exists,
    update_project,
)
from collybrix.database.queries.retrospective import (
    create_action,
    create_card,
    create_retrospective,
    delete_action,
    delete_card,
    delete_retrospective,
    get_action,
    get_card,
    get_retrospective,
    list_actions,
    list_cards,
    update_action,
    update_card,
    update_retrospective,
)
from collybrix.database.queries.sprint import (
    archive_sprint,
    complete_sprint,
    create_sprint,
    get_sprint,
    list_sprints,
    recent_completed_sprints,
    sprints_in_project,
    start_sprint,
    update_sprint,
    validate_transition,
)
from collybrix.database.queries.tag import (
    create_tag,
    delete_tag,
    get_tag,
    list_tags,
    tag_names,
    update_tag,
)
from collybrix.database.queries.task import (
    TaskFilters,
    archive_task,
    create_task,
    get_task,
    list_sprint_tasks,
    list_tasks,
    tasks_in_project,
    tasks_in_sprint,
    update_task,
)
from collybrix.database.queries.user import (
    create_user,
    deactivate_user,
    get_user,
    list_users,
    update_user,
    user_names,
)

__all__ = [
    # Project queries
    "create_project",
    "get_project",
    "project_exists",
    "list_projects",
    "count_projects",
    "update_project",
    "delete_project",
    # Estimation queries
    "create_estimation",
    "get_estimation",
    "list_estimations",
    "update_estimation",
    "delete_estimation",
    # Task queries
    "TaskFilters",
    "create_task",
    "get_task",
    "list_tasks",
    "list_sprint_tasks",
    "tasks_in_sprint",
    "tasks_in_project",
    "update_task",
    "archive_task",
    # Sprint queries
    "create_sprint",
    "get_sprint",
    "list_sprints",
    "recent_completed_sprints",
    "sprints_in_project",
    "update_sprint",
    "start_sprint",
    "complete_sprint",
    "archive_sprint",
    "validate_transition",
    # Tag queries
    "create_tag",
    "get_tag",
    "list_tags",
    "tag_names",
    "update_tag",
    "delete_tag",
    # User queries
    "create_user",
    "get_user",
    "list_users",
    "user_names",
    "update_user",
    "deactivate_user",
    # Retrospective queries
    "create_retrospective",
    "get_retrospective",
    "update_retrospective",
    "delete_retrospective",
    "list_cards",
    "get_card",
    "create_card",
    "update_card",
    "delete_card",
    "list_actions",
    "get_action",
    "create_action",
    "update_action",
    "delete_action",
]
