"""Initial schema for Collybrix.

Creates the agency tables (projects, estimations) and the
project-management tables (users, sprints, tags, tasks, task_tags and the
retrospective sessions, cards and actions).

Revision ID: 001
Revises: None
Create Date: 2026-10-19
"""

from __future__ import annotations

from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

ENUMS = {
    "sprintstatus": ("planning", "active", "completed", "archived"),
    "estimationstatus": ("draft", "sent", "approved", "rejected"),
    "userrole": ("admin", "project_manager", "developer", "designer", "qa"),
    "retrospectivephase": (
        "setup", "collecting", "grouping", "voting", "discussing", "actions", "completed",
    ),
    "actionstatus": ("todo", "in_progress", "done"),
}


def _enum(name: str) -> sa.Enum:
    return sa.Enum(*ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Uuid(), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    for name, values in ENUMS.items():
        sa.Enum(*values, name=name).create(op.get_bind(), checkfirst=True)

    op.create_table(
        "projects",
        *_timestamps(),
        sa.Column("name", sa.Text(), nullable=False, server_default=""),
        sa.Column("company", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", sa.Text(), nullable=False, server_default="active"),
        sa.Column("started_date", sa.Text(), nullable=True),
        sa.Column("pipeline_state", sa.Text(), nullable=False, server_default="scouting"),
        sa.Column("initial_pricing", sa.Float(), nullable=False, server_default="0"),
        sa.Column("final_price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("project_type", sa.Text(), nullable=False, server_default=""),
        sa.Column("mmr", sa.Float(), nullable=False, server_default="0"),
        sa.Column("payment_status", sa.Text(), nullable=False, server_default=""),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("docs_link", sa.Text(), nullable=False, server_default=""),
        sa.Column("milestones", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
    )

    op.create_table(
        "estimations",
        *_timestamps(),
        sa.Column("project_name", sa.Text(), nullable=False),
        sa.Column("client_name", sa.Text(), nullable=False),
        sa.Column("team_members", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("resources", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("revenue_percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_cost", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_revenue", sa.Float(), nullable=False, server_default="0"),
        sa.Column("final_price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("payment_plan", JSONB, nullable=True),
        sa.Column("notes", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", _enum("estimationstatus"), nullable=False, server_default="draft"),
    )

    op.create_table(
        "users",
        *_timestamps(),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("email", sa.Text(), nullable=False, unique=True),
        sa.Column("role", _enum("userrole"), nullable=False, server_default="developer"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        sa.Column("external_id", sa.Text(), nullable=True, unique=True),
    )

    op.create_table(
        "sprints",
        *_timestamps(),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("goal", sa.Text(), nullable=False, server_default=""),
        sa.Column("status", _enum("sprintstatus"), nullable=False, server_default="planning"),
        sa.Column("start_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_date", sa.DateTime(timezone=True), nullable=False),
        sa.Column("capacity", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("committed_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("completed_points", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("retrospective_notes", sa.Text(), nullable=False, server_default=""),
    )
    op.create_index("ix_sprints_project_id", "sprints", ["project_id"])

    op.create_table(
        "tags",
        *_timestamps(),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.Text(), nullable=False),
        sa.Column("color", sa.Text(), nullable=False),
    )
    op.create_index("ix_tags_project_id", "tags", ["project_id"])

    op.create_table(
        "tasks",
        *_timestamps(),
        sa.Column(
            "project_id",
            sa.Uuid(),
            sa.ForeignKey("projects.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("type", sa.Text(), nullable=False, server_default="task"),
        sa.Column("status", sa.Text(), nullable=False, server_default="backlog"),
        sa.Column("priority", sa.Text(), nullable=False, server_default="medium"),
        sa.Column("story_points", sa.Integer(), nullable=True),
        sa.Column("assignee_id", sa.Text(), nullable=True),
        sa.Column("reporter_id", sa.Text(), nullable=False),
        sa.Column(
            "sprint_id",
            sa.Uuid(),
            sa.ForeignKey("sprints.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column(
            "parent_id",
            sa.Uuid(),
            sa.ForeignKey("tasks.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("dependencies", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("acceptance_criteria", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("attachments", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("estimated_hours", sa.Float(), nullable=True),
        sa.Column("actual_hours", sa.Float(), nullable=True),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index("ix_tasks_project_id", "tasks", ["project_id"])
    op.create_index("ix_tasks_status", "tasks", ["status"])
    op.create_index("ix_tasks_assignee_id", "tasks", ["assignee_id"])
    op.create_index("ix_tasks_sprint_id", "tasks", ["sprint_id"])

    op.create_table(
        "task_tags",
        sa.Column(
            "task_id",
            sa.Uuid(),
            sa.ForeignKey("tasks.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            sa.Uuid(),
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )

    op.create_table(
        "retrospective_sessions",
        *_timestamps(),
        sa.Column(
            "sprint_id",
            sa.Uuid(),
            sa.ForeignKey("sprints.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("format", sa.Text(), nullable=False),
        sa.Column("phase", _enum("retrospectivephase"), nullable=False, server_default="setup"),
        sa.Column("facilitator_id", sa.Text(), nullable=False),
        sa.Column("settings", JSONB, nullable=False, server_default=sa.text("'{}'::jsonb")),
    )

    op.create_table(
        "retrospective_cards",
        *_timestamps(),
        sa.Column(
            "session_id",
            sa.Uuid(),
            sa.ForeignKey("retrospective_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "sprint_id",
            sa.Uuid(),
            sa.ForeignKey("sprints.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("column", sa.Text(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("author_id", sa.Text(), nullable=False),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("votes", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("group_id", sa.Text(), nullable=True),
        sa.Column("group_title", sa.Text(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False, server_default="0"),
    )
    op.create_index("ix_retrospective_cards_session_id", "retrospective_cards", ["session_id"])

    op.create_table(
        "retrospective_actions",
        *_timestamps(),
        sa.Column(
            "session_id",
            sa.Uuid(),
            sa.ForeignKey("retrospective_sessions.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "sprint_id",
            sa.Uuid(),
            sa.ForeignKey("sprints.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("description", sa.Text(), nullable=False, server_default=""),
        sa.Column("assignee_id", sa.Text(), nullable=True),
        sa.Column("status", _enum("actionstatus"), nullable=False, server_default="todo"),
        sa.Column("due_date", sa.DateTime(timezone=True), nullable=True),
        sa.Column("card_ids", JSONB, nullable=False, server_default=sa.text("'[]'::jsonb")),
    )
    op.create_index("ix_retrospective_actions_session_id", "retrospective_actions", ["session_id"])


def downgrade() -> None:
    op.drop_table("retrospective_actions")
    op.drop_table("retrospective_cards")
    op.drop_table("retrospective_sessions")
    op.drop_table("task_tags")
    op.drop_table("tasks")
    op.drop_table("tags")
    op.drop_table("sprints")
    op.drop_table("users")
    op.drop_table("estimations")
    op.drop_table("projects")

    for name in reversed(list(ENUMS)):
        sa.Enum(name=name).drop(op.get_bind(), checkfirst=True)
