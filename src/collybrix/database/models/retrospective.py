"""Retrospective models for Collybrix.

A sprint has at most one retrospective session. The session's format
decides which columns cards may be posted to; action items record the
follow-ups agreed during the retrospective.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import Boolean, ForeignKey, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from collybrix.database.models.base import Base, JSONType, TimestampMixin, UTCDateTime


class RetrospectiveFormat(str, enum.Enum):
    """Board templates."""

    mad_sad_glad = "mad-sad-glad"
    what_went_well = "what-went-well"
    start_stop_continue = "start-stop-continue"
    four_ls = "4ls"


class RetrospectivePhase(str, enum.Enum):
    """Phases a session is stepped through by its facilitator."""

    setup = "setup"
    collecting = "collecting"
    grouping = "grouping"
    voting = "voting"
    discussing = "discussing"
    actions = "actions"
    completed = "completed"


class ActionStatus(str, enum.Enum):
    """Progress of a retrospective action item."""

    todo = "todo"
    in_progress = "in_progress"
    done = "done"


FORMAT_COLUMNS: dict[RetrospectiveFormat, tuple[str, ...]] = {
    RetrospectiveFormat.mad_sad_glad: ("mad", "sad", "glad"),
    RetrospectiveFormat.what_went_well: ("went-well", "improve", "ideas"),
    RetrospectiveFormat.start_stop_continue: ("start", "stop", "continue"),
    RetrospectiveFormat.four_ls: ("loved", "loathed", "learned", "longed"),
}

DEFAULT_SESSION_SETTINGS: dict[str, Any] = {
    "allow_anonymous": True,
    "votes_per_person": 5,
    "timer_minutes": None,
}


class RetrospectiveSession(TimestampMixin, Base):
    """The retrospective board of one sprint.

    Attributes:
        sprint_id: Sprint under review (unique).
        format: RetrospectiveFormat value (stored as text).
        phase: RetrospectivePhase value.
        facilitator_id: Identity provider id of the facilitator.
        settings: {allow_anonymous, votes_per_person, timer_minutes}.
    """

    __tablename__ = "retrospective_sessions"

    sprint_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sprints.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    format: Mapped[str] = mapped_column(Text, nullable=False)
    phase: Mapped[RetrospectivePhase] = mapped_column(
        default=RetrospectivePhase.setup,
        nullable=False,
    )
    facilitator_id: Mapped[str] = mapped_column(Text, nullable=False)
    settings: Mapped[dict[str, Any]] = mapped_column(
        JSONType,
        nullable=False,
        default=lambda: dict(DEFAULT_SESSION_SETTINGS),
    )

    @property
    def columns(self) -> tuple[str, ...]:
        """Columns cards may be posted to for this session's format."""
        return FORMAT_COLUMNS[RetrospectiveFormat(self.format)]


class RetrospectiveCard(TimestampMixin, Base):
    """A sticky note on the retrospective board.

    Attributes:
        session_id: Owning session.
        sprint_id: Sprint of the owning session.
        column: One of the session format's columns.
        content: Card text.
        author_id: Identity provider id of the author.
        is_anonymous: Hide the author; anyone may then edit or delete.
        votes: Ids of users who voted for the card.
        group_id: Optional group the card was clustered into.
        group_title: Title of that group.
        order: Position within the column.
    """

    __tablename__ = "retrospective_cards"

    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("retrospective_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sprint_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sprints.id", ondelete="CASCADE"),
        nullable=False,
    )
    column: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str] = mapped_column(Text, nullable=False)
    author_id: Mapped[str] = mapped_column(Text, nullable=False)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    votes: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
    group_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    group_title: Mapped[str | None] = mapped_column(Text, nullable=True)
    order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class RetrospectiveAction(TimestampMixin, Base):
    """A follow-up agreed during a retrospective.

    Attributes:
        session_id: Owning session.
        sprint_id: Sprint of the owning session.
        title: Short summary.
        description: Details.
        assignee_id: Identity provider id of the owner.
        status: ActionStatus value.
        due_date: Optional due date.
        card_ids: Ids of the cards that led to this action.
    """

    __tablename__ = "retrospective_actions"

    session_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("retrospective_sessions.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    sprint_id: Mapped[uuid.UUID] = mapped_column(
        ForeignKey("sprints.id", ondelete="CASCADE"),
        nullable=False,
    )
    title: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    assignee_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[ActionStatus] = mapped_column(default=ActionStatus.todo, nullable=False)
    due_date: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    card_ids: Mapped[list[str]] = mapped_column(JSONType, nullable=False, default=list)
