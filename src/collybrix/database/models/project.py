"""Project model for Collybrix.

Defines the Project table tracking agency client work: commercial details,
pipeline stage, pricing and an ordered list of milestones stored as JSON.
"""

from __future__ import annotations

import enum
from typing import Any

from sqlalchemy import Float, Text
from sqlalchemy.orm import Mapped, mapped_column

from collybrix.database.models.base import Base, JSONType, TimestampMixin


class PipelineStage(str, enum.Enum):
    """Ordered sales and delivery phases a project moves through.

    Declaration order is the pipeline order (scouting first, finished last).
    """

    scouting = "scouting"
    initial_contact = "initial contact"
    qualification = "qualification"
    discovery = "discovery"
    technical_evaluation = "technical evaluation"
    due_diligence = "due diligence"
    presentation = "presentation"
    negotiation = "negotiation"
    terms = "terms"
    closing = "closing"
    to_start = "to start"
    in_progress = "in progress"
    finished = "finished"


PIPELINE_ORDER: dict[str, int] = {stage.value: i for i, stage in enumerate(PipelineStage)}

# Statuses whose recurring revenue does not count towards monthly revenue
INACTIVE_REVENUE_STATUSES = frozenset({"cancelled", "not started", "closed"})


class Project(TimestampMixin, Base):
    """A client project.

    Status and pipeline state are free text: the UI offers a fixed list but
    historical records carry other values, and reporting tolerates them.

    Attributes:
        name: Project name.
        company: Client company.
        status: Lifecycle status (active, finished, cancelled, ...).
        started_date: ISO date (YYYY-MM-DD) the engagement started.
        pipeline_state: Current PipelineStage value.
        initial_pricing: First quoted price.
        final_price: Agreed price.
        project_type: Engagement type (e.g. "Software Factory").
        mmr: Monthly recurring revenue.
        payment_status: Free-text payment state.
        description: Long description.
        docs_link: Link to external documentation.
        milestones: Ordered list of {date, type, name, description, deliverable}.
    """

    __tablename__ = "projects"

    name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    company: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    started_date: Mapped[str | None] = mapped_column(Text, nullable=True)
    pipeline_state: Mapped[str] = mapped_column(
        Text, nullable=False, default=PipelineStage.scouting.value
    )
    initial_pricing: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    final_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    project_type: Mapped[str] = mapped_column(Text, nullable=False, default="")
    mmr: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    payment_status: Mapped[str] = mapped_column(Text, nullable=False, default="")
    description: Mapped[str] = mapped_column(Text, nullable=False, default="")
    docs_link: Mapped[str] = mapped_column(Text, nullable=False, default="")
    milestones: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
