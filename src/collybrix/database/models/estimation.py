"""Estimation model for Collybrix.

A cost estimation for prospective client work. Team members, resources and
the optional payment plan are embedded JSON documents; the totals are
computed server-side by ``collybrix.estimation`` before every write.
"""

from __future__ import annotations

import enum
from typing import Any

from sqlalchemy import Float, Text
from sqlalchemy.orm import Mapped, mapped_column

from collybrix.database.models.base import Base, JSONType, TimestampMixin


class EstimationStatus(str, enum.Enum):
    """Commercial state of an estimation."""

    draft = "draft"
    sent = "sent"
    approved = "approved"
    rejected = "rejected"


class Estimation(TimestampMixin, Base):
    """A priced estimation for a client project.

    Attributes:
        project_name: Name of the estimated project.
        client_name: Client the estimation is for.
        team_members: List of {id, name, role, daily_rate, days_allocated, total_cost}.
        resources: List of {id, name, type, cost, frequency, description}.
        revenue_percentage: Margin applied over total cost (0-100).
        total_cost: Team plus annualised resource cost.
        total_revenue: Margin amount.
        final_price: Total cost plus margin.
        payment_plan: Optional {enabled, number_of_months, monthly_amount, start_date}.
        notes: Free-text notes.
        status: EstimationStatus value.
    """

    __tablename__ = "estimations"

    project_name: Mapped[str] = mapped_column(Text, nullable=False)
    client_name: Mapped[str] = mapped_column(Text, nullable=False)
    team_members: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    resources: Mapped[list[dict[str, Any]]] = mapped_column(
        JSONType, nullable=False, default=list
    )
    revenue_percentage: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_cost: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    total_revenue: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    final_price: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    payment_plan: Mapped[dict[str, Any] | None] = mapped_column(JSONType, nullable=True)
    notes: Mapped[str] = mapped_column(Text, nullable=False, default="")
    status: Mapped[EstimationStatus] = mapped_column(
        default=EstimationStatus.draft,
        nullable=False,
    )
