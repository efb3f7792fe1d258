"""Agency-level project reporting for Collybrix.

Pure aggregations over project rows: pipeline stage distribution, the
cumulative monthly recurring revenue series and total booked revenue.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Iterable
from datetime import date, datetime, timezone
from typing import Protocol

from collybrix.database.models.project import INACTIVE_REVENUE_STATUSES, PIPELINE_ORDER
from collybrix.logging import get_logger
from collybrix.schema import CamelModel

logger = get_logger(__name__)

MONTH_LABELS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


class ProjectLike(Protocol):
    status: str
    pipeline_state: str
    started_date: str | None
    mmr: float | None
    final_price: float | None


class PipelineBucket(CamelModel):
    stage: str
    count: int


class RevenuePoint(CamelModel):
    month: str
    revenue: float


class RevenueReport(CamelModel):
    monthly_revenue_data: list[RevenuePoint]
    total_revenue: float


def stage_label(stage: str) -> str:
    """Human label for a pipeline stage ("due diligence" -> "Due Diligence")."""
    return " ".join(word.capitalize() for word in stage.replace("_", " ").split())


def pipeline_distribution(projects: Iterable[ProjectLike]) -> list[PipelineBucket]:
    """Count active projects per pipeline stage, in pipeline order.

    Stages outside the known pipeline are kept and listed last.
    """
    counts = Counter(p.pipeline_state for p in projects if p.status == "active")
    ordered = sorted(counts, key=lambda s: (PIPELINE_ORDER.get(s, len(PIPELINE_ORDER)), s))
    return [PipelineBucket(stage=stage_label(stage), count=counts[stage]) for stage in ordered]


def _parse_start(value: str) -> date | None:
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def monthly_revenue(
    projects: Iterable[ProjectLike],
    today: date | None = None,
) -> list[RevenuePoint]:
    """Cumulative monthly recurring revenue by start month.

    Projects that are cancelled, closed or not started, or that have no
    start date, are skipped. The current month is always present (with no
    new revenue if nothing started in it). Each point carries the running
    total up to and including that month.

    Args:
        projects: Projects to aggregate.
        today: Reference day for the current month (defaults to UTC today).

    Returns:
        RevenuePoint list ordered chronologically, labelled like "Mar 2024".
    """
    today = today or datetime.now(timezone.utc).date()
    per_month: dict[tuple[int, int], float] = {}

    for project in projects:
        if project.status in INACTIVE_REVENUE_STATUSES or not project.started_date:
            continue
        started = _parse_start(project.started_date)
        if started is None:
            logger.warning("unparseable_start_date", started_date=project.started_date)
            continue
        key = (started.year, started.month)
        per_month[key] = per_month.get(key, 0.0) + (project.mmr or 0.0)

    per_month.setdefault((today.year, today.month), 0.0)

    series: list[RevenuePoint] = []
    running = 0.0
    for year, month in sorted(per_month):
        running += per_month[(year, month)]
        series.append(RevenuePoint(month=f"{MONTH_LABELS[month - 1]} {year}", revenue=running))
    return series


def total_revenue(projects: Iterable[ProjectLike]) -> float:
    """Sum of final prices of active projects."""
    return sum((p.final_price or 0.0) for p in projects if p.status == "active")


def revenue_report(projects: list[ProjectLike], today: date | None = None) -> RevenueReport:
    """Combine the monthly series and the total into one payload."""
    return RevenueReport(
        monthly_revenue_data=monthly_revenue(projects, today),
        total_revenue=total_revenue(projects),
    )
