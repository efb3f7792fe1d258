"""Project-management metrics for Collybrix.

Pure functions over tasks and sprints that have already been loaded from
the database: sprint progress, burndown, velocity, scope creep, cycle time
and the grouping helpers behind the dashboard summaries. Nothing here does
I/O, so any object exposing the expected attributes can be passed in (ORM
rows in production, simple namespaces in tests).

Numeric policy:
    - Missing story points count as zero.
    - Percentages are rounded half-up to a whole number.
    - A zero denominator yields 0, never NaN or an exception.
"""

from __future__ import annotations

import math
from collections import Counter
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, timedelta, timezone
from typing import Any, Protocol

from pydantic import Field

from collybrix.database.models.task import TaskStatus
from collybrix.schema import CamelModel

SECONDS_PER_DAY = 86400
TOP_TAGS_LIMIT = 10

# BurndownPoint has a field named ``date``
CalendarDay = date


class TaskLike(Protocol):
    status: str
    type: str
    priority: str
    story_points: int | None
    assignee_id: str | None
    created_at: datetime
    started_at: datetime | None
    completed_at: datetime | None


class SprintLike(Protocol):
    name: str
    start_date: datetime
    end_date: datetime
    capacity: int
    committed_points: int


# ---------------------------------------------------------------------------
# Result Models
# ---------------------------------------------------------------------------


class SprintProgress(CamelModel):
    """Where a sprint stands relative to its time box and commitment."""

    total_points: int
    completed_points: int
    percentage_completed: int
    total_days: int
    days_elapsed: int
    days_remaining: int
    is_over_capacity: bool


class BurndownPoint(CamelModel):
    """One day of a burndown chart.

    Attributes:
        date: Calendar day (ISO date).
        ideal: Linear ideal remaining points, rounded to 2 decimals.
        remaining: Actual remaining points at the end of the day.
        completed: Points completed on or before the day.
        projected: True for days after today (remaining is carried forward).
    """

    date: CalendarDay
    ideal: float
    remaining: int
    completed: int
    projected: bool = False


class VelocityEntry(CamelModel):
    """Committed versus delivered points for one completed sprint."""

    sprint_id: str
    sprint_name: str
    start_date: datetime
    end_date: datetime
    committed_points: int
    completed_points: int
    percentage_completed: int


class VelocityReport(CamelModel):
    """Velocity series ordered oldest to newest."""

    velocity_data: list[VelocityEntry] = Field(default_factory=list)
    average_velocity: int = 0
    sprint_count: int = 0


class ScopeCreep(CamelModel):
    """Story points added to a sprint after it started."""

    added_points: int
    percentage: int


class TagUsage(CamelModel):
    tag_id: str
    tag_name: str
    count: int


class MemberWorkload(CamelModel):
    """Assigned work for one team member."""

    user_id: str
    user_name: str
    total_tasks: int
    total_story_points: int
    tasks_by_status: dict[str, int]


# ---------------------------------------------------------------------------
# Numeric helpers
# ---------------------------------------------------------------------------


def round_half_up(value: float) -> int:
    """Round to the nearest integer, halves away from zero for positives."""
    return int(math.floor(value + 0.5))


def percentage(part: float, whole: float) -> int:
    """Return part/whole as a whole-number percentage (0 when whole is 0)."""
    if not whole:
        return 0
    return round_half_up(part * 100 / whole)


def _points(task: TaskLike) -> int:
    return task.story_points or 0


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def span_days(start: datetime, end: datetime) -> int:
    """Whole days between two instants, rounding partial days up (min 0)."""
    seconds = (_as_utc(end) - _as_utc(start)).total_seconds()
    return max(0, math.ceil(seconds / SECONDS_PER_DAY))


# ---------------------------------------------------------------------------
# Sprint metrics
# ---------------------------------------------------------------------------


def total_points(tasks: Iterable[TaskLike]) -> int:
    """Sum of story points across tasks."""
    return sum(_points(task) for task in tasks)


def sprint_velocity(tasks: Iterable[TaskLike]) -> int:
    """Story points of the tasks that are done."""
    return sum(_points(task) for task in tasks if task.status == TaskStatus.done.value)


def sprint_progress(
    sprint: SprintLike,
    tasks: Sequence[TaskLike],
    now: datetime | None = None,
) -> SprintProgress:
    """Compute elapsed time and completion for a sprint.

    Args:
        sprint: Sprint with start/end dates, capacity and committed points.
        tasks: Tasks currently in the sprint.
        now: Reference time (defaults to the current UTC time).

    Returns:
        SprintProgress with completion percentage, day counts and the
        over-capacity flag (committed or planned points above capacity).
    """
    now = now or _utcnow()
    planned = total_points(tasks)
    completed = sprint_velocity(tasks)

    total_days = span_days(sprint.start_date, sprint.end_date)
    days_elapsed = min(total_days, span_days(sprint.start_date, now))

    return SprintProgress(
        total_points=planned,
        completed_points=completed,
        percentage_completed=percentage(completed, planned),
        total_days=total_days,
        days_elapsed=days_elapsed,
        days_remaining=max(0, total_days - days_elapsed),
        is_over_capacity=max(planned, sprint.committed_points or 0) > (sprint.capacity or 0),
    )


def burndown(
    sprint: SprintLike,
    tasks: Sequence[TaskLike],
    today: date | None = None,
) -> list[BurndownPoint]:
    """Build the burndown series for a sprint.

    The series has one point per calendar day from the start day through
    the end day, i.e. D + 1 points for a D-day sprint. The baseline is the
    committed points, or the planned points when the sprint has no
    commitment yet. The ideal line falls linearly from the baseline to
    zero. The actual line subtracts the points of done tasks completed on
    or before each day and never goes below zero, so it never increases.

    Args:
        sprint: Sprint to chart.
        tasks: Tasks currently in the sprint.
        today: Reference day (defaults to the current UTC date). Days after
            it are marked as projected.

    Returns:
        List of BurndownPoint ordered by date.
    """
    today = today or _utcnow().date()
    start_day = _as_utc(sprint.start_date).date()
    total_days = max(1, span_days(sprint.start_date, sprint.end_date))
    baseline = sprint.committed_points or total_points(tasks)

    completions = sorted(
        (_as_utc(task.completed_at).date(), _points(task))
        for task in tasks
        if task.status == TaskStatus.done.value and task.completed_at is not None
    )

    series: list[BurndownPoint] = []
    completed = 0
    cursor = 0
    for day in range(total_days + 1):
        current = start_day + timedelta(days=day)
        while cursor < len(completions) and completions[cursor][0] <= current:
            completed += completions[cursor][1]
            cursor += 1

        ideal = baseline - baseline * day / total_days
        series.append(
            BurndownPoint(
                date=current,
                ideal=round(max(0.0, ideal), 2),
                remaining=max(0, baseline - completed),
                completed=completed,
                projected=current > today,
            )
        )
    return series


def velocity_report(
    sprints: Iterable[tuple[Any, Sequence[TaskLike]]],
) -> VelocityReport:
    """Summarise delivered points for completed sprints.

    Args:
        sprints: Pairs of (sprint, tasks in that sprint). Sprints need an
            ``id``, ``name``, dates and ``committed_points``.

    Returns:
        VelocityReport ordered oldest to newest by end date, with the
        rounded mean of completed points. No sprints gives an empty series
        and an average of 0.
    """
    entries = []
    for sprint, tasks in sorted(sprints, key=lambda pair: _as_utc(pair[0].end_date)):
        completed = sprint_velocity(tasks)
        committed = sprint.committed_points or 0
        entries.append(
            VelocityEntry(
                sprint_id=str(sprint.id),
                sprint_name=sprint.name,
                start_date=sprint.start_date,
                end_date=sprint.end_date,
                committed_points=committed,
                completed_points=completed,
                percentage_completed=percentage(completed, committed),
            )
        )

    average = 0
    if entries:
        average = round_half_up(sum(e.completed_points for e in entries) / len(entries))

    return VelocityReport(
        velocity_data=entries,
        average_velocity=average,
        sprint_count=len(entries),
    )


def scope_creep(sprint: SprintLike, tasks: Iterable[TaskLike]) -> ScopeCreep:
    """Story points of tasks created after the sprint started.

    The percentage is relative to the committed points (0 when nothing was
    committed).
    """
    start = _as_utc(sprint.start_date)
    added = sum(_points(task) for task in tasks if _as_utc(task.created_at) > start)
    return ScopeCreep(
        added_points=added,
        percentage=percentage(added, sprint.committed_points or 0),
    )


def average_cycle_time(tasks: Iterable[TaskLike]) -> float:
    """Mean days from entering in_progress to reaching done.

    Tasks missing either timestamp are ignored. Returns 0.0 when no task
    qualifies; otherwise the mean rounded to one decimal.
    """
    durations = [
        (_as_utc(task.completed_at) - _as_utc(task.started_at)).total_seconds() / SECONDS_PER_DAY
        for task in tasks
        if task.started_at is not None and task.completed_at is not None
    ]
    if not durations:
        return 0.0
    return round(sum(durations) / len(durations), 1)


# ---------------------------------------------------------------------------
# Grouping helpers
# ---------------------------------------------------------------------------


def count_by_status(tasks: Iterable[TaskLike]) -> dict[str, int]:
    """Count tasks per status, listing every known status (zero included)."""
    counts = {status.value: 0 for status in TaskStatus}
    for task in tasks:
        counts[task.status] = counts.get(task.status, 0) + 1
    return counts


def count_by(tasks: Iterable[TaskLike], attribute: str) -> dict[str, int]:
    """Count tasks by the value of an attribute (e.g. "type" or "priority")."""
    return dict(Counter(str(getattr(task, attribute)) for task in tasks))


def top_tags(
    tag_ids_per_task: Iterable[Iterable[Any]],
    tag_names: Mapping[str, str],
    limit: int = TOP_TAGS_LIMIT,
) -> list[TagUsage]:
    """Most used tags, by descending usage count.

    Args:
        tag_ids_per_task: For each task, the ids of its tags.
        tag_names: Tag id (as string) to tag name.
        limit: Maximum number of tags returned.

    Returns:
        TagUsage entries; ties keep first-seen order.
    """
    counts: Counter[str] = Counter()
    for tag_ids in tag_ids_per_task:
        counts.update(str(tag_id) for tag_id in tag_ids)
    return [
        TagUsage(tag_id=tag_id, tag_name=tag_names.get(tag_id, "Unknown"), count=count)
        for tag_id, count in counts.most_common(limit)
    ]


def team_workload(
    tasks: Iterable[TaskLike],
    user_names: Mapping[str, str],
) -> list[MemberWorkload]:
    """Per-assignee task counts and story points; unassigned tasks are skipped."""
    grouped: dict[str, list[TaskLike]] = {}
    for task in tasks:
        if task.assignee_id:
            grouped.setdefault(task.assignee_id, []).append(task)

    return [
        MemberWorkload(
            user_id=user_id,
            user_name=user_names.get(user_id, "Unknown User"),
            total_tasks=len(member_tasks),
            total_story_points=total_points(member_tasks),
            tasks_by_status=count_by_status(member_tasks),
        )
        for user_id, member_tasks in grouped.items()
    ]


def bug_ratio(tasks: Sequence[TaskLike]) -> int:
    """Share of bugs among all tasks, as a whole-number percentage."""
    bugs = sum(1 for task in tasks if task.type == "bug")
    return percentage(bugs, len(tasks))
