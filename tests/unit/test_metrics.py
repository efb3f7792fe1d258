"""Unit tests for the project-management metrics."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from types import SimpleNamespace
from typing import Any

import pytest

from collybrix.pm.metrics import (
    average_cycle_time,
    bug_ratio,
    burndown,
    count_by,
    count_by_status,
    percentage,
    round_half_up,
    scope_creep,
    span_days,
    sprint_progress,
    sprint_velocity,
    team_workload,
    top_tags,
    total_points,
    velocity_report,
)

START = datetime(2024, 3, 4, 9, 0, tzinfo=timezone.utc)


def make_task(**overrides: Any) -> SimpleNamespace:
    fields: dict[str, Any] = {
        "status": "todo",
        "type": "task",
        "priority": "medium",
        "story_points": 3,
        "assignee_id": None,
        "created_at": START - timedelta(days=1),
        "started_at": None,
        "completed_at": None,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


def make_sprint(days: int = 10, committed: int = 0, capacity: int = 20, **extra: Any) -> SimpleNamespace:
    return SimpleNamespace(
        id=extra.pop("id", "s-1"),
        name=extra.pop("name", "Sprint 1"),
        start_date=extra.pop("start_date", START),
        end_date=extra.pop("end_date", START + timedelta(days=days)),
        capacity=capacity,
        committed_points=committed,
    )


class TestNumericHelpers:
    def test_round_half_up(self) -> None:
        assert round_half_up(2.5) == 3
        assert round_half_up(3.5) == 4
        assert round_half_up(2.49) == 2

    def test_percentage_zero_denominator(self) -> None:
        assert percentage(5, 0) == 0

    def test_percentage_rounds_half_up(self) -> None:
        assert percentage(1, 8) == 13  # 12.5
        assert percentage(2, 3) == 67

    def test_span_days_rounds_partial_days_up(self) -> None:
        assert span_days(START, START + timedelta(days=2, hours=1)) == 3
        assert span_days(START, START - timedelta(days=1)) == 0

    def test_span_days_accepts_naive_datetimes(self) -> None:
        naive = datetime(2024, 3, 4, 9, 0)
        assert span_days(naive, START + timedelta(days=1)) == 1


class TestSprintPoints:
    def test_missing_points_count_as_zero(self) -> None:
        tasks = [make_task(story_points=None), make_task(story_points=5)]
        assert total_points(tasks) == 5

    def test_velocity_only_counts_done(self) -> None:
        tasks = [
            make_task(status="done", story_points=5),
            make_task(status="in_review", story_points=8),
            make_task(status="done", story_points=None),
        ]
        assert sprint_velocity(tasks) == 5


class TestSprintProgress:
    def test_progress_mid_sprint(self) -> None:
        tasks = [make_task(status="done", story_points=5), make_task(story_points=3)]
        progress = sprint_progress(make_sprint(days=10), tasks, now=START + timedelta(days=4))

        assert progress.total_points == 8
        assert progress.completed_points == 5
        assert progress.percentage_completed == 63  # 62.5
        assert progress.total_days == 10
        assert progress.days_elapsed == 4
        assert progress.days_remaining == 6
        assert progress.is_over_capacity is False

    def test_days_elapsed_capped_after_end(self) -> None:
        progress = sprint_progress(make_sprint(days=5), [], now=START + timedelta(days=30))
        assert progress.days_elapsed == 5
        assert progress.days_remaining == 0
        assert progress.percentage_completed == 0

    def test_over_capacity_uses_committed_points(self) -> None:
        sprint = make_sprint(committed=25, capacity=20)
        assert sprint_progress(sprint, [make_task(story_points=1)], now=START).is_over_capacity

    def test_over_capacity_uses_planned_points(self) -> None:
        sprint = make_sprint(committed=0, capacity=5)
        tasks = [make_task(story_points=8)]
        assert sprint_progress(sprint, tasks, now=START).is_over_capacity


class TestBurndown:
    def test_series_has_one_point_per_day_inclusive(self) -> None:
        series = burndown(make_sprint(days=10, committed=20), [], today=date(2024, 3, 4))
        assert len(series) == 11
        assert series[0].date == date(2024, 3, 4)
        assert series[-1].date == date(2024, 3, 14)

    def test_ideal_line_falls_to_zero(self) -> None:
        series = burndown(make_sprint(days=4, committed=10), [], today=date(2024, 3, 4))
        assert [p.ideal for p in series] == [10.0, 7.5, 5.0, 2.5, 0.0]

    def test_remaining_never_increases(self) -> None:
        tasks = [
            make_task(status="done", story_points=5, completed_at=START + timedelta(days=1)),
            make_task(status="done", story_points=3, completed_at=START + timedelta(days=3)),
            make_task(status="todo", story_points=8),
        ]
        series = burndown(make_sprint(days=5, committed=16), tasks, today=date(2024, 3, 20))

        remaining = [p.remaining for p in series]
        assert remaining == [16, 11, 11, 8, 8, 8]
        assert all(a >= b for a, b in zip(remaining, remaining[1:]))

    def test_baseline_falls_back_to_planned_points(self) -> None:
        tasks = [make_task(story_points=5), make_task(story_points=8)]
        series = burndown(make_sprint(days=2, committed=0), tasks, today=date(2024, 3, 4))
        assert series[0].remaining == 13
        assert series[0].ideal == 13.0

    def test_remaining_not_negative_when_done_exceeds_baseline(self) -> None:
        tasks = [make_task(status="done", story_points=13, completed_at=START)]
        series = burndown(make_sprint(days=2, committed=5), tasks, today=date(2024, 3, 10))
        assert all(p.remaining == 0 for p in series)

    def test_days_after_today_are_projected(self) -> None:
        series = burndown(make_sprint(days=4, committed=8), [], today=date(2024, 3, 5))
        assert [p.projected for p in series] == [False, False, True, True, True]

    def test_zero_length_sprint_still_has_two_points(self) -> None:
        sprint = make_sprint(end_date=START)
        assert len(burndown(sprint, [], today=date(2024, 3, 4))) == 2


class TestVelocity:
    def test_empty_report(self) -> None:
        report = velocity_report([])
        assert report.velocity_data == []
        assert report.average_velocity == 0
        assert report.sprint_count == 0

    def test_sorted_oldest_first_with_rounded_average(self) -> None:
        older = make_sprint(id="s-1", name="Sprint 1", committed=10)
        newer = make_sprint(
            id="s-2",
            name="Sprint 2",
            committed=8,
            start_date=START + timedelta(days=14),
            end_date=START + timedelta(days=28),
        )
        report = velocity_report(
            [
                (newer, [make_task(status="done", story_points=8)]),
                (older, [make_task(status="done", story_points=5), make_task(story_points=5)]),
            ]
        )

        assert [e.sprint_name for e in report.velocity_data] == ["Sprint 1", "Sprint 2"]
        assert report.velocity_data[0].percentage_completed == 50
        assert report.velocity_data[1].percentage_completed == 100
        assert report.average_velocity == 7  # 6.5 rounds up
        assert report.sprint_count == 2

    def test_serialises_camel_case(self) -> None:
        report = velocity_report([(make_sprint(committed=0), [])])
        dumped = report.model_dump(by_alias=True)
        assert set(dumped) == {"velocityData", "averageVelocity", "sprintCount"}
        assert dumped["velocityData"][0]["percentageCompleted"] == 0


class TestScopeAndCycleTime:
    def test_scope_creep_counts_tasks_added_after_start(self) -> None:
        tasks = [
            make_task(story_points=5),
            make_task(story_points=3, created_at=START + timedelta(days=2)),
        ]
        creep = scope_creep(make_sprint(committed=12), tasks)
        assert creep.added_points == 3
        assert creep.percentage == 25

    def test_scope_creep_without_commitment(self) -> None:
        tasks = [make_task(created_at=START + timedelta(hours=1))]
        assert scope_creep(make_sprint(committed=0), tasks).percentage == 0

    def test_average_cycle_time(self) -> None:
        tasks = [
            make_task(started_at=START, completed_at=START + timedelta(days=2)),
            make_task(started_at=START, completed_at=START + timedelta(days=3)),
            make_task(started_at=START),
        ]
        assert average_cycle_time(tasks) == 2.5

    def test_average_cycle_time_empty(self) -> None:
        assert average_cycle_time([make_task()]) == 0.0


class TestGrouping:
    def test_count_by_status_lists_every_status(self) -> None:
        counts = count_by_status([make_task(status="done"), make_task(status="done")])
        assert counts["done"] == 2
        assert counts["backlog"] == 0
        assert "archived" in counts

    def test_count_by_attribute(self) -> None:
        tasks = [make_task(type="bug"), make_task(type="bug"), make_task(type="story")]
        assert count_by(tasks, "type") == {"bug": 2, "story": 1}

    def test_bug_ratio(self) -> None:
        tasks = [make_task(type="bug"), make_task(), make_task(), make_task()]
        assert bug_ratio(tasks) == 25
        assert bug_ratio([]) == 0

    def test_top_tags_orders_by_usage_and_limits(self) -> None:
        usage = top_tags(
            [["a", "b"], ["b"], ["c", "b"], ["a"]],
            {"a": "frontend", "b": "backend"},
            limit=2,
        )
        assert [(u.tag_name, u.count) for u in usage] == [("backend", 3), ("frontend", 2)]

    def test_top_tags_unknown_name(self) -> None:
        assert top_tags([["zzz"]], {})[0].tag_name == "Unknown"

    def test_team_workload_skips_unassigned(self) -> None:
        tasks = [
            make_task(assignee_id="user_1", story_points=5, status="done"),
            make_task(assignee_id="user_1", story_points=None),
            make_task(assignee_id=None),
            make_task(assignee_id="user_2", story_points=2),
        ]
        workload = {w.user_id: w for w in team_workload(tasks, {"user_1": "Ana"})}

        assert set(workload) == {"user_1", "user_2"}
        assert workload["user_1"].user_name == "Ana"
        assert workload["user_1"].total_tasks == 2
        assert workload["user_1"].total_story_points == 5
        assert workload["user_1"].tasks_by_status["done"] == 1
        assert workload["user_2"].user_name == "Unknown User"


@pytest.mark.parametrize(
    ("part", "whole", "expected"),
    [(0, 10, 0), (10, 10, 100), (1, 3, 33), (15, 10, 150)],
)
def test_percentage_values(part: int, whole: int, expected: int) -> None:
    assert percentage(part, whole) == expected
