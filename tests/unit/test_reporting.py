"""Unit tests for pipeline and revenue reporting."""

from __future__ import annotations

from datetime import date
from types import SimpleNamespace
from typing import Any

from collybrix.reporting import (
    monthly_revenue,
    pipeline_distribution,
    revenue_report,
    stage_label,
    total_revenue,
)

TODAY = date(2024, 6, 15)


def project(**overrides: Any) -> SimpleNamespace:
    fields: dict[str, Any] = {
        "status": "active",
        "pipeline_state": "scouting",
        "started_date": None,
        "mmr": 0.0,
        "final_price": 0.0,
    }
    fields.update(overrides)
    return SimpleNamespace(**fields)


class TestPipeline:
    def test_stage_label(self) -> None:
        assert stage_label("due diligence") == "Due Diligence"
        assert stage_label("in_progress") == "In Progress"

    def test_counts_active_projects_in_pipeline_order(self) -> None:
        projects = [
            project(pipeline_state="negotiation"),
            project(pipeline_state="scouting"),
            project(pipeline_state="negotiation"),
            project(pipeline_state="scouting", status="cancelled"),
        ]
        buckets = pipeline_distribution(projects)
        assert [(b.stage, b.count) for b in buckets] == [("Scouting", 1), ("Negotiation", 2)]

    def test_unknown_stages_listed_last(self) -> None:
        buckets = pipeline_distribution(
            [project(pipeline_state="paused forever"), project(pipeline_state="finished")]
        )
        assert [b.stage for b in buckets] == ["Finished", "Paused Forever"]


class TestRevenue:
    def test_series_is_cumulative_and_labelled(self) -> None:
        projects = [
            project(started_date="2024-03-10", mmr=1000),
            project(started_date="2024-03-20", mmr=500),
            project(started_date="2024-05-01", mmr=250),
        ]
        series = monthly_revenue(projects, today=TODAY)
        assert [(p.month, p.revenue) for p in series] == [
            ("Mar 2024", 1500.0),
            ("May 2024", 1750.0),
            ("Jun 2024", 1750.0),
        ]

    def test_inactive_and_undated_projects_skipped(self) -> None:
        projects = [
            project(started_date="2024-01-01", mmr=100, status="cancelled"),
            project(started_date="2024-01-01", mmr=100, status="closed"),
            project(started_date="2024-01-01", mmr=100, status="not started"),
            project(started_date=None, mmr=100),
            project(started_date="not a date", mmr=100),
        ]
        series = monthly_revenue(projects, today=TODAY)
        assert [(p.month, p.revenue) for p in series] == [("Jun 2024", 0.0)]

    def test_current_month_always_present(self) -> None:
        assert monthly_revenue([], today=TODAY)[0].month == "Jun 2024"

    def test_total_revenue_counts_active_only(self) -> None:
        projects = [
            project(final_price=1000),
            project(final_price=None),
            project(final_price=500, status="finished"),
        ]
        assert total_revenue(projects) == 1000

    def test_report_shape(self) -> None:
        report = revenue_report([project(started_date="2024-06-01", mmr=10, final_price=99)], TODAY)
        dumped = report.model_dump(by_alias=True)
        assert dumped["totalRevenue"] == 99
        assert dumped["monthlyRevenueData"] == [{"month": "Jun 2024", "revenue": 10.0}]
