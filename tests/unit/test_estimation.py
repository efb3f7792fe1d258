"""Unit tests for estimation pricing and validation."""

from __future__ import annotations

import pytest

from collybrix.estimation import (
    BillingFrequency,
    PaymentPlan,
    Resource,
    TeamMember,
    apply_payment_plan,
    calculate_estimation,
    resource_cost,
    validate_estimation,
)


def member(**overrides: object) -> TeamMember:
    fields = {"name": "Ana", "role": "Developer", "daily_rate": 400, "days_allocated": 10}
    fields.update(overrides)
    return TeamMember(**fields)


class TestCalculateEstimation:
    def test_team_only(self) -> None:
        totals = calculate_estimation([member(), member(daily_rate=300, days_allocated=5)], [], 20)
        assert totals.team_cost == 5500
        assert totals.resources_cost == 0
        assert totals.total_cost == 5500
        assert totals.revenue_amount == 1100
        assert totals.final_price == 6600

    def test_monthly_resources_are_annualised(self) -> None:
        resources = [
            Resource(name="Hosting", cost=50, frequency=BillingFrequency.monthly),
            Resource(name="Licence", cost=200, frequency=BillingFrequency.yearly),
            Resource(name="Laptop", cost=1000, frequency=BillingFrequency.one_time),
        ]
        totals = calculate_estimation([], resources, 0)
        assert totals.resources_cost == 600 + 200 + 1000
        assert totals.final_price == totals.total_cost

    def test_resource_cost(self) -> None:
        assert resource_cost(Resource(name="x", cost=10, frequency="monthly")) == 120
        assert resource_cost(Resource(name="x", cost=10)) == 10

    def test_accepts_camel_case_members(self) -> None:
        parsed = TeamMember.model_validate({"name": "Bo", "role": "PM", "dailyRate": 100, "daysAllocated": 2})
        assert calculate_estimation([parsed], [], 0).team_cost == 200


class TestPaymentPlan:
    def test_monthly_amount_is_rounded(self) -> None:
        plan = apply_payment_plan(PaymentPlan(enabled=True, number_of_months=3), 1000)
        assert plan is not None
        assert plan.monthly_amount == 333.33

    def test_disabled_plan_unchanged(self) -> None:
        plan = PaymentPlan(enabled=False, number_of_months=3)
        assert apply_payment_plan(plan, 1000) is plan

    def test_no_plan(self) -> None:
        assert apply_payment_plan(None, 1000) is None


class TestValidateEstimation:
    def test_valid_estimation(self) -> None:
        assert validate_estimation("Site", "Acme", [member()], [], 20) == []

    def test_missing_names_and_team(self) -> None:
        errors = validate_estimation("  ", None, [])
        assert errors == [
            "Project name is required",
            "Client name is required",
            "At least one team member is required",
        ]

    def test_member_errors_are_numbered(self) -> None:
        errors = validate_estimation(
            "Site",
            "Acme",
            [member(), member(name="", role="", daily_rate=0, days_allocated=-1)],
        )
        assert errors == [
            "Team member 2: Name is required",
            "Team member 2: Role is required",
            "Team member 2: Daily rate must be greater than 0",
            "Team member 2: Days allocated must be greater than 0",
        ]

    def test_resource_errors(self) -> None:
        errors = validate_estimation("Site", "Acme", [member()], [Resource(name="", cost=-5)])
        assert errors == ["Resource 1: Name is required", "Resource 1: Cost cannot be negative"]

    @pytest.mark.parametrize("pct", [-1, 100.5])
    def test_revenue_percentage_range(self, pct: float) -> None:
        errors = validate_estimation("Site", "Acme", [member()], revenue_percentage=pct)
        assert errors == ["Revenue percentage must be between 0 and 100"]

    def test_payment_plan_months(self) -> None:
        errors = validate_estimation(
            "Site",
            "Acme",
            [member()],
            payment_plan=PaymentPlan(enabled=True, number_of_months=0),
        )
        assert errors == ["Payment plan: Number of months must be greater than 0"]
