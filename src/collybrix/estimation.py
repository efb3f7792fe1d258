"""Estimation pricing and validation for Collybrix.

An estimation prices a prospective project from its team (daily rate x
allocated days) and its resources, then applies a revenue percentage on
top. Recurring monthly resources are annualised. The totals are always
recomputed server-side from the submitted line items.
"""

from __future__ import annotations

import enum
import uuid

from pydantic import Field

from collybrix.schema import CamelModel


class ResourceType(str, enum.Enum):
    software = "software"
    hardware = "hardware"
    service = "service"
    other = "other"


class BillingFrequency(str, enum.Enum):
    one_time = "one-time"
    monthly = "monthly"
    yearly = "yearly"


class TeamMember(CamelModel):
    """A person priced into the estimation.

    Values are not range-checked here; validate_estimation reports every
    problem at once with a readable message.
    """

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    role: str = ""
    daily_rate: float = 0.0
    days_allocated: float = 0.0
    total_cost: float = 0.0


class Resource(CamelModel):
    """A non-staff cost (licence, hardware, service)."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    name: str = ""
    type: ResourceType = ResourceType.other
    cost: float = 0.0
    frequency: BillingFrequency = BillingFrequency.one_time
    description: str | None = None


class PaymentPlan(CamelModel):
    enabled: bool = False
    number_of_months: int = 1
    monthly_amount: float = 0.0
    start_date: str | None = None


class EstimationTotals(CamelModel):
    """Computed cost breakdown."""

    team_cost: float
    resources_cost: float
    total_cost: float
    revenue_amount: float
    final_price: float


def member_cost(member: TeamMember) -> float:
    """Cost of one team member (daily rate x days allocated)."""
    return member.daily_rate * member.days_allocated


def resource_cost(resource: Resource) -> float:
    """Cost of a resource over a year when it bills monthly, as-is otherwise."""
    if resource.frequency == BillingFrequency.monthly:
        return resource.cost * 12
    return resource.cost


def calculate_estimation(
    team_members: list[TeamMember],
    resources: list[Resource],
    revenue_percentage: float,
) -> EstimationTotals:
    """Price an estimation.

    Args:
        team_members: Priced people.
        resources: Additional costs.
        revenue_percentage: Margin applied on top of the total cost (0-100).

    Returns:
        EstimationTotals where revenue = total * pct / 100 and
        final price = total + revenue.
    """
    team_cost = sum(member_cost(m) for m in team_members)
    resources_cost = sum(resource_cost(r) for r in resources)
    total_cost = team_cost + resources_cost
    revenue_amount = total_cost * revenue_percentage / 100
    return EstimationTotals(
        team_cost=team_cost,
        resources_cost=resources_cost,
        total_cost=total_cost,
        revenue_amount=revenue_amount,
        final_price=total_cost + revenue_amount,
    )


def apply_payment_plan(plan: PaymentPlan | None, final_price: float) -> PaymentPlan | None:
    """Fill in the monthly amount of an enabled payment plan."""
    if plan is None or not plan.enabled or plan.number_of_months <= 0:
        return plan
    return plan.model_copy(
        update={"monthly_amount": round(final_price / plan.number_of_months, 2)}
    )


def validate_estimation(
    project_name: str | None,
    client_name: str | None,
    team_members: list[TeamMember] | None,
    resources: list[Resource] | None = None,
    revenue_percentage: float | None = None,
    payment_plan: PaymentPlan | None = None,
) -> list[str]:
    """Check an estimation and return every problem found.

    Returns:
        Human-readable error messages; an empty list means valid.
    """
    errors: list[str] = []

    if not project_name or not project_name.strip():
        errors.append("Project name is required")
    if not client_name or not client_name.strip():
        errors.append("Client name is required")
    if not team_members:
        errors.append("At least one team member is required")

    for index, member in enumerate(team_members or [], start=1):
        if not member.name.strip():
            errors.append(f"Team member {index}: Name is required")
        if not member.role.strip():
            errors.append(f"Team member {index}: Role is required")
        if member.daily_rate <= 0:
            errors.append(f"Team member {index}: Daily rate must be greater than 0")
        if member.days_allocated <= 0:
            errors.append(f"Team member {index}: Days allocated must be greater than 0")

    for index, resource in enumerate(resources or [], start=1):
        if not resource.name.strip():
            errors.append(f"Resource {index}: Name is required")
        if resource.cost < 0:
            errors.append(f"Resource {index}: Cost cannot be negative")

    if revenue_percentage is not None and not 0 <= revenue_percentage <= 100:
        errors.append("Revenue percentage must be between 0 and 100")

    if payment_plan is not None and payment_plan.enabled and payment_plan.number_of_months <= 0:
        errors.append("Payment plan: Number of months must be greater than 0")

    return errors
