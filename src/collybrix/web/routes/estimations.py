"""Cost estimation endpoints for Collybrix.

Estimations are priced server-side: the totals sent by a client are
ignored and recomputed from the team members, resources and revenue
percentage before the record is stored.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collybrix.database.models.estimation import EstimationStatus
from collybrix.database.queries import estimation as estimation_queries
from collybrix.errors import NotFoundError, ValidationFailedError
from collybrix.estimation import (
    PaymentPlan,
    Resource,
    TeamMember,
    apply_payment_plan,
    calculate_estimation,
    member_cost,
    validate_estimation,
)
from collybrix.logging import get_logger
from collybrix.schema import CamelModel
from collybrix.web.dependencies import get_session_factory, path_uuid
from collybrix.web.envelope import ok

logger = get_logger(__name__)


class EstimationPayload(CamelModel):
    """Request body for creating or replacing an estimation."""

    project_name: str | None = None
    client_name: str | None = None
    team_members: list[TeamMember] = Field(default_factory=list)
    resources: list[Resource] = Field(default_factory=list)
    revenue_percentage: float = 0.0
    payment_plan: PaymentPlan | None = None
    notes: str = ""
    status: EstimationStatus = EstimationStatus.draft


class EstimationResponse(CamelModel):
    id: UUID
    project_name: str
    client_name: str
    team_members: list[dict[str, Any]]
    resources: list[dict[str, Any]]
    revenue_percentage: float
    total_cost: float
    total_revenue: float
    final_price: float
    payment_plan: dict[str, Any] | None
    notes: str
    status: EstimationStatus
    created_at: datetime
    updated_at: datetime


def priced_fields(payload: EstimationPayload) -> dict[str, Any]:
    """Validate an estimation and compute its stored columns.

    Raises:
        ValidationFailedError: With the first blocking message when names or
            team members are missing, otherwise with every problem found in
            ``details``.
    """
    if not payload.project_name or not payload.client_name:
        raise ValidationFailedError("Project name and client name are required")
    if not payload.team_members:
        raise ValidationFailedError("At least one team member is required")

    errors = validate_estimation(
        payload.project_name,
        payload.client_name,
        payload.team_members,
        payload.resources,
        payload.revenue_percentage,
        payload.payment_plan,
    )
    if errors:
        raise ValidationFailedError("Estimation is invalid", details=errors)

    members = [m.model_copy(update={"total_cost": member_cost(m)}) for m in payload.team_members]
    totals = calculate_estimation(members, payload.resources, payload.revenue_percentage)
    plan = apply_payment_plan(payload.payment_plan, totals.final_price)

    return {
        "project_name": payload.project_name,
        "client_name": payload.client_name,
        "team_members": [m.model_dump(mode="json", by_alias=True) for m in members],
        "resources": [r.model_dump(mode="json", by_alias=True) for r in payload.resources],
        "revenue_percentage": payload.revenue_percentage,
        "total_cost": totals.total_cost,
        "total_revenue": totals.revenue_amount,
        "final_price": totals.final_price,
        "payment_plan": plan.model_dump(mode="json", by_alias=True) if plan else None,
        "notes": payload.notes,
        "status": payload.status,
    }


estimation_id_param = path_uuid("estimation_id", "estimation")


def create_estimations_router() -> APIRouter:
    """Create estimation router.

    Routes:
        GET    /api/estimations       - List estimations
        POST   /api/estimations       - Create an estimation
        GET    /api/estimations/{id}  - Get an estimation
        PUT    /api/estimations/{id}  - Replace an estimation
        DELETE /api/estimations/{id}  - Delete an estimation
    """
    router = APIRouter(prefix="/api/estimations", tags=["estimations"])

    @router.get("")
    async def list_estimations(
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            estimations = await estimation_queries.list_estimations(session)
        return ok([EstimationResponse.model_validate(e) for e in estimations])

    @router.post("", status_code=201)
    async def create_estimation(
        payload: EstimationPayload,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        fields = priced_fields(payload)
        async with session_factory() as session:
            estimation = await estimation_queries.create_estimation(session, **fields)
        return ok(EstimationResponse.model_validate(estimation), status_code=201)

    @router.get("/{estimation_id}")
    async def get_estimation(
        estimation_id: UUID = Depends(estimation_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            estimation = await estimation_queries.get_estimation(session, estimation_id)

        if estimation is None:
            raise NotFoundError("Estimation not found")
        return ok(EstimationResponse.model_validate(estimation))

    @router.put("/{estimation_id}")
    async def update_estimation(
        payload: EstimationPayload,
        estimation_id: UUID = Depends(estimation_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        fields = priced_fields(payload)
        async with session_factory() as session:
            estimation = await estimation_queries.update_estimation(
                session, estimation_id, **fields
            )

        if estimation is None:
            raise NotFoundError("Estimation not found")
        return ok(EstimationResponse.model_validate(estimation))

    @router.delete("/{estimation_id}")
    async def delete_estimation(
        estimation_id: UUID = Depends(estimation_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            deleted = await estimation_queries.delete_estimation(session, estimation_id)

        if not deleted:
            raise NotFoundError("Estimation not found")
        return ok({"id": str(estimation_id), "deleted": True})

    return router
