"""Retrospective board endpoints nested under a sprint.

Every route requires an authenticated caller. The caller who opens the
session becomes its facilitator and is the only one allowed to change
its phase, settings or delete it. Cards may be edited or removed by
their author, or by anyone when posted anonymously.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal
from uuid import UUID

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from pydantic import Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collybrix.database.models.retrospective import (
    ActionStatus,
    RetrospectiveFormat,
    RetrospectivePhase,
    RetrospectiveSession,
)
from collybrix.database.queries import retrospective as retro_queries
from collybrix.database.queries import sprint as sprint_queries
from collybrix.errors import ForbiddenError, NotFoundError, ValidationFailedError
from collybrix.logging import get_logger
from collybrix.pm.retrospective import (
    board_stats,
    ensure_card_editable,
    ensure_column,
    toggle_vote,
    votes_by_user,
)
from collybrix.schema import CamelModel
from collybrix.web.dependencies import get_session_factory, path_uuid, require_user
from collybrix.web.envelope import ok

logger = get_logger(__name__)


class SessionSettings(CamelModel):
    allow_anonymous: bool = True
    votes_per_person: int | None = Field(default=5, ge=0)
    timer_minutes: int | None = Field(default=None, gt=0)


class SessionSettingsUpdate(CamelModel):
    allow_anonymous: bool | None = None
    votes_per_person: int | None = Field(default=None, ge=0)
    timer_minutes: int | None = Field(default=None, gt=0)


class RetrospectiveCreate(CamelModel):
    format: RetrospectiveFormat
    settings: SessionSettingsUpdate | None = None


class RetrospectiveUpdate(CamelModel):
    phase: RetrospectivePhase | None = None
    settings: SessionSettingsUpdate | None = None


class RetrospectiveResponse(CamelModel):
    id: UUID
    sprint_id: UUID
    format: str
    phase: RetrospectivePhase
    facilitator_id: str
    settings: SessionSettings
    columns: list[str]
    created_at: datetime
    updated_at: datetime


class CardCreate(CamelModel):
    column: str = Field(..., min_length=1)
    content: str = Field(..., min_length=1, max_length=500)
    is_anonymous: bool = False


class CardUpdate(CamelModel):
    """Either a vote toggle (``action``) or an edit of the card."""

    action: Literal["vote", "unvote"] | None = None
    content: str | None = Field(default=None, min_length=1, max_length=500)
    group_id: str | None = None
    group_title: str | None = None
    order: int | None = Field(default=None, ge=0)


class CardResponse(CamelModel):
    id: UUID
    session_id: UUID
    sprint_id: UUID
    column: str
    content: str
    author_id: str | None
    is_anonymous: bool
    votes: list[str]
    group_id: str | None
    group_title: str | None
    order: int
    created_at: datetime
    updated_at: datetime


class ActionCreate(CamelModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: str = ""
    assignee_id: str | None = None
    due_date: datetime | None = None
    card_ids: list[str] = Field(default_factory=list)


class ActionUpdate(CamelModel):
    title: str | None = Field(default=None, min_length=1, max_length=200)
    description: str | None = None
    assignee_id: str | None = None
    status: ActionStatus | None = None
    due_date: datetime | None = None
    card_ids: list[str] | None = None


class ActionResponse(CamelModel):
    id: UUID
    session_id: UUID
    sprint_id: UUID
    title: str
    description: str
    assignee_id: str | None
    status: ActionStatus
    due_date: datetime | None
    card_ids: list[str]
    created_at: datetime
    updated_at: datetime


def _card(card: Any) -> CardResponse:
    """Serialize a card, hiding the author of anonymous cards."""
    response = CardResponse.model_validate(card)
    if card.is_anonymous:
        response.author_id = None
    return response


async def _session_or_404(session: AsyncSession, sprint_id: UUID) -> RetrospectiveSession:
    retro = await retro_queries.get_retrospective(session, sprint_id)
    if retro is None:
        raise NotFoundError("Retrospective session not found")
    return retro


sprint_id_param = path_uuid("sprint_id", "sprint")
card_id_param = path_uuid("card_id", "card")
action_id_param = path_uuid("action_id", "action")


def create_retrospective_router() -> APIRouter:
    """Create retrospective router.

    Routes:
        GET    /api/pm/sprints/{id}/retrospective                  - Board with stats
        POST   /api/pm/sprints/{id}/retrospective                  - Open a session
        PATCH  /api/pm/sprints/{id}/retrospective                  - Change phase/settings
        DELETE /api/pm/sprints/{id}/retrospective                  - Delete the session
        POST   /api/pm/sprints/{id}/retrospective/cards            - Add a card
        PATCH  /api/pm/sprints/{id}/retrospective/cards/{cardId}   - Vote or edit
        DELETE /api/pm/sprints/{id}/retrospective/cards/{cardId}   - Remove a card
        POST   /api/pm/sprints/{id}/retrospective/actions          - Add an action item
        PATCH  /api/pm/sprints/{id}/retrospective/actions/{id}     - Update an action item
        DELETE /api/pm/sprints/{id}/retrospective/actions/{id}     - Remove an action item
    """
    router = APIRouter(
        prefix="/api/pm/sprints/{sprint_id}/retrospective",
        tags=["retrospectives"],
    )

    @router.get("")
    async def get_board(
        user_id: str = Depends(require_user),  # noqa: B008
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            retro = await retro_queries.get_retrospective(session, sprint_id)
            if retro is None:
                return ok(None)
            cards = await retro_queries.list_cards(session, retro.id)
            actions = await retro_queries.list_actions(session, retro.id)

        return ok(
            {
                "session": RetrospectiveResponse.model_validate(retro),
                "cards": [_card(c) for c in cards],
                "actions": [ActionResponse.model_validate(a) for a in actions],
                "stats": board_stats(cards, actions),
            }
        )

    @router.post("", status_code=201)
    async def open_session(
        payload: RetrospectiveCreate,
        user_id: str = Depends(require_user),  # noqa: B008
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        settings = payload.settings.model_dump(exclude_none=True) if payload.settings else None
        async with session_factory() as session:
            if await sprint_queries.get_sprint(session, sprint_id) is None:
                raise NotFoundError("Sprint not found")
            retro = await retro_queries.create_retrospective(
                session,
                sprint_id,
                format=payload.format.value,
                facilitator_id=user_id,
                settings=settings,
            )
        return ok(RetrospectiveResponse.model_validate(retro), status_code=201)

    @router.patch("")
    async def update_session(
        payload: RetrospectiveUpdate,
        user_id: str = Depends(require_user),  # noqa: B008
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            retro = await _session_or_404(session, sprint_id)
            if retro.facilitator_id != user_id:
                raise ForbiddenError("Only the facilitator can update the session")
            retro = await retro_queries.update_retrospective(
                session,
                retro,
                phase=payload.phase,
                settings=payload.settings.model_dump(exclude_none=True) if payload.settings else None,
            )
        return ok(RetrospectiveResponse.model_validate(retro))

    @router.delete("")
    async def delete_session(
        user_id: str = Depends(require_user),  # noqa: B008
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            retro = await _session_or_404(session, sprint_id)
            if retro.facilitator_id != user_id:
                raise ForbiddenError("Only the facilitator can delete the session")
            await retro_queries.delete_retrospective(session, retro)
        return ok({"message": "Retrospective session deleted successfully"})

    # ---- Cards ----

    @router.post("/cards", status_code=201)
    async def add_card(
        payload: CardCreate,
        user_id: str = Depends(require_user),  # noqa: B008
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            retro = await _session_or_404(session, sprint_id)
            ensure_column(retro.columns, payload.column)
            if payload.is_anonymous and not retro.settings.get("allow_anonymous", True):
                raise ValidationFailedError("Anonymous cards are disabled for this retrospective")
            card = await retro_queries.create_card(
                session,
                retro,
                column=payload.column,
                content=payload.content.strip(),
                author_id=user_id,
                is_anonymous=payload.is_anonymous,
            )
        return ok(_card(card), status_code=201)

    @router.patch("/cards/{card_id}")
    async def update_card(
        payload: CardUpdate,
        user_id: str = Depends(require_user),  # noqa: B008
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        card_id: UUID = Depends(card_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            retro = await _session_or_404(session, sprint_id)
            card = await retro_queries.get_card(session, retro.id, card_id)
            if card is None:
                raise NotFoundError("Card not found")

            if payload.action is not None:
                cards = await retro_queries.list_cards(session, retro.id)
                votes = toggle_vote(
                    card,
                    user_id,
                    payload.action,
                    votes_cast=votes_by_user(cards, user_id),
                    votes_per_person=retro.settings.get("votes_per_person"),
                )
                card = await retro_queries.update_card(session, card, votes=votes)
                logger.info("card_vote_toggled", card_id=str(card_id), action=payload.action)
                return ok(_card(card))

            updates = payload.model_dump(exclude_unset=True, exclude={"action"})
            if "content" in updates:
                ensure_card_editable(card, user_id)
                if updates["content"] is None:
                    raise ValidationFailedError("Card content cannot be empty")
                updates["content"] = updates["content"].strip()
            if updates.get("order") is None:
                updates.pop("order", None)
            card = await retro_queries.update_card(session, card, **updates)
        return ok(_card(card))

    @router.delete("/cards/{card_id}")
    async def delete_card(
        user_id: str = Depends(require_user),  # noqa: B008
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        card_id: UUID = Depends(card_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            retro = await _session_or_404(session, sprint_id)
            card = await retro_queries.get_card(session, retro.id, card_id)
            if card is None:
                raise NotFoundError("Card not found")
            ensure_card_editable(card, user_id)
            await retro_queries.delete_card(session, card)
        return ok({"id": str(card_id), "deleted": True})

    # ---- Action items ----

    @router.post("/actions", status_code=201)
    async def add_action(
        payload: ActionCreate,
        user_id: str = Depends(require_user),  # noqa: B008
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            retro = await _session_or_404(session, sprint_id)
            action = await retro_queries.create_action(
                session, retro, status=ActionStatus.todo, **payload.model_dump()
            )
        return ok(ActionResponse.model_validate(action), status_code=201)

    @router.patch("/actions/{action_id}")
    async def update_action(
        payload: ActionUpdate,
        user_id: str = Depends(require_user),  # noqa: B008
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        action_id: UUID = Depends(action_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        updates = payload.model_dump(exclude_unset=True)
        for required in ("title", "status", "description", "card_ids"):
            if updates.get(required, ...) is None:
                del updates[required]

        async with session_factory() as session:
            retro = await _session_or_404(session, sprint_id)
            action = await retro_queries.get_action(session, retro.id, action_id)
            if action is None:
                raise NotFoundError("Action item not found")
            action = await retro_queries.update_action(session, action, **updates)
        return ok(ActionResponse.model_validate(action))

    @router.delete("/actions/{action_id}")
    async def delete_action(
        user_id: str = Depends(require_user),  # noqa: B008
        sprint_id: UUID = Depends(sprint_id_param),  # noqa: B008
        action_id: UUID = Depends(action_id_param),  # noqa: B008
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            retro = await _session_or_404(session, sprint_id)
            action = await retro_queries.get_action(session, retro.id, action_id)
            if action is None:
                raise NotFoundError("Action item not found")
            await retro_queries.delete_action(session, action)
        return ok({"id": str(action_id), "deleted": True})

    return router
