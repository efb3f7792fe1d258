"""Retrospective query functions for Collybrix.

Sessions, cards and action items of sprint retrospectives. There is at
most one session per sprint; deleting a session removes its cards and
action items.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

import structlog
from sqlalchemy import delete, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from collybrix.database.models.base import utcnow
from collybrix.database.models.retrospective import (
    DEFAULT_SESSION_SETTINGS,
    RetrospectiveAction,
    RetrospectiveCard,
    RetrospectiveSession,
)
from collybrix.errors import ConflictError

logger = structlog.get_logger(__name__)


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------


async def get_retrospective(
    session: AsyncSession, sprint_id: UUID
) -> RetrospectiveSession | None:
    """The retrospective session of a sprint, or None."""
    result = await session.execute(
        select(RetrospectiveSession).where(RetrospectiveSession.sprint_id == sprint_id)
    )
    return result.scalar_one_or_none()


async def create_retrospective(
    session: AsyncSession,
    sprint_id: UUID,
    format: str,
    facilitator_id: str,
    settings: dict[str, Any] | None = None,
) -> RetrospectiveSession:
    """Open the retrospective of a sprint in the setup phase.

    Raises:
        ConflictError: If the sprint already has a session.
    """
    if await get_retrospective(session, sprint_id) is not None:
        raise ConflictError("A retrospective already exists for this sprint")

    retro = RetrospectiveSession(
        sprint_id=sprint_id,
        format=format,
        facilitator_id=facilitator_id,
        settings={**DEFAULT_SESSION_SETTINGS, **(settings or {})},
    )
    session.add(retro)
    await session.commit()
    await session.refresh(retro)

    logger.info(
        "retrospective_created",
        retrospective_id=str(retro.id),
        sprint_id=str(sprint_id),
        format=format,
    )
    return retro


async def update_retrospective(
    session: AsyncSession,
    retro: RetrospectiveSession,
    phase: str | None = None,
    settings: dict[str, Any] | None = None,
) -> RetrospectiveSession:
    """Move the session to another phase and/or merge new settings."""
    if phase is not None:
        retro.phase = phase
    if settings:
        retro.settings = {**retro.settings, **settings}
    retro.updated_at = utcnow()
    await session.commit()
    await session.refresh(retro)

    logger.info("retrospective_updated", retrospective_id=str(retro.id), phase=phase)
    return retro


async def delete_retrospective(session: AsyncSession, retro: RetrospectiveSession) -> None:
    """Delete a session with its cards and action items."""
    await session.execute(
        delete(RetrospectiveCard).where(RetrospectiveCard.session_id == retro.id)
    )
    await session.execute(
        delete(RetrospectiveAction).where(RetrospectiveAction.session_id == retro.id)
    )
    await session.execute(delete(RetrospectiveSession).where(RetrospectiveSession.id == retro.id))
    await session.commit()

    logger.info("retrospective_deleted", retrospective_id=str(retro.id))


# ---------------------------------------------------------------------------
# Cards
# ---------------------------------------------------------------------------


async def list_cards(session: AsyncSession, session_id: UUID) -> list[RetrospectiveCard]:
    """Cards of a session ordered by column, then position."""
    result = await session.execute(
        select(RetrospectiveCard)
        .where(RetrospectiveCard.session_id == session_id)
        .order_by(RetrospectiveCard.column, RetrospectiveCard.order)
    )
    return list(result.scalars().all())


async def get_card(
    session: AsyncSession, session_id: UUID, card_id: UUID
) -> RetrospectiveCard | None:
    """A card of the given session, or None."""
    result = await session.execute(
        select(RetrospectiveCard).where(
            RetrospectiveCard.id == card_id,
            RetrospectiveCard.session_id == session_id,
        )
    )
    return result.scalar_one_or_none()


async def create_card(
    session: AsyncSession,
    retro: RetrospectiveSession,
    column: str,
    content: str,
    author_id: str,
    is_anonymous: bool = False,
) -> RetrospectiveCard:
    """Add a card at the bottom of its column."""
    stmt = select(func.max(RetrospectiveCard.order)).where(
        RetrospectiveCard.session_id == retro.id,
        RetrospectiveCard.column == column,
    )
    last = (await session.execute(stmt)).scalar_one_or_none()

    card = RetrospectiveCard(
        session_id=retro.id,
        sprint_id=retro.sprint_id,
        column=column,
        content=content,
        author_id=author_id,
        is_anonymous=is_anonymous,
        votes=[],
        order=0 if last is None else last + 1,
    )
    session.add(card)
    await session.commit()
    await session.refresh(card)

    logger.info("retrospective_card_created", card_id=str(card.id), column=column)
    return card


async def update_card(
    session: AsyncSession, card: RetrospectiveCard, **updates: Any
) -> RetrospectiveCard:
    """Apply field changes to a card."""
    for name, value in updates.items():
        setattr(card, name, value)
    card.updated_at = utcnow()
    await session.commit()
    await session.refresh(card)

    logger.info("retrospective_card_updated", card_id=str(card.id), fields_updated=sorted(updates))
    return card


async def delete_card(session: AsyncSession, card: RetrospectiveCard) -> None:
    await session.execute(delete(RetrospectiveCard).where(RetrospectiveCard.id == card.id))
    await session.commit()
    logger.info("retrospective_card_deleted", card_id=str(card.id))


# ---------------------------------------------------------------------------
# Action items
# ---------------------------------------------------------------------------


async def list_actions(session: AsyncSession, session_id: UUID) -> list[RetrospectiveAction]:
    """Action items of a session, newest first."""
    result = await session.execute(
        select(RetrospectiveAction)
        .where(RetrospectiveAction.session_id == session_id)
        .order_by(RetrospectiveAction.created_at.desc())
    )
    return list(result.scalars().all())


async def get_action(
    session: AsyncSession, session_id: UUID, action_id: UUID
) -> RetrospectiveAction | None:
    result = await session.execute(
        select(RetrospectiveAction).where(
            RetrospectiveAction.id == action_id,
            RetrospectiveAction.session_id == session_id,
        )
    )
    return result.scalar_one_or_none()


async def create_action(
    session: AsyncSession,
    retro: RetrospectiveSession,
    **fields: Any,
) -> RetrospectiveAction:
    """Record an action item in the todo status."""
    action = RetrospectiveAction(session_id=retro.id, sprint_id=retro.sprint_id, **fields)
    session.add(action)
    await session.commit()
    await session.refresh(action)

    logger.info("retrospective_action_created", action_id=str(action.id))
    return action


async def update_action(
    session: AsyncSession, action: RetrospectiveAction, **updates: Any
) -> RetrospectiveAction:
    for name, value in updates.items():
        setattr(action, name, value)
    action.updated_at = utcnow()
    await session.commit()
    await session.refresh(action)

    logger.info("retrospective_action_updated", action_id=str(action.id), fields_updated=sorted(updates))
    return action


async def delete_action(session: AsyncSession, action: RetrospectiveAction) -> None:
    await session.execute(delete(RetrospectiveAction).where(RetrospectiveAction.id == action.id))
    await session.commit()
    logger.info("retrospective_action_deleted", action_id=str(action.id))
