"""User query functions for Collybrix.

Users can be looked up either by their UUID or by their identity provider
id. Emails are stored lowercase and must be unique. Deleting a user only
deactivates it so task history keeps resolving names.
"""

from __future__ import annotations

import uuid
from typing import Any

import structlog
from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from collybrix.database.models.base import utcnow
from collybrix.database.models.user import User, UserRole
from collybrix.errors import ConflictError

logger = structlog.get_logger(__name__)


def _as_uuid(value: str) -> uuid.UUID | None:
    try:
        return uuid.UUID(value)
    except ValueError:
        return None


async def _ensure_unique_email(
    session: AsyncSession, email: str, exclude_id: uuid.UUID | None = None
) -> None:
    stmt = select(User.id).where(User.email == email)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if (await session.execute(stmt)).first() is not None:
        logger.warning("duplicate_user", email=email)
        raise ConflictError(
            f"A user with email {email} already exists",
            code="DUPLICATE_USER",
        )


async def _ensure_unique_external_id(
    session: AsyncSession, external_id: str, exclude_id: uuid.UUID | None = None
) -> None:
    stmt = select(User.id).where(User.external_id == external_id)
    if exclude_id is not None:
        stmt = stmt.where(User.id != exclude_id)
    if (await session.execute(stmt)).first() is not None:
        raise ConflictError(
            f"A user is already linked to {external_id}",
            code="DUPLICATE_USER",
        )


async def create_user(session: AsyncSession, **fields: Any) -> User:
    """Create a user.

    Raises:
        ConflictError: DUPLICATE_USER if the email or external id is taken.
    """
    fields["email"] = fields["email"].strip().lower()
    await _ensure_unique_email(session, fields["email"])
    if fields.get("external_id"):
        await _ensure_unique_external_id(session, fields["external_id"])

    user = User(**fields)
    session.add(user)
    await session.commit()
    await session.refresh(user)

    logger.info("user_created", user_id=str(user.id), role=UserRole(user.role).value)
    return user


async def get_user(session: AsyncSession, identifier: str) -> User | None:
    """Find a user by UUID or by identity provider id."""
    as_uuid = _as_uuid(identifier)
    if as_uuid is not None:
        stmt = select(User).where(User.id == as_uuid)
    else:
        stmt = select(User).where(User.external_id == identifier)
    result = await session.execute(stmt)
    return result.scalar_one_or_none()


async def list_users(
    session: AsyncSession,
    is_active: bool | None = None,
    role: UserRole | None = None,
) -> list[User]:
    """List users by name, optionally filtered by active flag and role."""
    stmt = select(User)
    if is_active is not None:
        stmt = stmt.where(User.is_active == is_active)
    if role is not None:
        stmt = stmt.where(User.role == role)
    result = await session.execute(stmt.order_by(User.name))
    return list(result.scalars().all())


async def user_names(session: AsyncSession, identifiers: list[str]) -> dict[str, str]:
    """Map user identifiers (UUID strings or external ids) to display names."""
    if not identifiers:
        return {}
    wanted = set(identifiers)
    uuids = [u for u in (_as_uuid(i) for i in wanted) if u is not None]
    stmt = select(User).where(or_(User.id.in_(uuids), User.external_id.in_(list(wanted))))
    result = await session.execute(stmt)

    names: dict[str, str] = {}
    for user in result.scalars():
        for key in (str(user.id), user.external_id):
            if key and key in wanted:
                names[key] = user.name
    return names


async def update_user(session: AsyncSession, identifier: str, **updates: Any) -> User | None:
    """Update a user's fields.

    Returns:
        The updated User, or None if it does not exist.

    Raises:
        ConflictError: DUPLICATE_USER if the new email or external id is taken.
    """
    user = await get_user(session, identifier)
    if user is None:
        logger.warning("user_not_found", identifier=identifier)
        return None

    if updates.get("email") is not None:
        updates["email"] = updates["email"].strip().lower()
        await _ensure_unique_email(session, updates["email"], exclude_id=user.id)
    if updates.get("external_id"):
        await _ensure_unique_external_id(session, updates["external_id"], exclude_id=user.id)

    for name, value in updates.items():
        setattr(user, name, value)
    user.updated_at = utcnow()
    await session.commit()
    await session.refresh(user)

    logger.info("user_updated", user_id=str(user.id), fields_updated=sorted(updates))
    return user


async def deactivate_user(session: AsyncSession, identifier: str) -> User | None:
    """Mark a user inactive.

    Returns:
        The deactivated User, or None if it does not exist.
    """
    user = await get_user(session, identifier)
    if user is None:
        logger.warning("user_not_found", identifier=identifier)
        return None

    user.is_active = False
    user.updated_at = utcnow()
    await session.commit()
    await session.refresh(user)

    logger.info("user_deactivated", user_id=str(user.id))
    return user
