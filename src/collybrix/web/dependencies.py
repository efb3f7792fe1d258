"""Shared FastAPI dependencies for Collybrix routes.

Session factory and config lookup from app.state, identifier parsing,
pagination parameters and the authenticated caller.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

from fastapi import Query, Request
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collybrix.config import CollybrixConfig
from collybrix.errors import InvalidIdError, UnauthorizedError
from collybrix.logging import bind_user_context

MAX_PAGE_SIZE = 100


def get_session_factory(request: Request) -> async_sessionmaker[AsyncSession]:
    """Dependency that retrieves the session factory from app state."""
    return request.app.state.session_factory  # type: ignore[no-any-return]


def get_config(request: Request) -> CollybrixConfig:
    """Dependency that retrieves the application config from app state."""
    return request.app.state.config  # type: ignore[no-any-return]


def parse_uuid(value: Any, label: str) -> uuid.UUID:
    """Parse an identifier, raising INVALID_ID when it is malformed.

    Args:
        value: Raw identifier from the path, query or body.
        label: Resource name used in the error message ("task", "sprint").
    """
    try:
        return uuid.UUID(str(value))
    except (TypeError, ValueError) as e:
        raise InvalidIdError(f"Invalid {label} ID format") from e


def parse_optional_uuid(value: str | None, label: str) -> uuid.UUID | None:
    if value is None or value == "":
        return None
    return parse_uuid(value, label)


def path_uuid(name: str, label: str) -> Callable[[Request], uuid.UUID]:
    """Dependency factory parsing a path parameter as a UUID.

    Runs as a dependency, so a malformed id is rejected before the request
    body is validated.
    """

    def dependency(request: Request) -> uuid.UUID:
        return parse_uuid(request.path_params[name], label)

    return dependency


@dataclass(frozen=True)
class Pagination:
    page: int
    page_size: int

    def meta(self, total: int) -> dict[str, int]:
        """Pagination block of a list response."""
        return {
            "total": total,
            "page": self.page,
            "pageSize": self.page_size,
            "totalPages": math.ceil(total / self.page_size) if total else 0,
        }


def get_pagination(
    page: int = Query(1, ge=1),  # noqa: B008
    page_size: int = Query(50, ge=1, le=MAX_PAGE_SIZE, alias="pageSize"),  # noqa: B008
) -> Pagination:
    return Pagination(page=page, page_size=page_size)


def get_current_user(request: Request) -> str | None:
    """The authenticated user id forwarded by the identity proxy, if any."""
    config: CollybrixConfig = request.app.state.config
    user_id = request.headers.get(config.auth.user_header)
    if user_id:
        bind_user_context(user_id)
        return user_id
    return None


def require_user(request: Request) -> str:
    """Dependency that rejects anonymous callers with 401."""
    user_id = get_current_user(request)
    if user_id is None:
        raise UnauthorizedError("Unauthorized")
    return user_id
