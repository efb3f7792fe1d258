"""User endpoints for the Collybrix project-management module.

Users are addressed either by UUID or by their identity provider id.
Deleting a user deactivates it.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse
from pydantic import EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from collybrix.database.models.user import UserRole
from collybrix.database.queries import user as user_queries
from collybrix.errors import NotFoundError
from collybrix.logging import get_logger
from collybrix.schema import CamelModel
from collybrix.web.dependencies import get_session_factory
from collybrix.web.envelope import ok

logger = get_logger(__name__)


class UserCreate(CamelModel):
    name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    role: UserRole = UserRole.developer
    is_active: bool = True
    avatar_url: str | None = None
    external_id: str | None = None


class UserUpdate(CamelModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    email: EmailStr | None = None
    role: UserRole | None = None
    is_active: bool | None = None
    avatar_url: str | None = None
    external_id: str | None = None


class UserResponse(CamelModel):
    id: UUID
    name: str
    email: str
    role: UserRole
    is_active: bool
    avatar_url: str | None
    external_id: str | None
    created_at: datetime
    updated_at: datetime


def create_pm_users_router() -> APIRouter:
    """Create project-management user router.

    Routes:
        GET    /api/pm/users       - List users (isActive, role filters)
        POST   /api/pm/users       - Create a user
        GET    /api/pm/users/{id}  - Get a user by UUID or external id
        PUT    /api/pm/users/{id}  - Update a user
        DELETE /api/pm/users/{id}  - Deactivate a user
    """
    router = APIRouter(prefix="/api/pm/users", tags=["users"])

    @router.get("")
    async def list_users(
        is_active: bool | None = Query(None, alias="isActive"),  # noqa: B008
        role: UserRole | None = None,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            users = await user_queries.list_users(session, is_active=is_active, role=role)
        return ok([UserResponse.model_validate(u) for u in users])

    @router.post("", status_code=201)
    async def create_user(
        payload: UserCreate,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            user = await user_queries.create_user(session, **payload.model_dump())
        return ok(UserResponse.model_validate(user), status_code=201)

    @router.get("/{user_id}")
    async def get_user(
        user_id: str,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            user = await user_queries.get_user(session, user_id)

        if user is None:
            raise NotFoundError("User not found")
        return ok(UserResponse.model_validate(user))

    @router.put("/{user_id}")
    async def update_user(
        user_id: str,
        payload: UserUpdate,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        updates = {k: v for k, v in payload.model_dump(exclude_unset=True).items() if v is not None}
        async with session_factory() as session:
            user = await user_queries.update_user(session, user_id, **updates)

        if user is None:
            raise NotFoundError("User not found")
        return ok(UserResponse.model_validate(user))

    @router.delete("/{user_id}")
    async def delete_user(
        user_id: str,
        session_factory: async_sessionmaker[AsyncSession] = Depends(  # noqa: B008
            get_session_factory
        ),
    ) -> JSONResponse:
        async with session_factory() as session:
            user = await user_queries.deactivate_user(session, user_id)

        if user is None:
            raise NotFoundError("User not found")
        return ok(UserResponse.model_validate(user))

    return router
