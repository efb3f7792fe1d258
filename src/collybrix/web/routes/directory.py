"""Identity provider user directory endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from collybrix.integrations.identity import IdentityClient
from collybrix.web.dependencies import require_user
from collybrix.web.envelope import ok


def get_identity_client(request: Request) -> IdentityClient:
    """Dependency that retrieves the identity client from app state."""
    return request.app.state.identity_client  # type: ignore[no-any-return]


def create_directory_router() -> APIRouter:
    """Create user directory router.

    Routes:
        GET /api/users - Users known to the identity provider
    """
    router = APIRouter(prefix="/api/users", tags=["directory"])

    @router.get("")
    async def list_directory_users(
        user_id: str = Depends(require_user),  # noqa: B008
        client: IdentityClient = Depends(get_identity_client),  # noqa: B008
    ) -> JSONResponse:
        users = await client.list_users()
        return ok(users)

    return router
