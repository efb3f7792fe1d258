"""Identity provider user directory client.

Sign-in and session verification happen upstream; this client only reads
the provider's user list so the UI can offer assignees and reviewers.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import httpx

from collybrix.config import IdentityConfig
from collybrix.errors import IdentityProviderError
from collybrix.logging import get_logger
from collybrix.schema import CamelModel

logger = get_logger(__name__)

UNKNOWN_USER_NAME = "Unknown User"


class DirectoryUser(CamelModel):
    """A user as listed by the identity provider."""

    id: str
    name: str
    email: str
    avatar_url: str | None = None
    role: str = "developer"
    is_active: bool = True
    external_id: str
    created_at: datetime | None = None
    updated_at: datetime | None = None


def _from_millis(value: Any) -> datetime | None:
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def _display_name(raw: dict[str, Any]) -> str:
    full = " ".join(part for part in (raw.get("first_name"), raw.get("last_name")) if part)
    return full or raw.get("username") or UNKNOWN_USER_NAME


def parse_user(raw: dict[str, Any]) -> DirectoryUser:
    """Convert one provider user payload into a DirectoryUser."""
    emails = raw.get("email_addresses") or []
    return DirectoryUser(
        id=raw["id"],
        name=_display_name(raw),
        email=emails[0].get("email_address", "") if emails else "",
        avatar_url=raw.get("image_url") or None,
        external_id=raw["id"],
        created_at=_from_millis(raw.get("created_at")),
        updated_at=_from_millis(raw.get("updated_at")),
    )


class IdentityClient:
    """Client for the identity provider's backend user API."""

    def __init__(self, config: IdentityConfig) -> None:
        self.config = config
        self.logger = get_logger(__name__)
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        """Get or create HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                timeout=self.config.timeout_seconds,
            )
        return self._client

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def list_users(self) -> list[DirectoryUser]:
        """Fetch the provider's users.

        Returns:
            Users in the order the provider lists them.

        Raises:
            IdentityProviderError: If no secret key is configured, the
                request fails, or the provider answers with an error.
        """
        if not self.config.secret_key:
            raise IdentityProviderError(
                "Failed to fetch users",
                details="Identity provider secret key is not configured",
            )

        try:
            client = await self._get_client()
            response = await client.get(
                "/users",
                params={"limit": self.config.page_limit},
                headers={"Authorization": f"Bearer {self.config.secret_key}"},
            )
        except httpx.RequestError as e:
            self.logger.error("identity_request_error", error=str(e))
            raise IdentityProviderError("Failed to fetch users", details=str(e)) from e

        if not response.is_success:
            self.logger.warning(
                "identity_request_failed",
                status_code=response.status_code,
                response_text=response.text[:200],
            )
            raise IdentityProviderError(
                "Failed to fetch users",
                details=f"Identity provider returned {response.status_code}",
            )

        payload = response.json()
        raw_users = payload.get("data", []) if isinstance(payload, dict) else payload
        users = [parse_user(raw) for raw in raw_users]
        self.logger.info("identity_users_fetched", count=len(users))
        return users
