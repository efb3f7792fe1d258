"""Domain exceptions for Collybrix.

Every error that should reach an API client as a structured envelope
derives from CollybrixError. Handlers registered on the FastAPI app turn
these into ``{"success": false, "error": {...}}`` responses, so route code
only has to raise.
"""

from __future__ import annotations

from typing import Any


class CollybrixError(Exception):
    """Base class for errors that map onto an HTTP error envelope.

    Attributes:
        status_code: HTTP status returned to the client
        code: Machine-readable error code
        message: Human-readable message
        details: Optional extra context (field errors, underlying message)
    """

    status_code: int = 500
    code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        details: Any = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code
        self.details = details


class MissingParameterError(CollybrixError):
    status_code = 400
    code = "MISSING_PARAMETER"


class InvalidIdError(CollybrixError):
    status_code = 400
    code = "INVALID_ID"


class ValidationFailedError(CollybrixError):
    status_code = 400
    code = "VALIDATION_ERROR"


class UnauthorizedError(CollybrixError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(CollybrixError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(CollybrixError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(CollybrixError):
    """Uniqueness or state conflict.

    The code defaults to CONFLICT; duplicate-name checks pass a more
    specific one such as DUPLICATE_TAG or DUPLICATE_USER.
    """

    status_code = 409
    code = "CONFLICT"


class IdentityProviderError(CollybrixError):
    """Raised when the identity provider's directory cannot be reached."""

    status_code = 500
    code = "INTERNAL_ERROR"
