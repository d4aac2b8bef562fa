"""Domain error taxonomy.

Services raise these instead of HTTP errors so the same rules hold whether an
operation is reached through a router or called directly. ``main.py`` renders
every ``DomainError`` with its ``status_code`` and ``code``.
"""

from typing import Any, Dict, Optional

from fastapi import status


class DomainError(Exception):
    """Base class for all categorized failures."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class ValidationError(DomainError):
    """Malformed input, e.g. a negative quantity or an empty name."""

    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class AuthenticationError(DomainError):
    """Missing, invalid or expired credentials."""

    status_code = status.HTTP_401_UNAUTHORIZED
    code = "authentication_error"


class AuthorizationError(DomainError):
    """Caller lacks the membership or role an operation requires."""

    status_code = status.HTTP_403_FORBIDDEN
    code = "authorization_error"


class NotFoundError(DomainError):
    """Referenced id is absent (or not visible to the caller)."""

    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ConflictError(DomainError):
    """Uniqueness violation or a deletion blocked by a referencing row."""

    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class ExpiredError(DomainError):
    """An invitation was used after its expires_at."""

    status_code = status.HTTP_410_GONE
    code = "expired"


class ExternalServiceError(DomainError):
    """
    Failure of the text-generation collaborator.
    ``status_code`` is per instance so rate limiting (429) and exhausted credits (402)
    stay distinguishable from a generic upstream failure (502) or missing configuration (503).
    """

    code = "external_service_error"

    def __init__(
        self,
        message: str,
        status_code: int = status.HTTP_502_BAD_GATEWAY,
        reason: str = "upstream_error",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.reason = reason

    @classmethod
    def rate_limited(cls) -> "ExternalServiceError":
        return cls("Rate limit exceeded. Please try again in a moment.", status.HTTP_429_TOO_MANY_REQUESTS, "rate_limited")

    @classmethod
    def credits_exhausted(cls) -> "ExternalServiceError":
        return cls("AI credits exhausted. Please add credits to continue.", status.HTTP_402_PAYMENT_REQUIRED, "credits_exhausted")

    @classmethod
    def not_configured(cls) -> "ExternalServiceError":
        return cls("Text generation is not configured.", status.HTTP_503_SERVICE_UNAVAILABLE, "not_configured")
