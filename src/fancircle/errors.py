"""Error kinds raised by the fancircle core.

All of them are recoverable; presenting them is the caller's job.
"""

from __future__ import annotations


class FanCircleError(Exception):
    """Base class for every error the core raises on purpose."""

    kind = "error"


class ValidationError(FanCircleError):
    """Malformed or empty input (blank team filter, password mismatch, ...)."""

    kind = "validation"


class ConflictError(FanCircleError):
    """A uniqueness rule would be broken (duplicate user, request, like, ...)."""

    kind = "conflict"


class AuthorizationError(FanCircleError):
    """Role mismatch, non-owner mutation or non-admin access."""

    kind = "authorization"


class SessionRequiredError(AuthorizationError):
    """No valid session; the operation was aborted before any side effect."""


class NotFoundError(FanCircleError):
    """A referenced user, post or pending friend request does not exist."""

    kind = "not_found"
