"""Capability checks run before any state change or feed query."""

from __future__ import annotations

import logging

from fancircle.errors import AuthorizationError

from .models import AUTHOR_ROLES, Role, User

logger = logging.getLogger(__name__)


def _deny(user: User, message: str) -> AuthorizationError:
    logger.warning("denied %s (%s): %s", user.email, user.role.value, message)
    return AuthorizationError(message)


def require_admin(user: User) -> None:
    if user.role is not Role.ADMIN:
        raise _deny(user, "access denied: admins only")


def require_author(user: User) -> None:
    """Posting and commenting are open to fans, clubs and journalists."""
    if user.role not in AUTHOR_ROLES:
        raise _deny(user, f"role {user.role.value} cannot publish or comment")


def require_liker(user: User) -> None:
    if user.role is Role.ADMIN:
        raise _deny(user, "admins cannot like posts")


def require_feed_reader(user: User) -> None:
    if user.role not in AUTHOR_ROLES:
        raise _deny(user, f"no feed exists for role {user.role.value}")


def require_fans(*users: User) -> None:
    for user in users:
        if user.role is not Role.FAN:
            raise _deny(user, f"{user.email} is not a fan; friendships are between fans only")


def require_owner(user: User, owner_email: str | None) -> None:
    # Ownership wins over role: not even the admin may touch another user's post.
    if owner_email is None or user.email != owner_email:
        raise _deny(user, "only the author may change this post")
