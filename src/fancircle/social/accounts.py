from __future__ import annotations

import logging
import re
from collections.abc import Callable, Sequence

from fancircle.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from fancircle.graph.schema import USER
from fancircle.graph.store import GraphStore, UniqueViolation
from fancircle.identity import PasswordHasher

from . import policy
from .clock import now_ms
from .models import (
    AdminProfile,
    ClubProfile,
    FanProfile,
    GraphExport,
    JournalistProfile,
    Role,
    User,
)

logger = logging.getLogger(__name__)

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")

_CONFLICT_MESSAGES = {
    "email": "this email address is already registered",
    "username": "this username is already taken",
    "clubName": "this club is already registered",
    "adminSlot": "an admin account already exists",
}

_SECRET_PROPS = frozenset({"passwordHash"})

ADMIN_USERNAME = "admin"


class AccountService:
    """Registration, authentication and admin-only listings."""

    def __init__(
        self,
        store: GraphStore,
        hasher: PasswordHasher,
        *,
        teams: Sequence[str] = (),
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.hasher = hasher
        self.teams = list(teams)
        self.clock = clock

    def _check_team(self, team: str | None, what: str) -> str:
        team = (team or "").strip()
        if not team:
            raise ValidationError(f"{what} must not be empty")
        if self.teams and team not in self.teams:
            raise ValidationError(f"{team!r} is not a known club")
        return team

    def _profile(self, role: Role, detail: str | None):
        match role:
            case Role.FAN:
                return FanProfile(favorite_team=self._check_team(detail, "favourite team"))
            case Role.CLUB:
                return ClubProfile(club_name=self._check_team(detail, "club name"))
            case Role.JOURNALIST:
                affiliation = (detail or "").strip()
                if not affiliation:
                    raise ValidationError("affiliation must not be empty")
                return JournalistProfile(affiliation=affiliation)
            case Role.ADMIN:
                raise ValidationError("the admin account cannot be registered; use create-admin")

    def _insert(self, user: User, password: str) -> User:
        props = user.to_node()
        props["passwordHash"] = self.hasher.hash(password)
        try:
            self.store.create_node(USER, props)
        except UniqueViolation as e:
            raise ConflictError(_CONFLICT_MESSAGES.get(e.prop or "", "user already exists")) from e
        logger.info("registered %s as %s", user.email, user.role.value)
        return user

    def register(
        self,
        *,
        username: str,
        email: str,
        password: str,
        confirm_password: str,
        role: Role | str,
        detail: str | None = None,
    ) -> User:
        """Create a fan, club or journalist account.

        `detail` is the role attribute: favourite team, club name or affiliation.
        """
        username = (username or "").strip()
        email = (email or "").strip()
        if not username:
            raise ValidationError("username must not be empty")
        if username.casefold() == ADMIN_USERNAME:
            raise ValidationError(f"the username {ADMIN_USERNAME!r} is reserved")
        if not EMAIL_RE.match(email):
            raise ValidationError("please enter a valid email address")
        if not password:
            raise ValidationError("password must not be empty")
        if password != confirm_password:
            raise ValidationError("passwords do not match")
        try:
            role = Role(role)
        except ValueError:
            raise ValidationError(f"unknown role: {role}") from None

        user = User(
            email=email,
            username=username,
            profile=self._profile(role, detail),
            created_at=self.clock(),
        )
        return self._insert(user, password)

    def create_admin(self, email: str, password: str) -> User:
        user = User(email=email, username=ADMIN_USERNAME, profile=AdminProfile(), created_at=self.clock())
        return self._insert(user, password)

    def get(self, email: str) -> User:
        node = self.store.find_one(USER, {"email": email})
        if node is None:
            raise NotFoundError(f"user {email} does not exist")
        return User.from_node(node)

    def authenticate(self, identifier: str, password: str) -> User:
        identifier = (identifier or "").strip()
        node = self.store.find_one(USER, {"email": identifier}) or self.store.find_one(
            USER, {"username": identifier}
        )
        if node is None:
            raise NotFoundError("user not found")
        if not self.hasher.verify(password, node.get("passwordHash")):
            logger.warning("failed login for %s", node["email"])
            raise AuthorizationError("wrong password")
        return User.from_node(node)

    def list_clubs(self) -> list[str]:
        clubs = self.store.find_many(USER, {"role": Role.CLUB.value})
        return sorted(c["clubName"] for c in clubs if c.get("clubName"))

    def list_users(self, caller: User) -> list[User]:
        policy.require_admin(caller)
        users = [User.from_node(n) for n in self.store.find_many(USER)]
        return sorted(users, key=lambda u: u.email)

    def export(self, caller: User) -> GraphExport:
        """Every node and edge of the graph, without password hashes."""
        policy.require_admin(caller)
        raw = self.store.export()
        nodes = [
            {
                "label": n["label"],
                "properties": {k: v for k, v in n["properties"].items() if k not in _SECRET_PROPS},
            }
            for n in raw["nodes"]
        ]
        return GraphExport(nodes=nodes, edges=list(raw["edges"]))
