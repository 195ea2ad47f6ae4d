from __future__ import annotations

import pytest

from fancircle.graph import InMemoryGraphStore
from fancircle.graph.schema import USER
from fancircle.identity import PasswordHasher
from fancircle.settings import FanCircleSettings
from fancircle.social import FanCircle, FeedEngine, FeedLimits, FriendshipService, User
from fancircle.social.models import (
    AdminProfile,
    ClubProfile,
    Decision,
    FanProfile,
    JournalistProfile,
    Role,
)
from fancircle.social.posts import PostService

TEAMS = ["X", "Y", "Z", "Borussia Dortmund", "Bayern München"]


class FakeClock:
    """Millisecond clock that ticks one second per read."""

    def __init__(self, start: int = 1_700_000_000_000, step: int = 1000):
        self.now = start
        self.step = step

    def __call__(self) -> int:
        self.now += self.step
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


class MemoryGate:
    """Session gate holding the identity in memory."""

    def __init__(self) -> None:
        self.email: str | None = None

    def current_identity(self) -> str | None:
        return self.email

    def open(self, email: str) -> None:
        self.email = email

    def close(self) -> bool:
        had = self.email is not None
        self.email = None
        return had


def add_user(store, email: str, role: Role = Role.FAN, detail: str | None = "X") -> User:
    """Write a user node directly, skipping registration and hashing."""
    match role:
        case Role.FAN:
            profile = FanProfile(favorite_team=detail)
        case Role.CLUB:
            profile = ClubProfile(club_name=detail)
        case Role.JOURNALIST:
            profile = JournalistProfile(affiliation=detail)
        case Role.ADMIN:
            profile = AdminProfile()
    user = User(email=email, username=email.split("@")[0], profile=profile, created_at=0)
    store.create_node(USER, user.to_node())
    return user


@pytest.fixture
def store():
    s = InMemoryGraphStore()
    s.ensure_schema()
    return s


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def friends(store, clock):
    return FriendshipService(store, clock=clock)


@pytest.fixture
def posts(store, clock):
    return PostService(store, clock=clock)


@pytest.fixture
def feeds(store, friends, clock):
    return FeedEngine(store, friends=friends, limits=FeedLimits(), clock=clock)


@pytest.fixture
def befriend(friends):
    def _befriend(a: User, b: User) -> None:
        friends.send_request(a, b.email)
        friends.resolve_request(a.email, b, Decision.ACCEPT)

    return _befriend


@pytest.fixture
def settings():
    return FanCircleSettings(
        teams=TEAMS,
        bcrypt_rounds=4,
        secret_key="test-secret",
        admin_email="admin@example.com",
        admin_password="admin-pw",
    )


@pytest.fixture
def gate():
    return MemoryGate()


@pytest.fixture
def app(store, gate, settings, clock):
    return FanCircle(store, gate, settings=settings, hasher=PasswordHasher(rounds=4), clock=clock)


@pytest.fixture
def register(app, gate):
    """Register a user through the facade and return it."""

    def _register(email: str, role: str = "Fan", detail: str = "X", *, login: bool = False) -> User:
        user = app.register_user(
            username=email.split("@")[0],
            email=email,
            password="secret",
            confirm_password="secret",
            role=role,
            detail=detail,
        )
        if login:
            gate.open(email)
        return user

    return _register
