from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Annotated, Any, Literal

from pydantic import BaseModel, ConfigDict, Field

from fancircle.graph.schema import ADMIN_SLOT, POST, USER
from fancircle.graph.store import NodeRef


class Role(str, Enum):
    FAN = "Fan"
    CLUB = "Club"
    JOURNALIST = "Journalist"
    ADMIN = "Admin"


AUTHOR_ROLES = frozenset({Role.FAN, Role.CLUB, Role.JOURNALIST})


# --------------------------
# Users: one profile shape per role
# --------------------------


class FanProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal[Role.FAN] = Role.FAN
    favorite_team: str


class ClubProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal[Role.CLUB] = Role.CLUB
    club_name: str


class JournalistProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal[Role.JOURNALIST] = Role.JOURNALIST
    affiliation: str


class AdminProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: Literal[Role.ADMIN] = Role.ADMIN


Profile = Annotated[
    FanProfile | ClubProfile | JournalistProfile | AdminProfile,
    Field(discriminator="role"),
]


class User(BaseModel):
    """A community member. Identity is the email address."""

    model_config = ConfigDict(frozen=True)

    email: str
    username: str
    profile: Profile
    created_at: int | None = None

    @property
    def role(self) -> Role:
        return self.profile.role

    @property
    def ref(self) -> NodeRef:
        return NodeRef(USER, self.email)

    @property
    def role_detail(self) -> str | None:
        """The role-specific attribute (favourite team, club, affiliation)."""
        match self.profile:
            case FanProfile(favorite_team=team):
                return team
            case ClubProfile(club_name=name):
                return name
            case JournalistProfile(affiliation=affiliation):
                return affiliation
            case AdminProfile():
                return None

    @classmethod
    def from_node(cls, props: dict[str, Any]) -> User:
        role = Role(props["role"])
        match role:
            case Role.FAN:
                profile: Any = FanProfile(favorite_team=props["favoriteTeam"])
            case Role.CLUB:
                profile = ClubProfile(club_name=props["clubName"])
            case Role.JOURNALIST:
                profile = JournalistProfile(affiliation=props.get("affiliation") or "")
            case Role.ADMIN:
                profile = AdminProfile()
        return cls(
            email=props["email"],
            username=props.get("username") or props["email"],
            profile=profile,
            created_at=props.get("createdAt"),
        )

    def to_node(self) -> dict[str, Any]:
        props: dict[str, Any] = {
            "email": self.email,
            "username": self.username,
            "role": self.role.value,
            "createdAt": self.created_at,
        }
        match self.profile:
            case FanProfile(favorite_team=team):
                props["favoriteTeam"] = team
            case ClubProfile(club_name=name):
                props["clubName"] = name
            case JournalistProfile(affiliation=affiliation):
                props["affiliation"] = affiliation
            case AdminProfile():
                props["adminSlot"] = ADMIN_SLOT
        return props


# --------------------------
# Posts and feeds
# --------------------------


class FeedCategory(str, Enum):
    TEAM = "team"
    FAN_EXCHANGE = "fanExchange"
    FRIEND = "friend"
    EXTRA_TEAM = "extraTeam"
    OWN = "own"
    FAN = "fan"
    JOURNALIST = "journalist"
    ALL = "all"


# Display/dedup priority of the fan feed categories.
FAN_CATEGORY_ORDER = (
    FeedCategory.TEAM,
    FeedCategory.FAN_EXCHANGE,
    FeedCategory.FRIEND,
    FeedCategory.EXTRA_TEAM,
)


class JournalistView(str, Enum):
    FILTER_BY_TEAM = "filter_by_team"
    TOP_LIKED = "top_liked"
    TOP_COMMENTED = "top_commented"
    LAST_24H = "last_24h"
    ALL = "all"


@dataclass(frozen=True, slots=True)
class FeedOptions:
    """Caller-selected feed options; only journalists have a choice today."""

    view: JournalistView = JournalistView.ALL
    team: str | None = None


@dataclass(frozen=True, slots=True)
class CommentView:
    author: str
    content: str
    created_at: int | None = None


@dataclass(frozen=True, slots=True)
class EnrichedPost:
    """A post with its author, engagement aggregates and source category."""

    id: str
    author: str
    content: str
    created_at: int
    category: FeedCategory
    club_tag: str | None = None
    liked_by: frozenset[str] = frozenset()
    comments: tuple[CommentView, ...] = ()

    @property
    def like_count(self) -> int:
        return len(self.liked_by)

    @property
    def comment_count(self) -> int:
        return len(self.comments)

    @property
    def ref(self) -> NodeRef:
        return NodeRef(POST, self.id)


class Decision(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"


@dataclass(frozen=True, slots=True)
class FriendRequest:
    requester: str
    target: str
    requested_at: int | None = None


@dataclass(slots=True)
class GraphExport:
    nodes: list[dict[str, Any]] = field(default_factory=list)
    edges: list[dict[str, Any]] = field(default_factory=list)
