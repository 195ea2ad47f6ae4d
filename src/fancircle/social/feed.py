"""Feed aggregation.

Every feed is assembled from independently queried post sources that all
produce `EnrichedPost`, then merged and sorted once:

- fans: favourite club, fellow fans of that club, friends, and "extra" clubs
  that enough friends follow
- clubs: their own posts plus fan posts about them
- journalists: a flat view over every post with a chosen filter/ranking
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from fancircle.errors import AuthorizationError, ValidationError
from fancircle.graph.schema import COMMENTED, LIKED, POST, POSTED, USER
from fancircle.graph.store import EdgeRow, GraphStore, NodeRef

from .clock import now_ms
from .friends import FriendshipService
from .models import (
    FAN_CATEGORY_ORDER,
    AdminProfile,
    ClubProfile,
    CommentView,
    EnrichedPost,
    FanProfile,
    FeedCategory,
    FeedOptions,
    JournalistProfile,
    JournalistView,
    Role,
    User,
)

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class FeedLimits:
    extra_team_threshold: int = 5
    top_limit: int = 5
    recent_window_ms: int = 86_400_000


def newest_first(posts: Iterable[EnrichedPost]) -> list[EnrichedPost]:
    return sorted(posts, key=lambda p: (p.created_at, p.id), reverse=True)


class FeedEngine:
    def __init__(
        self,
        store: GraphStore,
        *,
        friends: FriendshipService | None = None,
        limits: FeedLimits | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.friends = friends or FriendshipService(store, clock=clock)
        self.limits = limits or FeedLimits()
        self.clock = clock

    def compute_feed(self, viewer: User, options: FeedOptions | None = None) -> list[EnrichedPost]:
        options = options or FeedOptions()
        match viewer.profile:
            case FanProfile() as fan:
                posts = self.fan_feed(viewer, fan)
            case ClubProfile() as club:
                posts = self.club_feed(viewer, club)
            case JournalistProfile():
                posts = self.journalist_feed(options)
            case AdminProfile():
                raise AuthorizationError("admins have no feed")
        logger.debug("feed for %s: %d posts", viewer.email, len(posts))
        return posts

    # --------------------------
    # Enrichment
    # --------------------------

    def enrich(self, post: dict, author: str, category: FeedCategory) -> EnrichedPost:
        ref = NodeRef(POST, post["id"])
        # Set semantics: duplicate rows from the traversal must not inflate counts.
        liked_by = frozenset(
            row.src["email"] for row in self.store.edges(LIKED, dst=ref) if row.src.get("email")
        )
        comments = [
            CommentView(
                author=row.src["email"],
                content=row.props.get("content", ""),
                created_at=row.props.get("createdAt"),
            )
            for row in self.store.edges(COMMENTED, dst=ref)
            if row.src.get("email")
        ]
        comments.sort(key=lambda c: c.created_at or 0)
        return EnrichedPost(
            id=post["id"],
            author=author,
            content=post.get("content") or "",
            created_at=int(post.get("createdAt") or 0),
            category=category,
            club_tag=post.get("clubTag"),
            liked_by=liked_by,
            comments=tuple(comments),
        )

    def _enrich_rows(self, rows: Iterable[EdgeRow], category: FeedCategory) -> list[EnrichedPost]:
        out = []
        for row in rows:
            # A post without content is what an empty optional branch looks like.
            if not row.dst.get("content"):
                continue
            out.append(self.enrich(row.dst, row.src["email"], category))
        return out

    def posts_by(self, authors: Iterable[User], category: FeedCategory) -> list[EnrichedPost]:
        out: list[EnrichedPost] = []
        for author in authors:
            out.extend(self._enrich_rows(self.store.edges(POSTED, src=author.ref), category))
        return out

    def own_posts(self, user: User) -> list[EnrichedPost]:
        return newest_first(self.posts_by([user], FeedCategory.OWN))

    def all_posts(self, category: FeedCategory = FeedCategory.ALL) -> list[EnrichedPost]:
        return newest_first(self._enrich_rows(self.store.edges(POSTED), category))

    def _users(self, **filters) -> list[User]:
        return [User.from_node(n) for n in self.store.find_many(USER, filters)]

    # --------------------------
    # Fans
    # --------------------------

    def team_posts(self, team: str) -> list[EnrichedPost]:
        clubs = self._users(role=Role.CLUB.value, clubName=team)
        return self.posts_by(clubs, FeedCategory.TEAM)

    def fan_exchange_posts(self, viewer: User, team: str) -> list[EnrichedPost]:
        fans = [u for u in self._users(role=Role.FAN.value, favoriteTeam=team) if u.email != viewer.email]
        return self.posts_by(fans, FeedCategory.FAN_EXCHANGE)

    def friend_posts(self, friends: list[User]) -> list[EnrichedPost]:
        return self.posts_by(friends, FeedCategory.FRIEND)

    def extra_teams(self, friends: list[User], own_team: str) -> list[str]:
        """Clubs other than `own_team` that enough distinct friends favour."""
        counts = Counter(
            f.profile.favorite_team for f in friends if isinstance(f.profile, FanProfile)
        )
        return sorted(
            team
            for team, n in counts.items()
            if team and team != own_team and n >= self.limits.extra_team_threshold
        )

    def extra_team_posts(self, friends: list[User], own_team: str) -> list[EnrichedPost]:
        teams = self.extra_teams(friends, own_team)
        if not teams:
            return []
        clubs = [
            User.from_node(n)
            for n in self.store.find_many(USER, {"role": Role.CLUB.value}, where_in={"clubName": teams})
        ]
        return self.posts_by(clubs, FeedCategory.EXTRA_TEAM)

    def fan_feed(self, viewer: User, profile: FanProfile) -> list[EnrichedPost]:
        team = profile.favorite_team
        friends = self.friends.friends_of(viewer)

        sources = {
            FeedCategory.TEAM: self.team_posts(team),
            FeedCategory.FAN_EXCHANGE: self.fan_exchange_posts(viewer, team),
            FeedCategory.FRIEND: self.friend_posts(friends),
            FeedCategory.EXTRA_TEAM: self.extra_team_posts(friends, team),
        }
        merged: dict[str, EnrichedPost] = {}
        for category in FAN_CATEGORY_ORDER:
            for post in sources[category]:
                merged.setdefault(post.id, post)
        return newest_first(merged.values())

    # --------------------------
    # Clubs
    # --------------------------

    def club_feed(self, viewer: User, profile: ClubProfile) -> list[EnrichedPost]:
        club = profile.club_name

        merged: dict[str, EnrichedPost] = {p.id: p for p in self.posts_by([viewer], FeedCategory.OWN)}
        followers = self._users(role=Role.FAN.value, favoriteTeam=club)
        for post in self.posts_by(followers, FeedCategory.FAN):
            merged.setdefault(post.id, post)

        tagged = [
            row
            for row in self.store.edges(POSTED)
            if row.dst.get("clubTag") == club and row.src.get("role") == Role.FAN.value
        ]
        for post in self._enrich_rows(tagged, FeedCategory.FAN):
            merged.setdefault(post.id, post)
        return newest_first(merged.values())

    # --------------------------
    # Journalists
    # --------------------------

    def journalist_feed(self, options: FeedOptions) -> list[EnrichedPost]:
        view = options.view
        if view is JournalistView.FILTER_BY_TEAM:
            team = (options.team or "").strip()
            if not team:
                raise ValidationError("a team name is required to filter posts")
            return [p for p in self.all_posts(FeedCategory.JOURNALIST) if p.club_tag == team]

        posts = self.all_posts(FeedCategory.JOURNALIST)
        match view:
            case JournalistView.TOP_LIKED:
                ranked = sorted(posts, key=lambda p: (p.like_count, p.created_at), reverse=True)
                return ranked[: self.limits.top_limit]
            case JournalistView.TOP_COMMENTED:
                ranked = sorted(posts, key=lambda p: (p.comment_count, p.created_at), reverse=True)
                return ranked[: self.limits.top_limit]
            case JournalistView.LAST_24H:
                since = self.clock() - self.limits.recent_window_ms
                return [p for p in posts if p.created_at >= since]
            case _:
                return posts
