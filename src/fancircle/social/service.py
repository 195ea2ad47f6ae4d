from __future__ import annotations

import logging
from collections.abc import Callable

from fancircle.errors import NotFoundError, SessionRequiredError
from fancircle.graph.store import GraphStore
from fancircle.identity import PasswordHasher, SessionGate
from fancircle.settings import FanCircleSettings

from . import policy
from .accounts import AccountService
from .clock import now_ms
from .feed import FeedEngine, FeedLimits
from .friends import FriendshipService
from .models import Decision, EnrichedPost, FeedOptions, FriendRequest, GraphExport, Role, User
from .posts import PostService

logger = logging.getLogger(__name__)


class FanCircle:
    """Operations offered to the command line (or any other front end).

    Each call first resolves the caller through the session gate; without a
    valid session it raises `SessionRequiredError` before touching the store.
    """

    def __init__(
        self,
        store: GraphStore,
        gate: SessionGate,
        *,
        settings: FanCircleSettings,
        hasher: PasswordHasher | None = None,
        clock: Callable[[], int] = now_ms,
    ):
        self.store = store
        self.gate = gate
        self.settings = settings
        self.accounts = AccountService(
            store,
            hasher or PasswordHasher(rounds=settings.bcrypt_rounds),
            teams=settings.teams,
            clock=clock,
        )
        self.friends = FriendshipService(store, clock=clock)
        self.posts = PostService(store, clock=clock)
        self.feeds = FeedEngine(
            store,
            friends=self.friends,
            limits=FeedLimits(
                extra_team_threshold=settings.extra_team_threshold,
                top_limit=settings.journalist_top_limit,
                recent_window_ms=settings.recent_window_ms,
            ),
            clock=clock,
        )

    def _caller(self) -> User:
        email = self.gate.current_identity()
        if not email:
            raise SessionRequiredError("please log in first")
        try:
            return self.accounts.get(email)
        except NotFoundError:
            raise SessionRequiredError("the logged-in account no longer exists") from None

    # --- accounts ---

    def register_user(
        self,
        *,
        username: str,
        email: str,
        password: str,
        confirm_password: str,
        role: Role | str,
        detail: str | None = None,
    ) -> User:
        return self.accounts.register(
            username=username,
            email=email,
            password=password,
            confirm_password=confirm_password,
            role=role,
            detail=detail,
        )

    def create_admin(self) -> User:
        return self.accounts.create_admin(self.settings.admin_email, self.settings.admin_password)

    def login(self, identifier: str, password: str) -> User:
        user = self.accounts.authenticate(identifier, password)
        self.gate.open(user.email)
        logger.info("%s logged in", user.email)
        return user

    def logout(self) -> None:
        if not self.gate.close():
            raise NotFoundError("no active login found")

    def whoami(self) -> User:
        return self._caller()

    def list_clubs(self) -> list[str]:
        self._caller()
        return self.accounts.list_clubs()

    def list_users_admin(self) -> list[User]:
        return self.accounts.list_users(self._caller())

    def export_admin(self) -> GraphExport:
        return self.accounts.export(self._caller())

    # --- friendships ---

    def send_friend_request(self, target_email: str) -> FriendRequest:
        return self.friends.send_request(self._caller(), target_email)

    def list_pending_requests(self) -> list[FriendRequest]:
        me = self._caller()
        policy.require_fans(me)
        return self.friends.list_incoming(me)

    def resolve_friend_request(self, requester_email: str, decision: Decision | str) -> bool:
        return self.friends.resolve_request(requester_email, self._caller(), Decision(decision))

    # --- feeds ---

    def compute_feed(self, options: FeedOptions | None = None) -> list[EnrichedPost]:
        me = self._caller()
        policy.require_feed_reader(me)
        return self.feeds.compute_feed(me, options)

    def list_own_posts(self) -> list[EnrichedPost]:
        return self.feeds.own_posts(self._caller())

    def list_all_posts(self) -> list[EnrichedPost]:
        self._caller()
        return self.feeds.all_posts()

    # --- posts ---

    def publish_post(self, content: str, club_tag: str | None = None) -> EnrichedPost:
        return self.posts.publish(self._caller(), content, club_tag)

    def edit_own_post(self, post_id: str, content: str) -> None:
        self.posts.edit(self._caller(), post_id, content)

    def delete_own_post(self, post_id: str) -> None:
        self.posts.delete(self._caller(), post_id)

    def add_comment(self, post_id: str, content: str) -> None:
        self.posts.comment(self._caller(), post_id, content)

    def toggle_like(self, post_id: str) -> None:
        # Create-only: a second like is a conflict, there is no unlike.
        self.posts.like(self._caller(), post_id)
