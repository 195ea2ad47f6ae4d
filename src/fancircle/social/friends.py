from __future__ import annotations

import logging
from collections.abc import Callable

from fancircle.errors import ConflictError, NotFoundError, ValidationError
from fancircle.graph.schema import FRIEND_REQUEST, FRIENDS_WITH, USER
from fancircle.graph.store import EdgeSpec, GraphStore, MissingNode, NodeRef

from . import policy
from .clock import now_ms
from .models import Decision, FriendRequest, User

logger = logging.getLogger(__name__)


class FriendshipService:
    """Friend request lifecycle between fans.

    Per ordered pair (requester, target): NONE -> REQUESTED -> FRIENDS | NONE.
    A friendship is two FRIENDS_WITH edges that only ever appear together,
    through `swap_edges`, in the same step that removes the request.
    """

    def __init__(self, store: GraphStore, clock: Callable[[], int] = now_ms):
        self.store = store
        self.clock = clock

    def _load_user(self, email: str) -> User:
        node = self.store.find_one(USER, {"email": email})
        if node is None:
            raise NotFoundError(f"user {email} does not exist")
        return User.from_node(node)

    def are_friends(self, a: str, b: str) -> bool:
        rows = self.store.edges(FRIENDS_WITH, src=NodeRef(USER, a), dst=NodeRef(USER, b))
        return bool(rows)

    def send_request(self, requester: User, target_email: str) -> FriendRequest:
        target_email = (target_email or "").strip()
        if not target_email:
            raise ValidationError("target email must not be empty")
        if target_email == requester.email:
            raise ValidationError("you cannot send a friend request to yourself")
        policy.require_fans(requester)
        target = self._load_user(target_email)
        policy.require_fans(target)

        if self.are_friends(requester.email, target.email):
            raise ConflictError(f"you are already friends with {target.email}")

        requested_at = self.clock()
        try:
            created = self.store.create_edge(
                FRIEND_REQUEST,
                requester.ref,
                target.ref,
                {"requestedAt": requested_at},
                unique=True,
            )
        except MissingNode as e:
            raise NotFoundError(str(e)) from e
        if not created:
            raise ConflictError(f"a friend request to {target.email} is already pending")

        logger.info("friend request %s -> %s", requester.email, target.email)
        return FriendRequest(requester.email, target.email, requested_at)

    def list_incoming(self, user: User) -> list[FriendRequest]:
        rows = self.store.edges(FRIEND_REQUEST, dst=user.ref)
        out = [
            FriendRequest(
                requester=row.src["email"],
                target=row.dst["email"],
                requested_at=row.props.get("requestedAt"),
            )
            for row in rows
        ]
        out.sort(key=lambda r: (r.requested_at or 0, r.requester))
        return out

    def resolve_request(self, requester_email: str, target: User, decision: Decision) -> bool:
        """Accept or reject a pending request; returns True when now friends."""
        policy.require_fans(target)
        requester = NodeRef(USER, requester_email)
        delete = EdgeSpec(FRIEND_REQUEST, requester, target.ref)

        create: list[EdgeSpec] = []
        if decision is Decision.ACCEPT:
            since = {"since": self.clock()}
            create = [
                EdgeSpec(FRIENDS_WITH, requester, target.ref, since),
                EdgeSpec(FRIENDS_WITH, target.ref, requester, since),
            ]

        try:
            swapped = self.store.swap_edges(delete=delete, create=create)
        except MissingNode as e:
            raise NotFoundError(str(e)) from e
        if not swapped:
            raise NotFoundError(f"no pending friend request from {requester_email}")

        logger.info("friend request %s -> %s: %s", requester_email, target.email, decision.value)
        return decision is Decision.ACCEPT

    def friends_of(self, user: User) -> list[User]:
        """Distinct users befriended with `user`, whichever direction the edge points."""
        seen: dict[str, User] = {}
        for row in self.store.edges(FRIENDS_WITH, src=user.ref):
            seen.setdefault(row.dst["email"], User.from_node(row.dst))
        for row in self.store.edges(FRIENDS_WITH, dst=user.ref):
            seen.setdefault(row.src["email"], User.from_node(row.src))
        seen.pop(user.email, None)
        return list(seen.values())
