from __future__ import annotations

import logging
import uuid
from collections.abc import Callable

from fancircle.errors import ConflictError, NotFoundError, ValidationError
from fancircle.graph.schema import COMMENTED, LIKED, POST, POSTED
from fancircle.graph.store import GraphStore, MissingNode, NodeRef

from . import policy
from .clock import now_ms
from .models import EnrichedPost, FeedCategory, User

logger = logging.getLogger(__name__)


def _require_text(value: str | None, what: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{what} must not be empty")
    return text


class PostService:
    """Publishing, editing, deleting, commenting on and liking posts."""

    def __init__(self, store: GraphStore, clock: Callable[[], int] = now_ms):
        self.store = store
        self.clock = clock

    def _post(self, post_id: str) -> dict:
        node = self.store.find_one(POST, {"id": post_id})
        if node is None:
            raise NotFoundError(f"post {post_id} does not exist")
        return node

    def author_of(self, post_id: str) -> str | None:
        rows = self.store.edges(POSTED, dst=NodeRef(POST, post_id))
        return rows[0].src["email"] if rows else None

    def publish(self, author: User, content: str, club_tag: str | None = None) -> EnrichedPost:
        policy.require_author(author)
        content = _require_text(content, "post content")
        club_tag = (club_tag or "").strip() or None

        props = {"id": uuid.uuid4().hex, "content": content, "createdAt": self.clock()}
        if club_tag:
            props["clubTag"] = club_tag
        try:
            node = self.store.create_node(POST, props, owned_by=(POSTED, author.ref))
        except MissingNode as e:
            raise NotFoundError(str(e)) from e

        logger.info("post %s published by %s", node["id"], author.email)
        return EnrichedPost(
            id=node["id"],
            author=author.email,
            content=content,
            created_at=node["createdAt"],
            category=FeedCategory.OWN,
            club_tag=club_tag,
        )

    def edit(self, user: User, post_id: str, content: str) -> None:
        self._post(post_id)
        policy.require_owner(user, self.author_of(post_id))
        content = _require_text(content, "post content")
        if self.store.update_node(NodeRef(POST, post_id), {"content": content}) is None:
            raise NotFoundError(f"post {post_id} does not exist")
        logger.info("post %s edited by %s", post_id, user.email)

    def delete(self, user: User, post_id: str) -> None:
        """Delete a post; its comment and like edges go with it."""
        self._post(post_id)
        policy.require_owner(user, self.author_of(post_id))
        if not self.store.delete_node(NodeRef(POST, post_id)):
            raise NotFoundError(f"post {post_id} does not exist")
        logger.info("post %s deleted by %s", post_id, user.email)

    def comment(self, user: User, post_id: str, content: str) -> None:
        policy.require_author(user)
        content = _require_text(content, "comment")
        self._post(post_id)
        try:
            self.store.create_edge(
                COMMENTED,
                user.ref,
                NodeRef(POST, post_id),
                {"content": content, "createdAt": self.clock()},
            )
        except MissingNode as e:
            raise NotFoundError(str(e)) from e
        logger.info("%s commented on post %s", user.email, post_id)

    def like(self, user: User, post_id: str) -> None:
        policy.require_liker(user)
        self._post(post_id)
        try:
            created = self.store.create_edge(LIKED, user.ref, NodeRef(POST, post_id), unique=True)
        except MissingNode as e:
            raise NotFoundError(str(e)) from e
        if not created:
            raise ConflictError("you already liked this post")
        logger.info("%s liked post %s", user.email, post_id)
