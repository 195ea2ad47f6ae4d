"""Labels, relationship types and uniqueness rules of the community graph."""

from __future__ import annotations

USER = "User"
POST = "Post"

# Property that identifies a node of each label.
NODE_KEYS: dict[str, str] = {
    USER: "email",
    POST: "id",
}

# Unique properties per label. Nodes that lack the property are exempt, so
# `clubName` is only unique among clubs and `adminSlot` (set on the admin
# node alone) caps the admin role at one user.
UNIQUE_PROPERTIES: dict[str, tuple[str, ...]] = {
    USER: ("email", "username", "clubName", "adminSlot"),
    POST: ("id",),
}

ADMIN_SLOT = "singleton"

POSTED = "POSTED"
COMMENTED = "COMMENTED"
LIKED = "LIKED"
FRIEND_REQUEST = "FRIEND_REQUEST"
FRIENDS_WITH = "FRIENDS_WITH"

RELATIONSHIP_TYPES = frozenset({POSTED, COMMENTED, LIKED, FRIEND_REQUEST, FRIENDS_WITH})


def key_of(label: str) -> str:
    try:
        return NODE_KEYS[label]
    except KeyError:
        raise ValueError(f"unknown node label: {label!r}") from None


def check_rel_type(rel_type: str) -> str:
    if rel_type not in RELATIONSHIP_TYPES:
        raise ValueError(f"unknown relationship type: {rel_type!r}")
    return rel_type
