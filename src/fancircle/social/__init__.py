"""Community core: friendships, feeds, posts and the rules guarding them."""

from .feed import FeedEngine, FeedLimits
from .friends import FriendshipService
from .models import (
    Decision,
    EnrichedPost,
    FeedCategory,
    FeedOptions,
    FriendRequest,
    JournalistView,
    Role,
    User,
)
from .service import FanCircle

__all__ = [
    "Decision",
    "EnrichedPost",
    "FanCircle",
    "FeedCategory",
    "FeedEngine",
    "FeedLimits",
    "FeedOptions",
    "FriendRequest",
    "FriendshipService",
    "JournalistView",
    "Role",
    "User",
]
