from __future__ import annotations

import pytest

from conftest import add_user
from fancircle.errors import AuthorizationError, ValidationError
from fancircle.graph.schema import COMMENTED, LIKED
from fancircle.social.models import FeedCategory, FeedOptions, JournalistView, Role


def _categories(feed):
    return {p.content: p.category for p in feed}


class TestFanFeed:
    def test_four_sources(self, store, posts, feeds, befriend):
        me = add_user(store, "me@x.de", detail="X")
        club_x = add_user(store, "club-x@x.de", Role.CLUB, "X")
        club_w = add_user(store, "club-w@x.de", Role.CLUB, "Z")
        mate = add_user(store, "mate@x.de", detail="X")
        friend = add_user(store, "friend@x.de", detail="Y")
        stranger = add_user(store, "stranger@x.de", detail="Y")
        befriend(me, friend)

        posts.publish(club_x, "club news")
        posts.publish(club_w, "other club news")
        posts.publish(mate, "same team chatter")
        posts.publish(friend, "friend update")
        posts.publish(stranger, "not for me")
        posts.publish(me, "my own post")

        feed = feeds.compute_feed(me)
        assert _categories(feed) == {
            "club news": FeedCategory.TEAM,
            "same team chatter": FeedCategory.FAN_EXCHANGE,
            "friend update": FeedCategory.FRIEND,
        }

    def test_newest_first_across_categories(self, store, posts, feeds, befriend):
        me = add_user(store, "me@x.de", detail="X")
        club = add_user(store, "club@x.de", Role.CLUB, "X")
        friend = add_user(store, "friend@x.de", detail="Y")
        befriend(me, friend)

        posts.publish(club, "first")
        posts.publish(friend, "second")
        posts.publish(club, "third")

        feed = feeds.compute_feed(me)
        assert [p.content for p in feed] == ["third", "second", "first"]
        assert feed[0].created_at > feed[1].created_at > feed[2].created_at

    def test_extra_team_threshold(self, store, posts, feeds, befriend):
        me = add_user(store, "f1@x.de", detail="X")
        for i in range(6):
            befriend(me, add_user(store, f"y{i}@x.de", detail="Y"))
        for i in range(3):
            befriend(add_user(store, f"z{i}@x.de", detail="Z"), me)
        club_y = add_user(store, "club-y@x.de", Role.CLUB, "Y")
        club_z = add_user(store, "club-z@x.de", Role.CLUB, "Z")
        posts.publish(club_y, "Y news")
        posts.publish(club_z, "Z news")

        assert feeds.extra_teams(feeds.friends.friends_of(me), "X") == ["Y"]
        feed = _categories(feeds.compute_feed(me))
        assert feed["Y news"] is FeedCategory.EXTRA_TEAM
        assert "Z news" not in feed

    def test_friends_of_own_team_do_not_make_it_extra(self, store, posts, feeds, befriend):
        me = add_user(store, "me@x.de", detail="X")
        for i in range(5):
            befriend(me, add_user(store, f"x{i}@x.de", detail="X"))
        club_x = add_user(store, "club-x@x.de", Role.CLUB, "X")
        posts.publish(club_x, "X news")

        assert feeds.extra_teams(feeds.friends.friends_of(me), "X") == []
        assert _categories(feeds.compute_feed(me))["X news"] is FeedCategory.TEAM

    def test_post_in_several_sources_is_kept_once(self, store, posts, feeds, befriend):
        me = add_user(store, "me@x.de", detail="X")
        mate = add_user(store, "mate@x.de", detail="X")
        befriend(me, mate)
        posts.publish(mate, "hello")

        feed = feeds.compute_feed(me)
        assert len(feed) == 1
        # fanExchange outranks friend.
        assert feed[0].category is FeedCategory.FAN_EXCHANGE

    def test_no_posts_is_an_empty_feed(self, store, feeds):
        me = add_user(store, "me@x.de")
        assert feeds.compute_feed(me) == []


class TestEngagement:
    def test_likes_and_comments(self, store, posts, feeds):
        me = add_user(store, "me@x.de", detail="X")
        club = add_user(store, "club@x.de", Role.CLUB, "X")
        fan = add_user(store, "fan@x.de", detail="Y")
        post = posts.publish(club, "match day")
        posts.like(me, post.id)
        posts.like(fan, post.id)
        posts.comment(fan, post.id, "good luck")
        posts.comment(fan, post.id, "good luck")
        posts.comment(me, post.id, "thanks")

        [enriched] = feeds.compute_feed(me)
        assert enriched.like_count == 2
        assert enriched.liked_by == {"me@x.de", "fan@x.de"}
        # Comments are not deduplicated.
        assert [(c.author, c.content) for c in enriched.comments] == [
            ("fan@x.de", "good luck"),
            ("fan@x.de", "good luck"),
            ("me@x.de", "thanks"),
        ]

    def test_duplicate_like_rows_count_once(self, store, posts, feeds):
        fan = add_user(store, "fan@x.de")
        club = add_user(store, "club@x.de", Role.CLUB, "X")
        post = posts.publish(club, "news")
        # Bypass the unique guard to mimic traversal fan-out.
        store.create_edge(LIKED, fan.ref, post.ref)
        store.create_edge(LIKED, fan.ref, post.ref)

        [enriched] = feeds.compute_feed(fan)
        assert enriched.like_count == 1


class TestClubFeed:
    def test_own_and_fan_posts(self, store, posts, feeds):
        club = add_user(store, "club@x.de", Role.CLUB, "X")
        follower = add_user(store, "follower@x.de", detail="X")
        rival = add_user(store, "rival@x.de", detail="Y")
        press = add_user(store, "press@x.de", Role.JOURNALIST, "Kicker")

        posts.publish(club, "official")
        posts.publish(follower, "love this club")
        posts.publish(rival, "about X", club_tag="X")
        posts.publish(rival, "about Y", club_tag="Y")
        posts.publish(press, "press about X", club_tag="X")

        feed = feeds.compute_feed(club)
        assert _categories(feed) == {
            "official": FeedCategory.OWN,
            "love this club": FeedCategory.FAN,
            "about X": FeedCategory.FAN,
        }
        assert [p.content for p in feed] == ["about X", "love this club", "official"]

    def test_tagged_post_of_follower_appears_once(self, store, posts, feeds):
        club = add_user(store, "club@x.de", Role.CLUB, "X")
        follower = add_user(store, "follower@x.de", detail="X")
        posts.publish(follower, "tagged", club_tag="X")
        assert len(feeds.compute_feed(club)) == 1


class TestJournalistFeed:
    @pytest.fixture
    def press(self, store):
        return add_user(store, "press@x.de", Role.JOURNALIST, "Kicker")

    def test_top_liked(self, store, posts, feeds, press):
        author = add_user(store, "author@x.de", Role.CLUB, "X")
        likers = [add_user(store, f"l{i}@x.de") for i in range(9)]
        published = []
        for i, likes in enumerate([9, 1, 9, 5, 0, 3, 9]):
            post = posts.publish(author, f"p{i}")
            for liker in likers[:likes]:
                posts.like(liker, post.id)
            published.append(post)

        feed = feeds.compute_feed(press, FeedOptions(view=JournalistView.TOP_LIKED))
        assert [p.content for p in feed] == ["p6", "p2", "p0", "p3", "p5"]
        assert [p.like_count for p in feed] == [9, 9, 9, 5, 3]

    def test_top_commented(self, store, posts, feeds, press):
        author = add_user(store, "author@x.de", Role.CLUB, "X")
        fan = add_user(store, "fan@x.de")
        for i, n in enumerate([2, 0, 4, 2, 1, 3]):
            post = posts.publish(author, f"p{i}")
            for _ in range(n):
                posts.comment(fan, post.id, "!")

        feed = feeds.compute_feed(press, FeedOptions(view=JournalistView.TOP_COMMENTED))
        assert [p.content for p in feed] == ["p2", "p5", "p3", "p0", "p4"]

    def test_filter_by_team(self, store, posts, feeds, press):
        fan = add_user(store, "fan@x.de")
        posts.publish(fan, "tagged X", club_tag="X")
        posts.publish(fan, "tagged Y", club_tag="Y")
        posts.publish(fan, "untagged")

        feed = feeds.compute_feed(press, FeedOptions(view=JournalistView.FILTER_BY_TEAM, team=" X "))
        assert [p.content for p in feed] == ["tagged X"]

    @pytest.mark.parametrize("team", [None, "", "   "])
    def test_filter_by_blank_team(self, feeds, press, team):
        with pytest.raises(ValidationError):
            feeds.compute_feed(press, FeedOptions(view=JournalistView.FILTER_BY_TEAM, team=team))

    def test_last_24h(self, store, posts, feeds, press, clock):
        fan = add_user(store, "fan@x.de")
        posts.publish(fan, "yesterday")
        clock.advance(25 * 3600 * 1000)
        posts.publish(fan, "today")

        feed = feeds.compute_feed(press, FeedOptions(view=JournalistView.LAST_24H))
        assert [p.content for p in feed] == ["today"]

    def test_all(self, store, posts, feeds, press):
        fan = add_user(store, "fan@x.de")
        club = add_user(store, "club@x.de", Role.CLUB, "Y")
        posts.publish(fan, "one")
        posts.publish(club, "two")

        feed = feeds.compute_feed(press)
        assert [p.content for p in feed] == ["two", "one"]
        assert {p.category for p in feed} == {FeedCategory.JOURNALIST}


def test_admin_has_no_feed(store, feeds):
    admin = add_user(store, "admin@x.de", Role.ADMIN, None)
    with pytest.raises(AuthorizationError):
        feeds.compute_feed(admin)


def test_deleted_post_disappears_with_engagement(store, posts, feeds):
    club = add_user(store, "club@x.de", Role.CLUB, "X")
    fan = add_user(store, "fan@x.de", detail="X")
    post = posts.publish(club, "soon gone")
    posts.like(fan, post.id)
    posts.comment(fan, post.id, "bye")

    posts.delete(club, post.id)

    assert feeds.compute_feed(fan) == []
    assert feeds.compute_feed(club) == []
    assert store.edges(LIKED, dst=post.ref) == []
    assert store.edges(COMMENTED, dst=post.ref) == []
    assert store.edges(LIKED) == [] and store.edges(COMMENTED) == []


def test_role_feeds_take_the_narrowed_profile(store, posts, feeds):
    club = add_user(store, "club@x.de", Role.CLUB, "X")
    fan = add_user(store, "fan@x.de", detail="X")
    posts.publish(club, "news")

    assert [p.category for p in feeds.fan_feed(fan, fan.profile)] == [FeedCategory.TEAM]
    assert [p.category for p in feeds.club_feed(club, club.profile)] == [FeedCategory.OWN]
