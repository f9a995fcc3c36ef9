"""Tests for SocialInteractions."""

from unittest.mock import AsyncMock, MagicMock

import pytest

from socialfed.activities import InvalidActivityError
from socialfed.background import InlineTaskQueue
from socialfed.errors import ActorNotFoundError
from socialfed.follow import DuplicateFollowError, FollowState
from socialfed.notifications import NotificationDispatcher, NotificationType
from socialfed.push import PushDeliveryService
from socialfed.social import SelfFollowError, SocialInteractions


@pytest.fixture
def dispatcher(store, identity) -> NotificationDispatcher:
    return NotificationDispatcher(store, identity)


@pytest.fixture
def social(store, config, dispatcher, hooks) -> SocialInteractions:
    return SocialInteractions(store, config, dispatcher, hooks)


class TestFollow:
    """Tests for local follows."""

    def test_follow_auto_accepted(self, social: SocialInteractions, dispatcher, alice, bob) -> None:
        follow = social.follow(alice.id, "bob")

        assert follow.accepted is True
        assert social.follows.state(alice.id, bob.id) == FollowState.ACCEPTED

        sent = social.log.list_outbox(alice.id)
        assert [item.activity_type for item in sent] == ["Follow"]
        assert sent[0].activity["object"] == bob.actor_url

        answered = social.log.list_outbox(bob.id)
        assert [item.activity_type for item in answered] == ["Accept"]
        assert answered[0].activity["object"]["id"] == follow.activity_id

        notifications = dispatcher.list_notifications(bob.id)
        assert len(notifications) == 1
        assert notifications[0].type == NotificationType.FOLLOW
        assert notifications[0].message == "Alice started following you"

    def test_follow_request_without_auto_accept(
        self, social: SocialInteractions, config, dispatcher, alice, bob
    ) -> None:
        config.auto_accept_follows = False

        follow = social.follow(alice.id, "bob")

        assert follow.accepted is False
        assert social.log.list_outbox(bob.id) == []
        assert dispatcher.list_notifications(bob.id)[0].message == "Alice requested to follow you"

    def test_self_follow(self, social: SocialInteractions, alice) -> None:
        with pytest.raises(SelfFollowError):
            social.follow(alice.id, "alice")

    def test_duplicate_follow(self, social: SocialInteractions, alice, bob) -> None:
        social.follow(alice.id, "bob")
        with pytest.raises(DuplicateFollowError):
            social.follow(alice.id, "bob")

    def test_unknown_target(self, social: SocialInteractions, alice) -> None:
        with pytest.raises(ActorNotFoundError):
            social.follow(alice.id, "nobody")

    def test_unfollow(self, social: SocialInteractions, alice, bob) -> None:
        follow = social.follow(alice.id, "bob")

        assert social.unfollow(alice.id, "bob") is True

        assert social.follows.state(alice.id, bob.id) == FollowState.NONE
        undo = social.log.list_outbox(alice.id)[0]
        assert undo.activity_type == "Undo"
        assert undo.activity["object"]["id"] == follow.activity_id
        assert undo.activity["object"]["type"] == "Follow"

    def test_unfollow_without_follow(self, social: SocialInteractions, alice, bob) -> None:
        assert social.unfollow(alice.id, "bob") is False

    def test_accept_request(self, social: SocialInteractions, config, alice, bob) -> None:
        config.auto_accept_follows = False
        follow = social.follow(alice.id, "bob")

        accepted = social.accept_request(bob.id, follow.id)

        assert accepted.accepted is True
        assert social.log.list_outbox(bob.id)[0].activity_type == "Accept"
        assert [f.follower_id for f in social.follows.get_followers(bob.id)] == [alice.id]

    def test_accept_request_for_someone_else(
        self, social: SocialInteractions, config, alice, bob
    ) -> None:
        config.auto_accept_follows = False
        follow = social.follow(alice.id, "bob")

        assert social.accept_request(alice.id, follow.id) is None
        assert social.follows.state(alice.id, bob.id) == FollowState.PENDING

    def test_reject_request(self, social: SocialInteractions, config, alice, bob) -> None:
        config.auto_accept_follows = False
        follow = social.follow(alice.id, "bob")

        assert social.reject_request(bob.id, follow.id) is True

        assert social.follows.state(alice.id, bob.id) == FollowState.NONE
        reject = social.log.list_outbox(bob.id)[0]
        assert reject.activity_type == "Reject"
        assert reject.activity["object"]["actor"] == alice.actor_url

    def test_reject_accepted_follow(self, social: SocialInteractions, alice, bob) -> None:
        follow = social.follow(alice.id, "bob")
        assert social.reject_request(bob.id, follow.id) is False


class TestInteractions:
    """Tests for likes, shares, comments and posts."""

    def test_like_notifies_author(self, social: SocialInteractions, dispatcher, alice, bob) -> None:
        activity = social.like(bob.id, "p1", "https://social.example/notes/p1", alice.id)

        assert activity.object == "https://social.example/notes/p1"
        notification = dispatcher.list_notifications(alice.id)[0]
        assert notification.type == NotificationType.LIKE
        assert notification.message == "bob liked your post"
        assert notification.post_id == "p1"

    def test_like_own_post_not_notified(self, social: SocialInteractions, dispatcher, alice) -> None:
        social.like(alice.id, "p1", "https://social.example/notes/p1", alice.id)

        assert dispatcher.list_notifications(alice.id) == []
        assert len(social.log.list_outbox(alice.id)) == 1

    def test_unlike(self, social: SocialInteractions, dispatcher, alice, bob) -> None:
        like = social.like(bob.id, "p1", "https://social.example/notes/p1", alice.id)

        undo = social.unlike(bob.id, like)

        assert undo.actor == bob.actor_url
        assert undo.object == like
        outbox = social.log.list_outbox(bob.id)
        assert [item.activity_type for item in outbox] == ["Undo", "Like"]
        assert outbox[0].activity["object"]["id"] == like.id
        assert len(dispatcher.list_notifications(alice.id)) == 1

    def test_unlike_someone_elses_like(self, social: SocialInteractions, alice, bob) -> None:
        like = social.like(bob.id, "p1", "https://social.example/notes/p1", alice.id)

        with pytest.raises(InvalidActivityError):
            social.unlike(alice.id, like)

        assert social.log.list_outbox(alice.id) == []

    def test_share(self, social: SocialInteractions, dispatcher, alice, bob) -> None:
        activity = social.share(bob.id, "p1", "https://social.example/notes/p1", alice.id)

        assert activity.to_json()["cc"] == [bob.followers_url]
        assert dispatcher.list_notifications(alice.id)[0].type == NotificationType.SHARE

    def test_comment_notifies_author_and_mentions(
        self, social: SocialInteractions, dispatcher, identity, alice, bob
    ) -> None:
        carol = identity.create_actor("carol")

        activity = social.comment(
            bob.id,
            "p1",
            "c1",
            alice.id,
            "nice one @carol",
            "https://social.example/notes/c1",
        )

        assert activity.object.content == "nice one @carol"
        comment = dispatcher.list_notifications(alice.id)[0]
        assert comment.type == NotificationType.COMMENT
        assert comment.comment_id == "c1"
        mention = dispatcher.list_notifications(carol.id)[0]
        assert mention.type == NotificationType.MENTION
        assert mention.message == "bob mentioned you in a comment"

    def test_comment_on_own_post(self, social: SocialInteractions, dispatcher, alice) -> None:
        social.comment(alice.id, "p1", "c1", alice.id, "self reply", "https://social.example/notes/c1")
        assert dispatcher.list_notifications(alice.id) == []

    def test_publish_note(self, social: SocialInteractions, dispatcher, alice, bob) -> None:
        activity = social.publish_note(
            alice.id, "https://social.example/notes/p1", "hello @bob", post_id="p1"
        )

        assert activity.to_json()["object"]["attributedTo"] == alice.actor_url
        mention = dispatcher.list_notifications(bob.id)[0]
        assert mention.message == "Alice mentioned you in a post"
        assert mention.post_id == "p1"

    def test_unknown_actor(self, social: SocialInteractions) -> None:
        with pytest.raises(ActorNotFoundError):
            social.like("missing", "p1", "https://social.example/notes/p1", "someone")


class TestPushIsolation:
    def test_failing_push_never_fails_an_action(self, store, config, identity, hooks, alice, bob) -> None:
        transport = MagicMock()
        transport.configured = True
        transport.send = AsyncMock(side_effect=RuntimeError("push service down"))
        push = PushDeliveryService(store, config, transport=transport)
        push.save_subscription(alice.id, "https://push.example/1", "k", "a")
        dispatcher = NotificationDispatcher(store, identity, push, InlineTaskQueue())
        social = SocialInteractions(store, config, dispatcher, hooks)

        social.like(bob.id, "p1", "https://social.example/notes/p1", alice.id)

        transport.send.assert_awaited_once()
        assert dispatcher.unread_count(alice.id) == 1
        assert len(push.list_active_subscriptions(alice.id)) == 1
