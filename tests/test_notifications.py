"""Tests for NotificationDispatcher."""

from unittest.mock import MagicMock

import pytest

from socialfed.background import InlineTaskQueue
from socialfed.notifications import (
    NotificationDispatcher,
    NotificationType,
    extract_mentions,
)
from socialfed.push import PushPayload


class TestExtractMentions:
    def test_distinct_in_order(self) -> None:
        assert extract_mentions("hi @bob and @alice, also @bob") == ["bob", "alice"]

    def test_handle_ends_at_non_word_character(self) -> None:
        assert extract_mentions("@alice's post, cc @bob_2!") == ["alice", "bob_2"]

    def test_case_sensitive(self) -> None:
        assert extract_mentions("@Alice @alice") == ["Alice", "alice"]

    def test_no_mentions(self) -> None:
        assert extract_mentions("no mentions here @ all") == []
        assert extract_mentions("") == []


@pytest.fixture
def push_service() -> MagicMock:
    return MagicMock()


@pytest.fixture
def task_queue() -> MagicMock:
    queue = MagicMock()
    queue.submit.return_value = True
    return queue


@pytest.fixture
def dispatcher(store, identity, push_service, task_queue) -> NotificationDispatcher:
    return NotificationDispatcher(store, identity, push_service, task_queue)


class TestNotify:
    """Tests for creating notifications and scheduling push."""

    def test_notify_persists(self, dispatcher: NotificationDispatcher, alice, bob) -> None:
        notification = dispatcher.notify(
            NotificationType.LIKE, alice.id, bob.id, "bob liked your post", post_id="p1"
        )

        assert notification is not None
        assert notification.read is False
        stored = dispatcher.get_notification(notification.id)
        assert stored.type == NotificationType.LIKE
        assert stored.post_id == "p1"
        assert stored.message == "bob liked your post"

    def test_notify_accepts_type_string(self, dispatcher: NotificationDispatcher, alice, bob) -> None:
        notification = dispatcher.notify("follow", alice.id, bob.id, "bob followed you")
        assert notification.type == NotificationType.FOLLOW

    def test_notify_schedules_push(
        self, dispatcher: NotificationDispatcher, push_service, task_queue, alice, bob
    ) -> None:
        dispatcher.notify(NotificationType.LIKE, alice.id, bob.id, "liked", post_id="p1")

        task_queue.submit.assert_called_once()
        fn, recipient_id, payload = task_queue.submit.call_args.args
        assert fn is push_service.deliver
        assert recipient_id == alice.id
        assert payload == PushPayload(title="bob", body="liked", url="/posts/p1")

    def test_storage_failure_returns_none(
        self, dispatcher: NotificationDispatcher, store, task_queue
    ) -> None:
        store.notifications = MagicMock()
        store.notifications.create.side_effect = RuntimeError("db down")

        assert dispatcher.notify(NotificationType.LIKE, "a", "b", "liked") is None
        task_queue.submit.assert_not_called()

    def test_invalid_type_returns_none(self, dispatcher: NotificationDispatcher) -> None:
        assert dispatcher.notify("poke", "a", "b", "poked") is None

    def test_dropped_push_keeps_notification(
        self, dispatcher: NotificationDispatcher, task_queue, alice, bob
    ) -> None:
        task_queue.submit.return_value = False

        notification = dispatcher.notify(NotificationType.LIKE, alice.id, bob.id, "liked")

        assert dispatcher.get_notification(notification.id) is not None

    def test_queue_error_keeps_notification(
        self, dispatcher: NotificationDispatcher, task_queue, alice, bob
    ) -> None:
        task_queue.submit.side_effect = RuntimeError("queue broken")

        notification = dispatcher.notify(NotificationType.LIKE, alice.id, bob.id, "liked")

        assert notification is not None
        assert dispatcher.unread_count(alice.id) == 1

    def test_push_failure_does_not_affect_notification(self, store, identity, alice, bob) -> None:
        push_service = MagicMock()
        push_service.deliver.side_effect = RuntimeError("push down")
        dispatcher = NotificationDispatcher(store, identity, push_service, InlineTaskQueue())

        notification = dispatcher.notify(NotificationType.LIKE, alice.id, bob.id, "liked")

        assert notification is not None
        push_service.deliver.assert_called_once()

    def test_without_push_service(self, store, identity, alice, bob) -> None:
        dispatcher = NotificationDispatcher(store, identity)
        assert dispatcher.notify(NotificationType.LIKE, alice.id, bob.id, "liked") is not None


class TestMentions:
    def test_notifies_known_handles(self, dispatcher: NotificationDispatcher, alice, bob, identity) -> None:
        carol = identity.create_actor("carol")

        notifications = dispatcher.notify_mentions(
            "hey @bob and @carol and @nobody", alice.id, alice.handle, post_id="p1"
        )

        assert [n.recipient_id for n in notifications] == [bob.id, carol.id]
        assert all(n.type == NotificationType.MENTION for n in notifications)
        assert notifications[0].message == "alice mentioned you"
        assert notifications[0].post_id == "p1"

    def test_author_not_notified(self, dispatcher: NotificationDispatcher, alice) -> None:
        assert dispatcher.notify_mentions("note to self @alice", alice.id, "alice") == []

    def test_repeated_mention_notifies_once(self, dispatcher: NotificationDispatcher, alice, bob) -> None:
        notifications = dispatcher.notify_mentions("@bob @bob @bob", alice.id, "alice")
        assert len(notifications) == 1


class TestPushPayload:
    def test_follow_links_to_profile(self, dispatcher: NotificationDispatcher, alice, bob) -> None:
        notification = dispatcher.notify(NotificationType.FOLLOW, alice.id, bob.id, "followed")
        payload = dispatcher.build_push_payload(notification)
        assert payload.url == "/users/bob"

    def test_post_without_id_links_to_notifications(
        self, dispatcher: NotificationDispatcher, alice, bob
    ) -> None:
        notification = dispatcher.notify(NotificationType.COMMENT, alice.id, bob.id, "commented")
        assert dispatcher.build_push_payload(notification).url == "/notifications"

    def test_share_links_to_notifications(self, dispatcher: NotificationDispatcher, alice, bob) -> None:
        notification = dispatcher.notify(
            NotificationType.SHARE, alice.id, bob.id, "shared", post_id="p1"
        )
        assert dispatcher.build_push_payload(notification).url == "/notifications"

    def test_title_uses_display_name(self, dispatcher: NotificationDispatcher, alice, bob) -> None:
        notification = dispatcher.notify(NotificationType.LIKE, bob.id, alice.id, "liked")
        payload = dispatcher.build_push_payload(notification)
        assert payload.title == "Alice"
        assert payload.body == "liked"

    def test_unknown_actor_title(self, dispatcher: NotificationDispatcher, alice) -> None:
        notification = dispatcher.notify(
            NotificationType.FOLLOW, alice.id, "https://remote.example/users/x", "followed"
        )
        payload = dispatcher.build_push_payload(notification)
        assert payload.title == "Someone"
        assert payload.url == "/notifications"


class TestReadState:
    def test_list_newest_first(self, dispatcher: NotificationDispatcher, alice, bob) -> None:
        for n in range(3):
            dispatcher.notify(NotificationType.LIKE, alice.id, bob.id, f"like {n}")

        messages = [n.message for n in dispatcher.list_notifications(alice.id)]

        assert messages == ["like 2", "like 1", "like 0"]

    def test_mark_read(self, dispatcher: NotificationDispatcher, alice, bob) -> None:
        notification = dispatcher.notify(NotificationType.LIKE, alice.id, bob.id, "liked")

        assert dispatcher.mark_read(notification.id).read is True
        assert dispatcher.unread_count(alice.id) == 0
        assert dispatcher.mark_read("missing") is None

    def test_mark_all_read(self, dispatcher: NotificationDispatcher, alice, bob) -> None:
        for _ in range(3):
            dispatcher.notify(NotificationType.LIKE, alice.id, bob.id, "liked")
        dispatcher.notify(NotificationType.LIKE, bob.id, alice.id, "liked")

        assert dispatcher.mark_all_read(alice.id) == 3
        assert dispatcher.mark_all_read(alice.id) == 0
        assert dispatcher.unread_count(bob.id) == 1

    def test_delete(self, dispatcher: NotificationDispatcher, alice, bob) -> None:
        notification = dispatcher.notify(NotificationType.LIKE, alice.id, bob.id, "liked")

        assert dispatcher.delete_notification(notification.id) is True
        assert dispatcher.delete_notification(notification.id) is False
        assert dispatcher.list_notifications(alice.id) == []
