"""
Notifications for local social events and their hand-off to push delivery.

:meth:`NotificationDispatcher.notify` persists the notification and queues a
push; it never raises. Callers decide whether an event deserves a
notification at all, including skipping notifications to oneself.
"""

import logging
import re
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from socialfed.constants import DEFAULT_PAGE_SIZE, HANDLE_PATTERN, NOTIFICATIONS_PATH
from socialfed.db.utils import new_id, parse_iso, utcnow
from socialfed.push import PushPayload

if TYPE_CHECKING:
    from socialfed.background import TaskQueue
    from socialfed.db import Store
    from socialfed.identity import ActorIdentityManager
    from socialfed.push import PushDeliveryService

logger = logging.getLogger(__name__)

_MENTION_RE = re.compile(rf"@({HANDLE_PATTERN})")


class NotificationType(str, Enum):
    LIKE = "like"
    COMMENT = "comment"
    FOLLOW = "follow"
    MENTION = "mention"
    SHARE = "share"


# Notifications about a post link to that post
_POST_TYPES = (NotificationType.LIKE, NotificationType.COMMENT, NotificationType.MENTION)


@dataclass
class Notification:
    id: str
    recipient_id: str
    actor_id: str
    type: NotificationType
    message: str
    post_id: str | None = None
    comment_id: str | None = None
    read: bool = False
    created_at: datetime = field(default_factory=utcnow)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "recipient_id": self.recipient_id,
            "actor_id": self.actor_id,
            "type": self.type.value,
            "message": self.message,
            "post_id": self.post_id,
            "comment_id": self.comment_id,
            "read": self.read,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Notification":
        return cls(
            id=data["id"],
            recipient_id=data["recipient_id"],
            actor_id=data["actor_id"],
            type=NotificationType(data["type"]),
            message=data["message"],
            post_id=data.get("post_id"),
            comment_id=data.get("comment_id"),
            read=bool(data.get("read", False)),
            created_at=parse_iso(data.get("created_at")) or utcnow(),
        )


def extract_mentions(content: str) -> list[str]:
    """
    Find the distinct @handles in content, in order of first appearance.

    Handles are case-sensitive.

    Example:
        >>> extract_mentions("hello @alice and @alice again, @bob")
        ['alice', 'bob']
    """
    seen: dict[str, None] = {}
    for handle in _MENTION_RE.findall(content or ""):
        seen.setdefault(handle, None)
    return list(seen)


class NotificationDispatcher:
    """
    Stores notifications and schedules their push delivery.

    Args:
        store: Storage bundle from socialfed.db.get_store()
        identity: Used to resolve mentioned handles and acting actors
        push_service: Push delivery; None disables push
        task_queue: Where push deliveries run; without one, push is skipped
    """

    def __init__(
        self,
        store: "Store",
        identity: "ActorIdentityManager",
        push_service: "PushDeliveryService | None" = None,
        task_queue: "TaskQueue | None" = None,
    ) -> None:
        self.store = store
        self.identity = identity
        self.push_service = push_service
        self.task_queue = task_queue

    def notify(
        self,
        notification_type: NotificationType | str,
        recipient_id: str,
        actor_id: str,
        message: str,
        post_id: str | None = None,
        comment_id: str | None = None,
    ) -> Notification | None:
        """
        Persist a notification and queue its push delivery.

        Returns:
            The stored notification, or None if it could not be stored
        """
        try:
            notification = Notification(
                id=new_id(),
                recipient_id=recipient_id,
                actor_id=actor_id,
                type=NotificationType(notification_type),
                message=message,
                post_id=post_id,
                comment_id=comment_id,
            )
            self.store.notifications.create(notification.to_dict())
        except Exception as e:
            logger.error(
                f"Failed to create {notification_type} notification for {recipient_id}: {e}"
            )
            return None

        self._schedule_push(notification)
        return notification

    def _schedule_push(self, notification: Notification) -> None:
        if self.push_service is None or self.task_queue is None:
            return
        try:
            payload = self.build_push_payload(notification)
            queued = self.task_queue.submit(
                self.push_service.deliver, notification.recipient_id, payload
            )
        except Exception as e:
            logger.error(f"Failed to schedule push for notification {notification.id}: {e}")
            return
        if not queued:
            logger.warning(f"Push for notification {notification.id} dropped")

    def notify_mentions(
        self,
        content: str,
        author_id: str,
        author_handle: str,
        message: str | None = None,
        post_id: str | None = None,
        comment_id: str | None = None,
    ) -> list[Notification]:
        """
        Notify every actor mentioned in content, except the author.

        Unknown handles are ignored.
        """
        handles = [h for h in extract_mentions(content) if h != author_handle]
        if not handles:
            return []
        try:
            resolved = self.identity.resolve_handles(handles)
        except Exception as e:
            logger.error(f"Failed to resolve mentions by {author_id}: {e}")
            return []

        text = message or f"{author_handle} mentioned you"
        notifications = []
        for handle in handles:
            recipient_id = resolved.get(handle)
            if recipient_id is None or recipient_id == author_id:
                continue
            notification = self.notify(
                NotificationType.MENTION,
                recipient_id,
                author_id,
                text,
                post_id=post_id,
                comment_id=comment_id,
            )
            if notification is not None:
                notifications.append(notification)
        return notifications

    def build_push_payload(self, notification: Notification) -> PushPayload:
        """Title from the acting actor, body from the message, url by type."""
        actor = self.identity.get_actor(notification.actor_id)
        if actor is not None:
            title = actor.display_name or actor.handle
        else:
            title = "Someone"

        if notification.type in _POST_TYPES:
            url = f"/posts/{notification.post_id}" if notification.post_id else NOTIFICATIONS_PATH
        elif notification.type == NotificationType.FOLLOW and actor is not None:
            url = f"/users/{actor.handle}"
        else:
            url = NOTIFICATIONS_PATH

        return PushPayload(title=title, body=notification.message, url=url)

    def list_notifications(
        self, recipient_id: str, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
    ) -> list[Notification]:
        """Notifications for recipient_id, newest first."""
        return [
            Notification.from_dict(row)
            for row in self.store.notifications.fetch(recipient_id, limit, offset)
        ]

    def get_notification(self, notification_id: str) -> Notification | None:
        row = self.store.notifications.get(notification_id)
        return Notification.from_dict(row) if row else None

    def mark_read(self, notification_id: str) -> Notification | None:
        row = self.store.notifications.mark_read(notification_id)
        return Notification.from_dict(row) if row else None

    def mark_all_read(self, recipient_id: str) -> int:
        return self.store.notifications.mark_all_read(recipient_id)

    def unread_count(self, recipient_id: str) -> int:
        return self.store.notifications.count_unread(recipient_id)

    def delete_notification(self, notification_id: str) -> bool:
        return self.store.notifications.delete(notification_id)
