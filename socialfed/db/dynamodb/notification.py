import logging
import os
from typing import Any

from pynamodb.attributes import BooleanAttribute, UnicodeAttribute, UTCDateTimeAttribute
from pynamodb.exceptions import DoesNotExist
from pynamodb.indexes import AllProjection, GlobalSecondaryIndex
from pynamodb.models import Model

logger = logging.getLogger(__name__)


class RecipientIndex(GlobalSecondaryIndex):
    """Notifications of a recipient ordered by creation time."""

    class Meta:  # type: ignore[misc]
        index_name = "recipient-index"
        read_capacity_units = 5
        write_capacity_units = 2
        projection = AllProjection()

    recipient_id = UnicodeAttribute(hash_key=True)
    created_at = UTCDateTimeAttribute(range_key=True)


class Notification(Model):
    class Meta:  # type: ignore[misc]
        table_name = os.getenv("AWS_DB_PREFIX", "demo_socialfed") + "_notifications"
        read_capacity_units = 5
        write_capacity_units = 2
        region = os.getenv("AWS_DEFAULT_REGION", "us-west-1")
        host = os.getenv("AWS_DB_HOST", None)

    id = UnicodeAttribute(hash_key=True)
    recipient_id = UnicodeAttribute()
    actor_id = UnicodeAttribute()
    type = UnicodeAttribute()
    post_id = UnicodeAttribute(null=True)
    comment_id = UnicodeAttribute(null=True)
    message = UnicodeAttribute()
    read = BooleanAttribute(default=False)
    created_at = UTCDateTimeAttribute()
    recipient_index = RecipientIndex()


def _to_dict(item: Notification) -> dict[str, Any]:
    return {
        "id": item.id,
        "recipient_id": item.recipient_id,
        "actor_id": item.actor_id,
        "type": item.type,
        "post_id": item.post_id,
        "comment_id": item.comment_id,
        "message": item.message,
        "read": item.read,
        "created_at": item.created_at,
    }


class DbNotification:
    """Database operations for notifications."""

    def create(self, notification: dict[str, Any]) -> dict[str, Any]:
        item = Notification(
            notification["id"],
            recipient_id=notification["recipient_id"],
            actor_id=notification["actor_id"],
            type=notification["type"],
            post_id=notification.get("post_id"),
            comment_id=notification.get("comment_id"),
            message=notification["message"],
            read=notification.get("read", False),
            created_at=notification["created_at"],
        )
        item.save()
        return _to_dict(item)

    def get(self, notification_id: str) -> dict[str, Any] | None:
        try:
            return _to_dict(Notification.get(notification_id))
        except DoesNotExist:
            return None

    def fetch(
        self, recipient_id: str, limit: int, offset: int
    ) -> list[dict[str, Any]]:
        results = Notification.recipient_index.query(
            recipient_id, scan_index_forward=False, limit=offset + limit
        )
        rows = [_to_dict(item) for item in results]
        return rows[offset : offset + limit]

    def mark_read(self, notification_id: str) -> dict[str, Any] | None:
        try:
            item = Notification.get(notification_id)
        except DoesNotExist:
            return None
        if not item.read:
            item.update(actions=[Notification.read.set(True)])
        return _to_dict(item)

    def mark_all_read(self, recipient_id: str) -> int:
        changed = 0
        for item in Notification.recipient_index.query(
            recipient_id, filter_condition=Notification.read == False  # noqa: E712
        ):
            item.update(actions=[Notification.read.set(True)])
            changed += 1
        return changed

    def count_unread(self, recipient_id: str) -> int:
        return Notification.recipient_index.count(
            recipient_id, filter_condition=Notification.read == False  # noqa: E712
        )

    def delete(self, notification_id: str) -> bool:
        try:
            item = Notification.get(notification_id)
        except DoesNotExist:
            return False
        item.delete()
        return True
