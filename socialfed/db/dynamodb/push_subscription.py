import logging
import os
from typing import Any

from pynamodb.attributes import BooleanAttribute, UnicodeAttribute, UTCDateTimeAttribute
from pynamodb.exceptions import DoesNotExist
from pynamodb.models import Model

from socialfed.db.utils import utcnow

logger = logging.getLogger(__name__)


class PushSubscription(Model):
    """Data model for a browser push subscription of an actor."""

    class Meta:  # type: ignore[misc]
        table_name = (
            os.getenv("AWS_DB_PREFIX", "demo_socialfed") + "_push_subscriptions"
        )
        read_capacity_units = 2
        write_capacity_units = 1
        region = os.getenv("AWS_DEFAULT_REGION", "us-west-1")
        host = os.getenv("AWS_DB_HOST", None)

    actor_id = UnicodeAttribute(hash_key=True)
    endpoint = UnicodeAttribute(range_key=True)
    id = UnicodeAttribute()
    p256dh = UnicodeAttribute()
    auth = UnicodeAttribute()
    user_agent = UnicodeAttribute(null=True)
    active = BooleanAttribute(default=True)
    created_at = UTCDateTimeAttribute()
    updated_at = UTCDateTimeAttribute()


def _to_dict(item: PushSubscription) -> dict[str, Any]:
    return {
        "id": item.id,
        "actor_id": item.actor_id,
        "endpoint": item.endpoint,
        "p256dh": item.p256dh,
        "auth": item.auth,
        "user_agent": item.user_agent,
        "active": item.active,
        "created_at": item.created_at,
        "updated_at": item.updated_at,
    }


class DbPushSubscription:
    """Database operations for push subscriptions."""

    def upsert(self, subscription: dict[str, Any]) -> dict[str, Any]:
        try:
            item = PushSubscription.get(
                subscription["actor_id"], subscription["endpoint"]
            )
        except DoesNotExist:
            item = PushSubscription(
                subscription["actor_id"],
                subscription["endpoint"],
                id=subscription["id"],
                p256dh=subscription["p256dh"],
                auth=subscription["auth"],
                user_agent=subscription.get("user_agent"),
                active=True,
                created_at=subscription["created_at"],
                updated_at=subscription.get("updated_at") or subscription["created_at"],
            )
            item.save()
            return _to_dict(item)

        item.update(
            actions=[
                PushSubscription.p256dh.set(subscription["p256dh"]),
                PushSubscription.auth.set(subscription["auth"]),
                PushSubscription.user_agent.set(subscription.get("user_agent")),
                PushSubscription.active.set(True),
                PushSubscription.updated_at.set(
                    subscription.get("updated_at") or utcnow()
                ),
            ]
        )
        logger.debug(f"Refreshed push subscription {item.id}")
        return _to_dict(item)

    def get(self, actor_id: str, endpoint: str) -> dict[str, Any] | None:
        try:
            return _to_dict(PushSubscription.get(actor_id, endpoint))
        except DoesNotExist:
            return None

    def list_active(self, actor_id: str) -> list[dict[str, Any]]:
        rows = [
            _to_dict(item)
            for item in PushSubscription.query(
                actor_id, filter_condition=PushSubscription.active == True  # noqa: E712
            )
        ]
        return sorted(rows, key=lambda r: r["created_at"])

    def deactivate(self, actor_id: str, endpoint: str) -> bool:
        try:
            item = PushSubscription.get(actor_id, endpoint)
        except DoesNotExist:
            return False
        item.update(
            actions=[
                PushSubscription.active.set(False),
                PushSubscription.updated_at.set(utcnow()),
            ]
        )
        return True
