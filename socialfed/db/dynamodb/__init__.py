"""DynamoDB storage backend built on pynamodb.

Table names are prefixed with ``AWS_DB_PREFIX``; ``AWS_DB_HOST`` points the
models at a local DynamoDB for development.
"""

from socialfed.db.dynamodb.activity_log import DbActivityLog, InboxItem, OutboxItem
from socialfed.db.dynamodb.actor import Actor, DbActor, HandleClaim
from socialfed.db.dynamodb.follow import DbFollow, Follow
from socialfed.db.dynamodb.notification import DbNotification, Notification
from socialfed.db.dynamodb.push_subscription import (
    DbPushSubscription,
    PushSubscription,
)
from socialfed.db.dynamodb.tables import MODELS, create_tables

__all__ = [
    "Actor",
    "HandleClaim",
    "Follow",
    "InboxItem",
    "OutboxItem",
    "Notification",
    "PushSubscription",
    "DbActor",
    "DbFollow",
    "DbActivityLog",
    "DbNotification",
    "DbPushSubscription",
    "MODELS",
    "create_tables",
]
