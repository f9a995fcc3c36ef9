"""socialfed database abstraction layer.

Services never talk to a database client directly: they receive a
:class:`Store`, the bundle of table accessors for one backend.

Supported backends:

* ``memory``: in-process tables for tests and single-process use
* ``dynamodb``: pynamodb models, see :mod:`socialfed.db.dynamodb`
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from socialfed.db.protocols import (
    DbActivityLogProtocol,
    DbActorProtocol,
    DbFollowProtocol,
    DbNotificationProtocol,
    DbPushSubscriptionProtocol,
    DuplicateRecordError,
)

if TYPE_CHECKING:
    from socialfed.config import Config

logger = logging.getLogger(__name__)

__all__ = ["Store", "get_store", "DuplicateRecordError"]

SUPPORTED_BACKENDS = ("memory", "dynamodb")


@dataclass
class Store:
    """Table accessors shared by all services of one application."""

    actors: DbActorProtocol
    follows: DbFollowProtocol
    inbox: DbActivityLogProtocol
    outbox: DbActivityLogProtocol
    notifications: DbNotificationProtocol
    push_subscriptions: DbPushSubscriptionProtocol


def get_store(config: "Config") -> Store:
    """
    Build the store for the configured backend.

    Backend modules are imported lazily so that the memory backend works
    without AWS credentials or pynamodb configuration.

    Raises:
        ValueError: If config.database names an unknown backend
    """
    backend = config.database
    if backend == "memory":
        from socialfed.db import memory

        return Store(
            actors=memory.DbActor(),
            follows=memory.DbFollow(),
            inbox=memory.DbActivityLog("inbox"),
            outbox=memory.DbActivityLog("outbox"),
            notifications=memory.DbNotification(),
            push_subscriptions=memory.DbPushSubscription(),
        )
    if backend == "dynamodb":
        from socialfed.db import dynamodb

        return Store(
            actors=dynamodb.DbActor(),
            follows=dynamodb.DbFollow(),
            inbox=dynamodb.DbActivityLog(dynamodb.InboxItem),
            outbox=dynamodb.DbActivityLog(dynamodb.OutboxItem),
            notifications=dynamodb.DbNotification(),
            push_subscriptions=dynamodb.DbPushSubscription(),
        )
    raise ValueError(
        f"Unsupported database backend: {backend!r} "
        f"(expected one of {', '.join(SUPPORTED_BACKENDS)})"
    )
