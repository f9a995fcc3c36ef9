"""In-process storage backend.

Every table keeps its rows in a dict guarded by a lock, which stands in for
the atomic conditional writes of a real database. State lives as long as the
accessor objects, so one :class:`socialfed.db.Store` is one database.
"""

from socialfed.db.memory.activity_log import DbActivityLog
from socialfed.db.memory.actor import DbActor
from socialfed.db.memory.follow import DbFollow
from socialfed.db.memory.notification import DbNotification
from socialfed.db.memory.push_subscription import DbPushSubscription

__all__ = [
    "DbActor",
    "DbFollow",
    "DbActivityLog",
    "DbNotification",
    "DbPushSubscription",
]
