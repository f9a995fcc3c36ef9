"""
DynamoDB models for the inbox and outbox activity logs.

Both tables are keyed by (actor_id, activity_id), so a conditional put is
enough to reject a repeated delivery. A local index on created_at serves the
newest-first listings.
"""

import logging
import os
from typing import Any

from pynamodb.attributes import BooleanAttribute, UnicodeAttribute, UTCDateTimeAttribute
from pynamodb.exceptions import DoesNotExist, PutError, UpdateError
from pynamodb.indexes import (
    AllProjection,
    GlobalSecondaryIndex,
    LocalSecondaryIndex,
)
from pynamodb.models import Model

from socialfed.db.dynamodb.actor import CONDITIONAL_CHECK_FAILED
from socialfed.db.protocols import DuplicateRecordError

logger = logging.getLogger(__name__)


class InboxIdIndex(GlobalSecondaryIndex):
    class Meta:  # type: ignore[misc]
        index_name = "item-id-index"
        read_capacity_units = 2
        write_capacity_units = 1
        projection = AllProjection()

    id = UnicodeAttribute(hash_key=True)


class InboxCreatedIndex(LocalSecondaryIndex):
    class Meta:  # type: ignore[misc]
        index_name = "created-index"
        projection = AllProjection()

    actor_id = UnicodeAttribute(hash_key=True)
    created_at = UTCDateTimeAttribute(range_key=True)


class InboxItem(Model):
    """Data model for a received activity."""

    class Meta:  # type: ignore[misc]
        table_name = os.getenv("AWS_DB_PREFIX", "demo_socialfed") + "_inbox"
        read_capacity_units = 5
        write_capacity_units = 2
        region = os.getenv("AWS_DEFAULT_REGION", "us-west-1")
        host = os.getenv("AWS_DB_HOST", None)

    actor_id = UnicodeAttribute(hash_key=True)
    activity_id = UnicodeAttribute(range_key=True)
    id = UnicodeAttribute()
    activity_type = UnicodeAttribute()
    activity_json = UnicodeAttribute()
    processed = BooleanAttribute(default=False)
    created_at = UTCDateTimeAttribute()
    id_index = InboxIdIndex()
    created_index = InboxCreatedIndex()


class OutboxIdIndex(GlobalSecondaryIndex):
    class Meta:  # type: ignore[misc]
        index_name = "item-id-index"
        read_capacity_units = 2
        write_capacity_units = 1
        projection = AllProjection()

    id = UnicodeAttribute(hash_key=True)


class OutboxCreatedIndex(LocalSecondaryIndex):
    class Meta:  # type: ignore[misc]
        index_name = "created-index"
        projection = AllProjection()

    actor_id = UnicodeAttribute(hash_key=True)
    created_at = UTCDateTimeAttribute(range_key=True)


class OutboxItem(Model):
    """Data model for an activity sent by a local actor."""

    class Meta:  # type: ignore[misc]
        table_name = os.getenv("AWS_DB_PREFIX", "demo_socialfed") + "_outbox"
        read_capacity_units = 5
        write_capacity_units = 2
        region = os.getenv("AWS_DEFAULT_REGION", "us-west-1")
        host = os.getenv("AWS_DB_HOST", None)

    actor_id = UnicodeAttribute(hash_key=True)
    activity_id = UnicodeAttribute(range_key=True)
    id = UnicodeAttribute()
    activity_type = UnicodeAttribute()
    activity_json = UnicodeAttribute()
    processed = BooleanAttribute(default=False)
    created_at = UTCDateTimeAttribute()
    id_index = OutboxIdIndex()
    created_index = OutboxCreatedIndex()


ActivityModel = type[InboxItem] | type[OutboxItem]


def _to_dict(item: InboxItem | OutboxItem) -> dict[str, Any]:
    return {
        "id": item.id,
        "actor_id": item.actor_id,
        "activity_id": item.activity_id,
        "activity_type": item.activity_type,
        "activity_json": item.activity_json,
        "processed": item.processed,
        "created_at": item.created_at,
    }


class DbActivityLog:
    """
    Database operations for one activity log table.

    Args:
        model: InboxItem or OutboxItem
    """

    def __init__(self, model: ActivityModel) -> None:
        self.model = model

    @property
    def table(self) -> str:
        return self.model.Meta.table_name

    def append(self, item: dict[str, Any]) -> dict[str, Any]:
        record = self.model(
            item["actor_id"],
            item["activity_id"],
            id=item["id"],
            activity_type=item["activity_type"],
            activity_json=item["activity_json"],
            processed=item.get("processed", False),
            created_at=item["created_at"],
        )
        try:
            record.save(condition=self.model.actor_id.does_not_exist())
        except PutError as e:
            if e.cause_response_code == CONDITIONAL_CHECK_FAILED:
                raise DuplicateRecordError(
                    self.table, (item["actor_id"], item["activity_id"])
                ) from e
            raise
        return _to_dict(record)

    def get(self, item_id: str) -> dict[str, Any] | None:
        for record in self.model.id_index.query(item_id, limit=1):
            return _to_dict(record)
        return None

    def get_by_activity(
        self, actor_id: str, activity_id: str
    ) -> dict[str, Any] | None:
        try:
            return _to_dict(self.model.get(actor_id, activity_id))
        except DoesNotExist:
            return None

    def mark_processed(self, item_id: str) -> bool:
        row = self.get(item_id)
        if row is None:
            return False
        record = self.model(row["actor_id"], row["activity_id"])
        try:
            record.update(
                actions=[self.model.processed.set(True)],
                condition=self.model.actor_id.exists(),
            )
        except UpdateError as e:
            if e.cause_response_code == CONDITIONAL_CHECK_FAILED:
                return False
            raise
        return True

    def fetch(self, actor_id: str, limit: int, offset: int) -> list[dict[str, Any]]:
        results = self.model.created_index.query(
            actor_id, scan_index_forward=False, limit=offset + limit
        )
        rows = [_to_dict(record) for record in results]
        return rows[offset : offset + limit]

    def count(self, actor_id: str) -> int:
        return self.model.count(actor_id)
