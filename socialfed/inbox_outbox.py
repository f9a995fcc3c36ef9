"""
Append-only logs of received (inbox) and sent (outbox) activities.

Each log is unique per (actor_id, activity_id): delivering the same activity
twice records it once. Inbox items carry a ``processed`` flag that flips to
True exactly once, after the activity's effect has been applied.
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any

from socialfed.constants import ACTIVITYSTREAMS_CONTEXT, DEFAULT_PAGE_SIZE
from socialfed.db.protocols import DbActivityLogProtocol, DuplicateRecordError
from socialfed.db.utils import new_id, parse_iso, sanitize_json_data, utcnow
from socialfed.errors import SocialFedError

if TYPE_CHECKING:
    from socialfed.db import Store
    from socialfed.identity import Actor

logger = logging.getLogger(__name__)


class DuplicateActivityError(SocialFedError):
    """Raised when an activity was already recorded for the actor."""

    def __init__(self, actor_id: str, activity_id: str) -> None:
        super().__init__(f"Activity {activity_id} already recorded for {actor_id}")
        self.actor_id = actor_id
        self.activity_id = activity_id


@dataclass
class OutboxItem:
    id: str
    actor_id: str
    activity_id: str
    activity_type: str
    activity_json: str
    created_at: datetime = field(default_factory=utcnow)

    @property
    def activity(self) -> dict[str, Any]:
        """The stored activity, decoded."""
        return json.loads(self.activity_json)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "activity_id": self.activity_id,
            "activity_type": self.activity_type,
            "activity_json": self.activity_json,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "OutboxItem":
        return cls(
            id=data["id"],
            actor_id=data["actor_id"],
            activity_id=data["activity_id"],
            activity_type=data["activity_type"],
            activity_json=data["activity_json"],
            created_at=parse_iso(data.get("created_at")) or utcnow(),
        )


@dataclass
class InboxItem(OutboxItem):
    processed: bool = False

    def to_dict(self) -> dict[str, Any]:
        data = super().to_dict()
        data["processed"] = self.processed
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InboxItem":
        return cls(
            id=data["id"],
            actor_id=data["actor_id"],
            activity_id=data["activity_id"],
            activity_type=data["activity_type"],
            activity_json=data["activity_json"],
            created_at=parse_iso(data.get("created_at")) or utcnow(),
            processed=bool(data.get("processed", False)),
        )


def _serialize(raw_json: dict[str, Any] | str, source: str) -> str:
    if isinstance(raw_json, str):
        return raw_json
    return json.dumps(sanitize_json_data(raw_json, log_source=source))


class InboxOutboxStore:
    """Records federation traffic for local actors."""

    def __init__(self, store: "Store") -> None:
        self.store = store

    def append_inbound(
        self,
        actor_id: str,
        activity_id: str,
        activity_type: str,
        raw_json: dict[str, Any] | str,
    ) -> InboxItem:
        """
        Record a received activity as unprocessed.

        Raises:
            DuplicateActivityError: If the activity was already received
        """
        item = InboxItem(
            id=new_id(),
            actor_id=actor_id,
            activity_id=activity_id,
            activity_type=activity_type,
            activity_json=_serialize(raw_json, activity_id),
        )
        self._append(self.store.inbox, item)
        logger.debug(f"Inbox {actor_id}: recorded {activity_type} {activity_id}")
        return item

    def append_outbound(
        self,
        actor_id: str,
        activity_id: str,
        activity_type: str,
        raw_json: dict[str, Any] | str,
    ) -> OutboxItem:
        """
        Record an activity sent by a local actor.

        Raises:
            DuplicateActivityError: If the activity was already recorded
        """
        item = OutboxItem(
            id=new_id(),
            actor_id=actor_id,
            activity_id=activity_id,
            activity_type=activity_type,
            activity_json=_serialize(raw_json, activity_id),
        )
        self._append(self.store.outbox, item)
        logger.debug(f"Outbox {actor_id}: recorded {activity_type} {activity_id}")
        return item

    def _append(self, table: DbActivityLogProtocol, item: OutboxItem) -> None:
        try:
            table.append(item.to_dict())
        except DuplicateRecordError as e:
            raise DuplicateActivityError(item.actor_id, item.activity_id) from e

    def mark_processed(self, inbox_item_id: str) -> bool:
        """Flag an inbox item processed; False only for an unknown id."""
        marked = self.store.inbox.mark_processed(inbox_item_id)
        if not marked:
            logger.warning(f"Cannot mark unknown inbox item {inbox_item_id} processed")
        return marked

    def get_inbox_item(self, inbox_item_id: str) -> InboxItem | None:
        row = self.store.inbox.get(inbox_item_id)
        return InboxItem.from_dict(row) if row else None

    def get_inbound(self, actor_id: str, activity_id: str) -> InboxItem | None:
        row = self.store.inbox.get_by_activity(actor_id, activity_id)
        return InboxItem.from_dict(row) if row else None

    def list_inbox(
        self, actor_id: str, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
    ) -> list[InboxItem]:
        """Received activities, newest first."""
        return [
            InboxItem.from_dict(row)
            for row in self.store.inbox.fetch(actor_id, limit, offset)
        ]

    def list_outbox(
        self, actor_id: str, limit: int = DEFAULT_PAGE_SIZE, offset: int = 0
    ) -> list[OutboxItem]:
        """Sent activities, newest first."""
        return [
            OutboxItem.from_dict(row)
            for row in self.store.outbox.fetch(actor_id, limit, offset)
        ]

    def outbox_collection(
        self, actor: "Actor", limit: int = DEFAULT_PAGE_SIZE
    ) -> dict[str, Any]:
        """Render the actor's outbox as an ActivityPub OrderedCollection."""
        items = self.list_outbox(actor.id, limit=limit)
        return {
            "@context": ACTIVITYSTREAMS_CONTEXT,
            "id": actor.outbox_url,
            "type": "OrderedCollection",
            "totalItems": self.store.outbox.count(actor.id),
            "orderedItems": [item.activity for item in items],
        }
