import copy
import itertools
import logging
import threading
from typing import Any

from socialfed.db.protocols import DuplicateRecordError

logger = logging.getLogger(__name__)


class DbActivityLog:
    """
    Append-only activity log; one instance serves as the inbox, another as
    the outbox.

    Rows are never updated except for the ``processed`` flag.
    """

    def __init__(self, table: str = "activities") -> None:
        self.table = table
        self._lock = threading.Lock()
        self._rows: dict[str, dict[str, Any]] = {}
        self._by_activity: dict[tuple[str, str], str] = {}
        # Insertion order breaks created_at ties when listing newest first
        self._seq = itertools.count()
        self._order: dict[str, int] = {}

    def append(self, item: dict[str, Any]) -> dict[str, Any]:
        key = (item["actor_id"], item["activity_id"])
        with self._lock:
            if key in self._by_activity:
                raise DuplicateRecordError(self.table, key)
            row = copy.deepcopy(item)
            self._rows[row["id"]] = row
            self._by_activity[key] = row["id"]
            self._order[row["id"]] = next(self._seq)
            return copy.deepcopy(row)

    def get(self, item_id: str) -> dict[str, Any] | None:
        with self._lock:
            row = self._rows.get(item_id)
            return copy.deepcopy(row) if row else None

    def get_by_activity(
        self, actor_id: str, activity_id: str
    ) -> dict[str, Any] | None:
        with self._lock:
            item_id = self._by_activity.get((actor_id, activity_id))
            if item_id is None:
                return None
            return copy.deepcopy(self._rows[item_id])

    def mark_processed(self, item_id: str) -> bool:
        with self._lock:
            row = self._rows.get(item_id)
            if row is None:
                return False
            row["processed"] = True
            return True

    def fetch(self, actor_id: str, limit: int, offset: int) -> list[dict[str, Any]]:
        with self._lock:
            rows = [row for row in self._rows.values() if row["actor_id"] == actor_id]
            rows.sort(
                key=lambda r: (r["created_at"], self._order[r["id"]]), reverse=True
            )
            return [copy.deepcopy(row) for row in rows[offset : offset + limit]]

    def count(self, actor_id: str) -> int:
        with self._lock:
            return sum(1 for row in self._rows.values() if row["actor_id"] == actor_id)
