import copy
import itertools
import threading
from typing import Any


class DbNotification:
    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, dict[str, Any]] = {}
        self._seq = itertools.count()
        self._order: dict[str, int] = {}

    def create(self, notification: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            row = copy.deepcopy(notification)
            self._rows[row["id"]] = row
            self._order[row["id"]] = next(self._seq)
            return copy.deepcopy(row)

    def get(self, notification_id: str) -> dict[str, Any] | None:
        with self._lock:
            row = self._rows.get(notification_id)
            return copy.deepcopy(row) if row else None

    def fetch(
        self, recipient_id: str, limit: int, offset: int
    ) -> list[dict[str, Any]]:
        with self._lock:
            rows = [
                row
                for row in self._rows.values()
                if row["recipient_id"] == recipient_id
            ]
            rows.sort(
                key=lambda r: (r["created_at"], self._order[r["id"]]), reverse=True
            )
            return [copy.deepcopy(row) for row in rows[offset : offset + limit]]

    def mark_read(self, notification_id: str) -> dict[str, Any] | None:
        with self._lock:
            row = self._rows.get(notification_id)
            if row is None:
                return None
            row["read"] = True
            return copy.deepcopy(row)

    def mark_all_read(self, recipient_id: str) -> int:
        changed = 0
        with self._lock:
            for row in self._rows.values():
                if row["recipient_id"] == recipient_id and not row["read"]:
                    row["read"] = True
                    changed += 1
        return changed

    def count_unread(self, recipient_id: str) -> int:
        with self._lock:
            return sum(
                1
                for row in self._rows.values()
                if row["recipient_id"] == recipient_id and not row["read"]
            )

    def delete(self, notification_id: str) -> bool:
        with self._lock:
            self._order.pop(notification_id, None)
            return self._rows.pop(notification_id, None) is not None
