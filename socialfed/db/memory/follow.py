import copy
import logging
import threading
from typing import Any

from socialfed.db.protocols import DuplicateRecordError

logger = logging.getLogger(__name__)


class DbFollow:
    """Follow table keyed by the ordered (follower_id, following_id) pair."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[tuple[str, str], dict[str, Any]] = {}

    def create(self, follow: dict[str, Any]) -> dict[str, Any]:
        key = (follow["follower_id"], follow["following_id"])
        with self._lock:
            if key in self._rows:
                raise DuplicateRecordError("follows", key)
            self._rows[key] = copy.deepcopy(follow)
            return copy.deepcopy(follow)

    def get(self, follow_id: str) -> dict[str, Any] | None:
        with self._lock:
            for row in self._rows.values():
                if row["id"] == follow_id:
                    return copy.deepcopy(row)
        return None

    def get_by_pair(
        self, follower_id: str, following_id: str
    ) -> dict[str, Any] | None:
        with self._lock:
            row = self._rows.get((follower_id, following_id))
            return copy.deepcopy(row) if row else None

    def get_by_activity_id(self, activity_id: str) -> dict[str, Any] | None:
        with self._lock:
            for row in self._rows.values():
                if row["activity_id"] == activity_id:
                    return copy.deepcopy(row)
        return None

    def set_accepted(self, follow_id: str) -> dict[str, Any] | None:
        with self._lock:
            for row in self._rows.values():
                if row["id"] == follow_id:
                    row["accepted"] = True
                    return copy.deepcopy(row)
        return None

    def delete(self, follower_id: str, following_id: str) -> bool:
        with self._lock:
            return self._rows.pop((follower_id, following_id), None) is not None

    def delete_pending(self, follower_id: str, following_id: str) -> bool:
        key = (follower_id, following_id)
        with self._lock:
            row = self._rows.get(key)
            if row is None or row["accepted"]:
                return False
            del self._rows[key]
            return True

    def list_by_following(
        self, following_id: str, accepted: bool | None = None
    ) -> list[dict[str, Any]]:
        with self._lock:
            rows = [
                copy.deepcopy(row)
                for (_, following), row in self._rows.items()
                if following == following_id
                and (accepted is None or row["accepted"] == accepted)
            ]
        return sorted(rows, key=lambda r: r["created_at"])

    def list_by_follower(
        self, follower_id: str, accepted: bool | None = None
    ) -> list[dict[str, Any]]:
        with self._lock:
            rows = [
                copy.deepcopy(row)
                for (follower, _), row in self._rows.items()
                if follower == follower_id
                and (accepted is None or row["accepted"] == accepted)
            ]
        return sorted(rows, key=lambda r: r["created_at"])
