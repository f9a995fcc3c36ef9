import copy
import logging
import threading
from typing import Any

from socialfed.db.protocols import DuplicateRecordError

logger = logging.getLogger(__name__)


class DbActor:
    """Actor table, unique by id and by handle."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[str, dict[str, Any]] = {}
        self._by_handle: dict[str, str] = {}
        self._by_url: dict[str, str] = {}

    def create(self, actor: dict[str, Any]) -> dict[str, Any]:
        with self._lock:
            if actor["handle"] in self._by_handle:
                raise DuplicateRecordError("actors", actor["handle"])
            if actor["id"] in self._rows:
                raise DuplicateRecordError("actors", actor["id"])
            row = copy.deepcopy(actor)
            self._rows[row["id"]] = row
            self._by_handle[row["handle"]] = row["id"]
            self._by_url[row["actor_url"]] = row["id"]
            logger.debug(f"Created actor {row['id']} ({row['handle']})")
            return copy.deepcopy(row)

    def get(self, actor_id: str) -> dict[str, Any] | None:
        with self._lock:
            row = self._rows.get(actor_id)
            return copy.deepcopy(row) if row else None

    def get_by_handle(self, handle: str) -> dict[str, Any] | None:
        with self._lock:
            actor_id = self._by_handle.get(handle)
            if actor_id is None:
                return None
            return copy.deepcopy(self._rows[actor_id])

    def get_by_url(self, actor_url: str) -> dict[str, Any] | None:
        with self._lock:
            actor_id = self._by_url.get(actor_url)
            if actor_id is None:
                return None
            return copy.deepcopy(self._rows[actor_id])
