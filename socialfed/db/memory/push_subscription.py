import copy
import logging
import threading
from typing import Any

from socialfed.db.utils import utcnow

logger = logging.getLogger(__name__)


class DbPushSubscription:
    """Push subscriptions keyed by (actor_id, endpoint)."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._rows: dict[tuple[str, str], dict[str, Any]] = {}

    def upsert(self, subscription: dict[str, Any]) -> dict[str, Any]:
        key = (subscription["actor_id"], subscription["endpoint"])
        with self._lock:
            existing = self._rows.get(key)
            if existing is None:
                row = copy.deepcopy(subscription)
                row["active"] = True
                self._rows[key] = row
            else:
                # Keep the original id and created_at, refresh the rest
                existing["p256dh"] = subscription["p256dh"]
                existing["auth"] = subscription["auth"]
                existing["user_agent"] = subscription.get("user_agent")
                existing["active"] = True
                existing["updated_at"] = subscription.get("updated_at") or utcnow()
                row = existing
                logger.debug(f"Refreshed push subscription {row['id']}")
            return copy.deepcopy(row)

    def get(self, actor_id: str, endpoint: str) -> dict[str, Any] | None:
        with self._lock:
            row = self._rows.get((actor_id, endpoint))
            return copy.deepcopy(row) if row else None

    def list_active(self, actor_id: str) -> list[dict[str, Any]]:
        with self._lock:
            rows = [
                copy.deepcopy(row)
                for (owner, _), row in self._rows.items()
                if owner == actor_id and row["active"]
            ]
        return sorted(rows, key=lambda r: r["created_at"])

    def deactivate(self, actor_id: str, endpoint: str) -> bool:
        with self._lock:
            row = self._rows.get((actor_id, endpoint))
            if row is None:
                return False
            row["active"] = False
            row["updated_at"] = utcnow()
            return True
