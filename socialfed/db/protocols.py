"""
Storage protocols implemented by every socialfed database backend.

Each table accessor exchanges plain dicts with the services. Uniqueness
constraints are the backend's job: a write that would violate one raises
:class:`DuplicateRecordError`, and the services translate that into their own
conflict errors.
"""

from typing import Any, Protocol, runtime_checkable


class DuplicateRecordError(Exception):
    """Raised by a backend when a write violates a uniqueness constraint."""

    def __init__(self, table: str, key: Any) -> None:
        super().__init__(f"Duplicate record in {table}: {key}")
        self.table = table
        self.key = key


@runtime_checkable
class DbActorProtocol(Protocol):
    """Local actors, unique by id and by handle."""

    def create(self, actor: dict[str, Any]) -> dict[str, Any]:
        """Insert an actor. Raises DuplicateRecordError on a taken handle."""
        ...

    def get(self, actor_id: str) -> dict[str, Any] | None: ...

    def get_by_handle(self, handle: str) -> dict[str, Any] | None: ...

    def get_by_url(self, actor_url: str) -> dict[str, Any] | None: ...


@runtime_checkable
class DbFollowProtocol(Protocol):
    """Follow rows, unique by ordered (follower_id, following_id) pair."""

    def create(self, follow: dict[str, Any]) -> dict[str, Any]:
        """Insert a follow. Raises DuplicateRecordError if the pair exists."""
        ...

    def get(self, follow_id: str) -> dict[str, Any] | None: ...

    def get_by_pair(
        self, follower_id: str, following_id: str
    ) -> dict[str, Any] | None: ...

    def get_by_activity_id(self, activity_id: str) -> dict[str, Any] | None: ...

    def set_accepted(self, follow_id: str) -> dict[str, Any] | None:
        """Set accepted=True and return the row, or None if it is gone."""
        ...

    def delete(self, follower_id: str, following_id: str) -> bool:
        """Delete the pair. Returns False when there was nothing to delete."""
        ...

    def delete_pending(self, follower_id: str, following_id: str) -> bool:
        """Delete the pair only while it is not accepted, atomically."""
        ...

    def list_by_following(
        self, following_id: str, accepted: bool | None = None
    ) -> list[dict[str, Any]]: ...

    def list_by_follower(
        self, follower_id: str, accepted: bool | None = None
    ) -> list[dict[str, Any]]: ...


@runtime_checkable
class DbActivityLogProtocol(Protocol):
    """Append-only inbox or outbox log, unique by (actor_id, activity_id)."""

    def append(self, item: dict[str, Any]) -> dict[str, Any]:
        """Insert an item. Raises DuplicateRecordError on a repeated activity."""
        ...

    def get(self, item_id: str) -> dict[str, Any] | None: ...

    def get_by_activity(
        self, actor_id: str, activity_id: str
    ) -> dict[str, Any] | None: ...

    def mark_processed(self, item_id: str) -> bool:
        """Flip processed to True. Returns False for an unknown id."""
        ...

    def fetch(
        self, actor_id: str, limit: int, offset: int
    ) -> list[dict[str, Any]]:
        """Return items for the actor, newest first."""
        ...

    def count(self, actor_id: str) -> int: ...


@runtime_checkable
class DbNotificationProtocol(Protocol):
    def create(self, notification: dict[str, Any]) -> dict[str, Any]: ...

    def get(self, notification_id: str) -> dict[str, Any] | None: ...

    def fetch(
        self, recipient_id: str, limit: int, offset: int
    ) -> list[dict[str, Any]]:
        """Return notifications for the recipient, newest first."""
        ...

    def mark_read(self, notification_id: str) -> dict[str, Any] | None: ...

    def mark_all_read(self, recipient_id: str) -> int:
        """Mark every unread notification read. Returns how many changed."""
        ...

    def count_unread(self, recipient_id: str) -> int: ...

    def delete(self, notification_id: str) -> bool: ...


@runtime_checkable
class DbPushSubscriptionProtocol(Protocol):
    """Push subscriptions, unique by (actor_id, endpoint)."""

    def upsert(self, subscription: dict[str, Any]) -> dict[str, Any]:
        """Insert, or refresh keys and reactivate an existing endpoint."""
        ...

    def get(self, actor_id: str, endpoint: str) -> dict[str, Any] | None: ...

    def list_active(self, actor_id: str) -> list[dict[str, Any]]: ...

    def deactivate(self, actor_id: str, endpoint: str) -> bool:
        """Set active=False. Returns False when the endpoint is unknown."""
        ...
