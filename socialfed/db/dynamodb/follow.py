import logging
import os
from typing import Any

from pynamodb.attributes import BooleanAttribute, UnicodeAttribute, UTCDateTimeAttribute
from pynamodb.exceptions import DeleteError, DoesNotExist, PutError, UpdateError
from pynamodb.indexes import AllProjection, GlobalSecondaryIndex
from pynamodb.models import Model

from socialfed.db.dynamodb.actor import CONDITIONAL_CHECK_FAILED
from socialfed.db.protocols import DuplicateRecordError

logger = logging.getLogger(__name__)


class FollowingIndex(GlobalSecondaryIndex):
    """Followers of an actor."""

    class Meta:  # type: ignore[misc]
        index_name = "following-index"
        read_capacity_units = 2
        write_capacity_units = 1
        projection = AllProjection()

    following_id = UnicodeAttribute(hash_key=True)
    follower_id = UnicodeAttribute(range_key=True)


class FollowIdIndex(GlobalSecondaryIndex):
    class Meta:  # type: ignore[misc]
        index_name = "follow-id-index"
        read_capacity_units = 2
        write_capacity_units = 1
        projection = AllProjection()

    id = UnicodeAttribute(hash_key=True)


class FollowActivityIndex(GlobalSecondaryIndex):
    class Meta:  # type: ignore[misc]
        index_name = "follow-activity-index"
        read_capacity_units = 2
        write_capacity_units = 1
        projection = AllProjection()

    activity_id = UnicodeAttribute(hash_key=True)


class Follow(Model):
    """Data model for a follow relationship; the key is the ordered pair."""

    class Meta:  # type: ignore[misc]
        table_name = os.getenv("AWS_DB_PREFIX", "demo_socialfed") + "_follows"
        read_capacity_units = 2
        write_capacity_units = 1
        region = os.getenv("AWS_DEFAULT_REGION", "us-west-1")
        host = os.getenv("AWS_DB_HOST", None)

    follower_id = UnicodeAttribute(hash_key=True)
    following_id = UnicodeAttribute(range_key=True)
    id = UnicodeAttribute()
    activity_id = UnicodeAttribute()
    accepted = BooleanAttribute(default=False)
    created_at = UTCDateTimeAttribute()
    following_index = FollowingIndex()
    id_index = FollowIdIndex()
    activity_index = FollowActivityIndex()


def _to_dict(item: Follow) -> dict[str, Any]:
    return {
        "id": item.id,
        "follower_id": item.follower_id,
        "following_id": item.following_id,
        "activity_id": item.activity_id,
        "accepted": item.accepted,
        "created_at": item.created_at,
    }


def _accepted_condition(accepted: bool | None) -> Any:
    if accepted is None:
        return None
    return Follow.accepted == accepted


class DbFollow:
    """Database operations for follow relationships."""

    def create(self, follow: dict[str, Any]) -> dict[str, Any]:
        item = Follow(
            follow["follower_id"],
            follow["following_id"],
            id=follow["id"],
            activity_id=follow["activity_id"],
            accepted=follow.get("accepted", False),
            created_at=follow["created_at"],
        )
        try:
            item.save(condition=Follow.follower_id.does_not_exist())
        except PutError as e:
            if e.cause_response_code == CONDITIONAL_CHECK_FAILED:
                raise DuplicateRecordError(
                    "follows", (follow["follower_id"], follow["following_id"])
                ) from e
            raise
        return _to_dict(item)

    def get(self, follow_id: str) -> dict[str, Any] | None:
        for item in Follow.id_index.query(follow_id, limit=1):
            return _to_dict(item)
        return None

    def get_by_pair(
        self, follower_id: str, following_id: str
    ) -> dict[str, Any] | None:
        try:
            return _to_dict(Follow.get(follower_id, following_id))
        except DoesNotExist:
            return None

    def get_by_activity_id(self, activity_id: str) -> dict[str, Any] | None:
        for item in Follow.activity_index.query(activity_id, limit=1):
            return _to_dict(item)
        return None

    def set_accepted(self, follow_id: str) -> dict[str, Any] | None:
        row = self.get(follow_id)
        if row is None:
            return None
        item = Follow(row["follower_id"], row["following_id"])
        try:
            item.update(
                actions=[Follow.accepted.set(True)],
                condition=Follow.follower_id.exists(),
            )
        except UpdateError as e:
            if e.cause_response_code == CONDITIONAL_CHECK_FAILED:
                # Deleted between the lookup and the update
                return None
            raise
        return _to_dict(item)

    def delete(self, follower_id: str, following_id: str) -> bool:
        try:
            item = Follow.get(follower_id, following_id)
        except DoesNotExist:
            return False
        item.delete()
        return True

    def delete_pending(self, follower_id: str, following_id: str) -> bool:
        item = Follow(follower_id, following_id)
        try:
            item.delete(condition=Follow.accepted == False)  # noqa: E712
        except DeleteError as e:
            if e.cause_response_code == CONDITIONAL_CHECK_FAILED:
                # Missing, or accepted in the meantime
                return False
            raise
        return True

    def list_by_following(
        self, following_id: str, accepted: bool | None = None
    ) -> list[dict[str, Any]]:
        rows = [
            _to_dict(item)
            for item in Follow.following_index.query(
                following_id, filter_condition=_accepted_condition(accepted)
            )
        ]
        return sorted(rows, key=lambda r: r["created_at"])

    def list_by_follower(
        self, follower_id: str, accepted: bool | None = None
    ) -> list[dict[str, Any]]:
        rows = [
            _to_dict(item)
            for item in Follow.query(
                follower_id, filter_condition=_accepted_condition(accepted)
            )
        ]
        return sorted(rows, key=lambda r: r["created_at"])
