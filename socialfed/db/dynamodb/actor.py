"""
DynamoDB models for local actors.

Handles are claimed in their own table with a conditional put, since
DynamoDB cannot enforce uniqueness on a secondary index.
"""

import logging
import os
from typing import Any

from pynamodb.attributes import UnicodeAttribute, UTCDateTimeAttribute
from pynamodb.exceptions import DoesNotExist, PutError
from pynamodb.indexes import AllProjection, GlobalSecondaryIndex
from pynamodb.models import Model

from socialfed.db.protocols import DuplicateRecordError

logger = logging.getLogger(__name__)

CONDITIONAL_CHECK_FAILED = "ConditionalCheckFailedException"


class ActorUrlIndex(GlobalSecondaryIndex):
    """Lookup of a local actor by its ActivityPub id."""

    class Meta:  # type: ignore[misc]
        index_name = "actor-url-index"
        read_capacity_units = 2
        write_capacity_units = 1
        projection = AllProjection()

    actor_url = UnicodeAttribute(hash_key=True)


class Actor(Model):
    """Data model for a local actor and its key pair."""

    class Meta:  # type: ignore[misc]
        table_name = os.getenv("AWS_DB_PREFIX", "demo_socialfed") + "_actors"
        read_capacity_units = 2
        write_capacity_units = 1
        region = os.getenv("AWS_DEFAULT_REGION", "us-west-1")
        host = os.getenv("AWS_DB_HOST", None)

    id = UnicodeAttribute(hash_key=True)
    handle = UnicodeAttribute()
    display_name = UnicodeAttribute(null=True)
    summary = UnicodeAttribute(null=True)
    avatar_url = UnicodeAttribute(null=True)
    actor_url = UnicodeAttribute()
    inbox_url = UnicodeAttribute()
    outbox_url = UnicodeAttribute()
    followers_url = UnicodeAttribute()
    following_url = UnicodeAttribute()
    public_key_pem = UnicodeAttribute()
    private_key_pem = UnicodeAttribute()
    key_id = UnicodeAttribute()
    created_at = UTCDateTimeAttribute()
    actor_url_index = ActorUrlIndex()


class HandleClaim(Model):
    """One row per taken handle."""

    class Meta:  # type: ignore[misc]
        table_name = os.getenv("AWS_DB_PREFIX", "demo_socialfed") + "_handles"
        read_capacity_units = 2
        write_capacity_units = 1
        region = os.getenv("AWS_DEFAULT_REGION", "us-west-1")
        host = os.getenv("AWS_DB_HOST", None)

    handle = UnicodeAttribute(hash_key=True)
    actor_id = UnicodeAttribute()


_FIELDS = (
    "id",
    "handle",
    "display_name",
    "summary",
    "avatar_url",
    "actor_url",
    "inbox_url",
    "outbox_url",
    "followers_url",
    "following_url",
    "public_key_pem",
    "private_key_pem",
    "key_id",
    "created_at",
)


def _to_dict(item: Actor) -> dict[str, Any]:
    return {name: getattr(item, name) for name in _FIELDS}


class DbActor:
    """Database operations for actors."""

    def create(self, actor: dict[str, Any]) -> dict[str, Any]:
        claim = HandleClaim(actor["handle"], actor_id=actor["id"])
        try:
            claim.save(condition=HandleClaim.handle.does_not_exist())
        except PutError as e:
            if e.cause_response_code == CONDITIONAL_CHECK_FAILED:
                raise DuplicateRecordError("actors", actor["handle"]) from e
            raise
        item = Actor(**{name: actor.get(name) for name in _FIELDS})
        try:
            item.save(condition=Actor.id.does_not_exist())
        except PutError as e:
            # Release the handle so a retry is not blocked by a half-written actor
            claim.delete()
            if e.cause_response_code == CONDITIONAL_CHECK_FAILED:
                raise DuplicateRecordError("actors", actor["id"]) from e
            raise
        logger.debug(f"Created actor {actor['id']} ({actor['handle']})")
        return _to_dict(item)

    def get(self, actor_id: str) -> dict[str, Any] | None:
        try:
            return _to_dict(Actor.get(actor_id))
        except DoesNotExist:
            return None

    def get_by_handle(self, handle: str) -> dict[str, Any] | None:
        try:
            claim = HandleClaim.get(handle)
        except DoesNotExist:
            return None
        return self.get(claim.actor_id)

    def get_by_url(self, actor_url: str) -> dict[str, Any] | None:
        for item in Actor.actor_url_index.query(actor_url, limit=1):
            return _to_dict(item)
        return None
