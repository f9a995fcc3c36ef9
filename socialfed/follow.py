"""
Follow relationships and their lifecycle.

A follow row exists for an ordered (follower, following) pair while the
relationship is pending or accepted::

    NONE --request--> PENDING --accept--> ACCEPTED
                      PENDING --reject--> REMOVED (row deleted)
                      ACCEPTED --undo--->  REMOVED (row deleted)

Follower and following ids are local actor ids, or actor URLs for remote
actors that have no local row.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from socialfed.constants import ACTIVITYSTREAMS_CONTEXT
from socialfed.db.protocols import DuplicateRecordError
from socialfed.db.utils import new_id, parse_iso, utcnow
from socialfed.errors import SocialFedError
from socialfed.hooks import HookRegistry, LifecycleEvent, get_hook_registry

if TYPE_CHECKING:
    from socialfed.db import Store
    from socialfed.identity import Actor

logger = logging.getLogger(__name__)


class DuplicateFollowError(SocialFedError):
    """Raised when a follow already exists for the ordered pair."""

    def __init__(self, follower_id: str, following_id: str) -> None:
        super().__init__(f"{follower_id} already follows or requested {following_id}")
        self.follower_id = follower_id
        self.following_id = following_id


class FollowState(Enum):
    NONE = "none"
    PENDING = "pending"
    ACCEPTED = "accepted"
    REMOVED = "removed"


@dataclass
class FollowRelationship:
    id: str
    follower_id: str
    following_id: str
    activity_id: str
    accepted: bool = False
    created_at: datetime = field(default_factory=utcnow)

    @property
    def state(self) -> FollowState:
        return FollowState.ACCEPTED if self.accepted else FollowState.PENDING

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "follower_id": self.follower_id,
            "following_id": self.following_id,
            "activity_id": self.activity_id,
            "accepted": self.accepted,
            "created_at": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FollowRelationship":
        return cls(
            id=data["id"],
            follower_id=data["follower_id"],
            following_id=data["following_id"],
            activity_id=data["activity_id"],
            accepted=bool(data.get("accepted", False)),
            created_at=parse_iso(data.get("created_at")) or utcnow(),
        )


def _from_row(row: dict[str, Any] | None) -> FollowRelationship | None:
    return FollowRelationship.from_dict(row) if row else None


class FollowStateMachine:
    """
    Follow lifecycle on top of the follow table.

    Uniqueness of the ordered pair is enforced by the store, so two
    concurrent requests for the same pair cannot both succeed.
    """

    def __init__(self, store: "Store", hooks: HookRegistry | None = None) -> None:
        self.store = store
        self.hooks = hooks if hooks is not None else get_hook_registry()

    def request_follow(
        self, follower_id: str, following_id: str, activity_id: str
    ) -> FollowRelationship:
        """
        Record a pending follow.

        Raises:
            DuplicateFollowError: If a row exists for the pair, pending or accepted
        """
        follow = FollowRelationship(
            id=new_id(),
            follower_id=follower_id,
            following_id=following_id,
            activity_id=activity_id,
        )
        try:
            self.store.follows.create(follow.to_dict())
        except DuplicateRecordError as e:
            raise DuplicateFollowError(follower_id, following_id) from e
        logger.debug(f"Follow requested: {follower_id} -> {following_id}")
        self.hooks.execute_lifecycle_hooks(LifecycleEvent.FOLLOW_REQUESTED.value, follow)
        return follow

    def accept_follow(self, follow_id: str) -> FollowRelationship | None:
        """
        Accept a pending follow. Accepting an accepted follow changes nothing.

        Returns:
            The follow, or None if no such follow exists
        """
        current = _from_row(self.store.follows.get(follow_id))
        if current is None:
            logger.info(f"Accept for unknown follow {follow_id} ignored")
            return None
        if current.accepted:
            return current

        updated = _from_row(self.store.follows.set_accepted(follow_id))
        if updated is None:
            logger.info(f"Follow {follow_id} was removed before it could be accepted")
            return None
        logger.debug(f"Follow accepted: {updated.follower_id} -> {updated.following_id}")
        self.hooks.execute_lifecycle_hooks(LifecycleEvent.FOLLOW_ACCEPTED.value, updated)
        return updated

    def reject_follow(self, follow_id: str) -> bool:
        """
        Reject a pending follow by deleting it.

        Returns:
            True if a pending follow was removed; accepted follows are left alone
        """
        current = _from_row(self.store.follows.get(follow_id))
        if current is None:
            return False
        if current.accepted:
            logger.info(f"Reject for already accepted follow {follow_id} ignored")
            return False
        removed = self.store.follows.delete_pending(current.follower_id, current.following_id)
        if not removed:
            logger.info(f"Follow {follow_id} was accepted or removed before the reject")
        else:
            self.hooks.execute_lifecycle_hooks(
                LifecycleEvent.FOLLOW_REMOVED.value, current, reason="rejected"
            )
        return removed

    def remove_follow(self, follower_id: str, following_id: str) -> bool:
        """Delete the follow for the pair; returns False if there was none."""
        current = _from_row(self.store.follows.get_by_pair(follower_id, following_id))
        removed = self.store.follows.delete(follower_id, following_id)
        if removed:
            logger.debug(f"Follow removed: {follower_id} -> {following_id}")
            if current is not None:
                self.hooks.execute_lifecycle_hooks(
                    LifecycleEvent.FOLLOW_REMOVED.value, current, reason="removed"
                )
        return removed

    def get_follow(self, follower_id: str, following_id: str) -> FollowRelationship | None:
        return _from_row(self.store.follows.get_by_pair(follower_id, following_id))

    def get_by_id(self, follow_id: str) -> FollowRelationship | None:
        return _from_row(self.store.follows.get(follow_id))

    def get_by_activity_id(self, activity_id: str) -> FollowRelationship | None:
        return _from_row(self.store.follows.get_by_activity_id(activity_id))

    def state(self, follower_id: str, following_id: str) -> FollowState:
        """Current state of the pair; a removed follow reads as NONE."""
        follow = self.get_follow(follower_id, following_id)
        return follow.state if follow else FollowState.NONE

    def get_followers(self, actor_id: str) -> list[FollowRelationship]:
        """Accepted follows of actor_id; pending requests are not followers."""
        return [
            FollowRelationship.from_dict(row)
            for row in self.store.follows.list_by_following(actor_id, accepted=True)
        ]

    def get_following(self, actor_id: str) -> list[FollowRelationship]:
        return [
            FollowRelationship.from_dict(row)
            for row in self.store.follows.list_by_follower(actor_id, accepted=True)
        ]

    def get_pending_requests(self, actor_id: str) -> list[FollowRelationship]:
        """Inbound follow requests waiting for actor_id to answer."""
        return [
            FollowRelationship.from_dict(row)
            for row in self.store.follows.list_by_following(actor_id, accepted=False)
        ]

    def followers_collection(self, actor: "Actor") -> dict[str, Any]:
        """ActivityPub Collection of the actor URLs following actor."""
        items = [self.actor_url(f.follower_id) for f in self.get_followers(actor.id)]
        return _collection(actor.followers_url, items)

    def following_collection(self, actor: "Actor") -> dict[str, Any]:
        items = [self.actor_url(f.following_id) for f in self.get_following(actor.id)]
        return _collection(actor.following_url, items)

    def actor_url(self, actor_id: str) -> str:
        """Actor URL for a follow party; remote parties already are one."""
        row = self.store.actors.get(actor_id)
        # Remote actors are stored by their URL
        return row["actor_url"] if row else actor_id


def _collection(collection_id: str, items: list[str]) -> dict[str, Any]:
    return {
        "@context": ACTIVITYSTREAMS_CONTEXT,
        "id": collection_id,
        "type": "Collection",
        "totalItems": len(items),
        "items": items,
    }
