"""
Local social actions: follow, like, comment, publish.

Each action builds the matching activity, records it in the acting actor's
outbox, updates follow state where needed and notifies the affected actor.
Actors are never notified about their own actions. Notification and push
failures are contained in the dispatcher, so they never fail an action.
"""

import logging
from typing import TYPE_CHECKING

from socialfed.activities import (
    AnnounceActivity,
    CreateActivity,
    FollowActivity,
    InvalidActivityError,
    LikeActivity,
    UndoActivity,
    create_accept_activity,
    create_announce_activity,
    create_create_activity,
    create_follow_activity,
    create_like_activity,
    create_note_object,
    create_reject_activity,
    create_undo_activity,
    new_activity_id,
)
from socialfed.errors import ActorNotFoundError, SocialFedError
from socialfed.follow import FollowRelationship, FollowStateMachine
from socialfed.hooks import HookRegistry, get_hook_registry
from socialfed.identity import Actor, ActorIdentityManager
from socialfed.inbox_outbox import InboxOutboxStore
from socialfed.notifications import NotificationType

if TYPE_CHECKING:
    from socialfed.activities import AnyActivity
    from socialfed.config import Config
    from socialfed.db import Store
    from socialfed.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)


class SelfFollowError(SocialFedError):
    """Raised when an actor tries to follow itself."""

    pass


def _name(actor: Actor) -> str:
    return actor.display_name or actor.handle


class SocialInteractions:
    """
    Entry point for social actions taken by local actors.

    Args:
        store: Storage bundle from socialfed.db.get_store()
        config: Application config
        dispatcher: Notification dispatcher; None disables notifications
        hooks: Hook registry, defaults to the global one
    """

    def __init__(
        self,
        store: "Store",
        config: "Config",
        dispatcher: "NotificationDispatcher | None" = None,
        hooks: HookRegistry | None = None,
    ) -> None:
        self.config = config
        self.hooks = hooks if hooks is not None else get_hook_registry()
        self.identity = ActorIdentityManager(store, config, self.hooks)
        self.follows = FollowStateMachine(store, self.hooks)
        self.log = InboxOutboxStore(store)
        self.dispatcher = dispatcher

    def _actor(self, actor_id: str) -> Actor:
        actor = self.identity.get_actor(actor_id)
        if actor is None:
            raise ActorNotFoundError(f"No local actor {actor_id}")
        return actor

    def _actor_by_handle(self, handle: str) -> Actor:
        actor = self.identity.get_actor_by_handle(handle)
        if actor is None:
            raise ActorNotFoundError(f"No local actor with handle {handle}")
        return actor

    def _new_id(self) -> str:
        return new_activity_id(self.config.root)

    def _record(self, actor: Actor, activity: "AnyActivity") -> None:
        self.log.append_outbound(
            actor.id, activity.id, activity.activity_type.value, activity.to_json()
        )

    def _notify(
        self,
        notification_type: NotificationType,
        recipient_id: str,
        actor: Actor,
        message: str,
        post_id: str | None = None,
        comment_id: str | None = None,
    ) -> None:
        if self.dispatcher is None or recipient_id == actor.id:
            return
        self.dispatcher.notify(
            notification_type,
            recipient_id,
            actor.id,
            message,
            post_id=post_id,
            comment_id=comment_id,
        )

    def follow(self, follower_id: str, target_handle: str) -> FollowRelationship:
        """
        Follow a local actor.

        Raises:
            ActorNotFoundError: If either actor does not exist
            SelfFollowError: If the follower is the target
            DuplicateFollowError: If a follow for the pair already exists
        """
        follower = self._actor(follower_id)
        target = self._actor_by_handle(target_handle)
        if follower.id == target.id:
            raise SelfFollowError(f"{follower.handle} cannot follow itself")

        activity = create_follow_activity(self._new_id(), follower.actor_url, target.actor_url)
        follow = self.follows.request_follow(follower.id, target.id, activity.id)
        self._record(follower, activity)

        if self.config.auto_accept_follows:
            follow = self.follows.accept_follow(follow.id) or follow
            accept = create_accept_activity(self._new_id(), target.actor_url, activity)
            self._record(target, accept)

        verb = "started following you" if follow.accepted else "requested to follow you"
        self._notify(NotificationType.FOLLOW, target.id, follower, f"{_name(follower)} {verb}")
        return follow

    def unfollow(self, follower_id: str, target_handle: str) -> bool:
        """Undo a follow or a pending request. False if there was none."""
        follower = self._actor(follower_id)
        target = self._actor_by_handle(target_handle)
        follow = self.follows.get_follow(follower.id, target.id)
        if follow is None:
            return False

        original = FollowActivity(
            id=follow.activity_id,
            actor=follower.actor_url,
            object=target.actor_url,
            published=None,
        )
        undo = create_undo_activity(self._new_id(), follower.actor_url, original)
        self._record(follower, undo)
        return self.follows.remove_follow(follower.id, target.id)

    def _pending_request(self, actor_id: str, follow_id: str) -> FollowRelationship | None:
        follow = self.follows.get_by_id(follow_id)
        if follow is None or follow.following_id != actor_id:
            logger.info(f"No follow request {follow_id} for {actor_id}")
            return None
        return follow

    def _original_follow(self, follow: FollowRelationship, target: Actor) -> FollowActivity:
        follower = self.identity.get_actor(follow.follower_id)
        return FollowActivity(
            id=follow.activity_id,
            actor=follower.actor_url if follower else follow.follower_id,
            object=target.actor_url,
            published=None,
        )

    def accept_request(self, actor_id: str, follow_id: str) -> FollowRelationship | None:
        """Accept a follow request addressed to actor_id."""
        actor = self._actor(actor_id)
        follow = self._pending_request(actor_id, follow_id)
        if follow is None:
            return None
        if follow.accepted:
            return follow

        accepted = self.follows.accept_follow(follow.id)
        if accepted is None:
            return None
        accept = create_accept_activity(
            self._new_id(), actor.actor_url, self._original_follow(follow, actor)
        )
        self._record(actor, accept)
        return accepted

    def reject_request(self, actor_id: str, follow_id: str) -> bool:
        """Reject a pending follow request addressed to actor_id."""
        actor = self._actor(actor_id)
        follow = self._pending_request(actor_id, follow_id)
        if follow is None or follow.accepted:
            return False

        if not self.follows.reject_follow(follow.id):
            return False
        reject = create_reject_activity(
            self._new_id(), actor.actor_url, self._original_follow(follow, actor)
        )
        self._record(actor, reject)
        return True

    def like(
        self, actor_id: str, post_id: str, post_url: str, post_author_id: str
    ) -> LikeActivity:
        actor = self._actor(actor_id)
        activity = create_like_activity(self._new_id(), actor.actor_url, post_url)
        self._record(actor, activity)
        self._notify(
            NotificationType.LIKE,
            post_author_id,
            actor,
            f"{_name(actor)} liked your post",
            post_id=post_id,
        )
        return activity

    def unlike(self, actor_id: str, like_activity: LikeActivity) -> UndoActivity:
        """
        Take back an earlier like by the same actor.

        Raises:
            ActorNotFoundError: If the actor does not exist
            InvalidActivityError: If the like was made by someone else
        """
        actor = self._actor(actor_id)
        if like_activity.actor != actor.actor_url:
            raise InvalidActivityError(
                f"{actor.handle} cannot undo {like_activity.id} by {like_activity.actor}"
            )
        undo = create_undo_activity(self._new_id(), actor.actor_url, like_activity)
        self._record(actor, undo)
        return undo

    def share(
        self, actor_id: str, post_id: str, post_url: str, post_author_id: str
    ) -> AnnounceActivity:
        """Boost a post to the actor's followers."""
        actor = self._actor(actor_id)
        activity = create_announce_activity(
            self._new_id(), actor.actor_url, post_url, cc=[actor.followers_url]
        )
        self._record(actor, activity)
        self._notify(
            NotificationType.SHARE,
            post_author_id,
            actor,
            f"{_name(actor)} shared your post",
            post_id=post_id,
        )
        return activity

    def comment(
        self,
        actor_id: str,
        post_id: str,
        comment_id: str,
        post_author_id: str,
        content: str,
        note_url: str,
    ) -> CreateActivity:
        """
        Comment on a post.

        The post author gets a ``comment`` notification and every other
        mentioned actor a ``mention`` notification.
        """
        actor = self._actor(actor_id)
        note = create_note_object(note_url, content, actor.actor_url)
        activity = create_create_activity(self._new_id(), actor.actor_url, note)
        self._record(actor, activity)

        self._notify(
            NotificationType.COMMENT,
            post_author_id,
            actor,
            f"{_name(actor)} commented on your post",
            post_id=post_id,
            comment_id=comment_id,
        )
        if self.dispatcher is not None:
            self.dispatcher.notify_mentions(
                content,
                actor.id,
                actor.handle,
                message=f"{_name(actor)} mentioned you in a comment",
                post_id=post_id,
                comment_id=comment_id,
            )
        return activity

    def publish_note(
        self, actor_id: str, note_url: str, content: str, post_id: str | None = None
    ) -> CreateActivity:
        """Publish a post and notify mentioned actors."""
        actor = self._actor(actor_id)
        note = create_note_object(note_url, content, actor.actor_url)
        activity = create_create_activity(self._new_id(), actor.actor_url, note)
        self._record(actor, activity)

        if self.dispatcher is not None:
            self.dispatcher.notify_mentions(
                content,
                actor.id,
                actor.handle,
                message=f"{_name(actor)} mentioned you in a post",
                post_id=post_id,
            )
        return activity
