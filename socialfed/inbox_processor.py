"""
Processing of activities delivered to a local actor's inbox.

Each delivery is recorded first, so a repeated delivery is detected by the
inbox uniqueness constraint. The effect is applied next and the inbox item
is marked processed last. If applying the effect fails the error propagates
and the item stays unprocessed; a redelivery of that activity applies it
again, while redeliveries of processed items are ignored.

The core handles follow bookkeeping itself (Follow, Accept, Reject, Undo of
a Follow, actor Delete). Everything else is handed to the activity hooks.
"""

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from socialfed import request_context
from socialfed.activities import (
    AcceptActivity,
    AnyActivity,
    DeleteActivity,
    FollowActivity,
    RejectActivity,
    UndoActivity,
    create_accept_activity,
    new_activity_id,
    parse_activity,
)
from socialfed.errors import ActorNotFoundError
from socialfed.follow import DuplicateFollowError, FollowRelationship, FollowStateMachine
from socialfed.hooks import HookRegistry, get_hook_registry
from socialfed.identity import Actor, ActorIdentityManager
from socialfed.inbox_outbox import DuplicateActivityError, InboxItem, InboxOutboxStore
from socialfed.notifications import NotificationType

if TYPE_CHECKING:
    from socialfed.config import Config
    from socialfed.db import Store
    from socialfed.notifications import NotificationDispatcher

logger = logging.getLogger(__name__)


@dataclass
class InboxResult:
    """Outcome of receiving one activity."""

    activity: AnyActivity
    item: InboxItem | None
    duplicate: bool = False
    handled: bool = False
    follow: FollowRelationship | None = None


class InboxProcessor:
    """
    Applies inbound activities for local actors.

    Args:
        store: Storage bundle from socialfed.db.get_store()
        config: Application config (base URL, auto-accept)
        dispatcher: Notification dispatcher for follow notifications; None
            disables them
        hooks: Hook registry for activities the core does not handle itself
    """

    def __init__(
        self,
        store: "Store",
        config: "Config",
        dispatcher: "NotificationDispatcher | None" = None,
        hooks: HookRegistry | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.hooks = hooks if hooks is not None else get_hook_registry()
        self.identity = ActorIdentityManager(store, config, self.hooks)
        self.follows = FollowStateMachine(store, self.hooks)
        self.log = InboxOutboxStore(store)
        self.dispatcher = dispatcher

    def receive(self, actor_id: str, activity_json: dict[str, Any] | str) -> InboxResult:
        """
        Record and apply an activity delivered to actor_id.

        Raises:
            InvalidActivityError: If the activity cannot be parsed
            ActorNotFoundError: If actor_id is not a local actor
        """
        activity = parse_activity(activity_json)
        recipient = self.identity.get_actor(actor_id)
        if recipient is None:
            raise ActorNotFoundError(f"No local actor {actor_id}")
        request_context.set_peer_id(activity.actor)

        try:
            item = self.log.append_inbound(
                actor_id, activity.id, activity.activity_type.value, activity_json
            )
            result = InboxResult(activity=activity, item=item)
        except DuplicateActivityError:
            item = self.log.get_inbound(actor_id, activity.id)
            if item is None or item.processed:
                logger.info(f"Duplicate delivery of {activity.id} to {actor_id} ignored")
                return InboxResult(activity=activity, item=item, duplicate=True)
            # Recorded earlier but the effect failed; apply it again
            logger.info(f"Retrying unprocessed delivery of {activity.id} to {actor_id}")
            result = InboxResult(activity=activity, item=item)

        self._apply(recipient, activity, result)
        self.log.mark_processed(item.id)
        item.processed = True
        return result

    def _apply(self, recipient: Actor, activity: AnyActivity, result: InboxResult) -> None:
        if isinstance(activity, FollowActivity):
            self._handle_follow(recipient, activity, result)
        elif isinstance(activity, AcceptActivity):
            self._handle_accept(recipient, activity, result)
        elif isinstance(activity, RejectActivity):
            self._handle_reject(recipient, activity, result)
        elif isinstance(activity, UndoActivity) and isinstance(activity.object, FollowActivity):
            self._handle_undo_follow(recipient, activity, activity.object, result)
        elif isinstance(activity, DeleteActivity) and activity.object_id == activity.actor:
            self._handle_actor_delete(activity, result)
        else:
            # Like, Create, Announce and the remaining Undo/Delete cases
            result.handled = self.hooks.execute_activity_hooks(
                activity.activity_type.value, recipient.id, activity
            )
            if not result.handled:
                logger.debug(
                    f"No hook handled {activity.activity_type.value} {activity.id}"
                )

    def _local_id(self, actor_url: str) -> str:
        """Local actor id for a URL; remote actors are identified by their URL."""
        actor = self.identity.get_actor_by_url(actor_url)
        return actor.id if actor else actor_url

    def _handle_follow(
        self, recipient: Actor, activity: FollowActivity, result: InboxResult
    ) -> None:
        if activity.object != recipient.actor_url:
            logger.warning(
                f"Follow {activity.id} targets {activity.object}, not {recipient.actor_url}"
            )
            return
        follower_id = self._local_id(activity.actor)
        try:
            follow = self.follows.request_follow(follower_id, recipient.id, activity.id)
        except DuplicateFollowError:
            logger.info(f"{activity.actor} already follows {recipient.handle}")
            return

        if self.config.auto_accept_follows:
            follow = self.follows.accept_follow(follow.id) or follow
            accept = create_accept_activity(
                new_activity_id(self.config.root), recipient.actor_url, activity
            )
            self.log.append_outbound(
                recipient.id, accept.id, accept.activity_type.value, accept.to_json()
            )

        result.follow = follow
        result.handled = True

        if self.dispatcher is not None and follower_id != recipient.id:
            verb = "started following you" if follow.accepted else "requested to follow you"
            self.dispatcher.notify(
                NotificationType.FOLLOW,
                recipient.id,
                follower_id,
                f"{self._label(follower_id)} {verb}",
            )

    def _label(self, actor_id: str) -> str:
        actor = self.identity.get_actor(actor_id)
        if actor is None:
            return actor_id
        return actor.display_name or actor.handle

    def _our_follow(
        self, recipient: Actor, activity: AcceptActivity | RejectActivity
    ) -> FollowRelationship | None:
        follow = self.follows.get_by_activity_id(activity.follow_id)
        if follow is None:
            logger.info(f"{activity.id} answers unknown follow {activity.follow_id}")
            return None
        if follow.follower_id != recipient.id:
            logger.warning(f"{activity.id} answers a follow not made by {recipient.handle}")
            return None
        followed_url = self.follows.actor_url(follow.following_id)
        if activity.actor != followed_url:
            logger.warning(
                f"{activity.actor} cannot answer a follow addressed to {followed_url}"
            )
            return None
        return follow

    def _handle_accept(
        self, recipient: Actor, activity: AcceptActivity, result: InboxResult
    ) -> None:
        follow = self._our_follow(recipient, activity)
        if follow is None:
            return
        result.follow = self.follows.accept_follow(follow.id)
        result.handled = result.follow is not None

    def _handle_reject(
        self, recipient: Actor, activity: RejectActivity, result: InboxResult
    ) -> None:
        follow = self._our_follow(recipient, activity)
        if follow is None:
            return
        result.follow = follow
        result.handled = self.follows.reject_follow(follow.id)

    def _handle_undo_follow(
        self,
        recipient: Actor,
        activity: UndoActivity,
        original: FollowActivity,
        result: InboxResult,
    ) -> None:
        if original.actor != activity.actor:
            logger.warning(f"{activity.actor} cannot undo a follow by {original.actor}")
            return
        follower_id = self._local_id(activity.actor)
        result.follow = self.follows.get_follow(follower_id, recipient.id)
        result.handled = self.follows.remove_follow(follower_id, recipient.id)

    def _handle_actor_delete(self, activity: DeleteActivity, result: InboxResult) -> None:
        deleted_id = self._local_id(activity.actor)
        removed = 0
        for follow in self.store.follows.list_by_follower(deleted_id):
            removed += self.follows.remove_follow(follow["follower_id"], follow["following_id"])
        for follow in self.store.follows.list_by_following(deleted_id):
            removed += self.follows.remove_follow(follow["follower_id"], follow["following_id"])
        logger.info(f"Actor {activity.actor} deleted, removed {removed} follows")
        result.handled = True
