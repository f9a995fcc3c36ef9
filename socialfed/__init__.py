"""
socialfed: ActivityPub federation core with notifications and web push.

Typical wiring:

.. code-block:: python

    from socialfed import (
        BackgroundTaskQueue, Config, NotificationDispatcher,
        PushDeliveryService, SocialInteractions, ActorIdentityManager, get_store,
    )

    config = Config(fqdn="social.example.com")
    store = get_store(config)
    identity = ActorIdentityManager(store, config)
    push = PushDeliveryService(store, config)
    dispatcher = NotificationDispatcher(
        store, identity, push, BackgroundTaskQueue.from_config(config)
    )
    social = SocialInteractions(store, config, dispatcher)
"""

__version__ = "1.0.0"

from .activities import (
    Activity,
    ActivityType,
    InvalidActivityError,
    Note,
    new_activity_id,
    parse_activity,
)
from .background import BackgroundTaskQueue, InlineTaskQueue
from .config import Config
from .db import Store, get_store
from .errors import ActorNotFoundError, SocialFedError
from .follow import DuplicateFollowError, FollowRelationship, FollowState, FollowStateMachine
from .hooks import HookRegistry, activity_hook, get_hook_registry, lifecycle_hook
from .identity import (
    Actor,
    ActorIdentityManager,
    DuplicateActorError,
    IdentityGenerationError,
    InvalidHandleError,
    KeyPair,
    build_actor_document,
    generate_identity,
)
from .inbox_outbox import DuplicateActivityError, InboxItem, InboxOutboxStore, OutboxItem
from .inbox_processor import InboxProcessor, InboxResult
from .notifications import (
    Notification,
    NotificationDispatcher,
    NotificationType,
    extract_mentions,
)
from .push import (
    InvalidSubscriptionError,
    PushDeliveryResult,
    PushDeliveryService,
    PushPayload,
    PushSubscription,
    PushTransportError,
    WebPushTransport,
)
from .social import SelfFollowError, SocialInteractions

__all__ = [
    "__version__",
    "Config",
    "Store",
    "get_store",
    "SocialFedError",
    "ActorNotFoundError",
    # Identity
    "Actor",
    "KeyPair",
    "ActorIdentityManager",
    "generate_identity",
    "build_actor_document",
    "IdentityGenerationError",
    "InvalidHandleError",
    "DuplicateActorError",
    # Activities
    "Activity",
    "ActivityType",
    "Note",
    "new_activity_id",
    "parse_activity",
    "InvalidActivityError",
    # Follows and activity logs
    "FollowState",
    "FollowRelationship",
    "FollowStateMachine",
    "DuplicateFollowError",
    "InboxItem",
    "OutboxItem",
    "InboxOutboxStore",
    "DuplicateActivityError",
    "InboxProcessor",
    "InboxResult",
    "SocialInteractions",
    "SelfFollowError",
    # Notifications and push
    "Notification",
    "NotificationType",
    "NotificationDispatcher",
    "extract_mentions",
    "PushSubscription",
    "PushPayload",
    "PushDeliveryResult",
    "PushDeliveryService",
    "PushTransportError",
    "WebPushTransport",
    "InvalidSubscriptionError",
    "BackgroundTaskQueue",
    "InlineTaskQueue",
    # Hooks
    "HookRegistry",
    "activity_hook",
    "lifecycle_hook",
    "get_hook_registry",
]
