"""
Hook system for socialfed applications.

The federation core only manages identities, follows, the activity logs and
notifications. Everything else an inbound activity can mean (storing a like,
a remote reply, a boost) belongs to the application, which registers hooks
here to receive those activities.

Example:

.. code-block:: python

    from socialfed.hooks import activity_hook, lifecycle_hook

    @activity_hook("Like")
    def store_remote_like(actor_id, activity):
        likes.add(post_for(activity.object), activity.actor)
        return True

    @lifecycle_hook("actor_created")
    def welcome(actor, **kwargs):
        ...
"""

import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class LifecycleEvent(Enum):
    """Lifecycle events that can be hooked."""

    ACTOR_CREATED = "actor_created"
    FOLLOW_REQUESTED = "follow_requested"
    FOLLOW_ACCEPTED = "follow_accepted"
    FOLLOW_REMOVED = "follow_removed"


class HookRegistry:
    """
    Registry for managing application hooks.

    Hook exceptions are logged and never reach the caller: a broken
    application hook must not stop inbox processing.
    """

    def __init__(self) -> None:
        self._activity_hooks: dict[str, list[Callable[..., Any]]] = {}
        self._lifecycle_hooks: dict[str, list[Callable[..., Any]]] = {}

    def register_activity_hook(self, activity_type: str, func: Callable[..., Any]) -> None:
        """
        Register an inbound activity hook.

        Args:
            activity_type: Activity type to hook, e.g. "Like" ("*" for all)
            func: Function with signature (actor_id, activity) -> Any, where
                actor_id is the local recipient
        """
        self._activity_hooks.setdefault(activity_type, []).append(func)

    def register_lifecycle_hook(self, event: str, func: Callable[..., Any]) -> None:
        """
        Register a lifecycle hook function.

        Args:
            event: Lifecycle event name (see LifecycleEvent)
            func: Function with signature (subject, **kwargs) -> Any
        """
        self._lifecycle_hooks.setdefault(event, []).append(func)

    def has_activity_hooks(self, activity_type: str) -> bool:
        return bool(self._activity_hooks.get(activity_type) or self._activity_hooks.get("*"))

    def execute_activity_hooks(self, activity_type: str, actor_id: str, activity: Any) -> bool:
        """Execute activity hooks and return whether any hook handled the activity."""
        processed = False

        for hook in self._activity_hooks.get(activity_type, []):
            try:
                if hook(actor_id, activity):
                    processed = True
            except Exception as e:
                logger.error(f"Error in activity hook for {activity_type}: {e}")

        for hook in self._activity_hooks.get("*", []):
            try:
                if hook(actor_id, activity):
                    processed = True
            except Exception as e:
                logger.error(f"Error in wildcard activity hook: {e}")

        return processed

    def execute_lifecycle_hooks(self, event: str, subject: Any, **kwargs: Any) -> Any:
        """Execute lifecycle hooks; returns the last non-None hook result."""
        result = None

        for hook in self._lifecycle_hooks.get(event, []):
            try:
                hook_result = hook(subject, **kwargs)
                if hook_result is not None:
                    result = hook_result
            except Exception as e:
                logger.error(f"Error in lifecycle hook for {event}: {e}")

        return result

    def clear(self) -> None:
        self._activity_hooks.clear()
        self._lifecycle_hooks.clear()


# Global hook registry instance
_hook_registry = HookRegistry()


def activity_hook(activity_type: str = "*") -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator for registering inbound activity hooks.

    Example:
        @activity_hook("Announce")
        def on_boost(actor_id, activity):
            ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        _hook_registry.register_activity_hook(activity_type, func)
        return func

    return decorator


def lifecycle_hook(event: str) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    """
    Decorator for registering lifecycle hooks.

    Example:
        @lifecycle_hook("follow_accepted")
        def on_follow_accepted(follow, **kwargs):
            ...
    """

    def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
        _hook_registry.register_lifecycle_hook(event, func)
        return func

    return decorator


def get_hook_registry() -> HookRegistry:
    """Get the global hook registry."""
    return _hook_registry
