"""
Web push delivery to the browser subscriptions of an actor.

Provides:
- Subscription upsert keyed by (actor, endpoint), soft removal
- Concurrent delivery to every active subscription with bounded concurrency
- Deactivation of subscriptions the push service reports as gone (404/410)

Delivery is best effort: :meth:`PushDeliveryService.deliver` reports
failures in its result and never raises.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

import requests
from pywebpush import WebPushException, webpush

from socialfed.constants import (
    DEFAULT_PUSH_BADGE,
    DEFAULT_PUSH_ICON,
    DEFAULT_PUSH_URL,
    GONE_STATUS_CODES,
)
from socialfed.db.utils import new_id, parse_iso, utcnow
from socialfed.errors import SocialFedError

if TYPE_CHECKING:
    from socialfed.config import Config
    from socialfed.db import Store

logger = logging.getLogger(__name__)

VAPID_NOT_CONFIGURED = "vapid_not_configured"


class InvalidSubscriptionError(SocialFedError):
    """Raised when subscription registration input is incomplete."""

    pass


class PushTransportError(SocialFedError):
    """A single push attempt failed."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code

    @property
    def is_gone(self) -> bool:
        """The push service says the subscription will never work again."""
        return self.status_code in GONE_STATUS_CODES


@dataclass
class PushSubscription:
    id: str
    actor_id: str
    endpoint: str
    p256dh: str
    auth: str
    user_agent: str | None = None
    active: bool = True
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)

    def subscription_info(self) -> dict[str, Any]:
        """The subscription in the shape browsers hand out and pywebpush expects."""
        return {
            "endpoint": self.endpoint,
            "keys": {"p256dh": self.p256dh, "auth": self.auth},
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "endpoint": self.endpoint,
            "p256dh": self.p256dh,
            "auth": self.auth,
            "user_agent": self.user_agent,
            "active": self.active,
            "created_at": self.created_at,
            "updated_at": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PushSubscription":
        return cls(
            id=data["id"],
            actor_id=data["actor_id"],
            endpoint=data["endpoint"],
            p256dh=data["p256dh"],
            auth=data["auth"],
            user_agent=data.get("user_agent"),
            active=bool(data.get("active", True)),
            created_at=parse_iso(data.get("created_at")) or utcnow(),
            updated_at=parse_iso(data.get("updated_at")) or utcnow(),
        )


@dataclass
class PushPayload:
    """What the service worker shows: ``{title, body, url, icon, badge}``."""

    title: str
    body: str
    url: str = DEFAULT_PUSH_URL
    icon: str = DEFAULT_PUSH_ICON
    badge: str = DEFAULT_PUSH_BADGE

    def to_dict(self) -> dict[str, str]:
        return {
            "title": self.title,
            "body": self.body,
            "url": self.url or DEFAULT_PUSH_URL,
            "icon": self.icon or DEFAULT_PUSH_ICON,
            "badge": self.badge or DEFAULT_PUSH_BADGE,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PushPayload":
        return cls(
            title=data.get("title", ""),
            body=data.get("body", ""),
            url=data.get("url") or DEFAULT_PUSH_URL,
            icon=data.get("icon") or DEFAULT_PUSH_ICON,
            badge=data.get("badge") or DEFAULT_PUSH_BADGE,
        )


@dataclass
class PushAttemptResult:
    """Result of pushing to a single subscription."""

    subscription_id: str
    endpoint: str
    success: bool
    status_code: int | None = None
    error: str | None = None
    deactivated: bool = False


@dataclass
class PushDeliveryResult:
    """Result of pushing to all active subscriptions of an actor."""

    total: int
    successful: int
    failed: int
    deactivated: int = 0
    error: str | None = None
    results: list[PushAttemptResult] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """True when nothing blocked delivery and at least one attempt landed
        (or there was nothing to deliver)."""
        return self.error is None and (self.total == 0 or self.successful > 0)


@runtime_checkable
class PushTransport(Protocol):
    @property
    def configured(self) -> bool: ...

    async def send(self, subscription: PushSubscription, data: str) -> int | None:
        """Push data to one subscription; raises PushTransportError on failure."""
        ...


class WebPushTransport:
    """
    Encrypted web push with VAPID authentication, via pywebpush.

    pywebpush is synchronous, so every send runs in a worker thread.
    """

    def __init__(
        self,
        vapid_public_key: str,
        vapid_private_key: str,
        vapid_subject: str,
        ttl: int = 0,
        timeout: float = 10.0,
    ) -> None:
        self.vapid_public_key = vapid_public_key
        self.vapid_private_key = vapid_private_key
        self.vapid_subject = vapid_subject
        self.ttl = ttl
        self.timeout = timeout

    @classmethod
    def from_config(cls, config: "Config") -> "WebPushTransport":
        return cls(
            vapid_public_key=config.vapid_public_key,
            vapid_private_key=config.vapid_private_key,
            vapid_subject=config.vapid_subject,
            ttl=config.push_ttl,
            timeout=config.push_timeout,
        )

    @property
    def configured(self) -> bool:
        return bool(self.vapid_public_key and self.vapid_private_key)

    async def send(self, subscription: PushSubscription, data: str) -> int | None:
        return await asyncio.to_thread(self._send_sync, subscription, data)

    def _send_sync(self, subscription: PushSubscription, data: str) -> int | None:
        try:
            response = webpush(
                subscription_info=subscription.subscription_info(),
                data=data,
                vapid_private_key=self.vapid_private_key,
                # pywebpush adds aud/exp to the claims dict, so pass a fresh one
                vapid_claims={"sub": self.vapid_subject},
                ttl=self.ttl,
                timeout=self.timeout,
            )
        except WebPushException as e:
            status_code = e.response.status_code if e.response is not None else None
            raise PushTransportError(str(e), status_code=status_code) from e
        except requests.RequestException as e:
            raise PushTransportError(f"Push request failed: {e}") from e
        return getattr(response, "status_code", None)


class PushDeliveryService:
    """
    Manages push subscriptions and fans out notifications to them.

    Args:
        store: Storage bundle from socialfed.db.get_store()
        config: Application config (VAPID keys, concurrency)
        transport: Push transport; defaults to WebPushTransport from config
    """

    def __init__(
        self,
        store: "Store",
        config: "Config",
        transport: PushTransport | None = None,
    ) -> None:
        self.store = store
        self.config = config
        self.transport = transport or WebPushTransport.from_config(config)
        self._max_concurrent = max(1, config.push_max_concurrent)

    def save_subscription(
        self,
        actor_id: str,
        endpoint: str,
        p256dh: str,
        auth: str,
        user_agent: str | None = None,
    ) -> PushSubscription:
        """Create or refresh the subscription for (actor, endpoint); it ends up active."""
        now = utcnow()
        subscription = PushSubscription(
            id=new_id(),
            actor_id=actor_id,
            endpoint=endpoint,
            p256dh=p256dh,
            auth=auth,
            user_agent=user_agent,
            created_at=now,
            updated_at=now,
        )
        row = self.store.push_subscriptions.upsert(subscription.to_dict())
        logger.debug(f"Saved push subscription {row['id']} for {actor_id}")
        return PushSubscription.from_dict(row)

    def save_subscription_json(
        self, actor_id: str, data: dict[str, Any], user_agent: str | None = None
    ) -> PushSubscription:
        """
        Save a subscription from the JSON a browser produces.

        Args:
            data: ``{"endpoint": ..., "keys": {"p256dh": ..., "auth": ...}, "userAgent"?: ...}``

        Raises:
            InvalidSubscriptionError: If endpoint or keys are missing
        """
        if not isinstance(data, dict):
            raise InvalidSubscriptionError("Subscription must be a JSON object")
        endpoint = data.get("endpoint")
        keys = data.get("keys")
        if not isinstance(endpoint, str) or not endpoint:
            raise InvalidSubscriptionError("Subscription endpoint is required")
        if not isinstance(keys, dict):
            raise InvalidSubscriptionError("Subscription keys are required")
        p256dh = keys.get("p256dh")
        auth = keys.get("auth")
        if not isinstance(p256dh, str) or not p256dh or not isinstance(auth, str) or not auth:
            raise InvalidSubscriptionError("Subscription keys p256dh and auth are required")
        return self.save_subscription(
            actor_id,
            endpoint,
            p256dh,
            auth,
            user_agent=user_agent or data.get("userAgent"),
        )

    def list_active_subscriptions(self, actor_id: str) -> list[PushSubscription]:
        return [
            PushSubscription.from_dict(row)
            for row in self.store.push_subscriptions.list_active(actor_id)
        ]

    def remove_subscription(self, actor_id: str, endpoint: str) -> bool:
        """Deactivate a subscription. Unknown endpoints are not an error."""
        return self.store.push_subscriptions.deactivate(actor_id, endpoint)

    def vapid_public_key(self) -> str | None:
        """The application server key browsers need to subscribe."""
        return self.config.vapid_public_key or None

    async def deliver(
        self, actor_id: str, payload: PushPayload | dict[str, Any]
    ) -> PushDeliveryResult:
        """
        Push payload to every active subscription of actor_id.

        Attempts run concurrently and independently; one failing endpoint does
        not affect the others.

        Returns:
            PushDeliveryResult with per-subscription outcomes
        """
        if not self.transport.configured:
            logger.warning("VAPID keys not configured, skipping push notification")
            return PushDeliveryResult(
                total=0, successful=0, failed=0, error=VAPID_NOT_CONFIGURED
            )

        try:
            subscriptions = self.list_active_subscriptions(actor_id)
        except Exception as e:
            logger.error(f"Could not load push subscriptions for {actor_id}: {e}")
            return PushDeliveryResult(total=0, successful=0, failed=0, error=str(e))

        if not subscriptions:
            return PushDeliveryResult(total=0, successful=0, failed=0)

        if isinstance(payload, dict):
            payload = PushPayload.from_dict(payload)
        data = payload.to_json()

        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def deliver_one(subscription: PushSubscription) -> PushAttemptResult:
            async with semaphore:
                return await self._deliver_single(subscription, data)

        results = await asyncio.gather(
            *[deliver_one(sub) for sub in subscriptions], return_exceptions=True
        )

        attempt_results: list[PushAttemptResult] = []
        successful = 0
        failed = 0
        deactivated = 0

        for subscription, result in zip(subscriptions, results, strict=True):
            if isinstance(result, BaseException):
                attempt_results.append(
                    PushAttemptResult(
                        subscription_id=subscription.id,
                        endpoint=subscription.endpoint,
                        success=False,
                        error=str(result),
                    )
                )
                failed += 1
                continue
            attempt_results.append(result)
            if result.success:
                successful += 1
            else:
                failed += 1
                if result.deactivated:
                    deactivated += 1

        logger.info(
            f"Push notifications sent to {actor_id}: "
            f"{successful} successful, {failed} failed"
        )
        return PushDeliveryResult(
            total=len(subscriptions),
            successful=successful,
            failed=failed,
            deactivated=deactivated,
            results=attempt_results,
        )

    async def _deliver_single(
        self, subscription: PushSubscription, data: str
    ) -> PushAttemptResult:
        try:
            status_code = await self.transport.send(subscription, data)
        except PushTransportError as e:
            logger.warning(
                f"Push to subscription {subscription.id} failed "
                f"(status {e.status_code}): {e}"
            )
            deactivated = False
            if e.is_gone:
                deactivated = await self._deactivate(subscription)
            return PushAttemptResult(
                subscription_id=subscription.id,
                endpoint=subscription.endpoint,
                success=False,
                status_code=e.status_code,
                error=str(e),
                deactivated=deactivated,
            )
        except Exception as e:
            logger.error(f"Unexpected error pushing to subscription {subscription.id}: {e}")
            return PushAttemptResult(
                subscription_id=subscription.id,
                endpoint=subscription.endpoint,
                success=False,
                error=str(e),
            )
        return PushAttemptResult(
            subscription_id=subscription.id,
            endpoint=subscription.endpoint,
            success=True,
            status_code=status_code,
        )

    async def _deactivate(self, subscription: PushSubscription) -> bool:
        try:
            deactivated = await asyncio.to_thread(
                self.store.push_subscriptions.deactivate,
                subscription.actor_id,
                subscription.endpoint,
            )
        except Exception as e:
            logger.error(f"Failed to deactivate push subscription {subscription.id}: {e}")
            return False
        if deactivated:
            logger.info(f"Deactivated expired push subscription {subscription.id}")
        return deactivated

    def deliver_sync(
        self, actor_id: str, payload: PushPayload | dict[str, Any]
    ) -> PushDeliveryResult:
        """
        Synchronous version of deliver.

        Runs the async version in an event loop.
        """
        return asyncio.run(self.deliver(actor_id, payload))
