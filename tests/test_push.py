"""Tests for push subscriptions and PushDeliveryService."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest
import requests
from pywebpush import WebPushException

from socialfed.config import Config
from socialfed.push import (
    VAPID_NOT_CONFIGURED,
    InvalidSubscriptionError,
    PushDeliveryResult,
    PushDeliveryService,
    PushPayload,
    PushSubscription,
    PushTransportError,
    WebPushTransport,
)


def _transport(send: AsyncMock | None = None, configured: bool = True) -> MagicMock:
    transport = MagicMock()
    transport.configured = configured
    transport.send = send or AsyncMock(return_value=201)
    return transport


@pytest.fixture
def service(store, config) -> PushDeliveryService:
    return PushDeliveryService(store, config, transport=_transport())


class TestSubscriptions:
    """Tests for subscription storage."""

    def test_save_subscription(self, service: PushDeliveryService) -> None:
        subscription = service.save_subscription(
            "actor1", "https://push.example/1", "p256", "auth", user_agent="Firefox"
        )

        assert subscription.active is True
        assert subscription.user_agent == "Firefox"
        assert service.list_active_subscriptions("actor1") == [subscription]

    def test_resubscribe_updates_in_place(self, service: PushDeliveryService) -> None:
        first = service.save_subscription("actor1", "https://push.example/1", "k1", "a1")
        service.remove_subscription("actor1", "https://push.example/1")

        second = service.save_subscription("actor1", "https://push.example/1", "k2", "a2")

        assert second.id == first.id
        assert second.created_at == first.created_at
        assert second.p256dh == "k2"
        assert second.active is True
        assert len(service.list_active_subscriptions("actor1")) == 1

    def test_remove_subscription(self, service: PushDeliveryService) -> None:
        service.save_subscription("actor1", "https://push.example/1", "k", "a")

        assert service.remove_subscription("actor1", "https://push.example/1") is True
        assert service.list_active_subscriptions("actor1") == []

    def test_remove_unknown_subscription(self, service: PushDeliveryService) -> None:
        assert service.remove_subscription("actor1", "https://push.example/none") is False

    def test_save_subscription_json(self, service: PushDeliveryService) -> None:
        subscription = service.save_subscription_json(
            "actor1",
            {
                "endpoint": "https://push.example/1",
                "keys": {"p256dh": "k", "auth": "a"},
                "userAgent": "Safari",
            },
        )

        assert subscription.subscription_info() == {
            "endpoint": "https://push.example/1",
            "keys": {"p256dh": "k", "auth": "a"},
        }
        assert subscription.user_agent == "Safari"

    @pytest.mark.parametrize(
        "data",
        [
            {},
            {"endpoint": "https://push.example/1"},
            {"endpoint": "", "keys": {"p256dh": "k", "auth": "a"}},
            {"endpoint": "https://push.example/1", "keys": {"p256dh": "k"}},
            {"endpoint": "https://push.example/1", "keys": "k"},
        ],
    )
    def test_invalid_subscription_json(self, service: PushDeliveryService, data: dict) -> None:
        with pytest.raises(InvalidSubscriptionError):
            service.save_subscription_json("actor1", data)

    def test_vapid_public_key(self, store) -> None:
        config = Config(database="memory", vapid_public_key="BPub", vapid_private_key="priv")
        assert PushDeliveryService(store, config).vapid_public_key() == "BPub"

    def test_vapid_public_key_unset(self, service: PushDeliveryService) -> None:
        assert service.vapid_public_key() is None


class TestPayload:
    def test_defaults(self) -> None:
        assert PushPayload(title="t", body="b").to_dict() == {
            "title": "t",
            "body": "b",
            "url": "/",
            "icon": "/icons/icon-192x192.png",
            "badge": "/icons/icon-72x72.png",
        }

    def test_from_dict_fills_defaults(self) -> None:
        payload = PushPayload.from_dict({"title": "t", "body": "b", "url": ""})
        assert payload.url == "/"

    def test_result_success(self) -> None:
        assert PushDeliveryResult(total=0, successful=0, failed=0).success is True
        assert PushDeliveryResult(total=2, successful=1, failed=1).success is True
        assert PushDeliveryResult(total=1, successful=0, failed=1).success is False
        assert (
            PushDeliveryResult(total=0, successful=0, failed=0, error="x").success is False
        )


class TestDeliver:
    """Tests for PushDeliveryService.deliver()."""

    @pytest.mark.asyncio
    async def test_not_configured(self, store, config) -> None:
        transport = _transport(configured=False)
        service = PushDeliveryService(store, config, transport=transport)
        service.save_subscription("actor1", "https://push.example/1", "k", "a")

        result = await service.deliver("actor1", PushPayload(title="t", body="b"))

        assert result.error == VAPID_NOT_CONFIGURED
        assert result.success is False
        transport.send.assert_not_called()

    @pytest.mark.asyncio
    async def test_no_subscriptions(self, service: PushDeliveryService) -> None:
        result = await service.deliver("actor1", PushPayload(title="t", body="b"))

        assert result.total == 0
        assert result.success is True

    @pytest.mark.asyncio
    async def test_delivers_to_every_subscription(self, store, config) -> None:
        transport = _transport()
        service = PushDeliveryService(store, config, transport=transport)
        for n in range(3):
            service.save_subscription("actor1", f"https://push.example/{n}", "k", "a")
        service.save_subscription("actor2", "https://push.example/other", "k", "a")

        result = await service.deliver("actor1", {"title": "Alice", "body": "liked"})

        assert result.total == 3
        assert result.successful == 3
        assert result.failed == 0
        assert transport.send.await_count == 3
        _, data = transport.send.await_args.args
        assert '"title": "Alice"' in data

    @pytest.mark.asyncio
    async def test_gone_subscription_deactivated(self, store, config) -> None:
        async def send(subscription: PushSubscription, data: str) -> int:
            if subscription.endpoint.endswith("/gone"):
                raise PushTransportError("Gone", status_code=410)
            return 201

        service = PushDeliveryService(store, config, transport=_transport(AsyncMock(side_effect=send)))
        service.save_subscription("actor1", "https://push.example/ok", "k", "a")
        service.save_subscription("actor1", "https://push.example/gone", "k", "a")
        service.save_subscription("actor1", "https://push.example/also-ok", "k", "a")

        result = await service.deliver("actor1", PushPayload(title="t", body="b"))

        assert result.total == 3
        assert result.successful == 2
        assert result.failed == 1
        assert result.deactivated == 1
        assert result.success is True
        assert [s.endpoint for s in service.list_active_subscriptions("actor1")] == [
            "https://push.example/ok",
            "https://push.example/also-ok",
        ]

    @pytest.mark.asyncio
    async def test_not_found_subscription_deactivated(self, store, config) -> None:
        send = AsyncMock(side_effect=PushTransportError("Not Found", status_code=404))
        service = PushDeliveryService(store, config, transport=_transport(send))
        service.save_subscription("actor1", "https://push.example/1", "k", "a")

        result = await service.deliver("actor1", PushPayload(title="t", body="b"))

        assert result.deactivated == 1
        assert service.list_active_subscriptions("actor1") == []

    @pytest.mark.asyncio
    async def test_transient_failure_keeps_subscription(self, store, config) -> None:
        send = AsyncMock(side_effect=PushTransportError("Server error", status_code=500))
        service = PushDeliveryService(store, config, transport=_transport(send))
        service.save_subscription("actor1", "https://push.example/1", "k", "a")

        result = await service.deliver("actor1", PushPayload(title="t", body="b"))

        assert result.failed == 1
        assert result.deactivated == 0
        assert result.success is False
        assert result.results[0].status_code == 500
        assert len(service.list_active_subscriptions("actor1")) == 1

    @pytest.mark.asyncio
    async def test_unexpected_error_is_contained(self, store, config) -> None:
        send = AsyncMock(side_effect=RuntimeError("boom"))
        service = PushDeliveryService(store, config, transport=_transport(send))
        service.save_subscription("actor1", "https://push.example/1", "k", "a")

        result = await service.deliver("actor1", PushPayload(title="t", body="b"))

        assert result.failed == 1
        assert result.results[0].error == "boom"

    @pytest.mark.asyncio
    async def test_storage_error_is_reported(self, store, config) -> None:
        service = PushDeliveryService(store, config, transport=_transport())
        store.push_subscriptions = MagicMock()
        store.push_subscriptions.list_active.side_effect = RuntimeError("db down")

        result = await service.deliver("actor1", PushPayload(title="t", body="b"))

        assert result.success is False
        assert result.error == "db down"

    def test_deliver_sync(self, store, config) -> None:
        service = PushDeliveryService(store, config, transport=_transport())
        service.save_subscription("actor1", "https://push.example/1", "k", "a")

        result = service.deliver_sync("actor1", PushPayload(title="t", body="b"))

        assert result.successful == 1


class TestWebPushTransport:
    """Tests for the pywebpush transport."""

    def _subscription(self) -> PushSubscription:
        return PushSubscription(
            id="s1", actor_id="actor1", endpoint="https://push.example/1", p256dh="k", auth="a"
        )

    def test_from_config(self) -> None:
        config = Config(
            vapid_public_key="pub",
            vapid_private_key="priv",
            vapid_subject="mailto:ops@social.example",
            push_ttl=60,
        )

        transport = WebPushTransport.from_config(config)

        assert transport.configured is True
        assert transport.vapid_subject == "mailto:ops@social.example"
        assert transport.ttl == 60

    def test_not_configured_without_keys(self) -> None:
        assert WebPushTransport("", "", "mailto:x@y").configured is False

    @pytest.mark.asyncio
    async def test_send_calls_webpush(self) -> None:
        transport = WebPushTransport("pub", "priv", "mailto:ops@social.example")
        with patch("socialfed.push.webpush", return_value=MagicMock(status_code=201)) as mock_webpush:
            status = await transport.send(self._subscription(), '{"title": "t"}')

        assert status == 201
        kwargs = mock_webpush.call_args.kwargs
        assert kwargs["subscription_info"]["endpoint"] == "https://push.example/1"
        assert kwargs["data"] == '{"title": "t"}'
        assert kwargs["vapid_private_key"] == "priv"
        assert kwargs["vapid_claims"] == {"sub": "mailto:ops@social.example"}

    @pytest.mark.asyncio
    async def test_webpush_error_carries_status(self) -> None:
        transport = WebPushTransport("pub", "priv", "mailto:ops@social.example")
        error = WebPushException("Push failed: 410 Gone", response=MagicMock(status_code=410))
        with patch("socialfed.push.webpush", side_effect=error):
            with pytest.raises(PushTransportError) as exc_info:
                await transport.send(self._subscription(), "{}")

        assert exc_info.value.status_code == 410
        assert exc_info.value.is_gone is True

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        transport = WebPushTransport("pub", "priv", "mailto:ops@social.example")
        with patch("socialfed.push.webpush", side_effect=requests.ConnectionError("refused")):
            with pytest.raises(PushTransportError) as exc_info:
                await transport.send(self._subscription(), "{}")

        assert exc_info.value.status_code is None
        assert exc_info.value.is_gone is False
