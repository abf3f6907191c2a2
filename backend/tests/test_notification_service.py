"""
CivicBridge Backend: Notification Dispatcher Tests
==================================================

Test Strategy:
    ✅ Webhook channel posts the JSON payload (httpx MockTransport)
    ✅ Transient failures are retried, then delivered
    ✅ Permanent failures are dropped without raising
    ✅ Channel selection from configuration
"""

from unittest.mock import AsyncMock, patch

import httpx
import pytest

from civicbridge.services.notification_service import (
    LogNotifier,
    NotificationDispatcher,
    WebhookNotifier,
    build_notifier,
)
from civicbridge.services.notifier_base import StatusNotification


def make_notification(recipient_id="stu-1", status="closed") -> StatusNotification:
    return StatusNotification(
        recipient_id=recipient_id,
        recipient_username="clara",
        recipient_email="clara@example.org",
        project_id="abc123",
        project_title="Community garden",
        status=status,
    )


def fast_dispatcher(notifier, max_attempts=3) -> NotificationDispatcher:
    return NotificationDispatcher(notifier, max_attempts=max_attempts, min_wait=0, max_wait=0)


class TestPayload:

    def test_payload_shape(self):
        payload = make_notification().to_payload()

        assert payload["event"] == "project.status_changed"
        assert payload["status"] == "closed"
        assert payload["project"]["id"] == "abc123"
        assert payload["recipient"]["id"] == "stu-1"


class TestWebhookNotifier:

    @pytest.mark.asyncio
    async def test_posts_json(self):
        received = []

        def handler(request: httpx.Request) -> httpx.Response:
            received.append(request)
            return httpx.Response(204)

        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        notifier = WebhookNotifier("http://hooks.test/status", client=client)

        await notifier.send(make_notification())
        await notifier.aclose()

        assert len(received) == 1
        assert received[0].method == "POST"
        assert str(received[0].url) == "http://hooks.test/status"
        assert b'"project.status_changed"' in received[0].content

    @pytest.mark.asyncio
    async def test_error_status_raises(self):
        client = httpx.AsyncClient(transport=httpx.MockTransport(lambda request: httpx.Response(502)))
        notifier = WebhookNotifier("http://hooks.test/status", client=client)

        with pytest.raises(httpx.HTTPStatusError):
            await notifier.send(make_notification())
        await notifier.aclose()


class TestDispatcher:

    @pytest.mark.asyncio
    async def test_delivers_every_notification(self):
        notifier = LogNotifier()
        notifier.send = AsyncMock()

        delivered = await fast_dispatcher(notifier).dispatch_status_change(
            [make_notification("stu-1"), make_notification("stu-2")]
        )

        assert delivered == 2
        assert notifier.send.await_count == 2

    @pytest.mark.asyncio
    async def test_retries_transient_failure(self):
        notifier = LogNotifier()
        notifier.send = AsyncMock(side_effect=[httpx.ConnectError("refused"), None])

        delivered = await fast_dispatcher(notifier).dispatch_status_change([make_notification()])

        assert delivered == 1
        assert notifier.send.await_count == 2

    @pytest.mark.asyncio
    async def test_drops_after_max_attempts_without_raising(self):
        notifier = LogNotifier()
        notifier.send = AsyncMock(side_effect=httpx.ConnectError("refused"))

        delivered = await fast_dispatcher(notifier, max_attempts=3).dispatch_status_change(
            [make_notification("stu-1"), make_notification("stu-2")]
        )

        assert delivered == 0
        assert notifier.send.await_count == 6

    @pytest.mark.asyncio
    async def test_one_failure_does_not_block_others(self):
        notifier = LogNotifier()

        async def send(notification):
            if notification.recipient_id == "stu-1":
                raise RuntimeError("mailbox full")

        notifier.send = AsyncMock(side_effect=send)

        delivered = await fast_dispatcher(notifier, max_attempts=2).dispatch_status_change(
            [make_notification("stu-1"), make_notification("stu-2")]
        )

        assert delivered == 1

    @pytest.mark.asyncio
    async def test_empty_batch(self):
        assert await fast_dispatcher(LogNotifier()).dispatch_status_change([]) == 0


class TestBuildNotifier:

    def test_log_channel_without_webhook(self):
        with patch("civicbridge.services.notification_service.settings") as mock_settings:
            mock_settings.notification_webhook_url = None
            assert isinstance(build_notifier(), LogNotifier)

    @pytest.mark.asyncio
    async def test_webhook_channel_when_configured(self):
        with patch("civicbridge.services.notification_service.settings") as mock_settings:
            mock_settings.notification_webhook_url = "http://hooks.test/status"
            mock_settings.notification_timeout = 5.0
            notifier = build_notifier()

        assert isinstance(notifier, WebhookNotifier)
        assert notifier.url == "http://hooks.test/status"
        await notifier.aclose()
