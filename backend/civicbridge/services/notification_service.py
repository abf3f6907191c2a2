"""
CivicBridge Backend: Notification Dispatcher
============================================

What:  Sends "project status changed" messages to every applicant.
How:   Routes schedule `dispatch_status_change` on FastAPI BackgroundTasks,
       so delivery starts after the response has been produced. Each message
       is retried with exponential backoff + jitter (tenacity); a message that
       still fails is logged and dropped.
Who:   Scheduled by the open/close/complete routes.

Delivery Semantics:
    At-least-once per message while retries last: a timeout after the
    receiver accepted a request can lead to a duplicate. Failures never reach
    the request that triggered the transition, and the status change itself
    is never rolled back.
"""

import logging
from typing import Iterable, Optional

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential_jitter,
)

from civicbridge.config import settings
from civicbridge.services.notifier_base import Notifier, StatusNotification

logger = logging.getLogger(__name__)


class WebhookNotifier(Notifier):
    """Delivers notifications as JSON POST requests to a configured URL."""

    name = "webhook"

    def __init__(self, url: str, timeout: float = 10.0, client: Optional[httpx.AsyncClient] = None):
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=timeout)

    async def send(self, notification: StatusNotification) -> None:
        response = await self._client.post(self.url, json=notification.to_payload())
        # 4xx/5xx → httpx.HTTPStatusError, retried by the dispatcher
        response.raise_for_status()

    async def aclose(self) -> None:
        await self._client.aclose()


class LogNotifier(Notifier):
    """Fallback channel when no webhook is configured."""

    name = "log"

    async def send(self, notification: StatusNotification) -> None:
        logger.info(
            "Project %s is now '%s' : notifying %s <%s>",
            notification.project_id,
            notification.status,
            notification.recipient_username,
            notification.recipient_email or "no email",
        )


class NotificationDispatcher:
    """
    Fire-and-forget fan-out of status notifications.

    Retry policy (from settings):
        retry_max_attempts attempts per message, waits growing from
        retry_min_wait up to retry_max_wait seconds plus up to 1s jitter.
    """

    def __init__(
        self,
        notifier: Notifier,
        max_attempts: int = 3,
        min_wait: float = 1,
        max_wait: float = 10,
    ):
        self.notifier = notifier
        self.max_attempts = max_attempts
        self.min_wait = min_wait
        self.max_wait = max_wait

    async def _deliver(self, notification: StatusNotification) -> None:
        retrying = AsyncRetrying(
            retry=retry_if_exception_type(Exception),
            stop=stop_after_attempt(self.max_attempts),
            wait=wait_exponential_jitter(initial=self.min_wait, max=self.max_wait, jitter=1),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=False,
        )
        async for attempt in retrying:
            with attempt:
                await self.notifier.send(notification)

    async def dispatch_status_change(self, notifications: Iterable[StatusNotification]) -> int:
        """
        Deliver every notification; return how many were delivered.

        Never raises for delivery problems.
        """
        notifications = list(notifications)
        delivered = 0
        for notification in notifications:
            try:
                await self._deliver(notification)
                delivered += 1
            except RetryError as e:
                last = e.last_attempt.exception() if e.last_attempt else None
                logger.error(
                    "Dropping status notification for project %s to user %s after %d attempts: %s",
                    notification.project_id,
                    notification.recipient_id,
                    self.max_attempts,
                    str(last) if last else "unknown error",
                )
        if notifications:
            logger.info(
                "Status notifications delivered: %d/%d",
                delivered,
                len(notifications),
            )
        return delivered


def build_notifier() -> Notifier:
    """Select the delivery channel from configuration."""
    if settings.notification_webhook_url:
        return WebhookNotifier(settings.notification_webhook_url, timeout=settings.notification_timeout)
    return LogNotifier()


notification_dispatcher = NotificationDispatcher(
    notifier=build_notifier(),
    max_attempts=settings.retry_max_attempts,
    min_wait=settings.retry_min_wait,
    max_wait=settings.retry_max_wait,
)
