"""Delivery executor — one attempt against the email sink, as a result value.

``attempt_delivery`` never raises for sink problems: a failed status, an
exception from the adapter or a timeout all come back as a failed
``DeliveryOutcome``. ``apply_outcome`` turns the outcome into the matching
state transition on the notification.
"""

import asyncio
import inspect
from dataclasses import dataclass

import structlog
from notifications.channel import get_email_channel
from notifications.channel.email_port import SEND_STATUS_SENT, EmailPort
from notifications.notification.notification import Notification
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)

DEFAULT_DELIVERY_TIMEOUT = 10.0


@dataclass(frozen=True)
class DeliveryOutcome:
    delivered: bool
    detail: str | None = None
    message_id: str | None = None

    @classmethod
    def success(cls, message_id: str | None = None) -> "DeliveryOutcome":
        return cls(delivered=True, message_id=message_id)

    @classmethod
    def failure(cls, detail: str) -> "DeliveryOutcome":
        return cls(delivered=False, detail=detail)


async def attempt_delivery(
    sink: EmailPort,
    notification: Notification,
    timeout: float = DEFAULT_DELIVERY_TIMEOUT,
) -> DeliveryOutcome:
    """Send one notification through the sink within ``timeout`` seconds."""
    kwargs = {
        "to": notification.recipient_email,
        "subject": notification.subject or "",
        "body": notification.body,
    }
    try:
        if inspect.iscoroutinefunction(sink.send):
            result = await asyncio.wait_for(sink.send(**kwargs), timeout=timeout)
        else:
            result = await asyncio.wait_for(asyncio.to_thread(sink.send, **kwargs), timeout=timeout)
    except asyncio.TimeoutError:
        return DeliveryOutcome.failure(f"Delivery timed out after {timeout}s")
    except Exception as exc:
        return DeliveryOutcome.failure(str(exc) or exc.__class__.__name__)

    if result.get("status") == SEND_STATUS_SENT:
        return DeliveryOutcome.success(result.get("message_id"))
    return DeliveryOutcome.failure(result.get("error") or "Unknown delivery error")


def apply_outcome(notification: Notification, outcome: DeliveryOutcome) -> None:
    if outcome.delivered:
        notification.mark_sent()
    else:
        notification.mark_failed(outcome.detail)


class NotificationDispatcher:
    """Persists a notification, attempts delivery and persists the result."""

    def __init__(self, sink: EmailPort | None = None, timeout: float = DEFAULT_DELIVERY_TIMEOUT):
        self._sink = sink
        self.timeout = timeout

    @property
    def sink(self) -> EmailPort:
        return self._sink or get_email_channel()

    async def attempt(self, notification: Notification) -> DeliveryOutcome:
        """Attempt delivery and apply the outcome, without persisting."""
        outcome = await attempt_delivery(self.sink, notification, self.timeout)
        apply_outcome(notification, outcome)

        if outcome.delivered:
            logger.info(
                "Notification sent",
                notification_id=str(notification.id),
                recipient=notification.recipient_email,
                message_id=outcome.message_id,
            )
        else:
            logger.warning(
                "Notification delivery failed",
                notification_id=str(notification.id),
                recipient=notification.recipient_email,
                reason=outcome.detail,
                retry_count=notification.retry_count,
            )
        return outcome

    async def send(self, notification: Notification) -> Notification:
        """Record a new PENDING notification, then deliver it."""
        repo = current_domain.repository_for(Notification)
        repo.add(notification)
        return await self.deliver(notification)

    async def deliver(self, notification: Notification) -> Notification:
        repo = current_domain.repository_for(Notification)
        await self.attempt(notification)
        repo.add(notification)
        return notification
