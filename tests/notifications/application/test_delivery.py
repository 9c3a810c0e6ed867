"""Tests for the delivery executor and the notification dispatcher."""

import asyncio

import pytest
from notifications.channel import set_email_channel
from notifications.channel.fake_email import FakeEmailAdapter
from notifications.notification.delivery import (
    DeliveryOutcome,
    NotificationDispatcher,
    apply_outcome,
    attempt_delivery,
)
from notifications.notification.notification import (
    Notification,
    NotificationStatus,
    NotificationType,
)
from protean import current_domain
from protean.exceptions import ObjectNotFoundError


def _notification(**overrides):
    defaults = {
        "recipient_email": "admin@bookmanagement.com",
        "subject": "New Book Added: Dune",
        "body": "A new book has been added to the system",
        "notification_type": NotificationType.BOOK_CREATED.value,
    }
    defaults.update(overrides)
    return Notification.create(**defaults)


class AsyncSink:
    def __init__(self, result=None, error=None):
        self.result = result or {"message_id": "async-1", "status": "sent"}
        self.error = error
        self.calls = []

    async def send(self, to, subject, body):
        self.calls.append(to)
        if self.error:
            raise self.error
        return self.result


class TestAttemptDelivery:
    def test_successful_send(self, email):
        outcome = asyncio.run(attempt_delivery(email, _notification()))
        assert outcome.delivered is True
        assert outcome.message_id.startswith("email-")
        assert email.sent_emails[0]["subject"] == "New Book Added: Dune"

    def test_failed_status(self, email):
        email.configure(should_succeed=False, failure_reason="Mailbox full")
        outcome = asyncio.run(attempt_delivery(email, _notification()))
        assert outcome == DeliveryOutcome.failure("Mailbox full")

    def test_exception_is_a_failure(self, email):
        email.configure(raise_error=ConnectionError("SMTP down"))
        outcome = asyncio.run(attempt_delivery(email, _notification()))
        assert outcome.delivered is False
        assert outcome.detail == "SMTP down"

    def test_timeout_is_a_failure(self, email):
        email.configure(delay=0.5)
        outcome = asyncio.run(attempt_delivery(email, _notification(), timeout=0.05))
        assert outcome.delivered is False
        assert outcome.detail == "Delivery timed out after 0.05s"

    def test_async_sink_is_awaited(self):
        sink = AsyncSink()
        outcome = asyncio.run(attempt_delivery(sink, _notification()))
        assert outcome == DeliveryOutcome.success("async-1")
        assert sink.calls == ["admin@bookmanagement.com"]

    def test_status_without_error_detail(self):
        sink = AsyncSink(result={"status": "bounced"})
        outcome = asyncio.run(attempt_delivery(sink, _notification()))
        assert outcome.detail == "Unknown delivery error"


class TestApplyOutcome:
    def test_success_marks_sent(self):
        n = _notification()
        apply_outcome(n, DeliveryOutcome.success("m-1"))
        assert n.status == NotificationStatus.SENT.value

    def test_failure_marks_failed(self):
        n = _notification()
        apply_outcome(n, DeliveryOutcome.failure("Mailbox full"))
        assert n.status == NotificationStatus.FAILED.value
        assert n.error_message == "Mailbox full"


class TestNotificationDispatcher:
    def test_send_persists_sent_notification(self, dispatcher):
        n = _notification()
        asyncio.run(dispatcher.send(n))

        stored = current_domain.repository_for(Notification).get(n.id)
        assert stored.status == NotificationStatus.SENT.value
        assert stored.attempts == 1
        assert stored.sent_at is not None

    def test_send_persists_failed_notification(self, dispatcher, email):
        email.configure(should_succeed=False, failure_reason="Mailbox full")
        n = _notification()
        asyncio.run(dispatcher.send(n))

        stored = current_domain.repository_for(Notification).get(n.id)
        assert stored.status == NotificationStatus.FAILED.value
        assert stored.retry_count == 1
        assert stored.error_message == "Mailbox full"

    def test_sink_exception_does_not_escape(self, dispatcher, email):
        email.configure(raise_error=RuntimeError("boom"))
        n = asyncio.run(dispatcher.send(_notification()))
        assert n.status == NotificationStatus.FAILED.value

    def test_attempt_does_not_persist(self, dispatcher):
        n = _notification()
        outcome = asyncio.run(dispatcher.attempt(n))
        assert outcome.delivered is True
        with pytest.raises(ObjectNotFoundError):
            current_domain.repository_for(Notification).get(n.id)

    def test_default_sink_is_the_registered_channel(self):
        adapter = FakeEmailAdapter()
        set_email_channel(adapter)
        asyncio.run(NotificationDispatcher().send(_notification()))
        assert len(adapter.sent_emails) == 1
