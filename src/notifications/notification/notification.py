"""Notification aggregate — the durable record of one message to one recipient.

Each notification is materialised from a consumed domain event (or a manual
send request), attempted through the email channel and keeps its delivery
outcome for audit and retry. Records are soft-deleted, never removed.

State Machine (3 states):
    PENDING → SENT
    PENDING → FAILED → (reset for retry) → PENDING

SENT is terminal. A FAILED notification can be reset while its retry budget
(``retry_count < MAX_RETRIES``) lasts; past that it stays FAILED for good.
"""

from datetime import UTC, datetime
from enum import Enum

from notifications.domain import notifications
from notifications.notification.events import (
    NotificationCreated,
    NotificationDeactivated,
    NotificationFailed,
    NotificationRead,
    NotificationRetried,
    NotificationSent,
)
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Integer, String, Text

from shared.messaging.constants import MAX_RETRY_COUNT

MAX_RETRIES = MAX_RETRY_COUNT


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class NotificationType(Enum):
    WELCOME = "Welcome"
    BOOK_CREATED = "BookCreated"
    BOOK_UPDATED = "BookUpdated"
    BOOK_DELETED = "BookDeleted"
    USER_REGISTERED = "UserRegistered"
    PASSWORD_RESET = "PasswordReset"
    ACCOUNT_LOCKED = "AccountLocked"
    SYSTEM_ALERT = "SystemAlert"


class NotificationStatus(Enum):
    PENDING = "PENDING"
    SENT = "SENT"
    FAILED = "FAILED"


RETRYABLE_STATUSES = (NotificationStatus.FAILED.value, NotificationStatus.PENDING.value)


# ---------------------------------------------------------------------------
# State Machine
# ---------------------------------------------------------------------------
_VALID_TRANSITIONS = {
    NotificationStatus.PENDING: {
        NotificationStatus.SENT,
        NotificationStatus.FAILED,
        NotificationStatus.PENDING,  # Retry of an interrupted attempt
    },
    NotificationStatus.FAILED: {
        NotificationStatus.PENDING,  # Via reset_for_retry
    },
    NotificationStatus.SENT: set(),  # Terminal
}


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@notifications.aggregate
class Notification:
    """A single notification addressed to one email recipient."""

    # Recipient
    recipient_email: String(max_length=255, required=True)
    recipient_name: String(max_length=255)

    # Content
    subject: String(max_length=500, required=True)
    body: Text(required=True)
    notification_type: String(choices=NotificationType, required=True)
    template_name: String(max_length=200)

    # Source reference (e.g. the book an event was about)
    reference_id: String(max_length=255)
    reference_type: String(max_length=50)
    correlation_id: String(max_length=255)

    # Status
    status: String(choices=NotificationStatus, default=NotificationStatus.PENDING.value)
    is_active: Boolean(default=True)

    # Delivery tracking
    sent_at: DateTime()
    error_message: String(max_length=1000)
    attempts: Integer(default=0)

    # Retry
    retry_count: Integer(default=0)

    # Timestamps
    created_at: DateTime()
    updated_at: DateTime()

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        recipient_email,
        subject,
        body,
        notification_type,
        recipient_name=None,
        template_name=None,
        reference_id=None,
        reference_type=None,
        correlation_id=None,
    ):
        """Create a new notification in PENDING status."""
        now = datetime.now(UTC)

        notification = cls(
            recipient_email=recipient_email,
            recipient_name=recipient_name,
            subject=subject,
            body=body,
            notification_type=notification_type,
            template_name=template_name,
            reference_id=reference_id,
            reference_type=reference_type,
            correlation_id=correlation_id,
            status=NotificationStatus.PENDING.value,
            is_active=True,
            retry_count=0,
            attempts=0,
            created_at=now,
            updated_at=now,
        )

        notification.raise_(
            NotificationCreated(
                notification_id=str(notification.id),
                recipient_email=recipient_email,
                notification_type=notification_type,
                subject=subject,
                template_name=template_name,
                reference_id=reference_id,
                reference_type=reference_type,
                correlation_id=correlation_id,
                created_at=now,
            )
        )

        return notification

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    def can_retry(self) -> bool:
        """True while the retry budget lasts and the record is not SENT."""
        return self.retry_count < MAX_RETRIES and self.status in RETRYABLE_STATUSES

    # -------------------------------------------------------------------
    # State transitions
    # -------------------------------------------------------------------
    def _assert_can_transition(self, target_status):
        """Validate state machine transition."""
        current = NotificationStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def mark_sent(self, sent_at=None):
        """Record a successful delivery attempt."""
        self._assert_can_transition(NotificationStatus.SENT)

        now = sent_at or datetime.now(UTC)
        self.status = NotificationStatus.SENT.value
        self.sent_at = now
        self.error_message = None
        self.attempts = self.attempts + 1
        self.updated_at = now

        self.raise_(
            NotificationSent(
                notification_id=str(self.id),
                recipient_email=self.recipient_email,
                attempts=self.attempts,
                sent_at=now,
            )
        )

    def mark_failed(self, reason):
        """Record a failed delivery attempt and spend one unit of retry budget."""
        self._assert_can_transition(NotificationStatus.FAILED)

        now = datetime.now(UTC)
        error_message = (reason or "Unknown delivery error")[:1000]

        # Built first so an invalid event leaves the record untouched
        event = NotificationFailed(
            notification_id=str(self.id),
            recipient_email=self.recipient_email,
            reason=error_message,
            retry_count=self.retry_count + 1,
            max_retries=MAX_RETRIES,
            failed_at=now,
        )

        self.status = NotificationStatus.FAILED.value
        self.error_message = error_message
        self.retry_count = self.retry_count + 1
        self.attempts = self.attempts + 1
        self.updated_at = now

        self.raise_(event)

    def reset_for_retry(self):
        """Put a retryable notification back to PENDING. ``retry_count`` is kept."""
        if not self.can_retry():
            if self.status == NotificationStatus.SENT.value:
                raise ValidationError({"status": ["Sent notifications cannot be retried"]})
            raise ValidationError({"retry_count": ["Maximum retry attempts exceeded"]})
        self._assert_can_transition(NotificationStatus.PENDING)

        now = datetime.now(UTC)
        self.status = NotificationStatus.PENDING.value
        self.error_message = None
        self.updated_at = now

        self.raise_(
            NotificationRetried(
                notification_id=str(self.id),
                recipient_email=self.recipient_email,
                retry_count=self.retry_count,
                retried_at=now,
            )
        )

    def mark_read(self):
        """Note that the recipient has read the notification. Only touches ``updated_at``."""
        now = datetime.now(UTC)
        self.updated_at = now
        self.raise_(NotificationRead(notification_id=str(self.id), read_at=now))

    def deactivate(self):
        """Soft-delete the notification. Allowed from any status."""
        if not self.is_active:
            raise ValidationError({"is_active": ["Notification is already deactivated"]})

        now = datetime.now(UTC)
        self.is_active = False
        self.updated_at = now

        self.raise_(
            NotificationDeactivated(
                notification_id=str(self.id),
                status=self.status,
                deactivated_at=now,
            )
        )
