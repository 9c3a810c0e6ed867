"""Pydantic request/response models for the Notifications API.

API schemas are separate from the Notification aggregate (anti-corruption pattern).
"""

from datetime import datetime

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Request Models
# ---------------------------------------------------------------------------
class SendNotificationRequest(BaseModel):
    recipient_email: str = Field(..., min_length=3, max_length=255, examples=["reader@example.com"])
    recipient_name: str | None = Field(None, max_length=255)
    subject: str = Field(..., min_length=1, max_length=500)
    body: str = Field(..., min_length=1)
    notification_type: str = Field(
        "SystemAlert",
        examples=["SystemAlert"],
        description="NotificationType enum value",
    )
    reference_id: str | None = Field(None, max_length=255)
    reference_type: str | None = Field(None, max_length=50)


# ---------------------------------------------------------------------------
# Response Models
# ---------------------------------------------------------------------------
class StatusResponse(BaseModel):
    status: str = "ok"


class NotificationResponse(BaseModel):
    notification_id: str
    recipient_email: str
    recipient_name: str | None = None
    subject: str | None = None
    body: str | None = None
    notification_type: str
    template_name: str | None = None
    status: str
    retry_count: int
    attempts: int
    error_message: str | None = None
    reference_id: str | None = None
    reference_type: str | None = None
    correlation_id: str | None = None
    sent_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @classmethod
    def from_aggregate(cls, notification) -> "NotificationResponse":
        return cls(
            notification_id=str(notification.id),
            recipient_email=notification.recipient_email,
            recipient_name=notification.recipient_name,
            subject=notification.subject,
            body=notification.body,
            notification_type=notification.notification_type,
            template_name=notification.template_name,
            status=notification.status,
            retry_count=notification.retry_count,
            attempts=notification.attempts,
            error_message=notification.error_message,
            reference_id=notification.reference_id,
            reference_type=notification.reference_type,
            correlation_id=notification.correlation_id,
            sent_at=notification.sent_at,
            created_at=notification.created_at,
            updated_at=notification.updated_at,
        )


class NotificationListResponse(BaseModel):
    notifications: list[NotificationResponse]


class SweepResponse(BaseModel):
    eligible: int
    attempted: int
    sent: int
    failed: int
    skipped: int
    dry_run: bool
