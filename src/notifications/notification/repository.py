"""Repository for the Notification aggregate."""

from notifications.domain import notifications
from notifications.notification.notification import (
    MAX_RETRIES,
    RETRYABLE_STATUSES,
    Notification,
)


@notifications.repository(part_of=Notification)
class NotificationRepository:
    """Query methods over notification records.

    Soft-deleted records are excluded from every query here.
    """

    def retryable(self, limit: int) -> list[Notification]:
        """Active notifications still within their retry budget, oldest first."""
        return (
            self._dao.query.filter(
                is_active=True,
                status__in=list(RETRYABLE_STATUSES),
                retry_count__lt=MAX_RETRIES,
            )
            .order_by("created_at")
            .limit(limit)
            .all()
            .items
        )

    def active(self, limit: int = 100) -> list[Notification]:
        return self._dao.query.filter(is_active=True).order_by("-created_at").limit(limit).all().items

    def find_by_status(self, status: str, limit: int = 100) -> list[Notification]:
        return (
            self._dao.query.filter(is_active=True, status=status).order_by("-created_at").limit(limit).all().items
        )

    def find_by_recipient(self, recipient_email: str, limit: int = 100) -> list[Notification]:
        return (
            self._dao.query.filter(is_active=True, recipient_email=recipient_email)
            .order_by("-created_at")
            .limit(limit)
            .all()
            .items
        )

    def find_by_reference(self, reference_id: str, reference_type: str | None = None) -> list[Notification]:
        filters = {"is_active": True, "reference_id": reference_id}
        if reference_type is not None:
            filters["reference_type"] = reference_type
        return self._dao.query.filter(**filters).order_by("created_at").all().items
