"""FastAPI routes for the Notifications domain.

Thin adapters over the repository, the dispatcher and the retry sweeper.
No business logic — just schema→domain→response translation.
"""

from fastapi import APIRouter, Query, Request
from notifications.api.schemas import (
    NotificationListResponse,
    NotificationResponse,
    SendNotificationRequest,
    StatusResponse,
    SweepResponse,
)
from notifications.notification.deactivation import DeactivateNotification
from notifications.notification.delivery import NotificationDispatcher
from notifications.notification.notification import Notification, NotificationStatus
from notifications.notification.reading import MarkNotificationRead
from notifications.notification.retry import DEFAULT_BATCH_SIZE, RetrySweeper
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _dispatcher(request: Request) -> NotificationDispatcher:
    dispatcher = getattr(request.app.state, "dispatcher", None)
    return dispatcher or NotificationDispatcher()


def _batch_size(request: Request) -> int:
    settings = getattr(request.app.state, "settings", None)
    return settings.sweep_batch_size if settings is not None else DEFAULT_BATCH_SIZE


def _list(notifications) -> NotificationListResponse:
    return NotificationListResponse(notifications=[NotificationResponse.from_aggregate(n) for n in notifications])


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
@router.get("", response_model=NotificationListResponse)
async def list_notifications(limit: int = Query(100, ge=1, le=1000)) -> NotificationListResponse:
    """List active notifications, newest first."""
    repo = current_domain.repository_for(Notification)
    return _list(repo.active(limit=limit))


@router.get("/recipient/{recipient_email}", response_model=NotificationListResponse)
async def get_recipient_notifications(recipient_email: str) -> NotificationListResponse:
    repo = current_domain.repository_for(Notification)
    return _list(repo.find_by_recipient(recipient_email))


@router.get("/status/{status}", response_model=NotificationListResponse)
async def get_notifications_by_status(status: NotificationStatus) -> NotificationListResponse:
    repo = current_domain.repository_for(Notification)
    return _list(repo.find_by_status(status.value))


@router.get("/{notification_id}", response_model=NotificationResponse)
async def get_notification(notification_id: str) -> NotificationResponse:
    notification = current_domain.repository_for(Notification).get(notification_id)
    if not notification.is_active:
        raise ObjectNotFoundError(f"Notification with id {notification_id} does not exist")
    return NotificationResponse.from_aggregate(notification)


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------
@router.post("/send", status_code=201, response_model=NotificationResponse)
async def send_notification(body: SendNotificationRequest, request: Request) -> NotificationResponse:
    """Record a notification and attempt delivery straight away."""
    notification = Notification.create(
        recipient_email=body.recipient_email,
        recipient_name=body.recipient_name,
        subject=body.subject,
        body=body.body,
        notification_type=body.notification_type,
        reference_id=body.reference_id,
        reference_type=body.reference_type,
        correlation_id=getattr(request.state, "correlation_id", None),
    )
    await _dispatcher(request).send(notification)
    return NotificationResponse.from_aggregate(notification)


# ---------------------------------------------------------------------------
# Maintenance
# ---------------------------------------------------------------------------
@router.post("/retry-failed", response_model=SweepResponse)
async def retry_failed_notifications(request: Request, dry_run: bool = False) -> SweepResponse:
    """Re-attempt every active notification still within its retry budget."""
    sweeper = RetrySweeper(_dispatcher(request), batch_size=_batch_size(request))
    report = await sweeper.sweep(dry_run=dry_run)
    return SweepResponse(**report.to_dict())


@router.put("/{notification_id}/mark-read", response_model=StatusResponse)
async def mark_notification_read(notification_id: str) -> StatusResponse:
    command = MarkNotificationRead(notification_id=notification_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@router.delete("/{notification_id}", response_model=StatusResponse)
async def delete_notification(notification_id: str) -> StatusResponse:
    """Soft-delete a notification."""
    command = DeactivateNotification(notification_id=notification_id)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()
