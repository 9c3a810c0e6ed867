"""Retry sweeper — bulk re-delivery of failed and stalled notifications.

Runs independently of the live queues, on demand (operator endpoint or CLI)
or periodically from the worker. Each sweep takes a bounded snapshot of the
active notifications that can still be retried, then handles them one by
one: reload, re-check eligibility, reset to PENDING, attempt, persist.

A failure while handling one notification is recorded on it and the sweep
moves on. Only a failure to persist that record escapes the sweep.
"""

from dataclasses import asdict, dataclass

import structlog
from notifications.notification.delivery import NotificationDispatcher
from notifications.notification.notification import Notification, NotificationStatus
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

logger = structlog.get_logger(__name__)

DEFAULT_BATCH_SIZE = 1000


@dataclass
class SweepReport:
    eligible: int = 0
    attempted: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    dry_run: bool = False

    def to_dict(self) -> dict:
        return asdict(self)


class RetrySweeper:
    def __init__(self, dispatcher: NotificationDispatcher, batch_size: int = DEFAULT_BATCH_SIZE):
        self.dispatcher = dispatcher
        self.batch_size = batch_size

    async def sweep(self, dry_run: bool = False) -> SweepReport:
        repo = current_domain.repository_for(Notification)
        snapshot = repo.retryable(limit=self.batch_size)
        report = SweepReport(eligible=len(snapshot), dry_run=dry_run)

        logger.info("Starting retry sweep", eligible=report.eligible, dry_run=dry_run)
        if dry_run:
            return report

        for candidate in snapshot:
            try:
                notification = repo.get(candidate.id)
            except ObjectNotFoundError:
                report.skipped += 1
                continue

            # Another worker may have handled it since the snapshot was taken
            if not notification.is_active or not notification.can_retry():
                report.skipped += 1
                continue

            report.attempted += 1
            try:
                notification.reset_for_retry()
                await self.dispatcher.attempt(notification)
            except Exception as exc:
                logger.error(
                    "Retry of notification failed",
                    notification_id=str(notification.id),
                    error=str(exc),
                )
                self._record_failure(notification, f"Retry failed: {exc}")

            repo.add(notification)

            if notification.status == NotificationStatus.SENT.value:
                report.sent += 1
            else:
                report.failed += 1

        logger.info("Completed retry sweep", **report.to_dict())
        return report

    @staticmethod
    def _record_failure(notification: Notification, reason: str) -> None:
        if notification.status == NotificationStatus.PENDING.value:
            notification.mark_failed(reason)
        else:
            notification.error_message = reason

    async def retry_failed_notifications(self) -> int:
        """Run one sweep and return how many notifications ended up SENT."""
        report = await self.sweep()
        return report.sent
