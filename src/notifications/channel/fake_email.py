"""Fake email adapter — records sent emails for tests and local runs."""

import time
from uuid import uuid4

from notifications.channel.email_port import SEND_STATUS_FAILED, SEND_STATUS_SENT, EmailPort


class FakeEmailAdapter(EmailPort):
    """Email adapter that keeps messages in memory for test assertions.

    Failure modes can be scripted: a failed status, a raised exception, a
    blocking delay (to trip delivery timeouts), or a queue of per-call
    outcomes consumed in order.
    """

    def __init__(self):
        self.sent_emails: list[dict] = []
        self.calls = 0
        self.reset()

    def configure(
        self,
        should_succeed: bool = True,
        failure_reason: str = "Email delivery failed",
        raise_error: Exception | None = None,
        delay: float = 0.0,
    ):
        """Configure the fake adapter behavior for testing."""
        self.should_succeed = should_succeed
        self.failure_reason = failure_reason
        self.raise_error = raise_error
        self.delay = delay

    def script(self, *outcomes: bool):
        """Succeed or fail the next calls in order, then fall back to ``configure``."""
        self._scripted.extend(outcomes)

    def send(self, to: str, subject: str, body: str) -> dict:
        self.calls += 1
        if self.delay:
            time.sleep(self.delay)
        if self.raise_error is not None:
            raise self.raise_error

        succeed = self._scripted.pop(0) if self._scripted else self.should_succeed
        if not succeed:
            return {
                "message_id": None,
                "status": SEND_STATUS_FAILED,
                "error": self.failure_reason,
            }

        message_id = f"email-{uuid4().hex[:12]}"
        self.sent_emails.append(
            {
                "message_id": message_id,
                "to": to,
                "subject": subject,
                "body": body,
            }
        )

        return {"message_id": message_id, "status": SEND_STATUS_SENT}

    def reset(self):
        """Clear sent emails and scripted behaviour (useful between tests)."""
        self.sent_emails.clear()
        self.calls = 0
        self._scripted: list[bool] = []
        self.configure()
