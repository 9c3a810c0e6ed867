"""Email channel port — the contract every delivery sink implements."""

from abc import ABC, abstractmethod

SEND_STATUS_SENT = "sent"
SEND_STATUS_FAILED = "failed"


class EmailPort(ABC):
    """Abstract interface for email delivery adapters.

    ``send`` may block; callers run it off the event loop and bound it with
    a timeout. Raising is treated the same as returning a failed status.
    """

    @abstractmethod
    def send(self, to: str, subject: str, body: str) -> dict:
        """Send one email.

        Returns:
            dict with keys: message_id, status ("sent" or "failed"), error (optional)
        """
        ...
