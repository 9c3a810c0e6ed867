"""Delivery channel registry — the email sink notifications go out through.

Provides singleton access to the email adapter. The in-memory fake is used
unless another adapter has been installed with ``set_email_channel``.
"""

from notifications.channel.email_port import EmailPort

_email_channel: EmailPort | None = None


def get_email_channel() -> EmailPort:
    """Return the configured email adapter, creating the fake on first use."""
    global _email_channel
    if _email_channel is None:
        from notifications.channel.fake_email import FakeEmailAdapter

        _email_channel = FakeEmailAdapter()
    return _email_channel


def set_email_channel(adapter: EmailPort) -> None:
    global _email_channel
    _email_channel = adapter


def reset_channels():
    """Drop the installed adapter (useful for testing)."""
    global _email_channel
    _email_channel = None
