"""Messaging error hierarchy."""


class MessagingError(Exception):
    """Base class for broker, topology and publishing failures."""


class BrokerError(MessagingError):
    """The broker refused an operation (unknown exchange, bad arguments, ...)."""


class BrokerUnavailableError(BrokerError):
    """The broker could not be reached or the channel broke. Transient."""


class TopologyDeclarationError(MessagingError):
    """Exchanges, queues or bindings could not be declared. Fatal at startup."""


class EventPublishError(MessagingError):
    """An event could not be handed to the broker."""

    def __init__(self, message: str, event_type: str | None = None, attempts: int = 1):
        self.event_type = event_type
        self.attempts = attempts
        super().__init__(message)


class BrokerConfigurationError(MessagingError):
    """The configured broker backend cannot serve this process."""
