"""Notifications bounded context — turns catalogue events into delivered messages.

Consumes book events from the broker, records each resulting notification
durably and dispatches it through the email channel. Failed deliveries are
tracked against a retry budget and re-attempted in bulk by the retry sweeper.
"""

import structlog
from protean.domain import Domain

notifications = Domain(name="notifications")

logger = structlog.get_logger(__name__)
