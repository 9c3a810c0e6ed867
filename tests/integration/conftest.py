"""Fixtures for cross-service integration tests.

These tests drive the full application (both domains, the middleware and
the broker lifespan) against an in-memory broker, then drain the
notification queues with the event consumer.
"""

import os

import pytest

from shared.config import MessagingSettings
from shared.messaging.memory import InMemoryBroker


@pytest.fixture(scope="session")
def _domains(request):
    """Initialize both domains once per session, the way the app does."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    import app  # noqa: F401
    from catalogue.domain import catalogue
    from notifications.domain import notifications

    return catalogue, notifications


@pytest.fixture(scope="session", autouse=True)
def setup_databases(_domains):
    from shared.db import drop_db, setup_db

    for domain in _domains:
        setup_db(domain)

    yield

    for domain in _domains:
        drop_db(domain)


@pytest.fixture(autouse=True)
def reset_data(_domains):
    yield

    from notifications.channel import reset_channels

    for domain in _domains:
        with domain.domain_context():
            for _, provider in domain.providers.items():
                provider._data_reset()
            domain.event_store.store._data_reset()
    reset_channels()


@pytest.fixture
def notifications_ctx(_domains):
    """Push the notifications domain context for direct repository access."""
    _, notifications = _domains
    with notifications.domain_context():
        yield notifications


@pytest.fixture
def settings():
    return MessagingSettings(broker_publish_timeout=1.0, publish_retry_backoff=0.0, delivery_timeout=1.0)


@pytest.fixture
def broker():
    return InMemoryBroker()


@pytest.fixture
def email():
    from notifications.channel import set_email_channel
    from notifications.channel.fake_email import FakeEmailAdapter

    adapter = FakeEmailAdapter()
    set_email_channel(adapter)
    return adapter


@pytest.fixture
def client(settings, broker, email):
    """Full application client; entering it runs the startup lifespan."""
    from fastapi.testclient import TestClient

    from app import create_app

    with TestClient(create_app(settings, broker=broker)) as client:
        yield client


@pytest.fixture
def consumer(settings, broker, email):
    from notifications.messaging.consumer import EventConsumer
    from notifications.notification.delivery import NotificationDispatcher

    return EventConsumer(
        broker,
        NotificationDispatcher(sink=email, timeout=settings.delivery_timeout),
        poll_interval=0.01,
        admin_email=settings.admin_email,
        admin_name=settings.admin_name,
    )
