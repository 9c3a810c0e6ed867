import asyncio
import os

import pytest

from shared.messaging.memory import InMemoryBroker
from shared.messaging.topology import declare_topology


@pytest.fixture(scope="session")
def _catalogue_domain(request):
    """Initialize the catalogue domain once per session."""
    os.environ["PROTEAN_ENV"] = request.config.option.env

    from catalogue.domain import catalogue

    catalogue.init()
    return catalogue


@pytest.fixture(scope="session", autouse=True)
def setup_db(_catalogue_domain):
    from shared.db import drop_db, setup_db

    setup_db(_catalogue_domain)

    yield

    drop_db(_catalogue_domain)


@pytest.fixture(autouse=True)
def run_around_tests(_catalogue_domain):
    """Push domain context before each test, cleanup after."""
    ctx = _catalogue_domain.domain_context()
    ctx.push()

    yield

    from protean import current_domain

    for _, provider in current_domain.providers.items():
        provider._data_reset()

    current_domain.event_store.store._data_reset()
    ctx.pop()


@pytest.fixture
def broker():
    """A connected in-memory broker with the full topology declared."""
    broker = InMemoryBroker()

    async def _setup():
        await broker.connect()
        await declare_topology(broker)

    asyncio.run(_setup())
    return broker


@pytest.fixture
def publisher(broker):
    from shared.messaging.publisher import EventPublisher

    async def _no_sleep(_):
        return None

    return EventPublisher(broker, publish_timeout=1.0, retry_backoff=0.0, sleep=_no_sleep)
