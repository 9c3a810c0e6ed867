"""Tests for messaging settings and broker selection."""

import pytest
from pydantic import ValidationError

from shared.config import MessagingSettings, build_broker, build_shared_broker
from shared.messaging.exceptions import BrokerConfigurationError
from shared.messaging.memory import InMemoryBroker
from shared.messaging.rabbitmq import RabbitMQBroker


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in (
        "BROKER_BACKEND",
        "PUBLISH_MAX_RETRIES",
        "DELIVERY_TIMEOUT",
        "SWEEP_BATCH_SIZE",
        "ADMIN_EMAIL",
    ):
        monkeypatch.delenv(name, raising=False)


class TestMessagingSettings:
    def test_defaults(self):
        settings = MessagingSettings()
        assert settings.broker_backend == "memory"
        assert settings.publish_max_retries == 3
        assert settings.publish_retry_backoff == 1.0
        assert settings.message_ttl_ms == 86_400_000
        assert settings.admin_email == "admin@bookmanagement.com"

    def test_environment_overrides_are_cast(self, monkeypatch):
        monkeypatch.setenv("BROKER_BACKEND", "rabbitmq")
        monkeypatch.setenv("PUBLISH_MAX_RETRIES", "5")
        monkeypatch.setenv("DELIVERY_TIMEOUT", "2.5")
        monkeypatch.setenv("ADMIN_EMAIL", "ops@example.com")

        settings = MessagingSettings()
        assert settings.broker_backend == "rabbitmq"
        assert settings.publish_max_retries == 5
        assert settings.delivery_timeout == 2.5
        assert settings.admin_email == "ops@example.com"

    def test_empty_variable_falls_back_to_default(self, monkeypatch):
        monkeypatch.setenv("SWEEP_BATCH_SIZE", "")
        assert MessagingSettings().sweep_batch_size == 1000

    def test_bad_value_names_the_field(self, monkeypatch):
        monkeypatch.setenv("PUBLISH_MAX_RETRIES", "lots")
        with pytest.raises(ValidationError, match="publish_max_retries"):
            MessagingSettings()

    def test_unknown_backend_is_rejected(self, monkeypatch):
        monkeypatch.setenv("BROKER_BACKEND", "kafka")
        with pytest.raises(ValidationError, match="broker_backend"):
            MessagingSettings()

    def test_settings_are_frozen(self):
        settings = MessagingSettings()
        with pytest.raises(ValidationError):
            settings.sweep_batch_size = 5

    def test_overrides_by_copy(self):
        settings = MessagingSettings().model_copy(update={"consumer_workers_per_queue": 4})
        assert settings.consumer_workers_per_queue == 4


class TestBuildBroker:
    def test_memory_backend(self):
        assert isinstance(build_broker(MessagingSettings()), InMemoryBroker)

    def test_rabbitmq_backend(self):
        broker = build_broker(MessagingSettings(broker_backend="rabbitmq"))
        assert isinstance(broker, RabbitMQBroker)

    def test_unknown_backend(self):
        with pytest.raises(BrokerConfigurationError):
            build_broker(MessagingSettings.model_construct(broker_backend="kafka"))


class TestBuildSharedBroker:
    def test_memory_backend_is_refused(self):
        with pytest.raises(BrokerConfigurationError, match="BROKER_BACKEND=rabbitmq"):
            build_shared_broker(MessagingSettings())

    def test_rabbitmq_backend(self):
        broker = build_shared_broker(MessagingSettings(broker_backend="rabbitmq"))
        assert isinstance(broker, RabbitMQBroker)
