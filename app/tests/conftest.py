import sys
from pathlib import Path

# Make the application packages importable however pytest is invoked.
project_root = str(Path(__file__).resolve().parents[1])
if project_root not in sys.path:
    sys.path.insert(0, project_root)

import pytest  # noqa: E402

from api.dependencies.rate_limits import get_limiter  # noqa: E402
from infrastructure.configuration import Settings  # noqa: E402
from infrastructure.logging import configure_logging  # noqa: E402
from infrastructure.services import reset_engine  # noqa: E402
from modules.bot_engine import BotEngineConfig, build_engine  # noqa: E402
from modules.bot_engine.stores import (  # noqa: E402
    InMemoryAllowedUserStore,
    InMemoryEventStore,
    InMemorySubscriptionStore,
)
from tests.factories.bot_engine import FakeTransport  # noqa: E402

configure_logging()


@pytest.fixture(autouse=True)
def reset_providers():
    """Rebuild cached settings and engine, and clear rate limit counters."""
    reset_engine()
    get_limiter().reset()
    yield
    reset_engine()


@pytest.fixture
def settings():
    return Settings()


@pytest.fixture
def fake_transport():
    return FakeTransport()


@pytest.fixture
def subscription_store():
    return InMemorySubscriptionStore()


@pytest.fixture
def allowed_user_store():
    return InMemoryAllowedUserStore()


@pytest.fixture
def event_store():
    return InMemoryEventStore()


@pytest.fixture
def engine_factory(
    settings, fake_transport, subscription_store, allowed_user_store, event_store
):
    """Factory for engines wired with in-memory stores and a fake transport."""

    def _factory(**config_overrides):
        config = BotEngineConfig(**config_overrides)
        return build_engine(
            settings,
            config=config,
            transport=fake_transport,
            stores=(subscription_store, allowed_user_store, event_store),
        )

    return _factory


@pytest.fixture
def engine(engine_factory):
    return engine_factory()
