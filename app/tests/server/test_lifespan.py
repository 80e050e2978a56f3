from unittest.mock import MagicMock, patch

from fastapi.testclient import TestClient

from infrastructure.configuration import Settings
from infrastructure.services import configure_engine, get_engine
from modules.bot_engine import BotEngineConfig
from modules.bot_engine.allowlist import DynamicPolicy
from server import lifespan as lifespan_module
from server.server import handler
from tests.factories.bot_engine import make_update


def test_lifespan_builds_engine_without_scheduler():
    with TestClient(handler) as client:
        assert client.app.state.engine is not None
        assert client.app.state.scheduled_stop_event is None

        response = client.get("/health")

    assert response.status_code == 200


def test_start_scheduled_tasks_skipped_when_disabled():
    settings = Settings()
    settings.retry.enabled = False
    logger = MagicMock()

    with patch.object(lifespan_module, "_is_test_environment", return_value=False):
        result = lifespan_module._start_scheduled_tasks(MagicMock(), settings, logger)

    assert result is None
    logger.info.assert_called_once_with(
        "scheduled_tasks_skipped", reason="retry_disabled"
    )


@patch("server.lifespan.scheduled_tasks")
def test_start_scheduled_tasks(scheduled_tasks_mock):
    settings = Settings()
    engine = MagicMock()
    stop_event = MagicMock()
    scheduled_tasks_mock.run_continuously.return_value = stop_event

    with patch.object(lifespan_module, "_is_test_environment", return_value=False):
        result = lifespan_module._start_scheduled_tasks(engine, settings, MagicMock())

    assert result is stop_event
    scheduled_tasks_mock.init.assert_called_once_with(
        engine, settings.retry.poll_interval_seconds
    )


def test_stop_scheduled_tasks():
    event = MagicMock()
    lifespan_module._stop_scheduled_tasks(event)
    event.set.assert_called_once_with()

    lifespan_module._stop_scheduled_tasks(None)


def test_list_configs_logs_sections():
    logger = MagicMock()

    lifespan_module._list_configs(Settings(), logger)

    sections = {
        c.kwargs["config_setting"]
        for c in logger.info.call_args_list
        if c.args[0] == "configuration_loaded"
    }
    assert sections == {"telegram", "aws", "bot_engine", "retry", "server"}


def test_configured_engine_serves_webhook_and_scheduler(fake_transport):
    team = {"alice"}
    config = BotEngineConfig(allowed_usernames=DynamicPolicy(lambda: team))
    configure_engine(config=config, transport=fake_transport)

    with TestClient(handler) as client:
        engine = client.app.state.engine
        assert engine is get_engine()

        client.post("/telegram/webhook", json=make_update("/start", chat_id=1))
        client.post(
            "/telegram/webhook",
            json=make_update("/start", chat_id=2, username="bob", update_id=2),
        )
        team.add("bob")
        client.post(
            "/telegram/webhook",
            json=make_update("/start", chat_id=2, username="bob", update_id=3),
        )

    assert engine.config is config
    assert [m["text"] for m in fake_transport.sent][1] == config.unauthorized_message
    assert engine.subscriptions.get(1).active is True
    assert engine.subscriptions.get(2).active is True
