"""End-to-end flows through the webhook, the delivery queue and the admin API."""

import pytest
from fastapi.testclient import TestClient

from api.routes.admin import router as admin_router
from api.routes.telegram import router as telegram_router
from modules.bot_engine.allowlist import PersistedPolicy
from tests.factories.bot_engine import make_update
from utils.tests import create_test_app


@pytest.fixture
def client_factory(settings):
    def _factory(engine):
        app = create_test_app(
            [telegram_router, admin_router], engine=engine, settings=settings
        )
        return TestClient(app)

    return _factory


def post_update(client, text, chat_id, username, update_id):
    response = client.post(
        "/telegram/webhook",
        json=make_update(
            text, chat_id=chat_id, username=username, update_id=update_id
        ),
    )
    assert response.status_code == 200


def test_allowlisted_subscribe_unsubscribe_flow(
    engine_factory, client_factory, fake_transport
):
    engine = engine_factory(allowed_usernames=["alice"])
    client = client_factory(engine)

    post_update(client, "/start", chat_id=100, username="alice", update_id=1)

    subscription = engine.subscriptions.get(100)
    assert subscription.active is True
    assert subscription.username == "alice"
    start_events = engine.event_log.recent(event_type="command", action="start")
    assert [e.chat_id for e in start_events] == [100]

    post_update(client, "/start", chat_id=200, username="eve", update_id=2)

    assert engine.subscriptions.get(200) is None
    denied = engine.event_log.recent(event_type="auth_failure")
    assert [(e.action, e.chat_id) for e in denied] == [("unauthorized", 200)]
    assert fake_transport.sent[-1]["chat_id"] == 200

    post_update(client, "/stop", chat_id=100, username="alice", update_id=3)

    assert engine.subscriptions.get(100).active is False
    stop_events = engine.event_log.recent(event_type="command", action="stop")
    assert [e.chat_id for e in stop_events] == [100]

    response = client.get("/admin/dashboard")
    assert response.json()["total_subscriptions"] == 1
    assert response.json()["active_subscriptions"] == 0


def test_broadcast_reaches_active_subscribers_and_deactivates_blocked(
    engine_factory, client_factory, fake_transport
):
    engine = engine_factory()
    client = client_factory(engine)
    for update_id, chat_id in enumerate((1, 2, 3), start=1):
        post_update(client, "/start", chat_id, f"user{chat_id}", update_id)
    post_update(client, "/stop", chat_id=3, username="user3", update_id=4)
    fake_transport.sent.clear()
    fake_transport.block(2)

    assert engine.broadcast("Deploy finished") == 2
    engine.worker.process_batch()

    assert [m["chat_id"] for m in fake_transport.sent] == [1]
    assert engine.subscriptions.get(2).active is False

    delivered = engine.event_log.recent(event_type="delivery", action="delivered")
    blocked = engine.event_log.recent(event_type="delivery", action="blocked")
    assert [e.chat_id for e in delivered] == [1]
    assert [e.chat_id for e in blocked] == [2]

    assert engine.broadcast("Second") == 1


def test_admin_managed_allowlist_gates_commands(
    engine_factory, client_factory, fake_transport
):
    engine = engine_factory(allowed_usernames=PersistedPolicy())
    client = client_factory(engine)

    post_update(client, "/start", chat_id=100, username="alice", update_id=1)
    assert engine.subscriptions.get(100) is None

    response = client.post("/admin/allowlist", json={"username": "@Alice"})
    assert response.status_code == 201

    post_update(client, "/start", chat_id=100, username="alice", update_id=2)
    assert engine.subscriptions.get(100).active is True

    response = client.delete("/admin/allowlist/Alice")
    assert response.status_code == 200

    post_update(client, "/stop", chat_id=100, username="alice", update_id=3)
    assert engine.subscriptions.get(100).active is True

    response = client.get("/admin/events", params={"type": "auth_failure"})
    assert response.json()["total_count"] == 2
