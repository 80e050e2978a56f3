"""Unit tests for the in-memory stores."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from modules.bot_engine.models import AllowedUser, DuplicateRecordError, Subscription
from tests.factories.bot_engine import make_event, make_subscriptions


@pytest.mark.unit
class TestInMemorySubscriptionStore:
    def test_save_and_get(self, subscription_store):
        subscription_store.save(Subscription(chat_id=1, username="alice"))

        stored = subscription_store.get(1)
        assert stored is not None
        assert stored.username == "alice"
        assert stored.active is True

    def test_get_unknown_returns_none(self, subscription_store):
        assert subscription_store.get(404) is None

    def test_save_is_an_upsert(self, subscription_store):
        first = subscription_store.save(Subscription(chat_id=1, username="alice"))
        later = first.created_at + timedelta(days=1)
        subscription_store.save(
            Subscription(chat_id=1, username="alice2", created_at=later)
        )

        assert subscription_store.count() == 1
        stored = subscription_store.get(1)
        assert stored.username == "alice2"
        assert stored.created_at == first.created_at

    def test_returned_rows_are_copies(self, subscription_store):
        subscription_store.save(Subscription(chat_id=1, metadata={"k": "v"}))

        row = subscription_store.get(1)
        row.metadata["k"] = "changed"

        assert subscription_store.get(1).metadata == {"k": "v"}

    def test_set_active_updates_existing_row(self, subscription_store):
        subscription_store.save(Subscription(chat_id=1))

        assert subscription_store.set_active(1, False) is True
        assert subscription_store.get(1).active is False

    def test_set_active_on_unknown_chat_creates_nothing(self, subscription_store):
        assert subscription_store.set_active(404, False) is False
        assert subscription_store.get(404) is None
        assert subscription_store.count() == 0

    def test_list_is_newest_first_and_filterable(self, subscription_store):
        for subscription in make_subscriptions(active=2, inactive=1):
            subscription_store.save(subscription)

        all_rows = subscription_store.list_subscriptions()
        assert [r.chat_id for r in all_rows] == [1002, 1001, 1000]

        active = subscription_store.list_subscriptions(active=True)
        assert [r.chat_id for r in active] == [1001, 1000]

        inactive = subscription_store.list_subscriptions(active=False)
        assert [r.chat_id for r in inactive] == [1002]

    def test_count(self, subscription_store):
        for subscription in make_subscriptions(active=3, inactive=2):
            subscription_store.save(subscription)

        assert subscription_store.count() == 5
        assert subscription_store.count(active=True) == 3
        assert subscription_store.count(active=False) == 2

    def test_delete(self, subscription_store):
        subscription_store.save(Subscription(chat_id=1))

        assert subscription_store.delete(1) is True
        assert subscription_store.delete(1) is False
        assert subscription_store.get(1) is None


@pytest.mark.unit
class TestInMemoryAllowedUserStore:
    def test_add_and_list_ordered_by_username(self, allowed_user_store):
        allowed_user_store.add(AllowedUser(username="carol"))
        allowed_user_store.add(AllowedUser(username="alice"))
        allowed_user_store.add(AllowedUser(username="bob"))

        assert allowed_user_store.list_usernames() == ["alice", "bob", "carol"]

    def test_duplicate_username_is_rejected(self, allowed_user_store):
        allowed_user_store.add(AllowedUser(username="alice"))

        with pytest.raises(DuplicateRecordError):
            allowed_user_store.add(AllowedUser(username="alice"))

    def test_delete(self, allowed_user_store):
        allowed_user_store.add(AllowedUser(username="alice"))

        assert allowed_user_store.delete("alice") is True
        assert allowed_user_store.delete("alice") is False
        assert allowed_user_store.list_users() == []

    def test_username_is_stripped(self):
        assert AllowedUser(username="  @alice ").username == "alice"

    @pytest.mark.parametrize("username", ["", "   ", "@"])
    def test_blank_username_is_invalid(self, username):
        with pytest.raises(ValidationError):
            AllowedUser(username=username)


@pytest.mark.unit
class TestInMemoryEventStore:
    def test_query_is_newest_first(self, event_store):
        old = event_store.insert(make_event(action="start", age=timedelta(hours=2)))
        new = event_store.insert(make_event(action="stop", age=timedelta(hours=1)))

        assert [e.event_id for e in event_store.query()] == [new.event_id, old.event_id]

    def test_query_filters(self, event_store):
        event_store.insert(make_event("command", "start", chat_id=1))
        event_store.insert(make_event("command", "stop", chat_id=1))
        event_store.insert(make_event("delivery", "delivered", chat_id=2))

        assert len(event_store.query(event_type="command")) == 2
        assert len(event_store.query(action="stop")) == 1
        assert len(event_store.query(chat_id=2)) == 1
        assert event_store.count(event_type="command", chat_id=1) == 2

    def test_query_since_is_inclusive(self, event_store):
        event = event_store.insert(make_event(age=timedelta(days=1)))

        assert event_store.query(since=event.created_at) == [event]
        assert event_store.query(since=event.created_at + timedelta(seconds=1)) == []

    def test_query_limit_and_offset(self, event_store):
        for hours in range(5):
            event_store.insert(make_event(age=timedelta(hours=hours)))

        newest_first = event_store.query()
        assert event_store.query(limit=2) == newest_first[:2]
        assert event_store.query(limit=2, offset=2) == newest_first[2:4]
        assert event_store.query(offset=4) == newest_first[4:]

    def test_delete_older_than_is_strict(self, event_store):
        boundary = make_event(age=timedelta(days=7))
        event_store.insert(boundary)
        event_store.insert(make_event(age=timedelta(days=8)))
        event_store.insert(make_event(age=timedelta(days=1)))

        removed = event_store.delete_older_than(boundary.created_at)

        assert removed == 1
        assert event_store.count() == 2
