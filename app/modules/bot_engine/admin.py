"""Administrative operations over subscriptions, the allowlist and events."""

import math
from typing import Callable, List, Optional

from pydantic import BaseModel

from infrastructure.logging import get_module_logger
from modules.bot_engine.allowlist import AllowlistResolver, PersistedPolicy
from modules.bot_engine.event_log import EventLog
from modules.bot_engine.models import (
    AllowedUser,
    Event,
    RecordNotFoundError,
    Subscription,
)
from modules.bot_engine.stores import AllowedUserStore, SubscriptionStore

logger = get_module_logger()

PER_PAGE = 50


class AllowlistModeError(RuntimeError):
    """Allowlist management requires the persisted policy."""


class DashboardStats(BaseModel):
    total_subscriptions: int
    active_subscriptions: int
    inactive_subscriptions: int
    bot_username: Optional[str] = None


class EventPage(BaseModel):
    events: List[Event]
    page: int
    per_page: int
    total_count: int
    total_pages: int


class AdminService:
    """Backs the administrative surface.

    Args:
        subscriptions: Subscription store
        allowed_users: Allowed user store (used by the persisted policy)
        authorizer: Resolver whose policy decides if the allowlist is editable
        event_log: Audit log
        bot_username: Returns the bot's username; failures yield None
    """

    def __init__(
        self,
        subscriptions: SubscriptionStore,
        allowed_users: AllowedUserStore,
        authorizer: AllowlistResolver,
        event_log: EventLog,
        bot_username: Optional[Callable[[], Optional[str]]] = None,
    ) -> None:
        self.subscriptions = subscriptions
        self.allowed_users = allowed_users
        self.authorizer = authorizer
        self.event_log = event_log
        self._bot_username = bot_username

    def dashboard(self) -> DashboardStats:
        total = self.subscriptions.count()
        active = self.subscriptions.count(active=True)
        return DashboardStats(
            total_subscriptions=total,
            active_subscriptions=active,
            inactive_subscriptions=total - active,
            bot_username=self._lookup_bot_username(),
        )

    def _lookup_bot_username(self) -> Optional[str]:
        if self._bot_username is None:
            return None
        try:
            return self._bot_username()
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("bot_username_lookup_failed", error=str(e))
            return None

    @property
    def allowlist_editable(self) -> bool:
        return isinstance(self.authorizer.policy, PersistedPolicy)

    def _require_persisted_allowlist(self) -> None:
        if not self.allowlist_editable:
            raise AllowlistModeError(
                "Allowlist management is only available in database mode."
            )

    def list_allowed_users(self) -> List[AllowedUser]:
        self._require_persisted_allowlist()
        return self.allowed_users.list_users()

    def add_allowed_user(self, username: str, note: Optional[str] = None) -> AllowedUser:
        """Add a username to the allowlist.

        Raises:
            AllowlistModeError: The policy is not persisted
            pydantic.ValidationError: The username is empty
            DuplicateRecordError: The username already exists
        """
        self._require_persisted_allowlist()
        user = self.allowed_users.add(AllowedUser(username=username, note=note))
        logger.info("allowed_user_added", username=user.username)
        return user

    def remove_allowed_user(self, username: str) -> None:
        self._require_persisted_allowlist()
        if not self.allowed_users.delete(username):
            raise RecordNotFoundError(f"username {username!r} is not allowlisted")
        logger.info("allowed_user_removed", username=username)

    def list_subscriptions(self) -> List[Subscription]:
        return self.subscriptions.list_subscriptions()

    def toggle_subscription(self, chat_id: int) -> Subscription:
        subscription = self.subscriptions.get(chat_id)
        if subscription is None:
            raise RecordNotFoundError(f"no subscription for chat {chat_id}")
        self.subscriptions.set_active(chat_id, not subscription.active)
        logger.info(
            "subscription_toggled", chat_id=chat_id, active=not subscription.active
        )
        return self.subscriptions.get(chat_id) or subscription

    def delete_subscription(self, chat_id: int) -> None:
        if not self.subscriptions.delete(chat_id):
            raise RecordNotFoundError(f"no subscription for chat {chat_id}")
        logger.info("subscription_deleted", chat_id=chat_id)

    def list_events(
        self,
        event_type: Optional[str] = None,
        action: Optional[str] = None,
        chat_id: Optional[int] = None,
        page: int = 1,
    ) -> EventPage:
        page = max(page, 1)
        event_type = event_type or None
        action = action or None
        total = self.event_log.count(event_type=event_type, action=action, chat_id=chat_id)
        events = self.event_log.recent(
            event_type=event_type,
            action=action,
            chat_id=chat_id,
            limit=PER_PAGE,
            offset=(page - 1) * PER_PAGE,
        )
        return EventPage(
            events=events,
            page=page,
            per_page=PER_PAGE,
            total_count=total,
            total_pages=math.ceil(total / PER_PAGE),
        )
