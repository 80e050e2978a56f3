"""Allowlist policies and resolver.

The allowlist decides whether a sender may use the bot's commands. It can be
configured four ways:

- OpenPolicy: everyone is authorized, including senders without a username
- FixedPolicy: a fixed set of usernames
- DynamicPolicy: a callback returning the current usernames, called on every
  check (never cached)
- PersistedPolicy: the AllowedUser records in the store, managed through the
  administrative surface

Usernames are compared case-insensitively under every policy. A value that is
none of the above fails closed.
"""

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, Optional, Union

from infrastructure.logging import get_module_logger

logger = get_module_logger()

PERSISTED = "database"


@dataclass(frozen=True)
class OpenPolicy:
    pass


@dataclass(frozen=True)
class FixedPolicy:
    usernames: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, usernames: Iterable[str]) -> "FixedPolicy":
        return cls(frozenset(usernames))


@dataclass(frozen=True)
class DynamicPolicy:
    resolver: Callable[[], Iterable[str]]


@dataclass(frozen=True)
class PersistedPolicy:
    pass


AllowlistPolicy = Union[OpenPolicy, FixedPolicy, DynamicPolicy, PersistedPolicy]


def policy_from_value(value: Any) -> Any:
    """Map a loosely typed allowlist value onto a policy.

    `None` is open, a list/set/tuple of usernames is fixed, a callable is
    dynamic and the string "database" is persisted. Policy instances are
    returned as is. Anything else is returned unchanged and is rejected by
    the resolver.
    """
    match value:
        case None:
            return OpenPolicy()
        case OpenPolicy() | FixedPolicy() | DynamicPolicy() | PersistedPolicy():
            return value
        case str() if value == PERSISTED:
            return PersistedPolicy()
        case list() | tuple() | set() | frozenset():
            return FixedPolicy.of(value)
        case _ if callable(value):
            return DynamicPolicy(value)
        case _:
            return value


def _contains(usernames: Iterable[str], username: Optional[str]) -> bool:
    if not username:
        return False
    wanted = username.lower()
    return any(str(name).lower() == wanted for name in usernames)


class AllowlistResolver:
    """Answers `authorized(username)` under the configured policy.

    Has no side effects; under the persisted policy it performs one read of
    the allowed usernames per check.
    """

    def __init__(self, policy: Any, allowed_users=None) -> None:
        self.policy = policy_from_value(policy)
        self._allowed_users = allowed_users

    def authorized(self, username: Optional[str]) -> bool:
        match self.policy:
            case OpenPolicy():
                return True
            case FixedPolicy(usernames=usernames):
                return _contains(usernames, username)
            case DynamicPolicy(resolver=resolver):
                return _contains(resolver() or (), username)
            case PersistedPolicy():
                if self._allowed_users is None:
                    logger.warning("allowlist_store_missing")
                    return False
                return _contains(self._allowed_users.list_usernames(), username)
            case _:
                logger.warning(
                    "allowlist_policy_unknown",
                    policy_type=type(self.policy).__name__,
                )
                return False
