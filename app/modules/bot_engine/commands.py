"""Inbound command handling.

The gateway receives bot commands (`/start`, `/stop`, `/help` and any command
the host registers), checks the sender against the allowlist, applies the
command and replies through the transport.

Example:
    gateway = engine.gateway

    @gateway.command("status", description="Show service status")
    def status(ctx: CommandContext) -> str:
        return f"All good, {ctx.sender.first_name}"

    gateway.handle_update(update)  # a Telegram update dict from the webhook
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Union

from infrastructure.logging import bind_request_context, get_module_logger
from modules.bot_engine.allowlist import AllowlistResolver
from modules.bot_engine.config import BotEngineConfig
from modules.bot_engine.delivery import Transport
from modules.bot_engine.event_log import EventLog
from modules.bot_engine.models import EventAction, EventType, Subscription
from modules.bot_engine.stores import SubscriptionStore

logger = get_module_logger()

BUILTIN_COMMANDS = ("start", "stop", "help")
UNSUBSCRIBED_MESSAGE = "You've been unsubscribed. Send /start to resubscribe."
HELP_HEADER = "📋 *Available Commands*"

WELCOME_PLACEHOLDER = re.compile(r"\{(username|commands)\}")
# Characters legacy Markdown treats as entity delimiters
MARKDOWN_SPECIAL = re.compile(r"([_*`\[])")


def render_welcome(template: str, username: str, commands: str) -> str:
    """Substitute `{username}` and `{commands}`; any other brace is literal."""
    values = {"username": username, "commands": commands}
    return WELCOME_PLACEHOLDER.sub(lambda match: values[match.group(1)], template)


def escape_markdown(text: str) -> str:
    return MARKDOWN_SPECIAL.sub(r"\\\1", text)


@dataclass(frozen=True)
class Sender:
    """The Telegram user who sent a command."""

    user_id: Optional[int] = None
    username: Optional[str] = None
    first_name: Optional[str] = None

    @classmethod
    def from_telegram(cls, data: Optional[Dict[str, Any]]) -> "Sender":
        data = data or {}
        return cls(
            user_id=data.get("id"),
            username=data.get("username"),
            first_name=data.get("first_name"),
        )

    @property
    def display_name(self) -> Optional[str]:
        return self.first_name or self.username


@dataclass(frozen=True)
class CommandContext:
    chat_id: int
    sender: Sender
    command: str
    args: List[str] = field(default_factory=list)
    text: str = ""


@dataclass(frozen=True)
class CommandReply:
    text: str
    options: Dict[str, Any] = field(default_factory=dict)


CommandResult = Union[str, CommandReply, None]
CommandHandler = Callable[[CommandContext], CommandResult]


@dataclass(frozen=True)
class RegisteredCommand:
    name: str
    handler: CommandHandler
    description: str = ""


class CommandRegistry:
    """Host-defined commands, kept in registration order."""

    def __init__(self) -> None:
        self._commands: Dict[str, RegisteredCommand] = {}

    def register(
        self, name: str, handler: CommandHandler, description: str = ""
    ) -> RegisteredCommand:
        name = normalize_command_name(name)
        if not name:
            raise ValueError("command name is required")
        if name in BUILTIN_COMMANDS:
            raise ValueError(f"/{name} is a built-in command")
        command = RegisteredCommand(name=name, handler=handler, description=description)
        self._commands[name] = command
        logger.debug("command_registered", command=name)
        return command

    def get(self, name: str) -> Optional[RegisteredCommand]:
        return self._commands.get(name)

    def names(self) -> List[str]:
        return list(self._commands)


def normalize_command_name(name: str) -> str:
    return name.strip().lstrip("/").split("@", 1)[0].lower()


def parse_command(text: Optional[str]) -> Optional[tuple[str, List[str]]]:
    """Split `/cmd@BotName arg1 arg2` into ("cmd", ["arg1", "arg2"]).

    Returns None for text that is not a command.
    """
    if not text or not text.startswith("/"):
        return None
    head, *args = text.split()
    name = normalize_command_name(head)
    if not name:
        return None
    return name, args


class CommandGateway:
    """Gates, applies and answers inbound commands.

    Args:
        config: Engine configuration (messages)
        authorizer: Allowlist resolver consulted before every command
        subscriptions: Subscription store mutated by start/stop
        event_log: Audit log
        registry: Host-defined commands
        transport: Used by handle_update to send replies
    """

    def __init__(
        self,
        config: BotEngineConfig,
        authorizer: AllowlistResolver,
        subscriptions: SubscriptionStore,
        event_log: EventLog,
        registry: Optional[CommandRegistry] = None,
        transport: Optional[Transport] = None,
    ) -> None:
        self.config = config
        self.authorizer = authorizer
        self.subscriptions = subscriptions
        self.event_log = event_log
        self.registry = registry or CommandRegistry()
        self.transport = transport

    def register_command(
        self, name: str, handler: CommandHandler, description: str = ""
    ) -> RegisteredCommand:
        return self.registry.register(name, handler, description)

    def command(self, name: str, description: str = "") -> Callable:
        """Decorator form of register_command."""

        def decorator(handler: CommandHandler) -> CommandHandler:
            self.register_command(name, handler, description)
            return handler

        return decorator

    def available_commands(self) -> List[str]:
        """Built-ins first, then registered commands; first occurrence wins."""
        names: List[str] = []
        for name in (*BUILTIN_COMMANDS, *self.registry.names()):
            if name not in names:
                names.append(name)
        return [f"/{name}" for name in names]

    def available_commands_text(self) -> str:
        return "\n".join(self.available_commands())

    def dispatch(
        self,
        chat_id: int,
        sender: Sender,
        command: str,
        args: Optional[List[str]] = None,
        text: str = "",
    ) -> Optional[CommandReply]:
        """Run one command for a sender and return the reply to send.

        The allowlist is checked before anything else. Returns None when the
        command is unknown or the handler has nothing to say.
        """
        command = normalize_command_name(command)

        if not self.authorizer.authorized(sender.username):
            logger.info("command_unauthorized", command=command)
            self.event_log.log(
                EventType.AUTH_FAILURE,
                EventAction.UNAUTHORIZED,
                chat_id=chat_id,
                username=sender.username,
                details={"command": command},
            )
            return CommandReply(self.config.unauthorized_message)

        match command:
            case "start":
                return self._start(chat_id, sender)
            case "stop":
                return self._stop(chat_id, sender)
            case "help":
                return self._help(chat_id, sender)

        registered = self.registry.get(command)
        if registered is None:
            logger.debug("command_unknown", command=command)
            return None

        ctx = CommandContext(
            chat_id=chat_id, sender=sender, command=command, args=args or [], text=text
        )
        result = registered.handler(ctx)
        if result is None:
            return None
        if isinstance(result, CommandReply):
            return result
        return CommandReply(str(result))

    def handle_update(self, update: Dict[str, Any]) -> Optional[CommandReply]:
        """Handle one Telegram update and send the reply, if any.

        Updates without a command message (edits, stickers, plain text) are
        ignored.
        """
        message = update.get("message") or {}
        parsed = parse_command(message.get("text"))
        chat_id = (message.get("chat") or {}).get("id")
        if parsed is None or chat_id is None:
            return None

        command, args = parsed
        sender = Sender.from_telegram(message.get("from"))

        with bind_request_context(
            correlation_id=f"update:{update.get('update_id', 'unknown')}",
            chat_id=chat_id,
            command=command,
        ):
            logger.info("command_received")
            reply = self.dispatch(chat_id, sender, command, args, message.get("text", ""))
            if reply is not None and self.transport is not None:
                self.transport.send_message(chat_id, reply.text, **reply.options)
            return reply

    def _start(self, chat_id: int, sender: Sender) -> CommandReply:
        existing = self.subscriptions.get(chat_id)
        if existing is None:
            subscription = Subscription(chat_id=chat_id)
        else:
            subscription = existing
        subscription = subscription.model_copy(
            update={
                "user_id": sender.user_id,
                "username": sender.username,
                "first_name": sender.first_name,
                "active": True,
            }
        )
        self.subscriptions.save(subscription)
        logger.info(
            "subscription_started", resubscribed=existing is not None
        )
        self.event_log.log(
            EventType.COMMAND, EventAction.START, chat_id=chat_id, username=sender.username
        )
        welcome = render_welcome(
            self.config.welcome_message,
            username=sender.display_name or "",
            commands=self.available_commands_text(),
        )
        return CommandReply(welcome)

    def _stop(self, chat_id: int, sender: Sender) -> CommandReply:
        deactivated = self.subscriptions.set_active(chat_id, False)
        logger.info("subscription_stopped", had_subscription=deactivated)
        self.event_log.log(
            EventType.COMMAND, EventAction.STOP, chat_id=chat_id, username=sender.username
        )
        return CommandReply(UNSUBSCRIBED_MESSAGE)

    def _help(self, chat_id: int, sender: Sender) -> CommandReply:
        self.event_log.log(
            EventType.COMMAND, EventAction.HELP, chat_id=chat_id, username=sender.username
        )
        return CommandReply(
            f"{HELP_HEADER}\n\n{escape_markdown(self.available_commands_text())}",
            {"parse_mode": "Markdown"},
        )
