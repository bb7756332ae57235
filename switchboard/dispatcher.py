"""Message and button-click routing for switchboard.

Parses prefixed chat messages into invocations, resolves them against
a frozen CommandRegistry and runs the matching handler. Every failure
raised by a handler is contained here: it is logged, the invoker gets
a generic reply, and the next event is processed normally.

Key classes:
    Dispatcher: Routes message and button events to descriptors.
    DispatcherState: UNINITIALIZED until a registry is activated.

Key functions:
    parse_invocation: Split prefixed text into name and arguments.
"""

import inspect
from enum import Enum
from typing import Any, Optional

import structlog

from .commands.base import CommandDescriptor, Invocation, Message
from .commands.registry import CommandRegistry
from .cooldown import CooldownTracker, get_cooldown_tracker
from .exceptions import CommandExecutionError

logger = structlog.get_logger("switchboard.dispatch")

DEFAULT_ERROR_REPLY = "❌ There was an error executing that command."
DEFAULT_COOLDOWN_REPLY = "⏳ Please wait {seconds}s before using {command} again."


class DispatcherState(str, Enum):
    """Lifecycle of a dispatcher."""
    UNINITIALIZED = "uninitialized"
    READY = "ready"


def parse_invocation(content: str, prefix: str) -> Optional[Invocation]:
    """Parse ``content`` into an Invocation if it carries ``prefix``.

    The prefix match is exact and case-sensitive. The command name is
    lowercased; arguments keep their case and order, split on runs of
    whitespace.

    Returns:
        The Invocation, or None if the prefix is absent or nothing
        follows it.
    """
    if not content.startswith(prefix):
        return None
    tokens = content[len(prefix):].split()
    if not tokens:
        return None
    return Invocation(command_name=tokens[0].lower(), args=tokens[1:])


def _user_id(obj: Any) -> Optional[str]:
    """Return ``obj.user.id`` as a string, or None if any part is missing."""
    user = getattr(obj, "user", None)
    user_id = getattr(user, "id", None)
    return None if user_id is None else str(user_id)


async def _call(fn, *args):
    """Call a sync or async callable and return its result."""
    result = fn(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


class Dispatcher:
    """Routes incoming events to registered command descriptors.

    Starts UNINITIALIZED (every event is a no-op) and becomes READY once
    activate() is given a registry. The registry is frozen on
    activation and never written again.

    Args:
        client: Client context passed through to every handler.
        prefix: Command prefix. None or empty disables dispatch with a
            logged error per message.
        tracker: Cooldown tracker (default: the global tracker).
        error_reply: Reply sent when a handler raises.
        cooldown_reply: Reply sent when a cooldown denies an invocation.
            Formatted with ``seconds`` and ``command``.
        enforce_cooldowns: Whether to consult the tracker before
            invoking commands that declare a cooldown.
    """

    def __init__(
        self,
        client: Any,
        prefix: Optional[str],
        tracker: Optional[CooldownTracker] = None,
        error_reply: str = DEFAULT_ERROR_REPLY,
        cooldown_reply: str = DEFAULT_COOLDOWN_REPLY,
        enforce_cooldowns: bool = True,
    ):
        self.client = client
        self.prefix = prefix
        self.tracker = tracker if tracker is not None else get_cooldown_tracker()
        self.error_reply = error_reply
        self.cooldown_reply = cooldown_reply
        self.enforce_cooldowns = enforce_cooldowns
        self._registry: Optional[CommandRegistry] = None

    @property
    def state(self) -> DispatcherState:
        if self._registry is None:
            return DispatcherState.UNINITIALIZED
        return DispatcherState.READY

    @property
    def registry(self) -> Optional[CommandRegistry]:
        return self._registry

    def activate(self, registry: CommandRegistry) -> None:
        """Freeze ``registry`` and start dispatching against it."""
        self._registry = registry.freeze()
        logger.info(
            "dispatcher_ready",
            commands=len(registry),
            prefix_configured=bool(self.prefix),
        )

    async def handle_message(self, message: Message) -> None:
        """Process one incoming message event to completion."""
        content = getattr(message, "content", None)
        if not content or not isinstance(content, str):
            return

        author_id = _user_id(message)
        bot_id = _user_id(self.client)
        # An author and client that both lack an id count as the same user
        if author_id == bot_id:
            return

        if self._registry is None:
            logger.debug("dispatch_before_ready")
            return

        if not self.prefix:
            logger.error("prefix_missing", hint="Set PREFIX in the environment or .env")
            return

        invocation = parse_invocation(content, self.prefix)
        if invocation is None:
            return

        descriptor = self._registry.get(invocation.command_name)
        if descriptor is None:
            logger.debug("command_unknown", command=invocation.command_name)
            return

        if (
            self.enforce_cooldowns
            and descriptor.cooldown_seconds
            and author_id is not None
        ):
            remaining = self.tracker.check(descriptor, author_id)
            if remaining > 0:
                await self._safe_reply(
                    message,
                    self._cooldown_message(remaining, invocation.command_name),
                    invocation.command_name,
                )
                return

        await self._invoke(descriptor, invocation, message, author_id)

    async def _invoke(
        self,
        descriptor: CommandDescriptor,
        invocation: Invocation,
        message: Message,
        author_id: Optional[str],
    ) -> None:
        logger.debug(
            "command_dispatch",
            command=invocation.command_name,
            canonical=descriptor.canonical_name,
            args=len(invocation.args),
        )
        try:
            await _call(descriptor.handler, message, invocation.args, self.client)
        except Exception as e:
            err = CommandExecutionError(
                str(e) or type(e).__name__,
                command=invocation.command_name,
                invoker=author_id,
            )
            logger.error(
                "command_execution_failed",
                command=err.command,
                canonical=descriptor.canonical_name,
                error=str(err),
                error_type=type(e).__name__,
                exc_info=e,
            )
            await self._safe_reply(message, self.error_reply, invocation.command_name)

    def _cooldown_message(self, seconds: int, command: str) -> str:
        """Render the cooldown reply, falling back to the default template."""
        try:
            return self.cooldown_reply.format(seconds=seconds, command=command)
        except (KeyError, IndexError, AttributeError, ValueError) as e:
            logger.error(
                "cooldown_reply_invalid",
                template=self.cooldown_reply,
                error=str(e),
                error_type=type(e).__name__,
            )
            return DEFAULT_COOLDOWN_REPLY.format(seconds=seconds, command=command)

    async def _safe_reply(self, message: Message, payload: Any, command: str) -> None:
        """Reply to ``message``, logging instead of raising on failure."""
        try:
            await _call(message.reply, payload)
        except Exception as e:
            logger.error(
                "reply_failed",
                command=command,
                error=str(e),
                error_type=type(e).__name__,
            )

    async def handle_button_click(self, button: Any) -> bool:
        """Offer a button click to each descriptor until one handles it.

        Every registry entry is tried in registry order, aliases
        included. A handler returning a truthy value stops the
        iteration; a handler that raises is logged and skipped.

        Returns:
            True if some button handler reported the click as handled.
        """
        if self._registry is None:
            logger.debug("button_before_ready")
            return False

        for key, descriptor in self._registry.items():
            if descriptor.button_handler is None:
                continue
            try:
                handled = await _call(descriptor.button_handler, button, self.client)
            except Exception as e:
                logger.error(
                    "button_handler_failed",
                    command=key,
                    canonical=descriptor.canonical_name,
                    error=str(e),
                    error_type=type(e).__name__,
                    exc_info=e,
                )
                continue
            if handled:
                logger.debug("button_handled", command=key)
                return True
        return False
