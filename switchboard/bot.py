"""Bot lifecycle for switchboard.

Wires a chat client to the command runtime: loads commands when the
client reports ready, activates the dispatcher, starts status
rotation, and forwards message and button events.

Key classes:
    SwitchboardBot: Owns the dispatcher, cooldown tracker and status
        rotator for one client connection.
"""

import asyncio
from typing import Any, Optional

import structlog

from .command_loader import load_commands
from .commands.registry import CommandRegistry
from .config import Config, get_config
from .cooldown import CooldownTracker
from .dispatcher import Dispatcher, DispatcherState
from .status import StatusRotator

logger = structlog.get_logger("switchboard.bot")


class SwitchboardBot:
    """Chat bot driven by a client's ready/message/button events.

    Initialization is split in two phases: __init__ builds the
    dispatcher in the UNINITIALIZED state; on_ready() loads commands,
    activates it and starts background work.

    Args:
        client: Chat client. Needs ``user.id`` and, for status
            rotation, ``user.set_activity``. Receives the registry as
            ``client.commands`` once loaded.
        config: Config instance (default: global config).
        tracker: Cooldown tracker (default: a fresh tracker per bot).
    """

    def __init__(
        self,
        client: Any,
        config: Optional[Config] = None,
        tracker: Optional[CooldownTracker] = None,
    ):
        self.client = client
        self.config = config or get_config()
        self.tracker = tracker if tracker is not None else CooldownTracker()
        self.dispatcher = Dispatcher(
            client=client,
            prefix=self.config.prefix,
            tracker=self.tracker,
            error_reply=self.config.error_reply,
            cooldown_reply=self.config.cooldown_reply,
            enforce_cooldowns=self.config.enforce_cooldowns,
        )
        self.status: Optional[StatusRotator] = None
        self._prune_task: Optional[asyncio.Task] = None
        self.running = False

    @property
    def commands(self) -> Optional[CommandRegistry]:
        return self.dispatcher.registry

    async def on_ready(self):
        """Load commands and start serving.

        Raises:
            RegistryLoadError: If the commands directory is unreadable.
        """
        if self.dispatcher.state is DispatcherState.READY:
            logger.warning("bot_already_ready")
            return

        user = getattr(self.client, "user", None)
        logger.info(
            "bot_logged_in",
            user=getattr(user, "username", None),
            user_id=getattr(user, "id", None),
        )

        registry = load_commands(self.config.commands_dir)
        self.dispatcher.activate(registry)
        self.client.commands = registry

        set_activity = getattr(user, "set_activity", None)
        if set_activity is not None:
            self.status = StatusRotator(
                set_activity=set_activity,
                activities=self.config.status_activities,
                interval=self.config.status_interval,
            )
            await self.status.start()

        self._prune_task = asyncio.create_task(self._prune_loop())
        self.running = True
        logger.info("bot_started", commands=len(registry))

    async def _prune_loop(self):
        """Periodically drop expired cooldown windows."""
        interval = self.config.cooldown_prune_interval
        while True:
            try:
                await asyncio.sleep(interval)
                self.tracker.prune()
            except asyncio.CancelledError:
                break

    async def on_message(self, message: Any):
        """Forward a message event to the dispatcher."""
        await self.dispatcher.handle_message(message)

    async def on_button_click(self, button: Any) -> bool:
        """Forward a button click to the dispatcher."""
        return await self.dispatcher.handle_button_click(button)

    async def stop(self):
        """Stop background work. Safe to call more than once."""
        if not self.running:
            return
        self.running = False
        if self._prune_task and not self._prune_task.done():
            self._prune_task.cancel()
            try:
                await self._prune_task
            except asyncio.CancelledError:
                pass
        self._prune_task = None
        if self.status:
            await self.status.stop()
        logger.info("bot_stopped")
