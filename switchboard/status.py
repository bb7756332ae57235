"""Periodic bot status rotation."""

import asyncio
import inspect
from typing import Any, Callable, List, Mapping, Optional, Sequence, Union

import structlog

logger = structlog.get_logger("switchboard.bot")

# An activity provider returns the activity to show, e.g.
# {"action": "Playing", "name": "Nerimity"}; it may be async.
ActivityProvider = Callable[[], Any]


def _as_provider(activity: Union[Mapping, ActivityProvider]) -> ActivityProvider:
    if callable(activity):
        return activity
    snapshot = dict(activity)
    return lambda: dict(snapshot)


class StatusRotator:
    """Cycles the client's activity through a list of providers.

    Args:
        set_activity: Callable (sync or async) that applies an activity,
            typically ``client.user.set_activity``.
        activities: Static activity mappings or provider callables.
        interval: Seconds between changes.
    """

    def __init__(
        self,
        set_activity: Callable[[Any], Any],
        activities: Sequence[Union[Mapping, ActivityProvider]],
        interval: float = 15,
    ):
        self._set_activity = set_activity
        self._providers: List[ActivityProvider] = [_as_provider(a) for a in activities]
        self.interval = interval
        self._index = 0
        self._task: Optional[asyncio.Task] = None

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def rotate_once(self) -> bool:
        """Apply the next activity. Returns False if it failed."""
        if not self._providers:
            return False
        provider = self._providers[self._index % len(self._providers)]
        try:
            activity = provider()
            if inspect.isawaitable(activity):
                activity = await activity
            result = self._set_activity(activity)
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            logger.error("activity_update_failed", error=str(e), error_type=type(e).__name__)
            return False
        self._index += 1
        return True

    async def _loop(self):
        logger.info("status_rotation_started", interval=self.interval, activities=len(self._providers))
        while True:
            try:
                await self.rotate_once()
                await asyncio.sleep(self.interval)
            except asyncio.CancelledError:
                break

    async def start(self):
        """Start rotating in the background. No-op if already running."""
        if not self._providers:
            logger.info("status_rotation_disabled", reason="no activities")
            return
        if self.is_running:
            return
        self._task = asyncio.create_task(self._loop())

    async def stop(self):
        """Stop the rotation loop and wait for it to finish."""
        if self._task and not self._task.done():
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
        self._task = None
        logger.info("status_rotation_stopped")
