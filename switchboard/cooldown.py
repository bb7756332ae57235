"""Per-command, per-invoker cooldown tracking for switchboard.

Keeps the expiry map outside the command descriptors so that
descriptors stay immutable. Entries are keyed by the command's
canonical name, so a command and its aliases share one window.
"""

import math
import threading
import time
from typing import Callable, Dict, Optional, Tuple

import structlog

from .commands.base import CommandDescriptor

logger = structlog.get_logger("switchboard.cooldown")

# (canonical command name, invoker id)
CooldownKey = Tuple[str, str]


class CooldownTracker:
    """Grants at most one cooldown window per invoker per command.

    Expiries are stored as epoch milliseconds. Check-and-set happens
    under a lock so the guarantee holds with real threads too.

    Args:
        clock: Returns the current time in seconds (default time.time).
    """

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._expiries: Dict[CooldownKey, float] = {}
        self._lock = threading.Lock()

    def _now_ms(self) -> float:
        return self._clock() * 1000

    def check(self, descriptor: CommandDescriptor, invoker_id: str) -> int:
        """Apply the cooldown for one invocation attempt.

        Returns:
            0 if the invocation is allowed (a new window is started when
            the command has a cooldown), otherwise the whole seconds left
            in the current window. A denied attempt does not extend the
            window.
        """
        if not descriptor.cooldown_seconds:
            return 0

        key = (descriptor.canonical_name, str(invoker_id))
        with self._lock:
            now = self._now_ms()
            expires = self._expiries.get(key)
            if expires is not None and now < expires:
                remaining = math.ceil((expires - now) / 1000)
                logger.debug(
                    "cooldown_denied",
                    command=key[0],
                    invoker=key[1],
                    remaining_seconds=remaining,
                )
                return remaining

            self._expiries[key] = now + descriptor.cooldown_seconds * 1000
            return 0

    def prune(self) -> int:
        """Drop expired entries. Returns the number removed."""
        with self._lock:
            now = self._now_ms()
            expired = [k for k, exp in self._expiries.items() if exp <= now]
            for k in expired:
                del self._expiries[k]
        if expired:
            logger.debug("cooldown_pruned", removed=len(expired))
        return len(expired)

    def __len__(self) -> int:
        return len(self._expiries)


# Global singleton
_tracker: Optional[CooldownTracker] = None


def get_cooldown_tracker() -> CooldownTracker:
    """Get or create the global CooldownTracker instance."""
    global _tracker
    if _tracker is None:
        _tracker = CooldownTracker()
    return _tracker


def check_cooldown(descriptor: CommandDescriptor, invoker_id: str) -> int:
    """Check and apply a cooldown using the global tracker."""
    return get_cooldown_tracker().check(descriptor, invoker_id)
