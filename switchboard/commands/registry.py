"""Name-to-descriptor lookup table.

A CommandRegistry is filled once at startup by the loader, then frozen
and handed to the dispatcher. Keys are primary names and aliases; a
later registration under an existing key replaces the earlier entry.
"""

from __future__ import annotations

from typing import Dict, Iterator, List, Optional, Tuple

import structlog

from ..exceptions import RegistryFrozenError
from .base import CommandDescriptor

logger = structlog.get_logger("switchboard.commands")


class CommandRegistry:
    """Maps command names (including aliases) to descriptors.

    Iteration order is registration order. Last registration wins on
    a name collision.
    """

    def __init__(self):
        self._commands: Dict[str, CommandDescriptor] = {}
        self._frozen = False

    def register(self, descriptor: CommandDescriptor, key: Optional[str] = None) -> None:
        """Insert a descriptor under ``key`` (defaults to its name).

        Raises:
            RegistryFrozenError: If the registry has been frozen.
        """
        if self._frozen:
            raise RegistryFrozenError(
                "registry is frozen", command=key or descriptor.name,
            )
        key = key or descriptor.name
        previous = self._commands.get(key)
        if previous is not None:
            logger.warning(
                "command_overridden",
                command=key,
                previous_source=str(previous.source) if previous.source else None,
                source=str(descriptor.source) if descriptor.source else None,
            )
        self._commands[key] = descriptor

    def freeze(self) -> "CommandRegistry":
        """Disallow further registration. Returns self for chaining."""
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def get(self, name: str) -> Optional[CommandDescriptor]:
        """Look up a descriptor by exact key."""
        return self._commands.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._commands

    def __len__(self) -> int:
        return len(self._commands)

    def __iter__(self) -> Iterator[str]:
        return iter(self._commands)

    def keys(self) -> List[str]:
        return list(self._commands.keys())

    def values(self) -> List[CommandDescriptor]:
        return list(self._commands.values())

    def items(self) -> List[Tuple[str, CommandDescriptor]]:
        return list(self._commands.items())

    def primaries(self) -> List[CommandDescriptor]:
        """Descriptors registered under their own name (no alias copies)."""
        return [d for d in self._commands.values() if not d.is_alias]

    @property
    def alias_count(self) -> int:
        return sum(1 for d in self._commands.values() if d.is_alias)

    def categories(self) -> Dict[str, List[str]]:
        """Group primary command names by category, in registration order."""
        grouped: Dict[str, List[str]] = {}
        for descriptor in self.primaries():
            grouped.setdefault(descriptor.category, []).append(descriptor.name)
        return grouped
