"""Command descriptor contract.

Every command file exports a module-level ``command``: a mapping, or any
object exposing the same attributes. The export is validated against
CommandSpec and normalized into an immutable CommandDescriptor before it
is allowed into a registry.

Key classes:
    CommandSpec: Pydantic schema for a raw exported descriptor.
    CommandDescriptor: Frozen, normalized descriptor held by registries.
    Invocation: Parsed (command_name, args) pair for one message.

Constants:
    DEFAULT_USAGE: Placeholder used when a command declares no usage.
    EXPORT_NAME: Module attribute the loader reads descriptors from.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Protocol, Tuple, Union

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError

from ..exceptions import CommandValidationError

DEFAULT_USAGE = "No usage specified"
EXPORT_NAME = "command"

# Handler signature: (message, args, client) -> None | Awaitable[None]
CommandHandler = Callable[[Any, List[str], Any], Union[None, Awaitable[None]]]

# Button handler signature: (button, client) -> bool | Awaitable[bool]
ButtonHandler = Callable[[Any, Any], Union[bool, Awaitable[bool]]]

# Attribute names read from non-mapping exports
_CONTRACT_ATTRS = (
    "name", "description", "category", "usage",
    "cooldown", "cooldown_seconds", "aliases",
    "execute", "handler", "on_button_click", "button_handler",
)


class Message(Protocol):
    """What the dispatcher needs from an incoming chat message."""

    content: Optional[str]

    def reply(self, payload: Any) -> Any:
        ...


class CommandSpec(BaseModel):
    """Schema for a raw exported command descriptor."""

    model_config = ConfigDict(extra="ignore", arbitrary_types_allowed=True)

    name: str = Field(..., min_length=1, description="Primary registry key")
    description: Optional[str] = None
    category: Optional[str] = None
    usage: Optional[str] = None
    cooldown: Optional[float] = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("cooldown", "cooldown_seconds"),
    )
    aliases: Optional[List[str]] = None
    handler: Callable[..., Any] = Field(
        ..., validation_alias=AliasChoices("handler", "execute"),
    )
    button_handler: Optional[Callable[..., Any]] = Field(
        default=None,
        validation_alias=AliasChoices("button_handler", "on_button_click"),
    )


@dataclass(frozen=True)
class CommandDescriptor:
    """A registered command: metadata plus its handlers.

    Alias entries are shallow copies of the primary with ``aliased_from``
    set to the canonical name.
    """

    name: str
    handler: CommandHandler
    description: str = ""
    category: str = "General"
    usage: str = DEFAULT_USAGE
    cooldown_seconds: float = 0
    aliases: Tuple[str, ...] = ()
    button_handler: Optional[ButtonHandler] = None
    aliased_from: Optional[str] = None
    source: Optional[Path] = field(default=None, compare=False)

    @property
    def canonical_name(self) -> str:
        """Name of the primary command this entry belongs to."""
        return self.aliased_from or self.name

    @property
    def is_alias(self) -> bool:
        return self.aliased_from is not None


@dataclass(frozen=True)
class Invocation:
    """Parsed command name and argument list from one message."""

    command_name: str
    args: List[str] = field(default_factory=list)


def _export_to_dict(exported: Any) -> dict:
    """Read the contract attributes from a mapping or plain object."""
    if isinstance(exported, Mapping):
        return dict(exported)
    return {
        attr: getattr(exported, attr)
        for attr in _CONTRACT_ATTRS
        if hasattr(exported, attr)
    }


def build_descriptor(exported: Any, source: Optional[Path] = None) -> CommandDescriptor:
    """Validate an exported descriptor and fill in defaults.

    Args:
        exported: The module's ``command`` export.
        source: File the export came from. Its parent directory name is
            the default category.

    Returns:
        A normalized CommandDescriptor.

    Raises:
        CommandValidationError: If the export is missing, has no name,
            or has no callable handler.
    """
    if exported is None:
        raise CommandValidationError(
            f"no '{EXPORT_NAME}' export", source=source,
        )

    try:
        spec = CommandSpec.model_validate(_export_to_dict(exported))
    except ValidationError as e:
        fields = sorted({".".join(str(p) for p in err["loc"]) for err in e.errors()})
        raise CommandValidationError(
            "descriptor failed validation", source=source, fields=fields,
        ) from e

    default_category = source.parent.name if source is not None else "General"

    return CommandDescriptor(
        name=spec.name,
        handler=spec.handler,
        description=spec.description or "",
        category=spec.category or default_category,
        usage=spec.usage or DEFAULT_USAGE,
        cooldown_seconds=spec.cooldown or 0,
        aliases=tuple(spec.aliases or ()),
        button_handler=spec.button_handler,
        source=source,
    )
