"""Custom exception hierarchy for switchboard.

Provides precise error classification for the command runtime so that
load-time, dispatch-time and configuration failures can be told apart
in logs and handled at the right boundary.
"""

from enum import Enum
from pathlib import Path
from typing import Any, Optional


class ErrorCategory(str, Enum):
    """Classification of errors for escalation decisions."""
    TRANSIENT = "transient"          # May succeed on a later attempt
    PERMANENT = "permanent"          # Bad input, will not fix itself
    INFRASTRUCTURE = "infrastructure"  # Filesystem, env issues


class SwitchboardError(Exception):
    """Base exception for all switchboard errors.

    Attributes:
        message: Human-readable error description.
        category: Error classification.
        module: Originating module name (e.g. "command_loader").
        context: Arbitrary key-value pairs for structured logging.
    """

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.message = message
        self.category = category
        self.module = module
        self.context = context
        super().__init__(message)

    def __str__(self) -> str:
        parts = [self.message or self.__class__.__name__]
        if self.module:
            parts.append(f"[module={self.module}]")
        if self.context:
            ctx = ", ".join(f"{k}={v}" for k, v in self.context.items())
            parts.append(f"({ctx})")
        return " ".join(parts)

    def __repr__(self) -> str:
        cls = self.__class__.__name__
        return (
            f"{cls}({self.message!r}, category={self.category.value!r}, "
            f"module={self.module!r})"
        )


# ---------------------------------------------------------------------------
# Registry / loader exceptions
# ---------------------------------------------------------------------------

class RegistryLoadError(SwitchboardError):
    """The command directory could not be read.

    The only loader failure that propagates: startup should treat it
    as fatal.

    Attributes:
        path: Directory that could not be enumerated.
    """

    def __init__(
        self,
        message: str = "",
        *,
        path: Optional[Path] = None,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.path = path
        super().__init__(
            message, category=category, module=module or "command_loader", **context
        )


class CommandValidationError(SwitchboardError):
    """An exported command descriptor does not satisfy the contract.

    Attributes:
        source: File the descriptor came from (if known).
    """

    def __init__(
        self,
        message: str = "",
        *,
        source: Optional[Path] = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.source = source
        super().__init__(
            message, category=category, module=module or "commands.base", **context
        )


class RegistryFrozenError(SwitchboardError):
    """Attempted to register a command after the registry was frozen."""

    def __init__(
        self,
        message: str = "",
        *,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        super().__init__(
            message, category=category, module=module or "commands.registry", **context
        )


# ---------------------------------------------------------------------------
# Dispatch exceptions
# ---------------------------------------------------------------------------

class CommandExecutionError(SwitchboardError):
    """A command handler raised while processing an invocation.

    Never escapes the dispatcher; it exists to carry structured context
    into the log record.

    Attributes:
        command: Registry key the handler was resolved from.
    """

    def __init__(
        self,
        message: str = "",
        *,
        command: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.PERMANENT,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.command = command
        super().__init__(
            message, category=category, module=module or "dispatcher", **context
        )


# ---------------------------------------------------------------------------
# Configuration exceptions
# ---------------------------------------------------------------------------

class ConfigurationError(SwitchboardError):
    """Invalid or missing configuration.

    Defaults to INFRASTRUCTURE because config issues are environmental.
    """

    def __init__(
        self,
        message: str = "",
        *,
        setting_name: Optional[str] = None,
        category: ErrorCategory = ErrorCategory.INFRASTRUCTURE,
        module: Optional[str] = None,
        **context: Any,
    ) -> None:
        self.setting_name = setting_name
        super().__init__(
            message, category=category, module=module or "config", **context
        )
