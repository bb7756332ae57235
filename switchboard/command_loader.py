"""Command discovery and registration.

Walks a command directory tree, imports every ``*.py`` file, validates
its ``command`` export and registers the result (plus one entry per
alias) into a fresh CommandRegistry.
"""

import dataclasses
import importlib.util
import sys
from pathlib import Path
from typing import Iterator, Union

import structlog

from .commands.base import EXPORT_NAME, build_descriptor
from .commands.registry import CommandRegistry
from .exceptions import CommandValidationError, RegistryLoadError

logger = structlog.get_logger("switchboard.commands")

# Package prefix for dynamically imported command modules
MODULE_PREFIX = "switchboard_commands"

COMMAND_SUFFIX = ".py"


def _iter_command_files(directory: Path) -> Iterator[Path]:
    """Yield candidate command files depth-first, in sorted name order."""
    try:
        entries = sorted(directory.iterdir(), key=lambda p: p.name)
    except OSError as e:
        raise RegistryLoadError(
            f"cannot read command directory: {e}", path=directory,
        ) from e

    for entry in entries:
        if entry.name.startswith("_"):
            continue
        if entry.is_dir():
            yield from _iter_command_files(entry)
        elif entry.is_file() and entry.suffix == COMMAND_SUFFIX:
            yield entry


def _module_name(root: Path, path: Path) -> str:
    rel = path.relative_to(root).with_suffix("")
    return ".".join((MODULE_PREFIX,) + rel.parts)


def _load_command_file(root: Path, path: Path, registry: CommandRegistry) -> None:
    """Import one command file and register its descriptor and aliases."""
    module_name = _module_name(root, path)
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise CommandValidationError("not an importable module", source=path)
    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise

    descriptor = build_descriptor(getattr(module, EXPORT_NAME, None), source=path)

    if descriptor.name != descriptor.name.lower():
        logger.warning(
            "command_name_not_lowercase",
            command=descriptor.name,
            path=str(path),
            hint="Dispatch lowercases lookups; this command is unreachable by name",
        )

    registry.register(descriptor)
    for alias in descriptor.aliases:
        registry.register(
            dataclasses.replace(descriptor, aliased_from=descriptor.name),
            key=alias,
        )

    logger.info(
        "command_loaded",
        command=descriptor.name,
        category=descriptor.category,
        aliases=list(descriptor.aliases),
        path=str(path),
    )


def log_summary(registry: CommandRegistry) -> None:
    """Log one grouped overview of what was loaded."""
    logger.info(
        "command_summary",
        categories=registry.categories(),
        aliases=registry.alias_count,
        total=len(registry),
    )


def load_commands(root: Union[str, Path]) -> CommandRegistry:
    """Load every command under ``root`` into a new registry.

    Per-file problems (import errors, including SystemExit raised at
    import time, missing export, invalid descriptor)
    are logged and the file is skipped. The registry is returned
    unfrozen so callers can extend it before activation.

    Args:
        root: Directory to walk.

    Returns:
        The populated CommandRegistry (possibly empty).

    Raises:
        RegistryLoadError: If ``root`` (or a directory beneath it)
            cannot be read.
    """
    root = Path(root)
    if not root.is_dir():
        raise RegistryLoadError("command directory does not exist", path=root)

    registry = CommandRegistry()

    for path in _iter_command_files(root):
        try:
            _load_command_file(root, path, registry)
        except CommandValidationError as e:
            logger.warning(
                "command_invalid",
                path=str(path),
                error=e.message,
                **e.context,
            )
        except (Exception, SystemExit) as e:
            logger.error(
                "command_load_failed",
                path=str(path),
                error=str(e),
                error_type=type(e).__name__,
            )

    log_summary(registry)
    return registry
