"""Logging setup for switchboard.

Every module logs through structlog under a ``switchboard.<subsystem>``
name. setup_logging() renders all events to stderr and routes them to
rotating files in the log directory:

    switchboard.log   every event
    bot.log           lifecycle, config, status rotation, console client
    commands.log      command discovery and validation
    dispatch.log      message and button routing
    cooldown.log      cooldown denials and pruning

It runs twice: with defaults before the configuration is read, then
with the loaded Config (which also turns on logger caching).
"""

import logging
import logging.handlers
import os
import re
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import structlog

LOGGER_PREFIX = "switchboard"

SUBSYSTEMS: Dict[str, str] = {
    "bot": "lifecycle, config, status rotation, console client",
    "commands": "command discovery and validation",
    "dispatch": "message and button routing",
    "cooldown": "cooldown denials and pruning",
}

REDACTED = "***REDACTED***"

# Event keys whose values never reach a handler
_SECRET_KEYS = frozenset({"token", "bot_token", "authorization", "password"})

_BEARER_PATTERN = re.compile(r"Bearer\s+[\w./-]{20,}")

# Shorter BOT_TOKEN values would redact ordinary words
_MIN_TOKEN_LENGTH = 8


def _redact(value: Any, token: str) -> Any:
    if isinstance(value, str):
        if token:
            value = value.replace(token, REDACTED)
        return _BEARER_PATTERN.sub(REDACTED, value)
    if isinstance(value, Mapping):
        return {
            k: REDACTED if str(k).lower() in _SECRET_KEYS else _redact(v, token)
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return type(value)(_redact(v, token) for v in value)
    return value


def sanitize_secrets(
    logger: Any, method_name: str, event_dict: Dict[str, Any]
) -> Dict[str, Any]:
    """structlog processor that keeps the bot token out of log output.

    Masks values stored under secret-looking keys, every occurrence of
    the configured BOT_TOKEN, and bearer tokens, at any nesting depth.
    """
    token = os.environ.get("BOT_TOKEN", "")
    if len(token) < _MIN_TOKEN_LENGTH:
        token = ""
    return _redact(event_dict, token)


def resolve_level(name: Any, default: int = logging.INFO) -> int:
    """Map a level name such as ``"debug"`` to its logging constant."""
    level = logging.getLevelName(str(name).upper())
    return level if isinstance(level, int) else default


@dataclass
class LogSettings:
    """Where and how verbosely to log."""

    log_dir: Path = Path(__file__).parent.parent / "logs"
    level: int = logging.INFO
    subsystem_levels: Dict[str, int] = field(default_factory=dict)
    max_bytes: int = 10 * 1024 * 1024
    backup_count: int = 5

    @classmethod
    def from_config(cls, config) -> "LogSettings":
        level = resolve_level(config.logging_level)
        overrides = config.logging_subsystem_levels or {}
        return cls(
            log_dir=config.log_dir,
            level=level,
            subsystem_levels={
                name: resolve_level(value, level)
                for name, value in overrides.items()
                if name in SUBSYSTEMS
            },
            max_bytes=int(config.logging_max_file_size_mb) * 1024 * 1024,
            backup_count=int(config.logging_backup_count),
        )

    def level_for(self, subsystem: str) -> int:
        return self.subsystem_levels.get(subsystem, self.level)


_SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    sanitize_secrets,
]


def _formatter(colors: bool) -> structlog.stdlib.ProcessorFormatter:
    return structlog.stdlib.ProcessorFormatter(
        foreign_pre_chain=_SHARED_PROCESSORS,
        processors=[
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.dev.ConsoleRenderer(colors=colors),
        ],
    )


def _reset(logger: logging.Logger, level: int) -> None:
    logger.setLevel(level)
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()


def _file_handler(
    path: Path, level: int, settings: LogSettings, formatter: logging.Formatter
) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=settings.max_bytes,
        backupCount=settings.backup_count,
        encoding="utf-8",
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    return handler


def setup_logging(config=None) -> None:
    """Configure structlog and the stdlib handlers behind it.

    Args:
        config: Loaded Config. Without it, defaults are used and
            loggers are not cached, so a second call can still
            reconfigure loggers that modules already hold.
    """
    settings = LogSettings.from_config(config) if config is not None else LogSettings()

    root = logging.getLogger()
    _reset(root, logging.DEBUG)
    console = logging.StreamHandler(sys.stderr)
    console.setLevel(settings.level)
    console.setFormatter(_formatter(colors=sys.stderr.isatty()))
    root.addHandler(console)

    log_dir_error: Optional[OSError] = None
    try:
        settings.log_dir.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        log_dir_error = e
    file_formatter = _formatter(colors=False)

    combined = logging.getLogger(LOGGER_PREFIX)
    _reset(combined, logging.DEBUG)
    if log_dir_error is None:
        combined.addHandler(_file_handler(
            settings.log_dir / f"{LOGGER_PREFIX}.log", settings.level, settings, file_formatter,
        ))

    for subsystem in SUBSYSTEMS:
        level = settings.level_for(subsystem)
        sub_logger = logging.getLogger(f"{LOGGER_PREFIX}.{subsystem}")
        _reset(sub_logger, level)
        if log_dir_error is None:
            sub_logger.addHandler(_file_handler(
                settings.log_dir / f"{subsystem}.log", level, settings, file_formatter,
            ))

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.UnicodeDecoder(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=config is not None,
    )

    if log_dir_error is not None:
        structlog.get_logger(f"{LOGGER_PREFIX}.bot").warning(
            "log_dir_unavailable",
            path=str(settings.log_dir),
            error=str(log_dir_error),
            fallback="console only",
        )
