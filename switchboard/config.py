"""Configuration management for switchboard.

Loads YAML settings (settings.yaml) and environment variables (.env)
into a Config object. Environment variables take precedence for the
values a deployment usually injects (prefix, token, commands dir).
Property getters provide safe access with defaults for every
subsystem: dispatch, cooldowns, status rotation and logging.

Key classes:
    Config: Central configuration manager.

Key functions:
    get_config: Singleton accessor for the global Config instance.
"""

import os
from pathlib import Path
from typing import List, Optional

import structlog
import yaml
from dotenv import load_dotenv

from .dispatcher import DEFAULT_COOLDOWN_REPLY, DEFAULT_ERROR_REPLY
from .exceptions import ConfigurationError

logger = structlog.get_logger("switchboard.bot")

DEFAULT_STATUS_INTERVAL = 15
DEFAULT_PRUNE_INTERVAL = 300
DEFAULT_ACTIVITIES = [{"action": "Playing", "name": "Nerimity"}]


class Config:
    """Central configuration manager for switchboard.

    Loads settings.yaml and .env from the config directory. Read-only
    after __init__.

    Args:
        config_dir: Path to the config directory. Defaults to
            ``<repo_root>/config/``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            config_dir = Path(__file__).parent.parent / "config"
        self.config_dir = Path(config_dir)

        # .env next to settings first, then a project-level .env
        env_file = self.config_dir / ".env"
        if env_file.exists():
            load_dotenv(env_file)
        else:
            load_dotenv()

        self.settings = self._load_yaml("settings.yaml")

    def _load_yaml(self, filename: str) -> dict:
        """Load a YAML configuration file."""
        filepath = self.config_dir / filename
        if not filepath.exists():
            return {}
        with open(filepath, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigurationError(
                "settings file must contain a mapping",
                setting_name=filename,
                type=type(data).__name__,
            )
        return data

    def _section(self, name: str) -> dict:
        section = self.settings.get(name) or {}
        if not isinstance(section, dict):
            logger.error("config_section_invalid_type", section=name, type=type(section).__name__)
            return {}
        return section

    def _positive_number(self, section: str, key: str, default: float) -> float:
        """Read a positive number, falling back to ``default``."""
        val = self._section(section).get(key, default)
        try:
            val = float(val)
        except (ValueError, TypeError):
            logger.warning("config_invalid_number", key=f"{section}.{key}", value=val)
            return default
        return val if val > 0 else default

    def validate(self):
        """Validate critical settings at startup.

        Logs warnings/errors but does not raise -- a missing prefix
        leaves the bot connected with dispatch disabled.
        """
        if not self.prefix:
            logger.error("config_prefix_missing", msg="PREFIX is not set; commands will be ignored")
        if not self.bot_token:
            logger.warning("config_token_missing", msg="BOT_TOKEN is not set")
        if not self.commands_dir.is_dir():
            logger.error("config_commands_dir_missing", path=str(self.commands_dir))
        for section, key in (("status", "interval"), ("cooldowns", "prune_interval")):
            value = self._section(section).get(key)
            if value is not None and (not isinstance(value, (int, float)) or value <= 0):
                logger.error(
                    "config_invalid_value",
                    key=f"{section}.{key}",
                    value=value,
                    valid="> 0",
                )
        try:
            self.cooldown_reply.format(seconds=1, command="ping")
        except (KeyError, IndexError, AttributeError, ValueError) as e:
            logger.error(
                "config_invalid_value",
                key="replies.cooldown",
                value=self.cooldown_reply,
                valid="placeholders {seconds} and {command} only",
                error=str(e),
            )

    @property
    def prefix(self) -> Optional[str]:
        """Command prefix. Env var PREFIX takes precedence."""
        return os.environ.get("PREFIX") or self.settings.get("prefix") or None

    @property
    def bot_token(self) -> str:
        """Chat platform token (env BOT_TOKEN only)."""
        return os.environ.get("BOT_TOKEN", "")

    @property
    def commands_dir(self) -> Path:
        """Root directory scanned for command files."""
        configured = os.environ.get("COMMANDS_DIR") or self.settings.get("commands_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "commands"

    # Dispatch replies
    @property
    def error_reply(self) -> str:
        """Generic reply sent when a command handler fails."""
        return self._section("replies").get("error", DEFAULT_ERROR_REPLY)

    @property
    def cooldown_reply(self) -> str:
        """Reply template for a cooldown denial ({seconds}, {command})."""
        return self._section("replies").get("cooldown", DEFAULT_COOLDOWN_REPLY)

    @property
    def enforce_cooldowns(self) -> bool:
        """Whether the dispatcher applies command cooldowns (default True)."""
        return bool(self._section("cooldowns").get("enforce", True))

    @property
    def cooldown_prune_interval(self) -> float:
        """Seconds between sweeps of expired cooldown windows (default 300)."""
        return self._positive_number("cooldowns", "prune_interval", DEFAULT_PRUNE_INTERVAL)

    # Status rotation
    @property
    def status_interval(self) -> float:
        """Seconds between status changes (default 15)."""
        return self._positive_number("status", "interval", DEFAULT_STATUS_INTERVAL)

    @property
    def status_activities(self) -> List[dict]:
        """Activities cycled by the status rotator."""
        activities = self._section("status").get("activities")
        if activities is None:
            return [dict(a) for a in DEFAULT_ACTIVITIES]
        if not isinstance(activities, list):
            logger.error("status_activities_invalid_type", type=type(activities).__name__)
            return []
        return [a for a in activities if isinstance(a, dict)]

    # Logging
    @property
    def log_dir(self) -> Path:
        """Get log directory path."""
        configured = self.settings.get("log_dir")
        if configured:
            return Path(configured).expanduser()
        return Path(__file__).parent.parent / "logs"

    @property
    def logging_level(self) -> str:
        """Global log level (default INFO). Controls console and combined file."""
        return self._section("logging").get("level", "INFO")

    @property
    def logging_subsystem_levels(self) -> dict:
        """Per-subsystem log level overrides. E.g. {"dispatch": "DEBUG"}."""
        return self._section("logging").get("subsystem_levels", {})

    @property
    def logging_max_file_size_mb(self) -> int:
        """Max size per log file in MB before rotation (default 10)."""
        return self._section("logging").get("max_file_size_mb", 10)

    @property
    def logging_backup_count(self) -> int:
        """Number of rotated log files to keep (default 5)."""
        return self._section("logging").get("backup_count", 5)


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get or create the global config instance."""
    global _config
    if _config is None:
        _config = Config()
    return _config
