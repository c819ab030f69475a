"""
Canonical configuration for the gridship bot client.

This module defines the connection, combat and logging settings used by
the client entrypoint. Values come from defaults, a YAML/JSON file or
GRIDSHIP_* environment variables.
"""

from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional
from urllib.parse import urlencode
import json
import logging
import os

import yaml

from tactics.core.constants import (
    DEFAULT_HEAT_LIMIT,
    DEFAULT_MAX_HEAT,
    DEFAULT_MAX_SHOT_MASS,
    DEFAULT_MAX_SHOT_SPEED,
)

# Connection defaults
DEFAULT_URI = "ws://localhost:8765"
DEFAULT_TOKEN = "dev"
DEFAULT_BOT_NAME = "gridship"

# Subtracted from half the tick length to leave room for the round trip
DEFAULT_SAFETY_MARGIN_MS = 50

DEFAULT_LOG_LEVEL = "INFO"

ENV_PREFIX = "GRIDSHIP_"


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(ENV_PREFIX + name)
    if value is None:
        return default
    return value.lower() in ("1", "true", "yes")


def parse_level(level) -> int:
    """Convert a level name such as "debug" (or an int) to a logging level."""
    if isinstance(level, int):
        return level
    value = logging.getLevelName(str(level).upper())
    if not isinstance(value, int):
        raise ValueError(f"Unknown log level: {level}")
    return value


@dataclass
class LoggingConfig:
    """Logging sink settings."""
    level: str = DEFAULT_LOG_LEVEL
    tactics_level: Optional[str] = None  # defaults to `level`
    log_file: Optional[str] = None
    log_to_console: bool = True


@dataclass
class ClientConfig:
    """
    Client configuration container.

    Provides a single source of truth for all client settings.
    Can be constructed from CLI args, environment, or config file.
    """

    # Connection settings
    uri: str = DEFAULT_URI
    token: str = DEFAULT_TOKEN
    bot_name: str = DEFAULT_BOT_NAME

    # Tick deadline
    safety_margin_ms: int = DEFAULT_SAFETY_MARGIN_MS

    # Combat settings
    max_heat: int = DEFAULT_MAX_HEAT
    heat_limit: int = DEFAULT_HEAT_LIMIT
    max_shot_speed: int = DEFAULT_MAX_SHOT_SPEED
    max_shot_mass: int = DEFAULT_MAX_SHOT_MASS

    logging: LoggingConfig = field(default_factory=LoggingConfig)

    @property
    def own_ship_id(self) -> str:
        """Entity id the server assigns to our ship."""
        return f"ship:{self.token}:{self.bot_name}"

    def connection_uri(self) -> str:
        """Server URI with the credentials in the query string."""
        separator = "&" if "?" in self.uri else "?"
        return f"{self.uri}{separator}{urlencode({'token': self.token, 'botName': self.bot_name})}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        """
        Create config from a dictionary, ignoring unknown keys.

        Args:
            data: Settings; camelCase ``botName`` is accepted as ``bot_name``
                and a nested ``logging`` mapping fills LoggingConfig

        Returns:
            ClientConfig
        """
        data = dict(data or {})
        if "botName" in data:
            data.setdefault("bot_name", data.pop("botName"))
        logging_data = data.pop("logging", None) or {}

        known = {f.name for f in fields(cls)} - {"logging"}
        kwargs = {k: v for k, v in data.items() if k in known}
        known_logging = {f.name for f in fields(LoggingConfig)}
        logging_config = LoggingConfig(**{k: v for k, v in logging_data.items() if k in known_logging})
        return cls(logging=logging_config, **kwargs)

    @classmethod
    def from_file(cls, path: str) -> "ClientConfig":
        """
        Load config from a YAML or JSON file.

        Args:
            path: Path to a .yaml, .yml or .json file

        Returns:
            ClientConfig

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file format is unsupported
        """
        if not os.path.exists(path):
            raise FileNotFoundError(f"Config file not found: {path}")

        _, ext = os.path.splitext(path)
        with open(path, "r") as f:
            if ext.lower() in (".yaml", ".yml"):
                data = yaml.safe_load(f)
            elif ext.lower() == ".json":
                data = json.load(f)
            else:
                raise ValueError(f"Unsupported file format: {ext}")
        return cls.from_dict(data or {})

    @classmethod
    def from_env(cls) -> "ClientConfig":
        """Create config from environment variables."""
        return cls(
            uri=os.environ.get(ENV_PREFIX + "URI", DEFAULT_URI),
            token=os.environ.get(ENV_PREFIX + "TOKEN", DEFAULT_TOKEN),
            bot_name=os.environ.get(ENV_PREFIX + "BOT_NAME", DEFAULT_BOT_NAME),
            safety_margin_ms=int(os.environ.get(ENV_PREFIX + "SAFETY_MARGIN_MS", DEFAULT_SAFETY_MARGIN_MS)),
            max_heat=int(os.environ.get(ENV_PREFIX + "MAX_HEAT", DEFAULT_MAX_HEAT)),
            heat_limit=int(os.environ.get(ENV_PREFIX + "HEAT_LIMIT", DEFAULT_HEAT_LIMIT)),
            logging=LoggingConfig(
                level=os.environ.get(ENV_PREFIX + "LOG_LEVEL", DEFAULT_LOG_LEVEL),
                tactics_level=os.environ.get(ENV_PREFIX + "AI_LOG_LEVEL"),
                log_file=os.environ.get(ENV_PREFIX + "LOG_FILE"),
                log_to_console=_env_flag("LOG_CONSOLE", True),
            ),
        )
