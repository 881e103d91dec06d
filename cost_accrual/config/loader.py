"""
Configuration management and loading.

Handles application settings from a YAML file.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from cost_accrual.observability.logger import LOG_LEVELS
from cost_accrual.storage.db import DEFAULT_DB_PATH


@dataclass(frozen=True)
class StorageConfig:
    """Where fixed costs are stored."""
    db_path: str = DEFAULT_DB_PATH

    def __post_init__(self):
        """Validate the database path."""
        if not self.db_path or not self.db_path.strip():
            raise ValueError("storage.db_path cannot be empty")


@dataclass(frozen=True)
class SessionConfig:
    """Identity the CLI acts as when --user is not given."""
    user_id: Optional[str] = None


@dataclass(frozen=True)
class DisplayConfig:
    """Output formatting."""
    currency_symbol: str = "$"


@dataclass(frozen=True)
class LoggingConfig:
    """Log level and renderer."""
    level: str = "warning"
    json: bool = False

    def __post_init__(self):
        """Validate the log level."""
        if self.level not in LOG_LEVELS:
            raise ValueError(f"logging.level must be one of: {sorted(LOG_LEVELS)}")


@dataclass(frozen=True)
class AppConfig:
    """Complete application configuration."""
    storage: StorageConfig = field(default_factory=StorageConfig)
    session: SessionConfig = field(default_factory=SessionConfig)
    display: DisplayConfig = field(default_factory=DisplayConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


_SECTION_KEYS = {
    "storage": {"db_path"},
    "session": {"user_id"},
    "display": {"currency_symbol"},
    "logging": {"level", "json"},
}


def default_config() -> AppConfig:
    """Configuration used when no file is given."""
    return AppConfig()


def load_config(path: str) -> AppConfig:
    """Load and validate application configuration from a YAML file.

    Every section is optional, but unknown sections or keys are rejected so
    a typo never silently falls back to a default.

    Args:
        path: Path to YAML configuration file

    Returns:
        Validated AppConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if raw_config is None:
        return default_config()
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a mapping")

    unknown_keys = set(raw_config.keys()) - set(_SECTION_KEYS)
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    sections = {
        name: _section(raw_config, name)
        for name in _SECTION_KEYS
    }

    storage_data = sections["storage"]
    db_path = storage_data.get("db_path", DEFAULT_DB_PATH)
    if not isinstance(db_path, str):
        raise ValueError("'storage.db_path' must be a string")

    session_data = sections["session"]
    user_id = session_data.get("user_id")
    if user_id is not None and not isinstance(user_id, (str, int)):
        raise ValueError("'session.user_id' must be a string")

    display_data = sections["display"]
    currency_symbol = display_data.get("currency_symbol", "$")
    if not isinstance(currency_symbol, str):
        raise ValueError("'display.currency_symbol' must be a string")

    logging_data = sections["logging"]
    level = logging_data.get("level", "warning")
    if not isinstance(level, str):
        raise ValueError("'logging.level' must be a string")
    json_output = logging_data.get("json", False)
    if not isinstance(json_output, bool):
        raise ValueError("'logging.json' must be a boolean")

    return AppConfig(
        storage=StorageConfig(db_path=db_path),
        session=SessionConfig(user_id=str(user_id) if user_id is not None else None),
        display=DisplayConfig(currency_symbol=currency_symbol),
        logging=LoggingConfig(level=level.lower(), json=json_output),
    )


def _section(raw_config: Dict[str, Any], name: str) -> Dict[str, Any]:
    """Extract and validate one optional configuration section.

    Args:
        raw_config: Parsed YAML document
        name: Section name

    Returns:
        Section mapping (empty if absent)

    Raises:
        ValueError: If the section is not a mapping or has unknown keys
    """
    data = raw_config.get(name)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValueError(f"'{name}' must be a dictionary")

    unknown_keys = set(data.keys()) - _SECTION_KEYS[name]
    if unknown_keys:
        raise ValueError(f"Unknown keys in {name}: {unknown_keys}")
    return data
