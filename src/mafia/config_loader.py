"""YAML settings file loader."""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigurationError
from .settings import Settings

KNOWN_KEYS = frozenset(
    {
        "database_path",
        "roles_dir",
        "min_players",
        "max_name_length",
        "default_theme",
        "random_seed",
        "enhanced_logging",
        "log_dir",
    }
)


def load_config_file(config_path: str | Path) -> Settings:
    """Load service settings from a YAML file.

    Relative paths inside the file are resolved against the file's directory.

    Args:
        config_path: Path to the YAML configuration file.

    Returns:
        Settings with every omitted key left at its default.

    Raises:
        ConfigurationError: If the file is invalid or a value has the wrong type.
        FileNotFoundError: If the config file doesn't exist.
    """
    path = Path(config_path)
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with path.open("r", encoding="utf-8") as f:
        try:
            data: Any = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML file: {exc}") from exc

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ConfigurationError("Config file must contain a YAML mapping")

    unknown = set(data) - KNOWN_KEYS
    if unknown:
        raise ConfigurationError(f"Unknown config keys: {', '.join(sorted(unknown))}")

    defaults = Settings()
    base_dir = path.parent

    min_players = data.get("min_players", defaults.min_players)
    if isinstance(min_players, bool) or not isinstance(min_players, int) or min_players < 1:
        raise ConfigurationError("'min_players' must be a positive integer")

    max_name_length = data.get("max_name_length", defaults.max_name_length)
    if (
        isinstance(max_name_length, bool)
        or not isinstance(max_name_length, int)
        or max_name_length < 1
    ):
        raise ConfigurationError("'max_name_length' must be a positive integer")

    default_theme = data.get("default_theme", defaults.default_theme)
    if not isinstance(default_theme, str) or not default_theme.strip():
        raise ConfigurationError("'default_theme' must be a non-empty string")

    random_seed = data.get("random_seed")
    if random_seed is not None and (
        isinstance(random_seed, bool) or not isinstance(random_seed, int)
    ):
        raise ConfigurationError("'random_seed' must be an integer")

    enhanced_logging = data.get("enhanced_logging", False)
    if not isinstance(enhanced_logging, bool):
        raise ConfigurationError("'enhanced_logging' must be true or false")

    return Settings(
        database_path=_path_setting(data, "database_path", defaults.database_path, base_dir),
        roles_dir=_path_setting(data, "roles_dir", defaults.roles_dir, base_dir),
        min_players=min_players,
        max_name_length=max_name_length,
        default_theme=default_theme.strip(),
        random_seed=random_seed,
        enhanced_logging=enhanced_logging,
        log_dir=_path_setting(data, "log_dir", defaults.log_dir, base_dir),
    )


def _path_setting(data: dict[str, Any], key: str, default: Path, base_dir: Path) -> Path:
    raw = data.get(key)
    if raw is None:
        return default
    if not isinstance(raw, str) or not raw.strip():
        raise ConfigurationError(f"'{key}' must be a path string")
    path = Path(raw).expanduser()
    return path if path.is_absolute() else base_dir / path
