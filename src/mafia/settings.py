"""Service-wide settings."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .catalog import CLASSIC_THEME, DEFAULT_ROLES_DIR
from .setup import DEFAULT_MAX_NAME_LENGTH

DEFAULT_MIN_PLAYERS = 7


@dataclass(frozen=True, slots=True)
class Settings:
    """Tunables shared by every game the service hosts."""

    database_path: Path = Path("data") / "mafia.db"
    roles_dir: Path = DEFAULT_ROLES_DIR
    min_players: int = DEFAULT_MIN_PLAYERS
    max_name_length: int = DEFAULT_MAX_NAME_LENGTH
    default_theme: str = CLASSIC_THEME
    random_seed: Optional[int] = None
    enhanced_logging: bool = False
    log_dir: Path = Path("logs")
