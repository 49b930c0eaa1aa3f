"""Loading and caching of role catalogs shipped as YAML files."""

from __future__ import annotations

import random
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigurationError, NotFoundError
from .merger import merge_roles, role_distribution
from .pool import generate_pool
from .roles import (
    BaseRoleSet,
    CatalogMetadata,
    Distribution,
    RoleDefinition,
    RoleId,
    ThemeRoleSet,
    parse_base_role_set,
    parse_theme_role_set,
)

CLASSIC_THEME = "classic"
BASE_RULES_DIR = "base-rules"
BASE_ROLES_STEM = "base-roles"
CATALOG_SUFFIXES = (".yaml", ".yml", ".json")
DEFAULT_ROLES_DIR = Path(__file__).parent / "data"


def load_base_roles(root: str | Path) -> BaseRoleSet:
    """Load ``base-rules/base-roles.yaml`` under ``root``."""

    path = _find_catalog_file(Path(root) / BASE_RULES_DIR, BASE_ROLES_STEM)
    if path is None:
        raise FileNotFoundError(f"Base role catalog not found under: {root}")
    return parse_base_role_set(_read_yaml(path))


def load_theme_roles(root: str | Path, theme_id: str) -> Optional[ThemeRoleSet]:
    """Load ``<theme>/<theme>-roles.yaml`` under ``root``, or ``None`` if absent."""

    path = _find_catalog_file(Path(root) / theme_id, f"{theme_id}-roles")
    if path is None:
        return None
    theme = parse_theme_role_set(_read_yaml(path))
    if theme.theme_id != theme_id:
        raise ConfigurationError(
            f"Theme file {path.name} declares theme_id '{theme.theme_id}', expected '{theme_id}'"
        )
    return theme


def list_available_themes(root: str | Path) -> Tuple[str, ...]:
    """Return ``classic`` followed by every theme directory holding a roles file."""

    base_dir = Path(root)
    themes: List[str] = []
    if base_dir.is_dir():
        for entry in sorted(base_dir.iterdir()):
            if not entry.is_dir() or entry.name == BASE_RULES_DIR or entry.name.startswith("."):
                continue
            if _find_catalog_file(entry, f"{entry.name}-roles") is not None:
                themes.append(entry.name)
    return (CLASSIC_THEME, *themes)


class RoleCatalog:
    """Read-only view over the base role set and its themes.

    Files are parsed at most once; the first caller loads them while holding a
    lock, later callers reuse the parsed values. Nothing cached here is mutated
    after it is stored.
    """

    def __init__(self, root: str | Path = DEFAULT_ROLES_DIR) -> None:
        self.root = Path(root)
        self._lock = threading.Lock()
        self._base: Optional[BaseRoleSet] = None
        self._themes: Dict[str, Optional[ThemeRoleSet]] = {}
        self._effective: Dict[str, Tuple[RoleDefinition, ...]] = {}
        self._available: Optional[Tuple[str, ...]] = None

    @property
    def base(self) -> BaseRoleSet:
        """Return the parsed base role set, loading it on first access."""

        base = self._base
        if base is None:
            with self._lock:
                if self._base is None:
                    self._base = load_base_roles(self.root)
                base = self._base
        return base

    def available_themes(self) -> Tuple[str, ...]:
        if self._available is None:
            with self._lock:
                if self._available is None:
                    self._available = list_available_themes(self.root)
        return self._available

    def theme(self, theme_id: str) -> Optional[ThemeRoleSet]:
        """Return the theme role set, ``None`` for classic; unknown themes raise."""

        if theme_id == CLASSIC_THEME:
            return None
        if theme_id not in self._themes:
            with self._lock:
                if theme_id not in self._themes:
                    self._themes[theme_id] = load_theme_roles(self.root, theme_id)
        theme = self._themes[theme_id]
        if theme is None:
            raise NotFoundError(f"Unknown theme: {theme_id}")
        return theme

    def roles_for_theme(self, theme_id: str = CLASSIC_THEME) -> Tuple[RoleDefinition, ...]:
        """Return the effective (merged) role catalog for ``theme_id``."""

        cached = self._effective.get(theme_id)
        if cached is not None:
            return cached
        base = self.base
        theme = self.theme(theme_id)
        with self._lock:
            if theme_id not in self._effective:
                self._effective[theme_id] = merge_roles(base, theme)
            return self._effective[theme_id]

    def role_by_id(
        self, role_id: RoleId, theme_id: str = CLASSIC_THEME
    ) -> Optional[RoleDefinition]:
        for role in self.roles_for_theme(theme_id):
            if role.id == role_id:
                return role
        return None

    def distribution_for_player_count(
        self, player_count: int, theme_id: str = CLASSIC_THEME
    ) -> Optional[Dict[RoleId, int]]:
        return role_distribution(player_count, self.base, self.theme(theme_id))

    def theme_metadata(self, theme_id: str = CLASSIC_THEME) -> CatalogMetadata:
        theme = self.theme(theme_id)
        return theme.metadata if theme is not None else self.base.metadata

    def death_messages(self, theme_id: str = CLASSIC_THEME) -> Tuple[str, ...]:
        """Elimination announcements for ``theme_id``.

        Unknown themes and themes that ship none use the classic messages.
        """

        if theme_id != CLASSIC_THEME and theme_id in self.available_themes():
            theme = self.theme(theme_id)
            if theme is not None and theme.death_messages:
                return theme.death_messages
        return self.base.death_messages

    def death_message(
        self, theme_id: str = CLASSIC_THEME, rng: Optional[random.Random] = None
    ) -> Optional[str]:
        messages = self.death_messages(theme_id)
        if not messages:
            return None
        return (rng or random).choice(messages)

    def generate_role_pool(
        self,
        distribution: Distribution,
        theme_id: str = CLASSIC_THEME,
        *,
        rng: Optional[random.Random] = None,
    ) -> List[RoleDefinition]:
        """Generate a shuffled role pool for ``distribution`` within ``theme_id``."""

        return generate_pool(
            distribution, self.roles_for_theme(theme_id), rng=rng, theme=theme_id
        )


_default_catalog: Optional[RoleCatalog] = None
_default_lock = threading.Lock()


def get_role_catalog() -> RoleCatalog:
    """Return the process-wide catalog over the bundled role data."""

    global _default_catalog
    if _default_catalog is None:
        with _default_lock:
            if _default_catalog is None:
                _default_catalog = RoleCatalog(DEFAULT_ROLES_DIR)
    return _default_catalog


def reset_role_catalog() -> None:
    """Drop the process-wide catalog. Intended for test harnesses."""

    global _default_catalog
    with _default_lock:
        _default_catalog = None


def _find_catalog_file(directory: Path, stem: str) -> Optional[Path]:
    for suffix in CATALOG_SUFFIXES:
        candidate = directory / f"{stem}{suffix}"
        if candidate.is_file():
            return candidate
    return None


def _read_yaml(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid catalog file {path}: {exc}") from exc
