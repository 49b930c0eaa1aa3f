"""Mafia party game companion package."""

from .catalog import RoleCatalog, get_role_catalog, list_available_themes, reset_role_catalog
from .config import GameConfig
from .enums import AbilityPhase, Alignment, EliminationOutcome, GameStatus
from .events import EventLog, EventVisibility, GameEvent, GameEventType, player_audience_tag
from .exceptions import (
    ConfigurationError,
    ConsistencyError,
    NotFoundError,
    RoleMergeWarning,
    StateConflictError,
    ValidationError,
)
from .game_state import Game, GameId, generate_game_code
from .merger import merge_role, merge_roles, role_distribution
from .persistence import GameSnapshot
from .players import Player, PlayerId
from .pool import generate_pool, shuffle_in_place
from .roles import (
    BaseRoleSet,
    RoleDefinition,
    RoleMapping,
    RoleOverrides,
    ThemeRoleSet,
    parse_base_role_set,
    parse_theme_role_set,
)
from .service import GameService
from .settings import Settings
from .setup import AssignmentResult, assign_roles
from .store import GameStore, InMemoryGameStore, SqliteGameStore
from .votes import EliminationResult, Vote, VoteLeader, VoteTally

__all__ = [
    "AbilityPhase",
    "Alignment",
    "AssignmentResult",
    "BaseRoleSet",
    "ConfigurationError",
    "ConsistencyError",
    "EliminationOutcome",
    "EliminationResult",
    "EventLog",
    "EventVisibility",
    "Game",
    "GameConfig",
    "GameEvent",
    "GameEventType",
    "GameId",
    "GameService",
    "GameSnapshot",
    "GameStatus",
    "GameStore",
    "InMemoryGameStore",
    "NotFoundError",
    "Player",
    "PlayerId",
    "RoleCatalog",
    "RoleDefinition",
    "RoleMapping",
    "RoleMergeWarning",
    "RoleOverrides",
    "Settings",
    "SqliteGameStore",
    "StateConflictError",
    "ThemeRoleSet",
    "ValidationError",
    "Vote",
    "VoteLeader",
    "VoteTally",
    "assign_roles",
    "generate_game_code",
    "generate_pool",
    "get_role_catalog",
    "list_available_themes",
    "merge_role",
    "merge_roles",
    "parse_base_role_set",
    "parse_theme_role_set",
    "player_audience_tag",
    "reset_role_catalog",
    "role_distribution",
    "shuffle_in_place",
]
