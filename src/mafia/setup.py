"""Card dealing and player registration helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence, Tuple

from .exceptions import ValidationError
from .players import Player
from .roles import RoleDefinition

DEFAULT_MAX_NAME_LENGTH = 20


@dataclass(frozen=True, slots=True)
class AssignmentResult:
    """Players after a deal, split into those holding a card and those waiting."""

    assigned: Tuple[Player, ...]
    waiting: Tuple[Player, ...] = ()

    @property
    def player_count(self) -> int:
        return len(self.assigned) + len(self.waiting)

    @property
    def roles_assigned(self) -> int:
        return len(self.assigned)

    @property
    def waiting_count(self) -> int:
        """Players still waiting for a card."""

        return len(self.waiting)


def normalize_player_name(name: object, *, max_length: int = DEFAULT_MAX_NAME_LENGTH) -> str:
    """Strip ``name`` and enforce the presence and length rules."""

    if not isinstance(name, str) or not name.strip():
        raise ValidationError("Name is required")
    cleaned = name.strip()
    if len(cleaned) > max_length:
        raise ValidationError(f"Name must be {max_length} characters or less")
    return cleaned


def assign_roles(players: Sequence[Player], pool: Sequence[RoleDefinition]) -> AssignmentResult:
    """Give ``pool[k]`` to the k-th player in join order.

    When the counts differ, only ``min(len(players), len(pool))`` players get a
    card; the rest are returned roleless in ``waiting``.
    """

    dealt = min(len(players), len(pool))
    assigned = tuple(player.with_role(pool[index]) for index, player in enumerate(players[:dealt]))
    waiting = tuple(player.with_role(None) for player in players[dealt:])
    return AssignmentResult(assigned=assigned, waiting=waiting)
