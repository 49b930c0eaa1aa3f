"""Per-game configuration models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Mapping

from .exceptions import ValidationError
from .pool import validate_distribution
from .roles import RoleId


@dataclass(frozen=True, slots=True)
class GameConfig:
    """Role distribution and seat count chosen when the game was created."""

    role_distribution: Mapping[RoleId, int]
    player_count: int
    theme: str
    enable_voting: bool = True
    _total_roles: int = field(init=False, repr=False, compare=False, default=0)

    def __post_init__(self) -> None:
        if isinstance(self.player_count, bool) or not isinstance(self.player_count, int):
            raise ValidationError("player_count must be an integer")
        if self.player_count < 1:
            raise ValidationError("player_count must be positive")
        validate_distribution(self.role_distribution)
        object.__setattr__(self, "role_distribution", dict(self.role_distribution))
        object.__setattr__(self, "_total_roles", sum(self.role_distribution.values()))

    @property
    def total_roles(self) -> int:
        """Number of role cards the distribution produces."""

        return self._total_roles

    def to_dict(self) -> Dict[str, Any]:
        return {
            "role_distribution": dict(self.role_distribution),
            "player_count": self.player_count,
            "theme": self.theme,
            "enable_voting": self.enable_voting,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameConfig":
        return cls(
            role_distribution=dict(data["role_distribution"]),
            player_count=data["player_count"],
            theme=data["theme"],
            enable_voting=data.get("enable_voting", True),
        )
