"""Player-related domain models."""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from .enums import Alignment
from .roles import RoleDefinition, RoleId

PlayerId = str


@dataclass(frozen=True, slots=True)
class Player:
    """Immutable snapshot of a participant's row."""

    player_id: PlayerId
    game_id: str
    name: str
    joined_at: datetime
    role: Optional[RoleDefinition] = None
    is_alive: bool = True

    def __post_init__(self) -> None:
        if not self.name:
            raise ValueError("name may not be empty")

    @property
    def role_id(self) -> Optional[RoleId]:
        return self.role.id if self.role is not None else None

    @property
    def has_role(self) -> bool:
        return self.role is not None

    @property
    def alignment(self) -> Optional[Alignment]:
        """Return the player's team alignment, if a role has been dealt."""

        return self.role.alignment if self.role is not None else None

    def with_role(self, role: Optional[RoleDefinition]) -> "Player":
        return replace(self, role=role)

    def eliminated(self) -> "Player":
        return replace(self, is_alive=False)

    def revived(self) -> "Player":
        return replace(self, is_alive=True)

    def to_public_dict(self) -> Dict[str, Any]:
        """Lobby view: never exposes the role."""

        return {
            "id": self.player_id,
            "name": self.name,
            "is_alive": self.is_alive,
            "has_role": self.has_role,
            "joined_at": self.joined_at.isoformat(),
        }

    def to_admin_dict(self) -> Dict[str, Any]:
        """Game master view including the full role card."""

        data = self.to_public_dict()
        data["role"] = self.role_id
        data["role_data"] = self.role.to_dict() if self.role is not None else None
        return data

    def to_roster_dict(self) -> Dict[str, Any]:
        """Player list view: roles are revealed only once a player is out."""

        data: Dict[str, Any] = {"id": self.player_id, "name": self.name, "is_alive": self.is_alive}
        if not self.is_alive:
            data["role"] = self.role_id
            data["role_data"] = self.role.to_dict() if self.role is not None else None
        return data

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.player_id,
            "game_id": self.game_id,
            "name": self.name,
            "joined_at": self.joined_at.isoformat(),
            "role": self.role.to_dict() if self.role is not None else None,
            "is_alive": self.is_alive,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Player":
        role_raw = data.get("role")
        return cls(
            player_id=data["id"],
            game_id=data["game_id"],
            name=data["name"],
            joined_at=datetime.fromisoformat(data["joined_at"]),
            role=RoleDefinition.from_dict(role_raw) if role_raw else None,
            is_alive=bool(data.get("is_alive", True)),
        )
