"""Game session records and join codes."""

from __future__ import annotations

import random
import secrets
from dataclasses import dataclass, replace
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from .config import GameConfig
from .enums import GameStatus

GameId = str

CODE_ALPHABET = "ABCDEFGHJKMNPQRSTUVWXYZ23456789"
CODE_LENGTH = 6


def generate_game_code(rng: Optional[random.Random] = None) -> str:
    """Return a six-character join code without look-alike characters (0 O 1 I L)."""

    if rng is None:
        return "".join(secrets.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))
    return "".join(rng.choice(CODE_ALPHABET) for _ in range(CODE_LENGTH))


def normalize_game_code(code: str) -> str:
    return code.strip().upper()


@dataclass(frozen=True, slots=True)
class Game:
    """A single party session."""

    game_id: GameId
    code: str
    theme: str
    status: GameStatus
    created_at: datetime
    config: GameConfig
    started_at: Optional[datetime] = None
    ended_at: Optional[datetime] = None

    @property
    def is_waiting(self) -> bool:
        return self.status is GameStatus.WAITING

    @property
    def is_active(self) -> bool:
        return self.status is GameStatus.ACTIVE

    def with_status(self, status: GameStatus, now: datetime) -> "Game":
        """Return a copy in ``status``, stamping start and end times."""

        started_at = self.started_at
        ended_at = self.ended_at
        if status is GameStatus.ACTIVE and started_at is None:
            started_at = now
        if status is GameStatus.ENDED:
            ended_at = now
        return replace(self, status=status, started_at=started_at, ended_at=ended_at)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.game_id,
            "code": self.code,
            "theme": self.theme,
            "status": self.status.value,
            "created_at": self.created_at.isoformat(),
            "started_at": self.started_at.isoformat() if self.started_at else None,
            "ended_at": self.ended_at.isoformat() if self.ended_at else None,
            "config": self.config.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Game":
        started = data.get("started_at")
        ended = data.get("ended_at")
        return cls(
            game_id=data["id"],
            code=data["code"],
            theme=data["theme"],
            status=GameStatus(data["status"]),
            created_at=datetime.fromisoformat(data["created_at"]),
            config=GameConfig.from_dict(data["config"]),
            started_at=datetime.fromisoformat(started) if started else None,
            ended_at=datetime.fromisoformat(ended) if ended else None,
        )
