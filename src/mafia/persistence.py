"""Recap export: saving and restoring a whole game as JSON."""

from __future__ import annotations

import json
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Mapping, Optional

from .events import EventLog, GameEvent
from .exceptions import NotFoundError
from .game_state import Game, GameId
from .players import Player
from .store import GameStore
from .votes import Vote


@dataclass(frozen=True, slots=True)
class GameSnapshot:
    """Structured representation of a game's rows suitable for persistence."""

    payload: dict[str, Any]

    def to_json(self, *, indent: int = 2) -> str:
        """Serialise the snapshot to JSON."""

        return json.dumps(self.payload, indent=indent, ensure_ascii=False)

    def to_dict(self) -> dict[str, Any]:
        """Return a deep copy of the underlying payload."""

        return json.loads(json.dumps(self.payload))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameSnapshot":
        return cls(payload=dict(data))

    @classmethod
    def capture(
        cls,
        store: GameStore,
        game_id: GameId,
        event_log: Optional[EventLog] = None,
    ) -> "GameSnapshot":
        """Capture the game, its players, live votes and events."""

        game = store.get_game(game_id)
        if game is None:
            raise NotFoundError(f"Game not found: {game_id}")
        events = event_log.events_for_game(game_id) if event_log is not None else ()
        return cls(
            payload={
                "game": game.to_dict(),
                "players": [player.to_dict() for player in store.players_for_game(game_id)],
                "votes": [_vote_to_dict(vote) for vote in store.votes_for_game(game_id)],
                "events": [event.to_dict() for event in events],
            }
        )

    @property
    def game(self) -> Game:
        return Game.from_dict(self.payload["game"])

    @property
    def players(self) -> tuple[Player, ...]:
        return tuple(Player.from_dict(raw) for raw in self.payload.get("players", []))

    @property
    def votes(self) -> tuple[Vote, ...]:
        return tuple(_dict_to_vote(raw) for raw in self.payload.get("votes", []))

    def event_log(self) -> EventLog:
        """Rebuild the captured events as a fresh :class:`EventLog`."""

        return EventLog.from_events(
            GameEvent.from_dict(raw) for raw in self.payload.get("events", [])
        )

    def restore(self, store: GameStore) -> Game:
        """Write the captured rows into ``store`` and return the game."""

        game = self.game
        store.add_game(game)
        for player in self.players:
            store.add_player(player)
        for vote in self.votes:
            store.add_vote(vote)
        return game

    def save(self, path: str | Path, *, indent: int = 2) -> None:
        """Persist the snapshot to disk as JSON."""

        Path(path).write_text(self.to_json(indent=indent), encoding="utf-8")

    @classmethod
    def load(cls, path: str | Path) -> "GameSnapshot":
        """Load a snapshot from disk."""

        data = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls.from_dict(data)


def _vote_to_dict(vote: Vote) -> dict[str, Any]:
    return {
        "id": vote.vote_id,
        "game_id": vote.game_id,
        "voter_id": vote.voter_id,
        "target_id": vote.target_id,
        "cast_at": vote.cast_at.isoformat(),
    }


def _dict_to_vote(data: Mapping[str, Any]) -> Vote:
    return Vote(
        vote_id=data["id"],
        game_id=data["game_id"],
        voter_id=data["voter_id"],
        target_id=data["target_id"],
        cast_at=datetime.fromisoformat(data["cast_at"]),
    )


__all__ = ["GameSnapshot"]
