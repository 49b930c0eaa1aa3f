"""Structured event logging for Mafia game sessions."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Iterable, Mapping, Sequence, Tuple


class GameEventType(str, Enum):
    """Enumerates the events emitted by the game service."""

    GAME_CREATED = "game_created"
    PLAYER_JOINED = "player_joined"
    PLAYER_REMOVED = "player_removed"
    CARDS_ISSUED = "cards_issued"
    ROLE_ASSIGNED = "role_assigned"
    ROLES_REROLLED = "roles_rerolled"
    VOTE_CAST = "vote_cast"
    VOTES_CLEARED = "votes_cleared"
    TIE_DETECTED = "tie_detected"
    PLAYER_ELIMINATED = "player_eliminated"
    PLAYER_REVIVED = "player_revived"
    GAME_ENDED = "game_ended"


class EventVisibility(str, Enum):
    """Indicates who should have access to an event payload."""

    PUBLIC = "public"
    PRIVATE = "private"


@dataclass(frozen=True, slots=True)
class GameEvent:
    """Immutable event record captured during play."""

    timestamp: datetime
    type: GameEventType
    game_id: str
    payload: Mapping[str, Any] = field(default_factory=dict)
    visibility: EventVisibility = EventVisibility.PUBLIC
    audience: Tuple[str, ...] = field(default_factory=tuple)

    def to_dict(self) -> dict[str, Any]:
        """Convert the event into a JSON-serialisable dictionary."""

        return {
            "timestamp": self.timestamp.isoformat(),
            "type": self.type.value,
            "game_id": self.game_id,
            "payload": dict(self.payload),
            "visibility": self.visibility.value,
            "audience": list(self.audience),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "GameEvent":
        """Reconstruct an event from a dictionary produced by :meth:`to_dict`."""

        timestamp_str = data.get("timestamp")
        if not isinstance(timestamp_str, str):
            raise ValueError("Event timestamp must be a string")
        payload = data.get("payload") or {}
        if not isinstance(payload, Mapping):
            raise ValueError("Event payload must be a mapping")
        audience_raw = data.get("audience") or []
        if not isinstance(audience_raw, (list, tuple)):
            raise ValueError("Event audience must be a list or tuple")
        return cls(
            timestamp=datetime.fromisoformat(timestamp_str),
            type=GameEventType(data["type"]),
            game_id=str(data["game_id"]),
            payload=dict(payload),
            visibility=EventVisibility(data.get("visibility", EventVisibility.PUBLIC.value)),
            audience=tuple(str(item) for item in audience_raw),
        )


class EventLog:
    """Append-only in-memory log of :class:`GameEvent` instances."""

    def __init__(self, events: Sequence[GameEvent] | None = None) -> None:
        self._events: list[GameEvent] = list(events) if events else []

    def record(
        self,
        event_type: GameEventType,
        game_id: str,
        payload: Mapping[str, Any] | None = None,
        *,
        timestamp: datetime | None = None,
        visibility: EventVisibility | None = None,
        audience: Sequence[str] | None = None,
    ) -> GameEvent:
        """Append a new event to the log and return it."""

        event = GameEvent(
            timestamp=timestamp or datetime.now(timezone.utc),
            type=event_type,
            game_id=game_id,
            payload=dict(payload or {}),
            visibility=visibility or EventVisibility.PUBLIC,
            audience=tuple(audience or ()),
        )
        self._events.append(event)
        return event

    @property
    def events(self) -> tuple[GameEvent, ...]:
        """Return all events recorded so far."""

        return tuple(self._events)

    def to_jsonl(self) -> str:
        """Serialise the event log to newline-delimited JSON."""

        return "\n".join(
            json.dumps(event.to_dict(), separators=(",", ":")) for event in self._events
        )

    @classmethod
    def from_jsonl(cls, raw: str) -> "EventLog":
        """Create a log from newline-delimited JSON produced by :meth:`to_jsonl`."""

        lines = [line for line in raw.splitlines() if line.strip()]
        return cls([GameEvent.from_dict(json.loads(line)) for line in lines])

    @classmethod
    def from_events(cls, events: Iterable[GameEvent]) -> "EventLog":
        return cls(list(events))

    def query(
        self,
        *,
        game_id: str | None = None,
        audience_tags: Sequence[str] | None = None,
        include_public: bool = True,
        include_private: bool = False,
    ) -> tuple[GameEvent, ...]:
        """Return events filtered by game and audience visibility."""

        allowed_tags = set(audience_tags or ())
        matched: list[GameEvent] = []
        for event in self._events:
            if game_id is not None and event.game_id != game_id:
                continue
            if include_public and event.visibility is EventVisibility.PUBLIC:
                matched.append(event)
                continue
            if include_private:
                matched.append(event)
                continue
            if allowed_tags and any(tag in allowed_tags for tag in event.audience):
                matched.append(event)
        return tuple(matched)

    def public_events(self, game_id: str | None = None) -> tuple[GameEvent, ...]:
        """Return only public events."""

        return self.query(game_id=game_id)

    def events_for_game(self, game_id: str) -> tuple[GameEvent, ...]:
        """Return every event of ``game_id``, private ones included (game master view)."""

        return self.query(game_id=game_id, include_private=True)

    def events_for_player(
        self, player_id: str, *, game_id: str | None = None
    ) -> tuple[GameEvent, ...]:
        """Return public events plus private events addressed to ``player_id``."""

        return self.query(game_id=game_id, audience_tags=[player_audience_tag(player_id)])


def player_audience_tag(player_id: str) -> str:
    """Construct the audience tag for a specific player."""

    return f"player:{player_id}"


__all__ = [
    "EventLog",
    "EventVisibility",
    "GameEvent",
    "GameEventType",
    "player_audience_tag",
]
