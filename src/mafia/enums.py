"""Enumerations for Mafia game entities."""

from __future__ import annotations

from enum import Enum


class Alignment(str, Enum):
    """Team alignment of a role."""

    GOOD = "good"
    EVIL = "evil"
    NEUTRAL = "neutral"


class AbilityPhase(str, Enum):
    """Part of the game cycle in which an ability is used."""

    NIGHT = "night"
    DAY = "day"
    PASSIVE = "passive"


class GameStatus(str, Enum):
    """Lifecycle state of a game session."""

    WAITING = "waiting"
    ACTIVE = "active"
    ENDED = "ended"


class EliminationOutcome(str, Enum):
    """Result category of a vote tally."""

    NO_VOTES = "no_votes"
    ELIMINATED = "eliminated"
    TIE = "tie"
