"""Elimination voting: recording votes, tallying and resolving ties."""

from __future__ import annotations

import uuid
from collections import Counter
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Optional, Tuple

from .enums import EliminationOutcome
from .exceptions import NotFoundError, StateConflictError, ValidationError

if TYPE_CHECKING:
    from .players import Player, PlayerId
    from .store import GameStore

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True, slots=True)
class Vote:
    """A live elimination vote. At most one per voter per game."""

    vote_id: str
    game_id: str
    voter_id: str
    target_id: str
    cast_at: datetime


@dataclass(frozen=True, slots=True)
class VoteLeader:
    """A target sharing the highest vote count."""

    player_id: str
    vote_count: int


@dataclass(frozen=True, slots=True)
class EliminationResult:
    """Outcome of resolving the current round of votes."""

    outcome: EliminationOutcome
    vote_summary: Dict[str, int]
    eliminated: Optional["Player"] = None
    vote_count: int = 0
    tied: Tuple[VoteLeader, ...] = ()
    tie_resolved: bool = False
    votes_cleared: bool = False
    death_message: Optional[str] = None

    @property
    def is_tie(self) -> bool:
        return self.outcome is EliminationOutcome.TIE

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "outcome": self.outcome.value,
            "vote_summary": dict(self.vote_summary),
            "votes_cleared": self.votes_cleared,
        }
        if self.eliminated is not None:
            data["eliminated_player"] = {
                "id": self.eliminated.player_id,
                "name": self.eliminated.name,
                "vote_count": self.vote_count,
            }
            if self.death_message is not None:
                data["eliminated_player"]["death_message"] = self.death_message
            data["tie_resolved"] = self.tie_resolved
        if self.tied:
            data["tied_players"] = [
                {"id": leader.player_id, "vote_count": leader.vote_count} for leader in self.tied
            ]
        return data


class VoteTally:
    """Vote bookkeeping for one store.

    The round state is derived entirely from the stored vote rows: no votes
    means a fresh round, and a successful elimination empties the rows.
    """

    def __init__(self, store: "GameStore", *, clock: Optional[Clock] = None) -> None:
        self.store = store
        self.clock = clock or utc_now

    def record_vote(self, game_id: str, voter_id: "PlayerId", target_id: "PlayerId") -> Vote:
        """Record or replace ``voter_id``'s vote against ``target_id``."""

        voter = self.store.get_player(voter_id)
        if voter is None:
            raise NotFoundError(f"Player not found: {voter_id}")
        if voter.game_id != game_id:
            raise ValidationError("Voter does not belong to this game")
        if not voter.is_alive:
            raise ValidationError("Eliminated players cannot vote")
        if voter_id == target_id:
            raise ValidationError("Cannot vote for yourself")

        target = self.store.get_player(target_id)
        if target is None:
            raise NotFoundError(f"Target player not found: {target_id}")
        if target.game_id != game_id:
            raise ValidationError("Cannot vote for player in different game")
        if not target.is_alive:
            raise ValidationError("Cannot vote for eliminated players")

        now = self.clock()
        existing = self.store.get_vote(game_id, voter_id)
        if existing is not None:
            vote = replace(existing, target_id=target_id, cast_at=now)
            self.store.update_vote(vote)
            return vote

        vote = Vote(
            vote_id=uuid.uuid4().hex,
            game_id=game_id,
            voter_id=voter_id,
            target_id=target_id,
            cast_at=now,
        )
        self.store.add_vote(vote)
        return vote

    def tally(self, game_id: str) -> Dict[str, int]:
        """Count live votes per target, ignoring targets who are no longer alive."""

        alive_ids = {
            player.player_id for player in self.store.players_for_game(game_id) if player.is_alive
        }
        counts = Counter(
            vote.target_id
            for vote in self.store.votes_for_game(game_id)
            if vote.target_id in alive_ids
        )
        return dict(counts)

    def leaders(self, game_id: str) -> List[VoteLeader]:
        """Return every target holding the maximum count; empty when nobody voted."""

        return _leaders(self.tally(game_id))

    def resolve_elimination(
        self, game_id: str, explicit_target_id: Optional["PlayerId"] = None
    ) -> EliminationResult:
        """Eliminate the clear leader, or the admin's pick among tied leaders.

        An unresolved tie or an empty tally leaves players and votes untouched.
        ``explicit_target_id`` is only consulted when the tally is tied.
        """

        summary = self.tally(game_id)
        if not summary:
            return EliminationResult(outcome=EliminationOutcome.NO_VOTES, vote_summary=summary)

        leaders = _leaders(summary)
        if len(leaders) == 1:
            return self._eliminate(game_id, leaders[0], summary, tie_resolved=False)

        if explicit_target_id is None:
            return EliminationResult(
                outcome=EliminationOutcome.TIE,
                vote_summary=summary,
                tied=tuple(leaders),
            )

        chosen = next(
            (leader for leader in leaders if leader.player_id == explicit_target_id), None
        )
        if chosen is None:
            raise StateConflictError("Selected player is not part of the tie")
        return self._eliminate(game_id, chosen, summary, tie_resolved=True)

    def clear_votes(self, game_id: str) -> None:
        """Delete every vote for ``game_id``."""

        self.store.delete_votes_for_game(game_id)

    def _eliminate(
        self,
        game_id: str,
        leader: VoteLeader,
        summary: Dict[str, int],
        *,
        tie_resolved: bool,
    ) -> EliminationResult:
        target = self.store.get_player(leader.player_id)
        if target is None:
            raise NotFoundError(f"Target player not found: {leader.player_id}")
        if not target.is_alive:
            raise StateConflictError("Target player is already eliminated")

        eliminated = target.eliminated()
        try:
            self.store.update_player(eliminated)
        except KeyError as exc:
            raise NotFoundError(f"Target player not found: {leader.player_id}") from exc
        self.clear_votes(game_id)
        return EliminationResult(
            outcome=EliminationOutcome.ELIMINATED,
            vote_summary=summary,
            eliminated=eliminated,
            vote_count=leader.vote_count,
            tie_resolved=tie_resolved,
            votes_cleared=True,
        )


def _leaders(counts: Dict[str, int]) -> List[VoteLeader]:
    if not counts:
        return []
    top = max(counts.values())
    return [VoteLeader(player_id, count) for player_id, count in counts.items() if count == top]
