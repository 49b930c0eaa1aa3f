from __future__ import annotations

import itertools
import random
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Mapping, Optional

import pytest

from mafia.enums import Alignment, EliminationOutcome, GameStatus
from mafia.events import EventLog, EventVisibility, GameEventType
from mafia.exceptions import (
    ConsistencyError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from mafia.game_state import CODE_ALPHABET, CODE_LENGTH, Game
from mafia.players import Player
from mafia.service import GameService
from mafia.settings import Settings
from mafia.store import InMemoryGameStore

START = datetime(2024, 5, 1, 20, 0, tzinfo=timezone.utc)


def _clock() -> Callable[[], datetime]:
    ticks = itertools.count()
    return lambda: START + timedelta(seconds=next(ticks))


def _service(**kwargs: Any) -> GameService:
    return GameService(
        InMemoryGameStore(),
        rng=random.Random(7),
        clock=_clock(),
        event_log=EventLog(),
        **kwargs,
    )


def _lobby(
    service: GameService,
    joined: int = 7,
    *,
    theme: str = "classic",
    player_count: int = 7,
    distribution: Optional[Mapping[str, int]] = None,
) -> tuple[Game, list[Player]]:
    game = service.create_game(theme, player_count, role_distribution=distribution)
    players = [service.join_game(game.code, f"Player {idx}") for idx in range(1, joined + 1)]
    return game, players


def test_create_game_uses_preset_and_readable_code() -> None:
    service = _service()
    game = service.create_game("classic", 7)

    assert game.status is GameStatus.WAITING
    assert len(game.code) == CODE_LENGTH
    assert set(game.code) <= set(CODE_ALPHABET)
    assert game.config.role_distribution == {
        "villager": 3,
        "mafia": 2,
        "detective": 1,
        "doctor": 1,
    }
    assert service.get_game_by_code(game.code.lower()) == game


@pytest.mark.parametrize(
    ("theme", "count", "error", "message"),
    [
        ("classic", 6, ValidationError, "at least 7"),
        ("classic", "7", ValidationError, "must be a number"),
        ("", 7, ValidationError, "theme is required"),
        ("atlantis", 7, NotFoundError, "Unknown theme"),
    ],
)
def test_create_game_validation(theme: str, count: Any, error: type, message: str) -> None:
    with pytest.raises(error, match=message):
        _service().create_game(theme, count)


def test_create_game_rejects_roles_missing_from_theme() -> None:
    with pytest.raises(ConsistencyError, match='"double_agent" not found in theme "classic"'):
        _service().create_game("classic", 7, role_distribution={"double_agent": 7})


def test_issue_cards_deals_exact_distribution() -> None:
    service = _service()
    game, _ = _lobby(service, distribution={"villager": 5, "mafia": 2})

    result = service.issue_cards(game.game_id)

    assert result.roles_assigned == 7
    assert result.waiting == ()
    players = service.store.players_for_game(game.game_id)
    assert Counter(p.role_id for p in players) == {"villager": 5, "mafia": 2}
    assert sum(1 for p in players if p.alignment is Alignment.EVIL) == 2
    assert service.get_game(game.game_id).status is GameStatus.ACTIVE


def test_issue_cards_uses_theme_roles() -> None:
    service = _service()
    game, _ = _lobby(service, theme="harry-potter", distribution={"villager": 5, "mafia": 2})

    service.issue_cards(game.game_id)

    names = Counter(p.role.name for p in service.store.players_for_game(game.game_id) if p.role)
    assert names == {"Hogwarts Student": 5, "Death Eater": 2}


def test_issue_cards_leaves_extra_players_waiting() -> None:
    service = _service()
    game, players = _lobby(service, joined=9)

    result = service.issue_cards(game.game_id)

    assert result.roles_assigned == 7
    assert [p.player_id for p in result.waiting] == [p.player_id for p in players[7:]]
    stored = {p.player_id: p for p in service.store.players_for_game(game.game_id)}
    assert all(not stored[p.player_id].has_role for p in players[7:])


def test_issue_cards_requires_enough_players() -> None:
    service = _service()
    game, _ = _lobby(service, joined=5)

    with pytest.raises(StateConflictError, match="Need 7, have 5"):
        service.issue_cards(game.game_id)
    assert service.get_game(game.game_id).is_waiting


def test_issue_cards_only_once() -> None:
    service = _service()
    game, _ = _lobby(service)
    service.issue_cards(game.game_id)

    with pytest.raises(StateConflictError, match="already been issued"):
        service.issue_cards(game.game_id)


def test_join_rules() -> None:
    service = _service()
    game, _ = _lobby(service)

    with pytest.raises(ValidationError, match="already taken"):
        service.join_game(game.code, "  player 1 ")
    with pytest.raises(ValidationError, match="Name is required"):
        service.join_game(game.code, "   ")
    with pytest.raises(ValidationError, match="20 characters or less"):
        service.join_game(game.code, "x" * 21)
    with pytest.raises(NotFoundError):
        service.join_game("ZZZZZZ", "Latecomer")

    service.issue_cards(game.game_id)
    with pytest.raises(StateConflictError, match="already started"):
        service.join_game(game.code, "Latecomer")


def test_reroll_revives_everyone_and_clears_votes() -> None:
    service = _service()
    game, players = _lobby(service)
    service.issue_cards(game.game_id)
    service.eliminate_player(players[0].player_id)
    service.submit_vote(players[1].player_id, players[2].player_id)

    result = service.reroll_roles(game.game_id)

    assert result.roles_assigned == 7
    stored = service.store.players_for_game(game.game_id)
    assert all(p.is_alive for p in stored)
    assert Counter(p.role_id for p in stored) == Counter(game.config.role_distribution)
    assert service.store.votes_for_game(game.game_id) == []


def test_reroll_requires_active_game() -> None:
    service = _service()
    game, _ = _lobby(service)

    with pytest.raises(StateConflictError, match="Issue cards first"):
        service.reroll_roles(game.game_id)


def test_vote_round_through_service() -> None:
    service = _service()
    game, players = _lobby(service)
    service.issue_cards(game.game_id)
    ids = [p.player_id for p in players]

    service.submit_vote(ids[0], ids[1])
    service.submit_vote(ids[2], ids[1])
    service.submit_vote(ids[1], ids[0])
    assert service.vote_counts(game.game_id) == {ids[1]: 2, ids[0]: 1}
    assert service.current_vote(ids[0]).target_id == ids[1]

    result = service.tally_votes(game.game_id)

    assert result.outcome is EliminationOutcome.ELIMINATED
    assert not service.get_player(ids[1]).is_alive
    assert service.vote_counts(game.game_id) == {}


def test_tie_then_admin_choice() -> None:
    service = _service()
    game, players = _lobby(service)
    service.issue_cards(game.game_id)
    ids = [p.player_id for p in players]
    service.submit_vote(ids[0], ids[1])
    service.submit_vote(ids[1], ids[0])

    tie = service.tally_votes(game.game_id)
    assert tie.is_tie
    assert {leader.player_id for leader in service.players_with_most_votes(game.game_id)} == {
        ids[0],
        ids[1],
    }

    resolved = service.tally_votes(game.game_id, ids[0])
    assert resolved.tie_resolved
    assert resolved.eliminated is not None and resolved.eliminated.player_id == ids[0]


def test_submit_vote_requires_target() -> None:
    service = _service()
    _, players = _lobby(service)

    with pytest.raises(ValidationError, match="Target player ID is required"):
        service.submit_vote(players[0].player_id, "")


def test_set_player_status_requires_boolean() -> None:
    service = _service()
    _, players = _lobby(service)
    player_id = players[0].player_id

    with pytest.raises(ValidationError, match="isAlive must be a boolean"):
        service.set_player_status(player_id, "false")
    assert not service.set_player_status(player_id, False).is_alive
    assert service.set_player_status(player_id, True).is_alive


def test_views_hide_roles_until_elimination() -> None:
    service = _service()
    game, players = _lobby(service)
    service.issue_cards(game.game_id)
    service.eliminate_player(players[3].player_id)

    lobby = service.game_view(game.game_id)
    assert all("role" not in entry for entry in lobby["players"])
    assert all(entry["has_role"] for entry in lobby["players"])

    admin = service.admin_view(game.game_id)
    assert all(entry["role"] for entry in admin["players"])

    roster = {entry["id"]: entry for entry in service.player_roster(game.game_id)}
    assert roster[players[3].player_id]["role"] is not None
    assert "role" not in roster[players[0].player_id]


def test_role_assignments_are_private_events() -> None:
    service = _service()
    game, players = _lobby(service)
    service.issue_cards(game.game_id)
    assert service.event_log is not None

    assigned = [
        event
        for event in service.event_log.events_for_game(game.game_id)
        if event.type is GameEventType.ROLE_ASSIGNED
    ]
    assert len(assigned) == 7
    assert all(event.visibility is EventVisibility.PRIVATE for event in assigned)
    mine = service.event_log.events_for_player(players[0].player_id, game_id=game.game_id)
    assert [e.payload["player_id"] for e in mine if e.type is GameEventType.ROLE_ASSIGNED] == [
        players[0].player_id
    ]


def test_end_and_delete_game() -> None:
    service = _service()
    game, _ = _lobby(service)

    ended = service.end_game(game.game_id)
    assert ended.status is GameStatus.ENDED
    assert ended.ended_at is not None
    with pytest.raises(StateConflictError):
        service.end_game(game.game_id)

    service.delete_game(game.game_id)
    assert service.list_games() == []
    assert service.store.players_for_game(game.game_id) == []


def test_remove_player_drops_their_votes() -> None:
    service = _service()
    game, players = _lobby(service)
    service.issue_cards(game.game_id)
    service.submit_vote(players[0].player_id, players[1].player_id)

    service.remove_player(players[0].player_id)

    assert service.vote_counts(game.game_id) == {}
    with pytest.raises(NotFoundError):
        service.get_player(players[0].player_id)


def test_min_players_comes_from_settings() -> None:
    service = _service(settings=Settings(min_players=3))
    game = service.create_game("classic", 3, role_distribution={"villager": 2, "mafia": 1})

    assert game.config.player_count == 3


def test_default_theme_comes_from_settings() -> None:
    service = _service(settings=Settings(default_theme="harry-potter"))
    game = service.create_game(None, 7)

    assert game.theme == "harry-potter"
    assert game.config.theme == "harry-potter"


def test_tally_announces_elimination_with_theme_message() -> None:
    service = _service()
    game, players = _lobby(service, theme="harry-potter")
    service.issue_cards(game.game_id)
    ids = [p.player_id for p in players]
    service.submit_vote(ids[0], ids[1])

    result = service.tally_votes(game.game_id)

    assert result.death_message in service.catalog.death_messages("harry-potter")
    assert result.to_dict()["eliminated_player"]["death_message"] == result.death_message
    eliminated = [
        event
        for event in service.event_log.query(game_id=game.game_id)
        if event.type is GameEventType.PLAYER_ELIMINATED
    ]
    assert eliminated[-1].payload["death_message"] == result.death_message


def test_tie_has_no_death_message() -> None:
    service = _service()
    game, players = _lobby(service)
    service.issue_cards(game.game_id)
    ids = [p.player_id for p in players]
    service.submit_vote(ids[0], ids[1])
    service.submit_vote(ids[1], ids[0])

    assert service.tally_votes(game.game_id).death_message is None


class _LeavingStore(InMemoryGameStore):
    """Drops the last joined player right after the lobby is listed."""

    def players_for_game(self, game_id: str) -> list[Player]:
        players = super().players_for_game(game_id)
        if players:
            self.delete_player(players[-1].player_id)
        return players


def test_deal_is_not_saved_when_a_player_leaves_midway() -> None:
    store = _LeavingStore()
    service = GameService(store, rng=random.Random(7), clock=_clock())
    game = service.create_game("classic", 7)
    for idx in range(8):
        store.add_player(
            Player(
                player_id=f"p{idx}",
                game_id=game.game_id,
                name=f"Player {idx}",
                joined_at=START + timedelta(seconds=idx),
            )
        )

    with pytest.raises(NotFoundError, match="Game changed while dealing"):
        service.issue_cards(game.game_id)

    assert service.get_game(game.game_id).status is GameStatus.WAITING
    assert all(store.get_player(f"p{idx}").role is None for idx in range(7))
