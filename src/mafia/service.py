"""Game master and player operations over a :class:`GameStore`."""

from __future__ import annotations

import random
import uuid
from dataclasses import replace
from typing import Any, Dict, List, Mapping, Optional

from .catalog import RoleCatalog, get_role_catalog
from .config import GameConfig
from .enums import EliminationOutcome, GameStatus
from .events import EventLog, EventVisibility, GameEventType, player_audience_tag
from .exceptions import (
    ConsistencyError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from .game_state import Game, GameId, generate_game_code
from .logging_manager import LoggingManager
from .players import Player, PlayerId
from .pool import validate_distribution
from .roles import RoleId
from .settings import Settings
from .setup import AssignmentResult, assign_roles, normalize_player_name
from .store import GameStore
from .votes import Clock, EliminationResult, Vote, VoteLeader, VoteTally, utc_now

MAX_CODE_ATTEMPTS = 20


class GameService:
    """Every operation a game master or player can perform on a session."""

    def __init__(
        self,
        store: GameStore,
        *,
        catalog: Optional[RoleCatalog] = None,
        settings: Optional[Settings] = None,
        rng: Optional[random.Random] = None,
        clock: Optional[Clock] = None,
        event_log: Optional[EventLog] = None,
        logging_manager: Optional[LoggingManager] = None,
    ) -> None:
        self.store = store
        self.settings = settings or Settings()
        self.catalog = catalog or _catalog_for(self.settings)
        self.rng = rng or random.Random(self.settings.random_seed)
        self.clock = clock or utc_now
        self.event_log = event_log
        self.logging_manager = logging_manager
        self.votes = VoteTally(store, clock=self.clock)

    # Games

    def create_game(
        self,
        theme: Optional[str],
        player_count: int,
        *,
        role_distribution: Optional[Mapping[RoleId, int]] = None,
    ) -> Game:
        """Create a waiting game sized for ``player_count`` players.

        ``theme`` defaults to the configured ``default_theme`` when ``None``.
        """

        if theme is None:
            theme = self.settings.default_theme
        if isinstance(player_count, bool) or not isinstance(player_count, int):
            raise ValidationError("playerCount must be a number")
        if player_count < self.settings.min_players:
            raise ValidationError(f"playerCount must be at least {self.settings.min_players}")
        if not isinstance(theme, str) or not theme.strip():
            raise ValidationError("theme is required")
        theme = theme.strip()
        if theme not in self.catalog.available_themes():
            raise NotFoundError(f"Unknown theme: {theme}")

        if role_distribution is None:
            distribution = self.catalog.distribution_for_player_count(player_count, theme)
            if distribution is None:
                raise ValidationError("Invalid player count or theme")
        else:
            distribution = dict(role_distribution)
            validate_distribution(distribution)
            known = {role.id for role in self.catalog.roles_for_theme(theme)}
            missing = sorted(set(distribution) - known)
            if missing:
                raise ConsistencyError(f'Role "{missing[0]}" not found in theme "{theme}"')

        now = self.clock()
        game = Game(
            game_id=uuid.uuid4().hex,
            code=self._unique_code(),
            theme=theme,
            status=GameStatus.WAITING,
            created_at=now,
            config=GameConfig(
                role_distribution=distribution,
                player_count=player_count,
                theme=theme,
            ),
        )
        self.store.add_game(game)
        self._record(
            GameEventType.GAME_CREATED,
            game.game_id,
            {"code": game.code, "theme": theme, "player_count": player_count},
        )
        if self.logging_manager:
            self.logging_manager.log_game_created(game)
        return game

    def get_game(self, game_id: GameId) -> Game:
        game = self.store.get_game(game_id)
        if game is None:
            raise NotFoundError(f"Game not found: {game_id}")
        return game

    def get_game_by_code(self, code: str) -> Game:
        game = self.store.get_game_by_code(code)
        if game is None:
            raise NotFoundError(f"Game not found: {code}")
        return game

    def list_games(self) -> List[Game]:
        return self.store.list_games()

    def delete_game(self, game_id: GameId) -> None:
        self.get_game(game_id)
        self.store.delete_game(game_id)

    def end_game(self, game_id: GameId) -> Game:
        game = self.get_game(game_id)
        if game.status is GameStatus.ENDED:
            raise StateConflictError("Game has already ended")
        ended = game.with_status(GameStatus.ENDED, self.clock())
        try:
            self.store.update_game(ended)
        except KeyError as exc:
            raise NotFoundError(f"Game not found: {game_id}") from exc
        self._record(GameEventType.GAME_ENDED, game_id)
        return ended

    # Players

    def join_game(self, code: str, name: object) -> Player:
        """Add a player to the waiting game identified by ``code``."""

        cleaned = normalize_player_name(name, max_length=self.settings.max_name_length)
        game = self.get_game_by_code(code)
        if not game.is_waiting:
            raise StateConflictError("Game has already started")
        if self.store.is_name_taken(game.game_id, cleaned):
            raise ValidationError("Name is already taken in this game")

        player = Player(
            player_id=uuid.uuid4().hex,
            game_id=game.game_id,
            name=cleaned,
            joined_at=self.clock(),
        )
        self.store.add_player(player)
        self._record(
            GameEventType.PLAYER_JOINED,
            game.game_id,
            {"player_id": player.player_id, "name": player.name},
        )
        return player

    def get_player(self, player_id: PlayerId) -> Player:
        player = self.store.get_player(player_id)
        if player is None:
            raise NotFoundError(f"Player not found: {player_id}")
        return player

    def remove_player(self, player_id: PlayerId) -> None:
        player = self.get_player(player_id)
        self.store.delete_player(player_id)
        self._record(GameEventType.PLAYER_REMOVED, player.game_id, {"player_id": player_id})

    def eliminate_player(self, player_id: PlayerId) -> Player:
        player = self.get_player(player_id).eliminated()
        self._save_player(player)
        self._record(
            GameEventType.PLAYER_ELIMINATED,
            player.game_id,
            {"player_id": player_id, "source": "manual"},
        )
        if self.logging_manager:
            self.logging_manager.log_status_change(player)
        return player

    def revive_player(self, player_id: PlayerId) -> Player:
        player = self.get_player(player_id).revived()
        self._save_player(player)
        self._record(GameEventType.PLAYER_REVIVED, player.game_id, {"player_id": player_id})
        if self.logging_manager:
            self.logging_manager.log_status_change(player)
        return player

    def set_player_status(self, player_id: PlayerId, is_alive: object) -> Player:
        """Flip a player's alive flag; ``is_alive`` must be a real boolean."""

        self.get_player(player_id)
        if not isinstance(is_alive, bool):
            raise ValidationError("isAlive must be a boolean")
        if is_alive:
            return self.revive_player(player_id)
        return self.eliminate_player(player_id)

    # Cards

    def issue_cards(self, game_id: GameId) -> AssignmentResult:
        """Deal roles to the lobby and start the game."""

        game = self.get_game(game_id)
        if not game.is_waiting:
            raise StateConflictError("Cards have already been issued")
        players = self.store.players_for_game(game_id)
        if len(players) < game.config.player_count:
            raise StateConflictError(
                f"Not enough players. Need {game.config.player_count}, have {len(players)}"
            )

        pool = self.catalog.generate_role_pool(
            game.config.role_distribution, game.theme, rng=self.rng
        )
        result = assign_roles(players, pool)
        started = game.with_status(GameStatus.ACTIVE, self.clock())
        self._save_deal(started, result)

        self._record_deal(GameEventType.CARDS_ISSUED, game_id, result)
        if self.logging_manager:
            self.logging_manager.log_roles_dealt(started, result, reroll=False)
        return result

    def reroll_roles(self, game_id: GameId) -> AssignmentResult:
        """Deal a fresh set of roles to an active game, reviving everyone and clearing votes."""

        game = self.get_game(game_id)
        if not game.is_active:
            raise StateConflictError("Can only reroll roles for active games. Issue cards first.")
        players = self.store.players_for_game(game_id)
        if not players:
            raise StateConflictError("No players in game")

        pool = self.catalog.generate_role_pool(
            game.config.role_distribution, game.theme, rng=self.rng
        )
        result = assign_roles([player.revived() for player in players], pool)
        self.votes.clear_votes(game_id)
        self._save_deal(game, result)

        self._record_deal(GameEventType.ROLES_REROLLED, game_id, result)
        if self.logging_manager:
            self.logging_manager.log_roles_dealt(game, result, reroll=True)
        return result

    # Votes

    def submit_vote(self, voter_id: PlayerId, target_id: PlayerId) -> Vote:
        """Cast or change ``voter_id``'s elimination vote."""

        if not target_id:
            raise ValidationError("Target player ID is required")
        voter = self.get_player(voter_id)
        game = self.get_game(voter.game_id)
        if not game.config.enable_voting:
            raise StateConflictError("Voting is disabled for this game")

        vote = self.votes.record_vote(game.game_id, voter_id, target_id)
        self._record(
            GameEventType.VOTE_CAST,
            game.game_id,
            {"voter_id": voter_id, "target_id": target_id},
            private_to=voter_id,
        )
        return vote

    def current_vote(self, player_id: PlayerId) -> Optional[Vote]:
        player = self.get_player(player_id)
        return self.store.get_vote(player.game_id, player_id)

    def vote_counts(self, game_id: GameId) -> Dict[PlayerId, int]:
        self.get_game(game_id)
        return self.votes.tally(game_id)

    def players_with_most_votes(self, game_id: GameId) -> List[VoteLeader]:
        self.get_game(game_id)
        return self.votes.leaders(game_id)

    def tally_votes(
        self, game_id: GameId, target_player_id: Optional[PlayerId] = None
    ) -> EliminationResult:
        """Resolve the round; ``target_player_id`` breaks a tie."""

        game = self.get_game(game_id)
        result = self.votes.resolve_elimination(game_id, target_player_id)
        if result.eliminated is not None:
            result = replace(
                result, death_message=self.catalog.death_message(game.theme, self.rng)
            )

        if result.outcome is EliminationOutcome.TIE:
            self._record(
                GameEventType.TIE_DETECTED,
                game_id,
                {"tied": [leader.player_id for leader in result.tied]},
            )
        elif result.eliminated is not None:
            self._record(
                GameEventType.PLAYER_ELIMINATED,
                game_id,
                {
                    "player_id": result.eliminated.player_id,
                    "vote_count": result.vote_count,
                    "tie_resolved": result.tie_resolved,
                    "source": "vote",
                    "death_message": result.death_message,
                },
            )
            self._record(GameEventType.VOTES_CLEARED, game_id)
        if self.logging_manager:
            self.logging_manager.log_tally(game_id, result)
        return result

    def clear_votes(self, game_id: GameId) -> None:
        self.get_game(game_id)
        self.votes.clear_votes(game_id)
        self._record(GameEventType.VOTES_CLEARED, game_id)

    # Views

    def game_view(self, game_id: GameId) -> Dict[str, Any]:
        """Game details with a lobby player list that never exposes roles."""

        game = self.get_game(game_id)
        data = game.to_dict()
        data["players"] = [p.to_public_dict() for p in self.store.players_for_game(game_id)]
        return data

    def admin_view(self, game_id: GameId) -> Dict[str, Any]:
        """Game details with every player's role, for the game master."""

        game = self.get_game(game_id)
        data = game.to_dict()
        data["players"] = [p.to_admin_dict() for p in self.store.players_for_game(game_id)]
        return data

    def player_roster(self, game_id: GameId) -> List[Dict[str, Any]]:
        """Player list in which only eliminated players' roles are revealed."""

        self.get_game(game_id)
        return [p.to_roster_dict() for p in self.store.players_for_game(game_id)]

    # Internals

    def _unique_code(self) -> str:
        for _ in range(MAX_CODE_ATTEMPTS):
            code = generate_game_code(self.rng)
            if self.store.get_game_by_code(code) is None:
                return code
        raise StateConflictError("Could not allocate a unique game code")

    def _save_player(self, player: Player) -> None:
        try:
            self.store.update_player(player)
        except KeyError as exc:
            raise NotFoundError(f"Player not found: {player.player_id}") from exc

    def _save_deal(self, game: Game, result: AssignmentResult) -> None:
        try:
            self.store.apply_deal(game, result.assigned + result.waiting)
        except KeyError as exc:
            raise NotFoundError(f"Game changed while dealing: {exc.args[0]}") from exc

    def _record_deal(
        self, event_type: GameEventType, game_id: GameId, result: AssignmentResult
    ) -> None:
        self._record(
            event_type,
            game_id,
            {"roles_assigned": result.roles_assigned, "waiting": result.waiting_count},
        )
        for player in result.assigned:
            self._record(
                GameEventType.ROLE_ASSIGNED,
                game_id,
                {"player_id": player.player_id, "role": player.role_id},
                private_to=player.player_id,
            )

    def _record(
        self,
        event_type: GameEventType,
        game_id: GameId,
        payload: Optional[Mapping[str, Any]] = None,
        *,
        private_to: Optional[PlayerId] = None,
    ) -> None:
        if self.event_log is None:
            return
        if private_to is None:
            self.event_log.record(event_type, game_id, payload, timestamp=self.clock())
            return
        self.event_log.record(
            event_type,
            game_id,
            payload,
            timestamp=self.clock(),
            visibility=EventVisibility.PRIVATE,
            audience=[player_audience_tag(private_to)],
        )


def _catalog_for(settings: Settings) -> RoleCatalog:
    default = get_role_catalog()
    if settings.roles_dir.resolve() == default.root.resolve():
        return default
    return RoleCatalog(settings.roles_dir)
