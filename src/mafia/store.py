"""Storage contracts and backends for games, players and votes."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, Sequence

from sqlalchemy import create_engine, delete, event, literal_column, select, update
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from .config import GameConfig
from .db_models import Base, GameRow, PlayerRow, VoteRow
from .enums import GameStatus
from .game_state import Game, GameId, normalize_game_code
from .players import Player, PlayerId
from .roles import RoleDefinition
from .votes import Vote


class GameStore(Protocol):
    """Narrow accessor surface the game logic reads and writes through."""

    def add_game(self, game: Game) -> None: ...

    def get_game(self, game_id: GameId) -> Optional[Game]: ...

    def get_game_by_code(self, code: str) -> Optional[Game]: ...

    def update_game(self, game: Game) -> None: ...

    def delete_game(self, game_id: GameId) -> None: ...

    def list_games(self) -> List[Game]: ...

    def add_player(self, player: Player) -> None: ...

    def get_player(self, player_id: PlayerId) -> Optional[Player]: ...

    def players_for_game(self, game_id: GameId) -> List[Player]: ...

    def update_player(self, player: Player) -> None: ...

    def delete_player(self, player_id: PlayerId) -> None: ...

    def apply_deal(self, game: Game, players: Sequence[Player]) -> None: ...

    def is_name_taken(self, game_id: GameId, name: str) -> bool: ...

    def get_vote(self, game_id: GameId, voter_id: PlayerId) -> Optional[Vote]: ...

    def add_vote(self, vote: Vote) -> None: ...

    def update_vote(self, vote: Vote) -> None: ...

    def votes_for_game(self, game_id: GameId) -> List[Vote]: ...

    def delete_votes_for_game(self, game_id: GameId) -> None: ...


class InMemoryGameStore:
    """Dictionary-backed store, used by tests and throwaway sessions."""

    def __init__(self) -> None:
        self._games: Dict[GameId, Game] = {}
        self._players: Dict[PlayerId, Player] = {}
        self._votes: Dict[str, Vote] = {}

    def add_game(self, game: Game) -> None:
        if game.game_id in self._games:
            raise ValueError(f"Duplicate game id: {game.game_id}")
        if self.get_game_by_code(game.code) is not None:
            raise ValueError(f"Duplicate game code: {game.code}")
        self._games[game.game_id] = game

    def get_game(self, game_id: GameId) -> Optional[Game]:
        return self._games.get(game_id)

    def get_game_by_code(self, code: str) -> Optional[Game]:
        wanted = normalize_game_code(code)
        for game in self._games.values():
            if game.code == wanted:
                return game
        return None

    def update_game(self, game: Game) -> None:
        if game.game_id not in self._games:
            raise KeyError(f"Unknown game id: {game.game_id}")
        self._games[game.game_id] = game

    def delete_game(self, game_id: GameId) -> None:
        self._games.pop(game_id, None)
        for player_id in [p.player_id for p in self._players.values() if p.game_id == game_id]:
            del self._players[player_id]
        self.delete_votes_for_game(game_id)

    def list_games(self) -> List[Game]:
        return sorted(self._games.values(), key=lambda game: game.created_at, reverse=True)

    def add_player(self, player: Player) -> None:
        if player.player_id in self._players:
            raise ValueError(f"Duplicate player id: {player.player_id}")
        self._players[player.player_id] = player

    def get_player(self, player_id: PlayerId) -> Optional[Player]:
        return self._players.get(player_id)

    def players_for_game(self, game_id: GameId) -> List[Player]:
        players = [player for player in self._players.values() if player.game_id == game_id]
        return sorted(players, key=lambda player: player.joined_at)

    def update_player(self, player: Player) -> None:
        if player.player_id not in self._players:
            raise KeyError(f"Unknown player id: {player.player_id}")
        self._players[player.player_id] = player

    def delete_player(self, player_id: PlayerId) -> None:
        self._players.pop(player_id, None)
        for vote_id in [
            vote.vote_id
            for vote in self._votes.values()
            if player_id in (vote.voter_id, vote.target_id)
        ]:
            del self._votes[vote_id]

    def apply_deal(self, game: Game, players: Sequence[Player]) -> None:
        if game.game_id not in self._games:
            raise KeyError(f"Unknown game id: {game.game_id}")
        for player in players:
            if player.player_id not in self._players:
                raise KeyError(f"Unknown player id: {player.player_id}")
        self._games[game.game_id] = game
        for player in players:
            self._players[player.player_id] = player

    def is_name_taken(self, game_id: GameId, name: str) -> bool:
        wanted = name.casefold()
        return any(
            player.game_id == game_id and player.name.casefold() == wanted
            for player in self._players.values()
        )

    def get_vote(self, game_id: GameId, voter_id: PlayerId) -> Optional[Vote]:
        for vote in self._votes.values():
            if vote.game_id == game_id and vote.voter_id == voter_id:
                return vote
        return None

    def add_vote(self, vote: Vote) -> None:
        self._votes[vote.vote_id] = vote

    def update_vote(self, vote: Vote) -> None:
        if vote.vote_id not in self._votes:
            raise KeyError(f"Unknown vote id: {vote.vote_id}")
        self._votes[vote.vote_id] = vote

    def votes_for_game(self, game_id: GameId) -> List[Vote]:
        return [vote for vote in self._votes.values() if vote.game_id == game_id]

    def delete_votes_for_game(self, game_id: GameId) -> None:
        for vote_id in [vote.vote_id for vote in self._votes.values() if vote.game_id == game_id]:
            del self._votes[vote_id]


class SqliteGameStore:
    """SQLite store built on SQLAlchemy; deleting a game or player cascades to its rows."""

    def __init__(self, path: str | Path = ":memory:") -> None:
        if str(path) == ":memory:":
            self._engine = create_engine(
                "sqlite://",
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
        else:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            self._engine = create_engine(f"sqlite:///{path}")
        event.listen(self._engine, "connect", _enable_foreign_keys)
        Base.metadata.create_all(self._engine)
        self._sessions = sessionmaker(self._engine, expire_on_commit=False)

    def close(self) -> None:
        self._engine.dispose()

    def add_game(self, game: Game) -> None:
        with self._sessions.begin() as session:
            session.add(_game_row(game))

    def get_game(self, game_id: GameId) -> Optional[Game]:
        with self._sessions() as session:
            row = session.get(GameRow, game_id)
            return _to_game(row) if row else None

    def get_game_by_code(self, code: str) -> Optional[Game]:
        with self._sessions() as session:
            row = session.scalar(
                select(GameRow).where(GameRow.code == normalize_game_code(code))
            )
            return _to_game(row) if row else None

    def update_game(self, game: Game) -> None:
        with self._sessions.begin() as session:
            _update_game_row(session, game)

    def delete_game(self, game_id: GameId) -> None:
        with self._sessions.begin() as session:
            session.execute(delete(GameRow).where(GameRow.id == game_id))

    def list_games(self) -> List[Game]:
        with self._sessions() as session:
            rows = session.scalars(select(GameRow).order_by(GameRow.created_at.desc()))
            return [_to_game(row) for row in rows]

    def add_player(self, player: Player) -> None:
        with self._sessions.begin() as session:
            session.add(_player_row(player))

    def get_player(self, player_id: PlayerId) -> Optional[Player]:
        with self._sessions() as session:
            row = session.get(PlayerRow, player_id)
            return _to_player(row) if row else None

    def players_for_game(self, game_id: GameId) -> List[Player]:
        with self._sessions() as session:
            rows = session.scalars(
                select(PlayerRow)
                .where(PlayerRow.game_id == game_id)
                .order_by(PlayerRow.joined_at, literal_column("players.rowid"))
            )
            return [_to_player(row) for row in rows]

    def update_player(self, player: Player) -> None:
        with self._sessions.begin() as session:
            _update_player_row(session, player)

    def delete_player(self, player_id: PlayerId) -> None:
        with self._sessions.begin() as session:
            session.execute(delete(PlayerRow).where(PlayerRow.id == player_id))

    def apply_deal(self, game: Game, players: Sequence[Player]) -> None:
        """Write the game and every dealt player in one transaction."""

        with self._sessions.begin() as session:
            _update_game_row(session, game)
            for player in players:
                _update_player_row(session, player)

    def is_name_taken(self, game_id: GameId, name: str) -> bool:
        with self._sessions() as session:
            names = session.scalars(select(PlayerRow.name).where(PlayerRow.game_id == game_id))
            wanted = name.casefold()
            return any(existing.casefold() == wanted for existing in names)

    def get_vote(self, game_id: GameId, voter_id: PlayerId) -> Optional[Vote]:
        with self._sessions() as session:
            row = session.scalar(
                select(VoteRow).where(VoteRow.game_id == game_id, VoteRow.player_id == voter_id)
            )
            return _to_vote(row) if row else None

    def add_vote(self, vote: Vote) -> None:
        with self._sessions.begin() as session:
            session.add(_vote_row(vote))

    def update_vote(self, vote: Vote) -> None:
        with self._sessions.begin() as session:
            result = session.execute(
                update(VoteRow)
                .where(VoteRow.id == vote.vote_id)
                .values(target_id=vote.target_id, created_at=vote.cast_at)
            )
            if result.rowcount == 0:
                raise KeyError(f"Unknown vote id: {vote.vote_id}")

    def votes_for_game(self, game_id: GameId) -> List[Vote]:
        with self._sessions() as session:
            rows = session.scalars(
                select(VoteRow)
                .where(VoteRow.game_id == game_id)
                .order_by(VoteRow.created_at.desc())
            )
            return [_to_vote(row) for row in rows]

    def delete_votes_for_game(self, game_id: GameId) -> None:
        with self._sessions.begin() as session:
            session.execute(delete(VoteRow).where(VoteRow.game_id == game_id))


def _enable_foreign_keys(dbapi_connection: Any, connection_record: Any) -> None:
    cursor = dbapi_connection.cursor()
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _update_game_row(session: Session, game: Game) -> None:
    result = session.execute(
        update(GameRow)
        .where(GameRow.id == game.game_id)
        .values(
            code=game.code,
            theme=game.theme,
            status=game.status.value,
            created_at=game.created_at,
            started_at=game.started_at,
            ended_at=game.ended_at,
            config=game.config.to_dict(),
        )
    )
    if result.rowcount == 0:
        raise KeyError(f"Unknown game id: {game.game_id}")


def _update_player_row(session: Session, player: Player) -> None:
    result = session.execute(
        update(PlayerRow)
        .where(PlayerRow.id == player.player_id)
        .values(
            name=player.name,
            role=player.role_id,
            role_data=player.role.to_dict() if player.role is not None else None,
            is_alive=player.is_alive,
        )
    )
    if result.rowcount == 0:
        raise KeyError(f"Unknown player id: {player.player_id}")


def _game_row(game: Game) -> GameRow:
    return GameRow(
        id=game.game_id,
        code=game.code,
        theme=game.theme,
        status=game.status.value,
        created_at=game.created_at,
        started_at=game.started_at,
        ended_at=game.ended_at,
        config=game.config.to_dict(),
    )


def _to_game(row: GameRow) -> Game:
    return Game(
        game_id=row.id,
        code=row.code,
        theme=row.theme,
        status=GameStatus(row.status),
        created_at=row.created_at,
        config=GameConfig.from_dict(row.config),
        started_at=row.started_at,
        ended_at=row.ended_at,
    )


def _player_row(player: Player) -> PlayerRow:
    return PlayerRow(
        id=player.player_id,
        game_id=player.game_id,
        name=player.name,
        role=player.role_id,
        role_data=player.role.to_dict() if player.role is not None else None,
        is_alive=player.is_alive,
        joined_at=player.joined_at,
    )


def _to_player(row: PlayerRow) -> Player:
    return Player(
        player_id=row.id,
        game_id=row.game_id,
        name=row.name,
        joined_at=row.joined_at,
        role=RoleDefinition.from_dict(row.role_data) if row.role_data else None,
        is_alive=row.is_alive,
    )


def _vote_row(vote: Vote) -> VoteRow:
    return VoteRow(
        id=vote.vote_id,
        game_id=vote.game_id,
        player_id=vote.voter_id,
        target_id=vote.target_id,
        created_at=vote.cast_at,
    )


def _to_vote(row: VoteRow) -> Vote:
    return Vote(
        vote_id=row.id,
        game_id=row.game_id,
        voter_id=row.player_id,
        target_id=row.target_id,
        cast_at=row.created_at,
    )
