"""Command line game master for Mafia sessions stored in SQLite."""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import replace
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

from .config_loader import load_config_file
from .exceptions import (
    ConfigurationError,
    ConsistencyError,
    NotFoundError,
    StateConflictError,
    ValidationError,
)
from .game_state import Game
from .logging_manager import LoggingManager
from .persistence import GameSnapshot
from .service import GameService
from .settings import Settings
from .setup import AssignmentResult
from .store import SqliteGameStore

CONFIG_ENV_VAR = "MAFIA_CONFIG"

DOMAIN_ERRORS = (
    ConfigurationError,
    ConsistencyError,
    NotFoundError,
    StateConflictError,
    ValidationError,
    FileNotFoundError,
)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="mafia", description="Run Mafia party games.")
    parser.add_argument(
        "--config",
        "-c",
        help=f"YAML settings file (defaults to ${CONFIG_ENV_VAR} when set)",
    )
    parser.add_argument("--database", help="SQLite database path, overriding the settings")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("themes", help="List available themes")

    roles = sub.add_parser("roles", help="List the merged roles of a theme")
    roles.add_argument("theme")

    create = sub.add_parser("create", help="Create a game waiting for players")
    create.add_argument(
        "theme", nargs="?", help="Theme id (defaults to the configured default_theme)"
    )
    create.add_argument("player_count", type=int)

    join = sub.add_parser("join", help="Join a waiting game by code")
    join.add_argument("code")
    join.add_argument("name")

    issue = sub.add_parser("issue", help="Deal role cards and start the game")
    issue.add_argument("game")

    reroll = sub.add_parser("reroll", help="Deal a fresh set of roles")
    reroll.add_argument("game")

    vote = sub.add_parser("vote", help="Cast or change a vote")
    vote.add_argument("voter")
    vote.add_argument("target")

    tally = sub.add_parser("tally", help="Resolve the current vote round")
    tally.add_argument("game")
    tally.add_argument("--target", help="Player to eliminate when the vote is tied")

    clear = sub.add_parser("clear-votes", help="Discard every vote in the game")
    clear.add_argument("game")

    status = sub.add_parser("status", help="Show a game and its players")
    status.add_argument("game")
    status.add_argument("--admin", action="store_true", help="Reveal every role")

    end = sub.add_parser("end", help="End a game")
    end.add_argument("game")

    export = sub.add_parser("export", help="Write a JSON recap of a game")
    export.add_argument("game")
    export.add_argument("path")

    return parser


def load_settings(config_path: Optional[str]) -> Settings:
    """Settings from ``--config``, then ``$MAFIA_CONFIG``, then defaults."""

    path = config_path or os.environ.get(CONFIG_ENV_VAR)
    if not path:
        return Settings()
    return load_config_file(path)


def main(argv: Optional[Sequence[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = load_settings(args.config)
        if args.database:
            settings = replace(settings, database_path=Path(args.database))
        store = SqliteGameStore(settings.database_path)
    except DOMAIN_ERRORS as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    log_mgr = (
        LoggingManager(enabled=True, base_dir=settings.log_dir)
        if settings.enhanced_logging
        else None
    )
    service = GameService(store, settings=settings, logging_manager=log_mgr)
    try:
        COMMANDS[args.command](service, args)
    except DOMAIN_ERRORS as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    finally:
        store.close()
    return 0


def _resolve_game(service: GameService, ref: str) -> Game:
    """Accept either a game id or a join code."""

    game = service.store.get_game(ref)
    if game is not None:
        return game
    return service.get_game_by_code(ref)


def _cmd_themes(service: GameService, args: argparse.Namespace) -> None:
    for theme_id in service.catalog.available_themes():
        metadata = service.catalog.theme_metadata(theme_id)
        print(f"{theme_id}: {metadata.game_name} ({metadata.min_players}-{metadata.max_players})")


def _cmd_roles(service: GameService, args: argparse.Namespace) -> None:
    for role in service.catalog.roles_for_theme(args.theme):
        print(f"{role.id}: {role.name} [{role.alignment.value}]")


def _cmd_create(service: GameService, args: argparse.Namespace) -> None:
    game = service.create_game(args.theme, args.player_count)
    print(f"Created game {game.game_id}")
    print(f"Join code: {game.code}")
    for role_id, count in game.config.role_distribution.items():
        print(f"  {role_id} x{count}")


def _cmd_join(service: GameService, args: argparse.Namespace) -> None:
    player = service.join_game(args.code, args.name)
    print(f"{player.name} joined as {player.player_id}")


def _cmd_issue(service: GameService, args: argparse.Namespace) -> None:
    game = _resolve_game(service, args.game)
    _print_deal(service.issue_cards(game.game_id))


def _cmd_reroll(service: GameService, args: argparse.Namespace) -> None:
    game = _resolve_game(service, args.game)
    _print_deal(service.reroll_roles(game.game_id))


def _cmd_vote(service: GameService, args: argparse.Namespace) -> None:
    vote = service.submit_vote(args.voter, args.target)
    voter = service.get_player(vote.voter_id)
    target = service.get_player(vote.target_id)
    print(f"{voter.name} votes for {target.name}")


def _cmd_tally(service: GameService, args: argparse.Namespace) -> None:
    game = _resolve_game(service, args.game)
    result = service.tally_votes(game.game_id, args.target)
    names = {p.player_id: p.name for p in service.store.players_for_game(game.game_id)}
    for player_id, count in sorted(result.vote_summary.items(), key=lambda item: -item[1]):
        print(f"  {names.get(player_id, player_id)}: {count}")
    if result.eliminated is not None:
        print(f"{result.eliminated.name} was eliminated with {result.vote_count} votes")
        if result.death_message:
            print(f"{result.eliminated.name} {result.death_message}")
    elif result.is_tie:
        tied = ", ".join(names.get(leader.player_id, leader.player_id) for leader in result.tied)
        print(f"Tie between {tied}; rerun with --target to break it")
    else:
        print("No votes cast")


def _cmd_clear_votes(service: GameService, args: argparse.Namespace) -> None:
    game = _resolve_game(service, args.game)
    service.clear_votes(game.game_id)
    print("Votes cleared")


def _cmd_status(service: GameService, args: argparse.Namespace) -> None:
    game = _resolve_game(service, args.game)
    print(f"Game {game.game_id} ({game.code})")
    print(f"Theme: {game.theme}  Status: {game.status.value}")
    if args.admin:
        for entry in service.admin_view(game.game_id)["players"]:
            state = "alive" if entry["is_alive"] else "eliminated"
            print(f"  {entry['name']}: {entry['role'] or '(waiting)'} [{state}]")
        return
    for entry in service.player_roster(game.game_id):
        if entry["is_alive"]:
            print(f"  {entry['name']}")
        else:
            print(f"  {entry['name']}: {entry['role']} [eliminated]")


def _cmd_end(service: GameService, args: argparse.Namespace) -> None:
    game = _resolve_game(service, args.game)
    service.end_game(game.game_id)
    print(f"Game {game.code} ended")


def _cmd_export(service: GameService, args: argparse.Namespace) -> None:
    game = _resolve_game(service, args.game)
    GameSnapshot.capture(service.store, game.game_id).save(args.path)
    print(f"Wrote {args.path}")


def _print_deal(result: AssignmentResult) -> None:
    print(f"Roles assigned: {result.roles_assigned}")
    if result.waiting:
        names = ", ".join(player.name for player in result.waiting)
        print(f"Waiting for the next game: {names}")


COMMANDS: Dict[str, Callable[[GameService, argparse.Namespace], None]] = {
    "themes": _cmd_themes,
    "roles": _cmd_roles,
    "create": _cmd_create,
    "join": _cmd_join,
    "issue": _cmd_issue,
    "reroll": _cmd_reroll,
    "vote": _cmd_vote,
    "tally": _cmd_tally,
    "clear-votes": _cmd_clear_votes,
    "status": _cmd_status,
    "end": _cmd_end,
    "export": _cmd_export,
}


if __name__ == "__main__":
    sys.exit(main())
