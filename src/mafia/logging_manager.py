"""Audit logging of game master actions."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Mapping

if TYPE_CHECKING:
    from .game_state import Game, GameId
    from .players import Player
    from .setup import AssignmentResult
    from .votes import EliminationResult


class LoggingManager:
    """Writes one audit file per game for debugging and post-game review."""

    def __init__(self, enabled: bool = False, base_dir: Path | None = None) -> None:
        """Initialize the logging manager.

        Args:
            enabled: Whether audit logging is enabled
            base_dir: Base directory for logs (defaults to ./logs)
        """
        self.enabled = enabled
        self.game_files: dict[GameId, Path] = {}
        if not enabled:
            return

        # Create timestamped log directory
        if base_dir is None:
            base_dir = Path("logs")
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        self.log_dir = base_dir / timestamp
        self.log_dir.mkdir(parents=True, exist_ok=True)

    def _get_log_file(self, game_id: GameId) -> Path:
        """Get or create the log file path for a game."""
        if game_id not in self.game_files:
            self.game_files[game_id] = self.log_dir / f"game_{game_id}.log"
        return self.game_files[game_id]

    def _write_log(self, game_id: GameId, content: str) -> None:
        """Write content to a game's log file."""
        if not self.enabled:
            return

        log_file = self._get_log_file(game_id)
        with open(log_file, "a", encoding="utf-8") as f:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            f.write(f"\n{'=' * 80}\n")
            f.write(f"[{timestamp}]\n")
            f.write(content)
            f.write("\n")

    def log_game_created(self, game: Game) -> None:
        if not self.enabled:
            return

        content = f"""GAME CREATED

  Code: {game.code}
  Theme: {game.theme}
  Player Count: {game.config.player_count}
  Distribution: {self._format_distribution(game.config.role_distribution)}
"""
        self._write_log(game.game_id, content)

    def log_roles_dealt(self, game: Game, result: AssignmentResult, *, reroll: bool) -> None:
        """Log which role every player received."""
        if not self.enabled:
            return

        heading = "ROLES REROLLED" if reroll else "CARDS ISSUED"
        lines = [f"  {player.name}: {player.role_id}" for player in result.assigned]
        lines.extend(f"  {player.name}: (waiting)" for player in result.waiting)
        content = f"""{heading}

  Roles Assigned: {result.roles_assigned}
  Players Waiting: {result.waiting_count}

ASSIGNMENTS:
{chr(10).join(lines)}
"""
        self._write_log(game.game_id, content)

    def log_tally(self, game_id: GameId, result: EliminationResult) -> None:
        if not self.enabled:
            return

        summary = ", ".join(f"{pid}={count}" for pid, count in result.vote_summary.items())
        content = f"""VOTE TALLY

  Outcome: {result.outcome.value}
  Votes: {summary or '(none)'}
"""
        if result.eliminated is not None:
            content += (
                f"  Eliminated: {result.eliminated.name} ({result.vote_count} votes)"
                f"{' after tie' if result.tie_resolved else ''}\n"
            )
            if result.death_message:
                content += f"  Announcement: {result.eliminated.name} {result.death_message}\n"
        if result.tied:
            tied = ", ".join(leader.player_id for leader in result.tied)
            content += f"  Tied: {tied}\n"
        self._write_log(game_id, content)

    def log_status_change(self, player: Player) -> None:
        if not self.enabled:
            return

        state = "ALIVE" if player.is_alive else "ELIMINATED"
        content = f"""PLAYER STATUS

  Player: {player.name} ({player.player_id})
  Status: {state}
  Role: {player.role_id}
"""
        self._write_log(player.game_id, content)

    def _format_distribution(self, distribution: Mapping[str, int]) -> str:
        return ", ".join(f"{role} x{count}" for role, count in distribution.items())
