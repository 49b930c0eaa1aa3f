from __future__ import annotations

from pathlib import Path

import pytest

from mafia.catalog import get_role_catalog
from mafia.cli import main
from mafia.persistence import GameSnapshot


@pytest.fixture(autouse=True)
def _no_env_config(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.delenv("MAFIA_CONFIG", raising=False)


def _run(capsys: pytest.CaptureFixture[str], db: Path, *args: str) -> tuple[int, str, str]:
    code = main(["--database", str(db), *args])
    captured = capsys.readouterr()
    return code, captured.out, captured.err


def _last_word(output: str, prefix: str) -> str:
    line = next(line for line in output.splitlines() if line.startswith(prefix))
    return line.split()[-1]


def test_themes_and_roles(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = tmp_path / "mafia.db"

    code, out, _ = _run(capsys, db, "themes")
    assert code == 0
    assert out.splitlines()[0].startswith("classic: Mafia")
    assert "harry-potter" in out

    code, out, _ = _run(capsys, db, "roles", "harry-potter")
    assert code == 0
    assert "mafia: Death Eater [evil]" in out
    assert "double_agent: Severus Snape [good]" in out


def test_full_session(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = tmp_path / "mafia.db"

    code, out, _ = _run(capsys, db, "create", "classic", "7")
    assert code == 0
    game_id = _last_word(out, "Created game")
    join_code = _last_word(out, "Join code:")

    player_ids = []
    for idx in range(7):
        code, out, _ = _run(capsys, db, "join", join_code.lower(), f"Player {idx}")
        assert code == 0
        player_ids.append(out.split()[-1])

    code, out, _ = _run(capsys, db, "issue", join_code)
    assert code == 0
    assert "Roles assigned: 7" in out

    _run(capsys, db, "vote", player_ids[0], player_ids[1])
    _run(capsys, db, "vote", player_ids[2], player_ids[1])
    code, out, _ = _run(capsys, db, "tally", game_id)
    assert code == 0
    assert "Player 1 was eliminated with 2 votes" in out
    announcement = out.splitlines()[-1]
    assert announcement.startswith("Player 1 ")
    assert announcement[len("Player 1 ") :] in get_role_catalog().death_messages("classic")

    code, out, _ = _run(capsys, db, "status", game_id)
    assert "Status: active" in out
    assert "Player 1: " in out and "[eliminated]" in out

    code, out, _ = _run(capsys, db, "status", game_id, "--admin")
    assert out.count("[alive]") == 6

    recap = tmp_path / "recap.json"
    code, _, _ = _run(capsys, db, "export", game_id, str(recap))
    assert code == 0
    assert len(GameSnapshot.load(recap).players) == 7

    code, out, _ = _run(capsys, db, "end", game_id)
    assert code == 0
    assert f"Game {join_code} ended" in out


def test_tie_needs_target(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = tmp_path / "mafia.db"
    _, out, _ = _run(capsys, db, "create", "classic", "7")
    join_code = _last_word(out, "Join code:")
    ids = []
    for idx in range(7):
        _, out, _ = _run(capsys, db, "join", join_code, f"P{idx}")
        ids.append(out.split()[-1])
    _run(capsys, db, "issue", join_code)
    _run(capsys, db, "vote", ids[0], ids[1])
    _run(capsys, db, "vote", ids[1], ids[0])

    code, out, _ = _run(capsys, db, "tally", join_code)
    assert code == 0
    assert "Tie between P0, P1" in out

    code, out, _ = _run(capsys, db, "tally", join_code, "--target", ids[0])
    assert "P0 was eliminated with 1 votes" in out


def test_domain_errors_exit_non_zero(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    db = tmp_path / "mafia.db"

    code, _, err = _run(capsys, db, "create", "atlantis", "7")
    assert code == 1
    assert err.strip() == "Error: Unknown theme: atlantis"

    code, _, err = _run(capsys, db, "issue", "NOPE42")
    assert code == 1
    assert err.startswith("Error: Game not found")


def test_config_from_environment(
    tmp_path: Path, capsys: pytest.CaptureFixture[str], monkeypatch: pytest.MonkeyPatch
) -> None:
    config = tmp_path / "mafia.yaml"
    config.write_text("database_path: games.db\nmin_players: 9\n", encoding="utf-8")
    monkeypatch.setenv("MAFIA_CONFIG", str(config))

    assert main(["create", "classic", "8"]) == 1
    assert "at least 9" in capsys.readouterr().err
    assert main(["create", "classic", "9"]) == 0
    assert (tmp_path / "games.db").exists()


def test_broken_config_is_reported(tmp_path: Path, capsys: pytest.CaptureFixture[str]) -> None:
    config = tmp_path / "bad.yaml"
    config.write_text("colour: blue\n", encoding="utf-8")

    assert main(["--config", str(config), "themes"]) == 1
    assert "Unknown config keys: colour" in capsys.readouterr().err


def test_create_uses_configured_default_theme(
    tmp_path: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    config = tmp_path / "mafia.yaml"
    config.write_text("default_theme: harry-potter\n", encoding="utf-8")
    db = tmp_path / "mafia.db"

    code = main(["--config", str(config), "--database", str(db), "create", "7"])
    out = capsys.readouterr().out
    assert code == 0
    join_code = _last_word(out, "Join code:")

    code, out, _ = _run(capsys, db, "status", join_code)
    assert "Theme: harry-potter" in out

    code, out, _ = _run(capsys, db, "create", "classic", "7")
    assert code == 0
    code, out, _ = _run(capsys, db, "status", _last_word(out, "Join code:"))
    assert "Theme: classic" in out
