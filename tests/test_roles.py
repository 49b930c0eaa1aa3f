from __future__ import annotations

from typing import Any

import pytest

from mafia.enums import AbilityPhase, Alignment
from mafia.exceptions import ConfigurationError
from mafia.roles import (
    Ability,
    Flavor,
    RoleDefinition,
    RoleOverrides,
    parse_base_role_set,
    parse_distribution_presets,
    parse_theme_role_set,
    preset_player_count,
)


def _role_data(role_id: str = "villager", **extra: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "id": role_id,
        "name": role_id.title(),
        "alignment": "good",
        "description": "A plain role.",
        "win_condition": {"type": "team", "description": "Outlast the mafia."},
    }
    data.update(extra)
    return data


def _base_data(**extra: Any) -> dict[str, Any]:
    data: dict[str, Any] = {
        "metadata": {"game_name": "Mafia", "min_players": 7, "max_players": 16},
        "roles": [_role_data("villager"), _role_data("mafia", alignment="evil")],
    }
    data.update(extra)
    return data


def test_role_definition_round_trips_through_dict() -> None:
    role = RoleDefinition.from_dict(
        _role_data(
            "doctor",
            abilities=[
                {"id": "protect", "name": "Protect", "phase": "night", "target": "any_player"},
                {
                    "id": "self_protect",
                    "name": "Self Protect",
                    "phase": "night",
                    "uses": "limited",
                    "max_uses": 1,
                },
            ],
            card_instructions=["Wake up at night."],
            flavor={"icon": "+", "color": "#ffffff"},
        )
    )

    assert role.abilities[0].phase is AbilityPhase.NIGHT
    assert role.abilities[1].max_uses == 1
    assert role.flavor == Flavor(icon="+", color="#ffffff")
    assert RoleDefinition.from_dict(role.to_dict()) == role


def test_alignment_parsing_is_case_insensitive_and_rejects_unknowns() -> None:
    assert RoleDefinition.from_dict(_role_data(alignment="EVIL")).is_evil

    with pytest.raises(ConfigurationError, match="invalid alignment"):
        RoleDefinition.from_dict(_role_data(alignment="chaotic"))


def test_role_requires_win_condition() -> None:
    data = _role_data()
    del data["win_condition"]

    with pytest.raises(ConfigurationError, match="missing 'win_condition'"):
        RoleDefinition.from_dict(data)


def test_limited_ability_requires_max_uses() -> None:
    with pytest.raises(ConfigurationError, match="max_uses"):
        Ability.from_dict({"id": "x", "name": "X", "phase": "day", "uses": "limited"})


def test_flavor_merge_keeps_unset_fields() -> None:
    base = Flavor(icon="A", color="red", flavor_text="base")
    merged = base.merged(Flavor(color="green"))

    assert merged == Flavor(icon="A", color="green", flavor_text="base")
    assert base.merged(None) is base


def test_overrides_reject_unknown_fields() -> None:
    with pytest.raises(ConfigurationError, match="cannot override id"):
        RoleOverrides.from_dict({"id": "renamed"})


def test_base_role_set_rejects_duplicate_ids() -> None:
    data = _base_data(roles=[_role_data("villager"), _role_data("villager")])

    with pytest.raises(ConfigurationError, match="duplicate role id 'villager'"):
        parse_base_role_set(data)


def test_base_role_set_requires_roles() -> None:
    with pytest.raises(ConfigurationError, match="at least one role"):
        parse_base_role_set(_base_data(roles=[]))


def test_theme_role_set_parses_mappings_and_new_roles() -> None:
    theme = parse_theme_role_set(
        {
            "theme_id": "noir",
            "theme_name": "Noir",
            "metadata": {"game_name": "Mafia: Noir", "min_players": 7, "max_players": 12},
            "role_mappings": [
                {
                    "base_role": "mafia",
                    "overrides": {"name": "Mobster", "alignment": "evil"},
                    "flavor": {"icon": "H"},
                }
            ],
            "new_roles": [_role_data("informant", alignment="neutral")],
            "role_distribution_presets": {"7_players": {"villager": 5, "mafia": 2}},
        }
    )

    mapping = theme.role_mappings[0]
    assert mapping.overrides.name == "Mobster"
    assert mapping.overrides.alignment is Alignment.EVIL
    assert mapping.effective_flavor == Flavor(icon="H")
    assert theme.new_roles[0].alignment is Alignment.NEUTRAL
    assert theme.distribution_presets == {"7_players": {"villager": 5, "mafia": 2}}


def test_distribution_presets_validate_keys_and_counts() -> None:
    with pytest.raises(ConfigurationError, match="7_players"):
        parse_distribution_presets({"seven": {"villager": 7}})
    with pytest.raises(ConfigurationError, match="non-negative"):
        parse_distribution_presets({"7_players": {"villager": -1}})


def test_preset_player_count() -> None:
    assert preset_player_count("12_players") == 12
    assert preset_player_count("players") is None
    assert preset_player_count("x_players") is None
