"""Role metadata and catalog data structures for Mafia themes."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Mapping, Optional, Sequence, Tuple

from .enums import AbilityPhase, Alignment
from .exceptions import ConfigurationError

RoleId = str
Distribution = Mapping[RoleId, int]

ABILITY_USES = ("unlimited", "limited")


@dataclass(frozen=True, slots=True)
class Ability:
    """A single action a role may take."""

    id: str
    name: str
    description: str
    phase: AbilityPhase
    target: Optional[str] = None
    collective: bool = False
    uses: str = "unlimited"
    max_uses: Optional[int] = None
    restrictions: Tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "phase": self.phase.value,
            "collective": self.collective,
            "uses": self.uses,
            "restrictions": list(self.restrictions),
        }
        if self.target is not None:
            data["target"] = self.target
        if self.max_uses is not None:
            data["max_uses"] = self.max_uses
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, context: str = "ability") -> "Ability":
        _ensure_mapping(data, context)
        ability_id = str(_require(data, "id", context))
        context = f"{context} '{ability_id}'"
        phase_raw = _require(data, "phase", context)
        try:
            phase = AbilityPhase(str(phase_raw).lower())
        except ValueError:
            raise ConfigurationError(
                f"{context}: invalid phase '{phase_raw}'. Must be night, day or passive"
            ) from None

        uses = str(data.get("uses", "unlimited")).lower()
        if uses not in ABILITY_USES:
            raise ConfigurationError(f"{context}: 'uses' must be 'unlimited' or 'limited'")
        max_uses = data.get("max_uses")
        if max_uses is not None and (
            isinstance(max_uses, bool) or not isinstance(max_uses, int) or max_uses < 1
        ):
            raise ConfigurationError(f"{context}: 'max_uses' must be a positive integer")
        if uses == "limited" and max_uses is None:
            raise ConfigurationError(f"{context}: limited abilities require 'max_uses'")

        target = data.get("target")
        return cls(
            id=ability_id,
            name=str(_require(data, "name", context)),
            description=str(data.get("description", "")),
            phase=phase,
            target=str(target) if target is not None else None,
            collective=bool(data.get("collective", False)),
            uses=uses,
            max_uses=max_uses,
            restrictions=tuple(str(item) for item in _list(data, "restrictions", context)),
        )


@dataclass(frozen=True, slots=True)
class Knowledge:
    """Information a role starts the game with."""

    type: str
    description: str

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.type, "description": self.description}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, context: str = "knowledge") -> "Knowledge":
        _ensure_mapping(data, context)
        return cls(
            type=str(_require(data, "type", context)),
            description=str(data.get("description", "")),
        )


@dataclass(frozen=True, slots=True)
class WinCondition:
    """Describes how a role wins."""

    type: str
    description: str
    target: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"type": self.type, "description": self.description}
        if self.target is not None:
            data["target"] = self.target
        return data

    @classmethod
    def from_dict(
        cls, data: Mapping[str, Any], *, context: str = "win_condition"
    ) -> "WinCondition":
        _ensure_mapping(data, context)
        target = data.get("target")
        return cls(
            type=str(_require(data, "type", context)),
            description=str(data.get("description", "")),
            target=str(target) if target is not None else None,
        )


@dataclass(frozen=True, slots=True)
class Flavor:
    """Optional presentation details for a role card."""

    icon: Optional[str] = None
    color: Optional[str] = None
    flavor_text: Optional[str] = None

    def merged(self, override: Optional["Flavor"]) -> "Flavor":
        """Return a copy with every field ``override`` sets taking precedence."""

        if override is None:
            return self
        return Flavor(
            icon=override.icon if override.icon is not None else self.icon,
            color=override.color if override.color is not None else self.color,
            flavor_text=(
                override.flavor_text if override.flavor_text is not None else self.flavor_text
            ),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            key: value
            for key, value in (
                ("icon", self.icon),
                ("color", self.color),
                ("flavor_text", self.flavor_text),
            )
            if value is not None
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, context: str = "flavor") -> "Flavor":
        _ensure_mapping(data, context)
        unknown = set(data) - {"icon", "color", "flavor_text"}
        if unknown:
            raise ConfigurationError(f"{context}: unknown keys {', '.join(sorted(unknown))}")
        return cls(
            icon=_optional_str(data.get("icon")),
            color=_optional_str(data.get("color")),
            flavor_text=_optional_str(data.get("flavor_text")),
        )


@dataclass(frozen=True, slots=True)
class RoleDefinition:
    """Canonical metadata for a single role card."""

    id: RoleId
    name: str
    alignment: Alignment
    description: str
    abilities: Tuple[Ability, ...] = ()
    knowledge: Tuple[Knowledge, ...] = ()
    win_condition: WinCondition = field(
        default_factory=lambda: WinCondition(type="team", description="")
    )
    card_instructions: Tuple[str, ...] = ()
    flavor: Optional[Flavor] = None

    @property
    def is_evil(self) -> bool:
        return self.alignment is Alignment.EVIL

    def to_dict(self) -> dict[str, Any]:
        """Convert the role into a JSON-serialisable dictionary."""

        data: dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "alignment": self.alignment.value,
            "description": self.description,
            "abilities": [ability.to_dict() for ability in self.abilities],
            "knowledge": [entry.to_dict() for entry in self.knowledge],
            "win_condition": self.win_condition.to_dict(),
            "card_instructions": list(self.card_instructions),
        }
        if self.flavor is not None:
            data["flavor"] = self.flavor.to_dict()
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, context: str = "role") -> "RoleDefinition":
        """Build a role from a dictionary produced by :meth:`to_dict` or a catalog file."""

        _ensure_mapping(data, context)
        role_id = str(_require(data, "id", context))
        context = f"role '{role_id}'"
        flavor_raw = data.get("flavor")
        return cls(
            id=role_id,
            name=str(_require(data, "name", context)),
            alignment=_parse_alignment(_require(data, "alignment", context), context),
            description=str(data.get("description", "")),
            abilities=_parse_abilities(_list(data, "abilities", context), context),
            knowledge=_parse_knowledge(_list(data, "knowledge", context), context),
            win_condition=WinCondition.from_dict(
                _require(data, "win_condition", context), context=f"{context} win_condition"
            ),
            card_instructions=tuple(
                str(item) for item in _list(data, "card_instructions", context)
            ),
            flavor=Flavor.from_dict(flavor_raw, context=f"{context} flavor")
            if flavor_raw is not None
            else None,
        )


ROLE_OVERRIDE_FIELDS = frozenset(
    {
        "name",
        "alignment",
        "description",
        "abilities",
        "knowledge",
        "win_condition",
        "card_instructions",
        "flavor",
    }
)


@dataclass(frozen=True, slots=True)
class RoleOverrides:
    """Field-level replacements a theme applies to a base role.

    ``None`` means "inherit from the base role".
    """

    name: Optional[str] = None
    alignment: Optional[Alignment] = None
    description: Optional[str] = None
    abilities: Optional[Tuple[Ability, ...]] = None
    knowledge: Optional[Tuple[Knowledge, ...]] = None
    win_condition: Optional[WinCondition] = None
    card_instructions: Optional[Tuple[str, ...]] = None
    flavor: Optional[Flavor] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, context: str = "overrides") -> "RoleOverrides":
        _ensure_mapping(data, context)
        unknown = set(data) - ROLE_OVERRIDE_FIELDS
        if unknown:
            raise ConfigurationError(
                f"{context}: cannot override {', '.join(sorted(unknown))}"
            )
        alignment = data.get("alignment")
        abilities = data.get("abilities")
        knowledge = data.get("knowledge")
        win_condition = data.get("win_condition")
        card_instructions = data.get("card_instructions")
        flavor = data.get("flavor")
        return cls(
            name=_optional_str(data.get("name")),
            alignment=_parse_alignment(alignment, context) if alignment is not None else None,
            description=_optional_str(data.get("description")),
            abilities=_parse_abilities(_as_list(abilities, context, "abilities"), context)
            if abilities is not None
            else None,
            knowledge=_parse_knowledge(_as_list(knowledge, context, "knowledge"), context)
            if knowledge is not None
            else None,
            win_condition=WinCondition.from_dict(win_condition, context=context)
            if win_condition is not None
            else None,
            card_instructions=tuple(
                str(item) for item in _as_list(card_instructions, context, "card_instructions")
            )
            if card_instructions is not None
            else None,
            flavor=Flavor.from_dict(flavor, context=f"{context} flavor")
            if flavor is not None
            else None,
        )


@dataclass(frozen=True, slots=True)
class RoleMapping:
    """Theme instruction re-skinning one base role."""

    base_role: RoleId
    overrides: RoleOverrides = field(default_factory=RoleOverrides)
    flavor: Optional[Flavor] = None

    @property
    def effective_flavor(self) -> Optional[Flavor]:
        """Mapping-level flavor wins over the flavor nested in ``overrides``."""

        return self.flavor if self.flavor is not None else self.overrides.flavor


@dataclass(frozen=True, slots=True)
class CatalogMetadata:
    """Descriptive metadata shipped with a role set."""

    game_name: str
    min_players: int
    max_players: int
    recommended_players: str = ""
    complexity: str = ""
    author: Optional[str] = None
    version: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "game_name": self.game_name,
            "min_players": self.min_players,
            "max_players": self.max_players,
            "recommended_players": self.recommended_players,
            "complexity": self.complexity,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any], *, context: str = "metadata") -> "CatalogMetadata":
        _ensure_mapping(data, context)
        min_players = _require(data, "min_players", context)
        max_players = _require(data, "max_players", context)
        for key, value in (("min_players", min_players), ("max_players", max_players)):
            if isinstance(value, bool) or not isinstance(value, int):
                raise ConfigurationError(f"{context}: '{key}' must be an integer")
        if min_players > max_players:
            raise ConfigurationError(f"{context}: 'min_players' exceeds 'max_players'")
        return cls(
            game_name=str(_require(data, "game_name", context)),
            min_players=min_players,
            max_players=max_players,
            recommended_players=str(data.get("recommended_players", "")),
            complexity=str(data.get("complexity", "")),
            author=_optional_str(data.get("author")),
            version=_optional_str(data.get("version")),
        )


@dataclass(frozen=True, slots=True)
class BaseRoleSet:
    """The classic rule set every theme is merged over."""

    roles: Tuple[RoleDefinition, ...]
    distribution_presets: Mapping[str, Mapping[RoleId, int]]
    metadata: CatalogMetadata
    death_messages: Tuple[str, ...] = ()
    schema_version: str = "1.0"


@dataclass(frozen=True, slots=True)
class ThemeRoleSet:
    """Theme-specific remappings and additions to the base role set."""

    theme_id: str
    theme_name: str
    metadata: CatalogMetadata
    role_mappings: Tuple[RoleMapping, ...] = ()
    new_roles: Tuple[RoleDefinition, ...] = ()
    distribution_presets: Mapping[str, Mapping[RoleId, int]] = field(default_factory=dict)
    base_theme: str = "classic"
    description: str = ""
    flavor_text: Mapping[str, str] = field(default_factory=dict)
    death_messages: Tuple[str, ...] = ()
    schema_version: str = "1.0"


def parse_base_role_set(data: Any) -> BaseRoleSet:
    """Validate raw catalog data and build a :class:`BaseRoleSet`."""

    context = "base role set"
    _ensure_mapping(data, context)
    roles = tuple(
        RoleDefinition.from_dict(raw, context=f"{context} role {index + 1}")
        for index, raw in enumerate(_list(data, "roles", context))
    )
    if not roles:
        raise ConfigurationError(f"{context}: at least one role is required")
    _ensure_unique_ids(roles, context)
    return BaseRoleSet(
        roles=roles,
        distribution_presets=parse_distribution_presets(
            data.get("role_distribution_presets") or {}, context
        ),
        metadata=CatalogMetadata.from_dict(
            _require(data, "metadata", context), context=f"{context} metadata"
        ),
        death_messages=_parse_death_messages(data, context),
        schema_version=str(data.get("schema_version", "1.0")),
    )


def parse_theme_role_set(data: Any) -> ThemeRoleSet:
    """Validate raw theme data and build a :class:`ThemeRoleSet`."""

    _ensure_mapping(data, "theme role set")
    theme_id = str(_require(data, "theme_id", "theme role set"))
    context = f"theme '{theme_id}'"

    mappings: list[RoleMapping] = []
    for index, raw in enumerate(_list(data, "role_mappings", context)):
        mapping_context = f"{context} mapping {index + 1}"
        _ensure_mapping(raw, mapping_context)
        flavor = raw.get("flavor")
        mappings.append(
            RoleMapping(
                base_role=str(_require(raw, "base_role", mapping_context)),
                overrides=RoleOverrides.from_dict(
                    raw.get("overrides") or {}, context=f"{mapping_context} overrides"
                ),
                flavor=Flavor.from_dict(flavor, context=f"{mapping_context} flavor")
                if flavor is not None
                else None,
            )
        )

    new_roles = tuple(
        RoleDefinition.from_dict(raw, context=f"{context} new role {index + 1}")
        for index, raw in enumerate(_list(data, "new_roles", context))
    )
    _ensure_unique_ids(new_roles, context)

    flavor_text = data.get("flavor_text") or {}
    _ensure_mapping(flavor_text, f"{context} flavor_text")

    return ThemeRoleSet(
        theme_id=theme_id,
        theme_name=str(data.get("theme_name", theme_id)),
        metadata=CatalogMetadata.from_dict(
            _require(data, "metadata", context), context=f"{context} metadata"
        ),
        role_mappings=tuple(mappings),
        new_roles=new_roles,
        distribution_presets=parse_distribution_presets(
            data.get("role_distribution_presets") or {}, context
        ),
        base_theme=str(data.get("base_theme", "classic")),
        description=str(data.get("description", "")),
        flavor_text={str(key): str(value) for key, value in flavor_text.items()},
        death_messages=_parse_death_messages(data, context),
        schema_version=str(data.get("schema_version", "1.0")),
    )


def parse_distribution_presets(
    data: Any, context: str = "presets"
) -> dict[str, dict[RoleId, int]]:
    """Validate ``{"7_players": {"villager": 5, ...}}`` style preset tables."""

    _ensure_mapping(data, f"{context} role_distribution_presets")
    presets: dict[str, dict[RoleId, int]] = {}
    for key, distribution in data.items():
        preset_context = f"{context} preset '{key}'"
        if preset_player_count(str(key)) is None:
            raise ConfigurationError(f"{preset_context}: keys must look like '7_players'")
        _ensure_mapping(distribution, preset_context)
        counts: dict[RoleId, int] = {}
        for role_id, count in distribution.items():
            if isinstance(count, bool) or not isinstance(count, int) or count < 0:
                raise ConfigurationError(
                    f"{preset_context}: count for '{role_id}' must be a non-negative integer"
                )
            counts[str(role_id)] = count
        presets[str(key)] = counts
    return presets


def preset_player_count(key: str) -> Optional[int]:
    """Return the player count encoded in a preset key such as ``"7_players"``."""

    prefix, _, suffix = key.partition("_")
    if suffix != "players" or not prefix.isdigit():
        return None
    return int(prefix)


def _parse_alignment(raw: Any, context: str) -> Alignment:
    try:
        return Alignment(str(raw).lower())
    except ValueError:
        raise ConfigurationError(
            f"{context}: invalid alignment '{raw}'. Must be good, evil or neutral"
        ) from None


def _parse_abilities(items: Sequence[Any], context: str) -> Tuple[Ability, ...]:
    return tuple(
        Ability.from_dict(item, context=f"{context} ability {index + 1}")
        for index, item in enumerate(items)
    )


def _parse_knowledge(items: Sequence[Any], context: str) -> Tuple[Knowledge, ...]:
    return tuple(
        Knowledge.from_dict(item, context=f"{context} knowledge {index + 1}")
        for index, item in enumerate(items)
    )


def _ensure_unique_ids(roles: Sequence[RoleDefinition], context: str) -> None:
    seen: set[RoleId] = set()
    for role in roles:
        if role.id in seen:
            raise ConfigurationError(f"{context}: duplicate role id '{role.id}'")
        seen.add(role.id)


def _ensure_mapping(data: Any, context: str) -> None:
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{context} must be a mapping")


def _require(data: Mapping[str, Any], key: str, context: str) -> Any:
    value = data.get(key)
    if value is None:
        raise ConfigurationError(f"{context}: missing '{key}'")
    return value


def _list(data: Mapping[str, Any], key: str, context: str) -> list[Any]:
    return _as_list(data.get(key) or [], context, key)


def _as_list(value: Any, context: str, key: str) -> list[Any]:
    if not isinstance(value, list):
        raise ConfigurationError(f"{context}: '{key}' must be a list")
    return value


def _optional_str(value: Any) -> Optional[str]:
    return str(value) if value is not None else None


def _parse_death_messages(data: Mapping[str, Any], context: str) -> Tuple[str, ...]:
    messages: list[str] = []
    for raw in _list(data, "death_messages", context):
        if not isinstance(raw, str) or not raw.strip():
            raise ConfigurationError(f"{context}: death messages must be non-empty strings")
        messages.append(raw.strip())
    return tuple(messages)
