"""Merging of theme role sets over the base role set."""

from __future__ import annotations

import warnings
from typing import Dict, Optional, Tuple

from .exceptions import RoleMergeWarning
from .roles import (
    BaseRoleSet,
    RoleDefinition,
    RoleId,
    RoleMapping,
    ThemeRoleSet,
    preset_player_count,
)


def merge_role(base_role: RoleDefinition, mapping: RoleMapping) -> RoleDefinition:
    """Apply a theme mapping to ``base_role``.

    Scalars and the structured fields (abilities, knowledge, win condition,
    card instructions) are replaced wholesale when the mapping supplies them.
    Flavor is merged field by field.
    """

    overrides = mapping.overrides
    flavor_override = mapping.effective_flavor
    if base_role.flavor is None:
        flavor = flavor_override
    else:
        flavor = base_role.flavor.merged(flavor_override)

    return RoleDefinition(
        id=base_role.id,
        name=_pick(overrides.name, base_role.name),
        alignment=_pick(overrides.alignment, base_role.alignment),
        description=_pick(overrides.description, base_role.description),
        abilities=_pick(overrides.abilities, base_role.abilities),
        knowledge=_pick(overrides.knowledge, base_role.knowledge),
        win_condition=_pick(overrides.win_condition, base_role.win_condition),
        card_instructions=_pick(overrides.card_instructions, base_role.card_instructions),
        flavor=flavor,
    )


def merge_roles(
    base: BaseRoleSet, theme: Optional[ThemeRoleSet]
) -> Tuple[RoleDefinition, ...]:
    """Build the effective role catalog for ``theme``.

    Mapped roles come first in mapping order, then untouched base roles in base
    order, then the theme's new roles. Problems in theme data are reported with
    :class:`RoleMergeWarning` and skipped so the rest of the catalog survives.
    """

    if theme is None:
        return base.roles

    base_by_id = {role.id: role for role in base.roles}
    merged: list[RoleDefinition] = []
    mapped_ids: set[RoleId] = set()

    for mapping in theme.role_mappings:
        base_role = base_by_id.get(mapping.base_role)
        if base_role is None:
            warnings.warn(
                f"Base role '{mapping.base_role}' not found for theme '{theme.theme_id}' mapping",
                RoleMergeWarning,
                stacklevel=2,
            )
            continue
        if mapping.base_role in mapped_ids:
            warnings.warn(
                f"Base role '{mapping.base_role}' mapped more than once by theme "
                f"'{theme.theme_id}'; keeping the first mapping",
                RoleMergeWarning,
                stacklevel=2,
            )
            continue
        merged.append(merge_role(base_role, mapping))
        mapped_ids.add(mapping.base_role)

    merged.extend(role for role in base.roles if role.id not in mapped_ids)

    known_ids = {role.id for role in merged}
    for role in theme.new_roles:
        if role.id in known_ids:
            warnings.warn(
                f"Theme '{theme.theme_id}' role '{role.id}' duplicates an existing role id",
                RoleMergeWarning,
                stacklevel=2,
            )
            continue
        merged.append(role)
        known_ids.add(role.id)

    return tuple(merged)


def role_distribution(
    player_count: int,
    base: BaseRoleSet,
    theme: Optional[ThemeRoleSet],
) -> Optional[Dict[RoleId, int]]:
    """Pick the distribution preset that fits ``player_count``.

    Theme presets replace the base presets when the theme defines any. An exact
    ``"<n>_players"`` key wins; otherwise the largest preset not above
    ``player_count`` is used.
    """

    presets = theme.distribution_presets if theme and theme.distribution_presets else None
    if presets is None:
        presets = base.distribution_presets
    if not presets:
        return None

    exact = presets.get(f"{player_count}_players")
    if exact is not None:
        return dict(exact)

    best_key: Optional[str] = None
    best_count = -1
    for key in presets:
        count = preset_player_count(key)
        if count is not None and best_count < count <= player_count:
            best_key, best_count = key, count

    return dict(presets[best_key]) if best_key is not None else None


def _pick(override, fallback):
    return override if override is not None else fallback
