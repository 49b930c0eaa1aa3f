"""Role pool generation for issuing and rerolling cards."""

from __future__ import annotations

import random
from typing import List, MutableSequence, Optional, Sequence, TypeVar

from .exceptions import ConsistencyError, ValidationError
from .roles import Distribution, RoleDefinition

T = TypeVar("T")


def validate_distribution(distribution: Distribution) -> None:
    """Ensure every count in ``distribution`` is a non-negative integer."""

    for role_id, count in distribution.items():
        if isinstance(count, bool) or not isinstance(count, int):
            raise ValidationError(f"Count for role '{role_id}' must be an integer")
        if count < 0:
            raise ValidationError(f"Count for role '{role_id}' may not be negative")


def generate_pool(
    distribution: Distribution,
    catalog: Sequence[RoleDefinition],
    *,
    rng: Optional[random.Random] = None,
    theme: str = "classic",
) -> List[RoleDefinition]:
    """Expand ``distribution`` into a shuffled list of role references.

    Every role id must exist in ``catalog``; otherwise no pool is produced.
    """

    validate_distribution(distribution)
    roles_by_id = {role.id: role for role in catalog}

    pool: List[RoleDefinition] = []
    for role_id, count in distribution.items():
        role = roles_by_id.get(role_id)
        if role is None:
            raise ConsistencyError(f'Role "{role_id}" not found in theme "{theme}"')
        pool.extend([role] * count)

    shuffle_in_place(pool, rng or random.Random())
    return pool


def shuffle_in_place(items: MutableSequence[T], rng: random.Random) -> None:
    """Fisher-Yates shuffle: every permutation is equally likely."""

    for i in range(len(items) - 1, 0, -1):
        j = rng.randint(0, i)
        items[i], items[j] = items[j], items[i]
