from __future__ import annotations

import random
from collections import Counter

import pytest

from mafia.enums import Alignment
from mafia.exceptions import ConsistencyError, ValidationError
from mafia.pool import generate_pool, shuffle_in_place
from mafia.roles import RoleDefinition, WinCondition


def _catalog() -> tuple[RoleDefinition, ...]:
    def role(role_id: str, alignment: Alignment) -> RoleDefinition:
        return RoleDefinition(
            id=role_id,
            name=role_id.title(),
            alignment=alignment,
            description="",
            win_condition=WinCondition(type="team", description=""),
        )

    return (
        role("villager", Alignment.GOOD),
        role("mafia", Alignment.EVIL),
        role("detective", Alignment.GOOD),
    )


def test_pool_matches_distribution_multiset() -> None:
    distribution = {"villager": 5, "mafia": 2, "detective": 1}
    pool = generate_pool(distribution, _catalog(), rng=random.Random(7))

    assert len(pool) == 8
    assert Counter(role.id for role in pool) == Counter(distribution)


def test_zero_counts_contribute_nothing() -> None:
    pool = generate_pool({"villager": 3, "mafia": 0}, _catalog(), rng=random.Random(1))

    assert [role.id for role in pool] == ["villager"] * 3


def test_empty_distribution_gives_empty_pool() -> None:
    assert generate_pool({}, _catalog()) == []


def test_same_seed_gives_same_order() -> None:
    distribution = {"villager": 5, "mafia": 2, "detective": 1}
    first = generate_pool(distribution, _catalog(), rng=random.Random(42))
    second = generate_pool(distribution, _catalog(), rng=random.Random(42))

    assert [role.id for role in first] == [role.id for role in second]


def test_unknown_role_fails_without_partial_pool() -> None:
    with pytest.raises(ConsistencyError, match='Role "werewolf" not found in theme "noir"'):
        generate_pool({"villager": 2, "werewolf": 1}, _catalog(), theme="noir")


@pytest.mark.parametrize("count", [-1, 1.5, True, "2"])
def test_invalid_counts_are_rejected(count: object) -> None:
    with pytest.raises(ValidationError):
        generate_pool({"villager": count}, _catalog())  # type: ignore[dict-item]


def test_shuffle_preserves_elements() -> None:
    items = list(range(20))
    shuffle_in_place(items, random.Random(3))

    assert sorted(items) == list(range(20))


def test_shuffle_reaches_every_permutation_of_three() -> None:
    rng = random.Random(0)
    seen = set()
    for _ in range(300):
        items = ["a", "b", "c"]
        shuffle_in_place(items, rng)
        seen.add(tuple(items))

    assert len(seen) == 6
