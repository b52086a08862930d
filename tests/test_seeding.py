import random

import pytest

from rallybracket.formats.seeding import (
    apply_seeding,
    bracket_size,
    calculate_byes,
    order_teams,
    seeding_pattern,
)
from rallybracket.models.team import Team


def _teams(count, seeded=None):
    seeded = count if seeded is None else seeded
    return [
        Team(
            id=f"t{i}",
            player1_id=f"p{i}a",
            player2_id=f"p{i}b",
            seed=i if i <= seeded else None,
        )
        for i in range(1, count + 1)
    ]


def test_seeding_pattern_for_eight():
    assert seeding_pattern(8) == [1, 8, 4, 5, 3, 6, 2, 7]


def test_seeding_pattern_small_sizes():
    assert seeding_pattern(1) == [1]
    assert seeding_pattern(2) == [1, 2]
    assert seeding_pattern(4) == [1, 4, 2, 3]


@pytest.mark.parametrize("size", [2, 4, 8, 16, 32, 64])
def test_top_seeds_land_in_separate_blocks(size):
    pattern = seeding_pattern(size)
    assert sorted(pattern) == list(range(1, size + 1))

    # seeds 1 and 2 sit in different halves, so they can only meet in the final
    assert pattern.index(1) < size // 2 <= pattern.index(2)

    top = 2
    while top <= size:
        block = size // top
        blocks = {pattern.index(seed) // block for seed in range(1, top + 1)}
        assert len(blocks) == top
        top *= 2


def test_seeding_pattern_rejects_non_power_of_two():
    with pytest.raises(ValueError):
        seeding_pattern(6)


def test_bracket_size_and_byes():
    assert bracket_size(1) == 1
    assert bracket_size(2) == 2
    assert bracket_size(5) == 8
    assert bracket_size(8) == 8
    assert bracket_size(9) == 16
    assert calculate_byes(5) == 3
    assert calculate_byes(8) == 0
    assert calculate_byes(12) == 4


def test_apply_seeding_places_byes_against_top_seeds():
    line = apply_seeding(_teams(5))
    assert line == ["t1", None, "t4", "t5", "t3", None, "t2", None]


def test_apply_seeding_full_bracket_has_no_byes():
    line = apply_seeding(_teams(8))
    assert line == ["t1", "t8", "t4", "t5", "t3", "t6", "t2", "t7"]


def test_order_teams_puts_seeded_first():
    ordered = order_teams(_teams(6, seeded=2), random.Random(7))
    assert [t.id for t in ordered[:2]] == ["t1", "t2"]
    assert sorted(t.id for t in ordered[2:]) == ["t3", "t4", "t5", "t6"]


def test_unseeded_order_follows_random_source():
    teams = _teams(10, seeded=0)
    first = apply_seeding(teams, random.Random(3))
    second = apply_seeding(teams, random.Random(3))
    assert first == second
    assert sorted(t for t in first if t is not None) == sorted(t.id for t in teams)
    assert first.count(None) == 6
