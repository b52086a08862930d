"""Bracket seeding.

Seeded teams are ordered by seed, unseeded teams are shuffled behind them,
and the resulting seed list is laid out with the standard bracket
permutation so the strongest seeds meet as late as possible:

    2 -> [1, 2]
    4 -> [1, 4, 2, 3]
    8 -> [1, 8, 4, 5, 3, 6, 2, 7]

Positions whose seed exceeds the number of entrants are byes.
"""

# Rally Bracket
# Copyright (C) 2025  Rally Bracket developers
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <http://www.gnu.org/licenses/>.

import random
from typing import List, Optional, Sequence

from rallybracket.models.team import Team
from rallybracket.type_hints import SeedLine
from rallybracket.utils import setup_logger

logger = setup_logger(__name__)


def bracket_size(team_count: int) -> int:
    """Smallest power of two that holds ``team_count`` entrants."""
    size = 1
    while size < team_count:
        size *= 2
    return size


def calculate_byes(team_count: int) -> int:
    """Number of byes needed to fill the bracket."""
    return bracket_size(team_count) - team_count


def seeding_pattern(size: int) -> List[int]:
    """Bracket order of seeds 1..size for a power-of-two ``size``.

    Each doubling pairs every seed ``s`` with ``size + 1 - s``; the lower
    half's pairs are then mirrored so the two halves reflect each other.
    For every k, the top 2**k seeds land in different blocks of
    ``size / 2**k`` positions.
    """
    if size < 1 or size & (size - 1):
        raise ValueError(f"Bracket size must be a power of two, got {size}")
    if size == 1:
        return [1]

    pattern = [1, 2]
    while len(pattern) < size:
        max_seed = len(pattern) * 2
        pairs = [(seed, max_seed + 1 - seed) for seed in pattern]
        half = len(pairs) // 2
        pairs = pairs[:half] + pairs[half:][::-1]
        pattern = [seed for pair in pairs for seed in pair]
    return pattern


def order_teams(
    teams: Sequence[Team], rng: Optional[random.Random] = None
) -> List[Team]:
    """Seeded teams by ascending seed, followed by the unseeded in random order."""
    rng = rng or random.Random()
    seeded = sorted((t for t in teams if t.seed is not None), key=lambda t: t.seed)
    unseeded = [t for t in teams if t.seed is None]
    rng.shuffle(unseeded)
    return seeded + unseeded


def apply_seeding(
    teams: Sequence[Team], rng: Optional[random.Random] = None
) -> SeedLine:
    """Lay teams out on a bracket line.

    Args:
        teams: Entrants, optionally seeded
        rng: Random source for ordering the unseeded teams

    Returns:
        Team ids in bracket order, None where a bye sits. The line length is
        the next power of two at or above the team count.
    """
    ordered = order_teams(teams, rng)
    size = bracket_size(len(ordered))
    line = [
        ordered[seed - 1].id if seed <= len(ordered) else None
        for seed in seeding_pattern(size)
    ]
    logger.debug(
        f"Seeded {len(ordered)} teams into a bracket of {size} "
        f"({calculate_byes(len(ordered))} byes)"
    )
    return line
