"""Round-robin generation using the circle method.

The first entry stays fixed while the others rotate one position per
round. With an odd number of teams a bye entry is added and the team drawn
against it sits the round out.
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
import string
from typing import List, Optional, Sequence, Tuple

from rallybracket.constants import GROUP_NAME_PREFIX, ROUND_ROBIN_BEST_OF
from rallybracket.formats.seeding import order_teams
from rallybracket.models.match import Match, RoundRobinMeta
from rallybracket.models.stage import Stage
from rallybracket.models.standing import Standing
from rallybracket.models.team import Team
from rallybracket.models.tournament import Group
from rallybracket.utils import generate_id, setup_logger
from rallybracket.utils.validation import validate_team_count_strict

logger = setup_logger(__name__)

Pairing = Tuple[Optional[str], Optional[str]]


def circle_rounds(entries: Sequence[Optional[str]]) -> List[List[Pairing]]:
    """Pair every entry with every other exactly once.

    Args:
        entries: Entry ids; an even-length sequence may contain None as a bye

    Returns:
        One list of pairings per round; pairings against None are included
        so callers decide what a bye means
    """
    ring = list(entries)
    if len(ring) % 2 == 1:
        ring.append(None)
    size = len(ring)
    rounds = []
    for _ in range(size - 1):
        rounds.append([(ring[i], ring[size - 1 - i]) for i in range(size // 2)])
        ring = [ring[0], ring[-1]] + ring[1:-1]
    return rounds


def group_name(index: int) -> str:
    """Group A, Group B, ... Group Z, Group 27, ..."""
    if index < len(string.ascii_uppercase):
        return f"{GROUP_NAME_PREFIX} {string.ascii_uppercase[index]}"
    return f"{GROUP_NAME_PREFIX} {index + 1}"


def generate_round_robin(
    group: Group,
    best_of: int = ROUND_ROBIN_BEST_OF,
) -> Tuple[List[Match], List[Standing]]:
    """Generate every match of a group plus a zeroed standing per team.

    Args:
        group: The group, with its teams in draw order
        best_of: Sets per match

    Returns:
        (matches, standings); matches are ordered by round

    Raises:
        InvalidTeamCountException: Fewer than two teams in the group
    """
    validate_team_count_strict(len(group.team_ids))
    meta = RoundRobinMeta(group_name=group.name)
    matches = []
    for round_index, pairings in enumerate(circle_rounds(group.team_ids), start=1):
        match_number = 0
        for team_a, team_b in pairings:
            if team_a is None or team_b is None:
                continue
            match_number += 1
            matches.append(
                Match(
                    id=generate_id("match"),
                    tournament_id=group.tournament_id,
                    category_id=group.category_id,
                    group_id=group.id,
                    stage=Stage.main(round_index),
                    match_number=match_number,
                    team_a_id=team_a,
                    team_b_id=team_b,
                    best_of=best_of,
                    meta=meta,
                )
            )

    standings = [Standing(group_id=group.id, team_id=team_id) for team_id in group.team_ids]
    logger.info(
        f"Generated round robin for {group.name}: {len(group.team_ids)} teams, "
        f"{len(matches)} matches"
    )
    return matches, standings


def split_into_groups(
    teams: Sequence[Team], num_groups: int, rng: Optional[random.Random] = None
) -> List[List[Team]]:
    """Distribute teams over groups in snake order of seed.

    Seeds 1..G go to groups 1..G, seeds G+1..2G to groups G..1, and so on,
    so every group gets a comparable share of the strongest teams.
    """
    ordered = order_teams(teams, rng)
    buckets: List[List[Team]] = [[] for _ in range(num_groups)]
    for index, team in enumerate(ordered):
        lap, offset = divmod(index, num_groups)
        bucket = offset if lap % 2 == 0 else num_groups - 1 - offset
        buckets[bucket].append(team)
    return buckets


def generate_groups_stage(
    tournament_id: str,
    category_id: str,
    teams: Sequence[Team],
    num_groups: int,
    rng: Optional[random.Random] = None,
    best_of: int = ROUND_ROBIN_BEST_OF,
) -> Tuple[List[Group], List[Match], List[Standing]]:
    """Split teams into groups and generate a round robin in each.

    Every group needs at least two teams, so the number of groups is capped
    at half the entry.

    Raises:
        InvalidTeamCountException: Fewer than two teams overall
    """
    validate_team_count_strict(len(teams))
    num_groups = max(1, min(num_groups, len(teams) // 2))
    groups, matches, standings = [], [], []
    for index, members in enumerate(split_into_groups(teams, num_groups, rng)):
        group = Group(
            id=generate_id("group"),
            tournament_id=tournament_id,
            category_id=category_id,
            name=group_name(index),
            team_ids=[team.id for team in members],
        )
        group_matches, group_standings = generate_round_robin(group, best_of)
        groups.append(group)
        matches.extend(group_matches)
        standings.extend(group_standings)
    return groups, matches, standings
