"""Single-elimination bracket generation.

Also hosts the pieces shared with the double-elimination generator:
building the winners bracket from a seeded line, and resolving byes and
unreachable slots once the whole bracket exists.
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
from dataclasses import replace
from typing import Dict, List, Optional, Sequence

from rallybracket.constants import (
    BRACKET_BEST_OF,
    BRACKET_SINGLE,
    ROUND_NAME_FINAL,
    ROUND_NAME_QUARTER_FINAL,
    ROUND_NAME_SEMI_FINAL,
)
from rallybracket.formats.seeding import apply_seeding
from rallybracket.formats.topology import (
    Position,
    Target,
    bracket_positions,
    live_slots,
    rounds_for_size,
    winner_target,
    winners_match_count,
)
from rallybracket.models.enums import MatchState
from rallybracket.models.match import BracketMeta, Match
from rallybracket.models.stage import Stage
from rallybracket.models.team import Team
from rallybracket.type_hints import SeedLine
from rallybracket.utils import generate_id, setup_logger
from rallybracket.utils.validation import validate_team_count_strict

logger = setup_logger(__name__)

_ROUND_NAMES = {
    1: ROUND_NAME_FINAL,
    2: ROUND_NAME_SEMI_FINAL,
    3: ROUND_NAME_QUARTER_FINAL,
    4: "Round of 16",
    5: "Round of 32",
    6: "Round of 64",
}


def round_name(round_number: int, total_rounds: int) -> str:
    """Human-readable name of a bracket round (round 1 is the final)."""
    if round_number in _ROUND_NAMES:
        return _ROUND_NAMES[round_number]
    return f"Round {total_rounds - round_number + 1}"


def build_winners_bracket(
    tournament_id: str,
    category_id: str,
    line: SeedLine,
    best_of: int = BRACKET_BEST_OF,
    bracket: str = BRACKET_SINGLE,
    name_prefix: str = "",
) -> Dict[Position, Match]:
    """Create every match of an elimination bracket from a seeded line.

    The entry round takes the line in pairs; later rounds start empty.
    """
    num_rounds = rounds_for_size(len(line))
    matches: Dict[Position, Match] = {}
    for round_number in range(num_rounds, 0, -1):
        name = round_name(round_number, num_rounds)
        if name_prefix:
            name = f"{name_prefix} {name}"
        for match_number in range(1, winners_match_count(num_rounds, round_number) + 1):
            team_a = team_b = None
            if round_number == num_rounds:
                team_a = line[2 * (match_number - 1)]
                team_b = line[2 * (match_number - 1) + 1]
            stage = Stage.main(round_number)
            matches[(stage, match_number)] = Match(
                id=generate_id("match"),
                tournament_id=tournament_id,
                category_id=category_id,
                stage=stage,
                match_number=match_number,
                team_a_id=team_a,
                team_b_id=team_b,
                best_of=best_of,
                meta=BracketMeta(round_name=name, bracket=bracket),
            )
    return matches


def _place_at_creation(
    matches: Dict[Position, Match],
    target: Optional[Target],
    team_id: str,
    num_rounds: int,
    double: bool,
) -> None:
    """Put an advancing team into a not-yet-persisted match."""
    if target is None:
        return
    match = matches[(target.stage, target.match_number)]
    match.set_slot(target.slot, team_id)
    if match.is_pass_through and match.state == MatchState.PENDING:
        match.winner_id = team_id
        match.state = MatchState.WALKOVER
        _place_at_creation(
            matches,
            winner_target(match.stage, match.match_number, num_rounds, double),
            team_id,
            num_rounds,
            double,
        )


def finalize_bracket(
    matches: Dict[Position, Match], line: SeedLine, double: bool = False
) -> None:
    """Resolve byes and slots that can never be filled.

    - an entry match with a bye completes as a walkover and its team is
      placed in the next round,
    - a later match with no reachable slot is cancelled,
    - a later match with one reachable slot becomes a pass-through.
    """
    num_rounds = rounds_for_size(len(line))
    entry = Stage.main(num_rounds)
    live = live_slots(line, double)

    for position, match in matches.items():
        if position[0] == entry or position[0].is_grand_final:
            continue
        reachable = live.get(position, set())
        if not reachable:
            match.state = MatchState.CANCELLED
        elif len(reachable) == 1:
            match.meta = replace(match.meta, pass_through=True)

    byes = 0
    for stage, match_number in bracket_positions(num_rounds, double):
        if stage != entry:
            break
        match = matches[(stage, match_number)]
        if match.has_both_teams or not match.team_ids:
            continue
        team_id = match.team_ids[0]
        match.winner_id = team_id
        match.state = MatchState.WALKOVER
        match.meta = replace(match.meta, is_bye=True)
        byes += 1
        _place_at_creation(
            matches,
            winner_target(stage, match_number, num_rounds, double),
            team_id,
            num_rounds,
            double,
        )

    cancelled = sum(1 for m in matches.values() if m.state == MatchState.CANCELLED)
    logger.debug(f"Bracket finalized: {byes} byes, {cancelled} unreachable matches")


def generate_single_elimination(
    tournament_id: str,
    category_id: str,
    teams: Sequence[Team],
    rng: Optional[random.Random] = None,
    best_of: int = BRACKET_BEST_OF,
    bracket: str = BRACKET_SINGLE,
) -> List[Match]:
    """Generate a complete single-elimination bracket.

    Args:
        tournament_id: Owning tournament
        category_id: Owning category
        teams: Entrants, at least two
        rng: Random source for ordering unseeded teams
        best_of: Sets per match
        bracket: Label stored on the match metadata

    Returns:
        All matches in play order, entry round first

    Raises:
        InvalidTeamCountException: Fewer than two teams
    """
    validate_team_count_strict(len(teams))
    line = apply_seeding(teams, rng)
    matches = build_winners_bracket(
        tournament_id, category_id, line, best_of=best_of, bracket=bracket
    )
    finalize_bracket(matches, line, double=False)

    num_rounds = rounds_for_size(len(line))
    logger.info(
        f"Generated single elimination for {len(teams)} teams: "
        f"{num_rounds} rounds, {len(matches)} matches"
    )
    return [matches[position] for position in bracket_positions(num_rounds)]
