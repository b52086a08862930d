"""Double-elimination bracket generation.

A team is eliminated after its second loss. The winners bracket is a
regular single-elimination bracket; its losers drop into the losers
bracket (see ``rallybracket.formats.topology`` for the exact movement).
The two champions meet in the grand final. If the losers-bracket champion
wins it, both teams have one loss and the reset match decides.
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
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from rallybracket.constants import (
    BRACKET_BEST_OF,
    BRACKET_GRAND_FINAL,
    BRACKET_LOSERS,
    BRACKET_WINNERS,
    GRAND_FINAL_BEST_OF,
    GRAND_FINAL_NAME,
    GRAND_FINAL_RESET_NAME,
    LOSERS_ROUND_NAME,
    WINNERS_PREFIX,
)
from rallybracket.formats.bracket import build_winners_bracket, finalize_bracket
from rallybracket.formats.seeding import apply_seeding
from rallybracket.formats.topology import (
    Position,
    losers_match_count,
    losers_play_order,
    losers_round_count,
    rounds_for_size,
)
from rallybracket.models.match import BracketMeta, Match
from rallybracket.models.stage import Stage
from rallybracket.models.team import Team
from rallybracket.utils import generate_id, setup_logger
from rallybracket.utils.validation import validate_team_count_strict

logger = setup_logger(__name__)


@dataclass
class DoubleEliminationBracket:
    """The three parts of a generated double-elimination bracket."""

    winners: List[Match] = field(default_factory=list)
    losers: List[Match] = field(default_factory=list)
    grand_finals: List[Match] = field(default_factory=list)

    @property
    def matches(self) -> List[Match]:
        return self.winners + self.losers + self.grand_finals


def _bracket_match(
    tournament_id: str,
    category_id: str,
    stage: Stage,
    match_number: int,
    best_of: int,
    meta: BracketMeta,
) -> Match:
    return Match(
        id=generate_id("match"),
        tournament_id=tournament_id,
        category_id=category_id,
        stage=stage,
        match_number=match_number,
        best_of=best_of,
        meta=meta,
    )


def generate_double_elimination(
    tournament_id: str,
    category_id: str,
    teams: Sequence[Team],
    rng: Optional[random.Random] = None,
    best_of: int = BRACKET_BEST_OF,
    grand_final_best_of: int = GRAND_FINAL_BEST_OF,
) -> DoubleEliminationBracket:
    """Generate winners bracket, losers bracket and both grand-final legs.

    Args:
        tournament_id: Owning tournament
        category_id: Owning category
        teams: Entrants, at least two
        rng: Random source for ordering unseeded teams
        best_of: Sets per bracket match
        grand_final_best_of: Sets per grand-final match

    Returns:
        The generated bracket, each part in play order

    Raises:
        InvalidTeamCountException: Fewer than two teams
    """
    validate_team_count_strict(len(teams))
    line = apply_seeding(teams, rng)
    num_rounds = rounds_for_size(len(line))

    matches: Dict[Position, Match] = build_winners_bracket(
        tournament_id,
        category_id,
        line,
        best_of=best_of,
        bracket=BRACKET_WINNERS,
        name_prefix=WINNERS_PREFIX,
    )
    winners_positions = list(matches)

    losers_positions = []
    for losers_round in range(losers_round_count(num_rounds), 0, -1):
        play_order = losers_play_order(num_rounds, losers_round)
        meta = BracketMeta(
            round_name=f"{LOSERS_ROUND_NAME} {play_order}", bracket=BRACKET_LOSERS
        )
        stage = Stage.losers(losers_round)
        for match_number in range(1, losers_match_count(num_rounds, losers_round) + 1):
            matches[(stage, match_number)] = _bracket_match(
                tournament_id, category_id, stage, match_number, best_of, meta
            )
            losers_positions.append((stage, match_number))

    grand_final_positions = []
    for leg, name in ((1, GRAND_FINAL_NAME), (2, GRAND_FINAL_RESET_NAME)):
        stage = Stage.grand_final(leg)
        matches[(stage, 1)] = _bracket_match(
            tournament_id,
            category_id,
            stage,
            1,
            grand_final_best_of,
            BracketMeta(round_name=name, bracket=BRACKET_GRAND_FINAL),
        )
        grand_final_positions.append((stage, 1))

    finalize_bracket(matches, line, double=True)

    result = DoubleEliminationBracket(
        winners=[matches[p] for p in winners_positions],
        losers=[matches[p] for p in losers_positions],
        grand_finals=[matches[p] for p in grand_final_positions],
    )
    logger.info(
        f"Generated double elimination for {len(teams)} teams: "
        f"{len(result.winners)} winners, {len(result.losers)} losers, "
        f"{len(result.grand_finals)} grand final matches"
    )
    return result
