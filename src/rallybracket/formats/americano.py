"""Americano and Mexicano rotations.

Individuals play every round in a new temporary two-player team. Each round
is chosen from the best-scoring groupings of four players:

    score = 100
            - 50 for each side whose players have partnered before
            - 10 for each cross-side pair that has partnered before

Only groupings without a repeated partnership are considered. Rounds are
planned with a depth-first search that tries groupings best-first, so a
round is never forced into a repeat when the earlier rounds could have
been chosen differently. The search is bounded; once the budget runs out
the partnerships of the circle method are used instead, which never
repeat.
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

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Dict, FrozenSet, Iterator, List, Mapping, Optional, Sequence, Tuple

from rallybracket.constants import (
    AMERICANO_BASE_SCORE,
    AMERICANO_BEST_OF,
    CROSS_PARTNER_PENALTY,
    REPEAT_PARTNER_PENALTY,
    ROTATION_SEARCH_BUDGET,
)
from rallybracket.exceptions import InvalidTimeRangeException
from rallybracket.formats.round_robin import circle_rounds
from rallybracket.models.config import MexicanoConfig
from rallybracket.models.match import AmericanoMeta, Match
from rallybracket.models.stage import Stage
from rallybracket.models.team import Team
from rallybracket.models.tournament import Tournament
from rallybracket.type_hints import Grouping, PlayerPair, RotationFormat
from rallybracket.utils import generate_id, setup_logger
from rallybracket.utils.validation import (
    validate_rotation_player_count_strict,
    validate_time_per_match_strict,
)

logger = setup_logger(__name__)


def _pair(a: str, b: str) -> FrozenSet[str]:
    return frozenset((a, b))


class RotationHistory:
    """Who has partnered, faced and sat out whom so far.

    The history is an explicit value handed from round to round; nothing
    about it is kept between generator calls.
    """

    def __init__(self):
        self.partners: Counter = Counter()
        self.opponents: Counter = Counter()
        self.sit_outs: Counter = Counter()

    def has_partnered(self, a: str, b: str) -> bool:
        return self.partners[_pair(a, b)] > 0

    def has_faced(self, a: str, b: str) -> bool:
        return self.opponents[_pair(a, b)] > 0

    def partners_of(self, player_id: str) -> List[str]:
        return sorted(
            next(iter(pair - {player_id}))
            for pair, count in self.partners.items()
            if count and player_id in pair
        )

    def record(self, grouping: Grouping) -> None:
        self._update(grouping, 1)

    def forget(self, grouping: Grouping) -> None:
        self._update(grouping, -1)

    def _update(self, grouping: Grouping, step: int) -> None:
        team_a, team_b = grouping
        for team in grouping:
            self.partners[_pair(*team)] += step
        for a in team_a:
            for b in team_b:
                self.opponents[_pair(a, b)] += step

    def record_round(self, groupings: Sequence[Grouping], sitting: Sequence[str]) -> None:
        for grouping in groupings:
            self.record(grouping)
        for player_id in sitting:
            self.sit_outs[player_id] += 1

    def forget_round(self, groupings: Sequence[Grouping], sitting: Sequence[str]) -> None:
        for grouping in groupings:
            self.forget(grouping)
        for player_id in sitting:
            self.sit_outs[player_id] -= 1

    def copy(self) -> "RotationHistory":
        clone = RotationHistory()
        clone.partners = Counter(self.partners)
        clone.opponents = Counter(self.opponents)
        clone.sit_outs = Counter(self.sit_outs)
        return clone


def grouping_score(team_a: PlayerPair, team_b: PlayerPair, history: RotationHistory) -> int:
    """Desirability of putting two pairs against each other, higher is better."""
    score = AMERICANO_BASE_SCORE
    for team in (team_a, team_b):
        if history.has_partnered(*team):
            score -= REPEAT_PARTNER_PENALTY
    for a in team_a:
        for b in team_b:
            if history.has_partnered(a, b):
                score -= CROSS_PARTNER_PENALTY
    return score


@dataclass(frozen=True)
class Rotation:
    """One court in one round."""

    round_number: int
    court: int
    team_a: PlayerPair
    team_b: PlayerPair


class _SearchExhausted(Exception):
    pass


class RotationPlanner:
    """Plans ``len(players) - 1`` rounds of 2v2 groupings.

    Args:
        player_ids: Players in registration order, an even number of at least four
        history: Partnerships already played, e.g. by an earlier session
        search_budget: Search nodes allowed before falling back to the circle method
    """

    def __init__(
        self,
        player_ids: Sequence[str],
        history: Optional[RotationHistory] = None,
        search_budget: int = ROTATION_SEARCH_BUDGET,
    ):
        validate_rotation_player_count_strict(len(player_ids))
        self.player_ids = list(player_ids)
        self.initial_history = history.copy() if history else RotationHistory()
        self.search_budget = search_budget
        self.num_rounds = len(self.player_ids) - 1
        self.matches_per_round = len(self.player_ids) // 4
        self.used_fallback = False
        self._nodes = 0

    def plan(self) -> List[Rotation]:
        history = self.initial_history.copy()
        rounds: List[List[Grouping]] = []
        self._nodes = 0
        try:
            found = self._search(history, rounds)
        except _SearchExhausted:
            found = False
            logger.info(
                f"Rotation search budget of {self.search_budget} nodes exhausted "
                f"for {len(self.player_ids)} players"
            )
        if not found:
            self.used_fallback = True
            rounds = self._circle_plan()

        return [
            Rotation(round_number, court, team_a, team_b)
            for round_number, groupings in enumerate(rounds, start=1)
            for court, (team_a, team_b) in enumerate(groupings, start=1)
        ]

    def _spend(self) -> None:
        self._nodes += 1
        if self._nodes > self.search_budget:
            raise _SearchExhausted()

    def _split_sitters(self, history: RotationHistory) -> Tuple[List[str], List[str]]:
        """Players on court and players sitting out, fewest sit-outs playing last."""
        idle = len(self.player_ids) - 4 * self.matches_per_round
        if idle == 0:
            return list(self.player_ids), []
        order = {pid: index for index, pid in enumerate(self.player_ids)}
        by_rest = sorted(self.player_ids, key=lambda p: (history.sit_outs[p], order[p]))
        sitting = by_rest[:idle]
        return [p for p in self.player_ids if p not in sitting], sitting

    def _search(self, history: RotationHistory, rounds: List[List[Grouping]]) -> bool:
        if len(rounds) == self.num_rounds:
            return True
        playing, sitting = self._split_sitters(history)
        tried = set()
        for groupings in self._round_options(playing, history):
            partnerships = frozenset(_pair(*team) for grouping in groupings for team in grouping)
            # only partnerships constrain later rounds
            if partnerships in tried:
                continue
            tried.add(partnerships)
            history.record_round(groupings, sitting)
            rounds.append(groupings)
            if self._search(history, rounds):
                return True
            rounds.pop()
            history.forget_round(groupings, sitting)
        return False

    def _round_options(
        self, players: List[str], history: RotationHistory
    ) -> Iterator[List[Grouping]]:
        """Complete round assignments, best-scoring groupings first."""
        if not players:
            yield []
            return
        anchor, rest = players[0], players[1:]
        options = []
        for partner in rest:
            if history.has_partnered(anchor, partner):
                continue
            others = [p for p in rest if p != partner]
            for i, first in enumerate(others):
                for second in others[i + 1 :]:
                    if history.has_partnered(first, second):
                        continue
                    team_a, team_b = (anchor, partner), (first, second)
                    options.append((grouping_score(team_a, team_b, history), team_a, team_b))
        options.sort(key=lambda option: -option[0])

        for _, team_a, team_b in options:
            self._spend()
            taken = set(team_a) | set(team_b)
            remaining = [p for p in rest if p not in taken]
            for tail in self._round_options(remaining, history):
                yield [(team_a, team_b)] + tail

    def _circle_plan(self) -> List[List[Grouping]]:
        """Circle-method partnerships, paired into matches greedily."""
        history = self.initial_history.copy()
        rounds = []
        for pairings in circle_rounds(self.player_ids):
            pairs: List[PlayerPair] = [tuple(p) for p in pairings]
            groupings = []
            while len(pairs) >= 2 and len(groupings) < self.matches_per_round:
                first = pairs.pop(0)
                best = max(pairs, key=lambda other: grouping_score(first, other, history))
                pairs.remove(best)
                groupings.append((first, best))
            history.record_round(groupings, [p for pair in pairs for p in pair])
            rounds.append(groupings)
        return rounds


@dataclass
class RotationSchedule:
    """Output of Americano/Mexicano generation."""

    rotations: List[Rotation] = field(default_factory=list)
    teams: List[Team] = field(default_factory=list)
    matches: List[Match] = field(default_factory=list)
    used_fallback: bool = False


def _build_schedule(
    tournament_id: str,
    category_id: str,
    rotations: List[Rotation],
    existing_teams: Optional[Mapping[FrozenSet[str], Team]],
    best_of: int,
    rotation_format: RotationFormat,
    start_at: Optional[datetime] = None,
    minutes_per_round: int = 0,
    duration_minutes: Optional[int] = None,
) -> RotationSchedule:
    known: Dict[FrozenSet[str], Team] = dict(existing_teams or {})
    schedule = RotationSchedule(rotations=rotations)

    def team_for(pair: PlayerPair, label: str) -> Team:
        key = _pair(*pair)
        if key not in known:
            known[key] = Team(
                id=generate_id("team"),
                player1_id=pair[0],
                player2_id=pair[1],
                tournament_id=tournament_id,
                category_id=category_id,
                name=label,
            )
            schedule.teams.append(known[key])
        return known[key]

    for rotation in rotations:
        prefix = f"Round {rotation.round_number} - Court {rotation.court}"
        team_a = team_for(rotation.team_a, f"{prefix} - Team A")
        team_b = team_for(rotation.team_b, f"{prefix} - Team B")
        scheduled_at = None
        if start_at is not None:
            scheduled_at = start_at + timedelta(
                minutes=(rotation.round_number - 1) * minutes_per_round
            )
        schedule.matches.append(
            Match(
                id=generate_id("match"),
                tournament_id=tournament_id,
                category_id=category_id,
                stage=Stage.main(rotation.round_number),
                match_number=rotation.court,
                team_a_id=team_a.id,
                team_b_id=team_b.id,
                best_of=best_of,
                scheduled_at=scheduled_at,
                meta=AmericanoMeta(
                    court=rotation.court,
                    duration_minutes=duration_minutes,
                    format=rotation_format,
                ),
            )
        )
    return schedule


def generate_americano(
    tournament_id: str,
    category_id: str,
    player_ids: Sequence[str],
    history: Optional[RotationHistory] = None,
    existing_teams: Optional[Mapping[FrozenSet[str], Team]] = None,
    best_of: int = AMERICANO_BEST_OF,
    search_budget: int = ROTATION_SEARCH_BUDGET,
) -> RotationSchedule:
    """Generate an Americano: every round a fresh partner, one set per match.

    Args:
        tournament_id: Owning tournament
        category_id: Owning category
        player_ids: Individual entrants, an even number of at least four
        history: Partnerships to avoid from earlier play
        existing_teams: Teams already registered, reused when a pair recurs
        best_of: Sets per match
        search_budget: Search nodes before falling back to circle rotations

    Raises:
        InvalidTeamCountException: Odd number of players or fewer than four
    """
    planner = RotationPlanner(player_ids, history, search_budget)
    rotations = planner.plan()
    schedule = _build_schedule(
        tournament_id, category_id, rotations, existing_teams, best_of, "americano"
    )
    schedule.used_fallback = planner.used_fallback
    logger.info(
        f"Generated americano for {len(player_ids)} players: "
        f"{planner.num_rounds} rounds, {len(schedule.matches)} matches"
    )
    return schedule


def generate_mexicano(
    tournament: Tournament,
    category_id: str,
    player_ids: Sequence[str],
    config: Optional[MexicanoConfig] = None,
    history: Optional[RotationHistory] = None,
    existing_teams: Optional[Mapping[FrozenSet[str], Team]] = None,
    best_of: int = AMERICANO_BEST_OF,
    search_budget: int = ROTATION_SEARCH_BUDGET,
) -> RotationSchedule:
    """Generate a Mexicano: timed Americano rounds on a fixed clock.

    Round r starts at ``start_at + (r - 1) * (time_per_match + rotation_buffer)``.

    Raises:
        InvalidTeamCountException: Odd number of players or fewer than four
        InvalidTimeRangeException: Minutes per match outside 5-30, or the
            rounds do not fit before the tournament ends
    """
    config = config or MexicanoConfig()
    validate_time_per_match_strict(config.time_per_match)
    planner = RotationPlanner(player_ids, history, search_budget)

    minutes_per_round = config.time_per_match + config.rotation_buffer
    last_end = tournament.start_at + timedelta(
        minutes=(planner.num_rounds - 1) * minutes_per_round + config.time_per_match
    )
    if last_end > tournament.end_at:
        raise InvalidTimeRangeException(
            f"{planner.num_rounds} rounds of {config.time_per_match} minutes end at "
            f"{last_end.isoformat()}, after the tournament ends at "
            f"{tournament.end_at.isoformat()}"
        )

    rotations = planner.plan()
    schedule = _build_schedule(
        tournament.id,
        category_id,
        rotations,
        existing_teams,
        best_of,
        "mexicano",
        start_at=tournament.start_at,
        minutes_per_round=minutes_per_round,
        duration_minutes=config.time_per_match,
    )
    schedule.used_fallback = planner.used_fallback
    logger.info(
        f"Generated mexicano for {len(player_ids)} players: {planner.num_rounds} rounds "
        f"of {config.time_per_match} minutes"
    )
    return schedule
