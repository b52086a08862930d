"""ELO ratings for padel teams.

Standard ELO on individual players:

- expected score: E = 1 / (1 + 10 ** ((R_opp - R) / 400))
- rating change: K * (S - E), rounded half-up to an integer

A team's strength is the average rating of its two players. After a match
each of the four players is updated independently: their own rating
against the average of the opposing team. Ratings live per scope
(tournament + category, category, global); every scope is computed from
its own ratings.
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

from dataclasses import dataclass, field, replace
from typing import List, Mapping, Optional, Sequence, Tuple

from rallybracket.constants import DEFAULT_K_FACTOR, DEFAULT_RATING, POINTS_PER_WIN
from rallybracket.exceptions import MatchNotReadyException
from rallybracket.models.arena import Arena
from rallybracket.models.changes import ChangeSet
from rallybracket.models.config import RatingConfig
from rallybracket.models.enums import RankingScope
from rallybracket.models.match import Match
from rallybracket.models.standing import Ranking, RankingKey
from rallybracket.utils import round_half_up, setup_logger

logger = setup_logger(__name__)


@dataclass
class EloChange:
    """Rating change of one player in one scope."""

    player_id: str
    scope: RankingScope
    old_rating: int
    new_rating: int
    expected: float
    won: bool

    @property
    def delta(self) -> int:
        return self.new_rating - self.old_rating


@dataclass
class TeamEloChange:
    """All rating changes caused by one match."""

    match_id: str
    winning_team_id: str
    losing_team_id: str
    changes: List[EloChange] = field(default_factory=list)

    def for_scope(self, scope: RankingScope) -> List[EloChange]:
        return [c for c in self.changes if c.scope == scope]

    def delta_for(self, player_id: str, scope: RankingScope) -> Optional[int]:
        for change in self.changes:
            if change.player_id == player_id and change.scope == scope:
                return change.delta
        return None


class EloCalculator:
    """Standard ELO calculator.

    Args:
        k_factor: Maximum change per match
        initial_rating: Rating of a player without history
    """

    def __init__(self, k_factor: int = DEFAULT_K_FACTOR, initial_rating: int = DEFAULT_RATING):
        self.k_factor = k_factor
        self.initial_rating = initial_rating

    def expected_score(self, rating: float, opponent_rating: float) -> float:
        """Expected score between 0 and 1 of ``rating`` against ``opponent_rating``."""
        return 1.0 / (1.0 + 10 ** ((opponent_rating - rating) / 400.0))

    def rating_delta(self, rating: float, opponent_rating: float, won: bool) -> int:
        actual = 1.0 if won else 0.0
        return round_half_up(self.k_factor * (actual - self.expected_score(rating, opponent_rating)))

    def calculate_change(self, winner_rating: int, loser_rating: int) -> Tuple[int, int]:
        """New ratings (winner, loser) after a one-on-one result.

        The two deltas sum to zero up to rounding (at most one point).
        """
        return (
            winner_rating + self.rating_delta(winner_rating, loser_rating, True),
            loser_rating + self.rating_delta(loser_rating, winner_rating, False),
        )

    @staticmethod
    def team_rating(player_ratings: Sequence[int]) -> float:
        return sum(player_ratings) / len(player_ratings)


def get_player_rating(
    rankings: Mapping[RankingKey, Ranking],
    user_id: str,
    scope: RankingScope,
    tournament_id: Optional[str] = None,
    category_id: Optional[str] = None,
    default: int = DEFAULT_RATING,
) -> int:
    """Current rating of a player in a scope, ``default`` when unrated."""
    ranking = rankings.get(RankingKey.for_scope(scope, user_id, tournament_id, category_id))
    return ranking.rating if ranking else default


def update_team_ratings(
    arena: Arena,
    match: Match,
    config: Optional[RatingConfig] = None,
    changes: Optional[ChangeSet] = None,
) -> TeamEloChange:
    """Apply the ELO update of a completed match to every configured scope.

    Updated rows are written to ``arena.rankings`` and appended to
    ``changes.ranking_upserts``.

    Raises:
        MatchNotReadyException: The match has no winner or is missing a team
        EntityNotFoundException: A team of the match is unknown
    """
    config = config or RatingConfig()
    if match.winner_id is None or not match.has_both_teams:
        raise MatchNotReadyException(f"Match {match.id} has no result to rate")

    calculator = EloCalculator(config.k_factor, config.initial_rating)
    winners = arena.players_of(match.winner_id)
    losers = arena.players_of(match.loser_id)
    result = TeamEloChange(match.id, match.winner_id, match.loser_id)
    updated: List[Ranking] = []

    for scope in config.scopes:
        keys = {
            pid: RankingKey.for_scope(scope, pid, match.tournament_id, match.category_id)
            for pid in winners + losers
        }
        rows = {
            pid: (
                replace(arena.rankings[key])
                if key in arena.rankings
                else Ranking(key=key, rating=config.initial_rating)
            )
            for pid, key in keys.items()
        }
        winner_avg = calculator.team_rating([rows[p].rating for p in winners])
        loser_avg = calculator.team_rating([rows[p].rating for p in losers])

        for side, opponent_avg, won in ((winners, loser_avg, True), (losers, winner_avg, False)):
            for pid in side:
                row = rows[pid]
                old = row.rating
                row.rating = old + calculator.rating_delta(old, opponent_avg, won)
                if won:
                    row.wins += 1
                    row.points += POINTS_PER_WIN
                else:
                    row.losses += 1
                result.changes.append(
                    EloChange(
                        player_id=pid,
                        scope=scope,
                        old_rating=old,
                        new_rating=row.rating,
                        expected=calculator.expected_score(old, opponent_avg),
                        won=won,
                    )
                )
                updated.append(row)

    # nothing is written unless every scope computed
    for row in updated:
        arena.rankings[row.key] = row
        if changes is not None:
            changes.ranking_upserts.append(row)

    logger.debug(
        f"Rated match {match.id}: {len(result.changes)} changes across "
        f"{len(config.scopes)} scopes"
    )
    return result


def _scope_rows(
    rankings: Mapping[RankingKey, Ranking],
    scope: RankingScope,
    tournament_id: Optional[str],
    category_id: Optional[str],
) -> List[Ranking]:
    probe = RankingKey.for_scope(scope, "", tournament_id, category_id)
    rows = [
        row
        for key, row in rankings.items()
        if key.scope == scope
        and key.tournament_id == probe.tournament_id
        and key.category_id == probe.category_id
    ]
    return sorted(rows, key=lambda r: (-r.rating, -r.wins, r.user_id))


def top_players(
    rankings: Mapping[RankingKey, Ranking],
    scope: RankingScope,
    limit: int = 10,
    tournament_id: Optional[str] = None,
    category_id: Optional[str] = None,
) -> List[Ranking]:
    """Highest-rated players of a scope, ties broken by wins."""
    return _scope_rows(rankings, scope, tournament_id, category_id)[:limit]


def player_rank(
    rankings: Mapping[RankingKey, Ranking],
    user_id: str,
    scope: RankingScope,
    tournament_id: Optional[str] = None,
    category_id: Optional[str] = None,
) -> Optional[int]:
    """1-based rank of a player within a scope, None if the player is unrated."""
    for position, row in enumerate(_scope_rows(rankings, scope, tournament_id, category_id), 1):
        if row.user_id == user_id:
            return position
    return None
