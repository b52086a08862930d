"""Group standings, individual rotation standings and rating rows."""

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

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Set

from rallybracket.constants import DEFAULT_RATING
from rallybracket.models.enums import RankingScope


@dataclass
class Standing:
    """A team's record within a round-robin group.

    Standings are recomputed from completed matches, never patched in place.
    """

    group_id: str
    team_id: str
    wins: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0
    diff: int = 0
    matches_played: int = 0
    position: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "group_id": self.group_id,
            "team_id": self.team_id,
            "wins": self.wins,
            "losses": self.losses,
            "points_for": self.points_for,
            "points_against": self.points_against,
            "diff": self.diff,
            "matches_played": self.matches_played,
            "position": self.position,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Standing":
        return cls(
            group_id=data["group_id"],
            team_id=data["team_id"],
            wins=data.get("wins", 0),
            losses=data.get("losses", 0),
            points_for=data.get("points_for", 0),
            points_against=data.get("points_against", 0),
            diff=data.get("diff", 0),
            matches_played=data.get("matches_played", 0),
            position=data.get("position"),
        )


@dataclass
class PlayerStanding:
    """An individual's aggregate across Americano/Mexicano rotations."""

    player_id: str
    player_name: str
    wins: int = 0
    losses: int = 0
    points_for: int = 0
    points_against: int = 0
    diff: int = 0
    matches_played: int = 0
    partners: Set[str] = field(default_factory=set)
    opponents: Set[str] = field(default_factory=set)
    position: Optional[int] = None


@dataclass(frozen=True)
class RankingKey:
    """Identity of a rating row.

    TOURNAMENT rows carry the tournament and category, CATEGORY rows the
    category only, GLOBAL rows neither.
    """

    scope: RankingScope
    user_id: str
    tournament_id: Optional[str] = None
    category_id: Optional[str] = None

    @classmethod
    def for_scope(
        cls,
        scope: RankingScope,
        user_id: str,
        tournament_id: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> "RankingKey":
        """Build a key, dropping the identifiers the scope does not use."""
        if scope == RankingScope.GLOBAL:
            return cls(scope, user_id)
        if scope == RankingScope.CATEGORY:
            return cls(scope, user_id, category_id=category_id)
        return cls(scope, user_id, tournament_id, category_id)


@dataclass
class Ranking:
    """A player's rating within one scope."""

    key: RankingKey
    rating: int = DEFAULT_RATING
    wins: int = 0
    losses: int = 0
    points: int = 0

    @property
    def user_id(self) -> str:
        return self.key.user_id

    @property
    def scope(self) -> RankingScope:
        return self.key.scope

    @property
    def matches_played(self) -> int:
        return self.wins + self.losses

    def to_dict(self) -> Dict[str, Any]:
        return {
            "scope": self.key.scope.value,
            "user_id": self.key.user_id,
            "tournament_id": self.key.tournament_id,
            "category_id": self.key.category_id,
            "rating": self.rating,
            "wins": self.wins,
            "losses": self.losses,
            "points": self.points,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Ranking":
        key = RankingKey.for_scope(
            RankingScope(data["scope"]),
            data["user_id"],
            data.get("tournament_id"),
            data.get("category_id"),
        )
        return cls(
            key=key,
            rating=data.get("rating", DEFAULT_RATING),
            wins=data.get("wins", 0),
            losses=data.get("losses", 0),
            points=data.get("points", 0),
        )
