"""Players and the two-player teams they form."""

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

from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, Mapping, Optional, Tuple

from rallybracket.constants import DEFAULT_RATING
from rallybracket.exceptions import InvalidTeamDataException


@dataclass
class Player:
    """An individual entrant.

    Attributes:
        id: Unique player id (the ranking user id)
        name: Display name, also the final Americano tiebreak
    """

    id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        return cls(id=data["id"], name=data.get("name", data["id"]))


@dataclass
class Team:
    """A pair of distinct players entered together.

    Attributes:
        id: Unique team id
        player1_id: First player
        player2_id: Second player, never equal to the first
        tournament_id: Tournament the team is registered in
        category_id: Category the team competes in
        seed: Optional seed, lower is stronger
        rating: Team rating used for display and simulation
        name: Optional display name
    """

    id: str
    player1_id: str
    player2_id: str
    tournament_id: Optional[str] = None
    category_id: Optional[str] = None
    seed: Optional[int] = None
    rating: int = DEFAULT_RATING
    name: Optional[str] = None

    def __post_init__(self):
        if not self.player1_id or not self.player2_id:
            raise InvalidTeamDataException(f"Team {self.id} needs two players")
        if self.player1_id == self.player2_id:
            raise InvalidTeamDataException(
                f"Team {self.id} lists player {self.player1_id} twice"
            )
        if self.seed is not None and self.seed < 1:
            raise InvalidTeamDataException(
                f"Team {self.id} has invalid seed {self.seed}"
            )

    @property
    def player_ids(self) -> Tuple[str, str]:
        return (self.player1_id, self.player2_id)

    @property
    def pair_key(self) -> FrozenSet[str]:
        """Order-independent identity of the pair."""
        return frozenset(self.player_ids)

    def has_player(self, player_id: str) -> bool:
        return player_id in self.player_ids

    def display_name(self, players: Optional[Mapping[str, Player]] = None) -> str:
        """Team name, or the two player names joined with a slash."""
        if self.name:
            return self.name
        if players:
            names = [
                players[pid].name if pid in players else pid for pid in self.player_ids
            ]
            return " / ".join(names)
        return f"{self.player1_id} / {self.player2_id}"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "player1_id": self.player1_id,
            "player2_id": self.player2_id,
            "tournament_id": self.tournament_id,
            "category_id": self.category_id,
            "seed": self.seed,
            "rating": self.rating,
            "name": self.name,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Team":
        return cls(
            id=data["id"],
            player1_id=data["player1_id"],
            player2_id=data["player2_id"],
            tournament_id=data.get("tournament_id"),
            category_id=data.get("category_id"),
            seed=data.get("seed"),
            rating=data.get("rating", DEFAULT_RATING),
            name=data.get("name"),
        )
