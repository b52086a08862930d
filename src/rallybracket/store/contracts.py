"""Storage contracts the engines' callers rely on.

Any persistence layer that satisfies these protocols can back
TournamentService. Slot assignment must be compare-and-set.
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

from typing import Any, List, Optional, Protocol, Sequence

from rallybracket.models.enums import RankingScope, Slot
from rallybracket.models.match import Match
from rallybracket.models.standing import Ranking, Standing
from rallybracket.models.team import Team
from rallybracket.models.tournament import Group


class MatchStore(Protocol):
    def create_many(self, matches: Sequence[Match]) -> None: ...

    def get_match(self, match_id: str) -> Match: ...

    def find_by(
        self,
        tournament_id: str,
        category_id: Optional[str] = None,
        group_id: Optional[str] = None,
        round_key: Optional[int] = None,
    ) -> List[Match]: ...

    def update(self, match_id: str, **changes: Any) -> Match: ...

    def delete(self, match_id: str) -> None: ...

    def assign_slot(self, match_id: str, slot: Slot, team_id: str) -> bool:
        """Set the slot only if it is empty or already holds ``team_id``."""
        ...


class TeamStore(Protocol):
    def get_team(self, team_id: str) -> Team: ...

    def teams_for_player(self, player_id: str) -> List[Team]: ...


class StandingStore(Protocol):
    def upsert_standing(self, standing: Standing) -> None: ...

    def standings_for_group(self, group_id: str) -> List[Standing]: ...


class RankingStore(Protocol):
    def upsert_ranking(self, ranking: Ranking) -> None: ...

    def find_by_scope(
        self,
        scope: RankingScope,
        tournament_id: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> List[Ranking]: ...


class GroupStore(Protocol):
    def get_group(self, group_id: str) -> Group: ...

    def create_group(self, group: Group) -> None: ...
