"""Arena: the in-memory bundle of domain objects an engine call works on.

Engines never talk to storage. A caller loads an Arena for one tournament,
hands it to an engine, and persists the ChangeSet the engine returns. The
engine mutates the Arena as it goes so later steps of the same call see
earlier writes.
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

from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, List, Optional, Tuple

from rallybracket.exceptions import DuplicateTeamException, EntityNotFoundException
from rallybracket.models.enums import MatchState
from rallybracket.models.match import BracketMeta, Match
from rallybracket.models.stage import Stage
from rallybracket.models.standing import Ranking, RankingKey, Standing
from rallybracket.models.team import Player, Team
from rallybracket.models.tournament import Category, Group, Tournament


@dataclass
class Arena:
    """Everything known about one tournament, indexed by id.

    Attributes:
        tournament: The tournament itself
        categories: Categories by id, in registration order
        groups: Round-robin groups by id
        players: Players by id
        teams: Teams by id
        matches: Matches by id
        standings: Group standings keyed by (group_id, team_id)
        rankings: Rating rows keyed by RankingKey
        entrants: Individually registered players per category, in
            registration order (Americano and Mexicano)
    """

    tournament: Tournament
    categories: Dict[str, Category] = field(default_factory=dict)
    groups: Dict[str, Group] = field(default_factory=dict)
    players: Dict[str, Player] = field(default_factory=dict)
    teams: Dict[str, Team] = field(default_factory=dict)
    matches: Dict[str, Match] = field(default_factory=dict)
    standings: Dict[Tuple[str, str], Standing] = field(default_factory=dict)
    rankings: Dict[RankingKey, Ranking] = field(default_factory=dict)
    entrants: Dict[str, List[str]] = field(default_factory=dict)

    @property
    def tournament_id(self) -> str:
        return self.tournament.id

    # ========== Registration ==========

    def add_category(self, category: Category) -> None:
        self.categories[category.id] = category

    def add_player(self, player: Player) -> None:
        self.players[player.id] = player

    def add_team(self, team: Team) -> None:
        """Register a team, rejecting a pair already entered in this tournament."""
        existing = self.team_for_pair(team.pair_key)
        if existing is not None and existing.id != team.id:
            raise DuplicateTeamException(
                f"Players {sorted(team.pair_key)} are already entered as team {existing.id}"
            )
        self.teams[team.id] = team

    def team_for_pair(self, pair_key: FrozenSet[str]) -> Optional[Team]:
        for team in self.teams.values():
            if team.pair_key == pair_key:
                return team
        return None

    def add_group(self, group: Group) -> None:
        self.groups[group.id] = group

    def add_match(self, match: Match) -> None:
        self.matches[match.id] = match

    # ========== Lookup ==========

    def get_match(self, match_id: str) -> Match:
        try:
            return self.matches[match_id]
        except KeyError:
            raise EntityNotFoundException(f"Match {match_id} not found") from None

    def get_team(self, team_id: str) -> Team:
        try:
            return self.teams[team_id]
        except KeyError:
            raise EntityNotFoundException(f"Team {team_id} not found") from None

    def get_group(self, group_id: str) -> Group:
        try:
            return self.groups[group_id]
        except KeyError:
            raise EntityNotFoundException(f"Group {group_id} not found") from None

    def get_category(self, category_id: str) -> Category:
        try:
            return self.categories[category_id]
        except KeyError:
            raise EntityNotFoundException(f"Category {category_id} not found") from None

    def players_of(self, team_id: str) -> Tuple[str, str]:
        return self.get_team(team_id).player_ids

    def player_name(self, player_id: str) -> str:
        player = self.players.get(player_id)
        return player.name if player else player_id

    def team_name(self, team_id: str) -> str:
        return self.get_team(team_id).display_name(self.players)

    def teams_for(self, category_id: Optional[str] = None) -> List[Team]:
        """Teams of a category (all teams when None), in registration order."""
        return [
            team
            for team in self.teams.values()
            if category_id is None or team.category_id == category_id
        ]

    def groups_for(self, category_id: Optional[str] = None) -> List[Group]:
        groups = [
            group
            for group in self.groups.values()
            if category_id is None or group.category_id == category_id
        ]
        return sorted(groups, key=lambda g: g.name)

    def matches_for(
        self,
        category_id: Optional[str] = None,
        group_id: Optional[str] = None,
        stage: Optional[Stage] = None,
        states: Optional[Iterable[MatchState]] = None,
    ) -> List[Match]:
        """Matches filtered by category, group, stage and state.

        Results are ordered by round key, then match number.
        """
        wanted = set(states) if states is not None else None
        found = [
            match
            for match in self.matches.values()
            if (category_id is None or match.category_id == category_id)
            and (group_id is None or match.group_id == group_id)
            and (stage is None or match.stage == stage)
            and (wanted is None or match.state in wanted)
        ]
        return sorted(found, key=lambda m: m.sort_key)

    def bracket_matches(self, category_id: str) -> List[Match]:
        """Elimination matches of a category (no group, bracket metadata)."""
        return [
            match
            for match in self.matches_for(category_id)
            if match.group_id is None and isinstance(match.meta, BracketMeta)
        ]

    def find_match(
        self,
        category_id: str,
        stage: Stage,
        match_number: int,
        group_id: Optional[str] = None,
    ) -> Optional[Match]:
        """The match at a bracket position, or None if it does not exist."""
        for match in self.matches.values():
            if (
                match.category_id == category_id
                and match.stage == stage
                and match.match_number == match_number
                and match.group_id == group_id
            ):
                return match
        return None

    def open_matches(self) -> List[Match]:
        return [m for m in self.matches_for() if m.state.is_open]

    def standings_for(self, group_id: str) -> List[Standing]:
        rows = [s for (gid, _), s in self.standings.items() if gid == group_id]
        return sorted(rows, key=lambda s: (s.position is None, s.position or 0))
