"""Standings for round-robin groups and Americano players.

Standings are always recomputed from the completed matches of a group.
Teams are ordered by:

1. wins (descending)
2. head-to-head result, only when exactly two teams share the same number
   of wins and they have met
3. game differential (descending)
4. games won (descending)
5. team name (ascending)
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

from collections import defaultdict
from typing import Dict, List, Optional

from rallybracket.models.arena import Arena
from rallybracket.models.enums import MatchState
from rallybracket.models.match import AmericanoMeta, Match
from rallybracket.models.standing import PlayerStanding, Standing
from rallybracket.type_hints import HeadToHead
from rallybracket.utils import setup_logger

logger = setup_logger(__name__)


class StandingsCalculator:
    """Calculates group standings and Americano individual standings."""

    def calculate(self, arena: Arena, group_id: str) -> List[Standing]:
        """Recompute a group's standings and store them on the arena.

        Args:
            arena: Arena holding the group and its matches
            group_id: Group to recompute

        Returns:
            Standings ordered by position (1 first)

        Raises:
            EntityNotFoundException: Unknown group
        """
        group = arena.get_group(group_id)
        rows: Dict[str, Standing] = {
            team_id: Standing(group_id=group_id, team_id=team_id)
            for team_id in group.team_ids
        }
        head_to_head: HeadToHead = defaultdict(lambda: defaultdict(int))

        for match in arena.matches_for(group_id=group_id):
            if not match.is_completed or not match.has_both_teams:
                continue
            loser_id = match.loser_id
            for team_id in match.team_ids:
                row = rows.setdefault(team_id, Standing(group_id=group_id, team_id=team_id))
                games_for, games_against = match.games_for(team_id)
                row.points_for += games_for
                row.points_against += games_against
                row.matches_played += 1
                if team_id == match.winner_id:
                    row.wins += 1
                else:
                    row.losses += 1
            head_to_head[match.winner_id][loser_id] += 1
            head_to_head[loser_id][match.winner_id] -= 1

        for row in rows.values():
            row.diff = row.points_for - row.points_against

        ordered = self.apply_tiebreakers(list(rows.values()), head_to_head, arena)
        for position, row in enumerate(ordered, start=1):
            row.position = position
            arena.standings[(group_id, row.team_id)] = row
        logger.debug(f"Recomputed standings for group {group_id}: {len(ordered)} teams")
        return ordered

    def apply_tiebreakers(
        self,
        standings: List[Standing],
        head_to_head: HeadToHead,
        arena: Optional[Arena] = None,
    ) -> List[Standing]:
        """Order standings by wins, head-to-head, differential, games and name.

        The head-to-head rule only applies to a two-way tie on wins, so the
        ordering stays a total order.
        """

        def name_of(team_id: str) -> str:
            if arena is not None and team_id in arena.teams:
                return arena.team_name(team_id)
            return team_id

        ordered = sorted(
            standings,
            key=lambda s: (-s.wins, -s.diff, -s.points_for, name_of(s.team_id)),
        )

        tiers: Dict[int, List[int]] = defaultdict(list)
        for index, row in enumerate(ordered):
            tiers[row.wins].append(index)
        for indexes in tiers.values():
            if len(indexes) != 2:
                continue
            first, second = indexes
            upper, lower = ordered[first], ordered[second]
            if head_to_head.get(lower.team_id, {}).get(upper.team_id, 0) > 0:
                ordered[first], ordered[second] = lower, upper
        return ordered

    def is_group_complete(self, arena: Arena, group_id: str) -> bool:
        """True once no match in the group is pending or ongoing."""
        matches = arena.matches_for(group_id=group_id)
        return bool(matches) and not any(m.is_open for m in matches)

    def qualified_teams(self, arena: Arena, group_id: str, top_n: int = 2) -> List[str]:
        """Team ids of the top ``top_n`` positions of a group."""
        return [row.team_id for row in self.calculate(arena, group_id)[:top_n]]

    def americano_standings(
        self, arena: Arena, category_id: Optional[str] = None
    ) -> List[PlayerStanding]:
        """Individual standings across Americano/Mexicano rotations.

        Players appear once they have a done or ongoing match; statistics
        come from done matches only. Ordered by wins, differential, games
        won and name.
        """
        rows: Dict[str, PlayerStanding] = {}

        def row_for(player_id: str) -> PlayerStanding:
            if player_id not in rows:
                rows[player_id] = PlayerStanding(
                    player_id=player_id, player_name=arena.player_name(player_id)
                )
            return rows[player_id]

        for match in arena.matches_for(category_id=category_id):
            if not isinstance(match.meta, AmericanoMeta) or not match.has_both_teams:
                continue
            if match.state not in (MatchState.DONE, MatchState.ONGOING):
                continue
            self._add_rotation_match(arena, match, row_for)

        for row in rows.values():
            row.diff = row.points_for - row.points_against
        ordered = sorted(
            rows.values(),
            key=lambda r: (-r.wins, -r.diff, -r.points_for, r.player_name),
        )
        for position, row in enumerate(ordered, start=1):
            row.position = position
        return ordered

    @staticmethod
    def _add_rotation_match(arena: Arena, match: Match, row_for) -> None:
        done = match.state == MatchState.DONE
        sides = (match.team_a_id, match.team_b_id)
        for side, opponent in (sides, sides[::-1]):
            players = arena.players_of(side)
            opponents = arena.players_of(opponent)
            games_for, games_against = match.games_for(side)
            for player_id in players:
                row = row_for(player_id)
                if not done:
                    continue
                row.partners.update(p for p in players if p != player_id)
                row.opponents.update(opponents)
                row.matches_played += 1
                row.points_for += games_for
                row.points_against += games_against
                if match.winner_id == side:
                    row.wins += 1
                elif match.winner_id is not None:
                    row.losses += 1
