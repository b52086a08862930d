"""Launch-time match generation for every tournament format."""

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
from typing import Mapping, Optional, Sequence

from rallybracket.exceptions import (
    InvalidConfigurationException,
    TournamentStateException,
)
from rallybracket.formats.americano import generate_americano, generate_mexicano
from rallybracket.formats.bracket import generate_single_elimination
from rallybracket.formats.double_elimination import generate_double_elimination
from rallybracket.formats.round_robin import (
    generate_groups_stage,
    generate_round_robin,
    group_name,
)
from rallybracket.models.arena import Arena
from rallybracket.models.changes import ChangeSet
from rallybracket.models.config import EngineConfig
from rallybracket.models.enums import TournamentFormat, TournamentStatus
from rallybracket.models.match import Match
from rallybracket.models.standing import Standing
from rallybracket.models.tournament import Category, Group
from rallybracket.utils import generate_id, setup_logger
from rallybracket.utils.validation import validate_team_count_strict

logger = setup_logger(__name__)

_LAUNCHABLE = (TournamentStatus.DRAFT, TournamentStatus.REGISTRATION)


class FormatGenerator:
    """Creates the initial matches of a tournament.

    Generation covers every category of the tournament. The arena is
    updated in place and the returned ChangeSet holds the same writes.
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or EngineConfig()
        self.rng = rng or random.Random()

    def generate(
        self,
        arena: Arena,
        entrants: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> ChangeSet:
        """Generate all launch matches and move the tournament to LIVE.

        Args:
            arena: Tournament with its categories and registered teams
            entrants: Player ids per category for Americano/Mexicano;
                defaults to the arena's registered entrants

        Returns:
            The writes to persist

        Raises:
            TournamentStateException: The tournament was already launched
            InvalidConfigurationException: The tournament has no category
            InvalidTeamCountException: A category has too few entrants
        """
        tournament = arena.tournament
        if tournament.status not in _LAUNCHABLE or arena.matches:
            raise TournamentStateException(
                f"Tournament {tournament.id} is {tournament.status.value} and "
                f"cannot be launched again"
            )
        if not arena.categories:
            raise InvalidConfigurationException(
                f"Tournament {tournament.id} has no categories"
            )

        entrants = entrants if entrants is not None else arena.entrants
        changes = ChangeSet()
        for category in list(arena.categories.values()):
            if tournament.format.is_rotation:
                self._generate_rotation(arena, category, entrants.get(category.id, []), changes)
            else:
                self._generate_teams_format(arena, category, changes)
        self._commit(arena, changes)

        tournament.status = TournamentStatus.LIVE
        changes.set_status(tournament.id, TournamentStatus.LIVE)
        logger.info(
            f"Launched {tournament.format.value} tournament {tournament.id}: "
            f"{len(changes.created_matches)} matches in {len(arena.categories)} categories"
        )
        return changes

    def _generate_teams_format(
        self, arena: Arena, category: Category, changes: ChangeSet
    ) -> None:
        tournament = arena.tournament
        teams = arena.teams_for(category.id)
        validate_team_count_strict(
            len(teams), max(2, tournament.min_teams), tournament.max_teams
        )
        fmt = tournament.format

        if fmt == TournamentFormat.SINGLE_ELIM:
            matches = generate_single_elimination(
                tournament.id,
                category.id,
                teams,
                self.rng,
                best_of=self.config.bracket_best_of,
            )
            self._record_matches(changes, matches)

        elif fmt == TournamentFormat.DOUBLE_ELIM:
            bracket = generate_double_elimination(
                tournament.id,
                category.id,
                teams,
                self.rng,
                best_of=self.config.bracket_best_of,
                grand_final_best_of=self.config.grand_final_best_of,
            )
            self._record_matches(changes, bracket.matches)

        elif fmt == TournamentFormat.ROUND_ROBIN:
            group = Group(
                id=generate_id("group"),
                tournament_id=tournament.id,
                category_id=category.id,
                name=group_name(0),
                team_ids=[team.id for team in teams],
            )
            matches, standings = generate_round_robin(
                group, best_of=self.config.round_robin_best_of
            )
            self._record_groups(changes, [group], standings)
            self._record_matches(changes, matches)

        elif fmt == TournamentFormat.GROUPS_PLAYOFFS:
            groups, matches, standings = generate_groups_stage(
                tournament.id,
                category.id,
                teams,
                self.config.num_groups,
                self.rng,
                best_of=self.config.round_robin_best_of,
            )
            self._record_groups(changes, groups, standings)
            self._record_matches(changes, matches)

        else:
            raise InvalidConfigurationException(f"Unsupported format: {fmt.value}")

    def _generate_rotation(
        self,
        arena: Arena,
        category: Category,
        player_ids: Sequence[str],
        changes: ChangeSet,
    ) -> None:
        tournament = arena.tournament
        existing = {
            team.pair_key: team for team in arena.teams_for() + changes.created_teams
        }
        if tournament.format == TournamentFormat.MEXICANO:
            schedule = generate_mexicano(
                tournament,
                category.id,
                player_ids,
                self.config.mexicano,
                existing_teams=existing,
                best_of=self.config.americano_best_of,
                search_budget=self.config.rotation_search_budget,
            )
        else:
            schedule = generate_americano(
                tournament.id,
                category.id,
                player_ids,
                existing_teams=existing,
                best_of=self.config.americano_best_of,
                search_budget=self.config.rotation_search_budget,
            )
        changes.created_teams.extend(schedule.teams)
        self._record_matches(changes, schedule.matches)

    @staticmethod
    def _record_matches(changes: ChangeSet, matches: Sequence[Match]) -> None:
        changes.created_matches.extend(matches)

    @staticmethod
    def _record_groups(
        changes: ChangeSet,
        groups: Sequence[Group],
        standings: Sequence[Standing],
    ) -> None:
        changes.created_groups.extend(groups)
        changes.standing_upserts.extend(standings)

    @staticmethod
    def _commit(arena: Arena, changes: ChangeSet) -> None:
        """Copy generated records into the arena once every category passed."""
        for group in changes.created_groups:
            arena.add_group(group)
        for standing in changes.standing_upserts:
            arena.standings[(standing.group_id, standing.team_id)] = standing
        for team in changes.created_teams:
            arena.add_team(team)
        for match in changes.created_matches:
            arena.add_match(match)


def generate_tournament(
    arena: Arena,
    config: Optional[EngineConfig] = None,
    rng: Optional[random.Random] = None,
    entrants: Optional[Mapping[str, Sequence[str]]] = None,
) -> ChangeSet:
    """Convenience wrapper around ``FormatGenerator(config, rng).generate``."""
    return FormatGenerator(config, rng).generate(arena, entrants)
