"""Tournament service: the engines wired to a store.

Every operation runs under the tournament's lock: load an Arena, run the
engine, apply the resulting ChangeSet. The engines themselves never touch
the store.
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
from typing import List, Mapping, Optional, Sequence

from rallybracket.controllers.progression import (
    ProgressionEngine,
    ProgressionResult,
    SetInput,
)
from rallybracket.formats.generator import FormatGenerator
from rallybracket.models.changes import ChangeSet
from rallybracket.models.config import EngineConfig
from rallybracket.models.enums import RankingScope
from rallybracket.models.standing import PlayerStanding, Ranking, Standing
from rallybracket.models.tournament import Court
from rallybracket.scheduling.scheduler import OptimizationReport, ScheduleResult, Scheduler
from rallybracket.store.memory import InMemoryStore
from rallybracket.tournament.elo import top_players
from rallybracket.utils import setup_logger

logger = setup_logger(__name__)


class TournamentService:
    """High-level operations on stored tournaments.

    Args:
        store: Backing store
        config: Engine configuration shared by every engine
        rng: Random source for seeding and playoff generation
    """

    def __init__(
        self,
        store: InMemoryStore,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.store = store
        self.config = config or EngineConfig()
        self.rng = rng or random.Random()
        self.generator = FormatGenerator(self.config, self.rng)
        self.progression = ProgressionEngine(self.config, self.rng)
        self.scheduler = Scheduler(self.config.buffers, self.config.durations)

    def _apply(self, changes: ChangeSet) -> None:
        report = self.store.apply(changes)
        if not report.ok:
            logger.warning(
                f"Store rejected a change set with {len(report.rejected)} slot writes"
            )

    def launch(
        self,
        tournament_id: str,
        entrants: Optional[Mapping[str, Sequence[str]]] = None,
    ) -> ChangeSet:
        """Generate the launch matches of a tournament and set it LIVE."""
        with self.store.tournament_lock(tournament_id):
            arena = self.store.load_arena(tournament_id)
            changes = self.generator.generate(arena, entrants)
            self._apply(changes)
            return changes

    def start_match(self, match_id: str) -> None:
        tournament_id = self.store.get_match(match_id).tournament_id
        with self.store.tournament_lock(tournament_id):
            arena = self.store.load_arena(tournament_id)
            self._apply(self.progression.start_match(arena, match_id))

    def record_result(
        self,
        match_id: str,
        set_scores: Sequence[SetInput],
        update_ratings: Optional[bool] = None,
    ) -> ProgressionResult:
        """Report set scores for a match and run progression."""
        tournament_id = self.store.get_match(match_id).tournament_id
        with self.store.tournament_lock(tournament_id):
            arena = self.store.load_arena(tournament_id)
            result = self.progression.record_result(
                arena, match_id, set_scores, update_ratings
            )
            self._apply(result.changes)
            return result

    def walkover(self, match_id: str, no_show_team_id: str) -> ProgressionResult:
        tournament_id = self.store.get_match(match_id).tournament_id
        with self.store.tournament_lock(tournament_id):
            arena = self.store.load_arena(tournament_id)
            result = self.progression.handle_walkover(arena, match_id, no_show_team_id)
            self._apply(result.changes)
            return result

    def complete_match(self, match_id: str) -> ProgressionResult:
        """Run progression for a match whose result was stored directly."""
        tournament_id = self.store.get_match(match_id).tournament_id
        with self.store.tournament_lock(tournament_id):
            arena = self.store.load_arena(tournament_id)
            result = self.progression.process_match_completion(arena, match_id)
            self._apply(result.changes)
            return result

    def _courts(self, court_ids: Optional[Sequence[str]]) -> List[Court]:
        if court_ids is None:
            return list(self.store.courts.values())
        return [self.store.courts[cid] for cid in court_ids if cid in self.store.courts]

    def schedule(
        self, tournament_id: str, court_ids: Optional[Sequence[str]] = None
    ) -> ScheduleResult:
        """Schedule every open match that has both teams but no slot yet."""
        with self.store.tournament_lock(tournament_id):
            arena = self.store.load_arena(tournament_id)
            result = self.scheduler.schedule_matches(arena, self._courts(court_ids))
            self._apply(result.changes)
            return result

    def optimize(
        self, tournament_id: str, court_ids: Optional[Sequence[str]] = None
    ) -> OptimizationReport:
        with self.store.tournament_lock(tournament_id):
            arena = self.store.load_arena(tournament_id)
            report = self.scheduler.optimize_schedule(arena, self._courts(court_ids))
            self._apply(report.result.changes)
            return report

    # ========== Queries ==========

    def standings(self, group_id: str) -> List[Standing]:
        return self.store.standings_for_group(group_id)

    def americano_standings(
        self, tournament_id: str, category_id: Optional[str] = None
    ) -> List[PlayerStanding]:
        arena = self.store.load_arena(tournament_id)
        return self.progression.americano_standings(arena, category_id)

    def leaderboard(
        self,
        scope: RankingScope = RankingScope.GLOBAL,
        limit: int = 10,
        tournament_id: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> List[Ranking]:
        return top_players(self.store.rankings, scope, limit, tournament_id, category_id)
