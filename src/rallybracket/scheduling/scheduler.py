"""Court and time assignment.

Matches are scheduled greedily in round order. Each gets the earliest
(court, start) where the court is free, all four players have rested,
the match fits inside the court's daily window and it ends before the
tournament does. Matches that cannot be placed are reported as conflicts
and left unscheduled.
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
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Sequence, Tuple

from dateutil.relativedelta import relativedelta

from rallybracket.exceptions import (
    InvalidConfigurationException,
    NoScheduledMatchesException,
)
from rallybracket.models.arena import Arena
from rallybracket.models.changes import ChangeSet
from rallybracket.models.config import BufferConfig, DurationConfig
from rallybracket.models.enums import MatchState
from rallybracket.models.match import Match
from rallybracket.models.tournament import Court
from rallybracket.type_hints import ConflictKind
from rallybracket.utils import setup_logger
from rallybracket.utils.validation import validate_window_strict

logger = setup_logger(__name__)


@dataclass
class ScheduledMatch:
    match_id: str
    court_id: str
    court_name: str
    scheduled_at: datetime
    estimated_end: datetime
    round_key: int


@dataclass
class SchedulingConflict:
    """A scheduling problem, reported as data rather than raised."""

    type: ConflictKind
    match_id: str
    description: str
    conflicting_match_id: Optional[str] = None
    player_id: Optional[str] = None
    court_id: Optional[str] = None


@dataclass
class ScheduleResult:
    scheduled: List[ScheduledMatch] = field(default_factory=list)
    conflicts: List[SchedulingConflict] = field(default_factory=list)
    changes: ChangeSet = field(default_factory=ChangeSet)

    @property
    def assignments(self) -> Dict[str, Tuple[str, datetime]]:
        """match id -> (court id, start)."""
        return {s.match_id: (s.court_id, s.scheduled_at) for s in self.scheduled}


@dataclass
class OptimizationReport:
    """Before/after spans of an optimized schedule, in minutes."""

    original_duration: float
    optimized_duration: float
    matches_rescheduled: int
    result: ScheduleResult

    @property
    def minutes_saved(self) -> float:
        return self.original_duration - self.optimized_duration


class Scheduler:
    """Greedy court and time scheduler.

    Args:
        buffers: Rest and changeover minutes
        durations: Estimated match lengths
    """

    def __init__(
        self,
        buffers: Optional[BufferConfig] = None,
        durations: Optional[DurationConfig] = None,
    ):
        self.buffers = buffers or BufferConfig()
        self.durations = durations or DurationConfig()

    def estimated_duration(self, match: Match) -> timedelta:
        return timedelta(minutes=self.durations.minutes_for(match))

    # ========== Scheduling ==========

    def schedule_matches(
        self,
        arena: Arena,
        courts: Sequence[Court],
        matches: Optional[Sequence[Match]] = None,
        buffers: Optional[BufferConfig] = None,
    ) -> ScheduleResult:
        """Assign a court and start time to every schedulable match.

        Args:
            arena: Tournament arena; scheduled matches are updated in place
            courts: Courts available to the tournament
            matches: Matches to place; defaults to every open match with
                both teams and no court or time
            buffers: Override of the scheduler's buffers for this pass

        Returns:
            Assignments, conflicts and the court/time writes

        Raises:
            InvalidConfigurationException: No courts were given
            InvalidTimeRangeException: The tournament window is empty
        """
        if not courts:
            raise InvalidConfigurationException("No courts available for scheduling")
        tournament = arena.tournament
        validate_window_strict(tournament.start_at, tournament.end_at)
        buffers = buffers or self.buffers

        if matches is None:
            matches = [
                m
                for m in arena.matches_for()
                if m.state == MatchState.PENDING
                and m.has_both_teams
                and m.scheduled_at is None
                and m.court_id is None
            ]
        pending = sorted(matches, key=lambda m: m.sort_key)

        court_free: Dict[str, datetime] = {c.id: tournament.start_at for c in courts}
        player_free: Dict[str, datetime] = {}
        player_court: Dict[str, str] = {}
        self._seed_busy_time(arena, courts, court_free, player_free, player_court, buffers)

        result = ScheduleResult()
        for match in pending:
            players = [p for team_id in match.team_ids for p in arena.players_of(team_id)]
            duration = self.estimated_duration(match)
            slot = self._earliest_slot(
                courts,
                court_free,
                player_free,
                player_court,
                players,
                duration,
                tournament.start_at,
                tournament.end_at,
                buffers,
            )
            if slot is None:
                conflict = SchedulingConflict(
                    type="time",
                    match_id=match.id,
                    description=(
                        f"No court time for {duration.total_seconds() / 60:.0f} minutes "
                        f"before {tournament.end_at.isoformat()}"
                    ),
                )
                result.conflicts.append(conflict)
                logger.warning(f"Could not schedule match {match.id}: {conflict.description}")
                continue

            court, start = slot
            end = start + duration
            court_free[court.id] = end + timedelta(minutes=buffers.between_matches)
            for player_id in players:
                player_free[player_id] = end + timedelta(minutes=buffers.same_player)
                player_court[player_id] = court.id

            match.court_id = court.id
            match.scheduled_at = start
            result.changes.update_match(match.id, court_id=court.id, scheduled_at=start)
            result.scheduled.append(
                ScheduledMatch(match.id, court.id, court.name, start, end, match.round_key)
            )
            logger.debug(f"Scheduled match {match.id} on {court.name} at {start.isoformat()}")

        logger.info(
            f"Scheduled {len(result.scheduled)} of {len(pending)} matches, "
            f"{len(result.conflicts)} conflicts"
        )
        return result

    def _seed_busy_time(
        self,
        arena: Arena,
        courts: Sequence[Court],
        court_free: Dict[str, datetime],
        player_free: Dict[str, datetime],
        player_court: Dict[str, str],
        buffers: BufferConfig,
    ) -> None:
        """Account for matches that already hold a court and a time."""
        for match in arena.matches_for():
            if match.scheduled_at is None or match.court_id is None:
                continue
            if match.state == MatchState.CANCELLED:
                continue
            end = match.scheduled_at + self.estimated_duration(match)
            if match.court_id in court_free:
                court_free[match.court_id] = max(
                    court_free[match.court_id],
                    end + timedelta(minutes=buffers.between_matches),
                )
            for team_id in match.team_ids:
                for player_id in arena.players_of(team_id):
                    rested = end + timedelta(minutes=buffers.same_player)
                    if player_id not in player_free or player_free[player_id] < rested:
                        player_free[player_id] = rested
                        player_court[player_id] = match.court_id

    def _earliest_slot(
        self,
        courts: Sequence[Court],
        court_free: Dict[str, datetime],
        player_free: Dict[str, datetime],
        player_court: Dict[str, str],
        players: Sequence[str],
        duration: timedelta,
        start_at: datetime,
        end_at: datetime,
        buffers: BufferConfig,
    ) -> Optional[Tuple[Court, datetime]]:
        best: Optional[Tuple[Court, datetime]] = None
        for court in courts:
            ready = [court_free[court.id], start_at]
            ready.extend(
                self._player_ready(p, court, player_free, player_court, buffers)
                for p in players
                if p in player_free
            )
            candidate = self._fit_window(court, max(ready), duration, end_at)
            if candidate is None or candidate + duration > end_at:
                continue
            if best is None or candidate < best[1]:
                best = (court, candidate)
        return best

    @staticmethod
    def _player_ready(
        player_id: str,
        court: Court,
        player_free: Dict[str, datetime],
        player_court: Dict[str, str],
        buffers: BufferConfig,
    ) -> datetime:
        ready = player_free[player_id]
        if player_court.get(player_id, court.id) != court.id:
            ready += timedelta(minutes=buffers.court_change)
        return ready

    @staticmethod
    def _fit_window(
        court: Court, candidate: datetime, duration: timedelta, end_at: datetime
    ) -> Optional[datetime]:
        """Move a start time into the court's daily window.

        Starts before opening move to the opening; matches that would run
        past closing move to the next day's opening.
        """
        if not court.has_window:
            return candidate
        while candidate <= end_at:
            opens = datetime.combine(candidate.date(), court.available_from, candidate.tzinfo)
            closes = datetime.combine(candidate.date(), court.available_to, candidate.tzinfo)
            if candidate < opens:
                candidate = opens
            if candidate + duration <= closes:
                return candidate
            candidate = opens + relativedelta(days=+1)
        return None

    # ========== Conflicts ==========

    def detect_conflicts(self, arena: Arena) -> List[SchedulingConflict]:
        """Pairwise overlap check of all scheduled, not cancelled matches."""
        scheduled = sorted(
            (
                m
                for m in arena.matches_for()
                if m.scheduled_at is not None and m.state != MatchState.CANCELLED
            ),
            key=lambda m: m.scheduled_at,
        )
        conflicts: List[SchedulingConflict] = []
        for index, first in enumerate(scheduled):
            first_end = first.scheduled_at + self.estimated_duration(first)
            first_players = set(
                p for team_id in first.team_ids for p in arena.players_of(team_id)
            )
            for second in scheduled[index + 1 :]:
                if second.scheduled_at >= first_end:
                    break
                second_players = set(
                    p for team_id in second.team_ids for p in arena.players_of(team_id)
                )
                for player_id in sorted(first_players & second_players):
                    conflicts.append(
                        SchedulingConflict(
                            type="player",
                            match_id=first.id,
                            conflicting_match_id=second.id,
                            player_id=player_id,
                            description=(
                                f"Player {arena.player_name(player_id)} is booked in "
                                f"overlapping matches {first.id} and {second.id}"
                            ),
                        )
                    )
                if first.court_id is not None and first.court_id == second.court_id:
                    conflicts.append(
                        SchedulingConflict(
                            type="court",
                            match_id=first.id,
                            conflicting_match_id=second.id,
                            court_id=first.court_id,
                            description=(
                                f"Court {first.court_id} is booked for overlapping "
                                f"matches {first.id} and {second.id}"
                            ),
                        )
                    )
        if conflicts:
            logger.warning(f"Detected {len(conflicts)} scheduling conflicts")
        return conflicts

    # ========== Optimization ==========

    def optimize_schedule(self, arena: Arena, courts: Sequence[Court]) -> OptimizationReport:
        """Clear every open match's court and time and reschedule with tight buffers.

        Raises:
            NoScheduledMatchesException: Nothing is scheduled yet
        """
        scheduled = [
            m for m in arena.matches_for() if m.scheduled_at is not None and m.is_open
        ]
        if not scheduled:
            raise NoScheduledMatchesException(
                f"Tournament {arena.tournament_id} has no scheduled matches to optimize"
            )
        original = self._span_minutes(scheduled)

        changes = ChangeSet()
        for match in scheduled:
            match.court_id = None
            match.scheduled_at = None
            changes.update_match(match.id, court_id=None, scheduled_at=None)

        result = self.schedule_matches(arena, courts, scheduled, BufferConfig.tight())
        result.changes = changes.extend(result.changes)
        rescheduled = [m for m in scheduled if m.scheduled_at is not None]
        optimized = self._span_minutes(rescheduled) if rescheduled else 0.0
        logger.info(
            f"Optimized schedule of {arena.tournament_id}: {original:.0f} -> "
            f"{optimized:.0f} minutes"
        )
        return OptimizationReport(original, optimized, len(rescheduled), result)

    def _span_minutes(self, matches: Sequence[Match]) -> float:
        first = min(m.scheduled_at for m in matches)
        last = max(m.scheduled_at + self.estimated_duration(m) for m in matches)
        return (last - first).total_seconds() / 60

    # ========== Courts only ==========

    def assign_courts(
        self, match_ids: Sequence[str], courts: Sequence[Court]
    ) -> Tuple[Dict[str, str], ChangeSet]:
        """Spread matches over courts in turn, without touching times.

        Raises:
            InvalidConfigurationException: No courts were given
        """
        if not courts:
            raise InvalidConfigurationException("No courts available for assignment")
        changes = ChangeSet()
        assignments = {}
        for index, match_id in enumerate(match_ids):
            court = courts[index % len(courts)]
            assignments[match_id] = court.id
            changes.update_match(match_id, court_id=court.id)
        return assignments, changes

    def scheduling_stats(self, arena: Arena) -> Dict[str, int]:
        matches = [m for m in arena.matches_for() if m.state != MatchState.CANCELLED]
        scheduled = [m for m in matches if m.scheduled_at is not None]
        return {
            "total_matches": len(matches),
            "scheduled_matches": len(scheduled),
            "unscheduled_matches": len(matches) - len(scheduled),
            "conflicts": len(self.detect_conflicts(arena)),
        }
