"""Change sets: the writes an engine call asks the store to perform.

Engines mutate a working Arena and record every write here, so a store can
replay exactly the same changes against its own copy. Slot assignments are
compare-and-set: they only land if the slot is still empty or already holds
the same team.
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
from typing import Any, Dict, List, Optional

from rallybracket.models.enums import Slot, TournamentStatus
from rallybracket.models.match import Match
from rallybracket.models.standing import Ranking, Standing
from rallybracket.models.team import Team
from rallybracket.models.tournament import Group


@dataclass(frozen=True)
class SlotAssignment:
    match_id: str
    slot: Slot
    team_id: str


@dataclass
class MatchUpdate:
    """Field updates for an existing match, applied in order."""

    match_id: str
    changes: Dict[str, Any]


@dataclass
class ChangeSet:
    """Ordered record of writes.

    Stores apply the sections in declaration order: groups, teams and
    matches first, then slot assignments, match updates, standings,
    rankings and finally the tournament status.
    """

    created_groups: List[Group] = field(default_factory=list)
    created_teams: List[Team] = field(default_factory=list)
    created_matches: List[Match] = field(default_factory=list)
    slot_assignments: List[SlotAssignment] = field(default_factory=list)
    match_updates: List[MatchUpdate] = field(default_factory=list)
    standing_upserts: List[Standing] = field(default_factory=list)
    ranking_upserts: List[Ranking] = field(default_factory=list)
    tournament_id: Optional[str] = None
    tournament_status: Optional[TournamentStatus] = None

    def assign_slot(self, match_id: str, slot: Slot, team_id: str) -> None:
        self.slot_assignments.append(SlotAssignment(match_id, slot, team_id))

    def update_match(self, match_id: str, **changes: Any) -> None:
        self.match_updates.append(MatchUpdate(match_id, dict(changes)))

    def set_status(self, tournament_id: str, status: TournamentStatus) -> None:
        self.tournament_id = tournament_id
        self.tournament_status = status

    def extend(self, other: "ChangeSet") -> "ChangeSet":
        """Append another change set's writes after this one's."""
        self.created_groups.extend(other.created_groups)
        self.created_teams.extend(other.created_teams)
        self.created_matches.extend(other.created_matches)
        self.slot_assignments.extend(other.slot_assignments)
        self.match_updates.extend(other.match_updates)
        self.standing_upserts.extend(other.standing_upserts)
        self.ranking_upserts.extend(other.ranking_upserts)
        if other.tournament_status is not None:
            self.set_status(other.tournament_id, other.tournament_status)
        return self

    def updates_for(self, match_id: str) -> Dict[str, Any]:
        """Merged field updates recorded for one match."""
        merged: Dict[str, Any] = {}
        for update in self.match_updates:
            if update.match_id == match_id:
                merged.update(update.changes)
        return merged

    @property
    def is_empty(self) -> bool:
        return not (
            self.created_groups
            or self.created_teams
            or self.created_matches
            or self.slot_assignments
            or self.match_updates
            or self.standing_upserts
            or self.ranking_upserts
            or self.tournament_status is not None
        )


@dataclass
class ApplyReport:
    """Outcome of applying a ChangeSet to a store."""

    applied: int = 0
    rejected: List[SlotAssignment] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.rejected
