"""In-memory reference store.

Keeps every record in dictionaries, hands out deep copies through
``load_arena`` and applies engine ChangeSets with compare-and-set slot
writes. Each tournament has its own re-entrant lock; callers hold it for
the whole load -> engine -> apply cycle.
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

import copy
import threading
from collections import defaultdict
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Sequence, Tuple

from rallybracket.exceptions import DuplicateTeamException, EntityNotFoundException
from rallybracket.models.arena import Arena
from rallybracket.models.changes import ApplyReport, ChangeSet, SlotAssignment
from rallybracket.models.enums import RankingScope, Slot
from rallybracket.models.match import Match
from rallybracket.models.standing import Ranking, RankingKey, Standing
from rallybracket.models.team import Player, Team
from rallybracket.models.tournament import Category, Court, Group, Tournament
from rallybracket.utils import setup_logger

logger = setup_logger(__name__)

_MATCH_FIELDS = {
    "team_a_id",
    "team_b_id",
    "winner_id",
    "state",
    "best_of",
    "meta",
    "court_id",
    "scheduled_at",
    "set_scores",
}


class InMemoryStore:
    """Dictionary-backed implementation of every store protocol."""

    def __init__(self):
        self.tournaments: Dict[str, Tournament] = {}
        self.categories: Dict[str, Category] = {}
        self.players: Dict[str, Player] = {}
        self.teams: Dict[str, Team] = {}
        self.groups: Dict[str, Group] = {}
        self.matches: Dict[str, Match] = {}
        self.courts: Dict[str, Court] = {}
        self.standings: Dict[Tuple[str, str], Standing] = {}
        self.rankings: Dict[RankingKey, Ranking] = {}
        self.entrants: Dict[str, List[str]] = defaultdict(list)
        self._locks: Dict[str, threading.RLock] = {}
        self._locks_guard = threading.Lock()
        self._write_lock = threading.RLock()

    # ========== Locking ==========

    @contextmanager
    def tournament_lock(self, tournament_id: str) -> Iterator[None]:
        """Serialize all work on one tournament."""
        with self._locks_guard:
            lock = self._locks.setdefault(tournament_id, threading.RLock())
        with lock:
            yield

    # ========== Registration ==========

    def add_tournament(self, tournament: Tournament) -> None:
        self.tournaments[tournament.id] = tournament

    def get_tournament(self, tournament_id: str) -> Tournament:
        try:
            return self.tournaments[tournament_id]
        except KeyError:
            raise EntityNotFoundException(f"Tournament {tournament_id} not found") from None

    def add_category(self, category: Category) -> None:
        self.get_tournament(category.tournament_id)
        self.categories[category.id] = category

    def add_player(self, player: Player) -> None:
        self.players[player.id] = player

    def add_court(self, court: Court) -> None:
        self.courts[court.id] = court

    def register_entrant(self, category_id: str, player_id: str) -> None:
        """Register an individual for an Americano/Mexicano category."""
        if category_id not in self.categories:
            raise EntityNotFoundException(f"Category {category_id} not found")
        if player_id not in self.entrants[category_id]:
            self.entrants[category_id].append(player_id)

    def add_team(self, team: Team) -> None:
        """Register a team; a pair of players may enter a tournament once."""
        for other in self.teams.values():
            if (
                other.id != team.id
                and other.tournament_id == team.tournament_id
                and other.pair_key == team.pair_key
            ):
                raise DuplicateTeamException(
                    f"Players {sorted(team.pair_key)} are already entered as team {other.id}"
                )
        self.teams[team.id] = team

    # ========== TeamStore ==========

    def get_team(self, team_id: str) -> Team:
        try:
            return self.teams[team_id]
        except KeyError:
            raise EntityNotFoundException(f"Team {team_id} not found") from None

    def teams_for_player(self, player_id: str) -> List[Team]:
        return [t for t in self.teams.values() if t.has_player(player_id)]

    # ========== GroupStore ==========

    def get_group(self, group_id: str) -> Group:
        try:
            return self.groups[group_id]
        except KeyError:
            raise EntityNotFoundException(f"Group {group_id} not found") from None

    def create_group(self, group: Group) -> None:
        self.groups[group.id] = group

    # ========== MatchStore ==========

    def create_many(self, matches: Sequence[Match]) -> None:
        for match in matches:
            self.matches[match.id] = copy.deepcopy(match)

    def get_match(self, match_id: str) -> Match:
        try:
            return self.matches[match_id]
        except KeyError:
            raise EntityNotFoundException(f"Match {match_id} not found") from None

    def find_by(
        self,
        tournament_id: str,
        category_id: Optional[str] = None,
        group_id: Optional[str] = None,
        round_key: Optional[int] = None,
    ) -> List[Match]:
        found = [
            m
            for m in self.matches.values()
            if m.tournament_id == tournament_id
            and (category_id is None or m.category_id == category_id)
            and (group_id is None or m.group_id == group_id)
            and (round_key is None or m.round_key == round_key)
        ]
        return sorted(found, key=lambda m: m.sort_key)

    def update(self, match_id: str, **changes: Any) -> Match:
        match = self.get_match(match_id)
        unknown = set(changes) - _MATCH_FIELDS
        if unknown:
            raise ValueError(f"Cannot update match fields {sorted(unknown)}")
        for name, value in changes.items():
            setattr(match, name, copy.deepcopy(value))
        return match

    def delete(self, match_id: str) -> None:
        self.get_match(match_id)
        del self.matches[match_id]

    def assign_slot(self, match_id: str, slot: Slot, team_id: str) -> bool:
        """Fill a slot only if it is empty or already holds the team."""
        with self._write_lock:
            match = self.get_match(match_id)
            current = match.slot(slot)
            if current == team_id:
                return True
            if current is not None:
                return False
            match.set_slot(slot, team_id)
            return True

    # ========== StandingStore / RankingStore ==========

    def upsert_standing(self, standing: Standing) -> None:
        self.standings[(standing.group_id, standing.team_id)] = copy.deepcopy(standing)

    def standings_for_group(self, group_id: str) -> List[Standing]:
        rows = [s for (gid, _), s in self.standings.items() if gid == group_id]
        return sorted(rows, key=lambda s: (s.position is None, s.position or 0))

    def upsert_ranking(self, ranking: Ranking) -> None:
        self.rankings[ranking.key] = copy.deepcopy(ranking)

    def find_by_scope(
        self,
        scope: RankingScope,
        tournament_id: Optional[str] = None,
        category_id: Optional[str] = None,
    ) -> List[Ranking]:
        """Rating rows of a scope, best first (rating, then wins)."""
        probe = RankingKey.for_scope(scope, "", tournament_id, category_id)
        rows = [
            r
            for key, r in self.rankings.items()
            if key.scope == scope
            and (probe.tournament_id is None or key.tournament_id == probe.tournament_id)
            and (probe.category_id is None or key.category_id == probe.category_id)
        ]
        return sorted(rows, key=lambda r: (-r.rating, -r.wins, r.user_id))

    # ========== Arena ==========

    def load_arena(self, tournament_id: str) -> Arena:
        """Deep copy of everything belonging to a tournament.

        Rankings are included for every scope, so global ratings carry
        across tournaments.
        """
        tournament = self.get_tournament(tournament_id)
        categories = {
            c.id: c for c in self.categories.values() if c.tournament_id == tournament_id
        }
        teams = {t.id: t for t in self.teams.values() if t.tournament_id == tournament_id}
        player_ids = {p for team in teams.values() for p in team.player_ids}
        for category_id in categories:
            player_ids.update(self.entrants.get(category_id, []))

        arena = Arena(
            tournament=tournament,
            categories=categories,
            groups={g.id: g for g in self.groups.values() if g.tournament_id == tournament_id},
            players={pid: self.players[pid] for pid in player_ids if pid in self.players},
            teams=teams,
            matches={m.id: m for m in self.matches.values() if m.tournament_id == tournament_id},
            rankings=dict(self.rankings),
            entrants={cid: list(self.entrants.get(cid, [])) for cid in categories},
        )
        arena.standings = {
            key: s for key, s in self.standings.items() if key[0] in arena.groups
        }
        return copy.deepcopy(arena)

    def apply(self, changes: ChangeSet) -> ApplyReport:
        """Persist a ChangeSet, all or nothing.

        Slot assignments are compare-and-set. If any of them would find its
        slot taken by another team, nothing in the change set is written
        and every slot assignment is reported as rejected, not raised.
        """
        with self._write_lock:
            conflicts = self._slot_conflicts(changes)
            if conflicts:
                for assignment in conflicts:
                    logger.warning(
                        f"Rejected slot write {assignment.slot.value} of match "
                        f"{assignment.match_id}: slot already taken"
                    )
                logger.warning(f"Change set not applied, {len(conflicts)} slot conflicts")
                return ApplyReport(rejected=list(changes.slot_assignments))
            return self._apply(changes)

    def _slot_conflicts(self, changes: ChangeSet) -> List[SlotAssignment]:
        """Slot assignments of a change set that compare-and-set would refuse."""
        created = {m.id: m for m in changes.created_matches}
        pending: Dict[Tuple[str, Slot], str] = {}
        conflicts = []
        for assignment in changes.slot_assignments:
            key = (assignment.match_id, assignment.slot)
            if key in pending:
                current = pending[key]
            elif assignment.match_id in created:
                current = created[assignment.match_id].slot(assignment.slot)
            else:
                current = self.get_match(assignment.match_id).slot(assignment.slot)
            if current is not None and current != assignment.team_id:
                conflicts.append(assignment)
            else:
                pending[key] = assignment.team_id
        return conflicts

    def _apply(self, changes: ChangeSet) -> ApplyReport:
        report = ApplyReport()
        for group in changes.created_groups:
            self.create_group(copy.deepcopy(group))
            report.applied += 1
        for team in changes.created_teams:
            self.add_team(copy.deepcopy(team))
            report.applied += 1
        self.create_many(changes.created_matches)
        report.applied += len(changes.created_matches)

        for assignment in changes.slot_assignments:
            self.assign_slot(assignment.match_id, assignment.slot, assignment.team_id)
            report.applied += 1

        for update in changes.match_updates:
            self.update(update.match_id, **update.changes)
            report.applied += 1
        for standing in changes.standing_upserts:
            self.upsert_standing(standing)
            report.applied += 1
        for ranking in changes.ranking_upserts:
            self.upsert_ranking(ranking)
            report.applied += 1
        if changes.tournament_status is not None:
            self.get_tournament(changes.tournament_id).status = changes.tournament_status
            report.applied += 1
        return report
