"""Match progression.

Everything that happens after a match is decided: ratings, advancing the
winner (and in double elimination the loser), grand-final resets, group
standings, playoff generation and detecting the end of the tournament.

The engine keeps no state between calls. Each call takes an Arena, mutates
it and returns the same writes as a ChangeSet on the ProgressionResult.
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
from dataclasses import dataclass, field, replace
from typing import List, Optional, Sequence, Tuple, Union

from rallybracket.constants import BRACKET_PLAYOFF
from rallybracket.exceptions import MatchNotReadyException
from rallybracket.formats.bracket import generate_single_elimination
from rallybracket.formats.topology import Target, loser_target, winner_target
from rallybracket.models.arena import Arena
from rallybracket.models.changes import ChangeSet
from rallybracket.models.config import EngineConfig
from rallybracket.models.enums import MatchState, Slot, TournamentFormat, TournamentStatus
from rallybracket.models.match import Match, SetScore
from rallybracket.models.stage import Stage
from rallybracket.models.standing import PlayerStanding
from rallybracket.tournament.elo import TeamEloChange, update_team_ratings
from rallybracket.tournament.standings_calculator import StandingsCalculator
from rallybracket.utils import setup_logger

logger = setup_logger(__name__)

SetInput = Union[SetScore, Tuple[int, int]]


@dataclass
class ProgressionResult:
    """What processing one completed match did.

    Attributes:
        match_id: The processed match
        winner_id: Its winner
        progressed_to: Matches that received a team, in order
        standings_updated: Group standings were recomputed
        rating_updated: Ratings were updated
        playoffs_generated: Playoff matches were created
        reset_required: For a first grand final, whether the reset is played
        tournament_finished: No open match is left
        rating_change: Rating details when ratings were updated
        changes: The writes to persist
    """

    match_id: str
    winner_id: str
    progressed_to: List[str] = field(default_factory=list)
    standings_updated: bool = False
    rating_updated: bool = False
    playoffs_generated: bool = False
    reset_required: Optional[bool] = None
    tournament_finished: bool = False
    rating_change: Optional[TeamEloChange] = None
    changes: ChangeSet = field(default_factory=ChangeSet)


class ProgressionEngine:
    """Advances a tournament as its matches complete.

    Args:
        config: Engine configuration (ratings, best-of defaults, playoffs)
        rng: Random source used when seeding generated playoffs
    """

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        rng: Optional[random.Random] = None,
    ):
        self.config = config or EngineConfig()
        self.rng = rng or random.Random()
        self.standings = StandingsCalculator()

    # ========== Results ==========

    @staticmethod
    def determine_winner(match: Match) -> Optional[str]:
        """Winner by sets won, None while neither side has a majority."""
        needed = match.best_of // 2 + 1
        sets_a = sum(1 for s in match.set_scores if s.winner_slot == Slot.A)
        sets_b = sum(1 for s in match.set_scores if s.winner_slot == Slot.B)
        if sets_a >= needed and sets_a > sets_b:
            return match.team_a_id
        if sets_b >= needed and sets_b > sets_a:
            return match.team_b_id
        return None

    @staticmethod
    def _check_set_count(match: Match, scores: Sequence[SetScore]) -> None:
        """Reject more sets than best_of allows, or sets after the decider."""
        if len(scores) > match.best_of:
            raise MatchNotReadyException(
                f"Match {match.id} is best of {match.best_of}, "
                f"got {len(scores)} sets"
            )
        needed = match.best_of // 2 + 1
        won = {Slot.A: 0, Slot.B: 0}
        for score in scores[:-1]:
            if score.winner_slot is None:
                continue
            won[score.winner_slot] += 1
            if won[score.winner_slot] >= needed:
                raise MatchNotReadyException(
                    f"Match {match.id} was decided after set {score.set_number}, "
                    f"got {len(scores)} sets"
                )

    def start_match(self, arena: Arena, match_id: str) -> ChangeSet:
        """Move a match with both teams from PENDING to ONGOING."""
        match = arena.get_match(match_id)
        if match.state != MatchState.PENDING or not match.has_both_teams:
            raise MatchNotReadyException(
                f"Match {match_id} cannot start: state {match.state.value}, "
                f"teams {list(match.team_ids)}"
            )
        match.state = MatchState.ONGOING
        changes = ChangeSet()
        changes.update_match(match_id, state=MatchState.ONGOING)
        return changes

    def record_result(
        self,
        arena: Arena,
        match_id: str,
        set_scores: Sequence[SetInput],
        update_ratings: Optional[bool] = None,
    ) -> ProgressionResult:
        """Store set scores, decide the winner and process the completion.

        Args:
            arena: Tournament arena
            match_id: Match being reported
            set_scores: SetScore objects or (games_a, games_b) tuples in set order
            update_ratings: Override for the rating update

        Raises:
            EntityNotFoundException: Unknown match
            MatchNotReadyException: The match is not open, misses a team, or
                the sets do not give either side a majority
        """
        match = arena.get_match(match_id)
        if not match.is_open or not match.has_both_teams:
            raise MatchNotReadyException(
                f"Match {match_id} cannot take a result (state {match.state.value})"
            )

        scores = []
        for number, entry in enumerate(set_scores, start=1):
            if isinstance(entry, SetScore):
                scores.append(replace(entry, match_id=match_id, set_number=number))
            else:
                games_a, games_b = entry
                scores.append(SetScore(match_id, number, games_a, games_b))
        self._check_set_count(match, scores)
        match.set_scores = scores
        winner_id = self.determine_winner(match)
        if winner_id is None:
            match.set_scores = []
            raise MatchNotReadyException(
                f"Sets reported for match {match_id} do not decide a winner"
            )

        match.winner_id = winner_id
        match.state = MatchState.DONE
        changes = ChangeSet()
        changes.update_match(
            match_id, set_scores=scores, winner_id=winner_id, state=MatchState.DONE
        )
        return self.process_match_completion(arena, match_id, update_ratings, changes)

    def handle_walkover(
        self,
        arena: Arena,
        match_id: str,
        no_show_team_id: str,
        update_ratings: Optional[bool] = None,
    ) -> ProgressionResult:
        """Award the match to the opponent of a team that did not show up.

        Raises:
            EntityNotFoundException: Unknown match
            MatchNotReadyException: The match is already decided, the team is
                not in it, or its opponent is not known yet
        """
        match = arena.get_match(match_id)
        if not match.is_open:
            raise MatchNotReadyException(
                f"Match {match_id} is already {match.state.value}"
            )
        if no_show_team_id not in match.team_ids:
            raise MatchNotReadyException(
                f"Team {no_show_team_id} is not playing match {match_id}"
            )
        winner_id = match.opponent_of(no_show_team_id)
        if winner_id is None:
            raise MatchNotReadyException(f"Match {match_id} has no opponent yet")

        match.winner_id = winner_id
        match.state = MatchState.WALKOVER
        changes = ChangeSet()
        changes.update_match(match_id, winner_id=winner_id, state=MatchState.WALKOVER)
        logger.info(f"Walkover in match {match_id}: {no_show_team_id} did not show")
        return self.process_match_completion(arena, match_id, update_ratings, changes)

    # ========== Progression ==========

    def process_match_completion(
        self,
        arena: Arena,
        match_id: str,
        update_ratings: Optional[bool] = None,
        changes: Optional[ChangeSet] = None,
    ) -> ProgressionResult:
        """Run the full post-completion pipeline for a decided match.

        Args:
            arena: Tournament arena
            match_id: A DONE or WALKOVER match with a winner
            update_ratings: Force ratings on or off; by default played
                matches are rated and walkovers follow the rating config
            changes: Change set to append to

        Raises:
            EntityNotFoundException: Unknown match
            MatchNotReadyException: The match is not decided
        """
        match = arena.get_match(match_id)
        if not match.is_completed or match.winner_id is None:
            raise MatchNotReadyException(
                f"Match {match_id} is {match.state.value} without a decided winner"
            )
        if match.winner_id not in match.team_ids:
            raise MatchNotReadyException(
                f"Winner {match.winner_id} is not a team of match {match_id}"
            )

        result = ProgressionResult(
            match_id=match_id,
            winner_id=match.winner_id,
            changes=changes if changes is not None else ChangeSet(),
        )

        if update_ratings is None:
            update_ratings = (
                match.state == MatchState.DONE or self.config.rating.rate_walkovers
            )
        if update_ratings and match.has_both_teams:
            try:
                result.rating_change = update_team_ratings(
                    arena, match, self.config.rating, result.changes
                )
                result.rating_updated = True
            except Exception:
                logger.exception(
                    f"Rating update failed for match {match_id}, progression continues"
                )

        fmt = arena.tournament.format
        if fmt == TournamentFormat.SINGLE_ELIM:
            self._progress_single(arena, match, result)
        elif fmt == TournamentFormat.DOUBLE_ELIM:
            self._progress_double(arena, match, result)
        elif fmt in (TournamentFormat.ROUND_ROBIN, TournamentFormat.GROUPS_PLAYOFFS):
            if match.group_id is not None:
                self._progress_group(arena, match, result)
            else:
                self._progress_single(arena, match, result)

        self._check_tournament_complete(arena, result)
        return result

    def _num_rounds(self, arena: Arena, category_id: str) -> int:
        return max(
            (m.stage.number for m in arena.bracket_matches(category_id) if m.stage.is_main),
            default=0,
        )

    def _progress_single(self, arena: Arena, match: Match, result: ProgressionResult) -> None:
        num_rounds = self._num_rounds(arena, match.category_id)
        target = winner_target(match.stage, match.match_number, num_rounds)
        if target is None:
            logger.info(f"Match {match.id} decided the bracket: {match.winner_id} wins")
            return
        self._fill_slot(arena, match.category_id, target, match.winner_id, result, num_rounds, False)

    def _progress_double(self, arena: Arena, match: Match, result: ProgressionResult) -> None:
        num_rounds = self._num_rounds(arena, match.category_id)
        if match.stage.is_grand_final:
            if match.stage.number == 1:
                self._resolve_grand_final(arena, match, result)
            else:
                logger.info(f"Grand final reset {match.id} won by {match.winner_id}")
            return

        target = winner_target(match.stage, match.match_number, num_rounds, double=True)
        self._fill_slot(arena, match.category_id, target, match.winner_id, result, num_rounds, True)

        loser_id = match.loser_id
        if match.stage.is_main and loser_id is not None:
            target = loser_target(match.stage, match.match_number, num_rounds)
            self._fill_slot(arena, match.category_id, target, loser_id, result, num_rounds, True)
        elif loser_id is not None:
            logger.debug(f"Team {loser_id} eliminated in {match.stage}")

    def _resolve_grand_final(
        self, arena: Arena, match: Match, result: ProgressionResult
    ) -> None:
        """Schedule or cancel the reset after the first grand final.

        The reset is needed when the team that lost had not lost before,
        i.e. the winners-bracket champion was beaten.
        """
        reset = arena.find_match(match.category_id, Stage.grand_final(2), 1)
        loser_id = match.loser_id
        prior_losses = sum(
            1
            for other in arena.bracket_matches(match.category_id)
            if other.id != match.id
            and other.is_completed
            and other.has_both_teams
            and loser_id in other.team_ids
            and other.winner_id != loser_id
        )
        result.reset_required = prior_losses == 0
        if reset is None:
            logger.warning(f"No reset match found for grand final {match.id}")
            return

        if result.reset_required:
            num_rounds = self._num_rounds(arena, match.category_id)
            reset_stage = Stage.grand_final(2)
            for slot, team_id in ((Slot.A, match.winner_id), (Slot.B, loser_id)):
                self._fill_slot(
                    arena,
                    match.category_id,
                    Target(reset_stage, 1, slot),
                    team_id,
                    result,
                    num_rounds,
                    True,
                )
            logger.info(f"Grand final reset required between {match.winner_id} and {loser_id}")
        elif reset.state.is_open:
            reset.state = MatchState.CANCELLED
            result.changes.update_match(reset.id, state=MatchState.CANCELLED)
            logger.info(f"Grand final {match.id} decided the event: {match.winner_id} wins")

    def _fill_slot(
        self,
        arena: Arena,
        category_id: str,
        target: Optional[Target],
        team_id: Optional[str],
        result: ProgressionResult,
        num_rounds: int,
        double: bool,
    ) -> bool:
        """Place a team into a slot if it is still free.

        Re-placing the same team is a no-op, so re-processing a match is
        safe. A pass-through match completes as soon as its team arrives
        and the team moves on.
        """
        if target is None or team_id is None:
            return False
        dest = arena.find_match(category_id, target.stage, target.match_number)
        if dest is None:
            logger.warning(
                f"No match at {target.stage} #{target.match_number} for team {team_id}"
            )
            return False
        current = dest.slot(target.slot)
        if current == team_id:
            return True
        if current is not None:
            logger.warning(
                f"Slot {target.slot.value} of match {dest.id} already holds {current}, "
                f"{team_id} not placed"
            )
            return False
        if dest.state == MatchState.CANCELLED:
            logger.warning(f"Match {dest.id} is cancelled, {team_id} not placed")
            return False

        dest.set_slot(target.slot, team_id)
        result.changes.assign_slot(dest.id, target.slot, team_id)
        result.progressed_to.append(dest.id)
        logger.debug(f"Placed {team_id} in slot {target.slot.value} of match {dest.id}")

        if dest.is_pass_through and dest.state == MatchState.PENDING:
            dest.winner_id = team_id
            dest.state = MatchState.WALKOVER
            result.changes.update_match(
                dest.id, winner_id=team_id, state=MatchState.WALKOVER
            )
            logger.debug(f"Pass-through match {dest.id} advanced {team_id}")
            next_target = winner_target(dest.stage, dest.match_number, num_rounds, double)
            self._fill_slot(arena, category_id, next_target, team_id, result, num_rounds, double)
        return True

    def _progress_group(self, arena: Arena, match: Match, result: ProgressionResult) -> None:
        standings = self.standings.calculate(arena, match.group_id)
        result.changes.standing_upserts.extend(standings)
        result.standings_updated = True

        if arena.tournament.format != TournamentFormat.GROUPS_PLAYOFFS:
            return
        if not self.standings.is_group_complete(arena, match.group_id):
            return
        if all(self.standings.is_group_complete(arena, g.id) for g in arena.groups_for()):
            result.playoffs_generated = bool(self.generate_playoffs(arena, result.changes))

    def generate_playoffs(
        self, arena: Arena, changes: Optional[ChangeSet] = None
    ) -> List[Match]:
        """Create the single-elimination playoff of every finished category.

        The top teams of each group qualify; group winners are seeded
        first, in group order, then the runners-up, and so on. Categories
        that already have a playoff are skipped.
        """
        changes = changes if changes is not None else ChangeSet()
        top_n = self.config.playoff_qualifiers_per_group
        created: List[Match] = []
        for category_id in arena.categories:
            groups = arena.groups_for(category_id)
            if not groups or arena.bracket_matches(category_id):
                continue
            if not all(self.standings.is_group_complete(arena, g.id) for g in groups):
                continue

            qualified = [self.standings.qualified_teams(arena, g.id, top_n) for g in groups]
            ordered = [
                team_ids[rank]
                for rank in range(top_n)
                for team_ids in qualified
                if rank < len(team_ids)
            ]
            if len(ordered) < 2:
                logger.warning(f"Only {len(ordered)} qualifiers in category {category_id}")
                continue

            seeded = [
                replace(arena.get_team(team_id), seed=seed)
                for seed, team_id in enumerate(ordered, start=1)
            ]
            matches = generate_single_elimination(
                arena.tournament_id,
                category_id,
                seeded,
                self.rng,
                best_of=self.config.bracket_best_of,
                bracket=BRACKET_PLAYOFF,
            )
            for playoff_match in matches:
                arena.add_match(playoff_match)
                changes.created_matches.append(playoff_match)
            created.extend(matches)
            logger.info(
                f"Generated playoffs for category {category_id}: "
                f"{len(ordered)} teams from {len(groups)} groups"
            )
        return created

    def _check_tournament_complete(self, arena: Arena, result: ProgressionResult) -> None:
        if not self.is_tournament_complete(arena):
            return
        if arena.tournament.status != TournamentStatus.FINISHED:
            arena.tournament.status = TournamentStatus.FINISHED
            result.changes.set_status(arena.tournament_id, TournamentStatus.FINISHED)
            logger.info(f"Tournament {arena.tournament_id} finished")
        result.tournament_finished = True

    # ========== Queries ==========

    @staticmethod
    def is_tournament_complete(arena: Arena) -> bool:
        """True once matches exist and none is pending or ongoing."""
        return bool(arena.matches) and not arena.open_matches()

    @staticmethod
    def is_round_complete(
        arena: Arena, stage: Stage, category_id: Optional[str] = None
    ) -> bool:
        matches = arena.matches_for(category_id=category_id, stage=stage)
        return bool(matches) and not any(m.is_open for m in matches)

    def americano_standings(
        self, arena: Arena, category_id: Optional[str] = None
    ) -> List[PlayerStanding]:
        return self.standings.americano_standings(arena, category_id)
