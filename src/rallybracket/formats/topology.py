"""Elimination bracket topology.

Pure functions describing where the winner and the loser of every bracket
position go. Rounds are numbered so round 1 is the final; "play order"
counts the other way, from the first round played.

Winners bracket (``MAIN`` stages) with ``n`` rounds: the winner of match
``m`` in round ``r`` moves to round ``r - 1``, match ``ceil(m / 2)``, slot A
for odd ``m`` and slot B for even ``m``. The winner of round 1 is the
champion (single elimination) or goes to grand final slot A.

Losers bracket (``LOSERS`` stages) has ``2n - 2`` rounds. In play order
``j``:

- ``j = 1`` pairs the losers of the first winners round,
- even ``j`` is a drop-in round: the surviving losers-bracket team takes
  slot A and the loser of winners play-round ``j / 2 + 1`` drops into
  slot B (match order reversed on every other drop to delay rematches),
- odd ``j >= 3`` halves the field within the losers bracket.

The losers-bracket champion takes grand final slot B. For a two-team
bracket the losers bracket is empty and the first loser goes straight to
the grand final.
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
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Set, Tuple

from rallybracket.models.enums import Slot
from rallybracket.models.stage import Stage

Position = Tuple[Stage, int]


@dataclass(frozen=True)
class Target:
    """A slot a team moves into."""

    stage: Stage
    match_number: int
    slot: Slot


def _halving_target(stage: Stage, match_number: int) -> Target:
    slot = Slot.A if match_number % 2 == 1 else Slot.B
    return Target(stage, (match_number + 1) // 2, slot)


def rounds_for_size(size: int) -> int:
    """Number of rounds of a bracket of ``size`` positions (a power of two)."""
    rounds = 0
    while (1 << rounds) < size:
        rounds += 1
    return rounds


# ========== Winners Bracket ==========


def winners_match_count(num_rounds: int, round_number: int) -> int:
    return 2 ** (round_number - 1)


def winners_play_order(num_rounds: int, round_number: int) -> int:
    return num_rounds - round_number + 1


# ========== Losers Bracket ==========


def losers_round_count(num_rounds: int) -> int:
    return max(0, 2 * (num_rounds - 1))


def losers_play_order(num_rounds: int, losers_round: int) -> int:
    return losers_round_count(num_rounds) - losers_round + 1


def losers_round_number(num_rounds: int, play_order: int) -> int:
    return losers_round_count(num_rounds) - play_order + 1


def losers_match_count(num_rounds: int, losers_round: int) -> int:
    play_order = losers_play_order(num_rounds, losers_round)
    return 2 ** (num_rounds - 1 - (play_order + 1) // 2)


def losers_drop_round(num_rounds: int, winners_round: int) -> Optional[int]:
    """Losers round that receives the losers of a winners round.

    Returns None for a two-team bracket, whose loser goes to the grand final.
    """
    if num_rounds < 2:
        return None
    played = winners_play_order(num_rounds, winners_round)
    play_order = 1 if played == 1 else 2 * (played - 1)
    return losers_round_number(num_rounds, play_order)


# ========== Movement ==========


def winner_target(
    stage: Stage, match_number: int, num_rounds: int, double: bool = False
) -> Optional[Target]:
    """Where the winner of a bracket position goes, None for a champion."""
    if stage.is_main:
        if stage.number > 1:
            return _halving_target(Stage.main(stage.number - 1), match_number)
        return Target(Stage.grand_final(1), 1, Slot.A) if double else None

    if stage.is_losers:
        play_order = losers_play_order(num_rounds, stage.number)
        if play_order == losers_round_count(num_rounds):
            return Target(Stage.grand_final(1), 1, Slot.B)
        next_stage = Stage.losers(stage.number - 1)
        if play_order % 2 == 1:
            return Target(next_stage, match_number, Slot.A)
        return _halving_target(next_stage, match_number)

    return None


def loser_target(
    stage: Stage, match_number: int, num_rounds: int
) -> Optional[Target]:
    """Where the loser of a double-elimination position goes.

    Only winners-bracket losers move; losers-bracket and grand-final losers
    are eliminated.
    """
    if not stage.is_main:
        return None
    if num_rounds < 2:
        return Target(Stage.grand_final(1), 1, Slot.B)

    losers_round = losers_drop_round(num_rounds, stage.number)
    played = winners_play_order(num_rounds, stage.number)
    if played == 1:
        return _halving_target(Stage.losers(losers_round), match_number)

    count = losers_match_count(num_rounds, losers_round)
    target_number = count - match_number + 1 if played % 2 == 0 else match_number
    return Target(Stage.losers(losers_round), target_number, Slot.B)


# ========== Static Analysis ==========


def bracket_positions(num_rounds: int, double: bool = False) -> List[Position]:
    """Every position in play order (the grand final reset excluded)."""
    positions = []
    for round_number in range(num_rounds, 0, -1):
        for match_number in range(1, winners_match_count(num_rounds, round_number) + 1):
            positions.append((Stage.main(round_number), match_number))
    if not double:
        return positions
    for losers_round in range(losers_round_count(num_rounds), 0, -1):
        for match_number in range(1, losers_match_count(num_rounds, losers_round) + 1):
            positions.append((Stage.losers(losers_round), match_number))
    positions.append((Stage.grand_final(1), 1))
    return positions


def live_slots(
    line: Sequence[Optional[str]], double: bool = False
) -> Dict[Position, Set[Slot]]:
    """Slots that can ever receive a team, given the entry-round byes.

    Walks the bracket in play order: a position with at least one live slot
    produces a winner, and a position with two live slots produces a loser.
    """
    num_rounds = rounds_for_size(len(line))
    entry = Stage.main(num_rounds)
    live: Dict[Position, Set[Slot]] = defaultdict(set)
    for index in range(0, len(line), 2):
        position = (entry, index // 2 + 1)
        if line[index] is not None:
            live[position].add(Slot.A)
        if line[index + 1] is not None:
            live[position].add(Slot.B)

    for stage, match_number in bracket_positions(num_rounds, double):
        slots = live[(stage, match_number)]
        if not slots:
            continue
        target = winner_target(stage, match_number, num_rounds, double)
        if target is not None:
            live[(target.stage, target.match_number)].add(target.slot)
        if len(slots) == 2 and double:
            target = loser_target(stage, match_number, num_rounds)
            if target is not None:
                live[(target.stage, target.match_number)].add(target.slot)
    return live
