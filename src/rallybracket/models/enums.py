"""Enumerations shared across the domain model."""

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

from enum import Enum


class TournamentFormat(Enum):
    """Competition formats the generator knows how to build."""

    SINGLE_ELIM = "single_elim"
    DOUBLE_ELIM = "double_elim"
    ROUND_ROBIN = "round_robin"
    AMERICANO = "americano"
    MEXICANO = "mexicano"
    GROUPS_PLAYOFFS = "groups_playoffs"

    @property
    def is_bracket(self) -> bool:
        return self in (TournamentFormat.SINGLE_ELIM, TournamentFormat.DOUBLE_ELIM)

    @property
    def is_rotation(self) -> bool:
        """Formats played by individuals in rotating temporary teams."""
        return self in (TournamentFormat.AMERICANO, TournamentFormat.MEXICANO)


class TournamentStatus(Enum):
    DRAFT = "draft"
    REGISTRATION = "registration"
    LIVE = "live"
    FINISHED = "finished"
    CANCELLED = "cancelled"


class MatchState(Enum):
    """Lifecycle of a match: PENDING -> ONGOING -> DONE/WALKOVER/CANCELLED."""

    PENDING = "pending"
    ONGOING = "ongoing"
    DONE = "done"
    WALKOVER = "walkover"
    CANCELLED = "cancelled"

    @property
    def is_open(self) -> bool:
        return self in (MatchState.PENDING, MatchState.ONGOING)

    @property
    def is_completed(self) -> bool:
        """Completed with a winner (played or walkover)."""
        return self in (MatchState.DONE, MatchState.WALKOVER)


class StageKind(Enum):
    MAIN = "main"
    LOSERS = "losers"
    GRAND_FINAL = "grand_final"


class Slot(Enum):
    """Team position within a match."""

    A = "a"
    B = "b"


class RankingScope(Enum):
    TOURNAMENT = "tournament"
    CATEGORY = "category"
    GLOBAL = "global"
