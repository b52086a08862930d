"""Storage contracts and the in-memory reference store."""

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

from rallybracket.store.contracts import (
    GroupStore,
    MatchStore,
    RankingStore,
    StandingStore,
    TeamStore,
)
from rallybracket.store.memory import InMemoryStore

__all__ = [
    "GroupStore",
    "InMemoryStore",
    "MatchStore",
    "RankingStore",
    "StandingStore",
    "TeamStore",
]
