"""Domain model for Rally Bracket."""

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

from rallybracket.models.arena import Arena
from rallybracket.models.changes import (
    ApplyReport,
    ChangeSet,
    MatchUpdate,
    SlotAssignment,
)
from rallybracket.models.config import (
    BufferConfig,
    DurationConfig,
    EngineConfig,
    MexicanoConfig,
    RatingConfig,
)
from rallybracket.models.enums import (
    MatchState,
    RankingScope,
    Slot,
    StageKind,
    TournamentFormat,
    TournamentStatus,
)
from rallybracket.models.match import (
    AmericanoMeta,
    BracketMeta,
    Match,
    MatchMeta,
    RoundRobinMeta,
    SetScore,
)
from rallybracket.models.stage import Stage
from rallybracket.models.standing import PlayerStanding, Ranking, RankingKey, Standing
from rallybracket.models.team import Player, Team
from rallybracket.models.tournament import Category, Court, Group, Tournament

__all__ = [
    "AmericanoMeta",
    "ApplyReport",
    "Arena",
    "BracketMeta",
    "BufferConfig",
    "Category",
    "ChangeSet",
    "Court",
    "DurationConfig",
    "EngineConfig",
    "Group",
    "Match",
    "MatchMeta",
    "MatchState",
    "MatchUpdate",
    "MexicanoConfig",
    "Player",
    "PlayerStanding",
    "Ranking",
    "RankingKey",
    "RankingScope",
    "RatingConfig",
    "RoundRobinMeta",
    "SetScore",
    "Slot",
    "SlotAssignment",
    "Stage",
    "StageKind",
    "Standing",
    "Team",
    "Tournament",
    "TournamentFormat",
    "TournamentStatus",
]
