"""Engine configuration."""

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
from typing import Any, Dict, Tuple

from rallybracket.constants import (
    AMERICANO_BEST_OF,
    BRACKET_BEST_OF,
    BUFFER_BETWEEN_MATCHES,
    BUFFER_COURT_CHANGE,
    BUFFER_SAME_PLAYER,
    DEFAULT_K_FACTOR,
    DEFAULT_NUM_GROUPS,
    DEFAULT_RATING,
    DURATION_BEST_OF_1,
    DURATION_BEST_OF_3,
    DURATION_BEST_OF_5,
    GRAND_FINAL_BEST_OF,
    MEXICANO_DEFAULT_MINUTES,
    MEXICANO_ROTATION_BUFFER,
    PLAYOFF_QUALIFIERS_PER_GROUP,
    ROTATION_SEARCH_BUDGET,
    ROUND_ROBIN_BEST_OF,
    TIGHT_BUFFER_BETWEEN_MATCHES,
    TIGHT_BUFFER_COURT_CHANGE,
    TIGHT_BUFFER_SAME_PLAYER,
)
from rallybracket.exceptions import InvalidConfigurationException
from rallybracket.models.enums import RankingScope
from rallybracket.models.match import AmericanoMeta, Match


@dataclass
class BufferConfig:
    """Minutes kept free between matches.

    Attributes:
        between_matches: Gap on a court after a match ends
        same_player: Rest for every player after their match ends
        court_change: Gap reserved when a team moves between courts
    """

    between_matches: int = BUFFER_BETWEEN_MATCHES
    same_player: int = BUFFER_SAME_PLAYER
    court_change: int = BUFFER_COURT_CHANGE

    def __post_init__(self):
        for name in ("between_matches", "same_player", "court_change"):
            if getattr(self, name) < 0:
                raise InvalidConfigurationException(f"Buffer {name} cannot be negative")

    @classmethod
    def tight(cls) -> "BufferConfig":
        """Buffers used when compacting an existing schedule."""
        return cls(
            between_matches=TIGHT_BUFFER_BETWEEN_MATCHES,
            same_player=TIGHT_BUFFER_SAME_PLAYER,
            court_change=TIGHT_BUFFER_COURT_CHANGE,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "between_matches": self.between_matches,
            "same_player": self.same_player,
            "court_change": self.court_change,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BufferConfig":
        return cls(
            between_matches=data.get("between_matches", BUFFER_BETWEEN_MATCHES),
            same_player=data.get("same_player", BUFFER_SAME_PLAYER),
            court_change=data.get("court_change", BUFFER_COURT_CHANGE),
        )


@dataclass
class DurationConfig:
    """Estimated match length in minutes by number of sets."""

    best_of_1: int = DURATION_BEST_OF_1
    best_of_3: int = DURATION_BEST_OF_3
    best_of_5: int = DURATION_BEST_OF_5

    def minutes_for(self, match: Match) -> int:
        """Estimated duration of a match.

        Rotation matches carry their own duration when one was set at
        generation time.
        """
        if isinstance(match.meta, AmericanoMeta) and match.meta.duration_minutes:
            return match.meta.duration_minutes
        if match.best_of >= 5:
            return self.best_of_5
        if match.best_of == 1:
            return self.best_of_1
        return self.best_of_3

    def to_dict(self) -> Dict[str, Any]:
        return {
            "best_of_1": self.best_of_1,
            "best_of_3": self.best_of_3,
            "best_of_5": self.best_of_5,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "DurationConfig":
        return cls(
            best_of_1=data.get("best_of_1", DURATION_BEST_OF_1),
            best_of_3=data.get("best_of_3", DURATION_BEST_OF_3),
            best_of_5=data.get("best_of_5", DURATION_BEST_OF_5),
        )


@dataclass
class RatingConfig:
    """ELO settings.

    Attributes:
        k_factor: Maximum rating change per match
        initial_rating: Rating of a player without a ranking row
        scopes: Scopes updated after every completed match
        rate_walkovers: Whether walkovers move ratings
    """

    k_factor: int = DEFAULT_K_FACTOR
    initial_rating: int = DEFAULT_RATING
    scopes: Tuple[RankingScope, ...] = (RankingScope.TOURNAMENT, RankingScope.GLOBAL)
    rate_walkovers: bool = False

    def __post_init__(self):
        if self.k_factor <= 0:
            raise InvalidConfigurationException("K-factor must be positive")
        self.scopes = tuple(self.scopes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "k_factor": self.k_factor,
            "initial_rating": self.initial_rating,
            "scopes": [scope.value for scope in self.scopes],
            "rate_walkovers": self.rate_walkovers,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RatingConfig":
        scopes = data.get("scopes")
        return cls(
            k_factor=data.get("k_factor", DEFAULT_K_FACTOR),
            initial_rating=data.get("initial_rating", DEFAULT_RATING),
            scopes=(
                tuple(RankingScope(s) for s in scopes)
                if scopes is not None
                else (RankingScope.TOURNAMENT, RankingScope.GLOBAL)
            ),
            rate_walkovers=data.get("rate_walkovers", False),
        )


@dataclass
class MexicanoConfig:
    time_per_match: int = MEXICANO_DEFAULT_MINUTES
    rotation_buffer: int = MEXICANO_ROTATION_BUFFER

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time_per_match": self.time_per_match,
            "rotation_buffer": self.rotation_buffer,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MexicanoConfig":
        return cls(
            time_per_match=data.get("time_per_match", MEXICANO_DEFAULT_MINUTES),
            rotation_buffer=data.get("rotation_buffer", MEXICANO_ROTATION_BUFFER),
        )


@dataclass
class EngineConfig:
    """Everything the engines can be tuned with, in one place."""

    rating: RatingConfig = field(default_factory=RatingConfig)
    buffers: BufferConfig = field(default_factory=BufferConfig)
    durations: DurationConfig = field(default_factory=DurationConfig)
    mexicano: MexicanoConfig = field(default_factory=MexicanoConfig)
    bracket_best_of: int = BRACKET_BEST_OF
    grand_final_best_of: int = GRAND_FINAL_BEST_OF
    round_robin_best_of: int = ROUND_ROBIN_BEST_OF
    americano_best_of: int = AMERICANO_BEST_OF
    num_groups: int = DEFAULT_NUM_GROUPS
    playoff_qualifiers_per_group: int = PLAYOFF_QUALIFIERS_PER_GROUP
    rotation_search_budget: int = ROTATION_SEARCH_BUDGET

    def __post_init__(self):
        for name in (
            "bracket_best_of",
            "grand_final_best_of",
            "round_robin_best_of",
            "americano_best_of",
        ):
            value = getattr(self, name)
            if value < 1 or value % 2 == 0:
                raise InvalidConfigurationException(
                    f"{name} must be a positive odd number, got {value}"
                )
        if self.num_groups < 1:
            raise InvalidConfigurationException("At least one group is required")
        if self.playoff_qualifiers_per_group < 1:
            raise InvalidConfigurationException(
                "At least one team per group must qualify for the playoffs"
            )

    def to_dict(self) -> Dict[str, Any]:
        """Serialize configuration to dictionary."""
        return {
            "rating": self.rating.to_dict(),
            "buffers": self.buffers.to_dict(),
            "durations": self.durations.to_dict(),
            "mexicano": self.mexicano.to_dict(),
            "bracket_best_of": self.bracket_best_of,
            "grand_final_best_of": self.grand_final_best_of,
            "round_robin_best_of": self.round_robin_best_of,
            "americano_best_of": self.americano_best_of,
            "num_groups": self.num_groups,
            "playoff_qualifiers_per_group": self.playoff_qualifiers_per_group,
            "rotation_search_budget": self.rotation_search_budget,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EngineConfig":
        """Deserialize configuration from dictionary."""
        return cls(
            rating=RatingConfig.from_dict(data.get("rating", {})),
            buffers=BufferConfig.from_dict(data.get("buffers", {})),
            durations=DurationConfig.from_dict(data.get("durations", {})),
            mexicano=MexicanoConfig.from_dict(data.get("mexicano", {})),
            bracket_best_of=data.get("bracket_best_of", BRACKET_BEST_OF),
            grand_final_best_of=data.get("grand_final_best_of", GRAND_FINAL_BEST_OF),
            round_robin_best_of=data.get("round_robin_best_of", ROUND_ROBIN_BEST_OF),
            americano_best_of=data.get("americano_best_of", AMERICANO_BEST_OF),
            num_groups=data.get("num_groups", DEFAULT_NUM_GROUPS),
            playoff_qualifiers_per_group=data.get(
                "playoff_qualifiers_per_group", PLAYOFF_QUALIFIERS_PER_GROUP
            ),
            rotation_search_budget=data.get(
                "rotation_search_budget", ROTATION_SEARCH_BUDGET
            ),
        )
