"""Stage: the position of a match within a competition.

A stage is a tagged value rather than a signed integer. ``round_key`` still
produces the legacy signed ordering key for storage and sorting:

- MAIN n -> n (round 1 is the final of a bracket)
- LOSERS n -> 1000 + n
- GRAND_FINAL leg -> -leg (-1 is the first grand final, -2 the reset)
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

from dataclasses import dataclass
from typing import Any, Dict

from rallybracket.constants import LOSERS_ROUND_OFFSET
from rallybracket.models.enums import StageKind


@dataclass(frozen=True)
class Stage:
    """A round within a bracket, round robin or rotation.

    Attributes:
        kind: Which part of the competition the round belongs to
        number: Round number within that part (grand final: leg 1 or 2)
    """

    kind: StageKind
    number: int

    def __post_init__(self):
        if self.number < 1:
            raise ValueError(f"Stage number must be positive, got {self.number}")
        if self.kind == StageKind.GRAND_FINAL and self.number > 2:
            raise ValueError(f"Grand final has two legs, got leg {self.number}")

    @classmethod
    def main(cls, number: int) -> "Stage":
        return cls(StageKind.MAIN, number)

    @classmethod
    def losers(cls, number: int) -> "Stage":
        return cls(StageKind.LOSERS, number)

    @classmethod
    def grand_final(cls, leg: int = 1) -> "Stage":
        return cls(StageKind.GRAND_FINAL, leg)

    @property
    def is_main(self) -> bool:
        return self.kind == StageKind.MAIN

    @property
    def is_losers(self) -> bool:
        return self.kind == StageKind.LOSERS

    @property
    def is_grand_final(self) -> bool:
        return self.kind == StageKind.GRAND_FINAL

    @property
    def round_key(self) -> int:
        """Legacy signed round number used for ordering and storage."""
        if self.kind == StageKind.MAIN:
            return self.number
        if self.kind == StageKind.LOSERS:
            return LOSERS_ROUND_OFFSET + self.number
        return -self.number

    @classmethod
    def from_round_key(cls, key: int) -> "Stage":
        """Inverse of ``round_key``."""
        if key < 0:
            return cls.grand_final(-key)
        if key > LOSERS_ROUND_OFFSET:
            return cls.losers(key - LOSERS_ROUND_OFFSET)
        return cls.main(key)

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "number": self.number}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Stage":
        return cls(StageKind(data["kind"]), data["number"])

    def __str__(self) -> str:
        if self.kind == StageKind.GRAND_FINAL:
            return f"grand final leg {self.number}"
        return f"{self.kind.value} round {self.number}"
