"""Matches, set scores and format-specific match metadata.

Metadata is a tagged union: exactly one of BracketMeta, RoundRobinMeta or
AmericanoMeta, selected by the ``kind`` key when serialized.
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
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from rallybracket.constants import BRACKET_SINGLE
from rallybracket.models.enums import MatchState, Slot
from rallybracket.models.stage import Stage
from rallybracket.type_hints import RotationFormat
from rallybracket.utils import format_datetime, parse_datetime


@dataclass
class SetScore:
    """Games won by each side in one set."""

    match_id: str
    set_number: int
    games_a: int
    games_b: int
    tiebreak_a: Optional[int] = None
    tiebreak_b: Optional[int] = None

    @property
    def winner_slot(self) -> Optional[Slot]:
        if self.games_a > self.games_b:
            return Slot.A
        if self.games_b > self.games_a:
            return Slot.B
        if self.tiebreak_a is not None and self.tiebreak_b is not None:
            if self.tiebreak_a != self.tiebreak_b:
                return Slot.A if self.tiebreak_a > self.tiebreak_b else Slot.B
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "match_id": self.match_id,
            "set_number": self.set_number,
            "games_a": self.games_a,
            "games_b": self.games_b,
            "tiebreak_a": self.tiebreak_a,
            "tiebreak_b": self.tiebreak_b,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SetScore":
        return cls(
            match_id=data["match_id"],
            set_number=data["set_number"],
            games_a=data["games_a"],
            games_b=data["games_b"],
            tiebreak_a=data.get("tiebreak_a"),
            tiebreak_b=data.get("tiebreak_b"),
        )


# ========== Match Metadata ==========


@dataclass(frozen=True)
class BracketMeta:
    """Metadata of an elimination match.

    Attributes:
        round_name: Human-readable round name ("Semi-finals", "Losers Round 2")
        bracket: single, winners, losers, grand_final or playoff
        is_bye: Entry-round match against a bye, completed at creation
        pass_through: Exactly one slot can ever be filled; the arriving team
            advances on a walkover
    """

    round_name: str
    bracket: str = BRACKET_SINGLE
    is_bye: bool = False
    pass_through: bool = False

    kind = "bracket"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "round_name": self.round_name,
            "bracket": self.bracket,
            "is_bye": self.is_bye,
            "pass_through": self.pass_through,
        }


@dataclass(frozen=True)
class RoundRobinMeta:
    group_name: str

    kind = "round_robin"

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "group_name": self.group_name}


@dataclass(frozen=True)
class AmericanoMeta:
    court: int
    duration_minutes: Optional[int] = None
    format: RotationFormat = "americano"

    kind = "americano"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "court": self.court,
            "duration_minutes": self.duration_minutes,
            "format": self.format,
        }


MatchMeta = Union[BracketMeta, RoundRobinMeta, AmericanoMeta]


def meta_from_dict(data: Optional[Dict[str, Any]]) -> Optional[MatchMeta]:
    """Rebuild match metadata from its tagged dictionary form."""
    if not data:
        return None
    kind = data.get("kind")
    if kind == BracketMeta.kind:
        return BracketMeta(
            round_name=data["round_name"],
            bracket=data.get("bracket", BRACKET_SINGLE),
            is_bye=data.get("is_bye", False),
            pass_through=data.get("pass_through", False),
        )
    if kind == RoundRobinMeta.kind:
        return RoundRobinMeta(group_name=data["group_name"])
    if kind == AmericanoMeta.kind:
        return AmericanoMeta(
            court=data["court"],
            duration_minutes=data.get("duration_minutes"),
            format=data.get("format", "americano"),
        )
    raise ValueError(f"Unknown match metadata kind: {kind!r}")


# ========== Match ==========


@dataclass
class Match:
    """A single contest between two teams.

    Attributes:
        id: Unique match id
        tournament_id: Owning tournament
        category_id: Owning category
        stage: Round within the competition
        match_number: 1-based position within the stage
        team_a_id: Team in slot A, None while unknown or for a bye
        team_b_id: Team in slot B
        winner_id: Winning team, one of the two slots once completed
        state: Lifecycle state
        best_of: Odd number of sets
        meta: Format-specific metadata
        group_id: Round-robin group, None for bracket and rotation matches
        court_id: Assigned court
        scheduled_at: Assigned start time
        set_scores: Per-set results
    """

    id: str
    tournament_id: str
    category_id: str
    stage: Stage
    match_number: int
    team_a_id: Optional[str] = None
    team_b_id: Optional[str] = None
    winner_id: Optional[str] = None
    state: MatchState = MatchState.PENDING
    best_of: int = 3
    meta: Optional[MatchMeta] = None
    group_id: Optional[str] = None
    court_id: Optional[str] = None
    scheduled_at: Optional[datetime] = None
    set_scores: List[SetScore] = field(default_factory=list)

    def __post_init__(self):
        if self.best_of < 1 or self.best_of % 2 == 0:
            raise ValueError(f"best_of must be a positive odd number, got {self.best_of}")

    @property
    def round_key(self) -> int:
        return self.stage.round_key

    @property
    def sort_key(self) -> Tuple[int, int]:
        return (self.stage.round_key, self.match_number)

    @property
    def team_ids(self) -> Tuple[str, ...]:
        """Teams currently placed in the match."""
        return tuple(t for t in (self.team_a_id, self.team_b_id) if t is not None)

    @property
    def has_both_teams(self) -> bool:
        return self.team_a_id is not None and self.team_b_id is not None

    @property
    def loser_id(self) -> Optional[str]:
        """The other team once a winner is known and both slots are filled."""
        if self.winner_id is None or not self.has_both_teams:
            return None
        return self.team_b_id if self.winner_id == self.team_a_id else self.team_a_id

    @property
    def is_open(self) -> bool:
        return self.state.is_open

    @property
    def is_completed(self) -> bool:
        return self.state.is_completed

    @property
    def is_pass_through(self) -> bool:
        return isinstance(self.meta, BracketMeta) and self.meta.pass_through

    def slot(self, slot: Slot) -> Optional[str]:
        return self.team_a_id if slot == Slot.A else self.team_b_id

    def set_slot(self, slot: Slot, team_id: Optional[str]) -> None:
        if slot == Slot.A:
            self.team_a_id = team_id
        else:
            self.team_b_id = team_id

    def opponent_of(self, team_id: str) -> Optional[str]:
        if team_id == self.team_a_id:
            return self.team_b_id
        if team_id == self.team_b_id:
            return self.team_a_id
        return None

    def games_for(self, team_id: str) -> Tuple[int, int]:
        """Total games (for, against) of a team across all sets."""
        games_a = sum(s.games_a for s in self.set_scores)
        games_b = sum(s.games_b for s in self.set_scores)
        if team_id == self.team_a_id:
            return games_a, games_b
        return games_b, games_a

    def to_dict(self) -> Dict[str, Any]:
        """Serialize match to dictionary."""
        return {
            "id": self.id,
            "tournament_id": self.tournament_id,
            "category_id": self.category_id,
            "stage": self.stage.to_dict(),
            "round": self.stage.round_key,
            "match_number": self.match_number,
            "team_a_id": self.team_a_id,
            "team_b_id": self.team_b_id,
            "winner_id": self.winner_id,
            "state": self.state.value,
            "best_of": self.best_of,
            "meta": self.meta.to_dict() if self.meta else None,
            "group_id": self.group_id,
            "court_id": self.court_id,
            "scheduled_at": format_datetime(self.scheduled_at),
            "set_scores": [s.to_dict() for s in self.set_scores],
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Match":
        """Deserialize match from dictionary.

        Older records carry only the signed ``round`` number; the stage is
        rebuilt from it when ``stage`` is missing.
        """
        if "stage" in data:
            stage = Stage.from_dict(data["stage"])
        else:
            stage = Stage.from_round_key(data["round"])
        return cls(
            id=data["id"],
            tournament_id=data["tournament_id"],
            category_id=data["category_id"],
            stage=stage,
            match_number=data["match_number"],
            team_a_id=data.get("team_a_id"),
            team_b_id=data.get("team_b_id"),
            winner_id=data.get("winner_id"),
            state=MatchState(data.get("state", MatchState.PENDING.value)),
            best_of=data.get("best_of", 3),
            meta=meta_from_dict(data.get("meta")),
            group_id=data.get("group_id"),
            court_id=data.get("court_id"),
            scheduled_at=parse_datetime(data.get("scheduled_at")),
            set_scores=[SetScore.from_dict(s) for s in data.get("set_scores", [])],
        )
