"""Tournament, category, group and court records."""

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
from datetime import datetime, time
from typing import Any, Dict, List, Optional

from rallybracket.exceptions import InvalidTimeRangeException
from rallybracket.models.enums import TournamentFormat, TournamentStatus
from rallybracket.utils import format_datetime, parse_datetime, parse_time
from rallybracket.utils.validation import validate_daily_window, validate_window


@dataclass
class Tournament:
    """A competition run in one format over a time window.

    Attributes:
        id: Unique tournament id
        name: Display name
        format: Competition format for every category
        start_at: Earliest time any match may start
        end_at: Latest time any match may end
        status: Lifecycle status
        min_teams: Smallest accepted entry per category
        max_teams: Largest accepted entry per category, None for no limit
    """

    id: str
    name: str
    format: TournamentFormat
    start_at: datetime
    end_at: datetime
    status: TournamentStatus = TournamentStatus.DRAFT
    min_teams: int = 2
    max_teams: Optional[int] = None

    def __post_init__(self):
        result = validate_window(self.start_at, self.end_at)
        if not result:
            raise InvalidTimeRangeException(
                f"Tournament {self.id}: {result.error_message}"
            )

    @property
    def is_live(self) -> bool:
        return self.status == TournamentStatus.LIVE

    def to_dict(self) -> Dict[str, Any]:
        """Serialize tournament to dictionary."""
        return {
            "id": self.id,
            "name": self.name,
            "format": self.format.value,
            "start_at": format_datetime(self.start_at),
            "end_at": format_datetime(self.end_at),
            "status": self.status.value,
            "min_teams": self.min_teams,
            "max_teams": self.max_teams,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Tournament":
        """Deserialize tournament from dictionary."""
        return cls(
            id=data["id"],
            name=data.get("name", "Untitled Tournament"),
            format=TournamentFormat(data["format"]),
            start_at=parse_datetime(data["start_at"]),
            end_at=parse_datetime(data["end_at"]),
            status=TournamentStatus(data.get("status", TournamentStatus.DRAFT.value)),
            min_teams=data.get("min_teams", 2),
            max_teams=data.get("max_teams"),
        )


@dataclass
class Category:
    id: str
    tournament_id: str
    name: str

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "tournament_id": self.tournament_id, "name": self.name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(id=data["id"], tournament_id=data["tournament_id"], name=data["name"])


@dataclass
class Group:
    """A round-robin pool within a category."""

    id: str
    tournament_id: str
    category_id: str
    name: str
    team_ids: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tournament_id": self.tournament_id,
            "category_id": self.category_id,
            "name": self.name,
            "team_ids": list(self.team_ids),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Group":
        return cls(
            id=data["id"],
            tournament_id=data["tournament_id"],
            category_id=data["category_id"],
            name=data["name"],
            team_ids=list(data.get("team_ids", [])),
        )


@dataclass
class Court:
    """A playing court with an optional daily availability window.

    The window is half-open: a match may end exactly at ``available_to``.
    """

    id: str
    name: str
    available_from: Optional[time] = None
    available_to: Optional[time] = None

    def __post_init__(self):
        result = validate_daily_window(self.available_from, self.available_to)
        if not result:
            raise InvalidTimeRangeException(f"Court {self.id}: {result.error_message}")

    @property
    def has_window(self) -> bool:
        return self.available_from is not None and self.available_to is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "available_from": (
                self.available_from.isoformat() if self.available_from else None
            ),
            "available_to": self.available_to.isoformat() if self.available_to else None,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Court":
        return cls(
            id=data["id"],
            name=data.get("name", data["id"]),
            available_from=parse_time(data.get("available_from")),
            available_to=parse_time(data.get("available_to")),
        )
