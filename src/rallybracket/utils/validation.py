"""Validation utilities for Rally Bracket.

This module provides reusable validation functions with consistent error handling.
Each ``validate_*`` function returns a ValidationResult; the ``*_strict``
variants raise the matching engine exception instead.
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

from datetime import datetime, time
from typing import Optional

from rallybracket.constants import (
    AMERICANO_MIN_PLAYERS,
    MEXICANO_MAX_MINUTES,
    MEXICANO_MIN_MINUTES,
)
from rallybracket.exceptions import (
    InvalidTeamCountException,
    InvalidTimeRangeException,
)


class ValidationResult:
    """Result of a validation operation.

    Attributes:
        is_valid: Whether the validation passed
        error_message: Human-readable error message if invalid
        value: Normalized value if valid
    """

    def __init__(
        self,
        is_valid: bool,
        error_message: Optional[str] = None,
        value: Optional[int] = None,
    ):
        self.is_valid = is_valid
        self.error_message = error_message
        self.value = value

    def __bool__(self) -> bool:
        """Allow using result in boolean context: if result: ..."""
        return self.is_valid

    def __repr__(self) -> str:
        if self.is_valid:
            return f"ValidationResult(VALID, {self.value!r})"
        return f"ValidationResult(INVALID, {self.error_message!r})"


# ========== Entrant Counts ==========


def validate_team_count(
    count: int, minimum: int = 2, maximum: Optional[int] = None
) -> ValidationResult:
    """Validate the number of teams entering a format.

    Args:
        count: Number of teams
        minimum: Smallest accepted count
        maximum: Largest accepted count, or None for no limit

    Returns:
        ValidationResult with validation status
    """
    if count < minimum:
        return ValidationResult(
            is_valid=False,
            error_message=f"At least {minimum} teams are required, got {count}",
        )
    if maximum is not None and count > maximum:
        return ValidationResult(
            is_valid=False,
            error_message=f"At most {maximum} teams are allowed, got {count}",
        )
    return ValidationResult(is_valid=True, value=count)


def validate_team_count_strict(
    count: int, minimum: int = 2, maximum: Optional[int] = None
) -> int:
    """Validate the team count or raise InvalidTeamCountException."""
    result = validate_team_count(count, minimum, maximum)
    if not result:
        raise InvalidTeamCountException(result.error_message)
    return count


def validate_rotation_player_count(count: int) -> ValidationResult:
    """Validate an Americano/Mexicano player count (even, at least four).

    Args:
        count: Number of individual players

    Returns:
        ValidationResult with validation status
    """
    if count < AMERICANO_MIN_PLAYERS:
        return ValidationResult(
            is_valid=False,
            error_message=(
                f"At least {AMERICANO_MIN_PLAYERS} players are required, got {count}"
            ),
        )
    if count % 2 != 0:
        return ValidationResult(
            is_valid=False,
            error_message=f"An even number of players is required, got {count}",
        )
    return ValidationResult(is_valid=True, value=count)


def validate_rotation_player_count_strict(count: int) -> int:
    """Validate the rotation player count or raise InvalidTeamCountException."""
    result = validate_rotation_player_count(count)
    if not result:
        raise InvalidTeamCountException(result.error_message)
    return count


# ========== Time Ranges ==========


def validate_time_per_match(minutes: int) -> ValidationResult:
    """Validate the Mexicano minutes per match."""
    if not MEXICANO_MIN_MINUTES <= minutes <= MEXICANO_MAX_MINUTES:
        return ValidationResult(
            is_valid=False,
            error_message=(
                f"Time per match must be between {MEXICANO_MIN_MINUTES} and "
                f"{MEXICANO_MAX_MINUTES} minutes, got {minutes}"
            ),
        )
    return ValidationResult(is_valid=True, value=minutes)


def validate_time_per_match_strict(minutes: int) -> int:
    """Validate the minutes per match or raise InvalidTimeRangeException."""
    result = validate_time_per_match(minutes)
    if not result:
        raise InvalidTimeRangeException(result.error_message)
    return minutes


def validate_window(start: datetime, end: datetime) -> ValidationResult:
    """Validate that a tournament window is non-empty."""
    if end <= start:
        return ValidationResult(
            is_valid=False,
            error_message=f"Window end {end.isoformat()} is not after start {start.isoformat()}",
        )
    return ValidationResult(is_valid=True, value=int((end - start).total_seconds() // 60))


def validate_window_strict(start: datetime, end: datetime) -> int:
    """Validate the window or raise InvalidTimeRangeException.

    Returns:
        Window length in whole minutes
    """
    result = validate_window(start, end)
    if not result:
        raise InvalidTimeRangeException(result.error_message)
    return result.value


def validate_daily_window(
    available_from: Optional[time], available_to: Optional[time]
) -> ValidationResult:
    """Validate a court's daily availability window.

    Both bounds must be given together and the window may not wrap midnight.
    """
    if available_from is None and available_to is None:
        return ValidationResult(is_valid=True)
    if available_from is None or available_to is None:
        return ValidationResult(
            is_valid=False,
            error_message="Court availability needs both a start and an end time",
        )
    if available_to <= available_from:
        return ValidationResult(
            is_valid=False,
            error_message=(
                f"Court availability {available_from}-{available_to} is empty or wraps midnight"
            ),
        )
    return ValidationResult(is_valid=True)
