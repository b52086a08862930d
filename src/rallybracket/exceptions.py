"""Exceptions for use in Rally Bracket"""

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


# ========== Base Application Exception ==========


class RallyBracketException(Exception):
    """Base exception for all Rally Bracket errors.

    All custom exceptions in the engine inherit from this class, so callers
    can catch every engine-specific error with a single except clause.
    """

    pass


# ========== Generation Exceptions ==========


class GenerationException(RallyBracketException):
    """Base exception for match generation errors."""

    pass


class InvalidTeamCountException(GenerationException):
    """Raised when a format receives too few (or an unusable number of) entrants."""

    pass


class InvalidTimeRangeException(GenerationException):
    """Raised when a time window or per-match duration is out of bounds."""

    pass


# ========== Data Exceptions ==========


class DataException(RallyBracketException):
    """Base exception for domain data errors."""

    pass


class EntityNotFoundException(DataException):
    """Raised when a referenced tournament, match, team or group does not exist."""

    pass


class InvalidTeamDataException(DataException):
    """Raised when a team is built from invalid player data."""

    pass


class DuplicateTeamException(DataException):
    """Raised when the same pair of players is registered twice in a tournament."""

    pass


# ========== Progression Exceptions ==========


class ProgressionException(RallyBracketException):
    """Base exception for match progression errors."""

    pass


class MatchNotReadyException(ProgressionException):
    """Raised when a match is processed before it has a final result."""

    pass


class TournamentStateException(ProgressionException):
    """Raised when an operation is invalid for the tournament's current status."""

    pass


# ========== Scheduling Exceptions ==========


class SchedulingException(RallyBracketException):
    """Base exception for scheduling errors."""

    pass


class NoScheduledMatchesException(SchedulingException):
    """Raised when optimizing a schedule that has no scheduled matches."""

    pass


# ========== Configuration Exceptions ==========


class ConfigurationException(RallyBracketException):
    """Base exception for configuration errors."""

    pass


class InvalidConfigurationException(ConfigurationException):
    """Raised when engine or scheduling configuration is invalid."""

    pass
