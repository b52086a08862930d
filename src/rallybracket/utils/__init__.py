"""Shared helpers: logger setup, id generation and rounding."""

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

import logging
import math
import os
import uuid
from datetime import datetime, time
from typing import Optional, Union

from dateutil.parser import isoparse

from rallybracket.constants import DEFAULT_LOG_LEVEL, LOG_LEVEL_ENV_VAR

_LOG_FORMAT = "%(asctime)s %(levelname)-8s %(name)s: %(message)s"


def setup_logger(name: str) -> logging.Logger:
    """Return the module logger, attaching a stream handler on first use.

    The level follows the ``RALLYBRACKET_LOG_LEVEL`` environment variable and
    defaults to WARNING. Handlers are attached to the package root logger
    only, so module loggers propagate to it.
    """
    root = logging.getLogger("rallybracket")
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(_LOG_FORMAT))
        root.addHandler(handler)
        level_name = os.environ.get(LOG_LEVEL_ENV_VAR, DEFAULT_LOG_LEVEL).upper()
        root.setLevel(getattr(logging, level_name, logging.WARNING))
    return logging.getLogger(name)


def generate_id(prefix: str) -> str:
    """Generate a unique identifier such as ``match_3f9c2a1b04de``."""
    return f"{prefix.lower()}_{uuid.uuid4().hex[:12]}"


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with halves rounded up.

    Unlike ``round()``, 0.5 always rounds towards positive infinity.
    """
    return int(math.floor(value + 0.5))


def parse_datetime(value: Union[str, datetime, None]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp from serialized data."""
    if value is None or isinstance(value, datetime):
        return value
    return isoparse(value)


def parse_time(value: Union[str, time, None]) -> Optional[time]:
    """Parse an ``HH:MM[:SS]`` time of day from serialized data."""
    if value is None or isinstance(value, time):
        return value
    return time.fromisoformat(value)


def format_datetime(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None
