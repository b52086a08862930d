"""Match generation for every supported tournament format."""

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

from rallybracket.formats.americano import (
    RotationHistory,
    RotationPlanner,
    generate_americano,
    generate_mexicano,
)
from rallybracket.formats.bracket import generate_single_elimination, round_name
from rallybracket.formats.double_elimination import (
    DoubleEliminationBracket,
    generate_double_elimination,
)
from rallybracket.formats.generator import FormatGenerator, generate_tournament
from rallybracket.formats.round_robin import (
    circle_rounds,
    generate_groups_stage,
    generate_round_robin,
)
from rallybracket.formats.seeding import apply_seeding, calculate_byes, seeding_pattern

__all__ = [
    "DoubleEliminationBracket",
    "FormatGenerator",
    "RotationHistory",
    "RotationPlanner",
    "apply_seeding",
    "calculate_byes",
    "circle_rounds",
    "generate_americano",
    "generate_double_elimination",
    "generate_groups_stage",
    "generate_mexicano",
    "generate_round_robin",
    "generate_single_elimination",
    "generate_tournament",
    "round_name",
    "seeding_pattern",
]
