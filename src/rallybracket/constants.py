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

# --- Ratings ---
DEFAULT_RATING = 1500
DEFAULT_K_FACTOR = 24
POINTS_PER_WIN = 3

# --- Match formats ---
BRACKET_BEST_OF = 3
GRAND_FINAL_BEST_OF = 5
ROUND_ROBIN_BEST_OF = 3
AMERICANO_BEST_OF = 1

# --- Round numbering ---
# Losers bracket rounds are stored under this offset in the legacy signed key
LOSERS_ROUND_OFFSET = 1000

# --- Bracket round names ---
ROUND_NAME_FINAL = "Finals"
ROUND_NAME_SEMI_FINAL = "Semi-finals"
ROUND_NAME_QUARTER_FINAL = "Quarter-finals"
WINNERS_PREFIX = "Winners"
LOSERS_ROUND_NAME = "Losers Round"
GRAND_FINAL_NAME = "Grand Final"
GRAND_FINAL_RESET_NAME = "Grand Final Reset"

# Bracket labels stored on BracketMeta
BRACKET_SINGLE = "single"
BRACKET_WINNERS = "winners"
BRACKET_LOSERS = "losers"
BRACKET_GRAND_FINAL = "grand_final"
BRACKET_PLAYOFF = "playoff"

# --- Americano / Mexicano ---
AMERICANO_MIN_PLAYERS = 4
AMERICANO_BASE_SCORE = 100
REPEAT_PARTNER_PENALTY = 50
CROSS_PARTNER_PENALTY = 10
# Upper bound on search nodes before falling back to circle rotations
ROTATION_SEARCH_BUDGET = 20000
MEXICANO_MIN_MINUTES = 5
MEXICANO_MAX_MINUTES = 30
MEXICANO_DEFAULT_MINUTES = 12
MEXICANO_ROTATION_BUFFER = 3

# --- Scheduling (minutes) ---
BUFFER_BETWEEN_MATCHES = 10
BUFFER_SAME_PLAYER = 30
BUFFER_COURT_CHANGE = 5
TIGHT_BUFFER_BETWEEN_MATCHES = 5
TIGHT_BUFFER_SAME_PLAYER = 20
TIGHT_BUFFER_COURT_CHANGE = 3
DURATION_BEST_OF_1 = 30
DURATION_BEST_OF_3 = 60
DURATION_BEST_OF_5 = 90

# --- Groups & playoffs ---
DEFAULT_NUM_GROUPS = 2
PLAYOFF_QUALIFIERS_PER_GROUP = 2
GROUP_NAME_PREFIX = "Group"

# --- Environment ---
LOG_LEVEL_ENV_VAR = "RALLYBRACKET_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
