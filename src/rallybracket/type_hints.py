"""Type hints used in Rally Bracket."""

from typing import Dict, List, Literal, Optional, Tuple

# Conflict categories reported by the scheduler
ConflictKind = Literal["player", "court", "time"]

# Format label carried on americano metadata
RotationFormat = Literal["americano", "mexicano"]

# An ordered bracket line: team ids, None where a bye sits
SeedLine = List[Optional[str]]
# Two player ids forming a (possibly temporary) team
PlayerPair = Tuple[str, str]
# Two pairs facing each other on a court
Grouping = Tuple[PlayerPair, PlayerPair]
# Head-to-head record: team id -> opponent id -> net result
HeadToHead = Dict[str, Dict[str, int]]
