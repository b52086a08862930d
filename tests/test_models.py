from datetime import datetime, time

import pytest

from rallybracket.exceptions import (
    InvalidConfigurationException,
    InvalidTeamDataException,
    InvalidTimeRangeException,
)
from rallybracket.models.changes import ChangeSet
from rallybracket.models.config import BufferConfig, EngineConfig, RatingConfig
from rallybracket.models.enums import MatchState, RankingScope, Slot, TournamentFormat
from rallybracket.models.match import AmericanoMeta, BracketMeta, Match, SetScore
from rallybracket.models.stage import Stage
from rallybracket.models.standing import Ranking, RankingKey
from rallybracket.models.team import Player, Team
from rallybracket.models.tournament import Court, Tournament
from rallybracket.utils import round_half_up
from rallybracket.utils.validation import (
    validate_rotation_player_count,
    validate_team_count,
    validate_time_per_match,
)


# ========== Stages ==========


@pytest.mark.parametrize(
    "stage, key",
    [
        (Stage.main(1), 1),
        (Stage.main(4), 4),
        (Stage.losers(3), 1003),
        (Stage.grand_final(1), -1),
        (Stage.grand_final(2), -2),
    ],
)
def test_round_keys(stage, key):
    assert stage.round_key == key
    assert Stage.from_round_key(key) == stage


def test_invalid_stages():
    with pytest.raises(ValueError):
        Stage.main(0)
    with pytest.raises(ValueError):
        Stage.grand_final(3)


# ========== Matches ==========


def test_match_dict_round_trip():
    match = Match(
        id="m1",
        tournament_id="t1",
        category_id="c1",
        stage=Stage.losers(2),
        match_number=3,
        team_a_id="team1",
        team_b_id="team2",
        winner_id="team2",
        state=MatchState.DONE,
        meta=BracketMeta("Losers Round 3", bracket="losers", pass_through=True),
        court_id="court1",
        scheduled_at=datetime(2026, 5, 2, 14, 30),
        set_scores=[SetScore("m1", 1, 4, 6), SetScore("m1", 2, 6, 7, 3, 7)],
    )
    data = match.to_dict()
    assert data["round"] == 1002
    assert Match.from_dict(data) == match


def test_legacy_round_number_is_understood():
    match = Match.from_dict(
        {
            "id": "m1",
            "tournament_id": "t1",
            "category_id": "c1",
            "round": 1003,
            "match_number": 1,
            "meta": {"kind": "americano", "court": 2},
        }
    )
    assert match.stage == Stage.losers(3)
    assert match.meta == AmericanoMeta(court=2)
    assert match.state == MatchState.PENDING


def test_match_requires_odd_best_of():
    with pytest.raises(ValueError):
        Match(
            id="m1",
            tournament_id="t1",
            category_id="c1",
            stage=Stage.main(1),
            match_number=1,
            best_of=2,
        )


def test_tiebreak_decides_a_level_set():
    assert SetScore("m1", 1, 6, 6, 7, 5).winner_slot == Slot.A
    assert SetScore("m1", 1, 6, 6, 2, 7).winner_slot == Slot.B
    assert SetScore("m1", 1, 6, 6).winner_slot is None


def test_match_helpers():
    match = Match(
        id="m1",
        tournament_id="t1",
        category_id="c1",
        stage=Stage.main(2),
        match_number=1,
        team_a_id="team1",
        set_scores=[SetScore("m1", 1, 6, 4), SetScore("m1", 2, 3, 6)],
    )
    assert match.team_ids == ("team1",)
    assert not match.has_both_teams
    assert match.opponent_of("team1") is None
    match.set_slot(Slot.B, "team2")
    assert match.opponent_of("team1") == "team2"
    assert match.games_for("team2") == (10, 9)
    assert match.loser_id is None


# ========== Teams and tournaments ==========


def test_team_validation():
    with pytest.raises(InvalidTeamDataException):
        Team(id="x", player1_id="p1", player2_id="p1")
    with pytest.raises(InvalidTeamDataException):
        Team(id="x", player1_id="p1", player2_id="p2", seed=0)
    team = Team(id="x", player1_id="p2", player2_id="p1")
    assert team.pair_key == frozenset({"p1", "p2"})
    assert team.display_name({"p1": Player("p1", "Ana"), "p2": Player("p2", "Bea")}) == "Bea / Ana"
    assert Team.from_dict(team.to_dict()) == team


def test_tournament_window_must_not_be_empty():
    with pytest.raises(InvalidTimeRangeException):
        Tournament(
            id="t1",
            name="Backwards",
            format=TournamentFormat.SINGLE_ELIM,
            start_at=datetime(2026, 5, 2, 18, 0),
            end_at=datetime(2026, 5, 2, 9, 0),
        )


def test_tournament_round_trip():
    tournament = Tournament(
        id="t1",
        name="Cup",
        format=TournamentFormat.MEXICANO,
        start_at=datetime(2026, 5, 2, 9, 0),
        end_at=datetime(2026, 5, 2, 18, 0),
        max_teams=16,
    )
    assert Tournament.from_dict(tournament.to_dict()) == tournament


def test_court_windows():
    with pytest.raises(InvalidTimeRangeException):
        Court(id="c1", name="Centre", available_from=time(18), available_to=time(9))
    with pytest.raises(InvalidTimeRangeException):
        Court(id="c1", name="Centre", available_from=time(9))
    court = Court(id="c1", name="Centre", available_from=time(9), available_to=time(18))
    assert court.has_window
    assert Court.from_dict(court.to_dict()) == court


# ========== Configuration ==========


def test_engine_config_round_trip():
    config = EngineConfig(
        rating=RatingConfig(k_factor=32, scopes=(RankingScope.GLOBAL,)),
        buffers=BufferConfig.tight(),
        grand_final_best_of=3,
        num_groups=4,
    )
    assert EngineConfig.from_dict(config.to_dict()) == config
    assert EngineConfig.from_dict({}) == EngineConfig()


@pytest.mark.parametrize(
    "kwargs",
    [{"bracket_best_of": 2}, {"americano_best_of": 0}, {"num_groups": 0}],
)
def test_engine_config_validation(kwargs):
    with pytest.raises(InvalidConfigurationException):
        EngineConfig(**kwargs)


def test_negative_buffers_are_rejected():
    with pytest.raises(InvalidConfigurationException):
        BufferConfig(same_player=-1)
    with pytest.raises(InvalidConfigurationException):
        RatingConfig(k_factor=0)


# ========== Rankings and changes ==========


def test_ranking_keys_drop_unused_ids():
    assert RankingKey.for_scope(RankingScope.GLOBAL, "p1", "t1", "c1") == RankingKey(
        RankingScope.GLOBAL, "p1"
    )
    category = RankingKey.for_scope(RankingScope.CATEGORY, "p1", "t1", "c1")
    assert (category.tournament_id, category.category_id) == (None, "c1")
    row = Ranking(key=RankingKey.for_scope(RankingScope.TOURNAMENT, "p1", "t1", "c1"), wins=2)
    assert Ranking.from_dict(row.to_dict()) == row
    assert row.matches_played == 2


def test_change_sets_merge_in_order():
    first = ChangeSet()
    first.update_match("m1", state=MatchState.ONGOING)
    second = ChangeSet()
    second.update_match("m1", state=MatchState.DONE, winner_id="team1")
    second.assign_slot("m2", Slot.A, "team1")

    merged = first.extend(second)

    assert merged is first
    assert merged.updates_for("m1") == {"state": MatchState.DONE, "winner_id": "team1"}
    assert len(merged.slot_assignments) == 1
    assert ChangeSet().is_empty
    assert not merged.is_empty


# ========== Validation helpers ==========


def test_validation_results():
    assert validate_team_count(4)
    assert validate_team_count(4).value == 4
    assert not validate_team_count(1)
    assert "At most 8" in validate_team_count(9, maximum=8).error_message
    assert not validate_rotation_player_count(6 + 1)
    assert validate_rotation_player_count(6)
    assert not validate_time_per_match(45)


@pytest.mark.parametrize("value, expected", [(0.5, 1), (1.49, 1), (-0.5, 0), (-10.28, -10)])
def test_round_half_up(value, expected):
    assert round_half_up(value) == expected
