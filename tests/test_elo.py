import logging
from datetime import datetime

import pytest

from rallybracket.controllers.progression import ProgressionEngine
from rallybracket.models.arena import Arena
from rallybracket.models.changes import ChangeSet
from rallybracket.models.config import RatingConfig
from rallybracket.models.enums import MatchState, RankingScope, TournamentFormat
from rallybracket.models.match import BracketMeta, Match
from rallybracket.models.stage import Stage
from rallybracket.models.standing import Ranking, RankingKey
from rallybracket.models.team import Team
from rallybracket.models.tournament import Category, Tournament
from rallybracket.tournament.elo import (
    EloCalculator,
    get_player_rating,
    player_rank,
    top_players,
    update_team_ratings,
)


def _final_arena():
    arena = Arena(
        tournament=Tournament(
            id="t1",
            name="Cup",
            format=TournamentFormat.SINGLE_ELIM,
            start_at=datetime(2026, 5, 2, 9, 0),
            end_at=datetime(2026, 5, 2, 21, 0),
        )
    )
    arena.add_category(Category(id="c1", tournament_id="t1", name="Open"))
    for n in (1, 2):
        arena.add_team(
            Team(
                id=f"team{n}",
                player1_id=f"p{n}a",
                player2_id=f"p{n}b",
                tournament_id="t1",
                category_id="c1",
            )
        )
    arena.add_match(
        Match(
            id="final",
            tournament_id="t1",
            category_id="c1",
            stage=Stage.main(1),
            match_number=1,
            team_a_id="team1",
            team_b_id="team2",
            winner_id="team1",
            state=MatchState.DONE,
            meta=BracketMeta("Final"),
        )
    )
    return arena


def test_expected_score_is_symmetric():
    calculator = EloCalculator()
    assert calculator.expected_score(1500, 1500) == pytest.approx(0.5)
    assert calculator.expected_score(1600, 1400) + calculator.expected_score(
        1400, 1600
    ) == pytest.approx(1.0)


def test_equal_ratings_move_by_half_k():
    assert EloCalculator().calculate_change(1500, 1500) == (1512, 1488)


@pytest.mark.parametrize("winner, loser", [(1500, 1500), (1700, 1300), (1200, 1800), (1523, 1477)])
def test_changes_are_zero_sum_within_rounding(winner, loser):
    new_winner, new_loser = EloCalculator().calculate_change(winner, loser)
    assert new_winner > winner
    assert new_loser < loser
    assert abs((new_winner - winner) + (new_loser - loser)) <= 1


def test_team_rating_is_the_average():
    assert EloCalculator.team_rating([1400, 1600]) == 1500


def test_team_update_writes_every_scope():
    arena = _final_arena()
    changes = ChangeSet()
    result = update_team_ratings(arena, arena.get_match("final"), changes=changes)

    assert len(result.changes) == 8
    assert len(changes.ranking_upserts) == 8
    assert result.delta_for("p1a", RankingScope.GLOBAL) == 12
    assert result.delta_for("p2b", RankingScope.TOURNAMENT) == -12

    key = RankingKey.for_scope(RankingScope.TOURNAMENT, "p1b", "t1", "c1")
    row = arena.rankings[key]
    assert (row.rating, row.wins, row.losses, row.points) == (1512, 1, 0, 3)
    loser = arena.rankings[RankingKey.for_scope(RankingScope.GLOBAL, "p2a")]
    assert (loser.rating, loser.losses, loser.points) == (1488, 1, 0)


def test_scopes_are_rated_independently():
    arena = _final_arena()
    key = RankingKey.for_scope(RankingScope.GLOBAL, "p1a")
    arena.rankings[key] = Ranking(key=key, rating=1600)

    update_team_ratings(arena, arena.get_match("final"))

    assert get_player_rating(arena.rankings, "p1a", RankingScope.GLOBAL) == 1609
    assert get_player_rating(arena.rankings, "p1a", RankingScope.TOURNAMENT, "t1", "c1") == 1512
    assert get_player_rating(arena.rankings, "p2a", RankingScope.GLOBAL) == 1490


def test_single_scope_config():
    arena = _final_arena()
    config = RatingConfig(scopes=(RankingScope.GLOBAL,))
    result = update_team_ratings(arena, arena.get_match("final"), config)
    assert len(result.changes) == 4
    assert all(key.scope == RankingScope.GLOBAL for key in arena.rankings)


def test_unrated_player_gets_default():
    assert get_player_rating({}, "nobody", RankingScope.GLOBAL) == 1500
    assert get_player_rating({}, "nobody", RankingScope.GLOBAL, default=1200) == 1200


def test_leaderboard_and_rank():
    arena = _final_arena()
    update_team_ratings(arena, arena.get_match("final"))

    top = top_players(arena.rankings, RankingScope.GLOBAL, limit=3)
    assert len(top) == 3
    assert {row.user_id for row in top[:2]} == {"p1a", "p1b"}
    assert top[0].user_id == "p1a"
    assert player_rank(arena.rankings, "p1b", RankingScope.GLOBAL) == 2
    assert player_rank(arena.rankings, "p2b", RankingScope.GLOBAL) == 4
    assert player_rank(arena.rankings, "ghost", RankingScope.GLOBAL) is None
    assert len(top_players(arena.rankings, RankingScope.TOURNAMENT, 10, "t1", "c1")) == 4
    assert top_players(arena.rankings, RankingScope.TOURNAMENT, 10, "other", "c1") == []


def test_rating_failure_does_not_block_progression(caplog):
    arena = _final_arena()
    match = arena.get_match("final")
    match.state = MatchState.PENDING
    match.winner_id = None
    del arena.teams["team2"]

    with caplog.at_level(logging.ERROR, logger="rallybracket"):
        result = ProgressionEngine().record_result(arena, "final", [(6, 3), (6, 4)])

    assert not result.rating_updated
    assert result.tournament_finished
    assert match.state == MatchState.DONE
    assert "Rating update failed" in caplog.text
