from collections import Counter
from datetime import datetime

import pytest

from rallybracket.controllers.progression import ProgressionEngine
from rallybracket.exceptions import EntityNotFoundException, MatchNotReadyException
from rallybracket.formats.generator import FormatGenerator
from rallybracket.models.arena import Arena
from rallybracket.models.enums import MatchState, TournamentFormat, TournamentStatus
from rallybracket.models.stage import Stage
from rallybracket.models.team import Player, Team
from rallybracket.models.tournament import Category, Tournament


def _arena(fmt, count):
    arena = Arena(
        tournament=Tournament(
            id="t1",
            name="Spring Open",
            format=fmt,
            start_at=datetime(2026, 5, 2, 9, 0),
            end_at=datetime(2026, 5, 4, 21, 0),
        )
    )
    arena.add_category(Category(id="c1", tournament_id="t1", name="Open"))
    for i in range(1, count + 1):
        for side in "ab":
            arena.add_player(Player(id=f"p{i}{side}", name=f"Player {i}{side.upper()}"))
        arena.add_team(
            Team(
                id=f"team{i}",
                player1_id=f"p{i}a",
                player2_id=f"p{i}b",
                tournament_id="t1",
                category_id="c1",
                seed=i,
            )
        )
    FormatGenerator().generate(arena)
    return arena


def _sets(match, winner):
    needed = match.best_of // 2 + 1
    if winner == match.team_a_id:
        return [(6, 3)] * needed
    return [(3, 6)] * needed


def _favourite(arena, match):
    return min(match.team_ids, key=lambda team_id: arena.get_team(team_id).seed)


def _underdog(arena, match):
    return max(match.team_ids, key=lambda team_id: arena.get_team(team_id).seed)


def _ready(arena):
    return [
        m
        for m in arena.matches_for(states=[MatchState.PENDING])
        if m.has_both_teams
    ]


def _play_out(engine, arena, pick=_favourite, stop=None):
    """Play ready matches in order until none is left; returns the last result."""
    result = None
    for _ in range(500):
        ready = _ready(arena)
        if not ready:
            return result
        match = ready[0]
        if stop is not None and stop(match):
            return result
        result = engine.record_result(arena, match.id, _sets(match, pick(arena, match)))
    raise AssertionError("tournament did not settle")


def _losses(arena):
    counts = Counter()
    for match in arena.matches.values():
        if match.state == MatchState.DONE and match.has_both_teams:
            counts[match.loser_id] += 1
    return counts


# ========== Single Elimination ==========


def test_winner_moves_into_the_next_round():
    arena = _arena(TournamentFormat.SINGLE_ELIM, 4)
    engine = ProgressionEngine()
    semi_1 = arena.find_match("c1", Stage.main(2), 1)
    final = arena.find_match("c1", Stage.main(1), 1)
    assert semi_1.team_ids == ("team1", "team4")

    result = engine.record_result(arena, semi_1.id, [(6, 4), (3, 6), (7, 5)])

    assert result.winner_id == "team1"
    assert result.progressed_to == [final.id]
    assert result.rating_updated
    assert not result.tournament_finished
    assert final.team_a_id == "team1"
    assert final.team_b_id is None
    assert semi_1.state == MatchState.DONE
    assert [s.set_number for s in semi_1.set_scores] == [1, 2, 3]
    assert result.changes.updates_for(semi_1.id)["winner_id"] == "team1"
    assert [a.team_id for a in result.changes.slot_assignments] == ["team1"]


def test_single_elimination_finishes():
    arena = _arena(TournamentFormat.SINGLE_ELIM, 8)
    engine = ProgressionEngine()
    result = _play_out(engine, arena)

    final = arena.find_match("c1", Stage.main(1), 1)
    assert final.winner_id == "team1"
    assert result.tournament_finished
    assert arena.tournament.status == TournamentStatus.FINISHED
    assert result.changes.tournament_status == TournamentStatus.FINISHED
    assert engine.is_tournament_complete(arena)


def test_bye_team_waits_in_the_final():
    arena = _arena(TournamentFormat.SINGLE_ELIM, 3)
    engine = ProgressionEngine()
    final = arena.find_match("c1", Stage.main(1), 1)
    assert final.team_a_id == "team1"

    _play_out(engine, arena)
    assert final.winner_id == "team1"
    assert arena.tournament.status == TournamentStatus.FINISHED


def test_result_errors():
    arena = _arena(TournamentFormat.SINGLE_ELIM, 4)
    engine = ProgressionEngine()
    final = arena.find_match("c1", Stage.main(1), 1)
    semi = arena.find_match("c1", Stage.main(2), 1)

    with pytest.raises(MatchNotReadyException):
        engine.record_result(arena, final.id, [(6, 0), (6, 0)])
    with pytest.raises(EntityNotFoundException):
        engine.record_result(arena, "match_missing", [(6, 0), (6, 0)])
    with pytest.raises(MatchNotReadyException):
        engine.record_result(arena, semi.id, [(6, 3), (3, 6)])
    assert semi.set_scores == []
    assert semi.state == MatchState.PENDING

    # best of 3: five sets, and a third set after 2-0
    with pytest.raises(MatchNotReadyException):
        engine.record_result(arena, semi.id, [(6, 3), (6, 3), (6, 3), (2, 6), (1, 6)])
    with pytest.raises(MatchNotReadyException):
        engine.record_result(arena, semi.id, [(6, 3), (6, 3), (6, 3)])
    with pytest.raises(MatchNotReadyException):
        engine.record_result(arena, semi.id, [(6, 3), (6, 3), (3, 6)])
    assert semi.set_scores == []
    assert semi.state == MatchState.PENDING

    engine.record_result(arena, semi.id, [(6, 3), (6, 3)])
    with pytest.raises(MatchNotReadyException):
        engine.record_result(arena, semi.id, [(6, 3), (6, 3)])


def test_start_match():
    arena = _arena(TournamentFormat.SINGLE_ELIM, 4)
    engine = ProgressionEngine()
    semi = arena.find_match("c1", Stage.main(2), 2)
    final = arena.find_match("c1", Stage.main(1), 1)

    changes = engine.start_match(arena, semi.id)
    assert semi.state == MatchState.ONGOING
    assert changes.updates_for(semi.id) == {"state": MatchState.ONGOING}
    with pytest.raises(MatchNotReadyException):
        engine.start_match(arena, semi.id)
    with pytest.raises(MatchNotReadyException):
        engine.start_match(arena, final.id)

    result = engine.record_result(arena, semi.id, [(6, 1), (6, 1)])
    assert result.winner_id == semi.team_a_id


def test_walkover_advances_without_rating():
    arena = _arena(TournamentFormat.SINGLE_ELIM, 4)
    engine = ProgressionEngine()
    semi = arena.find_match("c1", Stage.main(2), 1)
    final = arena.find_match("c1", Stage.main(1), 1)

    result = engine.handle_walkover(arena, semi.id, "team4")

    assert semi.state == MatchState.WALKOVER
    assert result.winner_id == "team1"
    assert not result.rating_updated
    assert arena.rankings == {}
    assert final.team_a_id == "team1"
    with pytest.raises(MatchNotReadyException):
        engine.handle_walkover(arena, semi.id, "team1")


def test_walkover_of_a_team_not_in_the_match():
    arena = _arena(TournamentFormat.SINGLE_ELIM, 4)
    semi = arena.find_match("c1", Stage.main(2), 1)
    with pytest.raises(MatchNotReadyException):
        ProgressionEngine().handle_walkover(arena, semi.id, "team2")


def test_occupied_slot_is_not_overwritten():
    arena = _arena(TournamentFormat.SINGLE_ELIM, 4)
    engine = ProgressionEngine()
    semi = arena.find_match("c1", Stage.main(2), 1)
    final = arena.find_match("c1", Stage.main(1), 1)
    final.team_a_id = "team3"

    result = engine.record_result(arena, semi.id, [(6, 2), (6, 2)])

    assert final.team_a_id == "team3"
    assert result.progressed_to == []
    assert result.changes.slot_assignments == []


def test_reprocessing_a_completion_is_idempotent():
    arena = _arena(TournamentFormat.SINGLE_ELIM, 4)
    engine = ProgressionEngine()
    semi = arena.find_match("c1", Stage.main(2), 1)
    final = arena.find_match("c1", Stage.main(1), 1)
    engine.record_result(arena, semi.id, [(6, 2), (6, 2)])

    again = engine.process_match_completion(arena, semi.id, update_ratings=False)

    assert again.changes.slot_assignments == []
    assert not again.rating_updated
    assert final.team_a_id == "team1"


def test_processing_an_undecided_match_fails():
    arena = _arena(TournamentFormat.SINGLE_ELIM, 4)
    semi = arena.find_match("c1", Stage.main(2), 1)
    with pytest.raises(MatchNotReadyException):
        ProgressionEngine().process_match_completion(arena, semi.id)


def test_round_completion():
    arena = _arena(TournamentFormat.SINGLE_ELIM, 4)
    engine = ProgressionEngine()
    assert not engine.is_round_complete(arena, Stage.main(2))
    _play_out(engine, arena, stop=lambda m: m.stage == Stage.main(1))
    assert engine.is_round_complete(arena, Stage.main(2), "c1")
    assert not engine.is_round_complete(arena, Stage.main(1))
    assert not engine.is_round_complete(arena, Stage.main(5))


# ========== Groups ==========


def test_round_robin_finishes_with_standings():
    arena = _arena(TournamentFormat.ROUND_ROBIN, 4)
    engine = ProgressionEngine()
    group = arena.groups_for("c1")[0]
    first = arena.matches_for(group_id=group.id)[0]

    winner = _favourite(arena, first)
    result = engine.record_result(arena, first.id, _sets(first, winner))
    assert result.standings_updated
    assert len(result.changes.standing_upserts) == 4

    result = _play_out(engine, arena)
    assert result.tournament_finished
    standings = arena.standings_for(group.id)
    assert standings[0].team_id == "team1"
    assert [s.wins for s in standings] == [3, 2, 1, 0]
    assert sum(s.wins for s in standings) == 6


def test_group_stage_generates_playoffs():
    arena = _arena(TournamentFormat.GROUPS_PLAYOFFS, 8)
    engine = ProgressionEngine()
    groups = arena.groups_for("c1")
    assert [g.team_ids for g in groups] == [
        ["team1", "team4", "team5", "team8"],
        ["team2", "team3", "team6", "team7"],
    ]

    _play_out(engine, arena, stop=lambda m: m.group_id is None)
    playoff = arena.bracket_matches("c1")
    assert len(playoff) == 3
    assert all(m.meta.bracket == "playoff" for m in playoff)
    semis = [set(m.team_ids) for m in playoff if m.stage == Stage.main(2)]
    assert semis == [{"team1", "team3"}, {"team2", "team4"}]

    result = _play_out(engine, arena)
    assert result.tournament_finished
    assert arena.find_match("c1", Stage.main(1), 1).winner_id == "team1"


def test_playoffs_are_generated_once():
    arena = _arena(TournamentFormat.GROUPS_PLAYOFFS, 8)
    engine = ProgressionEngine()
    _play_out(engine, arena, stop=lambda m: m.group_id is None)
    assert engine.generate_playoffs(arena) == []


# ========== Double Elimination ==========


def test_grand_final_reset_is_played_when_the_unbeaten_team_loses():
    arena = _arena(TournamentFormat.DOUBLE_ELIM, 2)
    engine = ProgressionEngine()
    final = arena.find_match("c1", Stage.main(1), 1)
    gf1 = arena.find_match("c1", Stage.grand_final(1), 1)
    reset = arena.find_match("c1", Stage.grand_final(2), 1)

    engine.record_result(arena, final.id, _sets(final, "team1"))
    assert (gf1.team_a_id, gf1.team_b_id) == ("team1", "team2")

    result = engine.record_result(arena, gf1.id, _sets(gf1, "team2"))
    assert result.reset_required
    assert not result.tournament_finished
    assert (reset.team_a_id, reset.team_b_id) == ("team2", "team1")
    assert reset.best_of == 5

    result = engine.record_result(arena, reset.id, _sets(reset, "team1"))
    assert result.tournament_finished
    assert reset.winner_id == "team1"


def test_grand_final_reset_is_cancelled_when_not_needed():
    arena = _arena(TournamentFormat.DOUBLE_ELIM, 2)
    engine = ProgressionEngine()
    final = arena.find_match("c1", Stage.main(1), 1)
    gf1 = arena.find_match("c1", Stage.grand_final(1), 1)
    reset = arena.find_match("c1", Stage.grand_final(2), 1)

    engine.record_result(arena, final.id, _sets(final, "team1"))
    result = engine.record_result(arena, gf1.id, _sets(gf1, "team1"))

    assert result.reset_required is False
    assert reset.state == MatchState.CANCELLED
    assert reset.team_ids == ()
    assert result.tournament_finished
    assert arena.tournament.status == TournamentStatus.FINISHED


@pytest.mark.parametrize("count", [2, 3, 5, 6, 8, 11])
@pytest.mark.parametrize("pick", [_favourite, _underdog])
def test_double_elimination_knocks_out_after_two_losses(count, pick):
    arena = _arena(TournamentFormat.DOUBLE_ELIM, count)
    engine = ProgressionEngine()
    result = _play_out(engine, arena, pick=pick)

    assert result.tournament_finished
    gf1 = arena.find_match("c1", Stage.grand_final(1), 1)
    reset = arena.find_match("c1", Stage.grand_final(2), 1)
    champion = reset.winner_id if reset.state == MatchState.DONE else gf1.winner_id
    assert champion is not None

    losses = _losses(arena)
    for team in arena.teams_for("c1"):
        if team.id == champion:
            assert losses[team.id] <= 1
        else:
            assert losses[team.id] == 2, team.id
    assert not arena.open_matches()
