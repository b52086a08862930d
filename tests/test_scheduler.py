from datetime import datetime, time

import pytest

from rallybracket.exceptions import (
    InvalidConfigurationException,
    NoScheduledMatchesException,
)
from rallybracket.models.arena import Arena
from rallybracket.models.enums import MatchState, TournamentFormat
from rallybracket.models.match import Match
from rallybracket.models.stage import Stage
from rallybracket.models.team import Team
from rallybracket.models.tournament import Category, Court, Tournament
from rallybracket.scheduling.scheduler import Scheduler


def at(hour, minute=0, day=0):
    return datetime(2026, 5, 2 + day, hour, minute)


def _arena(end=None):
    arena = Arena(
        tournament=Tournament(
            id="t1",
            name="Club Night",
            format=TournamentFormat.ROUND_ROBIN,
            start_at=at(9),
            end_at=end or at(21),
        )
    )
    arena.add_category(Category(id="c1", tournament_id="t1", name="Open"))
    for n in range(1, 5):
        arena.add_team(
            Team(
                id=f"team{n}",
                player1_id=f"p{n}a",
                player2_id=f"p{n}b",
                tournament_id="t1",
                category_id="c1",
            )
        )
    return arena


def _match(arena, match_id, team_a, team_b, round_number=1, number=1, **fields):
    match = Match(
        id=match_id,
        tournament_id="t1",
        category_id="c1",
        stage=Stage.main(round_number),
        match_number=number,
        team_a_id=team_a,
        team_b_id=team_b,
        **fields,
    )
    arena.add_match(match)
    return match


def _court(court_id="c1", opens=None, closes=None):
    return Court(
        id=court_id, name=f"Court {court_id[-1]}", available_from=opens, available_to=closes
    )


def test_matches_follow_each_other_with_a_buffer():
    arena = _arena()
    first = _match(arena, "m1", "team1", "team2")
    second = _match(arena, "m2", "team3", "team4", number=2)

    result = Scheduler().schedule_matches(arena, [_court(opens=time(9), closes=time(11, 20))])

    assert result.conflicts == []
    assert first.scheduled_at == at(9)
    assert second.scheduled_at == at(10, 10)
    assert result.assignments == {"m1": ("c1", at(9)), "m2": ("c1", at(10, 10))}
    assert result.scheduled[1].estimated_end == at(11, 10)
    assert result.changes.updates_for("m2") == {"court_id": "c1", "scheduled_at": at(10, 10)}


def test_player_rest_that_does_not_fit_is_a_conflict():
    arena = _arena()
    _match(arena, "m1", "team1", "team2")
    later = _match(arena, "m2", "team1", "team3", number=2)

    result = Scheduler().schedule_matches(arena, [_court(opens=time(9), closes=time(11, 20))])

    assert [s.match_id for s in result.scheduled] == ["m1"]
    assert [(c.type, c.match_id) for c in result.conflicts] == [("time", "m2")]
    assert later.scheduled_at is None
    assert later.court_id is None


def test_match_rolls_over_to_the_next_day():
    arena = _arena(end=at(21, day=2))
    _match(arena, "m1", "team1", "team2")
    second = _match(arena, "m2", "team3", "team4", number=2)

    Scheduler().schedule_matches(arena, [_court(opens=time(9), closes=time(10, 30))])

    assert second.scheduled_at == at(9, day=1)


def test_start_waits_for_the_court_to_open():
    arena = _arena()
    match = _match(arena, "m1", "team1", "team2")
    Scheduler().schedule_matches(arena, [_court(opens=time(10), closes=time(18))])
    assert match.scheduled_at == at(10)


def test_parallel_courts():
    arena = _arena()
    first = _match(arena, "m1", "team1", "team2")
    second = _match(arena, "m2", "team3", "team4", number=2)

    Scheduler().schedule_matches(arena, [_court("c1"), _court("c2")])

    assert (first.court_id, first.scheduled_at) == ("c1", at(9))
    assert (second.court_id, second.scheduled_at) == ("c2", at(9))


def test_court_change_adds_a_buffer():
    arena = _arena()
    _match(arena, "m1", "team1", "team2")
    _match(arena, "m2", "team3", "team4", number=2)
    third = _match(arena, "m3", "team1", "team3", round_number=2)

    Scheduler().schedule_matches(arena, [_court("c1"), _court("c2")])

    # players rest until 10:30, team3 also moves over from court 2
    assert third.scheduled_at == at(10, 35)
    assert third.court_id == "c1"


def test_already_scheduled_matches_are_kept():
    arena = _arena()
    _match(arena, "m1", "team1", "team2", court_id="c1", scheduled_at=at(9))
    second = _match(arena, "m2", "team3", "team4", number=2)

    result = Scheduler().schedule_matches(arena, [_court("c1")])

    assert [s.match_id for s in result.scheduled] == ["m2"]
    assert second.scheduled_at == at(10, 10)


def test_duration_follows_best_of():
    arena = _arena()
    match = _match(arena, "m1", "team1", "team2", best_of=5)
    assert Scheduler().estimated_duration(match).total_seconds() == 90 * 60


def test_detect_conflicts():
    arena = _arena()
    _match(arena, "m1", "team1", "team2", court_id="c1", scheduled_at=at(9))
    _match(arena, "m2", "team1", "team3", number=2, court_id="c1", scheduled_at=at(9, 30))
    _match(arena, "m3", "team4", "team2", number=3, court_id="c2", scheduled_at=at(10))
    _match(
        arena,
        "m4",
        "team3",
        "team4",
        number=4,
        court_id="c1",
        scheduled_at=at(9, 30),
        state=MatchState.CANCELLED,
    )

    conflicts = Scheduler().detect_conflicts(arena)

    kinds = sorted((c.type, c.player_id or c.court_id) for c in conflicts)
    assert kinds == [("court", "c1"), ("player", "p1a"), ("player", "p1b")]
    assert all(c.conflicting_match_id == "m2" for c in conflicts)


def test_optimize_tightens_buffers():
    arena = _arena()
    _match(arena, "m1", "team1", "team2")
    second = _match(arena, "m2", "team3", "team4", number=2)
    scheduler = Scheduler()
    courts = [_court("c1")]
    scheduler.schedule_matches(arena, courts)

    report = scheduler.optimize_schedule(arena, courts)

    assert report.original_duration == 130
    assert report.optimized_duration == 125
    assert report.minutes_saved == 5
    assert report.matches_rescheduled == 2
    assert second.scheduled_at == at(10, 5)
    assert report.result.changes.updates_for("m2")["scheduled_at"] == at(10, 5)


def test_optimize_without_a_schedule():
    arena = _arena()
    _match(arena, "m1", "team1", "team2")
    with pytest.raises(NoScheduledMatchesException):
        Scheduler().optimize_schedule(arena, [_court()])


def test_scheduling_needs_a_court():
    arena = _arena()
    _match(arena, "m1", "team1", "team2")
    with pytest.raises(InvalidConfigurationException):
        Scheduler().schedule_matches(arena, [])
    with pytest.raises(InvalidConfigurationException):
        Scheduler().assign_courts(["m1"], [])


def test_assign_courts_in_turn():
    assignments, changes = Scheduler().assign_courts(
        ["m1", "m2", "m3"], [_court("c1"), _court("c2")]
    )
    assert assignments == {"m1": "c1", "m2": "c2", "m3": "c1"}
    assert changes.updates_for("m3") == {"court_id": "c1"}


def test_scheduling_stats():
    arena = _arena()
    _match(arena, "m1", "team1", "team2", court_id="c1", scheduled_at=at(9))
    _match(arena, "m2", "team3", "team4", number=2)
    _match(arena, "m3", "team1", "team3", round_number=2, state=MatchState.CANCELLED)

    assert Scheduler().scheduling_stats(arena) == {
        "total_matches": 2,
        "scheduled_matches": 1,
        "unscheduled_matches": 1,
        "conflicts": 0,
    }
