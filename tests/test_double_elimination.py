import pytest

from rallybracket.formats.double_elimination import generate_double_elimination
from rallybracket.formats.topology import (
    Target,
    bracket_positions,
    live_slots,
    loser_target,
    losers_drop_round,
    losers_match_count,
    losers_play_order,
    losers_round_count,
    winner_target,
)
from rallybracket.models.enums import MatchState, Slot
from rallybracket.models.stage import Stage
from rallybracket.models.team import Team


def _teams(count):
    return [
        Team(id=f"t{i}", player1_id=f"p{i}a", player2_id=f"p{i}b", seed=i)
        for i in range(1, count + 1)
    ]


def _feeds(num_rounds):
    feeds = []
    for stage, number in bracket_positions(num_rounds, double=True):
        if stage.is_grand_final:
            continue
        for target in (
            winner_target(stage, number, num_rounds, double=True),
            loser_target(stage, number, num_rounds),
        ):
            if target is not None:
                feeds.append((target.stage, target.match_number, target.slot))
    return feeds


@pytest.mark.parametrize("num_rounds", [1, 2, 3, 4, 5])
def test_every_slot_is_fed_exactly_once(num_rounds):
    entry = Stage.main(num_rounds)
    expected = {
        (stage, number, slot)
        for stage, number in bracket_positions(num_rounds, double=True)
        if stage != entry
        for slot in (Slot.A, Slot.B)
    }
    feeds = _feeds(num_rounds)
    assert len(feeds) == len(set(feeds))
    assert set(feeds) == expected


@pytest.mark.parametrize(
    "num_rounds, counts",
    [
        (2, [1, 1]),
        (3, [2, 2, 1, 1]),
        (4, [4, 4, 2, 2, 1, 1]),
    ],
)
def test_losers_round_sizes_in_play_order(num_rounds, counts):
    assert losers_round_count(num_rounds) == 2 * num_rounds - 2
    sizes = [
        losers_match_count(num_rounds, losers_round)
        for losers_round in range(losers_round_count(num_rounds), 0, -1)
    ]
    assert sizes == counts


def test_drop_rounds_for_sixteen():
    # winners round -> losers round in play order
    drops = {
        winners_round: losers_play_order(4, losers_drop_round(4, winners_round))
        for winners_round in range(4, 0, -1)
    }
    assert drops == {4: 1, 3: 2, 2: 4, 1: 6}
    assert losers_drop_round(1, 1) is None


def test_eight_team_feed_table():
    # entry losers pair up in the first losers round
    assert loser_target(Stage.main(3), 1, 3) == Target(Stage.losers(4), 1, Slot.A)
    assert loser_target(Stage.main(3), 2, 3) == Target(Stage.losers(4), 1, Slot.B)
    assert loser_target(Stage.main(3), 4, 3) == Target(Stage.losers(4), 2, Slot.B)
    # semi-final losers cross over to avoid immediate rematches
    assert loser_target(Stage.main(2), 1, 3) == Target(Stage.losers(3), 2, Slot.B)
    assert loser_target(Stage.main(2), 2, 3) == Target(Stage.losers(3), 1, Slot.B)
    assert loser_target(Stage.main(1), 1, 3) == Target(Stage.losers(1), 1, Slot.B)
    # losers bracket flow
    assert winner_target(Stage.losers(4), 2, 3, double=True) == Target(
        Stage.losers(3), 2, Slot.A
    )
    assert winner_target(Stage.losers(3), 2, 3, double=True) == Target(
        Stage.losers(2), 1, Slot.B
    )
    assert winner_target(Stage.losers(1), 1, 3, double=True) == Target(
        Stage.grand_final(1), 1, Slot.B
    )
    assert winner_target(Stage.main(1), 1, 3, double=True) == Target(
        Stage.grand_final(1), 1, Slot.A
    )
    assert loser_target(Stage.losers(2), 1, 3) is None


def test_two_team_bracket_sends_loser_to_grand_final():
    assert loser_target(Stage.main(1), 1, 1) == Target(Stage.grand_final(1), 1, Slot.B)


@pytest.mark.parametrize(
    "count, winners, losers",
    [(4, 3, 2), (8, 7, 6), (16, 15, 14)],
)
def test_generated_bracket_sizes(count, winners, losers):
    bracket = generate_double_elimination("t", "c", _teams(count))
    assert len(bracket.winners) == winners
    assert len(bracket.losers) == losers
    assert [m.stage for m in bracket.grand_finals] == [
        Stage.grand_final(1),
        Stage.grand_final(2),
    ]
    assert len(bracket.matches) == winners + losers + 2
    assert all(m.state == MatchState.PENDING for m in bracket.matches)


def test_grand_finals_are_best_of_five_and_legacy_rounds():
    bracket = generate_double_elimination("t", "c", _teams(8))
    assert [m.best_of for m in bracket.grand_finals] == [5, 5]
    assert [m.round_key for m in bracket.grand_finals] == [-1, -2]
    assert all(m.best_of == 3 for m in bracket.winners + bracket.losers)
    assert all(m.round_key > 1000 for m in bracket.losers)
    assert {m.meta.bracket for m in bracket.losers} == {"losers"}
    assert bracket.winners[0].meta.round_name == "Winners Quarter-finals"
    assert bracket.losers[0].meta.round_name == "Losers Round 1"


def test_byes_cancel_unreachable_losers_matches():
    # 5 teams: three entry byes, one real entry match
    bracket = generate_double_elimination("t", "c", _teams(5))
    first_losers_round = [m for m in bracket.losers if m.stage == Stage.losers(4)]
    states = sorted(m.state.value for m in first_losers_round)
    assert states == ["cancelled", "pending"]
    pass_through = next(m for m in first_losers_round if m.state == MatchState.PENDING)
    assert pass_through.is_pass_through


def test_live_slots_of_a_full_bracket():
    line = [f"t{i}" for i in range(1, 9)]
    live = live_slots(line, double=True)
    for stage, number in bracket_positions(3, double=True):
        assert live[(stage, number)] == {Slot.A, Slot.B}
