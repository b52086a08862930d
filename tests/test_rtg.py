import json
import random

import pytest

from rallybracket.models.enums import TournamentFormat, TournamentStatus
from rallybracket.testing.rtg import (
    PlayerFactory,
    RandomTournamentGenerator,
    RatingDistribution,
    ResultPattern,
    ResultSimulator,
    RTGConfig,
    create_small_tournament,
    main,
)


@pytest.mark.parametrize("fmt", list(TournamentFormat))
def test_every_format_plays_to_completion(fmt):
    generator = RandomTournamentGenerator(
        RTGConfig(format=fmt, num_teams=6, num_players=8, seed=11)
    )
    summary = generator.generate_complete_tournament()

    assert summary["status"] == TournamentStatus.FINISHED.value
    assert all(summary["checks"].values()), summary["checks"]
    assert summary["champion"]
    assert summary["top_players"]


def test_walkovers_are_handled():
    generator = RandomTournamentGenerator(
        RTGConfig(format=TournamentFormat.DOUBLE_ELIM, num_teams=7, walkover_rate=30, seed=5)
    )
    summary = generator.generate_complete_tournament()
    assert all(summary["checks"].values()), summary["checks"]


def test_export_json():
    generator = create_small_tournament(TournamentFormat.SINGLE_ELIM, seed=2)
    summary = generator.generate_complete_tournament()

    exported = json.loads(generator.export_json_format(summary["tournament_id"]))
    assert exported["tournament"]["status"] == "finished"
    assert len(exported["teams"]) == 6
    assert len(exported["matches"]) == summary["matches"]


def test_player_factory_respects_the_range():
    config = RTGConfig(rating_distribution=RatingDistribution.UNIFORM, rating_range=(1200, 1400))
    players = PlayerFactory(config, random.Random(1)).create_players(20)
    assert len({player.id for player, _ in players}) == 20
    assert all(1200 <= rating <= 1400 for _, rating in players)


def test_predictable_results_favour_the_stronger_team():
    simulator = ResultSimulator(
        RTGConfig(result_pattern=ResultPattern.PREDICTABLE), random.Random(4)
    )
    sets = simulator.simulate_sets(1700, 1300, best_of=3)
    assert len(sets) == 2
    assert all(a > b for a, b in sets)


def test_cli_reports_passing_checks(capsys):
    assert main(["--format", "round_robin", "--teams", "4", "--seed", "3"]) == 0
    output = capsys.readouterr().out
    assert "PASS  tournament_finished" in output
    assert "FAIL" not in output
