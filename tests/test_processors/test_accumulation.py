"""
Tests for the Accumulation Engine

Tests folding, finalization, minimum sample handling, merge behavior
and batch failure isolation.
"""

from dataclasses import fields
from unittest.mock import MagicMock

import pytest

from rinkstats.analytics.expected_goals import ShotQualityModel
from rinkstats.models.events import ShotEvent
from rinkstats.models.manifest import SkipReason
from rinkstats.processors.accumulation import (
    AccumulationEngine,
    PlayerAccumulator,
    merge_accumulators,
)
from rinkstats.processors.normalizer import EventNormalizer
from tests.conftest import AWAY_TEAM_ID, HOME_TEAM_ID

HOME_SHOOTER = 8479318
AWAY_SHOOTER = 8478402


def assert_same_accumulators(left, right):
    """Field-by-field comparison, floats approximately."""
    assert left.keys() == right.keys()
    for player_id in left:
        for f in fields(PlayerAccumulator):
            a, b = getattr(left[player_id], f.name), getattr(right[player_id], f.name)
            if isinstance(a, float):
                assert a == pytest.approx(b), f"{player_id}.{f.name}"
            else:
                assert a == b, f"{player_id}.{f.name}"


class TestPlayerAccumulator:
    """Tests for the PlayerAccumulator dataclass."""

    def test_merge_sums_counters_and_unions_games(self):
        """Merging adds every counter and unions game sets."""
        a = PlayerAccumulator(corsi_for=3, xg_for=0.5, goals_for=1, games={1, 2})
        b = PlayerAccumulator(corsi_for=2, xg_for=0.25, corsi_against=4, games={2, 3})

        a.merge(b)

        assert a.corsi_for == 5
        assert a.corsi_against == 4
        assert a.xg_for == pytest.approx(0.75)
        assert a.goals_for == 1
        assert a.games == {1, 2, 3}

    def test_merge_accumulators_copies_new_players(self):
        """Players only in the partial map are copied, not aliased."""
        partial = {1: PlayerAccumulator(corsi_for=1, games={9})}
        target = merge_accumulators({}, partial)

        target[1].corsi_for += 1
        assert partial[1].corsi_for == 1


class TestFold:
    """Tests for folding single games."""

    @pytest.fixture
    def engine(self):
        return AccumulationEngine(min_games=1)

    @pytest.fixture
    def accumulators(self, engine, sample_pbp_payload):
        accumulators = {}
        engine.process_game(sample_pbp_payload, accumulators)
        return accumulators

    def test_events_folded(self, engine, sample_pbp_payload):
        """All four shot attempts with rosters are folded."""
        assert engine.process_game(sample_pbp_payload, {}) == 4

    def test_home_skater_counters(self, accumulators):
        """Home skater was on ice for three TOR attempts and one EDM goal."""
        acc = accumulators[HOME_SHOOTER]

        assert acc.corsi_for == 3
        assert acc.corsi_against == 1
        assert acc.fenwick_for == 2
        assert acc.fenwick_against == 1
        assert acc.shots_on_goal_for == 1
        assert acc.shots_on_goal_against == 1
        assert acc.goals_for == 0
        assert acc.goals_against == 1
        assert acc.individual_shots == 1
        assert acc.individual_goals == 0
        assert acc.games == {2023020001}

    def test_away_skater_counters(self, accumulators):
        """Away shooter scored the only goal."""
        acc = accumulators[AWAY_SHOOTER]

        assert acc.corsi_for == 1
        assert acc.corsi_against == 3
        assert acc.fenwick_for == 1
        assert acc.fenwick_against == 2
        assert acc.goals_for == 1
        assert acc.individual_goals == 1
        assert acc.individual_high_danger_shots == 1

    def test_xg_buckets(self, accumulators, sample_pbp_payload):
        """xG lands in the for/against bucket matching each side."""
        model = ShotQualityModel()
        shots = {s.event_id: s for s in EventNormalizer().normalize(sample_pbp_payload).shots}
        home_xg = sum(model.predict_event(shots[i]) for i in (2, 4, 5))
        away_xg = model.predict_event(shots[3])

        acc = accumulators[HOME_SHOOTER]
        assert acc.xg_for == pytest.approx(home_xg)
        assert acc.xg_against == pytest.approx(away_xg)
        assert accumulators[AWAY_SHOOTER].individual_xg == pytest.approx(away_xg)

    def test_attempts_conserved(self, accumulators):
        """Five skaters a side: every attempt is 5 for and 5 against."""
        assert sum(a.corsi_for for a in accumulators.values()) == 20
        assert sum(a.corsi_against for a in accumulators.values()) == 20
        assert len(accumulators) == 10

    def test_event_without_rosters_skipped(self, engine):
        """No rosters means nobody is credited."""
        shot = ShotEvent(
            game_id=1, event_id=1, period=1, x_coord=70, y_coord=0, result="goal",
            team_id=HOME_TEAM_ID, home_team_id=HOME_TEAM_ID, away_team_id=AWAY_TEAM_ID,
        )
        accumulators = {}

        assert engine.fold(accumulators, shot) is False
        assert accumulators == {}

    def test_counters_never_decrease(self, engine, sample_pbp_payload):
        """Folding more events only grows counters."""
        accumulators = {}
        shots = EventNormalizer().normalize(sample_pbp_payload).shots
        previous = {}
        for shot in shots:
            engine.fold(accumulators, shot)
            for player_id, acc in accumulators.items():
                before = previous.get(player_id)
                if before is not None:
                    assert acc.corsi_for >= before[0]
                    assert acc.corsi_against >= before[1]
                    assert acc.xg_for >= before[2]
                previous[player_id] = (acc.corsi_for, acc.corsi_against, acc.xg_for)

    def test_reconstructs_rosters_from_shifts(self, make_play, make_game):
        """Empty rosters are filled from shifts when enabled."""
        payload = make_game(5, [make_play(1, "shot-on-goal", shooter_id=1, time_in_period="01:00")])
        payload["shifts"] = [
            {"playerId": 1, "teamId": HOME_TEAM_ID, "period": 1, "startTime": "00:00", "endTime": "01:00"},
            {"playerId": 7, "teamId": AWAY_TEAM_ID, "period": 1, "startTime": "00:30", "endTime": "02:00"},
        ]

        enabled = {}
        disabled = {}
        assert AccumulationEngine().process_game(payload, enabled) == 1
        assert AccumulationEngine(reconstruct_rosters=False).process_game(payload, disabled) == 0

        assert enabled[1].corsi_for == 1
        assert enabled[1].individual_shots == 1
        assert enabled[7].corsi_against == 1
        assert disabled == {}


class TestFinalize:
    """Tests for converting accumulators into snapshots."""

    def test_snapshot_ratios(self, sample_pbp_payload):
        """Shares, relative Corsi and PDO from the sample game."""
        engine = AccumulationEngine(min_games=1)
        accumulators = {}
        engine.process_game(sample_pbp_payload, accumulators)

        stats = engine.finalize(accumulators)
        home = stats[HOME_SHOOTER]
        away = stats[AWAY_SHOOTER]

        assert home.corsi_percentage == 75.0
        assert home.relative_corsi == 25.0
        assert home.fenwick_percentage == 66.7
        assert home.on_ice_shooting_pct == 0.0
        assert home.on_ice_save_pct == 0.0
        assert home.pdo == 0.0
        assert away.pdo == 200.0
        assert away.high_danger_shot_percentage == 100.0
        assert away.games_processed == 1

    def test_zero_volume_defaults(self):
        """No shots either way gives 50% shares and PDO of exactly 100."""
        snapshot = AccumulationEngine().accumulator_to_stats(1, PlayerAccumulator(games={1, 2, 3}))

        assert snapshot.corsi_percentage == 50.0
        assert snapshot.fenwick_percentage == 50.0
        assert snapshot.xg_percentage == 50.0
        assert snapshot.on_ice_shooting_pct == 0.0
        assert snapshot.on_ice_save_pct == 100.0
        assert snapshot.pdo == 100.0
        assert snapshot.high_danger_shot_percentage == 0.0

    def test_goals_above_expected(self):
        """Goals minus individual xG, rounded to two places."""
        acc = PlayerAccumulator(individual_goals=2, individual_xg=1.234, games={1})
        snapshot = AccumulationEngine().accumulator_to_stats(1, acc)

        assert snapshot.individual_xg == 1.23
        assert snapshot.goals_above_expected == 0.77

    def test_min_games_threshold(self, make_play, make_game):
        """Two games are excluded at min 3; a third game with one event includes the player."""
        engine = AccumulationEngine(min_games=3)

        def game(game_id):
            return make_game(game_id, [make_play(1, "shot-on-goal", shooter_id=1, home_on_ice=[1, 2], away_on_ice=[7])])

        batch = engine.process_games({1: game(1), 2: game(2)})
        assert 1 not in engine.finalize(batch.accumulators)

        batch = engine.process_games({1: game(1), 2: game(2), 3: game(3)})
        stats = engine.finalize(batch.accumulators)
        assert stats[1].games_processed == 3
        assert stats[7].corsi_against == 3


class TestProcessGames:
    """Tests for batch processing."""

    @pytest.fixture
    def games(self, sample_pbp_payload, sample_canonical_payload, make_play, make_game):
        third = make_game(
            2023020003,
            [
                make_play(1, "goal", shooter_id=8478483, home_on_ice=[8478483, 8479318], away_on_ice=[8478402]),
                make_play(2, "missed-shot", owner_team_id=AWAY_TEAM_ID, shooter_id=8478402,
                          x=-40.0, home_on_ice=[8478483, 8479318], away_on_ice=[8478402]),
            ],
        )
        return {
            2023020001: sample_pbp_payload,
            2023020002: sample_canonical_payload,
            2023020003: third,
        }

    def test_merge_matches_single_pass(self, games):
        """Processing [A, B] together equals processing separately then merging."""
        engine = AccumulationEngine(min_games=1)
        ids = list(games)

        together = engine.process_games(games).accumulators

        merged = {}
        for game_id in ids:
            merge_accumulators(merged, engine.process_games({game_id: games[game_id]}).accumulators)

        assert_same_accumulators(together, merged)

    def test_merge_order_independent(self, games):
        """Reversed game order yields identical totals."""
        engine = AccumulationEngine(min_games=1)
        forward = engine.process_games(list(games.items())).accumulators
        backward = engine.process_games(list(reversed(list(games.items())))).accumulators

        assert_same_accumulators(forward, backward)

    def test_thread_pool_matches_sequential(self, games):
        """Worker count does not change totals."""
        engine = AccumulationEngine(min_games=1)
        sequential = engine.process_games(games, workers=1)
        parallel = engine.process_games(games, workers=4)

        assert_same_accumulators(sequential.accumulators, parallel.accumulators)
        assert parallel.manifest.processed_ids == list(games)

    def test_duplicate_game_processed_once(self, sample_pbp_payload):
        """A game listed twice only counts once."""
        engine = AccumulationEngine(min_games=1)
        batch = engine.process_games([(1, sample_pbp_payload), (1, sample_pbp_payload)])

        assert batch.accumulators[HOME_SHOOTER].corsi_for == 3
        assert len(batch.manifest.outcomes) == 1

    def test_failed_games_recorded_not_fatal(self, sample_pbp_payload):
        """Bad games are skipped with a reason; good games still count."""
        engine = AccumulationEngine(min_games=1)
        batch = engine.process_games(
            {
                1: sample_pbp_payload,
                2: {"gameId": 2, "events": []},
                3: None,
                4: {"id": 4, "plays": []},
            }
        )

        assert batch.manifest.processed_ids == [1]
        assert batch.manifest.skip_reasons() == {
            2: SkipReason.UNKNOWN_FORMAT,
            3: SkipReason.CACHE_MISS,
            4: SkipReason.MALFORMED_PAYLOAD,
        }
        assert batch.accumulators[HOME_SHOOTER].corsi_for == 3

    def test_unexpected_error_isolated(self, sample_pbp_payload, sample_canonical_payload):
        """An unexpected exception skips only the affected game."""
        model = MagicMock()
        model.predict_event.side_effect = [RuntimeError("model blew up")] + [0.1] * 10
        model.is_high_danger_event.return_value = False
        engine = AccumulationEngine(quality_model=model, min_games=1)

        batch = engine.process_games({1: sample_pbp_payload, 2: sample_canonical_payload})

        assert batch.manifest.skip_reasons() == {1: SkipReason.PROCESSING_ERROR}
        assert batch.manifest.processed_ids == [2]
        assert batch.manifest.processed[0].events_folded == 2
