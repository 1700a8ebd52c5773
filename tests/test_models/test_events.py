"""
Tests for Event Models

Tests for clock parsing, shot events, shifts and the normalized game.
"""

import pytest
from pydantic import ValidationError

from rinkstats.models.events import (
    Manpower,
    NormalizedGame,
    ParticipationInterval,
    ShotEvent,
    ShotOutcome,
    ShotTechnique,
    parse_time_to_seconds,
)


def make_shot(**overrides) -> ShotEvent:
    data = {
        "gameId": 2023020001,
        "eventId": 7,
        "period": 1,
        "timeInPeriod": "04:30",
        "xCoord": 70.0,
        "yCoord": -4.0,
        "result": "shot-on-goal",
        "teamId": 10,
        "homeTeamId": 10,
        "awayTeamId": 22,
    }
    data.update(overrides)
    return ShotEvent.model_validate(data)


class TestParseTime:
    """Tests for clock parsing."""

    @pytest.mark.parametrize(
        "value,expected",
        [("00:00", 0), ("05:00", 300), ("19:59", 1199), ("45", 45), (90, 90), (12.7, 12), (None, 0), ("", 0)],
    )
    def test_valid(self, value, expected):
        assert parse_time_to_seconds(value) == expected

    @pytest.mark.parametrize("value", ["1:2:3", "ab:cd"])
    def test_invalid(self, value):
        with pytest.raises(ValueError):
            parse_time_to_seconds(value)


class TestShotEvent:
    """Tests for the ShotEvent model."""

    def test_camel_case_aliases(self):
        """API keys validate directly."""
        shot = make_shot(shootingPlayerId=8479318, goalieInNetId=8479973)

        assert shot.time_in_period == 270
        assert shot.shooter_id == 8479318
        assert shot.goalie_id == 8479973
        assert shot.shot_type == ShotTechnique.WRIST
        assert shot.strength == Manpower.EVEN

    def test_snake_case_names(self):
        """Dumped events validate again by field name."""
        shot = make_shot(homePlayersOnIce=[1, 2], awayPlayersOnIce=[3])
        again = ShotEvent.model_validate(shot.model_dump())

        assert again == shot

    @pytest.mark.parametrize(
        "raw,expected",
        [("tip-in", ShotTechnique.TIP), ("Wrap-around", ShotTechnique.WRAP), ("bat", ShotTechnique.OTHER),
         ("knuckler", ShotTechnique.WRIST), (None, ShotTechnique.WRIST)],
    )
    def test_shot_type_mapping(self, raw, expected):
        assert make_shot(shotType=raw).shot_type == expected

    def test_roster_coercion(self):
        """Rosters accept ids or playerId dicts."""
        shot = make_shot(homePlayersOnIce=[{"playerId": 8479318}, "8478483", {"name": "x"}])

        assert shot.home_players == (8479318, 8478483)
        assert shot.has_rosters is True
        assert make_shot().has_rosters is False

    def test_result_flags(self):
        """Derived flags follow the result."""
        goal = make_shot(result="goal")
        blocked = make_shot(result="blocked-shot")

        assert goal.is_goal and goal.is_on_target and goal.is_unblocked
        assert blocked.is_blocked and not blocked.is_on_target
        assert make_shot(result="missed-shot").result == ShotOutcome.MISSED

    def test_unknown_result_rejected(self):
        with pytest.raises(ValidationError):
            make_shot(result="hit")

    def test_frozen(self):
        shot = make_shot()
        with pytest.raises(ValidationError):
            shot.period = 2


class TestParticipationInterval:
    """Tests for shifts."""

    def test_covers_inclusive(self):
        shift = ParticipationInterval(player_id=1, team_id=10, period=2, start_seconds=60, end_seconds=105)

        assert shift.covers(2, 60)
        assert shift.covers(2, 105)
        assert not shift.covers(2, 106)
        assert not shift.covers(1, 80)

    def test_inverted_rejected(self):
        with pytest.raises(ValidationError):
            ParticipationInterval(player_id=1, team_id=10, period=1, start_seconds=100, end_seconds=50)


class TestNormalizedGame:
    """Tests for the game container."""

    def test_team_for(self):
        """Team comes from rosters first, then shifts."""
        game = NormalizedGame(
            game_id=1,
            home_team_id=10,
            away_team_id=22,
            shots=[make_shot(gameId=1, homePlayersOnIce=[5], awayPlayersOnIce=[6])],
            intervals=[ParticipationInterval(player_id=7, team_id=22, period=1, start_seconds=0, end_seconds=30)],
        )

        assert game.team_for(5) == 10
        assert game.team_for(6) == 22
        assert game.team_for(7) == 22
        assert game.team_for(8) is None
