"""
Pytest Configuration and Fixtures

Shared fixtures for the play-by-play aggregation test suite.
"""

from typing import Any, Callable
from unittest.mock import MagicMock

import pytest

from rinkstats.config import CacheSettings, EngineSettings

HOME_TEAM_ID = 10  # TOR
AWAY_TEAM_ID = 22  # EDM
HOME_SKATERS = [8479318, 8478483, 8477939, 8476853, 8480012]
AWAY_SKATERS = [8478402, 8477934, 8475786, 8480803, 8481598]


class FakeClock:
    """Controllable time source for expiry tests."""

    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    """Fake clock starting at a fixed epoch."""
    return FakeClock()


def _make_play(
    event_id: int,
    type_desc_key: str,
    owner_team_id: int | None = HOME_TEAM_ID,
    shooter_id: int | None = None,
    x: float | None = 70.0,
    y: float | None = 5.0,
    period: int = 1,
    time_in_period: str = "05:00",
    shot_type: str | None = "wrist",
    situation_code: str | None = "1551",
    home_on_ice: list[Any] | None = None,
    away_on_ice: list[Any] | None = None,
    **details: Any,
) -> dict[str, Any]:
    """Build a single NHL API play record."""
    play_details: dict[str, Any] = {}
    if x is not None:
        play_details["xCoord"] = x
    if y is not None:
        play_details["yCoord"] = y
    if owner_team_id is not None:
        play_details["eventOwnerTeamId"] = owner_team_id
    if shot_type is not None:
        play_details["shotType"] = shot_type
    if shooter_id is not None:
        key = "scoringPlayerId" if type_desc_key == "goal" else "shootingPlayerId"
        play_details[key] = shooter_id
    play_details.update(details)

    play = {
        "eventId": event_id,
        "periodDescriptor": {"number": period},
        "timeInPeriod": time_in_period,
        "typeDescKey": type_desc_key,
        "details": play_details,
    }
    if situation_code is not None:
        play["situationCode"] = situation_code
    if home_on_ice is not None:
        play["homePlayersOnIce"] = home_on_ice
    if away_on_ice is not None:
        play["awayPlayersOnIce"] = away_on_ice
    return play


def _make_game(
    game_id: int,
    plays: list[dict[str, Any]],
    game_date: str = "2023-10-11",
    home_team_id: int = HOME_TEAM_ID,
    away_team_id: int = AWAY_TEAM_ID,
) -> dict[str, Any]:
    """Build an NHL API play-by-play payload."""
    return {
        "id": game_id,
        "gameDate": game_date,
        "homeTeam": {"id": home_team_id, "abbrev": "TOR"},
        "awayTeam": {"id": away_team_id, "abbrev": "EDM"},
        "plays": plays,
    }


@pytest.fixture
def make_play() -> Callable[..., dict[str, Any]]:
    """Factory for NHL API play records."""
    return _make_play


@pytest.fixture
def make_game() -> Callable[..., dict[str, Any]]:
    """Factory for NHL API play-by-play payloads."""
    return _make_game


@pytest.fixture
def sample_plays() -> list[dict[str, Any]]:
    """
    Five-on-five play sequence.

    TOR: shot on goal, blocked shot, missed shot. EDM: tip-in goal.
    Plus a faceoff (ignored) and a shot with no coordinates (skipped).
    """
    home = [{"playerId": pid} for pid in HOME_SKATERS]
    away = list(AWAY_SKATERS)
    return [
        _make_play(1, "faceoff", shot_type=None, home_on_ice=home, away_on_ice=away),
        _make_play(2, "shot-on-goal", shooter_id=8479318, x=70.0, y=5.0, goalieInNetId=8479973,
                   home_on_ice=home, away_on_ice=away),
        _make_play(3, "goal", owner_team_id=AWAY_TEAM_ID, shooter_id=8478402, x=-80.0, y=2.0,
                   shot_type="tip-in", assist1PlayerId=8477934, assist2PlayerId=8475786,
                   home_on_ice=home, away_on_ice=away, time_in_period="08:30"),
        _make_play(4, "blocked-shot", shooter_id=8478483, x=50.0, y=-20.0, shot_type="slap",
                   home_on_ice=home, away_on_ice=away, time_in_period="11:00"),
        _make_play(5, "missed-shot", shooter_id=8477939, x=60.0, y=10.0, shot_type="snap",
                   home_on_ice=home, away_on_ice=away, period=2, time_in_period="02:15"),
        _make_play(6, "shot-on-goal", shooter_id=8479318, x=None, y=None,
                   home_on_ice=home, away_on_ice=away, period=2),
    ]


@pytest.fixture
def sample_pbp_payload(sample_plays: list[dict[str, Any]]) -> dict[str, Any]:
    """NHL API play-by-play payload for one game."""
    return _make_game(2023020001, sample_plays)


@pytest.fixture
def sample_shift_rows() -> list[dict[str, Any]]:
    """Shift chart rows for two players in period 1 of game 2023020001."""
    return [
        {"playerId": 8479318, "teamId": HOME_TEAM_ID, "period": 1, "startTime": "00:00", "endTime": "05:00"},
        {"playerId": 8479318, "teamId": HOME_TEAM_ID, "period": 1, "startTime": "08:30", "endTime": "09:15"},
        {"playerId": 8478402, "teamId": AWAY_TEAM_ID, "period": 1, "startTime": "04:00", "endTime": "06:00"},
        {"playerId": 8478402, "teamId": AWAY_TEAM_ID, "period": 1, "startTime": "10:00", "endTime": "09:00"},
    ]


@pytest.fixture
def sample_canonical_payload() -> dict[str, Any]:
    """Previously parsed game in the cached canonical shape."""
    return {
        "gameId": 2023020002,
        "gameDate": "2023-10-13",
        "homeTeamId": HOME_TEAM_ID,
        "awayTeamId": AWAY_TEAM_ID,
        "shots": [
            {
                "eventId": 10,
                "period": 1,
                "timeInPeriod": "03:00",
                "xCoord": 75.0,
                "yCoord": 0.0,
                "shotType": "wrist",
                "result": "goal",
                "shootingPlayerId": 8479318,
                "teamId": HOME_TEAM_ID,
                "situation": {"strength": "pp"},
                "homePlayersOnIce": HOME_SKATERS[:4],
                "awayPlayersOnIce": AWAY_SKATERS[:4],
            },
            {
                "eventId": 11,
                "period": 1,
                "timeInPeriod": "07:00",
                "xCoord": -60.0,
                "yCoord": 15.0,
                "result": "shot-on-goal",
                "shootingPlayerId": 8478402,
                "teamId": AWAY_TEAM_ID,
                "homePlayersOnIce": HOME_SKATERS,
                "awayPlayersOnIce": AWAY_SKATERS,
            },
            {
                "eventId": 12,
                "period": 1,
                "timeInPeriod": "09:00",
                "yCoord": 15.0,
                "result": "missed-shot",
                "teamId": AWAY_TEAM_ID,
            },
        ],
    }


@pytest.fixture
def mock_api_client(sample_pbp_payload: dict[str, Any], sample_shift_rows: list[dict[str, Any]]) -> MagicMock:
    """Create a mock NHL API client."""
    client = MagicMock()
    client.get_game_play_by_play.return_value = sample_pbp_payload
    client.get_game_shifts.return_value = sample_shift_rows
    client.get_season_game_ids.return_value = [2023020001]
    return client


@pytest.fixture
def engine_settings(tmp_path) -> EngineSettings:
    """Engine settings with the durable cache in a temp directory."""
    return EngineSettings(cache=CacheSettings(directory=str(tmp_path / "cache")))
