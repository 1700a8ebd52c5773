"""
Play-by-Play Event Models

Pydantic models for the canonical event schema produced by the normalizer:
shot attempts, player shifts and the normalized game container.

Field aliases accept the NHL API's camelCase keys so that payloads which
were already parsed upstream validate directly.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


def parse_time_to_seconds(value: str | int | float | None) -> int:
    """
    Parse a "MM:SS" clock string into seconds.

    Integers and floats are taken as seconds already. Empty values are 0.

    Raises:
        ValueError: If the string is not a valid clock value
    """
    if value is None or value == "":
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    parts = str(value).strip().split(":")
    if len(parts) == 1:
        return int(parts[0])
    if len(parts) != 2:
        raise ValueError(f"Invalid clock value: {value!r}")
    minutes, seconds = int(parts[0] or 0), int(parts[1] or 0)
    return minutes * 60 + seconds


class ShotOutcome(str, Enum):
    """Shot attempt result."""

    GOAL = "goal"
    SHOT_ON_GOAL = "shot-on-goal"
    MISSED = "missed-shot"
    BLOCKED = "blocked-shot"


class ShotTechnique(str, Enum):
    """Normalized shot type."""

    WRIST = "wrist"
    SLAP = "slap"
    SNAP = "snap"
    BACKHAND = "backhand"
    TIP = "tip"
    WRAP = "wrap"
    OTHER = "other"


class Manpower(str, Enum):
    """Strength state from the shooting team's point of view."""

    EVEN = "even"  # 5v5
    ADVANTAGE = "advantage"  # power play
    DISADVANTAGE = "disadvantage"  # shorthanded
    OTHER = "other"  # 4v4, 3v3


# Map API shot types to normalized techniques
SHOT_TYPE_MAP: dict[str, ShotTechnique] = {
    "wrist": ShotTechnique.WRIST,
    "slap": ShotTechnique.SLAP,
    "snap": ShotTechnique.SNAP,
    "backhand": ShotTechnique.BACKHAND,
    "tip": ShotTechnique.TIP,
    "tip-in": ShotTechnique.TIP,
    "deflected": ShotTechnique.TIP,
    "deflection": ShotTechnique.TIP,
    "wrap": ShotTechnique.WRAP,
    "wrap-around": ShotTechnique.WRAP,
    "bat": ShotTechnique.OTHER,
    "poke": ShotTechnique.OTHER,
    "cradle": ShotTechnique.OTHER,
    "between-legs": ShotTechnique.OTHER,
    "other": ShotTechnique.OTHER,
}


def _roster_ids(value: Any) -> tuple[int, ...]:
    """Coerce an on-ice list of ids or {"playerId": id} dicts into a tuple."""
    if value is None:
        return ()
    ids = []
    for entry in value:
        if isinstance(entry, dict):
            entry = entry.get("playerId", entry.get("player_id"))
        if entry is None:
            continue
        ids.append(int(entry))
    return tuple(ids)


class ShotEvent(BaseModel):
    """A single shot attempt with on-ice context."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    game_id: int = Field(alias="gameId")
    event_id: int = Field(alias="eventId")
    period: int = Field(ge=1)
    time_in_period: int = Field(default=0, ge=0, alias="timeInPeriod")  # seconds

    # Location (NHL rink feet; net at x = +/-89)
    x_coord: float = Field(alias="xCoord")
    y_coord: float = Field(alias="yCoord")

    shot_type: ShotTechnique = Field(default=ShotTechnique.WRIST, alias="shotType")
    result: ShotOutcome

    # Players and teams
    shooter_id: int | None = Field(default=None, alias="shootingPlayerId")
    goalie_id: int | None = Field(default=None, alias="goalieInNetId")
    team_id: int = Field(alias="teamId")
    home_team_id: int = Field(alias="homeTeamId")
    away_team_id: int = Field(alias="awayTeamId")
    strength: Manpower = Manpower.EVEN
    is_rebound: bool = Field(default=False, alias="isRebound")

    # On-ice rosters; empty means the source did not provide them
    home_players: tuple[int, ...] = Field(default=(), alias="homePlayersOnIce")
    away_players: tuple[int, ...] = Field(default=(), alias="awayPlayersOnIce")
    assist_ids: tuple[int, ...] = Field(default=(), alias="assistIds")

    @field_validator("time_in_period", mode="before")
    @classmethod
    def _parse_clock(cls, value: Any) -> int:
        return parse_time_to_seconds(value)

    @field_validator("shot_type", mode="before")
    @classmethod
    def _map_shot_type(cls, value: Any) -> ShotTechnique:
        if isinstance(value, ShotTechnique):
            return value
        if not value:
            return ShotTechnique.WRIST
        return SHOT_TYPE_MAP.get(str(value).lower(), ShotTechnique.WRIST)

    @field_validator("home_players", "away_players", "assist_ids", mode="before")
    @classmethod
    def _coerce_roster(cls, value: Any) -> tuple[int, ...]:
        return _roster_ids(value)

    @property
    def is_goal(self) -> bool:
        return self.result == ShotOutcome.GOAL

    @property
    def is_on_target(self) -> bool:
        """Goal or shot on goal."""
        return self.result in (ShotOutcome.GOAL, ShotOutcome.SHOT_ON_GOAL)

    @property
    def is_blocked(self) -> bool:
        return self.result == ShotOutcome.BLOCKED

    @property
    def is_unblocked(self) -> bool:
        return not self.is_blocked

    @property
    def has_rosters(self) -> bool:
        return bool(self.home_players or self.away_players)


class ParticipationInterval(BaseModel):
    """A single player shift within a period."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    player_id: int = Field(alias="playerId")
    team_id: int = Field(alias="teamId")
    period: int = Field(ge=1)
    start_seconds: int = Field(ge=0)
    end_seconds: int = Field(ge=0)

    @model_validator(mode="after")
    def _check_order(self) -> "ParticipationInterval":
        if self.end_seconds < self.start_seconds:
            raise ValueError(
                f"Shift ends before it starts ({self.start_seconds} > {self.end_seconds})"
            )
        return self

    def covers(self, period: int, seconds: int) -> bool:
        """Check if a period time falls within this shift (inclusive)."""
        return self.period == period and self.start_seconds <= seconds <= self.end_seconds


class NormalizedGame(BaseModel):
    """
    Canonical per-game record.

    The only shape downstream engines consume. Safe to cache via
    model_dump() and rebuild via model_validate().
    """

    model_config = ConfigDict(populate_by_name=True)

    game_id: int = Field(alias="gameId")
    game_date: str | None = Field(default=None, alias="gameDate")
    home_team_id: int = Field(alias="homeTeamId")
    away_team_id: int = Field(alias="awayTeamId")
    shots: list[ShotEvent] = Field(default_factory=list)
    intervals: list[ParticipationInterval] = Field(default_factory=list)
    skipped_records: int = 0

    def team_for(self, player_id: int) -> int | None:
        """Find which team a player skated for in this game, if known."""
        for shot in self.shots:
            if player_id in shot.home_players:
                return self.home_team_id
            if player_id in shot.away_players:
                return self.away_team_id
        for interval in self.intervals:
            if interval.player_id == player_id:
                return interval.team_id
        return None
