"""
Engine Configuration

Loads engine policy values (cache TTLs, sample thresholds, rolling
window, xG coefficients, API settings) from YAML into validated
pydantic settings models.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from loguru import logger
from pydantic import BaseModel, Field, PositiveFloat, ValidationError, model_validator

from rinkstats.exceptions import ConfigError

DEFAULT_CONFIG_PATH = Path("config/engine.yaml")

HOUR = 3600
DAY = 24 * HOUR


class CacheSettings(BaseModel):
    """Cache tier locations and TTL policy (seconds)."""

    directory: str = "data/cache"
    session_max_entries: int = Field(default=512, ge=1)
    game_ttl: float = 30 * DAY  # completed games never change
    aggregate_ttl: float = 6 * HOUR
    default_ttl: float = 1 * DAY
    game_prefix: str = "pbp_"
    aggregate_key: str = "league_pbp_stats_computed"


class AccumulationSettings(BaseModel):
    """League aggregation policy."""

    min_games: int = Field(default=3, ge=1)
    workers: int = Field(default=1, ge=1)


class AttributionSettings(BaseModel):
    """On-ice attribution policy."""

    reconstruct_missing_rosters: bool = True


class RollingSettings(BaseModel):
    """Rolling trend policy."""

    window_size: int = Field(default=5, ge=1)


class QualityCoefficients(BaseModel):
    """Logistic expected goals coefficients."""

    intercept: float = -0.5
    distance: float = Field(default=-0.045, le=0.0)  # per foot
    angle: float = Field(default=-0.025, le=0.0)  # per degree
    shot_type_multipliers: dict[str, PositiveFloat] = Field(
        default_factory=lambda: {
            "wrist": 1.0,
            "slap": 0.85,
            "snap": 1.05,
            "backhand": 0.80,
            "tip": 1.35,
            "wrap": 0.70,
            "other": 0.75,
        }
    )
    strength_multipliers: dict[str, PositiveFloat] = Field(
        default_factory=lambda: {
            "even": 1.0,
            "advantage": 1.10,
            "disadvantage": 0.90,
            "other": 1.05,
        }
    )
    rebound_bonus: float = 0.6
    min_probability: float = Field(default=0.005, gt=0.0)
    max_probability: float = Field(default=0.60, lt=1.0)
    high_danger_distance: float = 25.0

    @model_validator(mode="after")
    def _check_bounds(self) -> QualityCoefficients:
        if self.min_probability >= self.max_probability:
            raise ValueError(
                f"min_probability ({self.min_probability}) must be below max_probability ({self.max_probability})"
            )
        strength = self.strength_multipliers
        advantage, even, disadvantage = (strength.get(k, 1.0) for k in ("advantage", "even", "disadvantage"))
        if not advantage >= even >= disadvantage:
            raise ValueError("strength multipliers must satisfy advantage >= even >= disadvantage")
        return self


class RateLimitSettings(BaseModel):
    """HTTP rate limiting and retry policy."""

    requests_per_minute: int = 60
    request_delay: float = 0.5
    max_retries: int = 3
    retry_delay: float = 2.0
    retry_backoff: float = 2.0


class ApiSettings(BaseModel):
    """NHL API endpoints."""

    base_url: str = "https://api-web.nhle.com"
    stats_base_url: str = "https://api.nhle.com/stats/rest/en"
    timeout: float = 30.0
    rate_limit: RateLimitSettings = Field(default_factory=RateLimitSettings)
    endpoints: dict[str, str] = Field(
        default_factory=lambda: {
            "game_play_by_play": "/v1/gamecenter/{game_id}/play-by-play",
            "team_schedule": "/v1/club-schedule-season/{team_abbrev}/{season}",
            "shift_charts": "/shiftcharts?cayenneExp=gameId={game_id}",
        }
    )
    game_types: list[int] = Field(default_factory=lambda: [2, 3])


class EngineSettings(BaseModel):
    """Top-level engine settings."""

    cache: CacheSettings = Field(default_factory=CacheSettings)
    accumulation: AccumulationSettings = Field(default_factory=AccumulationSettings)
    attribution: AttributionSettings = Field(default_factory=AttributionSettings)
    rolling: RollingSettings = Field(default_factory=RollingSettings)
    quality: QualityCoefficients = Field(default_factory=QualityCoefficients)
    api: ApiSettings = Field(default_factory=ApiSettings)


def load_settings(config_path: str | Path | None = None) -> EngineSettings:
    """
    Load engine settings from a YAML file.

    Args:
        config_path: Path to the YAML file. Defaults to config/engine.yaml,
            falling back to built-in defaults when that file is absent.

    Returns:
        Validated EngineSettings

    Raises:
        ConfigError: If an explicit path is missing or the content is invalid
    """
    if config_path is None:
        path = DEFAULT_CONFIG_PATH
        if not path.exists():
            logger.debug(f"No config at {path}, using built-in defaults")
            return EngineSettings()
    else:
        path = Path(config_path)
        if not path.exists():
            raise ConfigError(f"Config file not found: {path}")

    try:
        with open(path) as f:
            raw: dict[str, Any] = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    try:
        settings = EngineSettings.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid engine settings in {path}: {e}") from e

    logger.debug(f"Loaded engine settings from {path}")
    return settings
