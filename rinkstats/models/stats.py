"""
Statistic Models

Pydantic models for the engine's published outputs: the finalized
per-player snapshot, per-game metric rows and rolling trend points.
Consumers treat these as read-only.
"""

from pydantic import BaseModel, Field


class PlayerStatSnapshot(BaseModel):
    """Finalized on-ice and individual stats for one player."""

    player_id: int

    # Corsi (all attempts: goals + SOG + misses + blocks)
    corsi_for: int = 0
    corsi_against: int = 0
    corsi_percentage: float = 50.0
    relative_corsi: float = 0.0  # CF% - 50

    # Fenwick (unblocked attempts)
    fenwick_for: int = 0
    fenwick_against: int = 0
    fenwick_percentage: float = 50.0

    # Expected goals
    individual_xg: float = 0.0
    goals_above_expected: float = 0.0
    on_ice_xgf: float = 0.0
    on_ice_xga: float = 0.0
    xg_percentage: float = 50.0

    # PDO
    pdo: float = 100.0
    on_ice_shooting_pct: float = 0.0
    on_ice_save_pct: float = 100.0

    # Individual
    individual_shots: int = 0
    individual_goals: int = 0
    high_danger_shot_percentage: float = 0.0

    # On-ice results
    goals_for: int = 0
    goals_against: int = 0
    shots_on_goal_for: int = 0
    shots_on_goal_against: int = 0

    games_processed: int = 0


class GameMetrics(BaseModel):
    """Raw additive per-game values for one player."""

    game_id: int
    date: str = ""
    opponent: str | None = None

    # Scoring
    goals: int = 0
    assists: int = 0
    points: int = 0

    # On-ice shots on goal
    shots_for: int = 0
    shots_against: int = 0

    # Corsi / Fenwick
    shot_attempts_for: int = 0
    shot_attempts_against: int = 0
    unblocked_for: int = 0
    unblocked_against: int = 0

    # Expected goals
    xg_for: float = 0.0
    xg_against: float = 0.0

    # On-ice goals
    goals_for: int = 0
    goals_against: int = 0

    toi_seconds: int = 0


class RollingMetricsPoint(BaseModel):
    """One point of a rolling trend series."""

    game_number: int = Field(ge=1)
    game_id: int
    date: str = ""
    games_in_window: int = Field(ge=1)

    # Trailing window values
    rolling_pdo: float
    rolling_corsi_pct: float
    rolling_fenwick_pct: float
    rolling_xg_pct: float
    rolling_shooting_pct: float
    rolling_points_per_game: float
    rolling_goals_per_game: float
    rolling_xg_for: float  # per game
    rolling_xg_against: float  # per game

    # Single-game values for comparison
    game_pdo: float
    game_corsi_pct: float
    game_fenwick_pct: float
    game_xg_for: float
    game_goals_for: int
