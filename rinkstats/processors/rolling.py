"""
Rolling-Window Metrics

Turns a chronological per-game series for one player into trailing
window trends (PDO, Corsi%, Fenwick%, xG%, shooting %, per-game rates).

Window sums are recomputed from the trailing games at each step, so early
points use however many games exist so far (window = min(size, i + 1)).
"""

from typing import Iterable

from loguru import logger

from rinkstats.analytics.expected_goals import ShotQualityModel
from rinkstats.analytics.metrics import (
    pdo,
    per_game,
    round_pct,
    round_rate,
    share_percentage,
    shooting_percentage,
)
from rinkstats.models.events import NormalizedGame
from rinkstats.models.stats import GameMetrics, RollingMetricsPoint
from rinkstats.processors.attribution import AttributionEngine, EventSide

# Additive GameMetrics fields summed over a window
WINDOW_FIELDS = (
    "goals",
    "points",
    "shots_for",
    "shots_against",
    "shot_attempts_for",
    "shot_attempts_against",
    "unblocked_for",
    "unblocked_against",
    "xg_for",
    "xg_against",
    "goals_for",
    "goals_against",
)


def _window_totals(window: list[GameMetrics]) -> dict[str, float]:
    return {name: sum(getattr(g, name) for g in window) for name in WINDOW_FIELDS}


def compute_rolling(series: list[GameMetrics], window_size: int = 5) -> list[RollingMetricsPoint]:
    """
    Calculate rolling metrics for a chronological game series.

    Args:
        series: Per-game metrics in chronological order
        window_size: Trailing window length

    Returns:
        One RollingMetricsPoint per input game, same order

    Raises:
        ValueError: If window_size is less than 1
    """
    if window_size < 1:
        raise ValueError(f"window_size must be at least 1, got {window_size}")

    points = []

    for i, game in enumerate(series):
        window = series[max(0, i - window_size + 1) : i + 1]
        totals = _window_totals(window)
        games_in_window = len(window)

        points.append(
            RollingMetricsPoint(
                game_number=i + 1,
                game_id=game.game_id,
                date=game.date,
                games_in_window=games_in_window,
                rolling_pdo=round_pct(
                    pdo(totals["goals_for"], totals["shots_for"], totals["goals_against"], totals["shots_against"])
                ),
                rolling_corsi_pct=round_pct(
                    share_percentage(totals["shot_attempts_for"], totals["shot_attempts_against"])
                ),
                rolling_fenwick_pct=round_pct(
                    share_percentage(totals["unblocked_for"], totals["unblocked_against"])
                ),
                rolling_xg_pct=round_pct(share_percentage(totals["xg_for"], totals["xg_against"])),
                rolling_shooting_pct=round_pct(shooting_percentage(totals["goals_for"], totals["shots_for"])),
                rolling_points_per_game=round_rate(per_game(totals["points"], games_in_window)),
                rolling_goals_per_game=round_rate(per_game(totals["goals"], games_in_window)),
                rolling_xg_for=round_rate(per_game(totals["xg_for"], games_in_window)),
                rolling_xg_against=round_rate(per_game(totals["xg_against"], games_in_window)),
                game_pdo=round_pct(pdo(game.goals_for, game.shots_for, game.goals_against, game.shots_against)),
                game_corsi_pct=round_pct(share_percentage(game.shot_attempts_for, game.shot_attempts_against)),
                game_fenwick_pct=round_pct(share_percentage(game.unblocked_for, game.unblocked_against)),
                game_xg_for=round_rate(game.xg_for),
                game_goals_for=game.goals_for,
            )
        )

    return points


def aggregate_game_metrics(
    game: NormalizedGame,
    player_id: int,
    team_id: int | None = None,
    quality_model: ShotQualityModel | None = None,
) -> GameMetrics | None:
    """
    Build one game's raw metrics for a player.

    On-ice shots use the single-player attribution path: embedded rosters
    first, shift intervals when a roster is empty.

    Args:
        game: Normalized game
        player_id: NHL player ID
        team_id: Player's team; looked up from the game when omitted
        quality_model: xG model (default coefficients when omitted)

    Returns:
        GameMetrics, or None if the player's team cannot be determined
    """
    team_id = team_id or game.team_for(player_id)
    if team_id is None:
        return None

    model = quality_model or ShotQualityModel()
    engine = AttributionEngine(game.intervals)
    is_home = team_id == game.home_team_id
    metrics = GameMetrics(game_id=game.game_id, date=game.game_date or "")

    for shot in game.shots:
        if shot.is_goal and shot.shooter_id == player_id:
            metrics.goals += 1
        if shot.is_goal and player_id in shot.assist_ids:
            metrics.assists += 1

        attribution = engine.attribute(shot, player_id, team_id, is_home)
        if not attribution.on_ice:
            continue

        xg = model.predict_event(shot)
        if attribution.side == EventSide.FOR:
            metrics.shot_attempts_for += 1
            metrics.unblocked_for += int(shot.is_unblocked)
            metrics.shots_for += int(shot.is_on_target)
            metrics.goals_for += int(shot.is_goal)
            metrics.xg_for += xg
        else:
            metrics.shot_attempts_against += 1
            metrics.unblocked_against += int(shot.is_unblocked)
            metrics.shots_against += int(shot.is_on_target)
            metrics.goals_against += int(shot.is_goal)
            metrics.xg_against += xg

    metrics.points = metrics.goals + metrics.assists
    metrics.xg_for = round_rate(metrics.xg_for)
    metrics.xg_against = round_rate(metrics.xg_against)
    metrics.toi_seconds = sum(
        i.end_seconds - i.start_seconds for i in game.intervals if i.player_id == player_id
    )
    return metrics


def build_game_series(
    games: Iterable[NormalizedGame],
    player_id: int,
    quality_model: ShotQualityModel | None = None,
) -> list[GameMetrics]:
    """
    Build a chronological per-game series for a player.

    Games the player did not appear in are left out. Games are ordered by
    date, then game id.
    """
    ordered = sorted(games, key=lambda g: (g.game_date or "", g.game_id))
    series = []

    for game in ordered:
        metrics = aggregate_game_metrics(game, player_id, quality_model=quality_model)
        if metrics is not None:
            series.append(metrics)

    logger.debug(f"Built {len(series)}-game series for player {player_id}")
    return series
