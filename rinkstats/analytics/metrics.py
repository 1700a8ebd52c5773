"""
Statistical Metrics Module

Ratio formulas shared by the league accumulator and the rolling engine:
- Corsi / Fenwick / xG share percentages
- On-ice shooting and save percentages
- PDO (shooting % + save %)

Rounding policy: half-up, percentages (including PDO) to 1 decimal,
per-game rates and expected goal values to 2 decimals.
"""

from decimal import ROUND_HALF_UP, Decimal

# Neutral defaults when there is no volume to measure
NEUTRAL_SHARE = 50.0
EMPTY_SHOOTING_PCT = 0.0
EMPTY_SAVE_PCT = 100.0

PCT_PLACES = 1
RATE_PLACES = 2


def round_half_up(value: float, places: int) -> float:
    """Round half away from zero, independent of float binary representation."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def round_pct(value: float) -> float:
    """Round a percentage per the fixed precision policy."""
    return round_half_up(value, PCT_PLACES)


def round_rate(value: float) -> float:
    """Round a per-game rate or xG value per the fixed precision policy."""
    return round_half_up(value, RATE_PLACES)


def share_percentage(for_value: float, against_value: float) -> float:
    """
    Calculate a for-share as a percentage (CF%, FF%, xG%).

    Returns 50 when both sides are zero.
    """
    total = for_value + against_value
    return (for_value / total) * 100 if total > 0 else NEUTRAL_SHARE


def shooting_percentage(goals: int, shots_on_goal: int) -> float:
    """On-ice shooting percentage, 0 with no shots on goal."""
    return (goals / shots_on_goal) * 100 if shots_on_goal > 0 else EMPTY_SHOOTING_PCT


def save_percentage(goals_against: int, shots_on_goal_against: int) -> float:
    """On-ice save percentage, 100 with no shots against."""
    if shots_on_goal_against <= 0:
        return EMPTY_SAVE_PCT
    return ((shots_on_goal_against - goals_against) / shots_on_goal_against) * 100


def pdo(goals_for: int, shots_for: int, goals_against: int, shots_against: int) -> float:
    """Calculate PDO (on-ice shooting % + save %)."""
    return shooting_percentage(goals_for, shots_for) + save_percentage(goals_against, shots_against)


def per_game(total: float, games: int) -> float:
    """Average a windowed sum over the games actually in the window."""
    return total / games if games > 0 else 0.0
