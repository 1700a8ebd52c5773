"""
Analytics Module

Components:
    - ShotQualityModel: Expected goals for individual shot attempts
    - shot_geometry: Distance and angle to the attacked net
    - metrics: Shared share / shooting / save / PDO formulas and rounding
"""

from rinkstats.analytics.expected_goals import ShotGeometry, ShotQualityModel, shot_geometry
from rinkstats.analytics.metrics import (
    pdo,
    per_game,
    round_pct,
    round_rate,
    save_percentage,
    share_percentage,
    shooting_percentage,
)

__all__ = [
    "ShotGeometry",
    "ShotQualityModel",
    "shot_geometry",
    "pdo",
    "per_game",
    "round_pct",
    "round_rate",
    "save_percentage",
    "share_percentage",
    "shooting_percentage",
]
