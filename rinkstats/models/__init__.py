"""
Data Models Module

This module contains the models shared by the aggregation engine.

Models:
    - ShotEvent: Canonical shot attempt with on-ice rosters
    - ParticipationInterval: Player shift within a period
    - NormalizedGame: Canonical per-game record
    - PlayerStatSnapshot: Finalized per-player statistics
    - GameMetrics / RollingMetricsPoint: Rolling trend inputs and outputs
    - ProcessingManifest: Per-game batch outcomes
"""

from rinkstats.models.events import (
    Manpower,
    NormalizedGame,
    ParticipationInterval,
    ShotEvent,
    ShotOutcome,
    ShotTechnique,
    parse_time_to_seconds,
)
from rinkstats.models.manifest import (
    GameOutcome,
    OutcomeStatus,
    ProcessingManifest,
    SkipReason,
)
from rinkstats.models.stats import GameMetrics, PlayerStatSnapshot, RollingMetricsPoint

__all__ = [
    "Manpower",
    "NormalizedGame",
    "ParticipationInterval",
    "ShotEvent",
    "ShotOutcome",
    "ShotTechnique",
    "parse_time_to_seconds",
    "GameOutcome",
    "OutcomeStatus",
    "ProcessingManifest",
    "SkipReason",
    "GameMetrics",
    "PlayerStatSnapshot",
    "RollingMetricsPoint",
]
