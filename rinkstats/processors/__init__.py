"""
Data Processors Module

This module contains the play-by-play aggregation pipeline.

Processors:
    - EventNormalizer: Raw payloads to canonical NormalizedGame records
    - AttributionEngine: On-ice attribution from rosters and shifts
    - AccumulationEngine: League-wide per-player on-ice and individual totals
    - compute_rolling: Trailing window trends for a player's game series
"""

from rinkstats.processors.normalizer import (
    EventNormalizer,
    PayloadShape,
    detect_payload_shape,
    strength_from_situation,
)
from rinkstats.processors.attribution import (
    Attribution,
    AttributionEngine,
    EventSide,
    Participant,
    reconstruct_rosters,
)
from rinkstats.processors.accumulation import (
    AccumulationEngine,
    BatchResult,
    PlayerAccumulator,
    merge_accumulators,
)
from rinkstats.processors.rolling import aggregate_game_metrics, build_game_series, compute_rolling

__all__ = [
    "EventNormalizer",
    "PayloadShape",
    "detect_payload_shape",
    "strength_from_situation",
    "Attribution",
    "AttributionEngine",
    "EventSide",
    "Participant",
    "reconstruct_rosters",
    "AccumulationEngine",
    "BatchResult",
    "PlayerAccumulator",
    "merge_accumulators",
    "aggregate_game_metrics",
    "build_game_series",
    "compute_rolling",
]
