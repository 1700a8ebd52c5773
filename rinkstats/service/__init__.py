"""Service layer for ingestion and aggregation."""

from .orchestrator import LeagueStatsResult, Orchestrator

__all__ = [
    "LeagueStatsResult",
    "Orchestrator",
]
