"""
Orchestrator Service

Coordinates ingestion and aggregation by wiring together the NHL API
client, the event normalizer, the tiered cache and the processing
engines.

Workflow:
  1. ingest: fetch play-by-play + shifts, normalize, cache per game
  2. league stats: fold every cached game, finalize, cache the snapshot
  3. player views: snapshot lookup and rolling trend series
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable

import httpx
from loguru import logger

from rinkstats.analytics.expected_goals import ShotQualityModel
from rinkstats.cache.tiered import CacheStatus, TieredCache
from rinkstats.collectors.nhl_api import NHLApiClient
from rinkstats.config import EngineSettings
from rinkstats.exceptions import MalformedGameError, UnknownPayloadError
from rinkstats.models.events import NormalizedGame
from rinkstats.models.manifest import GameOutcome, ProcessingManifest, SkipReason
from rinkstats.models.stats import PlayerStatSnapshot, RollingMetricsPoint
from rinkstats.processors.accumulation import AccumulationEngine
from rinkstats.processors.normalizer import EventNormalizer
from rinkstats.processors.rolling import build_game_series, compute_rolling


@dataclass
class LeagueStatsResult:
    """Finalized league stats plus how they were produced."""

    stats: dict[int, PlayerStatSnapshot]
    manifest: ProcessingManifest = field(default_factory=ProcessingManifest)
    from_cache: bool = False

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display."""
        return {
            "players": len(self.stats),
            "from_cache": self.from_cache,
            "manifest": self.manifest.to_dict(),
        }


class Orchestrator:
    """
    Main service orchestrator for play-by-play aggregation.

    All collaborators are injected; defaults are built from settings.
    """

    def __init__(
        self,
        settings: EngineSettings | None = None,
        cache: TieredCache | None = None,
        api_client: NHLApiClient | None = None,
        quality_model: ShotQualityModel | None = None,
    ) -> None:
        """
        Initialize the orchestrator.

        Args:
            settings: Engine settings (built-in defaults if not provided)
            cache: Tiered cache (opened at settings.cache.directory if not provided)
            api_client: NHL API client (created on first use if not provided)
            quality_model: xG model (built from settings.quality if not provided)
        """
        self.settings = settings or EngineSettings()
        cache_settings = self.settings.cache

        self.cache = cache or TieredCache.from_directory(
            cache_settings.directory,
            max_entries=cache_settings.session_max_entries,
            default_ttl=cache_settings.default_ttl,
        )
        self._api_client = api_client
        self._owns_client = api_client is None

        self.quality_model = quality_model or ShotQualityModel(self.settings.quality)
        self.normalizer = EventNormalizer()
        self.engine = AccumulationEngine(
            quality_model=self.quality_model,
            min_games=self.settings.accumulation.min_games,
            normalizer=self.normalizer,
            reconstruct_rosters=self.settings.attribution.reconstruct_missing_rosters,
        )

        logger.info("Orchestrator initialized")

    @property
    def api_client(self) -> NHLApiClient:
        if self._api_client is None:
            self._api_client = NHLApiClient(self.settings.api)
        return self._api_client

    # Cache keys
    def game_key(self, game_id: int | str) -> str:
        return f"{self.settings.cache.game_prefix}{game_id}"

    def league_key(self) -> str:
        return f"{self.settings.cache.aggregate_key}_min{self.settings.accumulation.min_games}"

    # Ingestion
    def ingest_game(self, game_id: int | str, force: bool = False) -> GameOutcome:
        """
        Fetch, normalize and cache one game.

        Args:
            game_id: NHL game ID
            force: Re-fetch even if the game is already cached

        Returns:
            GameOutcome describing what happened
        """
        key = self.game_key(game_id)
        if not force and self.cache.get(key) is not None:
            logger.debug(f"Game {game_id} already cached")
            return GameOutcome.processed(game_id)

        try:
            payload = self.api_client.get_game_play_by_play(game_id)
        except httpx.HTTPError as e:
            logger.warning(f"Play-by-play unavailable for game {game_id}: {e}")
            return GameOutcome.skipped(game_id, SkipReason.SOURCE_UNAVAILABLE, str(e))

        try:
            shifts = self.api_client.get_game_shifts(game_id)
        except httpx.HTTPError as e:
            logger.warning(f"Shift data unavailable for game {game_id}, continuing without: {e}")
            shifts = []

        try:
            game = self.normalizer.normalize(payload, shifts=shifts)
        except UnknownPayloadError as e:
            logger.warning(f"Skipping game {game_id}: {e}")
            return GameOutcome.skipped(game_id, SkipReason.UNKNOWN_FORMAT, str(e))
        except MalformedGameError as e:
            logger.warning(f"Skipping game {game_id}: {e}")
            return GameOutcome.skipped(game_id, SkipReason.MALFORMED_PAYLOAD, str(e))

        self.cache.set(key, game.model_dump(), ttl=self.settings.cache.game_ttl)
        self._invalidate_league_snapshots()

        logger.info(f"Ingested game {game_id}: {len(game.shots)} shots, {len(game.intervals)} shifts")
        return GameOutcome.processed(game_id, len(game.shots))

    def ingest_games(self, game_ids: Iterable[int | str], force: bool = False) -> ProcessingManifest:
        """Ingest several games, recording each outcome."""
        manifest = ProcessingManifest()
        for game_id in game_ids:
            manifest.record(self.ingest_game(game_id, force=force))
        logger.info(f"Ingest complete: {len(manifest.processed)} ok, {len(manifest.skipped)} skipped")
        return manifest

    def ingest_team_season(self, team_abbrev: str, season: str, force: bool = False) -> ProcessingManifest:
        """Ingest every completed game on a team's season schedule."""
        game_ids = self.api_client.get_season_game_ids(team_abbrev, season)
        return self.ingest_games(game_ids, force=force)

    def _invalidate_league_snapshots(self) -> None:
        for key in self.cache.keys(self.settings.cache.aggregate_key):
            self.cache.remove(key)

    # Cached games
    def cached_game_ids(self) -> list[int | str]:
        prefix = self.settings.cache.game_prefix
        return [_parse_game_id(key[len(prefix):]) for key in self.cache.keys(prefix)]

    def load_game(self, game_id: int | str) -> NormalizedGame | None:
        """Load a cached game as a NormalizedGame, or None if missing or unreadable."""
        payload = self.cache.get(self.game_key(game_id))
        if payload is None:
            return None
        try:
            return self.normalizer.normalize(payload)
        except (UnknownPayloadError, MalformedGameError) as e:
            logger.warning(f"Cached game {game_id} is unreadable: {e}")
            return None

    # Aggregation
    def compute_league_stats(self, force: bool = False) -> LeagueStatsResult:
        """
        Compute finalized stats for every player across all cached games.

        The finalized snapshot is cached and served until it expires or a
        new game is ingested. A pass that fails, or processes no games, is
        never cached.

        Args:
            force: Recompute even if a cached snapshot exists

        Returns:
            LeagueStatsResult
        """
        key = self.league_key()
        if not force:
            cached = self.cache.get(key)
            if cached is not None:
                logger.debug("Using cached league stats")
                stats = {
                    int(row["player_id"]): PlayerStatSnapshot.model_validate(row)
                    for row in cached.get("stats", [])
                }
                return LeagueStatsResult(stats=stats, from_cache=True)

        game_ids = self.cached_game_ids()
        logger.info(f"Computing league stats from {len(game_ids)} cached games")

        games = ((game_id, self.cache.get(self.game_key(game_id))) for game_id in game_ids)
        batch = self.engine.process_games(games, workers=self.settings.accumulation.workers)
        stats = self.engine.finalize(batch.accumulators)

        if batch.manifest.processed:
            self.cache.set(
                key,
                {"stats": [s.model_dump() for s in stats.values()]},
                ttl=self.settings.cache.aggregate_ttl,
            )
        else:
            logger.warning("No games processed, league stats not cached")

        logger.info(f"Computed stats for {len(stats)} players")
        return LeagueStatsResult(stats=stats, manifest=batch.manifest)

    def player_stats(self, player_id: int) -> PlayerStatSnapshot | None:
        """Get one player's finalized snapshot, or None below the sample threshold."""
        return self.compute_league_stats().stats.get(player_id)

    def player_rolling_metrics(self, player_id: int, window_size: int | None = None) -> list[RollingMetricsPoint]:
        """
        Compute a player's rolling trend across cached games.

        Args:
            player_id: NHL player ID
            window_size: Trailing window (settings default if not provided)

        Returns:
            Rolling points in chronological order
        """
        window = window_size if window_size is not None else self.settings.rolling.window_size
        games = [g for g in (self.load_game(gid) for gid in self.cached_game_ids()) if g is not None]
        series = build_game_series(games, player_id, self.quality_model)
        return compute_rolling(series, window)

    # Maintenance
    def get_cache_status(self) -> CacheStatus:
        return self.cache.status(self.settings.cache.game_prefix)

    def sweep_cache(self) -> int:
        return self.cache.sweep_expired()

    def clear_cache(self) -> None:
        """Clear all cached data."""
        self.cache.clear()
        logger.info("Cache cleared")

    def close(self) -> None:
        """Clean up resources."""
        self.cache.close()
        if self._owns_client and self._api_client is not None:
            self._api_client.close()

    def __enter__(self) -> Orchestrator:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()


def _parse_game_id(raw: str) -> int | str:
    return int(raw) if raw.isdigit() else raw
