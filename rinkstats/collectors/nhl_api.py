"""
NHL API Client

Client for the NHL web and stats APIs.
Fetches play-by-play, shift charts and team schedules with rate limiting
and retry logic. Caching is the caller's concern (see rinkstats.cache).
"""

import time
from typing import Any

import httpx
from loguru import logger

from rinkstats.config import ApiSettings

# Game states of a finished game in the schedule feed
COMPLETED_GAME_STATES = {"OFF", "FINAL"}

# Client errors that still warrant a retry
RETRYABLE_STATUS = {408, 429}


class RateLimiter:
    """Simple rate limiter to prevent API throttling."""

    def __init__(self, requests_per_minute: int = 60, request_delay: float = 0.5):
        self.requests_per_minute = requests_per_minute
        self.request_delay = request_delay
        self.last_request_time: float = 0
        self.request_count: int = 0
        self.window_start: float = time.time()

    def wait_if_needed(self) -> None:
        """Wait if we're hitting rate limits."""
        current_time = time.time()

        # Reset window if a minute has passed
        if current_time - self.window_start >= 60:
            self.request_count = 0
            self.window_start = current_time

        if self.request_count >= self.requests_per_minute:
            sleep_time = 60 - (current_time - self.window_start)
            if sleep_time > 0:
                logger.debug(f"Rate limit reached, sleeping for {sleep_time:.2f}s")
                time.sleep(sleep_time)
            self.request_count = 0
            self.window_start = time.time()

        # Minimum delay between requests
        elapsed = current_time - self.last_request_time
        if elapsed < self.request_delay:
            time.sleep(self.request_delay - elapsed)

        self.last_request_time = time.time()
        self.request_count += 1


class NHLApiClient:
    """
    Client for NHL APIs.

    Provides the game-level feeds the aggregation engine consumes:
    play-by-play, shift charts, and team schedules.
    """

    def __init__(self, settings: ApiSettings | None = None, client: httpx.Client | None = None):
        """
        Initialize the NHL API client.

        Args:
            settings: API settings. Defaults to built-in settings.
            client: Optional preconfigured httpx client
        """
        self.settings = settings or ApiSettings()
        self.base_url = self.settings.base_url
        self.stats_base_url = self.settings.stats_base_url
        self.endpoints = self.settings.endpoints

        rate = self.settings.rate_limit
        self.rate_limiter = RateLimiter(
            requests_per_minute=rate.requests_per_minute,
            request_delay=rate.request_delay,
        )
        self.max_retries = rate.max_retries
        self.retry_delay = rate.retry_delay
        self.retry_backoff = rate.retry_backoff

        self.client = client or httpx.Client(timeout=self.settings.timeout)

        logger.info("NHL API client initialized")

    def _make_request(self, url: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Make an HTTP request with rate limiting and retry logic.

        Args:
            url: Full URL to request
            params: Query parameters

        Returns:
            JSON response data

        Raises:
            httpx.HTTPError: If request fails after all retries, or at once on a
                client error such as 404
        """
        last_error: httpx.HTTPError | None = None
        for attempt in range(self.max_retries + 1):
            try:
                self.rate_limiter.wait_if_needed()
                response = self.client.get(url, params=params)
                response.raise_for_status()
                return response.json()

            except httpx.HTTPError as e:
                last_error = e
                if not self._is_retryable(e):
                    logger.error(f"Request rejected, not retrying: {url}: {e}")
                    raise
                if attempt < self.max_retries:
                    sleep_time = self.retry_delay * (self.retry_backoff**attempt)
                    logger.warning(
                        f"Request failed (attempt {attempt + 1}/{self.max_retries + 1}), "
                        f"retrying in {sleep_time}s: {e}"
                    )
                    time.sleep(sleep_time)

        logger.error(f"Request failed after {self.max_retries + 1} attempts: {url}")
        raise last_error  # type: ignore[misc]

    @staticmethod
    def _is_retryable(error: httpx.HTTPError) -> bool:
        """Whether another attempt could succeed (transport failure, 5xx, 408 or 429)."""
        if isinstance(error, httpx.HTTPStatusError):
            status = error.response.status_code
            return status >= 500 or status in RETRYABLE_STATUS
        return True

    def _build_url(self, endpoint: str, **kwargs: Any) -> str:
        """Build full URL from endpoint template."""
        return f"{self.base_url}{self.endpoints[endpoint].format(**kwargs)}"

    def _build_stats_url(self, endpoint: str, **kwargs: Any) -> str:
        """Build full URL from stats API endpoint template."""
        return f"{self.stats_base_url}{self.endpoints[endpoint].format(**kwargs)}"

    # Game Methods
    def get_game_play_by_play(self, game_id: int | str) -> dict[str, Any]:
        """
        Get play-by-play data for a game.

        Args:
            game_id: NHL game ID

        Returns:
            Play-by-play payload with a "plays" list and team info
        """
        return self._make_request(self._build_url("game_play_by_play", game_id=game_id))

    def get_game_shifts(self, game_id: int | str) -> list[dict[str, Any]]:
        """
        Get shift chart rows for a game.

        Args:
            game_id: NHL game ID

        Returns:
            List of shift rows (playerId, teamId, period, startTime, endTime)
        """
        data = self._make_request(self._build_stats_url("shift_charts", game_id=game_id))
        return data.get("data", []) if isinstance(data, dict) else []

    # Schedule Methods
    def get_team_schedule(self, team_abbrev: str, season: str) -> dict[str, Any]:
        """
        Get a team's full season schedule.

        Args:
            team_abbrev: Team abbreviation (e.g., "TOR", "EDM")
            season: Season in YYYYYYYY format (e.g., "20232024")

        Returns:
            Season schedule with a "games" list
        """
        return self._make_request(
            self._build_url("team_schedule", team_abbrev=team_abbrev.upper(), season=season)
        )

    def get_season_game_ids(
        self,
        team_abbrev: str,
        season: str,
        game_types: list[int] | None = None,
    ) -> list[int]:
        """
        Get completed game IDs from a team's season schedule.

        Args:
            team_abbrev: Team abbreviation
            season: Season in YYYYYYYY format
            game_types: Game types to include (default from settings)

        Returns:
            Game IDs of finished games, in schedule order
        """
        if game_types is None:
            game_types = self.settings.game_types

        schedule = self.get_team_schedule(team_abbrev, season)
        game_ids = [
            int(game["id"])
            for game in schedule.get("games", [])
            if game.get("gameType") in game_types
            and game.get("gameState") in COMPLETED_GAME_STATES
            and game.get("id") is not None
        ]

        logger.info(f"Found {len(game_ids)} completed games for {team_abbrev} in {season}")
        return game_ids

    def close(self) -> None:
        """Close the HTTP client."""
        self.client.close()

    def __enter__(self) -> "NHLApiClient":
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
