"""Exception types raised by the aggregation engine."""


class RinkStatsError(Exception):
    """Base class for all engine errors."""


class ConfigError(RinkStatsError):
    """Raised when engine configuration cannot be loaded or validated."""


class NormalizationError(RinkStatsError):
    """Raised when a whole game payload cannot be normalized."""

    def __init__(self, message: str, game_id: int | None = None):
        super().__init__(message)
        self.game_id = game_id


class UnknownPayloadError(NormalizationError):
    """Payload matches neither the canonical nor the play-list shape."""


class MalformedGameError(NormalizationError):
    """Payload has a known shape but lacks game-level identifiers."""
