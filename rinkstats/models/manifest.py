"""
Processing Manifest

Per-game outcome records collected during a batch so callers can see
exactly which games were processed or skipped, and why.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class SkipReason(str, Enum):
    """Why a game was left out of an aggregation pass."""

    SOURCE_UNAVAILABLE = "source_unavailable"
    UNKNOWN_FORMAT = "unknown_format"
    MALFORMED_PAYLOAD = "malformed_payload"
    CACHE_MISS = "cache_miss"
    PROCESSING_ERROR = "processing_error"


class OutcomeStatus(str, Enum):
    """Game outcome status."""

    PROCESSED = "processed"
    SKIPPED = "skipped"


@dataclass
class GameOutcome:
    """Result of handling one game in a batch."""

    game_id: int | str
    status: OutcomeStatus
    reason: SkipReason | None = None
    detail: str = ""
    events_folded: int = 0

    @classmethod
    def processed(cls, game_id: int | str, events_folded: int = 0) -> "GameOutcome":
        return cls(game_id=game_id, status=OutcomeStatus.PROCESSED, events_folded=events_folded)

    @classmethod
    def skipped(cls, game_id: int | str, reason: SkipReason, detail: str = "") -> "GameOutcome":
        return cls(game_id=game_id, status=OutcomeStatus.SKIPPED, reason=reason, detail=detail)

    @property
    def ok(self) -> bool:
        return self.status == OutcomeStatus.PROCESSED


@dataclass
class ProcessingManifest:
    """Collected outcomes for one batch."""

    outcomes: list[GameOutcome] = field(default_factory=list)

    def record(self, outcome: GameOutcome) -> None:
        self.outcomes.append(outcome)

    @property
    def processed(self) -> list[GameOutcome]:
        return [o for o in self.outcomes if o.ok]

    @property
    def skipped(self) -> list[GameOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def processed_ids(self) -> list[int | str]:
        return [o.game_id for o in self.processed]

    @property
    def skipped_ids(self) -> list[int | str]:
        return [o.game_id for o in self.skipped]

    def skip_reasons(self) -> dict[int | str, SkipReason]:
        """Map of skipped game id to reason."""
        return {o.game_id: o.reason for o in self.skipped if o.reason is not None}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display."""
        return {
            "processed": len(self.processed),
            "skipped": len(self.skipped),
            "events_folded": sum(o.events_folded for o in self.processed),
            "skips": [
                {"game_id": o.game_id, "reason": o.reason.value if o.reason else None, "detail": o.detail}
                for o in self.skipped
            ],
        }
