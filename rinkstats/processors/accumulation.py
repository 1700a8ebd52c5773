"""
Per-Player Accumulation Engine

Folds shot events into per-player on-ice and individual counters across
many games, then finalizes them into PlayerStatSnapshot records.

Each game is folded into its own partial map. Partial maps merge by
summing counters and unioning game sets, so totals do not depend on the
order in which games are processed or on how many workers run them.
"""

from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field, fields
from typing import Any, Iterable, Mapping

from loguru import logger

from rinkstats.analytics.expected_goals import ShotQualityModel
from rinkstats.analytics.metrics import (
    pdo,
    round_pct,
    round_rate,
    save_percentage,
    share_percentage,
    shooting_percentage,
)
from rinkstats.exceptions import MalformedGameError, UnknownPayloadError
from rinkstats.models.events import NormalizedGame, ShotEvent
from rinkstats.models.manifest import GameOutcome, ProcessingManifest, SkipReason
from rinkstats.models.stats import PlayerStatSnapshot
from rinkstats.processors.attribution import AttributionEngine, EventSide, reconstruct_rosters
from rinkstats.processors.normalizer import EventNormalizer


@dataclass
class PlayerAccumulator:
    """Running on-ice and individual totals for one player."""

    # On-ice attempts
    corsi_for: int = 0
    corsi_against: int = 0
    fenwick_for: int = 0
    fenwick_against: int = 0
    xg_for: float = 0.0
    xg_against: float = 0.0

    # Individual (player was the shooter)
    individual_shots: int = 0
    individual_goals: int = 0
    individual_xg: float = 0.0
    individual_high_danger_shots: int = 0

    # On-ice shots on goal and goals (PDO inputs)
    shots_on_goal_for: int = 0
    shots_on_goal_against: int = 0
    goals_for: int = 0
    goals_against: int = 0

    games: set = field(default_factory=set)

    def merge(self, other: "PlayerAccumulator") -> "PlayerAccumulator":
        """Add another accumulator's totals into this one."""
        for f in fields(self):
            if f.name == "games":
                self.games |= other.games
            else:
                setattr(self, f.name, getattr(self, f.name) + getattr(other, f.name))
        return self


Accumulators = dict[int, PlayerAccumulator]


def merge_accumulators(target: Accumulators, partial: Accumulators) -> Accumulators:
    """Merge a partial map into target in place."""
    for player_id, acc in partial.items():
        if player_id in target:
            target[player_id].merge(acc)
        else:
            target[player_id] = PlayerAccumulator().merge(acc)
    return target


@dataclass
class BatchResult:
    """Merged accumulators plus the per-game manifest for one batch."""

    accumulators: Accumulators
    manifest: ProcessingManifest


class AccumulationEngine:
    """
    League-wide accumulation over normalized games.

    Shots are attributed through the embedded on-ice rosters. When
    reconstruct_rosters is set, empty rosters are first filled from shift
    intervals.
    """

    def __init__(
        self,
        quality_model: ShotQualityModel | None = None,
        min_games: int = 3,
        normalizer: EventNormalizer | None = None,
        reconstruct_rosters: bool = True,
    ):
        self.quality_model = quality_model or ShotQualityModel()
        self.min_games = min_games
        self.normalizer = normalizer or EventNormalizer()
        self.reconstruct_rosters = reconstruct_rosters
        self.attribution = AttributionEngine()

    def fold(self, accumulators: Accumulators, event: ShotEvent) -> bool:
        """
        Fold one shot into every on-ice participant's accumulator.

        Args:
            accumulators: Map updated in place
            event: Shot event

        Returns:
            True if the event was credited to anyone
        """
        if not event.has_rosters:
            return False

        participants = self.attribution.participants(event)
        xg = self.quality_model.predict_event(event)
        high_danger = self.quality_model.is_high_danger_event(event)

        for participant in participants:
            acc = accumulators.get(participant.player_id)
            if acc is None:
                acc = accumulators[participant.player_id] = PlayerAccumulator()
            acc.games.add(event.game_id)

            if participant.side == EventSide.FOR:
                acc.corsi_for += 1
                if event.is_unblocked:
                    acc.fenwick_for += 1
                acc.xg_for += xg
                if event.is_on_target:
                    acc.shots_on_goal_for += 1
                if event.is_goal:
                    acc.goals_for += 1
            else:
                acc.corsi_against += 1
                if event.is_unblocked:
                    acc.fenwick_against += 1
                acc.xg_against += xg
                if event.is_on_target:
                    acc.shots_on_goal_against += 1
                if event.is_goal:
                    acc.goals_against += 1

            if event.shooter_id == participant.player_id:
                acc.individual_shots += 1
                acc.individual_xg += xg
                if event.is_goal:
                    acc.individual_goals += 1
                if high_danger:
                    acc.individual_high_danger_shots += 1

        return True

    def process_game(self, game_data: dict[str, Any] | NormalizedGame, accumulators: Accumulators) -> int:
        """
        Normalize one game and fold all of its shots.

        Args:
            game_data: Raw payload of either shape, or a NormalizedGame
            accumulators: Map updated in place

        Returns:
            Number of events folded

        Raises:
            NormalizationError: If the payload cannot be normalized
        """
        game = self.normalizer.normalize(game_data)
        if self.reconstruct_rosters:
            game = reconstruct_rosters(game)

        folded = 0
        for shot in game.shots:
            if self.fold(accumulators, shot):
                folded += 1
        return folded

    def _process_one(self, game_id: Any, game_data: Any) -> tuple[Accumulators, GameOutcome]:
        """Process a single game into its own partial map, isolating failures."""
        partial: Accumulators = {}

        if game_data is None:
            return partial, GameOutcome.skipped(game_id, SkipReason.CACHE_MISS, "no data")

        try:
            folded = self.process_game(game_data, partial)
        except UnknownPayloadError as e:
            logger.warning(f"Skipping game {game_id}: {e}")
            return {}, GameOutcome.skipped(game_id, SkipReason.UNKNOWN_FORMAT, str(e))
        except MalformedGameError as e:
            logger.warning(f"Skipping game {game_id}: {e}")
            return {}, GameOutcome.skipped(game_id, SkipReason.MALFORMED_PAYLOAD, str(e))
        except Exception as e:
            logger.warning(f"Skipping game {game_id}: unexpected error: {e}")
            return {}, GameOutcome.skipped(game_id, SkipReason.PROCESSING_ERROR, str(e))

        return partial, GameOutcome.processed(game_id, folded)

    def process_games(
        self,
        games: Mapping[Any, Any] | Iterable[tuple[Any, Any]],
        workers: int = 1,
    ) -> BatchResult:
        """
        Process a batch of games into merged accumulators.

        A failing game is recorded in the manifest and never aborts the
        batch. Each game id is processed once even if repeated.

        Args:
            games: Mapping or (game_id, payload) pairs; a None payload is
                recorded as a cache miss
            workers: Thread pool size; 1 processes sequentially

        Returns:
            BatchResult with merged accumulators and the manifest
        """
        items = list(games.items()) if isinstance(games, Mapping) else list(games)

        unique: dict[Any, Any] = {}
        for game_id, payload in items:
            if game_id in unique:
                logger.debug(f"Game {game_id} listed twice, processing once")
                continue
            unique[game_id] = payload

        logger.info(f"Processing {len(unique)} games with {workers} worker(s)")

        if workers > 1 and len(unique) > 1:
            with ThreadPoolExecutor(max_workers=min(workers, len(unique))) as executor:
                futures = [executor.submit(self._process_one, gid, data) for gid, data in unique.items()]
                results = [future.result() for future in futures]
        else:
            results = [self._process_one(gid, data) for gid, data in unique.items()]

        accumulators: Accumulators = {}
        manifest = ProcessingManifest()
        for partial, outcome in results:
            merge_accumulators(accumulators, partial)
            manifest.record(outcome)

        logger.info(
            f"Processed {len(manifest.processed)} games, skipped {len(manifest.skipped)}, "
            f"{len(accumulators)} players accumulated"
        )
        return BatchResult(accumulators=accumulators, manifest=manifest)

    def accumulator_to_stats(self, player_id: int, acc: PlayerAccumulator) -> PlayerStatSnapshot:
        """
        Convert raw totals into a finalized snapshot.

        Args:
            player_id: NHL player ID
            acc: Player's accumulated totals

        Returns:
            PlayerStatSnapshot with rounded percentages and xG values
        """
        corsi_pct = share_percentage(acc.corsi_for, acc.corsi_against)
        hd_pct = (
            acc.individual_high_danger_shots / acc.individual_shots * 100
            if acc.individual_shots > 0
            else 0.0
        )

        return PlayerStatSnapshot(
            player_id=player_id,
            corsi_for=acc.corsi_for,
            corsi_against=acc.corsi_against,
            corsi_percentage=round_pct(corsi_pct),
            relative_corsi=round_pct(corsi_pct - 50),
            fenwick_for=acc.fenwick_for,
            fenwick_against=acc.fenwick_against,
            fenwick_percentage=round_pct(share_percentage(acc.fenwick_for, acc.fenwick_against)),
            individual_xg=round_rate(acc.individual_xg),
            goals_above_expected=round_rate(
                self.quality_model.goals_above_expected(acc.individual_goals, acc.individual_xg)
            ),
            on_ice_xgf=round_rate(acc.xg_for),
            on_ice_xga=round_rate(acc.xg_against),
            xg_percentage=round_pct(share_percentage(acc.xg_for, acc.xg_against)),
            pdo=round_pct(
                pdo(acc.goals_for, acc.shots_on_goal_for, acc.goals_against, acc.shots_on_goal_against)
            ),
            on_ice_shooting_pct=round_pct(shooting_percentage(acc.goals_for, acc.shots_on_goal_for)),
            on_ice_save_pct=round_pct(save_percentage(acc.goals_against, acc.shots_on_goal_against)),
            individual_shots=acc.individual_shots,
            individual_goals=acc.individual_goals,
            high_danger_shot_percentage=round_pct(hd_pct),
            goals_for=acc.goals_for,
            goals_against=acc.goals_against,
            shots_on_goal_for=acc.shots_on_goal_for,
            shots_on_goal_against=acc.shots_on_goal_against,
            games_processed=len(acc.games),
        )

    def finalize(self, accumulators: Accumulators) -> dict[int, PlayerStatSnapshot]:
        """Finalize every player who appeared in at least min_games games."""
        results = {
            player_id: self.accumulator_to_stats(player_id, acc)
            for player_id, acc in accumulators.items()
            if len(acc.games) >= self.min_games
        }
        logger.debug(f"Finalized {len(results)} of {len(accumulators)} players (min {self.min_games} games)")
        return results
