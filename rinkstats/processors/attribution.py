"""
Participant Attribution

Decides who was on the ice for a shot and on which side of it.

Embedded on-ice rosters are the primary source. When a side's roster is
empty, shift intervals are used instead (inclusive bounds). With neither
available a player is not credited with the event.
"""

from collections import defaultdict
from dataclasses import dataclass
from enum import Enum
from typing import Iterable

from loguru import logger

from rinkstats.models.events import NormalizedGame, ParticipationInterval, ShotEvent


class EventSide(str, Enum):
    """Whether an event counts for or against a player's team."""

    FOR = "for"
    AGAINST = "against"


@dataclass(frozen=True)
class Attribution:
    """On-ice result for one player and one event."""

    on_ice: bool
    side: EventSide


@dataclass(frozen=True)
class Participant:
    """A player on the ice for an event."""

    player_id: int
    team_id: int
    side: EventSide


def side_for(event: ShotEvent, team_id: int) -> EventSide:
    return EventSide.FOR if event.team_id == team_id else EventSide.AGAINST


class AttributionEngine:
    """
    On-ice attribution for shot events.

    Intervals are indexed by (player_id, period) so a single lookup only
    scans that player's shifts for that period.
    """

    def __init__(self, intervals: Iterable[ParticipationInterval] = ()):
        self._index: dict[tuple[int, int], list[ParticipationInterval]] = defaultdict(list)
        self._by_team_period: dict[tuple[int, int], list[ParticipationInterval]] = defaultdict(list)
        for interval in intervals:
            self._index[(interval.player_id, interval.period)].append(interval)
            self._by_team_period[(interval.team_id, interval.period)].append(interval)

    @property
    def has_intervals(self) -> bool:
        return bool(self._index)

    def on_ice_by_interval(self, player_id: int, period: int, seconds: int) -> bool:
        """Check shift coverage for a player at a period time."""
        return any(i.covers(period, seconds) for i in self._index.get((player_id, period), ()))

    def attribute(
        self,
        event: ShotEvent,
        player_id: int,
        team_id: int,
        is_home: bool,
    ) -> Attribution:
        """
        Determine whether a player was on ice for an event.

        Args:
            event: Shot event
            player_id: Subject player
            team_id: Subject player's team
            is_home: Whether the subject player's team is the home team

        Returns:
            Attribution with the on-ice flag and for/against side
        """
        side = side_for(event, team_id)
        roster = event.home_players if is_home else event.away_players

        if roster:
            return Attribution(on_ice=player_id in roster, side=side)

        return Attribution(
            on_ice=self.on_ice_by_interval(player_id, event.period, event.time_in_period),
            side=side,
        )

    def participants(self, event: ShotEvent) -> list[Participant]:
        """
        List everyone on ice for an event from the embedded rosters.

        Each player is listed once, even if repeated in the source roster.
        """
        participants = []
        seen: set[int] = set()

        for roster, team_id in (
            (event.home_players, event.home_team_id),
            (event.away_players, event.away_team_id),
        ):
            for player_id in roster:
                if player_id in seen:
                    continue
                seen.add(player_id)
                participants.append(Participant(player_id, team_id, side_for(event, team_id)))

        return participants

    def on_ice_from_intervals(self, team_id: int, period: int, seconds: int) -> tuple[int, ...]:
        """Players of a team whose shifts cover a period time."""
        players: list[int] = []
        for interval in self._by_team_period.get((team_id, period), ()):
            if interval.covers(period, seconds) and interval.player_id not in players:
                players.append(interval.player_id)
        return tuple(players)


def reconstruct_rosters(game: NormalizedGame) -> NormalizedGame:
    """
    Fill empty on-ice rosters from shift intervals.

    Non-empty rosters are left untouched. Returns the same game when
    there are no intervals or nothing to fill.

    Args:
        game: Normalized game

    Returns:
        NormalizedGame with reconstructed rosters where possible
    """
    if not game.intervals:
        return game

    engine = AttributionEngine(game.intervals)
    filled = 0
    shots = []

    for shot in game.shots:
        updates = {}
        if not shot.home_players:
            home = engine.on_ice_from_intervals(game.home_team_id, shot.period, shot.time_in_period)
            if home:
                updates["home_players"] = home
        if not shot.away_players:
            away = engine.on_ice_from_intervals(game.away_team_id, shot.period, shot.time_in_period)
            if away:
                updates["away_players"] = away

        if updates:
            filled += 1
            shots.append(shot.model_copy(update=updates))
        else:
            shots.append(shot)

    if not filled:
        return game

    logger.debug(f"Game {game.game_id}: reconstructed on-ice rosters for {filled} shots")
    return game.model_copy(update={"shots": shots})
