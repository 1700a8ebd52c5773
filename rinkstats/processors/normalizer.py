"""
Play-by-Play Event Normalizer

Converts raw game payloads into the canonical NormalizedGame record.

Two input shapes are accepted and detected once, at this boundary:
- Canonical: a game dict carrying a "shots" list of already-parsed shot
  records (the shape stored in the game cache)
- Play list: the NHL API gamecenter payload carrying a "plays" list, from
  which shot attempts are extracted

Play-list shots taken within a few seconds of the same team's previous
attempt in the period are flagged as rebounds.
Shift data (NHL shift charts) is converted into ParticipationIntervals.
Malformed sub-records are skipped and counted, never fatal to the game.
"""

from enum import Enum
from typing import Any

from loguru import logger
from pydantic import ValidationError

from rinkstats.exceptions import MalformedGameError, UnknownPayloadError
from rinkstats.models.events import (
    Manpower,
    NormalizedGame,
    ParticipationInterval,
    ShotEvent,
    parse_time_to_seconds,
)


class PayloadShape(str, Enum):
    """Discriminant for incoming game payloads."""

    CANONICAL = "canonical"
    PLAY_LIST = "play_list"
    UNKNOWN = "unknown"


def detect_payload_shape(payload: Any) -> PayloadShape:
    """
    Classify a raw game payload.

    Args:
        payload: Raw game data

    Returns:
        PayloadShape for the payload
    """
    if isinstance(payload, NormalizedGame):
        return PayloadShape.CANONICAL
    if not isinstance(payload, dict):
        return PayloadShape.UNKNOWN
    if isinstance(payload.get("shots"), list):
        return PayloadShape.CANONICAL
    if isinstance(payload.get("plays"), list):
        return PayloadShape.PLAY_LIST
    return PayloadShape.UNKNOWN


def strength_from_situation(situation_code: Any, shooting_is_home: bool) -> Manpower:
    """
    Derive the shooting team's strength state from an NHL situation code.

    Situation code format: [away goalie][away skaters][home skaters][home goalie],
    e.g. "1551" is 5v5 with both goalies in net.

    Args:
        situation_code: 4-digit situation code
        shooting_is_home: Whether the shooting team is the home team

    Returns:
        Manpower state, EVEN when the code is missing or unparseable
    """
    code = str(situation_code or "")
    if len(code) != 4 or not code.isdigit():
        return Manpower.EVEN

    away_skaters = int(code[1])
    home_skaters = int(code[2])
    own, opp = (home_skaters, away_skaters) if shooting_is_home else (away_skaters, home_skaters)

    if own > opp:
        return Manpower.ADVANTAGE
    if own < opp:
        return Manpower.DISADVANTAGE
    if own >= 5:
        return Manpower.EVEN
    return Manpower.OTHER


# Short-hand strength labels seen in previously parsed records
STRENGTH_ALIASES = {
    "ev": Manpower.EVEN,
    "even": Manpower.EVEN,
    "pp": Manpower.ADVANTAGE,
    "advantage": Manpower.ADVANTAGE,
    "sh": Manpower.DISADVANTAGE,
    "disadvantage": Manpower.DISADVANTAGE,
    "other": Manpower.OTHER,
}


class EventNormalizer:
    """
    Normalizer for raw play-by-play payloads.

    Pure transform: no I/O, no shared state between calls.
    """

    # Shot attempt event types in the play list
    SHOT_EVENT_TYPES = {"goal", "shot-on-goal", "missed-shot", "blocked-shot"}

    # A shot within this many seconds of the same team's previous attempt is a rebound
    REBOUND_WINDOW = 3

    def normalize(
        self,
        payload: dict[str, Any] | NormalizedGame,
        shifts: list[dict[str, Any]] | dict[str, Any] | None = None,
    ) -> NormalizedGame:
        """
        Normalize a raw game payload.

        Args:
            payload: Canonical game dict, NHL play-by-play dict, or an
                already normalized game (returned unchanged)
            shifts: Optional shift chart rows or a {"data": [...]} body

        Returns:
            NormalizedGame

        Raises:
            UnknownPayloadError: If the payload matches neither shape
            MalformedGameError: If the game or team ids are missing
        """
        if isinstance(payload, NormalizedGame):
            return payload

        shape = detect_payload_shape(payload)
        if shape == PayloadShape.UNKNOWN:
            game_id = payload.get("gameId", payload.get("id")) if isinstance(payload, dict) else None
            raise UnknownPayloadError("Payload has neither shots nor plays", game_id=game_id)

        game_id, home_team_id, away_team_id = self._game_header(payload)
        skipped = 0

        if shape == PayloadShape.CANONICAL:
            shots, shot_skips = self._canonical_shots(payload["shots"], game_id, home_team_id, away_team_id)
        else:
            shots, shot_skips = self._play_list_shots(payload["plays"], game_id, home_team_id, away_team_id)
        skipped += shot_skips

        shift_rows = self._shift_rows(payload, shifts)
        intervals, shift_skips = self._intervals(shift_rows)
        skipped += shift_skips

        if skipped:
            logger.debug(f"Game {game_id}: skipped {skipped} malformed records")

        return NormalizedGame(
            game_id=game_id,
            game_date=payload.get("gameDate") or payload.get("game_date"),
            home_team_id=home_team_id,
            away_team_id=away_team_id,
            shots=shots,
            intervals=intervals,
            skipped_records=skipped,
        )

    def _game_header(self, payload: dict[str, Any]) -> tuple[int, int, int]:
        """Extract game id and team ids, accepting both key styles."""
        raw_game_id = payload.get("gameId", payload.get("game_id", payload.get("id")))
        home = payload.get("homeTeamId", payload.get("home_team_id"))
        away = payload.get("awayTeamId", payload.get("away_team_id"))

        if home is None and isinstance(payload.get("homeTeam"), dict):
            home = payload["homeTeam"].get("id")
        if away is None and isinstance(payload.get("awayTeam"), dict):
            away = payload["awayTeam"].get("id")

        if raw_game_id is None:
            raise MalformedGameError("Game payload has no game id")
        if not home or not away:
            raise MalformedGameError("Game payload is missing team ids", game_id=raw_game_id)

        try:
            return int(raw_game_id), int(home), int(away)
        except (TypeError, ValueError) as e:
            raise MalformedGameError(f"Non-numeric game or team id: {e}", game_id=raw_game_id) from e

    def _canonical_shots(
        self,
        records: list[Any],
        game_id: int,
        home_team_id: int,
        away_team_id: int,
    ) -> tuple[list[ShotEvent], int]:
        """Validate previously parsed shot records."""
        shots = []
        skipped = 0

        for record in records:
            if isinstance(record, ShotEvent):
                shots.append(record)
                continue
            if not isinstance(record, dict):
                skipped += 1
                continue

            data = dict(record)
            data.setdefault("gameId", game_id)
            data.setdefault("homeTeamId", home_team_id)
            data.setdefault("awayTeamId", away_team_id)
            shooting_is_home = data.get("teamId", data.get("team_id")) == home_team_id
            data["strength"] = self._coerce_strength(data, shooting_is_home)

            try:
                shots.append(ShotEvent.model_validate(data))
            except ValidationError as e:
                logger.debug(f"Game {game_id}: skipping shot record {data.get('eventId')}: {e.error_count()} errors")
                skipped += 1

        return shots, skipped

    def _play_list_shots(
        self,
        plays: list[Any],
        game_id: int,
        home_team_id: int,
        away_team_id: int,
    ) -> tuple[list[ShotEvent], int]:
        """Extract shot attempts from an NHL play list."""
        shots = []
        skipped = 0
        # team_id -> (period, seconds) of that team's last non-goal attempt
        last_attempt: dict[Any, tuple[int, int]] = {}

        for play in plays:
            if not isinstance(play, dict):
                skipped += 1
                continue

            event_type = str(play.get("typeDescKey", "")).lower()
            if event_type not in self.SHOT_EVENT_TYPES:
                continue

            team_id = (play.get("details") or {}).get("eventOwnerTeamId")
            clock = self._play_clock(play)
            is_rebound = False
            if clock is not None and team_id in last_attempt:
                prev_period, prev_seconds = last_attempt[team_id]
                is_rebound = clock[0] == prev_period and 0 <= clock[1] - prev_seconds <= self.REBOUND_WINDOW
            if clock is not None and team_id and event_type != "goal":
                last_attempt[team_id] = clock

            shot = self._parse_shot_play(play, event_type, game_id, home_team_id, away_team_id, is_rebound)
            if shot is None:
                skipped += 1
            else:
                shots.append(shot)

        return shots, skipped

    def _parse_shot_play(
        self,
        play: dict[str, Any],
        event_type: str,
        game_id: int,
        home_team_id: int,
        away_team_id: int,
        is_rebound: bool = False,
    ) -> ShotEvent | None:
        """
        Parse a single play-list shot into a ShotEvent.

        Returns:
            ShotEvent, or None if the play is missing required data
        """
        details = play.get("details") or {}

        x_coord = details.get("xCoord")
        y_coord = details.get("yCoord")
        if x_coord is None or y_coord is None:
            return None

        team_id = details.get("eventOwnerTeamId")
        if not team_id:
            return None

        shooter_id = (
            details.get("shootingPlayerId")
            or details.get("scoringPlayerId")
            or details.get("playerId")
        )
        assists = [a for a in (details.get("assist1PlayerId"), details.get("assist2PlayerId")) if a]

        try:
            return ShotEvent(
                game_id=game_id,
                event_id=play.get("eventId", 0),
                period=(play.get("periodDescriptor") or {}).get("number", 1),
                time_in_period=play.get("timeInPeriod", "00:00"),
                x_coord=x_coord,
                y_coord=y_coord,
                shot_type=details.get("shotType"),
                result=event_type,
                shooter_id=shooter_id,
                goalie_id=details.get("goalieInNetId"),
                team_id=team_id,
                home_team_id=home_team_id,
                away_team_id=away_team_id,
                strength=strength_from_situation(play.get("situationCode"), team_id == home_team_id),
                home_players=play.get("homePlayersOnIce") or [],
                away_players=play.get("awayPlayersOnIce") or [],
                assist_ids=assists,
                is_rebound=is_rebound,
            )
        except (ValidationError, ValueError, TypeError) as e:
            logger.debug(f"Game {game_id}: skipping play {play.get('eventId')}: {e}")
            return None

    @staticmethod
    def _play_clock(play: dict[str, Any]) -> tuple[int, int] | None:
        """(period, seconds) of a play, or None if the clock is unreadable."""
        try:
            period = int((play.get("periodDescriptor") or {}).get("number", 1))
            return period, parse_time_to_seconds(play.get("timeInPeriod"))
        except (TypeError, ValueError):
            return None

    def _coerce_strength(self, record: dict[str, Any], shooting_is_home: bool) -> Manpower:
        """Resolve strength from a parsed record's label or situation code."""
        value = record.get("strength")
        if value is None and isinstance(record.get("situation"), dict):
            value = record["situation"].get("strength")
        if value is None:
            value = record.get("situationCode")

        if isinstance(value, Manpower):
            return value
        label = str(value or "").lower()
        if label in STRENGTH_ALIASES:
            return STRENGTH_ALIASES[label]
        return strength_from_situation(label, shooting_is_home)

    def _shift_rows(
        self,
        payload: dict[str, Any],
        shifts: list[dict[str, Any]] | dict[str, Any] | None,
    ) -> list[Any]:
        """Collect shift rows from the argument or the payload."""
        source = shifts if shifts is not None else payload.get("shifts", payload.get("intervals"))
        if source is None:
            return []
        if isinstance(source, dict):
            source = source.get("data") or []
        return list(source)

    def _intervals(self, rows: list[Any]) -> tuple[list[ParticipationInterval], int]:
        """Convert shift chart rows or canonical interval dicts."""
        intervals = []
        skipped = 0

        for row in rows:
            if isinstance(row, ParticipationInterval):
                intervals.append(row)
                continue
            if not isinstance(row, dict):
                skipped += 1
                continue

            try:
                if "start_seconds" in row or "startSeconds" in row:
                    start = row.get("start_seconds", row.get("startSeconds"))
                    end = row.get("end_seconds", row.get("endSeconds"))
                else:
                    start = parse_time_to_seconds(row.get("startTime"))
                    end = parse_time_to_seconds(row.get("endTime"))

                intervals.append(
                    ParticipationInterval(
                        player_id=row.get("playerId", row.get("player_id")),
                        team_id=row.get("teamId", row.get("team_id")),
                        period=row.get("period"),
                        start_seconds=start,
                        end_seconds=end,
                    )
                )
            except (ValidationError, ValueError, TypeError) as e:
                logger.debug(f"Skipping shift record for player {row.get('playerId')}: {e}")
                skipped += 1

        return intervals, skipped
