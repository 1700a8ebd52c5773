#!/usr/bin/env python3
"""CLI for the play-by-play aggregation engine.

Usage:
    python -m cli.main ingest --game 2023020001 2023020002
    python -m cli.main ingest --team TOR --season 20232024

    python -m cli.main league --top 25 --sort xg_percentage
    python -m cli.main player --player 8478402
    python -m cli.main rolling --player 8478402 --window 10

    python -m cli.main cache --sweep
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path

from loguru import logger

from rinkstats.config import load_settings
from rinkstats.exceptions import ConfigError
from rinkstats.models.manifest import ProcessingManifest
from rinkstats.service.orchestrator import Orchestrator

SORT_FIELDS = (
    "corsi_percentage",
    "fenwick_percentage",
    "xg_percentage",
    "pdo",
    "individual_xg",
    "goals_above_expected",
)


def configure_logging(verbose: bool = False) -> None:
    """Configure logging for CLI usage."""
    logger.remove()
    if verbose:
        logger.add(sys.stderr, level="DEBUG")
    else:
        logger.add(sys.stderr, level="WARNING")


def print_manifest(manifest: ProcessingManifest) -> None:
    """Print processed / skipped counts and skip reasons."""
    summary = manifest.to_dict()
    print(f"  Processed: {summary['processed']}")
    print(f"  Skipped:   {summary['skipped']}")
    for skip in summary["skips"]:
        print(f"    - {skip['game_id']}: {skip['reason']} {skip['detail']}".rstrip())


def cmd_ingest(args: argparse.Namespace, orchestrator: Orchestrator) -> int:
    """Fetch and cache games."""
    if args.game:
        manifest = orchestrator.ingest_games(args.game, force=args.force)
    elif args.team and args.season:
        manifest = orchestrator.ingest_team_season(args.team, args.season, force=args.force)
    else:
        print("ERROR: Provide --game IDs or both --team and --season")
        return 1

    print("Ingest complete")
    print_manifest(manifest)
    return 0


def cmd_league(args: argparse.Namespace, orchestrator: Orchestrator) -> int:
    """Compute and print league-wide player stats."""
    result = orchestrator.compute_league_stats(force=args.force)
    rows = sorted(result.stats.values(), key=lambda s: getattr(s, args.sort), reverse=True)

    source = "cache" if result.from_cache else f"{len(result.manifest.processed)} games"
    print(f"League stats for {len(rows)} players (from {source})")
    print("-" * 72)
    print(f"{'Player':>9} {'GP':>4} {'CF%':>6} {'FF%':>6} {'xG%':>6} {'PDO':>6} {'ixG':>6} {'GAx':>6}")
    for snapshot in rows[: args.top]:
        print(
            f"{snapshot.player_id:>9} {snapshot.games_processed:>4} "
            f"{snapshot.corsi_percentage:>6.1f} {snapshot.fenwick_percentage:>6.1f} "
            f"{snapshot.xg_percentage:>6.1f} {snapshot.pdo:>6.1f} "
            f"{snapshot.individual_xg:>6.2f} {snapshot.goals_above_expected:>6.2f}"
        )

    if not result.from_cache and result.manifest.skipped:
        print()
        print_manifest(result.manifest)

    if args.export:
        path = Path(args.export)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump([s.model_dump() for s in rows], f, indent=2)
        print(f"\nExported to {path}")

    return 0


def cmd_player(args: argparse.Namespace, orchestrator: Orchestrator) -> int:
    """Print one player's finalized snapshot."""
    snapshot = orchestrator.player_stats(args.player)
    if snapshot is None:
        print(f"No stats for player {args.player} (not enough games processed)")
        return 1

    print(json.dumps(snapshot.model_dump(), indent=2))
    if snapshot.individual_shots > 0:
        xg_per_shot = snapshot.individual_xg / snapshot.individual_shots
        level = orchestrator.quality_model.danger_level(xg_per_shot)
        print(f"Average shot quality: {xg_per_shot:.3f} xG ({level} danger)")
    return 0


def cmd_rolling(args: argparse.Namespace, orchestrator: Orchestrator) -> int:
    """Print a player's rolling trend."""
    try:
        points = orchestrator.player_rolling_metrics(args.player, window_size=args.window)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1

    if not points:
        print(f"No cached games found for player {args.player}")
        return 1

    print(f"{'#':>3} {'Game':>11} {'Date':>10} {'PDO':>6} {'CF%':>6} {'xG%':>6} {'Sh%':>6} {'P/GP':>5}")
    for p in points:
        print(
            f"{p.game_number:>3} {p.game_id:>11} {p.date:>10} {p.rolling_pdo:>6.1f} "
            f"{p.rolling_corsi_pct:>6.1f} {p.rolling_xg_pct:>6.1f} "
            f"{p.rolling_shooting_pct:>6.1f} {p.rolling_points_per_game:>5.2f}"
        )
    return 0


def cmd_cache(args: argparse.Namespace, orchestrator: Orchestrator) -> int:
    """Show, sweep or clear the cache."""
    if args.clear:
        orchestrator.clear_cache()
        print("Cache cleared")
        return 0

    if args.sweep:
        removed = orchestrator.sweep_cache()
        print(f"Removed {removed} expired entries")

    status = orchestrator.get_cache_status()
    print("--- CACHE STATUS ---")
    print(f"  Games cached:    {status.games_cached}")
    print(f"  Durable entries: {status.durable_entries}")
    print(f"  Session entries: {status.session_entries}")
    print(f"  Cache size:      {status.cache_size_mb:.1f} MB")
    return 0


COMMANDS = {
    "ingest": cmd_ingest,
    "league": cmd_league,
    "player": cmd_player,
    "rolling": cmd_rolling,
    "cache": cmd_cache,
}


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser."""
    parser = argparse.ArgumentParser(
        prog="rinkstats",
        description="NHL play-by-play aggregation engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Cache a team's completed games
  rinkstats ingest --team TOR --season 20232024

  # League table sorted by xG share
  rinkstats league --top 25 --sort xg_percentage

  # Rolling 10-game trend for one player
  rinkstats rolling --player 8478402 --window 10
        """,
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Engine config YAML (default: config/engine.yaml)",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    ingest_parser = subparsers.add_parser("ingest", help="Fetch and cache game play-by-play")
    ingest_parser.add_argument("--game", type=int, nargs="+", default=None, help="Game IDs to ingest")
    ingest_parser.add_argument("--team", type=str, default=None, help="Team abbreviation (e.g., TOR)")
    ingest_parser.add_argument("--season", type=str, default=None, help="Season in YYYYYYYY format")
    ingest_parser.add_argument("--force", action="store_true", help="Re-fetch games already cached")

    league_parser = subparsers.add_parser("league", help="League-wide player stats")
    league_parser.add_argument("--top", type=int, default=20, help="Number of players to show (default: 20)")
    league_parser.add_argument(
        "--sort",
        choices=SORT_FIELDS,
        default="corsi_percentage",
        help="Sort column (default: corsi_percentage)",
    )
    league_parser.add_argument("--export", type=str, default=None, help="Write all rows to a JSON file")
    league_parser.add_argument("--force", action="store_true", help="Ignore the cached snapshot")

    player_parser = subparsers.add_parser("player", help="One player's finalized stats")
    player_parser.add_argument("--player", type=int, required=True, help="Player ID")

    rolling_parser = subparsers.add_parser("rolling", help="One player's rolling trend")
    rolling_parser.add_argument("--player", type=int, required=True, help="Player ID")
    rolling_parser.add_argument("--window", type=int, default=None, help="Window size (default from config)")

    cache_parser = subparsers.add_parser("cache", help="Cache status and maintenance")
    cache_parser.add_argument("--sweep", action="store_true", help="Remove expired entries")
    cache_parser.add_argument("--clear", action="store_true", help="Remove all entries")

    return parser


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    configure_logging(args.verbose)

    if args.command not in COMMANDS:
        parser.print_help()
        return 0

    try:
        settings = load_settings(args.config)
    except ConfigError as e:
        print(f"ERROR: {e}")
        return 1

    with Orchestrator(settings=settings) as orchestrator:
        try:
            return COMMANDS[args.command](args, orchestrator)
        except Exception as e:
            print(f"Fatal error: {e}")
            logger.exception("Command failed")
            return 1


if __name__ == "__main__":
    sys.exit(main())
