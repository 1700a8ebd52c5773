"""
CLI Module for the Play-by-Play Aggregation Engine

Provides subcommands for ingesting games and viewing league,
player and rolling-trend statistics.

Usage:
    python -m cli.main --help
"""

from cli.main import build_parser, main

__all__ = ["build_parser", "main"]
