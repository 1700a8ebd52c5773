"""
rinkstats

Play-by-play aggregation engine for NHL player analytics: on-ice
attribution, Corsi/Fenwick/xG/PDO accumulation, rolling trends and a
tiered expiring cache.
"""

__version__ = "0.1.0"
__author__ = "NHL Analytics Team"
