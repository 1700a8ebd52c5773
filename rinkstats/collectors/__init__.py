"""
Data Collectors Module

Collectors:
    - NHLApiClient: Play-by-play, shift chart and schedule feeds
    - RateLimiter: Request pacing for the NHL APIs
"""

from rinkstats.collectors.nhl_api import NHLApiClient, RateLimiter

__all__ = [
    "NHLApiClient",
    "RateLimiter",
]
