"""
API clients for the Kalshi venue.
"""

from .base import BaseClient, RateLimiter
from .kalshi import KalshiClient

__all__ = ["BaseClient", "KalshiClient", "RateLimiter"]
