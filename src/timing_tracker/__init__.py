"""
Kalshi Timing-Based Insider Trading Tracker

Polls Kalshi for open markets approaching their event deadline and flags
large trades placed shortly before the event, sending deduplicated alerts
to a Discord webhook.
"""

__version__ = "0.1.0"
