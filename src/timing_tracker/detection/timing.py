"""
Time-window calculations and risk classification.

Pure functions; ``now`` is injectable so callers and tests control the clock.
"""

import math
from datetime import datetime, timezone
from typing import Iterable, Optional

from ..models import AccountAge, Market, RiskTier

MS_PER_MINUTE = 60_000


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _floor_minutes(later: datetime, earlier: datetime) -> int:
    delta_ms = (later - earlier).total_seconds() * 1000
    return math.floor(delta_ms / MS_PER_MINUTE)


def minutes_until(target: datetime, now: Optional[datetime] = None) -> int:
    """Whole minutes from now until target, floored. Negative once target has passed."""
    return _floor_minutes(target, now or utcnow())


def minutes_until_close(close_time: datetime, now: Optional[datetime] = None) -> int:
    """Whole minutes until the market stops trading."""
    return minutes_until(close_time, now)


def minutes_before(event_time: datetime, trade_time: datetime) -> int:
    """How many whole minutes ahead of the event the trade was placed."""
    return _floor_minutes(event_time, trade_time)


def classify_risk(
    minutes_before_event: int,
    critical_minutes: int = 15,
    high_minutes: int = 30,
) -> RiskTier:
    if minutes_before_event <= critical_minutes:
        return RiskTier.CRITICAL
    if minutes_before_event <= high_minutes:
        return RiskTier.HIGH
    return RiskTier.MEDIUM


def is_high_risk_category(market: Market, categories: Iterable[str]) -> bool:
    """True if any keyword appears in the market's category or title."""
    category = (market.category or "").lower()
    title = (market.title or "").lower()
    for keyword in categories:
        keyword = keyword.strip().lower()
        if keyword and (keyword in category or keyword in title):
            return True
    return False


def check_account_age(trader_id: str) -> AccountAge:
    """
    Kalshi's public API does not expose account creation dates, so every
    trader is reported as possibly new.
    """
    return AccountAge(
        is_new=True,
        description="Account age unknown (Kalshi API limitation)",
        days_since_creation=0,
    )
