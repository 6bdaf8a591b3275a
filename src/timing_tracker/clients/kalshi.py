"""
Kalshi API client.

Only the public read endpoints are used: the open-market listing and the
per-market public trade tape. Both fail open; a venue error yields an empty
list so one bad response never aborts a scan.
"""

import logging
import re
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from ..config import KalshiConfig, get_config
from ..models import Market, MarketStatus, Side, Trade
from .base import BaseClient

logger = logging.getLogger(__name__)

# Fractional seconds of any length; fromisoformat before 3.11 wants 3 or 6 digits
FRACTION_RE = re.compile(r"\.(\d+)")


STATUS_MAP = {
    "open": MarketStatus.OPEN,
    "active": MarketStatus.OPEN,
    "closed": MarketStatus.CLOSED,
    "settled": MarketStatus.SETTLED,
    "finalized": MarketStatus.SETTLED,
}


def parse_time(value: Any) -> Optional[datetime]:
    """Parse a Kalshi timestamp (ISO-8601 string or epoch millis) to aware UTC."""
    if value in (None, ""):
        return None
    if isinstance(value, (int, float)):
        return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
    text = str(value).replace("Z", "+00:00")
    text = FRACTION_RE.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), text, count=1)
    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_market(data: dict) -> Market:
    """Parse market data from API response."""
    ticker = data.get("ticker") or data.get("market_ticker")
    if not ticker:
        raise ValueError("Market has no ticker")

    close_time = parse_time(data.get("close_time"))
    event_time = parse_time(data.get("expected_expiration_time")) or close_time

    return Market(
        ticker=ticker,
        title=data.get("title") or data.get("subtitle") or "",
        category=data.get("category") or "",
        status=STATUS_MAP.get(str(data.get("status", "")).lower(), MarketStatus.OTHER),
        event_time=event_time,
        close_time=close_time,
    )


def parse_trade(data: dict, ticker: str = "") -> Trade:
    """Parse trade data from API response."""
    # Public trades report the taker side as "side" or "taker_side"
    side_raw = str(data.get("side") or data.get("taker_side") or "").lower()
    side = Side.YES if side_raw == "yes" else Side.NO

    return Trade(
        trade_id=str(data.get("trade_id") or data.get("id") or ""),
        ticker=ticker or data.get("ticker", ""),
        created_time=parse_time(data.get("created_time")),
        side=side,
        count=int(data.get("count") or 0),
        yes_price=int(data.get("yes_price") or 0),
        no_price=int(data.get("no_price") or 0),
        trader_id=str(data.get("taker_id") or data.get("user_id") or "unknown"),
    )


class KalshiClient(BaseClient):
    """Client for the public Kalshi trade API."""

    def __init__(
        self,
        config: Optional[KalshiConfig] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or get_config().kalshi
        super().__init__(
            base_url=self.config.base_url,
            requests_per_second=self.config.requests_per_second,
            timeout=self.config.markets_timeout,
            transport=transport,
        )

    async def list_open_markets(self) -> list[Market]:
        """Fetch one page of open markets. Returns [] on any failure."""
        params = {"limit": self.config.markets_page_size, "status": "open"}

        try:
            data = await self.get("/markets", params=params, timeout=self.config.markets_timeout)
        except Exception as e:
            logger.error(f"Error fetching markets: {e}")
            return []

        markets = []
        for item in _items(data, "markets"):
            try:
                markets.append(parse_market(item))
            except Exception as e:
                logger.warning(f"Failed to parse market: {e}")
        return markets

    async def list_recent_trades(self, ticker: str, limit: int = 50) -> list[Trade]:
        """Fetch the most recent trades for a market. Returns [] on any failure."""
        try:
            data = await self.get(
                f"/markets/{ticker}/trades",
                params={"limit": limit},
                timeout=self.config.trades_timeout,
            )
        except Exception as e:
            logger.error(f"Error fetching trades for {ticker}: {e}")
            return []

        trades = []
        for item in _items(data, "trades"):
            try:
                trades.append(parse_trade(item, ticker))
            except Exception as e:
                logger.warning(f"Failed to parse trade on {ticker}: {e}")
        return trades


def _items(data: Any, key: str) -> list[dict]:
    """Pull the list container out of a response, [] if it is missing."""
    if not isinstance(data, dict):
        return []
    items = data.get(key)
    if not isinstance(items, list):
        return []
    return [i for i in items if isinstance(i, dict)]
