"""
Core data models for the timing tracker.
"""

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional


class MarketStatus(Enum):
    OPEN = "open"
    CLOSED = "closed"
    SETTLED = "settled"
    OTHER = "other"


class Side(Enum):
    YES = "yes"
    NO = "no"


class RiskTier(Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"


class TimingKind(Enum):
    PRE_EVENT = "pre-event"
    PRE_CLOSE = "pre-close"


@dataclass
class Market:
    """A Kalshi market as returned by one fetch."""
    ticker: str
    title: str
    category: str
    status: MarketStatus
    event_time: Optional[datetime]  # expected expiration, falling back to close time
    close_time: Optional[datetime] = None

    @property
    def is_open(self) -> bool:
        return self.status == MarketStatus.OPEN


@dataclass
class Trade:
    """A single public trade on a Kalshi market."""
    trade_id: str
    ticker: str
    created_time: Optional[datetime]
    side: Side
    count: int
    yes_price: int = 0  # cents
    no_price: int = 0  # cents
    trader_id: str = "unknown"

    @property
    def price_cents(self) -> int:
        """Yes-price when set, otherwise no-price."""
        return self.yes_price or self.no_price or 0

    @property
    def notional_amount(self) -> Decimal:
        """Dollar size of the trade: contracts x price / 100."""
        return Decimal(self.count) * Decimal(self.price_cents) / 100


@dataclass
class TimingInfo:
    """How far ahead of the event a trade was placed."""
    kind: TimingKind
    minutes_before: int
    event_time: datetime
    risk: RiskTier
    event_label: str = "EVENT"


@dataclass(frozen=True)
class AlertFingerprint:
    """
    Coarse dedup key for an alert.

    Amount is bucketed down to the nearest 100 and time truncated to the UTC
    day so retried or repeated API rows collapse onto one key.
    """
    ticker: str
    trader_id: str
    rounded_amount: int
    trade_date: str  # YYYY-MM-DD
    side: str

    @classmethod
    def from_trade(cls, ticker: str, trade: Trade) -> "AlertFingerprint":
        if trade.created_time is None:
            raise ValueError("Trade has no timestamp")
        return cls(
            ticker=ticker,
            trader_id=trade.trader_id,
            rounded_amount=int(trade.notional_amount // 100) * 100,
            trade_date=trade.created_time.date().isoformat(),
            side=trade.side.value,
        )

    @property
    def key(self) -> str:
        return f"{self.ticker}-{self.trader_id}-{self.rounded_amount}-{self.trade_date}-{self.side}"


@dataclass
class AccountAge:
    """Best-effort account age. Kalshi doesn't expose creation dates."""
    is_new: bool
    description: str
    days_since_creation: int = 0


@dataclass
class TimingAlert:
    """Structured alert handed to the notification sink."""
    market_ticker: str
    market_title: str
    market_url: str
    category: str
    timing: TimingInfo
    amount: Decimal
    side: Side
    trade_time: datetime
    trader_id: str
    high_risk_category: bool = False
    account_age: Optional[AccountAge] = None
    created_at: Optional[datetime] = None

    @property
    def risk(self) -> RiskTier:
        return self.timing.risk
