"""
Alert construction and dispatch to the notification sink.
"""

import logging
from enum import Enum
from typing import Iterable, Optional

from ..models import Market, TimingAlert, TimingInfo, Trade
from ..notifications import NotificationService
from .timing import check_account_age, is_high_risk_category, utcnow

logger = logging.getLogger(__name__)


class AlertOutcome(Enum):
    SENT = "sent"
    SKIPPED = "skipped"  # no sink configured
    FAILED = "failed"


class AlertDispatcher:
    """
    Builds timing alerts and hands them to the sink.

    Delivery is fire-and-forget: failures are logged and reported in the
    outcome, never raised and never retried.
    """

    def __init__(
        self,
        notifier: Optional[NotificationService],
        market_url_base: str = "https://kalshi.com/markets",
        high_risk_categories: Iterable[str] = (),
    ):
        self.notifier = notifier
        self.market_url_base = market_url_base.rstrip("/")
        self.high_risk_categories = list(high_risk_categories)

    @property
    def enabled(self) -> bool:
        return self.notifier is not None

    def build_alert(self, market: Market, trade: Trade, timing: TimingInfo) -> TimingAlert:
        return TimingAlert(
            market_ticker=market.ticker,
            market_title=market.title,
            market_url=f"{self.market_url_base}/{market.ticker}",
            category=market.category,
            timing=timing,
            amount=trade.notional_amount,
            side=trade.side,
            trade_time=trade.created_time,
            trader_id=trade.trader_id,
            high_risk_category=is_high_risk_category(market, self.high_risk_categories),
            account_age=check_account_age(trade.trader_id),
            created_at=utcnow(),
        )

    async def dispatch(self, market: Market, trade: Trade, timing: TimingInfo) -> AlertOutcome:
        if self.notifier is None:
            logger.info("Discord webhook not configured, skipping alert")
            return AlertOutcome.SKIPPED

        try:
            alert = self.build_alert(market, trade, timing)
            ok = await self.notifier.send_alert(alert)
        except Exception as e:
            logger.error(f"Error sending alert for {market.ticker}: {e}")
            return AlertOutcome.FAILED

        if not ok:
            return AlertOutcome.FAILED
        logger.info(f"Alert sent for {market.ticker} ({timing.risk.value})")
        return AlertOutcome.SENT
