"""
Timing-based detection engine.

One scan cycle walks the open markets, keeps the ones whose event deadline
is close, pulls their latest trades and alerts on large trades placed
shortly before the event:

1. Market must be open, have an event time, and the event must be within
   the look-ahead horizon (and within 2x the alert window to fetch trades)
2. Trade must be strictly after the monitoring epoch
3. Notional amount must reach the minimum bet size
4. The trade's fingerprint must not have been alerted before
5. The trade must be placed 0 < minutes <= alert window before the event
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional

from ..clients.kalshi import KalshiClient
from ..config import DetectionConfig, get_config
from ..models import AlertFingerprint, Market, TimingInfo, TimingKind, Trade
from .alerts import AlertDispatcher, AlertOutcome
from .ledger import MonitorState
from .timing import classify_risk, minutes_before, minutes_until, utcnow

logger = logging.getLogger(__name__)


@dataclass
class ScanResult:
    """Counters for one scan cycle."""
    markets_found: int = 0
    markets_checked: int = 0
    trades_seen: int = 0
    alerts_sent: int = 0
    alerts_failed: int = 0
    completed: bool = False


class TimingDetector:
    """Runs scan cycles against Kalshi and dispatches timing alerts."""

    def __init__(
        self,
        client: KalshiClient,
        dispatcher: AlertDispatcher,
        state: MonitorState,
        config: Optional[DetectionConfig] = None,
        clock: Callable[[], datetime] = utcnow,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.client = client
        self.dispatcher = dispatcher
        self.state = state
        self.config = config or get_config().detection
        self._clock = clock
        self._sleep = sleep

    @property
    def check_window_minutes(self) -> int:
        return self.config.pre_event_alert_minutes * self.config.check_window_multiplier

    async def run_cycle(self) -> ScanResult:
        """Run one full scan. Never raises."""
        result = ScanResult()
        logger.info("Checking for suspicious timing patterns...")

        try:
            markets = await self.client.list_open_markets()
            result.markets_found = len(markets)
            logger.info(f"Found {len(markets)} active markets")

            for market in markets:
                try:
                    await self.scan_market(market, result)
                except Exception as e:
                    logger.error(f"Error processing market {market.ticker}: {e}")

            result.completed = True
            logger.info(
                f"Scan complete - checked {result.markets_checked} markets, "
                f"sent {result.alerts_sent} alerts"
            )
        except Exception as e:
            logger.error(f"Error in monitoring loop: {e}")
        finally:
            stats = self.state.stats
            stats.scans_completed += 1
            stats.markets_checked += result.markets_checked
            stats.alerts_sent += result.alerts_sent
            stats.alerts_failed += result.alerts_failed
            stats.last_scan_at = self._clock()

        return result

    def should_check(self, market: Market, now: Optional[datetime] = None) -> Optional[int]:
        """
        Minutes until the market's event if it falls inside the look-ahead
        horizon, else None.
        """
        if not market.is_open or market.event_time is None:
            return None

        minutes_until_event = minutes_until(market.event_time, now or self._clock())
        if minutes_until_event < 0 or minutes_until_event > self.config.lookahead_minutes:
            return None
        return minutes_until_event

    async def scan_market(self, market: Market, result: ScanResult) -> None:
        minutes_until_event = self.should_check(market)
        if minutes_until_event is None:
            return

        result.markets_checked += 1

        # Only fetch trades for markets approaching their event
        if minutes_until_event > self.check_window_minutes:
            return

        trades = await self.client.list_recent_trades(
            market.ticker, limit=self.config.trades_per_market
        )
        result.trades_seen += len(trades)

        for trade in trades:
            try:
                await self._process_trade(market, trade, result)
            except Exception as e:
                logger.error(f"Error processing trade {trade.trade_id} on {market.ticker}: {e}")

        await self._sleep(self.config.market_pause_seconds)

    def evaluate_trade(self, market: Market, trade: Trade) -> Optional[TimingInfo]:
        """Apply the qualification filters; TimingInfo if the trade should alert."""
        if trade.created_time is None or market.event_time is None:
            return None

        # Historical trades are never alerted on
        if not self.state.is_after_epoch(trade.created_time):
            return None

        if trade.notional_amount < self.config.min_bet_amount:
            return None

        if self.state.ledger.contains(AlertFingerprint.from_trade(market.ticker, trade)):
            return None

        minutes_before_event = minutes_before(market.event_time, trade.created_time)
        if not 0 < minutes_before_event <= self.config.pre_event_alert_minutes:
            return None

        return TimingInfo(
            kind=TimingKind.PRE_EVENT,
            minutes_before=minutes_before_event,
            event_time=market.event_time,
            risk=classify_risk(
                minutes_before_event,
                critical_minutes=self.config.critical_minutes,
                high_minutes=self.config.high_minutes,
            ),
        )

    async def _process_trade(self, market: Market, trade: Trade, result: ScanResult) -> None:
        timing = self.evaluate_trade(market, trade)
        if timing is None:
            return

        # Claim before awaiting the sink; delivery failures still count as alerted
        fingerprint = AlertFingerprint.from_trade(market.ticker, trade)
        if not self.state.ledger.check_and_record(fingerprint):
            return

        logger.warning(
            f"SUSPICIOUS TIMING: ${float(trade.notional_amount):,.2f} on {market.ticker} - "
            f"{timing.minutes_before} min before event ({timing.risk.value})"
        )

        outcome = await self.dispatcher.dispatch(market, trade, timing)
        result.alerts_sent += 1
        if outcome == AlertOutcome.FAILED:
            result.alerts_failed += 1

        await self._sleep(self.config.alert_pause_seconds)
