"""
Wires the Kalshi client, detector, dispatcher and scheduler around one
MonitorState.
"""

import logging
from typing import Optional

import httpx

from .clients.kalshi import KalshiClient
from .config import Config, get_config
from .detection.alerts import AlertDispatcher
from .detection.detector import ScanResult, TimingDetector
from .detection.ledger import MonitorState
from .notifications import NotificationService, create_notifier
from .scheduler import Scheduler

logger = logging.getLogger(__name__)


class Tracker:
    """One monitoring process: shared state plus the components that use it."""

    def __init__(
        self,
        config: Optional[Config] = None,
        notifier: Optional[NotificationService] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config or get_config()
        self.state = MonitorState(capacity=self.config.detection.max_stored_alerts)
        self.client = KalshiClient(self.config.kalshi, transport=transport)
        self.dispatcher = AlertDispatcher(
            notifier if notifier is not None else create_notifier(self.config.notifier),
            market_url_base=self.config.kalshi.market_url_base,
            high_risk_categories=self.config.detection.high_risk_categories,
        )
        self.detector = TimingDetector(
            self.client, self.dispatcher, self.state, self.config.detection
        )
        self.scheduler = Scheduler(self.detector, self.config.scheduler)

    async def __aenter__(self) -> "Tracker":
        await self.client.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    def log_banner(self) -> None:
        detection = self.config.detection
        logger.info("Kalshi Timing-Based Insider Trading Tracker")
        logger.info(f"Min bet amount: ${detection.min_bet_amount:,.0f}")
        logger.info(f"New account threshold: {detection.new_account_days} days")
        logger.info(f"Pre-event alert window: {detection.pre_event_alert_minutes} minutes")
        logger.info(f"Discord alerts: {'ENABLED' if self.dispatcher.enabled else 'DISABLED'}")
        logger.info(f"Monitoring start time: {self.state.epoch.isoformat()}")
        logger.info("Only trades AFTER this time will be tracked (no historical data)")

    async def start(self) -> None:
        """Connect and launch the background scan loop."""
        await self.client.connect()
        self.log_banner()
        self.scheduler.start()

    async def scan_once(self) -> ScanResult:
        return await self.detector.run_cycle()

    async def close(self) -> None:
        await self.scheduler.stop()
        await self.client.close()

    def health(self) -> dict:
        """Read-only snapshot for the /health endpoint."""
        detection = self.config.detection
        return {
            "status": "healthy",
            "uptime": self.state.uptime_seconds(),
            "start_time": self.state.epoch.isoformat(),
            "config": {
                "min_bet_amount": detection.min_bet_amount,
                "new_account_days": detection.new_account_days,
                "pre_event_minutes": detection.pre_event_alert_minutes,
                "discord_enabled": self.dispatcher.enabled,
            },
            "stats": {
                "alerts_tracked": len(self.state.ledger),
                "scans_completed": self.state.stats.scans_completed,
                "markets_checked": self.state.stats.markets_checked,
                "alerts_sent": self.state.stats.alerts_sent,
                "alerts_failed": self.state.stats.alerts_failed,
            },
        }

    def status(self) -> dict:
        """Read-only snapshot for the /status endpoint."""
        last_scan = self.state.stats.last_scan_at
        return {
            "running": self.scheduler.running,
            "alerts_tracked": len(self.state.ledger),
            "uptime": self.state.uptime_seconds(),
            "monitoring_since": self.state.epoch.isoformat(),
            "last_scan": last_scan.isoformat() if last_scan else None,
        }
