"""
Notification services for delivering timing alerts.
"""

import logging
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional
from zoneinfo import ZoneInfo

import httpx

from ..config import NotifierConfig
from ..models import RiskTier, Side, TimingAlert, TimingKind

logger = logging.getLogger(__name__)

EASTERN = ZoneInfo("America/New_York")

COLOR_MAP = {
    RiskTier.CRITICAL: 0xFF0000,  # Red
    RiskTier.HIGH: 0xFF6600,      # Dark orange
    RiskTier.MEDIUM: 0xFFAA00,    # Orange
}


class NotificationService(ABC):
    """Base class for notification services."""

    @abstractmethod
    async def send_alert(self, alert: TimingAlert) -> bool:
        """Send an alert. Returns True if successful."""
        pass


def format_eastern(dt: Optional[datetime]) -> str:
    """Render a timestamp the way US users read it, e.g. '3/7/2026, 1:05:09 PM ET'."""
    if dt is None:
        return "N/A"
    local = dt.astimezone(EASTERN)
    hour = local.hour % 12 or 12
    return f"{local.month}/{local.day}/{local.year}, {hour}:{local:%M:%S} {local:%p} ET"


def timing_message(alert: TimingAlert) -> str:
    timing = alert.timing
    if timing.kind == TimingKind.PRE_CLOSE:
        return f"⚠️ {timing.minutes_before} MINUTES BEFORE MARKET CLOSES"
    return f"⚠️ {timing.minutes_before} MINUTES BEFORE {timing.event_label}"


class DiscordNotifier(NotificationService):
    """
    Send alerts via Discord webhook.

    To set up:
    1. In your Discord server, go to Server Settings > Integrations > Webhooks
    2. Create a new webhook and copy the URL into DISCORD_WEBHOOK
    """

    def __init__(
        self,
        config: NotifierConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self._transport = transport

    async def send_alert(self, alert: TimingAlert) -> bool:
        """Send a formatted alert as Discord embed."""
        payload = {
            "username": self.config.username,
            "embeds": [self.create_embed(alert)],
        }

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                resp = await client.post(
                    self.config.discord_webhook,
                    json=payload,
                    timeout=self.config.timeout,
                )
                if resp.status_code in (200, 204):
                    return True
                logger.error(f"Discord webhook error: {resp.status_code} - {resp.text}")
                return False
        except Exception as e:
            logger.error(f"Failed to send Discord alert: {e}")
            return False

    def create_embed(self, alert: TimingAlert) -> dict:
        """Create a Discord embed for an alert."""
        fields = [
            {"name": "📊 Market", "value": alert.market_title or alert.market_ticker, "inline": False},
            {"name": "⏰ Timing", "value": timing_message(alert), "inline": False},
            {"name": "💰 Trade Amount", "value": f"${float(alert.amount):,.2f}", "inline": True},
            {
                "name": "🎯 Position",
                "value": "YES ✅" if alert.side == Side.YES else "NO ❌",
                "inline": True,
            },
            {"name": "📅 Event Time", "value": format_eastern(alert.timing.event_time), "inline": False},
            {"name": "⏱️ Trade Time", "value": format_eastern(alert.trade_time), "inline": False},
            {"name": "📂 Category", "value": alert.category or "Unknown", "inline": True},
            {"name": "⚡ Risk Level", "value": alert.risk.value.upper(), "inline": True},
        ]

        if alert.high_risk_category:
            fields.append({"name": "🏷️ High-Risk Category", "value": "Yes", "inline": True})

        if alert.account_age:
            fields.append({"name": "👤 Account", "value": alert.account_age.description, "inline": False})

        fields.append({
            "name": "🔗 Market Link",
            "value": f"[View on Kalshi]({alert.market_url})",
            "inline": False,
        })

        embed = {
            "title": "🚨 SUSPICIOUS TIMING DETECTED - KALSHI",
            "description": "Large bet from potentially new account with suspicious timing!",
            "color": COLOR_MAP.get(alert.risk, COLOR_MAP[RiskTier.MEDIUM]),
            "fields": fields,
            "timestamp": alert.created_at.isoformat() if alert.created_at else None,
            "footer": {"text": "Kalshi Timing-Based Insider Trading Tracker"},
        }

        return {k: v for k, v in embed.items() if v is not None}


def create_notifier(config: NotifierConfig) -> Optional[NotificationService]:
    """Build the configured sink, or None when no webhook is set."""
    if not config.enabled:
        return None
    logger.info("Discord notifications enabled")
    return DiscordNotifier(config)
