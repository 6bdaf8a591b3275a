"""
Configuration management for the timing tracker.
"""

import logging
import math
import os
from dataclasses import dataclass, field
from typing import Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)


@dataclass
class KalshiConfig:
    """Configuration for Kalshi API."""
    api_url: str = "https://api.elections.kalshi.com/trade-api/v2"
    demo_api_url: str = "https://demo-api.kalshi.co/trade-api/v2"
    market_url_base: str = "https://kalshi.com/markets"

    # Use demo mode for testing
    use_demo: bool = False

    # Request limits
    markets_page_size: int = 200
    markets_timeout: float = 15.0
    trades_timeout: float = 10.0
    requests_per_second: int = 10

    @property
    def base_url(self) -> str:
        return self.demo_api_url if self.use_demo else self.api_url


@dataclass
class DetectionConfig:
    """Configuration for the timing-based detection rules."""

    # Size threshold (dollars)
    min_bet_amount: float = 10000.0

    # Account age threshold; Kalshi doesn't expose account creation dates
    new_account_days: int = 7

    # Alert windows (minutes before the event / before market close)
    pre_event_alert_minutes: int = 60
    pre_close_alert_minutes: int = 60

    # Only markets whose event is within this many minutes are considered
    lookahead_minutes: int = 1440
    # Trades are fetched for markets within multiplier * pre_event_alert_minutes
    check_window_multiplier: int = 2
    trades_per_market: int = 20

    # Risk tiers by minutes before event
    critical_minutes: int = 15
    high_minutes: int = 30

    high_risk_categories: list[str] = field(
        default_factory=lambda: ["economics", "congress", "politics", "fed", "earnings"]
    )

    # Dedup ledger capacity
    max_stored_alerts: int = 5000

    # Outbound pacing
    alert_pause_seconds: float = 2.0
    market_pause_seconds: float = 0.1


@dataclass
class NotifierConfig:
    """Configuration for the Discord webhook sink."""
    discord_webhook: str = ""
    username: str = "Kalshi Timing Tracker"
    timeout: float = 10.0

    @property
    def enabled(self) -> bool:
        return bool(self.discord_webhook)


@dataclass
class SchedulerConfig:
    """Configuration for the scan loop."""
    check_interval_ms: int = 30000
    warmup_seconds: float = 30.0

    @property
    def interval_seconds(self) -> float:
        return self.check_interval_ms / 1000


@dataclass
class ServerConfig:
    """Configuration for the health/status HTTP server."""
    host: str = "0.0.0.0"
    port: int = 3000


@dataclass
class Config:
    """Main configuration container."""
    kalshi: KalshiConfig = field(default_factory=KalshiConfig)
    detection: DetectionConfig = field(default_factory=DetectionConfig)
    notifier: NotifierConfig = field(default_factory=NotifierConfig)
    scheduler: SchedulerConfig = field(default_factory=SchedulerConfig)
    server: ServerConfig = field(default_factory=ServerConfig)

    # Global settings
    debug: bool = False
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Config":
        """Load configuration from environment variables."""
        load_dotenv()

        config = cls()

        config.kalshi.use_demo = os.getenv("KALSHI_USE_DEMO", "false").lower() == "true"

        detection = config.detection
        detection.min_bet_amount = _env_float("MIN_BET_AMOUNT", detection.min_bet_amount)
        detection.new_account_days = _env_int("NEW_ACCOUNT_DAYS", detection.new_account_days)
        detection.pre_event_alert_minutes = _env_int(
            "PRE_EVENT_ALERT_MINUTES", detection.pre_event_alert_minutes
        )
        detection.pre_close_alert_minutes = _env_int(
            "PRE_CLOSE_ALERT_MINUTES", detection.pre_close_alert_minutes
        )
        categories = os.getenv("HIGH_RISK_CATEGORIES")
        if categories:
            detection.high_risk_categories = parse_categories(categories)

        config.notifier.discord_webhook = os.getenv("DISCORD_WEBHOOK", "").strip()
        config.scheduler.check_interval_ms = _env_int(
            "CHECK_INTERVAL", config.scheduler.check_interval_ms
        )
        config.server.port = _env_int("PORT", config.server.port)

        config.debug = os.getenv("DEBUG", "false").lower() == "true"
        config.log_level = os.getenv("LOG_LEVEL", "INFO").upper()

        return config


def parse_categories(raw: str) -> list[str]:
    """Split a comma-separated keyword list, dropping blanks."""
    return [c.strip().lower() for c in raw.split(",") if c.strip()]


def _env_number(name: str) -> Optional[float]:
    """Finite float from the environment, or None if unset or unparseable."""
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return None
    try:
        value = float(raw)
    except ValueError:
        value = math.nan
    if not math.isfinite(value):
        logger.warning(f"Invalid value for {name}={raw!r}, using default")
        return None
    return value


def _env_int(name: str, default: int) -> int:
    value = _env_number(name)
    if value is None:
        return default
    # Zero is treated as unset
    return int(value) or default


def _env_float(name: str, default: float) -> float:
    value = _env_number(name)
    return value if value else default


# Global config instance
_config: Optional[Config] = None


def get_config() -> Config:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def set_config(config: Config) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config
