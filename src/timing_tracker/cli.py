"""
Command-line interface for the timing tracker.

Usage:
    timing-tracker run --port 3000
    timing-tracker scan
    timing-tracker markets --window 120
    timing-tracker config
"""

import asyncio
import logging
from typing import Optional

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .config import Config, get_config
from .detection.timing import is_high_risk_category, minutes_until, utcnow
from .tracker import Tracker

app = typer.Typer(
    name="timing-tracker",
    help="Flag large Kalshi trades placed shortly before a market's event",
    add_completion=False,
)

console = Console()


def setup_logging(debug: bool = False, level: str = "INFO"):
    """Configure logging."""
    log_level = logging.DEBUG if debug else getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    # Quiet noisy loggers
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def _load(debug: bool) -> Config:
    config = get_config()
    setup_logging(debug or config.debug, config.log_level)
    return config


@app.command()
def run(
    host: Optional[str] = typer.Option(None, "--host", "-h", help="Host to bind to"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port to bind to (default: $PORT or 3000)"),
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """
    Start monitoring with the health/status server.

    Waits out the warm-up delay, then scans every CHECK_INTERVAL ms.
    Stop with Ctrl+C or SIGTERM.
    """
    config = _load(debug)

    from .dashboard import run_server
    run_server(config, host=host, port=port)


@app.command()
def scan(
    debug: bool = typer.Option(False, "--debug", "-d", help="Enable debug logging"),
):
    """
    Run a single scan cycle now, without the warm-up delay.

    Only trades placed after this command starts are eligible, so a one-off
    scan normally reports markets checked but no alerts.
    """
    config = _load(debug)

    async def run_scan():
        async with Tracker(config) as tracker:
            tracker.log_banner()
            return await tracker.scan_once()

    result = asyncio.run(run_scan())

    table = Table(title="Scan Result", show_header=False)
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Markets found", str(result.markets_found))
    table.add_row("Markets checked", str(result.markets_checked))
    table.add_row("Trades seen", str(result.trades_seen))
    table.add_row("Alerts sent", str(result.alerts_sent))
    table.add_row("Alerts failed", str(result.alerts_failed))
    console.print(table)

    if not result.completed:
        console.print("[red]Scan ended early, see log for details[/red]")
        raise typer.Exit(code=1)


@app.command()
def markets(
    window: Optional[int] = typer.Option(
        None,
        "--window", "-w",
        help="Show markets whose event is within this many minutes (default: 2x alert window)",
    ),
    limit: int = typer.Option(50, "--limit", "-l", help="Maximum rows to show"),
    debug: bool = typer.Option(False, "--debug", "-d"),
):
    """
    List open markets approaching their event deadline.
    """
    config = _load(debug)
    detection = config.detection
    window = window or detection.pre_event_alert_minutes * detection.check_window_multiplier

    async def fetch():
        async with Tracker(config) as tracker:
            return await tracker.client.list_open_markets()

    now = utcnow()
    rows = []
    for market in asyncio.run(fetch()):
        if not market.is_open or market.event_time is None:
            continue
        remaining = minutes_until(market.event_time, now)
        if 0 <= remaining <= window:
            rows.append((remaining, market))
    rows.sort(key=lambda r: r[0])

    if not rows:
        console.print(f"[yellow]No open markets with an event in the next {window} minutes[/yellow]")
        return

    table = Table(title=f"Markets within {window} minutes", show_header=True)
    table.add_column("Ticker", style="cyan")
    table.add_column("Title")
    table.add_column("Category")
    table.add_column("Minutes", justify="right")
    table.add_column("High Risk", justify="center")

    for remaining, market in rows[:limit]:
        table.add_row(
            market.ticker,
            market.title[:60],
            market.category or "-",
            str(remaining),
            "⚠" if is_high_risk_category(market, detection.high_risk_categories) else "",
        )

    console.print(table)


@app.command("config")
def show_config():
    """Print the effective configuration."""
    config = get_config()
    detection = config.detection

    table = Table(show_header=False)
    table.add_column("Setting", style="cyan")
    table.add_column("Value")
    table.add_row("Kalshi API", config.kalshi.base_url)
    table.add_row("Discord webhook", "configured" if config.notifier.enabled else "[red]not set[/red]")
    table.add_row("Min bet amount", f"${detection.min_bet_amount:,.0f}")
    table.add_row("New account days", str(detection.new_account_days))
    table.add_row("Pre-event window", f"{detection.pre_event_alert_minutes} min")
    table.add_row("Pre-close window", f"{detection.pre_close_alert_minutes} min")
    table.add_row("High-risk categories", ", ".join(detection.high_risk_categories))
    table.add_row("Check interval", f"{config.scheduler.check_interval_ms} ms")
    table.add_row("Warm-up delay", f"{config.scheduler.warmup_seconds:g} s")
    table.add_row("Ledger capacity", str(detection.max_stored_alerts))
    table.add_row("Port", str(config.server.port))

    console.print(Panel(table, title="Kalshi Timing Tracker"))


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
