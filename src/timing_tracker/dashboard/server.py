"""
FastAPI server exposing the tracker's health and status.

The endpoints only read tracker state; the scan loop runs as a background
task started in the app lifespan.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel

from .. import __version__
from ..config import Config, get_config
from ..tracker import Tracker

logger = logging.getLogger(__name__)


# Pydantic models for API responses
class HealthConfig(BaseModel):
    min_bet_amount: float
    new_account_days: int
    pre_event_minutes: int
    discord_enabled: bool


class HealthStats(BaseModel):
    alerts_tracked: int
    scans_completed: int
    markets_checked: int
    alerts_sent: int
    alerts_failed: int


class HealthResponse(BaseModel):
    status: str
    uptime: int
    start_time: Optional[str] = None
    config: HealthConfig
    stats: HealthStats


class StatusResponse(BaseModel):
    running: bool
    alerts_tracked: int
    uptime: int
    monitoring_since: Optional[str] = None
    last_scan: Optional[str] = None


def create_app(
    config: Optional[Config] = None,
    tracker: Optional[Tracker] = None,
    start_scheduler: bool = True,
) -> FastAPI:
    """Create the FastAPI application around a tracker."""
    tracker = tracker or Tracker(config or get_config())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        # Startup
        if start_scheduler:
            await tracker.start()
        else:
            await tracker.client.connect()
        yield
        # Shutdown
        logger.info("Shutting down gracefully...")
        await tracker.close()

    app = FastAPI(
        title="Kalshi Timing Tracker",
        description="Health and status for the timing-based insider trading tracker",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.tracker = tracker

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    @app.get("/health", response_model=HealthResponse)
    async def health(request: Request):
        """Liveness plus effective thresholds."""
        return HealthResponse(**request.app.state.tracker.health())

    @app.get("/status", response_model=StatusResponse)
    async def status(request: Request):
        """Monitoring progress."""
        return StatusResponse(**request.app.state.tracker.status())

    return app


def run_server(config: Optional[Config] = None, host: Optional[str] = None, port: Optional[int] = None):
    """Run the tracker with its HTTP server. Blocks until SIGINT/SIGTERM."""
    import uvicorn

    config = config or get_config()
    host = host or config.server.host
    port = port or config.server.port

    logger.info(f"Server running on port {port}")
    uvicorn.run(create_app(config), host=host, port=port, log_level=config.log_level.lower())
