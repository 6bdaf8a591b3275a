"""
Base client class for API interactions.
"""

import asyncio
import logging
from typing import Optional

import httpx

from .. import __version__

logger = logging.getLogger(__name__)


class RateLimiter:
    """Simple rate limiter for API requests."""

    def __init__(self, requests_per_second: int):
        self.requests_per_second = requests_per_second
        self.min_interval = 1.0 / requests_per_second
        self.last_request_time = 0.0
        self._lock = asyncio.Lock()

    async def acquire(self) -> None:
        """Wait until we can make another request."""
        async with self._lock:
            loop = asyncio.get_running_loop()
            time_since_last = loop.time() - self.last_request_time
            if time_since_last < self.min_interval:
                await asyncio.sleep(self.min_interval - time_since_last)
            self.last_request_time = loop.time()


class BaseClient:
    """Rate-limited async HTTP client for a JSON REST API."""

    def __init__(
        self,
        base_url: str,
        requests_per_second: int = 5,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url
        self.timeout = timeout
        self.rate_limiter = RateLimiter(requests_per_second)
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "BaseClient":
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.close()

    async def connect(self) -> None:
        """Initialize the HTTP client."""
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            headers={"User-Agent": f"KalshiTimingTracker/{__version__}"},
            transport=self._transport,
        )

    async def close(self) -> None:
        """Close the HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def get(
        self,
        path: str,
        params: Optional[dict] = None,
        timeout: Optional[float] = None,
    ) -> dict:
        """Make a rate-limited GET request and decode the JSON body."""
        if not self._client:
            raise RuntimeError("Client not connected. Use 'async with' or call connect()")

        await self.rate_limiter.acquire()

        try:
            response = await self._client.get(
                path,
                params=params,
                timeout=timeout if timeout is not None else self.timeout,
            )
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            logger.debug(f"HTTP error {e.response.status_code} for {path}: {e.response.text}")
            raise
