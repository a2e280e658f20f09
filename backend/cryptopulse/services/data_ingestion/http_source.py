"""
Shared HTTP plumbing for REST market data providers.

One aiohttp session per provider, JSON GETs with retry on network errors
and 5xx responses (exponential backoff). Anything else becomes a
DataSourceError.
"""

import asyncio
import logging
from typing import Any, Optional

import aiohttp

from cryptopulse.core.config import settings
from cryptopulse.services.base import DataSourceError
from cryptopulse.services.data_ingestion.interface import CandleSource

logger = logging.getLogger(__name__)

RETRY_BASE_DELAY = 0.5  # seconds, doubled each attempt


class HttpCandleSource(CandleSource):
    """Base for providers reached over a JSON REST API."""

    base_url: str = ""

    def __init__(
        self,
        base_url: Optional[str] = None,
        headers: Optional[dict] = None,
        max_retries: int = None,
        request_timeout: float = None,
    ):
        self.base_url = (base_url or self.base_url).rstrip("/")
        self._headers = {"Accept": "application/json", **(headers or {})}
        self._max_retries = max_retries if max_retries is not None else settings.fetch_max_retries
        self._request_timeout = request_timeout or settings.request_timeout_seconds
        self._timeout = aiohttp.ClientTimeout(total=self._request_timeout)
        self._session: Optional[aiohttp.ClientSession] = None

    @property
    def worst_case_seconds(self) -> float:
        """Upper bound on one _get_json call: every attempt times out."""
        attempts = self._max_retries + 1
        backoff = sum(RETRY_BASE_DELAY * (2 ** i) for i in range(self._max_retries))
        return attempts * self._request_timeout + backoff

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an active HTTP session."""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(
                headers=self._headers,
                timeout=self._timeout,
            )
        return self._session

    async def close(self) -> None:
        """Close the HTTP session."""
        if self._session and not self._session.closed:
            await self._session.close()

    async def _get_json(self, path: str, params: Optional[dict] = None) -> Any:
        """GET base_url + path and decode JSON, retrying transient failures."""
        url = f"{self.base_url}{path}"
        attempt = 0

        while True:
            try:
                session = await self._ensure_session()
                async with session.get(url, params=params) as resp:
                    if resp.status >= 500:
                        raise aiohttp.ClientResponseError(
                            resp.request_info,
                            resp.history,
                            status=resp.status,
                            message=await resp.text(),
                        )
                    if resp.status != 200:
                        raise DataSourceError(
                            self.name,
                            f"{path} returned HTTP {resp.status}",
                            {"url": url, "body": await resp.text()},
                        )
                    try:
                        return await resp.json(content_type=None)
                    except ValueError as e:
                        raise DataSourceError(
                            self.name, f"{path} returned invalid JSON: {e}", {"url": url}
                        ) from e

            except DataSourceError:
                raise
            except (aiohttp.ClientError, asyncio.TimeoutError) as e:
                if attempt >= self._max_retries:
                    raise DataSourceError(
                        self.name,
                        f"{path} failed after {attempt + 1} attempts: {e}",
                        {"url": url},
                    ) from e
                delay = RETRY_BASE_DELAY * (2 ** attempt)
                attempt += 1
                logger.debug(f"{self.name} {path} failed ({e}), retry {attempt} in {delay}s")
                await asyncio.sleep(delay)

    async def health_check(self) -> bool:
        """Provider is healthy if a small candle fetch succeeds."""
        try:
            candles = await self.fetch_candles("BTCUSDT", limit=1)
            return len(candles) > 0
        except DataSourceError as e:
            logger.warning(f"{self.name} health check failed: {e}")
            return False
