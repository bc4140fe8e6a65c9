"""Async HTTP client for the Firecrawl search API."""

import asyncio
import logging
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any

import httpx

from ..settings import (
    FIRECRAWL_API_KEY,
    FIRECRAWL_BASE_URL,
    RETRY_BACKOFF_FACTOR,
)

logger = logging.getLogger(__name__)

RETRYABLE_STATUS_CODES = (429, 500, 502, 503, 504)


def retry_after_seconds(value: str | None) -> float:
    """
    Seconds to wait according to a Retry-After header.

    Accepts both the delta-seconds and the HTTP-date form. Missing, past or
    unparseable values yield 0 so the caller falls back to its own backoff.
    """
    if not value:
        return 0.0
    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring unparseable Retry-After header: {value!r}")
        return 0.0
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)
    return max(0.0, (when - datetime.now(timezone.utc)).total_seconds())


class FirecrawlClient:
    """Async client for Firecrawl API."""

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        max_retries: int = 0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_key = api_key or FIRECRAWL_API_KEY
        self.base_url = base_url or FIRECRAWL_BASE_URL
        self.max_retries = max_retries

        # Build headers
        self.headers: dict[str, str] = {
            "Accept": "application/json",
            "Content-Type": "application/json",
        }
        if self.api_key:
            self.headers["Authorization"] = f"Bearer {self.api_key}"
            logger.info("Firecrawl client initialized with API key")
        else:
            logger.warning("No Firecrawl API key provided - only self-hosted instances will work")

        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "FirecrawlClient":
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=self.headers,
            timeout=30.0,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    @property
    def client(self) -> httpx.AsyncClient:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    async def _request_with_retry(
        self,
        method: str,
        url: str,
        **kwargs: Any,
    ) -> httpx.Response:
        """Make a request, retrying rate limits and server errors up to max_retries times."""
        attempts = self.max_retries + 1

        for attempt in range(attempts):
            logger.debug(f"Request attempt {attempt + 1}/{attempts}: {method} {url}")

            response = await self.client.request(method, url, **kwargs)
            logger.debug(f"Response status: {response.status_code}")

            if response.status_code in RETRYABLE_STATUS_CODES and attempt + 1 < attempts:
                retry_after = retry_after_seconds(response.headers.get("Retry-After"))
                backoff = max(retry_after, RETRY_BACKOFF_FACTOR ** attempt)
                logger.warning(
                    f"Retryable status ({response.status_code}), waiting {backoff}s "
                    f"(attempt {attempt + 1})"
                )
                await asyncio.sleep(backoff)
                continue

            response.raise_for_status()
            return response

        raise RuntimeError("Request loop exited without a response")

    async def post(self, url: str, **kwargs: Any) -> httpx.Response:
        """Make a POST request."""
        return await self._request_with_retry("POST", url, **kwargs)

    async def search(
        self,
        query: str,
        limit: int = 5,
        timeout_ms: int = 15000,
    ) -> dict[str, Any]:
        """Search and scrape result pages using the /v1/search endpoint."""
        payload = {
            "query": query,
            "limit": limit,
            "timeout": timeout_ms,
            "scrapeOptions": {"formats": ["markdown"]},
        }

        logger.info(f"Searching: query='{query}', limit={limit}, timeout={timeout_ms}ms")

        response = await self.post(
            "/v1/search",
            json=payload,
            timeout=timeout_ms / 1000,
        )
        data = response.json()

        found = len(data.get("data") or [])
        logger.info(f"Search returned {found} results")

        return data
