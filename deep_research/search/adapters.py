"""Adapter implementations for the search protocols."""

import logging

import httpx
from pydantic import ValidationError

from ..exceptions import ProviderError, SearchTimeout
from .client import FirecrawlClient
from .models import RetrievedDocument, SearchResponse
from .protocols import SearchProvider

logger = logging.getLogger(__name__)


class FirecrawlAdapter(SearchProvider):
    """
    Adapter for Firecrawl search.

    Every failure mode is mapped onto the search error taxonomy: timeouts
    raise ``SearchTimeout``, everything else raises ``ProviderError``.

    Usage:
        async with FirecrawlAdapter() as search:
            documents = await search.search("benefits of meditation")
    """

    def __init__(
        self,
        api_key: str | None = None,
        base_url: str | None = None,
        max_retries: int = 0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        """
        Initialize the Firecrawl adapter.

        Args:
            api_key: Optional API key. If not provided, uses FIRECRAWL_KEY
                    environment variable.
            base_url: Override the API base URL (self-hosted instances)
            max_retries: Retries on rate limits / server errors (0 = none)
            transport: Optional httpx transport (e.g. httpx.MockTransport in tests)
        """
        self._client = FirecrawlClient(
            api_key=api_key,
            base_url=base_url,
            max_retries=max_retries,
            transport=transport,
        )
        self._entered = False

    async def __aenter__(self) -> "FirecrawlAdapter":
        await self._client.__aenter__()
        self._entered = True
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._client.__aexit__(exc_type, exc_val, exc_tb)
        self._entered = False

    def _ensure_entered(self) -> None:
        if not self._entered:
            raise RuntimeError(
                "Adapter not initialized. Use 'async with' context manager."
            )

    async def search(
        self,
        query: str,
        timeout_ms: int = 15000,
        max_results: int = 5,
    ) -> list[RetrievedDocument]:
        """
        Search the web and return scraped page contents.

        Uses Firecrawl /v1/search endpoint with markdown scraping.
        """
        self._ensure_entered()

        try:
            response_data = await self._client.search(
                query=query,
                limit=max_results,
                timeout_ms=timeout_ms,
            )
        except httpx.TimeoutException as e:
            raise SearchTimeout(f"Search timed out after {timeout_ms}ms: {query}") from e
        except httpx.HTTPStatusError as e:
            raise ProviderError(
                f"Search failed with status {e.response.status_code}: {e.response.text[:200]}"
            ) from e
        except httpx.HTTPError as e:
            raise ProviderError(f"Search request failed: {e}") from e
        except ValueError as e:
            raise ProviderError(f"Search response is not JSON: {e}") from e

        try:
            response = SearchResponse.model_validate(response_data)
        except ValidationError as e:
            raise ProviderError(f"Unexpected search response: {e}") from e

        if not response.success:
            raise ProviderError(f"Search failed: {response.error or 'unknown error'}")

        if response.warning:
            logger.warning(f"Firecrawl warning for '{query}': {response.warning}")

        return response.data[:max_results]
