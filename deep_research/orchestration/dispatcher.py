"""Concurrent search dispatch with per-query failure isolation."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..exceptions import DeepResearchError, ProviderError, SearchTimeout
from .models import DispatchOutcome, SearchQuery

if TYPE_CHECKING:
    from ..search.protocols import SearchProvider
    from .limiter import ConcurrencyLimiter

logger = logging.getLogger(__name__)


class SearchDispatcher:
    """
    Runs a batch of search queries concurrently.

    Each search holds one slot of the shared limiter for its duration and is
    bounded by its own timeout. A failing query yields a failed outcome and
    never cancels its siblings.
    """

    def __init__(
        self,
        search_provider: SearchProvider,
        timeout_ms: int = 15000,
        max_results: int = 5,
    ):
        """
        Initialize the dispatcher.

        Args:
            search_provider: Provider used for every query
            timeout_ms: Per-query timeout in milliseconds
            max_results: Maximum documents requested per query
        """
        self._search_provider = search_provider
        self.timeout_ms = timeout_ms
        self.max_results = max_results

    async def dispatch(
        self,
        queries: Sequence[SearchQuery],
        limiter: ConcurrencyLimiter,
    ) -> list[DispatchOutcome]:
        """
        Search every query and return one outcome per query, in input order.

        Args:
            queries: Queries to run
            limiter: Shared concurrency limiter

        Returns:
            Outcomes aligned with ``queries``
        """
        if not queries:
            return []

        tasks = [self._search_one(query, limiter) for query in queries]
        outcomes = await asyncio.gather(*tasks)

        failed = sum(1 for outcome in outcomes if not outcome.succeeded)
        if failed:
            logger.warning(f"{failed}/{len(outcomes)} searches failed")
        return list(outcomes)

    async def _search_one(
        self,
        query: SearchQuery,
        limiter: ConcurrencyLimiter,
    ) -> DispatchOutcome:
        async with limiter:
            try:
                documents = await asyncio.wait_for(
                    self._search_provider.search(
                        query.text,
                        timeout_ms=self.timeout_ms,
                        max_results=self.max_results,
                    ),
                    timeout=self.timeout_ms / 1000,
                )
            except (asyncio.TimeoutError, SearchTimeout) as e:
                logger.warning(f"Search timed out for '{query.text}'")
                error: DeepResearchError = (
                    e if isinstance(e, SearchTimeout)
                    else SearchTimeout(f"Search timed out after {self.timeout_ms}ms: {query.text}")
                )
                return DispatchOutcome(query=query, error=error)
            except ProviderError as e:
                logger.warning(f"Search failed for '{query.text}': {e}")
                return DispatchOutcome(query=query, error=e)
            except Exception as e:
                logger.warning(f"Search failed for '{query.text}': {type(e).__name__}: {e}")
                return DispatchOutcome(query=query, error=ProviderError(str(e)))

        logger.debug(f"Found {len(documents)} documents for '{query.text}'")
        return DispatchOutcome(query=query, documents=list(documents))
