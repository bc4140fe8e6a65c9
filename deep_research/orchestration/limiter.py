"""Shared concurrency limiter for external calls."""

import asyncio
import logging

from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class ConcurrencyLimiter:
    """
    Counting gate bounding in-flight external calls across a research tree.

    One limiter is shared by every node of a research invocation; each
    search or generation call holds exactly one slot while it runs.

    Usage:
        limiter = ConcurrencyLimiter(2)
        async with limiter:
            await provider.search(query)
    """

    def __init__(self, limit: int):
        """
        Initialize the limiter.

        Args:
            limit: Maximum number of simultaneous calls

        Raises:
            ConfigurationError: If limit is not positive
        """
        if not isinstance(limit, int) or limit < 1:
            raise ConfigurationError(f"Concurrency limit must be a positive integer, got {limit!r}")

        self.limit = limit
        self._semaphore = asyncio.Semaphore(limit)
        self._in_flight = 0
        self._peak_in_flight = 0

    @property
    def in_flight(self) -> int:
        """Number of calls currently holding a slot."""
        return self._in_flight

    @property
    def peak_in_flight(self) -> int:
        """Highest number of simultaneous calls observed."""
        return self._peak_in_flight

    async def __aenter__(self) -> "ConcurrencyLimiter":
        await self._semaphore.acquire()
        self._in_flight += 1
        self._peak_in_flight = max(self._peak_in_flight, self._in_flight)
        logger.debug(f"Limiter slot acquired ({self._in_flight}/{self.limit})")
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self._in_flight -= 1
        self._semaphore.release()
