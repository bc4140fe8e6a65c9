"""Protocol definitions for web search APIs."""

from typing import Protocol, runtime_checkable

from .models import RetrievedDocument


@runtime_checkable
class SearchProvider(Protocol):
    """Protocol for web search providers.

    Implement this protocol to add support for new search APIs.
    """

    async def search(
        self,
        query: str,
        timeout_ms: int = 15000,
        max_results: int = 5,
    ) -> list[RetrievedDocument]:
        """
        Search the web and return page contents.

        Args:
            query: Search query string
            timeout_ms: Upper bound for the call, in milliseconds
            max_results: Maximum number of documents to return

        Returns:
            List of RetrievedDocument objects (content as markdown)

        Raises:
            SearchTimeout: If the provider does not answer in time
            ProviderError: For any other provider failure
        """
        ...
