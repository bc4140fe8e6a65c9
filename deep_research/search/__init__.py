"""Web search integration with protocol-based adapter pattern."""

from .models import RetrievedDocument, SearchResponse
from .protocols import SearchProvider
from .adapters import FirecrawlAdapter
from .client import FirecrawlClient

__all__ = [
    # Models
    "RetrievedDocument",
    "SearchResponse",
    # Protocols (for implementing custom providers)
    "SearchProvider",
    # Adapters
    "FirecrawlAdapter",
    # Low-level client
    "FirecrawlClient",
]
