"""Custom exceptions for the deep research agent.

Errors fall into three groups:

- request/configuration errors (``RequestValidationError``,
  ``ConfigurationError``) are raised before any research work starts;
- branch-local errors (``PlanningFailed``, ``ProviderError``,
  ``SearchTimeout`` and ``GenerationError`` during extraction) are caught by
  the engine and turned into an empty contribution for that branch;
- ``GenerationError`` during final synthesis is fatal to the invocation.
"""


class DeepResearchError(Exception):
    """Base exception for deep research errors."""

    pass


class RequestValidationError(DeepResearchError, ValueError):
    """Raised when research request parameters are invalid."""

    pass


class ConfigurationError(DeepResearchError, ValueError):
    """Raised when a component is configured with invalid settings."""

    pass


class PlanningFailed(DeepResearchError):
    """Raised when search queries cannot be generated for a topic."""

    pass


class ProviderError(DeepResearchError):
    """Raised when the search provider fails to answer a query."""

    pass


class SearchTimeout(ProviderError):
    """Raised when a search call exceeds its time budget."""

    pass


class GenerationError(DeepResearchError):
    """Raised when the text-generation provider fails or returns bad output."""

    pass
