"""Deep research agent: recursive search, learning extraction and report synthesis."""

from .research import run
from .orchestration import (
    ResearchEngine,
    ResearchRequest,
    ResearchResult,
    ResearchSession,
)
from .exceptions import (
    DeepResearchError,
    RequestValidationError,
    ConfigurationError,
    PlanningFailed,
    ProviderError,
    SearchTimeout,
    GenerationError,
)

__all__ = [
    "run",
    "ResearchEngine",
    "ResearchRequest",
    "ResearchResult",
    "ResearchSession",
    "DeepResearchError",
    "RequestValidationError",
    "ConfigurationError",
    "PlanningFailed",
    "ProviderError",
    "SearchTimeout",
    "GenerationError",
]
