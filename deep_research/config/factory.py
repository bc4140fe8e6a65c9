"""Factory functions to create backends from configuration."""

from __future__ import annotations

import re
from typing import TYPE_CHECKING

from ..exceptions import ConfigurationError, GenerationError
from ..orchestration.schemas import (
    AnswerOutput,
    ExtractionOutput,
    FeedbackOutput,
    PlannedQuery,
    QueryPlanOutput,
    ReportOutput,
)
from ..search.models import RetrievedDocument

if TYPE_CHECKING:
    from ..context.estimator import ContextEstimator
    from ..llm.protocols import LLMProvider, SchemaT
    from ..orchestration.engine import ResearchEngine
    from ..orchestration.synthesizer import Synthesizer
    from ..search.protocols import SearchProvider
    from .loader import ChunkerConfig, GeneratorConfig, ProfileConfig, SearchConfig


def _tag(prompt: str, name: str) -> str:
    match = re.search(rf"<{name}>(.*?)</{name}>", prompt, re.DOTALL)
    text = match.group(1) if match else prompt
    return " ".join(text.split())[:80]


class MockLLMProvider:
    """Mock LLM provider for testing and offline runs.

    Returns deterministic canned objects for every output schema the
    research pipeline requests.
    """

    def __init__(self, items_per_response: int = 3):
        self.items_per_response = items_per_response
        self.calls: list[str] = []

    async def generate(
        self,
        prompt: str,
        schema: type[SchemaT],
        system_prompt: str | None = None,
        temperature: float | None = None,
    ) -> SchemaT:
        """Return a canned instance of ``schema``."""
        self.calls.append(schema.__name__)
        n = self.items_per_response

        if schema is QueryPlanOutput:
            topic = _tag(prompt, "prompt")
            return QueryPlanOutput(
                queries=[
                    PlannedQuery(query=f"{topic} #{i}", research_goal=f"Mock goal {i} for {topic}")
                    for i in range(1, n + 1)
                ]
            )
        if schema is ExtractionOutput:
            query = _tag(prompt, "query")
            return ExtractionOutput(
                learnings=[f"Mock learning {i} about {query}" for i in range(1, n + 1)],
                follow_up_questions=[f"Mock follow-up {i} about {query}?" for i in range(1, n + 1)],
            )
        if schema is ReportOutput:
            return ReportOutput(report_markdown=f"# Mock report\n\n{_tag(prompt, 'prompt')}")
        if schema is AnswerOutput:
            return AnswerOutput(exact_answer="Mock answer")
        if schema is FeedbackOutput:
            query = _tag(prompt, "query")
            return FeedbackOutput(
                questions=[f"Mock clarification {i} for {query}?" for i in range(1, n + 1)]
            )

        raise GenerationError(f"MockLLMProvider has no fixture for {schema.__name__}")

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class MockSearchProvider:
    """Mock search provider returning synthetic documents."""

    def __init__(self, documents_per_query: int = 2):
        self.documents_per_query = documents_per_query
        self.queries: list[str] = []

    async def search(
        self,
        query: str,
        timeout_ms: int = 15000,
        max_results: int = 5,
    ) -> list[RetrievedDocument]:
        """Return mock documents for a query."""
        self.queries.append(query)
        slug = re.sub(r"[^a-z0-9]+", "-", query.lower()).strip("-")[:60]
        count = min(self.documents_per_query, max_results)
        return [
            RetrievedDocument(
                url=f"https://example.com/{slug}/{i}",
                content=f"Mock page {i} about {query}.",
                title=f"Mock result {i}",
            )
            for i in range(1, count + 1)
        ]

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


def create_generator(config: GeneratorConfig) -> LLMProvider:
    """Create a structured-generation backend from configuration.

    Args:
        config: Generator configuration

    Returns:
        LLMProvider instance (OpenRouter, OpenAI, Anthropic or Mock adapter)

    Raises:
        ConfigurationError: If backend type is not supported or has no API key
    """
    if config.backend in ("openrouter", "openai"):
        from ..llm import OpenAIAdapter, OpenRouterAdapter

        adapter_class = OpenRouterAdapter if config.backend == "openrouter" else OpenAIAdapter
        return adapter_class(
            api_key=config.api_key,
            model=config.model,
            base_url=config.base_url,
            temperature=config.temperature,
            timeout=config.timeout,
        )

    elif config.backend == "anthropic":
        from ..llm import AnthropicAdapter

        return AnthropicAdapter(
            api_key=config.api_key,
            model=config.model,
            temperature=config.temperature,
            timeout=config.timeout,
        )

    elif config.backend == "mock":
        return MockLLMProvider()

    else:
        raise ConfigurationError(f"Unsupported generator backend: {config.backend}")


def create_search_provider(config: SearchConfig) -> SearchProvider:
    """Create a search backend from configuration.

    Raises:
        ConfigurationError: If backend type is not supported or has no API key
    """
    if config.backend == "firecrawl":
        from ..search import FirecrawlAdapter

        return FirecrawlAdapter(
            api_key=config.api_key,
            base_url=config.base_url,
            max_retries=config.max_retries,
        )

    elif config.backend == "mock":
        return MockSearchProvider()

    else:
        raise ConfigurationError(f"Unsupported search backend: {config.backend}")


def create_context_estimator(
    use_tiktoken: bool = True,
    encoding_name: str = "o200k_base",
    chars_per_token: float = 4.0,
) -> ContextEstimator:
    """Create a ContextEstimator.

    Args:
        use_tiktoken: Whether to use tiktoken for accurate counting
        encoding_name: tiktoken encoding to load
        chars_per_token: Average characters per token for the heuristic

    Returns:
        ContextEstimator instance
    """
    from ..context.estimator import ContextEstimator

    return ContextEstimator(
        use_tiktoken=use_tiktoken,
        encoding_name=encoding_name,
        chars_per_token=chars_per_token,
    )


def _estimator_for(config: ChunkerConfig) -> ContextEstimator:
    return create_context_estimator(
        use_tiktoken=config.use_tiktoken,
        encoding_name=config.encoding_name,
        chars_per_token=config.chars_per_token,
    )


def create_engine(
    generator: LLMProvider,
    search_provider: SearchProvider,
    profile: ProfileConfig,
) -> ResearchEngine:
    """Wire planner, dispatcher and extractor into a ResearchEngine.

    Args:
        generator: Structured-generation provider
        search_provider: Search provider
        profile: Profile supplying budgets and bounds

    Returns:
        ResearchEngine instance
    """
    from ..orchestration.dispatcher import SearchDispatcher
    from ..orchestration.engine import ResearchEngine
    from ..orchestration.extractor import LearningExtractor
    from ..orchestration.query_planner import QueryPlanner

    research = profile.research
    extractor = LearningExtractor(
        generator,
        estimator=_estimator_for(profile.chunker),
        content_token_budget=research.content_token_budget,
        context_token_budget=profile.generator.context_size,
        min_chunk_size=profile.chunker.min_chunk_size,
    )

    return ResearchEngine(
        planner=QueryPlanner(generator),
        dispatcher=SearchDispatcher(
            search_provider,
            timeout_ms=profile.search.timeout_ms,
            max_results=profile.search.max_results,
        ),
        extractor=extractor,
        num_learnings=research.num_learnings,
        max_breadth=research.max_breadth,
        max_depth=research.max_depth,
    )


def create_synthesizer(generator: LLMProvider, profile: ProfileConfig) -> Synthesizer:
    """Create a Synthesizer using the profile's report budget."""
    from ..orchestration.synthesizer import Synthesizer

    return Synthesizer(
        generator,
        estimator=_estimator_for(profile.chunker),
        report_token_budget=profile.research.report_token_budget,
        min_chunk_size=profile.chunker.min_chunk_size,
    )


def create_from_profile(profile: ProfileConfig) -> tuple:
    """Create all backends from a profile configuration.

    Args:
        profile: Profile configuration containing all backend configs

    Returns:
        Tuple of (generator, search_provider)

    Raises:
        ConfigurationError: If any backend configuration is invalid
    """
    generator = create_generator(profile.generator)
    search_provider = create_search_provider(profile.search)
    return generator, search_provider
