"""Research session: wires providers, engine and synthesizer together."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Literal

from ..exceptions import RequestValidationError
from .aggregator import ordered
from .models import BranchResult, ResearchRequest, ResearchResult

if TYPE_CHECKING:
    from ..config.loader import ProfileConfig
    from ..llm.protocols import LLMProvider
    from ..search.protocols import SearchProvider
    from .engine import ProgressCallback, ResearchEngine
    from .feedback import FeedbackGenerator
    from .synthesizer import Synthesizer

logger = logging.getLogger(__name__)

OutputMode = Literal["report", "answer"]
OUTPUT_MODES = ("report", "answer")


class ResearchSession:
    """
    Context manager for running research with configured backends.

    Providers are built from the profile unless injected. Only providers the
    session created itself are entered and closed by it; injected ones are
    managed by the caller.

    Usage:
        async with ResearchSession(load_config("default")) as session:
            result = await session.run("State of sodium-ion batteries", breadth=3, depth=2)
            print(result.result)
    """

    def __init__(
        self,
        config: ProfileConfig,
        generator: LLMProvider | None = None,
        search_provider: SearchProvider | None = None,
    ):
        """
        Initialize a research session.

        Args:
            config: Profile configuration
            generator: Optional structured-generation provider to use instead
                      of the configured one
            search_provider: Optional search provider to use instead of the
                            configured one
        """
        self.config = config
        self._generator = generator
        self._search_provider = search_provider
        self._owned: list = []
        self._engine: ResearchEngine | None = None
        self._synthesizer: Synthesizer | None = None
        self._feedback: FeedbackGenerator | None = None

    async def __aenter__(self) -> ResearchSession:
        from ..config.factory import (
            create_engine,
            create_generator,
            create_search_provider,
            create_synthesizer,
        )
        from .feedback import FeedbackGenerator

        try:
            if self._generator is None:
                self._generator = create_generator(self.config.generator)
                await self._enter(self._generator)
            if self._search_provider is None:
                self._search_provider = create_search_provider(self.config.search)
                await self._enter(self._search_provider)
        except BaseException as e:
            await self._close(type(e), e, e.__traceback__)
            raise

        self._engine = create_engine(self._generator, self._search_provider, self.config)
        self._synthesizer = create_synthesizer(self._generator, self.config)
        self._feedback = FeedbackGenerator(self._generator)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self._close(exc_type, exc_val, exc_tb)

    async def _enter(self, provider) -> None:
        # Enter provider context if it supports async context manager
        if hasattr(provider, "__aenter__"):
            await provider.__aenter__()
            self._owned.append(provider)

    async def _close(self, exc_type, exc_val, exc_tb) -> None:
        while self._owned:
            provider = self._owned.pop()
            await provider.__aexit__(exc_type, exc_val, exc_tb)

    @property
    def engine(self) -> ResearchEngine:
        """Get the research engine."""
        if self._engine is None:
            raise RuntimeError("Session not started. Use 'async with' context manager.")
        return self._engine

    @property
    def synthesizer(self) -> Synthesizer:
        if self._synthesizer is None:
            raise RuntimeError("Session not started. Use 'async with' context manager.")
        return self._synthesizer

    def build_request(
        self,
        topic: str,
        breadth: int | None = None,
        depth: int | None = None,
        concurrency_limit: int | None = None,
    ) -> ResearchRequest:
        """Fill unspecified parameters from the profile's research defaults."""
        defaults = self.config.research
        return ResearchRequest(
            query=topic,
            breadth=defaults.breadth if breadth is None else breadth,
            depth=defaults.depth if depth is None else depth,
            concurrency_limit=(
                defaults.concurrency_limit if concurrency_limit is None else concurrency_limit
            ),
        )

    async def research(
        self,
        topic: str,
        breadth: int | None = None,
        depth: int | None = None,
        concurrency_limit: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> BranchResult:
        """Explore the research tree and return the merged learnings and URLs."""
        request = self.build_request(topic, breadth, depth, concurrency_limit)
        return await self.engine.research(request, on_progress=on_progress)

    async def feedback(self, query: str, num_questions: int = 3) -> list[str]:
        """Generate clarifying questions for a research query."""
        if self._feedback is None:
            raise RuntimeError("Session not started. Use 'async with' context manager.")
        return await self._feedback.generate(query, num_questions=num_questions)

    async def synthesize(
        self,
        topic: str,
        branch: BranchResult,
        output_mode: OutputMode = "report",
    ) -> ResearchResult:
        """
        Turn merged research into the final report or answer.

        Raises:
            GenerationError: If the final generation call fails
        """
        learnings = ordered(branch.learnings)
        visited_urls = ordered(branch.visited_urls)

        if output_mode == "answer":
            text = await self.synthesizer.write_answer(topic, learnings)
        else:
            text = await self.synthesizer.write_report(topic, learnings, visited_urls)

        return ResearchResult(
            result=text,
            learnings=learnings,
            visited_urls=visited_urls,
            output_mode=output_mode,
        )

    async def run(
        self,
        topic: str,
        breadth: int | None = None,
        depth: int | None = None,
        output_mode: OutputMode = "report",
        concurrency_limit: int | None = None,
        on_progress: ProgressCallback | None = None,
    ) -> ResearchResult:
        """
        Research a topic end to end.

        Args:
            topic: The research topic
            breadth: Queries at the root (profile default if None)
            depth: Recursion levels (profile default if None)
            output_mode: "report" or "answer"
            concurrency_limit: Maximum in-flight external calls
            on_progress: Optional progress callback

        Returns:
            ResearchResult with the synthesized text, learnings and URLs

        Raises:
            RequestValidationError: If parameters are invalid
            GenerationError: If final synthesis fails
        """
        if output_mode not in OUTPUT_MODES:
            raise RequestValidationError(
                f"output_mode must be one of {', '.join(OUTPUT_MODES)}, got {output_mode!r}"
            )

        branch = await self.research(
            topic,
            breadth=breadth,
            depth=depth,
            concurrency_limit=concurrency_limit,
            on_progress=on_progress,
        )
        if branch.is_empty:
            logger.warning("Research produced no learnings, synthesizing from the topic alone")

        return await self.synthesize(topic, branch, output_mode=output_mode)
