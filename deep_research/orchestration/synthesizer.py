"""Final report and answer synthesis."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..context import ContextEstimator, trim_to_fit
from ..llm.completion import generate_structured
from .prompts import format_learnings, research_system_prompt
from .schemas import AnswerOutput, ReportOutput

if TYPE_CHECKING:
    from ..llm.protocols import LLMProvider
    from .limiter import ConcurrencyLimiter

logger = logging.getLogger(__name__)


REPORT_PROMPT_TEMPLATE = """Given the following prompt from the user, write a final report on the topic using the learnings from research. Make it as detailed as possible, aim for 3 or more pages, include ALL the learnings from research:

<prompt>{topic}</prompt>

Here are all the learnings from previous research:

<learnings>
{learnings}
</learnings>"""

ANSWER_PROMPT_TEMPLATE = """Given the following prompt from the user, write a final answer on the topic using the learnings from research. Follow the format specified in the prompt. Do not yap or babble or include any other text than the answer besides the format specified in the prompt. Keep the answer as concise as possible - usually it should be just a few words or maximum a sentence. Try to follow the format specified in the prompt (for example, if the prompt is using Latex, the answer should be in Latex. If the prompt gives multiple answer choices, the answer should be one of the choices).

<prompt>{topic}</prompt>

Here are all the learnings from research on the topic that you can use to help answer the prompt:

<learnings>
{learnings}
</learnings>"""


def sources_section(visited_urls: Sequence[str]) -> str:
    """Markdown sources section listing every visited URL."""
    return "\n\n## Sources\n\n" + "\n".join(f"- {url}" for url in visited_urls)


class Synthesizer:
    """
    Turns accumulated learnings into the final report or answer.

    Unlike branch-level work, generation failures here are not recovered:
    they propagate to the caller.
    """

    def __init__(
        self,
        llm_provider: LLMProvider,
        estimator: ContextEstimator | None = None,
        report_token_budget: int = 150000,
        min_chunk_size: int = 140,
    ):
        self._llm_provider = llm_provider
        self.estimator = estimator or ContextEstimator()
        self.report_token_budget = report_token_budget
        self.min_chunk_size = min_chunk_size

    def _learnings_block(self, learnings: Sequence[str]) -> str:
        return trim_to_fit(
            format_learnings(learnings),
            self.report_token_budget,
            estimator=self.estimator,
            min_chunk_size=self.min_chunk_size,
        )

    async def write_report(
        self,
        topic: str,
        learnings: Sequence[str],
        visited_urls: Sequence[str],
        limiter: ConcurrencyLimiter | None = None,
    ) -> str:
        """
        Write a markdown report followed by a sources section.

        Args:
            topic: The original research topic
            learnings: Accumulated learnings (may be empty)
            visited_urls: Source URLs listed verbatim after the report
            limiter: Optional concurrency limiter

        Returns:
            The report markdown

        Raises:
            GenerationError: If the generation call fails
        """
        prompt = REPORT_PROMPT_TEMPLATE.format(
            topic=topic,
            learnings=self._learnings_block(learnings),
        )
        output = await generate_structured(
            self._llm_provider,
            prompt=prompt,
            schema=ReportOutput,
            system_prompt=research_system_prompt(),
            limiter=limiter,
        )

        report = output.report_markdown + sources_section(visited_urls)
        logger.info(
            f"Report written: {len(report)} characters, {len(visited_urls)} sources"
        )
        return report

    async def write_answer(
        self,
        topic: str,
        learnings: Sequence[str],
        limiter: ConcurrencyLimiter | None = None,
    ) -> str:
        """Write a short, exact answer to the topic."""
        prompt = ANSWER_PROMPT_TEMPLATE.format(
            topic=topic,
            learnings=self._learnings_block(learnings),
        )
        output = await generate_structured(
            self._llm_provider,
            prompt=prompt,
            schema=AnswerOutput,
            system_prompt=research_system_prompt(),
            limiter=limiter,
        )
        logger.info(f"Answer written: {len(output.exact_answer)} characters")
        return output.exact_answer.strip()
