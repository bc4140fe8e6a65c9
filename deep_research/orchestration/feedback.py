"""Clarifying questions asked before research starts."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..llm.completion import generate_structured
from .prompts import dedupe, research_system_prompt
from .schemas import FeedbackOutput

if TYPE_CHECKING:
    from ..llm.protocols import LLMProvider

logger = logging.getLogger(__name__)


FEEDBACK_PROMPT_TEMPLATE = """Given the following query from the user, ask some follow up questions to clarify the research direction. Return a maximum of {num_questions} questions, but feel free to return less if the original query is clear: <query>{query}</query>"""


def combine_query_with_feedback(
    query: str,
    questions: Sequence[str],
    answers: Sequence[str],
) -> str:
    """
    Fold clarifying questions and the user's answers into the research topic.

    Unanswered questions are kept with an empty answer.
    """
    lines = [f"Initial Query: {query}", "Follow-up Questions and Answers:"]
    for index, question in enumerate(questions):
        answer = answers[index] if index < len(answers) else ""
        lines.append(f"Q: {question}")
        lines.append(f"A: {answer}")
    return "\n".join(lines)


class FeedbackGenerator:
    """Generates follow-up questions that clarify a research query."""

    def __init__(self, llm_provider: LLMProvider):
        self._llm_provider = llm_provider

    async def generate(self, query: str, num_questions: int = 3) -> list[str]:
        """
        Ask the model which clarifications would sharpen the query.

        Args:
            query: The user's research query
            num_questions: Maximum number of questions

        Returns:
            Distinct questions, possibly fewer than requested

        Raises:
            GenerationError: If the generation call fails
        """
        output = await generate_structured(
            self._llm_provider,
            prompt=FEEDBACK_PROMPT_TEMPLATE.format(num_questions=num_questions, query=query),
            schema=FeedbackOutput,
            system_prompt=research_system_prompt(),
        )
        questions = dedupe(output.questions, num_questions)
        logger.info(f"Generated {len(questions)} feedback questions")
        return questions
