"""Learning extraction from retrieved documents."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..context import ContextEstimator, trim_to_fit
from ..llm.completion import generate_structured
from .models import ExtractionResult, SearchQuery
from .prompts import dedupe, research_system_prompt
from .schemas import ExtractionOutput

if TYPE_CHECKING:
    from ..llm.protocols import LLMProvider
    from ..search import RetrievedDocument
    from .limiter import ConcurrencyLimiter

logger = logging.getLogger(__name__)


EXTRACTION_PROMPT_TEMPLATE = """Given the following contents from a SERP search for the query <query>{query}</query>, generate a list of learnings from the contents. Return a maximum of {num_learnings} learnings, but feel free to return less if the contents are clear. Make sure each learning is unique and not similar to each other. The learnings should be concise and to the point, as detailed and information dense as possible. Make sure to include any entities like people, places, companies, products, things, etc in the learnings, as well as any exact metrics, numbers, or dates. The learnings will be used to research the topic further. Also return a maximum of {num_follow_ups} follow-up questions to research the topic further.

<contents>{contents}</contents>"""


class LearningExtractor:
    """
    Distills learnings and follow-up questions from search results.

    Each document is trimmed to a per-document token budget before being
    placed in the prompt, and the combined contents are trimmed again to
    the model's context budget.
    """

    def __init__(
        self,
        llm_provider: LLMProvider,
        estimator: ContextEstimator | None = None,
        content_token_budget: int = 25000,
        context_token_budget: int = 128000,
        min_chunk_size: int = 140,
    ):
        self._llm_provider = llm_provider
        self.estimator = estimator or ContextEstimator()
        self.content_token_budget = content_token_budget
        self.context_token_budget = context_token_budget
        self.min_chunk_size = min_chunk_size

    def prepare_contents(self, documents: Sequence[RetrievedDocument]) -> list[str]:
        """Trim each non-empty document to the per-document budget."""
        contents = []
        for document in documents:
            if not document.content or not document.content.strip():
                continue
            contents.append(
                trim_to_fit(
                    document.content,
                    self.content_token_budget,
                    estimator=self.estimator,
                    min_chunk_size=self.min_chunk_size,
                )
            )
        return contents

    async def extract(
        self,
        query: SearchQuery | str,
        documents: Sequence[RetrievedDocument],
        num_learnings: int = 3,
        num_follow_ups: int = 3,
        limiter: ConcurrencyLimiter | None = None,
    ) -> ExtractionResult:
        """
        Extract learnings and follow-up questions for one query.

        Args:
            query: The search query (or its text) the documents answer
            documents: Retrieved documents
            num_learnings: Maximum learnings to keep
            num_follow_ups: Maximum follow-up questions to keep
            limiter: Optional shared concurrency limiter

        Returns:
            ExtractionResult, empty when there is no usable content

        Raises:
            GenerationError: If the generation call fails
        """
        if isinstance(query, SearchQuery):
            query = query.text

        contents = self.prepare_contents(documents)
        if not contents:
            logger.info(f"No usable content for '{query}', skipping extraction")
            return ExtractionResult()

        joined = "\n".join(f"<content>\n{content}\n</content>" for content in contents)
        joined = trim_to_fit(
            joined,
            self.context_token_budget,
            estimator=self.estimator,
            min_chunk_size=self.min_chunk_size,
        )

        prompt = EXTRACTION_PROMPT_TEMPLATE.format(
            query=query,
            num_learnings=num_learnings,
            num_follow_ups=num_follow_ups,
            contents=joined,
        )

        output = await generate_structured(
            self._llm_provider,
            prompt=prompt,
            schema=ExtractionOutput,
            system_prompt=research_system_prompt(),
            limiter=limiter,
        )

        result = ExtractionResult(
            learnings=dedupe(output.learnings, num_learnings),
            follow_up_questions=dedupe(output.follow_up_questions, num_follow_ups),
        )
        logger.info(
            f"Extracted {len(result.learnings)} learnings and "
            f"{len(result.follow_up_questions)} follow-ups for '{query}'"
        )
        return result
