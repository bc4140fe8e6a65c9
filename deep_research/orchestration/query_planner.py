"""Search query planning for research nodes.

Turns a topic and the learnings gathered so far into a small set of
distinct search queries, each paired with the research goal it serves.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import TYPE_CHECKING

from ..exceptions import GenerationError, PlanningFailed
from ..llm.completion import generate_structured
from .models import SearchQuery
from .prompts import format_learnings, research_system_prompt
from .schemas import QueryPlanOutput

if TYPE_CHECKING:
    from ..llm.protocols import LLMProvider
    from .limiter import ConcurrencyLimiter

logger = logging.getLogger(__name__)


QUERY_PLANNER_PROMPT_TEMPLATE = """Given the following prompt from the user, generate a list of SERP queries to research the topic. Return a maximum of {num_queries} queries, but feel free to return less if the original prompt is clear. Make sure each query is unique and not similar to each other: <prompt>{topic}</prompt>"""

PRIOR_LEARNINGS_TEMPLATE = """

Here are some learnings from previous research, use them to generate more specific queries:
{learnings}"""


class QueryPlanner:
    """
    Generates search queries for one node of the research tree.

    The planner makes exactly one structured generation call per plan and
    never retries; failures surface as ``PlanningFailed`` so the engine can
    treat the node as empty.
    """

    def __init__(self, llm_provider: LLMProvider):
        """
        Initialize the query planner.

        Args:
            llm_provider: Structured-output provider used for planning
        """
        self._llm_provider = llm_provider

    def build_prompt(
        self,
        topic: str,
        prior_learnings: Sequence[str],
        num_queries: int,
    ) -> str:
        prompt = QUERY_PLANNER_PROMPT_TEMPLATE.format(num_queries=num_queries, topic=topic)
        if prior_learnings:
            prompt += PRIOR_LEARNINGS_TEMPLATE.format(learnings=format_learnings(prior_learnings))
        return prompt

    async def plan(
        self,
        topic: str,
        prior_learnings: Sequence[str] = (),
        num_queries: int = 3,
        limiter: ConcurrencyLimiter | None = None,
    ) -> list[SearchQuery]:
        """
        Plan up to ``num_queries`` search queries for a topic.

        Args:
            topic: The research topic or continuation prompt
            prior_learnings: Learnings already gathered on this branch
            num_queries: Maximum number of queries to return
            limiter: Optional shared concurrency limiter

        Returns:
            Distinct, non-blank queries (possibly fewer than requested)

        Raises:
            PlanningFailed: If the generation call fails
        """
        if num_queries < 1:
            return []

        prompt = self.build_prompt(topic, prior_learnings, num_queries)

        try:
            output = await generate_structured(
                self._llm_provider,
                prompt=prompt,
                schema=QueryPlanOutput,
                system_prompt=research_system_prompt(),
                limiter=limiter,
            )
        except GenerationError as e:
            raise PlanningFailed(f"Query planning failed for '{topic[:80]}': {e}") from e

        queries: list[SearchQuery] = []
        seen: set[str] = set()
        for planned in output.queries:
            text = planned.query.strip()
            if not text or text in seen:
                continue
            seen.add(text)
            queries.append(SearchQuery(text=text, research_goal=planned.research_goal.strip()))
            if len(queries) >= num_queries:
                break

        logger.info(f"Planned {len(queries)} queries (requested {num_queries})")
        return queries
