"""
Recursion controller: explores the research tree.

Each node plans queries, searches them, extracts learnings and, while depth
remains, schedules one child node per query that produced follow-up
questions. Nodes run as tasks on a worklist so sibling branches proceed
independently; every external call across the tree shares one limiter.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING

from ..exceptions import GenerationError, PlanningFailed
from .aggregator import merge, ordered
from .limiter import ConcurrencyLimiter
from .models import (
    BranchResult,
    DispatchOutcome,
    ExtractionResult,
    ResearchNode,
    ResearchProgress,
    ResearchRequest,
)

if TYPE_CHECKING:
    from .dispatcher import SearchDispatcher
    from .extractor import LearningExtractor
    from .query_planner import QueryPlanner

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[ResearchProgress], None]

CONTINUATION_TEMPLATE = """Previous research goal: {goal}
Follow-up research directions: {directions}"""


def continuation_query(research_goal: str, follow_up_questions: list[str]) -> str:
    """Build the topic of a child node from its parent query's goal and follow-ups."""
    return CONTINUATION_TEMPLATE.format(
        goal=research_goal,
        directions="\n".join(follow_up_questions),
    )


def child_breadth(breadth: int) -> int:
    """Breadth of the next level: halved, rounded down, never below 1."""
    return max(1, breadth // 2)


class ResearchEngine:
    """
    Runs one recursive research invocation.

    Usage:
        engine = ResearchEngine(planner, dispatcher, extractor)
        result = await engine.research(ResearchRequest("solid-state batteries"))
    """

    def __init__(
        self,
        planner: QueryPlanner,
        dispatcher: SearchDispatcher,
        extractor: LearningExtractor,
        num_learnings: int = 3,
        max_breadth: int | None = None,
        max_depth: int | None = None,
    ):
        """
        Initialize the engine.

        Args:
            planner: Query planner
            dispatcher: Search dispatcher
            extractor: Learning extractor
            num_learnings: Learnings requested per query
            max_breadth: Optional upper bound enforced on requests
            max_depth: Optional upper bound enforced on requests
        """
        self.planner = planner
        self.dispatcher = dispatcher
        self.extractor = extractor
        self.num_learnings = num_learnings
        self.max_breadth = max_breadth
        self.max_depth = max_depth

    async def research(
        self,
        request: ResearchRequest,
        accumulated: BranchResult | None = None,
        on_progress: ProgressCallback | None = None,
        limiter: ConcurrencyLimiter | None = None,
    ) -> BranchResult:
        """
        Explore the research tree rooted at ``request.query``.

        Args:
            request: Research parameters
            accumulated: Learnings and URLs already known. Merged into the result;
                its learnings also seed the root planning prompt.
            on_progress: Optional callback receiving progress snapshots
            limiter: Limiter shared by every external call of this invocation.
                     Built from ``request.concurrency_limit`` when omitted.

        Returns:
            Union of every node's learnings and visited URLs

        Raises:
            RequestValidationError: If the request is invalid
        """
        request.validate(max_breadth=self.max_breadth, max_depth=self.max_depth)

        if limiter is None:
            limiter = ConcurrencyLimiter(request.concurrency_limit)
        progress = ResearchProgress(
            current_depth=request.depth,
            total_depth=request.depth,
            current_breadth=request.breadth,
            total_breadth=request.breadth,
        )

        result = accumulated or BranchResult()
        root = ResearchNode(
            query=request.query,
            breadth=request.breadth,
            depth=request.depth,
            seed_learnings=tuple(ordered(result.learnings)),
        )
        logger.info(
            f"Starting research: breadth={request.breadth}, depth={request.depth}, "
            f"concurrency={request.concurrency_limit}"
        )

        pending = {self._spawn(root, limiter, progress, on_progress)}
        try:
            while pending:
                done, pending = await asyncio.wait(pending, return_when=asyncio.FIRST_COMPLETED)
                for task in done:
                    contribution, children = task.result()
                    result = merge(result, contribution)
                    for child in children:
                        pending.add(self._spawn(child, limiter, progress, on_progress))
        except BaseException:
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise

        logger.info(
            f"Research complete: {len(result.learnings)} learnings, "
            f"{len(result.visited_urls)} URLs, peak concurrency {limiter.peak_in_flight}"
        )
        return result

    def _spawn(
        self,
        node: ResearchNode,
        limiter: ConcurrencyLimiter,
        progress: ResearchProgress,
        on_progress: ProgressCallback | None,
    ) -> asyncio.Task:
        return asyncio.create_task(
            self._process_node(node, limiter, progress, on_progress),
            name=f"research-node-{node.id}",
        )

    async def _process_node(
        self,
        node: ResearchNode,
        limiter: ConcurrencyLimiter,
        progress: ResearchProgress,
        on_progress: ProgressCallback | None,
    ) -> tuple[BranchResult, list[ResearchNode]]:
        logger.debug(f"Node {node.id}: depth={node.depth}, breadth={node.breadth}")

        try:
            queries = await self.planner.plan(
                node.query,
                prior_learnings=node.seed_learnings,
                num_queries=node.breadth,
                limiter=limiter,
            )
        except PlanningFailed as e:
            logger.warning(f"Node {node.id}: planning failed, branch is empty: {e}")
            return BranchResult(), []

        progress.total_queries += len(queries)
        self._report(
            progress,
            on_progress,
            current_depth=node.depth,
            current_breadth=node.breadth,
            current_query=queries[0].text if queries else None,
        )

        outcomes = await self.dispatcher.dispatch(queries, limiter)

        num_follow_ups = child_breadth(node.breadth)
        extractions = await asyncio.gather(
            *(
                self._extract(outcome, num_follow_ups, limiter, progress, on_progress, node)
                for outcome in outcomes
            )
        )

        learnings: list[str] = []
        urls: list[str] = []
        children: list[ResearchNode] = []
        for outcome, extraction in zip(outcomes, extractions):
            urls.extend(outcome.urls)
            learnings.extend(extraction.learnings)

            if node.is_terminal or not extraction.follow_up_questions:
                continue
            children.append(
                ResearchNode(
                    query=continuation_query(
                        outcome.query.research_goal, extraction.follow_up_questions
                    ),
                    breadth=num_follow_ups,
                    depth=node.depth - 1,
                    seed_learnings=node.seed_learnings + tuple(extraction.learnings),
                    parent_id=node.id,
                )
            )

        if children:
            logger.debug(f"Node {node.id}: scheduling {len(children)} child nodes")
        return BranchResult.of(learnings, urls), children

    async def _extract(
        self,
        outcome: DispatchOutcome,
        num_follow_ups: int,
        limiter: ConcurrencyLimiter,
        progress: ResearchProgress,
        on_progress: ProgressCallback | None,
        node: ResearchNode,
    ) -> ExtractionResult:
        extraction = ExtractionResult()
        if outcome.succeeded:
            try:
                extraction = await self.extractor.extract(
                    outcome.query,
                    outcome.documents,
                    num_learnings=self.num_learnings,
                    num_follow_ups=num_follow_ups,
                    limiter=limiter,
                )
            except GenerationError as e:
                logger.warning(f"Extraction failed for '{outcome.query.text}': {e}")

        progress.completed_queries += 1
        self._report(
            progress,
            on_progress,
            current_depth=node.depth,
            current_breadth=node.breadth,
            current_query=outcome.query.text,
        )
        return extraction

    @staticmethod
    def _report(
        progress: ResearchProgress,
        on_progress: ProgressCallback | None,
        **changes,
    ) -> None:
        for key, value in changes.items():
            setattr(progress, key, value)
        if on_progress is not None:
            on_progress(dataclasses.replace(progress))
