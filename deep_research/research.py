"""Top-level entry point for running deep research."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from .exceptions import RequestValidationError
from .orchestration.models import ResearchRequest
from .orchestration.session import OUTPUT_MODES, ResearchSession

if TYPE_CHECKING:
    from .config.loader import ProfileConfig
    from .orchestration.engine import ProgressCallback
    from .orchestration.models import ResearchResult

logger = logging.getLogger(__name__)


async def run(
    topic: str,
    breadth: int = 4,
    depth: int = 2,
    output_mode: str = "report",
    *,
    concurrency_limit: int | None = None,
    session: ResearchSession | None = None,
    profile: str | ProfileConfig | None = None,
    on_progress: ProgressCallback | None = None,
) -> ResearchResult:
    """
    Research a topic and synthesize a report or a short answer.

    Args:
        topic: The research question
        breadth: Number of queries at the root; halves at each level
        depth: Number of recursion levels below the root
        output_mode: "report" (markdown with sources) or "answer"
        concurrency_limit: Maximum in-flight external calls (profile default if None)
        session: An already-entered session to run in
        profile: Profile name or config used when no session is given
        on_progress: Optional progress callback

    Returns:
        ResearchResult

    Raises:
        RequestValidationError: If the topic or parameters are invalid
        ConfigurationError: If the profile cannot be built
        GenerationError: If final synthesis fails

    Example:
        result = await run("Impact of GLP-1 drugs on food retail", breadth=3, depth=1)
        print(result.result)
    """
    if not topic or not topic.strip():
        raise RequestValidationError("Research topic must not be empty")
    if output_mode not in OUTPUT_MODES:
        raise RequestValidationError(
            f"output_mode must be one of {', '.join(OUTPUT_MODES)}, got {output_mode!r}"
        )
    ResearchRequest(
        query=topic,
        breadth=breadth,
        depth=depth,
        concurrency_limit=1 if concurrency_limit is None else concurrency_limit,
    ).validate()
    logger.info(f"Research run: breadth={breadth}, depth={depth}, mode={output_mode}")

    if session is not None:
        return await session.run(
            topic,
            breadth=breadth,
            depth=depth,
            output_mode=output_mode,
            concurrency_limit=concurrency_limit,
            on_progress=on_progress,
        )

    from .config.loader import load_config

    config = profile if profile is not None and not isinstance(profile, str) else load_config(profile)

    async with ResearchSession(config) as owned_session:
        return await owned_session.run(
            topic,
            breadth=breadth,
            depth=depth,
            output_mode=output_mode,
            concurrency_limit=concurrency_limit,
            on_progress=on_progress,
        )
