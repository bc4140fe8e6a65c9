"""Convenience functions for structured LLM completions."""

from __future__ import annotations

import contextlib
import logging
from typing import TYPE_CHECKING

from ..exceptions import GenerationError
from .protocols import LLMProvider, SchemaT

if TYPE_CHECKING:
    from ..orchestration.limiter import ConcurrencyLimiter

logger = logging.getLogger(__name__)


async def generate_structured(
    provider: LLMProvider,
    prompt: str,
    schema: type[SchemaT],
    system_prompt: str | None = None,
    limiter: ConcurrencyLimiter | None = None,
) -> SchemaT:
    """
    Generate a schema-conformant object, holding a limiter slot for the call.

    Args:
        provider: LLM provider to call
        prompt: The user prompt
        schema: Pydantic model describing the expected output
        system_prompt: Optional system prompt
        limiter: Optional shared concurrency limiter

    Returns:
        A validated instance of ``schema``

    Raises:
        GenerationError: For any provider failure

    Example:
        plan = await generate_structured(llm, prompt, QueryPlanOutput, limiter=limiter)
    """
    slot = limiter if limiter is not None else contextlib.nullcontext()

    async with slot:
        try:
            return await provider.generate(
                prompt=prompt,
                schema=schema,
                system_prompt=system_prompt,
            )
        except GenerationError:
            raise
        except Exception as e:
            logger.debug(f"Provider raised {type(e).__name__} for {schema.__name__}")
            raise GenerationError(f"Generation of {schema.__name__} failed: {e}") from e
