"""Protocol definitions for LLM providers."""

from typing import Protocol, TypeVar, runtime_checkable

from pydantic import BaseModel

SchemaT = TypeVar("SchemaT", bound=BaseModel)


@runtime_checkable
class LLMProvider(Protocol):
    """Protocol for structured-output LLM providers.

    Implement this protocol to add support for new LLM APIs. Every call
    names the pydantic model the output must conform to; providers never
    hand back free text for the caller to parse.
    """

    async def generate(
        self,
        prompt: str,
        schema: type[SchemaT],
        system_prompt: str | None = None,
        temperature: float | None = None,
    ) -> SchemaT:
        """
        Generate an object conforming to a schema.

        Args:
            prompt: The user prompt
            schema: Pydantic model describing the expected output
            system_prompt: Optional system prompt
            temperature: Optional sampling temperature override

        Returns:
            A validated instance of ``schema``

        Raises:
            GenerationError: If the call fails or the output does not conform
        """
        ...
