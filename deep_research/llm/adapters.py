"""Adapter implementations for LLM providers."""

import json
import logging

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from ..exceptions import ConfigurationError, GenerationError
from ..settings import (
    ANTHROPIC_API_KEY,
    ANTHROPIC_DEFAULT_MODEL,
    OPENAI_API_KEY,
    OPENAI_BASE_URL,
    OPENAI_DEFAULT_MODEL,
    OPENROUTER_API_KEY,
    OPENROUTER_BASE_URL,
    OPENROUTER_DEFAULT_MODEL,
)
from .protocols import LLMProvider, SchemaT

logger = logging.getLogger(__name__)


def parse_structured(content: str, schema: type[SchemaT]) -> SchemaT:
    """
    Validate a JSON response against a schema.

    Models sometimes wrap the object in prose or code fences, so if the raw
    text is not valid JSON the outermost ``{...}`` span is tried instead.

    Args:
        content: Raw model output
        schema: Pydantic model to validate against

    Returns:
        A validated schema instance

    Raises:
        GenerationError: If no conforming JSON object can be extracted
    """
    try:
        return schema.model_validate_json(content)
    except ValidationError:
        pass

    json_start = content.find("{")
    json_end = content.rfind("}") + 1
    if json_start == -1 or json_end <= json_start:
        raise GenerationError(f"No JSON object found in {schema.__name__} response")

    try:
        return schema.model_validate(json.loads(content[json_start:json_end]))
    except (json.JSONDecodeError, ValidationError) as e:
        raise GenerationError(f"Response does not match {schema.__name__}: {e}") from e


class OpenRouterAdapter(LLMProvider):
    """
    Adapter for OpenRouter API.

    OpenRouter provides access to many LLMs through an OpenAI-compatible API.
    Structured output is requested with a ``json_schema`` response format.

    Usage:
        async with OpenRouterAdapter() as llm:
            plan = await llm.generate("Plan queries for ...", QueryPlanOutput)
    """

    default_api_key: str | None = OPENROUTER_API_KEY
    default_base_url: str = OPENROUTER_BASE_URL
    default_model: str = OPENROUTER_DEFAULT_MODEL
    key_env_var: str = "OPENROUTER_API_KEY"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        base_url: str | None = None,
        temperature: float = 0.7,
        timeout: float = 120.0,
        max_retries: int = 2,
    ):
        """
        Initialize the adapter.

        Args:
            api_key: Optional API key. If not provided, uses the env var.
            model: Model to use. Defaults to the provider's default model.
            base_url: Override the API base URL
            temperature: Default sampling temperature
            timeout: Per-request timeout in seconds
            max_retries: Retries performed by the HTTP client itself
        """
        self.api_key = api_key or self.default_api_key
        self.model = model or self.default_model
        self.base_url = base_url or self.default_base_url
        self.temperature = temperature
        self.timeout = timeout
        self.max_retries = max_retries
        self._client: AsyncOpenAI | None = None

        if not self.api_key:
            raise ConfigurationError(
                f"{type(self).__name__} requires an API key. Set {self.key_env_var} in .env"
            )

        logger.info(f"{type(self).__name__} initialized with model: {self.model}")

    async def __aenter__(self) -> "OpenRouterAdapter":
        self._client = AsyncOpenAI(
            api_key=self.api_key,
            base_url=self.base_url,
            max_retries=self.max_retries,
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.close()
            self._client = None

    @property
    def client(self) -> AsyncOpenAI:
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    async def generate(
        self,
        prompt: str,
        schema: type[SchemaT],
        system_prompt: str | None = None,
        temperature: float | None = None,
    ) -> SchemaT:
        """Generate an object conforming to ``schema``."""
        messages: list[dict] = []

        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})

        messages.append({"role": "user", "content": prompt})

        logger.info(
            f"Generating {schema.__name__} ({len(prompt)} chars prompt) with {self.model}"
        )

        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=messages,
                temperature=self.temperature if temperature is None else temperature,
                response_format={
                    "type": "json_schema",
                    "json_schema": {
                        "name": schema.__name__,
                        "schema": schema.model_json_schema(),
                    },
                },
            )
        except OpenAIError as e:
            raise GenerationError(f"{self.model} request failed: {e}") from e

        if not response.choices:
            raise GenerationError(f"{self.model} returned no choices")

        content = response.choices[0].message.content or ""
        logger.debug(f"Usage: {response.usage}")

        return parse_structured(content, schema)


class OpenAIAdapter(OpenRouterAdapter):
    """
    Adapter for the OpenAI API or any self-hosted OpenAI-compatible endpoint.

    Usage:
        async with OpenAIAdapter(base_url="http://localhost:8000/v1") as llm:
            answer = await llm.generate("...", AnswerOutput)
    """

    default_api_key = OPENAI_API_KEY
    default_base_url = OPENAI_BASE_URL
    default_model = OPENAI_DEFAULT_MODEL
    key_env_var = "OPENAI_KEY"


class AnthropicAdapter(LLMProvider):
    """
    Adapter for Anthropic API (direct).

    Structured output is obtained by forcing a single tool call whose input
    schema is the requested pydantic model.

    Usage:
        async with AnthropicAdapter() as llm:
            plan = await llm.generate("Plan queries for ...", QueryPlanOutput)
    """

    tool_name = "record_output"

    def __init__(
        self,
        api_key: str | None = None,
        model: str | None = None,
        temperature: float = 0.7,
        max_tokens: int = 4096,
        timeout: float = 120.0,
        max_retries: int = 2,
    ):
        """
        Initialize the Anthropic adapter.

        Args:
            api_key: Optional API key. If not provided, uses ANTHROPIC_API_KEY env var.
            model: Model to use. Defaults to ANTHROPIC_DEFAULT_MODEL.
            temperature: Default sampling temperature
            max_tokens: Maximum tokens to generate
            timeout: Per-request timeout in seconds
            max_retries: Retries performed by the HTTP client itself
        """
        self.api_key = api_key or ANTHROPIC_API_KEY
        self.model = model or ANTHROPIC_DEFAULT_MODEL
        self.temperature = temperature
        self.max_tokens = max_tokens
        self.timeout = timeout
        self.max_retries = max_retries
        self._client = None

        if not self.api_key:
            raise ConfigurationError(
                "Anthropic API key required. Set ANTHROPIC_API_KEY in .env"
            )

        logger.info(f"Anthropic adapter initialized with model: {self.model}")

    async def __aenter__(self) -> "AnthropicAdapter":
        import anthropic

        self._client = anthropic.AsyncAnthropic(
            api_key=self.api_key,
            max_retries=self.max_retries,
            timeout=self.timeout,
        )
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        if self._client:
            await self._client.close()
            self._client = None

    @property
    def client(self):
        if self._client is None:
            raise RuntimeError(
                "Client not initialized. Use 'async with' context manager."
            )
        return self._client

    async def generate(
        self,
        prompt: str,
        schema: type[SchemaT],
        system_prompt: str | None = None,
        temperature: float | None = None,
    ) -> SchemaT:
        """Generate an object conforming to ``schema`` via forced tool use."""
        import anthropic

        tool = {
            "name": self.tool_name,
            "description": (schema.__doc__ or schema.__name__).strip(),
            "input_schema": schema.model_json_schema(),
        }

        logger.info(
            f"Generating {schema.__name__} ({len(prompt)} chars prompt) with {self.model}"
        )

        try:
            message = await self.client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=system_prompt or "",
                messages=[{"role": "user", "content": prompt}],
                tools=[tool],
                tool_choice={"type": "tool", "name": self.tool_name},
                temperature=self.temperature if temperature is None else temperature,
            )
        except anthropic.AnthropicError as e:
            raise GenerationError(f"{self.model} request failed: {e}") from e

        logger.debug(
            f"Usage: input={message.usage.input_tokens}, output={message.usage.output_tokens}"
        )

        for block in message.content:
            if block.type == "tool_use" and block.name == self.tool_name:
                try:
                    return schema.model_validate(block.input)
                except ValidationError as e:
                    raise GenerationError(
                        f"Tool input does not match {schema.__name__}: {e}"
                    ) from e

        raise GenerationError(
            f"{self.model} did not call {self.tool_name} (stop_reason={message.stop_reason})"
        )
