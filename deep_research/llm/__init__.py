"""LLM provider integrations with protocol-based adapter pattern."""

from .protocols import LLMProvider
from .adapters import OpenRouterAdapter, OpenAIAdapter, AnthropicAdapter, parse_structured
from .completion import generate_structured

__all__ = [
    # Protocols
    "LLMProvider",
    # Adapters
    "OpenRouterAdapter",
    "OpenAIAdapter",
    "AnthropicAdapter",
    "parse_structured",
    # Convenience functions
    "generate_structured",
]
