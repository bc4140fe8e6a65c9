"""Token estimation for keeping prompts inside a model's context window."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    import tiktoken

logger = logging.getLogger(__name__)


class ContextEstimator:
    """
    Estimates how many tokens a piece of text will consume.

    Two modes:
    - tiktoken: exact counts with a named encoding (default ``o200k_base``)
    - heuristic: ``len(text) / chars_per_token``, no tokenizer download needed
    """

    def __init__(
        self,
        use_tiktoken: bool = True,
        encoding_name: str = "o200k_base",
        chars_per_token: float = 4.0,
    ):
        """
        Initialize the estimator.

        Args:
            use_tiktoken: Whether to use tiktoken for accurate counting
            encoding_name: tiktoken encoding to load
            chars_per_token: Average characters per token for the heuristic
        """
        if chars_per_token <= 0:
            raise ValueError("chars_per_token must be positive")

        self.use_tiktoken = use_tiktoken
        self.encoding_name = encoding_name
        self.chars_per_token = chars_per_token
        self._encoding: tiktoken.Encoding | None = None

    @property
    def encoding(self) -> tiktoken.Encoding:
        if self._encoding is None:
            import tiktoken

            self._encoding = tiktoken.get_encoding(self.encoding_name)
            logger.debug(f"Loaded tiktoken encoding: {self.encoding_name}")
        return self._encoding

    def count_tokens(self, text: str) -> int:
        """
        Count (or estimate) the tokens in a text.

        Args:
            text: Text to measure

        Returns:
            Number of tokens
        """
        if not text:
            return 0

        if self.use_tiktoken:
            return len(self.encoding.encode(text, disallowed_special=()))

        return int(len(text) / self.chars_per_token + 0.5)

    def fits(self, text: str, token_budget: int) -> bool:
        """Check whether a text fits in a token budget."""
        return self.count_tokens(text) <= token_budget
