"""Context-window management: token estimation and text chunking."""

from .estimator import ContextEstimator
from .splitter import (
    Chunk,
    TextSplitter,
    DEFAULT_SEPARATORS,
    MIN_CHUNK_SIZE,
    split,
    trim_to_fit,
)

__all__ = [
    "ContextEstimator",
    "Chunk",
    "TextSplitter",
    "DEFAULT_SEPARATORS",
    "MIN_CHUNK_SIZE",
    "split",
    "trim_to_fit",
]
