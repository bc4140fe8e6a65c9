"""Recursive research orchestration.

Layers, bottom-up:
- QueryPlanner, SearchDispatcher, LearningExtractor: per-node steps
- ResearchEngine: explores the tree under one shared ConcurrencyLimiter
- Synthesizer, FeedbackGenerator: final report/answer and clarifying questions
- ResearchSession: wires configured providers together
"""

from .models import (
    ResearchRequest,
    SearchQuery,
    BranchResult,
    ResearchNode,
    DispatchOutcome,
    ExtractionResult,
    ResearchProgress,
    ResearchResult,
)
from .aggregator import merge, merge_all
from .limiter import ConcurrencyLimiter
from .query_planner import QueryPlanner
from .dispatcher import SearchDispatcher
from .extractor import LearningExtractor
from .engine import ResearchEngine, continuation_query, child_breadth
from .synthesizer import Synthesizer
from .feedback import FeedbackGenerator, combine_query_with_feedback
from .session import ResearchSession

__all__ = [
    # Models
    "ResearchRequest",
    "SearchQuery",
    "BranchResult",
    "ResearchNode",
    "DispatchOutcome",
    "ExtractionResult",
    "ResearchProgress",
    "ResearchResult",
    # Aggregation
    "merge",
    "merge_all",
    # Components
    "ConcurrencyLimiter",
    "QueryPlanner",
    "SearchDispatcher",
    "LearningExtractor",
    "ResearchEngine",
    "continuation_query",
    "child_breadth",
    "Synthesizer",
    "FeedbackGenerator",
    "combine_query_with_feedback",
    # Session
    "ResearchSession",
]
