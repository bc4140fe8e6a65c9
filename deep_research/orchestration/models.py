"""Data models for the recursive research engine."""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from ..exceptions import RequestValidationError

if TYPE_CHECKING:
    from ..exceptions import DeepResearchError
    from ..search import RetrievedDocument


@dataclass(frozen=True)
class ResearchRequest:
    """Parameters of one research invocation."""

    query: str
    breadth: int = 4
    depth: int = 2
    concurrency_limit: int = 2

    def validate(
        self,
        max_breadth: int | None = None,
        max_depth: int | None = None,
    ) -> None:
        """
        Check the request before any work is done.

        Args:
            max_breadth: Optional upper bound for breadth
            max_depth: Optional upper bound for depth

        Raises:
            RequestValidationError: If any parameter is out of range
        """
        if not self.query or not self.query.strip():
            raise RequestValidationError("Research query must not be empty")
        if self.breadth < 1:
            raise RequestValidationError(f"breadth must be >= 1, got {self.breadth}")
        if self.depth < 0:
            raise RequestValidationError(f"depth must be >= 0, got {self.depth}")
        if self.concurrency_limit < 1:
            raise RequestValidationError(
                f"concurrency_limit must be >= 1, got {self.concurrency_limit}"
            )
        if max_breadth is not None and self.breadth > max_breadth:
            raise RequestValidationError(
                f"breadth {self.breadth} exceeds the configured maximum {max_breadth}"
            )
        if max_depth is not None and self.depth > max_depth:
            raise RequestValidationError(
                f"depth {self.depth} exceeds the configured maximum {max_depth}"
            )


@dataclass(frozen=True)
class SearchQuery:
    """A search query paired with the research goal it serves."""

    text: str
    research_goal: str = ""


@dataclass(frozen=True)
class BranchResult:
    """Deduplicated learnings and source URLs gathered by a branch."""

    learnings: frozenset[str] = field(default_factory=frozenset)
    visited_urls: frozenset[str] = field(default_factory=frozenset)

    @classmethod
    def of(cls, learnings=(), visited_urls=()) -> BranchResult:
        """Build a result from any iterables."""
        return cls(learnings=frozenset(learnings), visited_urls=frozenset(visited_urls))

    def merge(self, other: BranchResult) -> BranchResult:
        """Set union of both results. Commutative and associative."""
        return BranchResult(
            learnings=self.learnings | other.learnings,
            visited_urls=self.visited_urls | other.visited_urls,
        )

    @property
    def is_empty(self) -> bool:
        return not self.learnings and not self.visited_urls


@dataclass(frozen=True)
class ResearchNode:
    """One unit of work in the research tree."""

    query: str
    breadth: int
    depth: int
    seed_learnings: tuple[str, ...] = ()
    parent_id: str | None = None
    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])

    @property
    def is_terminal(self) -> bool:
        """Depth 0 nodes never spawn children."""
        return self.depth <= 0


@dataclass
class DispatchOutcome:
    """Result of running one search query."""

    query: SearchQuery
    documents: list[RetrievedDocument] | None = None
    error: DeepResearchError | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None and self.documents is not None

    @property
    def urls(self) -> list[str]:
        """URLs of the retrieved documents, in result order."""
        if not self.documents:
            return []
        return [doc.url for doc in self.documents if doc.url]


@dataclass
class ExtractionResult:
    """Learnings and follow-up questions distilled from one query's documents."""

    learnings: list[str] = field(default_factory=list)
    follow_up_questions: list[str] = field(default_factory=list)


@dataclass
class ResearchProgress:
    """Progress snapshot reported while the research tree is explored."""

    current_depth: int
    total_depth: int
    current_breadth: int
    total_breadth: int
    current_query: str | None = None
    total_queries: int = 0
    completed_queries: int = 0

    @property
    def fraction_complete(self) -> float:
        """Completed share of the queries planned so far (0-1)."""
        if self.total_queries == 0:
            return 0.0
        return self.completed_queries / self.total_queries


@dataclass
class ResearchResult:
    """Final output of a research run."""

    result: str
    learnings: list[str]
    visited_urls: list[str]
    output_mode: str = "report"

    def to_dict(self) -> dict:
        """Convert result to dictionary for serialization."""
        return {
            "result": self.result,
            "learnings": self.learnings,
            "visited_urls": self.visited_urls,
            "output_mode": self.output_mode,
        }
