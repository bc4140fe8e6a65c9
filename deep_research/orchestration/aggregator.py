"""Aggregation of branch results across the research tree."""

from __future__ import annotations

from collections.abc import Iterable

from .models import BranchResult


def merge(a: BranchResult, b: BranchResult) -> BranchResult:
    """
    Merge two branch results by set union.

    Union is by value on learning text and URL string, so the operation is
    commutative and associative and branches may be merged in whatever
    order they complete.
    """
    return a.merge(b)


def merge_all(results: Iterable[BranchResult]) -> BranchResult:
    """Fold any number of branch results into one (empty input gives an empty result)."""
    merged = BranchResult()
    for result in results:
        merged = merged.merge(result)
    return merged


def ordered(values: Iterable[str]) -> list[str]:
    """Stable, deterministic list view of a deduplicated set."""
    return sorted(set(values))
