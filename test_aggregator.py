"""
Result Aggregator Tests

Merging is set union by value, so the order in which branches finish must
not matter.
"""

from deep_research.orchestration import BranchResult, merge, merge_all


A = BranchResult.of(["alpha", "beta"], ["https://a.example", "https://shared.example"])
B = BranchResult.of(["beta", "gamma"], ["https://b.example", "https://shared.example"])
C = BranchResult.of(["delta"], [])


def test_merge_deduplicates_by_value():
    merged = merge(A, B)

    assert merged.learnings == {"alpha", "beta", "gamma"}
    assert merged.visited_urls == {
        "https://a.example",
        "https://b.example",
        "https://shared.example",
    }


def test_merge_is_commutative():
    assert merge(A, B) == merge(B, A)


def test_merge_is_associative():
    assert merge(merge(A, B), C) == merge(A, merge(B, C))


def test_merge_with_empty_is_identity():
    assert merge(A, BranchResult()) == A
    assert merge(BranchResult(), A) == A


def test_merge_all():
    assert merge_all([]) == BranchResult()
    assert merge_all([A, B, C]) == merge(merge(A, B), C)
    assert merge_all(iter([C, A])) == merge(A, C)


def test_merge_leaves_inputs_untouched():
    before = (set(A.learnings), set(A.visited_urls))
    merge(A, B)
    assert (set(A.learnings), set(A.visited_urls)) == before
