"""
Research Engine Tests

Drives the recursion controller with scripted generator and search fakes.
"""

import asyncio
import re

import pytest

from deep_research.context import ContextEstimator
from deep_research.exceptions import GenerationError, ProviderError, RequestValidationError
from deep_research.orchestration import (
    BranchResult,
    ConcurrencyLimiter,
    LearningExtractor,
    QueryPlanner,
    ResearchEngine,
    ResearchRequest,
    SearchDispatcher,
    child_breadth,
    continuation_query,
)
from deep_research.orchestration.schemas import ExtractionOutput, PlannedQuery, QueryPlanOutput

from fakes import InFlightCounter, ScriptedGenerator, ScriptedSearch, doc, tag


def _engine(generator, search, **kwargs) -> ResearchEngine:
    estimator = ContextEstimator(use_tiktoken=False)
    timeout_ms = kwargs.pop("timeout_ms", 15000)
    return ResearchEngine(
        planner=QueryPlanner(generator),
        dispatcher=SearchDispatcher(search, timeout_ms=timeout_ms),
        extractor=LearningExtractor(generator, estimator=estimator),
        **kwargs,
    )


def _meditation_plan(prompt: str) -> QueryPlanOutput:
    goal = re.search(r"Previous research goal: (\S+)", prompt)
    if goal:
        return QueryPlanOutput(
            queries=[PlannedQuery(query=f"deeper {goal.group(1)}", research_goal=f"{goal.group(1)}-next")]
        )
    return QueryPlanOutput(
        queries=[
            PlannedQuery(query="meditation stress", research_goal="stress-goal"),
            PlannedQuery(query="meditation focus", research_goal="focus-goal"),
        ]
    )


def _extraction(prompt: str) -> ExtractionOutput:
    query = tag(prompt, "query")
    return ExtractionOutput(
        learnings=[f"learning from {query}"],
        follow_up_questions=[f"what else about {query}?"],
    )


MEDITATION_RESULTS = {
    "meditation stress": [doc("https://stress.example"), doc("https://shared.example")],
    "meditation focus": [doc("https://focus.example"), doc("https://shared.example")],
    "deeper stress-goal": [doc("https://stress-deep.example")],
    "deeper focus-goal": [doc("https://focus-deep.example")],
}


def _meditation_stack(**search_kwargs):
    generator = ScriptedGenerator({QueryPlanOutput: _meditation_plan, ExtractionOutput: _extraction})
    search = ScriptedSearch(dict(MEDITATION_RESULTS, **search_kwargs.pop("results", {})), **search_kwargs)
    return generator, search


def test_breadth_two_depth_one_scenario():
    """Two top-level queries, one child branch each, URLs deduplicated."""
    generator, search = _meditation_stack()
    engine = _engine(generator, search)
    request = ResearchRequest("benefits of meditation", breadth=2, depth=1, concurrency_limit=2)

    result = asyncio.run(engine.research(request))

    top_level = [q for q in search.queries if not q.startswith("deeper")]
    assert sorted(top_level) == ["meditation focus", "meditation stress"]
    assert sorted(q for q in search.queries if q.startswith("deeper")) == [
        "deeper focus-goal",
        "deeper stress-goal",
    ]
    assert result.visited_urls == {
        "https://stress.example",
        "https://focus.example",
        "https://shared.example",
        "https://stress-deep.example",
        "https://focus-deep.example",
    }
    assert result.learnings == {
        "learning from meditation stress",
        "learning from meditation focus",
        "learning from deeper stress-goal",
        "learning from deeper focus-goal",
    }


def test_depth_zero_makes_no_recursive_calls():
    generator, search = _meditation_stack()
    engine = _engine(generator, search)

    result = asyncio.run(engine.research(ResearchRequest("benefits of meditation", breadth=2, depth=0)))

    assert len(generator.calls_for(QueryPlanOutput)) == 1
    assert sorted(search.queries) == ["meditation focus", "meditation stress"]
    assert result.learnings == {
        "learning from meditation stress",
        "learning from meditation focus",
    }


def test_child_prompt_carries_goal_follow_ups_and_learnings():
    generator, search = _meditation_stack()
    engine = _engine(generator, search)

    asyncio.run(engine.research(ResearchRequest("benefits of meditation", breadth=2, depth=1)))

    child_prompts = [p for p in generator.calls_for(QueryPlanOutput) if "Previous research goal" in p]
    assert len(child_prompts) == 2
    stress = next(p for p in child_prompts if "stress-goal" in p)
    assert "Follow-up research directions: what else about meditation stress?" in stress
    assert "<learning>\nlearning from meditation stress\n</learning>" in stress
    assert "maximum of 1 queries" in stress


def test_breadth_halves_per_level():
    generator = ScriptedGenerator(
        {
            QueryPlanOutput: lambda prompt: QueryPlanOutput(
                queries=[PlannedQuery(query=f"q{i} {len(prompt)}", research_goal="g") for i in range(8)]
            ),
            ExtractionOutput: _extraction,
        }
    )
    search = ScriptedSearch(default=[doc("https://x.example")])
    engine = _engine(generator, search)

    asyncio.run(engine.research(ResearchRequest("topic", breadth=4, depth=2, concurrency_limit=4)))

    counts = [int(re.search(r"maximum of (\d+) queries", p).group(1)) for p in generator.calls_for(QueryPlanOutput)]
    assert counts.count(4) == 1
    assert counts.count(2) == 4
    assert counts.count(1) == 8
    assert child_breadth(4) == 2 and child_breadth(3) == 1 and child_breadth(1) == 1


def test_queries_without_follow_ups_do_not_recurse():
    def extraction(prompt):
        query = tag(prompt, "query")
        follow_ups = ["more?"] if query == "meditation stress" else []
        return ExtractionOutput(learnings=[f"learning from {query}"], follow_up_questions=follow_ups)

    generator = ScriptedGenerator({QueryPlanOutput: _meditation_plan, ExtractionOutput: extraction})
    search = ScriptedSearch(MEDITATION_RESULTS)
    engine = _engine(generator, search)

    asyncio.run(engine.research(ResearchRequest("benefits of meditation", breadth=2, depth=1)))

    assert "deeper stress-goal" in search.queries
    assert "deeper focus-goal" not in search.queries


def test_search_timeout_is_isolated_to_its_branch():
    """A timed-out query contributes nothing; its sibling branch completes."""
    generator, search = _meditation_stack(delays={"meditation focus": 5.0})
    engine = _engine(generator, search, timeout_ms=100)

    result = asyncio.run(engine.research(ResearchRequest("benefits of meditation", breadth=2, depth=1)))

    assert "https://focus.example" not in result.visited_urls
    assert "deeper focus-goal" not in search.queries
    assert result.learnings == {
        "learning from meditation stress",
        "learning from deeper stress-goal",
    }


def test_provider_error_is_isolated_to_its_branch():
    generator, search = _meditation_stack(results={"meditation focus": ProviderError("HTTP 502")})
    engine = _engine(generator, search)

    result = asyncio.run(engine.research(ResearchRequest("benefits of meditation", breadth=2, depth=1)))

    assert "learning from meditation stress" in result.learnings
    assert "learning from deeper stress-goal" in result.learnings
    assert not any("focus" in learning for learning in result.learnings)


def test_extraction_failure_keeps_urls_and_siblings():
    def extraction(prompt):
        if tag(prompt, "query") == "meditation focus":
            return GenerationError("schema mismatch")
        return _extraction(prompt)

    generator = ScriptedGenerator({QueryPlanOutput: _meditation_plan, ExtractionOutput: extraction})
    search = ScriptedSearch(MEDITATION_RESULTS)
    engine = _engine(generator, search)

    result = asyncio.run(engine.research(ResearchRequest("benefits of meditation", breadth=2, depth=1)))

    assert "https://focus.example" in result.visited_urls
    assert "deeper focus-goal" not in search.queries
    assert "learning from deeper stress-goal" in result.learnings


def test_root_planning_failure_returns_empty_result():
    generator = ScriptedGenerator({QueryPlanOutput: GenerationError("down")})
    search = ScriptedSearch()
    engine = _engine(generator, search)

    result = asyncio.run(engine.research(ResearchRequest("topic", breadth=2, depth=2)))

    assert result == BranchResult()
    assert search.queries == []


def test_child_planning_failure_keeps_parent_results():
    def plan(prompt):
        if "Previous research goal" in prompt:
            return GenerationError("down")
        return _meditation_plan(prompt)

    generator = ScriptedGenerator({QueryPlanOutput: plan, ExtractionOutput: _extraction})
    engine = _engine(generator, ScriptedSearch(MEDITATION_RESULTS))

    result = asyncio.run(engine.research(ResearchRequest("benefits of meditation", breadth=2, depth=1)))

    assert result.learnings == {
        "learning from meditation stress",
        "learning from meditation focus",
    }


def test_concurrency_bound_holds_across_the_tree():
    """Planning, search and extraction calls share one limiter."""
    counter = InFlightCounter()
    generator = ScriptedGenerator(
        {
            QueryPlanOutput: lambda prompt: QueryPlanOutput(
                queries=[PlannedQuery(query=f"q{i} {hash(prompt)}", research_goal=f"g{i}") for i in range(4)]
            ),
            ExtractionOutput: _extraction,
        },
        delay=0.005,
        counter=counter,
    )
    search = ScriptedSearch(default=[doc("https://x.example")], delay=0.005, counter=counter)
    engine = _engine(generator, search)
    limiter = ConcurrencyLimiter(2)

    asyncio.run(
        engine.research(ResearchRequest("topic", breadth=4, depth=2, concurrency_limit=2), limiter=limiter)
    )

    assert len(search.queries) == 4 + 4 * 2 + 8 * 1
    assert counter.peak <= 2
    assert limiter.peak_in_flight <= 2
    assert limiter.in_flight == 0


def test_concurrent_invocations_keep_separate_limiters():
    """Two research calls on one engine each respect their own bound."""
    generator, search = _meditation_stack(delay=0.005)
    engine = _engine(generator, search)
    first, second = ConcurrencyLimiter(1), ConcurrencyLimiter(1)

    async def both():
        return await asyncio.gather(
            engine.research(ResearchRequest("benefits of meditation", breadth=2, depth=1), limiter=first),
            engine.research(ResearchRequest("benefits of meditation", breadth=2, depth=1), limiter=second),
        )

    left, right = asyncio.run(both())

    assert left == right
    assert first.peak_in_flight == 1
    assert second.peak_in_flight == 1
    assert first.in_flight == second.in_flight == 0


def test_accumulated_result_is_merged():
    generator, search = _meditation_stack()
    engine = _engine(generator, search)
    known = BranchResult.of(["already known"], ["https://known.example"])

    result = asyncio.run(
        engine.research(ResearchRequest("benefits of meditation", breadth=2, depth=0), accumulated=known)
    )

    assert "already known" in result.learnings
    assert "https://known.example" in result.visited_urls


def test_accumulated_learnings_seed_root_planning():
    generator, search = _meditation_stack()
    engine = _engine(generator, search)
    known = BranchResult.of(["zinc is known", "already known fact"], [])

    asyncio.run(engine.research(ResearchRequest("topic", breadth=1, depth=0), accumulated=known))

    root_prompt = generator.calls_for(QueryPlanOutput)[0]
    assert "<learning>\nalready known fact\n</learning>" in root_prompt
    assert root_prompt.index("already known fact") < root_prompt.index("zinc is known")


def test_progress_reports_reach_completion():
    generator, search = _meditation_stack()
    engine = _engine(generator, search)
    snapshots = []

    asyncio.run(
        engine.research(
            ResearchRequest("benefits of meditation", breadth=2, depth=1),
            on_progress=snapshots.append,
        )
    )

    assert snapshots
    final = snapshots[-1]
    assert final.total_depth == 1
    assert final.total_breadth == 2
    assert final.total_queries == 4
    assert final.completed_queries == 4
    assert final.fraction_complete == 1.0


def test_unexpected_error_propagates():
    generator, search = _meditation_stack()
    engine = _engine(generator, search)

    def failing_callback(progress):
        raise RuntimeError("display crashed")

    with pytest.raises(RuntimeError, match="display crashed"):
        asyncio.run(
            engine.research(
                ResearchRequest("benefits of meditation", breadth=2, depth=1),
                on_progress=failing_callback,
            )
        )


@pytest.mark.parametrize(
    "request_",
    [
        ResearchRequest("", breadth=2, depth=1),
        ResearchRequest("   ", breadth=2, depth=1),
        ResearchRequest("topic", breadth=0, depth=1),
        ResearchRequest("topic", breadth=2, depth=-1),
        ResearchRequest("topic", breadth=2, depth=1, concurrency_limit=0),
    ],
)
def test_invalid_requests_fail_before_any_work(request_):
    generator, search = _meditation_stack()
    engine = _engine(generator, search)

    with pytest.raises(RequestValidationError):
        asyncio.run(engine.research(request_))

    assert generator.calls == []
    assert search.queries == []


def test_configured_bounds_are_enforced():
    generator, search = _meditation_stack()
    engine = _engine(generator, search, max_breadth=3, max_depth=1)

    with pytest.raises(RequestValidationError):
        asyncio.run(engine.research(ResearchRequest("topic", breadth=4, depth=1)))
    with pytest.raises(RequestValidationError):
        asyncio.run(engine.research(ResearchRequest("topic", breadth=2, depth=2)))


def test_continuation_query_format():
    text = continuation_query("understand X", ["What about Y?", "And Z?"])

    assert text == "Previous research goal: understand X\nFollow-up research directions: What about Y?\nAnd Z?"
