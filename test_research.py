"""
End-to-end Research Tests

Runs the full pipeline through ``run`` and ``ResearchSession`` with the
offline "test" profile and scripted providers.
"""

import asyncio

import pytest

from deep_research import ResearchSession, run
from deep_research.config import load_config
from deep_research.exceptions import GenerationError, RequestValidationError
from deep_research.orchestration.schemas import (
    AnswerOutput,
    ExtractionOutput,
    FeedbackOutput,
    PlannedQuery,
    QueryPlanOutput,
    ReportOutput,
)

from fakes import ScriptedGenerator, ScriptedSearch, doc, tag


def test_run_with_mock_profile():
    result = asyncio.run(run("benefits of green tea", breadth=2, depth=1, profile="test"))

    print(f"\nLearnings: {len(result.learnings)}, sources: {len(result.visited_urls)}")
    assert result.result.startswith("# Mock report")
    assert "## Sources" in result.result
    assert result.learnings
    assert result.visited_urls
    for url in result.visited_urls:
        assert f"- {url}" in result.result
    assert len(result.visited_urls) == len(set(result.visited_urls))


def test_run_answer_mode():
    result = asyncio.run(run("benefits of green tea", breadth=1, depth=0, output_mode="answer", profile="test"))

    assert result.result == "Mock answer"
    assert result.output_mode == "answer"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"topic": ""},
        {"topic": "   "},
        {"topic": "tea", "output_mode": "essay"},
        {"topic": "tea", "breadth": 0},
        {"topic": "tea", "depth": -1},
        {"topic": "tea", "concurrency_limit": 0},
    ],
)
def test_invalid_arguments_fail_before_any_work(kwargs):
    generator = ScriptedGenerator({})
    search = ScriptedSearch()

    async def attempt():
        async with ResearchSession(load_config("test"), generator=generator, search_provider=search) as session:
            await run(session=session, **kwargs)

    with pytest.raises(RequestValidationError):
        asyncio.run(attempt())

    assert generator.calls == []
    assert search.queries == []


def test_breadth_above_configured_maximum_rejected():
    with pytest.raises(RequestValidationError):
        asyncio.run(run("tea", breadth=50, depth=1, profile="test"))


def _scripted_generator(report=None):
    return ScriptedGenerator(
        {
            QueryPlanOutput: QueryPlanOutput(
                queries=[
                    PlannedQuery(query="tea antioxidants", research_goal="chemistry"),
                    PlannedQuery(query="tea and sleep", research_goal="sleep"),
                ]
            ),
            ExtractionOutput: lambda prompt: ExtractionOutput(learnings=[f"about {tag(prompt, 'query')}"]),
            ReportOutput: report or ReportOutput(report_markdown="# Tea"),
            AnswerOutput: AnswerOutput(exact_answer="EGCG"),
            FeedbackOutput: FeedbackOutput(questions=["Which kind of tea?"]),
        }
    )


def test_session_with_injected_providers():
    generator = _scripted_generator()
    search = ScriptedSearch(
        {
            "tea antioxidants": [doc("https://b.example"), doc("https://shared.example")],
            "tea and sleep": [doc("https://a.example"), doc("https://shared.example")],
        }
    )

    async def research():
        async with ResearchSession(load_config("test"), generator=generator, search_provider=search) as session:
            return await session.run("green tea", breadth=2, depth=0)

    result = asyncio.run(research())

    assert result.learnings == ["about tea and sleep", "about tea antioxidants"]
    assert result.visited_urls == ["https://a.example", "https://b.example", "https://shared.example"]
    assert result.result == (
        "# Tea\n\n## Sources\n\n"
        "- https://a.example\n- https://b.example\n- https://shared.example"
    )
    assert result.to_dict()["visited_urls"] == result.visited_urls


def test_failed_research_still_synthesizes():
    """Planning failure at the root gives an empty result, not an error."""
    generator = _scripted_generator()
    generator.handlers[QueryPlanOutput] = GenerationError("planner down")

    async def research():
        async with ResearchSession(load_config("test"), generator=generator, search_provider=ScriptedSearch()) as session:
            return await session.run("green tea", breadth=2, depth=1)

    result = asyncio.run(research())

    assert result.learnings == []
    assert result.visited_urls == []
    assert result.result.startswith("# Tea")


def test_synthesis_failure_is_fatal():
    generator = _scripted_generator(report=GenerationError("report failed"))
    search = ScriptedSearch({"tea antioxidants": [doc("https://b.example")]})

    async def research():
        async with ResearchSession(load_config("test"), generator=generator, search_provider=search) as session:
            return await session.run("green tea", breadth=2, depth=0)

    with pytest.raises(GenerationError):
        asyncio.run(research())


def test_session_feedback():
    generator = _scripted_generator()

    async def ask():
        async with ResearchSession(load_config("test"), generator=generator, search_provider=ScriptedSearch()) as session:
            return await session.feedback("green tea")

    assert asyncio.run(ask()) == ["Which kind of tea?"]


def test_session_requires_context_manager():
    session = ResearchSession(load_config("test"))

    with pytest.raises(RuntimeError):
        asyncio.run(session.run("tea"))


def test_empty_search_results_still_write_answer():
    """No documents anywhere: nothing is learned, but the answer is still written."""
    generator = _scripted_generator()

    async def research():
        async with ResearchSession(load_config("test"), generator=generator, search_provider=ScriptedSearch()) as session:
            return await session.run("green tea", breadth=2, depth=1, output_mode="answer")

    result = asyncio.run(research())

    assert result.learnings == []
    assert result.visited_urls == []
    assert result.result == "EGCG"
    assert generator.calls_for(ExtractionOutput) == []
    assert len(generator.calls_for(AnswerOutput)) == 1
    assert generator.calls_for(ReportOutput) == []
