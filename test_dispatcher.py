"""
Search Dispatcher Tests

Per-query failures are isolated, timeouts are enforced, and the shared
limiter bounds how many searches run at once.
"""

import asyncio

import pytest

from deep_research.exceptions import ConfigurationError, ProviderError, SearchTimeout
from deep_research.orchestration import ConcurrencyLimiter, SearchDispatcher, SearchQuery

from fakes import InFlightCounter, ScriptedSearch, doc


def _queries(*texts):
    return [SearchQuery(text) for text in texts]


def test_outcomes_follow_input_order():
    search = ScriptedSearch(
        {"a": [doc("https://a.example")], "b": [doc("https://b.example")]},
        delays={"a": 0.05},
    )
    dispatcher = SearchDispatcher(search)

    outcomes = asyncio.run(dispatcher.dispatch(_queries("a", "b"), ConcurrencyLimiter(2)))

    assert [o.query.text for o in outcomes] == ["a", "b"]
    assert outcomes[0].urls == ["https://a.example"]
    assert outcomes[1].urls == ["https://b.example"]


def test_failures_are_isolated():
    """One failing query never affects its siblings."""
    search = ScriptedSearch(
        {
            "ok": [doc("https://ok.example")],
            "broken": ProviderError("HTTP 500"),
            "slow": SearchTimeout("provider timeout"),
            "weird": ValueError("unexpected"),
        }
    )
    dispatcher = SearchDispatcher(search)

    outcomes = asyncio.run(
        dispatcher.dispatch(_queries("ok", "broken", "slow", "weird"), ConcurrencyLimiter(4))
    )

    ok, broken, slow, weird = outcomes
    assert ok.succeeded and ok.urls == ["https://ok.example"]
    assert not broken.succeeded and isinstance(broken.error, ProviderError)
    assert isinstance(slow.error, SearchTimeout)
    assert isinstance(weird.error, ProviderError)
    assert broken.urls == []


def test_slow_search_times_out():
    search = ScriptedSearch(
        {"slow": [doc("https://slow.example")], "fast": [doc("https://fast.example")]},
        delays={"slow": 5.0},
    )
    dispatcher = SearchDispatcher(search, timeout_ms=50)

    outcomes = asyncio.run(dispatcher.dispatch(_queries("slow", "fast"), ConcurrencyLimiter(2)))

    assert isinstance(outcomes[0].error, SearchTimeout)
    assert outcomes[1].succeeded


def test_limiter_bounds_concurrent_searches():
    counter = InFlightCounter()
    search = ScriptedSearch(delay=0.02, counter=counter)
    dispatcher = SearchDispatcher(search)
    limiter = ConcurrencyLimiter(2)

    outcomes = asyncio.run(dispatcher.dispatch(_queries(*"abcdefgh"), limiter))

    assert len(outcomes) == 8
    assert counter.peak == 2
    assert limiter.peak_in_flight == 2
    assert limiter.in_flight == 0


def test_max_results_is_passed_to_provider():
    search = ScriptedSearch({"q": [doc(f"https://{i}.example") for i in range(10)]})
    dispatcher = SearchDispatcher(search, max_results=3)

    outcomes = asyncio.run(dispatcher.dispatch(_queries("q"), ConcurrencyLimiter(1)))

    assert len(outcomes[0].documents) == 3


def test_empty_batch():
    dispatcher = SearchDispatcher(ScriptedSearch())
    assert asyncio.run(dispatcher.dispatch([], ConcurrencyLimiter(1))) == []


@pytest.mark.parametrize("limit", [0, -1])
def test_limiter_rejects_non_positive_limit(limit):
    with pytest.raises(ConfigurationError):
        ConcurrencyLimiter(limit)
