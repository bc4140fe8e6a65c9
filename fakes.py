"""
Scripted fakes for the generator and search protocols.

Used by the test modules to drive the research pipeline deterministically
and to observe how many external calls are in flight at once.
"""

import asyncio
import re

from deep_research.search import RetrievedDocument


def tag(prompt: str, name: str) -> str:
    """Return the text inside <name>...</name> in a prompt."""
    match = re.search(rf"<{name}>(.*?)</{name}>", prompt, re.DOTALL)
    return match.group(1).strip() if match else ""


def doc(url: str, content: str = "Some page content.") -> RetrievedDocument:
    return RetrievedDocument(url=url, content=content)


class InFlightCounter:
    """Tracks simultaneous calls across every fake sharing it."""

    def __init__(self):
        self.current = 0
        self.peak = 0

    def enter(self):
        self.current += 1
        self.peak = max(self.peak, self.current)

    def exit(self):
        self.current -= 1


class ScriptedGenerator:
    """
    Fake structured generator.

    ``handlers`` maps a schema class to either an instance to return, an
    exception to raise, or a callable taking the prompt and returning one
    of those.
    """

    def __init__(self, handlers, delay: float = 0.0, counter: InFlightCounter | None = None):
        self.handlers = handlers
        self.delay = delay
        self.counter = counter
        self.calls: list[tuple[str, str]] = []

    def calls_for(self, schema) -> list[str]:
        return [prompt for name, prompt in self.calls if name == schema.__name__]

    async def generate(self, prompt, schema, system_prompt=None, temperature=None):
        self.calls.append((schema.__name__, prompt))
        if self.counter:
            self.counter.enter()
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            handler = self.handlers[schema]
            result = handler(prompt) if callable(handler) and not isinstance(handler, type) else handler
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            if self.counter:
                self.counter.exit()


class ScriptedSearch:
    """
    Fake search provider.

    ``results`` maps a query to a list of documents or an exception to
    raise; unknown queries return ``default`` (no documents unless given).
    """

    def __init__(
        self,
        results=None,
        default=None,
        delay: float = 0.0,
        delays=None,
        counter: InFlightCounter | None = None,
    ):
        self.results = results or {}
        self.default = default or []
        self.delay = delay
        self.delays = delays or {}
        self.counter = counter
        self.queries: list[str] = []

    async def search(self, query, timeout_ms=15000, max_results=5):
        self.queries.append(query)
        if self.counter:
            self.counter.enter()
        try:
            delay = self.delays.get(query, self.delay)
            if delay:
                await asyncio.sleep(delay)
            result = self.results.get(query, self.default)
            if isinstance(result, Exception):
                raise result
            return list(result)[:max_results]
        finally:
            if self.counter:
                self.counter.exit()
