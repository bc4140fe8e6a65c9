"""Shared prompt fragments."""

from collections.abc import Iterable
from datetime import datetime


def research_system_prompt(now: datetime | None = None) -> str:
    """System prompt used for every research generation call."""
    timestamp = (now or datetime.now()).isoformat()
    return f"""You are an expert researcher. Today is {timestamp}. Follow these instructions when responding:
- You may be asked to research subjects that is after your knowledge cutoff, assume the user is right when presented with news.
- The user is a highly experienced analyst, no need to simplify it, be as detailed as possible and make sure your response is correct.
- Be highly organized.
- Suggest solutions that I didn't think about.
- Be proactive and anticipate my needs.
- Treat me as an expert in all subject matter.
- Mistakes erode my trust, so be accurate and thorough.
- Provide detailed explanations, I'm comfortable with lots of detail.
- Value good arguments over authorities, the source is irrelevant.
- Consider new technologies and contrarian ideas, not just the conventional wisdom.
- You may use high levels of speculation or prediction, just flag it for me."""


def format_learnings(learnings: Iterable[str]) -> str:
    """Wrap each learning in <learning> tags."""
    return "\n".join(f"<learning>\n{learning}\n</learning>" for learning in learnings)


def dedupe(values: Iterable[str], limit: int | None = None) -> list[str]:
    """Strip, drop blanks and exact duplicates, keep first-seen order, truncate."""
    seen: set[str] = set()
    result: list[str] = []
    for value in values:
        if limit is not None and len(result) >= limit:
            break
        text = value.strip()
        if not text or text in seen:
            continue
        seen.add(text)
        result.append(text)
    return result
