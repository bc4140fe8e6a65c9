"""Command-line interface for the deep research agent."""

import asyncio
import json
from pathlib import Path
from typing import Annotated

import typer

from .config.loader import list_profiles, load_config
from .exceptions import DeepResearchError
from .orchestration import ResearchProgress, ResearchSession, combine_query_with_feedback

app = typer.Typer(
    name="deep-research",
    help="Iterative deep research agent: search, learn, dig deeper, report.",
    add_completion=False,
)


def _print_progress(progress: ResearchProgress) -> None:
    typer.echo(
        f"[depth {progress.current_depth}/{progress.total_depth}, "
        f"breadth {progress.current_breadth}/{progress.total_breadth}] "
        f"{progress.completed_queries}/{progress.total_queries} queries"
        + (f" | {progress.current_query}" if progress.current_query else ""),
        err=True,
    )


@app.command()
def research(
    topic: Annotated[str, typer.Argument(help="What would you like to research?")],
    breadth: Annotated[
        int,
        typer.Option("--breadth", "-b", help="Queries at the first level (halves at each level)"),
    ] = None,
    depth: Annotated[
        int,
        typer.Option("--depth", "-d", help="Recursion levels below the first"),
    ] = None,
    mode: Annotated[
        str,
        typer.Option("--mode", "-m", help="Output mode: report or answer"),
    ] = "report",
    concurrency: Annotated[
        int,
        typer.Option("--concurrency", help="Maximum in-flight search/generation calls"),
    ] = None,
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile (see 'profiles')"),
    ] = None,
    output: Annotated[
        Path,
        typer.Option("--output", "-o", help="Write the result to this file"),
    ] = None,
    interactive: Annotated[
        bool,
        typer.Option("--interactive", "-i", help="Answer clarifying questions before researching"),
    ] = False,
    output_format: Annotated[
        str,
        typer.Option("--format", "-f", help="Output format: text or json"),
    ] = "text",
):
    """
    Research a topic and write a report or a short answer.

    Examples:

        # Default breadth 4, depth 2, markdown report on stdout
        deep-research research "Recent advances in perovskite solar cells"

        # Narrow and shallow, short answer
        deep-research research "Who won the 2024 Tour de France?" -b 2 -d 0 --mode answer

        # Clarify the topic first, save the report
        deep-research research "EU AI regulation" --interactive -o report.md

        # Offline run with canned responses
        deep-research research "anything" --profile test
    """
    if mode not in ("report", "answer"):
        typer.echo("Error: Mode must be one of: report, answer", err=True)
        raise typer.Exit(1)

    if output_format not in ("text", "json"):
        typer.echo("Error: Format must be one of: text, json", err=True)
        raise typer.Exit(1)

    try:
        asyncio.run(_research_async(
            topic=topic,
            breadth=breadth,
            depth=depth,
            mode=mode,
            concurrency=concurrency,
            profile=profile,
            output=output,
            interactive=interactive,
            output_format=output_format,
        ))
    except DeepResearchError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)


async def _ask(questions: list[str]) -> list[str]:
    """Prompt for each answer in a worker thread so the event loop keeps running."""
    answers = []
    for question in questions:
        answer = await asyncio.to_thread(typer.prompt, question, default="", show_default=False)
        answers.append(answer)
    return answers


async def _research_async(
    topic: str,
    breadth: int | None,
    depth: int | None,
    mode: str,
    concurrency: int | None,
    profile: str | None,
    output: Path | None,
    interactive: bool,
    output_format: str,
):
    """Async implementation of research."""
    config = load_config(profile)

    async with ResearchSession(config) as session:
        if interactive:
            questions = await session.feedback(topic)
            if questions:
                typer.echo("\nTo better understand your research needs, please answer these follow-up questions:\n", err=True)
            answers = await _ask(questions)
            topic = combine_query_with_feedback(topic, questions, answers)

        typer.echo("\nResearching your topic...\n", err=True)
        result = await session.run(
            topic,
            breadth=breadth,
            depth=depth,
            output_mode=mode,
            concurrency_limit=concurrency,
            on_progress=_print_progress,
        )

    if output_format == "json":
        text = json.dumps(result.to_dict(), indent=2)
    else:
        text = result.result

    if output:
        output.write_text(text)
        typer.echo(
            f"\nWrote {mode} to {output} "
            f"({len(result.learnings)} learnings, {len(result.visited_urls)} sources)",
            err=True,
        )
    else:
        typer.echo(text)


@app.command()
def feedback(
    query: Annotated[str, typer.Argument(help="Research query to clarify")],
    num_questions: Annotated[
        int,
        typer.Option("--num", "-n", help="Maximum number of questions"),
    ] = 3,
    profile: Annotated[
        str,
        typer.Option("--profile", "-p", help="Configuration profile"),
    ] = None,
):
    """Show the clarifying questions the agent would ask for a query."""
    try:
        questions = asyncio.run(_feedback_async(query, num_questions, profile))
    except DeepResearchError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1)

    if not questions:
        typer.echo("No clarifying questions needed.")
        return

    for i, question in enumerate(questions, 1):
        typer.echo(f"{i}. {question}")


async def _feedback_async(query: str, num_questions: int, profile: str | None) -> list[str]:
    config = load_config(profile)
    async with ResearchSession(config) as session:
        return await session.feedback(query, num_questions=num_questions)


@app.command()
def profiles():
    """List available configuration profiles."""
    typer.echo("Available profiles:\n")
    for name, profile in list_profiles().items():
        typer.echo(f"  {name}")
        typer.echo(f"    Generator: {profile.generator.backend} ({profile.generator.model or 'default model'})")
        typer.echo(f"    Search: {profile.search.backend}")
        typer.echo(
            f"    Research: breadth {profile.research.breadth}, depth {profile.research.depth}, "
            f"concurrency {profile.research.concurrency_limit}"
        )
        typer.echo()


def main():
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
