"""CLI entry point for CareerPath."""

import asyncio
import getpass
import sys
from contextlib import aclosing
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import click
from rich.console import Console
from rich.prompt import Prompt
from rich.table import Table

from careerpath import __version__
from careerpath.config import ConfigManager
from careerpath.models.career import CareerOutlook, InsufficientData
from careerpath.models.config import DEFAULT_CONFIG_PATH
from careerpath.services.completion_client import CompletionClient
from careerpath.services.context_assembler import ContextAssembler
from careerpath.services.entry_analyzer import EntryAnalyzer, JournalService
from careerpath.services.exceptions import PersistenceError
from careerpath.services.mentor import MentorSession
from careerpath.services.prediction_aggregator import PredictionAggregator
from careerpath.storage.local_cache import LocalCache
from careerpath.storage.store import SQLiteStore
from careerpath.utils.logging import configure_logging, get_logger


logger = get_logger(__name__)
console = Console()


@dataclass
class Services:
    """Service objects wired from one configuration."""

    client: CompletionClient
    journal: JournalService
    aggregator: PredictionAggregator
    assembler: ContextAssembler


def load_config(path: Optional[Path]) -> ConfigManager:
    """
    Load configuration, turning load errors into click errors.

    Raises:
        click.ClickException: If config is missing, has invalid permissions, or validation fails
    """
    try:
        return ConfigManager.load_from_path(path or DEFAULT_CONFIG_PATH)
    except (FileNotFoundError, PermissionError, ValueError) as e:
        raise click.ClickException(str(e))


def build_services(config: ConfigManager) -> Services:
    client = CompletionClient(config.llm)
    store = SQLiteStore(config.storage.database_path)
    cache = LocalCache(config.storage.cache_path)
    return Services(
        client=client,
        journal=JournalService(store, EntryAnalyzer(client)),
        aggregator=PredictionAggregator(client, store, cache, config.insights),
        assembler=ContextAssembler(store, config.insights),
    )


def render_outlook(outlook: CareerOutlook) -> None:
    if not outlook.predictions:
        console.print("[dim]Keep journaling to get predictions[/dim]")
    else:
        table = Table(title="Top Career Matches")
        table.add_column("#", justify="right")
        table.add_column("Career")
        table.add_column("Match", justify="right")
        table.add_column("Reasoning")
        table.add_column("Skills to develop")
        for i, prediction in enumerate(outlook.predictions, start=1):
            table.add_row(
                str(i),
                prediction.career_path,
                f"{prediction.confidence_score}%",
                prediction.reasoning,
                ", ".join(prediction.recommended_skills),
            )
        console.print(table)

        for prediction in outlook.predictions:
            for resource in prediction.learning_resources:
                console.print(
                    f"  • {resource.title} ({resource.type}) {resource.url}".rstrip(),
                    style="dim",
                )

    if outlook.avoidances:
        console.print("\n[bold red]Careers to Reconsider[/bold red]")
        for avoidance in outlook.avoidances:
            console.print(f"[red]- {avoidance.career_path}[/red]: {avoidance.reason}")


@click.group()
@click.version_option(version=__version__, prog_name="careerpath")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="Path to configuration file (default: ~/.config/careerpath/config.yaml)",
)
@click.option(
    "--user",
    "user_id",
    envvar="CAREERPATH_USER",
    default=lambda: getpass.getuser(),
    show_default="current login name",
    help="User id that owns the journal",
)
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], user_id: str):
    """CareerPath: journal, discover career paths, and talk to an AI mentor."""
    configure_logging()
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["user_id"] = user_id


def _services(ctx: click.Context) -> Services:
    if "services" not in ctx.obj:
        ctx.obj["services"] = build_services(load_config(ctx.obj["config_path"]))
    return ctx.obj["services"]


@cli.command()
@click.argument("content", required=False)
@click.option("--title", help="Entry title (default: Untitled Entry)")
@click.pass_context
def write(ctx: click.Context, content: Optional[str], title: Optional[str]):
    """
    Save and analyze a journal entry.

    Examples:
        careerpath write "Shipped the data pipeline today..."
        echo "..." | careerpath write --title "Monday"
        careerpath write            # opens $EDITOR
    """
    if content is None:
        content = sys.stdin.read() if not sys.stdin.isatty() else click.edit()
    if not content or not content.strip():
        raise click.ClickException("Please write something")

    services = _services(ctx)
    with console.status("Analyzing entry..."):
        try:
            entry = asyncio.run(services.journal.create_entry(ctx.obj["user_id"], content, title))
        except PersistenceError as e:
            logger.error("write_command_failed", error=str(e))
            raise click.ClickException(f"Error saving entry: {e}")

    console.print(f"[green]✓[/green] Saved [bold]{entry.title}[/bold] (mood {entry.mood_score}/10)")
    if entry.ai_summary:
        console.print(entry.ai_summary)
    if entry.detected_skills:
        console.print(f"[dim]Skills:[/dim] {', '.join(entry.detected_skills)}")
    if entry.detected_interests:
        console.print(f"[dim]Interests:[/dim] {', '.join(entry.detected_interests)}")


@cli.command()
@click.option("--limit", default=5, show_default=True, type=click.IntRange(1, 100))
@click.pass_context
def entries(ctx: click.Context, limit: int):
    """List recent journal entries."""
    recent = _services(ctx).journal.recent_entries(ctx.obj["user_id"], limit)
    if not recent:
        console.print("[dim]No entries yet. Start with: careerpath write[/dim]")
        return

    table = Table(title="Recent Entries")
    table.add_column("Date")
    table.add_column("Title")
    table.add_column("Mood", justify="right")
    table.add_column("Emotions")
    table.add_column("Summary")
    for entry in recent:
        table.add_row(
            entry.created_at.strftime("%Y-%m-%d %H:%M"),
            entry.title or "",
            f"{entry.mood_score}/10",
            ", ".join(entry.emotions),
            entry.ai_summary,
        )
    console.print(table)


@cli.command()
@click.option("--limit", default=30, show_default=True, type=click.IntRange(1, 365))
@click.pass_context
def mood(ctx: click.Context, limit: int):
    """Show the mood trend of recent entries."""
    history = _services(ctx).journal.mood_history(ctx.obj["user_id"], limit)
    if not history:
        console.print("[dim]No entries yet.[/dim]")
        return
    for created_at, score in history:
        console.print(f"{created_at.strftime('%Y-%m-%d')}  {'█' * score:<10} {score}")


@cli.command()
@click.pass_context
def predict(ctx: click.Context):
    """Generate fresh career predictions from recent entries."""
    services = _services(ctx)
    with console.status("Analyzing your journey..."):
        try:
            result = asyncio.run(services.aggregator.aggregate(ctx.obj["user_id"]))
        except PersistenceError as e:
            logger.error("predict_command_failed", error=str(e))
            raise click.ClickException(f"Failed to generate predictions: {e}")

    if isinstance(result, InsufficientData):
        console.print(f"[yellow]{result.message}[/yellow]")
        return

    render_outlook(services.aggregator.load_outlook(ctx.obj["user_id"]))


@cli.command()
@click.pass_context
def outlook(ctx: click.Context):
    """Show the current career predictions and careers to avoid."""
    render_outlook(_services(ctx).aggregator.load_outlook(ctx.obj["user_id"]))


async def _chat_loop(session: MentorSession, token: Optional[str]) -> None:
    pending_input = ""
    while True:
        prompt_kwargs = {"default": pending_input} if pending_input else {}
        try:
            text = Prompt.ask("[bold cyan]you[/bold cyan]", console=console, **prompt_kwargs)
        except (EOFError, KeyboardInterrupt):
            console.print()
            return
        pending_input = ""
        if text.strip() in ("/quit", "/exit"):
            return
        if not text.strip():
            continue

        console.print("[bold magenta]mentor[/bold magenta] ", end="")
        async with aclosing(session.stream_turn(text, credential=token)) as turn:
            async for event in turn:
                if event.type == "delta":
                    console.print(event.content, end="", markup=False, highlight=False)
                elif event.type == "error":
                    console.print(f"[red]{event.message}[/red]")
                    pending_input = event.restored_input or ""
                else:
                    console.print()


@cli.command()
@click.option("--name", "user_name", help="Name the mentor should address you by")
@click.option(
    "--token",
    envvar="CAREERPATH_TOKEN",
    help="Session bearer token (or set CAREERPATH_TOKEN)",
)
@click.pass_context
def chat(ctx: click.Context, user_name: Optional[str], token: Optional[str]):
    """Talk to the AI career mentor. Type /quit to leave."""
    services = _services(ctx)
    session = MentorSession(
        services.client,
        services.assembler,
        user_id=ctx.obj["user_id"],
        user_name=user_name,
    )
    console.print("[dim]Ask me anything about your career journey![/dim]")
    asyncio.run(_chat_loop(session, token))


def main():
    cli(obj={})


if __name__ == "__main__":
    main()
