#!/usr/bin/env python3
"""Problem Radar - CLI Entry Point.

Find recurring workflow problems on Reddit and turn them into ranked ideas.
"""

import logging
import sys
from datetime import datetime


# Check for required dependencies
def check_dependencies():
    """Check if required dependencies are installed."""
    missing = []

    try:
        import click
    except ImportError:
        missing.append("click")

    try:
        import rich
    except ImportError:
        missing.append("rich")

    try:
        import yaml
    except ImportError:
        missing.append("pyyaml")

    try:
        from dotenv import load_dotenv
    except ImportError:
        missing.append("python-dotenv")

    if missing:
        print("Missing required dependencies:")
        for dep in missing:
            print(f"  - {dep}")
        print("\nInstall them with:")
        print(f"  pip install {' '.join(missing)}")
        print("\nOr install the project:")
        print("  pip install -e .")
        sys.exit(1)


# Only import heavy dependencies after checking
check_dependencies()

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from problem_radar import __version__
from problem_radar.config import get_config, reload_config
from problem_radar.database import SORT_ORDERS, get_database
from problem_radar.llm_client import LLMClientError
from problem_radar.pipeline import (
    WINDOW_DAYS,
    PipelineError,
    ensure_ideas,
    ingest_posts,
    resolve_window_key,
)
from problem_radar.reddit_client import RedditClientError, get_reddit_client


console = Console()

SPARK_CHARS = "▁▂▃▄▅▆▇█"


def setup_logging(verbose: bool) -> None:
    """Configure root logging for CLI runs."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        force=True,
    )


def sparkline(values: list[int]) -> str:
    """Render weekly counts as a unicode sparkline."""
    if not values:
        return ""
    top = max(values)
    if top == 0:
        return SPARK_CHARS[0] * len(values)
    scale = len(SPARK_CHARS) - 1
    return "".join(SPARK_CHARS[round(v / top * scale)] for v in values)


def parse_subreddits(value: str | None) -> list[str] | None:
    if not value:
        return None
    return [s.strip().removeprefix("r/") for s in value.split(",") if s.strip()]


@click.group()
@click.version_option(version=__version__, prog_name="problem-radar")
@click.option("--config", "config_path", default=None, help="Path to a YAML config file")
@click.option("--verbose", "-v", is_flag=True, help="Verbose logging")
def cli(config_path: str | None, verbose: bool):
    """Problem Radar - Surface recurring workflow problems from Reddit."""
    setup_logging(verbose)
    if config_path:
        try:
            reload_config(config_path)
        except FileNotFoundError as e:
            console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)


@cli.command()
def init():
    """Initialize Problem Radar (create the database)."""
    console.print("[bold]Initializing Problem Radar...[/bold]\n")

    config = get_config()

    db = get_database()
    db.initialize()
    console.print(f"[green]✓[/green] Initialized database: {config.database.path}")

    if config.reddit.is_valid():
        console.print("[green]✓[/green] Reddit credentials configured")
    else:
        console.print("[yellow]![/yellow] Reddit credentials not set (set REDDIT_CLIENT_ID and REDDIT_CLIENT_SECRET)")

    if config.llm_credentials.has_key_for_provider(config.llm.provider):
        console.print(f"[green]✓[/green] LLM credentials configured ({config.llm.provider})")
    else:
        console.print(f"[yellow]![/yellow] LLM credentials not set for {config.llm.provider} (only needed for --llm)")


@cli.command()
@click.option("--subreddits", "-s", default=None, help="Comma-separated subreddit list")
@click.option("--window", "-w", default=None, type=click.Choice(list(WINDOW_DAYS)), help="How far back to fetch")
def ingest(subreddits: str | None, window: str | None):
    """Fetch new posts from Reddit into the database."""
    config = get_config()
    subreddit_list = parse_subreddits(subreddits) or config.collection.subreddits
    window_key, window_days = resolve_window_key(window or config.collection.window)

    console.print(f"\n[bold]Subreddits:[/bold] {', '.join(f'r/{s}' for s in subreddit_list)}")
    console.print(f"[bold]Window:[/bold] {window_key}\n")

    db = get_database()
    db.initialize()

    try:
        client = get_reddit_client()
    except (ImportError, RedditClientError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
    ) as progress:
        task = progress.add_task(f"Fetching {len(subreddit_list)} subreddits...", total=None)
        posts = ingest_posts(
            db,
            config,
            subreddits=subreddit_list,
            window_days=window_days,
            client=client,
        )
        progress.update(task, description=f"[green]✓[/green] Fetched {len(posts)} posts")

    console.print(f"\n[green]Stored {len(posts)} posts[/green]")


@cli.command()
@click.option("--window", "-w", default=None, type=click.Choice(list(WINDOW_DAYS)), help="Analysis window")
@click.option("--llm", "use_llm", is_flag=True, help="Classify posts with the LLM instead of regex cues")
@click.option("--force", "-f", is_flag=True, help="Recompute even if cached ideas are fresh")
def analyze(window: str | None, use_llm: bool, force: bool):
    """Cluster stored posts into scored ideas."""
    config = get_config()
    window_key, window_days = resolve_window_key(window or config.collection.window)

    db = get_database()
    db.initialize()

    try:
        summary = ensure_ideas(
            db,
            window_days,
            config=config,
            force=force,
            use_llm=use_llm or config.llm.enabled,
        )
    except (ImportError, PipelineError, LLMClientError) as e:
        console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    if summary is None:
        console.print(f"[yellow]Ideas for {window_key} are still fresh. Use --force to recompute.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta", title=f"Analysis ({window_key})")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right")
    table.add_row("Posts in window", str(summary.posts_loaded))
    table.add_row("Relevant posts", str(summary.posts_relevant))
    table.add_row("Subreddits", str(summary.subreddits))
    table.add_row("Problem phrases", str(summary.phrases))
    table.add_row("Ideas", str(summary.ideas))
    table.add_row("Duration", f"{summary.duration_seconds:.1f}s")
    console.print(table)


@cli.command()
@click.option("--window", "-w", default=None, type=click.Choice(list(WINDOW_DAYS)), help="Analysis window")
@click.option("--sort", default="top", type=click.Choice(list(SORT_ORDERS)), help="Sort order")
@click.option("--top", "-n", default=20, type=int, help="Number of ideas to show")
def ideas(window: str | None, sort: str, top: int):
    """List stored ideas for a window."""
    config = get_config()
    window_key, window_days = resolve_window_key(window or config.collection.window)

    db = get_database()
    db.initialize()

    stored = db.load_ideas(window_days, sort=sort, limit=top)
    if not stored:
        console.print(f"[yellow]No ideas found for {window_key}. Run 'problem-radar analyze' first.[/yellow]")
        return

    table = Table(show_header=True, header_style="bold magenta", title=f"Ideas ({window_key}, {sort})")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Idea")
    table.add_column("Score", justify="right", style="green")
    table.add_column("Posts", justify="right")
    table.add_column("Subs", justify="right")
    table.add_column("Trend")
    table.add_column("Build")
    table.add_column("Worth")
    table.add_column("ID", style="dim")

    for rank, item in enumerate(stored, start=1):
        idea = item.idea
        details = item.details
        table.add_row(
            str(rank),
            idea.title,
            f"{idea.score:.2f}",
            str(idea.posts_count),
            str(idea.subs_count),
            sparkline(idea.trend),
            details.complexity_tier if details else "-",
            details.worth_estimate if details else "-",
            idea.idea_id,
        )

    console.print(table)


@cli.command()
@click.argument("idea_id")
def show(idea_id: str):
    """Show one idea with its synthesized details and posts."""
    db = get_database()
    db.initialize()

    stored = db.load_idea(idea_id)
    if stored is None:
        console.print(f"[red]Error:[/red] Idea not found: {idea_id}")
        sys.exit(1)

    idea = stored.idea
    details = stored.details

    lines = [
        f"[bold]Score:[/bold] {idea.score:.2f}   [bold]Posts:[/bold] {idea.posts_count}   "
        f"[bold]Subreddits:[/bold] {idea.subs_count}",
        f"[bold]Upvotes:[/bold] {idea.upvotes_sum}   [bold]Comments:[/bold] {idea.comments_sum}",
        f"[bold]Trend:[/bold] {sparkline(idea.trend)} (slope {idea.trend_slope:+.2f})",
        f"[bold]Keywords:[/bold] {', '.join(idea.top_keywords)}",
    ]
    if details:
        lines += [
            "",
            details.summary,
            "",
            f"[bold]Target users:[/bold] {details.target_users}",
            f"[bold]Job to be done:[/bold] {details.job_to_be_done}",
            f"[bold]Solution:[/bold] {details.solution}",
            f"[bold]Key features:[/bold] {'; '.join(details.key_features)}",
            f"[bold]Requirements:[/bold] {'; '.join(details.requirements)}",
            f"[bold]Complexity:[/bold] {details.complexity_tier} (~{details.predicted_effort_days} days)",
            f"[bold]Value:[/bold] {details.value_prop}",
            f"[bold]Worth:[/bold] {details.worth_estimate} - {details.monetization}",
            f"[bold]Risks:[/bold] {'; '.join(details.risks)}",
        ]

    console.print(Panel("\n".join(lines), title=idea.title, border_style="cyan"))

    if idea.posts:
        table = Table(show_header=True, header_style="bold magenta")
        table.add_column("Subreddit", style="cyan")
        table.add_column("Post")
        table.add_column("Up", justify="right")
        table.add_column("Cm", justify="right")
        table.add_column("Date", style="dim")
        for post in idea.posts:
            table.add_row(
                f"r/{post.subreddit}",
                post.title,
                str(post.upvotes),
                str(post.num_comments),
                datetime.fromtimestamp(post.created_utc).strftime("%Y-%m-%d"),
            )
        console.print(table)


@cli.command()
def stats():
    """Show database statistics."""
    db = get_database()
    db.initialize()

    counts = db.get_stats()

    console.print("\n[bold]Database Statistics[/bold]\n")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Table", style="cyan")
    table.add_column("Records", justify="right")

    for table_name, count in counts.items():
        table.add_row(table_name, str(count))

    console.print(table)


@cli.command()
def check():
    """Check configuration and credentials."""
    console.print("\n[bold]Configuration Check[/bold]\n")

    config = get_config()

    if config.reddit.is_valid():
        console.print("[green]✓[/green] Reddit credentials: Configured")
        try:
            reddit = get_reddit_client()
            reddit.verify_connection()
            console.print("[green]✓[/green] Reddit connection: Working")
        except (ImportError, RedditClientError) as e:
            console.print(f"[red]✗[/red] Reddit connection: {e}")
    else:
        console.print("[red]✗[/red] Reddit credentials: Not configured")

    provider = config.llm.provider
    if config.llm_credentials.has_key_for_provider(provider):
        console.print(f"[green]✓[/green] LLM credentials ({provider}): Configured")
    else:
        console.print(f"[yellow]![/yellow] LLM credentials ({provider}): Not configured (regex cues only)")

    try:
        db = get_database()
        db.initialize()
        console.print(f"[green]✓[/green] Database: {config.database.path}")
    except Exception as e:
        console.print(f"[red]✗[/red] Database: {e}")

    engine = config.engine
    console.print("\n[bold]Current Settings:[/bold]")
    console.print(f"  Window: {config.collection.window}")
    console.print(f"  Subreddits: {len(config.collection.subreddits)}")
    console.print(f"  Similarity threshold: {engine.similarity_threshold}")
    console.print(f"  Min posts per idea: {engine.min_cluster_posts}")
    console.print(f"  LLM: {config.llm.provider}/{config.llm.model} ({'on' if config.llm.enabled else 'off'})")


if __name__ == "__main__":
    cli()
