#!/usr/bin/env python3
"""
Walltaker CLI Main Application

Typer-based command-line interface for running tag searches the way a
link would, inspecting compiled queries and showing the effective
configuration.
"""

import logging
from pathlib import Path
from typing import List, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from walltaker.cli import __version__
from walltaker.core.config import AppConfig, ConfigManager
from walltaker.core.events import EventEmitter, LoggingObserver
from walltaker.core.exceptions import WalltakerError
from walltaker.models import Capability, Link, Post
from walltaker.reactions import HistoryStore
from walltaker.search import QueryCompiler, TagSearchService, select_ttl


console = Console()

app = typer.Typer(
    name="walltaker",
    help="Tag search engine for walltaker links",
    context_settings={"help_option_names": ["-h", "--help"]},
    rich_markup_mode="rich",
    no_args_is_help=True,
)


def setup_logging(verbose: bool = False) -> None:
    """Set up logging configuration for the application."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def version_callback(value: bool):
    """Show version information."""
    if value:
        console.print(f"[bold cyan]walltaker[/bold cyan] version [green]{__version__}[/green]")
        raise typer.Exit()


@app.callback()
def app_callback(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        callback=version_callback,
        is_eager=True,
        help="Show version information and exit"
    ),
):
    """
    Search the imageboard the way a walltaker link does.

    [bold]Quick Start:[/bold]

    • Search as a link: [cyan]walltaker search "cat" --blacklist dog --min-score 50[/cyan]
    • Inspect a query: [cyan]walltaker compile "order:random" --theme winter[/cyan]
    • Past content of a link: [cyan]walltaker history 42 --history-db history.db[/cyan]
    • Show settings: [cyan]walltaker config[/cyan]
    """


def load_config(config_file: Optional[Path], verbose: bool, no_cache: bool = False) -> AppConfig:
    """Load configuration, exiting with a message when it is invalid."""
    try:
        return ConfigManager(config_file).load_config(
            {'verbose': verbose or None, 'no_cache': no_cache or None}
        )
    except WalltakerError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e.get_user_message()}")
        raise typer.Exit(2)


def build_link(
    global_search: bool,
    blacklist: str,
    theme: Optional[str],
    min_score: int,
    videos: bool,
    kinks: Optional[List[str]],
) -> Optional[Link]:
    """Build an ad-hoc link from command options, None for a global search."""
    if global_search:
        return None

    capabilities = set()
    if videos:
        capabilities.add(Capability.CAN_SHOW_VIDEOS)
    if kinks:
        capabilities.add(Capability.IS_KINK_ALIGNED)

    link = Link(
        id=0,
        user_id=0,
        blacklist=blacklist,
        theme=theme,
        min_score=min_score,
        capabilities=capabilities,
        kinks=list(kinks or []),
        never_expires=True,
    )

    errors = link.validation_errors()
    if errors:
        for error in errors:
            console.print(f"[bold red]Invalid link option:[/bold red] {error}")
        raise typer.Exit(2)

    return link


GlobalOption = typer.Option(False, "--global", help="Search without any link rules")
BlacklistOption = typer.Option("", "--blacklist", "-b", help="Space separated tags the link never shows")
ThemeOption = typer.Option(None, "--theme", "-t", help="Single tag added to every search")
MinScoreOption = typer.Option(0, "--min-score", min=0, max=300, help="Minimum post score")
VideosOption = typer.Option(False, "--videos", help="Allow animated and video posts")
KinkOption = typer.Option(None, "--kink", "-k", help="Preferred kink tag (repeatable)")


@app.command()
def search(
    tags: str = typer.Argument("", help="Tags to search for"),
    global_search: bool = GlobalOption,
    blacklist: str = BlacklistOption,
    theme: Optional[str] = ThemeOption,
    min_score: int = MinScoreOption,
    videos: bool = VideosOption,
    kink: Optional[List[str]] = KinkOption,
    after: Optional[str] = typer.Option(None, "--after", help="Page cursor for older posts"),
    before: Optional[str] = typer.Option(None, "--before", help="Page cursor for newer posts"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", min=1, help="Number of posts"),
    no_cache: bool = typer.Option(False, "--no-cache", help="Disable the result cache"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Run a search with a link's rules applied and list the posts."""
    setup_logging(verbose)
    config = load_config(config_file, verbose, no_cache)
    link = build_link(global_search, blacklist, theme, min_score, videos, kink)

    emitter = EventEmitter()
    if verbose:
        emitter.subscribe('*', LoggingObserver())

    with TagSearchService(config, emitter=emitter) as service:
        results = service.get_results(tags, after, before, link, limit)

    if results is None:
        console.print("[bold red]The search API is unavailable, try again later.[/bold red]")
        raise typer.Exit(1)

    if not results:
        console.print("[yellow]No posts found.[/yellow]")
        return

    table = Table(title=f"{len(results)} posts")
    table.add_column("ID", style="cyan", justify="right")
    table.add_column("Type")
    table.add_column("Score", justify="right")
    table.add_column("URL", overflow="fold")

    for raw in results:
        try:
            post = Post.from_raw(raw)
        except ValueError:
            continue
        table.add_row(str(post.id), post.file_ext, str(post.score), post.file_url or "")

    console.print(table)


@app.command("compile")
def compile_query(
    tags: str = typer.Argument("", help="Tags to compile"),
    global_search: bool = GlobalOption,
    blacklist: str = BlacklistOption,
    theme: Optional[str] = ThemeOption,
    min_score: int = MinScoreOption,
    videos: bool = VideosOption,
    kink: Optional[List[str]] = KinkOption,
    after: Optional[str] = typer.Option(None, "--after"),
    before: Optional[str] = typer.Option(None, "--before"),
    limit: Optional[int] = typer.Option(None, "--limit", "-l", min=1),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file"),
):
    """Show the tag string, cache key and cache lifetime for a search."""
    config = load_config(config_file, verbose=False)
    link = build_link(global_search, blacklist, theme, min_score, videos, kink)
    if limit is None:
        limit = config.search.default_limit
    query = QueryCompiler().build_query(tags, after, before, link, limit)
    ttl = select_ttl(query.compiled_tags, config.cache.default_ttl, config.cache.random_order_ttl)

    console.print(f"[bold]Tags:[/bold]      {escape(query.compiled_tags)}")
    console.print(f"[bold]Cache key:[/bold] {escape(query.cache_key)}")
    console.print(f"[bold]TTL:[/bold]       {ttl:g}s")


@app.command("history")
def show_history(
    link_id: int = typer.Argument(..., help="Link to show past content for"),
    history_db: Optional[Path] = typer.Option(None, "--history-db", help="History database file"),
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file"),
):
    """List the content a link displayed, oldest first."""
    try:
        config = ConfigManager(config_file).load_config({'history_db': history_db})
    except WalltakerError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e.get_user_message()}")
        raise typer.Exit(2)

    try:
        store = HistoryStore.from_config(config.history)
        try:
            entries = store.list_for_link(link_id)
        finally:
            store.close()
    except WalltakerError as e:
        console.print(f"[bold red]History error:[/bold red] {e.get_user_message()}")
        raise typer.Exit(1)

    if not entries:
        console.print(f"[yellow]No history for link {link_id}.[/yellow]")
        return

    table = Table(title=f"Link {link_id}: {len(entries)} entries")
    table.add_column("When")
    table.add_column("URL", overflow="fold")
    for entry in entries:
        table.add_row(entry.created_at.isoformat(timespec='seconds'), entry.post_url or "")

    console.print(table)


@app.command("config")
def show_config(
    config_file: Optional[Path] = typer.Option(None, "--config", "-c", help="Configuration file"),
):
    """Print the effective configuration as YAML."""
    manager = ConfigManager(config_file)
    try:
        config = manager.load_config()
    except WalltakerError as e:
        console.print(f"[bold red]Configuration error:[/bold red] {e.get_user_message()}")
        raise typer.Exit(2)

    console.print(manager.dump(config), markup=False, highlight=False)


def main():
    """Entry point for the walltaker console script."""
    try:
        app()
    except KeyboardInterrupt:
        console.print("\n[yellow]Operation cancelled by user[/yellow]")
        raise SystemExit(1)


if __name__ == "__main__":
    main()
