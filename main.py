#!/usr/bin/env python3
"""
FeedPulse - Feed Acquisition and Health Monitoring
==================================================

Command line interface for fetching feeds and checking their health.

Usage:
    python main.py --help                          # Show all commands
    python main.py check-config                    # Validate configuration
    python main.py fetch-feed URL                  # Fetch and parse one feed
    python main.py fetch-sources sources.json      # Fetch every active source
    python main.py check-health sources.json       # Check health of every active source
    python main.py validate-feed URL               # Check a URL serves a feed
"""

import sys
import asyncio

import click
from rich.console import Console
from rich.table import Table

from feedpulse.config.settings import get_settings
from feedpulse.ingestion.sources import load_sources
from feedpulse.models import FeedSource, HealthStatus
from feedpulse.processing.feed_fetcher import AiohttpFeedParser
from feedpulse.services.feed_service import FeedService
from feedpulse.utils.exceptions import FeedPulseError
from feedpulse.utils.logging import configure_application_logging

console = Console()

STATUS_ICONS = {
    HealthStatus.HEALTHY: "🟢",
    HealthStatus.DEGRADED: "🟡",
    HealthStatus.FAILED: "🔴",
}


def _truncate(text: str, length: int) -> str:
    return text[:length - 3] + "..." if len(text) > length else text


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug logging')
@click.pass_context
def cli(ctx, debug):
    """FeedPulse - feed acquisition and health monitoring."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    try:
        settings = get_settings()
    except FeedPulseError as e:
        console.print(f"[bold red]❌ Configuration error: {e}[/bold red]")
        sys.exit(1)

    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size=settings.logging.max_file_size_mb * 1024 * 1024,
        backup_count=settings.logging.backup_count,
    )

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
def check_config():
    """Show the effective configuration."""
    console.print("[bold blue]🔧 Checking FeedPulse Configuration[/bold blue]")

    settings = get_settings()

    table = Table(title="Configuration")
    table.add_column("Setting", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Mode", "production" if settings.is_production_mode() else "development")
    table.add_row("Log level", settings.get_effective_log_level())
    table.add_row("Log file", settings.logging.file_path or "None")
    table.add_row("Fetch timeout", f"{settings.fetch.timeout_seconds}s")
    table.add_row("Fetch attempts", str(settings.fetch.max_retries))
    table.add_row("Backoff base", f"{settings.fetch.backoff_base_ms}ms")
    table.add_row("Fetch batch size", str(settings.fetch.batch_size))
    table.add_row("Fetch batch pause", f"{settings.fetch.batch_delay_ms}ms")
    table.add_row("Health attempts", str(settings.health.max_retries))
    table.add_row("Health batch size", str(settings.health.batch_size))
    table.add_row("Failed threshold", str(settings.health.failed_threshold))

    console.print(table)
    console.print("[bold green]✅ Configuration loaded[/bold green]")


@cli.command()
@click.argument('url')
@click.option('--retries', default=None, type=int, help='Attempts to make (default from config)')
def fetch_feed(url, retries):
    """Fetch and parse a single feed URL."""
    console.print(f"[bold blue]📡 Fetching feed: {url}[/bold blue]")

    source = FeedSource(id="cli", name=url, url=url)

    async def run_fetch():
        async with AiohttpFeedParser() as parser:
            return await FeedService(parser=parser).fetch_one(source, max_retries=retries)

    result = asyncio.run(run_fetch())

    if not result.success:
        console.print(f"[bold red]❌ {result.error}[/bold red]")
        sys.exit(1)

    console.print(
        f"[bold green]✅ {result.article_count} articles in {result.response_time_ms:.0f}ms "
        f"({result.attempts} attempt(s))[/bold green]"
    )

    for i, article in enumerate(result.articles[:5], 1):
        console.print(f"\n{i}. [bold]{article.title}[/bold]")
        console.print(f"   📅 {article.iso_date}")
        console.print(f"   🔗 {article.link or 'No link'}")
        if article.image_url:
            console.print(f"   🖼  {article.image_url}")
        if article.content_snippet:
            console.print(f"   📝 {_truncate(article.content_snippet, 120)}")


@cli.command()
@click.argument('sources_file', type=click.Path(dir_okay=False))
@click.option('--batch-size', default=None, type=int, help='Feeds fetched concurrently per batch')
@click.option('--category', default=None, help='Only fetch sources in this category')
def fetch_sources(sources_file, batch_size, category):
    """Fetch every active source listed in SOURCES_FILE."""
    sources = load_sources(sources_file)
    if not sources:
        console.print("[yellow]⚠️ No sources found[/yellow]")
        return

    async def run_fetch():
        async with AiohttpFeedParser() as parser:
            service = FeedService(parser=parser)
            if category:
                return await service.fetch_category(sources, category, batch_size=batch_size)
            return await service.fetch_batch(sources, batch_size=batch_size)

    result = asyncio.run(run_fetch())

    table = Table(title="Feed Fetch Results")
    table.add_column("Source", style="cyan")
    table.add_column("Status")
    table.add_column("Articles", style="yellow")
    table.add_column("Time", style="magenta")
    table.add_column("Details")

    for feed_result in result.results:
        table.add_row(
            _truncate(feed_result.source.display_name, 30),
            "✅ Success" if feed_result.success else "❌ Failed",
            str(feed_result.article_count),
            f"{feed_result.response_time_ms:.0f}ms",
            _truncate(feed_result.error or "", 60),
        )

    console.print(table)
    console.print(
        f"\n[bold blue]📊 Summary: {result.success_count} succeeded, "
        f"{result.error_count} failed, {len(result.articles)} articles "
        f"in {result.total_time_ms / 1000:.2f}s[/bold blue]"
    )

    if result.error_count and not result.success_count:
        sys.exit(1)


@cli.command()
@click.argument('sources_file', type=click.Path(dir_okay=False))
def check_health(sources_file):
    """Check the health of every active source listed in SOURCES_FILE."""
    sources = load_sources(sources_file)

    async def run_check():
        async with AiohttpFeedParser() as parser:
            return await FeedService(parser=parser).check_all_health(sources)

    summary = asyncio.run(run_check())

    table = Table(title="Feed Health")
    table.add_column("Status")
    table.add_column("Source", style="cyan")
    table.add_column("Failures", style="red")
    table.add_column("Avg Response", style="magenta")
    table.add_column("Last Success")
    table.add_column("Error")

    for record in summary.details:
        table.add_row(
            f"{STATUS_ICONS[record.status]} {record.status.value}",
            _truncate(record.source_name, 30),
            str(record.consecutive_failures),
            f"{record.average_response_time_ms:.0f}ms",
            record.last_successful_fetch_at.isoformat() if record.last_successful_fetch_at else "Never",
            _truncate(record.last_error or "", 50),
        )

    console.print(table)
    console.print(
        f"\n[bold blue]📊 {summary.total_feeds} feeds: {summary.healthy_feeds} healthy, "
        f"{summary.degraded_feeds} degraded, {summary.failed_feeds} failed "
        f"({summary.health_percentage:.0f}% healthy, "
        f"avg {summary.average_response_time_ms:.0f}ms)[/bold blue]"
    )

    if summary.failed_feeds:
        sys.exit(1)


@cli.command()
@click.argument('url')
def validate_feed(url):
    """Check that URL serves a parseable feed."""

    async def run_validation():
        async with AiohttpFeedParser() as parser:
            return await FeedService(parser=parser).validate_feed(url)

    result = asyncio.run(run_validation())

    if not result.has_https:
        console.print("[yellow]⚠️ Feed is not served over HTTPS[/yellow]")

    if not result.valid:
        console.print(f"[bold red]❌ Feed validation failed: {result.error}[/bold red]")
        sys.exit(1)

    console.print(
        f"[bold green]✅ Valid feed: {result.feed_title or 'Untitled'} "
        f"({result.item_count} items)[/bold green]"
    )


if __name__ == '__main__':
    cli()
