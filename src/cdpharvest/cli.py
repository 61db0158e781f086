"""CLI module for cdpharvest."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import date
from pathlib import Path
from typing import Optional

import click
from bubus import EventBus
from pydantic import ValidationError
from rich.console import Console
from rich.panel import Panel

from cdpharvest import __version__
from cdpharvest.analysis import analyze as analyze_subscribers
from cdpharvest.analysis import format_analysis
from cdpharvest.cdp.client import CDPClient
from cdpharvest.cdp.discovery import discover_endpoint
from cdpharvest.cdp.exceptions import CDPError
from cdpharvest.collector.events import CollectionProgressEvent
from cdpharvest.collector.views import CollectionError
from cdpharvest.config import CONFIG
from cdpharvest.export import latest_export, read_subscribers_csv, write_report
from cdpharvest.page import PageSession
from cdpharvest.substack.service import SubstackScraper
from cdpharvest.substack.views import PublicationReport

console = Console()

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

TROUBLESHOOTING = (
    "1. Make sure Chrome/Opera is running with: --remote-debugging-port=9222\n"
    "2. Make sure you're logged into Substack in that browser\n"
    "3. Try opening your Substack dashboard first, then run this command"
)


def _configure_logging(verbose: bool) -> None:
    """Configure root logging from ``-v`` or CDPHARVEST_LOGGING_LEVEL."""
    if verbose:
        log_level = logging.DEBUG
    else:
        log_level = getattr(logging, CONFIG.LOGGING_LEVEL.upper(), logging.INFO)
    logging.basicConfig(level=log_level, format=LOG_FORMAT)
    if not verbose:
        logging.getLogger("cdpharvest.cdp").setLevel(CONFIG.CDP_LOGGING_LEVEL)


@click.group()
@click.version_option(version=__version__, prog_name="cdpharvest")
def cli():
    """cdpharvest - export a Substack subscriber list through Chrome DevTools."""
    pass


@cli.command()
@click.option("--publication", "-p", default=None, help="Publication name (the part before .substack.com)")
@click.option("--host", default=None, help="Chrome DevTools host (default: CDP_HOST or 127.0.0.1)")
@click.option("--port", type=int, default=None, help="Chrome DevTools port (default: CDP_PORT or 9222)")
@click.option("--output-dir", "-o", type=click.Path(file_okay=False), default=None, help="Directory for JSON/CSV exports")
@click.option("--stall-threshold", type=click.IntRange(min=1), default=None, help="Samples without growth before stopping")
@click.option("--reveal-settle", type=click.FloatRange(min=0), default=None, help="Seconds to wait after each scroll")
@click.option("--navigation-settle", type=click.FloatRange(min=0), default=None, help="Seconds to wait after navigation")
@click.option("--skip-stats", is_flag=True, help="Do not scrape the stats page")
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def scrape(
    publication: Optional[str],
    host: Optional[str],
    port: Optional[int],
    output_dir: Optional[str],
    stall_threshold: Optional[int],
    reveal_settle: Optional[float],
    navigation_settle: Optional[float],
    skip_stats: bool,
    verbose: bool,
):
    """Scrape the subscriber list and stats, then write JSON and CSV exports.

    Connects to an already running browser started with
    ``--remote-debugging-port`` and logged into Substack.

    Example:
        >>> cdpharvest scrape --publication mynewsletter
    """
    _configure_logging(verbose)

    if not publication and CONFIG.is_publication_configured:
        publication = CONFIG.SUBSTACK_PUBLICATION
    if not publication:
        console.print(Panel.fit(
            "[red]Please configure your publication name![/red]\n\n"
            "Option 1: pass --publication yourname\n"
            "Option 2: set SUBSTACK_PUBLICATION=yourname",
            title="Configuration error",
        ))
        raise SystemExit(1)

    settings = CONFIG.collector_settings(
        stall_threshold=stall_threshold,
        reveal_settle=reveal_settle,
        navigation_settle=navigation_settle,
    )
    out_dir = Path(output_dir) if output_dir else CONFIG.OUTPUT_DIR

    console.print(Panel.fit(
        f"[bold blue]Substack subscriber scraper[/bold blue]\n"
        f"Publication: {publication}",
    ))

    stage = {"name": "connecting"}

    async def execute() -> PublicationReport:
        target = await discover_endpoint(
            host or CONFIG.CDP_HOST,
            port or CONFIG.CDP_PORT,
            url_hint="substack.com",
        )
        console.print(f"Connecting to: {target.title or target.url}")

        event_bus = EventBus()
        client = CDPClient(target.web_socket_debugger_url, default_timeout=CONFIG.CDP_COMMAND_TIMEOUT)
        try:
            await client.open()
            scraper = SubstackScraper(publication, PageSession(client), settings=settings, event_bus=event_bus)

            with console.status("Scrolling to load all subscribers...") as status:
                def on_progress(event: CollectionProgressEvent) -> None:
                    status.update(f"Found {event.accumulated_count} subscribers...")

                event_bus.on(CollectionProgressEvent, on_progress)
                stage["name"] = "subscribers"
                subscribers = await scraper.scrape_subscribers()

            stats = None
            if not skip_stats:
                stage["name"] = "stats"
                stats = await scraper.scrape_stats()
            return PublicationReport.build(publication, subscribers, stats)
        finally:
            await client.close()
            await event_bus.stop(clear=True, timeout=5)

    try:
        report = asyncio.run(execute())
    except CollectionError as e:
        _print_failure(e.phase.value, e.error_kind, str(e.cause))
        raise SystemExit(1)
    except CDPError as e:
        _print_failure(stage["name"], type(e).__name__, str(e))
        raise SystemExit(1)

    json_path, csv_path = write_report(report, out_dir)
    tiers = report.tier_breakdown
    lines = [
        f"Total Subscribers: {report.subscriber_count}",
        f"  - Free: {tiers.free}",
        f"  - Paid: {tiers.paid}",
        f"  - Founding: {tiers.founding}",
    ]
    if report.stats.open_rate is not None:
        lines.append(f"Open Rate: {report.stats.open_rate}%")
    if report.stats.click_rate is not None:
        lines.append(f"Click Rate: {report.stats.click_rate}%")
    lines += ["", f"Saved: {json_path}", f"Saved: {csv_path}"]
    console.print(Panel.fit("\n".join(lines), title="Summary"))


@cli.command()
@click.argument("csv_path", required=False, type=click.Path(exists=True, dir_okay=False))
@click.option("--exports-dir", type=click.Path(file_okay=False), default=None, help="Where to look for the newest export")
@click.option("--save/--no-save", default=True, help="Write analysis-<date>.txt next to the exports")
def analyze(csv_path: Optional[str], exports_dir: Optional[str], save: bool):
    """Analyze a subscriber export (the newest one by default)."""
    exports = Path(exports_dir) if exports_dir else CONFIG.OUTPUT_DIR
    path = Path(csv_path) if csv_path else latest_export(exports)
    if path is None:
        console.print(f"[red]No CSV files found in {exports}. Run 'cdpharvest scrape' first.[/red]")
        raise SystemExit(1)

    console.print(f"Analyzing: {path}\n")
    report = analyze_subscribers(read_subscribers_csv(path))
    text = format_analysis(report)
    console.print(text, markup=False, highlight=False)

    if save:
        analysis_path = path.parent / f"analysis-{date.today().isoformat()}.txt"
        analysis_path.write_text(text + "\n", encoding="utf-8")
        console.print(f"\nAnalysis saved to: {analysis_path}")


@cli.command(name="config")
def show_config():
    """Show the effective configuration."""
    try:
        config = CONFIG.load_config()
    except ValidationError as e:
        console.print(f"[red]Invalid configuration:[/red]\n{e}")
        raise SystemExit(1)
    console.print_json(json.dumps(config))


def _print_failure(phase: str, kind: str, message: str) -> None:
    console.print(Panel.fit(
        f"[red]Run failed during {phase}: {kind}[/red]\n{message}\n\n"
        f"Troubleshooting:\n{TROUBLESHOOTING}",
        title="Error",
    ))


def main():
    """Main entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
