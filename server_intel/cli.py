"""CLI interface for server-intel."""

import asyncio
import json
import logging
from collections import Counter
from pathlib import Path

import typer
from rich.console import Console
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.table import Table

from server_intel.evaluators.grading import format_quality_badge
from server_intel.models.model_enrichment import EnrichmentProgress
from server_intel.models.model_quality import Grade, ServerIntel
from server_intel.models.model_server import Perspective, ServerFilters
from server_intel.pipeline import Pipeline, build_pipeline
from server_intel.services.bulk_enrichment import EnrichmentAlreadyRunningError

app = typer.Typer(
    name="server-intel",
    help="server-intel - Discover, enrich, and trust-score game servers",
)

console = Console()


def _configure_logging(verbose: bool = False) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )


def _get_score_color(score: float) -> str:
    """Get color for score display."""
    if score >= 70:
        return "green"
    elif score >= 40:
        return "yellow"
    else:
        return "red"


def _truncate(text: str, max_len: int = 40) -> str:
    """Truncate text with ellipsis."""
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def _run(pipeline: Pipeline, coro):
    """Run a coroutine and close the pipeline's clients afterwards."""

    async def runner():
        async with pipeline:
            return await coro(pipeline)

    return asyncio.run(runner())


def _intel_table(title: str, listings: list[ServerIntel]) -> Table:
    table = Table(title=title)
    table.add_column("#", justify="right", style="cyan")
    table.add_column("Name", style="bold")
    table.add_column("Address", style="blue")
    table.add_column("Map", style="dim")
    table.add_column("Players", justify="right")
    table.add_column("Score", justify="right")
    table.add_column("Grade", justify="center")
    table.add_column("Rank", justify="right", style="dim")

    for index, intel in enumerate(listings, 1):
        score = intel.quality.score
        color = _get_score_color(score)
        grade = intel.quality.grade.value
        if intel.quality.fraud_flags:
            grade += " [red]⚠[/red]"
        elif intel.quality.verified:
            grade += " ✓"
        table.add_row(
            str(index),
            _truncate(intel.name),
            intel.address,
            intel.map or "",
            f"{intel.player_count}/{intel.max_players}",
            f"[{color}]{score}[/{color}]",
            grade,
            str(intel.ranking_rank) if intel.ranking_rank else "-",
        )
    return table


@app.command()
def discover(
    max_servers: int = typer.Option(100, "--max-servers", "-n", help="Max servers to discover"),
    data_dir: Path = typer.Option(None, "--data-dir", help="Data directory"),
) -> None:
    """Discover servers from the ranking service and store them."""
    _configure_logging()
    pipeline = build_pipeline(data_dir=data_dir, use_live_query=False)

    async def go(p: Pipeline) -> int:
        return await p.orchestrator.discover(max_servers)

    count = _run(pipeline, go)
    if count == 0:
        console.print("[yellow]No servers discovered. Is BATTLEMETRICS_API_KEY set?[/yellow]")
        return
    console.print(f"[bold green]Discovered {count} servers[/bold green]")


@app.command()
def refresh(
    no_live: bool = typer.Option(False, "--no-live", help="Skip live queries, use ranking service only"),
    data_dir: Path = typer.Option(None, "--data-dir", help="Data directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
) -> None:
    """Run one refresh cycle (discover if empty, refresh, clean, enrich)."""
    _configure_logging(verbose)
    pipeline = build_pipeline(data_dir=data_dir, use_live_query=not no_live)

    async def go(p: Pipeline):
        await p.orchestrator.load_from_storage()
        return await p.orchestrator.refresh_cycle()

    result = _run(pipeline, go)
    if result is None:
        console.print("[yellow]A refresh cycle is already running.[/yellow]")
        return

    table = Table(title="Refresh Cycle")
    table.add_column("Metric", style="cyan")
    table.add_column("Value", justify="right", style="magenta")
    table.add_row("Refreshed", f"{result.refreshed}/{result.attempted}")
    table.add_row("Removed (relocated)", str(result.removed_stale))
    table.add_row("Rediscovered", "yes" if result.rediscovered else "no")
    table.add_row("Enriched", str(result.enriched))
    table.add_row("Duration", f"{result.duration_seconds:.1f}s")
    console.print(table)


@app.command()
def enrich(
    batch_size: int = typer.Option(10, "--batch-size", help="Servers per batch"),
    data_dir: Path = typer.Option(None, "--data-dir", help="Data directory"),
) -> None:
    """Enrich every server whose ranking snapshot is missing or stale."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    pipeline = build_pipeline(data_dir=data_dir, use_live_query=False)
    pipeline.bulk_job.batch_size = batch_size

    async def go(p: Pipeline) -> EnrichmentProgress:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console,
        ) as progress:
            task = progress.add_task("Enriching...", total=None)

            def on_progress(state: EnrichmentProgress):
                progress.update(
                    task,
                    total=state.total_servers,
                    completed=state.processed_servers,
                    description=f"Batch {state.current_batch}/{state.total_batches}",
                )

            return await p.bulk_job.run(progress_callback=on_progress)

    try:
        result = _run(pipeline, go)
    except EnrichmentAlreadyRunningError as e:
        console.print(f"[yellow]{e}[/yellow]")
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    console.print("\n[bold green]Enrichment complete![/bold green]")
    summary_table = Table(title="Enrichment Summary")
    summary_table.add_column("Metric", style="cyan")
    summary_table.add_column("Count", justify="right", style="magenta")
    summary_table.add_row("To enrich", str(result.total_servers))
    summary_table.add_row("Succeeded", str(result.successful_enrichments))
    summary_table.add_row("Failed", str(result.failed_enrichments))
    summary_table.add_row("Skipped (fresh)", str(result.skipped_servers))
    console.print(summary_table)

    if result.errors:
        console.print(f"\n[dim]Last errors ({min(5, len(result.errors))} of {len(result.errors)}):[/dim]")
        for error in result.errors[-5:]:
            console.print(f"  [red]•[/red] {error}")


@app.command()
def score(
    address: str = typer.Argument(..., help="Server address (host:port)"),
    as_json: bool = typer.Option(False, "--json", help="Print raw JSON"),
    data_dir: Path = typer.Option(None, "--data-dir", help="Data directory"),
) -> None:
    """Show the quality score and trust breakdown for one server."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    pipeline = build_pipeline(data_dir=data_dir, use_live_query=False)

    async def go(p: Pipeline) -> ServerIntel | None:
        return await p.intel.get_intel(address)

    intel = _run(pipeline, go)
    if intel is None:
        console.print(f"[red]Error:[/red] Server '{address}' not found")
        raise typer.Exit(1)

    if as_json:
        console.print_json(json.dumps(intel.model_dump(mode="json")))
        return

    quality = intel.quality
    console.print(f"\n[bold]{intel.name}[/bold] ({intel.address})")
    console.print(format_quality_badge(quality))

    table = Table(title="Trust Indicators")
    table.add_column("Indicator", style="cyan")
    table.add_column("Value", justify="right")
    ind = quality.trust_indicators
    table.add_row("Rank", str(ind.rank) if ind.rank else "-")
    table.add_row("Uptime (7d)", f"{ind.uptime_7d:.1f}%" if ind.uptime_7d is not None else "-")
    table.add_row("Trend", ind.trend.value)
    table.add_row("Player consistency", str(ind.player_consistency) if ind.player_consistency is not None else "-")
    table.add_row("Live/snapshot match", str(ind.live_snapshot_match) if ind.live_snapshot_match is not None else "-")
    table.add_row("Ranking status", intel.ranking_status or "-")
    table.add_row("Cache age", f"{intel.cache_age_hours}h" if intel.cache_age_hours is not None else "-")
    console.print(table)

    if quality.fraud_flags:
        console.print("\n[bold red]Fraud flags:[/bold red]")
        for flag in quality.fraud_flags:
            console.print(f"  [red]•[/red] {flag.type.value} ({flag.severity.value}): {flag.evidence}")


@app.command()
def search(
    query: str = typer.Argument(..., help="Server name query"),
    limit: int = typer.Option(20, "--limit", "-l", help="Number of results"),
) -> None:
    """Search the ranking service for servers by name."""
    logging.basicConfig(
        level=logging.WARNING,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    pipeline = build_pipeline(use_live_query=False)

    async def go(p: Pipeline):
        return await p.ranking_client.search_by_name(query, max_results=limit)

    results = _run(pipeline, go)
    if not results:
        console.print(f"[yellow]No results found for '{query}'[/yellow]")
        return

    table = Table(title=f"Search Results for '{query}' ({len(results)} matches)")
    table.add_column("Name", style="cyan")
    table.add_column("Address", style="blue")
    table.add_column("Map", style="dim")
    table.add_column("Players", justify="right")
    table.add_column("Rank", justify="right", style="dim")
    table.add_column("Region", style="dim")

    for summary in results:
        table.add_row(
            _truncate(summary.name, 50),
            summary.address,
            summary.map or "",
            f"{summary.player_count}/{summary.max_players}",
            str(summary.rank) if summary.rank else "-",
            summary.region or "",
        )

    console.print(table)


@app.command()
def top(
    limit: int = typer.Option(10, "--limit", "-l", help="Number of results"),
    map_name: str = typer.Option(None, "--map", "-m", help="Filter by map"),
    region: list[str] = typer.Option(None, "--region", "-r", help="Filter by region (repeatable)"),
    perspective: Perspective = typer.Option(None, "--perspective", help="1PP, 3PP or Both"),
    min_players: int = typer.Option(None, "--min-players", help="Minimum live players"),
    min_score: int = typer.Option(None, "--min-score", help="Minimum quality score"),
    hide_fraud: bool = typer.Option(False, "--hide-fraud", help="Hide servers with fraud flags"),
    verified_only: bool = typer.Option(False, "--verified-only", help="Only verified servers"),
    data_dir: Path = typer.Option(None, "--data-dir", help="Data directory"),
) -> None:
    """Show stored servers ranked by player count with quality scores."""
    filters = ServerFilters(
        map=map_name,
        regions=region or [],
        perspective=perspective,
        min_players=min_players,
    )
    pipeline = build_pipeline(data_dir=data_dir, use_live_query=False)

    async def go(p: Pipeline) -> list[ServerIntel]:
        return await p.intel.list_intel(
            filters,
            min_quality_score=min_score,
            hide_fraud=hide_fraud,
            verified_only=verified_only,
        )

    listings = _run(pipeline, go)
    if not listings:
        console.print("[yellow]No servers found. Run 'server-intel discover' first.[/yellow]")
        return

    console.print(_intel_table(f"Top {min(limit, len(listings))} Servers", listings[:limit]))

    grades = Counter(intel.quality.grade for intel in listings)
    distribution = "  ".join(f"{g.value}: {grades.get(g, 0)}" for g in Grade)
    console.print(f"\n[dim]Grade distribution ({len(listings)} servers): {distribution}[/dim]")


@app.command("backfill-maps")
def backfill_maps(
    limit: int = typer.Option(100, "--limit", "-l", help="Max servers to backfill"),
    data_dir: Path = typer.Option(None, "--data-dir", help="Data directory"),
) -> None:
    """Fill in unknown maps from ranking-service snapshots."""
    _configure_logging()
    pipeline = build_pipeline(data_dir=data_dir, use_live_query=False)

    async def go(p: Pipeline) -> int:
        return await p.orchestrator.backfill_unknown_maps(limit)

    updated = _run(pipeline, go)
    console.print(f"[green]Backfilled maps for {updated} servers[/green]")


if __name__ == "__main__":
    app()
