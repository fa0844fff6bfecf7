"""CLI for the LocalTube ingest pipeline."""

import signal
from pathlib import Path

import typer
from rich import print as rprint
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from localtube.catalog import get_catalog
from localtube.channel import SubscriptionPipeline, SubscriptionStateStore
from localtube.core.config import Settings, get_settings_with_yaml
from localtube.core.exceptions import ArchiveError
from localtube.core.http_session import close_all_sessions
from localtube.core.logging_config import setup_logging
from localtube.core.schemas import SyncResult
from localtube.video.layout import METADATA_FILE, channel_dir

app = typer.Typer(help="LocalTube ingest - mirror subscribed channels into the local archive")
console = Console()


def _terminate(signum, frame):
    # Unwind through the finally blocks that remove staging directories
    raise SystemExit(128 + signum)


@app.callback()
def main(
    ctx: typer.Context,
    config: Path | None = typer.Option(None, "--config", "-c", help="Path to config.yaml"),
    media_dir: Path | None = typer.Option(None, "--media-dir", help="Override the media root"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Enable debug logging"),
):
    """Load settings and logging shared by every command."""
    settings = get_settings_with_yaml(config)
    if media_dir is not None:
        settings = settings.model_copy(update={"media_dir": str(media_dir)})

    setup_logging(level="DEBUG" if verbose else settings.log_level, log_file=settings.log_file)
    signal.signal(signal.SIGTERM, _terminate)
    ctx.obj = settings


def _state_store(settings: Settings) -> SubscriptionStateStore:
    return SubscriptionStateStore(
        settings.subscriptions_path, atomic_writes=settings.state_atomic_writes
    )


@app.command()
def sync(ctx: typer.Context):
    """
    Onboard pending channels and fetch new uploads of subscribed ones.

    Exits with status 1 if any channel failed.
    """
    settings: Settings = ctx.obj
    try:
        with get_catalog(settings) as catalog:
            pipeline = SubscriptionPipeline(settings, catalog, _state_store(settings))
            pipeline.preflight()
            results = pipeline.run()
    except ArchiveError as e:
        rprint(f"[red]✗ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e
    finally:
        close_all_sessions()

    _display_results(results)

    if any(not r.ok for r in results):
        raise typer.Exit(1)


def _display_results(results: list[SyncResult]):
    """Display per-channel sync results."""
    if not results:
        rprint("\n[yellow]No channels to sync.[/yellow]\n")
        return

    rprint("\n[bold blue]📺 Sync Summary[/bold blue]\n")

    table = Table()
    table.add_column("Channel", style="cyan")
    table.add_column("Mode", style="yellow", width=12)
    table.add_column("Discovered", style="white", justify="right")
    table.add_column("Ingested", style="green", justify="right")
    table.add_column("Status")

    for result in results:
        status = "[green]✓[/green]" if result.ok else f"[red]✗ {escape(result.error or '')}[/red]"
        table.add_row(
            result.channel_id,
            result.mode,
            str(result.videos_discovered),
            str(result.videos_ingested),
            status,
        )

    console.print(table)
    failures = sum(1 for r in results if not r.ok)
    rprint(f"\n[green]Channels: {len(results)}[/green]  [red]Failures: {failures}[/red]\n")


@app.command()
def subscribe(
    ctx: typer.Context,
    channel_id: str = typer.Argument(..., help="YouTube channel ID (UC...)"),
    title: str | None = typer.Option(None, "--title", "-t", help="Display name while pending"),
):
    """Queue a channel for its first full sync."""
    settings: Settings = ctx.obj
    try:
        store = _state_store(settings)
        store.load()
        added = store.add_subscription(channel_id, title)
    except ArchiveError as e:
        rprint(f"[red]✗ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    if added:
        rprint(f"[green]✓ Queued {escape(channel_id)} for subscription[/green]")
    else:
        rprint(f"[yellow]{escape(channel_id)} is already pending or subscribed[/yellow]")


@app.command()
def status(ctx: typer.Context):
    """Show pending and subscribed channels and what is on disk for them."""
    settings: Settings = ctx.obj
    if not settings.subscriptions_path.exists():
        _print_no_subscriptions()
        return

    try:
        state = _state_store(settings).load()
    except ArchiveError as e:
        rprint(f"[red]✗ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e

    if not state.subscribing and not state.subscribed:
        _print_no_subscriptions()
        return

    table = Table()
    table.add_column("Channel", style="cyan")
    table.add_column("Title", style="white")
    table.add_column("State", style="yellow")
    table.add_column("On disk", style="green", justify="right")

    for channel_id, label in [(c, "pending") for c in state.subscribing] + [
        (c, "subscribed") for c in state.subscribed
    ]:
        table.add_row(
            channel_id,
            state.titles.get(channel_id, ""),
            label,
            _disk_summary(settings.media_path, channel_id),
        )

    console.print(table)


def _print_no_subscriptions():
    rprint("\n[yellow]No channels subscribed yet.[/yellow]\n")
    rprint("Use [bold]localtube subscribe <channel_id>[/bold] to add a channel.\n")


def _disk_summary(media_path: Path, channel_id: str) -> str:
    directory = channel_dir(media_path, channel_id)
    if not (directory / METADATA_FILE).is_file():
        return "-"
    videos = sum(
        1
        for p in directory.iterdir()
        if p.is_dir() and not p.name.startswith(".") and (p / METADATA_FILE).is_file()
    )
    return f"{videos} videos"


@app.command()
def rescan(
    ctx: typer.Context,
    fetch_missing_meta: bool = typer.Option(
        False,
        "--fetch-missing-meta",
        help="Fetch metadata for channel directories that have none",
    ),
):
    """Register channels and videos found on disk but missing from the catalog."""
    settings: Settings = ctx.obj
    try:
        with get_catalog(settings) as catalog:
            pipeline = SubscriptionPipeline(settings, catalog, _state_store(settings))
            pipeline.preflight()
            result = pipeline.rescan(fetch_missing_meta=fetch_missing_meta)
    except ArchiveError as e:
        rprint(f"[red]✗ Error: {escape(str(e))}[/red]")
        raise typer.Exit(1) from e
    finally:
        close_all_sessions()

    rprint("\n[bold]Rescan Complete[/bold]")
    if fetch_missing_meta:
        rprint(f"  [green]Channel metadata fetched: {result.channels_fetched}[/green]")
    rprint(f"  [green]Channels registered: {result.channels_registered}[/green]")
    rprint(f"  [green]Videos registered: {result.videos_registered}[/green]")
    if result.inconsistent:
        rprint(f"  [red]Inconsistent: {len(result.inconsistent)}[/red]")
        for path in result.inconsistent:
            rprint(f"    [dim]{escape(path)}[/dim]")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
