"""
bucketbridge CLI Application - Built with Click.

Commands for checking the self-hosted store, browsing both stores and
running migrations between them.
"""

import asyncio
import signal
import sys
from pathlib import Path

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TaskProgressColumn, TextColumn
from rich.table import Table

from bucketbridge import __version__
from bucketbridge.core.config import MigrationConfig, configure
from bucketbridge.core.env import EnvManager
from bucketbridge.core.exceptions import BucketBridgeError
from bucketbridge.core.logger import configure_default_logging
from bucketbridge.migration import (
    ConnectivityProbe,
    Direction,
    LocationMap,
    ObjectLister,
    RunOutcome,
    SelectionSet,
    TransferConfig,
    TransferEngine,
    TransferEvent,
    TransferStatus,
    normalize_storage_url,
)
from bucketbridge.storage import BackendKind, StorageError
from bucketbridge.storage.factory import create_backend, create_backend_pair

console = Console()

_STATUS_STYLES = {
    TransferStatus.PENDING: "[dim]○ pending[/dim]",
    TransferStatus.COPYING: "[yellow]● copying[/yellow]",
    TransferStatus.SUCCESS: "[green]● success[/green]",
    TransferStatus.ERROR: "[red]✗ error[/red]",
}


# ============================================================================
# CLI Group
# ============================================================================


class OrderedGroup(click.Group):
    """Click Group that lists commands in the order they were added."""

    def list_commands(self, ctx):
        return list(self.commands.keys())


@click.group(cls=OrderedGroup)
@click.version_option(version=__version__, prog_name="bucketbridge")
@click.option(
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help="YAML configuration file (defaults to BUCKETBRIDGE_* environment variables)",
)
@click.option(
    "--env-file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    help=".env file to load before reading the environment",
)
@click.option("--log-level", default="WARNING", show_default=True, help="Logging level")
@click.option("--json-logs", is_flag=True, help="Emit logs as JSON lines")
@click.pass_context
def cli(ctx, config_file: Path | None, env_file: Path | None, log_level: str, json_logs: bool):
    """
    bucketbridge - copy images between self-hosted and managed storage.

    \b
    Commands:
      probe            Check the self-hosted store answers
      locations        Show the folder/bucket mapping table
      ls               List a folder or bucket
      migrate          Copy objects from one store to the other
      normalize-url    Rewrite a self-hosted URL to its managed URL
    """
    configure_default_logging(level=log_level, json_output=json_logs)
    ctx.ensure_object(dict)
    ctx.obj["config_file"] = config_file
    ctx.obj["env_file"] = env_file


def _get_config(ctx: click.Context) -> MigrationConfig:
    if "config" not in ctx.obj:
        try:
            if ctx.obj.get("config_file"):
                config = MigrationConfig.from_file(ctx.obj["config_file"])
            else:
                env = EnvManager(auto_load=False)
                env.load(ctx.obj.get("env_file"))
                config = MigrationConfig.from_env(env)
        except BucketBridgeError as e:
            _fail(str(e))
        configure(config)
        ctx.obj["config"] = config
    return ctx.obj["config"]


def _get_locations(config: MigrationConfig) -> LocationMap:
    try:
        return LocationMap.load(config.locations_file)
    except BucketBridgeError as e:
        _fail(str(e))


def _fail(message: str, code: int = 1):
    console.print(f"[red]Error:[/red] {message}")
    sys.exit(code)


def _format_size(size: int) -> str:
    for unit in ("B", "KB", "MB"):
        if size < 1024:
            return f"{size:.0f} {unit}" if unit == "B" else f"{size:.1f} {unit}"
        size /= 1024
    return f"{size:.1f} GB"


async def _close_all(backends) -> None:
    for backend in backends.values():
        await backend.close()


# ============================================================================
# bucketbridge probe
# ============================================================================


@click.command()
@click.pass_context
def probe_cmd(ctx):
    """Check that the self-hosted store answers."""
    config = _get_config(ctx)

    async def _probe():
        backend = create_backend("self-hosted", config)
        try:
            probe = ConnectivityProbe(backend, timeout_seconds=config.probe_timeout_seconds)
            return backend, await probe.check()
        finally:
            await backend.close()

    try:
        backend, result = asyncio.run(_probe())
    except BucketBridgeError as e:
        _fail(str(e))

    if result.is_available:
        console.print(
            f"[green]●[/green] {backend.name} available ({result.latency_ms:.0f}ms)"
        )
    else:
        console.print(f"[red]○[/red] {backend.name} unavailable: {result.reason}")
        sys.exit(1)


# ============================================================================
# bucketbridge locations
# ============================================================================


@click.command()
@click.pass_context
def locations_cmd(ctx):
    """Show the folder/bucket mapping table."""
    locations = _get_locations(_get_config(ctx))

    table = Table(title="Self-hosted folder → managed bucket")
    table.add_column("Folder", style="cyan")
    table.add_column("Bucket", style="green")
    for folder, bucket in locations.folder_to_bucket.items():
        table.add_row(folder, bucket)
    console.print(table)

    table = Table(title="Managed bucket → self-hosted folder")
    table.add_column("Bucket", style="cyan")
    table.add_column("Folder", style="green")
    for bucket, folder in locations.bucket_to_folder.items():
        table.add_row(bucket, folder)
    console.print(table)


# ============================================================================
# bucketbridge ls
# ============================================================================


@click.command()
@click.argument("backend", type=click.Choice(["self-hosted", "managed"]))
@click.argument("location")
@click.option("--limit", type=click.IntRange(min=1), help="Maximum number of objects")
@click.pass_context
def ls_cmd(ctx, backend: str, location: str, limit: int | None):
    """
    List the objects in a folder (self-hosted) or bucket (managed).

    \b
    Examples:
        bucketbridge ls self-hosted products
        bucketbridge ls managed product-images --limit 20
    """
    config = _get_config(ctx)
    kind = BackendKind.SELF_HOSTED if backend == "self-hosted" else BackendKind.MANAGED
    known = _get_locations(config).locations_for(kind)
    if location not in known:
        msg = f"{location!r} is not a {backend} location. Valid: {', '.join(known)}"
        raise click.BadParameter(msg, param_hint="LOCATION")

    async def _list():
        storage = create_backend(backend, config)
        try:
            if storage.kind is BackendKind.SELF_HOSTED:
                await ConnectivityProbe(
                    storage, timeout_seconds=config.probe_timeout_seconds
                ).require_available()
            return await ObjectLister(storage).list(location, limit=limit)
        finally:
            await storage.close()

    try:
        descriptors = asyncio.run(_list())
    except (BucketBridgeError, StorageError) as e:
        _fail(getattr(e, "message", None) or str(e))

    table = Table(title=f"{backend}: {location} ({len(descriptors)} objects)")
    table.add_column("Name", style="cyan")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    for d in descriptors:
        modified = d.last_modified.strftime("%Y-%m-%d %H:%M") if d.last_modified else ""
        table.add_row(d.name, _format_size(d.size_bytes), modified)
    console.print(table)


# ============================================================================
# bucketbridge migrate
# ============================================================================


@click.command()
@click.argument("direction")
@click.argument("location")
@click.option("--select", "-s", "names", multiple=True, help="Object name to copy (repeatable)")
@click.option("--all", "select_all", is_flag=True, help="Copy every object in the location")
@click.option("--concurrency", type=click.IntRange(min=1), help="Objects copied at the same time")
@click.option("--retries", type=click.IntRange(min=0), help="Retries per object on transport errors")
@click.pass_context
def migrate_cmd(
    ctx,
    direction: str,
    location: str,
    names: tuple[str, ...],
    select_all: bool,
    concurrency: int | None,
    retries: int | None,
):
    """
    Copy objects from one store to the other.

    DIRECTION is to-managed or to-self-hosted. LOCATION is the source
    folder (to-managed) or source bucket (to-self-hosted).

    \b
    Examples:
        bucketbridge migrate to-managed products --all
        bucketbridge migrate to-self-hosted blog-images -s cover.png -s hero.jpg
    """
    config = _get_config(ctx)
    locations = _get_locations(config)

    try:
        parsed = Direction.parse(direction)
        destination_location = locations.resolve(location, parsed)
    except BucketBridgeError as e:
        _fail(str(e), code=2)

    if not names and not select_all:
        _fail("Nothing selected: pass --select NAME or --all", code=2)

    transfer = TransferConfig(
        max_concurrency=concurrency or config.transfer.max_concurrency,
        max_retries=config.transfer.max_retries if retries is None else retries,
        retry_delay_seconds=config.transfer.retry_delay_seconds,
    )

    metrics = None
    if config.metrics_enabled:
        from bucketbridge.monitoring.prometheus import MigrationMetrics

        metrics = MigrationMetrics()

    console.print(
        Panel.fit(
            f"[bold]{parsed.value}[/bold]\n{location} → {destination_location}",
            border_style="blue",
        )
    )

    async def _migrate():
        backends = create_backend_pair(config)
        try:
            await ConnectivityProbe(
                backends[BackendKind.SELF_HOSTED], timeout_seconds=config.probe_timeout_seconds
            ).require_available()

            source = backends[parsed.source_kind]
            selection = SelectionSet()
            selection.load(location, await ObjectLister(source).list(location))
            if select_all:
                selection.select_all()
            for name in names:
                if name in selection:
                    continue
                try:
                    selection.toggle(name)
                except KeyError:
                    console.print(f"[yellow]Skipping {name!r}: not in {location}[/yellow]")

            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                BarColumn(),
                TaskProgressColumn(),
                console=console,
            ) as progress:
                task = progress.add_task("Copying", total=100)

                def on_event(event: TransferEvent) -> None:
                    progress.update(
                        task,
                        completed=event.progress_percent,
                        description=f"{event.item_name} [{event.new_status.value}]",
                    )

                engine = TransferEngine(
                    backends[BackendKind.SELF_HOSTED],
                    backends[BackendKind.MANAGED],
                    locations,
                    config=transfer,
                    listener=on_event,
                    metrics=metrics,
                )

                loop = asyncio.get_running_loop()
                try:
                    loop.add_signal_handler(signal.SIGINT, engine.cancel)
                except (NotImplementedError, RuntimeError):
                    pass  # Not supported on this platform / thread
                try:
                    return await engine.run(selection, location, parsed)
                finally:
                    try:
                        loop.remove_signal_handler(signal.SIGINT)
                    except (NotImplementedError, RuntimeError):
                        pass
        finally:
            await _close_all(backends)

    try:
        result = asyncio.run(_migrate())
    except (BucketBridgeError, StorageError) as e:
        _fail(getattr(e, "message", None) or str(e))

    if result.nothing_selected:
        console.print("[yellow]Nothing selected, no objects copied[/yellow]")
        sys.exit(1)

    table = Table(title=f"Run {result.run.run_id}")
    table.add_column("Object", style="cyan")
    table.add_column("Status")
    table.add_column("Details")
    for item in result.run.items:
        table.add_row(item.name, _STATUS_STYLES[item.status], item.error_message or item.content_type or "")
    console.print(table)

    summary = result.summary
    style = "green" if summary.success else "red"
    console.print(
        f"[{style}]{summary.success_count} copied, {summary.error_count} failed[/{style}]"
        f" in {summary.duration_seconds:.1f}s"
    )
    if result.outcome == RunOutcome.CANCELLED:
        console.print(f"[yellow]Cancelled: {summary.cancelled_count} object(s) not started[/yellow]")

    if not summary.success:
        sys.exit(1)


# ============================================================================
# bucketbridge normalize-url
# ============================================================================


@click.command()
@click.argument("url")
@click.pass_context
def normalize_url_cmd(ctx, url: str):
    """Rewrite a self-hosted public URL to the managed public URL."""
    config = _get_config(ctx)
    click.echo(normalize_storage_url(url, config, _get_locations(config)))


# ============================================================================
# Command Registration
# ============================================================================

# Read-only
cli.add_command(probe_cmd, name="probe")
cli.add_command(locations_cmd, name="locations")
cli.add_command(ls_cmd, name="ls")
cli.add_command(normalize_url_cmd, name="normalize-url")

# Writes to storage
cli.add_command(migrate_cmd, name="migrate")

if __name__ == "__main__":
    cli()
