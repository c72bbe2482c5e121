import asyncio
import logging
import sys
from typing import List, Optional

import click
import orjson
from rich.console import Console
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from .config import SinkConfig
from .errors import ConfigurationError, ScanError, SinkError
from .log import configure_logging
from .policies import CountRetention
from .registry import SinkRegistry
from .scanner import scan

console = Console(stderr=True)


class ExitCodes:
    SUCCESS = 0
    USAGE = 2
    NOT_FOUND = 3
    WRITE_ERROR = 4


class _ErrorCollector:
    def __init__(self) -> None:
        self.errors: List[SinkError] = []

    def __call__(self, error: SinkError) -> None:
        self.errors.append(error)
        console.print(f"[yellow]Warning:[/yellow] {type(error).__name__}: {error}")


async def _pump(config: SinkConfig, stream, observer: _ErrorCollector) -> dict:
    written = failed = 0
    async with SinkRegistry(observer=observer) as registry:
        sink = await registry.acquire(config)
        while True:
            line = await asyncio.to_thread(stream.readline)
            if not line:
                break
            if await sink.write(line):
                written += len(line)
            else:
                failed += 1
        rotations = sink.rotations
    return {"bytes": written, "failed": failed, "rotations": rotations}


def _resolve(path: str, **options) -> SinkConfig:
    try:
        return SinkConfig.from_options(path, **options)
    except ConfigurationError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(ExitCodes.USAGE)


def _trim(config: SinkConfig, observer: _ErrorCollector) -> List[str]:
    result = CountRetention(config.retain_count).trim(
        scan(config.directory, config.basename)
    )
    for error in result.errors:
        observer(error)
    return result.removed


@click.group(name="rollfile")
@click.option("-v", "--verbose", count=True, help="Increase verbosity")
@click.option(
    "--log-file",
    default=None,
    help="Write rollfile's own JSON-lines events here (default stderr)",
)
def cli(verbose: int, log_file: Optional[str]) -> None:
    """rollfile: size-rotating log files with timestamped backups."""
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    configure_logging(log_file, level=level)


@cli.command(name="write")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option(
    "--max-size",
    type=int,
    default=0,
    show_default=True,
    help="Rotate once the file reaches this many bytes (0 disables)",
)
@click.option(
    "--retain",
    type=int,
    default=None,
    help="Number of backups to keep (defaults to 1 when rotating)",
)
@click.option("--compress", is_flag=True, default=False, help="Gzip backups")
def write_cmd(
    path: str, max_size: int, retain: Optional[int], compress: bool
) -> None:
    """Append stdin to PATH, rotating it by size."""
    config = _resolve(path, max_size=max_size, retain=retain, compress=compress)

    observer = _ErrorCollector()
    stats = asyncio.run(_pump(config, sys.stdin.buffer, observer))
    console.print(
        f"[green]Wrote[/green] {stats['bytes']} bytes to [cyan]{config.path}[/cyan]"
        f" ({stats['rotations']} rotations)"
    )
    if stats["failed"]:
        console.print(f"[red]Error:[/red] {stats['failed']} writes failed")
        raise SystemExit(ExitCodes.WRITE_ERROR)
    raise SystemExit(ExitCodes.SUCCESS)


@cli.command(name="scan")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("--json", "as_json", is_flag=True, default=False, help="Emit JSON lines")
def scan_cmd(path: str, as_json: bool) -> None:
    """List the backups of PATH, oldest first."""
    config = _resolve(path)
    try:
        backups = scan(config.directory, config.basename)
    except ScanError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise SystemExit(ExitCodes.NOT_FOUND)

    if as_json:
        out = sys.stdout.buffer
        for entry in backups:
            out.write(
                orjson.dumps(
                    {"timestamp": entry.timestamp.isoformat(), "path": entry.path}
                )
                + b"\n"
            )
        out.flush()
        raise SystemExit(ExitCodes.SUCCESS)

    table = Table(title=f"Backups of {config.basename}")
    table.add_column("timestamp (UTC)", style="cyan")
    table.add_column("path")
    for entry in backups:
        table.add_row(entry.timestamp.isoformat(), entry.path)
    Console().print(table)
    raise SystemExit(ExitCodes.SUCCESS)


@cli.command(name="trim")
@click.argument("path", type=click.Path(dir_okay=False))
@click.option("--retain", type=int, required=True, help="Number of backups to keep")
def trim_cmd(path: str, retain: int) -> None:
    """Delete the oldest backups of PATH beyond --retain."""
    config = _resolve(path, retain=retain)
    observer = _ErrorCollector()
    with Progress(SpinnerColumn(), TextColumn("{task.description}"), console=console) as progress:
        task = progress.add_task("Trimming...", start=False)
        progress.start_task(task)
        try:
            removed = _trim(config, observer)
        except ScanError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise SystemExit(ExitCodes.NOT_FOUND)
        progress.update(task, description="Done")

    for p in removed:
        console.print(f"  [cyan]removed[/cyan]: {p}")
    if observer.errors:
        raise SystemExit(ExitCodes.WRITE_ERROR)
    raise SystemExit(ExitCodes.SUCCESS)


def main(argv=None):
    try:
        cli(args=argv)
    except SystemExit:
        raise


if __name__ == "__main__":
    main()
