# ruff: noqa: FBT002
from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Annotated, Optional

try:
    import typer
    from click import Choice
except ModuleNotFoundError as exc:
    raise ImportError(
        "Missing required dependencies for the scrapetrack CLI. It looks like you're running 'scrapetrack' "
        "without the CLI extra. Try using 'scrapetrack[cli]' instead."
    ) from exc

from scrapetrack._log_config import configure_logger
from scrapetrack._utils.console import make_table
from scrapetrack._utils.time import format_duration, format_timestamp
from scrapetrack.configuration import Configuration
from scrapetrack.history import HistoryStore
from scrapetrack.storage_clients import FileSystemStorageClient

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable
    from typing import TypeVar

    from scrapetrack.history import HistoryRecord

    T = TypeVar('T')

cli = typer.Typer(no_args_is_help=True)
history_cli = typer.Typer(no_args_is_help=True, help='Inspect and manage the scraping session history.')
cli.add_typer(history_cli, name='history')

_STATUS_CHOICES = ['pending', 'in_progress', 'completed', 'failed', 'cancelled']


@cli.callback(invoke_without_command=True)
def callback(
    version: Annotated[
        bool,
        typer.Option(
            '-V',
            '--version',
            help='Print scrapetrack version',
        ),
    ] = False,
) -> None:
    """scrapetrack keeps track of scraping sessions and their statistics."""
    configure_logger(logging.getLogger('scrapetrack'), Configuration(), remove_old_handlers=True)

    if version:
        from scrapetrack import __version__  # noqa: PLC0415

        typer.echo(__version__)


def _run_with_history(func: Callable[[HistoryStore], Awaitable[T]]) -> T:
    """Open the history store described by the environment and run `func` with it."""

    async def run() -> T:
        configuration = Configuration()
        history = await HistoryStore.open(
            configuration=configuration,
            storage_client=FileSystemStorageClient(configuration),
        )
        return await func(history)

    return asyncio.run(run())


def _record_row(record: HistoryRecord) -> tuple[str, ...]:
    return (
        record.id,
        format_timestamp(record.when),
        record.platform,
        record.category or '-',
        record.status,
        f'{record.scraped_products + record.failed_products}/{record.total_products}',
        f'{record.success_rate:.1f}%',
        format_duration(record.duration) if record.duration is not None else '-',
    )


@history_cli.command('list')
def list_records(
    platform: Annotated[
        Optional[str],
        typer.Option('--platform', '-p', help='Only records of this platform (case-insensitive).'),
    ] = None,
    category: Annotated[
        Optional[str],
        typer.Option('--category', '-c', help='Only records whose category contains this text.'),
    ] = None,
    status: Annotated[
        Optional[str],
        typer.Option('--status', '-s', click_type=Choice(_STATUS_CHOICES), help='Only records with this status.'),
    ] = None,
    limit: Annotated[
        int,
        typer.Option('--limit', '-n', min=1, help='Maximum number of records to show.'),
    ] = 20,
) -> None:
    """List history records, most recent first."""

    async def run(history: HistoryStore) -> list[HistoryRecord]:
        records = await history.list_records()
        if platform is not None:
            platform_ids = {record.id for record in await history.filter_by_platform(platform)}
            records = [record for record in records if record.id in platform_ids]
        if category is not None:
            category_ids = {record.id for record in await history.filter_by_category(category)}
            records = [record for record in records if record.id in category_ids]
        if status is not None:
            records = [record for record in records if record.status == status]
        return records[:limit]

    records = _run_with_history(run)

    if not records:
        typer.echo('No scraping history records found.')
        return

    header = ('id', 'when', 'platform', 'category', 'status', 'processed', 'success', 'duration')
    typer.echo(make_table([header, *(_record_row(record) for record in records)], width=160))


@history_cli.command('show')
def show(record_id: Annotated[str, typer.Argument(help='Id of the history record.')]) -> None:
    """Print one history record as JSON."""
    record = _run_with_history(lambda history: history.get(record_id))

    if record is None:
        typer.echo(f'History record {record_id} not found.', err=True)
        raise typer.Exit(code=1)

    typer.echo(record.model_dump_json(by_alias=True, indent=2))


@history_cli.command('stats')
def stats(
    as_json: Annotated[
        bool,
        typer.Option('--json', help='Print the statistics as JSON instead of a table.'),
    ] = False,
) -> None:
    """Print statistics computed across the whole history."""
    snapshot = _run_with_history(lambda history: history.statistics())

    if as_json:
        typer.echo(json.dumps(snapshot.to_dict(), indent=2))
    else:
        typer.echo(snapshot.to_table())


@history_cli.command('export')
def export(
    output: Annotated[
        Optional[Path],
        typer.Option('--output', '-o', help='File to write the history to. Printed to stdout when not given.'),
    ] = None,
) -> None:
    """Export the history as a JSON array, most recent first."""
    blob = _run_with_history(lambda history: history.export_json())

    if output is None:
        typer.echo(blob)
        return

    output.write_text(blob, encoding='utf-8')
    typer.echo(f'History exported to {output}.')


@history_cli.command('import')
def import_(
    source: Annotated[
        Path,
        typer.Argument(exists=True, dir_okay=False, readable=True, help='JSON file with an array of records.'),
    ],
) -> None:
    """Replace the whole history with the records of a JSON file."""
    blob = source.read_text(encoding='utf-8')

    if not _run_with_history(lambda history: history.import_json(blob)):
        typer.echo(f'{source} does not contain a valid array of history records, nothing was imported.', err=True)
        raise typer.Exit(code=1)

    typer.echo(f'History imported from {source}.')


@history_cli.command('delete')
def delete(record_id: Annotated[str, typer.Argument(help='Id of the history record.')]) -> None:
    """Delete one history record."""
    if not _run_with_history(lambda history: history.delete(record_id)):
        typer.echo(f'History record {record_id} not found.', err=True)
        raise typer.Exit(code=1)

    typer.echo(f'History record {record_id} deleted.')


@history_cli.command('clear')
def clear(
    yes: Annotated[
        bool,
        typer.Option('--yes', '-y', help='Do not ask for confirmation.'),
    ] = False,
) -> None:
    """Delete all history records."""
    if not yes:
        typer.confirm('Delete the whole scraping history?', abort=True)

    _run_with_history(lambda history: history.clear())
    typer.echo('History cleared.')
