from __future__ import annotations

import asyncio
import importlib
import json
import logging
import sys
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import pytest
from typer.testing import CliRunner

import scrapetrack
import scrapetrack._cli
from scrapetrack.configuration import Configuration
from scrapetrack.history import HistoryRecord, HistoryStore
from scrapetrack.storage_clients import FileSystemStorageClient

if TYPE_CHECKING:
    from collections.abc import Generator
    from pathlib import Path

runner = CliRunner()

_START = datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc)


def _run_history(operation_name: str, *args: object) -> object:
    async def run() -> object:
        configuration = Configuration()
        history = await HistoryStore.open(
            configuration=configuration,
            storage_client=FileSystemStorageClient(configuration),
        )
        return await getattr(history, operation_name)(*args)

    return asyncio.run(run())


@pytest.fixture(autouse=True)
def _restore_logger() -> Generator[None, None, None]:
    logger = logging.getLogger('scrapetrack')
    handlers, level = logger.handlers[:], logger.level
    yield
    logger.handlers[:] = handlers
    logger.setLevel(level)


@pytest.fixture
def seeded_history() -> list[HistoryRecord]:
    records = [
        HistoryRecord(
            id='session_first',
            when=_START,
            started_at=_START,
            completed_at=_START + timedelta(minutes=5),
            platform='flipkart',
            category='mobiles',
            status='completed',
            total_products=10,
            scraped_products=8,
            failed_products=2,
        ),
        HistoryRecord(
            id='session_second',
            when=_START + timedelta(days=1),
            started_at=_START + timedelta(days=1),
            completed_at=_START + timedelta(days=1, minutes=1),
            platform='amazon',
            category='laptops',
            status='failed',
            total_products=5,
            scraped_products=1,
            error_message='Blocked',
        ),
        HistoryRecord(
            id='session_third',
            when=_START + timedelta(days=2),
            started_at=_START + timedelta(days=2),
            platform='flipkart',
            category='Mobile Accessories',
            status='in_progress',
            total_products=4,
            scraped_products=1,
        ),
    ]

    for record in records:
        _run_history('upsert', record)

    return records


def test_version() -> None:
    result = runner.invoke(scrapetrack._cli.cli, ['--version'])

    assert result.exit_code == 0
    assert scrapetrack.__version__ in result.output


def test_list_empty_history() -> None:
    result = runner.invoke(scrapetrack._cli.cli, ['history', 'list'])

    assert result.exit_code == 0
    assert 'No scraping history records found.' in result.output


@pytest.mark.usefixtures('seeded_history')
def test_list_records() -> None:
    result = runner.invoke(scrapetrack._cli.cli, ['history', 'list'])

    assert result.exit_code == 0
    output = result.output
    assert output.index('session_third') < output.index('session_second') < output.index('session_first')
    assert '2024-05-01 10:00:00 UTC' in output
    assert '8/10' not in output
    assert '10/10' in output
    assert '80.0%' in output
    assert '5m 0s' in output


@pytest.mark.usefixtures('seeded_history')
@pytest.mark.parametrize(
    ('args', 'expected_ids'),
    [
        (['--platform', 'FLIPKART'], ['session_first', 'session_third']),
        (['--category', 'mobile'], ['session_first', 'session_third']),
        (['-c', 'accessories', '-p', 'flipkart'], ['session_third']),
        (['--status', 'failed'], ['session_second']),
        (['--limit', '1'], ['session_third']),
    ],
    ids=['platform', 'category', 'platform-and-category', 'status', 'limit'],
)
def test_list_filters(args: list[str], expected_ids: list[str]) -> None:
    result = runner.invoke(scrapetrack._cli.cli, ['history', 'list', *args])

    assert result.exit_code == 0
    for record_id in ('session_first', 'session_second', 'session_third'):
        assert (record_id in result.output) == (record_id in expected_ids)


def test_list_rejects_unknown_status() -> None:
    result = runner.invoke(scrapetrack._cli.cli, ['history', 'list', '--status', 'done'])

    assert result.exit_code != 0


@pytest.mark.usefixtures('seeded_history')
def test_show_record() -> None:
    result = runner.invoke(scrapetrack._cli.cli, ['history', 'show', 'session_second'])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data['id'] == 'session_second'
    assert data['platform'] == 'amazon'
    assert data['errorMessage'] == 'Blocked'
    assert data['totalProducts'] == 5
    assert data['successRate'] == 20.0
    assert data['duration'] == 60000


def test_show_unknown_record() -> None:
    result = runner.invoke(scrapetrack._cli.cli, ['history', 'show', 'session_missing'])

    assert result.exit_code == 1
    assert 'session_missing not found' in result.output


@pytest.mark.usefixtures('seeded_history')
def test_stats_as_json() -> None:
    result = runner.invoke(scrapetrack._cli.cli, ['history', 'stats', '--json'])

    assert result.exit_code == 0
    data = json.loads(result.output)
    assert data['total_sessions'] == 3
    assert data['completed_sessions'] == 1
    assert data['failed_sessions'] == 1
    assert data['total_products'] == 19
    assert data['successful_products'] == 10
    assert data['total_duration'] == 360.0
    assert data['platform_stats']['flipkart'] == {
        'session_count': 2,
        'product_count': 14,
        'success_rate': pytest.approx(9 / 14 * 100),
    }
    assert set(data['category_stats']) == {'mobiles', 'laptops', 'Mobile Accessories'}


@pytest.mark.usefixtures('seeded_history')
def test_stats_as_table() -> None:
    result = runner.invoke(scrapetrack._cli.cli, ['history', 'stats'])

    assert result.exit_code == 0
    assert 'total_sessions' in result.output
    assert 'platform: flipkart' in result.output
    assert '2 sessions, 14 products, 64.29%' in result.output
    assert '6m 0s' in result.output


@pytest.mark.usefixtures('seeded_history')
def test_export_and_import(tmp_path: Path) -> None:
    export_path = tmp_path / 'export.json'

    result = runner.invoke(scrapetrack._cli.cli, ['history', 'export', '--output', str(export_path)])
    assert result.exit_code == 0
    assert 'History exported to' in result.output

    exported = json.loads(export_path.read_text(encoding='utf-8'))
    assert [record['id'] for record in exported] == ['session_third', 'session_second', 'session_first']

    result = runner.invoke(scrapetrack._cli.cli, ['history', 'clear', '--yes'])
    assert result.exit_code == 0
    assert _run_history('list_records') == []

    result = runner.invoke(scrapetrack._cli.cli, ['history', 'import', str(export_path)])
    assert result.exit_code == 0
    assert 'History imported from' in result.output

    records = _run_history('list_records')
    assert isinstance(records, list)
    assert [record.id for record in records] == ['session_third', 'session_second', 'session_first']


@pytest.mark.usefixtures('seeded_history')
def test_export_to_stdout() -> None:
    result = runner.invoke(scrapetrack._cli.cli, ['history', 'export'])

    assert result.exit_code == 0
    assert len(json.loads(result.output)) == 3


@pytest.mark.usefixtures('seeded_history')
def test_import_invalid_file(tmp_path: Path) -> None:
    source = tmp_path / 'invalid.json'
    source.write_text('{"id": "not-an-array"}', encoding='utf-8')

    result = runner.invoke(scrapetrack._cli.cli, ['history', 'import', str(source)])

    assert result.exit_code == 1
    assert 'does not contain a valid array' in result.output

    records = _run_history('list_records')
    assert isinstance(records, list)
    assert len(records) == 3


@pytest.mark.usefixtures('seeded_history')
def test_delete_record() -> None:
    result = runner.invoke(scrapetrack._cli.cli, ['history', 'delete', 'session_first'])

    assert result.exit_code == 0
    assert 'History record session_first deleted.' in result.output
    assert _run_history('get', 'session_first') is None

    result = runner.invoke(scrapetrack._cli.cli, ['history', 'delete', 'session_first'])
    assert result.exit_code == 1


@pytest.mark.usefixtures('seeded_history')
def test_clear_asks_for_confirmation() -> None:
    result = runner.invoke(scrapetrack._cli.cli, ['history', 'clear'], input='n\n')

    assert result.exit_code == 1
    records = _run_history('list_records')
    assert isinstance(records, list)
    assert len(records) == 3

    result = runner.invoke(scrapetrack._cli.cli, ['history', 'clear'], input='y\n')

    assert result.exit_code == 0
    assert 'History cleared.' in result.output
    assert _run_history('list_records') == []


@pytest.mark.parametrize('missing_module', ['typer', 'click'])
def test_missing_cli_extra_is_reported(missing_module: str, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setitem(sys.modules, missing_module, None)
    monkeypatch.delitem(sys.modules, 'scrapetrack._cli')

    with pytest.raises(ImportError, match=r"Try using 'scrapetrack\[cli\]' instead"):
        importlib.import_module('scrapetrack._cli')
