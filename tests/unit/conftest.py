from __future__ import annotations

import logging
import os
from typing import TYPE_CHECKING, cast

import pytest
from typing_extensions import override

from scrapetrack.configuration import Configuration
from scrapetrack.errors import RemoteLogError
from scrapetrack.history import HistoryStore
from scrapetrack.remote_log import MemoryRemoteLogClient
from scrapetrack.sessions import ItemSelection, SessionConfig, SessionRegistry
from scrapetrack.storage_clients import MemoryStorageClient

if TYPE_CHECKING:
    from collections.abc import AsyncGenerator, Callable
    from pathlib import Path

    from scrapetrack.remote_log import LogEntry, LogEntryUpdate


class FlakyRemoteLogClient(MemoryRemoteLogClient):
    """Memory remote log whose calls can be switched to fail."""

    def __init__(self) -> None:
        super().__init__()
        self.fail_create = False
        self.fail_update = False

    @override
    async def create(self, entry: LogEntry) -> str:
        if self.fail_create:
            raise RemoteLogError('Failed to create scrape log: service unavailable', status_code=503)
        return await super().create(entry)

    @override
    async def update(self, log_id: str, entry: LogEntryUpdate) -> None:
        if self.fail_update:
            raise RemoteLogError(f'Failed to update scrape log {log_id}: service unavailable', status_code=503)
        await super().update(log_id, entry)


@pytest.fixture
def prepare_test_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> Callable[[], None]:
    """Prepare the testing environment so that no test depends on the environment of the machine it runs on.

    All `SCRAPETRACK_` variables are removed and the storage directory is pointed at a temporary path.
    """

    def _prepare_test_env() -> None:
        for name in list(os.environ):
            if name.upper().startswith('SCRAPETRACK_'):
                monkeypatch.delenv(name)

        monkeypatch.setenv('SCRAPETRACK_STORAGE_DIR', str(tmp_path))

        assert os.environ.get('SCRAPETRACK_STORAGE_DIR') == str(tmp_path)

    return _prepare_test_env


@pytest.fixture(autouse=True)
def _isolate_test_environment(prepare_test_env: Callable[[], None]) -> None:
    """Isolate the testing environment before each test."""
    prepare_test_env()


@pytest.fixture(autouse=True)
def _set_log_level(pytestconfig: pytest.Config, monkeypatch: pytest.MonkeyPatch) -> None:
    from scrapetrack import _log_config  # noqa: PLC0415

    loglevel = cast('str | None', pytestconfig.getoption('--log-level'))
    if loglevel is not None:
        monkeypatch.setattr(_log_config, 'get_configured_log_level', lambda *_: getattr(logging, loglevel.upper()))


@pytest.fixture
def configuration() -> Configuration:
    return Configuration()


@pytest.fixture
async def history(configuration: Configuration) -> HistoryStore:
    return await HistoryStore.open(configuration=configuration, storage_client=MemoryStorageClient(configuration))


@pytest.fixture
def remote_log() -> FlakyRemoteLogClient:
    return FlakyRemoteLogClient()


@pytest.fixture
async def registry(history: HistoryStore, remote_log: FlakyRemoteLogClient) -> AsyncGenerator[SessionRegistry, None]:
    async with SessionRegistry(history=history, remote_log=remote_log) as registry:
        yield registry


@pytest.fixture
def make_config() -> Callable[..., SessionConfig]:
    """Build a session config with `count` selected items on `https://shop.example/p/{index}`."""

    def _make_config(count: int = 3, *, platform: str = 'flipkart', category: str | None = 'mobiles') -> SessionConfig:
        return SessionConfig(
            platform=platform,
            category=category,
            category_url='https://shop.example/c/mobiles',
            items=[
                ItemSelection(url=f'https://shop.example/p/{index}', title=f'Item {index}') for index in range(count)
            ],
        )

    return _make_config
