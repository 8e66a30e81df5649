from __future__ import annotations

import asyncio
import json
import urllib.parse
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError
from typing_extensions import override

from scrapetrack._consts import METADATA_FILENAME
from scrapetrack._utils.crypto import crypto_random_object_id
from scrapetrack._utils.file import atomic_write, infer_mime_type, json_dumps
from scrapetrack._utils.time import utc_now
from scrapetrack.errors import PersistenceError
from scrapetrack.storage_clients._base import KeyValueStoreClient
from scrapetrack.storage_clients.models import KeyValueStoreMetadata, KeyValueStoreRecord, KeyValueStoreRecordMetadata

if TYPE_CHECKING:
    from scrapetrack.configuration import Configuration

logger = getLogger(__name__)


class FileSystemKeyValueStoreClient(KeyValueStoreClient):
    """File system implementation of the key-value store client.

    This client persists data to the file system, so the session history survives process restarts. Keys are
    mapped to file paths following the pattern:

    ```
    {STORAGE_DIR}/key_value_stores/{STORE_NAME}/{KEY}
    ```

    Each value file is accompanied by a `{KEY}.__metadata__.json` file describing its content type. JSON values
    are stored in a human-readable form, so the history can be inspected between runs.

    Warning: the client is not safe for concurrent access from multiple processes.
    """

    _STORAGE_SUBDIR = 'key_value_stores'
    """The name of the subdirectory where key-value stores are stored."""

    _STORAGE_SUBSUBDIR_DEFAULT = 'default'
    """The name of the subdirectory for the default key-value store."""

    def __init__(self, *, metadata: KeyValueStoreMetadata, storage_dir: Path) -> None:
        """Initialize a new instance.

        Preferably use the `FileSystemKeyValueStoreClient.open` class method to create a new instance.
        """
        self._metadata = metadata

        self._storage_dir = storage_dir
        """The base directory where the storage data are being persisted."""

        self._lock = asyncio.Lock()
        """A lock to ensure that only one file operation is performed at a time."""

    @override
    async def get_metadata(self) -> KeyValueStoreMetadata:
        return self._metadata

    @property
    def path_to_kvs(self) -> Path:
        """The full path to the key-value store directory."""
        return self._storage_dir / self._STORAGE_SUBDIR / (self._metadata.name or self._STORAGE_SUBSUBDIR_DEFAULT)

    @property
    def path_to_metadata(self) -> Path:
        """The full path to the key-value store metadata file."""
        return self.path_to_kvs / METADATA_FILENAME

    @classmethod
    async def open(cls, *, name: str | None, configuration: Configuration) -> FileSystemKeyValueStoreClient:
        """Open or create a file system key-value store client.

        If the store directory already contains a metadata file, the store is reopened with it. Otherwise a new
        store is created.

        Args:
            name: The name of the key-value store to open. If not provided, uses the default store.
            configuration: The configuration object containing storage directory settings.

        Raises:
            ValueError: If the existing metadata file is invalid.
        """
        storage_dir = Path(configuration.storage_dir)
        kvs_path = storage_dir / cls._STORAGE_SUBDIR / (name or cls._STORAGE_SUBSUBDIR_DEFAULT)
        metadata_path = kvs_path / METADATA_FILENAME

        if metadata_path.exists():
            file_content = await asyncio.to_thread(metadata_path.read_text, encoding='utf-8')
            try:
                metadata = KeyValueStoreMetadata.model_validate_json(file_content)
            except ValidationError as exc:
                raise ValueError(f'Invalid metadata file for key-value store "{name}"') from exc
            return cls(metadata=metadata, storage_dir=storage_dir)

        now = utc_now()
        metadata = KeyValueStoreMetadata(id=crypto_random_object_id(), name=name, created_at=now, modified_at=now)
        client = cls(metadata=metadata, storage_dir=storage_dir)
        await client._write_metadata()
        return client

    @override
    async def purge(self) -> None:
        async with self._lock:
            for file_path in self.path_to_kvs.glob('*'):
                if file_path.name == METADATA_FILENAME:
                    continue
                await asyncio.to_thread(file_path.unlink, missing_ok=True)

            await self._write_metadata(modified=True)

    @override
    async def get_value(self, *, key: str) -> KeyValueStoreRecord | None:
        record_path = self.path_to_kvs / self._encode_key(key)
        record_metadata_path = self._record_metadata_path(record_path)

        async with self._lock:
            if not record_path.exists():
                return None

            if not record_metadata_path.exists():
                logger.warning(f'Found value file for key "{key}" but no metadata file.')
                return None

            try:
                metadata_content = await asyncio.to_thread(record_metadata_path.read_text, encoding='utf-8')
                value_bytes = await asyncio.to_thread(record_path.read_bytes)
            except FileNotFoundError:
                logger.warning(f'Record files disappeared for key "{key}"')
                return None

        try:
            metadata = KeyValueStoreRecordMetadata.model_validate_json(metadata_content)
        except ValidationError:
            logger.warning(f'Invalid metadata file for key "{key}"')
            return None

        if metadata.content_type == 'application/x-none':
            value: Any = None
        elif 'application/json' in metadata.content_type:
            try:
                value = json.loads(value_bytes.decode('utf-8'))
            except (json.JSONDecodeError, UnicodeDecodeError):
                logger.warning(f'Failed to decode JSON value for key "{key}"')
                return None
        elif metadata.content_type.startswith('text/'):
            try:
                value = value_bytes.decode('utf-8')
            except UnicodeDecodeError:
                logger.warning(f'Failed to decode text value for key "{key}"')
                return None
        else:
            value = value_bytes

        return KeyValueStoreRecord(
            key=metadata.key,
            value=value,
            content_type=metadata.content_type,
            size=len(value_bytes),
        )

    @override
    async def set_value(self, *, key: str, value: Any, content_type: str | None = None) -> None:
        if value is None:
            content_type = 'application/x-none'
            value_bytes = b''
        else:
            content_type = content_type or infer_mime_type(value)

            if 'application/json' in content_type:
                value_bytes = (await json_dumps(value)).encode('utf-8')
            elif isinstance(value, str):
                value_bytes = value.encode('utf-8')
            elif isinstance(value, (bytes, bytearray)):
                value_bytes = bytes(value)
            else:
                value_bytes = str(value).encode('utf-8')

        record_path = self.path_to_kvs / self._encode_key(key)
        record_metadata = KeyValueStoreRecordMetadata(key=key, content_type=content_type, size=len(value_bytes))

        async with self._lock:
            try:
                await asyncio.to_thread(self.path_to_kvs.mkdir, parents=True, exist_ok=True)
                await atomic_write(record_path, value_bytes)
                await atomic_write(self._record_metadata_path(record_path), record_metadata.model_dump_json())
            except OSError as exc:
                raise PersistenceError(f'Failed to write value for key "{key}" to {record_path}') from exc

            await self._write_metadata(modified=True)

    @override
    async def delete_value(self, *, key: str) -> None:
        record_path = self.path_to_kvs / self._encode_key(key)

        async with self._lock:
            if not record_path.exists():
                return

            await asyncio.to_thread(record_path.unlink, missing_ok=True)
            await asyncio.to_thread(self._record_metadata_path(record_path).unlink, missing_ok=True)
            await self._write_metadata(modified=True)

    @override
    async def record_exists(self, *, key: str) -> bool:
        record_path = self.path_to_kvs / self._encode_key(key)

        # Both the value file and metadata file must exist for a record to be considered existing
        return record_path.exists() and self._record_metadata_path(record_path).exists()

    async def _write_metadata(self, *, modified: bool = False) -> None:
        if modified:
            self._metadata.modified_at = utc_now()

        await asyncio.to_thread(self.path_to_kvs.mkdir, parents=True, exist_ok=True)
        await atomic_write(self.path_to_metadata, self._metadata.model_dump_json(by_alias=True, indent=2))

    @staticmethod
    def _record_metadata_path(record_path: Path) -> Path:
        return record_path.with_name(f'{record_path.name}.{METADATA_FILENAME}')

    @staticmethod
    def _encode_key(key: str) -> str:
        """Encode a key to make it safe for use in a file path."""
        return urllib.parse.quote(key, safe='')
