from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone
from logging import getLogger
from typing import TYPE_CHECKING, Any

from pydantic import TypeAdapter, ValidationError

from scrapetrack._consts import DEFAULT_HISTORY_KEY, MAX_HISTORY_ITEMS
from scrapetrack._types import ACTIVE_STATUSES
from scrapetrack._utils.docs import docs_group
from scrapetrack._utils.time import utc_now
from scrapetrack.configuration import Configuration
from scrapetrack.errors import ImportFormatError, PersistenceError
from scrapetrack.storages import KeyValueStore

from ._models import CategoryProgress, HistoryRecord, StatisticsSnapshot

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from scrapetrack._types import ItemStatus, SessionStatus
    from scrapetrack.storage_clients import StorageClient

logger = getLogger(__name__)

_records_adapter = TypeAdapter(list[HistoryRecord])


def _as_aware(value: datetime) -> datetime:
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


@docs_group('History')
class HistoryStore:
    """Durable, capacity-bounded record of scraping sessions, past and present.

    The whole history is kept as a single JSON array under one key of a `KeyValueStore`. Every mutation is a
    read-modify-write cycle of that array, serialised by a lock. On every save, records are sorted by `when` in
    descending order and truncated to `max_items`, so the oldest records are dropped once the cap is exceeded.

    Persistence is best-effort: a failed write is logged and never raised, and an unreadable or corrupt persisted blob
    reads as an empty history.

    ### Usage

    ```python
    from scrapetrack.history import HistoryRecord, HistoryStore

    history = await HistoryStore.open()

    record = await history.upsert(HistoryRecord(platform='flipkart', category='mobiles', total_products=10))
    await history.update(record.id, scraped_products=8, status='completed')

    print((await history.statistics()).to_table())
    ```
    """

    def __init__(
        self,
        key_value_store: KeyValueStore,
        *,
        key: str = DEFAULT_HISTORY_KEY,
        max_items: int = MAX_HISTORY_ITEMS,
    ) -> None:
        """Initialize a new instance.

        Preferably use the `HistoryStore.open` constructor to create a new instance.

        Args:
            key_value_store: The key-value store the history is persisted in.
            key: The key reserved for the history array.
            max_items: The maximum number of records retained.
        """
        if max_items < 1:
            raise ValueError('max_items must be a positive integer')

        self._kvs = key_value_store
        self._key = key
        self._max_items = max_items
        self._lock = asyncio.Lock()

    @classmethod
    async def open(
        cls,
        *,
        configuration: Configuration | None = None,
        storage_client: StorageClient | None = None,
    ) -> HistoryStore:
        """Open the history store described by the configuration.

        Args:
            configuration: Configuration providing the store name, the key and the capacity. A default one is
                created if not provided.
            storage_client: Storage client backing the key-value store. Defaults to the file system client.
        """
        configuration = Configuration() if configuration is None else configuration
        kvs = await KeyValueStore.open(
            name=configuration.history_kvs_name,
            configuration=configuration,
            storage_client=storage_client,
        )
        return cls(kvs, key=configuration.history_key, max_items=configuration.max_history_items)

    @property
    def max_items(self) -> int:
        """The maximum number of records retained."""
        return self._max_items

    async def upsert(self, record: HistoryRecord) -> HistoryRecord:
        """Insert a new record at the front of the history, or replace the record with the same id.

        Derived fields of the record are recomputed before it is stored.

        Returns:
            The stored record.
        """
        record.refresh_derived()

        async with self._lock:
            records = await self._load()
            for index, existing in enumerate(records):
                if existing.id == record.id:
                    records[index] = record
                    break
            else:
                records.insert(0, record)
            await self._save(records)

        return record

    async def update(self, record_id: str, **changes: Any) -> bool:
        """Apply changes to the record with the given id.

        Args:
            record_id: Id of the record to update.
            changes: New field values, keyed by field name (e.g. `scraped_products=3`).

        Returns:
            `True` if the record was found and updated, `False` otherwise.

        Raises:
            ValueError: If a change names an unknown field or the changed record does not validate.
        """
        unknown_fields = set(changes) - set(HistoryRecord.model_fields)
        if unknown_fields:
            raise ValueError(f'Unknown history record fields: {", ".join(sorted(unknown_fields))}')

        return await self._modify(record_id, lambda record: self._apply_changes(record, changes))

    async def update_item_status(
        self,
        record_id: str,
        item_url: str,
        status: ItemStatus,
        error_message: str | None = None,
    ) -> bool:
        """Set the status of one selected item of a record.

        When the same URL was selected more than once, the first still pending occurrence is updated.

        Returns:
            `True` if both the record and the item were found, `False` otherwise.
        """

        def modify(record: HistoryRecord) -> HistoryRecord | None:
            matching = [product for product in record.selected_products if product.url == item_url]
            if not matching:
                return None
            product = next((product for product in matching if product.status == 'pending'), matching[0])
            product.status = status
            product.error_message = error_message
            return record

        return await self._modify(record_id, modify)

    async def update_category_progress(
        self,
        record_id: str,
        category_url: str,
        progress: CategoryProgress,
    ) -> bool:
        """Store the progress of one sub-category and recompute the record's totals from all its sub-categories.

        The record becomes `completed` once every product of every known sub-category is processed, and
        `in_progress` otherwise. Records that were already cancelled or failed keep their status.

        Returns:
            `True` if the record was found and updated, `False` otherwise.
        """

        def modify(record: HistoryRecord) -> HistoryRecord:
            categories = dict(record.category_products or {})
            categories[category_url] = progress
            record.category_products = categories

            record.total_products = sum(category.total for category in categories.values())
            record.scraped_products = sum(category.scraped for category in categories.values())
            record.failed_products = sum(category.failed for category in categories.values())

            if record.status not in ('cancelled', 'failed'):
                if record.scraped_products + record.failed_products >= record.total_products:
                    record.status = 'completed'
                    record.completed_at = utc_now()
                else:
                    record.status = 'in_progress'
                    record.completed_at = None

            return record

        return await self._modify(record_id, modify)

    async def delete(self, record_id: str) -> bool:
        """Remove a single record.

        Returns:
            `True` if the record existed, `False` otherwise.
        """
        async with self._lock:
            records = await self._load()
            remaining = [record for record in records if record.id != record_id]
            if len(remaining) == len(records):
                return False
            await self._save(remaining)
            return True

    async def clear(self) -> None:
        """Remove all records. A failed delete is logged and leaves the history as it was."""
        async with self._lock:
            try:
                await self._kvs.delete_value(self._key)
            except Exception:
                logger.exception(f'Failed to clear scraping history under key "{self._key}"')
                return
        logger.info('Scraping history cleared.')

    async def get(self, record_id: str) -> HistoryRecord | None:
        """Get the record with the given id, or `None` if it does not exist."""
        for record in await self._load():
            if record.id == record_id:
                return record
        return None

    async def list_records(self) -> list[HistoryRecord]:
        """List all records, most recent first by `when`."""
        records = await self._load()
        records.sort(key=lambda record: _as_aware(record.when), reverse=True)
        return records

    async def statistics(self) -> StatisticsSnapshot:
        """Compute aggregate statistics across the whole history."""
        return StatisticsSnapshot.from_records(await self._load())

    async def filter_by_date_range(self, start: datetime, end: datetime) -> list[HistoryRecord]:
        """Records whose `when` lies between `start` and `end`, both inclusive.

        Naive datetimes are treated as UTC.
        """
        start, end = _as_aware(start), _as_aware(end)
        return await self._filter(lambda record: start <= _as_aware(record.when) <= end)

    async def filter_by_platform(self, platform: str) -> list[HistoryRecord]:
        """Records of the given platform, compared case-insensitively."""
        platform = platform.lower()
        return await self._filter(lambda record: record.platform.lower() == platform)

    async def filter_by_category(self, category: str) -> list[HistoryRecord]:
        """Records whose category contains the given text, compared case-insensitively."""
        category = category.lower()
        return await self._filter(lambda record: record.category is not None and category in record.category.lower())

    async def filter_by_status(self, status: SessionStatus) -> list[HistoryRecord]:
        """Records with exactly the given status."""
        return await self._filter(lambda record: record.status == status)

    async def recent(self, count: int = 10) -> list[HistoryRecord]:
        """The `count` most recent records."""
        return (await self.list_records())[: max(count, 0)]

    async def failed_records(self) -> list[HistoryRecord]:
        """Records that failed or carry an error message (cancelled records included)."""
        return await self._filter(lambda record: record.status == 'failed' or bool(record.error_message))

    async def active_records(self) -> list[HistoryRecord]:
        """Records that are still pending or in progress."""
        return await self._filter(lambda record: record.status in ACTIVE_STATUSES)

    async def export_json(self) -> str:
        """Serialize the whole history into a JSON array, most recent first."""
        records = await self.list_records()
        return _records_adapter.dump_json(records, by_alias=True, indent=2).decode('utf-8')

    async def import_json(self, blob: str | bytes) -> bool:
        """Replace the whole history with the records of a JSON array.

        Order of the imported records does not matter. Derived fields are taken as they are in the blob.

        Returns:
            `True` if the blob was a valid array of records and replaced the history, `False` if it was rejected
            and the history is untouched.
        """
        try:
            records = self._parse_import(blob)
        except ImportFormatError as exc:
            logger.warning(f'Scraping history import rejected: {exc}')
            return False

        async with self._lock:
            await self._save(records)

        logger.info(f'Imported {len(records)} scraping history records.')
        return True

    @staticmethod
    def _parse_import(blob: str | bytes) -> list[HistoryRecord]:
        try:
            data = json.loads(blob)
        except (json.JSONDecodeError, UnicodeDecodeError) as exc:
            raise ImportFormatError(f'payload is not valid JSON ({exc})') from exc

        if not isinstance(data, list):
            raise ImportFormatError(f'expected a JSON array, got {type(data).__name__}')

        try:
            return _records_adapter.validate_python(data)
        except ValidationError as exc:
            raise ImportFormatError(f'payload contains invalid records ({exc.error_count()} errors)') from exc

    @staticmethod
    def _apply_changes(record: HistoryRecord, changes: dict[str, Any]) -> HistoryRecord:
        return HistoryRecord.model_validate({**record.model_dump(), **changes})

    async def _modify(self, record_id: str, modify: Callable[[HistoryRecord], HistoryRecord | None]) -> bool:
        async with self._lock:
            records = await self._load()

            for index, record in enumerate(records):
                if record.id == record_id:
                    break
            else:
                return False

            updated = modify(record)
            if updated is None:
                return False

            updated.refresh_derived()
            records[index] = updated
            await self._save(records)
            return True

    async def _filter(self, predicate: Callable[[HistoryRecord], bool]) -> list[HistoryRecord]:
        return [record for record in await self.list_records() if predicate(record)]

    async def _load(self) -> list[HistoryRecord]:
        try:
            value = await self._kvs.get_value(self._key)
        except (OSError, PersistenceError) as exc:
            logger.warning(f'Failed to read scraping history under key "{self._key}", treating it as empty: {exc!r}')
            return []

        if value is None:
            return []

        try:
            if isinstance(value, (str, bytes)):
                value = json.loads(value)
            return _records_adapter.validate_python(value)
        except (json.JSONDecodeError, UnicodeDecodeError, ValidationError) as exc:
            logger.warning(
                f'Persisted scraping history under key "{self._key}" is corrupt, treating it as empty: {exc}'
            )
            return []

    async def _save(self, records: Sequence[HistoryRecord]) -> None:
        limited = sorted(records, key=lambda record: _as_aware(record.when), reverse=True)[: self._max_items]

        if len(limited) < len(records):
            logger.debug(f'Dropping {len(records) - len(limited)} oldest scraping history records over the cap.')

        try:
            await self._kvs.set_value(self._key, _records_adapter.dump_python(limited, mode='json', by_alias=True))
        except Exception:
            logger.exception(f'Failed to save scraping history under key "{self._key}"')

