from __future__ import annotations

import json
from dataclasses import asdict, dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Annotated, Any

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt
from typing_extensions import override

from scrapetrack._types import TERMINAL_STATUSES, ItemStatus, JsonSerializable, SessionStatus, SessionType
from scrapetrack._utils.console import make_table
from scrapetrack._utils.crypto import generate_session_id
from scrapetrack._utils.docs import docs_group
from scrapetrack._utils.math import compute_percentage, compute_rate
from scrapetrack._utils.models import timedelta_ms
from scrapetrack._utils.time import format_duration, utc_now

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

_STATISTICS_TABLE_WIDTH = 100


@docs_group('Data structures')
class SelectedProduct(BaseModel):
    """A single item selected for scraping, together with its outcome."""

    model_config = ConfigDict(populate_by_name=True)

    url: Annotated[str, Field(alias='url')]
    title: Annotated[str, Field(alias='title')] = ''
    status: Annotated[ItemStatus, Field(alias='status')] = 'pending'
    error_message: Annotated[str | None, Field(alias='errorMessage')] = None


@docs_group('Data structures')
class ProgressCounter(BaseModel):
    """Processed/total/percentage tuple as stored in history records and sent to the remote log."""

    model_config = ConfigDict(populate_by_name=True)

    current: Annotated[NonNegativeInt, Field(alias='current')] = 0
    total: Annotated[NonNegativeInt, Field(alias='total')] = 0
    percentage: Annotated[NonNegativeInt, Field(alias='percentage')] = 0

    @classmethod
    def from_counts(cls, current: int, total: int) -> ProgressCounter:
        return cls(current=current, total=total, percentage=compute_percentage(current, total))


@docs_group('Data structures')
class CategoryProgress(BaseModel):
    """Progress of a single sub-category of a multi-category session."""

    model_config = ConfigDict(populate_by_name=True)

    total: Annotated[NonNegativeInt, Field(alias='total')] = 0
    scraped: Annotated[NonNegativeInt, Field(alias='scraped')] = 0
    failed: Annotated[NonNegativeInt, Field(alias='failed')] = 0
    products: Annotated[list[JsonSerializable], Field(alias='products')] = []
    """Opaque product payloads, stored but never interpreted."""


@docs_group('History')
class HistoryRecord(BaseModel):
    """Durable representation of a session, kept in the history store after the session finishes.

    The `progress`, `success_rate` and `duration` fields are cached values derived from the counters and
    timestamps. The history store recomputes them with `refresh_derived` on every mutation, so they never
    drift from their sources.
    """

    model_config = ConfigDict(populate_by_name=True)

    id: Annotated[str, Field(alias='id', default_factory=generate_session_id)]
    when: Annotated[datetime, Field(alias='when', default_factory=utc_now)]
    """Recency key, history is ordered by it."""

    platform: Annotated[str, Field(alias='platform')]
    type: Annotated[SessionType, Field(alias='type')] = 'category'
    url: Annotated[str, Field(alias='url')] = ''
    category: Annotated[str | None, Field(alias='category')] = None
    status: Annotated[SessionStatus, Field(alias='status')] = 'pending'
    action: Annotated[str, Field(alias='action')] = 'scrape_started'
    operation_id: Annotated[str | None, Field(alias='operationId')] = None

    total_products: Annotated[NonNegativeInt, Field(alias='totalProducts')] = 0
    scraped_products: Annotated[NonNegativeInt, Field(alias='scrapedProducts')] = 0
    failed_products: Annotated[NonNegativeInt, Field(alias='failedProducts')] = 0
    progress: Annotated[ProgressCounter, Field(alias='progress', default_factory=ProgressCounter)]
    duration: Annotated[timedelta_ms | None, Field(alias='duration')] = None
    """Time between start and the terminal transition, only set for terminal records."""

    error_message: Annotated[str | None, Field(alias='errorMessage')] = None
    retry_count: Annotated[NonNegativeInt, Field(alias='retryCount')] = 0

    started_at: Annotated[datetime, Field(alias='startedAt', default_factory=utc_now)]
    completed_at: Annotated[datetime | None, Field(alias='completedAt')] = None
    success_rate: Annotated[float, Field(alias='successRate')] = 0.0

    selected_products: Annotated[list[SelectedProduct], Field(alias='selectedProducts')] = []
    product_data: Annotated[list[JsonSerializable] | None, Field(alias='productData')] = None
    """Opaque scraped data, stored but never interpreted."""

    category_products: Annotated[dict[str, CategoryProgress] | None, Field(alias='categoryProducts')] = None
    session_id: Annotated[str | None, Field(alias='sessionId')] = None
    scrape_log_id: Annotated[str | None, Field(alias='scrapeLogId')] = None

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def refresh_derived(self, *, now: datetime | None = None) -> None:
        """Recompute `progress`, `success_rate` and `duration` from the counters and timestamps.

        Terminal records without `completed_at` get it stamped with `now`.
        """
        self.progress = ProgressCounter.from_counts(self.scraped_products, self.total_products)
        self.success_rate = compute_rate(self.scraped_products, self.total_products)

        if self.is_terminal:
            if self.completed_at is None:
                self.completed_at = now or utc_now()
            self.duration = max(self.completed_at - self.started_at, timedelta(0))
        else:
            self.duration = None


@dataclass(frozen=True)
@docs_group('History')
class GroupStatistics:
    """Statistics of one group of history records, e.g. all records of one platform."""

    session_count: int
    product_count: int
    success_rate: float

    def to_dict(self) -> dict[str, int | float]:
        return asdict(self)


def _group_statistics(
    records: Iterable[HistoryRecord],
    key: Callable[[HistoryRecord], str | None],
) -> dict[str, GroupStatistics]:
    counters: dict[str, list[int]] = {}

    for record in records:
        group = key(record)
        if group is None:
            continue
        sessions, products, successes = counters.get(group, [0, 0, 0])
        counters[group] = [sessions + 1, products + record.total_products, successes + record.scraped_products]

    return {
        group: GroupStatistics(
            session_count=sessions,
            product_count=products,
            success_rate=compute_rate(successes, products),
        )
        for group, (sessions, products, successes) in counters.items()
    }


@dataclass(frozen=True)
@docs_group('History')
class StatisticsSnapshot:
    """Aggregate statistics computed across the whole session history.

    Snapshots are never persisted, each call of `HistoryStore.statistics` builds a new one.
    """

    total_sessions: int
    completed_sessions: int
    failed_sessions: int
    total_products: int
    successful_products: int
    failed_products: int
    average_success_rate: float
    total_duration: timedelta
    platform_stats: dict[str, GroupStatistics] = field(default_factory=dict)
    category_stats: dict[str, GroupStatistics] = field(default_factory=dict)

    @classmethod
    def from_records(cls, records: Iterable[HistoryRecord]) -> StatisticsSnapshot:
        """Compute the snapshot from a set of history records.

        Platforms are grouped by exact, case-sensitive match. Records without a category are left out of the
        category breakdown.
        """
        records = list(records)
        total_products = sum(record.total_products for record in records)
        successful_products = sum(record.scraped_products for record in records)

        return cls(
            total_sessions=len(records),
            completed_sessions=sum(1 for record in records if record.status == 'completed'),
            failed_sessions=sum(1 for record in records if record.status == 'failed'),
            total_products=total_products,
            successful_products=successful_products,
            failed_products=sum(record.failed_products for record in records),
            average_success_rate=compute_rate(successful_products, total_products),
            total_duration=sum((record.duration or timedelta(0) for record in records), timedelta(0)),
            platform_stats=_group_statistics(records, lambda record: record.platform),
            category_stats=_group_statistics(records, lambda record: record.category or None),
        )

    def to_table(self) -> str:
        """Render the snapshot as a text table."""
        rows: list[tuple[str, str]] = [
            ('total_sessions', str(self.total_sessions)),
            ('completed_sessions', str(self.completed_sessions)),
            ('failed_sessions', str(self.failed_sessions)),
            ('total_products', str(self.total_products)),
            ('successful_products', str(self.successful_products)),
            ('failed_products', str(self.failed_products)),
            ('average_success_rate', f'{self.average_success_rate:.2f}%'),
            ('total_duration', format_duration(self.total_duration)),
        ]

        for prefix, groups in (('platform', self.platform_stats), ('category', self.category_stats)):
            rows.extend(
                (
                    f'{prefix}: {name}',
                    f'{stats.session_count} sessions, {stats.product_count} products, {stats.success_rate:.2f}%',
                )
                for name, stats in sorted(groups.items())
            )

        return make_table(rows, width=_STATISTICS_TABLE_WIDTH)

    def to_dict(self) -> dict[str, Any]:
        """Return the snapshot as a JSON-serializable dictionary, durations in seconds."""
        return {
            'total_sessions': self.total_sessions,
            'completed_sessions': self.completed_sessions,
            'failed_sessions': self.failed_sessions,
            'total_products': self.total_products,
            'successful_products': self.successful_products,
            'failed_products': self.failed_products,
            'average_success_rate': self.average_success_rate,
            'total_duration': self.total_duration.total_seconds(),
            'platform_stats': {name: stats.to_dict() for name, stats in self.platform_stats.items()},
            'category_stats': {name: stats.to_dict() for name, stats in self.category_stats.items()},
        }

    @override
    def __str__(self) -> str:
        return json.dumps(self.to_dict())
