from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from scrapetrack.history import CategoryProgress, HistoryRecord, ProgressCounter

_STARTED_AT = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


def test_record_defaults() -> None:
    record = HistoryRecord(platform='flipkart')

    assert record.id.startswith('session_')
    assert record.status == 'pending'
    assert record.type == 'category'
    assert record.retry_count == 0
    assert record.progress == ProgressCounter()
    assert record.duration is None


def test_refresh_derived_for_running_record() -> None:
    record = HistoryRecord(
        platform='flipkart',
        status='in_progress',
        total_products=3,
        scraped_products=1,
        failed_products=1,
        started_at=_STARTED_AT,
    )
    record.refresh_derived()

    assert record.progress == ProgressCounter(current=1, total=3, percentage=33)
    assert record.success_rate == pytest.approx(100 / 3)
    assert record.duration is None
    assert record.completed_at is None


@pytest.mark.parametrize('status', ['completed', 'failed', 'cancelled'])
def test_refresh_derived_for_terminal_record(status: str) -> None:
    record = HistoryRecord(platform='flipkart', status=status, total_products=2, started_at=_STARTED_AT)
    now = _STARTED_AT + timedelta(minutes=3)

    record.refresh_derived(now=now)

    assert record.completed_at == now
    assert record.duration == timedelta(minutes=3)


def test_refresh_derived_keeps_existing_completed_at_and_never_goes_negative() -> None:
    completed_at = _STARTED_AT - timedelta(seconds=5)
    record = HistoryRecord(platform='x', status='completed', started_at=_STARTED_AT, completed_at=completed_at)

    record.refresh_derived()

    assert record.completed_at == completed_at
    assert record.duration == timedelta(0)


def test_zero_total_has_no_division_by_zero() -> None:
    record = HistoryRecord(platform='x', total_products=0)
    record.refresh_derived()

    assert record.success_rate == 0.0
    assert record.progress.percentage == 0


def test_serialization_uses_camel_case_and_milliseconds() -> None:
    record = HistoryRecord(
        id='abc',
        platform='flipkart',
        status='completed',
        total_products=4,
        scraped_products=4,
        started_at=_STARTED_AT,
        completed_at=_STARTED_AT + timedelta(seconds=90),
        category_products={'https://shop.example/c/1': CategoryProgress(total=4, scraped=4)},
    )
    record.refresh_derived()

    data = record.model_dump(mode='json', by_alias=True)

    assert data['totalProducts'] == 4
    assert data['successRate'] == 100.0
    assert data['duration'] == 90_000
    assert data['progress'] == {'current': 4, 'total': 4, 'percentage': 100}
    assert data['categoryProducts']['https://shop.example/c/1']['scraped'] == 4
    assert HistoryRecord.model_validate(data) == record


def test_opaque_product_data_is_passed_through() -> None:
    payload = [{'title': 'Phone', 'price': 799.99, 'tags': ['a', None]}]
    record = HistoryRecord(platform='x', product_data=payload)

    assert HistoryRecord.model_validate(record.model_dump(mode='json', by_alias=True)).product_data == payload
