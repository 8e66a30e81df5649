from __future__ import annotations

import json
from datetime import timedelta

import pytest

from scrapetrack.history import GroupStatistics, HistoryRecord, StatisticsSnapshot


def _record(platform: str, total: int, scraped: int, failed: int = 0, **kwargs: object) -> HistoryRecord:
    return HistoryRecord(
        platform=platform,
        total_products=total,
        scraped_products=scraped,
        failed_products=failed,
        **kwargs,  # type: ignore[arg-type]
    )


def test_empty_history() -> None:
    snapshot = StatisticsSnapshot.from_records([])

    assert snapshot.total_sessions == 0
    assert snapshot.total_products == 0
    assert snapshot.average_success_rate == 0
    assert snapshot.total_duration == timedelta(0)
    assert snapshot.platform_stats == {}
    assert snapshot.category_stats == {}


def test_platform_breakdown_of_two_sessions() -> None:
    snapshot = StatisticsSnapshot.from_records(
        [
            _record('flipkart', total=10, scraped=8, failed=2, status='completed'),
            _record('flipkart', total=5, scraped=5, status='completed'),
        ]
    )

    flipkart = snapshot.platform_stats['flipkart']
    assert flipkart.session_count == 2
    assert flipkart.product_count == 15
    assert flipkart.success_rate == pytest.approx(13 / 15 * 100)


def test_totals() -> None:
    snapshot = StatisticsSnapshot.from_records(
        [
            _record('flipkart', total=10, scraped=8, failed=2, status='completed', duration=timedelta(seconds=30)),
            _record('amazon', total=4, scraped=1, failed=1, status='failed', duration=timedelta(seconds=10)),
            _record('amazon', total=6, scraped=0, status='in_progress'),
        ]
    )

    assert snapshot.total_sessions == 3
    assert snapshot.completed_sessions == 1
    assert snapshot.failed_sessions == 1
    assert snapshot.total_products == 20
    assert snapshot.successful_products == 9
    assert snapshot.failed_products == 3
    assert snapshot.average_success_rate == pytest.approx(45.0)
    assert snapshot.total_duration == timedelta(seconds=40)


def test_platform_grouping_is_case_sensitive() -> None:
    snapshot = StatisticsSnapshot.from_records([_record('Flipkart', 1, 1), _record('flipkart', 1, 0)])

    assert set(snapshot.platform_stats) == {'Flipkart', 'flipkart'}


def test_records_without_category_are_excluded_from_category_breakdown() -> None:
    snapshot = StatisticsSnapshot.from_records(
        [
            _record('flipkart', 2, 1, category='mobiles'),
            _record('flipkart', 2, 2, category=None),
            _record('flipkart', 2, 2, category=''),
        ]
    )

    assert snapshot.category_stats == {'mobiles': GroupStatistics(session_count=1, product_count=2, success_rate=50.0)}
    assert snapshot.platform_stats['flipkart'].session_count == 3


def test_group_without_products_has_zero_success_rate() -> None:
    snapshot = StatisticsSnapshot.from_records([_record('flipkart', 0, 0)])

    assert snapshot.platform_stats['flipkart'].success_rate == 0.0


def test_to_dict_and_str() -> None:
    snapshot = StatisticsSnapshot.from_records(
        [_record('flipkart', 4, 2, category='mobiles', status='completed', duration=timedelta(seconds=3))]
    )

    data = snapshot.to_dict()
    assert data['total_duration'] == 3.0
    assert data['platform_stats'] == {'flipkart': {'session_count': 1, 'product_count': 4, 'success_rate': 50.0}}
    assert json.loads(str(snapshot)) == data


def test_to_table() -> None:
    snapshot = StatisticsSnapshot.from_records(
        [_record('flipkart', 4, 2, category='mobiles', status='completed', duration=timedelta(minutes=2, seconds=5))]
    )

    table = snapshot.to_table()

    assert '│ total_sessions' in table
    assert '2m 5s' in table
    assert '50.00%' in table
    assert 'platform: flipkart' in table
    assert 'category: mobiles' in table
