from __future__ import annotations

from datetime import timedelta

import pytest
from pydantic import BaseModel

from scrapetrack._utils.models import timedelta_ms


class _Model(BaseModel):
    duration: timedelta_ms | None = None


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        (1500, timedelta(milliseconds=1500)),
        (1500.0, timedelta(milliseconds=1500)),
        ('1500', timedelta(milliseconds=1500)),
        (timedelta(seconds=2), timedelta(seconds=2)),
        (None, None),
    ],
)
def test_validation(value: object, expected: timedelta | None) -> None:
    assert _Model(duration=value).duration == expected  # type: ignore[arg-type]


def test_serialization_to_integer_milliseconds() -> None:
    assert _Model(duration=timedelta(seconds=1, microseconds=600)).model_dump(mode='json') == {'duration': 1001}
    assert _Model().model_dump(mode='json') == {'duration': None}
