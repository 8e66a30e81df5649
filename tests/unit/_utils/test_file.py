from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from scrapetrack._utils.file import atomic_write, infer_mime_type, json_dumps

if TYPE_CHECKING:
    from pathlib import Path


@pytest.mark.parametrize(
    ('value', 'expected'),
    [
        ({'a': 1}, 'application/json; charset=utf-8'),
        ([1, 2], 'application/json; charset=utf-8'),
        ('text', 'text/plain; charset=utf-8'),
        (42, 'text/plain; charset=utf-8'),
        (b'bytes', 'application/octet-stream'),
        (object(), 'application/octet-stream'),
    ],
    ids=['dict', 'list', 'str', 'int', 'bytes', 'object'],
)
def test_infer_mime_type(value: object, expected: str) -> None:
    assert infer_mime_type(value) == expected


async def test_json_dumps_keeps_unicode() -> None:
    assert await json_dumps({'name': 'Mobiles – फ़ोन'}) == '{\n  "name": "Mobiles – फ़ोन"\n}'


async def test_atomic_write_text_and_bytes(tmp_path: Path) -> None:
    path = tmp_path / 'value.txt'

    await atomic_write(path, 'first')
    assert path.read_text(encoding='utf-8') == 'first'

    await atomic_write(path, b'second')
    assert path.read_bytes() == b'second'

    assert [file.name for file in tmp_path.iterdir()] == ['value.txt']
