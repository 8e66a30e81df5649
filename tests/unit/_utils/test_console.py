from __future__ import annotations

from scrapetrack._utils.console import make_table


def test_empty_input() -> None:
    assert make_table([]) == ''


def test_empty_row() -> None:
    assert make_table([()]) == ''


def test_two_columns() -> None:
    data = [('Name', 'Age'), ('Alice', '30'), ('Bob', '25')]
    lines = make_table(data).split('\n')
    # fmt: off
    assert lines == ['┌───────┬─────┐',
                     '│ Name  │ Age │',
                     '│ Alice │ 30  │',
                     '│ Bob   │ 25  │',
                     '└───────┴─────┘']
    # fmt: on


def test_short_rows_are_padded() -> None:
    lines = make_table([('a', 'b'), ('c',)]).split('\n')
    assert lines[2] == '│ c │   │'


def test_long_content_truncation() -> None:
    data = [('Short', 'VeryVeryVeryLongContent')]
    lines = make_table(data, width=25).split('\n')
    # fmt: off
    assert lines == ['┌───────────┬───────────┐',
                     '│ Short     │ VeryVe... │',
                     '└───────────┴───────────┘']
    # fmt: on
