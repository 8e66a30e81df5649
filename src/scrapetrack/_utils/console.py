from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

BORDER = {'TL': '┌', 'TR': '┐', 'BL': '└', 'BR': '┘', 'H': '─', 'V': '│', 'TM': '┬', 'BM': '┴'}


def _horizontal_border(col_widths: Sequence[int], left: str, middle: str, right: str) -> str:
    return left + middle.join(BORDER['H'] * (width + 2) for width in col_widths) + right


def make_table(rows: Sequence[Sequence[str]], width: int = 100) -> str:
    """Create a text table using Unicode box-drawing characters.

    Args:
        rows: A list of tuples/lists to be displayed in the table.
        width: Maximum width of the table. Wider tables get equally sized, truncated columns.
    """
    if not rows:
        return ''

    num_cols = max(len(row) for row in rows)

    if num_cols == 0:
        return ''

    # Rows shorter than the widest one are padded with empty cells
    normalized_rows = [[str(cell) for cell in row] + [''] * (num_cols - len(row)) for row in rows]
    col_widths = [max(len(row[i]) for row in normalized_rows) for i in range(num_cols)]

    if sum(col_widths) + (3 * num_cols) + 1 > width:
        col_widths = [max(3, (width - (3 * num_cols) - 1) // num_cols)] * num_cols

    lines = [_horizontal_border(col_widths, BORDER['TL'], BORDER['TM'], BORDER['TR'])]

    for row in normalized_rows:
        cells = [
            f'{cell[: col_widths[i] - 3]}...' if len(cell) > col_widths[i] else cell.ljust(col_widths[i])
            for i, cell in enumerate(row)
        ]
        lines.append(BORDER['V'] + ''.join(f' {cell} {BORDER["V"]}' for cell in cells))

    lines.append(_horizontal_border(col_widths, BORDER['BL'], BORDER['BM'], BORDER['BR']))

    return '\n'.join(lines)
