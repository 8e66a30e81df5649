from __future__ import annotations


def compute_percentage(part: int, total: int) -> int:
    """Return `part / total * 100` rounded half up to an integer, `0` when `total` is not positive.

    Integer arithmetic keeps the rounding exact, e.g. 1 of 8 gives 13 and not 12.
    """
    if total <= 0:
        return 0
    return (part * 200 + total) // (2 * total)


def compute_rate(part: int, total: int) -> float:
    """Return `part / total * 100` without rounding, `0.0` when `total` is not positive."""
    if total <= 0:
        return 0.0
    return part / total * 100
