from __future__ import annotations

from typing import List, Optional, Tuple

ROWS = 3
COLUMNS = 9
NUMBERS_PER_ROW = 5
BLANKS_PER_ROW = COLUMNS - NUMBERS_PER_ROW
TOTAL_NUMBERS = ROWS * NUMBERS_PER_ROW
MAX_PER_COLUMN = 3
MIN_NUMBER = 1
MAX_NUMBER = 90

# Inclusive ranges; the last column also takes 90.
COLUMN_RANGES: Tuple[Tuple[int, int], ...] = (
    (1, 9),
    (10, 19),
    (20, 29),
    (30, 39),
    (40, 49),
    (50, 59),
    (60, 69),
    (70, 79),
    (80, 90),
)


def column_for_number(number: int) -> int:
    """Return the 0-based column a banko number belongs to."""
    if number < MIN_NUMBER or number > MAX_NUMBER:
        raise ValueError(f"Invalid banko number: {number}")
    if number >= 80:
        return COLUMNS - 1
    return number // 10


def column_values(col: int) -> List[int]:
    lo, hi = COLUMN_RANGES[col]
    return list(range(lo, hi + 1))


def empty_grid() -> List[List[Optional[int]]]:
    return [[None] * COLUMNS for _ in range(ROWS)]
