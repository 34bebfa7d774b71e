"""Structural rules for banko cards.

Every rule runs independently and appends to a shared violation list, so a
malformed card reports all of its problems at once. The generator only looks
at whether the list is empty.
"""

from __future__ import annotations

from collections import Counter
from typing import Any, List, Optional, Sequence

from ..layout import (
    COLUMN_RANGES,
    COLUMNS,
    MAX_PER_COLUMN,
    NUMBERS_PER_ROW,
    ROWS,
    TOTAL_NUMBERS,
)
from ..models import Card, ValidationResult
from ..uniqueness import card_signature

Cells = List[List[Optional[int]]]


def _is_number(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _is_sequence(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def numbers_of(card: Card) -> List[int]:
    if not _is_sequence(card.numbers):
        return []
    return [n for n in card.numbers if _is_number(n)]


def _normalized_cells(card: Card, violations: List[str]) -> Cells:
    """Copy the grid, blanking out cells that are not integers."""
    rows: Cells = []
    if not _is_sequence(card.grid):
        violations.append("Grid is not a sequence of rows")
        return rows
    for r_idx, row in enumerate(card.grid):
        cells: List[Optional[int]] = []
        if not isinstance(row, (list, tuple)):
            violations.append(f"Row {r_idx + 1} is not a sequence of cells")
            rows.append(cells)
            continue
        for c_idx, cell in enumerate(row):
            if cell is None or _is_number(cell):
                cells.append(cell)
            else:
                violations.append(
                    f"Cell at row {r_idx + 1}, column {c_idx + 1} is not an integer: {cell!r}"
                )
                cells.append(None)
        rows.append(cells)
    return rows


def _check_dimensions(cells: Cells, violations: List[str]) -> None:
    if len(cells) != ROWS:
        violations.append(f"Grid must have exactly {ROWS} rows, got {len(cells)}")
    for r_idx, row in enumerate(cells):
        if len(row) != COLUMNS:
            violations.append(
                f"Row {r_idx + 1} must have exactly {COLUMNS} columns, got {len(row)}"
            )


def _check_numbers_per_row(cells: Cells, violations: List[str]) -> None:
    for r_idx, row in enumerate(cells):
        count = sum(1 for cell in row if cell is not None)
        if count != NUMBERS_PER_ROW:
            violations.append(
                f"Row {r_idx + 1} must have exactly {NUMBERS_PER_ROW} numbers, got {count}"
            )


def _check_total_numbers(cells: Cells, numbers: Sequence[int], violations: List[str]) -> None:
    if len(numbers) != TOTAL_NUMBERS:
        violations.append(
            f"Card must have exactly {TOTAL_NUMBERS} numbers, got {len(numbers)}"
        )
    grid_count = sum(1 for row in cells for cell in row if cell is not None)
    if grid_count != TOTAL_NUMBERS:
        violations.append(
            f"Grid must have exactly {TOTAL_NUMBERS} numbers, got {grid_count}"
        )
    for label, values in (
        ("card", list(numbers)),
        ("grid", [c for row in cells for c in row if c is not None]),
    ):
        for num in sorted(n for n, k in Counter(values).items() if k > 1):
            violations.append(f"Duplicate number found in {label}: {num}")


def _check_column_ranges(cells: Cells, violations: List[str]) -> None:
    for r_idx, row in enumerate(cells):
        for col, cell in enumerate(row[:COLUMNS]):
            if cell is None:
                continue
            lo, hi = COLUMN_RANGES[col]
            if cell < lo or cell > hi:
                violations.append(
                    f"Number {cell} at row {r_idx + 1}, column {col + 1} "
                    f"is outside valid range {lo}-{hi}"
                )


def _column(cells: Cells, col: int) -> List[int]:
    return [row[col] for row in cells if col < len(row) and row[col] is not None]


def _check_max_per_column(cells: Cells, violations: List[str]) -> None:
    for col in range(COLUMNS):
        count = len(_column(cells, col))
        if count > MAX_PER_COLUMN:
            violations.append(
                f"Column {col + 1} has {count} numbers, maximum is {MAX_PER_COLUMN}"
            )


def _check_ascending_columns(cells: Cells, violations: List[str]) -> None:
    for col in range(COLUMNS):
        values = _column(cells, col)
        if any(b <= a for a, b in zip(values, values[1:])):
            violations.append(
                f"Column {col + 1} numbers are not in ascending order: "
                + ", ".join(str(v) for v in values)
            )


def _check_grid_matches_numbers(
    cells: Cells, numbers: Sequence[int], violations: List[str]
) -> None:
    grid_numbers = sorted(cell for row in cells for cell in row if cell is not None)
    if grid_numbers != sorted(numbers):
        violations.append("Grid numbers do not match numbers list")


def validate(card: Card) -> ValidationResult:
    """Run every structural rule against ``card`` and aggregate violations."""
    violations: List[str] = []
    cells = _normalized_cells(card, violations)
    numbers = numbers_of(card)
    if not _is_sequence(card.numbers):
        violations.append("Numbers is not a sequence")
    elif len(numbers) != len(card.numbers):
        violations.append("Numbers list contains non-integer values")

    _check_dimensions(cells, violations)
    _check_numbers_per_row(cells, violations)
    _check_total_numbers(cells, numbers, violations)
    _check_column_ranges(cells, violations)
    _check_max_per_column(cells, violations)
    _check_ascending_columns(cells, violations)
    _check_grid_matches_numbers(cells, numbers, violations)

    return ValidationResult(ok=not violations, violations=violations)


def is_valid(card: Card) -> bool:
    return validate(card).ok


def validate_batch_uniqueness(cards: Sequence[Card]) -> ValidationResult:
    violations: List[str] = []
    seen: set[str] = set()
    for card in cards:
        sig = card_signature(numbers_of(card))
        if sig in seen:
            violations.append(f"Duplicate card found: {card.id}")
        seen.add(sig)
    return ValidationResult(ok=not violations, violations=violations)
