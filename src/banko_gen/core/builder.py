"""Constrained-random banko card builder."""

from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass
from typing import List, Optional, Set

from ..errors import BatchIncomplete, GenerationExhausted, InvalidConfiguration
from ..feasibility import check_batch_request
from ..layout import (
    COLUMN_RANGES,
    COLUMNS,
    MAX_PER_COLUMN,
    NUMBERS_PER_ROW,
    ROWS,
    empty_grid,
)
from ..models import Card
from ..rng import RandomSource
from ..uniqueness import card_signature
from .constraints import validate

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

# Process-wide, so an id is never handed out twice.
_card_sequence = itertools.count(1)


@dataclass
class BuildParams:
    """Retry bounds for card generation."""

    max_card_attempts: int = 1000
    batch_attempt_factor: int = 10


@dataclass
class BuildMetrics:
    cards: int = 0
    draft_attempts: int = 0
    rejected_drafts: int = 0
    duplicate_cards: int = 0

    @property
    def attempts_per_card(self) -> float:
        return self.draft_attempts / self.cards if self.cards else 0.0


def _base36(value: int) -> str:
    digits = []
    while True:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
        if value == 0:
            break
    return "".join(reversed(digits))


class CardBuilder:
    """Builds valid cards and unique batches from an injected random source."""

    def __init__(self, rng: RandomSource, params: Optional[BuildParams] = None):
        self.rng = rng
        self.params = params or BuildParams()
        self.metrics = BuildMetrics()

    def build_card(self) -> Card:
        """Draft cards until one passes validation.

        Raises GenerationExhausted after ``max_card_attempts`` rejections, which
        points at a defect in the drafting steps rather than bad luck.
        """
        for attempt in range(1, self.params.max_card_attempts + 1):
            self.metrics.draft_attempts += 1
            card = self._draft()
            result = validate(card)
            if result.ok:
                self.metrics.cards += 1
                return card
            self.metrics.rejected_drafts += 1
            logger.debug(
                "Draft %s rejected on attempt %d: %s",
                card.id,
                attempt,
                "; ".join(result.violations),
            )
        raise GenerationExhausted(self.params.max_card_attempts)

    def build_batch(self, count: int) -> List[Card]:
        """Collect ``count`` cards with pairwise distinct number sets."""
        check = check_batch_request(count=count)
        if not check.feasible:
            raise InvalidConfiguration(check.reasons)

        max_attempts = count * self.params.batch_attempt_factor
        cards: List[Card] = []
        seen: Set[str] = set()
        attempts = 0
        while len(cards) < count and attempts < max_attempts:
            attempts += 1
            card = self.build_card()
            sig = card_signature(card)
            if sig in seen:
                self.metrics.duplicate_cards += 1
                logger.debug("Skipping duplicate card %s", card.id)
                continue
            seen.add(sig)
            cards.append(card)

        if len(cards) < count:
            raise BatchIncomplete(produced=len(cards), requested=count)

        logger.info(
            "Generated %d unique cards in %d attempts (%.1f drafts/card)",
            len(cards),
            attempts,
            self.metrics.attempts_per_card,
        )
        return cards

    def _next_id(self) -> str:
        token = _base36(self.rng.randint(0, 36**6 - 1)).rjust(6, "0")
        return f"card_{next(_card_sequence):06d}_{token}"

    def _draft(self) -> Card:
        """One unchecked draft; the caller validates it."""
        card_id = self._next_id()
        column_rows = self._distribute_columns()
        grid = empty_grid()
        self._place_numbers(grid, column_rows)
        self._sort_columns(grid)
        return Card.from_grid(card_id, grid)

    def _distribute_columns(self) -> List[List[int]]:
        """Assign rows to columns: a random seeding pass, then a repair pass.

        Returns, per column, the row indices that will hold a number.
        """
        column_rows: List[List[int]] = [[] for _ in range(COLUMNS)]
        row_counts = [0] * ROWS

        order = list(range(COLUMNS))
        self.rng.shuffle(order)
        for col in order:
            available = [r for r in range(ROWS) if row_counts[r] < NUMBERS_PER_ROW]
            if not available:
                continue
            count = self.rng.randint(1, min(MAX_PER_COLUMN, len(available)))
            for row in self.rng.sample(available, count):
                column_rows[col].append(row)
                row_counts[row] += 1

        short = [r for r in range(ROWS) if row_counts[r] < NUMBERS_PER_ROW]
        while short:
            row = short[self.rng.randint(0, len(short) - 1)]
            open_cols = [
                c
                for c in order
                if len(column_rows[c]) < MAX_PER_COLUMN and row not in column_rows[c]
            ]
            if open_cols:
                col = open_cols[self.rng.randint(0, len(open_cols) - 1)]
                column_rows[col].append(row)
                row_counts[row] += 1
            if not open_cols or row_counts[row] == NUMBERS_PER_ROW:
                # A row with no open column stays short; validation rejects the draft.
                short.remove(row)

        return column_rows

    def _place_numbers(
        self, grid: List[List[Optional[int]]], column_rows: List[List[int]]
    ) -> None:
        for col, rows in enumerate(column_rows):
            if not rows:
                continue
            lo, hi = COLUMN_RANGES[col]
            values = self.rng.sample(range(lo, hi + 1), len(rows))
            for row, value in zip(rows, values):
                grid[row][col] = value

    @staticmethod
    def _sort_columns(grid: List[List[Optional[int]]]) -> None:
        """Sort each column's values top to bottom, keeping its occupied rows."""
        for col in range(COLUMNS):
            rows = [r for r in range(ROWS) if grid[r][col] is not None]
            if len(rows) <= 1:
                continue
            values = sorted(grid[r][col] for r in rows)  # type: ignore[type-var]
            for row, value in zip(rows, values):
                grid[row][col] = value


def generate_card(rng: RandomSource, params: Optional[BuildParams] = None) -> Card:
    return CardBuilder(rng, params).build_card()


def generate_batch(
    count: int, rng: RandomSource, params: Optional[BuildParams] = None
) -> List[Card]:
    return CardBuilder(rng, params).build_batch(count)
