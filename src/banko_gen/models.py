"""Data model shared by the generator, optimizer and exporters."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

Grid = Tuple[Tuple[Optional[int], ...], ...]


@dataclass(frozen=True)
class Card:
    """A single 3x9 banko card.

    ``grid`` holds ``None`` for blank cells. ``numbers`` is the sorted flat
    list of the grid's values. ``is_winning`` is only set in prank mode.
    """

    id: str
    grid: Sequence[Sequence[Optional[int]]]
    numbers: Sequence[int]
    is_winning: Optional[bool] = None

    @classmethod
    def from_grid(cls, card_id: str, grid: Sequence[Sequence[Optional[int]]]) -> "Card":
        frozen: Grid = tuple(tuple(row) for row in grid)
        numbers = tuple(sorted(cell for row in frozen for cell in row if cell is not None))
        return cls(id=card_id, grid=frozen, numbers=numbers)


@dataclass
class ValidationResult:
    ok: bool
    violations: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class PrankResult:
    cards: List[Card]
    winning_ids: List[str]
    excluded_numbers: List[int]
    feasible: bool
    trials: int = 0

    @property
    def degraded(self) -> bool:
        """True when the fallback was used and no card is actually blocked."""
        return not self.feasible and not self.excluded_numbers
