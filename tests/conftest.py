from __future__ import annotations

from typing import List, Optional

import pytest

from banko_gen.models import Card

_ = None

VALID_GRID: List[List[Optional[int]]] = [
    [1, 10, 20, 30, 40, _, _, _, _],
    [_, _, _, _, 45, 50, 60, 70, 80],
    [5, _, 25, _, _, 55, _, 75, 90],
]


@pytest.fixture
def valid_grid() -> List[List[Optional[int]]]:
    return [row[:] for row in VALID_GRID]


@pytest.fixture
def valid_card(valid_grid) -> Card:
    return Card.from_grid("card_fixture", valid_grid)
