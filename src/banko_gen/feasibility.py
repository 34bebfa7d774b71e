from __future__ import annotations

from dataclasses import dataclass
from typing import List


@dataclass
class Feasibility:
    feasible: bool
    reasons: List[str]


def check_batch_request(*, count: int) -> Feasibility:
    if count <= 0:
        return Feasibility(feasible=False, reasons=[f"card count must be positive, got {count}"])
    return Feasibility(feasible=True, reasons=[])


def check_prank_request(*, total_cards: int, winning_count: int) -> Feasibility:
    """Prank mode needs at least one winner and at least one card to block."""
    reasons: List[str] = []
    if total_cards <= 0:
        reasons.append(f"total cards must be positive, got {total_cards}")
    if winning_count <= 0:
        reasons.append(f"winning count must be at least 1, got {winning_count}")
    if total_cards > 0 and winning_count >= total_cards:
        reasons.append(
            f"winning count must be below total cards ({winning_count} >= {total_cards})"
        )
    return Feasibility(feasible=not reasons, reasons=reasons)
