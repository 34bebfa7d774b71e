"""Error taxonomy for card generation and prank planning."""

from __future__ import annotations

from typing import TYPE_CHECKING, List, Sequence

if TYPE_CHECKING:  # pragma: no cover
    from .models import PrankResult


class BankoError(Exception):
    """Base class for errors crossing the generator/optimizer boundary."""


class GenerationExhausted(BankoError, RuntimeError):
    def __init__(self, attempts: int):
        super().__init__(f"Failed to generate valid card after {attempts} attempts")
        self.attempts = attempts


class BatchIncomplete(BankoError, RuntimeError):
    def __init__(self, produced: int, requested: int):
        super().__init__(
            f"Could only generate {produced} unique cards out of {requested} requested"
        )
        self.produced = produced
        self.requested = requested


class InvalidConfiguration(BankoError, ValueError):
    def __init__(self, reasons: Sequence[str]):
        self.reasons: List[str] = list(reasons)
        super().__init__("; ".join(self.reasons) or "invalid configuration")


class PrankInfeasible(BankoError, RuntimeError):
    """No winner subset was found where every other card can be blocked."""

    def __init__(self, result: "PrankResult"):
        super().__init__(
            f"No feasible prank found for {len(result.winning_ids)} winners "
            f"among {len(result.cards)} cards after {result.trials} trials"
        )
        self.result = result
