"""Core module for banko card generation and prank planning."""

from .builder import BuildParams, CardBuilder, generate_batch, generate_card
from .constraints import is_valid, validate, validate_batch_uniqueness
from .optimizer import (
    ExclusionPlan,
    PrankOptimizer,
    ScoringPolicy,
    calculate_exclusions,
    run_prank,
)

__all__ = [
    "BuildParams",
    "CardBuilder",
    "ExclusionPlan",
    "PrankOptimizer",
    "ScoringPolicy",
    "calculate_exclusions",
    "generate_batch",
    "generate_card",
    "is_valid",
    "run_prank",
    "validate",
    "validate_batch_uniqueness",
]
