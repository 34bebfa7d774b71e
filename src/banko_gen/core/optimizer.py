"""Prank-mode exclusion planning.

Given a batch and a number of winners, find numbers to withhold from the draw
so that every winning card can still complete while every other card is
missing at least one number. The exclusion set is a greedy set cover over the
numbers that appear on no winning card; the winner subset is chosen by a
bounded number of randomized trials.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..errors import InvalidConfiguration, PrankInfeasible
from ..feasibility import check_prank_request
from ..models import Card, PrankResult
from ..rng import RandomSource, create_rng
from ..uniqueness import duplicate_ids
from .builder import BuildParams, CardBuilder

logger = logging.getLogger(__name__)


@dataclass
class ScoringPolicy:
    """Heuristic ranking of feasible trials by exclusion-set size.

    Small, non-empty exclusion sets are preferred; above ``comfortable_max``
    the missing numbers start to look suspicious and are penalized. Only
    feasibility is a hard requirement, these thresholds are tunable.
    """

    comfortable_max: int = 20
    good_min: int = 5
    good_max: int = 15
    comfortable_base: int = 100
    excess_base: int = 50
    infeasible_score: int = -1000

    def score(self, plan: "ExclusionPlan") -> int:
        size = len(plan.excluded_numbers)
        if not plan.feasible or size == 0:
            return self.infeasible_score
        if size <= self.comfortable_max:
            return self.comfortable_base - size
        return self.excess_base - size

    def good_enough(self, plan: "ExclusionPlan") -> bool:
        return plan.feasible and self.good_min <= len(plan.excluded_numbers) <= self.good_max


@dataclass
class ExclusionPlan:
    winner_ids: List[str]
    excluded_numbers: List[int]
    unblocked_ids: List[str] = field(default_factory=list)
    analysis: List[str] = field(default_factory=list)
    trials: int = 1

    @property
    def feasible(self) -> bool:
        return not self.unblocked_ids


def safe_exclusions(
    cards: Sequence[Card], winner_ids: Iterable[str]
) -> Tuple[Set[int], Set[int], Set[int]]:
    """Split numbers into (winning, other, safe-to-exclude).

    A number is safe to exclude when it is on some non-winning card and on no
    winning card.
    """
    winners = set(winner_ids)
    winning_numbers: Set[int] = set()
    other_numbers: Set[int] = set()
    for card in cards:
        target = winning_numbers if card.id in winners else other_numbers
        target.update(card.numbers)
    return winning_numbers, other_numbers, other_numbers - winning_numbers


def greedy_exclusion_set(
    non_winning: Sequence[Card], safe: Iterable[int]
) -> Tuple[List[int], List[str]]:
    """Greedy set cover: block every card in ``non_winning`` with few numbers.

    Each step takes the number that blocks the most still-unblocked cards,
    the lowest number on ties. Numbers that block nothing new are never
    chosen. Returns (chosen numbers in pick order, ids left unblocked).
    """
    coverage: Dict[int, Set[int]] = {num: set() for num in sorted(set(safe))}
    for idx, card in enumerate(non_winning):
        for num in card.numbers:
            if num in coverage:
                coverage[num].add(idx)

    blocked: Set[int] = set()
    excluded: List[int] = []
    while len(blocked) < len(non_winning):
        best_num: Optional[int] = None
        best_gain = 0
        for num, covered in coverage.items():
            gain = len(covered - blocked)
            if gain > best_gain:
                best_num, best_gain = num, gain
        if best_num is None:
            break
        excluded.append(best_num)
        blocked |= coverage.pop(best_num)

    unblocked = [card.id for idx, card in enumerate(non_winning) if idx not in blocked]
    return excluded, unblocked


def calculate_exclusions(cards: Sequence[Card], winner_ids: Sequence[str]) -> ExclusionPlan:
    winners = set(winner_ids)
    non_winning = [card for card in cards if card.id not in winners]
    winning_numbers, other_numbers, safe = safe_exclusions(cards, winners)
    excluded, unblocked = greedy_exclusion_set(non_winning, safe)
    excluded.sort()
    analysis = [
        f"Numbers on winning cards: {len(winning_numbers)}",
        f"Numbers on non-winning cards: {len(other_numbers)}",
        f"Numbers safe to exclude: {len(safe)}",
        f"Numbers to exclude: {len(excluded)}",
    ]
    if unblocked:
        analysis.append(f"Non-winning cards that cannot be blocked: {len(unblocked)}")
    return ExclusionPlan(
        winner_ids=list(winner_ids),
        excluded_numbers=excluded,
        unblocked_ids=unblocked,
        analysis=analysis,
    )


class PrankOptimizer:
    """Searches winner subsets for a feasible, inconspicuous exclusion set."""

    def __init__(
        self,
        rng: RandomSource,
        max_trials: int = 100,
        policy: Optional[ScoringPolicy] = None,
    ):
        self.rng = rng
        self.max_trials = max_trials
        self.policy = policy or ScoringPolicy()

    def optimize(self, cards: Sequence[Card], winning_count: int) -> ExclusionPlan:
        check = check_prank_request(total_cards=len(cards), winning_count=winning_count)
        if not check.feasible:
            raise InvalidConfiguration(check.reasons)
        dupes = duplicate_ids(cards)
        if dupes:
            raise InvalidConfiguration([f"card ids must be unique: {', '.join(dupes)}"])

        # Each trial gets its own source so trials never share random state.
        base = create_rng(self.rng.engine, self.rng.randint(0, (1 << 62) - 1))
        best: Optional[ExclusionPlan] = None
        best_score = self.policy.infeasible_score
        trials = 0
        for trial in range(self.max_trials):
            trials += 1
            trial_rng = base.spawn(trial, "prank_trial")
            picked = sorted(trial_rng.sample(range(len(cards)), winning_count))
            plan = calculate_exclusions(cards, [cards[i].id for i in picked])
            score = self.policy.score(plan)
            logger.debug(
                "Trial %d: %d excluded, %d unblocked, score %d",
                trial,
                len(plan.excluded_numbers),
                len(plan.unblocked_ids),
                score,
            )
            if plan.feasible and (best is None or score > best_score):
                best, best_score = plan, score
            if self.policy.good_enough(plan):
                break

        if best is None:
            logger.warning(
                "No feasible winner subset in %d trials; falling back to first %d cards",
                trials,
                winning_count,
            )
            fallback_ids = [card.id for card in cards[:winning_count]]
            return ExclusionPlan(
                winner_ids=fallback_ids,
                excluded_numbers=[],
                unblocked_ids=[c.id for c in cards[winning_count:]],
                analysis=["No feasible prank found; nothing will be excluded"],
                trials=trials,
            )

        best.trials = trials
        return best


def run_prank(
    total_cards: int,
    winning_count: int,
    *,
    rng: RandomSource,
    build_params: Optional[BuildParams] = None,
    max_trials: int = 100,
    policy: Optional[ScoringPolicy] = None,
    strict: bool = False,
) -> PrankResult:
    """Generate ``total_cards`` cards and plan a prank with ``winning_count`` winners.

    A degraded result (no feasible subset) comes back with ``feasible=False``
    and no excluded numbers, or raises PrankInfeasible when ``strict``.
    """
    check = check_prank_request(total_cards=total_cards, winning_count=winning_count)
    if not check.feasible:
        raise InvalidConfiguration(check.reasons)

    cards = CardBuilder(rng, build_params).build_batch(total_cards)
    plan = PrankOptimizer(rng, max_trials=max_trials, policy=policy).optimize(
        cards, winning_count
    )
    winners = set(plan.winner_ids)
    marked = [replace(card, is_winning=card.id in winners) for card in cards]
    result = PrankResult(
        cards=marked,
        winning_ids=list(plan.winner_ids),
        excluded_numbers=list(plan.excluded_numbers),
        feasible=plan.feasible,
        trials=plan.trials,
    )
    if not result.feasible:
        if strict:
            raise PrankInfeasible(result)
    else:
        logger.info(
            "Prank planned: %d winners of %d cards, %d numbers excluded after %d trials",
            len(result.winning_ids),
            len(cards),
            len(result.excluded_numbers),
            result.trials,
        )
    return result
