from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Dict, List, Sequence

from .core.constraints import validate
from .layout import COLUMNS, MAX_NUMBER, MIN_NUMBER, column_for_number
from .models import Card, PrankResult
from .uniqueness import duplicate_ids, signature_collisions


@dataclass
class PrankAnalysis:
    blocked: int
    non_winning: int
    unblocked_ids: List[str] = field(default_factory=list)
    exposed_winner_ids: List[str] = field(default_factory=list)
    analysis: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)

    @property
    def effectiveness(self) -> float:
        """Percentage of non-winning cards that can never complete."""
        if self.non_winning == 0:
            return 0.0
        return self.blocked / self.non_winning * 100.0


def analyze_prank(result: PrankResult) -> PrankAnalysis:
    """Re-check a prank result against its cards and summarize it for the host."""
    excluded = set(result.excluded_numbers)
    winners = set(result.winning_ids)
    non_winning = [c for c in result.cards if c.id not in winners]
    unblocked = [c.id for c in non_winning if excluded.isdisjoint(c.numbers)]
    exposed = [c.id for c in result.cards if c.id in winners and not excluded.isdisjoint(c.numbers)]
    blocked = len(non_winning) - len(unblocked)

    analysis = [
        f"{len(result.excluded_numbers)} numbers must be removed from the draw",
        f"{len(winners)} of {len(result.cards)} cards can win",
        f"{blocked} of {len(non_winning)} non-winning cards are blocked",
    ]
    recommendations: List[str] = []
    if exposed:
        recommendations.append(f"{len(exposed)} winning cards contain excluded numbers!")
    if unblocked:
        recommendations.append(f"{len(unblocked)} non-winning cards can still win!")
        recommendations.append("Try reducing the number of winning cards")
    elif not result.excluded_numbers:
        recommendations.append("No numbers to exclude - every card can win")
        recommendations.append("Try reducing the number of winning cards")
    elif len(result.excluded_numbers) <= 10:
        recommendations.append("Prank works: few numbers to remove, easy to hide")
    elif len(result.excluded_numbers) <= 20:
        recommendations.append("Prank works: moderate number of numbers to remove")
    else:
        recommendations.append("Prank works, but many numbers must be removed")
        recommendations.append("That many missing numbers may look suspicious")

    return PrankAnalysis(
        blocked=blocked,
        non_winning=len(non_winning),
        unblocked_ids=unblocked,
        exposed_winner_ids=exposed,
        analysis=analysis,
        recommendations=recommendations,
    )


def compute_frequencies(cards: Sequence[Card]) -> Dict[int, int]:
    counts: Counter[int] = Counter()
    for card in cards:
        counts.update(card.numbers)
    for x in range(MIN_NUMBER, MAX_NUMBER + 1):
        counts.setdefault(x, 0)
    return dict(sorted(counts.items()))


def compute_column_frequencies(cards: Sequence[Card]) -> Dict[int, int]:
    """Numbers placed per column across the batch, keyed by 0-based column."""
    counts = {col: 0 for col in range(COLUMNS)}
    for card in cards:
        for num in card.numbers:
            if MIN_NUMBER <= num <= MAX_NUMBER:
                counts[column_for_number(num)] += 1
    return counts


def verify(cards: Sequence[Card]) -> Dict[str, object]:
    invalid: Dict[str, List[str]] = {}
    for card in cards:
        result = validate(card)
        if not result.ok:
            invalid[card.id] = result.violations
    collisions = signature_collisions(cards)
    dupe_ids = duplicate_ids(cards)
    freqs = compute_frequencies(cards)
    return {
        "card_count": len(cards),
        "frequencies": freqs,
        "column_frequencies": compute_column_frequencies(cards),
        "uniqueness": {
            "signature_collisions": sum(len(ids) - 1 for ids in collisions.values()),
            "colliding_cards": sorted(collisions.values()),
            "duplicate_ids": dupe_ids,
            "signature_representation": "sorted_numbers",
        },
        "validation": {"invalid_cards": invalid},
        "spread": {"max_minus_min": max(freqs.values()) - min(freqs.values())},
        "ok_all_valid": not invalid,
        "ok_unique": not collisions and not dupe_ids,
    }
