from __future__ import annotations

import hashlib
import json
from collections import Counter
from typing import Dict, Iterable, List, Sequence, Union

from .models import Card

SIGNATURE_SEPARATOR = ","


def card_signature(card: Union[Card, Sequence[int]]) -> str:
    """Canonical key for batch uniqueness: sorted numbers joined by ``,``.

    Two cards with the same number set collide even if arranged differently
    or carrying different ids.
    """
    numbers = card.numbers if isinstance(card, Card) else card
    return SIGNATURE_SEPARATOR.join(str(x) for x in sorted(numbers))


def signature_digest(card: Union[Card, Sequence[int]]) -> str:
    return "sha256:" + hashlib.sha256(card_signature(card).encode("utf-8")).hexdigest()


def cards_hash(cards: Iterable[Card]) -> str:
    hashes = [signature_digest(c) for c in cards]
    payload = json.dumps(hashes, ensure_ascii=True, separators=(",", ":"))
    return "sha256:" + hashlib.sha256(payload.encode("utf-8")).hexdigest()


def signature_collisions(cards: Sequence[Card]) -> Dict[str, List[str]]:
    """Map each repeated signature to the ids of every card carrying it."""
    by_sig: Dict[str, List[str]] = {}
    for card in cards:
        by_sig.setdefault(card_signature(card), []).append(card.id)
    return {sig: ids for sig, ids in by_sig.items() if len(ids) > 1}


def duplicate_ids(cards: Sequence[Card]) -> List[str]:
    counts = Counter(card.id for card in cards)
    return sorted(card_id for card_id, n in counts.items() if n > 1)
