from __future__ import annotations

import csv
import json
import platform
import sys
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence

from .models import Card, PrankResult
from .uniqueness import cards_hash, signature_digest

RULE = "=" * 59
THIN_RULE = "-" * 59


def ensure_parent(path: Path, *, mkdirs: bool) -> None:
    parent = path.parent
    if not parent.exists() and mkdirs:
        parent.mkdir(parents=True, exist_ok=True)


def _refuse_overwrite(path: Path, overwrite: bool) -> None:
    if path.exists() and not overwrite:
        raise FileExistsError(
            f"Refusing to overwrite existing file without --force: {path}"
        )


def write_json(path: Path, data: object, *, mkdirs: bool, overwrite: bool) -> None:
    _refuse_overwrite(path, overwrite)
    ensure_parent(path, mkdirs=mkdirs)
    text = json.dumps(data, ensure_ascii=False, indent=2)
    path.write_text(text + "\n", encoding="utf-8")


def card_to_dict(card: Card) -> Dict[str, object]:
    data: Dict[str, object] = {
        "id": card.id,
        "grid": [list(row) for row in card.grid],
        "numbers": list(card.numbers),
    }
    if card.is_winning is not None:
        data["isWinning"] = card.is_winning
    return data


def card_from_dict(data: Mapping[str, Any]) -> Card:
    """Rebuild a card as stored, without normalizing, so it can be validated."""
    if not isinstance(data, Mapping):
        raise ValueError("card entry must be a mapping")
    grid = data.get("grid")
    if isinstance(grid, list):
        grid = tuple(tuple(row) if isinstance(row, list) else row for row in grid)
    numbers = data.get("numbers")
    if isinstance(numbers, list):
        numbers = tuple(numbers)
    return Card(
        id=str(data.get("id", "")),
        grid=grid,
        numbers=numbers,
        is_winning=data.get("isWinning"),
    )


def build_run_meta(
    *,
    app_version: str,
    params_hash: str,
    seed: int,
    rng_engine: str,
) -> Dict[str, object]:
    return {
        "app_version": app_version,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "python_version": sys.version.split()[0],
        "platform": platform.system().lower(),
        "params_hash": params_hash,
        "seed": seed,
        "rng_engine": rng_engine,
        "hash_algorithm": "sha256",
    }


def build_cards_document(
    cards: Sequence[Card],
    *,
    winning_ids: Sequence[str] = (),
    excluded_numbers: Sequence[int] = (),
    include_metadata: bool = True,
    run_meta: Optional[Dict[str, object]] = None,
) -> Dict[str, object]:
    entries: List[Dict[str, object]] = []
    for card in cards:
        entry = card_to_dict(card)
        if include_metadata:
            entry["signature"] = signature_digest(card)
        entries.append(entry)
    if not include_metadata:
        return {"cards": entries}
    data: Dict[str, object] = {
        "generatedAt": datetime.now(timezone.utc).isoformat(),
        "totalCards": len(cards),
        "winningCards": len(winning_ids),
        "winningCardIds": list(winning_ids),
        "excludedNumbers": sorted(excluded_numbers),
        "cards": entries,
        "cardsHash": cards_hash(cards),
    }
    if run_meta is not None:
        data["runMeta"] = run_meta
    return data


def emit_cards_json(
    path: Path, *, document: Dict[str, object], mkdirs: bool, overwrite: bool
) -> None:
    write_json(path, document, mkdirs=mkdirs, overwrite=overwrite)


def load_cards_json(path: Path) -> List[Card]:
    """Read cards from a document written by emit_cards_json or a bare list."""
    data = json.loads(path.read_text(encoding="utf-8"))
    entries = data.get("cards") if isinstance(data, dict) else data
    if not isinstance(entries, list):
        raise ValueError(f"No card list found in {path}")
    return [card_from_dict(entry) for entry in entries]


def render_instructions(
    result: PrankResult,
    *,
    event_name: Optional[str] = None,
    today: Optional[date] = None,
) -> str:
    """Operator sheet: which numbers to pull from the bag and which cards win."""
    today = today or date.today()
    excluded = sorted(result.excluded_numbers)
    lines = [
        RULE,
        "        SECRET INSTRUCTIONS - FOR THE ORGANIZER ONLY",
        RULE,
        "",
    ]
    if event_name:
        lines += [f"Event: {event_name}", ""]
    lines += [f"Date: {today.isoformat()}", ""]

    lines += [THIN_RULE, "NUMBERS TO REMOVE FROM THE DRAW:", THIN_RULE, ""]
    if excluded:
        lines.append(", ".join(str(n) for n in excluded))
        lines.append("")
        lines.append(f"Total: {len(excluded)} numbers")
    else:
        lines.append("None - no feasible prank was found, every card can win.")
    lines.append("")

    lines += [THIN_RULE, "WINNING CARDS:", THIN_RULE, ""]
    lines += [f"  - {card_id}" for card_id in result.winning_ids]
    lines.append("")

    lines += [THIN_RULE, "BEFORE THE GAME:", THIN_RULE, ""]
    lines += [
        f"1. Remove the {len(excluded)} numbers above from the bag",
        "2. Shuffle the remaining numbers thoroughly",
        "3. Hand out the cards to the players",
        f"4. Only the {len(result.winning_ids)} cards listed above can get a full house",
        "",
        "WARNING: keep these instructions secret and destroy them after use.",
    ]
    return "\n".join(lines) + "\n"


def emit_instructions_text(
    path: Path,
    *,
    result: PrankResult,
    event_name: Optional[str],
    mkdirs: bool,
    overwrite: bool,
) -> None:
    _refuse_overwrite(path, overwrite)
    ensure_parent(path, mkdirs=mkdirs)
    path.write_text(render_instructions(result, event_name=event_name), encoding="utf-8")


def emit_summary_csv(
    path: Path,
    *,
    freqs: Dict[int, int],
    by_column: Dict[int, int] | None,
    mkdirs: bool,
    overwrite: bool,
) -> None:
    _refuse_overwrite(path, overwrite)
    ensure_parent(path, mkdirs=mkdirs)
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(["number", "total"])
        for num in sorted(freqs.keys()):
            writer.writerow([num, freqs[num]])
        if by_column:
            writer.writerow([])
            writer.writerow(["column", "count"])
            for col in sorted(by_column.keys()):
                writer.writerow([col + 1, by_column[col]])
