from __future__ import annotations

import json
from datetime import date
from pathlib import Path

import pytest

from banko_gen.core.constraints import validate
from banko_gen.models import Card, PrankResult
from banko_gen.serialize import (
    build_cards_document,
    card_from_dict,
    card_to_dict,
    emit_cards_json,
    emit_summary_csv,
    load_cards_json,
    render_instructions,
)


def test_card_dict_keeps_blanks_and_winning_flag(valid_card):
    data = card_to_dict(valid_card)
    assert data["grid"][0][5] is None
    assert "isWinning" not in data
    marked = Card(id="w", grid=valid_card.grid, numbers=valid_card.numbers, is_winning=True)
    assert card_to_dict(marked)["isWinning"] is True


def test_document_metadata_toggle(valid_card):
    full = build_cards_document(
        [valid_card], winning_ids=[valid_card.id], excluded_numbers=[7, 3]
    )
    assert full["totalCards"] == 1
    assert full["winningCards"] == 1
    assert full["excludedNumbers"] == [3, 7]
    assert "generatedAt" in full
    bare = build_cards_document([valid_card], include_metadata=False)
    assert set(bare) == {"cards"}


def test_written_cards_load_back_and_validate(tmp_path: Path, valid_card):
    path = tmp_path / "out" / "cards.json"
    emit_cards_json(
        path, document=build_cards_document([valid_card]), mkdirs=True, overwrite=False
    )
    loaded = load_cards_json(path)
    assert [c.numbers for c in loaded] == [valid_card.numbers]
    assert validate(loaded[0]).ok
    with pytest.raises(FileExistsError):
        emit_cards_json(
            path, document=build_cards_document([valid_card]), mkdirs=True, overwrite=False
        )


def test_card_from_dict_keeps_malformed_input_for_validation():
    card = card_from_dict({"id": "x", "grid": [[1, 2]], "numbers": [1, 2]})
    result = validate(card)
    assert not result.ok


def test_load_rejects_documents_without_cards(tmp_path: Path):
    path = tmp_path / "bad.json"
    path.write_text(json.dumps({"nope": 1}), encoding="utf-8")
    with pytest.raises(ValueError):
        load_cards_json(path)


def test_instructions_list_numbers_and_winners(valid_card):
    result = PrankResult(
        cards=[valid_card],
        winning_ids=[valid_card.id],
        excluded_numbers=[42, 7],
        feasible=True,
    )
    text = render_instructions(result, event_name="Office party", today=date(2026, 10, 19))
    assert "Event: Office party" in text
    assert "Date: 2026-10-19" in text
    assert "7, 42" in text
    assert f"  - {valid_card.id}" in text
    assert "Total: 2 numbers" in text


def test_instructions_for_degraded_result(valid_card):
    result = PrankResult(cards=[valid_card], winning_ids=[valid_card.id], excluded_numbers=[], feasible=False)
    text = render_instructions(result)
    assert "no feasible prank was found" in text


def test_summary_csv(tmp_path: Path):
    path = tmp_path / "summary.csv"
    emit_summary_csv(path, freqs={2: 1, 1: 3}, by_column={0: 4}, mkdirs=True, overwrite=False)
    lines = path.read_text(encoding="utf-8").splitlines()
    assert lines[:3] == ["number,total", "1,3", "2,1"]
    assert lines[-1] == "1,4"
