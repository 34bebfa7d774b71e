from __future__ import annotations

import json
from pathlib import Path

from typer.testing import CliRunner

from banko_gen.cli import app
from banko_gen.version import __version__

runner = CliRunner()


def test_version():
    result = runner.invoke(app, ["--version"])
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_generate_writes_valid_batch(tmp_path: Path):
    out = tmp_path / "cards.json"
    csv_path = tmp_path / "summary.csv"
    result = runner.invoke(
        app,
        [
            "generate",
            "--cards", "8",
            "--seed", "42",
            "--out-cards", str(out),
            "--summary-csv", str(csv_path),
        ],
    )
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["totalCards"] == 8
    assert data["runMeta"]["seed"] == 42
    assert len({tuple(c["numbers"]) for c in data["cards"]}) == 8
    assert csv_path.exists()

    check = runner.invoke(app, ["validate", "--cards", str(out)])
    assert check.exit_code == 0, check.output
    assert "All 8 cards are valid and unique" in check.stdout


def test_generate_refuses_to_overwrite(tmp_path: Path):
    out = tmp_path / "cards.json"
    out.write_text("{}", encoding="utf-8")
    result = runner.invoke(app, ["generate", "--cards", "2", "--seed", "1", "--out-cards", str(out)])
    assert result.exit_code == 1


def test_generate_dry_run_prints_hash():
    result = runner.invoke(app, ["generate", "--dry-run", "--seed", "3"])
    assert result.exit_code == 0
    assert "Params hash: sha256:" in result.stdout


def test_prank_writes_cards_and_instructions(tmp_path: Path):
    out = tmp_path / "prank.json"
    sheet = tmp_path / "sheet.txt"
    result = runner.invoke(
        app,
        [
            "prank",
            "--cards", "12",
            "--winners", "3",
            "--seed", "7",
            "--event-name", "Friday banko",
            "--out-cards", str(out),
            "--out-instructions", str(sheet),
        ],
    )
    assert result.exit_code == 0, result.output
    data = json.loads(out.read_text(encoding="utf-8"))
    assert data["winningCards"] == 3
    assert sum(1 for c in data["cards"] if c["isWinning"]) == 3
    text = sheet.read_text(encoding="utf-8")
    assert "Friday banko" in text
    for card_id in data["winningCardIds"]:
        assert card_id in text


def test_prank_rejects_invalid_winner_count(tmp_path: Path):
    result = runner.invoke(
        app,
        ["prank", "--cards", "5", "--winners", "5", "--seed", "1", "--out-cards", str(tmp_path / "x.json")],
    )
    assert result.exit_code == 1
    assert not (tmp_path / "x.json").exists()


def test_validate_reports_violations(tmp_path: Path):
    path = tmp_path / "cards.json"
    bad = {"id": "bad", "grid": [[1, 2, 3, 4, 5, 6, None, None, None]], "numbers": [1, 2, 3, 4, 5, 6]}
    path.write_text(json.dumps({"cards": [bad]}), encoding="utf-8")
    result = runner.invoke(app, ["validate", "--cards", str(path)])
    assert result.exit_code == 1
    assert "Row 1 must have exactly 5 numbers, got 6" in result.stdout


def test_validate_reports_non_sequence_fields(tmp_path: Path):
    path = tmp_path / "cards.json"
    entries = [{"id": "x", "grid": 5, "numbers": [1]}, {"id": "y", "numbers": 7}]
    path.write_text(json.dumps({"cards": entries}), encoding="utf-8")
    result = runner.invoke(app, ["validate", "--cards", str(path)])
    assert result.exit_code == 1
    assert result.exception is None or isinstance(result.exception, SystemExit)
    assert "Grid is not a sequence of rows" in result.stdout
    assert "Numbers is not a sequence" in result.stdout
    assert "2 of 2 cards invalid" in result.stdout


def test_non_integer_env_seed_fails_cleanly(tmp_path: Path, monkeypatch):
    monkeypatch.setenv("BANKO_GEN_SEED_VALUE", "abc")
    result = runner.invoke(app, ["generate", "--out-cards", str(tmp_path / "c.json")])
    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert not (tmp_path / "c.json").exists()
