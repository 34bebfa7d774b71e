from __future__ import annotations

import sys
import time
from pathlib import Path
from typing import Any, Dict, NoReturn, Optional, Tuple

import typer

from .config import get_path, resolve_parameters
from .core import (
    BuildParams,
    CardBuilder,
    ScoringPolicy,
    run_prank,
    validate,
    validate_batch_uniqueness,
)
from .errors import BankoError, PrankInfeasible
from .logging_setup import setup_logging
from .rng import RandomSource, create_rng
from .serialize import (
    build_cards_document,
    build_run_meta,
    emit_cards_json,
    emit_instructions_text,
    emit_summary_csv,
    load_cards_json,
)
from .verify import analyze_prank, compute_column_frequencies, compute_frequencies
from .version import __version__

app = typer.Typer(help="Banko (90-ball bingo) card generator CLI")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(__version__)
        raise typer.Exit(0)


@app.callback()
def common_options(
    version: bool = typer.Option(
        False,
        "--version",
        help="Show application version and exit",
        callback=_version_callback,
        is_eager=True,
    ),
) -> None:
    """Banko (90-ball bingo) card generator CLI"""


def _fail(message: str) -> NoReturn:
    typer.secho(f"Error: {message}", fg=typer.colors.RED, err=True)
    raise typer.Exit(code=1)


def _setup(
    config: Optional[str], cli_overrides: Dict[str, Any]
) -> Tuple[Dict[str, Any], str, RandomSource]:
    try:
        resolved, params_hash, _cfg_path_unused = resolve_parameters(
            config_path_str=config, cli_overrides=cli_overrides
        )
    except (OSError, ValueError) as exc:
        _fail(str(exc))
    setup_logging(
        level=str(resolved.get("log_level", "INFO")),
        log_file=resolved.get("log_file"),
        json_format=(str(resolved.get("log_format", "text")) == "json"),
    )
    rng = create_rng(
        str(get_path(resolved, "seed.engine", "py_random")),
        int(get_path(resolved, "seed.value")),
    )
    return resolved, params_hash, rng


def _common_overrides(
    *,
    cards: Optional[int],
    seed: Optional[int],
    engine: Optional[str],
    out_cards: Optional[str],
    log_file: Optional[str],
    log_level: Optional[str],
    summary_csv: Optional[str] = None,
) -> Dict[str, Any]:
    overrides: Dict[str, Any] = {}
    if cards is not None:
        overrides["cards"] = cards
    if seed is not None:
        overrides["seed.mode"] = "fixed"
        overrides["seed.value"] = seed
    if engine:
        overrides["seed.engine"] = engine
    if out_cards:
        overrides["out_cards"] = out_cards
    if log_file:
        overrides["log_file"] = log_file
    if log_level:
        overrides["log_level"] = log_level
    if summary_csv:
        overrides["summary_csv"] = summary_csv
    return overrides


def _build_params(resolved: Dict[str, Any]) -> BuildParams:
    return BuildParams(
        max_card_attempts=int(resolved.get("max_card_attempts", 1000)),
        batch_attempt_factor=int(resolved.get("batch_attempt_factor", 10)),
    )


def _run_meta(resolved: Dict[str, Any], params_hash: str) -> Dict[str, object]:
    return build_run_meta(
        app_version=__version__,
        params_hash=params_hash,
        seed=int(get_path(resolved, "seed.value")),
        rng_engine=str(get_path(resolved, "seed.engine", "py_random")),
    )


@app.command()
def generate(
    config: str = typer.Option(None, "--config", help="Path to config file (YAML/JSON)"),
    cards: int = typer.Option(None, "--cards", help="Number of unique cards to generate"),
    seed: int = typer.Option(None, "--seed", help="Fixed seed for reproducible output"),
    engine: str = typer.Option(None, "--engine", help="py_random|numpy_pcg64"),
    out_cards: str = typer.Option(None, "--out-cards", help="cards.json output path"),
    no_metadata: bool = typer.Option(False, "--no-metadata", help="Write the card list only"),
    summary_csv: str = typer.Option(None, "--summary-csv", help="Path to summary.csv (optional)"),
    log_file: str = typer.Option(None, "--log-file", help="Log file path"),
    log_level: str = typer.Option(None, "--log-level", help="DEBUG|INFO|WARN|ERROR"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Resolve params and exit"),
    force: bool = typer.Option(False, "--force", help="Overwrite outputs if they exist"),
    no_mkdirs: bool = typer.Option(False, "--no-mkdirs", help="Do not create parent directories"),
) -> None:
    """Generate a batch of unique, valid banko cards."""
    overrides = _common_overrides(
        cards=cards,
        seed=seed,
        engine=engine,
        out_cards=out_cards,
        log_file=log_file,
        log_level=log_level,
        summary_csv=summary_csv,
    )
    if no_metadata:
        overrides["include_metadata"] = False
    resolved, params_hash, rng = _setup(config, overrides)

    if dry_run:
        typer.echo(f"Params hash: {params_hash}")
        typer.echo(f"Seed: {get_path(resolved, 'seed.value')}")
        raise typer.Exit(0)

    count = int(resolved.get("cards", 0))
    start_time = time.time()
    builder = CardBuilder(rng, _build_params(resolved))
    try:
        batch = builder.build_batch(count)
    except BankoError as exc:
        _fail(str(exc))
    elapsed = time.time() - start_time

    out_cards_path = Path(resolved.get("out_cards") or "cards.json")
    document = build_cards_document(
        batch,
        include_metadata=bool(resolved.get("include_metadata", True)),
        run_meta=_run_meta(resolved, params_hash),
    )
    try:
        emit_cards_json(out_cards_path, document=document, mkdirs=(not no_mkdirs), overwrite=force)
        if resolved.get("summary_csv"):
            emit_summary_csv(
                Path(resolved["summary_csv"]),
                freqs=compute_frequencies(batch),
                by_column=compute_column_frequencies(batch),
                mkdirs=(not no_mkdirs),
                overwrite=force,
            )
    except FileExistsError as exc:
        _fail(str(exc))

    typer.echo(f"Generated {len(batch)} cards in {elapsed:.2f}s")
    typer.echo(f"Average drafts per card: {builder.metrics.attempts_per_card:.1f}")
    typer.echo(f"Output file: {out_cards_path}")
    raise typer.Exit(code=0)


@app.command()
def prank(
    config: str = typer.Option(None, "--config", help="Path to config file (YAML/JSON)"),
    cards: int = typer.Option(None, "--cards", help="Total number of cards"),
    winners: int = typer.Option(None, "--winners", help="Number of cards that can win"),
    seed: int = typer.Option(None, "--seed", help="Fixed seed for reproducible output"),
    engine: str = typer.Option(None, "--engine", help="py_random|numpy_pcg64"),
    event_name: str = typer.Option(None, "--event-name", help="Event name for the instruction sheet"),
    out_cards: str = typer.Option(None, "--out-cards", help="cards.json output path"),
    out_instructions: str = typer.Option(
        None, "--out-instructions", help="Instruction sheet output path"
    ),
    strict: bool = typer.Option(False, "--strict", help="Fail instead of degrading when infeasible"),
    log_file: str = typer.Option(None, "--log-file", help="Log file path"),
    log_level: str = typer.Option(None, "--log-level", help="DEBUG|INFO|WARN|ERROR"),
    force: bool = typer.Option(False, "--force", help="Overwrite outputs if they exist"),
    no_mkdirs: bool = typer.Option(False, "--no-mkdirs", help="Do not create parent directories"),
) -> None:
    """Generate cards and the numbers to withhold so only chosen cards can win."""
    overrides = _common_overrides(
        cards=cards,
        seed=seed,
        engine=engine,
        out_cards=out_cards,
        log_file=log_file,
        log_level=log_level,
    )
    if winners is not None:
        overrides["winners"] = winners
    if event_name:
        overrides["event_name"] = event_name
    if out_instructions:
        overrides["out_instructions"] = out_instructions
    resolved, params_hash, rng = _setup(config, overrides)

    policy = ScoringPolicy(
        comfortable_max=int(get_path(resolved, "prank.comfortable_max", 20)),
        good_min=int(get_path(resolved, "prank.good_min", 5)),
        good_max=int(get_path(resolved, "prank.good_max", 15)),
    )
    try:
        result = run_prank(
            int(resolved.get("cards", 0)),
            int(resolved.get("winners", 0)),
            rng=rng,
            build_params=_build_params(resolved),
            max_trials=int(get_path(resolved, "prank.max_trials", 100)),
            policy=policy,
            strict=strict,
        )
    except PrankInfeasible as exc:
        _fail(f"{exc}. Try fewer winning cards or more cards in total.")
    except BankoError as exc:
        _fail(str(exc))

    out_cards_path = Path(resolved.get("out_cards") or "cards.json")
    out_instructions_path = Path(resolved.get("out_instructions") or "instructions.txt")
    document = build_cards_document(
        result.cards,
        winning_ids=result.winning_ids,
        excluded_numbers=result.excluded_numbers,
        include_metadata=bool(resolved.get("include_metadata", True)),
        run_meta=_run_meta(resolved, params_hash),
    )
    try:
        emit_cards_json(out_cards_path, document=document, mkdirs=(not no_mkdirs), overwrite=force)
        emit_instructions_text(
            out_instructions_path,
            result=result,
            event_name=resolved.get("event_name"),
            mkdirs=(not no_mkdirs),
            overwrite=force,
        )
    except FileExistsError as exc:
        _fail(str(exc))

    report = analyze_prank(result)
    for line in report.analysis:
        typer.echo(line)
    for line in report.recommendations:
        typer.echo(line)
    if result.degraded:
        typer.secho(
            "No feasible prank found: nothing is excluded, re-run with different parameters",
            fg=typer.colors.YELLOW,
        )
    typer.echo(f"Output files: {out_cards_path}, {out_instructions_path}")
    raise typer.Exit(code=0)


@app.command("validate")
def validate_cards(
    cards: str = typer.Option(..., "--cards", help="Path to cards.json"),
) -> None:
    """Check every card in a cards.json file against the banko card rules."""
    try:
        batch = load_cards_json(Path(cards))
    except (OSError, ValueError) as exc:
        _fail(str(exc))

    failures = 0
    for card in batch:
        result = validate(card)
        if not result.ok:
            failures += 1
            typer.echo(f"{card.id or '<no id>'}:")
            for violation in result.violations:
                typer.echo(f"  - {violation}")
    uniqueness = validate_batch_uniqueness(batch)
    for violation in uniqueness.violations:
        typer.echo(violation)

    if failures or not uniqueness.ok:
        typer.secho(
            f"{failures} of {len(batch)} cards invalid, "
            f"{len(uniqueness.violations)} duplicates",
            fg=typer.colors.RED,
        )
        raise typer.Exit(code=1)
    typer.echo(f"All {len(batch)} cards are valid and unique")
    raise typer.Exit(code=0)


def main(_argv: list[str] | None = None) -> int:
    try:
        app(standalone_mode=True)
        return 0
    except SystemExit as e:
        return int(e.code) if e.code is not None else 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
