from __future__ import annotations

import hashlib
import json
import os
import secrets
from pathlib import Path
from typing import Any, Dict, Mapping, Tuple

import yaml

ENV_PREFIX = "BANKO_GEN_"

PATH_KEYS = ("out_cards", "out_instructions", "log_file", "summary_csv")

_INT_KEYS = {
    "cards",
    "winners",
    "seed.value",
    "max_card_attempts",
    "batch_attempt_factor",
    "prank.max_trials",
    "prank.comfortable_max",
    "prank.good_min",
    "prank.good_max",
}
_BOOL_KEYS = {"include_metadata"}


def _read_config_file(config_path: Path | None) -> Dict[str, Any]:
    if not config_path:
        return {}
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")
    suffix = config_path.suffix.lower()
    text = config_path.read_text(encoding="utf-8")
    if suffix in (".yaml", ".yml"):
        data = yaml.safe_load(text) or {}
        if not isinstance(data, dict):
            raise ValueError("Top-level YAML config must be a mapping")
        return data
    if suffix == ".json":
        data = json.loads(text)
        if not isinstance(data, dict):
            raise ValueError("Top-level JSON config must be a mapping")
        return data
    raise ValueError(f"Unsupported config extension: {suffix}")


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _collect_env_vars(env: Mapping[str, str]) -> Dict[str, Any]:
    """Map ENV variables with BANKO_GEN_ prefix to config keys.

    We use an explicit map to avoid ambiguity. Keys not present are ignored.
    """
    mapping: Dict[str, str] = {
        # Core params
        f"{ENV_PREFIX}CARDS": "cards",
        f"{ENV_PREFIX}WINNERS": "winners",
        # Seed
        f"{ENV_PREFIX}SEED_MODE": "seed.mode",
        f"{ENV_PREFIX}SEED_VALUE": "seed.value",
        f"{ENV_PREFIX}SEED_ENGINE": "seed.engine",
        # Retry bounds
        f"{ENV_PREFIX}MAX_CARD_ATTEMPTS": "max_card_attempts",
        f"{ENV_PREFIX}BATCH_ATTEMPT_FACTOR": "batch_attempt_factor",
        # Prank scoring policy
        f"{ENV_PREFIX}PRANK_MAX_TRIALS": "prank.max_trials",
        f"{ENV_PREFIX}PRANK_COMFORTABLE_MAX": "prank.comfortable_max",
        f"{ENV_PREFIX}PRANK_GOOD_MIN": "prank.good_min",
        f"{ENV_PREFIX}PRANK_GOOD_MAX": "prank.good_max",
        # Output & UX
        f"{ENV_PREFIX}EVENT_NAME": "event_name",
        f"{ENV_PREFIX}INCLUDE_METADATA": "include_metadata",
        f"{ENV_PREFIX}LOG_LEVEL": "log_level",
        f"{ENV_PREFIX}LOG_FORMAT": "log_format",
        f"{ENV_PREFIX}LOG_FILE": "log_file",
        f"{ENV_PREFIX}OUT_CARDS": "out_cards",
        f"{ENV_PREFIX}OUT_INSTRUCTIONS": "out_instructions",
        f"{ENV_PREFIX}SUMMARY_CSV": "summary_csv",
    }

    result: Dict[str, Any] = {}
    for env_key, cfg_key in mapping.items():
        if env_key not in env:
            continue
        raw = env[env_key]
        if cfg_key in _INT_KEYS:
            try:
                result[cfg_key] = int(raw)
            except ValueError:
                result[cfg_key] = raw
        elif cfg_key in _BOOL_KEYS:
            result[cfg_key] = _parse_bool(raw)
        else:
            result[cfg_key] = raw

    return result


def _set_nested(config: Dict[str, Any], dotted_key: str, value: Any) -> None:
    parts = dotted_key.split(".")
    cursor = config
    for part in parts[:-1]:
        if part not in cursor or not isinstance(cursor[part], dict):
            cursor[part] = {}
        cursor = cursor[part]
    cursor[parts[-1]] = value


def _apply_overrides(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
    merged: Dict[str, Any] = json.loads(json.dumps(base))  # deep copy via JSON
    for key, value in overrides.items():
        if "." in key:
            _set_nested(merged, key, value)
        elif isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _apply_overrides(merged[key], value)
        else:
            merged[key] = value
    return merged


def canonical_json_dumps(data: Any) -> str:
    return json.dumps(data, ensure_ascii=True, sort_keys=True, separators=(",", ":"))


def get_path(source: Mapping[str, Any], path: str, default: Any = None) -> Any:
    cur: Any = source
    for part in path.split("."):
        if not isinstance(cur, Mapping) or part not in cur:
            return default
        cur = cur[part]
    return cur


def compute_params_hash(resolved: Mapping[str, Any]) -> str:
    include = {
        "cards",
        "winners",
        "max_card_attempts",
        "batch_attempt_factor",
        "prank.max_trials",
        "prank.comfortable_max",
        "prank.good_min",
        "prank.good_max",
        "seed.engine",
        "seed.value",
    }

    contract: Dict[str, Any] = {}
    for item in include:
        value = get_path(resolved, item)
        if value is not None:
            contract[item] = value

    digest = hashlib.sha256(canonical_json_dumps(contract).encode("utf-8")).hexdigest()
    return f"sha256:{digest}"


def resolve_paths(
    resolved: Dict[str, Any],
    config_file: Path | None,
    cli_overrides: Dict[str, Any],
) -> Dict[str, Any]:
    """Normalize paths per policy.

    - Paths from config file: resolve relative to config directory
    - Paths from CLI: resolve relative to CWD
    """
    cwd = Path.cwd()
    cfg_dir = config_file.parent if config_file else None

    def normalize(path_value: str | None, is_cli: bool) -> str | None:
        if path_value is None or path_value == "":
            return None
        p = Path(path_value)
        if p.is_absolute():
            return str(p)
        base = cwd if is_cli else (cfg_dir or cwd)
        return str((base / p).resolve())

    result = dict(resolved)
    cli_keys = {k for k in cli_overrides.keys() if k in PATH_KEYS}

    for key in PATH_KEYS:
        value = resolved.get(key)
        if value is None:
            continue
        result[key] = normalize(str(value), key in cli_keys)

    return result


def resolve_seed(resolved: Dict[str, Any]) -> Dict[str, Any]:
    """Pin the seed: ``fixed`` keeps ``seed.value``, ``random`` draws a fresh one.

    The drawn value is written back so the run can be reproduced from its
    metadata.
    """
    mode = str(get_path(resolved, "seed.mode", "random")).strip().lower()
    if mode not in {"random", "fixed"}:
        raise ValueError(f"Unsupported seed mode: {mode}")
    value = get_path(resolved, "seed.value")
    if mode == "fixed" and value is None:
        raise ValueError("seed.value must be an integer when seed.mode is fixed")
    if value is not None and (not isinstance(value, int) or isinstance(value, bool)):
        raise ValueError(f"seed.value must be an integer, got {value!r}")
    if value is None:
        _set_nested(resolved, "seed.value", secrets.randbits(63))
    return resolved


def resolve_parameters(
    *,
    config_path_str: str | None,
    cli_overrides: Dict[str, Any],
    env: Mapping[str, str] | None = None,
) -> Tuple[Dict[str, Any], str, Path | None]:
    """Resolve parameters with precedence CLI > ENV > config > defaults.

    Returns (resolved_params, params_hash, config_path)
    """
    config_path = Path(config_path_str).resolve() if config_path_str else None
    file_cfg = _read_config_file(config_path) if config_path else {}
    env_map = _collect_env_vars(os.environ if env is None else env)

    defaults: Dict[str, Any] = {
        "cards": 50,
        "winners": 0,
        "seed": {"mode": "random", "engine": "py_random"},
        "max_card_attempts": 1000,
        "batch_attempt_factor": 10,
        "prank": {
            "max_trials": 100,
            "comfortable_max": 20,
            "good_min": 5,
            "good_max": 15,
        },
        "include_metadata": True,
        "log_level": "INFO",
        "log_format": "text",
    }

    # Merge: config > defaults, then ENV, then CLI
    merged = _apply_overrides(defaults, file_cfg)
    merged = _apply_overrides(merged, env_map)
    merged = _apply_overrides(merged, cli_overrides)

    merged = resolve_paths(merged, config_path, cli_overrides)
    merged = resolve_seed(merged)

    params_hash = compute_params_hash(merged)
    return merged, params_hash, config_path
