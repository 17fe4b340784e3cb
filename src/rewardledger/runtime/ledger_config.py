# src/rewardledger/runtime/ledger_config.py
from __future__ import annotations

import json
import os
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, Optional

Json = Dict[str, Any]


def _as_str(v: Any, default: str) -> str:
    if v is None:
        return str(default)
    s = str(v)
    return s if s.strip() else str(default)


@dataclass(frozen=True)
class LedgerConfig:
    mode: str  # "dev" | "testnet" | "prod"
    store: str  # "memory" | "sqlite"
    db_path: str
    log_level: str


_ALLOWED_MODES = {"dev", "testnet", "prod"}
_ALLOWED_STORES = {"memory", "sqlite"}
_ALLOWED_LEVELS = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}


def validate_ledger_config(cfg: LedgerConfig) -> None:
    """Fail-fast validation for operator config."""
    mode = str(cfg.mode or "").strip().lower()
    if mode not in _ALLOWED_MODES:
        raise ValueError(f"mode must be one of {sorted(_ALLOWED_MODES)}; got: {cfg.mode!r}")

    store = str(cfg.store or "").strip().lower()
    if store not in _ALLOWED_STORES:
        raise ValueError(f"store must be one of {sorted(_ALLOWED_STORES)}; got: {cfg.store!r}")

    if store == "sqlite" and (not isinstance(cfg.db_path, str) or not cfg.db_path.strip()):
        raise ValueError("db_path must be a non-empty string when store is sqlite")

    # An in-memory ledger loses every balance on restart.
    if store == "memory" and mode == "prod":
        raise ValueError("store=memory is not allowed in prod mode")

    if str(cfg.log_level or "").strip().upper() not in _ALLOWED_LEVELS:
        raise ValueError(f"log_level must be one of {sorted(_ALLOWED_LEVELS)}; got: {cfg.log_level!r}")


def default_ledger_config() -> LedgerConfig:
    return LedgerConfig(
        mode="prod",
        store="sqlite",
        db_path="./data/rewardledger.db",
        log_level="INFO",
    )


def read_ledger_config_file(path: str) -> LedgerConfig:
    raw = json.loads(Path(path).read_text(encoding="utf-8"))
    if not isinstance(raw, dict):
        raise ValueError("ledger config must be a JSON object")

    d = default_ledger_config()
    return LedgerConfig(
        mode=_as_str(raw.get("mode"), d.mode).strip().lower(),
        store=_as_str(raw.get("store"), d.store).strip().lower(),
        db_path=_as_str(raw.get("db_path"), d.db_path),
        log_level=_as_str(raw.get("log_level"), d.log_level).strip().upper(),
    )


def _apply_env_overrides(cfg: LedgerConfig) -> LedgerConfig:
    overrides: Json = {}
    for field_name, env_name in (
        ("mode", "REWARDLEDGER_MODE"),
        ("store", "REWARDLEDGER_STORE"),
        ("db_path", "REWARDLEDGER_DB_PATH"),
        ("log_level", "REWARDLEDGER_LOG_LEVEL"),
    ):
        v = (os.environ.get(env_name) or "").strip()
        if v:
            overrides[field_name] = v.upper() if field_name == "log_level" else v
    for k in ("mode", "store"):
        if k in overrides:
            overrides[k] = str(overrides[k]).lower()
    return replace(cfg, **overrides) if overrides else cfg


def load_ledger_config(*, config_path: Optional[str] = None) -> LedgerConfig:
    """Load config: JSON file (if any) first, then REWARDLEDGER_* env overrides."""
    p = config_path or os.environ.get("REWARDLEDGER_CONFIG_PATH")
    cfg = read_ledger_config_file(p) if p else default_ledger_config()
    cfg = _apply_env_overrides(cfg)
    validate_ledger_config(cfg)
    return cfg
