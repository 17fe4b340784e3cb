from __future__ import annotations

import json
from pathlib import Path

import pytest

from rewardledger.ledger.errors import Unauthorized
from rewardledger.runtime.executor_boot import build_ledger, build_store
from rewardledger.runtime.ledger_config import (
    LedgerConfig,
    default_ledger_config,
    load_ledger_config,
    validate_ledger_config,
)
from rewardledger.runtime.sqlite_db import SqliteStore
from rewardledger.runtime.store import MemoryStore

_ENV = (
    "REWARDLEDGER_CONFIG_PATH",
    "REWARDLEDGER_MODE",
    "REWARDLEDGER_STORE",
    "REWARDLEDGER_DB_PATH",
    "REWARDLEDGER_LOG_LEVEL",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for k in _ENV:
        monkeypatch.delenv(k, raising=False)


def test_defaults_are_prod_sqlite() -> None:
    cfg = load_ledger_config()
    assert cfg == default_ledger_config()
    assert cfg.mode == "prod"
    assert cfg.store == "sqlite"


def test_env_overrides_are_normalized(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REWARDLEDGER_MODE", "DEV")
    monkeypatch.setenv("REWARDLEDGER_STORE", "Memory")
    monkeypatch.setenv("REWARDLEDGER_LOG_LEVEL", "debug")

    cfg = load_ledger_config()
    assert cfg.mode == "dev"
    assert cfg.store == "memory"
    assert cfg.log_level == "DEBUG"


def test_json_file_then_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    p = tmp_path / "ledger.json"
    p.write_text(json.dumps({"mode": "testnet", "store": "sqlite", "db_path": "/srv/a.db"}), encoding="utf-8")

    cfg = load_ledger_config(config_path=str(p))
    assert (cfg.mode, cfg.db_path, cfg.log_level) == ("testnet", "/srv/a.db", "INFO")

    monkeypatch.setenv("REWARDLEDGER_CONFIG_PATH", str(p))
    monkeypatch.setenv("REWARDLEDGER_DB_PATH", "/srv/b.db")
    assert load_ledger_config().db_path == "/srv/b.db"


def test_non_object_json_is_rejected(tmp_path: Path) -> None:
    p = tmp_path / "ledger.json"
    p.write_text("[1, 2]", encoding="utf-8")
    with pytest.raises(ValueError, match="JSON object"):
        load_ledger_config(config_path=str(p))


@pytest.mark.parametrize(
    "cfg, match",
    [
        (LedgerConfig(mode="staging", store="sqlite", db_path="x.db", log_level="INFO"), "mode"),
        (LedgerConfig(mode="dev", store="redis", db_path="x.db", log_level="INFO"), "store"),
        (LedgerConfig(mode="dev", store="sqlite", db_path="  ", log_level="INFO"), "db_path"),
        (LedgerConfig(mode="prod", store="memory", db_path="x.db", log_level="INFO"), "not allowed in prod"),
        (LedgerConfig(mode="dev", store="sqlite", db_path="x.db", log_level="LOUD"), "log_level"),
    ],
)
def test_validation_fails_fast(cfg: LedgerConfig, match: str) -> None:
    with pytest.raises(ValueError, match=match):
        validate_ledger_config(cfg)


def test_memory_store_in_prod_is_refused_at_load(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REWARDLEDGER_STORE", "memory")
    with pytest.raises(ValueError):
        load_ledger_config()


def test_build_store_follows_config(tmp_path: Path) -> None:
    mem = build_store(LedgerConfig(mode="dev", store="memory", db_path="", log_level="INFO"))
    assert isinstance(mem, MemoryStore)

    db_path = str(tmp_path / "nested" / "l.db")
    sq = build_store(LedgerConfig(mode="dev", store="sqlite", db_path=db_path, log_level="INFO"))
    assert isinstance(sq, SqliteStore)
    assert sq.path == db_path
    sq.close()


def test_build_ledger_passes_authorize() -> None:
    cfg = LedgerConfig(mode="dev", store="memory", db_path="", log_level="INFO")
    led = build_ledger(cfg, authorize=lambda caller, op, params: op != "claim_reward")
    led.add_reward(1, 10)

    with pytest.raises(Unauthorized):
        led.claim_reward(1, 1)
    assert led.get_user_balance(1) == 10
