# src/rewardledger/runtime/executor_boot.py

from __future__ import annotations

from typing import Optional

from rewardledger.runtime.executor import AuthorizePredicate, RewardLedger
from rewardledger.runtime.ledger_config import LedgerConfig, load_ledger_config
from rewardledger.runtime.sqlite_db import SqliteDB, SqliteStore
from rewardledger.runtime.store import LedgerStore, MemoryStore


def build_store(cfg: LedgerConfig) -> LedgerStore:
    if cfg.store == "memory":
        return MemoryStore()
    return SqliteStore(db=SqliteDB(path=cfg.db_path))


def build_ledger(
    cfg: Optional[LedgerConfig] = None,
    *,
    authorize: Optional[AuthorizePredicate] = None,
) -> RewardLedger:
    """
    Build a RewardLedger from an explicit config or, if omitted, from
    REWARDLEDGER_* environment variables (see ledger_config).

    `rewardledger.api.app` calls this with no args in production.
    """
    c = cfg or load_ledger_config()
    return RewardLedger(store=build_store(c), authorize=authorize)
