from __future__ import annotations

import sys
from pathlib import Path
from typing import Iterator

import pytest

# Ensure local "src/" takes precedence over any globally-installed "rewardledger" package.
ROOT = Path(__file__).resolve().parents[1]
SRC = ROOT / "src"

src_str = str(SRC)
if src_str not in sys.path:
    sys.path.insert(0, src_str)

from rewardledger.runtime import metrics  # noqa: E402
from rewardledger.runtime.executor import RewardLedger  # noqa: E402
from rewardledger.runtime.sqlite_db import SqliteDB, SqliteStore  # noqa: E402
from rewardledger.runtime.store import LedgerStore, MemoryStore  # noqa: E402


def make_store(kind: str, tmp_path: Path) -> LedgerStore:
    if kind == "memory":
        return MemoryStore()
    return SqliteStore(db=SqliteDB(path=str(tmp_path / "rewardledger_test.db")))


@pytest.fixture(params=["memory", "sqlite"])
def store(request: pytest.FixtureRequest, tmp_path: Path) -> Iterator[LedgerStore]:
    st = make_store(request.param, tmp_path)
    yield st
    st.close()


@pytest.fixture
def ledger(store: LedgerStore) -> RewardLedger:
    return RewardLedger(store=store)


@pytest.fixture(autouse=True)
def _reset_metrics() -> Iterator[None]:
    metrics.reset()
    yield
    metrics.reset()
