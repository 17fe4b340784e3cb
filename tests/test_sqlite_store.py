from __future__ import annotations

import sqlite3
from pathlib import Path

import pytest

from rewardledger.ledger.constants import UINT256_MAX
from rewardledger.ledger.errors import InsufficientBalance, WalletAlreadyRegistered
from rewardledger.ledger.types import normalize_identity
from rewardledger.runtime.executor import RewardLedger
from rewardledger.runtime.sqlite_db import SqliteDB, SqliteStore

A = normalize_identity(0xA)
B = normalize_identity(0xB)


def _open(path: Path) -> RewardLedger:
    return RewardLedger(store=SqliteStore(db=SqliteDB(path=str(path))))


def _pragma(con: sqlite3.Connection, name: str) -> int | str:
    row = con.execute(f"PRAGMA {name};").fetchone()
    if row is None:
        raise AssertionError(f"missing pragma: {name}")
    return row[0]


def test_sqlite_operational_pragmas_are_applied(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REWARDLEDGER_MODE", "prod")
    monkeypatch.delenv("REWARDLEDGER_SQLITE_SYNCHRONOUS", raising=False)
    monkeypatch.setenv("REWARDLEDGER_SQLITE_BUSY_TIMEOUT_MS", "1234")

    db = SqliteDB(path=str(tmp_path / "rewardledger.db"))
    db.init_schema()

    with db.connection() as con:
        assert str(_pragma(con, "journal_mode")).lower() == "wal"
        # FULL is the prod default.
        assert int(_pragma(con, "synchronous")) == 2
        # MEMORY corresponds to 2
        assert int(_pragma(con, "temp_store")) == 2
        assert int(_pragma(con, "busy_timeout")) == 1234


def test_sqlite_synchronous_follows_mode(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("REWARDLEDGER_MODE", "dev")
    monkeypatch.delenv("REWARDLEDGER_SQLITE_SYNCHRONOUS", raising=False)
    db = SqliteDB(path=str(tmp_path / "dev.db"))
    with db.connection() as con:
        assert int(_pragma(con, "synchronous")) == 1  # NORMAL

    monkeypatch.setenv("REWARDLEDGER_SQLITE_SYNCHRONOUS", "bogus")
    with db.connection() as con:
        assert int(_pragma(con, "synchronous")) == 1


def test_state_survives_reopen(tmp_path: Path) -> None:
    path = tmp_path / "ledger.db"
    led = _open(path)
    led.add_reward(A, UINT256_MAX)
    led.transfer_rewards(A, B, 5)
    led.register_wallet(A, B)
    led.register_wallet(B, A)
    led.close()

    again = _open(path)
    assert again.get_user_balance(A) == UINT256_MAX - 5
    assert again.get_user_balance(B) == 5
    assert again.get_total_issued() == UINT256_MAX
    assert again.get_registered_wallets() == [B, A]
    assert again.wallet_count() == 2
    assert [r.seq for r in again.events()] == [1, 2, 3, 4]

    with pytest.raises(WalletAlreadyRegistered):
        again.register_wallet(A, B)

    assert again.events()[-1].seq == 4


def test_failed_operation_leaves_no_rows(tmp_path: Path) -> None:
    path = tmp_path / "ledger.db"
    led = _open(path)
    led.add_reward(A, 3)

    with pytest.raises(InsufficientBalance):
        led.transfer_rewards(A, B, 4)

    db = SqliteDB(path=str(path))
    with db.connection() as con:
        rows = con.execute("SELECT identity, amount FROM balances ORDER BY identity;").fetchall()
        assert [(r["identity"], r["amount"]) for r in rows] == [(A, "3")]
        assert con.execute("SELECT COUNT(*) FROM events;").fetchone()[0] == 1


def test_exception_inside_write_tx_rolls_back(tmp_path: Path) -> None:
    store = SqliteStore(db=SqliteDB(path=str(tmp_path / "ledger.db")))

    with pytest.raises(RuntimeError):
        with store.write_tx() as tx:
            tx.put_uint("balances", A, 99)
            tx.append_member("wallets", B)
            tx.append_event("RewardAdded", {"user": A, "amount": "99"}, 1)
            raise RuntimeError("boom")

    with store.read_tx() as tx:
        assert tx.get_uint("balances", A) == 0
        assert tx.member_count("wallets") == 0
        assert tx.is_member("wallets", B) is False
        assert tx.events() == []

    # The sequence does not skip numbers after a rollback.
    with store.write_tx() as tx:
        assert tx.append_event("RewardAdded", {"user": A, "amount": "1"}, 2) == 1


def test_read_tx_rejects_writes(tmp_path: Path) -> None:
    store = SqliteStore(db=SqliteDB(path=str(tmp_path / "ledger.db")))
    with store.read_tx() as tx:
        with pytest.raises(RuntimeError):
            tx.put_counter("total_issued", 1)


def test_schema_version_mismatch_refuses_to_start(tmp_path: Path) -> None:
    path = tmp_path / "ledger.db"
    db = SqliteDB(path=str(path))
    db.init_schema()
    with db.write_tx() as con:
        con.execute("UPDATE meta SET value='999' WHERE key='schema_version';")

    with pytest.raises(RuntimeError, match="schema_version mismatch"):
        SqliteStore(db=SqliteDB(path=str(path)))
