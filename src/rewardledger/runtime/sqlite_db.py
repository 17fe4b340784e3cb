# src/rewardledger/runtime/sqlite_db.py
from __future__ import annotations

import json
import os
import random
import sqlite3
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from rewardledger.runtime.store import LedgerStore, StoredEvent, StoreTx

Json = Dict[str, Any]


def _now_ms() -> int:
    return int(time.time() * 1000)


def _canon_json(obj: Any) -> str:
    # No default=str: a non-JSON value leaking into an event is a bug, fail fast.
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _env_int(name: str, default: int) -> int:
    try:
        raw = str(os.environ.get(name, "")).strip()
        return int(raw) if raw else int(default)
    except ValueError:
        return int(default)


class SqliteDB:
    """SQLite connection manager for the reward ledger.

    Design goals:
      - single durable DB file for balances, counters, registry and events
      - cross-process safe (SQLite locks)
      - cross-thread safe by never sharing connections

    SQLite allows only one writer at a time. Under multi-process workloads
    BEGIN IMMEDIATE can transiently fail with "database is locked", so
    write_tx() retries lock acquisition until a deadline.
    """

    SCHEMA_VERSION = 1

    def __init__(self, *, path: str) -> None:
        self.path = str(path)

    @staticmethod
    def _sqlite_synchronous_pragma() -> str:
        """PRAGMA synchronous value: FULL in prod, NORMAL otherwise.

        Override with REWARDLEDGER_SQLITE_SYNCHRONOUS in {OFF,NORMAL,FULL,EXTRA}.
        """
        mode = (os.environ.get("REWARDLEDGER_MODE") or "prod").strip().lower()
        default = "FULL" if mode == "prod" else "NORMAL"
        raw = (os.environ.get("REWARDLEDGER_SQLITE_SYNCHRONOUS") or default).strip().upper()
        if raw not in {"OFF", "NORMAL", "FULL", "EXTRA"}:
            raw = default
        return raw

    def ensure_parent_dir(self) -> None:
        Path(self.path).parent.mkdir(parents=True, exist_ok=True)

    def _connect(self) -> sqlite3.Connection:
        self.ensure_parent_dir()

        connect_timeout_s = float(_env_int("REWARDLEDGER_SQLITE_CONNECT_TIMEOUT_MS", 30_000)) / 1000.0
        con = sqlite3.connect(
            self.path,
            timeout=connect_timeout_s,
            isolation_level=None,  # we manage BEGIN/COMMIT ourselves
            check_same_thread=False,
        )
        con.row_factory = sqlite3.Row

        row = con.execute("PRAGMA journal_mode=WAL;").fetchone()
        mode = str(row[0]).strip().lower() if row is not None else ""
        if mode != "wal":
            con.close()
            raise RuntimeError(f"sqlite journal_mode is '{mode}', expected 'wal'")

        con.execute(f"PRAGMA synchronous={self._sqlite_synchronous_pragma()};")
        con.execute("PRAGMA temp_store=MEMORY;")

        busy_ms = max(0, _env_int("REWARDLEDGER_SQLITE_BUSY_TIMEOUT_MS", int(connect_timeout_s * 1000)))
        con.execute(f"PRAGMA busy_timeout={busy_ms};")
        return con

    def init_schema(self) -> None:
        with self.write_tx() as con:
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS meta (
                  key TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )

            # 256-bit values do not fit SQLite INTEGER; store decimal text.
            con.execute(
                """
                CREATE TABLE IF NOT EXISTS balances (
                  namespace TEXT NOT NULL,
                  identity TEXT NOT NULL,
                  amount TEXT NOT NULL,
                  PRIMARY KEY (namespace, identity)
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS counters (
                  name TEXT PRIMARY KEY,
                  value TEXT NOT NULL
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS registry (
                  list_name TEXT NOT NULL,
                  idx INTEGER NOT NULL,
                  member TEXT NOT NULL,
                  PRIMARY KEY (list_name, idx),
                  UNIQUE (list_name, member)
                );
                """
            )

            con.execute(
                """
                CREATE TABLE IF NOT EXISTS events (
                  seq INTEGER PRIMARY KEY AUTOINCREMENT,
                  kind TEXT NOT NULL,
                  payload_json TEXT NOT NULL,
                  created_ts_ms INTEGER NOT NULL
                );
                """
            )

            row = con.execute("SELECT value FROM meta WHERE key='schema_version' LIMIT 1;").fetchone()
            if row is None:
                con.execute("INSERT INTO meta(key, value) VALUES('schema_version', ?);", (str(self.SCHEMA_VERSION),))
            else:
                try:
                    v = int(str(row["value"]))
                except ValueError:
                    v = 0
                if v != self.SCHEMA_VERSION:
                    raise RuntimeError(
                        f"sqlite schema_version mismatch: have={v} want={self.SCHEMA_VERSION}. "
                        "Refuse to start to avoid corrupting data."
                    )

    @contextmanager
    def connection(self) -> Iterator[sqlite3.Connection]:
        con = self._connect()
        try:
            yield con
        finally:
            con.close()

    @staticmethod
    def _is_locked_error(e: Exception) -> bool:
        msg = str(e).lower()
        return ("database is locked" in msg) or ("database is busy" in msg)

    @staticmethod
    def _backoff_sleep(attempt: int, base_sleep: float, max_sleep: float) -> None:
        sleep_s = min(max_sleep, base_sleep * (2.0 ** min(attempt, 8)))
        time.sleep(sleep_s * (0.5 + random.random()))

    @contextmanager
    def read_tx(self) -> Iterator[sqlite3.Connection]:
        """Deferred transaction: every read inside sees the same committed snapshot."""
        with self.connection() as con:
            con.execute("BEGIN;")
            try:
                yield con
            finally:
                con.execute("ROLLBACK;")

    @contextmanager
    def write_tx(self) -> Iterator[sqlite3.Connection]:
        """Open a write transaction with bounded retry on writer-lock contention.

        Policy:
          - retry BEGIN IMMEDIATE (and COMMIT) until a deadline
          - exponential backoff with jitter
          - then raise if the lock cannot be acquired in time
        """
        deadline_ms = max(250, _env_int("REWARDLEDGER_SQLITE_WRITE_DEADLINE_MS", 30_000))
        deadline_ts = _now_ms() + deadline_ms

        base_sleep = max(0.001, float(_env_int("REWARDLEDGER_SQLITE_WRITE_BACKOFF_BASE_MS", 5)) / 1000.0)
        max_sleep = max(base_sleep, float(_env_int("REWARDLEDGER_SQLITE_WRITE_BACKOFF_MAX_MS", 250)) / 1000.0)

        with self.connection() as con:
            attempt = 0
            while True:
                try:
                    con.execute("BEGIN IMMEDIATE;")
                    break
                except sqlite3.OperationalError as e:
                    if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                        raise
                    self._backoff_sleep(attempt, base_sleep, max_sleep)
                    attempt += 1

            try:
                yield con

                c_attempt = 0
                while True:
                    try:
                        con.execute("COMMIT;")
                        break
                    except sqlite3.OperationalError as e:
                        if not self._is_locked_error(e) or _now_ms() >= deadline_ts:
                            raise
                        self._backoff_sleep(c_attempt, base_sleep, max_sleep)
                        c_attempt += 1
            except BaseException:
                if con.in_transaction:
                    con.execute("ROLLBACK;")
                raise


class _SqliteTx(StoreTx):
    def __init__(self, con: sqlite3.Connection, *, writable: bool) -> None:
        self._con = con
        self._writable = bool(writable)

    def _require_writable(self) -> None:
        if not self._writable:
            raise RuntimeError("write attempted in a read-only transaction")

    def get_uint(self, namespace: str, key: str) -> int:
        row = self._con.execute(
            "SELECT amount FROM balances WHERE namespace=? AND identity=?;", (namespace, key)
        ).fetchone()
        return int(row["amount"]) if row is not None else 0

    def put_uint(self, namespace: str, key: str, value: int) -> None:
        self._require_writable()
        self._con.execute(
            """
            INSERT INTO balances(namespace, identity, amount) VALUES(?, ?, ?)
            ON CONFLICT(namespace, identity) DO UPDATE SET amount=excluded.amount;
            """,
            (namespace, key, str(int(value))),
        )

    def get_counter(self, name: str) -> int:
        row = self._con.execute("SELECT value FROM counters WHERE name=?;", (name,)).fetchone()
        return int(row["value"]) if row is not None else 0

    def put_counter(self, name: str, value: int) -> None:
        self._require_writable()
        self._con.execute(
            """
            INSERT INTO counters(name, value) VALUES(?, ?)
            ON CONFLICT(name) DO UPDATE SET value=excluded.value;
            """,
            (name, str(int(value))),
        )

    def is_member(self, list_name: str, item: str) -> bool:
        row = self._con.execute(
            "SELECT 1 FROM registry WHERE list_name=? AND member=? LIMIT 1;", (list_name, item)
        ).fetchone()
        return row is not None

    def member_count(self, list_name: str) -> int:
        return self.get_counter(f"count:{list_name}")

    def append_member(self, list_name: str, item: str) -> int:
        self._require_writable()
        idx = self.member_count(list_name)
        self._con.execute("INSERT INTO registry(list_name, idx, member) VALUES(?, ?, ?);", (list_name, idx, item))
        self.put_counter(f"count:{list_name}", idx + 1)
        return idx

    def members(self, list_name: str, offset: int = 0, limit: Optional[int] = None) -> List[str]:
        lim = -1 if limit is None else max(0, int(limit))
        rows = self._con.execute(
            "SELECT member FROM registry WHERE list_name=? ORDER BY idx LIMIT ? OFFSET ?;",
            (list_name, lim, max(0, int(offset))),
        ).fetchall()
        return [str(r["member"]) for r in rows]

    def append_event(self, kind: str, payload: Json, ts_ms: int) -> int:
        self._require_writable()
        cur = self._con.execute(
            "INSERT INTO events(kind, payload_json, created_ts_ms) VALUES(?, ?, ?);",
            (str(kind), _canon_json(payload), int(ts_ms)),
        )
        return int(cur.lastrowid)

    def events(self, since_seq: int = 0, limit: Optional[int] = None) -> List[StoredEvent]:
        lim = -1 if limit is None else max(0, int(limit))
        rows = self._con.execute(
            "SELECT seq, created_ts_ms, kind, payload_json FROM events WHERE seq > ? ORDER BY seq LIMIT ?;",
            (max(0, int(since_seq)), lim),
        ).fetchall()
        return [(int(r["seq"]), int(r["created_ts_ms"]), str(r["kind"]), json.loads(str(r["payload_json"]))) for r in rows]


class SqliteStore(LedgerStore):
    """LedgerStore persisted in a single SQLite file.

    Each write_tx() is one BEGIN IMMEDIATE transaction, so a ledger operation's
    balance rows, counters, registry row and event row commit together or not at all.
    """

    def __init__(self, *, db: SqliteDB) -> None:
        self._db = db
        self._db.init_schema()

    @property
    def path(self) -> str:
        return self._db.path

    @contextmanager
    def read_tx(self) -> Iterator[StoreTx]:
        with self._db.read_tx() as con:
            yield _SqliteTx(con, writable=False)

    @contextmanager
    def write_tx(self) -> Iterator[StoreTx]:
        with self._db.write_tx() as con:
            yield _SqliteTx(con, writable=True)
