from __future__ import annotations

import logging
import threading
import time
from typing import Any, Callable, Dict, List, Optional, Tuple

from rewardledger.ledger.balances import BalanceLedger
from rewardledger.ledger.constants import (
    EVENT_REWARD_ADDED,
    EVENT_REWARD_CLAIMED,
    EVENT_REWARD_TRANSFERRED,
    EVENT_WALLET_REGISTERED,
)
from rewardledger.ledger.errors import LedgerError, Unauthorized
from rewardledger.ledger.events import EventRecord, LedgerEvent, event_from_json
from rewardledger.ledger.ledger_logging import log_event
from rewardledger.ledger.registry import WalletRegistry
from rewardledger.ledger.types import Identity, normalize_identity, require_uint256
from rewardledger.runtime.metrics import inc_counter, set_gauge
from rewardledger.runtime.store import LedgerStore, StoreTx

Json = Dict[str, Any]

# authorize(caller, operation, params) -> allowed
AuthorizePredicate = Callable[[Optional[Identity], str, Json], bool]
EventListener = Callable[[EventRecord], None]

_LOG_NAMES = {
    EVENT_REWARD_ADDED: "reward_added",
    EVENT_REWARD_CLAIMED: "reward_claimed",
    EVENT_REWARD_TRANSFERRED: "reward_transferred",
    EVENT_WALLET_REGISTERED: "wallet_registered",
}


def _now_ms() -> int:
    return int(time.time() * 1000)


class RewardLedger:
    """Reward ledger + wallet registry behind one serializing write path.

    Every mutating call runs read-validate-mutate-emit inside a single store
    write transaction while holding self._mutex, so:
      - no reader ever observes part of an operation (e.g. a debit without
        its matching credit)
      - the event row commits iff the state change commits
      - event sequence numbers follow commit order

    Listeners are notified after commit while the mutex is still held, which
    keeps delivery FIFO across calls. A listener must not call back into a
    mutating operation.

    authorize, when given, is evaluated before any state is read. Without it
    every caller may perform every operation.
    """

    def __init__(
        self,
        *,
        store: LedgerStore,
        authorize: Optional[AuthorizePredicate] = None,
        clock: Callable[[], int] = _now_ms,
    ) -> None:
        self._store = store
        self._authorize = authorize
        self._clock = clock
        self._balances = BalanceLedger()
        self._registry = WalletRegistry()
        self._mutex = threading.Lock()
        self._listeners: List[EventListener] = []
        self._listeners_lock = threading.Lock()
        self._local = threading.local()
        self._log = logging.getLogger("rewardledger.ledger")

    @property
    def store(self) -> LedgerStore:
        return self._store

    def close(self) -> None:
        self._store.close()

    # ---- mutating operations ----

    def add_reward(self, user: Any, amount: Any, *, caller: Any = None) -> EventRecord:
        """Credit amount to user and to total issuance. Any caller may credit anyone."""
        u = normalize_identity(user)
        amt = require_uint256(amount)
        c = normalize_identity(caller) if caller is not None else None
        return self._commit(
            "add_reward",
            c,
            {"user": u, "amount": amt},
            lambda tx: self._balances.add_reward(tx, u, amt),
        )

    def claim_reward(self, caller: Any, amount: Any) -> EventRecord:
        """Debit the caller's tracked entitlement. Disbursing value is someone else's job."""
        c = normalize_identity(caller)
        amt = require_uint256(amount)
        return self._commit(
            "claim_reward",
            c,
            {"amount": amt},
            lambda tx: self._balances.claim_reward(tx, c, amt),
        )

    def transfer_rewards(self, caller: Any, to: Any, amount: Any) -> EventRecord:
        c = normalize_identity(caller)
        t = normalize_identity(to)
        amt = require_uint256(amount)
        return self._commit(
            "transfer_rewards",
            c,
            {"to": t, "amount": amt},
            lambda tx: self._balances.transfer_rewards(tx, c, t, amt),
        )

    def register_wallet(self, caller: Any, wallet: Any) -> EventRecord:
        c = normalize_identity(caller)
        w = normalize_identity(wallet)

        return self._commit(
            "register_wallet",
            c,
            {"wallet": w},
            lambda tx: self._registry.register_wallet(tx, c, w),
            gauges=lambda tx: {"wallets_registered": self._registry.count(tx)},
        )

    # ---- reads ----

    def get_user_balance(self, user: Any) -> int:
        u = normalize_identity(user)
        with self._store.read_tx() as tx:
            return self._balances.balance_of(tx, u)

    def get_total_issued(self) -> int:
        with self._store.read_tx() as tx:
            return self._balances.total_issued(tx)

    def get_registered_wallets(self, *, offset: int = 0, limit: Optional[int] = None) -> List[Identity]:
        with self._store.read_tx() as tx:
            return self._registry.wallets(tx, offset=offset, limit=limit)

    def wallet_page(self, *, offset: int = 0, limit: Optional[int] = None) -> Tuple[List[Identity], int]:
        """A page of wallets and the registry size, read from one snapshot."""
        with self._store.read_tx() as tx:
            return self._registry.wallets(tx, offset=offset, limit=limit), self._registry.count(tx)

    def is_registered(self, wallet: Any) -> bool:
        w = normalize_identity(wallet)
        with self._store.read_tx() as tx:
            return self._registry.is_registered(tx, w)

    def wallet_count(self) -> int:
        with self._store.read_tx() as tx:
            return self._registry.count(tx)

    def events(self, *, since_seq: int = 0, limit: Optional[int] = None) -> List[EventRecord]:
        with self._store.read_tx() as tx:
            rows = tx.events(since_seq=since_seq, limit=limit)
        return [EventRecord(seq=seq, ts_ms=ts, event=event_from_json(kind, payload)) for seq, ts, kind, payload in rows]

    # ---- observers ----

    def subscribe(self, listener: EventListener) -> Callable[[], None]:
        """Register an in-process observer. Returns a callable that unsubscribes it."""
        with self._listeners_lock:
            self._listeners.append(listener)

        def _unsubscribe() -> None:
            with self._listeners_lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return _unsubscribe

    # ---- internals ----

    def _check_authorized(self, caller: Optional[Identity], operation: str, params: Json) -> None:
        if self._authorize is None:
            return
        if not self._authorize(caller, operation, dict(params)):
            raise Unauthorized("caller_not_authorized", {"operation": operation, "caller": caller})

    def _commit(
        self,
        operation: str,
        caller: Optional[Identity],
        params: Json,
        mutate: Callable[[StoreTx], LedgerEvent],
        *,
        gauges: Optional[Callable[[StoreTx], Dict[str, int]]] = None,
    ) -> EventRecord:
        if getattr(self._local, "notifying", False):
            raise RuntimeError("mutating ledger operation called from an event listener")

        with self._mutex:
            try:
                self._check_authorized(caller, operation, params)
                with self._store.write_tx() as tx:
                    ev = mutate(tx)
                    ts = int(self._clock())
                    seq = tx.append_event(ev.kind, ev.to_json(), ts)
                    # Read inside the write tx so the values match this commit.
                    after = gauges(tx) if gauges is not None else {}
            except LedgerError as e:
                inc_counter(f"{operation}_rejected_total")
                log_event(
                    self._log,
                    "ledger_rejected",
                    level=logging.WARNING,
                    operation=operation,
                    caller=caller,
                    code=e.code,
                    reason=e.reason,
                )
                raise

            rec = EventRecord(seq=seq, ts_ms=ts, event=ev)
            inc_counter(f"{operation}_total")
            set_gauge("events_emitted", seq)
            for name, value in after.items():
                set_gauge(name, value)
            log_event(self._log, _LOG_NAMES[ev.kind], seq=seq, caller=caller, **ev.to_json())
            self._notify(rec)
            return rec

    def _notify(self, rec: EventRecord) -> None:
        with self._listeners_lock:
            listeners = list(self._listeners)
        if not listeners:
            return
        self._local.notifying = True
        try:
            for fn in listeners:
                try:
                    fn(rec)
                except Exception:
                    # The operation is already committed; a broken observer cannot undo it.
                    self._log.exception("event listener failed seq=%s kind=%s", rec.seq, rec.kind)
        finally:
            self._local.notifying = False
