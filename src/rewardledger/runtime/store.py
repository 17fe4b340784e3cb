# src/rewardledger/runtime/store.py
"""
Abstract ledger store.

The ledger only needs a handful of primitives:
  - uint slots keyed by (namespace, identity), absent keys read as 0
  - named counters, absent counters read as 0
  - named append-only member lists with O(1) membership
  - an append-only event log with gap-free sequence numbers

All access goes through a transaction. A write transaction either commits all
of its writes or none of them; a read transaction only ever sees committed
state.
"""

from __future__ import annotations

import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Set, Tuple

Json = Dict[str, Any]

# (seq, ts_ms, kind, payload)
StoredEvent = Tuple[int, int, str, Json]


class StoreTx(ABC):
    @abstractmethod
    def get_uint(self, namespace: str, key: str) -> int: ...

    @abstractmethod
    def put_uint(self, namespace: str, key: str, value: int) -> None: ...

    @abstractmethod
    def get_counter(self, name: str) -> int: ...

    @abstractmethod
    def put_counter(self, name: str, value: int) -> None: ...

    @abstractmethod
    def is_member(self, list_name: str, item: str) -> bool: ...

    @abstractmethod
    def member_count(self, list_name: str) -> int: ...

    @abstractmethod
    def append_member(self, list_name: str, item: str) -> int:
        """Append item and return its index. Caller checks membership first."""

    @abstractmethod
    def members(self, list_name: str, offset: int = 0, limit: Optional[int] = None) -> List[str]: ...

    @abstractmethod
    def append_event(self, kind: str, payload: Json, ts_ms: int) -> int:
        """Append an event and return its sequence number (1-based)."""

    @abstractmethod
    def events(self, since_seq: int = 0, limit: Optional[int] = None) -> List[StoredEvent]: ...


class LedgerStore(ABC):
    @abstractmethod
    def read_tx(self) -> Any:
        """Context manager yielding a read-only StoreTx over committed state."""

    @abstractmethod
    def write_tx(self) -> Any:
        """Context manager yielding a StoreTx; commits on clean exit, discards on error."""

    def close(self) -> None:
        return None


def _page(items: List[Any], offset: int, limit: Optional[int]) -> List[Any]:
    off = max(0, int(offset))
    if limit is None:
        return list(items[off:])
    return list(items[off : off + max(0, int(limit))])


class _MemoryState:
    def __init__(self) -> None:
        self.uints: Dict[Tuple[str, str], int] = {}
        self.counters: Dict[str, int] = {}
        self.lists: Dict[str, List[str]] = {}
        self.sets: Dict[str, Set[str]] = {}
        self.events: List[StoredEvent] = []


class _MemoryTx(StoreTx):
    """Transaction over _MemoryState with staged writes."""

    def __init__(self, state: _MemoryState, *, writable: bool) -> None:
        self._st = state
        self._writable = bool(writable)
        self._uints: Dict[Tuple[str, str], int] = {}
        self._counters: Dict[str, int] = {}
        self._appended: Dict[str, List[str]] = {}
        self._events: List[StoredEvent] = []

    def _require_writable(self) -> None:
        if not self._writable:
            raise RuntimeError("write attempted in a read-only transaction")

    def get_uint(self, namespace: str, key: str) -> int:
        k = (namespace, key)
        if k in self._uints:
            return self._uints[k]
        return int(self._st.uints.get(k, 0))

    def put_uint(self, namespace: str, key: str, value: int) -> None:
        self._require_writable()
        self._uints[(namespace, key)] = int(value)

    def get_counter(self, name: str) -> int:
        if name in self._counters:
            return self._counters[name]
        return int(self._st.counters.get(name, 0))

    def put_counter(self, name: str, value: int) -> None:
        self._require_writable()
        self._counters[name] = int(value)

    def is_member(self, list_name: str, item: str) -> bool:
        if item in self._st.sets.get(list_name, ()):
            return True
        return item in self._appended.get(list_name, ())

    def member_count(self, list_name: str) -> int:
        return len(self._st.lists.get(list_name, ())) + len(self._appended.get(list_name, ()))

    def append_member(self, list_name: str, item: str) -> int:
        self._require_writable()
        idx = self.member_count(list_name)
        self._appended.setdefault(list_name, []).append(item)
        return idx

    def members(self, list_name: str, offset: int = 0, limit: Optional[int] = None) -> List[str]:
        base = self._st.lists.get(list_name, [])
        pending = self._appended.get(list_name)
        items = base + pending if pending else base
        return _page(items, offset, limit)

    def append_event(self, kind: str, payload: Json, ts_ms: int) -> int:
        self._require_writable()
        seq = len(self._st.events) + len(self._events) + 1
        self._events.append((seq, int(ts_ms), str(kind), dict(payload)))
        return seq

    def events(self, since_seq: int = 0, limit: Optional[int] = None) -> List[StoredEvent]:
        all_events = self._st.events + self._events if self._events else self._st.events
        # seq == index + 1, so since_seq doubles as a list offset.
        return _page(all_events, max(0, int(since_seq)), limit)

    def commit(self) -> None:
        st = self._st
        st.uints.update(self._uints)
        st.counters.update(self._counters)
        for name, items in self._appended.items():
            st.lists.setdefault(name, []).extend(items)
            st.sets.setdefault(name, set()).update(items)
        st.events.extend(self._events)


class MemoryStore(LedgerStore):
    """Process-local store. Reads and writes share one lock."""

    def __init__(self) -> None:
        self._state = _MemoryState()
        self._lock = threading.Lock()

    @contextmanager
    def read_tx(self) -> Iterator[StoreTx]:
        with self._lock:
            yield _MemoryTx(self._state, writable=False)

    @contextmanager
    def write_tx(self) -> Iterator[StoreTx]:
        with self._lock:
            tx = _MemoryTx(self._state, writable=True)
            yield tx
            # Only reached on clean exit; an exception drops the staged writes.
            tx.commit()
