from __future__ import annotations

import json
import logging
from typing import List

import pytest

from rewardledger.ledger.errors import InsufficientBalance, InvalidAmount, Unauthorized, WalletAlreadyRegistered
from rewardledger.ledger.events import (
    EventRecord,
    RewardAdded,
    RewardClaimed,
    RewardTransferred,
    WalletRegistered,
    event_from_json,
)
from rewardledger.ledger.types import normalize_identity
from rewardledger.runtime.executor import RewardLedger
from rewardledger.runtime.store import LedgerStore

A = normalize_identity(0xA)
B = normalize_identity(0xB)
OPERATOR = normalize_identity(0x0FF1CE)


def _drive(ledger: RewardLedger) -> None:
    ledger.add_reward(A, 100)
    with pytest.raises(InvalidAmount):
        ledger.add_reward(A, 0)
    ledger.transfer_rewards(A, B, 40)
    with pytest.raises(InsufficientBalance):
        ledger.claim_reward(B, 41)
    ledger.claim_reward(B, 40)
    ledger.register_wallet(A, B)
    with pytest.raises(WalletAlreadyRegistered):
        ledger.register_wallet(B, B)


def test_one_event_per_success_none_per_failure(ledger: RewardLedger) -> None:
    _drive(ledger)

    recs = ledger.events()
    assert [r.event for r in recs] == [
        RewardAdded(user=A, amount=100),
        RewardTransferred(from_=A, to=B, amount=40),
        RewardClaimed(user=B, amount=40),
        WalletRegistered(user=A, wallet_address=B),
    ]
    assert [r.seq for r in recs] == [1, 2, 3, 4]


def test_events_since_and_limit(ledger: RewardLedger) -> None:
    _drive(ledger)

    assert [r.seq for r in ledger.events(since_seq=2)] == [3, 4]
    assert [r.seq for r in ledger.events(since_seq=1, limit=2)] == [2, 3]
    assert ledger.events(since_seq=4) == []


def test_event_record_json_uses_decimal_amounts(ledger: RewardLedger) -> None:
    rec = ledger.add_reward(A, 2**200)
    j = rec.to_json()
    assert j["kind"] == "RewardAdded"
    assert j["seq"] == 1
    assert j["fields"] == {"user": A, "amount": str(2**200)}

    rt = ledger.transfer_rewards(A, B, 1).to_json()
    assert rt["fields"] == {"from": A, "to": B, "amount": "1"}
    assert event_from_json(rt["kind"], rt["fields"]) == RewardTransferred(from_=A, to=B, amount=1)


def test_events_reload_with_timestamps(store: LedgerStore) -> None:
    ticks = iter([1000, 2000])
    ledger = RewardLedger(store=store, clock=lambda: next(ticks))
    ledger.add_reward(A, 1)
    ledger.claim_reward(A, 1)

    recs = ledger.events()
    assert [r.ts_ms for r in recs] == [1000, 2000]
    assert [r.kind for r in recs] == ["RewardAdded", "RewardClaimed"]


def test_listeners_see_committed_events_in_order(ledger: RewardLedger) -> None:
    seen: List[EventRecord] = []
    unsubscribe = ledger.subscribe(seen.append)

    _drive(ledger)
    assert [r.seq for r in seen] == [1, 2, 3, 4]
    assert seen == ledger.events()

    unsubscribe()
    ledger.add_reward(A, 1)
    assert len(seen) == 4


def test_listener_failure_does_not_undo_commit(ledger: RewardLedger) -> None:
    got: List[int] = []

    def _broken(_rec: EventRecord) -> None:
        raise RuntimeError("observer down")

    ledger.subscribe(_broken)
    ledger.subscribe(lambda rec: got.append(rec.seq))

    ledger.add_reward(A, 7)
    assert ledger.get_user_balance(A) == 7
    assert got == [1]


def test_listener_may_not_mutate(ledger: RewardLedger) -> None:
    errors: List[BaseException] = []

    def _reentrant(_rec: EventRecord) -> None:
        try:
            ledger.add_reward(B, 1)
        except RuntimeError as e:
            errors.append(e)

    ledger.subscribe(_reentrant)
    ledger.add_reward(A, 1)

    assert len(errors) == 1
    assert ledger.get_user_balance(B) == 0
    # Reads from a listener are fine.
    assert ledger.get_user_balance(A) == 1


def test_authorize_predicate_gates_before_mutation(store: LedgerStore) -> None:
    calls: List[tuple] = []

    def _only_operator_credits(caller, operation, params) -> bool:
        calls.append((caller, operation, dict(params)))
        if operation == "add_reward":
            return caller == OPERATOR
        return True

    ledger = RewardLedger(store=store, authorize=_only_operator_credits)

    with pytest.raises(Unauthorized) as e:
        ledger.add_reward(A, 10, caller=A)
    assert e.value.code == "unauthorized"
    with pytest.raises(Unauthorized):
        ledger.add_reward(A, 10)

    assert ledger.get_user_balance(A) == 0
    assert ledger.events() == []

    ledger.add_reward(A, 10, caller=OPERATOR)
    ledger.claim_reward(A, 3)
    assert ledger.get_user_balance(A) == 7
    assert calls[0] == (A, "add_reward", {"user": A, "amount": 10})
    assert calls[-1] == (A, "claim_reward", {"amount": 3})


def test_without_predicate_anyone_credits_anyone(ledger: RewardLedger) -> None:
    ledger.add_reward(B, 5, caller=A)
    ledger.add_reward(B, 5)
    assert ledger.get_user_balance(B) == 10


def test_operations_log_one_json_line_each(ledger: RewardLedger, caplog: pytest.LogCaptureFixture) -> None:
    with caplog.at_level(logging.INFO, logger="rewardledger.ledger"):
        ledger.add_reward(A, 5)
        with pytest.raises(InsufficientBalance):
            ledger.claim_reward(A, 6)
        ledger.transfer_rewards(A, B, 5)

    lines = [json.loads(r.getMessage()) for r in caplog.records if r.name == "rewardledger.ledger"]
    assert [ln["event"] for ln in lines] == ["reward_added", "ledger_rejected", "reward_transferred"]
    assert lines[0]["amount"] == "5"
    assert lines[1]["code"] == "insufficient_balance"
    assert lines[2]["from"] == A
    assert [ln.get("seq") for ln in lines] == [1, None, 2]
