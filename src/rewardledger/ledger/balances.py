# src/rewardledger/ledger/balances.py
"""
Reward balance accounting.

State (inside a LedgerStore):
  - balances[namespace, identity] -> UInt256, absent reads as 0
  - counter total_issued -> UInt256, cumulative credits ever made

total_issued is an issuance counter, not a live pool balance: claims and
transfers move or consume entitlement without touching it, so
total_issued >= sum(balances) always holds but equality does not.

Every operation validates fully before its first write. Callers run each
operation inside one write transaction, so a rejected operation leaves the
store untouched.
"""

from __future__ import annotations

from rewardledger.ledger.constants import COUNTER_TOTAL_ISSUED, NS_BALANCES
from rewardledger.ledger.errors import InsufficientBalance, InvalidAmount
from rewardledger.ledger.events import RewardAdded, RewardClaimed, RewardTransferred
from rewardledger.ledger.types import Identity, checked_add, require_uint256
from rewardledger.runtime.store import StoreTx


class BalanceLedger:
    def __init__(self, *, namespace: str = NS_BALANCES) -> None:
        self.namespace = str(namespace)

    def balance_of(self, tx: StoreTx, user: Identity) -> int:
        return tx.get_uint(self.namespace, user)

    def total_issued(self, tx: StoreTx) -> int:
        return tx.get_counter(COUNTER_TOTAL_ISSUED)

    def _require_funds(self, tx: StoreTx, user: Identity, amount: int) -> int:
        bal = self.balance_of(tx, user)
        if bal < amount:
            raise InsufficientBalance(
                "balance_below_amount",
                {"user": user, "balance": str(bal), "amount": str(amount)},
            )
        return bal

    def add_reward(self, tx: StoreTx, user: Identity, amount: int) -> RewardAdded:
        amt = require_uint256(amount)
        if amt == 0:
            raise InvalidAmount("amount_must_be_nonzero", {"user": user})

        new_balance = checked_add(self.balance_of(tx, user), amt, what="balance")
        new_issued = checked_add(self.total_issued(tx), amt, what="total_issued")

        tx.put_uint(self.namespace, user, new_balance)
        tx.put_counter(COUNTER_TOTAL_ISSUED, new_issued)
        return RewardAdded(user=user, amount=amt)

    def claim_reward(self, tx: StoreTx, caller: Identity, amount: int) -> RewardClaimed:
        amt = require_uint256(amount)
        bal = self._require_funds(tx, caller, amt)

        tx.put_uint(self.namespace, caller, bal - amt)
        return RewardClaimed(user=caller, amount=amt)

    def transfer_rewards(self, tx: StoreTx, caller: Identity, to: Identity, amount: int) -> RewardTransferred:
        amt = require_uint256(amount)
        bal = self._require_funds(tx, caller, amt)

        if to == caller:
            # Debit and credit cancel; the precondition above still applied.
            return RewardTransferred(from_=caller, to=to, amount=amt)

        new_to = checked_add(self.balance_of(tx, to), amt, what="balance")

        tx.put_uint(self.namespace, caller, bal - amt)
        tx.put_uint(self.namespace, to, new_to)
        return RewardTransferred(from_=caller, to=to, amount=amt)
