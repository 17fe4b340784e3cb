# src/rewardledger/ledger/__init__.py
"""
Reward ledger core.

  - types: identity / UInt256 normalization and checked addition
  - errors: LedgerError and its rejecting subclasses
  - events: typed event records emitted by successful operations
  - balances: BalanceLedger (per-user balances + cumulative issuance)
  - registry: WalletRegistry (append-only ordered wallet set)

These modules hold no state of their own; they operate on a store
transaction handed in by rewardledger.runtime.executor.RewardLedger.
"""

from __future__ import annotations

__all__ = [
    "constants",
    "types",
    "errors",
    "events",
    "balances",
    "registry",
    "ledger_logging",
]
