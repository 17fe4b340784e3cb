from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Union

from rewardledger.ledger.constants import (
    EVENT_REWARD_ADDED,
    EVENT_REWARD_CLAIMED,
    EVENT_REWARD_TRANSFERRED,
    EVENT_WALLET_REGISTERED,
)
from rewardledger.ledger.types import Identity

Json = Dict[str, Any]


@dataclass(frozen=True, slots=True)
class RewardAdded:
    user: Identity
    amount: int

    kind = EVENT_REWARD_ADDED

    def to_json(self) -> Json:
        return {"user": self.user, "amount": str(self.amount)}


@dataclass(frozen=True, slots=True)
class RewardClaimed:
    user: Identity
    amount: int

    kind = EVENT_REWARD_CLAIMED

    def to_json(self) -> Json:
        return {"user": self.user, "amount": str(self.amount)}


@dataclass(frozen=True, slots=True)
class RewardTransferred:
    # "from" is a keyword; the wire field keeps the plain name.
    from_: Identity
    to: Identity
    amount: int

    kind = EVENT_REWARD_TRANSFERRED

    def to_json(self) -> Json:
        return {"from": self.from_, "to": self.to, "amount": str(self.amount)}


@dataclass(frozen=True, slots=True)
class WalletRegistered:
    user: Identity
    wallet_address: Identity

    kind = EVENT_WALLET_REGISTERED

    def to_json(self) -> Json:
        return {"user": self.user, "wallet_address": self.wallet_address}


LedgerEvent = Union[RewardAdded, RewardClaimed, RewardTransferred, WalletRegistered]


def event_from_json(kind: str, payload: Json) -> LedgerEvent:
    """Rebuild a typed event from its stored form."""
    if kind == EVENT_REWARD_ADDED:
        return RewardAdded(user=str(payload["user"]), amount=int(payload["amount"]))
    if kind == EVENT_REWARD_CLAIMED:
        return RewardClaimed(user=str(payload["user"]), amount=int(payload["amount"]))
    if kind == EVENT_REWARD_TRANSFERRED:
        return RewardTransferred(from_=str(payload["from"]), to=str(payload["to"]), amount=int(payload["amount"]))
    if kind == EVENT_WALLET_REGISTERED:
        return WalletRegistered(user=str(payload["user"]), wallet_address=str(payload["wallet_address"]))
    raise ValueError(f"unknown event kind: {kind!r}")


@dataclass(frozen=True, slots=True)
class EventRecord:
    """A committed event with its position in the log."""

    seq: int
    ts_ms: int
    event: LedgerEvent

    @property
    def kind(self) -> str:
        return self.event.kind

    def to_json(self) -> Json:
        return {"seq": int(self.seq), "ts_ms": int(self.ts_ms), "kind": self.kind, "fields": self.event.to_json()}
