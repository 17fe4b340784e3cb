from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

Json = Dict[str, Any]


@dataclass(eq=False)
class LedgerError(RuntimeError):
    """Canonical error type for rejected ledger operations.

    Every ledger error is a precondition failure: the operation had no effect
    and retrying with the same inputs against the same state fails the same way.
    """

    code: str
    reason: str
    details: Json = field(default_factory=dict)

    def __str__(self) -> str:
        if not self.details:
            return f"{self.code}:{self.reason}"
        return f"{self.code}:{self.reason}:{self.details}"


class InvalidAmount(LedgerError):
    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__("invalid_amount", reason, details or {})


class InsufficientBalance(LedgerError):
    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__("insufficient_balance", reason, details or {})


class WalletAlreadyRegistered(LedgerError):
    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__("wallet_already_registered", reason, details or {})


class ArithmeticOverflow(LedgerError):
    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__("arithmetic_overflow", reason, details or {})


class InvalidIdentity(LedgerError):
    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__("invalid_identity", reason, details or {})


class Unauthorized(LedgerError):
    def __init__(self, reason: str, details: Optional[Json] = None) -> None:
        super().__init__("unauthorized", reason, details or {})
