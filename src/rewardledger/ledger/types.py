# src/rewardledger/ledger/types.py
"""
Input normalization for ledger values.

Identity:
  An opaque 32-byte identifier. The canonical text form is "0x" followed by
  64 lowercase hex digits; that form is what the stores key on and what
  events carry.

UInt256:
  A plain Python int in [0, 2**256 - 1]. Python ints never wrap, so overflow
  is detected by comparing against UINT256_MAX before a write.
"""

from __future__ import annotations

import re
from typing import Any

from rewardledger.ledger.constants import IDENTITY_HEX_LEN, UINT256_MAX
from rewardledger.ledger.errors import ArithmeticOverflow, InvalidAmount, InvalidIdentity

Identity = str

_HEX_RE = re.compile(r"^[0-9a-fA-F]+$")
_DEC_RE = re.compile(r"[0-9]+")
_UINT256_MAX_DIGITS = len(str(UINT256_MAX))


def normalize_identity(value: Any) -> Identity:
    """Return the canonical text form of an identity, or raise InvalidIdentity.

    Accepts a non-negative int below 2**256 or a hex string of 1..64 digits,
    optionally prefixed with 0x/0X. Shorter values are left-padded.
    """
    if isinstance(value, bool):
        raise InvalidIdentity("identity_not_int_or_hex", {"type": type(value).__name__})

    if isinstance(value, int):
        if value < 0 or value > UINT256_MAX:
            raise InvalidIdentity("identity_out_of_range", {"value": str(value)})
        return "0x" + format(value, "0{}x".format(IDENTITY_HEX_LEN))

    if not isinstance(value, str):
        raise InvalidIdentity("identity_not_int_or_hex", {"type": type(value).__name__})

    s = value.strip()
    if s[:2] in ("0x", "0X"):
        s = s[2:]
    if not s or len(s) > IDENTITY_HEX_LEN or not _HEX_RE.match(s):
        raise InvalidIdentity("identity_malformed", {"value": value[:80]})
    return "0x" + s.lower().rjust(IDENTITY_HEX_LEN, "0")


def require_uint256(value: Any, *, name: str = "amount") -> int:
    """Validate an amount argument. bool is rejected even though it is an int."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmount("amount_not_int", {"field": name, "type": type(value).__name__})
    if value < 0 or value > UINT256_MAX:
        raise InvalidAmount("amount_out_of_range", {"field": name, "value": str(value)})
    return value


def checked_add(a: int, b: int, *, what: str) -> int:
    out = int(a) + int(b)
    if out > UINT256_MAX:
        raise ArithmeticOverflow("uint256_add_overflow", {"target": what, "current": str(a), "delta": str(b)})
    return out


def parse_amount(value: Any, *, name: str = "amount") -> int:
    """Parse an amount from wire input (JSON int or decimal string)."""
    if isinstance(value, str):
        s = value.strip()
        if not _DEC_RE.fullmatch(s):
            raise InvalidAmount("amount_not_decimal", {"field": name, "value": value[:80]})
        # int() refuses strings past the interpreter digit limit.
        if len(s.lstrip("0")) > _UINT256_MAX_DIGITS:
            raise InvalidAmount("amount_out_of_range", {"field": name, "digits": len(s)})
        return require_uint256(int(s), name=name)
    return require_uint256(value, name=name)
