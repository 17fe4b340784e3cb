from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import Request

from rewardledger.api.errors import ApiError
from rewardledger.api.structured_logging import mark_committed
from rewardledger.ledger.events import EventRecord
from rewardledger.runtime.executor import RewardLedger

Json = Dict[str, Any]


def _ledger(request: Request) -> RewardLedger:
    ledger = getattr(request.app.state, "ledger", None)
    if ledger is None:
        raise ApiError.internal("not_ready", "ledger not attached to app.state", {})
    return ledger


def _caller(request: Request) -> str:
    """Caller identity as set by the authenticating gateway."""
    cfg = getattr(request.app.state, "cfg", None)
    header = getattr(cfg, "caller_header", None) or "x-caller-identity"
    raw = (request.headers.get(header) or "").strip()
    if not raw:
        raise ApiError.unauthorized("missing_caller", f"missing caller identity header '{header}'", {"header": header})
    return raw


def _int_param(v: Any, default: int, *, name: str, minimum: int = 0) -> int:
    """Parse an int-ish query param; malformed input is a 400, not a silent default."""
    if v is None:
        return int(default)
    s = str(v).strip()
    if s == "":
        return int(default)
    try:
        n = int(s)
    except ValueError:
        raise ApiError.bad_request("bad_param", f"{name} must be an integer", {"param": name}) from None
    if n < minimum:
        raise ApiError.bad_request("bad_param", f"{name} must be >= {minimum}", {"param": name})
    return n


def _opt_limit(v: Any, *, cap: int) -> Optional[int]:
    if v is None or str(v).strip() == "":
        return None
    return min(_int_param(v, cap, name="limit", minimum=1), int(cap))


def _committed(request: Request, operation: str, rec: EventRecord) -> Json:
    mark_committed(request, operation, rec.seq)
    return {"ok": True, "event": rec.to_json()}
