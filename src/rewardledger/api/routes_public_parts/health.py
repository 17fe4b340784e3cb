from __future__ import annotations

import logging
import time
from typing import Any, Optional

from fastapi import APIRouter, Request

router = APIRouter()

_log = logging.getLogger("rewardledger.http")


def _now_ms() -> int:
    return int(time.time() * 1000)


def _health_payload(request: Request) -> dict[str, object]:
    ledger = getattr(request.app.state, "ledger", None)
    cfg = getattr(request.app.state, "cfg", None)
    return {
        "ok": True,
        "service": "rewardledger",
        "version": "v1",
        "ts_ms": _now_ms(),
        "mode": getattr(cfg, "mode", None),
        "ledger_attached": ledger is not None,
    }


@router.get("/v1/health")
def v1_health(request: Request) -> dict[str, object]:
    return _health_payload(request)


@router.get("/healthz")
def healthz(request: Request) -> dict[str, object]:
    # Kubernetes-style alias
    return _health_payload(request)


def _try_wallet_count(ledger: Any) -> Optional[int]:
    if ledger is None:
        return None
    try:
        return int(ledger.wallet_count())
    except Exception:
        _log.warning("readiness read failed", exc_info=True)
        return None


@router.get("/readyz")
def readyz(request: Request) -> dict[str, object]:
    """Ready only when a ledger is attached and its store answers a read."""
    wallets = _try_wallet_count(getattr(request.app.state, "ledger", None))
    return {"ok": wallets is not None, "service": "rewardledger", "ts_ms": _now_ms(), "wallets": wallets}
