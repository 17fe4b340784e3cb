from __future__ import annotations

import os

from fastapi import APIRouter, Request

from rewardledger.api.routes_public_parts.common import _caller, _committed, _int_param, _ledger, _opt_limit
from rewardledger.api.schemas import RegisterWalletRequest
from rewardledger.ledger.types import normalize_identity

router = APIRouter()


def _max_page() -> int:
    try:
        return max(1, int(os.environ.get("REWARDLEDGER_WALLETS_MAX_PAGE", "1000")))
    except ValueError:
        return 1000


@router.post("/wallets/register")
def v1_wallets_register(body: RegisterWalletRequest, request: Request):
    caller = _caller(request)
    rec = _ledger(request).register_wallet(caller, body.wallet)
    return _committed(request, "register_wallet", rec)


@router.get("/wallets")
def v1_wallets_list(request: Request):
    """
    Registered wallets in registration order.

    Without `limit` the whole registry is returned. `offset`/`limit` page
    through the same order; limit is capped by REWARDLEDGER_WALLETS_MAX_PAGE.
    """
    q = request.query_params
    offset = _int_param(q.get("offset"), 0, name="offset")
    limit = _opt_limit(q.get("limit"), cap=_max_page())

    wallets, count = _ledger(request).wallet_page(offset=offset, limit=limit)
    return {"ok": True, "offset": offset, "wallets": wallets, "count": count}


@router.get("/wallets/{wallet}")
def v1_wallet_get(wallet: str, request: Request):
    w = normalize_identity(wallet)
    return {"ok": True, "wallet": w, "registered": _ledger(request).is_registered(w)}
