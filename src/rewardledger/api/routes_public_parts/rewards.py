from __future__ import annotations

from fastapi import APIRouter, Request

from rewardledger.api.routes_public_parts.common import _caller, _committed, _ledger
from rewardledger.api.schemas import AddRewardRequest, ClaimRewardRequest, TransferRewardsRequest
from rewardledger.ledger.types import normalize_identity, parse_amount

router = APIRouter()


@router.post("/rewards/add")
def v1_rewards_add(body: AddRewardRequest, request: Request):
    # Crediting is open to any caller; the header only attributes the call.
    caller = _caller(request)
    rec = _ledger(request).add_reward(body.user, parse_amount(body.amount), caller=caller)
    return _committed(request, "add_reward", rec)


@router.post("/rewards/claim")
def v1_rewards_claim(body: ClaimRewardRequest, request: Request):
    caller = _caller(request)
    rec = _ledger(request).claim_reward(caller, parse_amount(body.amount))
    return _committed(request, "claim_reward", rec)


@router.post("/rewards/transfer")
def v1_rewards_transfer(body: TransferRewardsRequest, request: Request):
    caller = _caller(request)
    rec = _ledger(request).transfer_rewards(caller, body.to, parse_amount(body.amount))
    return _committed(request, "transfer_rewards", rec)


@router.get("/rewards/balance/{user}")
def v1_rewards_balance(user: str, request: Request):
    u = normalize_identity(user)
    bal = _ledger(request).get_user_balance(u)
    return {"ok": True, "user": u, "balance": str(bal)}


@router.get("/rewards/total_issued")
def v1_rewards_total_issued(request: Request):
    return {"ok": True, "total_issued": str(_ledger(request).get_total_issued())}
