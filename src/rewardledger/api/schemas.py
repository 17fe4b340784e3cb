"""Pydantic request schemas for the public API.

Amounts accept a JSON integer or a decimal string; 256-bit values do not fit
every JSON client's number type, so responses always use decimal strings.
Range and identity checks happen in the ledger, which owns those rules.
"""

from __future__ import annotations

from typing import Union

from pydantic import BaseModel, Field, StrictInt, StrictStr

# Strict: JSON true/false and floats are not amounts.
AmountIn = Union[StrictInt, StrictStr]


class AddRewardRequest(BaseModel):
    user: str = Field(..., description="Identity to credit (hex, 0x-prefixed)")
    amount: AmountIn = Field(..., description="Non-zero UInt256 amount")

    model_config = {"extra": "forbid"}


class ClaimRewardRequest(BaseModel):
    amount: AmountIn = Field(..., description="UInt256 amount to debit from the caller")

    model_config = {"extra": "forbid"}


class TransferRewardsRequest(BaseModel):
    to: str = Field(..., description="Recipient identity")
    amount: AmountIn = Field(..., description="UInt256 amount to move from the caller")

    model_config = {"extra": "forbid"}


class RegisterWalletRequest(BaseModel):
    wallet: str = Field(..., description="Wallet identity to register")

    model_config = {"extra": "forbid"}
