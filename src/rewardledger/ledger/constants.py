# src/rewardledger/ledger/constants.py
from __future__ import annotations

# Unsigned 256-bit arithmetic bounds.
UINT256_BITS = 256
UINT256_MAX = (1 << UINT256_BITS) - 1

# Identities are 32-byte values rendered as 0x + 64 lowercase hex digits.
IDENTITY_BYTES = 32
IDENTITY_HEX_LEN = IDENTITY_BYTES * 2

# Store namespaces / keys.
NS_BALANCES = "balances"
COUNTER_TOTAL_ISSUED = "total_issued"
LIST_WALLETS = "wallets"

# Event kinds (wire names).
EVENT_REWARD_ADDED = "RewardAdded"
EVENT_REWARD_CLAIMED = "RewardClaimed"
EVENT_REWARD_TRANSFERRED = "RewardTransferred"
EVENT_WALLET_REGISTERED = "WalletRegistered"

EVENT_KINDS = (
    EVENT_REWARD_ADDED,
    EVENT_REWARD_CLAIMED,
    EVENT_REWARD_TRANSFERRED,
    EVENT_WALLET_REGISTERED,
)
