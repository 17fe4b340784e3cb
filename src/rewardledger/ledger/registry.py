from __future__ import annotations

from typing import List, Optional

from rewardledger.ledger.constants import LIST_WALLETS
from rewardledger.ledger.errors import WalletAlreadyRegistered
from rewardledger.ledger.events import WalletRegistered
from rewardledger.ledger.types import Identity
from rewardledger.runtime.store import StoreTx


class WalletRegistry:
    """Append-only, insertion-ordered, duplicate-free set of wallet identities.

    Entries are never removed or reordered; the index of a wallet is the
    registry size at the time it was registered.
    """

    def __init__(self, *, list_name: str = LIST_WALLETS) -> None:
        self.list_name = str(list_name)

    def is_registered(self, tx: StoreTx, wallet: Identity) -> bool:
        return tx.is_member(self.list_name, wallet)

    def count(self, tx: StoreTx) -> int:
        return tx.member_count(self.list_name)

    def wallets(self, tx: StoreTx, *, offset: int = 0, limit: Optional[int] = None) -> List[Identity]:
        # Always a fresh list; callers may mutate it freely.
        return list(tx.members(self.list_name, offset=offset, limit=limit))

    def register_wallet(self, tx: StoreTx, caller: Identity, wallet: Identity) -> WalletRegistered:
        if tx.is_member(self.list_name, wallet):
            raise WalletAlreadyRegistered("wallet_exists", {"wallet": wallet})

        tx.append_member(self.list_name, wallet)
        # The event attributes the registration to the caller, not the wallet.
        return WalletRegistered(user=caller, wallet_address=wallet)
