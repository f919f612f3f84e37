from decimal import Decimal
from typing import Dict, Iterable, List, Optional

from models import ClientAccount


class AccountLedger:
    """
    Client accounts keyed by client id.
    Sole owner of account state: other components only touch accounts
    through references handed out here.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}

    def get_or_create(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def get(self, client_id: int) -> Optional[ClientAccount]:
        """Lookup without creating."""
        return self._accounts.get(client_id)

    def load(self, accounts: Iterable[ClientAccount]) -> None:
        """
        Populate the ledger from a previously produced snapshot.
        Must run before the first transaction is applied.
        """
        for account in accounts:
            if account.client_id in self._accounts:
                raise ValueError(f"client {account.client_id} appears twice in snapshot")
            if account.available < Decimal("0") or account.held < Decimal("0"):
                raise ValueError(f"client {account.client_id} has negative balances in snapshot")
            self._accounts[account.client_id] = ClientAccount(
                client_id=account.client_id,
                available=account.available,
                held=account.held,
                locked=account.locked,
            )

    def snapshot(self) -> List[ClientAccount]:
        """All accounts ordered by ascending client id (for final output)."""
        return [self._accounts[client_id] for client_id in sorted(self._accounts)]

    def __contains__(self, client_id: int) -> bool:
        return client_id in self._accounts

    def __len__(self) -> int:
        return len(self._accounts)
