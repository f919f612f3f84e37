from decimal import Decimal
from typing import Dict, Optional

from models import DisputeStatus, StoredTransaction, TransactionType


# Allowed dispute lifecycle moves; RESOLVED and CHARGEBACKED are terminal.
_TRANSITIONS = {
    DisputeStatus.CLEAN: {DisputeStatus.DISPUTED},
    DisputeStatus.DISPUTED: {DisputeStatus.RESOLVED, DisputeStatus.CHARGEBACKED},
    DisputeStatus.RESOLVED: set(),
    DisputeStatus.CHARGEBACKED: set(),
}


class DuplicateTransactionError(Exception):
    """A transaction id was recorded twice."""


class InvalidTransitionError(Exception):
    """A dispute status change outside the dispute lifecycle."""


class TransactionStore:
    """
    Deposits and withdrawals keyed by transaction id.
    Dispute, resolve and chargeback records carry no amount of their own,
    so every applied deposit/withdrawal is kept here for the whole run.
    """

    def __init__(self):
        self._transactions: Dict[int, StoredTransaction] = {}

    def record(
        self,
        transaction_id: int,
        client_id: int,
        amount: Decimal,
        transaction_type: TransactionType,
    ) -> StoredTransaction:
        """Store a transaction for future dispute lookups."""
        if transaction_id in self._transactions:
            raise DuplicateTransactionError(f"transaction {transaction_id} already recorded")
        stored = StoredTransaction(client_id=client_id, amount=amount, transaction_type=transaction_type)
        self._transactions[transaction_id] = stored
        return stored

    def lookup(self, transaction_id: int) -> Optional[StoredTransaction]:
        """Retrieve stored transaction by ID."""
        return self._transactions.get(transaction_id)

    def set_status(self, transaction_id: int, status: DisputeStatus) -> None:
        stored = self._transactions[transaction_id]
        if status not in _TRANSITIONS[stored.status]:
            raise InvalidTransitionError(
                f"transaction {transaction_id}: {stored.status.value} -> {status.value} not allowed"
            )
        stored.status = status

    def __contains__(self, transaction_id: int) -> bool:
        return transaction_id in self._transactions

    def __len__(self) -> int:
        return len(self._transactions)
