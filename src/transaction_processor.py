import logging
from decimal import Decimal
from typing import Optional, Tuple

from account_ledger import AccountLedger
from models import DisputeStatus, ProcessingResult, StoredTransaction, Transaction, TransactionType
from transaction_store import TransactionStore

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions, one at a time and in input order, against the
    ledger and the transaction store.

    Business-rule violations (insufficient funds, unknown references,
    illegal dispute transitions, locked accounts) are logged and reported
    as REJECTED; they never raise and never change state.
    """

    def __init__(self, ledger: AccountLedger, store: TransactionStore):
        self._ledger = ledger
        self._store = store

    def apply(self, transaction: Transaction) -> ProcessingResult:
        """
        Apply a single transaction.

        Returns:
            APPLIED: State was updated
            REJECTED: Record dropped, state untouched
        """
        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(transaction)

    def _reject(self, transaction: Transaction, reason: str) -> ProcessingResult:
        logger.warning(f"{transaction.transaction_type.value.capitalize()} tx {transaction.transaction_id}: {reason}")
        return ProcessingResult.REJECTED

    def _check_funding(self, transaction: Transaction) -> Optional[str]:
        """Shared deposit/withdrawal checks; returns a rejection reason or None."""
        if transaction.amount < Decimal("0"):
            return f"invalid amount {transaction.amount}"
        if transaction.transaction_id in self._store:
            return "transaction id already processed, skipping"
        account = self._ledger.get(transaction.client_id)
        if account is not None and account.locked:
            return f"account {transaction.client_id} is locked"
        return None

    def _handle_deposit(self, transaction: Transaction) -> ProcessingResult:
        reason = self._check_funding(transaction)
        if reason:
            return self._reject(transaction, reason)

        account = self._ledger.get_or_create(transaction.client_id)
        account.credit(transaction.amount)
        self._store.record(transaction.transaction_id, transaction.client_id, transaction.amount, TransactionType.DEPOSIT)
        return ProcessingResult.APPLIED

    def _handle_withdrawal(self, transaction: Transaction) -> ProcessingResult:
        reason = self._check_funding(transaction)
        if reason:
            return self._reject(transaction, reason)

        existing = self._ledger.get(transaction.client_id)
        available = existing.available if existing is not None else Decimal("0")
        if available < transaction.amount:
            return self._reject(transaction, f"insufficient funds (available {available})")

        account = self._ledger.get_or_create(transaction.client_id)
        account.debit(transaction.amount)
        self._store.record(transaction.transaction_id, transaction.client_id, transaction.amount, TransactionType.WITHDRAWAL)
        return ProcessingResult.APPLIED

    def _find_referenced(
        self, transaction: Transaction, expected: DisputeStatus
    ) -> Tuple[Optional[StoredTransaction], Optional[str]]:
        """
        Resolve the deposit/withdrawal a dispute-family record points at.
        Returns (stored, None) when usable, else (None, reason).
        """
        original = self._store.lookup(transaction.transaction_id)
        if original is None:
            return None, "referenced transaction not found"
        if original.client_id != transaction.client_id:
            return None, f"client mismatch (expected {original.client_id}, got {transaction.client_id})"
        if original.status != expected:
            return None, f"transaction is {original.status.value}, expected {expected.value}"
        return original, None

    def _handle_dispute(self, transaction: Transaction) -> ProcessingResult:
        original, reason = self._find_referenced(transaction, DisputeStatus.CLEAN)
        if reason:
            return self._reject(transaction, reason)

        account = self._ledger.get_or_create(original.client_id)
        # Holding more than is available would drive available negative.
        if account.available < original.amount:
            return self._reject(
                transaction,
                f"cannot hold {original.amount} of {original.transaction_type.value}, available {account.available}",
            )

        account.hold(original.amount)
        self._store.set_status(transaction.transaction_id, DisputeStatus.DISPUTED)
        return ProcessingResult.APPLIED

    def _handle_resolve(self, transaction: Transaction) -> ProcessingResult:
        original, reason = self._find_referenced(transaction, DisputeStatus.DISPUTED)
        if reason:
            return self._reject(transaction, reason)

        account = self._ledger.get_or_create(original.client_id)
        account.release_hold(original.amount)
        self._store.set_status(transaction.transaction_id, DisputeStatus.RESOLVED)
        return ProcessingResult.APPLIED

    def _handle_chargeback(self, transaction: Transaction) -> ProcessingResult:
        original, reason = self._find_referenced(transaction, DisputeStatus.DISPUTED)
        if reason:
            return self._reject(transaction, reason)

        account = self._ledger.get_or_create(original.client_id)
        if account.locked:
            return self._reject(transaction, f"account {account.client_id} is already locked")

        account.remove_held(original.amount)
        account.lock()
        self._store.set_status(transaction.transaction_id, DisputeStatus.CHARGEBACKED)
        return ProcessingResult.APPLIED
