import logging
from typing import Dict, Iterable, Optional

from account_ledger import AccountLedger
from csv_io import read_accounts, read_transactions
from models import ClientAccount, ProcessingStats, Transaction
from transaction_processor import TransactionProcessor
from transaction_store import TransactionStore

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Feeds an ordered sequence of transactions through the processor and
    returns the resulting account states.
    Processing is sequential: a dispute is only meaningful once the
    deposit/withdrawal it references has been applied.
    """

    def __init__(self, ledger: Optional[AccountLedger] = None):
        self._ledger = ledger if ledger is not None else AccountLedger()
        self._store = TransactionStore()
        self._processor = TransactionProcessor(self._ledger, self._store)
        self._stats = ProcessingStats()

    @classmethod
    def from_snapshot(cls, filepath: str) -> "PaymentsEngine":
        """Build an engine whose ledger is preloaded from an accounts CSV."""
        ledger = AccountLedger()
        ledger.load(read_accounts(filepath))
        return cls(ledger)

    @property
    def ledger(self) -> AccountLedger:
        return self._ledger

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process(self, transactions: Iterable[Transaction]) -> Dict[int, ClientAccount]:
        """Apply transactions in order and return final account states."""
        for transaction in transactions:
            result = self._processor.apply(transaction)
            self._stats.record(transaction.transaction_type, result)

        logger.info(self._stats.summary())
        return {account.client_id: account for account in self._ledger.snapshot()}

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """
        Process CSV file and return final account states, keyed and ordered
        by client id.
        Raises OSError if the file cannot be read and RecordParseError on the
        first malformed row.
        """
        logger.info(f"Processing transactions from {filepath}")
        return self.process(read_transactions(filepath))
