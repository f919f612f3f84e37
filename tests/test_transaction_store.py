import sys
import os
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import DisputeStatus, TransactionType
from transaction_store import DuplicateTransactionError, InvalidTransitionError, TransactionStore


class TestTransactionStore:
    def setup_method(self):
        self.store = TransactionStore()
        self.store.record(1, 7, Decimal("12.5"), TransactionType.DEPOSIT)

    def test_lookup(self):
        stored = self.store.lookup(1)
        assert stored.client_id == 7
        assert stored.amount == Decimal("12.5")
        assert stored.status == DisputeStatus.CLEAN
        assert 1 in self.store
        assert len(self.store) == 1

    def test_lookup_missing(self):
        assert self.store.lookup(2) is None
        assert 2 not in self.store

    def test_duplicate_record_raises(self):
        with pytest.raises(DuplicateTransactionError):
            self.store.record(1, 8, Decimal("1"), TransactionType.WITHDRAWAL)
        assert self.store.lookup(1).client_id == 7

    def test_dispute_lifecycle(self):
        self.store.set_status(1, DisputeStatus.DISPUTED)
        self.store.set_status(1, DisputeStatus.CHARGEBACKED)
        assert self.store.lookup(1).status == DisputeStatus.CHARGEBACKED

    @pytest.mark.parametrize("path", [
        [DisputeStatus.RESOLVED],
        [DisputeStatus.CHARGEBACKED],
        [DisputeStatus.DISPUTED, DisputeStatus.DISPUTED],
        [DisputeStatus.DISPUTED, DisputeStatus.RESOLVED, DisputeStatus.DISPUTED],
        [DisputeStatus.DISPUTED, DisputeStatus.CHARGEBACKED, DisputeStatus.RESOLVED],
    ])
    def test_invalid_transitions(self, path):
        *allowed, invalid = path
        for status in allowed:
            self.store.set_status(1, status)
        with pytest.raises(InvalidTransitionError):
            self.store.set_status(1, invalid)

    def test_set_status_unknown_id(self):
        with pytest.raises(KeyError):
            self.store.set_status(99, DisputeStatus.DISPUTED)
