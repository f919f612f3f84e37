import sys
import os
import random
from decimal import Decimal

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from account_ledger import AccountLedger
from models import DisputeStatus, Transaction, TransactionType
from payments_engine import PaymentsEngine
from transaction_processor import TransactionProcessor
from transaction_store import TransactionStore


def random_transactions(seed: int, count: int):
    """Seeded stream mixing valid, duplicate and dangling references."""
    rng = random.Random(seed)
    next_tx = 1
    seen = []
    for _ in range(count):
        client_id = rng.randint(1, 20)
        kind = rng.choice(list(TransactionType))
        if kind.carries_amount:
            amount = Decimal(rng.randint(0, 500_000)) / 10_000
            tx_id = next_tx if rng.random() > 0.05 else rng.randint(1, next_tx)
            next_tx += 1
            seen.append((tx_id, client_id))
            yield Transaction(kind, client_id, tx_id, amount)
        else:
            if seen and rng.random() > 0.1:
                tx_id, owner = rng.choice(seen)
                client_id = owner if rng.random() > 0.1 else client_id
            else:
                tx_id = rng.randint(1, 10 * (next_tx + 1))
            yield Transaction(kind, client_id, tx_id)


class TestPaymentsEngineLargeScale:
    def test_1000_clients(self, tmp_path):
        num_clients = 1000
        rows = ["type, client, tx, amount"]
        tx_id = 1

        # Per client: 100 + 200 + 300 - 50 - 100 = 450, plus a trailing 50
        for client_id in range(1, num_clients + 1):
            for kind, amount in [("deposit", 100), ("deposit", 200), ("deposit", 300),
                                 ("withdrawal", 50), ("withdrawal", 100)]:
                rows.append(f"{kind}, {client_id}, {tx_id}, {amount}")
                tx_id += 1
        for client_id in range(1, num_clients + 1):
            rows.append(f"deposit, {client_id}, {tx_id}, 50")
            tx_id += 1

        csv_file = tmp_path / "large_test.csv"
        csv_file.write_text('\n'.join(rows))

        engine = PaymentsEngine()
        accounts = engine.process_file(str(csv_file))

        assert list(accounts) == list(range(1, num_clients + 1))
        assert engine.stats.processed == num_clients * 6
        assert engine.stats.failed == 0
        for client_id, account in accounts.items():
            assert account.available == Decimal("500"), f"Client {client_id}"
            assert account.held == Decimal("0")
            assert account.locked is False

    def test_dispute_lifecycles_across_clients(self, tmp_path):
        rows = ["type, client, tx, amount"]

        def tx(client_id, n):
            return client_id * 100 + n

        # 1-10 resolve, 11-20 chargeback, 21-30 left disputed, 31-40 withdrawal disputed
        for client_id in range(1, 41):
            rows.append(f"deposit, {client_id}, {tx(client_id, 1)}, 100")
            rows.append(f"deposit, {client_id}, {tx(client_id, 2)}, 400")
        for client_id in range(31, 41):
            rows.append(f"withdrawal, {client_id}, {tx(client_id, 3)}, 200")
        for client_id in range(1, 31):
            rows.append(f"dispute, {client_id}, {tx(client_id, 1)},")
        for client_id in range(31, 41):
            rows.append(f"dispute, {client_id}, {tx(client_id, 3)},")
        for client_id in range(1, 11):
            rows.append(f"resolve, {client_id}, {tx(client_id, 1)},")
        for client_id in range(11, 21):
            rows.append(f"chargeback, {client_id}, {tx(client_id, 1)},")
            # Replays against a terminal transaction
            rows.append(f"chargeback, {client_id}, {tx(client_id, 1)},")
            rows.append(f"resolve, {client_id}, {tx(client_id, 1)},")

        csv_file = tmp_path / "disputes_test.csv"
        csv_file.write_text('\n'.join(rows))

        accounts = PaymentsEngine().process_file(str(csv_file))

        for client_id in range(1, 11):
            assert (accounts[client_id].available, accounts[client_id].held) == (Decimal("500"), Decimal("0"))
            assert accounts[client_id].locked is False
        for client_id in range(11, 21):
            assert (accounts[client_id].available, accounts[client_id].held) == (Decimal("400"), Decimal("0"))
            assert accounts[client_id].total == Decimal("400")
            assert accounts[client_id].locked is True
        for client_id in range(21, 31):
            assert (accounts[client_id].available, accounts[client_id].held) == (Decimal("400"), Decimal("100"))
            assert accounts[client_id].locked is False
        for client_id in range(31, 41):
            assert (accounts[client_id].available, accounts[client_id].held) == (Decimal("100"), Decimal("200"))
            assert accounts[client_id].total == Decimal("300")


class TestInvariantsUnderRandomStreams:
    def test_balances_never_negative(self):
        for seed in range(5):
            ledger = AccountLedger()
            processor = TransactionProcessor(ledger, TransactionStore())
            locked_before = set()

            for transaction in random_transactions(seed, 3000):
                processor.apply(transaction)

                for account in ledger.snapshot():
                    assert account.available >= 0, f"seed {seed}: {account}"
                    assert account.held >= 0, f"seed {seed}: {account}"
                    assert account.total == account.available + account.held
                    if account.client_id in locked_before:
                        assert account.locked
                    if account.locked:
                        locked_before.add(account.client_id)

    def test_held_matches_open_disputes(self):
        ledger = AccountLedger()
        store = TransactionStore()
        processor = TransactionProcessor(ledger, store)
        transactions = list(random_transactions(42, 3000))
        for transaction in transactions:
            processor.apply(transaction)

        expected_held = {}
        for tx_id in {t.transaction_id for t in transactions}:
            stored = store.lookup(tx_id)
            if stored is not None and stored.status == DisputeStatus.DISPUTED:
                expected_held[stored.client_id] = expected_held.get(stored.client_id, Decimal("0")) + stored.amount

        for account in ledger.snapshot():
            assert account.held == expected_held.get(account.client_id, Decimal("0"))
