from collections import Counter
from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Optional


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class DisputeStatus(Enum):
    CLEAN = "clean"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGEBACKED = "chargebacked"


class ProcessingResult(Enum):
    APPLIED = "applied"
    REJECTED = "rejected"


@dataclass(frozen=True)
class Transaction:
    """
    One input record.
    Only deposits and withdrawals carry an amount; the other three types
    reference an earlier deposit/withdrawal through transaction_id.
    """

    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __post_init__(self):
        if self.transaction_type.carries_amount and self.amount is None:
            raise ValueError(f"{self.transaction_type.value} requires an amount")
        if not self.transaction_type.carries_amount and self.amount is not None:
            raise ValueError(f"{self.transaction_type.value} does not carry an amount")

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class StoredTransaction:
    client_id: int
    amount: Decimal
    transaction_type: TransactionType
    status: DisputeStatus = DisputeStatus.CLEAN


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    def credit(self, amount: Decimal) -> None:
        self.available += amount

    def debit(self, amount: Decimal) -> None:
        if amount > self.available:
            raise ValueError(f"client {self.client_id}: debit {amount} exceeds available {self.available}")
        self.available -= amount

    def hold(self, amount: Decimal) -> None:
        if amount > self.available:
            raise ValueError(f"client {self.client_id}: hold {amount} exceeds available {self.available}")
        self.available -= amount
        self.held += amount

    def release_hold(self, amount: Decimal) -> None:
        if amount > self.held:
            raise ValueError(f"client {self.client_id}: release {amount} exceeds held {self.held}")
        self.held -= amount
        self.available += amount

    def remove_held(self, amount: Decimal) -> None:
        if amount > self.held:
            raise ValueError(f"client {self.client_id}: removal {amount} exceeds held {self.held}")
        self.held -= amount

    def lock(self) -> None:
        self.locked = True


@dataclass
class ProcessingStats:
    """Counters for tracking processing statistics, per transaction type."""

    applied: Counter = field(default_factory=Counter)
    rejected: Counter = field(default_factory=Counter)

    def record(self, transaction_type: TransactionType, result: ProcessingResult) -> None:
        if result == ProcessingResult.APPLIED:
            self.applied[transaction_type] += 1
        else:
            self.rejected[transaction_type] += 1

    @property
    def processed(self) -> int:
        return sum(self.applied.values()) + sum(self.rejected.values())

    @property
    def failed(self) -> int:
        return sum(self.rejected.values())

    def summary(self) -> str:
        per_type = ", ".join(
            f"{t.value}={self.applied[t]}/{self.applied[t] + self.rejected[t]}"
            for t in TransactionType
            if self.applied[t] or self.rejected[t]
        )
        summary = f"Processed: {self.processed}, Rejected: {self.failed}"
        return f"{summary} ({per_type})" if per_type else summary
