import csv
import logging
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from typing import Dict, Iterable, Iterator, List, Optional, TextIO

from models import ClientAccount, Transaction, TransactionType

logger = logging.getLogger(__name__)

PRECISION = Decimal("0.0001")
MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

ACCOUNT_FIELDS = ["client", "available", "held", "total", "locked"]


class RecordParseError(Exception):
    """An input row that cannot be turned into a Transaction. Fatal to the run."""

    def __init__(self, line_num: int, row, reason: str):
        super().__init__(f"line {line_num}: {reason} (row: {row})")
        self.line_num = line_num
        self.row = row
        self.reason = reason


def _normalize(row: Dict[Optional[str], object]) -> Dict[str, str]:
    # DictReader puts surplus cells under None and fills missing ones with None
    return {
        k.strip(): (v or "").strip()
        for k, v in row.items()
        if k is not None and not isinstance(v, list)
    }


def _parse_bounded_int(value: str, name: str, upper: int) -> int:
    # int() would also take "+1", "1_0" and non-ASCII digits
    if not (value.isascii() and value.isdigit()):
        raise ValueError(f"{name} {value!r} is not an unsigned integer")
    number = int(value)
    if not 0 <= number <= upper:
        raise ValueError(f"{name} {number} out of range 0..{upper}")
    return number


def parse_amount(value: str) -> Decimal:
    """Parse a decimal literal, rounding anything finer than four places."""
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise ValueError(f"invalid amount {value!r}")
    if not amount.is_finite():
        raise ValueError(f"invalid amount {value!r}")
    try:
        rounded = amount.quantize(PRECISION, rounding=ROUND_HALF_EVEN)
    except InvalidOperation:
        raise ValueError(f"invalid amount {value!r}")
    if rounded != amount:
        logger.warning(f"Amount {value} has more than 4 decimal places, rounded to {rounded}")
    return rounded


def parse_transaction_row(row: Dict[Optional[str], object], line_num: int = 0) -> Transaction:
    """Parse CSV row into Transaction."""
    try:
        normalized = _normalize(row)

        transaction_type = TransactionType(normalized["type"].lower())
        client_id = _parse_bounded_int(normalized["client"], "client", MAX_CLIENT_ID)
        transaction_id = _parse_bounded_int(normalized["tx"], "tx", MAX_TRANSACTION_ID)

        amount = None
        if transaction_type.carries_amount:
            amount_str = normalized.get("amount", "")
            if not amount_str:
                raise ValueError(f"{transaction_type.value} requires an amount")
            amount = parse_amount(amount_str)

        return Transaction(
            transaction_type=transaction_type,
            client_id=client_id,
            transaction_id=transaction_id,
            amount=amount,
        )
    except KeyError as e:
        raise RecordParseError(line_num, row, f"missing column {e}") from e
    except ValueError as e:
        raise RecordParseError(line_num, row, str(e)) from e


def iter_transactions(stream: TextIO) -> Iterator[Transaction]:
    """Lazily parse transactions from an open CSV stream, in file order."""
    reader = csv.DictReader(stream)
    for row in reader:
        yield parse_transaction_row(row, reader.line_num)


def read_transactions(filepath: str) -> Iterator[Transaction]:
    """Read a transactions CSV file row by row."""
    with open(filepath, "r", newline="") as f:
        yield from iter_transactions(f)


def format_decimal(value: Decimal) -> str:
    """Format decimal with exactly 4 decimal places."""
    return f"{value.quantize(PRECISION, rounding=ROUND_HALF_EVEN):f}"


def write_accounts(accounts: Iterable[ClientAccount], stream: TextIO) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(ACCOUNT_FIELDS)
    for account in accounts:
        writer.writerow([
            account.client_id,
            format_decimal(account.available),
            format_decimal(account.held),
            format_decimal(account.total),
            str(account.locked).lower(),
        ])


def _parse_account_row(row: Dict[Optional[str], object]) -> ClientAccount:
    normalized = _normalize(row)

    locked_str = normalized["locked"].lower()
    if locked_str not in ("true", "false"):
        raise ValueError(f"invalid locked flag {normalized['locked']!r}")

    account = ClientAccount(
        client_id=_parse_bounded_int(normalized["client"], "client", MAX_CLIENT_ID),
        available=parse_amount(normalized["available"]),
        held=parse_amount(normalized["held"]),
        locked=locked_str == "true",
    )
    if account.available < 0 or account.held < 0:
        raise ValueError("negative balance")

    total_str = normalized.get("total", "")
    if total_str and parse_amount(total_str) != account.total:
        logger.warning(
            f"Snapshot client {account.client_id}: total {total_str} does not match "
            f"available + held ({account.total}), using derived total"
        )
    return account


def iter_accounts(stream: TextIO) -> Iterator[ClientAccount]:
    """Parse accounts from a snapshot stream, skipping unusable rows."""
    reader = csv.DictReader(stream)
    seen = set()
    for row in reader:
        try:
            account = _parse_account_row(row)
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping snapshot row {reader.line_num} {row}: {e}")
            continue
        if account.client_id in seen:
            logger.warning(f"Skipping snapshot row {reader.line_num}: client {account.client_id} already loaded")
            continue
        seen.add(account.client_id)
        yield account


def read_accounts(filepath: str) -> List[ClientAccount]:
    """Read a previously produced accounts CSV; a missing file means no accounts."""
    try:
        with open(filepath, "r", newline="") as f:
            accounts = list(iter_accounts(f))
    except FileNotFoundError:
        logger.info(f"No accounts snapshot at {filepath}, starting empty")
        return []
    logger.info(f"Loaded {len(accounts)} accounts from {filepath}")
    return accounts
