import csv
import logging
from contextlib import contextmanager
from decimal import Decimal, InvalidOperation
from typing import Dict, Iterator, Optional, TextIO

from models import (
    AMOUNT_PRECISION,
    MAX_AMOUNT,
    MAX_CLIENT_ID,
    MAX_TRANSACTION_ID,
    Transaction,
    TransactionType,
    has_valid_precision,
)

logger = logging.getLogger(__name__)


class MalformedRowError(ValueError):
    """Raised when a CSV row cannot be turned into a Transaction."""


def _parse_id(value: str, field: str, maximum: int) -> int:
    if not value:
        raise MalformedRowError(f"missing {field}")
    try:
        parsed = int(value)
    except ValueError:
        raise MalformedRowError(f"{field} is not an integer: {value!r}") from None
    if parsed < 0 or parsed > maximum:
        raise MalformedRowError(f"{field} out of range: {parsed}")
    return parsed


def _parse_amount(value: str) -> Decimal:
    if not value:
        raise MalformedRowError("missing amount")
    try:
        amount = Decimal(value)
    except InvalidOperation:
        raise MalformedRowError(f"amount is not a decimal: {value!r}") from None
    if not has_valid_precision(amount):
        raise MalformedRowError(f"amount must be finite with at most {AMOUNT_PRECISION} decimal places: {value!r}")
    if abs(amount) > MAX_AMOUNT:
        raise MalformedRowError(f"amount exceeds {MAX_AMOUNT}: {value!r}")
    return amount


def parse_csv_row(row: Dict[Optional[str], object]) -> Transaction:
    """
    Parse a csv.DictReader row into a Transaction.
    Whitespace around headers and values is ignored. Amount is only read for
    deposits and withdrawals.

    Raises:
        MalformedRowError: if the row is not a well-formed transaction.
    """
    # DictReader stores surplus fields under the None key and pads short rows with None.
    normalized = {
        key.strip(): value.strip()
        for key, value in row.items()
        if key is not None and isinstance(value, str)
    }

    transaction_type_str = normalized.get("type", "").lower()
    try:
        transaction_type = TransactionType(transaction_type_str)
    except ValueError:
        raise MalformedRowError(f"unknown transaction type: {transaction_type_str!r}") from None

    client_id = _parse_id(normalized.get("client", ""), "client", MAX_CLIENT_ID)
    transaction_id = _parse_id(normalized.get("tx", ""), "tx", MAX_TRANSACTION_ID)

    amount = None
    if transaction_type.carries_amount:
        amount = _parse_amount(normalized.get("amount", ""))

    return Transaction(
        transaction_type=transaction_type,
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
    )


class TransactionReader:
    """
    Lazily yields transactions from a CSV stream in file order.
    Malformed rows are logged and counted, never raised.
    """

    def __init__(self, stream: TextIO):
        self._stream = stream
        self.skipped_rows = 0

    @classmethod
    @contextmanager
    def from_path(cls, filepath: str) -> Iterator["TransactionReader"]:
        """
        Open a CSV file for reading. OSError propagates to the caller.
        Undecodable bytes become U+FFFD, so a field holding them fails to
        parse instead of aborting the read.
        """
        with open(filepath, "r", newline="", encoding="utf-8-sig", errors="replace") as f:
            yield cls(f)

    def __iter__(self) -> Iterator[Transaction]:
        reader = csv.DictReader(self._stream)
        while True:
            # The tokenizer itself rejects some lines, e.g. fields over csv.field_size_limit().
            try:
                row = next(reader)
            except StopIteration:
                return
            except csv.Error as e:
                # DictReader.line_num only advances on a parsed row.
                self._skip(reader.reader.line_num, e)
                continue

            try:
                transaction = parse_csv_row(row)
            except MalformedRowError as e:
                self._skip(reader.line_num, e)
                continue
            yield transaction

    def _skip(self, line_num: int, error: Exception) -> None:
        self.skipped_rows += 1
        logger.warning(f"Skipping line {line_num}: {error}")
