from collections import Counter
from dataclasses import dataclass
from decimal import Context, Decimal, Inexact, InvalidOperation, Overflow, localcontext
from enum import Enum
from typing import Optional

AMOUNT_PRECISION = 4
AMOUNT_QUANTUM = Decimal(1).scaleb(-AMOUNT_PRECISION)
MAX_AMOUNT = Decimal("999999999999999.9999")

# Balances are sums of at most 2**32 amounts below MAX_AMOUNT, so 40 digits
# always hold them exactly. Rounding or overflow raises.
LEDGER_CONTEXT = Context(prec=40, traps=[Inexact, InvalidOperation, Overflow])

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1


class InvariantViolation(RuntimeError):
    """Raised when a ledger mutation would leave an account in an impossible state."""


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class TransactionStatus(Enum):
    NORMAL = "normal"
    DISPUTED = "disputed"
    CHARGED_BACK = "charged_back"


class ProcessingResult(Enum):
    SUCCESS = "success"
    INVALID_AMOUNT = "invalid_amount"
    DUPLICATE_TRANSACTION = "duplicate_transaction"
    ACCOUNT_LOCKED = "account_locked"
    INSUFFICIENT_FUNDS = "insufficient_funds"
    UNKNOWN_TRANSACTION = "unknown_transaction"
    CLIENT_MISMATCH = "client_mismatch"
    INVALID_STATE = "invalid_state"

    @property
    def is_success(self) -> bool:
        return self is ProcessingResult.SUCCESS


def has_valid_precision(amount: Decimal) -> bool:
    """True if the amount is finite and has at most AMOUNT_PRECISION fractional digits."""
    if not amount.is_finite():
        return False
    try:
        return amount == amount.quantize(AMOUNT_QUANTUM)
    except InvalidOperation:
        # Too many digits to quantize within the context precision.
        return False


@dataclass
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class DepositRecord:
    """History entry for an accepted deposit, the only disputable transaction."""

    client_id: int
    amount: Decimal
    status: TransactionStatus = TransactionStatus.NORMAL


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        with localcontext(LEDGER_CONTEXT):
            return self.available + self.held


class ProcessingStats:
    """Counters for a single run."""

    def __init__(self):
        self.processed = 0
        self.rejected = 0
        self.skipped = 0
        self.results: Counter = Counter()

    def record_result(self, result: ProcessingResult) -> None:
        self.results[result] += 1
        if result.is_success:
            self.processed += 1
        else:
            self.rejected += 1

    def record_skipped(self, count: int = 1) -> None:
        self.skipped += count

    def summary(self) -> str:
        line = f"Processed: {self.processed}, Rejected: {self.rejected}, Skipped: {self.skipped}"
        reasons = ", ".join(
            f"{result.value}={count}"
            for result, count in sorted(self.results.items(), key=lambda item: item[0].value)
            if not result.is_success
        )
        if reasons:
            line += f" ({reasons})"
        return line
