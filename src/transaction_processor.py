import logging
from decimal import Decimal
from typing import Dict, Optional, Tuple

from models import (
    DepositRecord,
    ProcessingResult,
    Transaction,
    TransactionStatus,
    TransactionType,
)
from ledger_store import LedgerStore

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


class TransactionProcessor:
    """
    Applies transactions against the ledger one at a time.
    Returns ProcessingResult to indicate success or the reason for rejection.
    Rejections never touch the ledger; InvariantViolation from the ledger propagates.
    """

    def __init__(self, ledger: LedgerStore):
        self._ledger = ledger
        self._deposits: Dict[int, DepositRecord] = {}

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        """
        Process a single transaction.

        Returns:
            SUCCESS: Applied to the ledger
            anything else: Rejected, ledger and history unchanged
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
        raise ValueError(f"Unsupported transaction type: {transaction.transaction_type}")

    def get_transaction_status(self, transaction_id: int) -> Optional[TransactionStatus]:
        """Dispute status of a recorded deposit, or None if no such deposit exists."""
        record = self._deposits.get(transaction_id)
        return record.status if record is not None else None

    def _handle_deposit(self, transaction: Transaction) -> ProcessingResult:
        if transaction.amount is None or transaction.amount <= 0:
            logger.warning(f"Deposit tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return ProcessingResult.INVALID_AMOUNT

        if transaction.transaction_id in self._deposits:
            logger.warning(f"Deposit tx {transaction.transaction_id}: duplicate transaction id, skipping")
            return ProcessingResult.DUPLICATE_TRANSACTION

        account = self._ledger.get_or_create_account(transaction.client_id)
        if account.locked:
            logger.info(f"Deposit tx {transaction.transaction_id}: client {transaction.client_id} is locked")
            return ProcessingResult.ACCOUNT_LOCKED

        self._ledger.apply_delta(transaction.client_id, transaction.amount, ZERO)
        self._deposits[transaction.transaction_id] = DepositRecord(
            client_id=transaction.client_id,
            amount=transaction.amount,
        )
        return ProcessingResult.SUCCESS

    # Withdrawal ids are not recorded, so duplicate withdrawals are not detected.
    # A withdrawal only succeeds against existing funds, so it never creates an account.
    def _handle_withdrawal(self, transaction: Transaction) -> ProcessingResult:
        if transaction.amount is None or transaction.amount <= 0:
            logger.warning(f"Withdrawal tx {transaction.transaction_id}: invalid amount {transaction.amount}")
            return ProcessingResult.INVALID_AMOUNT

        account = self._ledger.get_account(transaction.client_id)
        if account is not None and account.locked:
            logger.info(f"Withdrawal tx {transaction.transaction_id}: client {transaction.client_id} is locked")
            return ProcessingResult.ACCOUNT_LOCKED

        available = account.available if account is not None else ZERO
        if available < transaction.amount:
            logger.info(
                f"Withdrawal tx {transaction.transaction_id}: insufficient funds "
                f"(available {available}, requested {transaction.amount})"
            )
            return ProcessingResult.INSUFFICIENT_FUNDS

        self._ledger.apply_delta(transaction.client_id, -transaction.amount, ZERO)
        return ProcessingResult.SUCCESS

    def _find_deposit(
        self, transaction: Transaction, expected: TransactionStatus
    ) -> Tuple[Optional[DepositRecord], Optional[ProcessingResult]]:
        """
        Look up the deposit referenced by a dispute, resolve or chargeback.

        Returns (record, None) when the deposit exists, belongs to the same client
        and is in the expected status; otherwise (None, rejection).
        """
        label = transaction.transaction_type.value.capitalize()
        record = self._deposits.get(transaction.transaction_id)

        if record is None:
            # Withdrawals are never recorded, so disputing one also lands here.
            logger.info(f"{label} for tx {transaction.transaction_id}: no such deposit")
            return None, ProcessingResult.UNKNOWN_TRANSACTION

        if record.client_id != transaction.client_id:
            logger.warning(
                f"{label} for tx {transaction.transaction_id}: client mismatch "
                f"(expected {record.client_id}, got {transaction.client_id})"
            )
            return None, ProcessingResult.CLIENT_MISMATCH

        if record.status != expected:
            logger.info(f"{label} for tx {transaction.transaction_id}: transaction is {record.status.value}")
            return None, ProcessingResult.INVALID_STATE

        return record, None

    def _handle_dispute(self, transaction: Transaction) -> ProcessingResult:
        record, rejection = self._find_deposit(transaction, TransactionStatus.NORMAL)
        if rejection is not None:
            return rejection

        account = self._ledger.get_or_create_account(record.client_id)
        if account.available < record.amount:
            logger.info(
                f"Dispute for tx {transaction.transaction_id}: available {account.available} "
                f"cannot cover held amount {record.amount}"
            )
            return ProcessingResult.INSUFFICIENT_FUNDS

        self._ledger.apply_delta(record.client_id, -record.amount, record.amount)
        record.status = TransactionStatus.DISPUTED
        return ProcessingResult.SUCCESS

    def _handle_resolve(self, transaction: Transaction) -> ProcessingResult:
        record, rejection = self._find_deposit(transaction, TransactionStatus.DISPUTED)
        if rejection is not None:
            return rejection

        self._ledger.apply_delta(record.client_id, record.amount, -record.amount)
        record.status = TransactionStatus.NORMAL
        return ProcessingResult.SUCCESS

    def _handle_chargeback(self, transaction: Transaction) -> ProcessingResult:
        record, rejection = self._find_deposit(transaction, TransactionStatus.DISPUTED)
        if rejection is not None:
            return rejection

        self._ledger.apply_delta(record.client_id, ZERO, -record.amount)
        record.status = TransactionStatus.CHARGED_BACK
        self._ledger.lock_account(record.client_id)
        logger.info(f"Chargeback for tx {transaction.transaction_id}: client {record.client_id} locked")
        return ProcessingResult.SUCCESS
