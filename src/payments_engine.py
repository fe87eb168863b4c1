import logging
from typing import Dict, Iterable, Optional

from models import ClientAccount, ProcessingStats, Transaction
from csv_reader import TransactionReader
from ledger_store import LedgerStore
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Orchestrates a single run: reads transactions in file order and applies
    each one fully before reading the next.
    """

    def __init__(self, ledger: Optional[LedgerStore] = None):
        self._ledger = ledger if ledger is not None else LedgerStore()
        self._processor = TransactionProcessor(self._ledger)
        self._stats = ProcessingStats()

    @property
    def ledger(self) -> LedgerStore:
        return self._ledger

    @property
    def processor(self) -> TransactionProcessor:
        return self._processor

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states in first-seen order."""
        logger.info(f"Processing {filepath}")

        with TransactionReader.from_path(filepath) as reader:
            self.process_transactions(reader)
            self._stats.record_skipped(reader.skipped_rows)

        logger.info(self._stats.summary())
        return dict(self._ledger.snapshot())

    def process_transactions(self, transactions: Iterable[Transaction]) -> LedgerStore:
        """Apply transactions in order. InvariantViolation aborts the run."""
        for transaction in transactions:
            result = self._processor.process_transaction(transaction)
            self._stats.record_result(result)
            if not result.is_success:
                logger.debug(f"Rejected {transaction}: {result.value}")
        return self._ledger
