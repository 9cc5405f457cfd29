import dataclasses
import logging
import os
from typing import Dict, Iterable, Optional

from models import Transaction, ClientAccount, ProcessingStats
from state_manager import StateManager
from transaction_processor import TransactionProcessor
from transaction_reader import read_transactions

logger = logging.getLogger(__name__)


class PaymentsEngine:
    """
    Replays a transaction stream against per-client accounts.

    Single pass, single thread: transactions are applied strictly in the
    order they are recorded.
    """

    def __init__(self):
        self._state = StateManager()
        self._processor = TransactionProcessor(self._state)
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def record(self, transaction: Transaction) -> None:
        """Apply one transaction. Invalid events are absorbed, never raised."""
        result = self._processor.process_transaction(transaction)
        self._stats.record_result(result)

    def record_all(self, transactions: Iterable[Transaction]) -> None:
        for transaction in transactions:
            self.record(transaction)

    def snapshot(self) -> Dict[int, ClientAccount]:
        """Copies of every account seen so far, keyed by client id. Order is not guaranteed."""
        return {
            client_id: dataclasses.replace(account)
            for client_id, account in self._state.get_all_accounts().items()
        }

    def process_file(self, filepath: str) -> Dict[int, ClientAccount]:
        """Process CSV file and return final account states."""
        if not os.path.exists(filepath):
            raise FileNotFoundError(f"transaction file '{filepath}' doesn't exist")
        if not os.path.isfile(filepath):
            raise OSError(f"'{filepath}' is not a file")

        logger.info(f"Processing transactions from {filepath}")
        # utf-8-sig drops a leading BOM; undecodable bytes become U+FFFD and fail that row's parse.
        with open(filepath, "r", newline="", encoding="utf-8-sig", errors="replace") as f:
            self.record_all(read_transactions(f, on_malformed=self._on_malformed_row))
        logger.info(f"Processing complete. {self._stats}")

        return self.snapshot()

    def _on_malformed_row(self, row_number: int, row: Optional[Dict]) -> None:
        self._stats.record_malformed()
