from typing import Dict, Optional, Set

from models import Transaction, ClientAccount


class StateManager:
    """
    Ledger state owned by a single engine.
    Stores client accounts and transaction history for dispute lookups.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        # Keyed by transaction id alone: ids are assumed unique across clients.
        self._transactions: Dict[int, Transaction] = {}
        self._disputed_transaction_ids: Set[int] = set()
        self._resolved_transaction_ids: Set[int] = set()

    def get_or_create_account(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def store_transaction(self, transaction: Transaction) -> None:
        """Store transaction for future dispute lookups."""
        self._transactions[transaction.transaction_id] = transaction

    def get_transaction(self, transaction_id: int) -> Optional[Transaction]:
        """Retrieve stored transaction by ID."""
        return self._transactions.get(transaction_id)

    def mark_transaction_disputed(self, transaction_id: int) -> None:
        self._disputed_transaction_ids.add(transaction_id)

    def is_transaction_disputed(self, transaction_id: int) -> bool:
        """Check if transaction has been disputed. Resolving does not clear this."""
        return transaction_id in self._disputed_transaction_ids

    def mark_transaction_resolved(self, transaction_id: int) -> None:
        self._resolved_transaction_ids.add(transaction_id)

    def is_transaction_resolved(self, transaction_id: int) -> bool:
        return transaction_id in self._resolved_transaction_ids

    def clear_transaction_resolution(self, transaction_id: int) -> None:
        """Reopen a resolved dispute."""
        self._resolved_transaction_ids.discard(transaction_id)

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts (for final output)."""
        return dict(self._accounts)
