import logging
from decimal import Decimal
from typing import Optional

from models import Transaction, TransactionType, ClientAccount, ProcessingResult
from state_manager import StateManager

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions to ledger state, one at a time, in arrival order.

    Invalid events from the upstream partner are expected and never raise:
    they leave state untouched and come back as ProcessingResult.IGNORED.
    """

    def __init__(self, state: StateManager):
        self._state = state

    def process_transaction(self, transaction: Transaction) -> ProcessingResult:
        """
        Process a single transaction.

        Returns:
            APPLIED: Balances or dispute state changed
            IGNORED: The event was invalid for the current state (e.g. insufficient
                funds, unknown tx, wrong client, frozen account) and had no effect
        """
        account = self._state.get_or_create_account(transaction.client_id)

        if account.locked:
            logger.debug(f"{transaction}: account {account.client_id} is locked, ignoring")
            return ProcessingResult.IGNORED

        match transaction.transaction_type:
            case TransactionType.DEPOSIT:
                return self._handle_deposit(account, transaction)
            case TransactionType.WITHDRAWAL:
                return self._handle_withdrawal(account, transaction)
            case TransactionType.DISPUTE:
                return self._handle_dispute(account, transaction)
            case TransactionType.RESOLVE:
                return self._handle_resolve(account, transaction)
            case TransactionType.CHARGEBACK:
                return self._handle_chargeback(account, transaction)
            case _:
                logger.debug(f"{transaction}: unrecognized transaction type {transaction.raw_type!r}")
                return ProcessingResult.IGNORED

    def _handle_deposit(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if transaction.amount is None:
            logger.debug(f"Deposit tx {transaction.transaction_id}: missing amount")
            return ProcessingResult.IGNORED

        account.credit(transaction.amount)
        self._state.store_transaction(transaction)
        return ProcessingResult.APPLIED

    def _handle_withdrawal(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if transaction.amount is None:
            logger.debug(f"Withdrawal tx {transaction.transaction_id}: missing amount")
            return ProcessingResult.IGNORED

        if transaction.amount > account.available:
            logger.debug(
                f"Withdrawal tx {transaction.transaction_id}: insufficient funds "
                f"(available {account.available}, requested {transaction.amount})"
            )
            return ProcessingResult.IGNORED

        account.debit(transaction.amount)
        self._state.store_transaction(transaction)
        return ProcessingResult.APPLIED

    def _handle_dispute(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        # A repeated dispute is not rejected: the hold is applied again.
        amount = self._referenced_amount("Dispute", transaction)
        if amount is None:
            return ProcessingResult.IGNORED

        account.hold(amount)
        self._state.mark_transaction_disputed(transaction.transaction_id)
        return ProcessingResult.APPLIED

    def _handle_resolve(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if not self._state.is_transaction_disputed(transaction.transaction_id):
            logger.debug(f"Resolve for tx {transaction.transaction_id}: transaction is not disputed")
            return ProcessingResult.IGNORED

        if self._state.is_transaction_resolved(transaction.transaction_id):
            logger.debug(f"Resolve for tx {transaction.transaction_id}: dispute already resolved")
            return ProcessingResult.IGNORED

        amount = self._referenced_amount("Resolve", transaction)
        if amount is None:
            return ProcessingResult.IGNORED

        account.release_hold(amount)
        self._state.mark_transaction_resolved(transaction.transaction_id)
        return ProcessingResult.APPLIED

    def _handle_chargeback(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if not self._state.is_transaction_disputed(transaction.transaction_id):
            logger.debug(f"Chargeback for tx {transaction.transaction_id}: transaction is not disputed")
            return ProcessingResult.IGNORED

        amount = self._referenced_amount("Chargeback", transaction)
        if amount is None:
            return ProcessingResult.IGNORED

        if self._state.is_transaction_resolved(transaction.transaction_id):
            # Dispute reopened after a resolve: undo the resolve before charging back.
            logger.debug(f"Chargeback for tx {transaction.transaction_id}: reverting earlier resolve")
            account.hold(amount)
            self._state.clear_transaction_resolution(transaction.transaction_id)

        account.charge_back(amount)
        return ProcessingResult.APPLIED

    def _referenced_amount(self, action: str, transaction: Transaction) -> Optional[Decimal]:
        """Amount of the stored transaction this event refers to, or None if it can't be used."""
        original = self._state.get_transaction(transaction.transaction_id)

        if original is None:
            logger.debug(f"{action} for tx {transaction.transaction_id}: transaction not found")
            return None

        if original.client_id != transaction.client_id:
            logger.debug(
                f"{action} for tx {transaction.transaction_id}: client mismatch "
                f"(expected {original.client_id}, got {transaction.client_id})"
            )
            return None

        if original.amount is None:
            logger.debug(f"{action} for tx {transaction.transaction_id}: referenced transaction has no amount")
            return None

        return original.amount
