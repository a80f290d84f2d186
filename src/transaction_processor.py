import logging

from errors import (
    AccountLocked,
    DisputeAlreadyExists,
    DuplicateRecord,
    InvalidAmount,
    TransactionError,
)
from ledger import TransactionLedger
from models import (
    ClientAccount,
    FundedTransaction,
    ProcessingResult,
    ReferenceTransaction,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transactions to an account, using the ledger to resolve the
    deposit that a dispute, resolve or chargeback refers to.

    Returns ProcessingResult.APPLIED when state changed and IGNORED for
    follow-up records naming an unknown or wrong-state deposit. Hard errors
    are raised as TransactionError subclasses and leave no side effects.
    Caller must be the only writer of `account`.
    """

    def __init__(self, ledger: TransactionLedger):
        self._ledger = ledger

    def process_transaction(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        try:
            return self._dispatch(account, transaction)
        except TransactionError as error:
            if error.transaction is None:
                error.transaction = transaction
            raise

    def _dispatch(self, account: ClientAccount, transaction: Transaction) -> ProcessingResult:
        if account.locked:
            raise AccountLocked(transaction)

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
                raise ValueError(f"Unsupported transaction type: {transaction.transaction_type}")

    @staticmethod
    def _require_amount(transaction: FundedTransaction) -> None:
        if transaction.amount is None or transaction.amount < 0:
            raise InvalidAmount(transaction)

    def _handle_deposit(self, account: ClientAccount, transaction: FundedTransaction) -> ProcessingResult:
        if self._ledger.contains(transaction.transaction_id):
            raise DuplicateRecord(transaction)
        self._require_amount(transaction)

        self._ledger.record_deposit(transaction)
        try:
            account.deposit(transaction.amount)
        except Exception:
            self._ledger.discard(transaction.transaction_id)
            raise
        return ProcessingResult.APPLIED

    def _handle_withdrawal(self, account: ClientAccount, transaction: FundedTransaction) -> ProcessingResult:
        self._require_amount(transaction)
        account.withdraw(transaction.amount)
        return ProcessingResult.APPLIED

    def _handle_dispute(self, account: ClientAccount, transaction: ReferenceTransaction) -> ProcessingResult:
        entry = self._ledger.lookup(transaction.transaction_id, transaction.client_id)

        if entry is None:
            logger.debug(f"Dispute for tx {transaction.transaction_id}: no deposit from client {transaction.client_id}, ignoring")
            return ProcessingResult.IGNORED

        if entry.disputed:
            raise DisputeAlreadyExists(transaction)

        account.hold(entry.amount)
        entry.disputed = True
        return ProcessingResult.APPLIED

    def _handle_resolve(self, account: ClientAccount, transaction: ReferenceTransaction) -> ProcessingResult:
        entry = self._ledger.lookup(transaction.transaction_id, transaction.client_id)

        if entry is None or not entry.disputed:
            logger.debug(f"Resolve for tx {transaction.transaction_id}: not under dispute, ignoring")
            return ProcessingResult.IGNORED

        account.release(entry.amount)
        entry.disputed = False
        entry.resolved = True
        return ProcessingResult.APPLIED

    def _handle_chargeback(self, account: ClientAccount, transaction: ReferenceTransaction) -> ProcessingResult:
        entry = self._ledger.lookup(transaction.transaction_id, transaction.client_id)

        if entry is None or not entry.disputed:
            logger.debug(f"Chargeback for tx {transaction.transaction_id}: not under dispute, ignoring")
            return ProcessingResult.IGNORED

        account.charge_back(entry.amount)
        entry.disputed = False
        entry.charged_back = True
        logger.info(f"Chargeback for tx {transaction.transaction_id}: client {account.client_id} locked")
        return ProcessingResult.APPLIED
