import sys
import os
from decimal import Decimal, Overflow

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from errors import (
    AccountLocked,
    DisputeAlreadyExists,
    DuplicateRecord,
    InsufficientFunds,
    InvalidAmount,
)
from ledger import TransactionLedger
from models import (
    ClientAccount,
    FundedTransaction,
    ProcessingResult,
    ReferenceTransaction,
    TransactionType,
)
from transaction_processor import TransactionProcessor


def deposit(client_id, tx_id, amount):
    return FundedTransaction(TransactionType.DEPOSIT, client_id, tx_id, None if amount is None else Decimal(amount))


def withdrawal(client_id, tx_id, amount):
    return FundedTransaction(TransactionType.WITHDRAWAL, client_id, tx_id, None if amount is None else Decimal(amount))


def dispute(client_id, tx_id):
    return ReferenceTransaction(TransactionType.DISPUTE, client_id, tx_id)


def resolve(client_id, tx_id):
    return ReferenceTransaction(TransactionType.RESOLVE, client_id, tx_id)


def chargeback(client_id, tx_id):
    return ReferenceTransaction(TransactionType.CHARGEBACK, client_id, tx_id)


def balances(account):
    return account.available, account.held, account.total, account.locked


class TestTransactionProcessor:
    def setup_method(self):
        self.ledger = TransactionLedger()
        self.processor = TransactionProcessor(self.ledger)
        self.account = ClientAccount(client_id=1)

    def process(self, transaction):
        return self.processor.process_transaction(self.account, transaction)

    def test_deposit(self):
        result = self.process(deposit(1, 1, "100"))

        assert result == ProcessingResult.APPLIED
        assert self.account.available == Decimal("100")
        assert self.account.total == Decimal("100")
        assert self.ledger.contains(1)

    def test_deposit_missing_amount(self):
        with pytest.raises(InvalidAmount) as excinfo:
            self.process(deposit(1, 1, None))
        assert excinfo.value.transaction.transaction_id == 1
        assert not self.ledger.contains(1)
        assert self.account.total == Decimal("0")

    def test_deposit_negative_amount(self):
        with pytest.raises(InvalidAmount):
            self.process(deposit(1, 1, "-5"))
        assert self.account.total == Decimal("0")

    def test_deposit_zero_amount_accepted(self):
        assert self.process(deposit(1, 1, "0")) == ProcessingResult.APPLIED
        assert self.ledger.contains(1)

    def test_failed_deposit_leaves_no_ledger_entry(self):
        self.process(deposit(1, 1, "9E+999999"))
        with pytest.raises(Overflow):
            self.process(deposit(1, 2, "9E+999999"))
        assert not self.ledger.contains(2)
        assert len(self.ledger) == 1
        assert self.process(ReferenceTransaction(TransactionType.DISPUTE, 1, 2)) == ProcessingResult.IGNORED

    def test_duplicate_deposit(self):
        self.process(deposit(1, 1, "100"))
        with pytest.raises(DuplicateRecord):
            self.process(deposit(1, 1, "100"))
        assert self.account.available == Decimal("100")

    def test_withdrawal_success(self):
        self.process(deposit(1, 1, "100"))
        result = self.process(withdrawal(1, 2, "60"))

        assert result == ProcessingResult.APPLIED
        assert self.account.available == Decimal("40")
        assert self.account.total == Decimal("40")

    def test_withdrawal_not_recorded_in_ledger(self):
        self.process(deposit(1, 1, "100"))
        self.process(withdrawal(1, 2, "60"))
        assert not self.ledger.contains(2)

    def test_withdrawal_insufficient_funds(self):
        self.process(deposit(1, 1, "50"))
        with pytest.raises(InsufficientFunds):
            self.process(withdrawal(1, 2, "100"))
        assert self.account.available == Decimal("50")

    def test_withdrawal_missing_amount(self):
        self.process(deposit(1, 1, "50"))
        with pytest.raises(InvalidAmount):
            self.process(withdrawal(1, 2, None))

    def test_dispute(self):
        self.process(deposit(1, 1, "100"))
        result = self.process(dispute(1, 1))

        assert result == ProcessingResult.APPLIED
        assert balances(self.account) == (Decimal("0"), Decimal("100"), Decimal("100"), False)
        assert self.ledger.lookup(1, 1).disputed is True

    def test_dispute_unknown_tx_ignored(self):
        self.process(deposit(1, 1, "100"))
        before = balances(self.account)

        assert self.process(dispute(1, 99)) == ProcessingResult.IGNORED
        assert balances(self.account) == before

    def test_dispute_other_clients_deposit_ignored(self):
        other = ClientAccount(client_id=2)
        self.processor.process_transaction(other, deposit(2, 1, "100"))

        assert self.process(dispute(1, 1)) == ProcessingResult.IGNORED
        assert balances(self.account) == (Decimal("0"), Decimal("0"), Decimal("0"), False)
        assert self.ledger.lookup(1, 2).disputed is False

    def test_dispute_withdrawal_ignored(self):
        self.process(deposit(1, 1, "100"))
        self.process(withdrawal(1, 2, "50"))

        assert self.process(dispute(1, 2)) == ProcessingResult.IGNORED
        assert self.account.held == Decimal("0")

    def test_dispute_already_disputed(self):
        self.process(deposit(1, 1, "100"))
        self.process(dispute(1, 1))
        with pytest.raises(DisputeAlreadyExists):
            self.process(dispute(1, 1))
        assert self.account.held == Decimal("100")

    def test_dispute_insufficient_available(self):
        self.process(deposit(1, 1, "100"))
        self.process(withdrawal(1, 2, "30"))
        with pytest.raises(InsufficientFunds):
            self.process(dispute(1, 1))

        assert balances(self.account) == (Decimal("70"), Decimal("0"), Decimal("70"), False)
        assert self.ledger.lookup(1, 1).disputed is False

    def test_resolve(self):
        self.process(deposit(1, 1, "100"))
        self.process(dispute(1, 1))
        result = self.process(resolve(1, 1))

        assert result == ProcessingResult.APPLIED
        assert balances(self.account) == (Decimal("100"), Decimal("0"), Decimal("100"), False)
        entry = self.ledger.lookup(1, 1)
        assert entry.disputed is False
        assert entry.resolved is True

    def test_resolve_not_disputed(self):
        self.process(deposit(1, 1, "100"))
        assert self.process(resolve(1, 1)) == ProcessingResult.IGNORED
        assert balances(self.account) == (Decimal("100"), Decimal("0"), Decimal("100"), False)

    def test_resolve_unknown_tx(self):
        assert self.process(resolve(1, 7)) == ProcessingResult.IGNORED

    def test_redispute_after_resolve(self):
        self.process(deposit(1, 1, "100"))
        self.process(dispute(1, 1))
        self.process(resolve(1, 1))

        assert self.process(dispute(1, 1)) == ProcessingResult.APPLIED
        assert self.account.held == Decimal("100")
        assert self.process(resolve(1, 1)) == ProcessingResult.APPLIED
        assert self.account.available == Decimal("100")

    def test_chargeback(self):
        self.process(deposit(1, 1, "100"))
        self.process(dispute(1, 1))
        result = self.process(chargeback(1, 1))

        assert result == ProcessingResult.APPLIED
        assert balances(self.account) == (Decimal("0"), Decimal("0"), Decimal("0"), True)
        entry = self.ledger.lookup(1, 1)
        assert entry.charged_back is True
        assert entry.disputed is False

    def test_chargeback_not_disputed(self):
        self.process(deposit(1, 1, "100"))
        assert self.process(chargeback(1, 1)) == ProcessingResult.IGNORED
        assert self.account.locked is False

    def test_chargeback_after_resolve_ignored(self):
        self.process(deposit(1, 1, "100"))
        self.process(dispute(1, 1))
        self.process(resolve(1, 1))
        assert self.process(chargeback(1, 1)) == ProcessingResult.IGNORED
        assert self.account.locked is False

    def test_locked_account_rejects_operations(self):
        self.process(deposit(1, 1, "100"))
        self.process(deposit(1, 2, "10"))
        self.process(dispute(1, 1))
        self.process(chargeback(1, 1))

        for transaction in (deposit(1, 3, "50"), withdrawal(1, 4, "1"), dispute(1, 2), resolve(1, 2), chargeback(1, 2), dispute(1, 99)):
            with pytest.raises(AccountLocked):
                self.process(transaction)

        assert balances(self.account) == (Decimal("10"), Decimal("0"), Decimal("10"), True)
        assert not self.ledger.contains(3)

    def test_total_invariant_over_mixed_sequence(self):
        sequence = [
            deposit(1, 1, "100.1234"),
            deposit(1, 2, "50"),
            withdrawal(1, 3, "25.5"),
            dispute(1, 2),
            dispute(1, 1),
            resolve(1, 2),
            withdrawal(1, 4, "1000"),
            dispute(1, 2),
            chargeback(1, 1),
        ]
        for transaction in sequence:
            try:
                self.process(transaction)
            except InsufficientFunds:
                pass
            assert self.account.total == self.account.available + self.account.held
