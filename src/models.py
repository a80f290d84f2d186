import threading
from dataclasses import dataclass
from decimal import Context, Decimal, localcontext
from enum import Enum
from typing import Optional, Union

from errors import AccountLocked, InsufficientFunds

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

# Amounts are accepted up to 10**20 with at most 20 fractional digits, so
# balance arithmetic under this context is exact for any input.
MAX_AMOUNT = Decimal(10) ** 20
MAX_AMOUNT_PLACES = 20
BALANCE_CONTEXT = Context(prec=100)


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"


FUNDED_TYPES = frozenset({TransactionType.DEPOSIT, TransactionType.WITHDRAWAL})
REFERENCE_TYPES = frozenset({TransactionType.DISPUTE, TransactionType.RESOLVE, TransactionType.CHARGEBACK})


class ProcessingResult(Enum):
    APPLIED = "applied"
    IGNORED = "ignored"


def _check_ids(client_id: int, transaction_id: int) -> None:
    if not 0 <= client_id <= MAX_CLIENT_ID:
        raise ValueError(f"client id {client_id} out of range")
    if not 0 <= transaction_id <= MAX_TRANSACTION_ID:
        raise ValueError(f"transaction id {transaction_id} out of range")


@dataclass(frozen=True)
class FundedTransaction:
    """Deposit or withdrawal. Moves `amount` in or out of the account."""

    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __post_init__(self):
        if self.transaction_type not in FUNDED_TYPES:
            raise ValueError(f"{self.transaction_type.value} is not a funded transaction type")
        _check_ids(self.client_id, self.transaction_id)

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass(frozen=True)
class ReferenceTransaction:
    """Dispute, resolve or chargeback. Points at an earlier deposit by id."""

    transaction_type: TransactionType
    client_id: int
    transaction_id: int

    def __post_init__(self):
        if self.transaction_type not in REFERENCE_TYPES:
            raise ValueError(f"{self.transaction_type.value} is not a reference transaction type")
        _check_ids(self.client_id, self.transaction_id)

    def __repr__(self) -> str:
        return f"Transaction({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id})"


Transaction = Union[FundedTransaction, ReferenceTransaction]


@dataclass
class ClientAccount:
    """
    Balance state of one client.

    Every primitive adjusts exactly two of the three balance fields, so
    total == available + held holds after each successful call. Both new
    values are computed before either field is written, so a failing call
    leaves the account untouched.
    """

    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    locked: bool = False

    def _ensure_unlocked(self) -> None:
        if self.locked:
            raise AccountLocked()

    def deposit(self, amount: Decimal) -> None:
        self._ensure_unlocked()
        with localcontext(BALANCE_CONTEXT):
            available, total = self.available + amount, self.total + amount
        self.available, self.total = available, total

    def withdraw(self, amount: Decimal) -> None:
        self._ensure_unlocked()
        if self.available < amount:
            raise InsufficientFunds()
        with localcontext(BALANCE_CONTEXT):
            available, total = self.available - amount, self.total - amount
        self.available, self.total = available, total

    def hold(self, amount: Decimal) -> None:
        self._ensure_unlocked()
        if self.available < amount:
            raise InsufficientFunds()
        with localcontext(BALANCE_CONTEXT):
            available, held = self.available - amount, self.held + amount
        self.available, self.held = available, held

    def release(self, amount: Decimal) -> None:
        self._ensure_unlocked()
        if self.held < amount:
            raise InsufficientFunds()
        with localcontext(BALANCE_CONTEXT):
            held, available = self.held - amount, self.available + amount
        self.held, self.available = held, available

    def charge_back(self, amount: Decimal) -> None:
        self._ensure_unlocked()
        if self.held < amount:
            raise InsufficientFunds()
        with localcontext(BALANCE_CONTEXT):
            held, total = self.held - amount, self.total - amount
        self.held, self.total = held, total
        self.locked = True


@dataclass
class LedgerEntry:
    deposit: FundedTransaction
    disputed: bool = False
    resolved: bool = False
    charged_back: bool = False

    @property
    def client_id(self) -> int:
        return self.deposit.client_id

    @property
    def amount(self) -> Decimal:
        return self.deposit.amount


class ProcessingStats:
    """Thread-safe counters for tracking processing statistics."""

    def __init__(self):
        self._lock = threading.Lock()
        self.applied = 0
        self.ignored = 0
        self.failed = 0
        self.skipped_rows = 0

    def record_applied(self):
        with self._lock:
            self.applied += 1

    def record_ignored(self):
        with self._lock:
            self.ignored += 1

    def record_failure(self):
        with self._lock:
            self.failed += 1

    def record_skipped_row(self):
        with self._lock:
            self.skipped_rows += 1

    def __str__(self) -> str:
        return (
            f"Applied: {self.applied}, "
            f"Ignored: {self.ignored}, "
            f"Failed: {self.failed}, "
            f"Skipped rows: {self.skipped_rows}"
        )
