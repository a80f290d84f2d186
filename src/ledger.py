import threading
from typing import Dict, Optional

from errors import DuplicateRecord
from models import FundedTransaction, LedgerEntry


class TransactionLedger:
    """
    Deposits seen so far, keyed by transaction id, with their dispute flags.

    Shared by all workers. The lock protects the dict itself (lookups and
    inserts); an entry's flags are only ever changed by the worker that owns
    the depositing client.
    """

    def __init__(self):
        self._entries: Dict[int, LedgerEntry] = {}
        self._lock = threading.Lock()

    def record_deposit(self, transaction: FundedTransaction) -> LedgerEntry:
        """Create the entry for a deposit. Raises DuplicateRecord if the id is taken."""
        with self._lock:
            if transaction.transaction_id in self._entries:
                raise DuplicateRecord(transaction)
            entry = LedgerEntry(deposit=transaction)
            self._entries[transaction.transaction_id] = entry
            return entry

    def discard(self, transaction_id: int) -> None:
        """Drop an entry whose deposit could not be applied."""
        with self._lock:
            self._entries.pop(transaction_id, None)

    def contains(self, transaction_id: int) -> bool:
        with self._lock:
            return transaction_id in self._entries

    def lookup(self, transaction_id: int, client_id: int) -> Optional[LedgerEntry]:
        """
        Return the entry for a deposit made by `client_id`.

        A deposit belonging to another client is invisible here, so a dispute
        naming it is treated the same as one naming an unknown id.
        """
        with self._lock:
            entry = self._entries.get(transaction_id)
        if entry is None or entry.client_id != client_id:
            return None
        return entry

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
