import threading
from typing import Dict

from models import ClientAccount


class AccountRegistry:
    """
    Client accounts by client id, created on first reference.

    The lock only covers first-sight insertion. Once handed out, an account
    belongs to its client's worker and is mutated without locking.
    """

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}
        self._lock = threading.Lock()

    def get_or_create(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        with self._lock:
            account = self._accounts.get(client_id)
            if account is None:
                account = ClientAccount(client_id=client_id)
                self._accounts[client_id] = account
            return account

    def get_all_accounts(self) -> Dict[int, ClientAccount]:
        """Return all accounts (for final output)."""
        with self._lock:
            return dict(self._accounts)

    def __len__(self) -> int:
        with self._lock:
            return len(self._accounts)
