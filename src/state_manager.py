from typing import Dict, Iterator

from errors import ReferredTxNotFoundError
from models import AccountSnapshot, ClientAccount, HistoricalTransaction


class AccountLedger:
    """Client accounts keyed by client id, created on first reference."""

    def __init__(self):
        self._accounts: Dict[int, ClientAccount] = {}

    def get_or_create(self, client_id: int) -> ClientAccount:
        """Get existing account or create new one."""
        if client_id not in self._accounts:
            self._accounts[client_id] = ClientAccount(client_id=client_id)
        return self._accounts[client_id]

    def list_accounts(self) -> Iterator[AccountSnapshot]:
        """
        Yield a read-only snapshot of every account, in no particular order.
        Each call starts a fresh pass over the ledger.
        """
        for account in list(self._accounts.values()):
            yield account.snapshot()

    def __len__(self) -> int:
        return len(self._accounts)


class TransactionStore:
    """Committed deposits and withdrawals keyed by transaction id."""

    def __init__(self):
        self._transactions: Dict[int, HistoricalTransaction] = {}

    def lookup(self, transaction_id: int) -> HistoricalTransaction:
        try:
            return self._transactions[transaction_id]
        except KeyError:
            raise ReferredTxNotFoundError() from None

    def upsert(self, transaction: HistoricalTransaction) -> None:
        """Insert a new transaction or replace the stored one with the same id."""
        self._transactions[transaction.transaction_id] = transaction

    def __len__(self) -> int:
        return len(self._transactions)
