import logging

from errors import ClientIdNotMatchedError
from models import ClientAccount, HistoricalTransaction, TransactionRecord, TransactionType
from state_manager import AccountLedger, TransactionStore

logger = logging.getLogger(__name__)


class TransactionProcessor:
    """
    Applies transaction records to the account ledger and transaction history.

    A record either fully applies or leaves both untouched. Failures are raised
    as ProcessingError subclasses and are recoverable: the caller reports them
    and moves on to the next record.
    """

    def __init__(self, ledger: AccountLedger, history: TransactionStore):
        self._ledger = ledger
        self._history = history

    def process(self, record: TransactionRecord) -> None:
        """
        Process a single record.

        Raises:
            InsufficientFundsError: withdrawal exceeds available funds
            ClientLockedError: account was locked by an earlier chargeback
            ClientIdNotMatchedError: referred transaction belongs to another client
            TransactionError: referred transaction missing or in the wrong state
        """
        account = self._ledger.get_or_create(record.client_id)

        match record.transaction_type:
            case TransactionType.DEPOSIT:
                account.deposit(record.amount)
                updated = HistoricalTransaction(record.transaction_id, record.amount, record.client_id)
            case TransactionType.WITHDRAWAL:
                account.withdraw(record.amount)
                updated = HistoricalTransaction(record.transaction_id, record.amount, record.client_id)
            case TransactionType.DISPUTE | TransactionType.RESOLVE | TransactionType.CHARGEBACK:
                updated = self._apply_referring(account, record)

        self._history.upsert(updated)
        logger.debug(f"Applied {record}")

    def _apply_referring(self, account: ClientAccount, record: TransactionRecord) -> HistoricalTransaction:
        """
        Dispute, resolve or chargeback a stored transaction.

        The next state is computed first without touching the store, then the
        account is changed using the stored amount. The caller persists the
        returned transaction only if both steps succeeded.
        """
        referred = self._history.lookup(record.transaction_id)

        if referred.client_id != record.client_id:
            logger.info(
                f"{record.transaction_type.value.capitalize()} for tx {record.transaction_id}: "
                f"client mismatch (owner {referred.client_id}, got {record.client_id})"
            )
            raise ClientIdNotMatchedError()

        match record.transaction_type:
            case TransactionType.DISPUTE:
                updated = referred.disputed()
                account.dispute(referred.amount)
            case TransactionType.RESOLVE:
                updated = referred.resolved()
                account.resolve(referred.amount)
            case TransactionType.CHARGEBACK:
                updated = referred.charged_back()
                account.charge_back(referred.amount)
                logger.info(f"Client {account.client_id} locked after chargeback of tx {record.transaction_id}")

        return updated
