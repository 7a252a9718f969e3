class ProcessingError(Exception):
    """Base class for errors raised while applying a record to the ledger."""


class InsufficientFundsError(ProcessingError):
    def __init__(self):
        super().__init__("Insufficient funds")


class ClientLockedError(ProcessingError):
    def __init__(self):
        super().__init__("Client is locked")


class ClientIdNotMatchedError(ProcessingError):
    def __init__(self):
        super().__init__("Client ID does not match")


class TransactionError(ProcessingError):
    """Referred transaction is missing or in the wrong dispute state."""


class ReferredTxNotFoundError(TransactionError):
    def __init__(self):
        super().__init__("Referred transaction not found")


class CannotBeDisputedError(TransactionError):
    def __init__(self):
        super().__init__("Referred transaction is already under dispute, resolved or charged back")


class NotUnderDisputeError(TransactionError):
    def __init__(self):
        super().__init__("Referred transaction is not under dispute")


class RecordParseError(ValueError):
    """Input row could not be turned into a TransactionRecord."""
