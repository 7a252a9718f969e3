import functools
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import Optional

from errors import (
    CannotBeDisputedError,
    ClientLockedError,
    InsufficientFundsError,
    NotUnderDisputeError,
)


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"

    @property
    def carries_amount(self) -> bool:
        return self in (TransactionType.DEPOSIT, TransactionType.WITHDRAWAL)


class TransactionState(Enum):
    COMMITTED = "committed"
    DISPUTED = "disputed"
    RESOLVED = "resolved"
    CHARGED_BACK = "charged_back"


@dataclass(frozen=True)
class TransactionRecord:
    """One input row. Only deposits and withdrawals carry an amount."""

    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None

    def __post_init__(self):
        if self.transaction_type.carries_amount and self.amount is None:
            raise ValueError(f"{self.transaction_type.value} record requires an amount")

    def __repr__(self) -> str:
        # amount is never logged
        return f"TransactionRecord({self.transaction_type.value}, client={self.client_id}, tx={self.transaction_id})"


@dataclass(frozen=True)
class HistoricalTransaction:
    """
    A committed deposit or withdrawal kept for later dispute lookups.

    Deposits and withdrawals are stored the same way, by magnitude only.
    Transitions return a new instance and never touch the current one, so the
    caller can decide whether to keep the result after the paired account
    operation ran.
    """

    transaction_id: int
    amount: Decimal
    client_id: int
    state: TransactionState = TransactionState.COMMITTED

    def disputed(self) -> "HistoricalTransaction":
        if self.state is not TransactionState.COMMITTED:
            raise CannotBeDisputedError()
        return replace(self, state=TransactionState.DISPUTED)

    def resolved(self) -> "HistoricalTransaction":
        if self.state is not TransactionState.DISPUTED:
            raise NotUnderDisputeError()
        return replace(self, state=TransactionState.RESOLVED)

    def charged_back(self) -> "HistoricalTransaction":
        if self.state is not TransactionState.DISPUTED:
            raise NotUnderDisputeError()
        return replace(self, state=TransactionState.CHARGED_BACK)


def lockable_operation(method):
    """Reject the wrapped account operation with ClientLockedError once the account is locked."""

    @functools.wraps(method)
    def wrapper(self, *args, **kwargs):
        if self.locked:
            raise ClientLockedError()
        return method(self, *args, **kwargs)

    return wrapper


@dataclass(frozen=True)
class AccountSnapshot:
    client_id: int
    available: Decimal
    held: Decimal
    total: Decimal
    locked: bool


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    locked: bool = False

    @property
    def total(self) -> Decimal:
        return self.available + self.held

    @lockable_operation
    def deposit(self, amount: Decimal) -> None:
        self.available += amount

    @lockable_operation
    def withdraw(self, amount: Decimal) -> None:
        if self.available < amount:
            raise InsufficientFundsError()
        self.available -= amount

    @lockable_operation
    def dispute(self, amount: Decimal) -> None:
        # available may go negative if part of the funds were withdrawn since
        self.available -= amount
        self.held += amount

    @lockable_operation
    def resolve(self, amount: Decimal) -> None:
        self.held -= amount
        self.available += amount

    @lockable_operation
    def charge_back(self, amount: Decimal) -> None:
        self.held -= amount
        self.locked = True

    def snapshot(self) -> AccountSnapshot:
        return AccountSnapshot(
            client_id=self.client_id,
            available=self.available,
            held=self.held,
            total=self.total,
            locked=self.locked,
        )


class ProcessingStats:
    """Counters for the end-of-run report."""

    def __init__(self):
        self.processed = 0
        self.failed = 0
        self.skipped_rows = 0

    def record_success(self):
        self.processed += 1

    def record_failure(self):
        self.failed += 1

    def record_skipped_row(self):
        self.skipped_rows += 1
