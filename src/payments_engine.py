import csv
import logging
import re
import sys
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import BinaryIO, Dict, Iterable, Iterator, Optional

from errors import ProcessingError, RecordParseError
from models import AccountSnapshot, ProcessingStats, TransactionRecord, TransactionType
from state_manager import AccountLedger, TransactionStore
from transaction_processor import TransactionProcessor

logger = logging.getLogger(__name__)

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1

ID_PATTERN = re.compile(r"\+?[0-9]+")
AMOUNT_PATTERN = re.compile(r"[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?")


class PaymentsEngine:
    """
    Replays transaction records in input order against a fresh ledger.
    Bad rows and rejected records are logged and skipped; they never stop the run.
    """

    def __init__(self, amount_precision: int = 4):
        self._quantum = Decimal(1).scaleb(-amount_precision)
        self._ledger = AccountLedger()
        self._history = TransactionStore()
        self._processor = TransactionProcessor(self._ledger, self._history)
        self._stats = ProcessingStats()

    @property
    def stats(self) -> ProcessingStats:
        return self._stats

    def process_file(self, filepath: str) -> Dict[int, AccountSnapshot]:
        """
        Process CSV file and return final account states.

        Raises OSError if the file cannot be opened.
        """
        logger.info(f"Processing {filepath}")

        with open(filepath, "rb") as f:
            reader = csv.DictReader(self._decode_lines(f), skipinitialspace=True)
            self.process_records(self._parse_rows(reader))

        # Print final processing report to stderr
        print(
            f"Processed: {self._stats.processed}, "
            f"Failed: {self._stats.failed}, "
            f"Skipped rows: {self._stats.skipped_rows}",
            file=sys.stderr
        )

        return self.get_accounts()

    def process_records(self, records: Iterable[TransactionRecord]) -> None:
        """Apply records one at a time, in order."""
        for record in records:
            try:
                self._processor.process(record)
            except ProcessingError as e:
                self._stats.record_failure()
                logger.warning(f"Failed to process {record}: {e}")
            else:
                self._stats.record_success()

    def get_accounts(self) -> Dict[int, AccountSnapshot]:
        return {account.client_id: account for account in self._ledger.list_accounts()}

    def _decode_lines(self, f: BinaryIO) -> Iterator[str]:
        """Decode the file line by line so an invalid byte only costs its own row."""
        for line_number, raw_line in enumerate(f, start=1):
            try:
                yield raw_line.decode("utf-8")
            except UnicodeDecodeError as e:
                self._stats.record_skipped_row()
                logger.warning(f"Failed to decode line {line_number}: {e}")

    def _parse_rows(self, reader: csv.DictReader) -> Iterator[TransactionRecord]:
        while True:
            try:
                row = next(reader)
            except StopIteration:
                return
            except csv.Error as e:
                # the reader resets itself and continues with the next line
                self._stats.record_skipped_row()
                logger.warning(f"Failed to read line {reader.line_num}: {e}")
                continue

            try:
                yield self._parse_csv_row(row)
            except RecordParseError as e:
                self._stats.record_skipped_row()
                logger.warning(f"Failed to parse line {reader.line_num}: {e}")

    def _parse_csv_row(self, row: Dict[Optional[str], str]) -> TransactionRecord:
        """Parse CSV row into TransactionRecord."""
        if None in row:
            raise RecordParseError(f"unexpected extra values {row[None]}")

        normalized = {k.strip(): (v or "").strip() for k, v in row.items()}

        try:
            transaction_type = TransactionType(normalized["type"].lower())
            client_id = self._parse_id(normalized["client"], "client id")
            transaction_id = self._parse_id(normalized["tx"], "tx id")
        except KeyError as e:
            raise RecordParseError(f"missing field {e}") from e
        except ValueError as e:
            raise RecordParseError(str(e)) from e

        if not 0 <= client_id <= MAX_CLIENT_ID:
            raise RecordParseError(f"client id {client_id} out of range")
        if not 0 <= transaction_id <= MAX_TRANSACTION_ID:
            raise RecordParseError(f"tx id {transaction_id} out of range")

        amount = None
        if transaction_type.carries_amount:
            amount = self._parse_amount(normalized.get("amount", ""))

        return TransactionRecord(
            transaction_type=transaction_type,
            client_id=client_id,
            transaction_id=transaction_id,
            amount=amount,
        )

    @staticmethod
    def _parse_id(value: str, name: str) -> int:
        # int() alone would also take "1_0" and non-ASCII digits
        if not ID_PATTERN.fullmatch(value):
            raise RecordParseError(f"invalid {name} {value!r}")
        return int(value)

    def _parse_amount(self, amount_str: str) -> Decimal:
        if not amount_str:
            raise RecordParseError("missing amount")
        if not AMOUNT_PATTERN.fullmatch(amount_str):
            raise RecordParseError(f"invalid amount {amount_str!r}")
        try:
            amount = Decimal(amount_str).quantize(self._quantum, rounding=ROUND_HALF_UP)
        except InvalidOperation as e:
            raise RecordParseError(f"invalid amount {amount_str!r}") from e
        if amount < 0:
            raise RecordParseError(f"negative amount {amount_str}")
        return amount
