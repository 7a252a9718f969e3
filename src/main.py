import sys
import logging
from decimal import ROUND_HALF_UP, Decimal
from typing import Iterable, TextIO

from pydantic import ValidationError

from config import get_settings
from models import AccountSnapshot
from payments_engine import PaymentsEngine

logger = logging.getLogger(__name__)


def format_decimal(value: Decimal, precision: int = 4) -> str:
    """Format decimal with up to `precision` decimal places, removing trailing zeros."""
    quantized = value.quantize(Decimal(1).scaleb(-precision), rounding=ROUND_HALF_UP)
    if quantized.is_zero():
        return "0"
    normalized = quantized.normalize()
    return f"{normalized:f}"


def write_accounts(accounts: Iterable[AccountSnapshot], out: TextIO, precision: int = 4) -> None:
    print("client,available,held,total,locked", file=out)
    for account in sorted(accounts, key=lambda a: a.client_id):
        print(
            f"{account.client_id},"
            f"{format_decimal(account.available, precision)},"
            f"{format_decimal(account.held, precision)},"
            f"{format_decimal(account.total, precision)},"
            f"{str(account.locked).lower()}",
            file=out
        )


def main():
    try:
        settings = get_settings()
    except ValidationError as e:
        print(f"Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    logging.basicConfig(
        level=settings.log_level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
    )

    if len(sys.argv) != 2:
        print("Usage: python main.py <input.csv>", file=sys.stderr)
        sys.exit(1)

    filepath = sys.argv[1]
    engine = PaymentsEngine(amount_precision=settings.amount_precision)
    try:
        accounts = engine.process_file(filepath)
    except OSError as e:
        logger.error(f"Failed to open {filepath}: {e}")
        sys.exit(1)

    write_accounts(accounts.values(), sys.stdout, settings.amount_precision)


if __name__ == "__main__":
    main()
