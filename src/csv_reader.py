import csv
import logging
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Iterator, Optional, TextIO

from errors import RecordParseError
from models import (
    FUNDED_TYPES,
    MAX_AMOUNT,
    MAX_AMOUNT_PLACES,
    FundedTransaction,
    ReferenceTransaction,
    Transaction,
    TransactionType,
)

logger = logging.getLogger(__name__)

EXPECTED_HEADER = ("type", "client", "tx", "amount")


def parse_row(row: Dict[Optional[str], str]) -> Transaction:
    """Parse a CSV row (as produced by csv.DictReader) into a transaction record."""
    if row.get(None):
        raise RecordParseError(row, "too many fields")

    normalized = {k.strip(): (v or "").strip() for k, v in row.items() if k is not None}

    try:
        transaction_type = TransactionType(normalized["type"].lower())
        client_id = int(normalized["client"])
        transaction_id = int(normalized["tx"])
    except KeyError as e:
        raise RecordParseError(row, f"missing field {e}") from e
    except ValueError as e:
        raise RecordParseError(row, str(e)) from e

    amount_str = normalized.get("amount", "")

    try:
        if transaction_type in FUNDED_TYPES:
            amount = None
            if amount_str:
                amount = Decimal(amount_str)
                if not amount.is_finite():
                    raise RecordParseError(row, f"amount {amount_str!r} is not a finite number")
                if abs(amount) >= MAX_AMOUNT:
                    raise RecordParseError(row, f"amount {amount_str!r} is too large")
                if amount.as_tuple().exponent < -MAX_AMOUNT_PLACES:
                    raise RecordParseError(row, f"amount {amount_str!r} has more than {MAX_AMOUNT_PLACES} decimal places")
            return FundedTransaction(transaction_type, client_id, transaction_id, amount)

        if amount_str:
            logger.debug(f"Dropping amount {amount_str!r} on {transaction_type.value} tx {transaction_id}")
        return ReferenceTransaction(transaction_type, client_id, transaction_id)
    except InvalidOperation as e:
        raise RecordParseError(row, f"invalid amount {amount_str!r}") from e
    except ValueError as e:
        raise RecordParseError(row, str(e)) from e


def iter_transactions(
    stream: TextIO,
    strict: bool = False,
    on_skip: Optional[Callable[[RecordParseError], None]] = None,
) -> Iterator[Transaction]:
    """
    Yield records from a CSV stream in input order.

    With strict=False malformed rows are logged and skipped; with strict=True
    the first malformed row raises RecordParseError.
    """
    reader = csv.DictReader(stream, skipinitialspace=True)
    if reader.fieldnames is None:
        return

    header = tuple(name.strip().lower() for name in reader.fieldnames)
    if header[: len(EXPECTED_HEADER) - 1] != EXPECTED_HEADER[:-1]:
        raise RecordParseError(reader.fieldnames, f"unexpected header, expected {','.join(EXPECTED_HEADER)}")
    reader.fieldnames = list(header)

    for row in reader:
        if not any((value or "").strip() for key, value in row.items() if key is not None):
            continue
        try:
            yield parse_row(row)
        except RecordParseError as e:
            if strict:
                raise
            logger.warning(str(e))
            if on_skip is not None:
                on_skip(e)


def read_transactions(
    filepath: str,
    strict: bool = False,
    on_skip: Optional[Callable[[RecordParseError], None]] = None,
) -> Iterator[Transaction]:
    """Read CSV file and yield transactions lazily."""
    with open(filepath, "r", newline="") as f:
        yield from iter_transactions(f, strict=strict, on_skip=on_skip)
