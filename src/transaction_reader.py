import csv
import logging
import re
from decimal import Decimal, InvalidOperation
from typing import Callable, Dict, Iterator, Optional, TextIO

from models import Transaction, TransactionType

logger = logging.getLogger(__name__)

FIELDNAMES = ("type", "client", "tx", "amount")

ID_PATTERN = re.compile(r"\+?[0-9]+")


def parse_id(value: str, column: str) -> int:
    """Unsigned decimal id. Stricter than int(), which also takes "1_0" or "-1"."""
    if not ID_PATTERN.fullmatch(value):
        raise ValueError(f"invalid {column} id {value!r}")
    return int(value)


def parse_csv_row(row: Dict) -> Transaction:
    """
    Parse CSV row into Transaction.

    Raises KeyError or ValueError when the row is structurally broken. Business
    validity (funds, referenced tx, client) is left to the processor.
    """
    if None in row:
        raise ValueError(f"unexpected extra fields {row[None]}")

    normalized = {k.strip(): (v or "").strip() for k, v in row.items()}

    raw_type = normalized["type"].lower()
    client_id = parse_id(normalized["client"], "client")
    transaction_id = parse_id(normalized["tx"], "tx")

    amount = None
    amount_str = normalized.get("amount", "")
    if amount_str:
        try:
            amount = Decimal(amount_str)
        except InvalidOperation:
            raise ValueError(f"invalid amount {amount_str!r}")

    return Transaction(
        transaction_type=TransactionType.from_token(raw_type),
        client_id=client_id,
        transaction_id=transaction_id,
        amount=amount,
        raw_type=raw_type,
    )


def read_transactions(
    stream: TextIO,
    on_malformed: Optional[Callable[[int, Optional[Dict]], None]] = None,
) -> Iterator[Transaction]:
    """
    Yield transactions from a CSV stream in file order.

    Rows that fail to parse are dropped and reported as warnings; they never
    stop the stream. A row the csv module itself rejects (e.g. a field over
    the csv field size limit) is reported with row None.
    """
    reader = csv.DictReader(stream)
    if reader.fieldnames is not None:
        missing = set(FIELDNAMES[:3]) - {name.strip() for name in reader.fieldnames}
        if missing:
            logger.warning(f"Header {reader.fieldnames} is missing columns {sorted(missing)}")

    # Data rows are numbered from 1, the header is not counted.
    row_number = 0
    while True:
        row_number += 1
        try:
            row = next(reader)
        except StopIteration:
            return
        except csv.Error as e:
            logger.warning(f"Failed to read row {row_number}: {e}")
            if on_malformed is not None:
                on_malformed(row_number, None)
            continue

        try:
            transaction = parse_csv_row(row)
        except (KeyError, ValueError) as e:
            logger.warning(f"Failed to parse row {row_number} {row}: {e}")
            if on_malformed is not None:
                on_malformed(row_number, row)
            continue
        yield transaction
