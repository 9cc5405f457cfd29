import argparse
import csv
import logging
import sys
from typing import Dict, List, Optional, TextIO

from models import ClientAccount, format_decimal
from payments_engine import PaymentsEngine

logger = logging.getLogger(__name__)

OUTPUT_FIELDNAMES = ["client", "available", "held", "total", "locked"]


def configure_logging(log_errors: bool = False, verbose: bool = False) -> None:
    """Diagnostics go to stderr so stdout only ever carries the CSV output."""
    level = logging.ERROR
    if log_errors:
        level = logging.WARNING
    if verbose:
        level = logging.DEBUG

    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
        stream=sys.stderr,
        force=True,
    )


def write_accounts(accounts: Dict[int, ClientAccount], stream: TextIO) -> None:
    writer = csv.writer(stream, lineterminator="\n")
    writer.writerow(OUTPUT_FIELDNAMES)
    for client_id in sorted(accounts.keys()):
        account = accounts[client_id]
        writer.writerow([
            client_id,
            format_decimal(account.available),
            format_decimal(account.held),
            format_decimal(account.total),
            str(account.locked).lower(),
        ])


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="toy-ledger",
        description="Replay a transactions CSV and print the final state of every client account",
    )
    parser.add_argument("transactions_file", help="Path to the transactions .csv file")
    parser.add_argument(
        "-e", "--log-errors",
        action="store_true",
        help="Report rows that could not be parsed on stderr",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Also report ignored transactions and a processing summary on stderr",
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    configure_logging(log_errors=args.log_errors, verbose=args.verbose)

    engine = PaymentsEngine()
    try:
        accounts = engine.process_file(args.transactions_file)
    except OSError as e:
        logger.error(f"Cannot read transactions: {e}")
        return 1

    try:
        write_accounts(accounts, sys.stdout)
        sys.stdout.flush()
    except OSError as e:
        logger.error(f"Failed to write account summary: {e}")
        return 1

    return 0


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
