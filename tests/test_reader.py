import sys
import os
import io
import logging
from decimal import Decimal

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from models import TransactionType
from transaction_reader import parse_csv_row, read_transactions


def read_all(text, on_malformed=None):
    return list(read_transactions(io.StringIO(text), on_malformed=on_malformed))


class TestParseCsvRow:
    def test_deposit(self):
        tx = parse_csv_row({"type": "deposit", "client": "1", "tx": "7", "amount": "1.5"})

        assert tx.transaction_type == TransactionType.DEPOSIT
        assert tx.client_id == 1
        assert tx.transaction_id == 7
        assert tx.amount == Decimal("1.5")

    def test_whitespace_trimmed(self):
        tx = parse_csv_row({" type": "   deposit  ", " client": " 55 ", " tx": "  123 ", " amount": "  17.64 "})

        assert tx.transaction_type == TransactionType.DEPOSIT
        assert tx.client_id == 55
        assert tx.transaction_id == 123
        assert tx.amount == Decimal("17.64")

    def test_type_case_insensitive(self):
        tx = parse_csv_row({"type": "Withdrawal", "client": "1", "tx": "1", "amount": "1"})
        assert tx.transaction_type == TransactionType.WITHDRAWAL

    def test_blank_amount(self):
        tx = parse_csv_row({"type": "dispute", "client": "1", "tx": "1", "amount": ""})
        assert tx.amount is None

    def test_missing_amount_column_value(self):
        tx = parse_csv_row({"type": "dispute", "client": "1", "tx": "1", "amount": None})
        assert tx.amount is None

    def test_unrecognized_type_kept(self):
        tx = parse_csv_row({"type": "Refund", "client": "1", "tx": "1", "amount": "3"})

        assert tx.transaction_type == TransactionType.UNRECOGNIZED
        assert tx.raw_type == "refund"

    def test_amount_rounded_to_four_places(self):
        tx = parse_csv_row({"type": "deposit", "client": "1", "tx": "1", "amount": "5.72451"})
        assert tx.amount == Decimal("5.7245")

    def test_malformed_rows_raise(self):
        bad_rows = [
            {"type": "deposit", "client": "abc", "tx": "1", "amount": "1"},
            {"type": "deposit", "client": "1", "tx": "1.5", "amount": "1"},
            {"type": "deposit", "client": "1", "tx": "1", "amount": "12 . 5"},
            {"type": "deposit", "client": "1", "tx": "1", "amount": "-1"},
            {"type": "deposit", "client": "70000", "tx": "1", "amount": "1"},
            {"type": "deposit", "client": "1", "tx": "1", "amount": "1", None: ["extra"]},
        ]
        for row in bad_rows:
            with pytest.raises(ValueError):
                parse_csv_row(row)

    def test_ids_must_be_plain_digits(self):
        for client, tx in (("1_0", "1"), ("1", "2_000"), ("-0", "1"), ("1", "0x10"), ("", "1")):
            with pytest.raises(ValueError):
                parse_csv_row({"type": "deposit", "client": client, "tx": tx, "amount": "1"})

        tx = parse_csv_row({"type": "deposit", "client": "+7", "tx": "007", "amount": "1"})
        assert tx.client_id == 7
        assert tx.transaction_id == 7

    def test_missing_column_raises(self):
        with pytest.raises(KeyError):
            parse_csv_row({"type": "deposit", "tx": "1", "amount": "1"})


class TestReadTransactions:
    def test_reads_in_order(self):
        transactions = read_all(
            "type,client,tx,amount\n"
            "deposit,1,1,1.0\n"
            "withdrawal,1,2,0.5\n"
            "dispute,1,1,\n"
        )

        assert [tx.transaction_type for tx in transactions] == [
            TransactionType.DEPOSIT,
            TransactionType.WITHDRAWAL,
            TransactionType.DISPUTE,
        ]

    def test_row_without_trailing_amount_field(self):
        transactions = read_all("type,client,tx,amount\nresolve,2,5\n")

        assert len(transactions) == 1
        assert transactions[0].transaction_type == TransactionType.RESOLVE
        assert transactions[0].amount is None

    def test_malformed_rows_dropped_and_reported(self, caplog):
        dropped = []
        with caplog.at_level(logging.WARNING, logger="transaction_reader"):
            transactions = read_all(
                "type,client,tx,amount\n"
                "deposit,1,1,1.0\n"
                "deposit,one,2,1.0\n"
                "deposit,1,3,1.0,surplus\n"
                "deposit,1,4,2.0\n",
                on_malformed=lambda row_number, row: dropped.append(row_number),
            )

        assert [tx.transaction_id for tx in transactions] == [1, 4]
        assert dropped == [2, 3]
        assert "Failed to parse row 2" in caplog.text
        assert "Failed to parse row 3" in caplog.text

    def test_row_rejected_by_csv_module_skipped(self, caplog):
        dropped = []
        with caplog.at_level(logging.WARNING, logger="transaction_reader"):
            transactions = read_all(
                "type,client,tx,amount\n"
                "deposit,1,1,1.0\n"
                "deposit,1,2," + "9" * 200000 + "\n"
                "deposit,1,3,2.0\n",
                on_malformed=lambda row_number, row: dropped.append((row_number, row)),
            )

        assert [tx.transaction_id for tx in transactions] == [1, 3]
        assert dropped == [(2, None)]
        assert "Failed to read row 2" in caplog.text

    def test_unknown_header_layout(self, caplog):
        with caplog.at_level(logging.WARNING, logger="transaction_reader"):
            transactions = read_all("kind,customer,id\ndeposit,1,1\n")

        assert transactions == []
        assert "missing columns" in caplog.text

    def test_empty_stream(self):
        assert read_all("") == []
