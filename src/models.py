from dataclasses import dataclass
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
from enum import Enum
from typing import Optional

AMOUNT_PLACES = Decimal("0.0001")

MAX_CLIENT_ID = 2**16 - 1
MAX_TRANSACTION_ID = 2**32 - 1


def quantize_amount(value: Decimal) -> Decimal:
    """Round to the 4 fractional digits the ledger stores."""
    return value.quantize(AMOUNT_PLACES, rounding=ROUND_HALF_EVEN)


def format_decimal(value: Decimal) -> str:
    """Format decimal with up to 4 decimal places, removing trailing zeros."""
    formatted = f"{quantize_amount(value):f}"
    if "." in formatted:
        formatted = formatted.rstrip("0").rstrip(".")
    return formatted


class TransactionType(Enum):
    DEPOSIT = "deposit"
    WITHDRAWAL = "withdrawal"
    DISPUTE = "dispute"
    RESOLVE = "resolve"
    CHARGEBACK = "chargeback"
    UNRECOGNIZED = "unrecognized"

    @classmethod
    def from_token(cls, token: str) -> "TransactionType":
        try:
            return cls(token.strip().lower())
        except ValueError:
            return cls.UNRECOGNIZED


class ProcessingResult(Enum):
    APPLIED = "applied"
    IGNORED = "ignored"


@dataclass(frozen=True)
class Transaction:
    transaction_type: TransactionType
    client_id: int
    transaction_id: int
    amount: Optional[Decimal] = None
    raw_type: Optional[str] = None

    def __post_init__(self):
        if not 0 <= self.client_id <= MAX_CLIENT_ID:
            raise ValueError(f"client id {self.client_id} out of range")
        if not 0 <= self.transaction_id <= MAX_TRANSACTION_ID:
            raise ValueError(f"tx id {self.transaction_id} out of range")

        if self.amount is not None:
            if not self.amount.is_finite():
                raise ValueError(f"amount {self.amount} is not a finite number")
            # Rejected at ingestion: a negative deposit or withdrawal would move balances the wrong way.
            if self.amount < 0:
                raise ValueError(f"amount {self.amount} is negative")
            try:
                quantized = quantize_amount(self.amount)
            except InvalidOperation:
                raise ValueError(f"amount {self.amount} exceeds supported precision")
            # frozen, so go through object.__setattr__
            object.__setattr__(self, "amount", quantized)

        if self.raw_type is None:
            object.__setattr__(self, "raw_type", self.transaction_type.value)

    def __repr__(self) -> str:
        return f"Transaction({self.raw_type}, client={self.client_id}, tx={self.transaction_id}, amount={self.amount})"


@dataclass
class ClientAccount:
    client_id: int
    available: Decimal = Decimal("0")
    held: Decimal = Decimal("0")
    total: Decimal = Decimal("0")
    locked: bool = False

    def credit(self, amount: Decimal) -> None:
        self.available += amount
        self.total += amount

    def debit(self, amount: Decimal) -> None:
        self.available -= amount
        self.total -= amount

    def hold(self, amount: Decimal) -> None:
        self.available -= amount
        self.held += amount

    def release_hold(self, amount: Decimal) -> None:
        self.held -= amount
        self.available += amount

    def charge_back(self, amount: Decimal) -> None:
        self.held -= amount
        self.total -= amount
        self.locked = True


@dataclass
class ProcessingStats:
    """Counters for the end-of-run summary."""

    applied: int = 0
    ignored: int = 0
    malformed: int = 0

    def record_result(self, result: ProcessingResult) -> None:
        if result == ProcessingResult.APPLIED:
            self.applied += 1
        else:
            self.ignored += 1

    def record_malformed(self) -> None:
        self.malformed += 1

    def __str__(self) -> str:
        return f"Applied: {self.applied}, Ignored: {self.ignored}, Malformed: {self.malformed}"
