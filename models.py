from pydantic import BaseModel, ConfigDict, Field, field_validator
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union
from decimal import Decimal, ROUND_HALF_EVEN


# Monetary amounts are always Decimal, never float
Currency = Decimal
AccountId = int
TransactionId = int

ACCOUNT_ID_MAX = 2**16 - 1
TRANSACTION_ID_MAX = 2**32 - 1

# Totals quantized to OUTPUT_PRECISION places must fit the 28 digits of the
# default decimal context
AMOUNT_LIMIT = Decimal("1e15")
OUTPUT_PRECISION = 4


class TransactionType(str, Enum):
    deposit = "deposit"
    withdrawal = "withdrawal"
    dispute = "dispute"
    resolve = "resolve"
    chargeback = "chargeback"


@dataclass(frozen=True)
class Deposit:
    id: TransactionId
    amount: Currency


@dataclass(frozen=True)
class Withdrawal:
    id: TransactionId
    amount: Currency


@dataclass(frozen=True)
class Dispute:
    id: TransactionId


@dataclass(frozen=True)
class Resolve:
    id: TransactionId


@dataclass(frozen=True)
class Chargeback:
    id: TransactionId


Transaction = Union[Deposit, Withdrawal, Dispute, Resolve, Chargeback]


def deposit(id: TransactionId, amount: Currency) -> Deposit:
    return Deposit(id, amount)


def withdrawal(id: TransactionId, amount: Currency) -> Withdrawal:
    return Withdrawal(id, amount)


def dispute(id: TransactionId) -> Dispute:
    return Dispute(id)


def resolve(id: TransactionId) -> Resolve:
    return Resolve(id)


def chargeback(id: TransactionId) -> Chargeback:
    return Chargeback(id)


class TransactionRow(BaseModel):
    """Raw input record, before the type/amount combination is checked."""

    model_config = ConfigDict(str_strip_whitespace=True, frozen=True)

    type: str = Field(..., description="Transaction type, case-sensitive")
    client: int = Field(..., ge=0, le=ACCOUNT_ID_MAX, description="Account identifier")
    tx: int = Field(..., ge=0, le=TRANSACTION_ID_MAX, description="Transaction identifier")
    amount: Optional[Decimal] = Field(
        None,
        allow_inf_nan=False,
        gt=-AMOUNT_LIMIT,
        lt=AMOUNT_LIMIT,
        description="Required for deposit/withdrawal, absent otherwise"
    )

    @field_validator('amount', mode='before')
    @classmethod
    def empty_amount_is_absent(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v

    def to_transaction(self) -> Optional[Transaction]:
        """Build the typed transaction, or None when type and amount don't match."""
        if self.type == TransactionType.deposit.value and self.amount is not None:
            return Deposit(self.tx, self.amount)
        if self.type == TransactionType.withdrawal.value and self.amount is not None:
            return Withdrawal(self.tx, self.amount)
        if self.type == TransactionType.dispute.value and self.amount is None:
            return Dispute(self.tx)
        if self.type == TransactionType.resolve.value and self.amount is None:
            return Resolve(self.tx)
        if self.type == TransactionType.chargeback.value and self.amount is None:
            return Chargeback(self.tx)
        return None


class AccountSnapshot(BaseModel):
    client: int = Field(..., description="Account identifier")
    available: Decimal = Field(..., description="Funds available for withdrawal")
    held: Decimal = Field(..., description="Funds held by open disputes")
    total: Decimal = Field(..., description="Ledger total")
    locked: bool = Field(..., description="Locked after a chargeback")

    @classmethod
    def from_account(cls, account_id: AccountId, account) -> "AccountSnapshot":
        quantum = Decimal(1).scaleb(-OUTPUT_PRECISION)

        def rounded(value: Decimal) -> Decimal:
            return value.quantize(quantum, rounding=ROUND_HALF_EVEN)

        return cls(
            client=account_id,
            available=rounded(account.available()),
            held=rounded(account.held),
            total=rounded(account.total),
            locked=account.locked,
        )

    def to_row(self) -> list:
        return [
            self.client,
            format(self.available, "f"),
            format(self.held, "f"),
            format(self.total, "f"),
            "true" if self.locked else "false",
        ]


SNAPSHOT_HEADER = ["client", "available", "held", "total", "locked"]
