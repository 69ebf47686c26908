"""
Typed errors for the payments ledger.

Every error carries a machine-readable ``kind`` and the identifiers involved
as attributes, so callers branch on type or kind instead of message text.

    LedgerError
    +-- RowError
    |   +-- MalformedRow
    |   +-- InvalidTransactionShape
    +-- AccountError
    |   +-- InvalidAmount
    |   +-- InsufficientFunds
    |   +-- UnknownTransaction
    |   +-- AlreadyDisputed
    |   +-- NotDisputed
    |   +-- AccountLocked
    +-- EngineError
    +-- IOFailure
"""

from enum import Enum
from decimal import Decimal
from typing import Any, Dict, Optional, Sequence


class ErrorKind(str, Enum):
    malformed_row = "malformed_row"
    invalid_transaction_shape = "invalid_transaction_shape"
    invalid_amount = "invalid_amount"
    insufficient_funds = "insufficient_funds"
    unknown_transaction = "unknown_transaction"
    already_disputed = "already_disputed"
    not_disputed = "not_disputed"
    account_locked = "account_locked"
    io_failure = "io_failure"


class LedgerError(Exception):
    kind: ErrorKind

    def to_dict(self) -> Dict[str, Any]:
        """Structured payload for log records."""
        data = {"error_kind": self.kind.value}
        data.update(
            (key, str(value) if isinstance(value, Decimal) else value)
            for key, value in vars(self).items()
            if value is not None and not key.startswith("_")
        )
        return data


# Row level (external parser)

class RowError(LedgerError):
    def __init__(self, line: int, detail: str, fields: Sequence[str] = ()):
        self.line = line
        self.detail = detail
        self.fields = list(fields)
        super().__init__(f"line {line}: {detail}")


class MalformedRow(RowError):
    kind = ErrorKind.malformed_row


class InvalidTransactionShape(RowError):
    kind = ErrorKind.invalid_transaction_shape


# Account level

class AccountError(LedgerError):
    def __init__(self, transaction_id: Optional[int], message: str):
        self.transaction_id = transaction_id
        super().__init__(message)


class InvalidAmount(AccountError):
    kind = ErrorKind.invalid_amount

    def __init__(self, transaction_id: int, amount: Decimal):
        self.amount = amount
        super().__init__(transaction_id, f"tx {transaction_id}: invalid amount {amount}")


class InsufficientFunds(AccountError):
    kind = ErrorKind.insufficient_funds

    def __init__(
        self,
        transaction_id: int,
        amount: Decimal,
        available: Optional[Decimal] = None,
        total: Optional[Decimal] = None
    ):
        self.amount = amount
        self.available = available
        self.total = total
        funds = available if available is not None else total
        super().__init__(
            transaction_id,
            f"tx {transaction_id}: insufficient funds, requested {amount}, have {funds}"
        )


class UnknownTransaction(AccountError):
    kind = ErrorKind.unknown_transaction

    def __init__(self, transaction_id: int):
        super().__init__(transaction_id, f"tx {transaction_id}: no such deposit")


class AlreadyDisputed(AccountError):
    kind = ErrorKind.already_disputed

    def __init__(self, transaction_id: int):
        super().__init__(transaction_id, f"tx {transaction_id}: already disputed")


class NotDisputed(AccountError):
    kind = ErrorKind.not_disputed

    def __init__(self, transaction_id: int):
        super().__init__(transaction_id, f"tx {transaction_id}: not disputed")


class AccountLocked(AccountError):
    kind = ErrorKind.account_locked

    def __init__(self, transaction_id: int):
        super().__init__(transaction_id, f"tx {transaction_id}: account is locked")


# Routing level

class EngineError(LedgerError):
    """An account-level failure tagged with the account it happened on."""

    def __init__(self, account_id: int, cause: AccountError):
        self.account_id = account_id
        self.cause = cause
        super().__init__(f"account ({account_id}): {cause}")

    @property
    def kind(self) -> ErrorKind:
        return self.cause.kind

    def to_dict(self) -> Dict[str, Any]:
        data = self.cause.to_dict()
        data["account_id"] = self.account_id
        return data


# I/O boundary, fatal

class IOFailure(LedgerError):
    kind = ErrorKind.io_failure

    def __init__(self, target: str, reason: str):
        self.target = target
        self.reason = reason
        super().__init__(f"{target}: {reason}")
