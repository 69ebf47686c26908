from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict
import structlog

from models import (
    Currency,
    TransactionId,
    Transaction,
    Deposit,
    Withdrawal,
    Dispute,
    Resolve,
    Chargeback,
)
from exceptions import (
    InvalidAmount,
    InsufficientFunds,
    UnknownTransaction,
    AlreadyDisputed,
    NotDisputed,
    AccountLocked,
)

logger = structlog.get_logger()


@dataclass
class DepositRecord:
    amount: Currency
    disputed: bool = False


@dataclass
class Account:
    """
    Balance state of a single client.

    Every branch of ``update`` validates before it mutates, so a rejected
    transaction leaves ``total``, ``held``, ``locked`` and the deposit ledger
    untouched. Deposits are kept for the whole run; a dispute may arrive at
    any point after its deposit.
    """

    total: Currency = Decimal("0")
    held: Currency = Decimal("0")
    locked: bool = False
    deposits: Dict[TransactionId, DepositRecord] = field(default_factory=dict, repr=False)

    def available(self) -> Currency:
        return self.total - self.held

    def update(self, transaction: Transaction) -> None:
        """Apply one transaction or raise an AccountError."""
        if self.locked:
            raise AccountLocked(transaction.id)

        if isinstance(transaction, Deposit):
            self._deposit(transaction)
        elif isinstance(transaction, Withdrawal):
            self._withdraw(transaction)
        elif isinstance(transaction, Dispute):
            self._dispute(transaction)
        elif isinstance(transaction, Resolve):
            self._resolve(transaction)
        elif isinstance(transaction, Chargeback):
            self._chargeback(transaction)
        else:
            raise TypeError(f"Unsupported transaction: {transaction!r}")

    def _deposit(self, transaction: Deposit) -> None:
        if transaction.amount < 0:
            raise InvalidAmount(transaction.id, transaction.amount)

        # A reused id replaces the earlier record
        if transaction.id in self.deposits:
            logger.debug("Deposit id reused, replacing ledger entry", transaction_id=transaction.id)
        self.deposits[transaction.id] = DepositRecord(transaction.amount)
        self.total += transaction.amount

    def _withdraw(self, transaction: Withdrawal) -> None:
        if transaction.amount < 0:
            raise InvalidAmount(transaction.id, transaction.amount)
        available = self.available()
        if transaction.amount > available:
            raise InsufficientFunds(transaction.id, transaction.amount, available=available)

        self.total -= transaction.amount

    def _disputed_record(self, transaction_id: TransactionId, disputed: bool) -> DepositRecord:
        """Look up a deposit and require its dispute flag to be ``disputed``."""
        record = self.deposits.get(transaction_id)
        if record is None:
            raise UnknownTransaction(transaction_id)
        if record.disputed != disputed:
            if disputed:
                raise NotDisputed(transaction_id)
            raise AlreadyDisputed(transaction_id)
        return record

    def _dispute(self, transaction: Dispute) -> None:
        # held may exceed total when the deposit was already withdrawn
        record = self._disputed_record(transaction.id, disputed=False)

        self.held += record.amount
        record.disputed = True

    def _resolve(self, transaction: Resolve) -> None:
        record = self._disputed_record(transaction.id, disputed=True)

        self.held -= record.amount
        record.disputed = False

    def _chargeback(self, transaction: Chargeback) -> None:
        record = self._disputed_record(transaction.id, disputed=True)
        if record.amount > self.total:
            raise InsufficientFunds(transaction.id, record.amount, total=self.total)

        self.total -= record.amount
        self.held -= record.amount
        record.disputed = False
        self.locked = True
