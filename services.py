from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable, Iterator, Optional, Tuple
import structlog

from account import Account
from exceptions import AccountError, EngineError, RowError
from models import AccountId, Transaction
from repositories import AccountRepository, InMemoryAccountRepository

logger = structlog.get_logger()


@dataclass
class ProcessingSummary:
    accepted: int = 0
    rejected: int = 0
    rejections: Counter = field(default_factory=Counter)
    dropped: int = 0
    drops: Counter = field(default_factory=Counter)

    def record_success(self) -> None:
        self.accepted += 1

    def record_failure(self, error: EngineError) -> None:
        self.rejected += 1
        self.rejections[error.kind.value] += 1

    def record_drop(self, error: RowError) -> None:
        self.dropped += 1
        self.drops[error.kind.value] += 1


class Engine:
    """Routes transactions to the account they address."""

    def __init__(self, repository: Optional[AccountRepository] = None):
        self.repository = repository or InMemoryAccountRepository()
        self.summary = ProcessingSummary()

    @classmethod
    def empty(cls) -> "Engine":
        return cls(InMemoryAccountRepository())

    def process(self, account_id: AccountId, transaction: Transaction) -> None:
        """Apply a transaction to its account, raising EngineError on rejection."""
        account = self.repository.get_or_create(account_id)
        try:
            account.update(transaction)
        except AccountError as e:
            error = EngineError(account_id, e)
            self.summary.record_failure(error)
            raise error from e

        self.summary.record_success()
        logger.debug(
            "Transaction applied",
            account_id=account_id,
            transaction=type(transaction).__name__.lower(),
            transaction_id=transaction.id,
            total=str(account.total),
            held=str(account.held)
        )

    def run(self, transactions: Iterable[Tuple[AccountId, Transaction]]) -> ProcessingSummary:
        """Process a stream in order; rejections are logged and skipped."""
        for account_id, transaction in transactions:
            try:
                self.process(account_id, transaction)
            except EngineError as e:
                logger.warning("Transaction rejected", **e.to_dict())

        logger.info(
            "Transactions processed",
            accepted=self.summary.accepted,
            rejected=self.summary.rejected,
            rejections=dict(self.summary.rejections),
            dropped=self.summary.dropped,
            drops=dict(self.summary.drops),
            accounts_count=self.repository.get_accounts_count()
        )
        return self.summary

    def get(self, account_id: AccountId) -> Optional[Account]:
        return self.repository.get(account_id)

    def accounts(self) -> Iterator[Tuple[AccountId, Account]]:
        """Read-only, single-pass view of every account known to the engine."""
        for account_id, account in self.repository.items():
            yield account_id, account
