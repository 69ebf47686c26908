from abc import ABC, abstractmethod
from typing import Dict, Iterator, Optional, Tuple
from collections import defaultdict

from account import Account
from models import AccountId


class AccountRepository(ABC):
    @abstractmethod
    def get_or_create(self, account_id: AccountId) -> Account:
        """Get the account, creating an empty one on first reference."""
        pass

    @abstractmethod
    def get(self, account_id: AccountId) -> Optional[Account]:
        """Get account. Returns None if account doesn't exist."""
        pass

    @abstractmethod
    def items(self) -> Iterator[Tuple[AccountId, Account]]:
        """Iterate over (account id, account) pairs, in no particular order."""
        pass

    @abstractmethod
    def get_accounts_count(self) -> int:
        """Get total number of accounts."""
        pass


class InMemoryAccountRepository(AccountRepository):
    def __init__(self):
        # Lookup of a missing key inserts a fresh Account in the same step
        self.accounts: Dict[AccountId, Account] = defaultdict(Account)

    def get_or_create(self, account_id: AccountId) -> Account:
        return self.accounts[account_id]

    def get(self, account_id: AccountId) -> Optional[Account]:
        return self.accounts.get(account_id)

    def items(self) -> Iterator[Tuple[AccountId, Account]]:
        return iter(self.accounts.items())

    def get_accounts_count(self) -> int:
        return len(self.accounts)
