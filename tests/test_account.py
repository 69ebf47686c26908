import copy
import pytest
from decimal import Decimal

from account import Account, DepositRecord
from exceptions import (
    AccountError,
    AccountLocked,
    AlreadyDisputed,
    ErrorKind,
    InsufficientFunds,
    InvalidAmount,
    NotDisputed,
    UnknownTransaction,
)
from models import chargeback, deposit, dispute, resolve, withdrawal


def state(account: Account):
    return (account.total, account.held, account.locked, copy.deepcopy(account.deposits))


@pytest.fixture
def funded():
    """Account with a single 10.0 deposit under tx 1."""
    account = Account()
    account.update(deposit(1, Decimal("10.0")))
    return account


class TestDeposits:
    """Test deposits and withdrawals."""

    def test_new_account_is_empty(self):
        account = Account()

        assert account.total == Decimal("0")
        assert account.held == Decimal("0")
        assert account.available() == Decimal("0")
        assert account.locked is False
        assert account.deposits == {}

    def test_deposit(self, funded):
        assert funded.total == Decimal("10.0")
        assert funded.held == Decimal("0")
        assert funded.available() == Decimal("10.0")
        assert funded.locked is False
        assert funded.deposits[1] == DepositRecord(Decimal("10.0"), False)

    def test_negative_deposit_rejected(self, funded):
        before = state(funded)

        with pytest.raises(InvalidAmount) as exc_info:
            funded.update(deposit(2, Decimal("-1")))

        assert exc_info.value.transaction_id == 2
        assert exc_info.value.kind == ErrorKind.invalid_amount
        assert state(funded) == before

    def test_zero_deposit_accepted(self, funded):
        funded.update(deposit(2, Decimal("0")))

        assert funded.total == Decimal("10.0")
        assert 2 in funded.deposits

    def test_reused_deposit_id_overwrites_record(self, funded):
        funded.update(deposit(1, Decimal("3")))

        assert funded.total == Decimal("13.0")
        assert funded.deposits[1] == DepositRecord(Decimal("3"), False)

    def test_withdrawal(self, funded):
        funded.update(withdrawal(2, Decimal("4.5")))

        assert funded.total == Decimal("5.5")
        assert funded.available() == Decimal("5.5")
        assert 2 not in funded.deposits

    def test_withdrawal_of_exact_available(self, funded):
        funded.update(withdrawal(2, Decimal("10.0")))

        assert funded.available() == Decimal("0")
        assert funded.total == Decimal("0")

    def test_withdrawal_insufficient_funds(self, funded):
        before = state(funded)

        with pytest.raises(InsufficientFunds) as exc_info:
            funded.update(withdrawal(2, Decimal("10.0001")))

        assert exc_info.value.amount == Decimal("10.0001")
        assert exc_info.value.available == Decimal("10.0")
        assert exc_info.value.total is None
        assert state(funded) == before

    def test_negative_withdrawal_rejected(self, funded):
        before = state(funded)

        with pytest.raises(InvalidAmount):
            funded.update(withdrawal(2, Decimal("-5")))

        assert state(funded) == before

    def test_withdrawal_respects_held_funds(self, funded):
        funded.update(dispute(1))

        with pytest.raises(InsufficientFunds):
            funded.update(withdrawal(2, Decimal("1")))

    def test_withdrawal_cannot_be_disputed(self, funded):
        funded.update(withdrawal(2, Decimal("1")))

        with pytest.raises(UnknownTransaction):
            funded.update(dispute(2))

    def test_repeated_decimal_additions_are_exact(self):
        account = Account()
        for i in range(10):
            account.update(deposit(i, Decimal("0.1")))

        assert account.total == Decimal("1.0")


class TestDisputes:
    """Test the dispute, resolve and chargeback lifecycle."""

    def test_dispute_holds_funds(self, funded):
        funded.update(dispute(1))

        assert funded.total == Decimal("10.0")
        assert funded.held == Decimal("10.0")
        assert funded.available() == Decimal("0")
        assert funded.deposits[1].disputed is True

    def test_dispute_unknown_transaction(self, funded):
        before = state(funded)

        with pytest.raises(UnknownTransaction) as exc_info:
            funded.update(dispute(99))

        assert exc_info.value.transaction_id == 99
        assert state(funded) == before

    def test_dispute_twice(self, funded):
        funded.update(dispute(1))
        before = state(funded)

        with pytest.raises(AlreadyDisputed):
            funded.update(dispute(1))

        assert state(funded) == before

    def test_resolve_releases_funds(self, funded):
        funded.update(dispute(1))
        funded.update(resolve(1))

        assert funded.total == Decimal("10.0")
        assert funded.held == Decimal("0")
        assert funded.available() == Decimal("10.0")
        assert funded.deposits[1].disputed is False

    def test_resolve_twice(self, funded):
        funded.update(dispute(1))
        funded.update(resolve(1))
        before = state(funded)

        with pytest.raises(NotDisputed):
            funded.update(resolve(1))

        assert state(funded) == before

    def test_resolve_unknown_transaction(self, funded):
        with pytest.raises(UnknownTransaction):
            funded.update(resolve(7))

    def test_dispute_resolve_dispute_again(self, funded):
        funded.update(dispute(1))
        funded.update(resolve(1))
        funded.update(dispute(1))

        assert funded.held == Decimal("10.0")
        assert funded.deposits[1].disputed is True

    def test_chargeback_locks_account(self, funded):
        funded.update(dispute(1))
        funded.update(chargeback(1))

        assert funded.total == Decimal("0")
        assert funded.held == Decimal("0")
        assert funded.available() == Decimal("0")
        assert funded.locked is True
        assert funded.deposits[1].disputed is False

    def test_chargeback_without_dispute(self, funded):
        before = state(funded)

        with pytest.raises(NotDisputed):
            funded.update(chargeback(1))

        assert state(funded) == before

    def test_chargeback_unknown_transaction(self, funded):
        with pytest.raises(UnknownTransaction):
            funded.update(chargeback(5))

    def test_dispute_after_withdrawal_makes_available_negative(self, funded):
        funded.update(withdrawal(2, Decimal("8.0")))
        funded.update(dispute(1))

        assert funded.held == Decimal("10.0")
        assert funded.total == Decimal("2.0")
        assert funded.available() == Decimal("-8.0")

    def test_chargeback_exceeding_total_rejected(self, funded):
        funded.update(withdrawal(2, Decimal("8.0")))
        funded.update(dispute(1))
        before = state(funded)

        with pytest.raises(InsufficientFunds) as exc_info:
            funded.update(chargeback(1))

        assert exc_info.value.amount == Decimal("10.0")
        assert exc_info.value.total == Decimal("2.0")
        assert exc_info.value.available is None
        assert state(funded) == before
        assert funded.locked is False

    def test_chargeback_of_partial_deposit(self):
        account = Account()
        account.update(deposit(1, Decimal("4")))
        account.update(deposit(2, Decimal("6")))
        account.update(dispute(2))
        account.update(chargeback(2))

        assert account.total == Decimal("4")
        assert account.held == Decimal("0")
        assert account.available() == Decimal("4")
        assert account.locked is True


class TestLockedAccount:
    """Test that a charged back account refuses everything."""

    @pytest.fixture
    def locked(self, funded):
        funded.update(deposit(2, Decimal("5")))
        funded.update(dispute(1))
        funded.update(chargeback(1))
        return funded

    @pytest.mark.parametrize("transaction", [
        deposit(3, Decimal("1")),
        withdrawal(3, Decimal("1")),
        dispute(2),
        resolve(1),
        chargeback(2),
    ])
    def test_every_transaction_rejected(self, locked, transaction):
        before = state(locked)

        with pytest.raises(AccountLocked) as exc_info:
            locked.update(transaction)

        assert exc_info.value.transaction_id == transaction.id
        assert state(locked) == before
        assert locked.locked is True

    def test_locked_error_is_account_error(self, locked):
        with pytest.raises(AccountError):
            locked.update(deposit(9, Decimal("1")))


class TestInvariants:
    """Test invariants across a mixed sequence."""

    def test_available_is_total_minus_held(self):
        account = Account()
        transactions = [
            deposit(1, Decimal("5.1234")),
            deposit(2, Decimal("2")),
            withdrawal(3, Decimal("1.5")),
            dispute(1),
            withdrawal(4, Decimal("100")),
            resolve(2),
            dispute(2),
            resolve(1),
            chargeback(1),
            chargeback(2),
            deposit(5, Decimal("1")),
        ]

        for transaction in transactions:
            try:
                account.update(transaction)
            except AccountError:
                pass
            assert account.available() == account.total - account.held
