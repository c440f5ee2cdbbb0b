"""
Tests for customers, branches and the account store
"""

import pytest
from decimal import Decimal

from secbank.storage import InMemoryStorage
from secbank.branches import BranchRegistry, DEFAULT_BRANCHES
from secbank.customers import CustomerManager
from secbank.accounts import AccountStore, AccountStatus, REGULAR_SAVING, random_account_suffix
from secbank.exceptions import (
    ValidationError, NotFoundError, ConflictError, AccountNumberGenerationExhausted
)


class TestBranchRegistry:

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.registry = BranchRegistry(self.storage)

    def test_seed_default_branches(self):
        branches = self.registry.seed_default_branches()
        assert [(b.code, b.name) for b in branches] == DEFAULT_BRANCHES

    def test_seed_is_repeatable(self):
        self.registry.seed_default_branches()
        self.registry.rename_branch("002", "Old Name")
        self.registry.seed_default_branches()
        assert len(self.registry.list_branches()) == 5
        assert self.registry.get_branch("002").name == "Buhi"

    def test_create_branch(self):
        branch = self.registry.create_branch("010", "Naga")
        assert branch.code == "010"
        assert self.registry.get_branch("010").name == "Naga"

    def test_branch_code_must_be_three_characters(self):
        with pytest.raises(ValidationError):
            self.registry.create_branch("01", "Short")
        with pytest.raises(ValidationError):
            self.registry.create_branch("0100", "Long")

    def test_duplicate_branch(self):
        self.registry.create_branch("010", "Naga")
        with pytest.raises(ConflictError):
            self.registry.create_branch("010", "Naga Again")

    def test_rename_unknown_branch(self):
        with pytest.raises(NotFoundError):
            self.registry.rename_branch("999", "Nowhere")


class TestCustomerManager:

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.customers = CustomerManager(self.storage)

    def test_create_and_get(self):
        customer = self.customers.create_customer("  Juan Dela Cruz ")
        assert customer.name == "Juan Dela Cruz"
        assert self.customers.get_customer(customer.id).name == "Juan Dela Cruz"

    def test_blank_name_rejected(self):
        with pytest.raises(ValidationError):
            self.customers.create_customer("   ")

    def test_update_customer(self):
        customer = self.customers.create_customer("Maria")
        updated = self.customers.update_customer(customer.id, "Maria Clara")
        assert updated.name == "Maria Clara"

    def test_delete_customer_without_accounts(self):
        customer = self.customers.create_customer("Maria")
        assert self.customers.delete_customer(customer.id)
        assert self.customers.get_customer(customer.id) is None

    def test_delete_unknown_customer(self):
        with pytest.raises(NotFoundError):
            self.customers.delete_customer("missing")


class TestAccountStore:
    """Test account creation, lookup, balance and status changes"""

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.branches = BranchRegistry(self.storage)
        self.branches.seed_default_branches()
        self.customers = CustomerManager(self.storage)
        self.store = AccountStore(self.storage, self.customers, self.branches)
        self.customer = self.customers.create_customer("Juan Dela Cruz")

    def test_create_account(self):
        account = self.store.create_account(self.customer.id, "001")

        assert account.balance == Decimal("0.00")
        assert account.status == AccountStatus.ACTIVE
        assert account.product_type == REGULAR_SAVING
        assert len(account.account_number) == 10
        assert account.account_number.startswith("001")
        assert 1_000_000 <= int(account.account_number[3:]) <= 9_999_999

    def test_lookup_by_id_and_number(self):
        account = self.store.create_account(self.customer.id, "002")
        assert self.store.get_account(account.id).account_number == account.account_number
        assert self.store.get_account_by_number(account.account_number).id == account.id
        assert self.store.get_account("missing") is None
        assert self.store.get_account_by_number("0010000000") is None

    def test_customer_accounts(self):
        self.store.create_account(self.customer.id, "001")
        self.store.create_account(self.customer.id, "003")
        assert len(self.store.get_customer_accounts(self.customer.id)) == 2

    def test_unknown_customer_or_branch(self):
        with pytest.raises(NotFoundError):
            self.store.create_account("missing", "001")
        with pytest.raises(NotFoundError):
            self.store.create_account(self.customer.id, "999")

    def test_collision_retries_until_free(self):
        suffixes = iter([1234567, 1234567, 7654321])
        store = AccountStore(self.storage, self.customers, self.branches,
                             suffix_source=lambda: next(suffixes))
        first = store.create_account(self.customer.id, "001")
        second = store.create_account(self.customer.id, "001")
        assert first.account_number == "0011234567"
        assert second.account_number == "0017654321"

    def test_generation_exhausted(self):
        store = AccountStore(self.storage, self.customers, self.branches,
                             max_attempts=3, suffix_source=lambda: 1234567)
        store.create_account(self.customer.id, "001")
        with pytest.raises(AccountNumberGenerationExhausted):
            store.create_account(self.customer.id, "001")
        assert len(store.list_accounts()) == 1

    def test_random_suffix_range(self):
        for _ in range(200):
            assert 1_000_000 <= random_account_suffix() <= 9_999_999

    def test_set_balance_with_expected_value(self):
        account = self.store.create_account(self.customer.id, "001")
        updated = self.store.set_balance(account.id, Decimal("100.00"), expected_balance=Decimal("0.00"))
        assert updated.balance == Decimal("100.00")

        with pytest.raises(ConflictError):
            self.store.set_balance(account.id, Decimal("50.00"), expected_balance=Decimal("0.00"))
        assert self.store.get_account(account.id).balance == Decimal("100.00")

    def test_negative_balance_rejected(self):
        account = self.store.create_account(self.customer.id, "001")
        with pytest.raises(ValidationError):
            self.store.set_balance(account.id, Decimal("-0.01"))

    def test_close_account_keeps_balance(self):
        account = self.store.create_account(self.customer.id, "001")
        self.store.set_balance(account.id, Decimal("25.00"))
        closed = self.store.close_account(account.id)
        assert closed.is_closed
        assert closed.balance == Decimal("25.00")

    def test_closed_account_cannot_reopen(self):
        account = self.store.create_account(self.customer.id, "001")
        self.store.set_status(account.id, "closed")
        with pytest.raises(ValidationError):
            self.store.set_status(account.id, AccountStatus.ACTIVE)

    def test_invalid_status(self):
        account = self.store.create_account(self.customer.id, "001")
        with pytest.raises(ValidationError):
            self.store.set_status(account.id, "frozen")

    def test_customer_with_accounts_cannot_be_deleted(self):
        self.store.create_account(self.customer.id, "001")
        with pytest.raises(ValidationError, match="existing accounts"):
            self.customers.delete_customer(self.customer.id)
        assert self.customers.get_customer(self.customer.id) is not None
