"""
Account Store Module

Single source of truth for account identity, status and balance.
Balances are stored, not derived; the Posting Engine is the only caller
allowed to change them, always paired with a ledger entry.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional
from enum import Enum
import secrets
import uuid

from .storage import StorageInterface, StorageRecord
from .customers import CustomerManager
from .branches import BranchRegistry
from .money import ZERO, quantize
from .exceptions import (
    ValidationError, NotFoundError, ConflictError, AccountNumberGenerationExhausted
)
from .logging_config import get_logger, log_action


REGULAR_SAVING = "REGULAR_SAVING"
ACCOUNT_NUMBER_ATTEMPTS = 100


class AccountStatus(Enum):
    """Account lifecycle states"""
    ACTIVE = "active"  # Normal operation
    CLOSED = "closed"  # Permanently closed, no reopening


@dataclass
class Account(StorageRecord):
    """
    Deposit account

    account_number is the branch code followed by a 7-digit random suffix.
    """
    account_number: str
    customer_id: str
    branch_code: str
    balance: Decimal = ZERO
    product_type: str = REGULAR_SAVING
    status: AccountStatus = AccountStatus.ACTIVE

    def __post_init__(self):
        if self.balance < ZERO:
            raise ValidationError("Account balance cannot be negative")

    @property
    def is_closed(self) -> bool:
        return self.status == AccountStatus.CLOSED


def random_account_suffix() -> int:
    """Uniform random 7-digit number in [1000000, 9999999]"""
    return 1_000_000 + secrets.randbelow(9_000_000)


class AccountStore:
    """
    Manages account records and their balances
    """

    def __init__(
        self,
        storage: StorageInterface,
        customer_manager: CustomerManager,
        branch_registry: BranchRegistry,
        max_attempts: int = ACCOUNT_NUMBER_ATTEMPTS,
        suffix_source: Optional[Callable[[], int]] = None
    ):
        self.storage = storage
        self.customer_manager = customer_manager
        self.branch_registry = branch_registry
        self.max_attempts = max_attempts
        self._suffix_source = suffix_source or random_account_suffix
        self.table_name = "accounts"
        self.logger = get_logger("secbank.accounts")

    def create_account(self, customer_id: str, branch_code: str) -> Account:
        """
        Open a new zero-balance account

        Args:
            customer_id: ID of account owner
            branch_code: 3-character branch code used as number prefix

        Returns:
            Created Account object

        Raises:
            NotFoundError: If the customer or branch does not exist
            AccountNumberGenerationExhausted: If no free number was found
        """
        if not self.customer_manager.get_customer(customer_id):
            raise NotFoundError(f"Customer {customer_id} not found")
        if not self.branch_registry.get_branch(branch_code):
            raise NotFoundError(f"Branch {branch_code} not found")

        # Number check and insert form one unit so two openings cannot claim the same number
        with self.storage.atomic():
            account_number = self._generate_account_number(branch_code)

            now = datetime.now(timezone.utc)
            account = Account(
                id=str(uuid.uuid4()),
                created_at=now,
                updated_at=now,
                account_number=account_number,
                customer_id=customer_id,
                branch_code=branch_code
            )
            self._save_account(account)

        log_action(
            self.logger, "info", "Account created",
            action="create_account", resource=f"account:{account.id}",
            extra={"account_number": account_number, "customer_id": customer_id, "branch_code": branch_code}
        )
        return account

    def get_account(self, account_id: str) -> Optional[Account]:
        """Get account by ID"""
        account_dict = self.storage.load(self.table_name, account_id)
        if account_dict:
            return self._account_from_dict(account_dict)
        return None

    def get_account_by_number(self, account_number: str) -> Optional[Account]:
        """Get account by account number"""
        accounts = self.storage.find(self.table_name, {"account_number": account_number})
        if accounts:
            return self._account_from_dict(accounts[0])
        return None

    def get_customer_accounts(self, customer_id: str) -> List[Account]:
        """Get all accounts for a customer"""
        accounts_data = self.storage.find(self.table_name, {"customer_id": customer_id})
        return [self._account_from_dict(data) for data in accounts_data]

    def list_accounts(self) -> List[Account]:
        """All accounts, newest first"""
        accounts = [self._account_from_dict(data) for data in self.storage.load_all(self.table_name)]
        accounts.sort(key=lambda a: a.created_at, reverse=True)
        return accounts

    def set_balance(
        self,
        account_id: str,
        new_balance: Decimal,
        expected_balance: Optional[Decimal] = None
    ) -> Account:
        """
        Overwrite an account's balance

        The caller computes new_balance from a read made under the account
        lock in the same atomic unit. When expected_balance is given the
        write only happens if the stored balance still equals it.

        Raises:
            NotFoundError: If the account does not exist
            ConflictError: If the stored balance differs from expected_balance
            ValidationError: If new_balance is negative
        """
        if new_balance < ZERO:
            raise ValidationError("Account balance cannot be negative")

        with self.storage.atomic():
            account = self.get_account(account_id)
            if not account:
                raise NotFoundError(f"Account {account_id} not found")

            if expected_balance is not None and account.balance != expected_balance:
                raise ConflictError(
                    f"Balance of account {account_id} changed concurrently: "
                    f"expected {expected_balance}, found {account.balance}"
                )

            account.balance = quantize(new_balance)
            account.updated_at = datetime.now(timezone.utc)
            self._save_account(account)

        return account

    def set_status(self, account_id: str, status: AccountStatus) -> Account:
        """
        Change account status; closed accounts are never reopened

        Raises:
            NotFoundError: If the account does not exist
            ValidationError: On an attempt to reopen a closed account
        """
        if not isinstance(status, AccountStatus):
            try:
                status = AccountStatus(status)
            except ValueError:
                raise ValidationError("Valid status (active/closed) is required")

        with self.storage.atomic():
            account = self.get_account(account_id)
            if not account:
                raise NotFoundError(f"Account {account_id} not found")

            if account.is_closed and status == AccountStatus.ACTIVE:
                raise ValidationError(f"Account {account_id} is closed and cannot be reopened")

            old_status = account.status
            account.status = status
            account.updated_at = datetime.now(timezone.utc)
            self._save_account(account)

        log_action(
            self.logger, "info", f"Account status {old_status.value} -> {status.value}",
            action="set_account_status", resource=f"account:{account_id}"
        )
        return account

    def close_account(self, account_id: str) -> Account:
        """Close an account"""
        return self.set_status(account_id, AccountStatus.CLOSED)

    def _generate_account_number(self, branch_code: str) -> str:
        """Draw random suffixes until one is unused"""
        for attempt in range(1, self.max_attempts + 1):
            account_number = f"{branch_code}{self._suffix_source():07d}"
            if not self.storage.find(self.table_name, {"account_number": account_number}):
                return account_number
            self.logger.debug(f"Account number collision on attempt {attempt}: {account_number}")

        raise AccountNumberGenerationExhausted(
            f"Failed to generate unique account number after {self.max_attempts} attempts"
        )

    def _save_account(self, account: Account) -> None:
        """Save account to storage"""
        self.storage.save(self.table_name, account.id, self._account_to_dict(account))

    def _account_to_dict(self, account: Account) -> Dict:
        """Convert Account to dictionary for storage"""
        result = account.to_dict()
        result['balance'] = str(account.balance)
        result['status'] = account.status.value
        return result

    def _account_from_dict(self, data: Dict) -> Account:
        """Convert dictionary to Account"""
        return Account(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            account_number=data['account_number'],
            customer_id=data['customer_id'],
            branch_code=data['branch_code'],
            balance=Decimal(data['balance']),
            product_type=data.get('product_type', REGULAR_SAVING),
            status=AccountStatus(data['status'])
        )
