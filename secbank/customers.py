"""
Customer Management Module

Customers are identified by a display name and own zero or more deposit
accounts. A customer cannot be deleted while any account references it.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional
import uuid

from .storage import StorageInterface, StorageRecord
from .exceptions import ValidationError, NotFoundError
from .logging_config import get_logger, log_action


@dataclass
class Customer(StorageRecord):
    """Account holder"""
    name: str

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValidationError("Customer name is required")


class CustomerManager:
    """
    Manages customer lifecycle
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "customers"
        self.accounts_table = "accounts"
        self.logger = get_logger("secbank.customers")

    def create_customer(self, name: str) -> Customer:
        """Create a new customer"""
        now = datetime.now(timezone.utc)
        customer = Customer(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            name=name.strip() if name else name
        )
        self.storage.save(self.table_name, customer.id, customer.to_dict())

        log_action(
            self.logger, "info", "Customer created",
            action="create_customer", resource=f"customer:{customer.id}"
        )
        return customer

    def get_customer(self, customer_id: str) -> Optional[Customer]:
        """Get customer by ID"""
        data = self.storage.load(self.table_name, customer_id)
        if data:
            return self._customer_from_dict(data)
        return None

    def list_customers(self) -> List[Customer]:
        """All customers, newest first"""
        customers = [self._customer_from_dict(data) for data in self.storage.load_all(self.table_name)]
        customers.sort(key=lambda c: c.created_at, reverse=True)
        return customers

    def update_customer(self, customer_id: str, name: str) -> Customer:
        """Rename a customer"""
        customer = self.get_customer(customer_id)
        if not customer:
            raise NotFoundError(f"Customer {customer_id} not found")

        if not name or not name.strip():
            raise ValidationError("Customer name is required")

        customer.name = name.strip()
        customer.updated_at = datetime.now(timezone.utc)
        self.storage.save(self.table_name, customer.id, customer.to_dict())
        return customer

    def delete_customer(self, customer_id: str) -> bool:
        """
        Delete a customer

        Raises:
            NotFoundError: If the customer does not exist
            ValidationError: If the customer still owns accounts
        """
        with self.storage.atomic():
            if not self.storage.exists(self.table_name, customer_id):
                raise NotFoundError(f"Customer {customer_id} not found")

            if self.storage.find(self.accounts_table, {"customer_id": customer_id}):
                raise ValidationError("Cannot delete customer with existing accounts")

            deleted = self.storage.delete(self.table_name, customer_id)

        log_action(
            self.logger, "info", "Customer deleted",
            action="delete_customer", resource=f"customer:{customer_id}"
        )
        return deleted

    def _customer_from_dict(self, data: Dict) -> Customer:
        """Convert dictionary to Customer"""
        return Customer(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            name=data['name']
        )
