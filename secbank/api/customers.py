"""
Customer endpoints
"""

from decimal import Decimal
from typing import Dict, List
from fastapi import APIRouter, Depends

from .deps import get_banking_system
from .schemas import CreateCustomerRequest, UpdateCustomerRequest, ok, customer_to_dict, account_to_dict
from ..exceptions import NotFoundError
from ..money import ZERO
from ..system import BankingSystem


router = APIRouter()


@router.post("", status_code=201)
def create_customer(
    request: CreateCustomerRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Create a new customer"""
    customer = system.customer_manager.create_customer(request.name)
    return ok(customer_to_dict(customer))


@router.get("")
def list_customers(system: BankingSystem = Depends(get_banking_system)):
    """List all customers with their account count and combined balance"""
    holdings: Dict[str, List[Decimal]] = {}
    for account in system.account_store.list_accounts():
        holdings.setdefault(account.customer_id, []).append(account.balance)

    customers = []
    for customer in system.customer_manager.list_customers():
        balances = holdings.get(customer.id, [])
        data = customer_to_dict(customer)
        data["account_count"] = len(balances)
        data["total_balance"] = str(sum(balances, ZERO))
        customers.append(data)
    return ok(customers)


@router.get("/{customer_id}")
def get_customer(customer_id: str, system: BankingSystem = Depends(get_banking_system)):
    """Get customer with their accounts"""
    customer = system.customer_manager.get_customer(customer_id)
    if not customer:
        raise NotFoundError("Customer not found")

    data = customer_to_dict(customer)
    data["accounts"] = [
        account_to_dict(a) for a in system.account_store.get_customer_accounts(customer_id)
    ]
    return ok(data)


@router.put("/{customer_id}")
def update_customer(
    customer_id: str,
    request: UpdateCustomerRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Rename a customer"""
    customer = system.customer_manager.update_customer(customer_id, request.name)
    return ok(customer_to_dict(customer))


@router.delete("/{customer_id}")
def delete_customer(customer_id: str, system: BankingSystem = Depends(get_banking_system)):
    """Delete a customer without accounts"""
    system.customer_manager.delete_customer(customer_id)
    return ok({"id": customer_id, "deleted": True})
