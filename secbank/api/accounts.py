"""
Account endpoints
"""

from fastapi import APIRouter, Depends

from .deps import get_banking_system
from .schemas import (
    CreateAccountRequest, UpdateAccountStatusRequest, ok, account_to_dict, entry_to_dict
)
from ..exceptions import NotFoundError
from ..system import BankingSystem


router = APIRouter()


@router.post("", status_code=201)
def create_account(request: CreateAccountRequest, system: BankingSystem = Depends(get_banking_system)):
    """Open a zero-balance account"""
    account = system.account_store.create_account(request.customer_id, request.branch_code)
    return ok(account_to_dict(account))


@router.get("")
def list_accounts(system: BankingSystem = Depends(get_banking_system)):
    return ok([account_to_dict(a) for a in system.account_store.list_accounts()])


@router.get("/number/{account_number}")
def get_account_by_number(account_number: str, system: BankingSystem = Depends(get_banking_system)):
    account = system.account_store.get_account_by_number(account_number)
    if not account:
        raise NotFoundError("Account not found")
    return ok(account_to_dict(account))


@router.get("/{account_id}")
def get_account(account_id: str, system: BankingSystem = Depends(get_banking_system)):
    account = system.account_store.get_account(account_id)
    if not account:
        raise NotFoundError("Account not found")
    return ok(account_to_dict(account))


@router.get("/{account_id}/balance")
def get_account_balance(account_id: str, system: BankingSystem = Depends(get_banking_system)):
    account = system.account_store.get_account(account_id)
    if not account:
        raise NotFoundError("Account not found")
    return ok({
        "account_id": account.id,
        "account_number": account.account_number,
        "balance": str(account.balance),
    })


@router.patch("/{account_id}/status")
def update_account_status(
    account_id: str,
    request: UpdateAccountStatusRequest,
    system: BankingSystem = Depends(get_banking_system)
):
    """Close an account (closed accounts cannot be reopened)"""
    account = system.account_store.set_status(account_id, request.status)
    return ok(account_to_dict(account))


@router.get("/{account_id}/transactions")
def get_account_transactions(account_id: str, system: BankingSystem = Depends(get_banking_system)):
    """Ledger entries of an account, newest first"""
    if not system.account_store.get_account(account_id):
        raise NotFoundError("Account not found")
    entries = system.posting_engine.query_ledger(account_id=account_id)
    return ok([entry_to_dict(e) for e in entries])
