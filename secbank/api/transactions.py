"""
Transaction endpoints
"""

from fastapi import APIRouter, Depends

from .deps import get_banking_system
from .schemas import DepositRequest, WithdrawRequest, TransferRequest, ok, entry_to_dict
from ..exceptions import NotFoundError
from ..system import BankingSystem


router = APIRouter()


@router.post("/deposit")
def deposit(request: DepositRequest, system: BankingSystem = Depends(get_banking_system)):
    """Make a deposit"""
    entry = system.posting_engine.deposit(request.account_id, request.amount, request.description)
    return ok(entry_to_dict(entry))


@router.post("/withdraw")
def withdraw(request: WithdrawRequest, system: BankingSystem = Depends(get_banking_system)):
    """Make a withdrawal"""
    entry = system.posting_engine.withdraw(request.account_id, request.amount, request.description)
    return ok(entry_to_dict(entry))


@router.post("/transfer")
def transfer(request: TransferRequest, system: BankingSystem = Depends(get_banking_system)):
    """Make a transfer between accounts of this bank"""
    entry = system.posting_engine.transfer_intrabank(
        from_account_id=request.from_account_id,
        to_account_number=request.to_account_number,
        amount=request.amount,
        description=request.description
    )
    return ok(entry_to_dict(entry))


@router.get("")
def list_recent_transactions(limit: int = 100, system: BankingSystem = Depends(get_banking_system)):
    return ok([entry_to_dict(e) for e in system.ledger.list_recent(limit)])


@router.get("/reference/{reference_number}")
def get_transaction_by_reference(reference_number: str, system: BankingSystem = Depends(get_banking_system)):
    entry = system.posting_engine.query_ledger(reference_number=reference_number)
    if not entry:
        raise NotFoundError("Transaction not found")
    return ok(entry_to_dict(entry))
