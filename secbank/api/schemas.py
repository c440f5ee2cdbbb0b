"""
Pydantic schemas for API requests and response serializers
"""

from typing import Any, Dict, Optional, Union
from pydantic import BaseModel, Field

from ..accounts import Account
from ..branches import Branch
from ..customers import Customer
from ..ledger import LedgerEntry
from ..interbank import InterbankTransfer
from ..posting import CallbackAcknowledgement


AmountField = Union[str, int]


class CreateCustomerRequest(BaseModel):
    name: str


class UpdateCustomerRequest(BaseModel):
    name: str


class CreateBranchRequest(BaseModel):
    code: str = Field(..., description="Exactly 3 characters, e.g. 001")
    name: str


class CreateAccountRequest(BaseModel):
    customer_id: str
    branch_code: str


class UpdateAccountStatusRequest(BaseModel):
    status: str = Field(..., description="active or closed")


class DepositRequest(BaseModel):
    account_id: str
    amount: AmountField = Field(..., description="Decimal amount as string")
    description: Optional[str] = None


class WithdrawRequest(BaseModel):
    account_id: str
    amount: AmountField = Field(..., description="Decimal amount as string")
    description: Optional[str] = None


class TransferRequest(BaseModel):
    from_account_id: str
    to_account_number: str
    amount: AmountField = Field(..., description="Decimal amount as string")
    description: Optional[str] = None


class InstapaySendRequest(BaseModel):
    source_account_id: str
    bank_name: str
    bank_code: Optional[str] = None  # Derived from bank_name when omitted
    account_number: str
    account_name: str
    amount: AmountField = Field(..., description="Decimal amount as string")


class InstapayCallbackRequest(BaseModel):
    reference_number: str
    status: str = Field(..., description="SUCCESS, FAILED or PENDING")
    switch_reference_number: Optional[str] = None
    message: Optional[str] = None


def ok(data: Any) -> Dict[str, Any]:
    """Successful response envelope"""
    return {"success": True, "data": data}


def customer_to_dict(customer: Customer) -> Dict[str, Any]:
    return customer.to_dict()


def branch_to_dict(branch: Branch) -> Dict[str, Any]:
    return {"code": branch.code, "name": branch.name}


def account_to_dict(account: Account) -> Dict[str, Any]:
    return {
        "id": account.id,
        "account_number": account.account_number,
        "customer_id": account.customer_id,
        "branch_code": account.branch_code,
        "balance": str(account.balance),
        "product_type": account.product_type,
        "status": account.status.value,
        "created_at": account.created_at.isoformat(),
        "updated_at": account.updated_at.isoformat(),
    }


def entry_to_dict(entry: LedgerEntry) -> Dict[str, Any]:
    return entry.to_dict()


def transfer_to_dict(transfer: InterbankTransfer) -> Dict[str, Any]:
    return {
        "reference_number": transfer.reference_number,
        "switch_reference_number": transfer.switch_reference_number,
        "source_account_id": transfer.source_account_id,
        "source_account_number": transfer.source_account_number,
        "bank_code": transfer.bank_code,
        "bank_name": transfer.bank_name,
        "destination_account_number": transfer.destination_account_number,
        "destination_account_name": transfer.destination_account_name,
        "amount": str(transfer.amount),
        "status": transfer.status.value,
        "status_message": transfer.status_message,
        "sent_at": transfer.sent_at.isoformat(),
        "updated_at": transfer.updated_at.isoformat(),
    }


def acknowledgement_to_dict(ack: CallbackAcknowledgement) -> Dict[str, Any]:
    return {
        "reference_number": ack.reference_number,
        "status": ack.status.value,
        "acknowledged": ack.acknowledged,
        "already_final": ack.already_final,
        "reversal_reference_number": ack.reversal_entry.reference_number if ack.reversal_entry else None,
    }
