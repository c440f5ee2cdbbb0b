"""
Instapay (interbank) endpoints
"""

from fastapi import APIRouter, Depends

from .deps import get_banking_system
from .schemas import (
    InstapaySendRequest, InstapayCallbackRequest, ok, transfer_to_dict, acknowledgement_to_dict
)
from ..exceptions import NotFoundError
from ..gateway import resolve_bank_code
from ..interbank import InterbankStatus
from ..system import BankingSystem


router = APIRouter()


@router.post("/send")
def send_instapay(request: InstapaySendRequest, system: BankingSystem = Depends(get_banking_system)):
    """
    Debit the source account and hand the transfer to the switch

    A submission the switch refuses is settled at once as FAILED, which
    credits the amount back.
    """
    engine = system.posting_engine
    result = engine.send_interbank(
        source_account_id=request.source_account_id,
        bank_code=request.bank_code or resolve_bank_code(request.bank_name),
        bank_name=request.bank_name,
        dest_account_number=request.account_number,
        dest_account_name=request.account_name,
        amount=request.amount
    )

    ack = system.gateway.submit(result.switch_payload)
    if not ack.accepted:
        engine.apply_interbank_callback(
            result.reference_number, InterbankStatus.FAILED, message=ack.message
        )
    elif ack.switch_reference_number:
        engine.apply_interbank_callback(
            result.reference_number, InterbankStatus.PENDING,
            switch_reference_number=ack.switch_reference_number, message=ack.message
        )

    transfer = engine.get_interbank_transfer(result.reference_number)
    return ok({
        "reference_number": result.reference_number,
        "status": transfer.status.value,
        "switch_accepted": ack.accepted,
        "message": ack.message,
        "transfer": transfer_to_dict(transfer),
    })


@router.get("/status/{reference_number}")
def get_instapay_status(reference_number: str, system: BankingSystem = Depends(get_banking_system)):
    transfer = system.posting_engine.get_interbank_transfer(reference_number)
    if not transfer:
        raise NotFoundError("Instapay transaction not found")
    return ok(transfer_to_dict(transfer))


@router.post("/callback")
def instapay_callback(request: InstapayCallbackRequest, system: BankingSystem = Depends(get_banking_system)):
    """Status report from the switch; repeated reports are acknowledged without effect"""
    ack = system.posting_engine.apply_interbank_callback(
        request.reference_number,
        request.status,
        switch_reference_number=request.switch_reference_number,
        message=request.message
    )
    return ok(acknowledgement_to_dict(ack))


@router.get("")
def list_instapay(limit: int = 100, system: BankingSystem = Depends(get_banking_system)):
    """Transfers in any state, most recently sent first"""
    return ok([transfer_to_dict(t) for t in system.posting_engine.list_interbank(limit)])


@router.get("/pending")
def list_pending_instapay(system: BankingSystem = Depends(get_banking_system)):
    """PENDING transfers, oldest first"""
    return ok([transfer_to_dict(t) for t in system.posting_engine.list_pending_interbank()])
