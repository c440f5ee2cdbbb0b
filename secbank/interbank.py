"""
Interbank (Instapay) Transfer Records

Pending-state objects kept beside the ledger for transfers sent through the
external payment switch. Each record shares its reference number with the
INSTAPAY debit entry in the ledger.

State machine:
    PENDING -> SUCCESS   terminal, debit is final
    PENDING -> FAILED    terminal, triggers a compensating reversal
    PENDING -> PENDING   metadata refresh only
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Any, Dict, List, Optional
from enum import Enum
import uuid

from .storage import StorageInterface, StorageRecord
from .exceptions import ValidationError, NotFoundError, ConflictError
from .money import format_amount


class InterbankStatus(Enum):
    """Interbank transfer status as reported by the switch"""
    PENDING = "PENDING"
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"

    @property
    def is_terminal(self) -> bool:
        return self in (InterbankStatus.SUCCESS, InterbankStatus.FAILED)


ALLOWED_TRANSITIONS = {
    InterbankStatus.PENDING: {InterbankStatus.PENDING, InterbankStatus.SUCCESS, InterbankStatus.FAILED},
    InterbankStatus.SUCCESS: set(),
    InterbankStatus.FAILED: set(),
}


def parse_status(value: Any) -> InterbankStatus:
    """Accept an InterbankStatus or its string name"""
    if isinstance(value, InterbankStatus):
        return value
    try:
        return InterbankStatus(str(value).upper())
    except ValueError:
        raise ValidationError("Invalid status. Must be SUCCESS, FAILED, or PENDING")


@dataclass
class InterbankTransfer(StorageRecord):
    """Outbound Instapay transfer awaiting or holding a switch result"""
    reference_number: str
    source_account_id: str
    source_account_number: str
    bank_code: str
    bank_name: str
    destination_account_number: str
    destination_account_name: str
    amount: Decimal
    status: InterbankStatus = InterbankStatus.PENDING
    switch_reference_number: Optional[str] = None
    status_message: Optional[str] = None
    sent_at: Optional[datetime] = None

    def __post_init__(self):
        if self.sent_at is None:
            self.sent_at = self.created_at

    def can_transition_to(self, new_status: InterbankStatus) -> bool:
        return new_status in ALLOWED_TRANSITIONS[self.status]


@dataclass(frozen=True)
class SwitchPayload:
    """Message handed to the gateway adapter for transmission to the switch"""
    reference_number: str
    source_account_number: str
    bank_code: str
    bank_name: str
    destination_account_number: str
    destination_account_name: str
    amount: Decimal
    timestamp: datetime

    def to_dict(self) -> Dict[str, str]:
        return {
            "referenceNumber": self.reference_number,
            "sourceAccountNumber": self.source_account_number,
            "bankCode": self.bank_code,
            "bankName": self.bank_name,
            "accountNumber": self.destination_account_number,
            "accountName": self.destination_account_name,
            "amount": format_amount(self.amount),
            "currency": "PHP",
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_transfer(cls, transfer: InterbankTransfer) -> 'SwitchPayload':
        return cls(
            reference_number=transfer.reference_number,
            source_account_number=transfer.source_account_number,
            bank_code=transfer.bank_code,
            bank_name=transfer.bank_name,
            destination_account_number=transfer.destination_account_number,
            destination_account_name=transfer.destination_account_name,
            amount=transfer.amount,
            timestamp=transfer.sent_at,
        )


class InterbankTransferStore:
    """
    Persists interbank transfer records keyed by reference number
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "interbank_transfers"

    def create(
        self,
        reference_number: str,
        source_account_id: str,
        source_account_number: str,
        bank_code: str,
        bank_name: str,
        destination_account_number: str,
        destination_account_name: str,
        amount: Decimal
    ) -> InterbankTransfer:
        """Insert a new PENDING record"""
        if self.storage.exists(self.table_name, reference_number):
            raise ConflictError(f"Interbank transfer {reference_number} already exists")

        now = datetime.now(timezone.utc)
        transfer = InterbankTransfer(
            id=str(uuid.uuid4()),
            created_at=now,
            updated_at=now,
            reference_number=reference_number,
            source_account_id=source_account_id,
            source_account_number=source_account_number,
            bank_code=bank_code,
            bank_name=bank_name,
            destination_account_number=destination_account_number,
            destination_account_name=destination_account_name,
            amount=amount,
            sent_at=now
        )
        self._save(transfer)
        return transfer

    def get_by_reference(self, reference_number: str) -> Optional[InterbankTransfer]:
        """Get transfer by reference number"""
        data = self.storage.load(self.table_name, reference_number)
        if data:
            return self._transfer_from_dict(data)
        return None

    def list_all(self, limit: Optional[int] = 100) -> List[InterbankTransfer]:
        """Transfers, most recently sent first"""
        transfers = [self._transfer_from_dict(data) for data in self.storage.load_all(self.table_name)]
        transfers.sort(key=lambda t: t.sent_at, reverse=True)
        return transfers[:limit] if limit else transfers

    def list_pending(self) -> List[InterbankTransfer]:
        """PENDING transfers, oldest first"""
        pending = [
            self._transfer_from_dict(data)
            for data in self.storage.find(self.table_name, {"status": InterbankStatus.PENDING.value})
        ]
        pending.sort(key=lambda t: t.sent_at)
        return pending

    def transition(
        self,
        reference_number: str,
        new_status: InterbankStatus,
        switch_reference_number: Optional[str] = None,
        status_message: Optional[str] = None
    ) -> InterbankTransfer:
        """
        Move a record along the state machine

        Raises:
            NotFoundError: If no record has this reference
            ConflictError: If the transition leaves a terminal state
        """
        transfer = self.get_by_reference(reference_number)
        if not transfer:
            raise NotFoundError("Instapay transaction not found")

        if not transfer.can_transition_to(new_status):
            raise ConflictError(
                f"Instapay transaction {reference_number} is already {transfer.status.value}"
            )

        transfer.status = new_status
        transfer.switch_reference_number = switch_reference_number or transfer.switch_reference_number
        transfer.status_message = status_message or transfer.status_message
        transfer.updated_at = datetime.now(timezone.utc)
        self._save(transfer)
        return transfer

    def _save(self, transfer: InterbankTransfer) -> None:
        result = transfer.to_dict()
        result['amount'] = str(transfer.amount)
        result['status'] = transfer.status.value
        result['sent_at'] = transfer.sent_at.isoformat()
        self.storage.save(self.table_name, transfer.reference_number, result)

    def _transfer_from_dict(self, data: Dict) -> InterbankTransfer:
        return InterbankTransfer(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            reference_number=data['reference_number'],
            source_account_id=data['source_account_id'],
            source_account_number=data['source_account_number'],
            bank_code=data['bank_code'],
            bank_name=data['bank_name'],
            destination_account_number=data['destination_account_number'],
            destination_account_name=data['destination_account_name'],
            amount=Decimal(data['amount']),
            status=InterbankStatus(data['status']),
            switch_reference_number=data.get('switch_reference_number'),
            status_message=data.get('status_message'),
            sent_at=datetime.fromisoformat(data['sent_at'])
        )
