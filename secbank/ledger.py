"""
Ledger Module

Append-only record of balance-affecting events. One row per balance change,
carrying the signed delta and the resulting balance. Rows are immutable once
written: there is no update or delete; corrections are new offsetting rows.
"""

from decimal import Decimal
from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional
from enum import Enum
import uuid

from .storage import StorageInterface
from .exceptions import ConflictError, ValidationError
from .money import ZERO


class TransactionType(Enum):
    """Types of ledger entries"""
    DEPOSIT = "DEPOSIT"                      # Credit, also used for reversals
    WITHDRAWAL = "WITHDRAWAL"                # Debit
    INTERNAL_TRANSFER = "INTERNAL_TRANSFER"  # One leg of an intrabank transfer
    INSTAPAY = "INSTAPAY"                    # Interbank debit


@dataclass(frozen=True)
class LedgerEntry:
    """
    Immutable ledger row

    amount is signed: positive credits the account, negative debits it.
    """
    id: str
    created_at: datetime
    reference_number: str
    account_id: str
    transaction_type: TransactionType
    amount: Decimal
    balance_after: Decimal
    related_account_id: Optional[str] = None
    related_account_number: Optional[str] = None
    description: Optional[str] = None

    @property
    def is_credit(self) -> bool:
        return self.amount > ZERO

    @property
    def is_debit(self) -> bool:
        return self.amount < ZERO

    def to_dict(self) -> Dict:
        """Convert to dictionary for storage"""
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "reference_number": self.reference_number,
            "account_id": self.account_id,
            "transaction_type": self.transaction_type.value,
            "amount": str(self.amount),
            "balance_after": str(self.balance_after),
            "related_account_id": self.related_account_id,
            "related_account_number": self.related_account_number,
            "description": self.description,
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'LedgerEntry':
        """Create LedgerEntry from dictionary"""
        return cls(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            reference_number=data['reference_number'],
            account_id=data['account_id'],
            transaction_type=TransactionType(data['transaction_type']),
            amount=Decimal(data['amount']),
            balance_after=Decimal(data['balance_after']),
            related_account_id=data.get('related_account_id'),
            related_account_number=data.get('related_account_number'),
            description=data.get('description'),
        )


class Ledger:
    """
    Append-only ledger of LedgerEntry rows
    """

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "ledger_entries"

    def append(
        self,
        reference_number: str,
        account_id: str,
        transaction_type: TransactionType,
        amount: Decimal,
        balance_after: Decimal,
        related_account_id: Optional[str] = None,
        related_account_number: Optional[str] = None,
        description: Optional[str] = None
    ) -> LedgerEntry:
        """
        Write one immutable ledger row

        Returns:
            The stored LedgerEntry with generated id and timestamp

        Raises:
            ValidationError: On a zero amount or negative resulting balance
            ConflictError: If the reference number is already used
        """
        if amount == ZERO:
            raise ValidationError("Ledger entry amount cannot be zero")
        if balance_after < ZERO:
            raise ValidationError("Ledger entry balance_after cannot be negative")

        entry = LedgerEntry(
            id=str(uuid.uuid4()),
            created_at=datetime.now(timezone.utc),
            reference_number=reference_number,
            account_id=account_id,
            transaction_type=transaction_type,
            amount=amount,
            balance_after=balance_after,
            related_account_id=related_account_id,
            related_account_number=related_account_number,
            description=description
        )

        with self.storage.atomic():
            if self.storage.find(self.table_name, {"reference_number": reference_number}):
                raise ConflictError(f"Reference number {reference_number} already used in ledger")
            self.storage.save(self.table_name, entry.id, entry.to_dict())

        return entry

    def query_by_account(self, account_id: str) -> List[LedgerEntry]:
        """All entries of an account, newest first"""
        entries = [
            LedgerEntry.from_dict(data)
            for data in self.storage.find(self.table_name, {"account_id": account_id})
        ]
        return self._newest_first(entries)

    def query_by_reference(self, reference_number: str) -> Optional[LedgerEntry]:
        """Entry carrying a reference number, if any"""
        found = self.storage.find(self.table_name, {"reference_number": reference_number})
        if found:
            return LedgerEntry.from_dict(found[0])
        return None

    def list_recent(self, limit: Optional[int] = 100) -> List[LedgerEntry]:
        """Most recent entries across all accounts"""
        entries = self._newest_first(
            [LedgerEntry.from_dict(data) for data in self.storage.load_all(self.table_name)]
        )
        if limit:
            entries = entries[:limit]
        return entries

    def count(self) -> int:
        return self.storage.count(self.table_name)

    @staticmethod
    def _newest_first(entries: List[LedgerEntry]) -> List[LedgerEntry]:
        # References sort by date then sequence, which breaks timestamp ties
        entries.sort(key=lambda e: (e.created_at, e.reference_number), reverse=True)
        return entries
