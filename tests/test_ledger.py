"""
Tests for the append-only ledger
"""

import pytest
from decimal import Decimal

from secbank.storage import InMemoryStorage
from secbank.ledger import Ledger, LedgerEntry, TransactionType
from secbank.exceptions import ConflictError, ValidationError


class TestLedger:

    def setup_method(self):
        self.storage = InMemoryStorage()
        self.ledger = Ledger(self.storage)

    def test_append_and_query_by_reference(self):
        entry = self.ledger.append(
            reference_number="TXN20260115000001",
            account_id="acc-1",
            transaction_type=TransactionType.DEPOSIT,
            amount=Decimal("1000.00"),
            balance_after=Decimal("1000.00"),
            description="Manual Deposit"
        )

        found = self.ledger.query_by_reference("TXN20260115000001")
        assert found == entry
        assert found.is_credit
        assert not found.is_debit
        assert self.ledger.query_by_reference("TXN20260115999999") is None

    def test_duplicate_reference_rejected(self):
        self.ledger.append("TXN20260115000001", "acc-1", TransactionType.DEPOSIT,
                           Decimal("10.00"), Decimal("10.00"))
        with pytest.raises(ConflictError):
            self.ledger.append("TXN20260115000001", "acc-2", TransactionType.DEPOSIT,
                               Decimal("10.00"), Decimal("10.00"))
        assert self.ledger.count() == 1

    def test_zero_amount_rejected(self):
        with pytest.raises(ValidationError):
            self.ledger.append("TXN20260115000001", "acc-1", TransactionType.DEPOSIT,
                               Decimal("0.00"), Decimal("0.00"))

    def test_negative_balance_after_rejected(self):
        with pytest.raises(ValidationError):
            self.ledger.append("TXN20260115000001", "acc-1", TransactionType.WITHDRAWAL,
                               Decimal("-10.00"), Decimal("-10.00"))

    def test_query_by_account_newest_first(self):
        balance = Decimal("0.00")
        for i in range(1, 6):
            balance += Decimal("10.00")
            self.ledger.append(f"TXN20260115{i:06d}", "acc-1", TransactionType.DEPOSIT,
                               Decimal("10.00"), balance)
        self.ledger.append("TXN20260115000006", "acc-2", TransactionType.DEPOSIT,
                           Decimal("5.00"), Decimal("5.00"))

        entries = self.ledger.query_by_account("acc-1")
        assert [e.reference_number for e in entries] == [f"TXN20260115{i:06d}" for i in range(5, 0, -1)]
        assert entries[0].balance_after == Decimal("50.00")

    def test_list_recent_limit(self):
        for i in range(1, 6):
            self.ledger.append(f"TXN20260115{i:06d}", "acc-1", TransactionType.DEPOSIT,
                               Decimal("1.00"), Decimal(i))
        recent = self.ledger.list_recent(limit=2)
        assert [e.reference_number for e in recent] == ["TXN20260115000005", "TXN20260115000004"]

    def test_entry_round_trips_through_storage(self):
        entry = self.ledger.append(
            "TXN20260115000001", "acc-1", TransactionType.INTERNAL_TRANSFER,
            Decimal("-20.00"), Decimal("80.00"),
            related_account_id="acc-2", related_account_number="0021234567",
            description="Transfer to 0021234567"
        )
        assert LedgerEntry.from_dict(entry.to_dict()) == entry

    def test_entries_are_immutable(self):
        entry = self.ledger.append("TXN20260115000001", "acc-1", TransactionType.DEPOSIT,
                                   Decimal("1.00"), Decimal("1.00"))
        with pytest.raises(AttributeError):
            entry.amount = Decimal("2.00")

    def test_no_update_or_delete_operations(self):
        assert not hasattr(self.ledger, "update")
        assert not hasattr(self.ledger, "delete")
