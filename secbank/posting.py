"""
Transaction Posting Engine

The only component that changes account balances. Every balance change is
paired with exactly one ledger entry and carries its own reference number;
both are written inside one storage atomic unit while the affected
accounts are locked.

Supported postings:
    deposit             credit, DEPOSIT entry
    withdraw            debit, WITHDRAWAL entry
    transfer_intrabank  debit + credit, two INTERNAL_TRANSFER entries
    send_interbank      debit, INSTAPAY entry + PENDING interbank record
    callback FAILED     credit, DEPOSIT entry reversing the Instapay debit
"""

from decimal import Decimal
from dataclasses import dataclass
from typing import List, Optional, Union

from .storage import StorageInterface
from .accounts import Account, AccountStore
from .ledger import Ledger, LedgerEntry, TransactionType
from .references import ReferenceNumberGenerator
from .interbank import (
    InterbankStatus, InterbankTransfer, InterbankTransferStore, SwitchPayload, parse_status
)
from .locks import KeyedLock, account_key, interbank_key
from .money import AmountLike, to_positive_amount, display_amount
from .exceptions import (
    BankingError, ValidationError, NotFoundError, InsufficientBalance, AccountClosed
)
from .logging_config import get_logger, log_action


DEFAULT_INTERBANK_MAX_AMOUNT = Decimal("50000.00")


@dataclass
class InterbankSendResult:
    """Outcome of debiting an Instapay transfer, before any switch I/O"""
    reference_number: str
    status: InterbankStatus
    switch_payload: SwitchPayload
    transfer: InterbankTransfer
    entry: LedgerEntry


@dataclass
class CallbackAcknowledgement:
    """Answer returned to the switch for a status callback"""
    reference_number: str
    status: InterbankStatus
    acknowledged: bool = True
    already_final: bool = False
    reversal_entry: Optional[LedgerEntry] = None


class PostingEngine:
    """
    Posts money movements against accounts
    """

    def __init__(
        self,
        storage: StorageInterface,
        accounts: AccountStore,
        ledger: Ledger,
        references: ReferenceNumberGenerator,
        interbank_store: InterbankTransferStore,
        locks: Optional[KeyedLock] = None,
        interbank_max_amount: Decimal = DEFAULT_INTERBANK_MAX_AMOUNT
    ):
        self.storage = storage
        self.accounts = accounts
        self.ledger = ledger
        self.references = references
        self.interbank_store = interbank_store
        self.locks = locks or references.locks
        self.interbank_max_amount = interbank_max_amount
        self.logger = get_logger("secbank.posting")

    def deposit(self, account_id: str, amount: AmountLike, description: Optional[str] = None) -> LedgerEntry:
        """
        Credit an account

        Raises:
            ValidationError: If the amount is not positive
            NotFoundError: If the account does not exist
            AccountClosed: If the account is closed
        """
        amount = self._parse_amount(amount, "deposit", account_id)
        self._require_account(account_id, "deposit")

        with self.locks.hold(account_key(account_id)), self.storage.atomic():
            account = self._require_account(account_id, "deposit")
            self._require_open(account, "deposit")

            new_balance = account.balance + amount
            reference_number = self.references.next_reference()
            self.accounts.set_balance(account.id, new_balance, expected_balance=account.balance)
            entry = self.ledger.append(
                reference_number=reference_number,
                account_id=account.id,
                transaction_type=TransactionType.DEPOSIT,
                amount=amount,
                balance_after=new_balance,
                description=description or "Manual Deposit"
            )

        self._log_posting("Deposit posted", "deposit", entry)
        return entry

    def withdraw(self, account_id: str, amount: AmountLike, description: Optional[str] = None) -> LedgerEntry:
        """
        Debit an account

        Raises:
            ValidationError: If the amount is not positive
            NotFoundError: If the account does not exist
            AccountClosed: If the account is closed
            InsufficientBalance: If the amount exceeds the balance
        """
        amount = self._parse_amount(amount, "withdraw", account_id)
        self._require_account(account_id, "withdraw")

        with self.locks.hold(account_key(account_id)), self.storage.atomic():
            account = self._require_account(account_id, "withdraw")
            self._require_open(account, "withdraw")
            self._require_funds(account, amount, "withdraw")

            new_balance = account.balance - amount
            reference_number = self.references.next_reference()
            self.accounts.set_balance(account.id, new_balance, expected_balance=account.balance)
            entry = self.ledger.append(
                reference_number=reference_number,
                account_id=account.id,
                transaction_type=TransactionType.WITHDRAWAL,
                amount=-amount,
                balance_after=new_balance,
                description=description or "Manual Withdrawal"
            )

        self._log_posting("Withdrawal posted", "withdraw", entry)
        return entry

    def transfer_intrabank(
        self,
        from_account_id: str,
        to_account_number: str,
        amount: AmountLike,
        description: Optional[str] = None
    ) -> LedgerEntry:
        """
        Move funds between two accounts of this bank

        Each leg receives its own reference number; the legs point at each
        other through related_account_id and related_account_number.

        Returns:
            The source (debit) ledger entry
        """
        amount = self._parse_amount(amount, "transfer_intrabank", from_account_id)
        source = self._require_account(from_account_id, "transfer_intrabank")

        destination = self.accounts.get_account_by_number(to_account_number or "")
        if not destination:
            raise self._rejected(
                NotFoundError("Destination account not found"), "transfer_intrabank", from_account_id
            )
        if destination.id == source.id:
            raise self._rejected(
                ValidationError("Cannot transfer to the same account"), "transfer_intrabank", from_account_id
            )

        with self.locks.hold(account_key(source.id), account_key(destination.id)), self.storage.atomic():
            source = self._require_account(source.id, "transfer_intrabank")
            destination = self._require_account(destination.id, "transfer_intrabank")
            self._require_open(source, "transfer_intrabank")
            self._require_open(destination, "transfer_intrabank")
            self._require_funds(source, amount, "transfer_intrabank")

            source_balance = source.balance - amount
            destination_balance = destination.balance + amount

            source_reference = self.references.next_reference()
            destination_reference = self.references.next_reference()

            self.accounts.set_balance(source.id, source_balance, expected_balance=source.balance)
            self.accounts.set_balance(destination.id, destination_balance, expected_balance=destination.balance)

            source_entry = self.ledger.append(
                reference_number=source_reference,
                account_id=source.id,
                transaction_type=TransactionType.INTERNAL_TRANSFER,
                amount=-amount,
                balance_after=source_balance,
                related_account_id=destination.id,
                related_account_number=destination.account_number,
                description=description or f"Transfer to {destination.account_number}"
            )
            destination_entry = self.ledger.append(
                reference_number=destination_reference,
                account_id=destination.id,
                transaction_type=TransactionType.INTERNAL_TRANSFER,
                amount=amount,
                balance_after=destination_balance,
                related_account_id=source.id,
                related_account_number=source.account_number,
                description=description or f"Transfer from {source.account_number}"
            )

        self._log_posting("Intrabank transfer posted", "transfer_intrabank", source_entry,
                          counterpart_reference=destination_entry.reference_number)
        return source_entry

    def send_interbank(
        self,
        source_account_id: str,
        bank_code: str,
        bank_name: str,
        dest_account_number: str,
        dest_account_name: str,
        amount: AmountLike
    ) -> InterbankSendResult:
        """
        Debit an Instapay transfer and record it as PENDING

        No network I/O happens here; the returned payload is handed to a
        gateway by the caller and the outcome arrives later through
        apply_interbank_callback.

        Raises:
            ValidationError: On a bad amount, an amount over the ceiling or
                missing destination fields
            NotFoundError: If the source account does not exist
            AccountClosed: If the source account is closed
            InsufficientBalance: If the amount exceeds the balance
        """
        amount = self._parse_amount(amount, "send_interbank", source_account_id)
        if amount > self.interbank_max_amount:
            raise self._rejected(
                ValidationError(
                    f"Amount exceeds Instapay limit of {display_amount(self.interbank_max_amount)}"
                ),
                "send_interbank", source_account_id
            )

        for field_name, value in (
            ("bank_code", bank_code),
            ("bank_name", bank_name),
            ("dest_account_number", dest_account_number),
            ("dest_account_name", dest_account_name),
        ):
            if not value or not str(value).strip():
                raise self._rejected(
                    ValidationError(f"{field_name} is required"), "send_interbank", source_account_id
                )

        self._require_account(source_account_id, "send_interbank")

        with self.locks.hold(account_key(source_account_id)), self.storage.atomic():
            account = self._require_account(source_account_id, "send_interbank")
            self._require_open(account, "send_interbank")
            self._require_funds(account, amount, "send_interbank")

            new_balance = account.balance - amount
            reference_number = self.references.next_reference()
            self.accounts.set_balance(account.id, new_balance, expected_balance=account.balance)
            entry = self.ledger.append(
                reference_number=reference_number,
                account_id=account.id,
                transaction_type=TransactionType.INSTAPAY,
                amount=-amount,
                balance_after=new_balance,
                related_account_number=dest_account_number,
                description=f"Instapay to {dest_account_name} at {bank_name}"
            )
            transfer = self.interbank_store.create(
                reference_number=reference_number,
                source_account_id=account.id,
                source_account_number=account.account_number,
                bank_code=bank_code,
                bank_name=bank_name,
                destination_account_number=dest_account_number,
                destination_account_name=dest_account_name,
                amount=amount
            )

        self._log_posting("Instapay transfer debited", "send_interbank", entry, bank_code=bank_code)
        return InterbankSendResult(
            reference_number=reference_number,
            status=transfer.status,
            switch_payload=SwitchPayload.from_transfer(transfer),
            transfer=transfer,
            entry=entry
        )

    def apply_interbank_callback(
        self,
        reference_number: str,
        status: Union[str, InterbankStatus],
        switch_reference_number: Optional[str] = None,
        message: Optional[str] = None
    ) -> CallbackAcknowledgement:
        """
        Apply a switch status report to a PENDING interbank transfer

        A FAILED report credits the original amount back with a DEPOSIT
        reversal entry. Reports arriving after the transfer reached
        SUCCESS or FAILED change nothing and are acknowledged with the
        recorded status.

        Raises:
            ValidationError: If the status is not PENDING, SUCCESS or FAILED
            NotFoundError: If no transfer carries the reference number
        """
        status = parse_status(status)
        existing = self.interbank_store.get_by_reference(reference_number)
        if not existing:
            raise self._rejected(
                NotFoundError("Instapay transaction not found"),
                "apply_interbank_callback", reference_number
            )

        reversal_entry = None
        with self.locks.hold(interbank_key(reference_number), account_key(existing.source_account_id)), \
                self.storage.atomic():
            transfer = self.interbank_store.get_by_reference(reference_number)

            if transfer.status.is_terminal:
                self.logger.warning(
                    f"Callback {status.value} for {reference_number} ignored, already {transfer.status.value}"
                )
                return CallbackAcknowledgement(
                    reference_number=reference_number,
                    status=transfer.status,
                    already_final=True
                )

            if status == InterbankStatus.FAILED:
                reversal_entry = self._reverse_interbank_debit(transfer, message)

            transfer = self.interbank_store.transition(
                reference_number, status,
                switch_reference_number=switch_reference_number,
                status_message=message
            )

        log_action(
            self.logger, "info", f"Instapay callback applied: {status.value}",
            action="apply_interbank_callback", resource=f"interbank:{reference_number}",
            extra={
                "status": status.value,
                "switch_reference_number": transfer.switch_reference_number,
                "reversal_reference": reversal_entry.reference_number if reversal_entry else None,
            }
        )
        return CallbackAcknowledgement(
            reference_number=reference_number,
            status=transfer.status,
            reversal_entry=reversal_entry
        )

    def get_interbank_transfer(self, reference_number: str) -> Optional[InterbankTransfer]:
        return self.interbank_store.get_by_reference(reference_number)

    def list_interbank(self, limit: Optional[int] = 100) -> List[InterbankTransfer]:
        """Interbank transfers in any state, most recently sent first"""
        return self.interbank_store.list_all(limit)

    def list_pending_interbank(self) -> List[InterbankTransfer]:
        """PENDING interbank transfers, oldest first"""
        return self.interbank_store.list_pending()

    def query_ledger(
        self,
        account_id: Optional[str] = None,
        reference_number: Optional[str] = None
    ) -> Union[List[LedgerEntry], Optional[LedgerEntry]]:
        """
        Read ledger entries

        With account_id: that account's entries, newest first.
        With reference_number: the single entry or None.
        """
        if reference_number is not None:
            return self.ledger.query_by_reference(reference_number)
        if account_id is not None:
            return self.ledger.query_by_account(account_id)
        raise ValidationError("account_id or reference_number is required")

    def _reverse_interbank_debit(self, transfer: InterbankTransfer, message: Optional[str]) -> LedgerEntry:
        """Credit a failed Instapay amount back; runs inside the callback's unit"""
        # Closed accounts still receive the compensating credit
        account = self.accounts.get_account(transfer.source_account_id)
        if not account:
            raise NotFoundError(f"Account {transfer.source_account_id} not found")

        new_balance = account.balance + transfer.amount
        reference_number = self.references.next_reference()
        self.accounts.set_balance(account.id, new_balance, expected_balance=account.balance)
        return self.ledger.append(
            reference_number=reference_number,
            account_id=account.id,
            transaction_type=TransactionType.DEPOSIT,
            amount=transfer.amount,
            balance_after=new_balance,
            description=(
                f"Instapay reversal - {transfer.reference_number} failed: "
                f"{message or 'Transaction failed'}"
            )
        )

    def _parse_amount(self, amount: AmountLike, action: str, resource_id: str) -> Decimal:
        try:
            return to_positive_amount(amount)
        except ValidationError as e:
            raise self._rejected(e, action, resource_id)

    def _require_account(self, account_id: str, action: str) -> Account:
        account = self.accounts.get_account(account_id)
        if not account:
            raise self._rejected(NotFoundError("Account not found"), action, account_id)
        return account

    def _require_open(self, account: Account, action: str) -> None:
        if account.is_closed:
            raise self._rejected(AccountClosed(account.id), action, account.id)

    def _require_funds(self, account: Account, amount: Decimal, action: str) -> None:
        if amount > account.balance:
            raise self._rejected(InsufficientBalance(account.balance, amount), action, account.id)

    def _rejected(self, error: BankingError, action: str, resource_id: str) -> BankingError:
        """Log a rejected posting and hand the error back for raising"""
        log_action(
            self.logger, "warning", f"Posting rejected: {error.message}",
            action=action, resource=resource_id,
            extra={"code": error.code}
        )
        return error

    def _log_posting(self, message: str, action: str, entry: LedgerEntry, **extra) -> None:
        log_action(
            self.logger, "info", message,
            action=action, resource=f"account:{entry.account_id}",
            extra={
                "reference_number": entry.reference_number,
                "amount": str(entry.amount),
                "balance_after": str(entry.balance_after),
                **extra
            }
        )
