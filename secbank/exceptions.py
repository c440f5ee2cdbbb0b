"""
Banking Error Taxonomy

Every business-rule or infrastructure failure raised by the core derives
from BankingError. BankingError subclasses ValueError so callers that only
catch ValueError keep working.
"""

from decimal import Decimal
from typing import Optional


class BankingError(ValueError):
    """Base class for all core banking errors"""

    code = "BANKING_ERROR"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        """Error payload for transport adapters"""
        return {"code": self.code, "message": self.message}


class ValidationError(BankingError):
    """Malformed or out-of-range input"""
    code = "VALIDATION_ERROR"


class NotFoundError(BankingError):
    """Account, customer, branch or reference does not exist"""
    code = "NOT_FOUND"


class InsufficientBalance(BankingError):
    """Debit larger than the available balance"""

    code = "INSUFFICIENT_BALANCE"

    def __init__(self, available: Decimal, requested: Optional[Decimal] = None):
        self.available = available
        self.requested = requested
        super().__init__(f"Insufficient balance. Available: {available}")

    def to_dict(self) -> dict:
        result = super().to_dict()
        result["available_balance"] = str(self.available)
        return result


class AccountClosed(BankingError):
    """Operation not permitted on a closed account"""

    code = "ACCOUNT_CLOSED"

    def __init__(self, account_id: str, message: Optional[str] = None):
        self.account_id = account_id
        super().__init__(message or f"Account {account_id} is closed")


class ConflictError(BankingError):
    """Concurrent update contention or duplicate write"""
    code = "CONFLICT"


class ReferenceGenerationFailed(BankingError):
    """Daily sequence counter could not issue a reference number"""
    code = "GENERATION_EXHAUSTED"


class AccountNumberGenerationExhausted(BankingError):
    """No unique account number found within the attempt budget"""
    code = "GENERATION_EXHAUSTED"


class StorageError(BankingError):
    """Storage backend unavailable or rollback impossible"""
    code = "STORAGE_ERROR"
