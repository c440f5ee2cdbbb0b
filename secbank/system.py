"""
Banking System Wiring

Builds every component from configuration in dependency order. Nothing is
connected at import time; callers construct a BankingSystem explicitly.
"""

from decimal import Decimal
from typing import Optional

from .config import SecbankConfig, get_config
from .storage import StorageInterface, create_storage
from .locks import KeyedLock
from .branches import BranchRegistry
from .customers import CustomerManager
from .accounts import AccountStore
from .references import ReferenceNumberGenerator
from .ledger import Ledger
from .interbank import InterbankTransferStore
from .gateway import SwitchGateway, HttpSwitchGateway, MockSwitchGateway
from .posting import PostingEngine
from .exceptions import StorageError
from .logging_config import get_logger


class BankingSystem:
    """Core ledger with all components initialized"""

    def __init__(
        self,
        config: Optional[SecbankConfig] = None,
        storage: Optional[StorageInterface] = None,
        gateway: Optional[SwitchGateway] = None
    ):
        self.config = config or get_config()
        self.logger = get_logger("secbank.system")

        # Initialize storage
        self.storage = storage or create_storage(self.config.database_url)
        if not self.storage.health_check():
            raise StorageError(f"Storage backend {self.config.database_url} failed health check")

        # Initialize core components
        self.locks = KeyedLock(timeout=self.config.lock_timeout_seconds)
        self.branch_registry = BranchRegistry(self.storage)
        self.customer_manager = CustomerManager(self.storage)
        self.account_store = AccountStore(
            self.storage, self.customer_manager, self.branch_registry,
            max_attempts=self.config.account_number_max_attempts
        )
        self.references = ReferenceNumberGenerator.for_timezone(
            self.storage, self.locks,
            prefix=self.config.reference_prefix,
            tz_name=self.config.reference_timezone
        )
        self.ledger = Ledger(self.storage)
        self.interbank_store = InterbankTransferStore(self.storage)
        self.posting_engine = PostingEngine(
            self.storage, self.account_store, self.ledger, self.references,
            self.interbank_store, self.locks,
            interbank_max_amount=Decimal(self.config.interbank_max_amount)
        )

        self.gateway = gateway or self._create_gateway()

        if self.config.seed_default_branches:
            self.branch_registry.seed_default_branches()

        self.logger.info(f"Banking system ready on {self.config.database_url}")

    def _create_gateway(self) -> SwitchGateway:
        """Create switch gateway based on configuration"""
        # Only talk to a real switch if a URL is configured
        if not self.config.switch_url:
            return MockSwitchGateway()

        return HttpSwitchGateway(
            base_url=self.config.switch_url,
            timeout=self.config.switch_timeout,
            api_key=self.config.switch_api_key or None
        )

    def close(self) -> None:
        self.gateway.close()
        self.storage.close()
