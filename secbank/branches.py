"""
Branch Registry Module

Branches own the three-character prefix of every account number.
"""

from datetime import datetime, timezone
from dataclasses import dataclass
from typing import Dict, List, Optional

from .storage import StorageInterface, StorageRecord
from .exceptions import ValidationError, NotFoundError, ConflictError
from .logging_config import get_logger


DEFAULT_BRANCHES = [
    ("001", "Camaligan"),
    ("002", "Buhi"),
    ("003", "Calabanga"),
    ("004", "Pili"),
    ("005", "Aseana"),
]


@dataclass
class Branch(StorageRecord):
    """Bank branch identified by its 3-character code (also the record id)"""
    code: str
    name: str


class BranchRegistry:
    """Stores branches keyed by code"""

    def __init__(self, storage: StorageInterface):
        self.storage = storage
        self.table_name = "branches"
        self.logger = get_logger("secbank.branches")

    def create_branch(self, code: str, name: str) -> Branch:
        """Create a branch; the code must be exactly 3 characters"""
        if not code or len(code) != 3:
            raise ValidationError("Branch code must be exactly 3 characters")
        if not name or not name.strip():
            raise ValidationError("Branch name is required")
        if self.storage.exists(self.table_name, code):
            raise ConflictError(f"Branch {code} already exists")

        now = datetime.now(timezone.utc)
        branch = Branch(id=code, created_at=now, updated_at=now, code=code, name=name.strip())
        self.storage.save(self.table_name, branch.id, branch.to_dict())
        return branch

    def get_branch(self, code: str) -> Optional[Branch]:
        """Get branch by code"""
        data = self.storage.load(self.table_name, code)
        if data:
            return self._branch_from_dict(data)
        return None

    def list_branches(self) -> List[Branch]:
        """All branches ordered by code"""
        branches = [self._branch_from_dict(data) for data in self.storage.load_all(self.table_name)]
        return sorted(branches, key=lambda b: b.code)

    def rename_branch(self, code: str, name: str) -> Branch:
        """Change a branch's display name"""
        branch = self.get_branch(code)
        if not branch:
            raise NotFoundError(f"Branch {code} not found")
        branch.name = name
        branch.updated_at = datetime.now(timezone.utc)
        self.storage.save(self.table_name, branch.id, branch.to_dict())
        return branch

    def seed_default_branches(self) -> List[Branch]:
        """Insert the default branches, refreshing names of existing ones"""
        with self.storage.atomic():
            for code, name in DEFAULT_BRANCHES:
                if self.storage.exists(self.table_name, code):
                    self.rename_branch(code, name)
                else:
                    self.create_branch(code, name)
        self.logger.info(f"Seeded {len(DEFAULT_BRANCHES)} default branches")
        return self.list_branches()

    def _branch_from_dict(self, data: Dict) -> Branch:
        return Branch(
            id=data['id'],
            created_at=datetime.fromisoformat(data['created_at']),
            updated_at=datetime.fromisoformat(data['updated_at']),
            code=data['code'],
            name=data['name']
        )
