"""
Branch endpoints
"""

from fastapi import APIRouter, Depends

from .deps import get_banking_system
from .schemas import CreateBranchRequest, ok, branch_to_dict
from ..system import BankingSystem


router = APIRouter()


@router.get("")
def list_branches(system: BankingSystem = Depends(get_banking_system)):
    return ok([branch_to_dict(b) for b in system.branch_registry.list_branches()])


@router.post("", status_code=201)
def create_branch(request: CreateBranchRequest, system: BankingSystem = Depends(get_banking_system)):
    branch = system.branch_registry.create_branch(request.code, request.name)
    return ok(branch_to_dict(branch))


@router.post("/seed")
def seed_branches(system: BankingSystem = Depends(get_banking_system)):
    """Insert the default branches, refreshing names of existing ones"""
    branches = system.branch_registry.seed_default_branches()
    return ok([branch_to_dict(b) for b in branches])
