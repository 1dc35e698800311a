"""Branch router - FastAPI endpoints for branch operations"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...deduplication import standard_deduplication
from ...models import User
from ...rate_limiter import general_limiter, modification_limiter
from .schemas import BranchCreate, BranchResponse, BranchUpdate
from .service import BranchService

router = APIRouter(prefix="/branches", tags=["Branches"])


def get_branch_service(db: Session = Depends(get_db)) -> BranchService:
    """Dependency injection for BranchService"""
    return BranchService(db)


@router.get("", response_model=list[BranchResponse], dependencies=[Depends(general_limiter)])
async def get_branches(service: BranchService = Depends(get_branch_service)):
    """Public list, used by the booking screen"""
    return [BranchResponse.from_model(b) for b in service.get_branches()]


@router.get("/{branch_id}", response_model=BranchResponse, dependencies=[Depends(general_limiter)])
async def get_branch(branch_id: str, service: BranchService = Depends(get_branch_service)):
    return BranchResponse.from_model(service.get_branch(branch_id))


@router.post(
    "",
    response_model=BranchResponse,
    status_code=201,
    dependencies=[Depends(modification_limiter), Depends(standard_deduplication)],
)
async def create_branch(
    data: BranchCreate,
    current_user: User = Depends(require_admin),
    service: BranchService = Depends(get_branch_service),
):
    return BranchResponse.from_model(service.create_branch(data))


@router.put("/{branch_id}", response_model=BranchResponse, dependencies=[Depends(modification_limiter)])
async def update_branch(
    branch_id: str,
    data: BranchUpdate,
    current_user: User = Depends(require_admin),
    service: BranchService = Depends(get_branch_service),
):
    return BranchResponse.from_model(service.update_branch(branch_id, data))


@router.delete("/{branch_id}", response_model=BranchResponse, dependencies=[Depends(modification_limiter)])
async def delete_branch(
    branch_id: str,
    current_user: User = Depends(require_admin),
    service: BranchService = Depends(get_branch_service),
):
    return service.delete_branch(branch_id)
