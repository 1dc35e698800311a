"""Haircut router - FastAPI endpoints for haircut types"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...deduplication import standard_deduplication
from ...models import User
from ...rate_limiter import general_limiter, modification_limiter
from .schemas import HaircutCreate, HaircutResponse, HaircutUpdate
from .service import HaircutService

router = APIRouter(prefix="/haircuts", tags=["Haircuts"])


def get_haircut_service(db: Session = Depends(get_db)) -> HaircutService:
    return HaircutService(db)


@router.get("", response_model=list[HaircutResponse], dependencies=[Depends(general_limiter)])
async def get_haircuts(service: HaircutService = Depends(get_haircut_service)):
    return [HaircutResponse.from_model(h) for h in service.get_haircuts()]


@router.get("/{haircut_id}", response_model=HaircutResponse, dependencies=[Depends(general_limiter)])
async def get_haircut(haircut_id: str, service: HaircutService = Depends(get_haircut_service)):
    return HaircutResponse.from_model(service.get_haircut(haircut_id))


@router.post(
    "",
    response_model=HaircutResponse,
    status_code=201,
    dependencies=[Depends(modification_limiter), Depends(standard_deduplication)],
)
async def create_haircut(
    data: HaircutCreate,
    current_user: User = Depends(require_admin),
    service: HaircutService = Depends(get_haircut_service),
):
    return HaircutResponse.from_model(service.create_haircut(data))


@router.put("/{haircut_id}", response_model=HaircutResponse, dependencies=[Depends(modification_limiter)])
async def update_haircut(
    haircut_id: str,
    data: HaircutUpdate,
    current_user: User = Depends(require_admin),
    service: HaircutService = Depends(get_haircut_service),
):
    return HaircutResponse.from_model(service.update_haircut(haircut_id, data))


@router.delete("/{haircut_id}", response_model=HaircutResponse, dependencies=[Depends(modification_limiter)])
async def delete_haircut(
    haircut_id: str,
    current_user: User = Depends(require_admin),
    service: HaircutService = Depends(get_haircut_service),
):
    return service.delete_haircut(haircut_id)
