"""Barber router - FastAPI endpoints for staff accounts"""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import require_admin
from ...database import get_db
from ...deduplication import strict_deduplication
from ...models import User
from ...rate_limiter import general_limiter, modification_limiter
from ..users.schemas import UserResponse
from .schemas import BarberCreate, BarberUpdate
from .service import BarberService

router = APIRouter(prefix="/barbers", tags=["Barbers"])


def get_barber_service(db: Session = Depends(get_db)) -> BarberService:
    return BarberService(db)


@router.get("", response_model=list[UserResponse], dependencies=[Depends(general_limiter)])
async def get_barbers(
    codSucursal: Optional[str] = Query(None),
    service: BarberService = Depends(get_barber_service),
):
    """Active barbers, optionally filtered by branch"""
    return [UserResponse.from_model(b) for b in service.get_barbers(codSucursal)]


@router.get("/{barber_id}", response_model=UserResponse, dependencies=[Depends(general_limiter)])
async def get_barber(barber_id: str, service: BarberService = Depends(get_barber_service)):
    return UserResponse.from_model(service.get_barber(barber_id))


@router.post(
    "",
    response_model=UserResponse,
    status_code=201,
    dependencies=[Depends(modification_limiter), Depends(strict_deduplication)],
)
async def create_barber(
    data: BarberCreate,
    current_user: User = Depends(require_admin),
    service: BarberService = Depends(get_barber_service),
):
    return UserResponse.from_model(service.create_barber(data))


@router.put("/{barber_id}", response_model=UserResponse, dependencies=[Depends(modification_limiter)])
async def update_barber(
    barber_id: str,
    data: BarberUpdate,
    current_user: User = Depends(require_admin),
    service: BarberService = Depends(get_barber_service),
):
    return UserResponse.from_model(service.update_barber(barber_id, data))


@router.delete("/{barber_id}", response_model=UserResponse, dependencies=[Depends(modification_limiter)])
async def delete_barber(
    barber_id: str,
    current_user: User = Depends(require_admin),
    service: BarberService = Depends(get_barber_service),
):
    """Deactivate a barber; past appointments keep pointing at the account"""
    return UserResponse.from_model(service.deactivate_barber(barber_id, current_user))
