"""Schedule router - FastAPI endpoints for barber working blocks"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_barber_or_admin
from ...database import get_db
from ...deduplication import standard_deduplication
from ...models import User
from ...rate_limiter import user_limiter, user_modification_limiter
from .schemas import ScheduleCreate, ScheduleResponse, ScheduleUpdate
from .service import ScheduleService

router = APIRouter(prefix="/schedules", tags=["Schedules"])


def get_schedule_service(db: Session = Depends(get_db)) -> ScheduleService:
    return ScheduleService(db)


@router.get("", response_model=list[ScheduleResponse], dependencies=[Depends(user_limiter)])
async def get_schedules(
    codBarbero: Optional[str] = Query(None),
    fecha: Optional[date] = Query(None),
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    return [ScheduleResponse.from_model(s) for s in service.get_schedules(codBarbero, fecha)]


@router.get("/barber/{barber_id}", response_model=list[ScheduleResponse], dependencies=[Depends(user_limiter)])
async def get_barber_schedules(
    barber_id: str,
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    return [ScheduleResponse.from_model(s) for s in service.get_schedules(barber_id)]


@router.get("/{schedule_id}", response_model=ScheduleResponse, dependencies=[Depends(user_limiter)])
async def get_schedule(
    schedule_id: str,
    current_user: User = Depends(get_current_user),
    service: ScheduleService = Depends(get_schedule_service),
):
    return ScheduleResponse.from_model(service.get_schedule(schedule_id))


@router.post(
    "",
    response_model=ScheduleResponse,
    status_code=201,
    dependencies=[Depends(user_modification_limiter), Depends(standard_deduplication)],
)
async def create_schedule(
    data: ScheduleCreate,
    current_user: User = Depends(require_barber_or_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    return ScheduleResponse.from_model(service.create_schedule(data, current_user))


@router.put("/{schedule_id}", response_model=ScheduleResponse, dependencies=[Depends(user_modification_limiter)])
async def update_schedule(
    schedule_id: str,
    data: ScheduleUpdate,
    current_user: User = Depends(require_barber_or_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    return ScheduleResponse.from_model(service.update_schedule(schedule_id, data, current_user))


@router.delete("/{schedule_id}", response_model=ScheduleResponse, dependencies=[Depends(user_modification_limiter)])
async def delete_schedule(
    schedule_id: str,
    current_user: User = Depends(require_barber_or_admin),
    service: ScheduleService = Depends(get_schedule_service),
):
    return service.delete_schedule(schedule_id, current_user)
