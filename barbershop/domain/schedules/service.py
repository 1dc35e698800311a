"""Schedule service - Business logic for barber working blocks"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Schedule, User
from .repository import ScheduleRepository
from .schemas import ScheduleCreate, ScheduleResponse, ScheduleUpdate

logger = logging.getLogger(__name__)

DUPLICATE_MESSAGE = "Ya existe ese horario"


class ScheduleService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = ScheduleRepository()

    def _ensure_can_manage(self, user: User, barber_id: str):
        if user.user_type != "admin" and user.id != barber_id:
            raise HTTPException(status_code=403, detail="Solo puede gestionar sus propios horarios")

    def _get_barber(self, barber_id: str) -> User:
        barber = self.db.query(User).filter(User.id == barber_id).first()
        if not barber or barber.user_type == "client":
            raise HTTPException(status_code=404, detail="Barbero no encontrado")
        return barber

    def get_schedules(self, barber_id: Optional[str] = None, on_date: Optional[date] = None) -> list[Schedule]:
        return self.repo.get_schedules(self.db, barber_id, on_date)

    def get_schedule(self, schedule_id: str) -> Schedule:
        schedule = self.repo.get_schedule_by_id(self.db, schedule_id)
        if not schedule:
            raise HTTPException(status_code=404, detail="Horario no encontrado")
        return schedule

    def create_schedule(self, data: ScheduleCreate, user: User) -> Schedule:
        self._ensure_can_manage(user, data.codBarbero)
        self._get_barber(data.codBarbero)

        if self.repo.find_duplicate(self.db, data.codBarbero, data.fecha, data.horaDesde):
            raise HTTPException(status_code=409, detail=DUPLICATE_MESSAGE)

        try:
            schedule = self.repo.create_schedule(
                self.db,
                barber_id=data.codBarbero,
                date=data.fecha,
                start_time=data.horaDesde,
                end_time=data.horaHasta,
                status=data.estado,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail=DUPLICATE_MESSAGE) from e

        logger.info(f"✅ Schedule created for barber {schedule.barber_id} on {schedule.date}")
        return schedule

    def update_schedule(self, schedule_id: str, data: ScheduleUpdate, user: User) -> Schedule:
        schedule = self.get_schedule(schedule_id)
        self._ensure_can_manage(user, schedule.barber_id)

        new_date = data.fecha or schedule.date
        new_start = data.horaDesde or schedule.start_time
        new_end = data.horaHasta or schedule.end_time
        if new_start >= new_end:
            raise HTTPException(status_code=400, detail="La hora desde debe ser anterior a la hora hasta")

        duplicate = self.repo.find_duplicate(self.db, schedule.barber_id, new_date, new_start)
        if duplicate and duplicate.id != schedule.id:
            raise HTTPException(status_code=409, detail=DUPLICATE_MESSAGE)

        return self.repo.update_schedule(
            self.db,
            schedule,
            date=data.fecha,
            start_time=data.horaDesde,
            end_time=data.horaHasta,
            status=data.estado,
        )

    def delete_schedule(self, schedule_id: str, user: User) -> ScheduleResponse:
        schedule = self.get_schedule(schedule_id)
        self._ensure_can_manage(user, schedule.barber_id)
        deleted = ScheduleResponse.from_model(schedule)
        self.repo.delete_schedule(self.db, schedule)
        return deleted
