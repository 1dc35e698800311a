"""Appointment service - Booking, availability and appointment lifecycle"""

import logging
from datetime import date, datetime, time, timedelta
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...auth import is_staff
from ...models import Appointment, AppointmentStatus, User
from ..categories.loyalty import LoyaltyService, is_banned
from .repository import AppointmentRepository
from .schemas import AppointmentCreate, AppointmentResponse, AppointmentUpdate, CheckoutRequest

logger = logging.getLogger(__name__)

OPENING_TIME = time(8, 0)
LAST_START_TIME = time(19, 30)
CLOSING_TIME = time(20, 0)
SLOT_MINUTES = 30


def slot_grid() -> list[time]:
    """Bookable start times: 08:00, 08:30, ... 19:30"""
    slots = []
    current = datetime.combine(date.min, OPENING_TIME)
    last = datetime.combine(date.min, LAST_START_TIME)
    while current <= last:
        slots.append(current.time())
        current += timedelta(minutes=SLOT_MINUTES)
    return slots


def _on_grid(value: time) -> bool:
    return value.second == 0 and value.microsecond == 0 and value.minute % SLOT_MINUTES == 0


def validate_slot(on_date: date, start: time, end: time, today: date):
    if on_date < today:
        raise HTTPException(status_code=400, detail="No se pueden reservar turnos en fechas pasadas")
    if not _on_grid(start) or start < OPENING_TIME or start > LAST_START_TIME:
        raise HTTPException(
            status_code=400,
            detail="La hora de inicio debe estar entre 08:00 y 19:30 en intervalos de 30 minutos",
        )
    if not _on_grid(end) or end > CLOSING_TIME:
        raise HTTPException(
            status_code=400,
            detail="La hora de fin debe ser en intervalos de 30 minutos y no posterior a las 20:00",
        )
    if start >= end:
        raise HTTPException(status_code=400, detail="La hora de inicio debe ser anterior a la hora de fin")


def discounted_price(base_price: float, discount: Optional[float]) -> float:
    return round(base_price * (1 - (discount or 0) / 100), 2)


class AppointmentService:
    """Service layer for appointment business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = AppointmentRepository()
        self.loyalty = LoyaltyService(db)

    # ========================================================================
    # LOOKUPS
    # ========================================================================

    def get_appointment(self, appointment_id: str) -> Appointment:
        appointment = self.repo.get_appointment_by_id(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Turno no encontrado")
        return appointment

    def get_visible_appointment(self, appointment_id: str, actor: User) -> Appointment:
        """Owner client, assigned barber or staff"""
        appointment = self.get_appointment(appointment_id)
        if not is_staff(actor) and actor.id != appointment.client_id:
            raise HTTPException(status_code=403, detail="No tiene permiso para acceder a este turno")
        return appointment

    def get_appointments(self, on_date: Optional[date] = None, status: Optional[str] = None) -> list[Appointment]:
        if status and status not in AppointmentStatus.ALL:
            raise HTTPException(status_code=400, detail=f"Estado inválido: {status}")
        return self.repo.get_appointments(self.db, on_date, status)

    def get_by_user(self, user_id: str) -> list[Appointment]:
        return self.repo.get_appointments_by_user(self.db, user_id)

    def get_by_branch(self, branch_id: str, on_date: Optional[date] = None) -> list[Appointment]:
        return self.repo.get_appointments_by_branch(self.db, branch_id, on_date)

    # ========================================================================
    # AVAILABILITY
    # ========================================================================

    def available_by_branch(self, branch_id: str, on_date: date) -> list[dict]:
        """Slots where at least one active barber of the branch is free"""
        barbers = self.repo.get_active_branch_barbers(self.db, branch_id)
        if not barbers:
            return []
        busy = self.repo.get_active_start_times(self.db, [b.id for b in barbers], on_date)
        return [
            {"hora": slot.strftime("%H:%M")}
            for slot in slot_grid()
            if any(slot not in busy[b.id] for b in barbers)
        ]

    def available_by_barber(self, barber_id: str, on_date: date) -> list[dict]:
        barber = self.repo.get_user(self.db, barber_id)
        if not barber or barber.user_type == "client":
            raise HTTPException(status_code=404, detail="Barbero no encontrado")
        if not barber.is_active:
            return []
        busy = self.repo.get_active_start_times(self.db, [barber.id], on_date)[barber.id]
        return [{"hora": slot.strftime("%H:%M")} for slot in slot_grid() if slot not in busy]

    # ========================================================================
    # BOOKING
    # ========================================================================

    def _resolve_client(self, client_id: Optional[str], actor: User) -> User:
        if not is_staff(actor):
            if client_id and client_id != actor.id:
                raise HTTPException(status_code=403, detail="Solo puede reservar turnos para usted mismo")
            client_id = actor.id
        elif not client_id:
            raise HTTPException(status_code=400, detail="codCliente es requerido")

        client = self.repo.get_user(self.db, client_id)
        if not client or client.user_type != "client" or not client.is_active:
            raise HTTPException(status_code=404, detail="Cliente no encontrado o inactivo")
        if is_banned(self.loyalty.current_category(client.id)):
            logger.warning(f"⚠️ Banned client {client.id} tried to book")
            raise HTTPException(status_code=403, detail="El cliente está vetado y no puede reservar turnos")
        return client

    def _resolve_barber(self, barber_id: str) -> User:
        barber = self.repo.get_user(self.db, barber_id)
        if not barber or not barber.cuil or not barber.is_active:
            raise HTTPException(status_code=404, detail="Barbero no encontrado o inactivo")
        return barber

    def _check_haircut(self, haircut_id: Optional[str]):
        if haircut_id and not self.repo.get_haircut(self.db, haircut_id):
            raise HTTPException(status_code=404, detail="Tipo de corte no encontrado")

    def _check_conflicts(
        self, client_id: str, barber_id: str, on_date: date, start: time, exclude_id: Optional[str] = None
    ):
        if self.repo.find_barber_conflict(self.db, barber_id, on_date, start, exclude_id):
            raise HTTPException(status_code=409, detail="El barbero ya tiene un turno en ese horario")
        if self.repo.find_client_conflict(self.db, client_id, on_date, start, exclude_id):
            raise HTTPException(status_code=409, detail="El cliente ya tiene un turno en ese horario")

    def book(self, data: AppointmentCreate, actor: User, today: Optional[date] = None) -> Appointment:
        today = today or date.today()
        validate_slot(data.fechaTurno, data.horaDesde, data.horaHasta, today)
        client = self._resolve_client(data.codCliente, actor)
        barber = self._resolve_barber(data.codBarbero)
        self._check_haircut(data.codCorte)
        self._check_conflicts(client.id, barber.id, data.fechaTurno, data.horaDesde)

        appointment = self.repo.create_appointment(
            self.db,
            client_id=client.id,
            barber_id=barber.id,
            haircut_id=data.codCorte,
            date=data.fechaTurno,
            start_time=data.horaDesde,
            end_time=data.horaHasta,
            status=AppointmentStatus.SCHEDULED,
        )
        logger.info(
            f"✅ Appointment {appointment.id} booked: client {client.id} with barber {barber.id} "
            f"on {appointment.date} {data.horaDesde.strftime('%H:%M')}"
        )
        return appointment

    def _ensure_scheduled(self, appointment: Appointment):
        if appointment.status != AppointmentStatus.SCHEDULED:
            raise HTTPException(
                status_code=409,
                detail=f"El turno está en estado {appointment.status} y no puede modificarse",
            )

    def update(
        self, appointment_id: str, data: AppointmentUpdate, actor: User, today: Optional[date] = None
    ) -> Appointment:
        """Reschedule a Programado appointment"""
        today = today or date.today()
        appointment = self.get_visible_appointment(appointment_id, actor)
        self._ensure_scheduled(appointment)
        self._resolve_client(appointment.client_id, actor)

        on_date = data.fechaTurno or appointment.date
        start = data.horaDesde or appointment.start_time
        end = data.horaHasta or appointment.end_time
        barber_id = data.codBarbero or appointment.barber_id

        validate_slot(on_date, start, end, today)
        if barber_id != appointment.barber_id:
            self._resolve_barber(barber_id)
        self._check_haircut(data.codCorte)
        self._check_conflicts(appointment.client_id, barber_id, on_date, start, exclude_id=appointment.id)

        appointment.date = on_date
        appointment.start_time = start
        appointment.end_time = end
        appointment.barber_id = barber_id
        if data.codCorte:
            appointment.haircut_id = data.codCorte
        appointment = self.repo.save(self.db, appointment)
        logger.info(f"✅ Appointment {appointment.id} rescheduled to {on_date} {start.strftime('%H:%M')}")
        return appointment

    # ========================================================================
    # LIFECYCLE
    # ========================================================================

    def cancel(self, appointment_id: str, actor: User, today: Optional[date] = None) -> dict:
        """
        Cancel a Programado appointment. A cancellation on the appointment day
        counts as a penalty and may demote the client.
        """
        today = today or date.today()
        appointment = self.get_visible_appointment(appointment_id, actor)
        self._ensure_scheduled(appointment)

        appointment.status = AppointmentStatus.CANCELLED
        appointment.cancelled_on = today
        appointment.same_day_cancellation = appointment.date == today
        appointment = self.repo.save(self.db, appointment)
        logger.info(
            f"🚫 Appointment {appointment.id} cancelled"
            f"{' on the same day' if appointment.same_day_cancellation else ''}"
        )

        new_category = None
        if appointment.same_day_cancellation:
            new_category = self.loyalty.apply_demotion(appointment.client_id, today)
        return {"turno": appointment, "categoriaNueva": new_category.name if new_category else None}

    def checkout(self, appointment_id: str, data: CheckoutRequest, today: Optional[date] = None) -> dict:
        """
        Charge a Programado appointment with the client's current haircut
        discount and run the promotion rules.
        """
        today = today or date.today()
        appointment = self.get_appointment(appointment_id)
        self._ensure_scheduled(appointment)

        haircut = self.repo.get_haircut(self.db, data.codCorte)
        if not haircut:
            raise HTTPException(status_code=404, detail="Tipo de corte no encontrado")

        category = self.loyalty.current_category(appointment.client_id)
        discount = category.haircut_discount if category else 0

        appointment.haircut_id = haircut.id
        appointment.price = discounted_price(haircut.base_price, discount)
        appointment.payment_method = data.metodoPago
        appointment.status = AppointmentStatus.PAID
        appointment = self.repo.save(self.db, appointment)
        logger.info(
            f"💰 Appointment {appointment.id} charged ${appointment.price} "
            f"({discount}% off {haircut.base_price}) via {data.metodoPago}"
        )

        new_category = self.loyalty.apply_promotion(appointment.client_id, today)
        return {"turno": appointment, "categoriaNueva": new_category.name if new_category else None}

    def mark_no_show(self, appointment_id: str, today: Optional[date] = None) -> dict:
        today = today or date.today()
        appointment = self.get_appointment(appointment_id)
        self._ensure_scheduled(appointment)
        if appointment.date > today:
            raise HTTPException(
                status_code=400, detail="No se puede marcar como no asistido un turno futuro"
            )

        appointment.status = AppointmentStatus.NO_SHOW
        appointment = self.repo.save(self.db, appointment)
        logger.info(f"👻 Appointment {appointment.id} marked as no-show")

        new_category = self.loyalty.apply_demotion(appointment.client_id, today)
        return {"turno": appointment, "categoriaNueva": new_category.name if new_category else None}

    def destroy(self, appointment_id: str) -> AppointmentResponse:
        appointment = self.get_appointment(appointment_id)
        if appointment.invoice is not None:
            raise HTTPException(status_code=409, detail="El turno tiene una factura emitida y no puede eliminarse")
        snapshot = AppointmentResponse.from_model(appointment)
        self.repo.delete_appointment(self.db, appointment)
        logger.info(f"🗑️ Appointment {appointment_id} deleted")
        return snapshot
