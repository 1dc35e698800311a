"""Appointment repository - Database operations for appointments"""

from datetime import date, time
from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, AppointmentStatus, Haircut, User


class AppointmentRepository:
    """Repository for appointment database operations"""

    @staticmethod
    def _base_query(db: Session):
        return db.query(Appointment).options(
            joinedload(Appointment.client),
            joinedload(Appointment.barber),
            joinedload(Appointment.haircut),
        )

    @staticmethod
    def _ordered(query):
        return query.order_by(Appointment.date.desc(), Appointment.start_time.asc())

    @staticmethod
    def get_appointments(
        db: Session, on_date: Optional[date] = None, status: Optional[str] = None
    ) -> list[Appointment]:
        query = AppointmentRepository._base_query(db)
        if on_date:
            query = query.filter(Appointment.date == on_date)
        if status:
            query = query.filter(Appointment.status == status)
        return AppointmentRepository._ordered(query).all()

    @staticmethod
    def get_appointment_by_id(db: Session, appointment_id: str) -> Optional[Appointment]:
        return AppointmentRepository._base_query(db).filter(Appointment.id == appointment_id).first()

    @staticmethod
    def get_appointments_by_user(db: Session, user_id: str) -> list[Appointment]:
        """Appointments where the user is the client or the barber"""
        query = AppointmentRepository._base_query(db).filter(
            or_(Appointment.client_id == user_id, Appointment.barber_id == user_id)
        )
        return AppointmentRepository._ordered(query).all()

    @staticmethod
    def get_appointments_by_branch(db: Session, branch_id: str, on_date: Optional[date] = None) -> list[Appointment]:
        barber_ids = db.query(User.id).filter(User.branch_id == branch_id)
        query = AppointmentRepository._base_query(db).filter(Appointment.barber_id.in_(barber_ids))
        if on_date:
            query = query.filter(Appointment.date == on_date)
        return AppointmentRepository._ordered(query).all()

    @staticmethod
    def get_active_start_times(db: Session, barber_ids: list[str], on_date: date) -> dict[str, set[time]]:
        """{barber_id: start times of non-cancelled appointments on that date}"""
        busy: dict[str, set[time]] = {barber_id: set() for barber_id in barber_ids}
        if not barber_ids:
            return busy
        rows = (
            db.query(Appointment.barber_id, Appointment.start_time)
            .filter(
                Appointment.barber_id.in_(barber_ids),
                Appointment.date == on_date,
                Appointment.status != AppointmentStatus.CANCELLED,
            )
            .all()
        )
        for barber_id, start in rows:
            busy[barber_id].add(start)
        return busy

    @staticmethod
    def find_barber_conflict(
        db: Session, barber_id: str, on_date: date, start: time, exclude_id: Optional[str] = None
    ) -> Optional[Appointment]:
        query = db.query(Appointment).filter(
            Appointment.barber_id == barber_id,
            Appointment.date == on_date,
            Appointment.start_time == start,
            Appointment.status != AppointmentStatus.CANCELLED,
        )
        if exclude_id:
            query = query.filter(Appointment.id != exclude_id)
        return query.first()

    @staticmethod
    def find_client_conflict(
        db: Session, client_id: str, on_date: date, start: time, exclude_id: Optional[str] = None
    ) -> Optional[Appointment]:
        query = db.query(Appointment).filter(
            Appointment.client_id == client_id,
            Appointment.date == on_date,
            Appointment.start_time == start,
            Appointment.status != AppointmentStatus.CANCELLED,
        )
        if exclude_id:
            query = query.filter(Appointment.id != exclude_id)
        return query.first()

    @staticmethod
    def get_user(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_haircut(db: Session, haircut_id: str) -> Optional[Haircut]:
        return db.query(Haircut).filter(Haircut.id == haircut_id).first()

    @staticmethod
    def get_active_branch_barbers(db: Session, branch_id: str) -> list[User]:
        return (
            db.query(User)
            .filter(User.branch_id == branch_id, User.cuil.isnot(None), User.is_active.is_(True))
            .all()
        )

    @staticmethod
    def create_appointment(db: Session, **data) -> Appointment:
        appointment = Appointment(**data)
        db.add(appointment)
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def save(db: Session, appointment: Appointment) -> Appointment:
        db.commit()
        db.refresh(appointment)
        return appointment

    @staticmethod
    def delete_appointment(db: Session, appointment: Appointment) -> None:
        db.delete(appointment)
        db.commit()
