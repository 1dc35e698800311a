"""User repository - Database operations for users"""

from datetime import date, time
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment, AppointmentStatus, User


class UserRepository:
    """Repository for user database operations"""

    @staticmethod
    def get_user_by_id(db: Session, user_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == user_id).first()

    @staticmethod
    def get_user_by_email(db: Session, email: str) -> Optional[User]:
        return db.query(User).filter(func.lower(User.email) == email.strip().lower()).first()

    @staticmethod
    def get_user_by_dni(db: Session, dni: str) -> Optional[User]:
        return db.query(User).filter(User.dni == dni).first()

    @staticmethod
    def get_user_by_cuil(db: Session, cuil: str) -> Optional[User]:
        return db.query(User).filter(User.cuil == cuil).first()

    @staticmethod
    def get_clients(db: Session, include_inactive: bool = False) -> list[User]:
        query = db.query(User).filter(User.cuil.is_(None), User.is_admin.is_(False))
        if not include_inactive:
            query = query.filter(User.is_active.is_(True))
        return query.order_by(User.last_name.asc(), User.first_name.asc()).all()

    @staticmethod
    def get_staff_by_branch(db: Session, branch_id: str, active_only: bool = True) -> list[User]:
        query = db.query(User).filter(User.branch_id == branch_id, User.cuil.isnot(None))
        if active_only:
            query = query.filter(User.is_active.is_(True))
        return query.order_by(User.last_name.asc(), User.first_name.asc()).all()

    @staticmethod
    def get_busy_barber_ids(db: Session, barber_ids: list[str], on_date: date, start: time) -> set[str]:
        """Barbers with a non-cancelled appointment starting at that slot"""
        if not barber_ids:
            return set()
        rows = (
            db.query(Appointment.barber_id)
            .filter(
                Appointment.barber_id.in_(barber_ids),
                Appointment.date == on_date,
                Appointment.start_time == start,
                Appointment.status != AppointmentStatus.CANCELLED,
            )
            .all()
        )
        return {r[0] for r in rows}

    @staticmethod
    def create_user(db: Session, **data) -> User:
        user = User(**data)
        db.add(user)
        db.commit()
        db.refresh(user)
        return user

    @staticmethod
    def update_user(db: Session, user: User, **updates) -> User:
        for key, value in updates.items():
            if value is not None and hasattr(user, key):
                setattr(user, key, value)
        db.commit()
        db.refresh(user)
        return user
