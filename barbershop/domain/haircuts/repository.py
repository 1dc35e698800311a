"""Haircut repository - Database operations for haircut types"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Appointment, Haircut


class HaircutRepository:
    @staticmethod
    def get_haircuts(db: Session) -> list[Haircut]:
        return db.query(Haircut).order_by(Haircut.name.asc()).all()

    @staticmethod
    def get_haircut_by_id(db: Session, haircut_id: str) -> Optional[Haircut]:
        return db.query(Haircut).filter(Haircut.id == haircut_id).first()

    @staticmethod
    def create_haircut(db: Session, **data) -> Haircut:
        haircut = Haircut(**data)
        db.add(haircut)
        db.commit()
        db.refresh(haircut)
        return haircut

    @staticmethod
    def update_haircut(db: Session, haircut: Haircut, **updates) -> Haircut:
        for key, value in updates.items():
            if value is not None and hasattr(haircut, key):
                setattr(haircut, key, value)
        db.commit()
        db.refresh(haircut)
        return haircut

    @staticmethod
    def delete_haircut(db: Session, haircut: Haircut) -> None:
        db.delete(haircut)
        db.commit()

    @staticmethod
    def count_appointments(db: Session, haircut_id: str) -> int:
        return db.query(func.count(Appointment.id)).filter(Appointment.haircut_id == haircut_id).scalar()
