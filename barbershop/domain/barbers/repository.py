"""Barber repository - Database operations for staff users"""

from typing import Optional

from sqlalchemy.orm import Session

from ...models import User


class BarberRepository:
    @staticmethod
    def get_barbers(db: Session, branch_id: Optional[str] = None, include_inactive: bool = False) -> list[User]:
        query = db.query(User).filter(User.cuil.isnot(None))
        if branch_id:
            query = query.filter(User.branch_id == branch_id)
        if not include_inactive:
            query = query.filter(User.is_active.is_(True))
        return query.order_by(User.last_name.asc(), User.first_name.asc()).all()

    @staticmethod
    def get_barber_by_id(db: Session, barber_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == barber_id, User.cuil.isnot(None)).first()
