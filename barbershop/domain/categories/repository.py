"""Category repository - Database operations for categories and tier assignments"""

from datetime import date, datetime
from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, AppointmentStatus, Category, CategoryAssignment, User


class CategoryRepository:
    """Repository for category database operations"""

    @staticmethod
    def get_categories(db: Session) -> list[Category]:
        return db.query(Category).order_by(Category.name.asc()).all()

    @staticmethod
    def get_category_by_id(db: Session, category_id: str) -> Optional[Category]:
        return db.query(Category).filter(Category.id == category_id).first()

    @staticmethod
    def get_category_by_name(db: Session, name: str) -> Optional[Category]:
        """Case-insensitive lookup"""
        return db.query(Category).filter(func.lower(Category.name) == name.strip().lower()).first()

    @staticmethod
    def get_categories_by_names(db: Session, names: list[str]) -> dict[str, Category]:
        lowered = [n.lower() for n in names]
        rows = db.query(Category).filter(func.lower(Category.name).in_(lowered)).all()
        return {c.name.lower(): c for c in rows}

    @staticmethod
    def create_category(db: Session, **data) -> Category:
        category = Category(**data)
        db.add(category)
        db.commit()
        db.refresh(category)
        return category

    @staticmethod
    def update_category(db: Session, category: Category, **updates) -> Category:
        for key, value in updates.items():
            if value is not None and hasattr(category, key):
                setattr(category, key, value)
        db.commit()
        db.refresh(category)
        return category

    @staticmethod
    def count_assignments(db: Session, category_id: str) -> int:
        return (
            db.query(func.count(CategoryAssignment.id))
            .filter(CategoryAssignment.category_id == category_id)
            .scalar()
        )

    # Tier assignment methods
    @staticmethod
    def get_current_assignment(db: Session, client_id: str) -> Optional[CategoryAssignment]:
        """Newest assignment row of a client"""
        return (
            db.query(CategoryAssignment)
            .options(joinedload(CategoryAssignment.category))
            .filter(CategoryAssignment.client_id == client_id)
            .order_by(CategoryAssignment.started_at.desc(), CategoryAssignment.id.desc())
            .first()
        )

    @staticmethod
    def get_current_assignments(db: Session) -> dict[str, CategoryAssignment]:
        """Newest assignment row per client"""
        rows = (
            db.query(CategoryAssignment)
            .options(joinedload(CategoryAssignment.category), joinedload(CategoryAssignment.client))
            .order_by(
                CategoryAssignment.client_id,
                CategoryAssignment.started_at.desc(),
                CategoryAssignment.id.desc(),
            )
            .all()
        )
        current: dict[str, CategoryAssignment] = {}
        for row in rows:
            current.setdefault(row.client_id, row)
        return current

    @staticmethod
    def get_client_history(db: Session, client_id: str) -> list[CategoryAssignment]:
        return (
            db.query(CategoryAssignment)
            .options(joinedload(CategoryAssignment.category))
            .filter(CategoryAssignment.client_id == client_id)
            .order_by(CategoryAssignment.started_at.desc(), CategoryAssignment.id.desc())
            .all()
        )

    @staticmethod
    def add_assignment(
        db: Session,
        client_id: str,
        category_id: str,
        started_at: datetime,
        commit: bool = True,
        automatic: bool = False,
    ) -> CategoryAssignment:
        assignment = CategoryAssignment(
            client_id=client_id, category_id=category_id, started_at=started_at, automatic=automatic
        )
        db.add(assignment)
        if commit:
            db.commit()
            db.refresh(assignment)
        return assignment

    # Appointment statistics
    @staticmethod
    def get_appointment_stats(db: Session, client_ids: list[str]) -> dict[str, dict[str, int]]:
        """{client_id: {"total": n, "cancelados": m}}"""
        if not client_ids:
            return {}

        totals = dict(
            db.query(Appointment.client_id, func.count(Appointment.id))
            .filter(Appointment.client_id.in_(client_ids))
            .group_by(Appointment.client_id)
            .all()
        )
        cancelled = dict(
            db.query(Appointment.client_id, func.count(Appointment.id))
            .filter(
                Appointment.client_id.in_(client_ids),
                Appointment.status == AppointmentStatus.CANCELLED,
            )
            .group_by(Appointment.client_id)
            .all()
        )
        return {
            cid: {"total": totals.get(cid, 0), "cancelados": cancelled.get(cid, 0)} for cid in client_ids
        }

    @staticmethod
    def count_attended(db: Session, client_id: str, start: date, end: date) -> int:
        return (
            db.query(func.count(Appointment.id))
            .filter(
                Appointment.client_id == client_id,
                Appointment.status == AppointmentStatus.PAID,
                Appointment.date >= start,
                Appointment.date <= end,
            )
            .scalar()
        )

    @staticmethod
    def count_penalties(db: Session, client_id: str, start: date, end: date) -> int:
        """No-shows plus same-day cancellations inside [start, end]"""
        no_shows = (
            db.query(func.count(Appointment.id))
            .filter(
                Appointment.client_id == client_id,
                Appointment.status == AppointmentStatus.NO_SHOW,
                Appointment.date >= start,
                Appointment.date <= end,
            )
            .scalar()
        )
        late_cancellations = (
            db.query(func.count(Appointment.id))
            .filter(
                Appointment.client_id == client_id,
                Appointment.status == AppointmentStatus.CANCELLED,
                Appointment.same_day_cancellation.is_(True),
                Appointment.date >= start,
                Appointment.date <= end,
            )
            .scalar()
        )
        return no_shows + late_cancellations

    @staticmethod
    def get_client(db: Session, client_id: str) -> Optional[User]:
        return db.query(User).filter(User.id == client_id).first()
