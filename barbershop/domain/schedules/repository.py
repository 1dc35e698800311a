"""Schedule repository - Database operations for barber working blocks"""

from datetime import date, time
from typing import Optional

from sqlalchemy.orm import Session

from ...models import Schedule


class ScheduleRepository:
    @staticmethod
    def get_schedules(db: Session, barber_id: Optional[str] = None, on_date: Optional[date] = None) -> list[Schedule]:
        query = db.query(Schedule)
        if barber_id:
            query = query.filter(Schedule.barber_id == barber_id)
        if on_date:
            query = query.filter(Schedule.date == on_date)
        return query.order_by(Schedule.date.asc(), Schedule.start_time.asc()).all()

    @staticmethod
    def get_schedule_by_id(db: Session, schedule_id: str) -> Optional[Schedule]:
        return db.query(Schedule).filter(Schedule.id == schedule_id).first()

    @staticmethod
    def find_duplicate(db: Session, barber_id: str, on_date: date, start: time) -> Optional[Schedule]:
        return (
            db.query(Schedule)
            .filter(Schedule.barber_id == barber_id, Schedule.date == on_date, Schedule.start_time == start)
            .first()
        )

    @staticmethod
    def create_schedule(db: Session, **data) -> Schedule:
        schedule = Schedule(**data)
        db.add(schedule)
        db.commit()
        db.refresh(schedule)
        return schedule

    @staticmethod
    def update_schedule(db: Session, schedule: Schedule, **updates) -> Schedule:
        for key, value in updates.items():
            if value is not None and hasattr(schedule, key):
                setattr(schedule, key, value)
        db.commit()
        db.refresh(schedule)
        return schedule

    @staticmethod
    def delete_schedule(db: Session, schedule: Schedule) -> None:
        db.delete(schedule)
        db.commit()
