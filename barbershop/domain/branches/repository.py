"""Branch repository - Database operations for branches"""

from typing import Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from ...models import Branch, User


class BranchRepository:
    """Repository for branch database operations"""

    @staticmethod
    def get_branches(db: Session) -> list[Branch]:
        return db.query(Branch).order_by(Branch.street.asc(), Branch.number.asc()).all()

    @staticmethod
    def get_branch_by_id(db: Session, branch_id: str) -> Optional[Branch]:
        return db.query(Branch).filter(Branch.id == branch_id).first()

    @staticmethod
    def get_branch_by_address(db: Session, street: str, number: int) -> Optional[Branch]:
        return (
            db.query(Branch)
            .filter(func.lower(Branch.street) == street.lower(), Branch.number == number)
            .first()
        )

    @staticmethod
    def create_branch(db: Session, **data) -> Branch:
        branch = Branch(**data)
        db.add(branch)
        db.commit()
        db.refresh(branch)
        return branch

    @staticmethod
    def update_branch(db: Session, branch: Branch, **updates) -> Branch:
        for key, value in updates.items():
            if value is not None and hasattr(branch, key):
                setattr(branch, key, value)
        db.commit()
        db.refresh(branch)
        return branch

    @staticmethod
    def delete_branch(db: Session, branch: Branch) -> None:
        db.delete(branch)
        db.commit()

    @staticmethod
    def count_barbers(db: Session, branch_id: str) -> int:
        return db.query(func.count(User.id)).filter(User.branch_id == branch_id).scalar()
