"""Branch service - Business logic for branch operations"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Branch
from .repository import BranchRepository
from .schemas import BranchCreate, BranchResponse, BranchUpdate

logger = logging.getLogger(__name__)


class BranchService:
    """Service layer for branch business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = BranchRepository()

    def get_branches(self) -> list[Branch]:
        return self.repo.get_branches(self.db)

    def get_branch(self, branch_id: str) -> Branch:
        branch = self.repo.get_branch_by_id(self.db, branch_id)
        if not branch:
            raise HTTPException(status_code=404, detail="Sucursal no encontrada")
        return branch

    def _ensure_unique_address(self, street: str, number: int, exclude_id: str = None):
        existing = self.repo.get_branch_by_address(self.db, street, number)
        if existing and existing.id != exclude_id:
            raise HTTPException(status_code=409, detail="Ya existe una sucursal en esa dirección")

    def create_branch(self, data: BranchCreate) -> Branch:
        self._ensure_unique_address(data.calle, data.altura)
        branch = self.repo.create_branch(self.db, street=data.calle, number=data.altura)
        logger.info(f"✅ Branch created: {branch.street} {branch.number}")
        return branch

    def update_branch(self, branch_id: str, data: BranchUpdate) -> Branch:
        branch = self.get_branch(branch_id)
        street = data.calle if data.calle is not None else branch.street
        number = data.altura if data.altura is not None else branch.number
        self._ensure_unique_address(street, number, exclude_id=branch.id)
        return self.repo.update_branch(self.db, branch, street=data.calle, number=data.altura)

    def delete_branch(self, branch_id: str) -> BranchResponse:
        branch = self.get_branch(branch_id)
        barbers = self.repo.count_barbers(self.db, branch.id)
        if barbers:
            logger.warning(f"⚠️ Refusing to delete branch {branch.id} with {barbers} barbers assigned")
            raise HTTPException(
                status_code=409,
                detail="No se puede eliminar: la sucursal tiene barberos asignados",
            )

        deleted = BranchResponse.from_model(branch)
        self.repo.delete_branch(self.db, branch)
        logger.info(f"🗑️ Branch deleted: {deleted.direccion}")
        return deleted
