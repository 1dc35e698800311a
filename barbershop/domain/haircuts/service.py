"""Haircut service - Business logic for haircut types"""

import logging

from fastapi import HTTPException
from sqlalchemy.orm import Session

from ...models import Haircut
from .repository import HaircutRepository
from .schemas import HaircutCreate, HaircutResponse, HaircutUpdate

logger = logging.getLogger(__name__)


class HaircutService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = HaircutRepository()

    def get_haircuts(self) -> list[Haircut]:
        return self.repo.get_haircuts(self.db)

    def get_haircut(self, haircut_id: str) -> Haircut:
        haircut = self.repo.get_haircut_by_id(self.db, haircut_id)
        if not haircut:
            raise HTTPException(status_code=404, detail="Tipo de corte no encontrado")
        return haircut

    def create_haircut(self, data: HaircutCreate) -> Haircut:
        haircut = self.repo.create_haircut(self.db, name=data.nombreCorte, base_price=data.valorBase)
        logger.info(f"✅ Haircut created: {haircut.name} (${haircut.base_price})")
        return haircut

    def update_haircut(self, haircut_id: str, data: HaircutUpdate) -> Haircut:
        haircut = self.get_haircut(haircut_id)
        return self.repo.update_haircut(self.db, haircut, name=data.nombreCorte, base_price=data.valorBase)

    def delete_haircut(self, haircut_id: str) -> HaircutResponse:
        haircut = self.get_haircut(haircut_id)
        if self.repo.count_appointments(self.db, haircut.id):
            raise HTTPException(
                status_code=409,
                detail="No se puede eliminar: el tipo de corte está siendo utilizado",
            )
        deleted = HaircutResponse.from_model(haircut)
        self.repo.delete_haircut(self.db, haircut)
        logger.info(f"🗑️ Haircut deleted: {deleted.nombreCorte}")
        return deleted
