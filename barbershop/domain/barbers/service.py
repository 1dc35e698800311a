"""Barber service - Business logic for staff accounts"""

import logging
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import Branch, User
from ...security_utils import hash_password
from ...token_blacklist import blacklist_all_user_tokens
from ..users.repository import UserRepository
from .repository import BarberRepository
from .schemas import BarberCreate, BarberUpdate

logger = logging.getLogger(__name__)


class BarberService:
    def __init__(self, db: Session):
        self.db = db
        self.repo = BarberRepository()
        self.users = UserRepository()

    def get_barbers(self, branch_id: Optional[str] = None, include_inactive: bool = False) -> list[User]:
        return self.repo.get_barbers(self.db, branch_id, include_inactive)

    def get_barber(self, barber_id: str) -> User:
        barber = self.repo.get_barber_by_id(self.db, barber_id)
        if not barber:
            raise HTTPException(status_code=404, detail="Barbero no encontrado")
        return barber

    def _ensure_branch(self, branch_id: Optional[str]):
        if branch_id and not self.db.query(Branch).filter(Branch.id == branch_id).first():
            raise HTTPException(status_code=404, detail="Sucursal no encontrada")

    def _ensure_unique(self, dni=None, email=None, cuil=None, exclude_id=None):
        checks = (
            (dni, self.users.get_user_by_dni, "El DNI ya existe en el sistema"),
            (email, self.users.get_user_by_email, "El email ya existe en el sistema"),
            (cuil, self.users.get_user_by_cuil, "El CUIL ya existe en el sistema"),
        )
        for value, lookup, message in checks:
            if value:
                existing = lookup(self.db, value)
                if existing and existing.id != exclude_id:
                    raise HTTPException(status_code=409, detail=message)

    def create_barber(self, data: BarberCreate) -> User:
        self._ensure_branch(data.codSucursal)
        self._ensure_unique(data.dni, data.email, data.cuil)

        try:
            barber = self.users.create_user(
                self.db,
                dni=data.dni,
                cuil=data.cuil,
                first_name=data.nombre,
                last_name=data.apellido,
                phone=data.telefono,
                email=data.email,
                password_hash=hash_password(data.contrasena),
                branch_id=data.codSucursal,
                is_admin=data.esAdmin,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="El DNI, CUIL o email ya existe en el sistema") from e

        logger.info(f"✅ Barber created: {barber.email} (branch {barber.branch_id})")
        return barber

    def update_barber(self, barber_id: str, data: BarberUpdate) -> User:
        barber = self.get_barber(barber_id)
        self._ensure_branch(data.codSucursal)
        self._ensure_unique(data.dni, data.email, data.cuil, exclude_id=barber.id)

        new_dni = data.dni or barber.dni
        new_cuil = data.cuil or barber.cuil
        if new_cuil[3:11] != new_dni:
            raise HTTPException(status_code=400, detail="El DNI en el CUIL no coincide con el DNI proporcionado")

        try:
            return self.users.update_user(
                self.db,
                barber,
                dni=data.dni,
                cuil=data.cuil,
                first_name=data.nombre,
                last_name=data.apellido,
                phone=data.telefono,
                email=data.email,
                branch_id=data.codSucursal,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="El nuevo CUIL ya existe en el sistema") from e

    def deactivate_barber(self, barber_id: str, actor: User) -> User:
        barber = self.get_barber(barber_id)
        if barber.id == actor.id:
            raise HTTPException(status_code=400, detail="No puede desactivar su propia cuenta")

        barber = self.users.update_user(self.db, barber, is_active=False)
        blacklist_all_user_tokens(self.db, barber.id)
        logger.info(f"🚫 Barber deactivated: {barber.email}")
        return barber
