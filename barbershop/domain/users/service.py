"""User service - Business logic for accounts, sessions and profiles"""

import logging
from datetime import date, time
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ...models import User
from ...security_utils import (
    InvalidTokenError,
    TokenExpiredError,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    log_security_event,
    verify_password,
)
from ...token_blacklist import (
    blacklist_all_user_tokens,
    blacklist_token,
    is_refresh_token_active,
    store_refresh_token,
)
from ..categories.loyalty import LoyaltyService
from ..categories.repository import CategoryRepository
from .repository import UserRepository
from .schemas import (
    LoginRequest,
    PasswordChange,
    SecurityAnswerVerify,
    SecurityQuestionUpdate,
    UserRegister,
    UserResponse,
    UserUpdate,
)

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Email o contraseña incorrectos"
DUPLICATE_USER = "El DNI o email ya existe en el sistema"


def normalize_answer(answer: str) -> str:
    return " ".join(answer.strip().lower().split())


class UserService:
    """Service layer for user business logic"""

    def __init__(self, db: Session):
        self.db = db
        self.repo = UserRepository()

    # ========================================================================
    # AUTHENTICATION
    # ========================================================================

    def _ensure_unique(self, dni: Optional[str], email: Optional[str], exclude_id: Optional[str] = None):
        if dni:
            existing = self.repo.get_user_by_dni(self.db, dni)
            if existing and existing.id != exclude_id:
                raise HTTPException(status_code=409, detail=DUPLICATE_USER)
        if email:
            existing = self.repo.get_user_by_email(self.db, email)
            if existing and existing.id != exclude_id:
                raise HTTPException(status_code=409, detail=DUPLICATE_USER)

    def register(self, data: UserRegister) -> User:
        """Create a client account and give it the Inicial tier"""
        self._ensure_unique(data.dni, data.email)

        answer_hash = None
        if data.preguntaSeguridad and data.respuestaSeguridad:
            answer_hash = hash_password(normalize_answer(data.respuestaSeguridad))

        try:
            user = self.repo.create_user(
                self.db,
                dni=data.dni,
                first_name=data.nombre,
                last_name=data.apellido,
                phone=data.telefono,
                email=data.email,
                password_hash=hash_password(data.contrasena),
                security_question=data.preguntaSeguridad if answer_hash else None,
                security_answer_hash=answer_hash,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail=DUPLICATE_USER) from e

        LoyaltyService(self.db).assign_initial(user.id)
        logger.info(f"✅ Client registered: {user.email}")
        return user

    def issue_tokens(self, user: User) -> dict:
        access_token = create_access_token(user.id, user.user_type)
        refresh_token, expires_at = create_refresh_token(user.id, user.user_type)
        store_refresh_token(self.db, user.id, refresh_token, expires_at)
        return {
            "accessToken": access_token,
            "refreshToken": refresh_token,
            "user": UserResponse.from_model(user),
        }

    def login(self, data: LoginRequest, ip_address: Optional[str] = None) -> dict:
        user = self.repo.get_user_by_email(self.db, data.email)
        if not user or not user.is_active or not verify_password(data.contrasena, user.password_hash):
            log_security_event(
                "auth_failure",
                user_id=user.id if user else None,
                ip_address=ip_address,
                details={"reason": "invalid credentials", "email": data.email},
            )
            raise HTTPException(status_code=401, detail=INVALID_CREDENTIALS)

        logger.info(f"🔑 Login: {user.email} ({user.user_type})")
        return self.issue_tokens(user)

    def refresh(self, refresh_token: str, ip_address: Optional[str] = None) -> dict:
        """Rotate a refresh token: the presented one is blacklisted, a new pair is issued"""
        try:
            payload = decode_refresh_token(refresh_token)
        except (TokenExpiredError, InvalidTokenError) as e:
            log_security_event("auth_failure", ip_address=ip_address, details={"reason": str(e)})
            raise HTTPException(status_code=401, detail="Refresh token inválido o expirado") from e

        if not is_refresh_token_active(self.db, refresh_token):
            log_security_event(
                "auth_failure",
                user_id=payload["userId"],
                ip_address=ip_address,
                details={"reason": "refresh token revoked"},
            )
            raise HTTPException(status_code=401, detail="Refresh token revocado")

        user = self.repo.get_user_by_id(self.db, payload["userId"])
        if not user or not user.is_active:
            raise HTTPException(status_code=401, detail="Usuario no encontrado o inactivo")

        blacklist_token(self.db, refresh_token)
        return self.issue_tokens(user)

    def logout(self, refresh_token: str) -> dict:
        if blacklist_token(self.db, refresh_token):
            logger.info("👋 Refresh token revoked on logout")
        return {"message": "Sesión cerrada"}

    def change_password(self, user: User, data: PasswordChange) -> dict:
        if not verify_password(data.contrasenaActual, user.password_hash):
            raise HTTPException(status_code=401, detail="La contraseña actual es incorrecta")

        self.repo.update_user(self.db, user, password_hash=hash_password(data.contrasenaNueva))
        blacklist_all_user_tokens(self.db, user.id)
        logger.info(f"🔒 Password changed for {user.email}")
        return {"message": "Contraseña actualizada"}

    # ========================================================================
    # PASSWORD RECOVERY
    # ========================================================================

    def set_security_question(self, user: User, data: SecurityQuestionUpdate) -> dict:
        self.repo.update_user(
            self.db,
            user,
            security_question=data.preguntaSeguridad,
            security_answer_hash=hash_password(normalize_answer(data.respuestaSeguridad)),
        )
        return {"message": "Pregunta de seguridad actualizada"}

    def get_security_question(self, email: str) -> dict:
        user = self.repo.get_user_by_email(self.db, email)
        if not user or not user.is_active or not user.security_question:
            raise HTTPException(status_code=404, detail="No hay una pregunta de seguridad para ese email")
        return {"email": user.email, "preguntaSeguridad": user.security_question}

    def reset_password_with_answer(self, data: SecurityAnswerVerify, ip_address: Optional[str] = None) -> dict:
        user = self.repo.get_user_by_email(self.db, data.email)
        if (
            not user
            or not user.is_active
            or not user.security_answer_hash
            or not verify_password(normalize_answer(data.respuestaSeguridad), user.security_answer_hash)
        ):
            log_security_event(
                "auth_failure",
                user_id=user.id if user else None,
                ip_address=ip_address,
                details={"reason": "wrong security answer", "email": data.email},
            )
            raise HTTPException(status_code=401, detail="Respuesta de seguridad incorrecta")

        self.repo.update_user(self.db, user, password_hash=hash_password(data.contrasenaNueva))
        blacklist_all_user_tokens(self.db, user.id)
        logger.info(f"🔒 Password reset through security question for {user.email}")
        return {"message": "Contraseña restablecida"}

    # ========================================================================
    # USERS
    # ========================================================================

    def get_clients(self, include_inactive: bool = False) -> list[User]:
        return self.repo.get_clients(self.db, include_inactive)

    def get_user(self, user_id: str) -> User:
        user = self.repo.get_user_by_id(self.db, user_id)
        if not user:
            raise HTTPException(status_code=404, detail="Usuario no encontrado")
        return user

    def get_profile(self, user_id: str) -> dict:
        """User data plus the current loyalty tier"""
        user = self.get_user(user_id)
        profile = UserResponse.from_model(user).model_dump()
        profile["categoria"] = None

        assignment = CategoryRepository.get_current_assignment(self.db, user.id)
        if assignment:
            profile["categoria"] = {
                "codCategoria": assignment.category.id,
                "nombreCategoria": assignment.category.name,
                "descuentoCorte": assignment.category.haircut_discount,
                "descuentoProducto": assignment.category.product_discount,
                "ultimaFechaInicio": assignment.started_at,
            }
        return profile

    def update_user(self, user_id: str, data: UserUpdate) -> User:
        user = self.get_user(user_id)
        self._ensure_unique(data.dni, data.email, exclude_id=user.id)

        # Staff CUIL embeds the DNI
        if data.dni and user.cuil and user.cuil[3:11] != data.dni:
            raise HTTPException(status_code=400, detail="El DNI en el CUIL no coincide con el DNI proporcionado")

        try:
            return self.repo.update_user(
                self.db,
                user,
                dni=data.dni,
                first_name=data.nombre,
                last_name=data.apellido,
                phone=data.telefono,
                email=data.email,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="El nuevo DNI o email ya existe en el sistema") from e

    def deactivate_user(self, user_id: str, actor: User) -> User:
        """Soft delete: appointments and tier history are kept"""
        user = self.get_user(user_id)
        if user.id == actor.id:
            raise HTTPException(status_code=400, detail="No puede desactivar su propia cuenta")
        if not user.is_active:
            raise HTTPException(status_code=409, detail="El usuario ya está inactivo")

        user = self.repo.update_user(self.db, user, is_active=False)
        blacklist_all_user_tokens(self.db, user.id)
        logger.info(f"🚫 User deactivated: {user.email} by {actor.email}")
        return user

    def reactivate_user(self, user_id: str) -> User:
        user = self.get_user(user_id)
        if user.is_active:
            raise HTTPException(status_code=409, detail="El usuario ya está activo")
        user.is_active = True
        self.db.commit()
        self.db.refresh(user)
        logger.info(f"✅ User reactivated: {user.email}")
        return user

    def get_by_branch(self, branch_id: str) -> list[User]:
        return self.repo.get_staff_by_branch(self.db, branch_id)

    def available_barbers(self, branch_id: str, on_date: date, start: time) -> list[User]:
        """Active barbers of the branch without an appointment starting at that slot"""
        barbers = self.repo.get_staff_by_branch(self.db, branch_id)
        busy = self.repo.get_busy_barber_ids(self.db, [b.id for b in barbers], on_date, start)
        return [b for b in barbers if b.id not in busy]
