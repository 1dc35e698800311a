"""User router - authentication and user account endpoints"""

import logging

from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from sqlalchemy.orm import Session

from ...auth import get_current_user, is_staff, require_admin, require_barber_or_admin, require_self_or_admin
from ...database import get_db
from ...deduplication import lenient_deduplication, strict_deduplication
from ...models import User
from ...rate_limiter import (
    auth_limiter,
    general_limiter,
    get_client_ip,
    sensitive_limiter,
    user_limiter,
    user_modification_limiter,
)
from ...shared.validators import parse_date, parse_time
from .schemas import (
    LoginRequest,
    MessageResponse,
    PasswordChange,
    ProfileResponse,
    RefreshRequest,
    SecurityAnswerVerify,
    SecurityQuestionResponse,
    SecurityQuestionUpdate,
    TokenResponse,
    UserRegister,
    UserResponse,
    UserUpdate,
)
from .service import UserService

logger = logging.getLogger(__name__)

auth_router = APIRouter(prefix="/auth", tags=["Auth"])
router = APIRouter(prefix="/users", tags=["Users"])


def get_user_service(db: Session = Depends(get_db)) -> UserService:
    """Dependency injection for UserService"""
    return UserService(db)


def ensure_self_or_staff(user: User, target_user_id: str):
    if not is_staff(user) and user.id != target_user_id:
        raise HTTPException(status_code=403, detail="No tiene permiso para acceder a este usuario")


# ============================================================================
# AUTHENTICATION
# ============================================================================


@auth_router.post(
    "/register",
    response_model=UserResponse,
    status_code=201,
    dependencies=[Depends(general_limiter), Depends(strict_deduplication)],
)
async def register(data: UserRegister, service: UserService = Depends(get_user_service)):
    """Client self-registration"""
    return UserResponse.from_model(service.register(data))


@auth_router.post("/login", response_model=TokenResponse, dependencies=[Depends(auth_limiter)])
async def login(request: Request, data: LoginRequest, service: UserService = Depends(get_user_service)):
    return service.login(data, get_client_ip(request))


@auth_router.post("/refresh", response_model=TokenResponse, dependencies=[Depends(general_limiter)])
async def refresh(request: Request, data: RefreshRequest, service: UserService = Depends(get_user_service)):
    """Exchange a refresh token for a new token pair"""
    return service.refresh(data.refreshToken, get_client_ip(request))


@auth_router.post("/logout", response_model=MessageResponse)
async def logout(data: RefreshRequest, service: UserService = Depends(get_user_service)):
    return service.logout(data.refreshToken)


@auth_router.get("/me", response_model=ProfileResponse)
async def me(
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    return service.get_profile(current_user.id)


@auth_router.post("/change-password", response_model=MessageResponse, dependencies=[Depends(sensitive_limiter)])
async def change_password(
    data: PasswordChange,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Change password; every session of the user is closed"""
    return service.change_password(current_user, data)


# ============================================================================
# PASSWORD RECOVERY
# ============================================================================


@router.get(
    "/security-question/{email}",
    response_model=SecurityQuestionResponse,
    dependencies=[Depends(sensitive_limiter)],
)
async def get_security_question(email: str, service: UserService = Depends(get_user_service)):
    return service.get_security_question(email)


@router.post(
    "/verify-security-answer",
    response_model=MessageResponse,
    dependencies=[Depends(sensitive_limiter), Depends(strict_deduplication)],
)
async def verify_security_answer(
    request: Request,
    data: SecurityAnswerVerify,
    service: UserService = Depends(get_user_service),
):
    """Reset the password answering the security question"""
    return service.reset_password_with_answer(data, get_client_ip(request))


@router.patch(
    "/{user_id}/security-question",
    response_model=MessageResponse,
    dependencies=[Depends(user_modification_limiter)],
)
async def update_security_question(
    user_id: str,
    data: SecurityQuestionUpdate,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    if current_user.id != user_id:
        raise HTTPException(status_code=403, detail="Solo puede modificar su propia pregunta de seguridad")
    return service.set_security_question(current_user, data)


# ============================================================================
# USERS
# ============================================================================


@router.get("", response_model=list[UserResponse], dependencies=[Depends(user_limiter)])
async def get_clients(
    includeInactive: bool = Query(False),
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """List clients"""
    return [UserResponse.from_model(u) for u in service.get_clients(includeInactive)]


@router.get("/branch/{branch_id}", response_model=list[UserResponse], dependencies=[Depends(user_limiter)])
async def get_by_branch(
    branch_id: str,
    current_user: User = Depends(require_barber_or_admin),
    service: UserService = Depends(get_user_service),
):
    """Active staff of a branch"""
    return [UserResponse.from_model(u) for u in service.get_by_branch(branch_id)]


@router.get(
    "/available-barbers/{branch_id}/{fecha}/{hora}",
    response_model=list[UserResponse],
    dependencies=[Depends(user_limiter)],
)
async def available_barbers(
    branch_id: str,
    fecha: str = Path(..., description="YYYY-MM-DD"),
    hora: str = Path(..., description="HH:MM"),
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Barbers of the branch free at that date and time"""
    try:
        on_date, start = parse_date(fecha), parse_time(hora)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    return [UserResponse.from_model(u) for u in service.available_barbers(branch_id, on_date, start)]


@router.get("/{user_id}/profile", response_model=ProfileResponse, dependencies=[Depends(user_limiter)])
async def get_profile(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """User data with the current category"""
    ensure_self_or_staff(current_user, user_id)
    return service.get_profile(user_id)


@router.get("/{user_id}", response_model=UserResponse, dependencies=[Depends(user_limiter)])
async def get_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    ensure_self_or_staff(current_user, user_id)
    return UserResponse.from_model(service.get_user(user_id))


@router.put(
    "/{user_id}",
    response_model=UserResponse,
    dependencies=[Depends(user_modification_limiter), Depends(lenient_deduplication)],
)
async def update_user(
    user_id: str,
    data: UserUpdate,
    current_user: User = Depends(require_self_or_admin),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_model(service.update_user(user_id, data))


@router.delete("/{user_id}", response_model=UserResponse, dependencies=[Depends(user_modification_limiter)])
async def deactivate_user(
    user_id: str,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    """Deactivate an account (soft delete)"""
    return UserResponse.from_model(service.deactivate_user(user_id, current_user))


@router.patch("/{user_id}/reactivate", response_model=UserResponse, dependencies=[Depends(user_modification_limiter)])
async def reactivate_user(
    user_id: str,
    current_user: User = Depends(require_admin),
    service: UserService = Depends(get_user_service),
):
    return UserResponse.from_model(service.reactivate_user(user_id))
