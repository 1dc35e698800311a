"""User domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

from ...security_utils import sanitize_text
from ...shared.validators import (
    validate_ar_phone,
    validate_dni,
    validate_email,
    validate_password,
    validate_person_name,
)

# Accept the accented spelling used by the web client
PASSWORD_ALIAS = AliasChoices("contrasena", "contraseña")
NEW_PASSWORD_ALIAS = AliasChoices("contrasenaNueva", "contraseñaNueva")


class UserRegister(BaseModel):
    """Schema for client self-registration"""

    model_config = ConfigDict(populate_by_name=True)

    dni: str
    nombre: str
    apellido: str
    telefono: Optional[str] = None
    email: str
    contrasena: str = Field(..., validation_alias=PASSWORD_ALIAS)
    preguntaSeguridad: Optional[str] = None
    respuestaSeguridad: Optional[str] = None

    @field_validator("dni")
    @classmethod
    def check_dni(cls, v):
        return validate_dni(v)

    @field_validator("nombre")
    @classmethod
    def check_nombre(cls, v):
        return validate_person_name(v, "Nombre")

    @field_validator("apellido")
    @classmethod
    def check_apellido(cls, v):
        return validate_person_name(v, "Apellido")

    @field_validator("telefono")
    @classmethod
    def check_telefono(cls, v):
        return validate_ar_phone(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)

    @field_validator("contrasena")
    @classmethod
    def check_password(cls, v):
        return validate_password(v)

    @field_validator("preguntaSeguridad", "respuestaSeguridad")
    @classmethod
    def check_security_text(cls, v):
        if v is None:
            return v
        v = sanitize_text(v)
        return v or None


class LoginRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    email: str
    contrasena: str = Field(..., validation_alias=PASSWORD_ALIAS)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()


class RefreshRequest(BaseModel):
    refreshToken: str


class UserUpdate(BaseModel):
    """Schema for updating profile data (self or admin)"""

    dni: Optional[str] = None
    nombre: Optional[str] = None
    apellido: Optional[str] = None
    telefono: Optional[str] = None
    email: Optional[str] = None

    @field_validator("dni")
    @classmethod
    def check_dni(cls, v):
        if v is not None:
            return validate_dni(v)
        return v

    @field_validator("nombre")
    @classmethod
    def check_nombre(cls, v):
        if v is not None:
            return validate_person_name(v, "Nombre")
        return v

    @field_validator("apellido")
    @classmethod
    def check_apellido(cls, v):
        if v is not None:
            return validate_person_name(v, "Apellido")
        return v

    @field_validator("telefono")
    @classmethod
    def check_telefono(cls, v):
        return validate_ar_phone(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v):
        return validate_email(v)


class PasswordChange(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    contrasenaActual: str = Field(..., validation_alias=AliasChoices("contrasenaActual", "contraseñaActual"))
    contrasenaNueva: str = Field(..., validation_alias=NEW_PASSWORD_ALIAS)

    @field_validator("contrasenaNueva")
    @classmethod
    def check_password(cls, v):
        return validate_password(v)


class SecurityQuestionUpdate(BaseModel):
    preguntaSeguridad: str = Field(..., min_length=5, max_length=255)
    respuestaSeguridad: str = Field(..., min_length=1, max_length=255)

    @field_validator("preguntaSeguridad", "respuestaSeguridad")
    @classmethod
    def clean(cls, v):
        v = sanitize_text(v)
        if not v:
            raise ValueError("Campo requerido")
        return v


class SecurityAnswerVerify(BaseModel):
    """Password reset through the security question"""

    model_config = ConfigDict(populate_by_name=True)

    email: str
    respuestaSeguridad: str
    contrasenaNueva: str = Field(..., validation_alias=NEW_PASSWORD_ALIAS)

    @field_validator("email")
    @classmethod
    def normalize_email(cls, v):
        return v.strip().lower()

    @field_validator("contrasenaNueva")
    @classmethod
    def check_password(cls, v):
        return validate_password(v)


class SecurityQuestionResponse(BaseModel):
    email: str
    preguntaSeguridad: str


class UserResponse(BaseModel):
    codUsuario: str
    dni: str
    cuil: Optional[str] = None
    nombre: str
    apellido: str
    telefono: Optional[str] = None
    email: str
    codSucursal: Optional[str] = None
    tipoUsuario: str
    activo: bool
    created_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, user) -> "UserResponse":
        return cls(
            codUsuario=user.id,
            dni=user.dni,
            cuil=user.cuil,
            nombre=user.first_name,
            apellido=user.last_name,
            telefono=user.phone,
            email=user.email,
            codSucursal=user.branch_id,
            tipoUsuario=user.user_type,
            activo=user.is_active,
            created_at=user.created_at,
        )


class CurrentCategory(BaseModel):
    codCategoria: str
    nombreCategoria: str
    descuentoCorte: float
    descuentoProducto: float
    ultimaFechaInicio: datetime


class ProfileResponse(UserResponse):
    categoria: Optional[CurrentCategory] = None


class TokenResponse(BaseModel):
    accessToken: str
    refreshToken: str
    user: UserResponse


class MessageResponse(BaseModel):
    message: str
