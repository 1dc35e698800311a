"""Barber domain schemas - staff accounts (users with CUIL)"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from ...shared.validators import (
    validate_ar_phone,
    validate_cuil,
    validate_dni,
    validate_email,
    validate_password,
    validate_person_name,
)
from ..users.schemas import PASSWORD_ALIAS


class BarberCreate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    dni: str
    cuil: str
    nombre: str
    apellido: str
    telefono: Optional[str] = None
    email: str
    contrasena: str = Field(..., validation_alias=PASSWORD_ALIAS)
    codSucursal: Optional[str] = None
    esAdmin: bool = False

    @field_validator("dni")
    @classmethod
    def check_dni(cls, v):
        return validate_dni(v)

    @field_validator("cuil")
    @classmethod
    def check_cuil_format(cls, v):
        return validate_cuil(v)

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

    @model_validator(mode="after")
    def check_cuil_matches_dni(self):
        validate_cuil(self.cuil, self.dni)
        return self


class BarberUpdate(BaseModel):
    dni: Optional[str] = None
    cuil: Optional[str] = None
    nombre: Optional[str] = None
    apellido: Optional[str] = None
    telefono: Optional[str] = None
    email: Optional[str] = None
    codSucursal: Optional[str] = None

    @field_validator("dni")
    @classmethod
    def check_dni(cls, v):
        if v is not None:
            return validate_dni(v)
        return v

    @field_validator("cuil")
    @classmethod
    def check_cuil_format(cls, v):
        if v is not None:
            return validate_cuil(v)
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
