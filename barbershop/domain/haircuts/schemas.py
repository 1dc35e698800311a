"""Haircut domain schemas"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...security_utils import sanitize_text


def _validate_haircut_name(v: str) -> str:
    v = sanitize_text(v)
    if len(v) < 2:
        raise ValueError("Nombre debe tener al menos 2 caracteres")
    if len(v) > 50:
        raise ValueError("Nombre no puede tener más de 50 caracteres")
    return v


class HaircutCreate(BaseModel):
    nombreCorte: str
    valorBase: float = Field(..., ge=0)

    @field_validator("nombreCorte")
    @classmethod
    def validate_name(cls, v):
        return _validate_haircut_name(v)


class HaircutUpdate(BaseModel):
    nombreCorte: Optional[str] = None
    valorBase: Optional[float] = Field(None, ge=0)

    @field_validator("nombreCorte")
    @classmethod
    def validate_name(cls, v):
        if v is not None:
            return _validate_haircut_name(v)
        return v


class HaircutResponse(BaseModel):
    codCorte: str
    nombreCorte: str
    valorBase: float

    @classmethod
    def from_model(cls, haircut) -> "HaircutResponse":
        return cls(codCorte=haircut.id, nombreCorte=haircut.name, valorBase=haircut.base_price)
