"""Branch domain schemas - Pydantic models for validation"""

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...security_utils import sanitize_text


def _validate_street(v: str) -> str:
    v = sanitize_text(v)
    if len(v) < 2:
        raise ValueError("Calle debe tener al menos 2 caracteres")
    if len(v) > 100:
        raise ValueError("Calle no puede tener más de 100 caracteres")
    return v


class BranchCreate(BaseModel):
    calle: str
    altura: int = Field(..., ge=1, le=10000)

    @field_validator("calle")
    @classmethod
    def validate_street(cls, v):
        return _validate_street(v)


class BranchUpdate(BaseModel):
    calle: Optional[str] = None
    altura: Optional[int] = Field(None, ge=1, le=10000)

    @field_validator("calle")
    @classmethod
    def validate_street(cls, v):
        if v is not None:
            return _validate_street(v)
        return v


class BranchResponse(BaseModel):
    codSucursal: str
    calle: str
    altura: int
    direccion: str

    @classmethod
    def from_model(cls, branch) -> "BranchResponse":
        return cls(
            codSucursal=branch.id,
            calle=branch.street,
            altura=branch.number,
            direccion=f"{branch.street} {branch.number}",
        )
