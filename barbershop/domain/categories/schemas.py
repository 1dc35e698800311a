"""Category domain schemas - Pydantic models for validation"""

from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator

from ...security_utils import sanitize_text
from ...shared.validators import NAME_PATTERN


def _validate_category_name(v: str) -> str:
    v = sanitize_text(v)
    if len(v) < 2:
        raise ValueError("Nombre de categoría debe tener al menos 2 caracteres")
    if len(v) > 50:
        raise ValueError("Nombre de categoría no puede tener más de 50 caracteres")
    if not NAME_PATTERN.match(v):
        raise ValueError("Nombre solo puede contener letras")
    return v


def _validate_description(v: str) -> str:
    v = sanitize_text(v)
    if len(v) < 10:
        raise ValueError("Descripción debe tener al menos 10 caracteres")
    if len(v) > 250:
        raise ValueError("Descripción no puede tener más de 250 caracteres")
    return v


class CategoryCreate(BaseModel):
    nombreCategoria: str
    descCategoria: str
    descuentoCorte: float = Field(0, ge=0, le=100)
    descuentoProducto: float = Field(0, ge=0, le=100)

    @field_validator("nombreCategoria")
    @classmethod
    def validate_name(cls, v):
        return _validate_category_name(v)

    @field_validator("descCategoria")
    @classmethod
    def validate_description(cls, v):
        return _validate_description(v)


class CategoryUpdate(BaseModel):
    nombreCategoria: Optional[str] = None
    descCategoria: Optional[str] = None
    descuentoCorte: Optional[float] = Field(None, ge=0, le=100)
    descuentoProducto: Optional[float] = Field(None, ge=0, le=100)

    @field_validator("nombreCategoria")
    @classmethod
    def validate_name(cls, v):
        if v is not None:
            return _validate_category_name(v)
        return v

    @field_validator("descCategoria")
    @classmethod
    def validate_description(cls, v):
        if v is not None:
            return _validate_description(v)
        return v


class CategoryResponse(BaseModel):
    codCategoria: str
    nombreCategoria: str
    descCategoria: str
    descuentoCorte: float
    descuentoProducto: float

    @classmethod
    def from_model(cls, category) -> "CategoryResponse":
        return cls(
            codCategoria=category.id,
            nombreCategoria=category.name,
            descCategoria=category.description,
            descuentoCorte=category.haircut_discount,
            descuentoProducto=category.product_discount,
        )


class ClientStats(BaseModel):
    total: int
    cancelados: int


class CategoryClient(BaseModel):
    codCliente: str
    dni: str
    nombre: str
    apellido: str
    email: Optional[str] = None
    telefono: Optional[str] = None
    stats: ClientStats


class CategoryRef(BaseModel):
    codCategoria: str
    nombreCategoria: str


class CategoryClientsResponse(BaseModel):
    categoria: CategoryRef
    clientes: list[CategoryClient]


class ClientDecision(BaseModel):
    codCliente: str
    decision: Literal["promote", "demote"]


class CategoryDeleteRequest(BaseModel):
    """Reassignment instructions for the clients currently in the category"""

    action: Optional[Literal["promote_all", "demote_all", "per_client"]] = None
    perClient: Optional[list[ClientDecision]] = None


class CategoryDeleteResponse(BaseModel):
    categoria: CategoryResponse
    reassignedCount: int


class CategoryAssignmentResponse(BaseModel):
    codCategoria: str
    nombreCategoria: Optional[str] = None
    codCliente: str
    ultimaFechaInicio: datetime

    @classmethod
    def from_model(cls, assignment) -> "CategoryAssignmentResponse":
        return cls(
            codCategoria=assignment.category_id,
            nombreCategoria=assignment.category.name if assignment.category else None,
            codCliente=assignment.client_id,
            ultimaFechaInicio=assignment.started_at,
        )


class CategoryAssignRequest(BaseModel):
    """Manual tier assignment by an administrator"""

    codCliente: str
    codCategoria: str


class SemesterReviewResponse(BaseModel):
    semestreDesde: str
    semestreHasta: str
    revisados: int
    degradados: list[dict]
