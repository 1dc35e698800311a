"""Schedule domain schemas - barber working blocks"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, field_validator, model_validator

from ...security_utils import sanitize_text
from ...shared.validators import format_time, parse_date, parse_time


def _validate_status(v: str) -> str:
    v = sanitize_text(v)
    if not v:
        raise ValueError("Estado es requerido")
    if len(v) > 10:
        raise ValueError("Estado no puede tener más de 10 caracteres")
    return v


class ScheduleCreate(BaseModel):
    codBarbero: str
    fecha: date
    horaDesde: time
    horaHasta: time
    estado: str = "Activo"

    @field_validator("fecha", mode="before")
    @classmethod
    def validate_date(cls, v):
        return parse_date(v)

    @field_validator("horaDesde", "horaHasta", mode="before")
    @classmethod
    def validate_time(cls, v):
        return parse_time(v)

    @field_validator("estado")
    @classmethod
    def validate_status(cls, v):
        return _validate_status(v)

    @model_validator(mode="after")
    def validate_range(self):
        if self.horaDesde >= self.horaHasta:
            raise ValueError("La hora desde debe ser anterior a la hora hasta")
        return self


class ScheduleUpdate(BaseModel):
    fecha: Optional[date] = None
    horaDesde: Optional[time] = None
    horaHasta: Optional[time] = None
    estado: Optional[str] = None

    @field_validator("fecha", mode="before")
    @classmethod
    def validate_date(cls, v):
        if v is None:
            return v
        return parse_date(v)

    @field_validator("horaDesde", "horaHasta", mode="before")
    @classmethod
    def validate_time(cls, v):
        if v is None:
            return v
        return parse_time(v)

    @field_validator("estado")
    @classmethod
    def validate_status(cls, v):
        if v is not None:
            return _validate_status(v)
        return v


class ScheduleResponse(BaseModel):
    codHorario: str
    codBarbero: str
    fecha: date
    horaDesde: str
    horaHasta: str
    estado: str

    @classmethod
    def from_model(cls, schedule) -> "ScheduleResponse":
        return cls(
            codHorario=schedule.id,
            codBarbero=schedule.barber_id,
            fecha=schedule.date,
            horaDesde=format_time(schedule.start_time),
            horaHasta=format_time(schedule.end_time),
            estado=schedule.status,
        )
