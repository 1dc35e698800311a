"""Appointment domain schemas - Pydantic models for validation"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, Field, field_validator

from ...security_utils import sanitize_text
from ...shared.validators import format_time, parse_date, parse_time


class AppointmentCreate(BaseModel):
    """Booking request; clients may omit codCliente"""

    codCliente: Optional[str] = None
    codBarbero: str = Field(..., min_length=1)
    codCorte: Optional[str] = None
    fechaTurno: date
    horaDesde: time
    horaHasta: time

    @field_validator("fechaTurno", mode="before")
    @classmethod
    def validate_date(cls, v):
        return parse_date(v)

    @field_validator("horaDesde", "horaHasta", mode="before")
    @classmethod
    def validate_time(cls, v):
        return parse_time(v)


class AppointmentUpdate(BaseModel):
    """Reschedule or edit a scheduled appointment"""

    codBarbero: Optional[str] = None
    codCorte: Optional[str] = None
    fechaTurno: Optional[date] = None
    horaDesde: Optional[time] = None
    horaHasta: Optional[time] = None

    @field_validator("fechaTurno", mode="before")
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


class CheckoutRequest(BaseModel):
    codCorte: str = Field(..., min_length=1)
    metodoPago: str
    facturar: bool = False

    @field_validator("metodoPago")
    @classmethod
    def validate_payment_method(cls, v):
        v = sanitize_text(v)
        if not v:
            raise ValueError("Método de pago es requerido")
        if len(v) > 50:
            raise ValueError("Método de pago no puede tener más de 50 caracteres")
        return v


class SlotResponse(BaseModel):
    hora: str


class AppointmentResponse(BaseModel):
    codTurno: str
    codCliente: str
    codBarbero: str
    codCorte: Optional[str] = None
    fechaTurno: date
    horaDesde: str
    horaHasta: str
    estado: str
    precioTurno: Optional[float] = None
    metodoPago: Optional[str] = None
    fechaCancelacion: Optional[date] = None
    cancelacionMismoDia: bool = False
    cliente: Optional[str] = None
    barbero: Optional[str] = None
    codSucursal: Optional[str] = None
    nombreCorte: Optional[str] = None

    @classmethod
    def from_model(cls, appointment) -> "AppointmentResponse":
        return cls(
            codTurno=appointment.id,
            codCliente=appointment.client_id,
            codBarbero=appointment.barber_id,
            codCorte=appointment.haircut_id,
            fechaTurno=appointment.date,
            horaDesde=format_time(appointment.start_time),
            horaHasta=format_time(appointment.end_time),
            estado=appointment.status,
            precioTurno=appointment.price,
            metodoPago=appointment.payment_method,
            fechaCancelacion=appointment.cancelled_on,
            cancelacionMismoDia=bool(appointment.same_day_cancellation),
            cliente=appointment.client.full_name if appointment.client else None,
            barbero=appointment.barber.full_name if appointment.barber else None,
            codSucursal=appointment.barber.branch_id if appointment.barber else None,
            nombreCorte=appointment.haircut.name if appointment.haircut else None,
        )


class InvoiceSummary(BaseModel):
    voucherNumber: int
    cae: str
    caeVencimiento: str
    total: float


class CheckoutResponse(BaseModel):
    turno: AppointmentResponse
    categoriaNueva: Optional[str] = None
    factura: Optional[InvoiceSummary] = None
    errorFacturacion: Optional[str] = None


class StatusChangeResponse(BaseModel):
    turno: AppointmentResponse
    categoriaNueva: Optional[str] = None
