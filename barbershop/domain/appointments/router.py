"""Appointment router - FastAPI endpoints for booking and the appointment lifecycle"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from ... import config
from ...auth import get_current_user, is_staff, require_admin, require_barber_or_admin
from ...database import get_db
from ...deduplication import standard_deduplication
from ...models import User
from ...rate_limiter import user_limiter, user_modification_limiter
from ...shared.validators import parse_date
from ..billing.router import get_billing_service
from ..billing.service import BillingService
from .schemas import (
    AppointmentCreate,
    AppointmentResponse,
    AppointmentUpdate,
    CheckoutRequest,
    CheckoutResponse,
    SlotResponse,
    StatusChangeResponse,
)
from .service import AppointmentService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/appointments", tags=["Appointments"])


def get_appointment_service(db: Session = Depends(get_db)) -> AppointmentService:
    """Dependency injection for AppointmentService"""
    return AppointmentService(db)


def _date_param(value: str):
    try:
        return parse_date(value)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e


def _status_change(result: dict) -> StatusChangeResponse:
    return StatusChangeResponse(
        turno=AppointmentResponse.from_model(result["turno"]),
        categoriaNueva=result["categoriaNueva"],
    )


# ============================================================================
# BOOKING
# ============================================================================


@router.post(
    "",
    response_model=AppointmentResponse,
    status_code=201,
    dependencies=[Depends(user_modification_limiter), Depends(standard_deduplication)],
)
async def book_appointment(
    data: AppointmentCreate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Book an appointment; clients book for themselves"""
    return AppointmentResponse.from_model(service.book(data, current_user))


@router.get("", response_model=list[AppointmentResponse], dependencies=[Depends(user_limiter)])
async def get_appointments(
    fecha: Optional[str] = Query(None, description="YYYY-MM-DD"),
    estado: Optional[str] = Query(None),
    current_user: User = Depends(require_barber_or_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    on_date = _date_param(fecha) if fecha else None
    return [AppointmentResponse.from_model(a) for a in service.get_appointments(on_date, estado)]


# ============================================================================
# AVAILABILITY
# ============================================================================


@router.get(
    "/available/{fecha}/{branch_id}",
    response_model=list[SlotResponse],
    dependencies=[Depends(user_limiter)],
)
async def available_by_branch(
    fecha: str,
    branch_id: str,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Free slots of a branch on a date"""
    return service.available_by_branch(branch_id, _date_param(fecha))


@router.get(
    "/barber/{barber_id}/{fecha}",
    response_model=list[SlotResponse],
    dependencies=[Depends(user_limiter)],
)
async def available_by_barber(
    barber_id: str,
    fecha: str,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Free slots of a barber on a date"""
    return service.available_by_barber(barber_id, _date_param(fecha))


# ============================================================================
# LISTINGS
# ============================================================================


@router.get("/user/{user_id}", response_model=list[AppointmentResponse], dependencies=[Depends(user_limiter)])
async def get_by_user(
    user_id: str,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Appointments of a client, or assigned to a barber"""
    if not is_staff(current_user) and current_user.id != user_id:
        raise HTTPException(status_code=403, detail="No tiene permiso para ver estos turnos")
    return [AppointmentResponse.from_model(a) for a in service.get_by_user(user_id)]


@router.get("/branch/{branch_id}", response_model=list[AppointmentResponse], dependencies=[Depends(user_limiter)])
async def get_by_branch(
    branch_id: str,
    fecha: Optional[str] = Query(None, description="YYYY-MM-DD"),
    current_user: User = Depends(require_barber_or_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    on_date = _date_param(fecha) if fecha else None
    return [AppointmentResponse.from_model(a) for a in service.get_by_branch(branch_id, on_date)]


@router.get("/{appointment_id}", response_model=AppointmentResponse, dependencies=[Depends(user_limiter)])
async def get_appointment(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return AppointmentResponse.from_model(service.get_visible_appointment(appointment_id, current_user))


# ============================================================================
# LIFECYCLE
# ============================================================================


@router.put(
    "/{appointment_id}",
    response_model=AppointmentResponse,
    dependencies=[Depends(user_modification_limiter), Depends(standard_deduplication)],
)
async def update_appointment(
    appointment_id: str,
    data: AppointmentUpdate,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    """Reschedule a scheduled appointment"""
    return AppointmentResponse.from_model(service.update(appointment_id, data, current_user))


@router.put(
    "/{appointment_id}/cancel",
    response_model=StatusChangeResponse,
    dependencies=[Depends(user_modification_limiter)],
)
async def cancel_appointment(
    appointment_id: str,
    current_user: User = Depends(get_current_user),
    service: AppointmentService = Depends(get_appointment_service),
):
    return _status_change(service.cancel(appointment_id, current_user))


@router.put(
    "/{appointment_id}/checkout",
    response_model=CheckoutResponse,
    dependencies=[Depends(user_modification_limiter), Depends(standard_deduplication)],
)
async def checkout_appointment(
    appointment_id: str,
    data: CheckoutRequest,
    current_user: User = Depends(require_barber_or_admin),
    service: AppointmentService = Depends(get_appointment_service),
    billing: BillingService = Depends(get_billing_service),
):
    """
    Charge the appointment with the client's tier discount.

    With `facturar` the invoice is issued right after; a billing failure
    is reported in `errorFacturacion` and the payment stays recorded.
    """
    result = service.checkout(appointment_id, data)
    response = {
        "turno": AppointmentResponse.from_model(result["turno"]),
        "categoriaNueva": result["categoriaNueva"],
        "factura": None,
        "errorFacturacion": None,
    }

    if data.facturar:
        if not config.BILLING_ENABLED:
            response["errorFacturacion"] = "La facturación electrónica está deshabilitada"
        else:
            try:
                invoice = await billing.bill_appointment(appointment_id)
                response["factura"] = {
                    "voucherNumber": invoice.voucher_number,
                    "cae": invoice.cae,
                    "caeVencimiento": invoice.cae_expiration,
                    "total": invoice.total_amount,
                }
            except HTTPException as e:
                logger.error(f"❌ Appointment {appointment_id} charged but not billed: {e.detail}")
                response["errorFacturacion"] = str(e.detail)

    return response


@router.put(
    "/{appointment_id}/no-show",
    response_model=StatusChangeResponse,
    dependencies=[Depends(user_modification_limiter)],
)
async def mark_no_show(
    appointment_id: str,
    current_user: User = Depends(require_barber_or_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    """The client did not attend"""
    return _status_change(service.mark_no_show(appointment_id))


@router.delete("/{appointment_id}", response_model=AppointmentResponse, dependencies=[Depends(user_modification_limiter)])
async def delete_appointment(
    appointment_id: str,
    current_user: User = Depends(require_admin),
    service: AppointmentService = Depends(get_appointment_service),
):
    return service.destroy(appointment_id)
