"""Billing router - ARCA electronic invoicing endpoints"""

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from ...auth import get_current_user, require_admin, require_barber_or_admin
from ...database import get_db
from ...deduplication import standard_deduplication
from ...models import User
from ...rate_limiter import user_limiter, user_modification_limiter
from .constants import DEFAULT_VOUCHER_TYPE
from .schemas import (
    BillAppointmentRequest,
    InvoiceResponse,
    LastVoucherResponse,
    VoucherCreate,
    VoucherResponse,
)
from .service import BillingService

router = APIRouter(prefix="/billing", tags=["Billing"])


def get_billing_service(db: Session = Depends(get_db)) -> BillingService:
    return BillingService(db)


# ============================================================================
# VOUCHERS
# ============================================================================


@router.post(
    "/comprobante",
    response_model=VoucherResponse,
    status_code=201,
    dependencies=[Depends(user_modification_limiter), Depends(standard_deduplication)],
)
async def create_voucher(
    data: VoucherCreate,
    current_user: User = Depends(require_admin),
    service: BillingService = Depends(get_billing_service),
):
    """Issue a voucher manually"""
    return await service.create_voucher(data)


@router.post(
    "/facturar-turno",
    response_model=InvoiceResponse,
    status_code=201,
    dependencies=[Depends(user_modification_limiter), Depends(standard_deduplication)],
)
async def bill_appointment(
    data: BillAppointmentRequest,
    current_user: User = Depends(require_barber_or_admin),
    service: BillingService = Depends(get_billing_service),
):
    """Invoice a paid appointment"""
    invoice = await service.bill_appointment(
        data.codTurno,
        voucher_type=data.tipoComprobante,
        doc_type=data.tipoDocumento,
        doc_number=data.numeroDocumento,
        iva_condition=data.condicionIVAReceptor,
    )
    return InvoiceResponse.from_model(invoice)


@router.get("/estado-servidor", dependencies=[Depends(user_limiter)])
async def server_status(
    current_user: User = Depends(require_barber_or_admin),
    service: BillingService = Depends(get_billing_service),
):
    return await service.server_status()


@router.get("/ultimo-comprobante", response_model=LastVoucherResponse, dependencies=[Depends(user_limiter)])
async def last_voucher(
    tipoComprobante: int = DEFAULT_VOUCHER_TYPE,
    current_user: User = Depends(require_barber_or_admin),
    service: BillingService = Depends(get_billing_service),
):
    return await service.last_voucher(tipoComprobante)


@router.get("/comprobante/{numero_comprobante}", dependencies=[Depends(user_limiter)])
async def voucher_info(
    numero_comprobante: int,
    tipoComprobante: int = DEFAULT_VOUCHER_TYPE,
    current_user: User = Depends(require_barber_or_admin),
    service: BillingService = Depends(get_billing_service),
):
    return await service.voucher_info(numero_comprobante, tipoComprobante)


# ============================================================================
# CATALOGS
# ============================================================================


@router.get("/tipos-comprobante", dependencies=[Depends(user_limiter)])
async def voucher_types(
    current_user: User = Depends(require_barber_or_admin),
    service: BillingService = Depends(get_billing_service),
):
    return await service.voucher_types()


@router.get("/tipos-documento", dependencies=[Depends(user_limiter)])
async def document_types(
    current_user: User = Depends(require_barber_or_admin),
    service: BillingService = Depends(get_billing_service),
):
    return await service.document_types()


@router.get("/tipos-alicuota", dependencies=[Depends(user_limiter)])
async def aliquot_types(
    current_user: User = Depends(require_barber_or_admin),
    service: BillingService = Depends(get_billing_service),
):
    return await service.aliquot_types()


@router.get("/puntos-venta", dependencies=[Depends(user_limiter)])
async def sales_points(
    current_user: User = Depends(require_admin),
    service: BillingService = Depends(get_billing_service),
):
    return await service.sales_points()


# ============================================================================
# PDF
# ============================================================================


@router.get("/pdf/{appointment_id}/{voucher_number}", dependencies=[Depends(user_limiter)])
async def invoice_pdf(
    appointment_id: str,
    voucher_number: int,
    current_user: User = Depends(get_current_user),
    service: BillingService = Depends(get_billing_service),
):
    pdf_bytes = service.invoice_pdf(appointment_id, voucher_number, current_user)
    return Response(
        content=pdf_bytes,
        media_type="application/pdf",
        headers={"Content-Disposition": f'inline; filename="factura-{voucher_number:08d}.pdf"'},
    )
