"""Billing service - ARCA electronic invoices for paid appointments"""

import logging
from datetime import date
from typing import Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from ... import config
from ...auth import is_staff
from ...models import AppointmentStatus, Invoice, User
from .arca_client import ArcaClient, ArcaError
from .constants import (
    CONCEPT,
    DEFAULT_DOC_TYPE,
    DEFAULT_IVA_CONDITION,
    DEFAULT_VOUCHER_TYPE,
    IVA_TYPES,
    VAT_RATE,
)
from .invoice_pdf import InvoicePDFGenerator
from .repository import InvoiceRepository
from .schemas import VoucherCreate

logger = logging.getLogger(__name__)


def split_vat(total: float) -> tuple[float, float]:
    """(net, vat) of a VAT-inclusive total, 2 decimals each"""
    net = round(total / (1 + VAT_RATE), 2)
    vat = round(total - net, 2)
    return net, vat


def afip_date(day: date) -> int:
    return int(day.strftime("%Y%m%d"))


def build_voucher_data(data: VoucherCreate, sales_point: int, today: date) -> dict:
    """WSFE voucher fields from the API payload"""
    voucher = {
        "CantReg": 1,
        "PtoVta": sales_point,
        "CbteTipo": data.tipoComprobante,
        "Concepto": data.concepto,
        "DocTipo": data.tipoDocumento,
        "DocNro": data.numeroDocumento,
        "CbteFch": afip_date(today),
        "ImpTotal": data.importeTotal,
        "ImpTotConc": data.importeNetoNoGravado,
        "ImpNeto": data.importeNetoGravado,
        "ImpOpEx": data.importeExento,
        "ImpIVA": data.importeIVA,
        "ImpTrib": data.importeTributos,
        "MonId": data.moneda,
        "MonCotiz": data.cotizacionMoneda,
        "CondicionIVAReceptorId": data.condicionIVAReceptor,
    }
    # Services need the service period and the payment due date
    if data.concepto in (CONCEPT["SERVICIOS"], CONCEPT["PRODUCTOS_Y_SERVICIOS"]):
        voucher["FchServDesde"] = afip_date(today)
        voucher["FchServHasta"] = afip_date(today)
        voucher["FchVtoPago"] = afip_date(today)
    if data.iva:
        voucher["Iva"] = [{"Id": item.id, "BaseImp": item.baseImponible, "Importe": item.importe} for item in data.iva]
    return voucher


class BillingService:
    """Service layer for electronic billing"""

    def __init__(self, db: Session, client: Optional[ArcaClient] = None):
        self.db = db
        self.repo = InvoiceRepository()
        self._arca = client

    @property
    def arca(self) -> ArcaClient:
        if not config.BILLING_ENABLED:
            raise HTTPException(status_code=503, detail="La facturación electrónica está deshabilitada")
        if self._arca is None:
            self._arca = ArcaClient()
        return self._arca

    async def _call(self, operation: str, coroutine_factory):
        """Run an ARCA call, turning its failures into 502"""
        arca = self.arca
        try:
            return await coroutine_factory(arca)
        except ArcaError as e:
            logger.error(f"❌ ARCA {operation} failed: {str(e)}")
            raise HTTPException(status_code=502, detail=f"Error de ARCA al {operation}: {str(e)}") from e

    # ========================================================================
    # VOUCHERS
    # ========================================================================

    async def create_voucher(self, data: VoucherCreate, today: Optional[date] = None) -> dict:
        """Manual voucher, auto-numbered after the last authorized one"""
        today = today or date.today()
        sales_point = data.puntoDeVenta or config.AFIP_PUNTO_VENTA
        voucher = build_voucher_data(data, sales_point, today)
        return await self._call("crear el comprobante", lambda arca: arca.create_next_voucher(voucher))

    async def bill_appointment(
        self,
        appointment_id: str,
        voucher_type: int = DEFAULT_VOUCHER_TYPE,
        doc_type: int = DEFAULT_DOC_TYPE,
        doc_number: int = 0,
        iva_condition: int = DEFAULT_IVA_CONDITION,
        today: Optional[date] = None,
    ) -> Invoice:
        """
        Issue and store the invoice of a paid (Cobrado) appointment.
        An appointment is billed at most once.
        """
        today = today or date.today()
        arca = self.arca

        appointment = self.repo.get_appointment(self.db, appointment_id)
        if not appointment:
            raise HTTPException(status_code=404, detail="Turno no encontrado")
        if appointment.status != AppointmentStatus.PAID:
            raise HTTPException(status_code=400, detail="Solo se pueden facturar turnos cobrados")

        total = appointment.price or (appointment.haircut.base_price if appointment.haircut else 0)
        if not total or total <= 0:
            raise HTTPException(status_code=400, detail="El turno no tiene un precio asignado")
        if self.repo.get_invoice_by_appointment(self.db, appointment_id):
            raise HTTPException(status_code=409, detail="El turno ya fue facturado")

        net, vat = split_vat(total)
        voucher = build_voucher_data(
            VoucherCreate(
                tipoComprobante=voucher_type,
                concepto=CONCEPT["SERVICIOS"],
                tipoDocumento=doc_type,
                numeroDocumento=doc_number,
                importeTotal=total,
                importeNetoGravado=net,
                importeIVA=vat,
                condicionIVAReceptor=iva_condition,
                iva=[{"id": IVA_TYPES["IVA_21"], "baseImponible": net, "importe": vat}],
            ),
            config.AFIP_PUNTO_VENTA,
            today,
        )

        try:
            result = await arca.create_next_voucher(voucher)
        except ArcaError as e:
            logger.error(f"❌ Billing appointment {appointment_id} failed: {str(e)}")
            raise HTTPException(status_code=502, detail=f"Error de ARCA al facturar el turno: {str(e)}") from e

        try:
            invoice = self.repo.create_invoice(
                self.db,
                appointment_id=appointment_id,
                voucher_type=voucher_type,
                sales_point=config.AFIP_PUNTO_VENTA,
                voucher_number=result["voucher_number"],
                cae=result["CAE"],
                cae_expiration=result["CAEFchVto"],
                total_amount=total,
                net_amount=net,
                vat_amount=vat,
                doc_type=doc_type,
                doc_number=str(doc_number),
                issued_on=today,
            )
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(status_code=409, detail="El turno ya fue facturado") from e

        logger.info(
            f"🧾 Appointment {appointment_id} billed: voucher {invoice.voucher_number}, "
            f"total {total} (net {net}, VAT {vat})"
        )
        return invoice

    async def last_voucher(self, voucher_type: int = DEFAULT_VOUCHER_TYPE) -> dict:
        sales_point = config.AFIP_PUNTO_VENTA
        number = await self._call(
            "obtener el último comprobante", lambda arca: arca.get_last_voucher(sales_point, voucher_type)
        )
        return {"ultimoComprobante": number, "puntoDeVenta": sales_point, "tipoComprobante": voucher_type}

    async def voucher_info(self, number: int, voucher_type: int = DEFAULT_VOUCHER_TYPE) -> dict:
        info = await self._call(
            "obtener el comprobante",
            lambda arca: arca.get_voucher_info(number, config.AFIP_PUNTO_VENTA, voucher_type),
        )
        if info is None:
            raise HTTPException(status_code=404, detail="Comprobante no encontrado")
        return info

    # ========================================================================
    # CATALOGS
    # ========================================================================

    async def voucher_types(self) -> list:
        return await self._call("obtener tipos de comprobante", lambda arca: arca.get_voucher_types())

    async def document_types(self) -> list:
        return await self._call("obtener tipos de documento", lambda arca: arca.get_document_types())

    async def aliquot_types(self) -> list:
        return await self._call("obtener tipos de alícuota", lambda arca: arca.get_aliquot_types())

    async def sales_points(self) -> list:
        return await self._call("obtener puntos de venta", lambda arca: arca.get_sales_points())

    async def server_status(self) -> dict:
        return await self._call("verificar el estado del servidor", lambda arca: arca.get_server_status())

    # ========================================================================
    # PDF
    # ========================================================================

    def invoice_pdf(self, appointment_id: str, voucher_number: int, actor: User) -> bytes:
        """PDF of a stored invoice; no ARCA call"""
        invoice = self.repo.get_invoice_for_voucher(self.db, appointment_id, voucher_number)
        if not invoice:
            raise HTTPException(status_code=404, detail="Factura no encontrada para ese turno")
        if not is_staff(actor) and invoice.appointment.client_id != actor.id:
            raise HTTPException(status_code=403, detail="No tiene permiso para acceder a esta factura")
        return InvoicePDFGenerator(invoice).generate()
