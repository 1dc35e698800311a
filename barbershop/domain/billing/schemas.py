"""Billing domain schemas - Pydantic models for ARCA vouchers"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from .constants import DEFAULT_DOC_TYPE, DEFAULT_IVA_CONDITION, DEFAULT_VOUCHER_TYPE


class IvaItem(BaseModel):
    id: int  # 5 = 21%
    baseImponible: float = Field(..., ge=0)
    importe: float = Field(..., ge=0)


class VoucherCreate(BaseModel):
    """Manual voucher, amounts as sent to ARCA"""

    puntoDeVenta: Optional[int] = Field(None, gt=0)
    tipoComprobante: int = Field(DEFAULT_VOUCHER_TYPE, gt=0)
    concepto: int = Field(2, ge=1, le=3)
    tipoDocumento: int = DEFAULT_DOC_TYPE
    numeroDocumento: int = 0
    importeTotal: float = Field(..., gt=0)
    importeNetoGravado: float = Field(0, ge=0)
    importeNetoNoGravado: float = Field(0, ge=0)
    importeExento: float = Field(0, ge=0)
    importeIVA: float = Field(0, ge=0)
    importeTributos: float = Field(0, ge=0)
    moneda: str = "PES"
    cotizacionMoneda: float = 1
    condicionIVAReceptor: int = DEFAULT_IVA_CONDITION
    iva: Optional[list[IvaItem]] = None


class BillAppointmentRequest(BaseModel):
    codTurno: str = Field(..., min_length=1)
    tipoComprobante: int = Field(DEFAULT_VOUCHER_TYPE, gt=0)
    tipoDocumento: int = DEFAULT_DOC_TYPE
    numeroDocumento: int = 0
    condicionIVAReceptor: int = DEFAULT_IVA_CONDITION


class VoucherResponse(BaseModel):
    CAE: str
    CAEFchVto: str
    voucher_number: Optional[int] = None


class LastVoucherResponse(BaseModel):
    ultimoComprobante: int
    puntoDeVenta: int
    tipoComprobante: int


class InvoiceResponse(BaseModel):
    codFactura: int
    codTurno: Optional[str] = None
    tipoComprobante: int
    puntoDeVenta: int
    numeroComprobante: int
    cae: str
    caeVencimiento: str
    importeTotal: float
    importeNeto: float
    importeIVA: float
    tipoDocumento: int
    numeroDocumento: str
    fechaEmision: date

    @classmethod
    def from_model(cls, invoice) -> "InvoiceResponse":
        return cls(
            codFactura=invoice.id,
            codTurno=invoice.appointment_id,
            tipoComprobante=invoice.voucher_type,
            puntoDeVenta=invoice.sales_point,
            numeroComprobante=invoice.voucher_number,
            cae=invoice.cae,
            caeVencimiento=invoice.cae_expiration,
            importeTotal=invoice.total_amount,
            importeNeto=invoice.net_amount,
            importeIVA=invoice.vat_amount,
            tipoDocumento=invoice.doc_type,
            numeroDocumento=invoice.doc_number,
            fechaEmision=invoice.issued_on,
        )
