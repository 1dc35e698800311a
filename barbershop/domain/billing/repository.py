"""Billing repository - Database operations for invoices"""

from typing import Optional

from sqlalchemy.orm import Session, joinedload

from ...models import Appointment, Invoice


class InvoiceRepository:
    """Repository for invoice database operations"""

    @staticmethod
    def get_appointment(db: Session, appointment_id: str) -> Optional[Appointment]:
        return (
            db.query(Appointment)
            .options(joinedload(Appointment.haircut), joinedload(Appointment.invoice))
            .filter(Appointment.id == appointment_id)
            .first()
        )

    @staticmethod
    def get_invoice_by_appointment(db: Session, appointment_id: str) -> Optional[Invoice]:
        return db.query(Invoice).filter(Invoice.appointment_id == appointment_id).first()

    @staticmethod
    def get_invoice_for_voucher(db: Session, appointment_id: str, voucher_number: int) -> Optional[Invoice]:
        return (
            db.query(Invoice)
            .filter(Invoice.appointment_id == appointment_id, Invoice.voucher_number == voucher_number)
            .first()
        )

    @staticmethod
    def create_invoice(db: Session, **data) -> Invoice:
        invoice = Invoice(**data)
        db.add(invoice)
        db.commit()
        db.refresh(invoice)
        return invoice
