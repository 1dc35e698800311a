"""
Invoice PDF Generator
Renders a stored ARCA invoice of an appointment as an A4 PDF
"""

import io
import logging
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus import Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from ... import config
from ...models import Invoice
from .arca_client import format_afip_date
from .constants import voucher_type_name

logger = logging.getLogger(__name__)


def format_cuit(cuit) -> str:
    """20409378472 -> 20-40937847-2"""
    text = str(cuit)
    if len(text) == 11:
        return f"{text[:2]}-{text[2:10]}-{text[10:]}"
    return text


def format_voucher_number(sales_point: int, number: int) -> str:
    """0001-00000123"""
    return f"{sales_point:04d}-{number:08d}"


def format_display_date(value) -> str:
    """yyyy-mm-dd (or yyyymmdd) -> dd/mm/yyyy"""
    text = format_afip_date(value)
    if len(text) == 10 and text[4] == "-":
        return f"{text[8:]}/{text[5:7]}/{text[:4]}"
    return text


def _money(amount: float) -> str:
    return f"$ {amount:.2f}"


class InvoicePDFGenerator:
    """Generate the PDF of a stored invoice"""

    def __init__(self, invoice: Invoice):
        self.invoice = invoice
        self.appointment = invoice.appointment

        self.page_width, self.page_height = A4
        self.margin = 0.75 * inch
        self.dark_gray = colors.HexColor("#1e293b")
        self.light_gray = colors.HexColor("#cccccc")

    def _branch_address(self) -> str:
        barber = self.appointment.barber if self.appointment else None
        if barber and barber.branch:
            return f"{barber.branch.street} {barber.branch.number}"
        return config.BUSINESS_ADDRESS

    def generate(self) -> bytes:
        invoice = self.invoice
        appointment = self.appointment
        number = format_voucher_number(invoice.sales_point, invoice.voucher_number)
        type_name = voucher_type_name(invoice.voucher_type)
        logger.info(f"📄 Generating invoice PDF {number} for appointment {invoice.appointment_id}")

        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=self.margin,
            leftMargin=self.margin,
            topMargin=self.margin,
            bottomMargin=self.margin,
            title=f"Factura {number}",
            author=config.BUSINESS_NAME,
        )

        styles = getSampleStyleSheet()
        title_style = ParagraphStyle(
            "InvoiceTitle", parent=styles["Heading1"], fontSize=20, alignment=1, spaceAfter=6
        )
        center_style = ParagraphStyle(
            "InvoiceCenter", parent=styles["Normal"], fontSize=10, alignment=1, textColor=self.dark_gray
        )
        heading_style = ParagraphStyle(
            "InvoiceHeading", parent=styles["Heading3"], fontSize=11, spaceBefore=12, spaceAfter=6
        )
        body_style = ParagraphStyle("InvoiceBody", parent=styles["Normal"], fontSize=10, textColor=self.dark_gray)

        story = []

        # Header
        story.append(Paragraph(escape(config.BUSINESS_NAME.upper()), title_style))
        address = self._branch_address()
        if address:
            story.append(Paragraph(escape(address), center_style))
        story.append(Paragraph(f"CUIT: {format_cuit(config.AFIP_CUIT)}", center_style))
        story.append(Spacer(1, 0.2 * inch))
        story.append(Paragraph(f"<b>{escape(type_name)}</b>", center_style))
        story.append(Paragraph(f"N° {number}", center_style))
        story.append(Paragraph(f"Fecha de emisión: {invoice.issued_on.strftime('%d/%m/%Y')}", center_style))
        story.append(Spacer(1, 0.2 * inch))

        # Client
        client = appointment.client if appointment else None
        story.append(Paragraph("DATOS DEL CLIENTE", heading_style))
        if client:
            story.append(Paragraph(f"Nombre: {escape(client.full_name)}", body_style))
            story.append(Paragraph(f"DNI: {client.dni}", body_style))
        story.append(Paragraph("Condición frente al IVA: Consumidor Final", body_style))

        # Detail
        service = "Servicio de barbería"
        if appointment and appointment.haircut:
            service = appointment.haircut.name
        story.append(Paragraph("DETALLE", heading_style))
        detail_table = Table(
            [["Descripción", "Cant.", "Importe"], [service, "1", _money(invoice.total_amount)]],
            colWidths=[3.8 * inch, 1 * inch, 1.5 * inch],
        )
        detail_table.setStyle(
            TableStyle(
                [
                    ("FONT", (0, 0), (-1, 0), "Helvetica-Bold", 9),
                    ("FONT", (0, 1), (-1, -1), "Helvetica", 10),
                    ("ALIGN", (1, 0), (1, -1), "CENTER"),
                    ("ALIGN", (2, 0), (2, -1), "RIGHT"),
                    ("LINEBELOW", (0, 0), (-1, 0), 0.5, self.light_gray),
                    ("BOTTOMPADDING", (0, 0), (-1, -1), 6),
                ]
            )
        )
        story.append(detail_table)
        if appointment:
            barber = appointment.barber.full_name if appointment.barber else "-"
            story.append(Paragraph(f"Barbero: {escape(barber)}", body_style))
            story.append(Paragraph(f"Fecha del turno: {appointment.date.isoformat()}", body_style))
        story.append(Spacer(1, 0.2 * inch))

        # Totals
        totals_table = Table(
            [
                ["Subtotal (Neto Gravado):", _money(invoice.net_amount)],
                ["IVA 21%:", _money(invoice.vat_amount)],
                ["TOTAL:", _money(invoice.total_amount)],
            ],
            colWidths=[4.8 * inch, 1.5 * inch],
        )
        totals_table.setStyle(
            TableStyle(
                [
                    ("FONT", (0, 0), (-1, 1), "Helvetica", 10),
                    ("FONT", (0, 2), (-1, 2), "Helvetica-Bold", 12),
                    ("ALIGN", (0, 0), (-1, -1), "RIGHT"),
                    ("LINEABOVE", (0, 2), (-1, 2), 0.5, self.light_gray),
                ]
            )
        )
        story.append(totals_table)

        # Fiscal data
        story.append(Paragraph("DATOS FISCALES", heading_style))
        story.append(Paragraph(f"CAE: {invoice.cae}", center_style))
        story.append(
            Paragraph(f"Fecha de vencimiento CAE: {format_display_date(invoice.cae_expiration)}", center_style)
        )
        story.append(Spacer(1, 0.4 * inch))
        story.append(
            Paragraph(
                "<i>Comprobante electrónico generado por sistema. Válido como factura electrónica según RG ARCA.</i>",
                ParagraphStyle("InvoiceFooter", parent=body_style, fontSize=8, textColor=colors.grey, alignment=1),
            )
        )

        doc.build(story)
        pdf_bytes = buffer.getvalue()
        buffer.close()

        logger.info(f"✅ Generated invoice PDF ({len(pdf_bytes)} bytes)")
        return pdf_bytes
