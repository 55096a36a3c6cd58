"""
Servicios de negocio para el módulo de Facturas

- Numeración YYYY-NNNN por empresa y año (menor número libre)
- Cálculo de totales en servidor a partir de las líneas y el IVA
- Edición con reemplazo completo (las líneas se eliminan y se recrean)
- Envío por email del PDF generado en el cliente (tarea Celery)
"""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session, selectinload
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_, desc
from typing import Optional, List, Iterable, Tuple
from uuid import UUID
from datetime import date, timedelta
from decimal import Decimal, ROUND_HALF_UP
import base64
import logging

from app.modules.invoices.models import Invoice, InvoiceItem, InvoiceStatus
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceUpdate, InvoiceItemCreate, InvoiceList, InvoiceOut,
    NextInvoiceNumber, InvoiceEmailResponse, OverdueUpdateResult
)
from app.modules.invoices.numbering import allocate_invoice_number
from app.modules.customers.models import Customer
from app.modules.company.models import Company
from app.core.config import settings

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


def round_money(value: Decimal) -> Decimal:
    return Decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def calculate_line_total(quantity: Decimal, unit_price: Decimal) -> Decimal:
    """Importe exacto de la línea, sin redondear."""
    return Decimal(quantity) * Decimal(unit_price)


def calculate_totals(items: Iterable[InvoiceItemCreate], tax_rate: Decimal) -> Tuple[Decimal, Decimal, Decimal]:
    """
    Totales de la factura.

    subtotal = Σ cantidad × precio, exacto como las líneas.
    tax_amount = subtotal × IVA / 100 y total = subtotal + tax_amount,
    ambos redondeados a 2 decimales.
    """
    subtotal = sum((calculate_line_total(i.quantity, i.unit_price) for i in items), Decimal("0"))
    tax_amount = round_money(subtotal * Decimal(tax_rate) / Decimal("100"))
    total = round_money(subtotal + tax_amount)
    return subtotal, tax_amount, total


STATUS_LABELS = {
    InvoiceStatus.DRAFT: "Bozza",
    InvoiceStatus.SENT: "Inviata",
    InvoiceStatus.PAID: "Pagata",
    InvoiceStatus.OVERDUE: "Scaduta",
}


class InvoiceService:
    """Servicio principal para gestión de facturas"""

    def __init__(self, db: Session):
        self.db = db

    # --- NUMERACIÓN ---

    def generate_invoice_number(self, company_id: Optional[UUID], year: Optional[int] = None) -> str:
        """
        Siguiente número de factura libre para la empresa y el año.

        No reserva el número: dos creaciones simultáneas pueden calcular el
        mismo valor; la restricción única (company_id, invoice_number) rechaza
        la segunda con 409.
        """
        if not company_id:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Perfil de empresa no encontrado"
            )

        year = year or date.today().year
        rows = self.db.query(Invoice.invoice_number).filter(
            Invoice.company_id == company_id,
            Invoice.invoice_number.like(f"{year}-%")
        ).all()

        try:
            return allocate_invoice_number(year, [row[0] for row in rows])
        except ValueError as e:
            logger.error(f"Invoice numbering exhausted for company {company_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=str(e)
            )

    def get_next_invoice_number(self, company_id: UUID, year: Optional[int] = None) -> NextInvoiceNumber:
        year = year or date.today().year
        return NextInvoiceNumber(year=year, invoice_number=self.generate_invoice_number(company_id, year))

    def _ensure_number_available(self, invoice_number: str, company_id: UUID, exclude_id: Optional[UUID] = None):
        query = self.db.query(Invoice.id).filter(
            Invoice.company_id == company_id,
            Invoice.invoice_number == invoice_number
        )
        if exclude_id:
            query = query.filter(Invoice.id != exclude_id)
        if query.first():
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"El número de factura {invoice_number} ya existe"
            )

    # --- CRUD ---

    def _get_customer(self, customer_id: UUID, company_id: UUID) -> Customer:
        customer = self.db.query(Customer).filter(
            Customer.id == customer_id,
            Customer.company_id == company_id
        ).first()
        if not customer:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cliente no encontrado"
            )
        return customer

    def _apply_content(self, invoice: Invoice, data: InvoiceCreate):
        """Copiar cabecera y líneas desde el payload y recalcular totales."""
        invoice.customer_id = data.customer_id
        invoice.issue_date = data.issue_date
        invoice.due_date = data.due_date or data.issue_date + timedelta(days=settings.DEFAULT_PAYMENT_TERMS_DAYS)
        invoice.status = data.status
        invoice.tax_rate = data.tax_rate
        invoice.notes = data.notes

        invoice.items = [
            InvoiceItem(
                position=position,
                description=item.description,
                quantity=item.quantity,
                unit_price=item.unit_price,
                total=calculate_line_total(item.quantity, item.unit_price)
            )
            for position, item in enumerate(data.items)
        ]

        invoice.subtotal, invoice.tax_amount, invoice.total = calculate_totals(data.items, data.tax_rate)

    def _commit(self, invoice: Invoice):
        invoice_number = invoice.invoice_number
        try:
            self.db.commit()
        except IntegrityError as e:
            self.db.rollback()
            logger.warning(f"Invoice number conflict for {invoice_number}: {e.orig}")
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"El número de factura {invoice_number} ya existe"
            )
        self.db.refresh(invoice)

    def create_invoice(self, invoice_data: InvoiceCreate, company_id: UUID) -> Invoice:
        """
        Crear factura con sus líneas.

        Si no se envía número se asigna el siguiente libre del año de emisión.
        """
        self._get_customer(invoice_data.customer_id, company_id)

        if invoice_data.invoice_number:
            self._ensure_number_available(invoice_data.invoice_number, company_id)
            invoice_number = invoice_data.invoice_number
        else:
            invoice_number = self.generate_invoice_number(company_id, invoice_data.issue_date.year)

        invoice = Invoice(company_id=company_id, invoice_number=invoice_number)
        self._apply_content(invoice, invoice_data)

        self.db.add(invoice)
        self._commit(invoice)

        logger.info(f"Invoice {invoice.invoice_number} created for company {company_id}")
        return invoice

    def get_invoices(
        self,
        company_id: UUID,
        limit: int = 100,
        offset: int = 0,
        status_filter: Optional[InvoiceStatus] = None,
        customer_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        search: Optional[str] = None
    ) -> InvoiceList:
        """Listar facturas de la empresa (más recientes primero), con cliente y líneas."""
        query = self.db.query(Invoice).filter(Invoice.company_id == company_id)

        if status_filter:
            query = query.filter(Invoice.status == status_filter)
        if customer_id:
            query = query.filter(Invoice.customer_id == customer_id)
        if date_from:
            query = query.filter(Invoice.issue_date >= date_from)
        if date_to:
            query = query.filter(Invoice.issue_date <= date_to)
        if search:
            term = f"%{search.strip()}%"
            query = query.join(Customer, Invoice.customer_id == Customer.id).filter(or_(
                Invoice.invoice_number.ilike(term),
                Customer.name.ilike(term)
            ))

        total = query.count()
        invoices = (
            query.options(selectinload(Invoice.customer), selectinload(Invoice.items))
            .order_by(desc(Invoice.created_at), desc(Invoice.invoice_number))
            .offset(offset)
            .limit(limit)
            .all()
        )

        return InvoiceList(
            items=[InvoiceOut.model_validate(i) for i in invoices],
            total=total,
            limit=limit,
            offset=offset
        )

    def get_invoice_by_id(self, invoice_id: UUID, company_id: UUID) -> Invoice:
        """Obtener factura por ID (solo dentro de la empresa)"""
        invoice = self.db.query(Invoice).options(
            selectinload(Invoice.customer),
            selectinload(Invoice.items)
        ).filter(
            Invoice.id == invoice_id,
            Invoice.company_id == company_id
        ).first()

        if not invoice:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Factura no encontrada"
            )
        return invoice

    def update_invoice(self, invoice_id: UUID, invoice_data: InvoiceUpdate, company_id: UUID) -> Invoice:
        """
        Reemplazo completo de la factura.

        La cabecera se sobrescribe, las líneas anteriores se eliminan y se
        crean de nuevo, y los totales se recalculan.
        """
        invoice = self.get_invoice_by_id(invoice_id, company_id)
        self._get_customer(invoice_data.customer_id, company_id)

        if invoice_data.invoice_number and invoice_data.invoice_number != invoice.invoice_number:
            self._ensure_number_available(invoice_data.invoice_number, company_id, exclude_id=invoice.id)
            invoice.invoice_number = invoice_data.invoice_number

        self._apply_content(invoice, invoice_data)
        self._commit(invoice)

        logger.info(f"Invoice {invoice.invoice_number} updated for company {company_id}")
        return invoice

    def update_status(self, invoice_id: UUID, new_status: InvoiceStatus, company_id: UUID) -> Invoice:
        invoice = self.get_invoice_by_id(invoice_id, company_id)
        if invoice.status != new_status:
            logger.info(f"Invoice {invoice.invoice_number}: {invoice.status.value} -> {new_status.value}")
            invoice.status = new_status
            self.db.commit()
            self.db.refresh(invoice)
        return invoice

    def delete_invoice(self, invoice_id: UUID, company_id: UUID) -> dict:
        """Eliminar factura y sus líneas. Su número queda libre."""
        invoice = self.get_invoice_by_id(invoice_id, company_id)
        number = invoice.invoice_number

        self.db.delete(invoice)
        self.db.commit()

        logger.info(f"Invoice {number} deleted from company {company_id}")
        return {"message": f"Factura {number} eliminada", "id": str(invoice_id)}

    def mark_overdue(self, company_id: UUID, today: Optional[date] = None) -> OverdueUpdateResult:
        """Marcar como vencidas las facturas enviadas con fecha de vencimiento pasada."""
        today = today or date.today()
        invoices: List[Invoice] = self.db.query(Invoice).filter(
            Invoice.company_id == company_id,
            Invoice.status == InvoiceStatus.SENT,
            Invoice.due_date.isnot(None),
            Invoice.due_date < today
        ).all()

        for invoice in invoices:
            invoice.status = InvoiceStatus.OVERDUE
        if invoices:
            self.db.commit()
            logger.info(f"{len(invoices)} invoice(s) marked overdue for company {company_id}")

        return OverdueUpdateResult(updated=len(invoices), invoice_ids=[i.id for i in invoices])

    # --- EMAIL ---

    def send_invoice_email(
        self,
        invoice_id: UUID,
        to_email: str,
        pdf_content: bytes,
        company_id: UUID,
        custom_message: Optional[str] = None,
        subject: Optional[str] = None,
        mark_as_sent: bool = True
    ) -> InvoiceEmailResponse:
        """
        Enviar factura por email con PDF adjunto usando Celery.

        Args:
            invoice_id: ID de la factura
            to_email: Email del destinatario
            pdf_content: Contenido del PDF en bytes
            company_id: ID de la empresa
            custom_message: Mensaje personalizado opcional
            subject: Asunto personalizado opcional
            mark_as_sent: Pasar la factura de borrador a enviada

        Returns:
            InvoiceEmailResponse con el id de la tarea
        """
        invoice = self.get_invoice_by_id(invoice_id, company_id)
        company = self.db.query(Company).filter(Company.id == company_id).first()
        if not company:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Perfil de empresa no encontrado"
            )

        invoice_data = {
            "number": invoice.invoice_number,
            "issue_date": invoice.issue_date.strftime("%d/%m/%Y"),
            "due_date": invoice.due_date.strftime("%d/%m/%Y") if invoice.due_date else None,
            "subtotal": float(invoice.subtotal),
            "tax_rate": float(invoice.tax_rate),
            "tax_amount": float(invoice.tax_amount),
            "total": float(invoice.total),
            "status": STATUS_LABELS[invoice.status],
            "customer_name": invoice.customer.name if invoice.customer else "Cliente",
        }

        company_data = {
            "name": company.name or "InvoGen",
            "email": company.email,
            "phone": company.phone,
            "address": company.address,
            "city": company.city,
            "postal_code": company.postal_code,
            "vat_number": company.vat_number,
            "logo_url": company.logo_url,
        }

        from app.modules.email.tasks import send_invoice_email_task

        try:
            # base64 para serialización JSON
            task = send_invoice_email_task.delay(
                to_email=to_email,
                invoice_data=invoice_data,
                company_data=company_data,
                pdf_content_b64=base64.b64encode(pdf_content).decode('utf-8'),
                pdf_filename=f"Fattura_{invoice.invoice_number}.pdf",
                custom_message=custom_message,
                subject=subject
            )
        except Exception as e:
            logger.error(f"Could not queue invoice email for {invoice.invoice_number}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail=f"Error enviando email: {str(e)}"
            )

        if mark_as_sent and invoice.status == InvoiceStatus.DRAFT:
            invoice.status = InvoiceStatus.SENT
            self.db.commit()
            self.db.refresh(invoice)

        return InvoiceEmailResponse(
            status="queued",
            task_id=task.id,
            message=f"Email de factura {invoice.invoice_number} programado para envío a {to_email}",
            invoice_status=invoice.status
        )
