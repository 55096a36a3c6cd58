"""
Router para el módulo de Facturas
"""

from fastapi import APIRouter, Depends, HTTPException, status, Query, Path, UploadFile, File, Form
from pydantic import ValidationError
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID
from datetime import date

from app.database.database import get_db
from app.modules.auth.dependencies import CompanyContext
from app.modules.invoices.service import InvoiceService
from app.modules.invoices.models import InvoiceStatus
from app.modules.invoices.schemas import (
    InvoiceCreate, InvoiceUpdate, InvoiceStatusUpdate, InvoiceOut, InvoiceList,
    NextInvoiceNumber, InvoiceEmailResponse, OverdueUpdateResult, InvoiceEmailRecipient
)
from app.core.config import settings

router = APIRouter(
    prefix="/invoices",
    tags=["Invoices"],
    responses={404: {"description": "Not found"}}
)


@router.get("/next-number", response_model=NextInvoiceNumber)
def get_next_invoice_number(
    auth_context: CompanyContext,
    year: Optional[int] = Query(None, ge=2000, le=2100, description="Año (por defecto el actual)"),
    db: Session = Depends(get_db)
):
    """
    Obtener el siguiente número de factura libre.

    Útil para mostrar el número antes de crear la factura.
    """
    return InvoiceService(db).get_next_invoice_number(auth_context.company_id, year)


@router.post("/mark-overdue", response_model=OverdueUpdateResult)
def mark_overdue_invoices(auth_context: CompanyContext, db: Session = Depends(get_db)):
    """Marcar como vencidas las facturas enviadas cuya fecha de vencimiento ya pasó"""
    return InvoiceService(db).mark_overdue(auth_context.company_id)


@router.post("/", response_model=InvoiceOut, status_code=status.HTTP_201_CREATED)
def create_invoice(
    invoice_data: InvoiceCreate,
    auth_context: CompanyContext,
    db: Session = Depends(get_db)
):
    """
    Crear una factura con sus líneas

    - **invoice_number**: opcional, si se omite se asigna el siguiente libre
    - **tax_rate**: IVA en porcentaje (22 por defecto)
    - Los totales se calculan en el servidor
    """
    return InvoiceService(db).create_invoice(invoice_data, auth_context.company_id)


@router.get("/", response_model=InvoiceList)
def get_invoices(
    auth_context: CompanyContext,
    limit: int = Query(100, ge=1, le=500),
    offset: int = Query(0, ge=0),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status", description="draft, sent, paid, overdue"),
    customer_id: Optional[UUID] = Query(None),
    date_from: Optional[date] = Query(None, description="Fecha de emisión desde (YYYY-MM-DD)"),
    date_to: Optional[date] = Query(None, description="Fecha de emisión hasta (YYYY-MM-DD)"),
    search: Optional[str] = Query(None, description="Número de factura o nombre del cliente"),
    db: Session = Depends(get_db)
):
    """Listar facturas (más recientes primero) con cliente y líneas"""
    return InvoiceService(db).get_invoices(
        company_id=auth_context.company_id,
        limit=limit,
        offset=offset,
        status_filter=status_filter,
        customer_id=customer_id,
        date_from=date_from,
        date_to=date_to,
        search=search
    )


@router.get("/{invoice_id}", response_model=InvoiceOut)
def get_invoice(
    auth_context: CompanyContext,
    invoice_id: UUID = Path(..., description="ID de la factura"),
    db: Session = Depends(get_db)
):
    """Obtener factura por ID"""
    return InvoiceService(db).get_invoice_by_id(invoice_id, auth_context.company_id)


@router.put("/{invoice_id}", response_model=InvoiceOut)
def update_invoice(
    invoice_data: InvoiceUpdate,
    auth_context: CompanyContext,
    invoice_id: UUID = Path(..., description="ID de la factura"),
    db: Session = Depends(get_db)
):
    """
    Guardar la factura completa.

    Las líneas existentes se eliminan y se crean de nuevo con las enviadas.
    """
    return InvoiceService(db).update_invoice(invoice_id, invoice_data, auth_context.company_id)


@router.patch("/{invoice_id}/status", response_model=InvoiceOut)
def update_invoice_status(
    status_data: InvoiceStatusUpdate,
    auth_context: CompanyContext,
    invoice_id: UUID = Path(..., description="ID de la factura"),
    db: Session = Depends(get_db)
):
    """Cambiar solo el estado de la factura"""
    return InvoiceService(db).update_status(invoice_id, status_data.status, auth_context.company_id)


@router.delete("/{invoice_id}")
def delete_invoice(
    auth_context: CompanyContext,
    invoice_id: UUID = Path(..., description="ID de la factura"),
    db: Session = Depends(get_db)
):
    """Eliminar factura (el número queda disponible)"""
    return InvoiceService(db).delete_invoice(invoice_id, auth_context.company_id)


@router.post("/{invoice_id}/send-email", response_model=InvoiceEmailResponse, status_code=status.HTTP_202_ACCEPTED)
async def send_invoice_email(
    auth_context: CompanyContext,
    invoice_id: UUID = Path(..., description="ID de la factura"),
    to_email: str = Form(..., description="Email del destinatario"),
    subject: Optional[str] = Form(None, description="Asunto personalizado"),
    message: Optional[str] = Form(None, description="Mensaje personalizado"),
    mark_as_sent: bool = Form(True, description="Marcar la factura como enviada si es borrador"),
    pdf_file: UploadFile = File(..., description="Archivo PDF de la factura"),
    db: Session = Depends(get_db)
):
    """
    Enviar factura por email con PDF adjunto.

    Recibe el PDF generado desde el frontend y lo envía por email
    usando tareas asíncronas de Celery.
    """
    try:
        recipient = InvoiceEmailRecipient(to_email=to_email)
    except ValidationError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Email del destinatario inválido"
        )

    # Validar tipo de archivo
    if not pdf_file.content_type or not pdf_file.content_type.startswith('application/pdf'):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El archivo debe ser un PDF válido"
        )

    pdf_content = await pdf_file.read()
    if len(pdf_content) > settings.MAX_INVOICE_PDF_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="El archivo PDF es demasiado grande (máximo 10MB)"
        )

    return InvoiceService(db).send_invoice_email(
        invoice_id=invoice_id,
        to_email=recipient.to_email,
        pdf_content=pdf_content,
        company_id=auth_context.company_id,
        custom_message=message,
        subject=subject,
        mark_as_sent=mark_as_sent
    )
