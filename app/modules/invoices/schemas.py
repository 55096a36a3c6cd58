from pydantic import BaseModel, Field, EmailStr, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import date, datetime
from decimal import Decimal
from app.modules.invoices.models import InvoiceStatus
from app.modules.invoices.numbering import is_valid_invoice_number
from app.modules.customers.schemas import CustomerSummary
from app.core.config import settings


# Invoice Item Schemas
class InvoiceItemCreate(BaseModel):
    description: str = Field("", max_length=500, description="Descripción del concepto")
    quantity: Decimal = Field(..., ge=0, decimal_places=2, description="Cantidad")
    unit_price: Decimal = Field(..., ge=0, decimal_places=2, description="Precio unitario")

    @field_validator('description', mode='before')
    @classmethod
    def strip_description(cls, v):
        return (v or "").strip()


class InvoiceItemOut(BaseModel):
    id: UUID
    position: int
    description: str
    quantity: Decimal
    unit_price: Decimal
    total: Decimal

    class Config:
        from_attributes = True


# Invoice Schemas
class InvoiceBase(BaseModel):
    customer_id: UUID
    issue_date: date = Field(default_factory=date.today)
    due_date: Optional[date] = Field(None, description="Por defecto: fecha de emisión + 30 días")
    status: InvoiceStatus = InvoiceStatus.DRAFT
    tax_rate: Decimal = Field(Decimal(str(settings.DEFAULT_TAX_RATE)), ge=0, le=100, decimal_places=2, description="IVA en porcentaje")
    notes: Optional[str] = None
    items: List[InvoiceItemCreate] = Field(default_factory=list)


class InvoiceCreate(InvoiceBase):
    invoice_number: Optional[str] = Field(
        None,
        description="Número YYYY-NNNN. Si se omite se asigna el siguiente libre."
    )

    @field_validator('invoice_number')
    @classmethod
    def validate_invoice_number(cls, v):
        if v is None or v.strip() == "":
            return None
        v = v.strip()
        if not is_valid_invoice_number(v):
            raise ValueError('El número de factura debe tener el formato YYYY-NNNN')
        return v


class InvoiceUpdate(InvoiceCreate):
    """Reemplazo completo de la factura. Las líneas se recrean."""
    pass


class InvoiceStatusUpdate(BaseModel):
    status: InvoiceStatus


class InvoiceOut(BaseModel):
    id: UUID
    company_id: UUID
    customer_id: UUID
    invoice_number: str
    status: InvoiceStatus
    issue_date: date
    due_date: Optional[date] = None
    tax_rate: Decimal
    subtotal: Decimal
    tax_amount: Decimal
    total: Decimal
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    customer: Optional[CustomerSummary] = None
    items: List[InvoiceItemOut] = []

    class Config:
        from_attributes = True


class InvoiceList(BaseModel):
    items: List[InvoiceOut]
    total: int
    limit: int
    offset: int


class NextInvoiceNumber(BaseModel):
    year: int
    invoice_number: str


class InvoiceEmailResponse(BaseModel):
    """Respuesta del envío de email de factura"""
    status: str = Field(..., description="Estado del envío: 'queued'")
    task_id: Optional[str] = Field(None, description="ID de la tarea de Celery")
    message: str = Field(..., description="Mensaje descriptivo del resultado")
    invoice_status: InvoiceStatus


class OverdueUpdateResult(BaseModel):
    updated: int
    invoice_ids: List[UUID]


class InvoiceEmailRecipient(BaseModel):
    to_email: EmailStr
