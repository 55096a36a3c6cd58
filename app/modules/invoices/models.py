from app.database.database import Base
from sqlalchemy import Column, Integer, String, Date, ForeignKey, UniqueConstraint, Numeric, Enum, Text, Uuid
from sqlalchemy.orm import relationship
from datetime import date
from uuid import uuid4
from app.common.mixins import TenantMixin, TimestampMixin
import enum


class InvoiceStatus(enum.Enum):
    DRAFT = "draft"        # Borrador
    SENT = "sent"          # Enviada al cliente, pendiente de pago
    PAID = "paid"          # Pagada
    OVERDUE = "overdue"    # Vencida sin pagar


class Invoice(Base, TenantMixin, TimestampMixin):
    __tablename__ = "invoices"

    id = Column(Uuid, primary_key=True, default=uuid4)

    customer_id = Column(Uuid, ForeignKey("customers.id"), nullable=False, index=True)

    # YYYY-NNNN, único por empresa
    invoice_number = Column(String(20), nullable=False)
    status = Column(Enum(InvoiceStatus), nullable=False, default=InvoiceStatus.DRAFT)

    # Dates
    issue_date = Column(Date, nullable=False, default=date.today)
    due_date = Column(Date, nullable=True)

    # Totals (calculated)
    tax_rate = Column(Numeric(5, 2), nullable=False, default=22)
    # cantidades y precios con 2 decimales: líneas y subtotal exactos en 4
    subtotal = Column(Numeric(15, 4), nullable=False, default=0)
    tax_amount = Column(Numeric(15, 2), nullable=False, default=0)
    total = Column(Numeric(15, 2), nullable=False, default=0)

    notes = Column(Text, nullable=True)

    # Relationships
    customer = relationship("Customer", back_populates="invoices")
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position"
    )

    __table_args__ = (
        UniqueConstraint("company_id", "invoice_number", name="uq_invoice_company_number"),
    )


class InvoiceItem(Base):
    __tablename__ = "invoice_items"

    id = Column(Uuid, primary_key=True, default=uuid4)
    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)

    position = Column(Integer, nullable=False, default=0)
    description = Column(String(500), nullable=False, default="")
    quantity = Column(Numeric(12, 2), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    total = Column(Numeric(15, 4), nullable=False)

    invoice = relationship("Invoice", back_populates="items")
