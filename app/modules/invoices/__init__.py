"""
Módulo de Facturación (Invoices) - InvoGen

- Facturas de venta con líneas, IVA y estados (draft, sent, paid, overdue)
- Numeración YYYY-NNNN por empresa y año, reutilizando números liberados
- Totales calculados siempre en el servidor
- Envío por email del PDF generado en el frontend

Tablas principales:
- invoices: Facturas
- invoice_items: Líneas de factura (se recrean en cada guardado)
"""

from .models import Invoice, InvoiceItem, InvoiceStatus
from .numbering import allocate_invoice_number, next_sequence, parse_sequence
from .schemas import InvoiceCreate, InvoiceUpdate, InvoiceOut, InvoiceList
from .service import InvoiceService

__all__ = [
    "Invoice", "InvoiceItem", "InvoiceStatus",
    "allocate_invoice_number", "next_sequence", "parse_sequence",
    "InvoiceCreate", "InvoiceUpdate", "InvoiceOut", "InvoiceList",
    "InvoiceService",
]
