"""
Servicio del Dashboard

Agrega las facturas de la empresa en las métricas del dashboard.
Todos los importes de ingresos consideran solo facturas pagadas.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional, Sequence
from uuid import UUID
import logging

from sqlalchemy import desc, func
from sqlalchemy.orm import Session, selectinload

from app.modules.customers.models import Customer
from app.modules.invoices.models import Invoice, InvoiceStatus
from app.modules.invoices.schemas import InvoiceOut
from app.modules.invoices.service import round_money
from app.modules.dashboard.schemas import (
    ActivitySummary, DashboardResponse, DashboardStats, MonthlyRevenue, RankedEntry
)

logger = logging.getLogger(__name__)

MONTH_LABELS = ["Gen", "Feb", "Mar", "Apr", "Mag", "Giu", "Lug", "Ago", "Set", "Ott", "Nov", "Dic"]
UNNAMED_ITEM = "Altro"
UNKNOWN_CUSTOMER = "Sconosciuto"
RECENT_LIMIT = 5
TOP_LIMIT = 5
ACTIVITY_DAYS = 30


def _as_utc(value: datetime) -> datetime:
    # SQLite devuelve datetimes naive
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _paid(invoices: Sequence[Invoice]) -> List[Invoice]:
    return [i for i in invoices if i.status == InvoiceStatus.PAID]


def _customer_name(invoice: Invoice) -> Optional[str]:
    return invoice.customer.name if invoice.customer is not None else None


def period_delta(current: Decimal, previous: Decimal) -> float:
    """
    Variación relativa entre dos periodos.

    Sin ingresos en el periodo anterior la variación es 1 (100%) si hay
    ingresos en el actual y 0 si no los hay.
    """
    if previous == 0:
        return 1.0 if current > 0 else 0.0
    return float((current - previous) / previous)


def monthly_revenue(invoices: Sequence[Invoice], year: int) -> List[MonthlyRevenue]:
    """Doce meses de ingresos pagados por mes de emisión, para `year` y `year - 1`."""
    current: Dict[int, Decimal] = defaultdict(Decimal)
    previous: Dict[int, Decimal] = defaultdict(Decimal)

    for invoice in _paid(invoices):
        month = invoice.issue_date.month - 1
        if invoice.issue_date.year == year:
            current[month] += Decimal(invoice.total)
        elif invoice.issue_date.year == year - 1:
            previous[month] += Decimal(invoice.total)

    return [
        MonthlyRevenue(
            month=label,
            current=round_money(current[index]),
            previous=round_money(previous[index])
        )
        for index, label in enumerate(MONTH_LABELS)
    ]


def _ranked(totals: Dict[str, Decimal], limit: Optional[int] = None) -> List[RankedEntry]:
    entries = sorted(totals.items(), key=lambda entry: entry[1], reverse=True)
    if limit is not None:
        entries = entries[:limit]
    return [RankedEntry(name=name, total=round_money(total)) for name, total in entries]


def top_customers(invoices: Sequence[Invoice], limit: int = TOP_LIMIT) -> List[RankedEntry]:
    totals: Dict[str, Decimal] = defaultdict(Decimal)
    for invoice in _paid(invoices):
        name = _customer_name(invoice)
        if name:
            totals[name] += Decimal(invoice.total)
    return _ranked(totals, limit)


def top_items(invoices: Sequence[Invoice], limit: int = TOP_LIMIT) -> List[RankedEntry]:
    """Conceptos más vendidos (las descripciones vacías se agrupan como "Altro")."""
    totals: Dict[str, Decimal] = defaultdict(Decimal)
    for invoice in _paid(invoices):
        for item in invoice.items:
            key = (item.description or "").strip() or UNNAMED_ITEM
            totals[key] += Decimal(item.total)
    return _ranked(totals, limit)


def revenue_by_customer(invoices: Sequence[Invoice]) -> List[RankedEntry]:
    totals: Dict[str, Decimal] = defaultdict(Decimal)
    for invoice in _paid(invoices):
        totals[_customer_name(invoice) or UNKNOWN_CUSTOMER] += Decimal(invoice.total)
    return _ranked(totals)


def activity_summary(invoices: Sequence[Invoice], now: datetime) -> ActivitySummary:
    since = now - timedelta(days=ACTIVITY_DAYS)
    return ActivitySummary(
        since=since,
        created=sum(1 for i in invoices if _as_utc(i.created_at) >= since),
        paid=sum(1 for i in invoices if i.status == InvoiceStatus.PAID and _as_utc(i.updated_at) >= since),
        sent=sum(1 for i in invoices if i.status == InvoiceStatus.SENT and _as_utc(i.updated_at) >= since),
    )


def build_dashboard(
    invoices: Sequence[Invoice],
    total_customers: int,
    now: Optional[datetime] = None
) -> DashboardResponse:
    """
    Calcula todas las métricas a partir de la lista de facturas ya cargada.

    `invoices` debe venir ordenada de más reciente a más antigua: las cinco
    primeras son las facturas recientes.
    """
    now = _as_utc(now or datetime.now(timezone.utc))
    paid = _paid(invoices)

    stats = DashboardStats(
        total_invoices=len(invoices),
        total_customers=total_customers,
        total_revenue=round_money(sum((Decimal(i.total) for i in paid), Decimal("0"))),
        pending_invoices=sum(1 for i in invoices if i.status == InvoiceStatus.SENT),
    )

    months = monthly_revenue(invoices, now.year)
    month_index = now.month - 1
    this_month = months[month_index].current
    # Enero se compara con 0, no con diciembre del año anterior
    last_month = months[month_index - 1].current if month_index > 0 else Decimal("0")
    same_month_last_year = months[month_index].previous

    return DashboardResponse(
        stats=stats,
        recent_invoices=[InvoiceOut.model_validate(i) for i in invoices[:RECENT_LIMIT]],
        monthly_revenue=months,
        month_over_month=period_delta(this_month, last_month),
        year_over_year=period_delta(this_month, same_month_last_year),
        top_customers=top_customers(invoices),
        top_items=top_items(invoices),
        revenue_by_customer=revenue_by_customer(invoices),
        activity=activity_summary(invoices, now),
    )


class DashboardService:
    """Carga los datos de la empresa y construye el dashboard"""

    def __init__(self, db: Session):
        self.db = db

    def get_dashboard(self, company_id: UUID, now: Optional[datetime] = None) -> DashboardResponse:
        invoices = (
            self.db.query(Invoice)
            .options(selectinload(Invoice.customer), selectinload(Invoice.items))
            .filter(Invoice.company_id == company_id)
            .order_by(desc(Invoice.created_at), desc(Invoice.invoice_number))
            .all()
        )
        total_customers = self.db.query(func.count(Customer.id)).filter(
            Customer.company_id == company_id
        ).scalar() or 0

        logger.debug(f"Dashboard for company {company_id}: {len(invoices)} invoices, {total_customers} customers")
        return build_dashboard(invoices, total_customers, now)
