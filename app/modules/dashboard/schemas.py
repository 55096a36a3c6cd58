"""
Schemas Pydantic para el módulo de Dashboard
"""

from datetime import datetime
from decimal import Decimal
from typing import List

from pydantic import BaseModel, Field

from app.modules.invoices.schemas import InvoiceOut


class DashboardStats(BaseModel):
    """Contadores principales"""
    total_invoices: int
    total_customers: int
    total_revenue: Decimal = Field(description="Sum of totals of paid invoices")
    pending_invoices: int = Field(description="Invoices sent and not yet paid")


class MonthlyRevenue(BaseModel):
    """Ingresos cobrados de un mes, año actual frente al anterior"""
    month: str
    current: Decimal
    previous: Decimal


class RankedEntry(BaseModel):
    name: str
    total: Decimal


class ActivitySummary(BaseModel):
    """Actividad de facturas en los últimos 30 días"""
    since: datetime
    created: int
    paid: int
    sent: int


class DashboardResponse(BaseModel):
    stats: DashboardStats
    recent_invoices: List[InvoiceOut]
    monthly_revenue: List[MonthlyRevenue]
    month_over_month: float = Field(description="Fractional change vs previous month (0.25 = +25%)")
    year_over_year: float = Field(description="Fractional change vs same month last year")
    top_customers: List[RankedEntry]
    top_items: List[RankedEntry]
    revenue_by_customer: List[RankedEntry]
    activity: ActivitySummary
