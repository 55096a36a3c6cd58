"""
Schemas for subscription management.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from uuid import UUID
from datetime import datetime
from decimal import Decimal

from app.modules.subscriptions.models import SubscriptionPlan, SubscriptionStatus


class PlanOut(BaseModel):
    """Plan de suscripción."""
    code: SubscriptionPlan
    name: str
    price: Decimal = Field(..., description="Precio mensual")
    currency: str = "EUR"
    interval: str = "month"
    features: List[str] = []
    invoice_limit: int = Field(..., description="Facturas por mes (-1 = ilimitado)")
    customer_limit: int = Field(..., description="Clientes totales (-1 = ilimitado)")
    stripe_price_id: Optional[str] = None


class SubscriptionOut(BaseModel):
    """Suscripción del usuario."""
    id: UUID
    user_id: UUID
    plan: SubscriptionPlan
    status: SubscriptionStatus
    stripe_customer_id: Optional[str] = None
    stripe_subscription_id: Optional[str] = None
    current_period_start: Optional[datetime] = None
    current_period_end: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class UsageOut(BaseModel):
    """Uso del periodo actual (mes natural) frente a los límites del plan."""
    plan: SubscriptionPlan
    period_start: datetime
    period_end: datetime
    invoices_count: int
    customers_count: int
    invoice_limit: int
    customer_limit: int
    can_create_invoice: bool
    can_create_customer: bool
    remaining_invoices: int = Field(..., description="-1 = ilimitado")
    remaining_customers: int = Field(..., description="-1 = ilimitado")


class CheckoutRequest(BaseModel):
    plan: SubscriptionPlan = SubscriptionPlan.PRO


class CheckoutResponse(BaseModel):
    session_id: str
    url: str
