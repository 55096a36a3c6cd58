"""
Catálogo de planes. Los límites -1 significan ilimitado.
"""
from decimal import Decimal
from typing import Dict

from app.core.config import settings
from app.modules.subscriptions.models import SubscriptionPlan
from app.modules.subscriptions.schemas import PlanOut

UNLIMITED = -1

SUBSCRIPTION_PLANS: Dict[SubscriptionPlan, PlanOut] = {
    SubscriptionPlan.FREE: PlanOut(
        code=SubscriptionPlan.FREE,
        name="Free",
        price=Decimal("0"),
        features=[
            "5 fatture al mese",
            "Gestione clienti",
            "PDF download",
            "Supporto base",
        ],
        invoice_limit=5,
        customer_limit=50,
    ),
    SubscriptionPlan.PRO: PlanOut(
        code=SubscriptionPlan.PRO,
        name="Pro",
        price=Decimal("4.99"),
        features=[
            "Fatture illimitate",
            "Clienti illimitati",
            "Email fatture",
            "Template personalizzati",
            "Supporto prioritario",
            "Export Excel/CSV",
        ],
        invoice_limit=UNLIMITED,
        customer_limit=UNLIMITED,
        stripe_price_id=settings.STRIPE_PRO_PRICE_ID,
    ),
}


def get_plan(plan: str) -> PlanOut:
    """Plan por código; los valores desconocidos se tratan como FREE."""
    try:
        return SUBSCRIPTION_PLANS[SubscriptionPlan(plan)]
    except ValueError:
        return SUBSCRIPTION_PLANS[SubscriptionPlan.FREE]


def can_create(limit: int, used: int) -> bool:
    return limit == UNLIMITED or used < limit


def remaining(limit: int, used: int) -> int:
    if limit == UNLIMITED:
        return UNLIMITED
    return max(0, limit - used)
