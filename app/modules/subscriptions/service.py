"""
Servicio de suscripciones: plan del usuario, uso del periodo y checkout.

Los límites del plan se informan al cliente pero no bloquean la creación
de facturas ni clientes.
"""
from datetime import datetime, timedelta, timezone
from typing import Optional, Tuple
import logging

from fastapi import HTTPException, status
from sqlalchemy import func
from sqlalchemy.orm import Session

from app.modules.auth.models import User
from app.modules.customers.models import Customer
from app.modules.invoices.models import Invoice
from app.modules.subscriptions.billing import StripeClient
from app.modules.subscriptions.models import UserSubscription, SubscriptionPlan, SubscriptionStatus
from app.modules.subscriptions.plans import get_plan, can_create, remaining
from app.modules.subscriptions.schemas import UsageOut, CheckoutResponse

logger = logging.getLogger(__name__)

FREE_PERIOD_DAYS = 30


def month_bounds(now: datetime) -> Tuple[datetime, datetime]:
    """Inicio del mes natural y del mes siguiente."""
    start = now.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    if start.month == 12:
        end = start.replace(year=start.year + 1, month=1)
    else:
        end = start.replace(month=start.month + 1)
    return start, end


class SubscriptionService:

    def __init__(self, db: Session):
        self.db = db

    def get_or_create_subscription(self, user: User) -> UserSubscription:
        """Suscripción del usuario; si no existe se crea en FREE con un periodo de 30 días."""
        subscription = self.db.query(UserSubscription).filter(
            UserSubscription.user_id == user.id
        ).first()
        if subscription:
            return subscription

        now = datetime.now(timezone.utc)
        subscription = UserSubscription(
            user_id=user.id,
            plan=SubscriptionPlan.FREE.value,
            status=SubscriptionStatus.ACTIVE.value,
            current_period_start=now,
            current_period_end=now + timedelta(days=FREE_PERIOD_DAYS)
        )
        self.db.add(subscription)
        self.db.commit()
        self.db.refresh(subscription)

        logger.info(f"FREE subscription created for user {user.email}")
        return subscription

    def get_usage(self, user: User, now: Optional[datetime] = None) -> UsageOut:
        """
        Facturas creadas en el mes natural y clientes totales de la empresa
        del usuario, comparados con los límites de su plan.
        """
        subscription = self.get_or_create_subscription(user)
        plan = get_plan(subscription.plan)
        period_start, period_end = month_bounds(now or datetime.now(timezone.utc))

        invoices_count = 0
        customers_count = 0
        if user.company_id:
            invoices_count = self.db.query(func.count(Invoice.id)).filter(
                Invoice.company_id == user.company_id,
                Invoice.created_at >= period_start,
                Invoice.created_at < period_end
            ).scalar() or 0
            customers_count = self.db.query(func.count(Customer.id)).filter(
                Customer.company_id == user.company_id
            ).scalar() or 0

        return UsageOut(
            plan=plan.code,
            period_start=period_start,
            period_end=period_end,
            invoices_count=invoices_count,
            customers_count=customers_count,
            invoice_limit=plan.invoice_limit,
            customer_limit=plan.customer_limit,
            can_create_invoice=can_create(plan.invoice_limit, invoices_count),
            can_create_customer=can_create(plan.customer_limit, customers_count),
            remaining_invoices=remaining(plan.invoice_limit, invoices_count),
            remaining_customers=remaining(plan.customer_limit, customers_count)
        )

    def create_checkout_session(self, user: User, plan_code: SubscriptionPlan, stripe: StripeClient) -> CheckoutResponse:
        """Crear sesión de Stripe Checkout para pasar a un plan de pago."""
        plan = get_plan(plan_code)
        if not plan.stripe_price_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"El plan {plan.name} no requiere pago"
            )

        subscription = self.get_or_create_subscription(user)
        if subscription.plan == plan.code.value and subscription.status == SubscriptionStatus.ACTIVE.value:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Ya tienes el plan {plan.name}"
            )

        if not subscription.stripe_customer_id:
            subscription.stripe_customer_id = stripe.create_customer(user.email, str(user.id))
            self.db.commit()

        session_id, url = stripe.create_checkout_session(
            subscription.stripe_customer_id, plan.stripe_price_id, str(user.id)
        )
        logger.info(f"Checkout session {session_id} created for user {user.email}")
        return CheckoutResponse(session_id=session_id, url=url)
