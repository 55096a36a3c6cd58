"""
API Router for subscription management.
"""
from typing import List, Optional
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.modules.auth.dependencies import user_dependency

from . import schemas
from .billing import StripeClient, get_stripe_client
from .plans import SUBSCRIPTION_PLANS
from .service import SubscriptionService

router = APIRouter(
    prefix="/subscriptions",
    tags=["Subscriptions"],
    responses={404: {"description": "Not found"}}
)


@router.get("/plans", response_model=List[schemas.PlanOut])
def get_plans():
    """
    Obtener lista de planes disponibles.

    Este endpoint es público y no requiere autenticación.
    """
    return list(SUBSCRIPTION_PLANS.values())


@router.get("/me", response_model=schemas.SubscriptionOut)
def get_my_subscription(current_user: user_dependency, db: Session = Depends(get_db)):
    """
    Suscripción del usuario actual.
    Si no existe se crea una suscripción FREE.
    """
    return SubscriptionService(db).get_or_create_subscription(current_user)


@router.get("/usage", response_model=schemas.UsageOut)
def get_usage(current_user: user_dependency, db: Session = Depends(get_db)):
    """
    Uso del mes actual frente a los límites del plan.

    Retorna:
    - Facturas creadas este mes y clientes totales
    - `can_create_invoice` / `can_create_customer`
    - Restantes (-1 = ilimitado)
    """
    return SubscriptionService(db).get_usage(current_user)


@router.post("/checkout", response_model=schemas.CheckoutResponse)
def create_checkout(
    current_user: user_dependency,
    request: Optional[schemas.CheckoutRequest] = None,
    db: Session = Depends(get_db),
    stripe: StripeClient = Depends(get_stripe_client)
):
    """Crear sesión de pago en Stripe y devolver la URL de checkout."""
    plan = request.plan if request else schemas.SubscriptionPlan.PRO
    return SubscriptionService(db).create_checkout_session(current_user, plan, stripe)
