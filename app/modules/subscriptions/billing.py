"""
Stripe Checkout con el SDK oficial de Stripe.

Solo las dos llamadas necesarias para iniciar una suscripción: creación del
customer y de la sesión de checkout. Los webhooks se gestionan fuera de la API.
"""
import logging
from typing import Optional, Tuple

import stripe
from fastapi import HTTPException, status

from app.core.config import settings

logger = logging.getLogger(__name__)

stripe.max_network_retries = settings.STRIPE_MAX_NETWORK_RETRIES


class StripeClient:
    """Wrapper sobre el SDK; la clave se pasa en cada llamada."""

    def __init__(self, secret_key: Optional[str] = None):
        self.secret_key = secret_key if secret_key is not None else settings.STRIPE_SECRET_KEY

    def _require_key(self):
        if not self.secret_key:
            raise HTTPException(
                status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
                detail="Pagos no configurados"
            )

    def create_customer(self, email: str, user_id: str) -> str:
        self._require_key()
        try:
            customer = stripe.Customer.create(
                api_key=self.secret_key,
                email=email,
                metadata={"user_id": user_id},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe customer creation failed for user {user_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Error del proveedor de pagos"
            )

        logger.info(f"Stripe customer {customer.id} created for user {user_id}")
        return customer.id

    def create_checkout_session(self, customer_id: str, price_id: str, user_id: str) -> Tuple[str, str]:
        """Crear una Checkout Session en modo suscripción. Devuelve (session_id, url)."""
        self._require_key()
        try:
            session = stripe.checkout.Session.create(
                api_key=self.secret_key,
                customer=customer_id,
                mode="subscription",
                payment_method_types=["card"],
                line_items=[{"price": price_id, "quantity": 1}],
                success_url=f"{settings.FRONTEND_URL}/dashboard?success=true",
                cancel_url=f"{settings.FRONTEND_URL}/dashboard?canceled=true",
                metadata={"user_id": user_id},
                subscription_data={"metadata": {"user_id": user_id}},
            )
        except stripe.StripeError as e:
            logger.error(f"Stripe checkout session failed for customer {customer_id}: {e}")
            raise HTTPException(
                status_code=status.HTTP_502_BAD_GATEWAY,
                detail="Error del proveedor de pagos"
            )

        return session.id, session.url


def get_stripe_client() -> StripeClient:
    """Dependency"""
    return StripeClient()
