"""
Subscriptions module.

Planes FREE / PRO, uso del periodo y checkout con Stripe.
"""
from .models import UserSubscription, SubscriptionPlan, SubscriptionStatus
from .plans import SUBSCRIPTION_PLANS

__all__ = ["UserSubscription", "SubscriptionPlan", "SubscriptionStatus", "SUBSCRIPTION_PLANS"]
