"""
Models for subscription management.
"""
from sqlalchemy import Column, String, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import relationship
from app.database.database import Base
from app.common.mixins import TimestampMixin
import uuid
from enum import Enum


class SubscriptionStatus(str, Enum):
    """Estados de suscripción (los mismos que usa Stripe)."""
    ACTIVE = "active"
    CANCELED = "canceled"
    PAST_DUE = "past_due"
    INCOMPLETE = "incomplete"


class SubscriptionPlan(str, Enum):
    """Planes disponibles."""
    FREE = "FREE"
    PRO = "PRO"


class UserSubscription(Base, TimestampMixin):
    """
    Suscripción del usuario. Una por usuario; se crea en FREE
    la primera vez que se consulta.
    """
    __tablename__ = "user_subscriptions"

    id = Column(Uuid, primary_key=True, index=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)

    plan = Column(String(10), nullable=False, default=SubscriptionPlan.FREE.value)
    status = Column(String(20), nullable=False, default=SubscriptionStatus.ACTIVE.value)

    # Stripe
    stripe_customer_id = Column(String(100), nullable=True)
    stripe_subscription_id = Column(String(100), nullable=True)

    current_period_start = Column(DateTime(timezone=True), nullable=True)
    current_period_end = Column(DateTime(timezone=True), nullable=True)

    user = relationship("User", back_populates="subscription")

    def __str__(self):
        return f"Subscription {self.plan} - {self.status}"
