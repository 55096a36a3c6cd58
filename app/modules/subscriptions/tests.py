"""
Tests para el módulo de Suscripciones

- Creación perezosa de la suscripción FREE
- Uso del mes y límites FREE / PRO
- Checkout con Stripe (SDK simulado)
"""

import pytest
from datetime import datetime, timezone
from types import SimpleNamespace

import stripe
from fastapi import HTTPException

from app.main import app
from app.modules.customers.models import Customer
from app.modules.subscriptions.billing import StripeClient, get_stripe_client
from app.modules.subscriptions.models import UserSubscription, SubscriptionPlan
from app.modules.subscriptions.plans import can_create, remaining, get_plan, UNLIMITED
from app.modules.subscriptions.service import SubscriptionService, month_bounds


def fake_stripe(monkeypatch, calls, error=None):
    """Sustituye las llamadas del SDK de Stripe y registra sus argumentos"""

    def create_customer(**kwargs):
        calls.append(("customer", kwargs))
        if error:
            raise error
        return SimpleNamespace(id="cus_123")

    def create_session(**kwargs):
        calls.append(("session", kwargs))
        return SimpleNamespace(id="cs_test_1", url="https://checkout.stripe.com/c/cs_test_1")

    monkeypatch.setattr(stripe.Customer, "create", create_customer)
    monkeypatch.setattr(stripe.checkout.Session, "create", create_session)


class TestPlans:

    def test_limits(self):
        assert can_create(5, 4)
        assert not can_create(5, 5)
        assert can_create(UNLIMITED, 10_000)
        assert remaining(5, 7) == 0
        assert remaining(50, 10) == 40
        assert remaining(UNLIMITED, 3) == UNLIMITED

    def test_unknown_plan_is_free(self):
        assert get_plan("GOLD").code == SubscriptionPlan.FREE
        assert get_plan("PRO").invoice_limit == UNLIMITED

    def test_month_bounds_december(self):
        start, end = month_bounds(datetime(2025, 12, 18, 10, 30, tzinfo=timezone.utc))
        assert start == datetime(2025, 12, 1, tzinfo=timezone.utc)
        assert end == datetime(2026, 1, 1, tzinfo=timezone.utc)


class TestSubscriptionService:

    def test_lazy_free_subscription(self, db_session, sample_user):
        service = SubscriptionService(db_session)
        first = service.get_or_create_subscription(sample_user)
        second = service.get_or_create_subscription(sample_user)

        assert first.id == second.id
        assert first.plan == "FREE"
        assert first.status == "active"
        assert db_session.query(UserSubscription).count() == 1

    def test_usage_free_plan(self, db_session, sample_user, sample_company):
        for n in range(3):
            db_session.add(Customer(company_id=sample_company.id, name=f"Cliente {n}"))
        db_session.commit()

        usage = SubscriptionService(db_session).get_usage(sample_user)

        assert usage.customers_count == 3
        assert usage.invoices_count == 0
        assert usage.can_create_invoice
        assert usage.remaining_invoices == 5
        assert usage.remaining_customers == 47

    def test_usage_pro_plan_unlimited(self, db_session, sample_user):
        service = SubscriptionService(db_session)
        subscription = service.get_or_create_subscription(sample_user)
        subscription.plan = SubscriptionPlan.PRO.value
        db_session.commit()

        usage = service.get_usage(sample_user)
        assert usage.plan == SubscriptionPlan.PRO
        assert usage.remaining_invoices == UNLIMITED
        assert usage.can_create_customer

    def test_checkout_creates_customer_once(self, db_session, sample_user, monkeypatch):
        calls = []
        fake_stripe(monkeypatch, calls)
        stripe_client = StripeClient(secret_key="sk_test")
        service = SubscriptionService(db_session)

        result = service.create_checkout_session(sample_user, SubscriptionPlan.PRO, stripe_client)
        service.create_checkout_session(sample_user, SubscriptionPlan.PRO, stripe_client)

        assert result.url == "https://checkout.stripe.com/c/cs_test_1"
        assert [kind for kind, _ in calls] == ["customer", "session", "session"]

        customer_args = calls[0][1]
        assert customer_args["email"] == sample_user.email
        assert customer_args["metadata"] == {"user_id": str(sample_user.id)}

        session_args = calls[1][1]
        assert session_args["mode"] == "subscription"
        assert session_args["customer"] == "cus_123"
        assert session_args["api_key"] == "sk_test"
        assert session_args["line_items"] == [{"price": get_plan("PRO").stripe_price_id, "quantity": 1}]

    def test_checkout_free_plan_rejected(self, db_session, sample_user):
        with pytest.raises(HTTPException) as exc:
            SubscriptionService(db_session).create_checkout_session(
                sample_user, SubscriptionPlan.FREE, StripeClient(secret_key="sk_test")
            )
        assert exc.value.status_code == 400

    def test_stripe_error_is_bad_gateway(self, db_session, sample_user, monkeypatch):
        fake_stripe(monkeypatch, [], error=stripe.StripeError("Your card was declined."))
        with pytest.raises(HTTPException) as exc:
            SubscriptionService(db_session).create_checkout_session(
                sample_user, SubscriptionPlan.PRO, StripeClient(secret_key="sk_test")
            )
        assert exc.value.status_code == 502

    def test_stripe_not_configured(self):
        with pytest.raises(HTTPException) as exc:
            StripeClient(secret_key="").create_customer("a@acme.it", "1")
        assert exc.value.status_code == 503


class TestSubscriptionAPI:

    def test_plans_public(self, client):
        response = client.get("/subscriptions/plans")
        assert response.status_code == 200
        assert [p["code"] for p in response.json()] == ["FREE", "PRO"]

    def test_me_and_usage(self, client, auth_headers):
        me = client.get("/subscriptions/me", headers=auth_headers)
        assert me.status_code == 200
        assert me.json()["plan"] == "FREE"

        usage = client.get("/subscriptions/usage", headers=auth_headers)
        assert usage.status_code == 200
        assert usage.json()["invoice_limit"] == 5

    def test_usage_without_company(self, client, no_company_headers):
        usage = client.get("/subscriptions/usage", headers=no_company_headers)
        assert usage.status_code == 200
        assert usage.json()["customers_count"] == 0

    def test_checkout_endpoint(self, client, auth_headers, monkeypatch):
        fake_stripe(monkeypatch, [])
        app.dependency_overrides[get_stripe_client] = lambda: StripeClient(secret_key="sk_test")
        response = client.post("/subscriptions/checkout", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["session_id"] == "cs_test_1"
