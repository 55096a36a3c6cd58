"""
Tests for the Dashboard module
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.modules.invoices.models import Invoice, InvoiceItem, InvoiceStatus
from app.modules.dashboard.service import (
    DashboardService, activity_summary, monthly_revenue, period_delta,
    revenue_by_customer, top_customers, top_items
)

NOW = datetime(2025, 6, 15, 12, 0, tzinfo=timezone.utc)


def fake_invoice(status, issue_date, total, customer="Verdi", items=(), created_at=NOW, updated_at=NOW):
    return SimpleNamespace(
        status=status,
        issue_date=issue_date,
        total=Decimal(total),
        customer=SimpleNamespace(name=customer) if customer else None,
        items=[SimpleNamespace(description=d, total=Decimal(t)) for d, t in items],
        created_at=created_at,
        updated_at=updated_at,
    )


class TestAggregations:

    def test_period_delta(self):
        assert period_delta(Decimal("150"), Decimal("100")) == pytest.approx(0.5)
        assert period_delta(Decimal("50"), Decimal("100")) == pytest.approx(-0.5)
        assert period_delta(Decimal("10"), Decimal("0")) == 1.0
        assert period_delta(Decimal("0"), Decimal("0")) == 0.0

    def test_monthly_revenue_only_paid(self):
        invoices = [
            fake_invoice(InvoiceStatus.PAID, date(2025, 6, 1), "100.00"),
            fake_invoice(InvoiceStatus.PAID, date(2025, 6, 20), "50.50"),
            fake_invoice(InvoiceStatus.SENT, date(2025, 6, 2), "999.00"),
            fake_invoice(InvoiceStatus.PAID, date(2024, 6, 3), "80.00"),
            fake_invoice(InvoiceStatus.PAID, date(2023, 6, 3), "70.00"),
        ]
        months = monthly_revenue(invoices, 2025)

        assert len(months) == 12
        assert months[5].month == "Giu"
        assert months[5].current == Decimal("150.50")
        assert months[5].previous == Decimal("80.00")
        assert sum(m.current for m in months) == Decimal("150.50")

    def test_top_customers_and_revenue_by_customer(self):
        invoices = [
            fake_invoice(InvoiceStatus.PAID, date(2025, 1, 1), "10", customer="A"),
            fake_invoice(InvoiceStatus.PAID, date(2025, 1, 1), "30", customer="B"),
            fake_invoice(InvoiceStatus.PAID, date(2025, 1, 1), "25", customer="A"),
            fake_invoice(InvoiceStatus.PAID, date(2025, 1, 1), "5", customer=None),
            fake_invoice(InvoiceStatus.DRAFT, date(2025, 1, 1), "500", customer="C"),
        ]

        assert [(e.name, e.total) for e in top_customers(invoices)] == [
            ("A", Decimal("35.00")), ("B", Decimal("30.00"))
        ]
        by_customer = {e.name: e.total for e in revenue_by_customer(invoices)}
        assert by_customer == {"A": Decimal("35.00"), "B": Decimal("30.00"), "Sconosciuto": Decimal("5.00")}

    def test_top_items_groups_blank_descriptions(self):
        invoices = [
            fake_invoice(InvoiceStatus.PAID, date(2025, 1, 1), "0", items=[("Consulenza", "100"), ("", "5")]),
            fake_invoice(InvoiceStatus.PAID, date(2025, 1, 1), "0", items=[("Consulenza", "50"), ("  ", "7")]),
        ]
        assert [(e.name, e.total) for e in top_items(invoices)] == [
            ("Consulenza", Decimal("150.00")), ("Altro", Decimal("12.00"))
        ]

    def test_top_items_limited_to_five(self):
        items = [(f"Voce {n}", str(n)) for n in range(1, 8)]
        invoice = fake_invoice(InvoiceStatus.PAID, date(2025, 1, 1), "0", items=items)
        names = [e.name for e in top_items([invoice])]
        assert names == ["Voce 7", "Voce 6", "Voce 5", "Voce 4", "Voce 3"]

    def test_activity_last_30_days(self):
        old = NOW - timedelta(days=45)
        invoices = [
            fake_invoice(InvoiceStatus.DRAFT, date(2025, 6, 1), "0"),
            fake_invoice(InvoiceStatus.PAID, date(2025, 6, 1), "0"),
            fake_invoice(InvoiceStatus.SENT, date(2025, 6, 1), "0", created_at=old),
            fake_invoice(InvoiceStatus.PAID, date(2025, 4, 1), "0", created_at=old, updated_at=old),
        ]
        activity = activity_summary(invoices, NOW)

        assert activity.created == 2
        assert activity.paid == 1
        assert activity.sent == 1


class TestDashboardService:

    def _add_invoice(self, db_session, company, customer, number, status, issue_date, total, items=()):
        invoice = Invoice(
            company_id=company.id,
            customer_id=customer.id,
            invoice_number=number,
            status=status,
            issue_date=issue_date,
            subtotal=Decimal(total),
            tax_amount=Decimal("0"),
            total=Decimal(total),
            tax_rate=Decimal("0"),
            items=[
                InvoiceItem(position=n, description=d, quantity=Decimal("1"), unit_price=Decimal(t), total=Decimal(t))
                for n, (d, t) in enumerate(items)
            ]
        )
        db_session.add(invoice)
        db_session.commit()
        return invoice

    def test_dashboard(self, db_session, sample_company, sample_customer):
        self._add_invoice(db_session, sample_company, sample_customer, "2025-0001", InvoiceStatus.PAID,
                          date(2025, 5, 10), "100.00", items=[("Consulenza", "100.00")])
        self._add_invoice(db_session, sample_company, sample_customer, "2025-0002", InvoiceStatus.PAID,
                          date(2025, 6, 10), "150.00", items=[("Consulenza", "150.00")])
        self._add_invoice(db_session, sample_company, sample_customer, "2025-0003", InvoiceStatus.SENT,
                          date(2025, 6, 12), "80.00")

        dashboard = DashboardService(db_session).get_dashboard(sample_company.id, now=NOW)

        assert dashboard.stats.total_invoices == 3
        assert dashboard.stats.total_customers == 1
        assert dashboard.stats.total_revenue == Decimal("250.00")
        assert dashboard.stats.pending_invoices == 1
        assert dashboard.recent_invoices[0].invoice_number == "2025-0003"
        assert dashboard.month_over_month == pytest.approx(0.5)
        assert dashboard.year_over_year == 1.0
        assert dashboard.top_customers[0].name == "Verdi Costruzioni"
        assert dashboard.top_items[0].total == Decimal("250.00")

    def test_dashboard_endpoint(self, client, auth_headers, sample_customer):
        response = client.get("/dashboard/", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["stats"]["total_customers"] == 1
        assert data["stats"]["total_invoices"] == 0
        assert len(data["monthly_revenue"]) == 12

    def test_dashboard_requires_company(self, client, no_company_headers):
        assert client.get("/dashboard/", headers=no_company_headers).status_code == 404
