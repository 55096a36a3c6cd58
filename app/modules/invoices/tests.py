"""
Tests para el módulo de Facturas

- Numeración YYYY-NNNN (menor número libre, reutilización tras eliminar)
- Totales recalculados en el servidor
- Reemplazo completo de líneas al guardar
- Estados, vencimiento y envío por email
- Aislamiento por empresa
"""

import pytest
from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace
from uuid import uuid4
from fastapi import HTTPException

from app.modules.invoices.models import Invoice, InvoiceItem, InvoiceStatus
from app.modules.invoices.numbering import (
    allocate_invoice_number, next_sequence, parse_sequence, is_valid_invoice_number
)
from app.modules.invoices.schemas import InvoiceCreate, InvoiceItemCreate
from app.modules.invoices import numbering
from app.modules.invoices.service import InvoiceService, calculate_totals, calculate_line_total, round_money
from app.modules.email import tasks as email_tasks


def invoice_payload(customer_id, **overrides):
    payload = {
        "customer_id": str(customer_id),
        "issue_date": "2025-03-10",
        "tax_rate": 22,
        "items": [
            {"description": "Sviluppo sito web", "quantity": 2, "unit_price": "150.00"},
            {"description": "Hosting annuale", "quantity": 1, "unit_price": "99.90"},
        ],
    }
    payload.update(overrides)
    return payload


# ===== TESTS DE NUMERACIÓN =====

class TestInvoiceNumbering:
    """Asignación del siguiente número libre"""

    def test_first_number_of_year(self):
        assert allocate_invoice_number(2025, []) == "2025-0001"

    def test_consecutive_numbers(self):
        assert allocate_invoice_number(2025, ["2025-0001", "2025-0002", "2025-0003"]) == "2025-0004"

    def test_fills_gap(self):
        assert allocate_invoice_number(2025, ["2025-0001", "2025-0003"]) == "2025-0002"

    def test_unordered_input(self):
        assert allocate_invoice_number(2024, ["2024-0003", "2024-0001", "2024-0002"]) == "2024-0004"

    def test_idempotent(self):
        existing = ["2025-0002", "2025-0005"]
        assert allocate_invoice_number(2025, existing) == allocate_invoice_number(2025, existing)

    def test_malformed_numbers_ignored(self):
        assert parse_sequence("BOZZA") == 0
        assert parse_sequence("") == 0
        assert allocate_invoice_number(2025, ["BOZZA", "2025-0001"]) == "2025-0002"

    def test_parse_sequence(self):
        assert parse_sequence("2025-0042") == 42

    def test_next_sequence_ignores_non_positive(self):
        assert next_sequence([0, -3, 1, 1, 2]) == 3
        assert next_sequence([2, 3]) == 1

    def test_number_pattern(self):
        assert is_valid_invoice_number("2025-0001")
        assert not is_valid_invoice_number("2025-1")
        assert not is_valid_invoice_number("25-0001")

    def test_full_year_raises(self):
        existing = [f"2025-{n:04d}" for n in range(1, 10000)]
        with pytest.raises(ValueError):
            allocate_invoice_number(2025, existing)
        assert allocate_invoice_number(2025, existing[1:]) == "2025-0001"


# ===== TESTS DE TOTALES =====

class TestInvoiceTotals:

    def test_totals_invariant(self):
        items = [
            InvoiceItemCreate(description="A", quantity=Decimal("3"), unit_price=Decimal("19.99")),
            InvoiceItemCreate(description="B", quantity=Decimal("0.5"), unit_price=Decimal("80")),
        ]
        subtotal, tax_amount, total = calculate_totals(items, Decimal("22"))

        assert subtotal == Decimal("99.97")
        assert tax_amount == Decimal("21.99")
        assert total == Decimal("121.96")
        assert total == subtotal + tax_amount

    def test_no_items(self):
        assert calculate_totals([], Decimal("22")) == (Decimal("0.00"), Decimal("0.00"), Decimal("0.00"))

    def test_fractional_line_totals_not_rounded(self):
        items = [
            InvoiceItemCreate(description="Viti", quantity=Decimal("1.5"), unit_price=Decimal("0.33")),
            InvoiceItemCreate(description="Ore", quantity=Decimal("0.33"), unit_price=Decimal("10")),
        ]
        assert calculate_line_total(Decimal("1.5"), Decimal("0.33")) == Decimal("0.495")

        subtotal, tax_amount, total = calculate_totals(items, Decimal("22"))

        assert subtotal == Decimal("3.795")
        assert tax_amount == Decimal("0.83")
        assert total == Decimal("4.63")
        assert total == round_money(subtotal + tax_amount)

    def test_item_rejects_more_than_two_decimals(self):
        with pytest.raises(ValueError):
            InvoiceItemCreate(description="Ore", quantity=Decimal("0.333"), unit_price=Decimal("10"))


# ===== TESTS DE SERVICIO =====

class TestInvoiceService:

    def test_generate_number_requires_company(self, db_session):
        with pytest.raises(HTTPException) as exc:
            InvoiceService(db_session).generate_invoice_number(None, 2025)
        assert exc.value.status_code == 404

    def test_generate_number_scoped_by_company_and_year(self, db_session, sample_company, sample_customer):
        for number in ("2025-0001", "2025-0002", "2024-0007"):
            db_session.add(Invoice(
                company_id=sample_company.id,
                customer_id=sample_customer.id,
                invoice_number=number,
                issue_date=date(int(number[:4]), 1, 15)
            ))
        db_session.commit()

        service = InvoiceService(db_session)
        assert service.generate_invoice_number(sample_company.id, 2025) == "2025-0003"
        assert service.generate_invoice_number(sample_company.id, 2024) == "2024-0001"
        assert service.generate_invoice_number(uuid4(), 2025) == "2025-0001"

    def test_generate_number_when_year_is_full(self, db_session, sample_company, sample_customer, monkeypatch):
        monkeypatch.setattr(numbering, "MAX_SEQUENCE", 2)
        for number in ("2025-0001", "2025-0002"):
            db_session.add(Invoice(
                company_id=sample_company.id,
                customer_id=sample_customer.id,
                invoice_number=number,
                issue_date=date(2025, 1, 15)
            ))
        db_session.commit()

        with pytest.raises(HTTPException) as exc:
            InvoiceService(db_session).generate_invoice_number(sample_company.id, 2025)
        assert exc.value.status_code == 409

    def test_create_sets_default_due_date(self, db_session, sample_company, sample_customer):
        data = InvoiceCreate(customer_id=sample_customer.id, issue_date=date(2025, 1, 31))
        invoice = InvoiceService(db_session).create_invoice(data, sample_company.id)

        assert invoice.invoice_number == "2025-0001"
        assert invoice.due_date == date(2025, 1, 31) + timedelta(days=30)
        assert invoice.status == InvoiceStatus.DRAFT

    def test_mark_overdue(self, db_session, sample_company, sample_customer):
        service = InvoiceService(db_session)
        late = service.create_invoice(InvoiceCreate(
            customer_id=sample_customer.id, issue_date=date(2025, 1, 1),
            due_date=date(2025, 1, 31), status=InvoiceStatus.SENT
        ), sample_company.id)
        draft = service.create_invoice(InvoiceCreate(
            customer_id=sample_customer.id, issue_date=date(2025, 1, 1), due_date=date(2025, 1, 31)
        ), sample_company.id)

        result = service.mark_overdue(sample_company.id, today=date(2025, 2, 15))

        assert result.updated == 1
        assert result.invoice_ids == [late.id]
        db_session.refresh(draft)
        assert draft.status == InvoiceStatus.DRAFT


# ===== TESTS DE API =====

class TestInvoiceAPI:

    def test_create_invoice_computes_totals(self, client, auth_headers, sample_customer):
        payload = invoice_payload(sample_customer.id, subtotal=1, total=1)
        response = client.post("/invoices/", json=payload, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        assert data["invoice_number"] == "2025-0001"
        assert Decimal(data["subtotal"]) == Decimal("399.90")
        assert Decimal(data["tax_amount"]) == Decimal("87.98")
        assert Decimal(data["total"]) == Decimal("487.88")
        assert [i["position"] for i in data["items"]] == [0, 1]
        assert Decimal(data["items"][0]["total"]) == Decimal("300.00")
        assert data["customer"]["name"] == "Verdi Costruzioni"

    def test_fractional_items_keep_exact_totals(self, client, auth_headers, sample_customer):
        payload = invoice_payload(sample_customer.id, items=[
            {"description": "Viti", "quantity": "1.5", "unit_price": "0.33"},
            {"description": "Ore", "quantity": "0.33", "unit_price": "10"},
        ])
        response = client.post("/invoices/", json=payload, headers=auth_headers)

        assert response.status_code == 201
        data = response.json()
        for item in data["items"]:
            assert Decimal(item["total"]) == Decimal(item["quantity"]) * Decimal(item["unit_price"])
        assert Decimal(data["subtotal"]) == sum(Decimal(i["total"]) for i in data["items"])
        assert Decimal(data["subtotal"]) == Decimal("3.795")
        assert Decimal(data["total"]) == Decimal("4.63")

    def test_item_with_three_decimals_rejected(self, client, auth_headers, sample_customer):
        payload = invoice_payload(sample_customer.id, items=[
            {"description": "Ore", "quantity": "0.333", "unit_price": "10"},
        ])
        assert client.post("/invoices/", json=payload, headers=auth_headers).status_code == 422

    def test_numbers_fill_gap_after_delete(self, client, auth_headers, sample_customer):
        ids = []
        for _ in range(3):
            response = client.post("/invoices/", json=invoice_payload(sample_customer.id), headers=auth_headers)
            ids.append(response.json()["id"])

        client.delete(f"/invoices/{ids[1]}", headers=auth_headers)

        preview = client.get("/invoices/next-number?year=2025", headers=auth_headers)
        assert preview.json()["invoice_number"] == "2025-0002"

        response = client.post("/invoices/", json=invoice_payload(sample_customer.id), headers=auth_headers)
        assert response.json()["invoice_number"] == "2025-0002"

    def test_duplicate_number_conflict(self, client, auth_headers, sample_customer):
        payload = invoice_payload(sample_customer.id, invoice_number="2025-0010")
        assert client.post("/invoices/", json=payload, headers=auth_headers).status_code == 201
        assert client.post("/invoices/", json=payload, headers=auth_headers).status_code == 409

    def test_invalid_number_format(self, client, auth_headers, sample_customer):
        payload = invoice_payload(sample_customer.id, invoice_number="FATT-1")
        assert client.post("/invoices/", json=payload, headers=auth_headers).status_code == 422

    def test_customer_of_other_company_rejected(self, client, other_company_headers, sample_customer):
        response = client.post("/invoices/", json=invoice_payload(sample_customer.id), headers=other_company_headers)
        assert response.status_code == 404

    def test_update_replaces_items(self, client, auth_headers, sample_customer, db_session):
        created = client.post("/invoices/", json=invoice_payload(sample_customer.id), headers=auth_headers).json()

        payload = invoice_payload(
            sample_customer.id,
            tax_rate=10,
            notes="Pagamento a 30 giorni",
            items=[{"description": "Manutenzione", "quantity": 4, "unit_price": "25"}]
        )
        response = client.put(f"/invoices/{created['id']}", json=payload, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["invoice_number"] == created["invoice_number"]
        assert len(data["items"]) == 1
        assert Decimal(data["subtotal"]) == Decimal("100.00")
        assert Decimal(data["tax_amount"]) == Decimal("10.00")
        assert Decimal(data["total"]) == Decimal("110.00")
        assert db_session.query(InvoiceItem).count() == 1

    def test_update_status(self, client, auth_headers, sample_customer):
        created = client.post("/invoices/", json=invoice_payload(sample_customer.id), headers=auth_headers).json()

        response = client.patch(f"/invoices/{created['id']}/status", json={"status": "paid"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "paid"

    def test_list_filters(self, client, auth_headers, sample_customer):
        client.post("/invoices/", json=invoice_payload(sample_customer.id, status="paid"), headers=auth_headers)
        client.post("/invoices/", json=invoice_payload(sample_customer.id), headers=auth_headers)

        all_invoices = client.get("/invoices/", headers=auth_headers).json()
        assert all_invoices["total"] == 2
        assert all_invoices["items"][0]["invoice_number"] == "2025-0002"

        paid = client.get("/invoices/?status=paid", headers=auth_headers).json()
        assert paid["total"] == 1

        by_customer = client.get("/invoices/?search=verdi", headers=auth_headers).json()
        assert by_customer["total"] == 2

    def test_other_company_cannot_read_invoice(self, client, auth_headers, other_company_headers, sample_customer):
        created = client.post("/invoices/", json=invoice_payload(sample_customer.id), headers=auth_headers).json()
        response = client.get(f"/invoices/{created['id']}", headers=other_company_headers)
        assert response.status_code == 404

    def test_next_number_requires_company(self, client, no_company_headers):
        response = client.get("/invoices/next-number", headers=no_company_headers)
        assert response.status_code == 404


class TestInvoiceEmail:

    @pytest.fixture
    def queued(self, monkeypatch):
        calls = []

        def fake_delay(**kwargs):
            calls.append(kwargs)
            return SimpleNamespace(id="task-123")

        monkeypatch.setattr(email_tasks.send_invoice_email_task, "delay", fake_delay)
        return calls

    def test_send_email_queues_task_and_marks_sent(self, client, auth_headers, sample_customer, queued):
        created = client.post("/invoices/", json=invoice_payload(sample_customer.id), headers=auth_headers).json()

        response = client.post(
            f"/invoices/{created['id']}/send-email",
            data={"to_email": "amministrazione@verdicostruzioni.it", "message": "Grazie!"},
            files={"pdf_file": ("fattura.pdf", b"%PDF-1.4 test", "application/pdf")},
            headers=auth_headers
        )

        assert response.status_code == 202
        data = response.json()
        assert data["task_id"] == "task-123"
        assert data["invoice_status"] == "sent"

        assert len(queued) == 1
        assert queued[0]["pdf_filename"] == "Fattura_2025-0001.pdf"
        assert queued[0]["company_data"]["email"] == "info@rossiconsulenze.it"
        assert queued[0]["invoice_data"]["status"] == "Bozza"
        assert queued[0]["custom_message"] == "Grazie!"

    def test_send_email_rejects_non_pdf(self, client, auth_headers, sample_customer, queued):
        created = client.post("/invoices/", json=invoice_payload(sample_customer.id), headers=auth_headers).json()

        response = client.post(
            f"/invoices/{created['id']}/send-email",
            data={"to_email": "amministrazione@verdicostruzioni.it"},
            files={"pdf_file": ("fattura.txt", b"hello", "text/plain")},
            headers=auth_headers
        )
        assert response.status_code == 400
        assert queued == []

    def test_send_email_invalid_recipient(self, client, auth_headers, sample_customer, queued):
        created = client.post("/invoices/", json=invoice_payload(sample_customer.id), headers=auth_headers).json()

        response = client.post(
            f"/invoices/{created['id']}/send-email",
            data={"to_email": "non-valida"},
            files={"pdf_file": ("fattura.pdf", b"%PDF-1.4", "application/pdf")},
            headers=auth_headers
        )
        assert response.status_code == 400
