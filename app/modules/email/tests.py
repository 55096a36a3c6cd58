"""
Tests para el módulo de Email
"""

import base64
from email import message_from_string

import pytest

from app.modules.email import tasks
from app.modules.email.service import email_service


INVOICE_DATA = {
    "number": "2025-0007",
    "issue_date": "10/03/2025",
    "due_date": "09/04/2025",
    "total": 1220.0,
    "status": "Inviata",
    "customer_name": "Verdi Costruzioni",
}
COMPANY_DATA = {"name": "Rossi Consulenze", "email": "info@rossiconsulenze.it", "phone": None}


class TestEmailService:

    def test_build_message_with_attachment(self):
        msg = email_service.build_message(
            to_emails=["cliente@verdi.it"],
            subject="Fattura",
            html_content="<p>Ciao</p>",
            text_content="Ciao",
            attachments=[("Fattura_2025-0007.pdf", b"%PDF-1.4", "pdf")],
            reply_to="info@rossiconsulenze.it",
            from_name="Rossi Consulenze"
        )
        parsed = message_from_string(msg.as_string())

        assert parsed["Reply-To"] == "info@rossiconsulenze.it"
        assert parsed["From"].startswith("Rossi Consulenze")
        filenames = [part.get_filename() for part in parsed.walk() if part.get_filename()]
        assert filenames == ["Fattura_2025-0007.pdf"]

    def test_invoice_templates_render(self):
        context = tasks.build_invoice_context(INVOICE_DATA, COMPANY_DATA, "Grazie <3")
        html = email_service.render_template("invoice_email.html", context)
        text = email_service.render_template("invoice_email.txt", context)

        assert "Fattura 2025-0007" in html
        assert "Ciao <strong>Verdi Costruzioni</strong>" in html
        assert "Grazie &lt;3" in html
        assert "1,220.00" in text
        assert "Data Scadenza: 09/04/2025" in text


class TestEmailTasks:

    def test_send_invoice_email_task(self, monkeypatch):
        calls = []

        def fake_send(**kwargs):
            calls.append(kwargs)
            return True

        monkeypatch.setattr(email_service, "send_template_email", fake_send)

        result = tasks.send_invoice_email_task(
            to_email="cliente@verdi.it",
            invoice_data=INVOICE_DATA,
            company_data=COMPANY_DATA,
            pdf_content_b64=base64.b64encode(b"%PDF-1.4").decode(),
            pdf_filename="Fattura_2025-0007.pdf"
        )

        assert result["status"] == "success"
        sent = calls[0]
        assert sent["subject"] == "Fattura 2025-0007 - Rossi Consulenze"
        assert sent["reply_to"] == "info@rossiconsulenze.it"
        assert sent["attachments"] == [("Fattura_2025-0007.pdf", b"%PDF-1.4", "pdf")]

    def test_send_invoice_email_task_failure_raises(self, monkeypatch):
        monkeypatch.setattr(email_service, "send_template_email", lambda **kwargs: False)

        with pytest.raises(RuntimeError):
            tasks.send_invoice_email_task(
                to_email="cliente@verdi.it",
                invoice_data=INVOICE_DATA,
                company_data=COMPANY_DATA,
                pdf_content_b64="",
                pdf_filename="Fattura.pdf"
            )


class TestEmailAPI:

    def test_test_email_endpoint(self, client, auth_headers, monkeypatch):
        monkeypatch.setattr(email_service, "send_email", lambda **kwargs: True)
        response = client.post("/email/test", json={"to_email": "prova@acme.it"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["success"] is True

    def test_test_email_failure(self, client, auth_headers, monkeypatch):
        monkeypatch.setattr(email_service, "send_email", lambda **kwargs: False)
        response = client.post("/email/test", json={"to_email": "prova@acme.it"}, headers=auth_headers)
        assert response.status_code == 500
