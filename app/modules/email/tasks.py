"""
Tareas asíncronas de Celery para el envío de correos electrónicos.
"""
import base64
import logging
from typing import Dict, Any, List, Optional
from app.core.celery import celery_app
from app.modules.email.service import email_service

logger = logging.getLogger(__name__)


def build_invoice_context(
    invoice_data: Dict[str, Any],
    company_data: Dict[str, Any],
    custom_message: Optional[str] = None
) -> Dict[str, Any]:
    """Variables de los templates invoice_email.html / invoice_email.txt"""
    return {
        "company_name": company_data.get("name") or "InvoGen",
        "company_email": company_data.get("email"),
        "company_phone": company_data.get("phone"),
        "company_logo_url": company_data.get("logo_url"),
        "customer_name": invoice_data.get("customer_name") or "Cliente",
        "invoice_number": invoice_data.get("number", "N/A"),
        "invoice_date": invoice_data.get("issue_date", ""),
        "due_date": invoice_data.get("due_date"),
        "status": invoice_data.get("status"),
        "total_amount": f"{invoice_data.get('total', 0):,.2f}",
        "custom_message": custom_message,
    }


@celery_app.task(bind=True, max_retries=3)
def send_email_task(
    self,
    to_emails: List[str],
    subject: str,
    html_content: Optional[str] = None,
    text_content: Optional[str] = None,
    reply_to: Optional[str] = None
):
    """
    Tarea asíncrona para envío de correos electrónicos.
    """
    try:
        success = email_service.send_email(
            to_emails=to_emails,
            subject=subject,
            html_content=html_content,
            text_content=text_content,
            reply_to=reply_to
        )

        if not success:
            raise RuntimeError("Failed to send email")

        logger.info(f"Email sent successfully to {', '.join(to_emails)}")
        return {"status": "success", "recipients": to_emails}

    except Exception as exc:
        logger.error(f"Email sending failed: {str(exc)}")

        # Retry with exponential backoff
        if self.request.retries < self.max_retries:
            raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

        # Final failure
        return {"status": "failed", "error": str(exc), "recipients": to_emails}


@celery_app.task(bind=True, max_retries=3)
def send_invoice_email_task(
    self,
    to_email: str,
    invoice_data: Dict[str, Any],
    company_data: Dict[str, Any],
    pdf_content_b64: str,
    pdf_filename: str,
    custom_message: Optional[str] = None,
    subject: Optional[str] = None
):
    """
    Enviar factura por correo electrónico con PDF adjunto.

    Args:
        to_email: Email del destinatario
        invoice_data: Datos de la factura (número, fechas, total, estado)
        company_data: Datos de la empresa (remitente y reply-to)
        pdf_content_b64: Contenido del PDF en base64
        pdf_filename: Nombre del archivo PDF
        custom_message: Mensaje personalizado opcional
        subject: Asunto personalizado opcional
    """
    try:
        pdf_content = base64.b64decode(pdf_content_b64)
        context = build_invoice_context(invoice_data, company_data, custom_message)

        if not subject:
            subject = f"Fattura {context['invoice_number']} - {context['company_name']}"

        logger.info(f"Sending invoice email to {to_email} with PDF attachment ({len(pdf_content)} bytes)")

        success = email_service.send_template_email(
            to_emails=[to_email],
            subject=subject,
            template_name="invoice_email.html",
            context=context,
            attachments=[(pdf_filename, pdf_content, "pdf")],
            reply_to=company_data.get("email"),
            from_name=context["company_name"]
        )

        if not success:
            raise RuntimeError("Failed to send invoice email")

        logger.info(f"Invoice email sent successfully to {to_email}")
        return {
            "status": "success",
            "recipient": to_email,
            "invoice_number": invoice_data.get("number")
        }

    except Exception as exc:
        logger.error(f"Invoice email sending failed to {to_email}: {str(exc)}", exc_info=True)

        # Retry with exponential backoff
        if self.request.retries < self.max_retries:
            logger.info(f"Retrying invoice email task (attempt {self.request.retries + 1}/{self.max_retries})")
            raise self.retry(exc=exc, countdown=60 * (2 ** self.request.retries))

        # Final failure
        logger.error(f"Invoice email task failed permanently after {self.max_retries} retries")
        return {
            "status": "failed",
            "error": str(exc),
            "recipient": to_email,
            "invoice_number": invoice_data.get("number")
        }
