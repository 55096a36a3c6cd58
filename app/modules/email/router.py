from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, EmailStr
from app.modules.auth.dependencies import user_dependency
from app.modules.email.service import email_service
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/email", tags=["email"])


class TestEmailRequest(BaseModel):
    to_email: EmailStr
    subject: str = "Email di prova da InvoGen"
    message: str = "Questa è un'email di prova per verificare la configurazione SMTP."


@router.post("/test")
def test_email(request: TestEmailRequest, current_user: user_dependency):
    """Test email configuration by sending a simple email"""
    logger.info(f"Testing email to {request.to_email} (requested by {current_user.email})")

    html_content = email_service.jinja_env.from_string(
        "<html><body><h2>{{ subject }}</h2><p>{{ message }}</p>"
        "<hr><p><small>InvoGen Email Service</small></p></body></html>"
    ).render(subject=request.subject, message=request.message)
    text_content = f"{request.subject}\n\n{request.message}"

    sent = email_service.send_email(
        to_emails=[request.to_email],
        subject=request.subject,
        html_content=html_content,
        text_content=text_content
    )

    if not sent:
        raise HTTPException(status_code=500, detail="Failed to send test email")
    return {"message": "Test email sent successfully", "success": True}
