"""
Módulo de email para InvoGen.
"""

from .service import email_service
from .tasks import send_email_task, send_invoice_email_task

__all__ = [
    'email_service',
    'send_email_task',
    'send_invoice_email_task',
]
