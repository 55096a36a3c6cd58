"""
Módulo de Clientes - InvoGen

Gestión de los clientes de la empresa (destinatarios de las facturas).
Todos los datos están aislados por company_id.
"""

from .models import Customer
from .schemas import CustomerCreate, CustomerUpdate, CustomerOut, CustomerList
from .service import CustomerService

__all__ = [
    "Customer",
    "CustomerCreate", "CustomerUpdate", "CustomerOut", "CustomerList",
    "CustomerService",
]
