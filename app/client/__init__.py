"""
Cliente HTTP de InvoGen con colecciones locales actualizadas de forma optimista.
"""
from app.client.api import InvogenClient, RemoteError, CompanyProfileMissing
from app.client.optimistic import OptimisticCollection, MutationError
from app.client.stores import CustomerStore, InvoiceStore

__all__ = [
    "InvogenClient",
    "RemoteError",
    "CompanyProfileMissing",
    "OptimisticCollection",
    "MutationError",
    "CustomerStore",
    "InvoiceStore",
]
