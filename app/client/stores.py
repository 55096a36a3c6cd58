"""
Stores de clientes y facturas sobre OptimisticCollection.

La carga inicial nunca lanza: ante un error la colección queda vacía y el
error se registra en el log.
"""
import logging
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, Optional

from app.client.api import InvogenClient, RemoteError
from app.client.optimistic import OptimisticCollection, ErrorHandler, Record

logger = logging.getLogger(__name__)

INVOICE_EDITABLE_FIELDS = (
    "customer_id", "invoice_number", "issue_date", "due_date",
    "status", "tax_rate", "notes",
)
ITEM_FIELDS = ("description", "quantity", "unit_price")


def invoice_payload(record: Record) -> Dict[str, Any]:
    """Cuerpo completo para PUT /invoices/{id} a partir de un registro local."""
    payload = {k: record[k] for k in INVOICE_EDITABLE_FIELDS if k in record}
    payload["items"] = [
        {k: item[k] for k in ITEM_FIELDS if k in item}
        for item in record.get("items") or []
    ]
    return payload


class _Store(ABC):
    name = "records"

    def __init__(self, client: InvogenClient, on_error: Optional[ErrorHandler] = None):
        self.client = client
        self.collection = OptimisticCollection(self.name, on_error=on_error)
        self.loading = False

    @property
    def items(self) -> List[Record]:
        return self.collection.items

    @abstractmethod
    async def _load(self) -> List[Record]:
        """Registros del servidor para llenar la colección."""

    async def fetch(self) -> List[Record]:
        self.loading = True
        try:
            records = await self._load()
        except RemoteError as e:
            logger.error(f"Errore nel caricamento {self.name}: {e}")
            records = []
        finally:
            self.loading = False

        self.collection.replace_all(records)
        logger.info(f"Caricati {len(records)} {self.name}")
        return self.collection.items


class CustomerStore(_Store):
    name = "clienti"

    async def _load(self):
        return await self.client.list_customers()

    async def create(self, draft: Record) -> Record:
        return await self.collection.create(draft, self.client.create_customer)

    async def update(self, customer_id: str, patch: Record) -> Record:
        return await self.collection.update(customer_id, patch, self.client.update_customer)

    async def delete(self, customer_id: str) -> None:
        await self.collection.delete(customer_id, self.client.delete_customer)


class InvoiceStore(_Store):
    """Facturas; los listeners de on_change se usan para refrescar el dashboard."""

    name = "fatture"

    async def _load(self):
        return await self.client.list_invoices()

    def on_change(self, listener: Callable[[str, Optional[Record]], None]) -> Callable[[], None]:
        return self.collection.subscribe(listener)

    async def create(self, draft: Record) -> Record:
        return await self.collection.create(draft, self.client.create_invoice)

    async def update(self, invoice_id: str, patch: Record) -> Record:
        current = self.collection.get(invoice_id)
        if current is None:
            raise KeyError(invoice_id)
        payload = invoice_payload({**current, **patch})

        async def remote(record_id, _patch):
            return await self.client.update_invoice(record_id, payload)

        return await self.collection.update(invoice_id, patch, remote)

    async def set_status(self, invoice_id: str, status: str) -> Record:
        async def remote(record_id, patch):
            return await self.client.update_invoice_status(record_id, patch["status"])

        return await self.collection.update(invoice_id, {"status": status}, remote)

    async def delete(self, invoice_id: str) -> None:
        await self.collection.delete(invoice_id, self.client.delete_invoice)
