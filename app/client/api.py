"""
Cliente asíncrono de la API de InvoGen (httpx).
"""
import logging
from typing import Any, Dict, List, Optional

import httpx

logger = logging.getLogger(__name__)

COMPANY_MISSING_DETAIL = "Perfil de empresa no encontrado"


class RemoteError(Exception):
    """Error HTTP o de red devuelto por la API."""

    def __init__(self, status_code: Optional[int], detail: Any):
        super().__init__(f"{status_code}: {detail}" if status_code else str(detail))
        self.status_code = status_code
        self.detail = detail


class CompanyProfileMissing(RemoteError):
    """El usuario todavía no tiene perfil de empresa."""


class InvogenClient:
    """
    Wrapper mínimo sobre los endpoints REST.

    Cada método devuelve el JSON de la respuesta; cualquier respuesta no 2xx
    se convierte en RemoteError.
    """

    def __init__(
        self,
        base_url: str,
        token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 10.0
    ):
        self.token = token
        self._client = httpx.AsyncClient(base_url=base_url, transport=transport, timeout=timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        await self.aclose()

    async def aclose(self):
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        if not self.token:
            return {}
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, url: str, **kwargs) -> Any:
        try:
            response = await self._client.request(method, url, headers=self._headers(), **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"{method} {url} failed: {e}")
            raise RemoteError(None, str(e)) from e

        if response.is_success:
            return response.json() if response.content else None

        try:
            detail = response.json().get("detail", response.text)
        except ValueError:
            detail = response.text

        if response.status_code == 404 and detail == COMPANY_MISSING_DETAIL:
            raise CompanyProfileMissing(response.status_code, detail)
        raise RemoteError(response.status_code, detail)

    # Auth
    async def login(self, email: str, password: str) -> str:
        data = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        self.token = data["access_token"]
        return self.token

    # Company
    async def company(self) -> Dict[str, Any]:
        return await self._request("GET", "/company/me")

    async def update_company(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PATCH", "/company/me", json=data)

    # Customers
    async def list_customers(self, search: Optional[str] = None, limit: int = 500) -> List[Dict[str, Any]]:
        params = {"limit": limit}
        if search:
            params["search"] = search
        data = await self._request("GET", "/customers/", params=params)
        return data["items"]

    async def create_customer(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/customers/", json=data)

    async def update_customer(self, customer_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/customers/{customer_id}", json=data)

    async def delete_customer(self, customer_id: str) -> None:
        await self._request("DELETE", f"/customers/{customer_id}")

    # Invoices
    async def list_invoices(self, limit: int = 500, **filters) -> List[Dict[str, Any]]:
        params = {"limit": limit}
        params.update({k: v for k, v in filters.items() if v is not None})
        data = await self._request("GET", "/invoices/", params=params)
        return data["items"]

    async def get_invoice(self, invoice_id: str) -> Dict[str, Any]:
        return await self._request("GET", f"/invoices/{invoice_id}")

    async def next_invoice_number(self, year: Optional[int] = None) -> str:
        params = {"year": year} if year else None
        data = await self._request("GET", "/invoices/next-number", params=params)
        return data["invoice_number"]

    async def create_invoice(self, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/invoices/", json=data)

    async def update_invoice(self, invoice_id: str, data: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("PUT", f"/invoices/{invoice_id}", json=data)

    async def update_invoice_status(self, invoice_id: str, status: str) -> Dict[str, Any]:
        return await self._request("PATCH", f"/invoices/{invoice_id}/status", json={"status": status})

    async def delete_invoice(self, invoice_id: str) -> None:
        await self._request("DELETE", f"/invoices/{invoice_id}")

    async def send_invoice_email(
        self,
        invoice_id: str,
        to_email: str,
        pdf_content: bytes,
        message: Optional[str] = None,
        subject: Optional[str] = None,
        filename: str = "fattura.pdf"
    ) -> Dict[str, Any]:
        form = {"to_email": to_email}
        if message:
            form["message"] = message
        if subject:
            form["subject"] = subject
        return await self._request(
            "POST",
            f"/invoices/{invoice_id}/send-email",
            data=form,
            files={"pdf_file": (filename, pdf_content, "application/pdf")}
        )

    # Dashboard / suscripción
    async def dashboard(self) -> Dict[str, Any]:
        return await self._request("GET", "/dashboard/")

    async def usage(self) -> Dict[str, Any]:
        return await self._request("GET", "/subscriptions/usage")
