"""
Tests para el cliente: colección optimista, stores y cliente HTTP
"""

import asyncio
import json

import httpx
import pytest

from app.client.api import InvogenClient, RemoteError, CompanyProfileMissing
from app.client.optimistic import OptimisticCollection, MutationError, is_temp_id
from app.client.stores import CustomerStore, InvoiceStore, invoice_payload, _Store


def run(coro):
    return asyncio.run(coro)


async def failing(*args):
    raise RemoteError(500, "boom")


def seeded(on_error=None):
    collection = OptimisticCollection("clienti", on_error=on_error)
    collection.replace_all([
        {"id": "c2", "name": "Bianchi", "city": "Roma", "updated_at": "2025-01-02"},
        {"id": "c1", "name": "Verdi", "city": "Milano", "updated_at": "2025-01-01"},
    ])
    return collection


class TestOptimisticCollection:

    def test_create_success_replaces_temp_in_place(self):
        collection = seeded()
        seen = []

        async def remote(draft):
            # durante la escritura el registro temporal ya está al principio
            seen.append(collection.items[0]["id"])
            return {"id": "c3", **draft}

        saved = run(collection.create({"name": "Neri"}, remote))

        assert is_temp_id(seen[0])
        assert saved["id"] == "c3"
        assert [r["id"] for r in collection.items] == ["c3", "c2", "c1"]
        assert not any(is_temp_id(r["id"]) for r in collection.items)

    def test_create_failure_restores_collection(self):
        errors = []
        collection = seeded(on_error=errors.append)
        before = collection.items

        with pytest.raises(MutationError) as exc:
            run(collection.create({"name": "Neri"}, failing))

        assert collection.items == before
        assert isinstance(exc.value.cause, RemoteError)
        assert errors == [exc.value]

    def test_update_merges_patch(self):
        collection = seeded()
        calls = []

        async def remote(record_id, patch):
            calls.append((record_id, patch))
            return None

        merged = run(collection.update("c1", {"city": "Torino"}, remote))

        assert calls == [("c1", {"city": "Torino"})]
        assert merged["city"] == "Torino"
        assert merged["name"] == "Verdi"
        assert merged["updated_at"] != "2025-01-01"
        assert [r["id"] for r in collection.items] == ["c2", "c1"]

    def test_update_uses_server_record(self):
        collection = seeded()

        async def remote(record_id, patch):
            return {"id": record_id, "name": "VERDI SRL", "city": "Torino"}

        run(collection.update("c1", {"city": "Torino"}, remote))
        assert collection.get("c1")["name"] == "VERDI SRL"

    def test_update_failure_restores_snapshot(self):
        collection = seeded()
        before = collection.items

        with pytest.raises(MutationError):
            run(collection.update("c1", {"city": "Torino"}, failing))

        assert collection.items == before

    def test_delete_and_rollback(self):
        collection = seeded()
        before = collection.items

        with pytest.raises(MutationError):
            run(collection.delete("c2", failing))
        assert collection.items == before

        async def ok(record_id):
            return None

        run(collection.delete("c2", ok))
        assert [r["id"] for r in collection.items] == ["c1"]

    def test_unknown_id_never_calls_remote(self):
        collection = seeded()
        calls = []

        async def remote(*args):
            calls.append(args)

        with pytest.raises(KeyError):
            run(collection.update("missing", {"name": "x"}, remote))
        with pytest.raises(KeyError):
            run(collection.delete("missing", remote))
        assert calls == []

    def test_listeners_only_on_success(self):
        collection = seeded()
        events = []
        unsubscribe = collection.subscribe(lambda action, record: events.append(action))

        async def ok(record_id):
            return None

        with pytest.raises(MutationError):
            run(collection.delete("c1", failing))
        run(collection.delete("c1", ok))
        unsubscribe()
        run(collection.delete("c2", ok))

        assert events == ["delete"]


def api_transport(state):
    """API simulada con clientes e facturas en memoria"""

    def handler(request: httpx.Request) -> httpx.Response:
        state["requests"].append(request)
        path, method = request.url.path, request.method

        if state.get("fail"):
            return httpx.Response(500, json={"detail": "Errore interno"})
        if path == "/auth/login":
            return httpx.Response(200, json={"access_token": "tok", "token_type": "bearer"})
        if path == "/company/me" and state.get("no_company"):
            return httpx.Response(404, json={"detail": "Perfil de empresa no encontrado"})
        if path == "/customers/" and method == "GET":
            return httpx.Response(200, json={"items": state["customers"], "total": len(state["customers"])})
        if path == "/customers/" and method == "POST":
            record = {"id": "srv-1", **json.loads(request.content)}
            return httpx.Response(201, json=record)
        if path.startswith("/customers/") and method == "DELETE":
            return httpx.Response(409, json={"detail": "El cliente tiene facturas asociadas"})
        if path.startswith("/invoices/") and method == "PUT":
            body = json.loads(request.content)
            return httpx.Response(200, json={"id": path.rsplit("/", 1)[-1], **body, "total": "122.00"})
        if path.endswith("/status"):
            return httpx.Response(200, json={"id": path.split("/")[2], "status": json.loads(request.content)["status"]})
        if path == "/invoices/" and method == "GET":
            return httpx.Response(200, json={"items": state["invoices"], "total": len(state["invoices"])})
        if path.endswith("/send-email"):
            return httpx.Response(202, json={"status": "queued", "task_id": "t1"})
        return httpx.Response(404, json={"detail": "Not Found"})

    return httpx.MockTransport(handler)


@pytest.fixture
def state():
    return {
        "requests": [],
        "customers": [{"id": "c1", "name": "Verdi"}],
        "invoices": [{
            "id": "i1",
            "customer_id": "c1",
            "invoice_number": "2025-0001",
            "status": "draft",
            "tax_rate": "22.00",
            "issue_date": "2025-03-10",
            "items": [{"id": "it1", "position": 0, "description": "Consulenza", "quantity": "1", "unit_price": "100", "total": "100"}],
        }],
    }


def make_client(state):
    return InvogenClient("http://invogen.test", transport=api_transport(state))


class TestInvogenClient:

    def test_login_sets_bearer(self, state):
        async def scenario():
            async with make_client(state) as client:
                await client.login("mario@rossiconsulenze.it", "password123")
                await client.list_customers()

        run(scenario())
        assert state["requests"][-1].headers["Authorization"] == "Bearer tok"

    def test_company_missing(self, state):
        state["no_company"] = True

        async def scenario():
            async with make_client(state) as client:
                await client.company()

        with pytest.raises(CompanyProfileMissing):
            run(scenario())

    def test_remote_error_detail(self, state):
        async def scenario():
            async with make_client(state) as client:
                await client.delete_customer("c1")

        with pytest.raises(RemoteError) as exc:
            run(scenario())
        assert exc.value.status_code == 409
        assert exc.value.detail == "El cliente tiene facturas asociadas"

    def test_send_invoice_email_multipart(self, state):
        async def scenario():
            async with make_client(state) as client:
                return await client.send_invoice_email("i1", "cliente@verdi.it", b"%PDF-1.4", message="Grazie")

        assert run(scenario())["status"] == "queued"
        body = state["requests"][-1].content
        assert b'name="to_email"' in body
        assert b'name="pdf_file"; filename="fattura.pdf"' in body


class TestStores:

    def test_base_store_is_abstract(self):
        with pytest.raises(TypeError):
            _Store(client=None)

    def test_fetch_failure_leaves_empty(self, state):
        async def scenario():
            async with make_client(state) as client:
                store = CustomerStore(client)
                await store.fetch()
                loaded = store.items
                state["fail"] = True
                await store.fetch()
                return loaded, store.items

        loaded, after = run(scenario())
        assert [c["id"] for c in loaded] == ["c1"]
        assert after == []

    def test_customer_create_and_failed_delete(self, state):
        errors = []

        async def scenario():
            async with make_client(state) as client:
                store = CustomerStore(client, on_error=errors.append)
                await store.fetch()
                await store.create({"name": "Neri"})
                with pytest.raises(MutationError):
                    await store.delete("c1")
                return store.items

        items = run(scenario())
        assert [c["id"] for c in items] == ["srv-1", "c1"]
        assert errors[0].cause.status_code == 409

    def test_invoice_update_sends_full_payload(self, state):
        changes = []

        async def scenario():
            async with make_client(state) as client:
                store = InvoiceStore(client)
                store.on_change(lambda action, record: changes.append(action))
                await store.fetch()
                await store.update("i1", {"notes": "Pagamento a 30 giorni"})
                await store.set_status("i1", "paid")
                return store.collection.get("i1")

        record = run(scenario())
        put = next(r for r in state["requests"] if r.method == "PUT")
        body = json.loads(put.content)

        assert body["notes"] == "Pagamento a 30 giorni"
        assert body["invoice_number"] == "2025-0001"
        assert body["items"] == [{"description": "Consulenza", "quantity": "1", "unit_price": "100"}]
        assert record["status"] == "paid"
        assert changes == ["update", "update"]

    def test_invoice_payload_ignores_server_fields(self):
        payload = invoice_payload({"id": "i1", "total": "1", "customer_id": "c1", "items": None})
        assert payload == {"customer_id": "c1", "items": []}
