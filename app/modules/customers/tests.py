"""
Tests para el módulo de Clientes

- CRUD completo con aislamiento por company_id
- Validaciones de IVA y teléfono
- Búsqueda y paginación
- Bloqueo de eliminación con facturas asociadas
"""

import pytest
from uuid import uuid4
from pydantic import ValidationError

from app.modules.customers.models import Customer
from app.modules.customers.schemas import CustomerCreate, CustomerUpdate
from app.modules.customers.service import CustomerService


@pytest.fixture
def sample_customer_data():
    """Datos de ejemplo para crear clientes"""
    return {
        "name": "  Bianchi Arredamenti  ",
        "email": "ordini@bianchiarredamenti.it",
        "phone": "+39 02 1234 5678",
        "address": "Corso Buenos Aires 12",
        "city": "Milano",
        "postal_code": "20124",
        "country": "Italia",
        "vat_number": "IT 123.456.789.03"
    }


# ===== TESTS DE SCHEMAS =====

class TestCustomerSchemas:
    """Validaciones de entrada"""

    def test_normalizes_fields(self, sample_customer_data):
        customer = CustomerCreate(**sample_customer_data)
        assert customer.name == "Bianchi Arredamenti"
        assert customer.phone == "+390212345678"
        assert customer.vat_number == "IT12345678903"

    def test_blank_optional_fields_become_none(self):
        customer = CustomerCreate(name="Cliente", email="", city="  ", vat_number="")
        assert customer.email is None
        assert customer.city is None
        assert customer.vat_number is None

    def test_name_required(self):
        with pytest.raises(ValidationError):
            CustomerCreate(name="   ")

    def test_invalid_italian_vat(self):
        with pytest.raises(ValidationError):
            CustomerCreate(name="Cliente", vat_number="IT12345678901")

    def test_foreign_vat_accepted(self):
        customer = CustomerCreate(name="Müller GmbH", vat_number="DE123456789")
        assert customer.vat_number == "DE123456789"

    def test_invalid_phone(self):
        with pytest.raises(ValidationError):
            CustomerCreate(name="Cliente", phone="12ab")


# ===== TESTS DE SERVICIO =====

class TestCustomerService:
    """Lógica de negocio"""

    def test_create_and_get(self, db_session, sample_company):
        service = CustomerService(db_session)
        customer = service.create_customer(CustomerCreate(name="Neri Srl"), sample_company.id)

        assert customer.id is not None
        assert customer.company_id == sample_company.id
        assert service.get_customer_by_id(customer.id, sample_company.id).name == "Neri Srl"

    def test_list_newest_first(self, db_session, sample_company):
        service = CustomerService(db_session)
        for name in ("Primo", "Secondo", "Terzo"):
            service.create_customer(CustomerCreate(name=name), sample_company.id)

        result = service.get_customers(sample_company.id)
        assert result.total == 3
        assert [c.name for c in result.items] == ["Terzo", "Secondo", "Primo"]

    def test_search_and_pagination(self, db_session, sample_company):
        service = CustomerService(db_session)
        service.create_customer(CustomerCreate(name="Alfa Impianti", email="alfa@impianti.it"), sample_company.id)
        service.create_customer(CustomerCreate(name="Beta Servizi"), sample_company.id)
        service.create_customer(CustomerCreate(name="Gamma Impianti"), sample_company.id)

        result = service.get_customers(sample_company.id, search="impianti")
        assert result.total == 2

        page = service.get_customers(sample_company.id, limit=1, offset=1)
        assert page.total == 3
        assert len(page.items) == 1
        assert page.items[0].name == "Beta Servizi"

    def test_update_only_sent_fields(self, db_session, sample_customer, sample_company):
        service = CustomerService(db_session)
        updated = service.update_customer(
            sample_customer.id, CustomerUpdate(city="Genova"), sample_company.id
        )
        assert updated.city == "Genova"
        assert updated.name == "Verdi Costruzioni"

    def test_count_customers(self, db_session, sample_customer, sample_company):
        assert CustomerService(db_session).count_customers(sample_company.id) == 1


# ===== TESTS DE API =====

class TestCustomerAPI:
    """Endpoints /customers"""

    def test_create_customer(self, client, auth_headers, sample_customer_data):
        response = client.post("/customers/", json=sample_customer_data, headers=auth_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["name"] == "Bianchi Arredamenti"
        assert data["vat_number"] == "IT12345678903"

    def test_create_requires_auth(self, client, sample_customer_data):
        response = client.post("/customers/", json=sample_customer_data)
        assert response.status_code in (401, 403)

    def test_create_requires_company_profile(self, client, no_company_headers):
        response = client.post("/customers/", json={"name": "Cliente"}, headers=no_company_headers)
        assert response.status_code == 404
        assert response.json()["detail"] == "Perfil de empresa no encontrado"

    def test_invalid_vat_returns_422(self, client, auth_headers):
        response = client.post(
            "/customers/", json={"name": "Cliente", "vat_number": "IT00000000001"}, headers=auth_headers
        )
        assert response.status_code == 422

    def test_list_customers(self, client, auth_headers, sample_customer):
        response = client.get("/customers/", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["id"] == str(sample_customer.id)

    def test_update_customer(self, client, auth_headers, sample_customer):
        response = client.put(
            f"/customers/{sample_customer.id}", json={"email": "nuova@verdicostruzioni.it"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["email"] == "nuova@verdicostruzioni.it"

    def test_get_missing_customer(self, client, auth_headers):
        response = client.get(f"/customers/{uuid4()}", headers=auth_headers)
        assert response.status_code == 404

    def test_other_company_cannot_see_customer(self, client, other_company_headers, sample_customer):
        response = client.get(f"/customers/{sample_customer.id}", headers=other_company_headers)
        assert response.status_code == 404

        listing = client.get("/customers/", headers=other_company_headers)
        assert listing.json()["total"] == 0

    def test_delete_customer(self, client, auth_headers, sample_customer, db_session):
        response = client.delete(f"/customers/{sample_customer.id}", headers=auth_headers)
        assert response.status_code == 200
        assert db_session.query(Customer).count() == 0

    def test_delete_customer_with_invoices(self, client, auth_headers, sample_customer):
        created = client.post(
            "/invoices/",
            json={
                "customer_id": str(sample_customer.id),
                "items": [{"description": "Consulenza", "quantity": 1, "unit_price": 100}]
            },
            headers=auth_headers
        )
        assert created.status_code == 201

        response = client.delete(f"/customers/{sample_customer.id}", headers=auth_headers)
        assert response.status_code == 409
