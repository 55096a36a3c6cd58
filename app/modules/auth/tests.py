"""
Tests para el módulo de Autenticación
"""

from app.modules.auth.models import User
from app.modules.auth.utils import hash_password, verify_password, create_access_token, verify_token
from app.modules.company.models import Company


class TestAuthUtils:

    def test_password_hashing(self):
        hashed = hash_password("password123")
        assert hashed != "password123"
        assert verify_password("password123", hashed)
        assert not verify_password("otra-password", hashed)

    def test_token_roundtrip(self):
        token = create_access_token({"sub": "abc"})
        payload = verify_token(token)
        assert payload["sub"] == "abc"
        assert payload["type"] == "access"


class TestAuthAPI:

    def test_register_with_company(self, client, db_session):
        response = client.post("/auth/register", json={
            "email": "Anna@Studio-Neri.it",
            "password": "password123",
            "full_name": "Anna Neri",
            "company_name": "Studio Neri"
        })

        assert response.status_code == 201
        data = response.json()
        assert data["email"] == "anna@studio-neri.it"
        assert data["company_id"] is not None

        company = db_session.query(Company).first()
        assert company.name == "Studio Neri"
        assert company.email == "anna@studio-neri.it"

    def test_register_without_company(self, client):
        response = client.post("/auth/register", json={"email": "solo@acme.it", "password": "password123"})
        assert response.status_code == 201
        assert response.json()["company_id"] is None

    def test_register_duplicate_email(self, client, sample_user):
        response = client.post("/auth/register", json={"email": sample_user.email, "password": "password123"})
        assert response.status_code == 400

    def test_register_short_password(self, client):
        response = client.post("/auth/register", json={"email": "corto@acme.it", "password": "123"})
        assert response.status_code == 422

    def test_login_and_me(self, client, sample_user, db_session):
        response = client.post("/auth/login", json={"email": sample_user.email, "password": "password123"})
        assert response.status_code == 200
        token = response.json()["access_token"]

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert me.status_code == 200
        assert me.json()["email"] == sample_user.email

        db_session.refresh(sample_user)
        assert sample_user.last_login is not None

    def test_login_wrong_password(self, client, sample_user):
        response = client.post("/auth/login", json={"email": sample_user.email, "password": "sbagliata1"})
        assert response.status_code == 401

    def test_invalid_token(self, client):
        response = client.get("/auth/me", headers={"Authorization": "Bearer not-a-token"})
        assert response.status_code == 401

    def test_inactive_user_rejected(self, client, sample_user, auth_headers, db_session):
        sample_user.is_active = False
        db_session.commit()
        assert client.get("/auth/me", headers=auth_headers).status_code == 401
