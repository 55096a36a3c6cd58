"""
Fixtures compartidas para los tests de la API.

Base de datos SQLite en memoria (una sola conexión con StaticPool) y
dependencia get_db sobrescrita para que la app y los tests usen la misma sesión.
"""
import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("ENVIRONMENT", "test")

import pytest
from fastapi.testclient import TestClient

from app.main import app
from app.database.database import Base, engine, SessionLocal, get_db
from app.modules.auth.models import User
from app.modules.auth.utils import hash_password, create_access_token
from app.modules.company.models import Company
from app.modules.customers.models import Customer


@pytest.fixture
def db_session():
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db_session):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


def _make_user(db_session, email, company=None):
    user = User(
        email=email,
        password=hash_password("password123"),
        full_name="Mario Rossi",
        is_active=True,
        company_id=company.id if company else None
    )
    db_session.add(user)
    db_session.commit()
    db_session.refresh(user)
    return user


def _headers(user):
    token = create_access_token({"sub": str(user.id), "email": user.email})
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def sample_company(db_session):
    company = Company(
        name="Rossi Consulenze S.r.l.",
        email="info@rossiconsulenze.it",
        phone="+390212345678",
        address="Via Roma 1",
        city="Milano",
        postal_code="20121",
        country="Italia",
        vat_number="IT12345678903"
    )
    db_session.add(company)
    db_session.commit()
    db_session.refresh(company)
    return company


@pytest.fixture
def sample_user(db_session, sample_company):
    return _make_user(db_session, "mario@rossiconsulenze.it", sample_company)


@pytest.fixture
def auth_headers(sample_user):
    return _headers(sample_user)


@pytest.fixture
def user_without_company(db_session):
    return _make_user(db_session, "nuovo@acme.it")


@pytest.fixture
def no_company_headers(user_without_company):
    return _headers(user_without_company)


@pytest.fixture
def other_company_headers(db_session):
    company = Company(name="Bianchi S.p.A.", email="info@bianchi.it")
    db_session.add(company)
    db_session.commit()
    user = _make_user(db_session, "luca@bianchi.it", company)
    return _headers(user)


@pytest.fixture
def sample_customer(db_session, sample_company):
    customer = Customer(
        company_id=sample_company.id,
        name="Verdi Costruzioni",
        email="amministrazione@verdicostruzioni.it",
        city="Torino",
        country="Italia",
        vat_number="IT00743110157"
    )
    db_session.add(customer)
    db_session.commit()
    db_session.refresh(customer)
    return customer
