"""
Tests para el módulo de Empresa (perfil y logo)
"""

import pytest

from app.main import app
from app.modules.files.service import MinIOService, get_storage_service


class FakeMinio:
    """Cliente MinIO en memoria"""

    def __init__(self):
        self.buckets = set()
        self.objects = {}
        self.policies = {}

    def bucket_exists(self, bucket):
        return bucket in self.buckets

    def make_bucket(self, bucket):
        self.buckets.add(bucket)

    def set_bucket_policy(self, bucket, policy):
        self.policies[bucket] = policy

    def put_object(self, bucket_name, object_name, data, length, content_type):
        self.objects[(bucket_name, object_name)] = (data.read(), content_type)

    def remove_object(self, bucket, key):
        self.objects.pop((bucket, key), None)


@pytest.fixture
def fake_minio():
    minio = FakeMinio()
    storage = MinIOService(client=minio, bucket_name="branding")
    app.dependency_overrides[get_storage_service] = lambda: storage
    return minio


class TestCompanyProfile:

    def test_get_existing_company(self, client, auth_headers, sample_company):
        response = client.get("/company/me", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["id"] == str(sample_company.id)

    def test_company_created_lazily(self, client, no_company_headers, user_without_company, db_session):
        response = client.get("/company/me", headers=no_company_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == "nuovo@acme.it"
        assert data["country"] == "Italia"

        db_session.refresh(user_without_company)
        assert str(user_without_company.company_id) == data["id"]

        again = client.get("/company/me", headers=no_company_headers)
        assert again.json()["id"] == data["id"]

    def test_update_company(self, client, auth_headers):
        response = client.patch("/company/me", json={
            "city": "Roma",
            "vat_number": "00743110157",
            "phone": "+39 06 1234567"
        }, headers=auth_headers)

        assert response.status_code == 200
        data = response.json()
        assert data["city"] == "Roma"
        assert data["vat_number"] == "00743110157"
        assert data["phone"] == "+39061234567"
        assert data["name"] == "Rossi Consulenze S.r.l."

    def test_update_invalid_vat(self, client, auth_headers):
        response = client.patch("/company/me", json={"vat_number": "12345678901"}, headers=auth_headers)
        assert response.status_code == 422


class TestCompanyLogo:

    def test_upload_logo(self, client, auth_headers, sample_company, fake_minio):
        response = client.post(
            "/company/me/logo",
            files={"file": ("logo.png", b"\x89PNG fake", "image/png")},
            headers=auth_headers
        )

        assert response.status_code == 200
        key = f"logo-{sample_company.id}.png"
        assert response.json()["logo_url"].endswith(f"/branding/{key}")
        assert fake_minio.objects[("branding", key)] == (b"\x89PNG fake", "image/png")
        assert "branding" in fake_minio.policies

    def test_replace_logo_with_other_format(self, client, auth_headers, sample_company, fake_minio):
        client.post("/company/me/logo", files={"file": ("logo.png", b"png", "image/png")}, headers=auth_headers)
        client.post("/company/me/logo", files={"file": ("logo.jpg", b"jpg", "image/jpeg")}, headers=auth_headers)

        assert list(fake_minio.objects) == [("branding", f"logo-{sample_company.id}.jpg")]

    def test_reject_non_image(self, client, auth_headers, fake_minio):
        response = client.post(
            "/company/me/logo", files={"file": ("doc.pdf", b"%PDF", "application/pdf")}, headers=auth_headers
        )
        assert response.status_code == 400

    def test_reject_large_logo(self, client, auth_headers, fake_minio):
        big = b"0" * (2 * 1024 * 1024 + 1)
        response = client.post(
            "/company/me/logo", files={"file": ("logo.png", big, "image/png")}, headers=auth_headers
        )
        assert response.status_code == 413

    def test_delete_logo(self, client, auth_headers, fake_minio):
        client.post("/company/me/logo", files={"file": ("logo.png", b"png", "image/png")}, headers=auth_headers)

        response = client.delete("/company/me/logo", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["logo_url"] is None
        assert fake_minio.objects == {}

        assert client.delete("/company/me/logo", headers=auth_headers).status_code == 404
