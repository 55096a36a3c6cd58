"""
MinIO service for company branding assets (logos)
"""
from minio import Minio
from minio.error import S3Error
from fastapi import HTTPException, status
from typing import Optional
import io
import json
import logging

from app.core.config import settings

logger = logging.getLogger(__name__)

LOGO_CONTENT_TYPES = {
    "image/png": "png",
    "image/jpeg": "jpg",
    "image/webp": "webp",
    "image/svg+xml": "svg",
}


class MinIOService:
    """Service for handling MinIO operations on the public branding bucket"""

    def __init__(self, client: Optional[Minio] = None, bucket_name: Optional[str] = None):
        self.client = client or Minio(
            settings.minio_endpoint,
            access_key=settings.MINIO_ACCESS_KEY,
            secret_key=settings.MINIO_SECRET_KEY,
            secure=settings.MINIO_USE_SSL
        )
        self.bucket_name = bucket_name or settings.MINIO_BRANDING_BUCKET
        self._bucket_ready = False

    def _ensure_bucket_exists(self):
        """Ensure the bucket exists and is publicly readable"""
        if self._bucket_ready:
            return
        try:
            if not self.client.bucket_exists(self.bucket_name):
                self.client.make_bucket(self.bucket_name)
                logger.info(f"Created MinIO bucket: {self.bucket_name}")

            # Lectura pública: los logos se incrustan en facturas y emails
            policy = {
                "Version": "2012-10-17",
                "Statement": [
                    {
                        "Effect": "Allow",
                        "Principal": {"AWS": ["*"]},
                        "Action": ["s3:GetObject"],
                        "Resource": [f"arn:aws:s3:::{self.bucket_name}/*"]
                    }
                ]
            }
            self.client.set_bucket_policy(self.bucket_name, json.dumps(policy))
            self._bucket_ready = True

        except S3Error as e:
            logger.error(f"MinIO bucket setup error: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="Servicio de almacenamiento no disponible"
            )

    @staticmethod
    def logo_key(company_id, content_type: str) -> str:
        """Key del logo: logo-{company_id}.{ext}"""
        extension = LOGO_CONTENT_TYPES.get(content_type)
        if not extension:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Formato de imagen no soportado (png, jpg, webp, svg)"
            )
        return f"logo-{company_id}.{extension}"

    def public_url(self, key: str) -> str:
        return f"{settings.minio_public_url}/{self.bucket_name}/{key}"

    def upload_bytes(self, key: str, data: bytes, content_type: str) -> str:
        """Upload raw bytes and return the public URL"""
        self._ensure_bucket_exists()
        try:
            self.client.put_object(
                bucket_name=self.bucket_name,
                object_name=key,
                data=io.BytesIO(data),
                length=len(data),
                content_type=content_type
            )
        except S3Error as e:
            logger.error(f"MinIO upload error for {key}: {e}")
            raise HTTPException(
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
                detail="No se pudo subir el archivo"
            )
        logger.info(f"Uploaded {key} ({len(data)} bytes) to {self.bucket_name}")
        return self.public_url(key)

    def delete_file(self, key: str) -> bool:
        """Delete file from MinIO"""
        try:
            self.client.remove_object(self.bucket_name, key)
            return True
        except S3Error as e:
            logger.error(f"MinIO file deletion error: {e}")
            return False


_minio_service: Optional[MinIOService] = None


def get_storage_service() -> MinIOService:
    """Dependency: instancia perezosa del servicio (no conecta al importar)."""
    global _minio_service
    if _minio_service is None:
        _minio_service = MinIOService()
    return _minio_service
