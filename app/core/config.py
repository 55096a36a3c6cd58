from pydantic_settings import BaseSettings, SettingsConfigDict
from typing import Optional
from pydantic import field_validator

class Settings(BaseSettings):
    # Database settings
    POSTGRES_USER: str = 'invogen_user'
    POSTGRES_PASSWORD: str = 'invogen_pass'
    POSTGRES_DB: str = 'invogen_db'
    POSTGRES_HOST: str = 'postgres'
    POSTGRES_PORT: int = 5432
    DATABASE_URL: Optional[str] = None  # Override completo (ej: sqlite:// en tests)

    # Redis settings
    REDIS_HOST: str = 'redis'
    REDIS_PORT: int = 6379
    REDIS_DB: int = 0
    REDIS_PASSWORD: Optional[str] = None

    # MinIO settings (logos de empresa)
    MINIO_HOST: str = 'minio'
    MINIO_PORT: int = 9000
    MINIO_PUBLIC_HOST: str = 'localhost'  # Hostname público para URLs de logos
    MINIO_PUBLIC_PORT: int = 9000
    MINIO_ACCESS_KEY: str = 'minioadmin'
    MINIO_SECRET_KEY: str = 'minioadmin'
    MINIO_BRANDING_BUCKET: str = 'branding'
    MINIO_USE_SSL: bool = False
    MAX_LOGO_SIZE: int = 2 * 1024 * 1024  # 2MB

    # JWT settings
    APP_SECRET_STRING: str = 'your-super-secret-key-here-change-in-production-2025'
    ALGORITHM: str = 'HS256'
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60 * 24

    # Pagination
    DEFAULT_PAGE_SIZE: int = 50
    MAX_PAGE_SIZE: int = 500

    # Invoices
    DEFAULT_TAX_RATE: float = 22.0
    DEFAULT_PAYMENT_TERMS_DAYS: int = 30
    MAX_INVOICE_PDF_SIZE: int = 10 * 1024 * 1024  # 10MB

    # Email settings (relay SMTP del proveedor transaccional)
    EMAIL_SMTP_SERVER: str = 'smtp.sendgrid.net'
    EMAIL_SMTP_PORT: int = 587
    EMAIL_USE_TLS: bool = True
    EMAIL_USERNAME: str = 'apikey'
    EMAIL_PASSWORD: str = ''
    EMAIL_FROM: str = 'info.invogenpro@gmail.com'
    EMAIL_FROM_NAME: str = 'InvoGen'
    FRONTEND_URL: str = 'http://localhost:5173'

    # Stripe settings
    STRIPE_SECRET_KEY: str = ''
    STRIPE_PRO_PRICE_ID: str = 'price_1S9Q3NRqkShKldCBBZYqnWqX'
    STRIPE_MAX_NETWORK_RETRIES: int = 2

    # Environment
    ENVIRONMENT: str = "development"
    DEBUG: bool = True

    @property
    def database_url(self) -> str:
        if self.DATABASE_URL:
            return self.DATABASE_URL
        return (
            f"postgresql+psycopg2://{self.POSTGRES_USER}:{self.POSTGRES_PASSWORD}"
            f"@{self.POSTGRES_HOST}:{self.POSTGRES_PORT}/{self.POSTGRES_DB}"
        )

    @property
    def redis_url(self) -> str:
        if self.REDIS_PASSWORD:
            return f"redis://:{self.REDIS_PASSWORD}@{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"
        return f"redis://{self.REDIS_HOST}:{self.REDIS_PORT}/{self.REDIS_DB}"

    @property
    def minio_endpoint(self) -> str:
        return f"{self.MINIO_HOST}:{self.MINIO_PORT}"

    @property
    def minio_public_url(self) -> str:
        scheme = "https" if self.MINIO_USE_SSL else "http"
        return f"{scheme}://{self.MINIO_PUBLIC_HOST}:{self.MINIO_PUBLIC_PORT}"

    model_config = SettingsConfigDict(
        extra="allow",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @field_validator("DEBUG", mode="before")
    @classmethod
    def parse_debug(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("MINIO_USE_SSL", mode="before")
    @classmethod
    def parse_ssl(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

    @field_validator("EMAIL_USE_TLS", mode="before")
    @classmethod
    def parse_email_tls(cls, v):
        if isinstance(v, str):
            return v.lower().strip('"').strip("'") in ("true", "1", "yes", "on")
        return bool(v)

settings = Settings()
