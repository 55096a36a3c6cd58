from pydantic import BaseModel, Field, field_validator
from typing import Optional
from uuid import UUID
from datetime import datetime
from app.common.validators import (
    validate_vat_number, format_vat_number, validate_fiscal_code,
    validate_phone, format_phone, validate_postal_code, empty_to_none
)

class CompanyOut(BaseModel):
    id: UUID
    name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    vat_number: Optional[str] = None
    fiscal_code: Optional[str] = None
    logo_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class CompanyUpdate(BaseModel):
    """Actualización de datos de la empresa. Solo se modifican los campos enviados."""
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=150)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=10)
    country: Optional[str] = Field(None, max_length=100)
    vat_number: Optional[str] = Field(None, max_length=20)
    fiscal_code: Optional[str] = Field(None, max_length=20)
    # logo se gestiona con el endpoint de subida de imagen

    @field_validator('email', 'address', 'city', 'country', mode='before')
    @classmethod
    def blank_strings(cls, v):
        return empty_to_none(v) if isinstance(v, str) else v

    @field_validator('phone')
    @classmethod
    def validate_phone_number(cls, v):
        v = empty_to_none(v)
        if v is None:
            return v
        if not validate_phone(v):
            raise ValueError('Número de teléfono inválido. Use formato internacional, ej: +39 06 1234567')
        return format_phone(v)

    @field_validator('vat_number')
    @classmethod
    def validate_vat(cls, v):
        v = empty_to_none(v)
        if v is None:
            return v
        if not validate_vat_number(v):
            raise ValueError('Partita IVA inválida')
        return format_vat_number(v)

    @field_validator('fiscal_code')
    @classmethod
    def validate_cf(cls, v):
        v = empty_to_none(v)
        if v is None:
            return v
        if not validate_fiscal_code(v):
            raise ValueError('Codice Fiscale inválido')
        return v.upper().replace(' ', '')

    @field_validator('postal_code')
    @classmethod
    def validate_cap(cls, v):
        v = empty_to_none(v)
        if v is None:
            return v
        if not validate_postal_code(v):
            raise ValueError('Código postal inválido')
        return v

class CompanyLogoResponse(BaseModel):
    message: str
    logo_url: Optional[str] = None
