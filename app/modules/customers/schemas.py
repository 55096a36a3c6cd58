from pydantic import BaseModel, Field, field_validator
from typing import Optional, List
from uuid import UUID
from datetime import datetime
from app.common.validators import (
    validate_vat_number, format_vat_number, validate_phone, format_phone, empty_to_none
)


def _check_vat(v):
    v = empty_to_none(v)
    if v is None:
        return v
    if not validate_vat_number(v):
        raise ValueError('Número de IVA inválido')
    return format_vat_number(v)


def _check_phone(v):
    v = empty_to_none(v)
    if v is None:
        return v
    if not validate_phone(v):
        raise ValueError('Número de teléfono inválido')
    return format_phone(v)


class CustomerBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=150)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=10)
    country: Optional[str] = Field(None, max_length=100)
    vat_number: Optional[str] = Field(None, max_length=20)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('El nombre del cliente es obligatorio')
        return v

    @field_validator('email', 'address', 'city', 'postal_code', 'country', mode='before')
    @classmethod
    def blank_strings(cls, v):
        return empty_to_none(v) if isinstance(v, str) else v

    @field_validator('phone')
    @classmethod
    def validate_phone_number(cls, v):
        return _check_phone(v)

    @field_validator('vat_number')
    @classmethod
    def validate_vat(cls, v):
        return _check_vat(v)


class CustomerCreate(CustomerBase):
    pass


class CustomerUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=200)
    email: Optional[str] = Field(None, max_length=150)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = None
    city: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=10)
    country: Optional[str] = Field(None, max_length=100)
    vat_number: Optional[str] = Field(None, max_length=20)

    @field_validator('name')
    @classmethod
    def validate_name(cls, v):
        if v is None:
            return v
        v = v.strip()
        if not v:
            raise ValueError('El nombre del cliente es obligatorio')
        return v

    @field_validator('email', 'address', 'city', 'postal_code', 'country', mode='before')
    @classmethod
    def blank_strings(cls, v):
        return empty_to_none(v) if isinstance(v, str) else v

    @field_validator('phone')
    @classmethod
    def validate_phone_number(cls, v):
        return _check_phone(v)

    @field_validator('vat_number')
    @classmethod
    def validate_vat(cls, v):
        return _check_vat(v)


class CustomerOut(CustomerBase):
    id: UUID
    company_id: UUID
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CustomerSummary(BaseModel):
    """Datos mínimos del cliente incluidos en las facturas."""
    id: UUID
    name: str
    email: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    vat_number: Optional[str] = None

    class Config:
        from_attributes = True


class CustomerList(BaseModel):
    items: List[CustomerOut]
    total: int
    limit: int
    offset: int
