"""
Router para el módulo de Clientes

Todos los endpoints requieren autenticación y un perfil de empresa.
"""

from fastapi import APIRouter, Depends, status, Query, Path
from sqlalchemy.orm import Session
from typing import Optional
from uuid import UUID

from app.database.database import get_db
from app.modules.auth.dependencies import CompanyContext
from app.modules.customers.service import CustomerService
from app.modules.customers.schemas import CustomerCreate, CustomerUpdate, CustomerOut, CustomerList

router = APIRouter(
    prefix="/customers",
    tags=["Customers"],
    responses={404: {"description": "Not found"}}
)


@router.post("/", response_model=CustomerOut, status_code=status.HTTP_201_CREATED)
def create_customer(
    customer_data: CustomerCreate,
    auth_context: CompanyContext,
    db: Session = Depends(get_db)
):
    """
    Crear un nuevo cliente

    - **name**: Nombre o razón social (requerido)
    - **vat_number**: Partita IVA / número de IVA UE (opcional)
    """
    return CustomerService(db).create_customer(customer_data, auth_context.company_id)


@router.get("/", response_model=CustomerList)
def get_customers(
    auth_context: CompanyContext,
    limit: int = Query(100, ge=1, le=500, description="Número máximo de clientes a retornar"),
    offset: int = Query(0, ge=0, description="Número de clientes a omitir"),
    search: Optional[str] = Query(None, description="Búsqueda por nombre, email o IVA"),
    db: Session = Depends(get_db)
):
    """Listar clientes de la empresa (más recientes primero)"""
    return CustomerService(db).get_customers(auth_context.company_id, limit, offset, search)


@router.get("/{customer_id}", response_model=CustomerOut)
def get_customer(
    auth_context: CompanyContext,
    customer_id: UUID = Path(..., description="ID del cliente"),
    db: Session = Depends(get_db)
):
    """Obtener un cliente por ID"""
    return CustomerService(db).get_customer_by_id(customer_id, auth_context.company_id)


@router.put("/{customer_id}", response_model=CustomerOut)
def update_customer(
    customer_data: CustomerUpdate,
    auth_context: CompanyContext,
    customer_id: UUID = Path(..., description="ID del cliente"),
    db: Session = Depends(get_db)
):
    """Actualizar un cliente existente"""
    return CustomerService(db).update_customer(customer_id, customer_data, auth_context.company_id)


@router.delete("/{customer_id}")
def delete_customer(
    auth_context: CompanyContext,
    customer_id: UUID = Path(..., description="ID del cliente"),
    db: Session = Depends(get_db)
):
    """Eliminar un cliente (solo si no tiene facturas)"""
    return CustomerService(db).delete_customer(customer_id, auth_context.company_id)
