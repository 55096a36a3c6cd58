"""
Servicios de negocio para el módulo de Clientes

- CRUD de clientes aislado por company_id
- Búsqueda por nombre, email o número de IVA
- Eliminación definitiva (sin soft delete); se bloquea si el cliente tiene facturas
"""

from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from sqlalchemy.exc import IntegrityError
from sqlalchemy import or_, desc, func
from typing import Optional
from uuid import UUID
import logging

from app.modules.customers.models import Customer
from app.modules.customers.schemas import CustomerCreate, CustomerUpdate, CustomerList, CustomerOut

logger = logging.getLogger(__name__)


class CustomerService:
    """Servicio principal para gestión de clientes"""

    def __init__(self, db: Session):
        self.db = db

    def create_customer(self, customer_data: CustomerCreate, company_id: UUID) -> Customer:
        """Crear un nuevo cliente"""
        customer = Customer(
            **customer_data.model_dump(),
            company_id=company_id
        )

        try:
            self.db.add(customer)
            self.db.commit()
            self.db.refresh(customer)
        except IntegrityError as e:
            self.db.rollback()
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"Error de integridad: {str(e.orig)}"
            )

        logger.info(f"Customer {customer.id} created for company {company_id}")
        return customer

    def get_customers(
        self,
        company_id: UUID,
        limit: int = 100,
        offset: int = 0,
        search: Optional[str] = None
    ) -> CustomerList:
        """Listar clientes de la empresa, los más recientes primero"""
        query = self.db.query(Customer).filter(Customer.company_id == company_id)

        if search:
            term = f"%{search.strip()}%"
            query = query.filter(or_(
                Customer.name.ilike(term),
                Customer.email.ilike(term),
                Customer.vat_number.ilike(term)
            ))

        total = query.count()
        customers = query.order_by(desc(Customer.created_at), desc(Customer.id)).offset(offset).limit(limit).all()

        return CustomerList(
            items=[CustomerOut.model_validate(c) for c in customers],
            total=total,
            limit=limit,
            offset=offset
        )

    def count_customers(self, company_id: UUID) -> int:
        return self.db.query(func.count(Customer.id)).filter(Customer.company_id == company_id).scalar() or 0

    def get_customer_by_id(self, customer_id: UUID, company_id: UUID) -> Customer:
        """Obtener cliente por ID (solo dentro de la empresa)"""
        customer = self.db.query(Customer).filter(
            Customer.id == customer_id,
            Customer.company_id == company_id
        ).first()

        if not customer:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail="Cliente no encontrado"
            )
        return customer

    def update_customer(self, customer_id: UUID, customer_data: CustomerUpdate, company_id: UUID) -> Customer:
        """Actualizar un cliente. Solo se modifican los campos enviados."""
        customer = self.get_customer_by_id(customer_id, company_id)

        changes = customer_data.model_dump(exclude_unset=True)
        if "name" in changes and not changes["name"]:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="El nombre del cliente es obligatorio"
            )

        for field, value in changes.items():
            setattr(customer, field, value)

        self.db.commit()
        self.db.refresh(customer)
        return customer

    def delete_customer(self, customer_id: UUID, company_id: UUID) -> dict:
        """Eliminar un cliente sin facturas asociadas"""
        from app.modules.invoices.models import Invoice

        customer = self.get_customer_by_id(customer_id, company_id)

        invoices_count = self.db.query(func.count(Invoice.id)).filter(
            Invoice.customer_id == customer.id,
            Invoice.company_id == company_id
        ).scalar()
        if invoices_count:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"El cliente tiene {invoices_count} factura(s) asociada(s) y no puede eliminarse"
            )

        self.db.delete(customer)
        self.db.commit()

        logger.info(f"Customer {customer_id} deleted from company {company_id}")
        return {"message": "Cliente eliminado exitosamente", "id": str(customer_id)}
