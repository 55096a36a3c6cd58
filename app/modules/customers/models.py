from sqlalchemy import Column, String, Text, Uuid
from sqlalchemy.orm import relationship
from uuid import uuid4
from app.database.database import Base
from app.common.mixins import TenantMixin, TimestampMixin


class Customer(Base, TenantMixin, TimestampMixin):
    __tablename__ = "customers"

    id = Column(Uuid, primary_key=True, default=uuid4)

    name = Column(String(200), nullable=False)
    email = Column(String(150), nullable=True)
    phone = Column(String(30), nullable=True)
    address = Column(Text, nullable=True)
    city = Column(String(100), nullable=True)
    postal_code = Column(String(10), nullable=True)
    country = Column(String(100), nullable=True)
    vat_number = Column(String(20), nullable=True)

    invoices = relationship("Invoice", back_populates="customer")
