from app.database.database import Base
from sqlalchemy import Column, String, Uuid
from sqlalchemy.orm import relationship
from app.common.mixins import TimestampMixin
import uuid

class Company(Base, TimestampMixin):
    __tablename__ = "companies"

    id = Column(Uuid, primary_key=True, index=True, default=uuid.uuid4)
    name = Column(String(200), nullable=False, default="")
    email = Column(String(150), nullable=True)
    phone = Column(String(30), nullable=True)
    address = Column(String, nullable=True)
    city = Column(String(100), nullable=True)
    postal_code = Column(String(10), nullable=True)
    country = Column(String(100), nullable=True, default="Italia")
    vat_number = Column(String(20), nullable=True)  # Partita IVA
    fiscal_code = Column(String(20), nullable=True)  # Codice Fiscale
    logo_url = Column(String, nullable=True)

    users = relationship("User", back_populates="company")
