from fastapi import HTTPException, status
from sqlalchemy.orm import Session
from typing import Optional
import logging

from app.modules.auth.models import User
from app.modules.company.models import Company
from app.modules.company.schemas import CompanyUpdate
from app.modules.files.service import MinIOService
from app.core.config import settings

logger = logging.getLogger(__name__)


def get_company_for_user(db: Session, user: User) -> Optional[Company]:
    """Empresa asociada al usuario, o None si aún no existe."""
    if not user.company_id:
        return None
    return db.query(Company).filter(Company.id == user.company_id).first()


def get_or_create_company(db: Session, user: User) -> Company:
    """
    Obtener el perfil de empresa del usuario, creándolo en el primer acceso.
    El email de la empresa se precarga con el email de registro del usuario.

    Args:
        db: Sesión de base de datos
        user: Usuario autenticado

    Returns:
        Company: Empresa existente o recién creada
    """
    company = get_company_for_user(db, user)
    if company:
        return company

    company = Company(name="", email=user.email, country="Italia")
    db.add(company)
    db.flush()

    user.company_id = company.id
    db.commit()
    db.refresh(company)

    logger.info(f"Company profile created lazily for user {user.email}: {company.id}")
    return company


def update_company(db: Session, company_update: CompanyUpdate, user: User) -> Company:
    """
    Actualizar los datos de la empresa del usuario.
    Solo se modifican los campos enviados en la petición.
    """
    company = get_or_create_company(db, user)

    changes = company_update.model_dump(exclude_unset=True)
    if "name" in changes and not changes["name"]:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="El nombre de la empresa no puede estar vacío"
        )

    for field, value in changes.items():
        setattr(company, field, value)

    db.commit()
    db.refresh(company)

    logger.info(f"Company {company.id} updated: {sorted(changes)}")
    return company


def upload_company_logo(
    db: Session,
    user: User,
    content: bytes,
    content_type: str,
    storage: MinIOService
) -> Company:
    """
    Subir el logo de la empresa a MinIO y guardar su URL pública.
    """
    if not content_type or not content_type.startswith('image/'):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Solo se permiten archivos de imagen"
        )

    if len(content) > settings.MAX_LOGO_SIZE:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail="El logo es demasiado grande (máximo 2MB)"
        )

    company = get_or_create_company(db, user)
    key = storage.logo_key(company.id, content_type)

    # Un logo previo con otra extensión quedaría huérfano
    previous_key = _logo_key_from_url(company.logo_url)
    company.logo_url = storage.upload_bytes(key, content, content_type)
    if previous_key and previous_key != key:
        storage.delete_file(previous_key)

    db.commit()
    db.refresh(company)
    return company


def delete_company_logo(db: Session, user: User, storage: MinIOService) -> Company:
    """Eliminar el logo de la empresa."""
    company = get_or_create_company(db, user)

    key = _logo_key_from_url(company.logo_url)
    if not key:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="La empresa no tiene logo"
        )

    storage.delete_file(key)
    company.logo_url = None
    db.commit()
    db.refresh(company)
    return company


def _logo_key_from_url(logo_url: Optional[str]) -> Optional[str]:
    if not logo_url:
        return None
    return logo_url.rsplit("/", 1)[-1]
