from fastapi import APIRouter, status, UploadFile, File, Depends
from sqlalchemy.orm import Session

from app.modules.company import service
from app.modules.company.schemas import CompanyOut, CompanyUpdate, CompanyLogoResponse
from app.database.database import get_db
from app.modules.auth.dependencies import user_dependency
from app.modules.files.service import MinIOService, get_storage_service


company_router = APIRouter()


@company_router.get("/me", response_model=CompanyOut)
def get_my_company(current_user: user_dependency, db: Session = Depends(get_db)):
    """
    Perfil de empresa del usuario actual.
    Si todavía no existe se crea vacío, con el email del usuario.
    """
    return service.get_or_create_company(db, current_user)


@company_router.patch("/me", response_model=CompanyOut)
def update_my_company(
    company_update: CompanyUpdate,
    current_user: user_dependency,
    db: Session = Depends(get_db)
):
    """
    Actualizar información de la empresa del usuario.

    **Campos editables:** name, email, phone, address, city, postal_code,
    country, vat_number, fiscal_code
    """
    return service.update_company(db, company_update, current_user)


@company_router.post("/me/logo", response_model=CompanyLogoResponse, status_code=status.HTTP_200_OK)
async def upload_logo(
    current_user: user_dependency,
    file: UploadFile = File(..., description="Imagen del logo (png, jpg, webp, svg)"),
    db: Session = Depends(get_db),
    storage: MinIOService = Depends(get_storage_service)
):
    """Subir o reemplazar el logo de la empresa."""
    content = await file.read()
    company = service.upload_company_logo(db, current_user, content, file.content_type, storage)
    return CompanyLogoResponse(message="Logo actualizado", logo_url=company.logo_url)


@company_router.delete("/me/logo", response_model=CompanyLogoResponse)
def delete_logo(
    current_user: user_dependency,
    db: Session = Depends(get_db),
    storage: MinIOService = Depends(get_storage_service)
):
    """Eliminar el logo de la empresa."""
    service.delete_company_logo(db, current_user, storage)
    return CompanyLogoResponse(message="Logo eliminado", logo_url=None)
