"""
Dependencias de autenticación para FastAPI.
"""
from typing import Annotated
from uuid import UUID
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
import jwt

from app.database.database import get_db
from app.modules.auth.models import User
from app.modules.auth.schemas import AuthContext
from app.core.config import settings

# Security scheme
security = HTTPBearer()

COMPANY_PROFILE_MISSING = "Perfil de empresa no encontrado"


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """
    Obtener usuario actual desde token JWT.
    No requiere empresa (perfil de empresa, suscripción, etc.).
    """
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="No se pudieron validar las credenciales",
        headers={"WWW-Authenticate": "Bearer"},
    )

    try:
        payload = jwt.decode(
            credentials.credentials,
            settings.APP_SECRET_STRING,
            algorithms=[settings.ALGORITHM]
        )
        user_id: str = payload.get("sub")
        if user_id is None:
            raise credentials_exception
        user_uuid = UUID(user_id)
    except (jwt.PyJWTError, ValueError):
        raise credentials_exception

    user = db.query(User).filter(User.id == user_uuid).first()

    if user is None or not user.is_active:
        raise credentials_exception

    return user


def get_auth_context(current_user: User = Depends(get_current_user)) -> AuthContext:
    """Contexto de autenticación (usuario + empresa, si existe)."""
    return AuthContext(
        user_id=current_user.id,
        email=current_user.email,
        company_id=current_user.company_id
    )


def require_company(auth_context: AuthContext = Depends(get_auth_context)) -> AuthContext:
    """
    Requiere que el usuario tenga un perfil de empresa.
    Se evalúa antes de cualquier modificación de datos.
    """
    if not auth_context.company_id:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=COMPANY_PROFILE_MISSING
        )
    return auth_context


user_dependency = Annotated[User, Depends(get_current_user)]
CompanyContext = Annotated[AuthContext, Depends(require_company)]
