from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

from app.database.database import get_db
from app.modules.auth.service import AuthService
from app.modules.auth.dependencies import user_dependency
from app.modules.auth.schemas import UserCreate, UserLogin, UserOut, TokenResponse

auth_router = APIRouter()

@auth_router.post("/register", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def register(user_data: UserCreate, db: Session = Depends(get_db)):
    """
    Registrar nuevo usuario (y su empresa, si se indica el nombre).
    """
    auth_service = AuthService(db)
    return auth_service.create_user(user_data)

@auth_router.post("/login", response_model=TokenResponse)
def login(credentials: UserLogin, db: Session = Depends(get_db)):
    """
    Iniciar sesión con email y contraseña.
    """
    auth_service = AuthService(db)
    return auth_service.login(credentials.email, credentials.password)

@auth_router.get("/me", response_model=UserOut)
def read_me(current_user: user_dependency):
    """Usuario autenticado."""
    return current_user
