from datetime import datetime, timezone
import logging
from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from app.modules.auth.models import User
from app.modules.auth.schemas import UserCreate, UserOut, TokenResponse
from app.modules.auth.utils import hash_password, verify_password, create_access_token
from app.modules.company.models import Company
from app.core.config import settings

logger = logging.getLogger(__name__)


class AuthService:
    """
    Servicio de autenticación: registro, login y perfil del usuario.
    """

    def __init__(self, db: Session):
        self.db = db

    def create_user(self, user_data: UserCreate) -> User:
        """
        Crear nuevo usuario.
        Si se indica company_name la empresa se crea en el mismo paso;
        si no, se creará al primer acceso al perfil de empresa.
        """
        email = user_data.email.lower()
        existing_user = self.db.query(User).filter(User.email == email).first()
        if existing_user:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Este email ya está registrado"
            )

        user = User(
            email=email,
            password=hash_password(user_data.password),
            full_name=user_data.full_name,
            is_active=True
        )

        if user_data.company_name:
            company = Company(name=user_data.company_name, email=email)
            self.db.add(company)
            self.db.flush()
            user.company_id = company.id

        self.db.add(user)
        self.db.commit()
        self.db.refresh(user)

        logger.info(f"User registered: {user.email} (company: {user.company_id})")
        return user

    def login(self, email: str, password: str) -> TokenResponse:
        """Validar credenciales y emitir token de acceso."""
        user = self.db.query(User).filter(User.email == email.lower()).first()

        if not user or not verify_password(password, user.password):
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Email o contraseña incorrectos"
            )

        if not user.is_active:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Cuenta desactivada"
            )

        user.last_login = datetime.now(timezone.utc)
        self.db.commit()

        token = create_access_token({"sub": str(user.id), "email": user.email})

        return TokenResponse(
            access_token=token,
            expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
            user=UserOut.model_validate(user)
        )
