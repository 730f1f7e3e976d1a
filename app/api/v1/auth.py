from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from sqlalchemy.orm import Session
import logging

from app.config.database import get_db
from app.core.auth.service import AuthService
from app.core.auth.schemas import UserLogin, TokenResponse, UserResponse
from app.shared.database.models import User
from app.core.auth.dependencies import get_current_user

logger = logging.getLogger(__name__)

router = APIRouter()


def _authenticate(db: Session, email: str, password: str) -> User:
    user = db.query(User).filter(User.email == email).first()

    if not user or not AuthService.verify_password(password, user.password_hash):
        logger.info(f"Login recusado para {email}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Email ou senha incorretos",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Usuário inativo"
        )

    return user


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        email=user.email,
        first_name=user.first_name,
        last_name=user.last_name,
        role=user.role,
        store_id=user.store_id,
        store_name=user.store.name if user.store else None,
        is_active=user.is_active
    )


def _token_response(user: User) -> TokenResponse:
    access_token = AuthService.create_access_token(data={
        "user_id": user.id,
        "email": user.email,
        "role": user.role
    })
    return TokenResponse(
        access_token=access_token,
        token_type="bearer",
        user=_user_response(user)
    )


@router.post("/login", response_model=TokenResponse)
async def login(
    form_data: OAuth2PasswordRequestForm = Depends(),
    db: Session = Depends(get_db)
):
    """
    Login (form OAuth2) para obter token de acesso

    **Parâmetros:**
    - **username**: Email do usuário
    - **password**: Senha do usuário
    """
    return _token_response(_authenticate(db, form_data.username, form_data.password))


@router.post("/login-json", response_model=TokenResponse)
async def login_json(
    user_login: UserLogin,
    db: Session = Depends(get_db)
):
    """Login alternativo que aceita JSON"""
    return _token_response(_authenticate(db, user_login.email, user_login.password))


@router.get("/me", response_model=UserResponse)
async def get_current_user_info(
    current_user: User = Depends(get_current_user)
):
    """
    Informações do usuário atual

    **Headers:**
    - Authorization: Bearer {token}
    """
    return _user_response(current_user)
