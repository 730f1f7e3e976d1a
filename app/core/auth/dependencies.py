from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from sqlalchemy.orm import Session
from typing import List

from app.config.database import get_db
from app.shared.database.models import User
from app.core.auth.service import AuthService

security = HTTPBearer()

# Papéis
ROLE_REPOSITOR = "repositor"
ROLE_MANAGER = "gerente"
ROLE_ADMIN = "admin"

ALL_ROLES = [ROLE_REPOSITOR, ROLE_MANAGER, ROLE_ADMIN]
MANAGEMENT_ROLES = [ROLE_MANAGER, ROLE_ADMIN]

class AuthenticationError(HTTPException):
    def __init__(self, detail: str = "Could not validate credentials"):
        super().__init__(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=detail,
            headers={"WWW-Authenticate": "Bearer"},
        )

class AuthorizationError(HTTPException):
    def __init__(self, detail: str = "Not enough permissions"):
        super().__init__(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=detail
        )

async def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(security),
    db: Session = Depends(get_db)
) -> User:
    """Usuário atual a partir do token"""

    payload = AuthService.verify_token(credentials.credentials)
    if payload is None:
        raise AuthenticationError("Token inválido ou expirado")

    user_id = payload.get("user_id")
    if user_id is None:
        raise AuthenticationError("Payload do token inválido")

    user = db.query(User).filter(User.id == user_id).first()

    if user is None:
        raise AuthenticationError("Usuário não encontrado")

    if not user.is_active:
        raise AuthenticationError("Usuário inativo")

    return user

def require_roles(allowed_roles: List[str]):
    """Factory de dependency que exige papéis específicos"""
    def role_checker(current_user: User = Depends(get_current_user)) -> User:
        if current_user.role not in allowed_roles:
            raise AuthorizationError(
                f"Papel '{current_user.role}' não autorizado. Papéis permitidos: {allowed_roles}"
            )
        return current_user
    return role_checker

def can_access_store(user: User, store_id: str) -> bool:
    """Admin acessa todas as lojas; demais papéis apenas a loja atribuída"""
    if user.role == ROLE_ADMIN:
        return True
    return user.store_id is None or user.store_id == store_id

def ensure_store_access(user: User, store_id: str):
    if not can_access_store(user, store_id):
        raise AuthorizationError(f"Sem permissão para acessar a loja {store_id}")
