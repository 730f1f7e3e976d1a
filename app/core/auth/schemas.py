from pydantic import BaseModel, Field
from typing import Optional

class UserLogin(BaseModel):
    """Schema para login de usuário"""
    email: str = Field(..., description="Email do usuário")
    password: str = Field(..., min_length=6, description="Senha do usuário")

    class Config:
        json_schema_extra = {
            "example": {
                "email": "repositor@loja.com",
                "password": "repositor123"
            }
        }

class UserResponse(BaseModel):
    """Schema para resposta de usuário"""
    id: int
    email: str
    first_name: str
    last_name: str
    role: str
    store_id: Optional[str] = None
    store_name: Optional[str] = None
    is_active: bool

    class Config:
        from_attributes = True

class TokenResponse(BaseModel):
    """Schema para resposta de token"""
    access_token: str
    token_type: str = "bearer"
    user: UserResponse
