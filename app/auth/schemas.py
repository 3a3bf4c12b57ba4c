"""
Schemas Pydantic para autenticação e perfil.
"""
from datetime import datetime
from typing import Annotated, Optional

from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field

NonEmptyStr = Annotated[str, Field(min_length=1)]


class UserResponse(BaseModel):
    """Usuário como devolvido aos clientes (nunca inclui o digest)."""
    id: str
    email: str
    full_name: str
    is_admin: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RegisterRequest(BaseModel):
    """Schema para registro de usuário."""
    email: EmailStr
    password: NonEmptyStr
    full_name: Annotated[
        str,
        Field(
            min_length=1,
            max_length=100,
            validation_alias=AliasChoices("fullName", "full_name"),
        )
    ]


class LoginRequest(BaseModel):
    """Schema para requisição de login."""
    email: EmailStr
    password: NonEmptyStr


class TokenResponse(BaseModel):
    """Resposta com token de acesso."""
    access_token: str
    token_type: str = "bearer"
    expires_in: int = Field(description="Tempo de expiração em segundos")
    user: UserResponse


class PasswordResetRequest(BaseModel):
    email: EmailStr


class PasswordResetRequestResponse(BaseModel):
    message: str
    reset_link: Optional[str] = Field(default=None, serialization_alias="resetLink")


class PasswordResetConfirm(BaseModel):
    token: NonEmptyStr
    new_password: Annotated[
        str,
        Field(min_length=1, validation_alias=AliasChoices("newPassword", "new_password"))
    ]


class MessageResponse(BaseModel):
    """Schema genérico para mensagens."""
    message: str
