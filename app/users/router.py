"""
Router do perfil do usuário autenticado.
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.dependencies import RequiredUser, get_credential_hasher
from app.auth.hashing import CredentialHasher
from app.auth.schemas import UserResponse
from app.config import get_settings
from app.dependencies import get_db_session
from app.users.schemas import ProfileResponse, ProfileUpdate
from app.users.service import ProfileService

router = APIRouter(
    prefix=get_settings().api_path("/users"),
    tags=["users"],
    responses={
        401: {"description": "Token ausente ou inválido"},
    }
)


def get_profile_service(
    db: Session = Depends(get_db_session),
    hasher: CredentialHasher = Depends(get_credential_hasher),
) -> ProfileService:
    return ProfileService(db, hasher)


@router.get(
    "/me",
    response_model=UserResponse,
    summary="Meu perfil",
)
async def get_me(user: RequiredUser) -> UserResponse:
    """Dados do usuário autenticado, sem o digest da senha."""
    return UserResponse.model_validate(user)


@router.put(
    "/me",
    response_model=ProfileResponse,
    summary="Atualizar meu perfil",
    responses={400: {"description": "Dados inválidos"}}
)
async def update_me(
    data: ProfileUpdate,
    user: RequiredUser,
    service: ProfileService = Depends(get_profile_service),
) -> ProfileResponse:
    """
    Atualiza nome e, opcionalmente, a senha.

    - **fullName**: Nome completo (obrigatório)
    - **newPassword**: Nova senha (opcional)
    """
    updated = service.update_profile(user, full_name=data.full_name, new_password=data.new_password)
    return ProfileResponse(user=UserResponse.model_validate(updated))
