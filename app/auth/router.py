"""
Router de autenticação: registro, login e redefinição de senha.
"""
import logging
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, Request

from app.auth.config import AuthConfig, get_auth_config
from app.auth.schemas import (
    LoginRequest,
    MessageResponse,
    PasswordResetConfirm,
    PasswordResetRequest,
    PasswordResetRequestResponse,
    RegisterRequest,
    TokenResponse,
    UserResponse,
)
from app.auth.service import AuthResult, AuthService
from app.auth.dependencies import get_auth_service
from app.config import Settings, get_settings
from app.core.exceptions import ForbiddenError
from app.dependencies import get_config
from app.shared.rate_limiter import rate_limit

logger = logging.getLogger(__name__)

RESET_REQUESTED_MESSAGE = "Se o email existir, um link de redefinição foi enviado"

router = APIRouter(
    prefix=get_settings().api_path("/auth"),
    tags=["authentication"],
    dependencies=[Depends(rate_limit())],
    responses={
        400: {"description": "Dados inválidos"},
        429: {"description": "Rate limit excedido"},
    }
)


def _token_response(result: AuthResult) -> TokenResponse:
    return TokenResponse(
        access_token=result.access_token,
        token_type="bearer",
        expires_in=result.expires_in,
        user=UserResponse.model_validate(result.user),
    )


@router.post(
    "/register",
    response_model=TokenResponse,
    summary="Registrar novo usuário",
    responses={409: {"description": "Email já cadastrado"}}
)
async def register(
    data: RegisterRequest,
    auth_service: AuthService = Depends(get_auth_service),
    config: AuthConfig = Depends(get_auth_config),
) -> TokenResponse:
    """
    Registra um novo usuário e devolve um token de acesso.

    - **email**: Email válido e ainda não cadastrado
    - **password**: Senha (obrigatória)
    - **fullName**: Nome completo (obrigatório)
    """
    if not config.registration_enabled:
        raise ForbiddenError("Registro de novos usuários desabilitado")

    result = auth_service.register(
        email=data.email,
        password=data.password,
        full_name=data.full_name,
    )
    logger.info(f"Novo usuário registrado: {result.user.id}")
    return _token_response(result)


@router.post(
    "/login",
    response_model=TokenResponse,
    summary="Fazer login",
    responses={401: {"description": "Email ou senha inválidos"}}
)
async def login(
    data: LoginRequest,
    auth_service: AuthService = Depends(get_auth_service),
) -> TokenResponse:
    """Autentica usuário e retorna token de acesso (24h por padrão)."""
    result = auth_service.login(email=data.email, password=data.password)
    return _token_response(result)


@router.post(
    "/password/reset/request",
    response_model=PasswordResetRequestResponse,
    response_model_exclude_none=True,
    summary="Solicitar redefinição de senha",
)
async def request_password_reset(
    data: PasswordResetRequest,
    request: Request,
    auth_service: AuthService = Depends(get_auth_service),
    config: AuthConfig = Depends(get_auth_config),
    settings: Settings = Depends(get_config),
) -> PasswordResetRequestResponse:
    """
    Gera token de redefinição de senha.

    A resposta é a mesma exista ou não o email. O link só é devolvido no
    corpo em modo demonstração fora de produção; nos demais casos ele é
    apenas registrado em log para entrega por outro canal.
    """
    issued = auth_service.request_password_reset(data.email)
    if issued is None:
        return PasswordResetRequestResponse(message=RESET_REQUESTED_MESSAGE)

    base_url = request.headers.get("origin") or settings.frontend_url
    reset_link = f"{base_url.rstrip('/')}/reset-password?{urlencode({'token': issued.token})}"

    if config.password_reset_expose_link and not settings.is_production:
        return PasswordResetRequestResponse(
            message=RESET_REQUESTED_MESSAGE,
            reset_link=reset_link,
        )

    logger.info(f"Link de redefinição para entrega fora de banda: {reset_link}")
    return PasswordResetRequestResponse(message=RESET_REQUESTED_MESSAGE)


@router.post(
    "/password/reset/confirm",
    response_model=MessageResponse,
    summary="Confirmar redefinição de senha",
)
async def confirm_password_reset(
    data: PasswordResetConfirm,
    auth_service: AuthService = Depends(get_auth_service),
) -> MessageResponse:
    """Troca a senha usando um token de reset válido (uso único, 1 hora)."""
    user = auth_service.confirm_password_reset(data.token, data.new_password)
    logger.info(f"Senha redefinida para usuário: {user.id}")
    return MessageResponse(message="Senha atualizada com sucesso")
