"""
Dependencies de autenticação para FastAPI.
"""
import logging
from datetime import timedelta
from functools import lru_cache
from typing import Annotated, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from app.auth.config import AuthConfig, get_auth_config
from app.auth.hashing import CredentialHasher
from app.auth.models import User
from app.auth.reset_tokens import ResetTokenStore
from app.auth.service import AuthService
from app.auth.tokens import TokenCodec
from app.core.exceptions import ForbiddenError, UnauthorizedError
from app.dependencies import get_db_session

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@lru_cache()
def get_token_codec() -> TokenCodec:
    """Codec construído uma vez a partir da configuração imutável."""
    return TokenCodec.from_config(get_auth_config())


@lru_cache()
def get_credential_hasher() -> CredentialHasher:
    return CredentialHasher.from_config(get_auth_config())


def get_auth_service(
    db: Session = Depends(get_db_session),
    hasher: CredentialHasher = Depends(get_credential_hasher),
    codec: TokenCodec = Depends(get_token_codec),
    config: AuthConfig = Depends(get_auth_config),
) -> AuthService:
    """Factory para criar instância do AuthService."""
    reset_store = ResetTokenStore(db, ttl=timedelta(minutes=config.password_reset_expire_minutes))
    return AuthService(db, hasher=hasher, codec=codec, config=config, reset_store=reset_store)


async def get_current_user(
    credentials: Annotated[Optional[HTTPAuthorizationCredentials], Depends(security)],
    db: Session = Depends(get_db_session),
    codec: TokenCodec = Depends(get_token_codec),
) -> User:
    """
    Obtém o usuário do token Bearer.

    Levanta UnauthorizedError se o token falta, é inválido ou expirou, ou se
    o usuário não existe mais.
    """
    if not credentials or not credentials.credentials:
        raise UnauthorizedError("Token de autenticação não fornecido")

    user_id = codec.verify(credentials.credentials)
    if not user_id:
        raise UnauthorizedError("Token inválido ou expirado")

    user = db.get(User, user_id)
    if not user:
        logger.warning(f"Token válido para usuário inexistente: {user_id}")
        raise UnauthorizedError("Usuário não encontrado")

    return user


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """Requer que usuário seja administrador."""
    if not user.is_admin:
        logger.info(f"Acesso admin negado para usuário {user.id}")
        raise ForbiddenError("Privilégios de administrador requeridos")

    return user


RequiredUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_admin)]
