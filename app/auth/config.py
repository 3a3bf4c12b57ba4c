"""
Configuração de autenticação: tokens de acesso, hashing e reset de senha.
"""
import logging
from functools import lru_cache
from typing import Literal, Optional

from pydantic import EmailStr, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from app.config import get_settings
from app.core.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class AuthConfig(BaseSettings):
    """Configurações de autenticação."""

    model_config = SettingsConfigDict(
        env_prefix="MOODMOMENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # Token de acesso
    jwt_secret_key: str = Field(
        default="your-secret-key-here-change-in-production",
        description="Chave secreta para assinar tokens de acesso"
    )
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = Field(
        default="HS256",
        description="Algoritmo HMAC de assinatura"
    )
    jwt_access_token_expire_minutes: int = Field(
        default=24 * 60,
        ge=5,
        le=7 * 24 * 60,
        description="Tempo de expiração do token de acesso em minutos"
    )
    jwt_verify_signature: bool = Field(
        default=True,
        description="Se a assinatura é conferida ao validar tokens (False reproduz o modo legado)"
    )

    # Hashing de senha
    password_scheme: Literal["email_sha256", "bcrypt"] = Field(
        default="email_sha256",
        description="Esquema usado para novos digests de senha"
    )
    bcrypt_rounds: int = Field(
        default=12,
        ge=4,
        le=16,
        description="Número de rounds para bcrypt"
    )

    # Reset de senha
    password_reset_expire_minutes: int = Field(
        default=60,
        ge=5,
        le=24 * 60,
        description="Validade do token de redefinição de senha"
    )
    password_reset_expose_link: bool = Field(
        default=True,
        description="Devolve o link de reset na resposta (somente fora de produção)"
    )

    # Admin
    admin_email: Optional[EmailStr] = Field(
        default=None,
        description="Email do admin criado na inicialização (mesmas regras do login)"
    )
    admin_password: Optional[str] = Field(
        default=None,
        description="Senha do admin criado na inicialização"
    )
    admin_full_name: str = Field(default="Administrator")

    # Feature flags
    registration_enabled: bool = Field(
        default=True,
        description="Se registro de novos usuários está habilitado"
    )

    @property
    def weak_secret(self) -> bool:
        return "change" in self.jwt_secret_key.lower() or len(self.jwt_secret_key) < 32

    @property
    def admin_bootstrap_enabled(self) -> bool:
        return bool(self.admin_email and self.admin_password)


@lru_cache()
def get_auth_config() -> AuthConfig:
    """
    Factory singleton para configuração de autenticação.

    Em produção, chave fraca ou verificação de assinatura desabilitada
    levantam ConfigurationError em vez de apenas avisar.
    """
    config = AuthConfig()
    production = get_settings().is_production

    if config.weak_secret:
        if production:
            raise ConfigurationError("MOODMOMENT_JWT_SECRET_KEY fraca ou padrão em produção")
        logger.warning(
            "MOODMOMENT_JWT_SECRET_KEY não configurada ou muito curta! "
            "Configure a chave em .env para produção."
        )

    if not config.jwt_verify_signature:
        if production:
            raise ConfigurationError("Verificação de assinatura não pode ser desabilitada em produção")
        logger.warning(
            "Verificação de assinatura desabilitada: tokens forjados serão aceitos. "
            "Use apenas para testes de compatibilidade."
        )

    return config


logger.info("Módulo de configuração de autenticação carregado")
