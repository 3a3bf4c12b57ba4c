"""
Serviço de autenticação: registro, login e redefinição de senha.
"""
import logging
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.auth.config import AuthConfig, get_auth_config
from app.auth.hashing import CredentialHasher
from app.auth.models import User
from app.auth.reset_tokens import IssuedResetToken, ResetTokenStore
from app.auth.tokens import TokenCodec
from app.core.exceptions import ConflictError, UnauthorizedError, ValidationError

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Email ou senha inválidos"


@dataclass(frozen=True)
class AuthResult:
    access_token: str
    expires_in: int
    user: User


class AuthService:
    """Serviço para operações de autenticação."""

    def __init__(
        self,
        db: Session,
        hasher: CredentialHasher,
        codec: TokenCodec,
        config: Optional[AuthConfig] = None,
        reset_store: Optional[ResetTokenStore] = None,
    ):
        self.db = db
        self.hasher = hasher
        self.codec = codec
        self.config = config or get_auth_config()
        self.reset_store = reset_store or ResetTokenStore(
            db, ttl=timedelta(minutes=self.config.password_reset_expire_minutes)
        )

    # ==================
    # User Operations
    # ==================

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.db.execute(select(User).where(User.email == email)).scalar_one_or_none()

    def get_user_by_id(self, user_id: str) -> Optional[User]:
        return self.db.get(User, user_id)

    def create_user(self, email: str, password: str, full_name: str, is_admin: bool = False) -> User:
        """Cria novo usuário; ConflictError se o email já existe."""
        if self.get_user_by_email(email):
            raise ConflictError(resource="Usuário", field="email")

        user = User(
            email=email,
            full_name=full_name,
            password_hash=self.hasher.hash(password, email),
            is_admin=is_admin,
        )

        self.db.add(user)
        try:
            self.db.commit()
        except IntegrityError as e:
            # Registro concorrente com o mesmo email
            self.db.rollback()
            raise ConflictError(resource="Usuário", field="email") from e
        self.db.refresh(user)

        logger.info(f"Usuário criado: {user.id}")
        return user

    def _issue(self, user: User) -> AuthResult:
        return AuthResult(
            access_token=self.codec.issue(user.id),
            expires_in=self.codec.ttl_seconds,
            user=user,
        )

    # ==================
    # Flows
    # ==================

    def register(self, email: str, password: str, full_name: str) -> AuthResult:
        user = self.create_user(email=email, password=password, full_name=full_name)
        return self._issue(user)

    def login(self, email: str, password: str) -> AuthResult:
        """Autentica por email e senha; mesma mensagem para email ou senha errados."""
        user = self.get_user_by_email(email)

        if not user or not self.hasher.verify(password, email, user.password_hash):
            logger.debug("Tentativa de login com credenciais inválidas")
            raise UnauthorizedError(INVALID_CREDENTIALS)

        if self.hasher.needs_rehash(user.password_hash):
            user.password_hash = self.hasher.hash(password, user.email)
            self.db.commit()
            logger.info(f"Digest de senha atualizado para o esquema {self.hasher.scheme}: {user.id}")

        logger.info(f"Usuário autenticado: {user.id}")
        return self._issue(user)

    def request_password_reset(self, email: str) -> Optional[IssuedResetToken]:
        """Emite token de reset; None (sem efeito colateral) se o email não existe."""
        user = self.get_user_by_email(email)
        if not user:
            logger.info("Reset solicitado para email inexistente")
            return None

        return self.reset_store.issue(user.id)

    def confirm_password_reset(self, token: str, new_password: str) -> User:
        user = self.reset_store.redeem(
            token,
            lambda owner: self.hasher.hash(new_password, owner.email),
        )
        if user is None:
            raise ValidationError("Token inválido ou expirado", field="token")
        return user

    # ==================
    # Admin Operations
    # ==================

    def ensure_admin_exists(self) -> Optional[User]:
        """Cria o admin configurado, se ainda não existir."""
        if not self.config.admin_bootstrap_enabled:
            logger.debug("Bootstrap de admin não configurado")
            return None

        admin = self.get_user_by_email(self.config.admin_email)
        if admin:
            logger.debug("Usuário admin já existe")
            return admin

        logger.info("Criando usuário admin...")
        return self.create_user(
            email=self.config.admin_email,
            password=self.config.admin_password,
            full_name=self.config.admin_full_name,
            is_admin=True,
        )
