"""
Tokens de redefinição de senha de uso único.

O resgate marca o token como usado com um UPDATE condicional
(``used = false AND expires_at > agora``); só quem altera exatamente uma
linha grava a nova senha, então resgates concorrentes têm um único vencedor.
"""
import logging
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.auth.models import PasswordResetToken, User

logger = logging.getLogger(__name__)

TOKEN_BYTES = 32


@dataclass(frozen=True)
class IssuedResetToken:
    token: str
    expires_at: datetime


class ResetTokenStore:
    """Emissão e resgate de tokens de reset persistidos no banco."""

    def __init__(
        self,
        db: Session,
        ttl: timedelta = timedelta(hours=1),
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.db = db
        self.ttl = ttl
        self._clock = clock

    def issue(self, user_id: str) -> IssuedResetToken:
        """Persiste um novo token para o usuário."""
        now = self._clock()
        record = PasswordResetToken(
            user_id=user_id,
            token=secrets.token_urlsafe(TOKEN_BYTES),
            expires_at=now + self.ttl,
            used=False,
            created_at=now,
        )

        self.db.add(record)
        self.db.commit()

        logger.info(f"Token de reset emitido para usuário {user_id}")
        return IssuedResetToken(token=record.token, expires_at=record.expires_at)

    def get_valid(self, token: str) -> Optional[PasswordResetToken]:
        """Busca token ainda não usado e não expirado."""
        record = self.db.execute(
            select(PasswordResetToken).where(PasswordResetToken.token == token)
        ).scalar_one_or_none()

        if record is None or record.used or record.expires_at <= self._clock():
            return None
        return record

    def redeem(self, token: str, hash_for_user: Callable[[User], str]) -> Optional[User]:
        """
        Consome o token e grava o novo digest de senha do dono.

        Args:
            token: Token opaco recebido pelo usuário
            hash_for_user: Calcula o novo digest a partir do usuário dono

        Returns:
            Usuário atualizado, ou None se o token é inválido, usado ou expirado
        """
        record = self.get_valid(token)
        if record is None:
            logger.info("Resgate de token de reset inválido ou expirado")
            return None

        user_id = record.user_id

        claimed = self.db.execute(
            update(PasswordResetToken)
            .where(
                PasswordResetToken.token == token,
                PasswordResetToken.used.is_(False),
                PasswordResetToken.expires_at > self._clock(),
            )
            .values(used=True)
            .execution_options(synchronize_session=False)
        )

        if claimed.rowcount != 1:
            self.db.rollback()
            logger.info(f"Token de reset já consumido por outro request (usuário {user_id})")
            return None

        user = self.db.get(User, user_id)
        if user is None:
            self.db.rollback()
            logger.warning(f"Token de reset aponta para usuário inexistente: {user_id}")
            return None

        user.password_hash = hash_for_user(user)
        self.db.commit()
        self.db.refresh(record)

        logger.info(f"Senha redefinida via token para usuário {user_id}")
        return user
