import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.auth.hashing import CredentialHasher
from app.auth.models import User
from app.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class ProfileService:
    """Atualizações do próprio perfil. O flag de admin nunca é alterado aqui."""

    def __init__(self, db: Session, hasher: CredentialHasher):
        self.db = db
        self.hasher = hasher

    def update_profile(self, user: User, full_name: str, new_password: Optional[str] = None) -> User:
        user.full_name = full_name
        if new_password:
            user.password_hash = self.hasher.hash(new_password, user.email)

        try:
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Erro ao atualizar perfil {user.id}: {e}")
            raise DatabaseError(f"Falha ao atualizar perfil: {e}") from e

        self.db.refresh(user)
        logger.info(f"Perfil atualizado: {user.id} (senha alterada: {bool(new_password)})")
        return user
