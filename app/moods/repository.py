"""
Repository para operações de banco de dados dos check-ins de humor.
"""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import desc
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.exceptions import DatabaseError
from app.moods.models import Mood, MoodType

logger = logging.getLogger(__name__)


class MoodRepository:
    """Repository para check-ins de humor."""

    def __init__(self, db: Session):
        self.db = db

    def create(self, user_id: str, mood: MoodType, note: str = "") -> Mood:
        try:
            entry = Mood(user_id=user_id, mood=mood, note=note or "")
            self.db.add(entry)
            self.db.commit()
            self.db.refresh(entry)
            logger.debug(f"Check-in criado: {entry.id}")
            return entry
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"Erro ao criar check-in para {user_id}: {e}")
            raise DatabaseError(f"Falha ao salvar check-in: {e}") from e

    def list_for_user(self, user_id: str, since: Optional[datetime] = None) -> List[Mood]:
        """Check-ins do usuário, mais recentes primeiro."""
        try:
            query = self.db.query(Mood).filter(Mood.user_id == user_id)
            if since is not None:
                query = query.filter(Mood.created_at >= since)
            return query.order_by(desc(Mood.created_at)).all()
        except SQLAlchemyError as e:
            logger.error(f"Erro ao listar check-ins de {user_id}: {e}")
            raise DatabaseError(f"Falha ao listar check-ins: {e}") from e

    def latest_for_user(self, user_id: str) -> Optional[Mood]:
        try:
            return (
                self.db.query(Mood)
                .filter(Mood.user_id == user_id)
                .order_by(desc(Mood.created_at))
                .first()
            )
        except SQLAlchemyError as e:
            logger.error(f"Erro ao buscar último check-in de {user_id}: {e}")
            raise DatabaseError(f"Falha ao buscar check-in: {e}") from e
