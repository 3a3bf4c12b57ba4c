import uuid
from datetime import datetime
from enum import Enum

from sqlalchemy import DateTime, ForeignKey, Index, String, Text
from sqlalchemy import Enum as SAEnum
from sqlalchemy.orm import Mapped, mapped_column

from app.core.database import Base


class MoodType(str, Enum):
    """Categorias fechadas de humor."""
    STRESSED = "stressed"
    TIRED = "tired"
    FOCUSED = "focused"
    HAPPY = "happy"


class Mood(Base):
    """Check-in de humor de um usuário. Imutável após criado."""

    __tablename__ = "moods"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid.uuid4()),
        comment="Identificador único do check-in"
    )

    user_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        comment="Dono do check-in"
    )

    mood: Mapped[MoodType] = mapped_column(
        SAEnum(
            MoodType,
            native_enum=False,
            length=20,
            values_callable=lambda enum: [member.value for member in enum],
            validate_strings=True,
        ),
        nullable=False,
        comment="Categoria: stressed, tired, focused, happy"
    )

    note: Mapped[str] = mapped_column(
        Text,
        nullable=False,
        default="",
        comment="Nota opcional (vazia quando ausente)"
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime,
        default=datetime.utcnow,
        nullable=False,
        comment="Timestamp do check-in"
    )

    __table_args__ = (
        # Listagem por usuário, mais recentes primeiro
        Index("idx_moods_user_created", "user_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Mood {self.mood.value} user={self.user_id}>"
