"""
Schemas Pydantic para check-ins de humor.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.config import get_settings
from app.moods.models import MoodType


class MoodCreate(BaseModel):
    """Entrada de um novo check-in."""
    mood: MoodType
    note: Optional[str] = Field(default=None, validate_default=True, description="Nota opcional")

    @field_validator("note")
    @classmethod
    def validate_note(cls, v: Optional[str]) -> str:
        if v is None:
            return ""
        max_length = get_settings().moods.note_max_length
        if len(v) > max_length:
            raise ValueError(f"Nota deve ter no máximo {max_length} caracteres")
        return v


class MoodResponse(BaseModel):
    id: str
    user_id: str
    mood: MoodType
    note: str
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class Suggestion(BaseModel):
    title: str
    description: str
    duration: str
    icon: str


class SuggestionResponse(BaseModel):
    """Sugestões para o humor mais recente (None quando não há check-ins)."""
    mood: Optional[MoodType] = None
    suggestions: List[Suggestion]


class MoodDistribution(BaseModel):
    mood: MoodType
    count: int = Field(ge=0)
    percentage: int = Field(ge=0, le=100)


class MoodStatsResponse(BaseModel):
    """Agregados dos últimos dias para o painel."""
    window_days: int
    total: int
    today: int
    latest_mood: Optional[MoodType] = None
    distribution: List[MoodDistribution]
