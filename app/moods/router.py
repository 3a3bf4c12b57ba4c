"""
Router de check-ins de humor do usuário autenticado.
"""
from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.auth.dependencies import RequiredUser
from app.config import get_settings
from app.core.cache import CacheService
from app.dependencies import get_cache_dependency, get_db_session
from app.moods.schemas import (
    MoodCreate, MoodResponse, MoodStatsResponse, SuggestionResponse
)
from app.moods.service import MoodService

router = APIRouter(
    prefix=get_settings().api_path("/moods"),
    tags=["moods"],
    responses={
        401: {"description": "Token ausente ou inválido"},
    }
)


def get_mood_service(
    db: Session = Depends(get_db_session),
    cache: CacheService = Depends(get_cache_dependency),
) -> MoodService:
    """Dependency para obter serviço de check-ins."""
    return MoodService(db, cache)


@router.get(
    "",
    response_model=List[MoodResponse],
    summary="Listar meus check-ins",
)
async def list_moods(
    user: RequiredUser,
    service: MoodService = Depends(get_mood_service),
) -> List[MoodResponse]:
    """Todos os check-ins do usuário, mais recentes primeiro."""
    return [MoodResponse.model_validate(entry) for entry in service.list_for_user(user.id)]


@router.post(
    "",
    response_model=MoodResponse,
    summary="Registrar check-in",
    responses={400: {"description": "Categoria de humor inválida"}}
)
async def create_mood(
    data: MoodCreate,
    user: RequiredUser,
    service: MoodService = Depends(get_mood_service),
) -> MoodResponse:
    """
    Registra um check-in de humor.

    - **mood**: stressed, tired, focused ou happy
    - **note**: Nota opcional (até 500 caracteres)
    """
    entry = await service.record(user_id=user.id, mood=data.mood, note=data.note)
    return MoodResponse.model_validate(entry)


@router.get(
    "/suggest",
    response_model=SuggestionResponse,
    summary="Sugestões de bem-estar",
)
async def suggest(
    user: RequiredUser,
    service: MoodService = Depends(get_mood_service),
) -> SuggestionResponse:
    """Três sugestões para o humor mais recente, ou um conjunto padrão."""
    return service.suggest(user.id)


@router.get(
    "/stats",
    response_model=MoodStatsResponse,
    summary="Estatísticas da semana",
)
async def stats(
    user: RequiredUser,
    service: MoodService = Depends(get_mood_service),
) -> MoodStatsResponse:
    return await service.weekly_stats(user.id)
