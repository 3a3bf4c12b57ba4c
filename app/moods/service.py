import logging
from collections import Counter
from datetime import datetime, timedelta
from typing import Callable, List

from sqlalchemy.orm import Session

from app.config import get_settings
from app.core.cache import CacheService
from app.moods.models import Mood, MoodType
from app.moods.repository import MoodRepository
from app.moods.schemas import (
    MoodDistribution, MoodStatsResponse, Suggestion, SuggestionResponse
)
from app.moods.suggestions import suggestions_for

logger = logging.getLogger(__name__)


def _percentage(count: int, total: int) -> int:
    # Arredonda .5 para cima
    if total <= 0:
        return 0
    return int(count * 100 / total + 0.5)


class MoodService:
    """Regras de negócio de check-ins, sugestões e estatísticas."""

    def __init__(
        self,
        db: Session,
        cache_service: CacheService,
        clock: Callable[[], datetime] = datetime.utcnow,
    ):
        self.repository = MoodRepository(db)
        self.cache_service = cache_service
        self.settings = get_settings()
        self._clock = clock

    def _stats_cache_key(self, user_id: str) -> str:
        return f"mood_stats:{user_id}"

    async def record(self, user_id: str, mood: MoodType, note: str = "") -> Mood:
        entry = self.repository.create(user_id=user_id, mood=mood, note=note)
        await self.cache_service.delete(self._stats_cache_key(user_id))
        logger.info(f"Check-in registrado: {entry.id} ({entry.mood.value})")
        return entry

    def list_for_user(self, user_id: str) -> List[Mood]:
        return self.repository.list_for_user(user_id)

    def suggest(self, user_id: str) -> SuggestionResponse:
        latest = self.repository.latest_for_user(user_id)
        mood = latest.mood if latest else None
        return SuggestionResponse(
            mood=mood,
            suggestions=[Suggestion(**item) for item in suggestions_for(mood)],
        )

    async def weekly_stats(self, user_id: str, use_cache: bool = True) -> MoodStatsResponse:
        """
        Agregados dos últimos N dias (padrão 7).

        Cacheado por usuário; o cache é invalidado a cada novo check-in.
        """
        cache_key = self._stats_cache_key(user_id)

        if use_cache:
            cached = await self.cache_service.get(cache_key)
            if cached:
                logger.debug(f"Cache hit para estatísticas de {user_id}")
                return MoodStatsResponse(**cached)

        now = self._clock()
        window_days = self.settings.moods.stats_window_days
        entries = self.repository.list_for_user(user_id, since=now - timedelta(days=window_days))

        total = len(entries)
        counts = Counter(entry.mood for entry in entries)
        distribution = [
            MoodDistribution(mood=mood, count=count, percentage=_percentage(count, total))
            for mood, count in sorted(counts.items(), key=lambda item: item[1], reverse=True)
        ]

        stats = MoodStatsResponse(
            window_days=window_days,
            total=total,
            today=sum(1 for entry in entries if entry.created_at.date() == now.date()),
            latest_mood=entries[0].mood if entries else None,
            distribution=distribution,
        )

        if use_cache:
            await self.cache_service.set(
                cache_key,
                stats.model_dump(mode="json"),
                ttl=self.settings.moods.stats_cache_ttl,
            )

        return stats
