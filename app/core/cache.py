import asyncio
import json
import logging
from typing import Any, Dict, Optional, Union

import redis.asyncio as redis
from redis.asyncio import ConnectionPool
from redis.backoff import ExponentialBackoff
from redis.exceptions import BusyLoadingError, ConnectionError, TimeoutError
from redis.retry import Retry

from app.config import get_settings
from app.core.exceptions import CacheError

logger = logging.getLogger(__name__)

FALLBACK_MAX_ITEMS = 1000


class CacheMetrics:
    """Métricas básicas de cache em memória."""

    def __init__(self):
        self.hits = 0
        self.misses = 0
        self.sets = 0
        self.deletes = 0
        self.errors = 0
        self.fallback_operations = 0

    @property
    def hit_rate(self) -> float:
        total_reads = self.hits + self.misses
        return self.hits / total_reads if total_reads > 0 else 0.0

    def to_dict(self) -> Dict[str, Union[int, float]]:
        return {
            "hits": self.hits,
            "misses": self.misses,
            "sets": self.sets,
            "deletes": self.deletes,
            "errors": self.errors,
            "fallback_operations": self.fallback_operations,
            "hit_rate": self.hit_rate,
        }


class CacheService:
    """Serviço de cache com Redis e fallback em memória."""

    def __init__(self, redis_client: Optional[redis.Redis] = None, fallback_mode: bool = False):
        self.redis_client = redis_client
        self.fallback_mode = fallback_mode or redis_client is None
        self.metrics = CacheMetrics()
        self._fallback_store: Dict[str, Any] = {}
        logger.info(f"CacheService inicializado - Fallback: {self.fallback_mode}")

    def _cache_key(self, key: str) -> str:
        return get_settings().get_cache_key(key)

    def _serialize_value(self, value: Any) -> str:
        try:
            return json.dumps(value, ensure_ascii=False, separators=(',', ':'))
        except (TypeError, ValueError) as e:
            logger.error(f"Erro ao serializar: {e}")
            raise CacheError(
                message=f"Falha na serialização: {str(e)}",
                details={"value_type": type(value).__name__}
            ) from e

    def _store_fallback(self, cache_key: str, value: Any) -> None:
        self._fallback_store[cache_key] = value
        if len(self._fallback_store) > FALLBACK_MAX_ITEMS:
            for old_key in list(self._fallback_store.keys())[:100]:
                del self._fallback_store[old_key]
            logger.warning(f"Cache fallback limitado a {FALLBACK_MAX_ITEMS} itens")

    async def ping(self) -> bool:
        """Testa conectividade com Redis."""
        if self.fallback_mode:
            return False

        try:
            return await self.redis_client.ping()
        except Exception as e:
            logger.warning(f"Ping Redis falhou: {e}")
            return False

    async def get(self, key: str) -> Optional[Any]:
        """Obtém valor do cache."""
        cache_key = self._cache_key(key)

        if self.fallback_mode:
            self.metrics.fallback_operations += 1
            value = self._fallback_store.get(cache_key)
            if value is None:
                self.metrics.misses += 1
            else:
                self.metrics.hits += 1
            return value

        try:
            cached_value = await self.redis_client.get(cache_key)
        except Exception as e:
            self.metrics.errors += 1
            logger.error(f"Erro ao buscar no cache: {e}")
            return self._fallback_store.get(cache_key)

        if cached_value is None:
            self.metrics.misses += 1
            logger.debug(f"Cache miss (Redis): {key}")
            return None

        self.metrics.hits += 1
        logger.debug(f"Cache hit (Redis): {key}")
        try:
            return json.loads(cached_value)
        except (TypeError, ValueError) as e:
            logger.error(f"Erro ao deserializar {key}: {e}")
            return None

    async def set(self, key: str, value: Any, ttl: Optional[int] = None) -> bool:
        """Define valor no cache."""
        cache_key = self._cache_key(key)
        serialized_value = self._serialize_value(value)
        ttl = ttl or get_settings().cache.default_ttl

        self.metrics.sets += 1

        if self.fallback_mode:
            self.metrics.fallback_operations += 1
            self._store_fallback(cache_key, value)
            return True

        try:
            return bool(await self.redis_client.setex(cache_key, ttl, serialized_value))
        except Exception as e:
            self.metrics.errors += 1
            self.metrics.fallback_operations += 1
            logger.warning(f"Usando fallback devido a erro Redis ({e}): {key}")
            self._store_fallback(cache_key, value)
            return True

    async def delete(self, key: str) -> bool:
        """Remove valor do cache."""
        cache_key = self._cache_key(key)
        fallback_deleted = self._fallback_store.pop(cache_key, None) is not None
        self.metrics.deletes += 1

        if self.fallback_mode:
            return fallback_deleted

        try:
            result = await self.redis_client.delete(cache_key)
            return result > 0 or fallback_deleted
        except Exception as e:
            self.metrics.errors += 1
            logger.error(f"Erro ao deletar do cache: {e}")
            return fallback_deleted

    async def get_stats(self) -> Dict[str, Any]:
        return {
            "metrics": self.metrics.to_dict(),
            "fallback_mode": self.fallback_mode,
            "fallback_store_size": len(self._fallback_store),
        }

    async def close(self) -> None:
        """Fecha conexão com Redis."""
        if self.redis_client and not self.fallback_mode:
            try:
                await self.redis_client.aclose()
                logger.info("Conexão Redis fechada")
            except Exception as e:
                logger.error(f"Erro ao fechar Redis: {e}")


def create_redis_client() -> redis.Redis:
    """Cria cliente Redis com retry exponencial."""
    settings = get_settings()

    connection_pool = ConnectionPool.from_url(
        settings.cache.url,
        max_connections=settings.cache.max_connections,
        socket_timeout=settings.cache.socket_timeout,
        socket_connect_timeout=settings.cache.socket_connect_timeout,
        retry_on_timeout=settings.cache.retry_on_timeout,
        health_check_interval=settings.cache.health_check_interval,
        retry=Retry(ExponentialBackoff(cap=10, base=1), retries=3),
        retry_on_error=[ConnectionError, TimeoutError, BusyLoadingError],
        decode_responses=True,
    )

    logger.info("Cliente Redis criado")
    return redis.Redis(connection_pool=connection_pool)


_cache_service_instance: Optional[CacheService] = None
_cache_service_lock = asyncio.Lock()


async def get_cache_service(force_fallback: bool = False) -> CacheService:
    """Factory singleton assíncrono para serviço de cache."""
    global _cache_service_instance

    if _cache_service_instance is not None:
        return _cache_service_instance

    async with _cache_service_lock:
        if _cache_service_instance is not None:
            return _cache_service_instance

        if force_fallback:
            logger.info("Cache em modo fallback (Redis desabilitado)")
            _cache_service_instance = CacheService(fallback_mode=True)
            return _cache_service_instance

        redis_client = create_redis_client()
        try:
            await asyncio.wait_for(redis_client.ping(), timeout=5.0)
            logger.info("Cache Redis conectado")
            _cache_service_instance = CacheService(redis_client=redis_client)
            return _cache_service_instance

        except (asyncio.TimeoutError, ConnectionError, TimeoutError, OSError) as e:
            logger.warning(f"Redis indisponível ({e}) - usando fallback")
            await redis_client.aclose()

        _cache_service_instance = CacheService(fallback_mode=True)
        return _cache_service_instance


async def reset_cache_service() -> None:
    """Reseta o singleton do cache service (útil para testes)."""
    global _cache_service_instance

    async with _cache_service_lock:
        if _cache_service_instance:
            await _cache_service_instance.close()
        _cache_service_instance = None
        logger.info("Cache service resetado")


async def check_cache_health() -> Dict[str, Any]:
    """Health check do cache."""
    cache_service = await get_cache_service(force_fallback=not get_settings().cache.enabled)
    redis_available = await cache_service.ping()

    return {
        "status": "healthy" if redis_available else "degraded",
        "redis_available": redis_available,
        "fallback_mode": cache_service.fallback_mode,
        "stats": await cache_service.get_stats(),
    }


logger.info("Módulo de cache carregado")
