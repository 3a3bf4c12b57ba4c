import asyncio
import logging
import time
from typing import Callable, Dict, List, Tuple

from fastapi import Request

from app.config import get_settings
from app.core.exceptions import RateLimitError

logger = logging.getLogger(__name__)


class InMemoryRateLimiter:
    """Rate limiter em memória com sliding window por minuto e por hora."""

    SWEEP_INTERVAL = 60

    def __init__(self, clock: Callable[[], float] = time.time):
        # Estrutura: {client_id: {endpoint: [timestamp, ...]}}
        self._requests: Dict[str, Dict[str, List[float]]] = {}
        self._lock = asyncio.Lock()
        self._clock = clock
        self._last_sweep = clock()

        logger.info("InMemoryRateLimiter inicializado")

    def get_client_id(self, request: Request, trust_proxy_headers: bool = False) -> str:
        """
        Extrai identificador do cliente.

        X-Real-IP e X-Forwarded-For só são lidos com trust_proxy_headers ativo.
        """
        if not trust_proxy_headers:
            return request.client.host if request.client else "unknown"

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        return request.client.host if request.client else "unknown"

    def get_endpoint_key(self, request: Request) -> str:
        return f"{request.method}:{request.url.path}"

    async def hit(
        self,
        client_id: str,
        endpoint: str,
        requests_per_minute: int,
        requests_per_hour: int
    ) -> Tuple[bool, Dict[str, str]]:
        """
        Registra uma requisição e verifica os limites.

        Returns:
            (allowed, headers) - Se permitido e headers informativos
        """
        current_time = self._clock()
        minute_cutoff = current_time - 60
        hour_cutoff = current_time - 3600

        async with self._lock:
            if current_time - self._last_sweep >= self.SWEEP_INTERVAL:
                self._sweep(hour_cutoff)
                self._last_sweep = current_time

            endpoints = self._requests.setdefault(client_id, {})
            timestamps = endpoints.setdefault(endpoint, [])

            timestamps[:] = [ts for ts in timestamps if ts > hour_cutoff]

            minute_requests = sum(1 for ts in timestamps if ts > minute_cutoff)
            hour_requests = len(timestamps)

            headers = {
                "X-RateLimit-Limit-Minute": str(requests_per_minute),
                "X-RateLimit-Limit-Hour": str(requests_per_hour),
                "X-RateLimit-Remaining-Minute": str(max(0, requests_per_minute - minute_requests - 1)),
                "X-RateLimit-Remaining-Hour": str(max(0, requests_per_hour - hour_requests - 1)),
            }

            if minute_requests >= requests_per_minute:
                headers["X-RateLimit-Exceeded"] = "minute"
                headers["Retry-After"] = "60"
                return False, headers

            if hour_requests >= requests_per_hour:
                headers["X-RateLimit-Exceeded"] = "hour"
                headers["Retry-After"] = "3600"
                return False, headers

            timestamps.append(current_time)
            return True, headers

    def _sweep(self, hour_cutoff: float) -> None:
        """Remove janelas vencidas e clientes ociosos. Chamar com o lock."""
        for client_id in list(self._requests):
            endpoints = self._requests[client_id]
            for endpoint in [key for key, stamps in endpoints.items() if not stamps or stamps[-1] <= hour_cutoff]:
                del endpoints[endpoint]
            if not endpoints:
                del self._requests[client_id]

    async def get_stats(self) -> Dict[str, int]:
        async with self._lock:
            return {
                "total_clients": len(self._requests),
                "total_requests_tracked": sum(
                    len(timestamps)
                    for endpoints in self._requests.values()
                    for timestamps in endpoints.values()
                ),
            }

    async def clear_all(self) -> None:
        async with self._lock:
            self._requests.clear()
            logger.info("Rate limiter limpo")


_rate_limiter = InMemoryRateLimiter()


def rate_limit(requests_per_minute: int = None, requests_per_hour: int = None):
    """
    Cria dependency FastAPI de rate limiting.

    Use como: dependencies=[Depends(rate_limit(requests_per_minute=10))]
    """
    async def dependency(request: Request) -> None:
        settings = get_settings()
        if not settings.rate_limit.enabled:
            return

        rpm = requests_per_minute or settings.rate_limit.requests_per_minute
        rph = requests_per_hour or settings.rate_limit.requests_per_hour
        client_id = _rate_limiter.get_client_id(request, settings.rate_limit.trust_proxy_headers)

        allowed, headers = await _rate_limiter.hit(
            client_id=client_id,
            endpoint=_rate_limiter.get_endpoint_key(request),
            requests_per_minute=rpm,
            requests_per_hour=rph,
        )

        if not allowed:
            window = headers["X-RateLimit-Exceeded"]
            limit_value = rpm if window == "minute" else rph
            logger.warning(f"Rate limit excedido para {client_id}: {limit_value} requests por {window}")
            raise RateLimitError(
                limit=limit_value,
                window=window,
                retry_after=int(headers["Retry-After"]),
            )

    return dependency


async def clear_rate_limiter() -> None:
    await _rate_limiter.clear_all()


async def check_rate_limiter_health() -> Dict[str, object]:
    return {
        "status": "healthy",
        "enabled": get_settings().rate_limit.enabled,
        "stats": await _rate_limiter.get_stats(),
    }
