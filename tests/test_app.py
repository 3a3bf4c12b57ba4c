import asyncio

import pytest
from fastapi import FastAPI, status
from fastapi.testclient import TestClient
from starlette.requests import Request

from app.config import Settings, get_settings
from app.core.exceptions import get_exception_handlers
from app.shared.rate_limiter import InMemoryRateLimiter, clear_rate_limiter


class TestHealth:
    """Endpoints de status."""

    def test_root(self, test_client):
        response = test_client.get("/")

        assert response.status_code == status.HTTP_200_OK
        assert response.json()["status"] == "running"

    def test_health(self, test_client):
        response = test_client.get("/health")

        assert response.status_code == status.HTTP_200_OK
        data = response.json()
        assert data["status"] == "healthy"
        assert data["components"]["database"] == "healthy"

    def test_unknown_route_uses_error_format(self, test_client):
        response = test_client.get("/api/v1/nope")

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.json()["error"] == "HTTP_404"

    def test_request_id_header(self, test_client):
        response = test_client.get("/", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"


class TestErrorHandlers:
    """Exceções inesperadas viram InternalError genérico."""

    def test_unhandled_exception_hides_internals(self):
        broken = FastAPI()
        for exception_type, handler in get_exception_handlers().items():
            broken.add_exception_handler(exception_type, handler)

        @broken.get("/boom")
        async def boom():
            raise RuntimeError("segredo interno")

        with TestClient(broken, raise_server_exceptions=False) as client:
            response = client.get("/boom")

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.json()["error"] == "INTERNAL_ERROR"
        assert response.json()["message"] == "Erro interno do servidor"
        assert "segredo interno" not in response.text


class TestSettings:
    """Leitura de variáveis MOODMOMENT_ com seções aninhadas."""

    def test_nested_env_sections(self, monkeypatch):
        monkeypatch.setenv("MOODMOMENT_ENVIRONMENT", "production")
        monkeypatch.setenv("MOODMOMENT_CACHE__URL", "rediss://cache:6380/1")
        monkeypatch.setenv("MOODMOMENT_RATE_LIMIT__TRUST_PROXY_HEADERS", "true")

        settings = Settings()

        assert settings.cache.url == "rediss://cache:6380/1"
        assert settings.rate_limit.trust_proxy_headers is True
        assert settings.effective_cors_origins == settings.cors_production_origins
        assert settings.api_path("/moods") == "/api/v1/moods"

    def test_proxy_headers_untrusted_by_default(self):
        assert Settings().rate_limit.trust_proxy_headers is False

    def test_invalid_cache_url_rejected(self, monkeypatch):
        monkeypatch.setenv("MOODMOMENT_CACHE__URL", "http://cache")

        with pytest.raises(ValueError):
            Settings()

class FakeClock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


class TestRateLimiter:
    """Sliding window em memória."""

    def test_minute_limit(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(clock=clock)

        async def scenario():
            results = [
                (await limiter.hit("1.2.3.4", "POST:/login", requests_per_minute=3, requests_per_hour=100))[0]
                for _ in range(4)
            ]
            clock.now += 61
            after_window = (await limiter.hit("1.2.3.4", "POST:/login", 3, 100))[0]
            return results, after_window

        results, after_window = asyncio.run(scenario())

        assert results == [True, True, True, False]
        assert after_window is True

    def test_hour_limit(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(clock=clock)

        async def scenario():
            for _ in range(5):
                await limiter.hit("c", "e", requests_per_minute=100, requests_per_hour=5)
                clock.now += 61
            return await limiter.hit("c", "e", requests_per_minute=100, requests_per_hour=5)

        allowed, headers = asyncio.run(scenario())

        assert allowed is False
        assert headers["X-RateLimit-Exceeded"] == "hour"
        assert headers["Retry-After"] == "3600"

    def test_clients_are_independent(self):
        limiter = InMemoryRateLimiter(clock=FakeClock())

        async def scenario():
            await limiter.hit("a", "e", 1, 10)
            return await limiter.hit("b", "e", 1, 10)

        allowed, _ = asyncio.run(scenario())
        assert allowed is True

    def test_auth_endpoints_return_429(self, test_client, monkeypatch):
        monkeypatch.setenv("MOODMOMENT_RATE_LIMIT__ENABLED", "true")
        monkeypatch.setenv("MOODMOMENT_RATE_LIMIT__REQUESTS_PER_MINUTE", "3")
        get_settings.cache_clear()

        try:
            responses = [
                test_client.post("/api/v1/auth/login", json={"email": "ghost@x.com", "password": "x"})
                for _ in range(4)
            ]
        finally:
            asyncio.run(clear_rate_limiter())

        assert [r.status_code for r in responses[:3]] == [401, 401, 401]
        assert responses[3].status_code == status.HTTP_429_TOO_MANY_REQUESTS
        assert responses[3].headers["Retry-After"] == "60"
        assert responses[3].json()["error"] == "RATE_LIMIT_EXCEEDED"

    def test_idle_clients_are_evicted(self):
        clock = FakeClock()
        limiter = InMemoryRateLimiter(clock=clock)

        async def scenario():
            await limiter.hit("a", "e", 10, 100)
            clock.now += 3601
            await limiter.hit("b", "e", 10, 100)
            return await limiter.get_stats()

        stats = asyncio.run(scenario())

        assert stats["total_clients"] == 1
        assert stats["total_requests_tracked"] == 1

    @pytest.mark.parametrize("header", [b"x-forwarded-for", b"x-real-ip"])
    def test_proxy_headers_ignored_unless_trusted(self, header):
        limiter = InMemoryRateLimiter(clock=FakeClock())
        request = Request({
            "type": "http",
            "method": "POST",
            "path": "/api/v1/auth/login",
            "headers": [(header, b"9.9.9.9")],
            "client": ("1.2.3.4", 1234),
        })

        assert limiter.get_client_id(request) == "1.2.3.4"
        assert limiter.get_client_id(request, trust_proxy_headers=True) == "9.9.9.9"

    def test_spoofed_forwarded_for_does_not_reset_limit(self, test_client, monkeypatch):
        monkeypatch.setenv("MOODMOMENT_RATE_LIMIT__ENABLED", "true")
        monkeypatch.setenv("MOODMOMENT_RATE_LIMIT__REQUESTS_PER_MINUTE", "2")
        get_settings.cache_clear()

        try:
            responses = [
                test_client.post(
                    "/api/v1/auth/login",
                    json={"email": "ghost@x.com", "password": "x"},
                    headers={"X-Forwarded-For": f"10.0.0.{i}"},
                )
                for i in range(3)
            ]
        finally:
            asyncio.run(clear_rate_limiter())

        assert responses[2].status_code == status.HTTP_429_TOO_MANY_REQUESTS
