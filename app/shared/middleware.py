import logging
import time
import uuid
from typing import Callable

from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import get_settings
from app.core.exceptions import InternalError

logger = logging.getLogger(__name__)
settings = get_settings()

SENSITIVE_HEADERS = {"authorization", "cookie", "x-api-key"}
QUIET_PATHS = {"/health", "/docs", "/redoc", "/openapi.json", "/favicon.ico"}


class TimingMiddleware(BaseHTTPMiddleware):
    """Adiciona headers de tempo de processamento e avisa sobre requests lentos."""

    def __init__(self, app, slow_request_seconds: float = 1.0):
        super().__init__(app)
        self.slow_request_seconds = slow_request_seconds

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        if request.url.path in QUIET_PATHS:
            return await call_next(request)

        start_time = time.perf_counter()
        response = await call_next(request)
        process_time = time.perf_counter() - start_time

        response.headers["X-Process-Time-MS"] = str(round(process_time * 1000, 2))

        if process_time > self.slow_request_seconds:
            logger.warning(
                f"Request lento: {request.method} {request.url.path} "
                f"({round(process_time * 1000, 2)}ms, status {response.status_code})"
            )

        return response


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Log por request com request ID; headers de credenciais nunca são registrados."""

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())[:8]
        request.state.request_id = request_id

        if self.log_requests and request.url.path not in QUIET_PATHS:
            safe_headers = {
                key: value for key, value in request.headers.items()
                if key.lower() not in SENSITIVE_HEADERS
            }
            logger.debug(
                f"[{request_id}] {request.method} {request.url.path} "
                f"de {self._get_client_ip(request)} headers={safe_headers}"
            )

        start_time = time.perf_counter()
        try:
            response = await call_next(request)
        except Exception as e:
            logger.error(
                f"[{request_id}] Request falhou: {request.method} {request.url.path} "
                f"({type(e).__name__})",
                exc_info=True
            )
            raise

        response.headers["X-Request-ID"] = request_id

        process_time_ms = round((time.perf_counter() - start_time) * 1000, 2)
        log_level = logging.WARNING if response.status_code >= 400 else logging.INFO
        if request.url.path not in QUIET_PATHS:
            logger.log(
                log_level,
                f"[{request_id}] {response.status_code} {request.method} {request.url.path} "
                f"{process_time_ms}ms"
            )

        return response

    def _get_client_ip(self, request: Request) -> str:
        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        return request.client.host if request.client else "unknown"


class ErrorHandlingMiddleware(BaseHTTPMiddleware):
    """Última barreira para exceções que escaparam dos exception handlers."""

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        try:
            return await call_next(request)
        except Exception as e:
            request_id = getattr(request.state, "request_id", "unknown")
            logger.error(
                f"Exceção não tratada em {request.method} {request.url.path}: {type(e).__name__}",
                exc_info=True
            )

            content = InternalError().to_dict()
            if settings.debug:
                content["details"] = {"error_type": type(e).__name__, "error_message": str(e)}

            return JSONResponse(
                status_code=500,
                content=content,
                headers={"X-Request-ID": request_id}
            )


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Headers de segurança básicos, aplicados apenas se ausentes."""

    SECURITY_HEADERS = {
        "X-Content-Type-Options": "nosniff",
        "X-Frame-Options": "DENY",
        "Referrer-Policy": "strict-origin-when-cross-origin",
        "Cache-Control": "no-store",
    }

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        response = await call_next(request)
        for header, value in self.SECURITY_HEADERS.items():
            if header not in response.headers:
                response.headers[header] = value
        return response


def setup_middleware(app: FastAPI) -> None:
    """
    Configura os middlewares.

    Ordem (externo para interno): CORS, Security Headers, Error Handling,
    Request Logging, Timing.
    """
    app.add_middleware(TimingMiddleware)
    app.add_middleware(RequestLoggingMiddleware, log_requests=settings.debug)
    app.add_middleware(ErrorHandlingMiddleware)
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.effective_cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        expose_headers=[
            "X-Process-Time-MS",
            "X-Request-ID",
            "X-RateLimit-Limit-Minute",
            "X-RateLimit-Remaining-Minute",
            "X-RateLimit-Limit-Hour",
            "X-RateLimit-Remaining-Hour",
            "Retry-After",
        ]
    )

    logger.info(f"Middleware configurado - Ambiente: {settings.environment}")
