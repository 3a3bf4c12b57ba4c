import logging
import traceback
from typing import Any, Callable, Dict, Optional, Union

from fastapi import Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger(__name__)


class MoodMomentError(Exception):
    """Exceção base para todas as exceções da aplicação."""

    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_error_code: str = "INTERNAL_ERROR"

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        super().__init__(message)
        self.message = message
        self.details = details or {}
        self.error_code = error_code or self.default_error_code

        logger.debug(
            f"Exceção {self.__class__.__name__}: {message}",
            extra={"details": self.details, "error_code": self.error_code}
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "error": self.error_code,
            "message": self.message,
            "details": self.details,
        }

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} (Detalhes: {self.details})"
        return self.message


class ConfigurationError(MoodMomentError):
    """Erros de configuração da aplicação."""
    default_error_code = "CONFIGURATION_ERROR"


# Exceções de banco de dados
class DatabaseError(MoodMomentError):
    """Falha no armazenamento relacional."""
    default_error_code = "DATABASE_ERROR"


class CacheError(MoodMomentError):
    """Exceção base para erros de cache."""
    default_error_code = "CACHE_ERROR"


# Exceções de API
class ValidationError(MoodMomentError):
    """Entrada ausente ou malformada."""

    status_code = status.HTTP_400_BAD_REQUEST
    default_error_code = "VALIDATION_ERROR"

    def __init__(self, message: str = "Erro de validação", field: Optional[str] = None, **kwargs):
        if field:
            details = kwargs.get("details") or {}
            details.update({"field": field})
            kwargs["details"] = details
        super().__init__(message, **kwargs)


class ConflictError(MoodMomentError):
    """Recurso duplicado."""

    status_code = status.HTTP_409_CONFLICT
    default_error_code = "CONFLICT"

    def __init__(self, resource: str = "Registro", field: Optional[str] = None, **kwargs):
        message = f"{resource} já existe"
        details = kwargs.get("details") or {}
        details.update({"resource": resource, "field": field})
        kwargs["details"] = details
        super().__init__(message, **kwargs)


class UnauthorizedError(MoodMomentError):
    """Token ausente, inválido ou expirado, ou credenciais incorretas."""

    status_code = status.HTTP_401_UNAUTHORIZED
    default_error_code = "UNAUTHORIZED"

    def __init__(self, message: str = "Falha na autenticação", **kwargs):
        super().__init__(message, **kwargs)


class ForbiddenError(MoodMomentError):
    """Autenticado, mas sem permissão."""

    status_code = status.HTTP_403_FORBIDDEN
    default_error_code = "FORBIDDEN"

    def __init__(self, message: str = "Acesso negado", **kwargs):
        super().__init__(message, **kwargs)


class NotFoundError(MoodMomentError):
    """Recurso inexistente."""

    status_code = status.HTTP_404_NOT_FOUND
    default_error_code = "NOT_FOUND"

    def __init__(self, resource: str = "Registro", record_id: Any = None, **kwargs):
        message = f"{resource} não encontrado"
        if record_id:
            message += f" (ID: {record_id})"

        details = kwargs.get("details") or {}
        details.update({"resource": resource, "record_id": record_id})
        kwargs["details"] = details
        super().__init__(message, **kwargs)


class RateLimitError(MoodMomentError):
    """Limite de taxa excedido."""

    status_code = status.HTTP_429_TOO_MANY_REQUESTS
    default_error_code = "RATE_LIMIT_EXCEEDED"

    def __init__(self, limit: int, window: str = "minute", retry_after: int = 60, **kwargs):
        message = f"Limite de taxa excedido: {limit} requests por {window}"
        self.limit = limit
        self.window = window
        self.retry_after = retry_after

        details = kwargs.get("details") or {}
        details.update({"limit": limit, "window": window})
        kwargs["details"] = details
        super().__init__(message, **kwargs)


class InternalError(MoodMomentError):
    """Falha inesperada sem detalhes expostos ao cliente."""

    def __init__(self, message: str = "Erro interno do servidor", **kwargs):
        super().__init__(message, **kwargs)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", "unknown")


# Exception handlers para FastAPI
async def moodmoment_error_handler(request: Request, exc: MoodMomentError) -> JSONResponse:
    """Handler para exceções da aplicação."""
    log_level = logging.ERROR if exc.status_code >= 500 else logging.INFO
    logger.log(
        log_level,
        f"Exceção da aplicação: {exc.__class__.__name__}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": exc.to_dict(),
        }
    )

    headers: Dict[str, str] = {}
    if isinstance(exc, UnauthorizedError):
        headers["WWW-Authenticate"] = "Bearer"
    elif isinstance(exc, RateLimitError):
        headers["Retry-After"] = str(exc.retry_after)

    content = exc.to_dict()
    if exc.status_code >= 500:
        # Não vazar detalhes internos
        content = {
            "error": exc.error_code,
            "message": "Erro interno do servidor",
            "details": {"request_id": _request_id(request)},
        }

    return JSONResponse(
        status_code=exc.status_code,
        content=content,
        headers=headers or None
    )


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Converte erros de validação do pydantic em 400."""
    errors = [
        {
            "field": ".".join(str(part) for part in error.get("loc", ())[1:]),
            "message": error.get("msg", ""),
        }
        for error in exc.errors()
    ]

    logger.info(
        f"Requisição inválida: {request.method} {request.url.path}",
        extra={"errors": errors}
    )

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={
            "error": "VALIDATION_ERROR",
            "message": "Dados da requisição inválidos",
            "details": {"errors": errors},
        }
    )


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handler personalizado para HTTPException."""
    logger.warning(
        f"HTTP Exception {exc.status_code}: {exc.detail}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "status_code": exc.status_code
        }
    )

    if isinstance(exc.detail, dict) and "error" in exc.detail:
        return JSONResponse(
            status_code=exc.status_code,
            content=exc.detail,
            headers=getattr(exc, "headers", None)
        )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": f"HTTP_{exc.status_code}",
            "message": str(exc.detail),
            "details": {}
        },
        headers=getattr(exc, "headers", None)
    )


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handler para exceções não tratadas: responde como InternalError genérico."""
    logger.error(
        f"Exceção não tratada: {exc.__class__.__name__}",
        extra={
            "path": request.url.path,
            "method": request.method,
            "error": str(exc),
            "traceback": traceback.format_exc()
        }
    )

    return await moodmoment_error_handler(request, InternalError())


def get_exception_handlers() -> Dict[Union[int, type], Callable]:
    """Retorna handlers de exceção para FastAPI."""
    return {
        MoodMomentError: moodmoment_error_handler,
        RequestValidationError: request_validation_handler,
        StarletteHTTPException: http_exception_handler,
        Exception: general_exception_handler,
    }


logger.info("Módulo de exceções carregado")
