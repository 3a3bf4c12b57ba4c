import logging
import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, status
from fastapi.responses import JSONResponse

from app.admin.router import router as admin_router
from app.auth.dependencies import get_credential_hasher, get_token_codec
from app.auth.router import router as auth_router
from app.auth.service import AuthService
from app.config import get_settings
from app.core.cache import check_cache_health, get_cache_service
from app.core.database import check_database_health, get_session_factory, init_database
from app.core.exceptions import get_exception_handlers
from app.moods.router import router as moods_router
from app.shared.middleware import setup_middleware
from app.shared.rate_limiter import check_rate_limiter_health
from app.users.router import router as users_router

settings = get_settings()
logger = logging.getLogger(__name__)

DESCRIPTION = "Diário de humor com check-ins e sugestões de bem-estar"


def bootstrap_admin() -> None:
    """Cria o administrador configurado, se necessário."""
    session = get_session_factory()()
    try:
        service = AuthService(session, hasher=get_credential_hasher(), codec=get_token_codec())
        admin = service.ensure_admin_exists()
        if admin:
            logger.info(f"Administrador disponível: {admin.id}")
    finally:
        session.close()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Gerencia ciclo de vida da aplicação."""

    # STARTUP
    logger.info(f"Iniciando {settings.app_name} v{settings.app_version} - {settings.environment}")

    try:
        logger.info("Inicializando banco de dados...")
        init_database()
        bootstrap_admin()

        cache_service = await get_cache_service(force_fallback=not settings.cache.enabled)
        if await cache_service.ping():
            logger.info("Cache Redis conectado")
        else:
            logger.warning("Cache Redis indisponível - usando fallback em memória")

    except Exception as e:
        logger.error(f"Erro durante inicialização: {e}")
        raise

    logger.info(f"{settings.app_name} iniciado com sucesso")

    yield

    # SHUTDOWN
    logger.info(f"Encerrando {settings.app_name}...")
    cache_service = await get_cache_service(force_fallback=not settings.cache.enabled)
    await cache_service.close()
    logger.info(f"{settings.app_name} encerrado")


app = FastAPI(
    title=settings.app_name,
    version=settings.app_version,
    description=DESCRIPTION,
    lifespan=lifespan,
    debug=settings.debug,
    docs_url="/docs" if settings.debug else None,
    redoc_url="/redoc" if settings.debug else None,
    openapi_url="/openapi.json" if settings.debug else None,
    openapi_tags=[
        {"name": "authentication", "description": "Registro, login e redefinição de senha"},
        {"name": "users", "description": "Perfil do usuário autenticado"},
        {"name": "moods", "description": "Check-ins de humor, sugestões e estatísticas"},
        {"name": "admin", "description": "Consultas administrativas"},
        {"name": "health", "description": "Verificações de saúde e status"},
    ]
)

setup_middleware(app)

for exception_type, handler in get_exception_handlers().items():
    app.add_exception_handler(exception_type, handler)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(moods_router)
app.include_router(admin_router)


@app.get(
    "/",
    summary="Página inicial",
    description="Informações básicas da API",
    tags=["health"]
)
async def root():
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "description": DESCRIPTION,
        "environment": settings.environment,
        "api_prefix": settings.api_prefix,
        "docs_url": "/docs" if settings.debug else "disabled",
        "status": "running",
    }


@app.get(
    "/health",
    summary="Health check geral",
    description="Verificação de saúde de todos os componentes",
    tags=["health"]
)
async def health_check():
    """
    Health check completo da aplicação.

    O banco é crítico (503 se indisponível); o cache pode operar em
    fallback e nesse caso o status geral é "degraded".
    """
    db_health = check_database_health()
    cache_health = await check_cache_health()
    rate_limiter_health = await check_rate_limiter_health()

    if db_health.get("status") != "healthy":
        overall_status = "unhealthy"
    elif cache_health.get("status") != "healthy" and settings.cache.enabled:
        overall_status = "degraded"
    else:
        overall_status = "healthy"

    content = {
        "status": overall_status,
        "timestamp": time.time(),
        "components": {
            "database": db_health.get("status", "unknown"),
            "cache": cache_health.get("status", "unknown"),
            "rate_limiter": rate_limiter_health.get("status", "unknown"),
        },
        "version": settings.app_version,
        "environment": settings.environment,
    }

    status_code = (
        status.HTTP_503_SERVICE_UNAVAILABLE
        if overall_status == "unhealthy"
        else status.HTTP_200_OK
    )
    return JSONResponse(status_code=status_code, content=content)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "app.main:app",
        host=settings.server.host,
        port=settings.server.port,
        reload=settings.server.reload and settings.debug,
        workers=1,
        log_level=settings.log_level.lower(),
        access_log=settings.debug
    )
