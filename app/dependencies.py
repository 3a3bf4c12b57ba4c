import logging
from typing import Generator

from fastapi import Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import Settings, get_settings
from app.core.cache import CacheService, get_cache_service
from app.core.database import get_session_factory
from app.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


def get_config() -> Settings:
    """Dependency para obter configurações da aplicação."""
    return get_settings()


def get_db_session() -> Generator[Session, None, None]:
    """Dependency com uma sessão de banco por request."""
    session_factory = get_session_factory()
    session = session_factory()
    logger.debug("Sessão de banco de dados criada")

    try:
        yield session

    except SQLAlchemyError as e:
        logger.error(f"Erro SQLAlchemy: {e}")
        session.rollback()
        raise DatabaseError(
            message=f"Erro de banco de dados: {str(e)}",
            details={"error_type": type(e).__name__}
        ) from e

    except Exception:
        session.rollback()
        raise

    finally:
        session.close()
        logger.debug("Sessão fechada")


async def get_cache_dependency(config: Settings = Depends(get_config)) -> CacheService:
    """Dependency para serviço de cache com fallback gracioso."""
    if not config.cache.enabled:
        return await get_cache_service(force_fallback=True)
    return await get_cache_service()
