import logging
from functools import lru_cache
from typing import Any, Dict

from sqlalchemy import Engine, MetaData, create_engine, event, text
from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import DeclarativeBase, Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.config import get_settings
from app.core.exceptions import DatabaseError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Base declarativa para modelos SQLAlchemy 2.0 com suporte a typing."""

    metadata = MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "ck": "ck_%(table_name)s_%(constraint_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
            "pk": "pk_%(table_name)s"
        }
    )

    def __repr__(self) -> str:
        class_name = self.__class__.__name__
        primary_key = getattr(self, 'id', 'unknown')
        return f"<{class_name}(id={primary_key})>"


def enable_sqlite_foreign_keys(engine: Engine) -> None:
    """Liga PRAGMA foreign_keys em cada conexão SQLite."""
    @event.listens_for(engine, "connect")
    def receive_connect(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()


def create_database_engine(database_url: str = None) -> Engine:
    """Cria e configura engine do banco."""
    settings = get_settings()
    database_url = database_url or settings.database.url

    try:
        engine_kwargs: Dict[str, Any] = {
            "echo": settings.database.echo,
            "future": True,
        }

        if database_url.startswith("sqlite"):
            logger.info("Configurando engine SQLite")
            connect_args = {"check_same_thread": False, "timeout": 20}
            engine_kwargs["connect_args"] = connect_args
            if ":memory:" in database_url:
                engine_kwargs["poolclass"] = StaticPool
            else:
                engine_kwargs["pool_pre_ping"] = True
        else:
            logger.info("Configurando engine PostgreSQL")
            engine_kwargs.update({
                "pool_size": settings.database.pool_size,
                "max_overflow": settings.database.max_overflow,
                "pool_timeout": settings.database.pool_timeout,
                "pool_recycle": settings.database.pool_recycle,
                "pool_pre_ping": True,
            })

        engine = create_engine(database_url, **engine_kwargs)

        if database_url.startswith("sqlite"):
            enable_sqlite_foreign_keys(engine)

        logger.info(f"Engine de banco criado: {engine.url.render_as_string(hide_password=True)}")
        return engine

    except Exception as e:
        logger.error(f"Erro ao criar engine: {e}")
        raise DatabaseError(
            message=f"Falha ao criar engine: {str(e)}",
            details={"error": str(e)}
        ) from e


@lru_cache()
def get_engine() -> Engine:
    """Factory singleton para engine de banco."""
    return create_database_engine()


def get_session_factory(engine: Engine = None) -> sessionmaker[Session]:
    """Factory para criar sessionmaker configurado."""
    return sessionmaker(
        bind=engine or get_engine(),
        class_=Session,
        autoflush=False,
        autocommit=False,
        expire_on_commit=False,
    )


def test_database_connection() -> bool:
    """Testa conectividade com banco executando query simples."""
    try:
        with get_engine().connect() as connection:
            test_value = connection.execute(text("SELECT 1")).scalar()

        if test_value != 1:
            raise DatabaseError(
                message="Teste falhou: resultado inesperado",
                details={"expected": 1, "received": test_value}
            )

        logger.info("Teste de conexão bem-sucedido")
        return True

    except (OperationalError, DisconnectionError) as e:
        logger.error(f"Erro de conectividade: {e}")
        raise DatabaseError(
            message=f"Falha na conexão: {str(e)}",
            details={"error_type": type(e).__name__}
        ) from e


def init_database() -> None:
    """Inicializa banco criando todas as tabelas."""
    # Importa os modelos para registrar as tabelas no metadata
    from app.auth import models as auth_models  # noqa: F401
    from app.moods import models as mood_models  # noqa: F401

    try:
        engine = get_engine()
        logger.info("Inicializando banco de dados...")

        Base.metadata.create_all(bind=engine)
        logger.info("Banco inicializado com sucesso")

        test_database_connection()

    except SQLAlchemyError as e:
        logger.error(f"Erro ao inicializar banco: {e}")
        raise DatabaseError(
            message=f"Falha na inicialização: {str(e)}",
            details={"error": str(e)}
        ) from e


def check_database_health() -> Dict[str, Any]:
    """Executa verificação de saúde do banco."""
    try:
        engine = get_engine()
        connection_ok = test_database_connection()

        return {
            "status": "healthy" if connection_ok else "unhealthy",
            "dialect": engine.dialect.name,
            "tables": list(Base.metadata.tables.keys()),
        }

    except Exception as e:
        logger.error(f"Erro no health check: {e}")
        return {
            "status": "unhealthy",
            "error_type": type(e).__name__,
        }


logger.info("Módulo de banco carregado")
