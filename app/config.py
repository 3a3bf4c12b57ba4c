import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class DatabaseConfig(BaseModel):
    url: str = Field(default="sqlite:///./data/moodmoment.db")
    pool_size: int = Field(default=10, ge=1, le=50)
    max_overflow: int = Field(default=20, ge=0, le=100)
    pool_timeout: int = Field(default=30, ge=5, le=300)
    pool_recycle: int = Field(default=3600, ge=300, le=86400)
    echo: bool = Field(default=False)

    @field_validator("url")
    @classmethod
    def ensure_sqlite_directory(cls, v: str) -> str:
        """Cria o diretório do arquivo SQLite antes do engine abrir a conexão."""
        if not v:
            raise ValueError("MOODMOMENT_DATABASE__URL vazia")
        if v.startswith("sqlite:///") and ":memory:" not in v:
            Path(v[len("sqlite:///"):]).parent.mkdir(parents=True, exist_ok=True)
        return v


class CacheConfig(BaseModel):
    url: str = Field(default="redis://localhost:6379/0")
    enabled: bool = Field(default=True)
    max_connections: int = Field(default=20, ge=1, le=100)
    socket_timeout: float = Field(default=5.0, ge=1.0, le=30.0)
    socket_connect_timeout: float = Field(default=5.0, ge=1.0, le=30.0)
    retry_on_timeout: bool = Field(default=True)
    health_check_interval: int = Field(default=30, ge=10, le=300)
    default_ttl: int = Field(default=300, ge=10, le=86400)
    key_prefix: str = Field(default="moodmoment:")

    @field_validator("url")
    @classmethod
    def validate_redis_url(cls, v: str) -> str:
        if not v.startswith(("redis://", "rediss://")):
            raise ValueError("MOODMOMENT_CACHE__URL precisa usar redis:// ou rediss://")
        return v


class RateLimitConfig(BaseModel):
    """Limites por cliente e endpoint; proxies só são confiáveis se declarados."""
    requests_per_minute: int = Field(default=20, ge=1, le=10000)
    requests_per_hour: int = Field(default=200, ge=1, le=100000)
    enabled: bool = Field(default=True)
    trust_proxy_headers: bool = Field(default=False)


class ServerConfig(BaseModel):
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000, ge=1024, le=65535)
    reload: bool = Field(default=False)


class MoodConfig(BaseModel):
    note_max_length: int = Field(default=500, ge=1, le=5000)
    stats_window_days: int = Field(default=7, ge=1, le=90)
    stats_cache_ttl: int = Field(default=300, ge=10, le=86400)


class Settings(BaseSettings):
    """
    Configuração do MoodMoment lida do ambiente (prefixo MOODMOMENT_).

    Seções aninhadas usam "__", por exemplo MOODMOMENT_DATABASE__URL.
    """

    model_config = SettingsConfigDict(
        env_prefix="MOODMOMENT_",
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        validate_assignment=True,
    )

    app_name: str = Field(default="MoodMoment API")
    app_version: str = Field(default="1.0.0")
    api_prefix: str = Field(default="/api/v1")
    debug: bool = Field(default=False)
    environment: Literal["development", "staging", "production"] = Field(default="development")
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(default="INFO")

    # Base dos links de reset quando o request não traz Origin
    frontend_url: str = Field(default="http://localhost:5173")

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    rate_limit: RateLimitConfig = Field(default_factory=RateLimitConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    moods: MoodConfig = Field(default_factory=MoodConfig)

    cors_origins: list[str] = Field(
        default_factory=lambda: ["http://localhost:3000", "http://localhost:5173", "http://127.0.0.1:5173"]
    )
    cors_production_origins: list[str] = Field(
        default_factory=lambda: ["https://moodmoment.example.com"]
    )
    cors_allow_credentials: bool = Field(default=True)
    cors_allow_methods: list[str] = Field(default=["GET", "POST", "PUT", "OPTIONS"])
    cors_allow_headers: list[str] = Field(default=["*"])

    @field_validator("log_level", mode="before")
    @classmethod
    def configure_logging(cls, v: str) -> str:
        level = str(v).upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Nível de log inválido: {v}")
        logging.basicConfig(
            level=getattr(logging, level),
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )
        return level

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @property
    def effective_cors_origins(self) -> list[str]:
        return self.cors_production_origins if self.is_production else self.cors_origins

    def get_cache_key(self, key: str) -> str:
        return f"{self.cache.key_prefix}{key}"

    def api_path(self, path: str = "") -> str:
        return f"{self.api_prefix}{path}"


@lru_cache()
def get_settings() -> Settings:
    """Settings em cache; testes limpam com get_settings.cache_clear()."""
    return Settings()


logger = logging.getLogger(__name__)
logger.info(f"Configurações carregadas - Ambiente: {get_settings().environment}")
