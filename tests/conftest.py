import os
import tempfile

# Ambiente de teste antes de importar a aplicação (settings são lidos no import)
_test_data_dir = tempfile.mkdtemp(prefix="moodmoment_test_")
TEST_ENV = {
    "MOODMOMENT_DEBUG": "false",
    "MOODMOMENT_ENVIRONMENT": "development",
    "MOODMOMENT_DATABASE__URL": f"sqlite:///{os.path.join(_test_data_dir, 'test.db')}",
    "MOODMOMENT_DATABASE__ECHO": "false",
    "MOODMOMENT_CACHE__ENABLED": "false",
    "MOODMOMENT_RATE_LIMIT__ENABLED": "false",
    "MOODMOMENT_LOG_LEVEL": "WARNING",
    "MOODMOMENT_JWT_SECRET_KEY": "test-secret-key-with-enough-length-0123456789",
}
for _key, _value in TEST_ENV.items():
    os.environ[_key] = _value

from typing import Dict

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.auth.dependencies import get_credential_hasher, get_token_codec
from app.auth.hashing import CredentialHasher
from app.auth.models import User
from app.auth.tokens import TokenCodec
from app.config import get_settings
from app.core.cache import CacheService
from app.core.database import Base, enable_sqlite_foreign_keys
from app.dependencies import get_cache_dependency, get_db_session
from app.main import app

TEST_SECRET = TEST_ENV["MOODMOMENT_JWT_SECRET_KEY"]


# FIXTURES DE BANCO DE DADOS

@pytest.fixture
def test_engine() -> Engine:
    """Engine SQLite in-memory isolada por teste."""
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
        echo=False,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)

    yield engine

    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def test_db(test_engine) -> Session:
    """Sessão compartilhada entre o teste e os requests do cliente."""
    session = sessionmaker(bind=test_engine, expire_on_commit=False)()
    yield session
    session.close()


# FIXTURES DE AUTENTICAÇÃO

@pytest.fixture
def hasher() -> CredentialHasher:
    return CredentialHasher(scheme="email_sha256")


@pytest.fixture
def codec() -> TokenCodec:
    return TokenCodec(secret=TEST_SECRET)


# FIXTURES DE CACHE

@pytest.fixture
def test_cache() -> CacheService:
    """Cache em memória, novo a cada teste."""
    return CacheService(fallback_mode=True)


# CLIENTE DE TESTE

@pytest.fixture
def test_client(test_db, test_cache, codec, hasher):
    """Cliente FastAPI com banco, cache e codec de teste."""
    def override_get_db():
        yield test_db

    async def override_get_cache():
        return test_cache

    app.dependency_overrides[get_db_session] = override_get_db
    app.dependency_overrides[get_cache_dependency] = override_get_cache
    app.dependency_overrides[get_token_codec] = lambda: codec
    app.dependency_overrides[get_credential_hasher] = lambda: hasher

    try:
        with TestClient(app) as client:
            yield client
    finally:
        app.dependency_overrides.clear()


# DADOS DE TESTE

def make_user(
    db: Session,
    hasher: CredentialHasher,
    email: str,
    password: str = "secret1",
    full_name: str = "Test User",
    is_admin: bool = False,
) -> User:
    user = User(
        email=email,
        full_name=full_name,
        password_hash=hasher.hash(password, email),
        is_admin=is_admin,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


@pytest.fixture
def user_factory(hasher):
    """Cria usuários com digest calculado pelo hasher de teste."""
    def factory(db: Session, email: str, **kwargs) -> User:
        return make_user(db, hasher, email, **kwargs)
    return factory


@pytest.fixture
def test_user(test_db, hasher) -> User:
    return make_user(test_db, hasher, "ann@example.com", full_name="Ann")


@pytest.fixture
def admin_user(test_db, hasher) -> User:
    return make_user(test_db, hasher, "admin@example.com", password="admin-pass", full_name="Admin", is_admin=True)


@pytest.fixture
def auth_headers(test_user, codec) -> Dict[str, str]:
    return {"Authorization": f"Bearer {codec.issue(test_user.id)}"}


@pytest.fixture
def admin_headers(admin_user, codec) -> Dict[str, str]:
    return {"Authorization": f"Bearer {codec.issue(admin_user.id)}"}


# CONFIGURAÇÃO PYTEST

def pytest_configure(config):
    config.addinivalue_line("markers", "slow: marca testes lentos")
    config.addinivalue_line("markers", "integration: marca testes de integração")


@pytest.fixture(autouse=True)
def cleanup():
    """Cleanup automático entre testes."""
    yield
    app.dependency_overrides.clear()
    get_settings.cache_clear()
