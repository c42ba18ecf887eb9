import pytest
from fastapi.testclient import TestClient
from app.core.config import Settings
from app.core.database import ConnectionManager
from app.core.security import PasswordHasher, TokenService
from app.main import create_app
from app.services.auth_service import AuthService

# Lowest bcrypt cost keeps the suite fast; production uses 10
TEST_BCRYPT_ROUNDS = 4


@pytest.fixture
def make_settings(tmp_path):
    """Build Settings pointing at a throwaway SQLite file"""
    def _make(**overrides) -> Settings:
        values = {
            "DATABASE_URL": f"sqlite:///{tmp_path / 'aura.db'}",
            "SECRET_KEY": "test-secret-key",
            "BCRYPT_ROUNDS": TEST_BCRYPT_ROUNDS,
            "DB_CONNECT_RETRIES": 1,
            "DB_CONNECT_RETRY_DELAY": 0,
            "ENVIRONMENT": "test",
        }
        values.update(overrides)
        return Settings(**values)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def manager(settings):
    manager = ConnectionManager(settings)
    yield manager
    manager.close()


@pytest.fixture
def hasher():
    return PasswordHasher(rounds=TEST_BCRYPT_ROUNDS)


@pytest.fixture
def tokens(settings):
    return TokenService.from_settings(settings)


@pytest.fixture
def auth_service(manager, hasher, tokens):
    return AuthService(manager, hasher, tokens)


@pytest.fixture
def client(settings):
    # Entering the client runs the lifespan (background connect job)
    with TestClient(create_app(settings)) as test_client:
        yield test_client
