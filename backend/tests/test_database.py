from types import SimpleNamespace
from unittest.mock import MagicMock
import pytest
from app.core.database import ConnectionManager
from app.core.errors import DatabaseUnavailableError
from app.models.user import User

UNREACHABLE_URL = "sqlite:////nonexistent-aura-dir/nested/aura.db"


@pytest.fixture
def unreachable(make_settings):
    manager = ConnectionManager(make_settings(DATABASE_URL=UNREACHABLE_URL, DB_CONNECT_RETRIES=3))
    yield manager
    manager.close()


def test_health_check_when_connected(manager):
    assert manager.health_check() is True


def test_health_check_reports_disconnected_without_raising(unreachable):
    assert unreachable.health_check() is False


def test_connect_with_retry_creates_schema(manager):
    assert manager.connect_with_retry() is True
    assert manager.with_connection(lambda db: db.query(User).count()) == 0


def test_connect_with_retry_gives_up_quietly(unreachable, caplog):
    assert unreachable.connect_with_retry() is False
    attempts = [r for r in caplog.records if "Database connection error" in r.getMessage()]
    assert len(attempts) == 3


def test_schema_created_lazily_on_first_use(manager):
    # No startup connect ran; the first session still works
    assert manager.with_connection(lambda db: db.query(User).all()) == []


def test_unreachable_database_surfaces_as_domain_error(unreachable):
    with pytest.raises(DatabaseUnavailableError):
        unreachable.with_connection(lambda db: db.query(User).count())


def test_session_rolls_back_and_releases_on_error(manager):
    with pytest.raises(RuntimeError):
        with manager.session() as db:
            db.add(User(email="alice@example.com", password_hash="x"))
            db.flush()
            raise RuntimeError("boom")

    assert manager.engine.pool.checkedout() == 0
    assert manager.with_connection(lambda db: db.query(User).count()) == 0


def test_session_commits_on_success(manager):
    with manager.session() as db:
        db.add(User(email="alice@example.com", password_hash="x"))

    assert manager.with_connection(lambda db: db.query(User).count()) == 1
    assert manager.engine.pool.checkedout() == 0


def test_pool_is_bounded(manager, settings):
    assert manager.engine.pool.size() == settings.DB_POOL_SIZE
    assert manager.engine.pool.timeout() == settings.DB_POOL_TIMEOUT


def test_disconnect_errors_trigger_reconnect_hook(manager):
    manager.on_disconnect = MagicMock()

    manager._handle_engine_error(SimpleNamespace(is_disconnect=False))
    manager.on_disconnect.assert_not_called()

    manager._handle_engine_error(SimpleNamespace(is_disconnect=True))
    manager.on_disconnect.assert_called_once()


def test_reconnect_restores_connectivity(manager):
    assert manager.connect_with_retry() is True
    assert manager.reconnect() is True
    assert manager.health_check() is True
