import logging
import threading
from contextlib import contextmanager
from typing import Any, Callable, Dict, Iterator, Optional, TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DisconnectionError, OperationalError, SQLAlchemyError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.orm import Session, declarative_base, sessionmaker

from app.core.config import Settings
from app.core.errors import DatabaseUnavailableError

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Base class for all database models
# All models inherit from this to get SQLAlchemy ORM functionality
Base = declarative_base()


def _engine_options(settings: Settings) -> Dict[str, Any]:
    """Pool configuration for create_engine"""
    options: Dict[str, Any] = {
        # Ping on checkout so dead connections are replaced instead of handed out
        "pool_pre_ping": True,
    }
    url = settings.DATABASE_URL
    if url.startswith("sqlite"):
        # Sessions are used from FastAPI's threadpool
        options["connect_args"] = {"check_same_thread": False}
        if ":memory:" in url or url.rstrip("/") in ("sqlite:", "sqlite+pysqlite:"):
            # In-memory SQLite uses a singleton pool with no sizing knobs
            return options
    options.update(
        pool_size=settings.DB_POOL_SIZE,
        max_overflow=settings.DB_MAX_OVERFLOW,
        pool_timeout=settings.DB_POOL_TIMEOUT,
        pool_recycle=settings.DB_POOL_RECYCLE,
    )
    return options


class ConnectionManager:
    """
    Owns the connection pool for the process.

    Startup never blocks on the database: ``connect_with_retry`` is run by a
    background job, and if it gives up the schema is created lazily on the
    first real request. Disconnect-class errors raised anywhere in the engine
    trigger ``on_disconnect`` so a supervisor can schedule a reconnect.
    """

    def __init__(self, settings: Settings, on_disconnect: Optional[Callable[[], None]] = None):
        self.settings = settings
        self.on_disconnect = on_disconnect
        self.engine: Engine = create_engine(settings.DATABASE_URL, **_engine_options(settings))
        # autocommit=False: Changes require explicit commit
        # autoflush=False: Don't auto-flush before queries
        # expire_on_commit=False: returned rows stay readable after the session closes
        self._session_factory = sessionmaker(
            autocommit=False, autoflush=False, expire_on_commit=False, bind=self.engine
        )
        self._schema_ready = False
        self._schema_lock = threading.Lock()
        self._closing = threading.Event()
        event.listen(self.engine, "handle_error", self._handle_engine_error)

    def _handle_engine_error(self, context) -> None:
        if context.is_disconnect and self.on_disconnect is not None:
            logger.warning("Database connection lost, scheduling reconnect")
            try:
                self.on_disconnect()
            except Exception:
                # The original error must still propagate to the caller
                logger.exception("Failed to schedule database reconnect")

    def ensure_schema(self) -> None:
        """Create tables for all models if they don't exist yet"""
        if self._schema_ready:
            return
        with self._schema_lock:
            if self._schema_ready:
                return
            # Import models so they are registered on Base.metadata
            from app.models import user  # noqa: F401

            # In production, use migrations (Alembic) instead of create_all
            Base.metadata.create_all(bind=self.engine)
            self._schema_ready = True

    def connect_with_retry(self) -> bool:
        """
        Probe the database with bounded retries.

        Returns True once a connection succeeds and the schema is in place.
        Exhausting all attempts only logs - the pool retries on first use.
        """
        attempts = max(1, self.settings.DB_CONNECT_RETRIES)
        delay = self.settings.DB_CONNECT_RETRY_DELAY
        for attempt in range(1, attempts + 1):
            try:
                with self.engine.connect() as connection:
                    connection.execute(text("SELECT 1"))
                self.ensure_schema()
                logger.info(f"Database connected (attempt {attempt}/{attempts})")
                return True
            except SQLAlchemyError as exc:
                logger.warning(f"Database connection error (attempt {attempt}/{attempts}): {exc}")
                if attempt < attempts:
                    logger.info(f"Retrying in {delay} seconds... ({attempts - attempt} attempts left)")
                    # Returns early when the manager is being closed
                    if self._closing.wait(delay):
                        return False
        logger.error(f"Database unreachable after {attempts} attempts; will retry on first use")
        return False

    def reconnect(self) -> bool:
        """Drop every pooled connection and connect again"""
        logger.info("Reconnecting to database")
        self.engine.dispose()
        return self.connect_with_retry()

    def health_check(self) -> bool:
        """Issue a trivial query. Never raises."""
        try:
            with self.engine.connect() as connection:
                connection.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as exc:
            logger.warning(f"Database health check failed: {exc}")
            return False

    @contextmanager
    def session(self) -> Iterator[Session]:
        """
        Provide a session bound to one pooled connection.

        Commits on success, rolls back on any error, and always closes the
        session so the connection goes back to the pool.
        """
        try:
            self.ensure_schema()
        except (OperationalError, DisconnectionError, PoolTimeoutError) as exc:
            logger.error(f"Database unavailable: {exc}")
            raise DatabaseUnavailableError() from exc

        db = self._session_factory()
        try:
            yield db
            db.commit()
        except (OperationalError, DisconnectionError, PoolTimeoutError) as exc:
            db.rollback()
            logger.error(f"Database unavailable: {exc}")
            raise DatabaseUnavailableError() from exc
        except Exception:
            db.rollback()
            raise
        finally:
            # Always close session, even if the request raised
            # Prevents connection leaks and pool starvation
            db.close()

    def with_connection(self, fn: Callable[[Session], T]) -> T:
        """Run ``fn`` with a session and return its result"""
        with self.session() as db:
            return fn(db)

    def close(self) -> None:
        self._closing.set()
        self.engine.dispose()
        logger.info("Database pool closed")
