"""
Database session management for the Library Ledger.

The ledger lives in one embedded SQLite file (or a private in-memory database
in tests) with a single writer. ``DatabaseManager`` owns:

- the engine: one shared connection with foreign keys enforced
- unit-of-work scopes: commit on success, roll back on any failure
- the lock every scope holds, so one unit of work at a time owns the connection

The module-level ``mcp_safe_*`` helpers are what repositories call to reach
the store; they turn SQLAlchemy failures into the typed errors of
``errors.py``.

There is no module-level manager instance. The entry point builds one and
passes it down.
"""

import logging
import threading
from collections.abc import Callable, Generator, Iterator
from contextlib import contextmanager
from typing import TypeVar

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine, Result
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy.sql import Executable

from .errors import RepositoryException, translate_integrity_error
from .schema import Base

logger = logging.getLogger(__name__)

IN_MEMORY_URL = "sqlite:///:memory:"


def _enable_foreign_keys(dbapi_connection, _connection_record) -> None:
    cursor = dbapi_connection.cursor()
    try:
        cursor.execute("PRAGMA foreign_keys=ON")
    finally:
        cursor.close()


class DatabaseManager:
    """
    Engine, sessions and writer lock for one ledger database.

    Nothing touches the database until the engine is first used, so tests can
    build managers freely.
    """

    def __init__(self, database_url: str = IN_MEMORY_URL):
        if not database_url.startswith("sqlite"):
            raise ValueError(f"Only SQLite databases are supported, got {database_url}")
        self.database_url = database_url
        self._engine: Engine | None = None
        self._session_factory: sessionmaker | None = None
        # Re-entrant: a scope may be opened inside another on the same thread
        self.write_lock = threading.RLock()

    @property
    def engine(self) -> Engine:
        """
        The SQLAlchemy engine, created on first access.

        A single shared connection (``StaticPool``) keeps in-memory databases
        alive across sessions. ``check_same_thread`` is off because
        ``write_lock``, held by every scope, serializes access between threads.
        """
        if self._engine is None:
            engine = create_engine(
                self.database_url,
                poolclass=StaticPool,
                connect_args={"check_same_thread": False},
            )
            event.listen(engine, "connect", _enable_foreign_keys)
            self._engine = engine
            logger.info("Opened ledger database %s", engine.url)
        return self._engine

    @property
    def session_factory(self) -> sessionmaker:
        if self._session_factory is None:
            self._session_factory = sessionmaker(
                bind=self.engine,
                autoflush=False,
                # Returned ORM rows stay readable after the scope commits
                expire_on_commit=False,
            )
        return self._session_factory

    def create_session(self) -> Session:
        """A new session outside the lock; the caller closes it. Prefer ``session_scope()``."""
        return self.session_factory()

    @contextmanager
    def session_scope(self) -> Generator[Session, None, None]:
        """
        One unit of work, holding ``write_lock`` until the session is closed.

        ```python
        with db_manager.session_scope() as session:
            BookRepository(session).get_by_id(book_id)
        ```

        Readers take it too: a commit or rollback on the shared connection
        ends whatever transaction is open on it.

        Commits when the block exits normally. Ledger failures
        (``RepositoryException``) roll back and propagate unchanged; anything
        else is logged with its traceback first.
        """
        with self.write_lock:
            session = self.create_session()
            try:
                yield session
                mcp_safe_commit(session, "commit unit of work")
            except RepositoryException as e:
                session.rollback()
                logger.debug("Rolled back after %s: %s", type(e).__name__, e)
                raise
            except Exception:
                session.rollback()
                logger.exception("Unexpected error inside a unit of work, rolled back")
                raise
            finally:
                session.close()

    @contextmanager
    def write_scope(self) -> Generator[Session, None, None]:
        """A ``session_scope()`` for ledger mutations; the lock covers read-check-write."""
        with self.session_scope() as session:
            yield session

    def init_database(self, drop_existing: bool = False) -> None:
        """Create any missing tables, optionally dropping everything first."""
        if drop_existing:
            logger.warning("Dropping all ledger tables")
            Base.metadata.drop_all(bind=self.engine)
        Base.metadata.create_all(bind=self.engine)
        logger.info("Ledger schema ready (%d tables)", len(Base.metadata.tables))

    def verify_connection(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except SQLAlchemyError:
            logger.exception("Cannot reach ledger database %s", self.database_url)
            return False
        return True

    def close(self) -> None:
        """Dispose of the engine; the manager can be reopened by using it again."""
        if self._engine is not None:
            self._engine.dispose()
            logger.info("Closed ledger database")
        self._engine = None
        self._session_factory = None


@contextmanager
def _translated(session: Session, operation: str) -> Iterator[None]:
    """Roll back and re-raise store failures as typed ledger errors."""
    try:
        yield
    except IntegrityError as e:
        session.rollback()
        raise translate_integrity_error(e) from e
    except SQLAlchemyError as e:
        session.rollback()
        raise RepositoryException(f"Database operation '{operation}' failed: {e!s}") from e


def mcp_safe_commit(session: Session, operation: str) -> None:
    """
    Commit ``session``.

    Raises:
        DuplicateError, DataValidationError, NotFoundError: constraint
            violations (unique, check/not-null, foreign key)
        RepositoryException: any other database failure
    """
    with _translated(session, operation):
        session.commit()


def mcp_safe_flush(session: Session, operation: str) -> None:
    """Flush pending writes inside a larger unit whose scope owns the commit."""
    with _translated(session, operation):
        session.flush()


def mcp_safe_execute(session: Session, statement: Executable, operation: str) -> Result:
    """
    Execute a DML statement such as a guarded ``UPDATE``.

    These bypass the unit-of-work flush, so their constraint violations have
    to be translated here.
    """
    with _translated(session, operation):
        return session.execute(statement)


T = TypeVar("T")


def mcp_safe_query(session: Session, query_func: Callable[[Session], T], error_msg: str) -> T:
    """Run ``query_func(session)``, wrapping store errors in ``RepositoryException``."""
    try:
        return query_func(session)
    except SQLAlchemyError as e:
        logger.exception("%s", error_msg)
        raise RepositoryException(f"{error_msg}: Database query failed") from e
