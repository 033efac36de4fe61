"""
Engine and session management for the key pool tables.

One process-wide DatabaseManager is installed with ``initialize_db()`` and
looked up by services through ``get_db_manager()``. Tests build their own
manager against in-memory SQLite.
"""

from typing import Any, Dict, Optional

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, declarative_base, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from ..config import DatabaseConfig, get_config
from ..exceptions import ErrorCode, ServiceError
from ..utils import get_logger

Base: Any = declarative_base()

IN_MEMORY_SQLITE = "sqlite:///:memory:"


class DatabaseManager:
    """Owns the engine and a thread-scoped session registry."""

    def __init__(self, config: DatabaseConfig, development_mode: bool = False):
        self.config = config
        self.development_mode = development_mode
        self.engine = create_engine(config.connection_string, **self._engine_options())
        self.session_factory = sessionmaker(bind=self.engine)
        self.scoped_session = scoped_session(self.session_factory)

    @property
    def is_sqlite(self) -> bool:
        return self.config.connection_string.startswith("sqlite")

    @property
    def is_in_memory(self) -> bool:
        url = self.config.connection_string
        return self.is_sqlite and (":memory:" in url or url == "sqlite://")

    def _engine_options(self) -> Dict[str, Any]:
        options: Dict[str, Any] = {"echo": self.config.echo}
        if not self.is_sqlite:
            options.update(
                pool_size=self.config.pool_size,
                max_overflow=self.config.max_overflow,
                pool_timeout=self.config.pool_timeout,
            )
            return options

        options["connect_args"] = {"check_same_thread": False}
        if self.is_in_memory:
            # One shared connection, otherwise every session sees an empty database
            options["poolclass"] = StaticPool
        return options

    def create_tables(self) -> None:
        Base.metadata.create_all(self.engine)

    def drop_tables(self) -> None:
        """
        Drop every table. Only allowed in development mode.

        Raises:
            ServiceError: Outside development mode
        """
        if not self.development_mode:
            raise ServiceError(
                "Refusing to drop tables outside development mode",
                error_code=ErrorCode.CONFIGURATION_ERROR,
                operation="drop_tables",
            )
        Base.metadata.drop_all(self.engine)

    def get_session(self) -> Session:
        return self.scoped_session()

    def close_session(self, session: Optional[Session] = None) -> None:
        if session is not None:
            session.close()
        else:
            self.scoped_session.remove()

    def close(self) -> None:
        self.scoped_session.remove()
        self.engine.dispose()


def get_development_config() -> DatabaseConfig:
    """In-memory SQLite, for development and tests."""
    return DatabaseConfig(connection_string=IN_MEMORY_SQLITE)


def import_all_models() -> None:
    """Register every model on ``Base.metadata``."""
    from sqlalchemy.orm import configure_mappers

    from .db_credential_models import ApiKeyCredential  # noqa: F401

    configure_mappers()


def init_db(db_manager: DatabaseManager) -> None:
    """Create all tables on ``db_manager``."""
    get_logger().info("Initializing DB", extra={"sqlite": db_manager.is_sqlite})
    import_all_models()
    db_manager.create_tables()


_db_manager: Optional[DatabaseManager] = None


def get_db_manager() -> DatabaseManager:
    """
    Return the process-wide database manager.

    Raises:
        ServiceError: If initialize_db() has not been called
    """
    if _db_manager is None:
        raise ServiceError(
            "Database manager not initialized. Call initialize_db() first.",
            error_code=ErrorCode.CONFIGURATION_ERROR,
            operation="get_db_manager",
        )
    return _db_manager


def set_db_manager(manager: Optional[DatabaseManager]) -> None:
    """Install (or clear, with None) the process-wide manager."""
    global _db_manager
    _db_manager = manager


def initialize_db(
    config: Optional[DatabaseConfig] = None, development_mode: bool = False
) -> DatabaseManager:
    """
    Build the process-wide manager and create tables.

    Args:
        config: Defaults to ``get_config().database``
        development_mode: Allow drop_tables()
    """
    manager = DatabaseManager(config or get_config().database, development_mode=development_mode)
    init_db(manager)
    set_db_manager(manager)
    return manager


def close_db() -> None:
    """Dispose of the process-wide engine, if any."""
    global _db_manager
    if _db_manager is not None:
        _db_manager.close()
        _db_manager = None
