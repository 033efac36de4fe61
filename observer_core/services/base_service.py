"""
Base service with session ownership and transaction handling.
"""

import logging
from contextlib import contextmanager
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ..db.db_config import get_db_manager
from ..exceptions import RepositoryError
from ..utils.logger import get_logger


class SessionManagedService:
    """
    Service that owns and manages its own database session.

    When a session is injected the caller owns the transaction boundary and
    this service only flushes.
    """

    def __init__(self, session: Optional[Session] = None, logger: Optional[logging.Logger] = None):
        if session is not None:
            self.session = session
            self._owns_session = False
        else:
            self.session = self._create_session()
            self._owns_session = True

        self.logger = logger or get_logger()

    def _create_session(self) -> Session:
        """Create a new database session from the global database manager."""
        return get_db_manager().session_factory()

    @contextmanager
    def transaction(self):
        """
        Context manager for transactional operations.

        Usage:
            with service.transaction():
                service.session.add(record)
                # Auto-commits on success, rollback on exception

        Raises:
            RepositoryError: Wrapping any SQLAlchemy error
        """
        try:
            yield self.session
            if self._owns_session:
                self.session.commit()
            else:
                self.session.flush()
        except SQLAlchemyError as e:
            if self._owns_session:
                self.session.rollback()
            raise RepositoryError(f"Database error: {type(e).__name__}", cause=e) from e
        except Exception:
            if self._owns_session:
                self.session.rollback()
            raise

    def close(self):
        """Close the session if we own it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
