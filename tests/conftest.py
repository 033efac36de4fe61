"""
Shared test fixtures.

Provides an in-memory SQLite database, a fresh application config with a
generated encryption key for every test, and common key pool helpers.
"""

import pytest
from sqlalchemy.orm import Session

from observer_core.config import AppConfig, NotificationConfig, SecurityConfig, reset_config, set_config
from observer_core.db import DatabaseManager, get_development_config, import_all_models
from observer_core.db.db_config import Base
from observer_core.exceptions import clear_correlation_id
from observer_core.services.key_store import KeyStore
from observer_core.utils.encryption_utils import generate_encryption_key
from observer_core.utils.logger import reset_logging


@pytest.fixture(autouse=True)
def app_config() -> AppConfig:
    """Install a deterministic configuration for each test."""
    config = AppConfig(
        security=SecurityConfig(encryption_key=generate_encryption_key()),
        notifications=NotificationConfig(
            relay_base_url="https://observer.example.com",
            from_email="alerts@example.com",
            app_name="Firecrawl Observer",
            app_url="https://app.example.com",
            resend_api_key="re_test_key",
        ),
    )
    set_config(config)
    yield config
    reset_config()
    reset_logging()
    clear_correlation_id()


@pytest.fixture(scope="session")
def db_manager() -> DatabaseManager:
    """Create an in-memory database manager with all models registered."""
    import_all_models()
    manager = DatabaseManager(get_development_config(), development_mode=True)
    yield manager
    manager.close()


@pytest.fixture(scope="function")
def db_session(db_manager: DatabaseManager) -> Session:
    """
    Create a database session for each test.

    Tables are created before and dropped after every test so each test
    starts from an empty pool.
    """
    Base.metadata.create_all(db_manager.engine)
    session = db_manager.get_session()

    yield session

    session.rollback()
    db_manager.close_session()
    Base.metadata.drop_all(db_manager.engine)


@pytest.fixture
def owner_id() -> str:
    return "owner-123"


@pytest.fixture
def other_owner_id() -> str:
    return "owner-456"


@pytest.fixture
def key_store(db_session) -> KeyStore:
    """Key store bound to the test session."""
    return KeyStore(session=db_session)


@pytest.fixture
def make_secret():
    """Build syntactically valid provider keys ending in ``suffix``."""

    def _make(suffix: str) -> str:
        return f"fc-{suffix:0>20}"

    return _make
