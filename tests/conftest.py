"""Pytest configuration and fixtures."""

from pathlib import Path

import pytest
from sqlalchemy import create_engine, JSON
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool

from supplier_catalog.models import CatalogBase


FIXTURES_DIR = Path(__file__).parent / "fixtures"

# In-memory SQLite; StaticPool keeps one connection so the API thread sees the same database
TEST_DATABASE_URL = "sqlite:///:memory:"

test_engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
    echo=False
)

TestSessionLocal = sessionmaker(
    bind=test_engine,
    autoflush=False,
    expire_on_commit=False,
)


def _patch_jsonb_to_json(base):
    """
    Swap JSONB columns for JSON so the schema compiles on SQLite.
    Test use only.
    """
    from sqlalchemy.dialects.postgresql import JSONB

    for table in base.metadata.sorted_tables:
        for column in table.columns:
            if isinstance(column.type, JSONB):
                column.type = JSON()


@pytest.fixture(scope="function")
def test_session() -> Session:
    """
    Fresh in-memory database per test.
    """
    _patch_jsonb_to_json(CatalogBase)
    CatalogBase.metadata.create_all(bind=test_engine)

    session = TestSessionLocal()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
        CatalogBase.metadata.drop_all(bind=test_engine)


@pytest.fixture(scope="function")
def db_session(test_session: Session):
    yield test_session


@pytest.fixture
def commit_fails_once(db_session: Session, monkeypatch):
    """
    First commit on db_session raises OperationalError, later commits go through.
    """
    from sqlalchemy.exc import OperationalError

    real_commit = db_session.commit
    calls = []

    def commit():
        calls.append(1)
        if len(calls) == 1:
            raise OperationalError("COMMIT", {}, Exception("database is locked"))
        real_commit()

    monkeypatch.setattr(db_session, "commit", commit)
    return calls


@pytest.fixture
def fixtures_dir() -> Path:
    return FIXTURES_DIR


def pytest_configure(config):
    """Register test markers."""
    config.addinivalue_line("markers", "unit: unit tests (no database)")
    config.addinivalue_line("markers", "integration: integration tests (in-memory SQLite)")
    config.addinivalue_line("markers", "slow: slow tests (> 1 min)")
