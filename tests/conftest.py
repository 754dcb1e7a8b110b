"""Pytest configuration and fixtures."""

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

import app.models  # noqa: F401
from app.database import Base
from app.models.report import Report


@pytest.fixture(scope="function")
def session_factory():
    """Session factory bound to a fresh in-memory database."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)

    engine.dispose()


@pytest.fixture(scope="function")
def test_db(session_factory):
    """Create a test database session for each test."""
    db = session_factory()

    yield db

    db.close()


@pytest.fixture
def make_report(test_db):
    """Insert a report and return it."""

    def _make(**fields):
        values = {
            "report_name": "Q4 Market Analysis",
            "client_name": "Acme",
            "type_of_report": "American CPG Growth Plan",
            "meeting_transcript": "We discussed US expansion.",
            "client_urls": ["https://acme.example"],
            "file_urls": [],
            "status": "draft",
        }
        values.update(fields)
        report = Report(**values)
        test_db.add(report)
        test_db.commit()
        test_db.refresh(report)
        return report

    return _make
