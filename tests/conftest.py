"""
Pytest fixtures for the batch process test suite.

Provides:
- In-memory SQLite engine and sessions (no external database required)
- SqlAlchemyUnitOfWork and RecordingUnitOfWork fixtures
- Structured logging configuration and log capture
"""

import json
import logging
from io import StringIO

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from batch_kernel.domain.clock import DeterministicClock
from batch_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from batch_process.services.unit_of_work import STRATEGY_INFO_KEY, SqlAlchemyUnitOfWork
from tests.batch.models import Base, RecordingUnitOfWork


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture batch_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, process):
            process.execute()
            logs = captured_logs()
            assert any(r["message"] == "process_completed" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("batch_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Database fixtures
# =============================================================================


@pytest.fixture
def engine():
    """In-memory SQLite engine with the test tables created."""
    engine = create_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    try:
        yield engine
    finally:
        engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine)


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def unit_of_work(db_session):
    uow = SqlAlchemyUnitOfWork(db_session)
    try:
        yield uow
    finally:
        uow.close()


@pytest.fixture(autouse=True)
def _reset_identifier_strategies():
    """Identifier strategies live in shared table metadata; reset after each test."""
    yield
    for table in Base.metadata.tables.values():
        table.info.pop(STRATEGY_INFO_KEY, None)


# =============================================================================
# Fakes
# =============================================================================


@pytest.fixture
def recording_uow():
    return RecordingUnitOfWork()


@pytest.fixture
def clock():
    return DeterministicClock()
