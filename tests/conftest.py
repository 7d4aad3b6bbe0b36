"""Pytest configuration and shared fixtures."""

import sys
import asyncio
import inspect
from datetime import datetime, timezone
from pathlib import Path

import pytest

# Ensure src directory is in Python path for all tests
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from focus_todo.config import ConfigModel, reset_config, set_config  # noqa: E402
from focus_todo.domain import FocusSession, SessionStatus, SessionType  # noqa: E402
from focus_todo.storage import database as db_module  # noqa: E402
from focus_todo.storage.database import DatabaseManager, reset_db  # noqa: E402


TEST_SECRET = "test-secret"


@pytest.hookimpl(tryfirst=True)
def pytest_pyfunc_call(pyfuncitem):
    """Execute async tests without external plugins."""
    testfunction = pyfuncitem.obj
    if inspect.iscoroutinefunction(testfunction):
        loop = asyncio.new_event_loop()
        try:
            asyncio.set_event_loop(loop)
            sig = inspect.signature(testfunction)
            call_kwargs = {name: pyfuncitem.funcargs[name] for name in sig.parameters}
            loop.run_until_complete(testfunction(**call_kwargs))
        finally:
            asyncio.set_event_loop(None)
            loop.close()
        return True
    return None


@pytest.fixture
def test_config(tmp_path):
    """Configuration pointing at a temporary data directory"""
    config = ConfigModel(data_dir=str(tmp_path), database_path=str(tmp_path / "test.db"))
    config.auth.jwt_secret = TEST_SECRET
    config.llm.api_key = "test-key"
    set_config(config)

    yield config

    reset_config()


@pytest.fixture
def db(test_config):
    """Fresh database installed as the global instance"""
    manager = DatabaseManager(Path(test_config.database_path))
    db_module._db_manager = manager

    yield manager

    reset_db()


def make_session(
    user_id,
    started_at,
    seconds,
    task_id=None,
    session_type=SessionType.FOCUS,
    status=SessionStatus.COMPLETED,
):
    """Unsaved focus session helper"""
    if started_at.tzinfo is None:
        started_at = started_at.replace(tzinfo=timezone.utc)
    return FocusSession(
        id=None,
        user_id=user_id,
        session_type=session_type,
        status=status,
        scheduled_duration=seconds,
        actual_duration=seconds,
        started_at=started_at,
        task_id=task_id,
    )


@pytest.fixture
def session_factory():
    return make_session


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)
