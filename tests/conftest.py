"""Pytest configuration and fixtures for all tests."""

import os
import tempfile
from pathlib import Path

import pytest

from fintrack.lib.db import init_db, reset_db, reset_engine
from fintrack.lib.identity import StaticIdentity
from fintrack.services.account_service import AccountService


@pytest.fixture(scope="session", autouse=True)
def setup_test_database():
    """Initialize test database before any tests run.

    Creates a temporary database for testing that is automatically cleaned up.
    Uses session scope so database is created once per test session.
    """
    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as tmp:
        test_db_path = Path(tmp.name)

    # Set environment variable for test database BEFORE initializing
    os.environ["FINTRACK_DB_PATH"] = str(test_db_path)
    # Keep CLI runs from writing ~/.fintrack/fintrack.log
    os.environ["LOG_FILE"] = ""

    reset_engine()
    init_db(test_db_path)

    yield test_db_path

    reset_engine()
    if test_db_path.exists():
        test_db_path.unlink()


@pytest.fixture(autouse=True)
def reset_database_between_tests(setup_test_database):
    """Reset database state between each test.

    This ensures test isolation by clearing all data between tests
    while keeping the schema intact.
    """
    reset_engine()
    reset_db(setup_test_database)

    yield


@pytest.fixture
def user_id():
    return "user-1"


@pytest.fixture
def identity(user_id):
    """Authenticated identity for the default test user."""
    return StaticIdentity(user_id)


@pytest.fixture
def account_id(identity):
    """A checking account owned by the default test user."""
    return AccountService(identity).create_account("Checking").account_id
