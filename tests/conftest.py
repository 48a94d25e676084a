"""ABOUTME: Pytest configuration and fixtures for threat platform tests
ABOUTME: Provides environment, database, Flask and CLI fixtures for unit and integration tests"""

import os

import pytest
from click.testing import CliRunner

from threatplatform.adapters import database, orm
from threatplatform.config import SQLITE_DB_URI


@pytest.fixture(autouse=True)
def set_test_env():
    """Automatically set test environment for all tests."""
    original_env = os.environ.get("FLASK_ENV")
    os.environ["FLASK_ENV"] = "testing"
    yield
    if original_env is not None:
        os.environ["FLASK_ENV"] = original_env
    else:
        os.environ.pop("FLASK_ENV", None)


@pytest.fixture
def clear_env_vars():
    """Fixture to temporarily remove environment variables for testing."""
    original_vars = {}

    def _clear_env_vars(*args):
        for key in args:
            original_vars[key] = os.environ.get(key)
            os.environ.pop(key, None)

    yield _clear_env_vars

    # Restore original environment variables
    for key, value in original_vars.items():
        if value is not None:
            os.environ[key] = value


@pytest.fixture
def temp_env_vars():
    """Fixture to temporarily set environment variables for testing."""
    original_vars = {}

    def _set_env_vars(**kwargs):
        for key, value in kwargs.items():
            original_vars[key] = os.environ.get(key)
            os.environ[key] = value

    yield _set_env_vars

    # Restore original environment variables
    for key, value in original_vars.items():
        if value is not None:
            os.environ[key] = value
        else:
            os.environ.pop(key, None)


@pytest.fixture
def sqlite_session_factory():
    session_factory = database.create_session_factory(SQLITE_DB_URI)
    engine = session_factory.kw["bind"]
    orm.metadata.create_all(engine)
    database.start_mappers()

    yield session_factory

    database.clear_mappers()
    orm.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def cli_with_session_factory(sqlite_session_factory):
    """Fixture that provides a Click runner with test session factory in context."""

    def _invoke_cli_with_context(cli_command, args, input=None):
        runner = CliRunner()
        return runner.invoke(cli_command, args, obj={"session_factory": sqlite_session_factory}, input=input)

    return _invoke_cli_with_context
