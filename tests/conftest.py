"""Pytest configuration and fixtures."""

import os
import time
from collections.abc import Callable, Generator
from typing import Any
from unittest.mock import MagicMock, patch

import jwt
import pytest
from fastapi.testclient import TestClient

TEST_JWT_SECRET = "test-jwt-secret-for-unit-tests"

# Set test environment variables before importing application modules
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DEBUG", "true")
os.environ.setdefault("SUPABASE_URL", "https://test-project.supabase.co")
os.environ.setdefault("SUPABASE_SECRET_KEY", "test-secret-key")
os.environ.setdefault("JWT_ALGORITHM", "HS256")
os.environ.setdefault("JWT_SECRET", TEST_JWT_SECRET)

CHAIN_METHODS = (
    "select",
    "eq",
    "neq",
    "in_",
    "order",
    "limit",
    "maybe_single",
    "insert",
    "update",
    "delete",
)


def make_query(*results: Any) -> MagicMock:
    """Build a Supabase query-builder mock.

    Every builder method returns the same mock, so any chain ends at
    ``execute()``. Each ``execute()`` call returns the next result's
    response; the last one repeats.
    """
    query = MagicMock()
    for method in CHAIN_METHODS:
        getattr(query, method).return_value = query

    responses = [MagicMock(data=result) for result in (results or ([],))]

    def execute() -> MagicMock:
        return responses.pop(0) if len(responses) > 1 else responses[0]

    query.execute.side_effect = execute
    return query


class FakeSupabase:
    """Supabase client mock routing each table to its own query mock."""

    def __init__(self) -> None:
        self.tables: dict[str, MagicMock] = {}
        self.client = MagicMock()
        self.client.table.side_effect = self.table

    def table(self, name: str) -> MagicMock:
        return self.tables.setdefault(name, make_query())

    def set(self, name: str, *results: Any) -> MagicMock:
        self.tables[name] = make_query(*results)
        return self.tables[name]


@pytest.fixture
def fake_supabase() -> FakeSupabase:
    """Provide a table-aware Supabase client mock."""
    return FakeSupabase()


@pytest.fixture(scope="session")
def test_settings() -> Generator[Any, None, None]:
    """Provide test settings with cleared cache.

    Yields:
        Settings: Test configuration settings.
    """
    from matcha.core.config import get_settings

    get_settings.cache_clear()
    settings = get_settings()
    yield settings
    get_settings.cache_clear()


def create_test_token(
    user_id: int = 1,
    email: str | None = "test@example.com",
    exp_offset: int = 3600,
    secret: str = TEST_JWT_SECRET,
) -> str:
    """Create a signed access token for tests."""
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "email": email,
        "username": f"user{user_id}",
        "exp": now + exp_offset,
        "iat": now,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


@pytest.fixture
def auth_headers() -> Callable[..., dict[str, str]]:
    """Factory building Authorization headers for a user id."""

    def build(user_id: int = 1) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_test_token(user_id)}"}

    return build


@pytest.fixture
def token_factory() -> Callable[..., str]:
    return create_test_token


@pytest.fixture
def mock_supabase_client() -> Generator[MagicMock, None, None]:
    """Patch the Supabase client singleton with a mock.

    Yields:
        MagicMock: Mocked Supabase client for testing.
    """
    mock_client = MagicMock()
    mock_response = MagicMock()
    mock_response.data = []
    mock_client.table.return_value.select.return_value.limit.return_value.execute.return_value = (
        mock_response
    )

    with patch("matcha.core.supabase.get_supabase_client", return_value=mock_client):
        yield mock_client


@pytest.fixture
def client(mock_supabase_client: MagicMock) -> Generator[TestClient, None, None]:
    """Provide a test client for the FastAPI application.

    Args:
        mock_supabase_client: Mocked Supabase client fixture.

    Yields:
        TestClient: FastAPI test client.
    """
    from matcha.main import app

    with TestClient(app) as test_client:
        yield test_client
