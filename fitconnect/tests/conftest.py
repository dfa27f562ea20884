"""
Test configuration and shared fixtures for the FitConnect test suite.

Environment variables are set before any fitconnect import so the
pydantic-settings models find their required values.
"""

import os

os.environ.setdefault("FITCONNECT_JWT_SECRET", "test-jwt-secret-key-for-testing-only")
os.environ.setdefault("SERVER_HOST", "127.0.0.1")
os.environ.setdefault("SERVER_PORT", "54731")
os.environ.setdefault("LOGGING_ENVIRONMENT", "unit_test")
os.environ.setdefault("LOGGING_DISABLE_LOGGING", "true")

from collections.abc import Callable, Generator  # noqa: E402
from typing import Any  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402

from fitconnect.app.factory import create_app  # noqa: E402
from fitconnect.auth.tokens import issue_access_token  # noqa: E402
from fitconnect.config import get_config, reset_config  # noqa: E402
from fitconnect.config.models import AppConfig, MessagingConfig, SecurityConfig  # noqa: E402
from fitconnect.persistence import MessageStore, UserDirectory  # noqa: E402

from .doubles import build_users  # noqa: E402


@pytest.fixture(autouse=True)
def reset_config_singleton() -> Generator[None, None, None]:
    """Reset the config singleton before and after each test."""
    reset_config()
    yield
    reset_config()


@pytest.fixture
def app_config() -> AppConfig:
    return get_config()


@pytest.fixture
def security_config(app_config: AppConfig) -> SecurityConfig:
    return app_config.security


@pytest.fixture
def messaging_config() -> MessagingConfig:
    return MessagingConfig()


@pytest.fixture
def user_directory() -> UserDirectory:
    """Two trainers with their clients, plus edge-case accounts."""
    return UserDirectory(build_users())


@pytest.fixture
def message_store(user_directory: UserDirectory) -> MessageStore:
    return MessageStore(user_directory)


@pytest.fixture
def token_for(security_config: SecurityConfig) -> Callable[[str], str]:
    """Issue a valid bearer token for a user id."""

    def _issue(user_id: str, **kwargs: Any) -> str:
        return issue_access_token(user_id, security_config, **kwargs)

    return _issue


@pytest.fixture
def auth_headers(token_for: Callable[[str], str]) -> Callable[[str], dict[str, str]]:
    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {token_for(user_id)}"}

    return _headers


@pytest.fixture
def app(app_config: AppConfig, user_directory: UserDirectory, message_store: MessageStore) -> FastAPI:
    return create_app(app_config, user_directory=user_directory, message_store=message_store)


@pytest.fixture
def client(app: FastAPI) -> Generator[TestClient, None, None]:
    """TestClient with the application lifespan running."""
    with TestClient(app) as test_client:
        yield test_client


def pytest_collection_modifyitems(config: Any, items: list[Any]) -> None:
    """Mark tests by directory: unit/ and integration/."""
    for item in items:
        file_path = str(item.fspath)
        if "/unit/" in file_path or "\\unit\\" in file_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in file_path or "\\integration\\" in file_path:
            item.add_marker(pytest.mark.integration)
