"""Pytest configuration and fixtures."""
from __future__ import annotations

import logging
from collections.abc import Iterator

import pytest

from doubles import FakeAdapter
from riffsmith.core.feedback import TurnFeedback
from riffsmith.core.session_store import SessionStore, reset_session_store


def pytest_configure(config: pytest.Config) -> None:
    """Ensure asyncio_mode is auto so async fixtures work without the pyproject in cwd."""
    if hasattr(config.option, "asyncio_mode") and config.option.asyncio_mode is None:
        config.option.asyncio_mode = "auto"
    logging.getLogger("httpcore").setLevel(logging.CRITICAL)


@pytest.fixture(autouse=True)
def _reset_session_store() -> Iterator[None]:
    """Reset the process-wide SessionStore between tests to prevent cross-test pollution."""
    yield
    reset_session_store()


@pytest.fixture
def adapter() -> FakeAdapter:
    return FakeAdapter()


@pytest.fixture
def store() -> SessionStore:
    return SessionStore()


@pytest.fixture
def feedback() -> TurnFeedback:
    """Feedback with very short timers so expiry is observable in tests."""
    return TurnFeedback(status_clear_seconds=0.01, raw_response_ttl_seconds=0.01)
