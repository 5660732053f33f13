"""
Pytest configuration and shared fixtures for textcrypt

This module provides:
- Fixed key material matching the preset examples
- A recording log sink for asserting on emitted events
- Fast (low-iteration) engines
- Settings and structlog isolation between tests
"""

import os
import threading
from typing import List, Tuple

import pytest
import structlog

from textcrypt import Builder
from textcrypt.config import settings as settings_module

TEST_KEY = "SomeKey"
TEST_SALT = "SomeSalt"
TEST_IV = bytes(16)


class RecordingSink:
    """Log sink that keeps every event for later inspection"""

    def __init__(self):
        self._lock = threading.Lock()
        self.messages: List[str] = []
        self.errors: List[Tuple[str, BaseException]] = []

    def log(self, message: str) -> None:
        with self._lock:
            self.messages.append(message)

    def log_error(self, message: str, error: BaseException) -> None:
        with self._lock:
            self.errors.append((message, error))


@pytest.fixture(autouse=True)
def isolated_settings(monkeypatch):
    """Each test reads settings fresh from its own environment."""
    for name in list(os.environ):
        if name.upper().startswith("TEXTCRYPT_"):
            monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(settings_module, "settings", None)
    yield
    settings_module.settings = None


@pytest.fixture(autouse=True)
def reset_structlog():
    """Undo any structlog configuration a test applied."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def sink():
    return RecordingSink()


@pytest.fixture
def fast_builder(sink):
    """Low-iteration preset with the recording sink attached."""
    return Builder.low_iteration(TEST_KEY, TEST_SALT, TEST_IV).set_log_sink(sink)


@pytest.fixture
def engine(fast_builder):
    return fast_builder.build()
