# tests/conftest.py

from __future__ import annotations

import logging
from types import SimpleNamespace

import pytest

from .fakes import RecordingSleeper


@pytest.fixture()
def sleeper() -> RecordingSleeper:
    return RecordingSleeper()


@pytest.fixture()
def settings() -> SimpleNamespace:
    """
    Minimal settings object compatible with RequestOptions.from_settings.

    A SimpleNamespace rather than the real config keeps tests independent of the environment.
    """
    return SimpleNamespace(
        app_name="hdm-test",
        log_level="DEBUG",
        request_retries=2,
        request_retry_delay_ms=25,
        debounce_ms=5,
    )


@pytest.fixture()
def restore_root_logging():
    """setup_logging() replaces root handlers; put pytest's back afterwards."""
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield root
    for h in list(root.handlers):
        if h not in handlers:
            root.removeHandler(h)
            h.close()
    for h in handlers:
        if h not in root.handlers:
            root.addHandler(h)
    root.setLevel(level)
    logging.captureWarnings(False)
