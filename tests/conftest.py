"""
Root-level conftest for all tests.

Keeps the environment from leaking into settings-driven tests: the cached
settings singleton and the per-task log context are reset around every test.
"""
import os

# Logs go to stderr as JSON unless told otherwise; keep test output readable
os.environ.setdefault("JSON_LOGS", "false")

import pytest

from listbridge.main.config import reset_settings
from listbridge.main.log_context import clear_worker_context


@pytest.fixture(autouse=True)
def _isolate_global_state():
    reset_settings()
    clear_worker_context()
    yield
    reset_settings()
    clear_worker_context()
