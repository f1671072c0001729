"""
pytest configuration.

Adds src directory to Python path for imports and clears the Druid
connection environment so tests never pick up a developer's cluster.
"""

import sys
from pathlib import Path

import pytest

# Add src directory to Python path
src_dir = Path(__file__).parent.parent / "src"
sys.path.insert(0, str(src_dir))

DRUID_ENV_VARS = ("DRUID_ENDPOINT", "DRUID_USERNAME", "DRUID_PASSWORD", "DRUID_TIMEOUT_SECONDS")


@pytest.fixture(autouse=True)
def _clean_druid_env(monkeypatch):
    for name in DRUID_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _reset_log_context():
    from core.logging.context import clear_log_context

    clear_log_context()
    yield
    clear_log_context()
