"""Shared test configuration for pytest.

Puts the backend and the shared agent test doubles on the import path and
keeps every test away from real provider credentials.
"""

import sys
from pathlib import Path

import pytest

backend_dir = Path(__file__).resolve().parents[1]
if str(backend_dir) not in sys.path:
    sys.path.insert(0, str(backend_dir))
fakes_dir = Path(__file__).resolve().parent / "agents"
if str(fakes_dir) not in sys.path:
    sys.path.insert(0, str(fakes_dir))


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )


@pytest.fixture(autouse=True)
def no_provider_credentials(monkeypatch):
    """Tests never talk to a real completion provider."""
    from utils.config import reset_provider_cache

    monkeypatch.delenv("GROQ_API_KEY", raising=False)
    monkeypatch.delenv("OPENROUTER_API_KEY", raising=False)
    reset_provider_cache()
    yield
    reset_provider_cache()
