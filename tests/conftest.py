"""Pytest configuration and shared fixtures"""

import sys
from pathlib import Path

import pytest

# Add the project root and src directory to Python path so tests can import properly
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))
sys.path.insert(0, str(project_root / "src"))

from chat_model.services.storage import MemoryDatabase  # noqa: E402
from tests.fixtures import FakeAdapter, create_test_config  # noqa: E402


@pytest.fixture
def database():
    """Fresh in-memory storage."""
    return MemoryDatabase()


@pytest.fixture
def config():
    """Plugin config with a small context window."""
    return create_test_config(contextSize=2)


@pytest.fixture
def fake_adapter():
    return FakeAdapter()
