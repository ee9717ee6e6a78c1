"""
Pytest configuration and fixtures for appendset tests.

This file contains shared fixtures and configuration for all test modules.
"""

import sys
from pathlib import Path

import pytest

# Add the project root to Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from appendset.config import SpillConfig  # noqa: E402


@pytest.fixture
def spill_dir(tmp_path):
    """Directory the spill database is created in, for checking cleanup."""
    path = tmp_path / "spill"
    path.mkdir()
    return path


@pytest.fixture
def small_config(spill_dir):
    """A config small enough to spill without allocating 500,000 items."""
    return SpillConfig(add_batch_size=10, spill_threshold=25, temp_dir=str(spill_dir))


@pytest.fixture
def sample_items():
    """Provide a consistent mix of item types for testing."""
    return [
        "foo",
        "",
        "测试",
        0,
        -7,
        2**80,
        1.5,
        None,
        b"raw",
        ("a", 1),
        ["a", 1],
        {"foo": "bar"},
        {"nested": {"list": [1, 2], "flag": True}},
        frozenset({"x", "y"}),
    ]


# Configure pytest markers
def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
    config.addinivalue_line("markers", "unit: marks tests as unit tests")


# Custom collection modifiers
def pytest_collection_modifyitems(config, items):
    """Modify test collection to add markers automatically."""
    for item in items:
        if "integration" in item.nodeid or "test_integration" in item.nodeid:
            item.add_marker(pytest.mark.integration)

        if any(keyword in item.nodeid for keyword in ["large", "stress"]):
            item.add_marker(pytest.mark.slow)

        if not any(
            marker.name in ["integration", "slow"] for marker in item.iter_markers()
        ):
            item.add_marker(pytest.mark.unit)


# Pytest options
def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--run-slow", action="store_true", default=False, help="run slow tests"
    )


def pytest_runtest_setup(item):
    """Skip slow tests unless --run-slow is passed."""
    if "slow" in item.keywords and not item.config.getoption("--run-slow"):
        pytest.skip("need --run-slow option to run")
