"""
Pytest configuration and shared fixtures for DotnetKit tests.
"""

import pytest
import tempfile
from pathlib import Path
from typing import Generator

from dotnetkit.core.platform import OSFamily, descriptor_for


def pytest_addoption(parser):
    """Add custom command line options."""
    parser.addoption(
        "--integration",
        action="store_true",
        default=False,
        help="run integration tests that require network access",
    )


def pytest_collection_modifyitems(config, items):
    """Skip integration tests unless --integration flag is provided."""
    if not config.getoption("--integration"):
        skip_integration = pytest.mark.skip(reason="need --integration option to run")
        for item in items:
            if "integration" in item.keywords:
                item.add_marker(skip_integration)


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create temporary directory for test."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def linux_descriptor():
    """Descriptor for a 64-bit Linux host."""
    return descriptor_for(OSFamily.LINUX, True)


@pytest.fixture
def windows_descriptor():
    """Descriptor for a 64-bit Windows host."""
    return descriptor_for(OSFamily.WINDOWS, True)
