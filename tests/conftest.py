"""
Pytest configuration and shared fixtures for devbins tests.
"""

import stat
from pathlib import Path
from typing import Callable

import pytest


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


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers",
        "integration: marks tests as integration tests (requires --integration)",
    )
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


# ============================================================================
# Shared Test Fixtures
# ============================================================================


@pytest.fixture
def output_dir(tmp_path: Path) -> Path:
    """Empty output directory for binaries."""
    path = tmp_path / "resources"
    path.mkdir()
    return path


@pytest.fixture
def lock_dir(tmp_path: Path) -> Path:
    """Lock directory kept out of the user's home."""
    return tmp_path / "locks"


@pytest.fixture
def make_script() -> Callable[..., Path]:
    """
    Factory writing a POSIX shell script that acts as a fake binary.

    Usage: make_script(path, output="tool 1.0", exit_code=0, executable=True)
    """

    def _make(
        path: Path, output: str = "tool 1.0", exit_code: int = 0, executable: bool = True
    ) -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(f"#!/bin/sh\necho '{output}'\nexit {exit_code}\n")
        if executable:
            path.chmod(path.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
        return path

    return _make


@pytest.fixture
def isolated_home(tmp_path: Path, monkeypatch) -> Path:
    """Create isolated home directory for tests."""
    fake_home = tmp_path / "home"
    fake_home.mkdir()

    monkeypatch.setenv("HOME", str(fake_home))
    monkeypatch.setenv("USERPROFILE", str(fake_home))

    return fake_home


@pytest.fixture
def no_network(monkeypatch):
    """Disable network access for tests."""
    import socket

    def guard(*args, **kwargs):
        raise RuntimeError("Network access not allowed in this test")

    monkeypatch.setattr(socket, "socket", guard)


@pytest.fixture(autouse=True)
def reset_caches():
    """Reset module-level caches between tests."""
    from devbins.core import platform

    platform.clear_platform_cache()
    yield
    platform.clear_platform_cache()
