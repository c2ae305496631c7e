"""
Pytest configuration for pgfonline tests.

This module provides shared fixtures and configuration for all tests.
"""

import logging
import shutil

import pytest

from fixtures import MOCK_TEX, mock_tex_surface


def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line(
        "markers", "e2e: end-to-end test that spawns an engine process (slow)"
    )
    config.addinivalue_line(
        "markers", "requires_tex: test needs a real TeX installation"
    )


@pytest.fixture(autouse=True)
def isolated_config(tmp_path, monkeypatch):
    """Keep tests away from the user's ~/.pgfonline and PGFONLINE_* variables."""
    from pgfonline import config

    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path / "pgfonline" / "config.yaml")
    for name in ("PGFONLINE_FORMAT", "PGFONLINE_COMMAND", "PGFONLINE_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    yield


@pytest.fixture
def mock_surface():
    """Surface that runs the mock engine."""
    assert MOCK_TEX.exists()
    return mock_tex_surface()


@pytest.fixture
def scenario(monkeypatch):
    """Select the mock engine's behaviour: scenario("silent")."""
    def select(name: str) -> None:
        monkeypatch.setenv("MOCK_TEX_SCENARIO", name)
    select("normal")
    return select


@pytest.fixture(scope="session")
def pdftex():
    """Path to a real pdftex, skipping the test when there is none."""
    path = shutil.which("pdftex")
    if path is None:
        pytest.skip("pdftex not installed")
    return path


@pytest.fixture(autouse=True)
def reset_pgfonline_logging():
    """CLI tests install handlers on the pgfonline logger; undo that."""
    yield
    logger = logging.getLogger("pgfonline")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)
    logger.propagate = True
